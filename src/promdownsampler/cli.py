"""Command line entry point."""

import argparse
import asyncio
import contextlib
import logging
from collections.abc import Sequence
from dataclasses import replace

from promdownsampler.adapters.logging import configure_logging
from promdownsampler.adapters.output.atomic_file import AtomicFilePublisher
from promdownsampler.adapters.source.prometheus import PrometheusSource
from promdownsampler.config import Settings, load_settings, parse_duration
from promdownsampler.core.errors import CollectionError, ConfigError
from promdownsampler.service.executor import QueryExecutor
from promdownsampler.service.run import CollectionRun
from promdownsampler.service.scheduler import Scheduler

logger = logging.getLogger(__name__)


def build_parser(defaults: Settings) -> argparse.ArgumentParser:
    """Build the argument parser, with defaults taken from settings."""
    parser = argparse.ArgumentParser(
        prog="prometheus-downsampler",
        description="Read metrics from Prometheus and downsample them to a file.",
    )
    parser.add_argument(
        "-s",
        "--source",
        default=defaults.source_url,
        help="Source Prometheus endpoint [env PDS_SOURCE] (default: %(default)s)",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=defaults.output_path,
        help="Output file path [env PDS_OUTPUT] (default: %(default)s)",
    )
    parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=defaults.concurrency,
        help="Max concurrent queries to the source [env PDS_CONCURRENT] "
        "(default: %(default)s)",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=parse_duration,
        default=defaults.interval,
        help="Collection interval, e.g. 5m [env PDS_INTERVAL] (default: %(default)s)",
    )
    parser.add_argument(
        "--query-timeout",
        type=float,
        default=defaults.query_timeout,
        help="Deadline per query in seconds [env PDS_QUERY_TIMEOUT] "
        "(default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default=defaults.log_level,
        help="Log level [env PDS_LOG_LEVEL] (default: %(default)s)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single collection and exit",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> tuple[Settings, bool]:
    """Merge command line flags over environment settings.

    Returns:
        The effective settings and whether to run only once.
    """
    defaults = load_settings()
    args = build_parser(defaults).parse_args(argv)
    settings = replace(
        defaults,
        source_url=args.source,
        output_path=args.output,
        concurrency=args.concurrency,
        interval=args.interval,
        query_timeout=args.query_timeout,
        log_level=args.log_level.upper(),
    )
    return settings, args.once


async def serve(settings: Settings, once: bool = False) -> int:
    """Wire the pipeline and run it.

    Returns:
        Process exit code.
    """
    async with PrometheusSource(
        settings.source_url, timeout=settings.query_timeout
    ) as source:
        run = CollectionRun(
            source=source,
            executor=QueryExecutor(
                source, settings.concurrency, query_timeout=settings.query_timeout
            ),
            publisher=AtomicFilePublisher(settings.output_path),
            interval=settings.interval,
        )
        if once:
            try:
                report = await run.run()
            except CollectionError as exc:
                logger.error("Collection run failed", extra={"error": str(exc)})
                return 1
            return 0 if report.published else 1

        scheduler = Scheduler(run.run, settings.interval)
        try:
            await scheduler.run_forever()
        finally:
            await scheduler.wait_idle()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Console script entry point."""
    try:
        settings, once = parse_args(argv)
    except ConfigError as exc:
        configure_logging()
        logger.error("Invalid configuration", extra={"error": str(exc)})
        return 2
    configure_logging(settings.log_level)
    logger.info(
        "Starting prometheus-downsampler",
        extra={
            "source": settings.source_url,
            "output": settings.output_path,
            "concurrency": settings.concurrency,
            "interval": str(settings.interval),
        },
    )
    with contextlib.suppress(KeyboardInterrupt):
        return asyncio.run(serve(settings, once=once))
    return 0
