"""Output publisher adapters implementing OutputPublisherPort."""

from promdownsampler.adapters.output.atomic_file import AtomicFilePublisher

__all__ = ["AtomicFilePublisher"]
