"""Core domain: models, ports, bucketing and encoding."""
