"""Adapters implementing core ports and process-level concerns."""
