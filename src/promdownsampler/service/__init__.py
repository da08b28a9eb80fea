"""Collection pipeline: query executor, collection run and scheduler."""
