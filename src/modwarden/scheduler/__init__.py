"""Background tasks that run on a fixed interval."""
