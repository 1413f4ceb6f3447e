"""Boundary adapters: database, object storage, queues and the data engine."""
