"""
jobcore: asynchronous query jobs and filtered batch ingestion.

Two cores share one vocabulary: a durable job ledger driven by a dispatcher
and an out-of-band executor, and an ingestion path that filters event
descriptors, buffers them on a channel and applies them in batches.
"""

__version__ = "0.1.0"
