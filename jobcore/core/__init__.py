"""
Core business logic: job ledger, dispatcher, executor, result store and ingestion.
"""
