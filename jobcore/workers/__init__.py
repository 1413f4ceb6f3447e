"""
Worker entry points: queue-triggered handlers and the batch worker loop.
"""
