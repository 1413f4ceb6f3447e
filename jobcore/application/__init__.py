"""
Application layer: component wiring and API-facing services.
"""
