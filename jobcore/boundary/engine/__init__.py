"""
Data engine boundary.

Exports: QueryEngine, QueryResult, SqlQueryEngine
"""

from .sql_engine import QueryEngine, QueryResult, SqlQueryEngine

__all__ = ["QueryEngine", "QueryResult", "SqlQueryEngine"]
