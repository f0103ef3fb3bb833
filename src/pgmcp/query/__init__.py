"""Query execution and catalog introspection."""

from pgmcp.query.executor import QueryExecutor, ResultSet
from pgmcp.query.schema import SchemaIntrospector

__all__ = ["QueryExecutor", "ResultSet", "SchemaIntrospector"]
