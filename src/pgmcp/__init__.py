"""pgmcp - read-only PostgreSQL tools for agents."""

__version__ = "1.0.0"
