"""MCP server, REST client and JSON-schema tree for NetSuite metadata and SuiteQL queries."""

__version__ = "1.0.0"
__all__ = ["__version__"]