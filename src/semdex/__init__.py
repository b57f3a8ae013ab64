"""SemDex - semantic index MCP servers."""

__version__ = "0.1.0"
