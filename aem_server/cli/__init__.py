"""Command-line interface for the AEM MCP server."""

from aem_server import __version__

__all__ = ["__version__"]
