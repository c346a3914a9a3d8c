"""MCP Server for AEM.

This module provides a Model Context Protocol (MCP) server that exposes
the AEM author REST API (pages, search, assets, content fragments and
replication) as named tools.
"""

__version__ = "0.1.0"
