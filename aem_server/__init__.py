"""
AEM Server: Adobe Experience Manager content operations exposed as MCP tools.

Wraps the AEM author REST surface (pages, QueryBuilder search, DAM assets,
content fragments, replication) behind named tools so an agent can manage
content without building raw HTTP calls.
"""

__version__ = "0.1.0"
