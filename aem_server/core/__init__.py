"""Shared infrastructure for the AEM server (logging)."""
