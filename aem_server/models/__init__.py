"""Pydantic models for the AEM server."""
