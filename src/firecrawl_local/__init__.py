"""Supervisor and client for a locally built Firecrawl backend."""

__version__ = "0.1.0"
