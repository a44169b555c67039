"""Crawler package for finding Unity projects that consume the package."""
from __future__ import annotations

from crawler.discovery import discover_consumers
from crawler.instances import McpInstanceClient

__all__ = [
    "discover_consumers",
    "McpInstanceClient",
]
