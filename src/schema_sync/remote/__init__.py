"""
Parse Server integration package for schema-sync.

This package provides:
- An aiohttp client fetching the live schema
- An executor applying planned commands over the REST API
"""

from .client import ParseClient
from .executor import ParseCommandExecutor

__all__ = [
    "ParseClient",
    "ParseCommandExecutor",
]
