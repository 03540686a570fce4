"""Shared service base class.

Gives the cache components consistent logging and access to the cache
context without coupling them to each other.
"""

from __future__ import annotations

import logging

from .context import CacheContext
from .store import NormalizedStore


class BaseService:
    """Base class that provides a logger and the cache context for derived services."""

    def __init__(self, context: CacheContext, logger: logging.Logger | None = None):
        self.context = context
        # Use module-qualified name so loggers stay readable when subclassed
        self.logger = logger or logging.getLogger(self.__class__.__module__)

    @property
    def store(self) -> NormalizedStore:
        return self.context.store
