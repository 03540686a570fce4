"""Per-cache context shared by all components of one cache instance."""

from __future__ import annotations

from typing import Any

from .hal_normalizer import HalNormalizer
from .models import CacheOptions
from .store import NormalizedStore
from .transport import Transport
from .uri_normalizer import normalize_entity_uri, normalize_uri


class CacheContext:
    """
    Explicit state of one cache instance.

    Components receive the context instead of reaching for module globals,
    so independent caches (and tests) never share a store.
    """

    def __init__(self, transport: Transport, options: CacheOptions, store: NormalizedStore | None = None):
        self.transport = transport
        self.options = options
        self.store = store if store is not None else NormalizedStore()
        self.hal_normalizer = HalNormalizer(lambda uri: normalize_uri(uri, options.base_url))

    def normalize(self, uri_or_entity: Any) -> str | None:
        return normalize_entity_uri(uri_or_entity, self.options.base_url)

    def self_url(self, uri: str | None) -> str | None:
        """Absolute-looking URL of a store key, for display purposes."""
        if uri is None:
            return None
        return self.options.base_url + uri
