"""Turns store entries into views."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import uritemplate

from .futures import chain
from .placeholders import Placeholder
from .resources import Collection, EmbeddedCollection, Resource
from .store import StoreEntry

if TYPE_CHECKING:
    from .hal_client import HalCache


class ResourceCreator:
    """Builds views for store entries of one cache."""

    def __init__(self, cache: HalCache):
        self.cache = cache
        self.context = cache.context

    @property
    def resolver(self):
        return self.cache.resolver

    def wrap(self, entry: StoreEntry) -> Any:
        """Return a placeholder for loading entries, a full view otherwise."""
        if entry.meta.loading:
            return Placeholder(chain(entry.load, self.wrap_data), entry.uri, self.context.self_url(entry.uri))
        return self.wrap_data(entry)

    def wrap_data(self, entry: StoreEntry) -> Resource:
        if entry.meta.virtual:
            return EmbeddedCollection(entry, self)
        if entry.is_collection:
            return Collection(entry, self)
        return Resource(entry, self)

    def property_value(self, value: Any) -> Any:
        """Accessor for link fields; any other value is copied as it is."""
        if not isinstance(value, dict) or not isinstance(value.get("href"), str):
            return value
        href = value["href"]
        if value.get("virtual") is True:
            return lambda: self.cache.get(href)
        if value.get("templated") is True:
            return lambda params=None: self.cache.get(uritemplate.expand(href, params or {}))
        if list(value) == ["href"]:
            return lambda: self.cache.get(href)
        return value


__all__ = ["ResourceCreator"]
