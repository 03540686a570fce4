"""
Resolution of collection items.

Collections store their items as references. Reading the items of a
collection whose items are all known materializes them directly; otherwise
the missing ones are fetched according to the configured strategy and a
PlaceholderCollection is returned in the meantime.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .context import CacheContext
from .futures import resolved_future, spawn
from .models import ItemFetchStrategy
from .placeholders import ItemList, PlaceholderCollection
from .service_base import BaseService

if TYPE_CHECKING:
    from .hal_client import HalCache


def _is_reference(value: Any) -> bool:
    return isinstance(value, Mapping) and list(value) == ["href"] and isinstance(value["href"], str)


class ItemResolver(BaseService):
    """Materializes collection items, loading unknown ones first."""

    def __init__(self, context: CacheContext, cache: HalCache, logger=None):
        super().__init__(context, logger=logger)
        self.cache = cache

    def is_known(self, uri: str) -> bool:
        entry = self.store.get(uri)
        return entry is not None and not entry.meta.loading

    def _unknown(self, references: list[Any]) -> list[str]:
        return [ref["href"] for ref in references if _is_reference(ref) and not self.is_known(ref["href"])]

    def resolve_items(
        self,
        references: list[Any],
        owner_uri: str,
        relation: str | None = None,
        include_deleting: bool = False,
    ) -> ItemList | PlaceholderCollection:
        """
        Views for the items of a collection.

        Args:
            references: Stored items of the collection
            owner_uri: URI to reload to fetch all items in one request; the
                collection itself, or the owner of an embedded collection
            relation: Relation of the embedded collection in its owner, if any
            include_deleting: Keep items that are currently being deleted
        """
        if not self._unknown(references):
            return self._materialize(references, include_deleting)

        existing = ItemList()
        if self.context.options.item_fetch_strategy == ItemFetchStrategy.PER_ITEM_FETCH:
            known = [ref for ref in references if _is_reference(ref) and self.is_known(ref["href"])]
            existing = self._materialize(known, include_deleting)

        loaded = self.load_items(references, owner_uri, relation)
        return PlaceholderCollection(_filtered(loaded, include_deleting), existing)

    def load_items(self, references: list[Any], owner_uri: str, relation: str | None = None) -> asyncio.Future:
        """Future resolving to the materialized items once none of them is unknown."""
        if not self._unknown(references):
            return resolved_future(self._materialize(references, include_deleting=True))
        if self.context.options.item_fetch_strategy == ItemFetchStrategy.AVOID_N_PLUS_ONE:
            return spawn(self._load_through_owner(references, owner_uri, relation))
        return spawn(self._load_each(references))

    async def _load_through_owner(self, references: list[Any], owner_uri: str, relation: str | None) -> ItemList:
        self.logger.debug("Reloading %s to resolve items of %s", owner_uri, relation or owner_uri)
        await self.cache.reload(owner_uri)
        current = self._current_references(owner_uri, relation, references)
        # Items the owner did not embed still need their own request
        return await self._load_each(current)

    async def _load_each(self, references: list[Any]) -> ItemList:
        views = [self.cache.get(ref["href"]) for ref in references if _is_reference(ref)]
        await asyncio.gather(*(view.meta.load for view in views))
        return self._materialize(references, include_deleting=True)

    def _current_references(self, owner_uri: str, relation: str | None, fallback: list[Any]) -> list[Any]:
        owner = self.store.get(owner_uri)
        if owner is None:
            return fallback
        if relation is None:
            return owner.fields.get("items") or []
        link = owner.fields.get(relation)
        collection = self.store.get(link["href"]) if isinstance(link, Mapping) and "href" in link else None
        if collection is None:
            return fallback
        return collection.fields.get("items") or []

    def _materialize(self, references: list[Any], include_deleting: bool) -> ItemList:
        views = ItemList(self.cache.get(ref["href"]) for ref in references if _is_reference(ref))
        if include_deleting:
            return views
        return views.filter(lambda view: not view.meta.deleting)


async def _filtered(loaded: asyncio.Future, include_deleting: bool) -> ItemList:
    items = await loaded
    if include_deleting:
        return items
    # Deletions may have started while the items were loading
    return items.filter(lambda view: not view.meta.deleting)


__all__ = ["ItemResolver"]
