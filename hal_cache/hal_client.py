"""
Public entry point of the HAL cache.

HalCache wires the store, load orchestrator, cascade engine and
materializer of one cache instance together and exposes the operations
callers use. All operations must be called while an asyncio event loop is
running; they perform their bookkeeping immediately and return views or
futures.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any

import uritemplate

from .cascade import CascadeEngine
from .config_loader import config
from .context import CacheContext
from .errors import (
    HalCacheError,
    NotAnEntityReference,
    NotARelationError,
    UnknownPropertyError,
    UnsupportedOnVirtualResource,
)
from .futures import chain, failed_future, spawn
from .item_resolver import ItemResolver
from .loader import LoadOrchestrator
from .materializer import ResourceCreator
from .models import CacheOptions, ItemFetchStrategy
from .placeholders import Placeholder
from .store import NormalizedStore, StoreEntry
from .transport import AiohttpTransport, Transport


class HalCache:
    """
    Client-side cache for a HAL+JSON API.

    Example:
        cache = HalCache(base_url="https://api.example.com")
        camp = cache.get("/camps/1")          # Placeholder until loaded
        camp = await camp.meta.load           # Resource
        for period in await camp.periods().load_items():
            ...
    """

    def __init__(
        self,
        transport: Transport | None = None,
        *,
        base_url: str | None = None,
        item_fetch_strategy: ItemFetchStrategy | str | None = None,
        force_requested_self_link: bool | None = None,
        store: NormalizedStore | None = None,
        logger: logging.Logger | None = None,
    ):
        options = CacheOptions(
            base_url=config.base_url if base_url is None else base_url,
            item_fetch_strategy=config.item_fetch_strategy if item_fetch_strategy is None else item_fetch_strategy,
            force_requested_self_link=(
                config.force_requested_self_link if force_requested_self_link is None else force_requested_self_link
            ),
        )
        self.logger = logger or logging.getLogger(self.__class__.__module__)
        self.context = CacheContext(transport or AiohttpTransport(options.base_url), options, store)
        self.cascade = CascadeEngine(self.context, reload=self.reload, logger=logger)
        self.loader = LoadOrchestrator(self.context, self.cascade, logger=logger)
        self.resolver = ItemResolver(self.context, self, logger=logger)
        self.creator = ResourceCreator(self)

    @property
    def store(self) -> NormalizedStore:
        return self.context.store

    @property
    def options(self) -> CacheOptions:
        return self.context.options

    def _require_uri(self, uri_or_view: Any, operation: str) -> str:
        uri = self.context.normalize(uri_or_view)
        if uri is None:
            raise NotAnEntityReference(f'Could not perform {operation}, "{uri_or_view}" is not an entity or URI')
        return uri

    def _virtual_entry(self, uri: str) -> StoreEntry | None:
        entry = self.store.get(uri)
        if entry is not None and entry.meta.virtual:
            return entry
        return None

    def _unsupported(self, operation: str, uri: str) -> asyncio.Future:
        return failed_future(UnsupportedOnVirtualResource(f"{operation} is not supported on embedded collection '{uri}'"))

    def get(self, uri_or_view: Any = "", force_reload: bool = False) -> Any:
        """
        Return a view of the entity, loading it if it is not known yet.

        Args:
            uri_or_view: URI, reference or view; "" addresses the API root
            force_reload: Also start a reload of an already known entity

        Returns:
            The view of the stored entity, or a Placeholder while it loads

        Raises:
            NotAnEntityReference: If uri_or_view does not identify an entity
        """
        if isinstance(uri_or_view, Placeholder) and uri_or_view.meta.uri is None:
            return uri_or_view
        uri = self._require_uri(uri_or_view, "GET")

        virtual = self._virtual_entry(uri)
        if virtual is not None:
            if force_reload:
                self.reload(uri)
            return self.creator.wrap(virtual)

        self.loader.request(uri, force_reload)
        return self.creator.wrap(self.store[uri])

    def reload(self, uri_or_view: Any) -> asyncio.Future:
        """
        Fetch the entity again; resolves to the view of the fresh data.

        Reloading an embedded collection reloads its owner and extracts the
        collection again.
        """
        uri = self._require_uri(uri_or_view, "reload")

        virtual = self._virtual_entry(uri)
        if virtual is not None:
            relation = virtual.meta.owning_relation
            return chain(self.reload(virtual.meta.owning_resource), lambda owner: self._extract(owner, relation, uri))

        return chain(self.loader.request(uri, force_reload=True), self.creator.wrap)

    def _extract(self, owner: Any, relation: str, uri: str) -> Any:
        try:
            accessor = getattr(owner, relation)
        except UnknownPropertyError:
            # The owner no longer embeds this collection
            self.store.purge(uri)
            raise
        if not callable(accessor):
            self.store.purge(uri)
            raise NotARelationError(
                f"Resource '{owner.meta.uri}' no longer embeds a collection '{relation}' "
                f"(actual value: {json.dumps(accessor, default=str)})"
            )
        return accessor()

    def is_unknown(self, uri_or_view: Any) -> bool:
        """True if the entity was never loaded (or was purged since)."""
        return self.context.normalize(uri_or_view) not in self.store

    def create(self, uri_or_view: Any, data: Any) -> asyncio.Future:
        """
        POST data to a URI, usually a collection.

        Resolves to the view of the created entity, or None when the API
        answers 204 No Content.
        """
        uri = self._require_uri(uri_or_view, "POST")
        if self._virtual_entry(uri) is not None:
            return self._unsupported("create", uri)
        return spawn(self._create(uri, data))

    async def _create(self, uri: str, data: Any) -> Any:
        try:
            response = await self.context.transport.post(uri, data)
        except HalCacheError as exc:
            error = await self.cascade.handle_failure("post", uri, exc)
            raise error from exc
        if response.status == 204:
            return None
        return self.creator.wrap(self.loader.store_payload(response.data))

    def update(self, uri_or_view: Any, data: Any) -> asyncio.Future:
        """PATCH the entity; resolves to the view of the updated entity."""
        uri = self._require_uri(uri_or_view, "PATCH")
        if self._virtual_entry(uri) is not None:
            return self._unsupported("update", uri)

        entry = self.store.get(uri)
        placeholder = entry is None
        if placeholder:
            entry = self.store.add_empty(uri)
        task = spawn(self._update(uri, data, placeholder))
        if placeholder:
            entry.load = task
        return chain(task, self.creator.wrap)

    async def _update(self, uri: str, data: Any, placeholder: bool) -> StoreEntry:
        try:
            response = await self.context.transport.patch(uri, data)
        except HalCacheError as exc:
            if placeholder:
                self.store.purge(uri)
            error = await self.cascade.handle_failure("patch", uri, exc)
            raise error from exc

        if isinstance(response.data, Mapping):
            return self.loader.store_payload(response.data, requested_uri=uri)

        # No representation in the response, fetch the current state instead
        if placeholder:
            self.store.purge(uri)
            return await self.loader.request(uri)
        return await self.loader.request(uri, force_reload=True)

    def delete(self, uri_or_view: Any) -> asyncio.Future:
        """
        DELETE the entity.

        The entity is flagged as deleting immediately. The returned future
        resolves once every entity referencing it was reloaded and it was
        purged from the store.
        """
        uri = self._require_uri(uri_or_view, "DELETE")
        if self._virtual_entry(uri) is not None:
            return self._unsupported("delete", uri)
        return self.cascade.begin_delete(uri)

    def resolve_href(
        self,
        uri_or_view: Any,
        relation: str,
        params: dict[str, Any] | None = None,
    ) -> asyncio.Future:
        """
        Resolve the URI a relation points to without loading the related entity.

        Templated relations are expanded with params. Resolves to None if
        the entity has no such relation.
        """
        uri = self._require_uri(uri_or_view, "href")
        if self._virtual_entry(uri) is not None:
            return self._unsupported("resolve_href", uri)
        return spawn(self._resolve_href(uri, relation, params or {}))

    async def _resolve_href(self, uri: str, relation: str, params: dict[str, Any]) -> str | None:
        view = await self.get(uri).meta.load
        entry = self.store.get(view.meta.uri)
        link = entry.fields.get(relation) if entry is not None else None
        if not isinstance(link, Mapping) or not isinstance(link.get("href"), str):
            return None
        if link.get("templated"):
            return uritemplate.expand(link["href"], params)
        return link["href"]

    def purge(self, uri_or_view: Any) -> None:
        """Remove an entity from the store without deleting it upstream."""
        uri = self.context.normalize(uri_or_view)
        if uri is None:
            return
        self.store.purge(uri)

    def purge_all(self) -> None:
        self.store.purge_all()


__all__ = ["HalCache"]
