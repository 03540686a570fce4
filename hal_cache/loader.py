"""
Load orchestration.

Decides for every request whether to serve stored data, join a request
already in flight, fetch for the first time or force a reload, and stores
the fetched payloads. At most one transport call per URI and intent is
outstanding at any time.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from .cascade import CascadeEngine
from .context import CacheContext
from .errors import HalCacheError
from .futures import recover, resolved_future, spawn
from .hal_normalizer import self_href
from .service_base import BaseService
from .store import StoreEntry


class LoadOrchestrator(BaseService):
    """Coalesces fetches and reloads of store entries."""

    def __init__(self, context: CacheContext, cascade: CascadeEngine, logger=None):
        super().__init__(context, logger=logger)
        self.cascade = cascade

    def request(self, uri: str, force_reload: bool = False) -> asyncio.Future:
        """
        Make sure the entry for uri is (being) loaded.

        The entry exists in the store as soon as this returns. The returned
        future resolves to the stored entry.

        Args:
            uri: Normalized store key
            force_reload: Fetch again even if the entry is already known
        """
        entry = self.store.get(uri)

        if entry is None:
            entry = self.store.add_empty(uri)
            entry.load = spawn(self._load_from_api(uri))
            return entry.load

        if entry.meta.loading or (force_reload and entry.meta.reloading):
            self.logger.debug("Joining pending request for %s", uri)
            return entry.load

        if not force_reload:
            if entry.load is None:
                entry.load = resolved_future(entry)
            return entry.load

        self.store.mark_reloading(uri)
        reload_task = spawn(self._reload_from_api(uri))
        # Waiters on the entry keep the old data if the reload fails;
        # only the caller of the reload sees the error.
        entry.load = recover(reload_task, lambda: self.store.get(uri) or entry)
        return reload_task

    async def _load_from_api(self, uri: str) -> StoreEntry:
        try:
            response = await self.context.transport.get(uri)
        except HalCacheError as exc:
            self.store.purge(uri)
            error = await self.cascade.handle_failure("fetch", uri, exc)
            raise error from exc
        except Exception:
            self.store.purge(uri)
            raise
        return self.store_payload(response.data, requested_uri=uri)

    async def _reload_from_api(self, uri: str) -> StoreEntry:
        try:
            response = await self.context.transport.get(uri)
        except HalCacheError as exc:
            self.store.reloading_failed(uri)
            error = await self.cascade.handle_failure("reload", uri, exc)
            raise error from exc
        except Exception:
            self.store.reloading_failed(uri)
            raise
        return self.store_payload(response.data, requested_uri=uri)

    def store_payload(self, data: Any, requested_uri: str | None = None) -> StoreEntry:
        """
        Normalize a HAL payload and merge it into the store.

        Args:
            data: Decoded HAL+JSON body
            requested_uri: Store key the payload was requested under, if any

        Returns:
            The entry the payload's top-level resource was stored under
        """
        payload = dict(data) if isinstance(data, Mapping) else {}
        if requested_uri is not None and (
            self.context.options.force_requested_self_link or self_href(payload) is None
        ):
            links = dict(payload.get("_links") or {})
            links["self"] = {"href": requested_uri}
            payload["_links"] = links

        href = self_href(payload)
        if href is None:
            raise HalCacheError("Cannot store a HAL payload without a self link")
        stored_uri = self.context.normalize(href)

        normalized = self.context.hal_normalizer.normalize(payload)
        normalized.setdefault(stored_uri, {"_meta": {"uri": stored_uri}})
        self.store.add(normalized)

        if requested_uri is not None and stored_uri != requested_uri:
            self._resolve_mismatch(requested_uri, stored_uri)
        return self.store[stored_uri]

    def _resolve_mismatch(self, requested_uri: str, stored_uri: str) -> None:
        self.logger.warning(
            "Requested %s but the API answered with self link %s; "
            "enable force_requested_self_link to store it under the requested URI",
            requested_uri,
            stored_uri,
        )
        requested = self.store.get(requested_uri)
        if requested is None:
            return
        if requested.meta.loading:
            self.store.purge(requested_uri)
        else:
            self.store.reloading_failed(requested_uri)


__all__ = ["LoadOrchestrator"]
