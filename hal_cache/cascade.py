"""
Cascade consistency engine.

When an entity disappears (confirmed DELETE, or a 404/410 on any request),
every stored entity referencing it is reloaded so that stale links vanish,
and the entity itself is purged. Entities already marked as deleting are
never reloaded, which breaks reference cycles; cleanups already running
for a URI are joined instead of started twice.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from .context import CacheContext
from .errors import (
    HalCacheError,
    HttpStatusError,
    PermissionDeniedError,
    ResourceDeletedError,
    ServerError,
    TransportError,
)
from .futures import spawn
from .service_base import BaseService
from .store import StoreEntry

GONE_STATUSES = (404, 410)


class CascadeEngine(BaseService):
    """Deletes entities and keeps referencing entities consistent."""

    def __init__(self, context: CacheContext, reload: Callable[[str], Awaitable[Any]], logger=None):
        super().__init__(context, logger=logger)
        self._reload = reload
        self._cleanups: dict[str, asyncio.Task] = {}

    def begin_delete(self, uri: str) -> asyncio.Task:
        """
        Mark uri as deleting right away and delete it in the background.

        The flag is visible before the returned task runs, so collection
        views filter the entity out immediately.
        """
        self.store.mark_deleting(uri)
        return spawn(self._delete(uri))

    async def _delete(self, uri: str) -> None:
        try:
            await self.context.transport.delete(uri)
        except HalCacheError as exc:
            self.store.deleting_failed(uri)
            error = await self.handle_failure("delete", uri, exc)
            raise error from exc
        await self.deleted(uri)

    def find_entries_referencing(self, uri: str) -> list[StoreEntry]:
        return [entry for entry in self.store.values() if entry.references(uri)]

    def deleted(self, uri: str) -> asyncio.Task:
        """
        Clean up the store after uri was found to be gone upstream.

        Returns a task resolving once all referencing entities were reloaded
        and uri was purged.
        """
        task = self._cleanups.get(uri)
        if task is None or task.done():
            task = spawn(self._cleanup(uri))
            self._cleanups[uri] = task
            task.add_done_callback(lambda done: self._forget(uri, done))
        return task

    def _forget(self, uri: str, task: asyncio.Task) -> None:
        if self._cleanups.get(uri) is task:
            del self._cleanups[uri]

    async def _cleanup(self, uri: str) -> None:
        outdated = [entry.uri for entry in self.find_entries_referencing(uri) if not entry.meta.deleting]
        if outdated:
            self.logger.info("Reloading %s entities referencing deleted %s", len(outdated), uri)
        await asyncio.gather(*(self._reload_quietly(outdated_uri) for outdated_uri in outdated))
        self.store.purge(uri)

    async def _reload_quietly(self, uri: str) -> None:
        if uri not in self.store:
            return
        try:
            await self._reload(uri)
        except Exception as exc:  # noqa: BLE001 - one failed reload must not stop the others
            # A 404 here recursively cascades through handle_failure
            self.logger.info("Ignoring failed reload of %s during cascade: %s", uri, exc)

    async def handle_failure(self, operation: str, uri: str, exc: Exception) -> Exception:
        """
        Translate a transport failure into the error reported to callers.

        404 and 410 additionally mark the entity as deleting and wait for the
        delete cascade, since the resource no longer exists upstream.
        """
        if isinstance(exc, HttpStatusError):
            detail = f'"{uri}" (status {exc.status}): {exc}'
            error_args = {"status": exc.status, "body": exc.body, "operation": operation, "uri": uri}
            if exc.status in GONE_STATUSES:
                self.store.mark_deleting(uri)
                await self.deleted(uri)
                return ResourceDeletedError(f"Could not {operation} {detail}", **error_args)
            if exc.status == 403:
                return PermissionDeniedError(f"No permission to {operation} {detail}", **error_args)
            return ServerError(f"Error trying to {operation} {detail}", **error_args)
        if isinstance(exc, TransportError):
            return TransportError(f'Error trying to {operation} "{uri}": {exc}')
        return exc


__all__ = ["CascadeEngine", "GONE_STATUSES"]
