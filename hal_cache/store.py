"""
Normalized store for HAL entities.

A flat mapping from canonical URI to the flattened entity data plus its
lifecycle metadata. This is the only owner of entity state; views, loaders
and the cascade engine only ever look entries up by key. Every mutation is
synchronous, so continuations interleaving on the event loop always see a
consistent table without locking.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from .models import EntryMeta

logger = logging.getLogger(__name__)

StoreListener = Callable[[str, str], None]


class StoreEntry:
    """
    One stored entity.

    Attributes:
        uri: Canonical key of the entry
        fields: Flattened entity data (primitives, references, items)
        meta: Lifecycle flags
        load: Future resolving to this entry once pending work has finished
    """

    def __init__(self, uri: str, fields: dict[str, Any] | None = None, meta: EntryMeta | None = None):
        self.uri = uri
        self.fields: dict[str, Any] = fields or {}
        self.meta = meta or EntryMeta(uri=uri)
        self.load: asyncio.Future | None = None

    @property
    def is_collection(self) -> bool:
        return isinstance(self.fields.get("items"), list)

    def references(self, uri: str) -> bool:
        """True if any field holds a plain reference (or an items entry) pointing at uri."""
        for value in self.fields.values():
            if _is_reference_to(value, uri):
                return True
            if isinstance(value, list) and any(_is_reference_to(entry, uri) for entry in value):
                return True
        return False

    def replace(self, fields: dict[str, Any], meta: EntryMeta) -> None:
        """Swap in freshly fetched data, keeping the entry object itself."""
        self.fields = fields
        self.meta = meta

    def __repr__(self) -> str:
        return f"StoreEntry({self.uri!r}, loading={self.meta.loading}, fields={sorted(self.fields)})"


def _is_reference_to(value: Any, uri: str) -> bool:
    return isinstance(value, Mapping) and list(value) == ["href"] and value["href"] == uri


class NormalizedStore:
    """
    Flat key-value table of store entries.

    Mutations notify registered listeners with (mutation, uri) so that
    observers can re-render when entries change in place.
    """

    def __init__(self) -> None:
        self._entries: dict[str, StoreEntry] = {}
        self._listeners: list[StoreListener] = []

    # Read access ---------------------------------------------------------

    def __getitem__(self, uri: str) -> StoreEntry:
        return self._entries[uri]

    def __contains__(self, uri: object) -> bool:
        return uri in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, uri: str) -> StoreEntry | None:
        return self._entries.get(uri)

    def values(self) -> list[StoreEntry]:
        # Snapshot, since callers may mutate the store while iterating
        return list(self._entries.values())

    # Observers -------------------------------------------------------------

    def add_listener(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StoreListener) -> None:
        self._listeners.remove(listener)

    def _notify(self, mutation: str, uri: str) -> None:
        for listener in list(self._listeners):
            listener(mutation, uri)

    # Mutations -------------------------------------------------------------

    def add_empty(self, uri: str) -> StoreEntry:
        """Insert a placeholder entry for a URI whose first fetch is in flight."""
        entry = StoreEntry(uri, meta=EntryMeta(uri=uri, loading=True))
        self._entries[uri] = entry
        self._notify("add_empty", uri)
        return entry

    def add(self, data: Mapping[str, Mapping[str, Any]]) -> list[StoreEntry]:
        """
        Merge normalized entities into the store.

        Args:
            data: Mapping of URI to flattened entity, each carrying a "_meta" dict
        """
        added = []
        for uri, flattened in data.items():
            fields = {key: value for key, value in flattened.items() if key != "_meta"}
            meta = EntryMeta(**{**flattened.get("_meta", {}), "uri": uri})
            entry = self._entries.get(uri)
            if entry is None:
                entry = StoreEntry(uri, fields, meta)
                self._entries[uri] = entry
            else:
                # Only a failed delete or a purge ends a pending delete
                meta.deleting = meta.deleting or entry.meta.deleting
                entry.replace(fields, meta)
            added.append(entry)
            self._notify("add", uri)
        return added

    def mark_reloading(self, uri: str) -> None:
        self._set_flag(uri, "reloading", True)

    def reloading_failed(self, uri: str) -> None:
        self._set_flag(uri, "reloading", False)

    def mark_deleting(self, uri: str) -> None:
        self._set_flag(uri, "deleting", True)

    def deleting_failed(self, uri: str) -> None:
        self._set_flag(uri, "deleting", False)

    def _set_flag(self, uri: str, flag: str, value: bool) -> None:
        entry = self._entries.get(uri)
        if entry is None:
            return
        setattr(entry.meta, flag, value)
        self._notify(flag if value else f"{flag}_cleared", uri)

    def purge(self, uri: str) -> None:
        if self._entries.pop(uri, None) is not None:
            logger.debug("Purged %s from store", uri)
            self._notify("purge", uri)

    def purge_all(self) -> None:
        for uri in list(self._entries):
            self.purge(uri)


__all__ = ["NormalizedStore", "StoreEntry", "StoreListener"]
