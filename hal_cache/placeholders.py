"""
Placeholders for data that is still loading.

A Placeholder stands in for a resource whose fetch is in flight. It renders
as an empty string, and any relation accessed on it yields another
placeholder, so whole navigation chains can be written before anything has
arrived:

    book = cache.get("/books/1")
    author_name = book.author().organization()   # Placeholder, returns immediately
    organization = await author_name.meta.load    # real view once loaded

Errors behind a placeholder surface only when its load is awaited.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from .errors import NotARelationError
from .futures import chain, spawn


class ItemList(list):
    """A list of views with the small functional helpers collections expose."""

    def find(self, predicate: Callable[[Any], bool]) -> Any:
        return next((item for item in self if predicate(item)), None)

    def map(self, func: Callable[[Any], Any]) -> ItemList:
        return ItemList(func(item) for item in self)

    def filter(self, predicate: Callable[[Any], bool]) -> ItemList:
        return ItemList(item for item in self if predicate(item))

    def flat_map(self, func: Callable[[Any], Iterable[Any]]) -> ItemList:
        return ItemList(result for item in self for result in func(item))


class PlaceholderCollection(ItemList):
    """
    Placeholder for a list of items that is still loading.

    Holds the items already known (possibly none) and defers the functional
    helpers until the complete list has loaded.

    Attributes:
        load: Future resolving to the complete ItemList
    """

    def __init__(self, load: Awaitable[Any], existing: Iterable[Any] = ()):
        super().__init__(existing)
        self.load = chain(load, _as_item_list)

    def find(self, predicate: Callable[[Any], bool]) -> Placeholder:
        return Placeholder(chain(self.load, lambda items: items.find(predicate)))

    def map(self, func: Callable[[Any], Any]) -> PlaceholderCollection:
        return PlaceholderCollection(chain(self.load, lambda items: items.map(func)))

    def filter(self, predicate: Callable[[Any], bool]) -> PlaceholderCollection:
        return PlaceholderCollection(chain(self.load, lambda items: items.filter(predicate)))

    def flat_map(self, func: Callable[[Any], Iterable[Any]]) -> PlaceholderCollection:
        return PlaceholderCollection(chain(self.load, lambda items: items.flat_map(func)))

    def __repr__(self) -> str:
        return f"PlaceholderCollection({list.__repr__(self)}, done={self.load.done()})"


def _as_item_list(items: Any) -> ItemList:
    # A resource without items resolves to an empty list
    if items is None:
        return ItemList()
    return items if isinstance(items, ItemList) else ItemList(items)


def _items_of(view: Any, name: str) -> Any:
    items = getattr(view, name, None)
    if isinstance(items, PlaceholderCollection):
        return items.load
    return items


class PlaceholderMeta:
    """Metadata of a placeholder; mirrors the metadata of loaded views."""

    loading = True
    reloading = False
    deleting = False
    virtual = False

    def __init__(self, load: asyncio.Future, uri: str | None = None, self_url: str | None = None):
        self.load = load
        self.uri = uri
        self.self_url = self_url

    def __repr__(self) -> str:
        return f"PlaceholderMeta(uri={self.uri!r}, done={self.load.done()})"


class Placeholder:
    """Stands in for a resource until its load future resolves."""

    def __init__(self, load: Awaitable[Any], uri: str | None = None, self_url: str | None = None):
        self.meta = PlaceholderMeta(spawn(load), uri, self_url)

    def __getattr__(self, name: str) -> DeferredRelation:
        if name.startswith("__") or name == "meta":
            raise AttributeError(name)
        return DeferredRelation(self.meta.load, name)

    @property
    def items(self) -> PlaceholderCollection:
        return PlaceholderCollection(chain(self.meta.load, lambda view: _items_of(view, "items")))

    @property
    def all_items(self) -> PlaceholderCollection:
        return PlaceholderCollection(chain(self.meta.load, lambda view: _items_of(view, "all_items")))

    def reload(self) -> asyncio.Future:
        # Already loading, so there is nothing newer to fetch
        return self.meta.load

    def load_items(self) -> asyncio.Future:
        return chain(self.meta.load, lambda view: view.load_items())

    def create(self, data: Any) -> asyncio.Future:
        return chain(self.meta.load, lambda view: view.create(data))

    def update(self, data: Any) -> asyncio.Future:
        return chain(self.meta.load, lambda view: view.update(data))

    def delete(self) -> asyncio.Future:
        return chain(self.meta.load, lambda view: view.delete())

    def resolve_relation_href(self, relation: str, params: dict[str, Any] | None = None) -> asyncio.Future:
        return chain(self.meta.load, lambda view: view.resolve_relation_href(relation, params))

    def to_dict(self) -> dict[str, Any]:
        return {}

    def __str__(self) -> str:
        return ""

    def __repr__(self) -> str:
        return f"<Placeholder {self.meta.uri or '?'}>"


class DeferredRelation:
    """
    A relation accessed on a placeholder.

    Calling it follows the relation once the placeholder has loaded and
    returns yet another placeholder for the related resource.
    """

    def __init__(self, load: asyncio.Future, name: str):
        self._load = load
        self.name = name

    def __call__(self, *args: Any, **kwargs: Any) -> Placeholder:
        return Placeholder(self._follow(args, kwargs))

    async def _follow(self, args: tuple, kwargs: dict[str, Any]) -> Any:
        view = await self._load
        value = getattr(view, self.name, None)
        if callable(value):
            try:
                related = value(*args, **kwargs)
            except TypeError as exc:
                raise self._not_a_relation(view, value) from exc
            load = getattr(getattr(related, "meta", None), "load", None)
            if load is not None:
                return await load
        raise self._not_a_relation(view, value)

    def _not_a_relation(self, view: Any, value: Any) -> NotARelationError:
        owner = getattr(getattr(view, "meta", None), "uri", None)
        return NotARelationError(
            f"Property '{self.name}' on resource '{owner}' was used like a relation, but no relation "
            f"with this name was returned by the API (actual return value: {json.dumps(value, default=str)})"
        )

    def __str__(self) -> str:
        return ""

    def __repr__(self) -> str:
        return f"<DeferredRelation {self.name}>"


__all__ = ["ItemList", "PlaceholderCollection", "Placeholder", "PlaceholderMeta", "DeferredRelation"]
