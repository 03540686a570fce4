"""
Materialized views of loaded store entries.

Views are recreated on every access and never cached: they read their data
from the store entry they wrap, and their relations go back through the
cache, so navigating a view always reflects the current store.
"""

from __future__ import annotations

import asyncio
import copy
from typing import TYPE_CHECKING, Any

from .errors import UnknownPropertyError, UnsupportedOnVirtualResource
from .futures import chain, failed_future, resolved_future
from .hal_normalizer import ITEMS_KEY
from .placeholders import ItemList, PlaceholderCollection
from .store import StoreEntry

if TYPE_CHECKING:
    from .materializer import ResourceCreator


def is_link(value: Any) -> bool:
    """True for references, templated references and virtual references."""
    return isinstance(value, dict) and isinstance(value.get("href"), str) and set(value) <= {
        "href",
        "templated",
        "virtual",
    }


class ResourceMeta:
    """
    Metadata of a view.

    Attributes:
        uri: Store key of the wrapped entry
        self_url: Base URL joined with the store key
        loading: Always False for loaded views
        reloading: True while a reload of the entry is in flight
        deleting: True while the entry is being deleted
        virtual: True for embedded collections
        owning_resource: Owner URI of an embedded collection
        owning_relation: Relation name of an embedded collection in its owner
    """

    def __init__(self, view: Resource, entry: StoreEntry, creator: ResourceCreator):
        self.uri = entry.uri
        self.self_url = creator.context.self_url(entry.uri)
        self.loading = False
        self.reloading = entry.meta.reloading
        self.deleting = entry.meta.deleting
        self.virtual = entry.meta.virtual
        self.owning_resource = entry.meta.owning_resource
        self.owning_relation = entry.meta.owning_relation
        self._view = view
        self._entry_load = entry.load
        self._creator = creator
        self._load: asyncio.Future | None = None

    @property
    def load(self) -> asyncio.Future:
        """Future resolving to the view of the reloaded data, or to this view if no reload is running."""
        if self._load is None:
            if self.reloading and self._entry_load is not None:
                self._load = chain(self._entry_load, self._creator.wrap_data)
            else:
                self._load = resolved_future(self._view)
        return self._load

    def __repr__(self) -> str:
        return f"ResourceMeta(uri={self.uri!r}, reloading={self.reloading}, deleting={self.deleting})"


class Resource:
    """
    A loaded entity.

    Plain fields are readable as attributes; relations are callables that
    return the related view (or a placeholder while it loads):

        book = await cache.get("/books/1").meta.load
        book.title                      # "Moby Dick"
        book.author()                   # view of /authors/1
        book.chapters({"page": 2})      # templated relation, expanded with the params
        book["reload"]                  # raw access to a field shadowed by a method
    """

    def __init__(self, entry: StoreEntry, creator: ResourceCreator):
        self._entry = entry
        self._creator = creator
        self._properties = {
            key: creator.property_value(value) for key, value in entry.fields.items() if key != ITEMS_KEY
        }
        self.meta = ResourceMeta(self, entry, creator)

    def __getattr__(self, name: str) -> Any:
        properties = self.__dict__.get("_properties")
        if properties is None or name.startswith("__"):
            raise AttributeError(name)
        if name in properties:
            return properties[name]
        raise UnknownPropertyError(f"Resource '{self._entry.uri}' has no property or relation '{name}'")

    def __getitem__(self, name: str) -> Any:
        return self._properties[name]

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._properties))

    @property
    def _cache(self):
        return self._creator.cache

    def reload(self) -> asyncio.Future:
        return self._cache.reload(self)

    def create(self, data: Any) -> asyncio.Future:
        """POST data to this resource, e.g. to add an item to a collection."""
        return self._cache.create(self, data)

    def update(self, data: Any) -> asyncio.Future:
        return self._cache.update(self, data)

    def delete(self) -> asyncio.Future:
        return self._cache.delete(self)

    def resolve_relation_href(self, relation: str, params: dict[str, Any] | None = None) -> asyncio.Future:
        return self._cache.resolve_href(self, relation, params)

    def relation_names(self) -> list[str]:
        return [key for key, value in self._entry.fields.items() if key != ITEMS_KEY and is_link(value)]

    def to_dict(self) -> dict[str, Any]:
        """Stored data of this entity, with relations as raw link objects."""
        return copy.deepcopy(self._entry.fields)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self._entry.uri}>"


class Collection(Resource):
    """A loaded entity with an items list."""

    @property
    def _references(self) -> list[Any]:
        return self._entry.fields.get(ITEMS_KEY) or []

    @property
    def _reload_target(self) -> tuple[str, str | None]:
        return self._entry.uri, None

    @property
    def items(self) -> ItemList | PlaceholderCollection:
        """Items, excluding those currently being deleted."""
        owner, relation = self._reload_target
        return self._creator.resolver.resolve_items(self._references, owner, relation, include_deleting=False)

    @property
    def all_items(self) -> ItemList | PlaceholderCollection:
        """Items, including those currently being deleted."""
        owner, relation = self._reload_target
        return self._creator.resolver.resolve_items(self._references, owner, relation, include_deleting=True)

    def load_items(self) -> asyncio.Future:
        """Future resolving to this collection once every item is loaded."""
        owner, relation = self._reload_target
        items_loaded = self._creator.resolver.load_items(self._references, owner, relation)
        return chain(items_loaded, lambda _: self._cache.get(self._entry.uri))


class EmbeddedCollection(Collection):
    """
    A collection embedded in another entity without a URI of its own.

    Reloading goes through the owning entity; write operations are not
    available.
    """

    @property
    def _reload_target(self) -> tuple[str, str | None]:
        return self._entry.meta.owning_resource, self._entry.meta.owning_relation

    def _unsupported(self, operation: str) -> asyncio.Future:
        return failed_future(
            UnsupportedOnVirtualResource(f"{operation} is not supported on embedded collection '{self._entry.uri}'")
        )

    def create(self, data: Any) -> asyncio.Future:
        return self._unsupported("create")

    def update(self, data: Any) -> asyncio.Future:
        return self._unsupported("update")

    def delete(self) -> asyncio.Future:
        return self._unsupported("delete")

    def resolve_relation_href(self, relation: str, params: dict[str, Any] | None = None) -> asyncio.Future:
        return self._unsupported("resolve_relation_href")


__all__ = ["Resource", "Collection", "EmbeddedCollection", "ResourceMeta", "is_link"]
