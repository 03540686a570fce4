"""
Pydantic models shared across the cache.

This module contains the per-entry lifecycle metadata kept in the store,
the response shape transports hand back, and the validated options a
cache instance is constructed with.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel


class ItemFetchStrategy(str, Enum):
    """
    How unresolved collection items are fetched.

    AVOID_N_PLUS_ONE reloads the owner of a collection once instead of
    requesting every unknown item; PER_ITEM_FETCH requests items one by one.
    """

    AVOID_N_PLUS_ONE = "avoid_n_plus_one"
    PER_ITEM_FETCH = "per_item_fetch"


class EntryMeta(BaseModel):
    """
    Lifecycle metadata of one store entry.

    Attributes:
        uri: Canonical store key of the entry
        loading: True only for empty entries awaiting their first fetch
        reloading: True while a forced refresh is in flight
        deleting: True while a delete (or 404 cleanup) is in progress
        virtual: True for embedded collections without a URI of their own
        owning_resource: URI of the entity embedding a virtual collection
        owning_relation: Relation name of a virtual collection in its owner
    """

    uri: str
    loading: bool = False
    reloading: bool = False
    deleting: bool = False
    virtual: bool = False
    owning_resource: str | None = None
    owning_relation: str | None = None


class TransportResponse(BaseModel):
    """
    Response returned by a transport call.

    Attributes:
        status: HTTP status code
        data: Decoded JSON body, or None for empty bodies
    """

    status: int
    data: Any = None


class CacheOptions(BaseModel):
    """
    Options a cache instance is built with.

    Attributes:
        base_url: Prefix stripped from URIs before they are used as store keys
        item_fetch_strategy: Strategy used to resolve unknown collection items
        force_requested_self_link: Store responses under the requested URI
            even if the payload announces a different self link
    """

    base_url: str = ""
    item_fetch_strategy: ItemFetchStrategy = ItemFetchStrategy.AVOID_N_PLUS_ONE
    force_requested_self_link: bool = False


__all__ = [
    "ItemFetchStrategy",
    "EntryMeta",
    "TransportResponse",
    "CacheOptions",
]
