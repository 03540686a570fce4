"""
HAL cache package.

A client-side cache for HAL+JSON APIs: fetched resources are normalized
into a flat store keyed by URI and handed out as navigable views whose
relations load lazily.
"""
from .errors import (
    HalCacheError,
    HttpStatusError,
    NotAnEntityReference,
    NotARelationError,
    PermissionDeniedError,
    ResourceDeletedError,
    ServerError,
    TransportError,
    UnknownPropertyError,
    UnsupportedOnVirtualResource,
)
from .hal_client import HalCache
from .models import CacheOptions, ItemFetchStrategy, TransportResponse
from .placeholders import ItemList, Placeholder, PlaceholderCollection
from .resources import Collection, EmbeddedCollection, Resource
from .transport import AiohttpTransport, Transport
from .uri_normalizer import add_query, normalize_entity_uri, normalize_uri

__version__ = "1.0.0"
__all__ = [
    "HalCache",
    "CacheOptions",
    "ItemFetchStrategy",
    "TransportResponse",
    "Transport",
    "AiohttpTransport",
    "Resource",
    "Collection",
    "EmbeddedCollection",
    "Placeholder",
    "PlaceholderCollection",
    "ItemList",
    "normalize_uri",
    "normalize_entity_uri",
    "add_query",
    "HalCacheError",
    "HttpStatusError",
    "NotAnEntityReference",
    "NotARelationError",
    "PermissionDeniedError",
    "ResourceDeletedError",
    "ServerError",
    "TransportError",
    "UnknownPropertyError",
    "UnsupportedOnVirtualResource",
]
