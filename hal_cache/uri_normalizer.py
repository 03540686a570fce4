"""
URI canonicalization helpers.

Every store lookup goes through normalize_entity_uri so that the same
resource always maps to the same key, regardless of query parameter order
or whether the API answered with absolute or base-relative links.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit

from cachetools import LRUCache, cached

from .config_loader import config


def sort_query_params(uri: str) -> str:
    """
    Sort the query parameters of a URI, keeping the values of duplicate keys in order.

    Example:
        sort_query_params("/books?q=something&dup=true&alpha=0&dup=false")
        # "/books?alpha=0&dup=true&dup=false&q=something"
    """
    # Fragments mark embedded collections ("{owner}#{relation}") and stay as they are
    uri, hash_sign, fragment = uri.partition("#")
    prefix, separator, query = uri.partition("?")
    if not separator:
        return uri + hash_sign + fragment

    pairs = parse_qsl(query, keep_blank_values=True)
    ordered = [
        (key, value)
        for sorted_key in sorted(dict.fromkeys(key for key, _ in pairs))
        for key, value in pairs
        if key == sorted_key
    ]
    if ordered:
        prefix = f"{prefix}?{urlencode(ordered)}"
    return prefix + hash_sign + fragment


def _strip_prefix(value: str, prefix: str) -> str:
    if prefix and value.startswith(prefix):
        return value[len(prefix):]
    return value


def normalize_uri(uri: Any, base_url: str | None = "") -> str | None:
    """
    Normalize a URI by sorting its query parameters and removing the base URL.

    Args:
        uri: URI to normalize
        base_url: Prefix to remove from the beginning of the URI if present

    Returns:
        The normalized URI, or None if uri is not a string
    """
    if not isinstance(uri, str):
        return None
    return _normalize_string(uri, base_url or "")


@cached(cache=LRUCache(maxsize=config.normalize_cache_size))
def _normalize_string(uri: str, base_url: str) -> str:
    sorted_uri = sort_query_params(uri)
    stripped = _strip_prefix(sorted_uri, base_url)
    if not base_url or stripped != sorted_uri:
        return stripped

    parsed_base = urlsplit(base_url)
    if not parsed_base.scheme:
        return stripped

    # Absolute links to the same host are kept verbatim when they point
    # outside the base path.
    if parsed_base.netloc and urlsplit(uri).netloc:
        return stripped

    base_path = parsed_base.path
    if base_path.endswith("/"):
        base_path = base_path[:-1]
    return _strip_prefix(sorted_uri, base_path)


def normalize_entity_uri(uri_or_entity: Any = "", base_url: str | None = "") -> str | None:
    """
    Extract the URI of an entity (or use the passed URI string) and normalize it.

    Accepts URI strings, views exposing meta.uri, references like
    {"href": ...} and raw payloads carrying {"_meta": {"self": ...}}.

    Returns:
        The normalized store key, or None if the argument was not understood
    """
    if isinstance(uri_or_entity, str):
        return normalize_uri(uri_or_entity, base_url)

    if isinstance(uri_or_entity, Mapping):
        if "href" in uri_or_entity:
            return normalize_uri(uri_or_entity["href"], base_url)
        meta = uri_or_entity.get("_meta")
        if isinstance(meta, Mapping):
            return normalize_uri(meta.get("self"), base_url)
        return None

    meta = getattr(uri_or_entity, "meta", None)
    return normalize_uri(getattr(meta, "uri", None), base_url)


def add_query(uri: str, query_params: Mapping[str, Any] | None) -> str:
    """
    Append query parameters to a URI.

    List values repeat the key once per element; booleans are rendered the
    way HAL APIs usually expect them ("true"/"false").
    """
    if not query_params or not isinstance(uri, str):
        return uri

    prefix, _, query = uri.partition("?")
    pairs = parse_qsl(query, keep_blank_values=True)
    for key, value in query_params.items():
        values = value if isinstance(value, (list, tuple)) else [value]
        pairs.extend((key, _query_value(item)) for item in values)

    if pairs:
        return f"{prefix}?{urlencode(pairs)}"
    return uri


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


__all__ = ["normalize_uri", "normalize_entity_uri", "sort_query_params", "add_query"]
