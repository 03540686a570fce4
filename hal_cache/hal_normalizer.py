"""
Flattening of HAL+JSON payloads into store entries.

Every nested object carrying its own self link becomes an independent entry
keyed by its normalized URI, and its original position is replaced by a
reference. Arrays of embedded objects become either the items of a real
collection entry or a virtual collection stored under "{owner}#{relation}".

Example:
    payload = {
        "id": 1,
        "_embedded": {"periods": [{"id": 104, "_links": {"self": {"href": "/periods/104"}}}]},
        "_links": {"self": {"href": "/camps/1"}, "owner": {"href": "/users/83"}},
    }
    HalNormalizer().normalize(payload)
    # {
    #     "/periods/104": {"id": 104, "_meta": {"uri": "/periods/104"}},
    #     "/camps/1#periods": {"items": [{"href": "/periods/104"}], "_meta": {...virtual...}},
    #     "/camps/1": {
    #         "id": 1,
    #         "owner": {"href": "/users/83"},
    #         "periods": {"href": "/camps/1#periods", "virtual": True},
    #         "_meta": {"uri": "/camps/1"},
    #     },
    # }
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from .uri_normalizer import normalize_uri

ITEMS_KEY = "items"
RESERVED_KEYS = ("_links", "_embedded")

Flattened = dict[str, dict[str, Any]]


def virtual_uri(owner: str, relation: str) -> str:
    """Store key of an embedded collection without a URI of its own."""
    return f"{owner}#{relation}"


def self_href(payload: Any) -> str | None:
    """Return the raw self link of a HAL object, if it has one."""
    if not isinstance(payload, Mapping):
        return None
    links = payload.get("_links")
    if not isinstance(links, Mapping):
        return None
    self_link = links.get("self")
    if isinstance(self_link, Mapping) and isinstance(self_link.get("href"), str):
        return self_link["href"]
    return None


class HalNormalizer:
    """Flattens HAL payloads using a URI normalization callback."""

    def __init__(self, normalize: Callable[[str], str | None] | None = None, items_key: str = ITEMS_KEY):
        self._normalize = normalize or (lambda uri: normalize_uri(uri))
        self.items_key = items_key

    def normalize(self, payload: Mapping[str, Any]) -> Flattened:
        """
        Flatten a payload into a mapping of URI to entity.

        Entities are emitted after the entities they embed, so the outermost
        representation of a resource wins when it appears more than once.
        """
        output: Flattened = {}
        self._flatten_entity(payload, output)
        return output

    def _uri(self, href: str) -> str:
        normalized = self._normalize(href)
        return href if normalized is None else normalized

    def _flatten_entity(self, entity: Mapping[str, Any], output: Flattened) -> dict[str, str] | None:
        href = self_href(entity)
        if href is None:
            return None
        uri = self._uri(href)
        reference = {"href": uri}

        if _is_reference_only(entity):
            # Do not overwrite richer data that may already be stored
            return reference

        links = entity.get("_links") or {}
        embedded = entity.get("_embedded") or {}
        fields: dict[str, Any] = {key: value for key, value in entity.items() if key not in RESERVED_KEYS}

        for relation, link in links.items():
            if relation == "self" or relation in embedded:
                continue
            fields[relation] = self._link_value(uri, relation, link, output)

        for relation, value in embedded.items():
            if isinstance(value, list):
                fields[relation] = self._embedded_list(uri, relation, value, links.get(relation), output)
            elif isinstance(value, Mapping):
                nested = self._flatten_entity(value, output)
                fields[relation] = nested if nested is not None else dict(value)
            else:
                fields[relation] = value

        # A collection's own items are kept on the entry itself
        if self.items_key in fields and isinstance(fields[self.items_key], Mapping):
            items_link = fields[self.items_key]
            if items_link.get("virtual"):
                fields[self.items_key] = output.pop(items_link["href"])[self.items_key]

        fields["_meta"] = {"uri": uri}
        output[uri] = fields
        return reference

    def _link_value(self, owner: str, relation: str, link: Any, output: Flattened) -> Any:
        if isinstance(link, list):
            references = [
                {"href": self._uri(entry["href"])}
                for entry in link
                if isinstance(entry, Mapping) and isinstance(entry.get("href"), str)
            ]
            return self._virtual_collection(owner, relation, references, output)
        if isinstance(link, Mapping) and isinstance(link.get("href"), str):
            if link.get("templated") is True:
                return {"href": link["href"], "templated": True}
            return {"href": self._uri(link["href"])}
        return link

    def _embedded_list(
        self,
        owner: str,
        relation: str,
        values: list[Any],
        standalone_link: Any,
        output: Flattened,
    ) -> Any:
        items = []
        for value in values:
            nested = self._flatten_entity(value, output) if isinstance(value, Mapping) else None
            items.append(nested if nested is not None else value)

        if relation == self.items_key:
            return items

        if (
            isinstance(standalone_link, Mapping)
            and isinstance(standalone_link.get("href"), str)
            and not standalone_link.get("templated")
        ):
            collection_uri = self._uri(standalone_link["href"])
            output[collection_uri] = {self.items_key: items, "_meta": {"uri": collection_uri}}
            return {"href": collection_uri}

        return self._virtual_collection(owner, relation, items, output)

    def _virtual_collection(self, owner: str, relation: str, items: list[Any], output: Flattened) -> dict[str, Any]:
        uri = virtual_uri(owner, relation)
        output[uri] = {
            self.items_key: items,
            "_meta": {
                "uri": uri,
                "virtual": True,
                "owning_resource": owner,
                "owning_relation": relation,
            },
        }
        return {"href": uri, "virtual": True}


def _is_reference_only(entity: Mapping[str, Any]) -> bool:
    links = entity.get("_links") or {}
    return list(entity) == ["_links"] and list(links) == ["self"]


__all__ = ["HalNormalizer", "self_href", "virtual_uri", "ITEMS_KEY"]
