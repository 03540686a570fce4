import pytest

from hal_cache.uri_normalizer import add_query, normalize_entity_uri, normalize_uri, sort_query_params


@pytest.mark.parametrize(
    "uri, expected",
    [
        ("/camps/?e[]=abc&a[]=123&a=test", "/camps/?a=test&a%5B%5D=123&e%5B%5D=abc"),
        ("/camps?page=1&abc=123&page=0", "/camps?abc=123&page=1&page=0"),
        ("/books?q=something&dup=true&alpha=0&dup=false", "/books?alpha=0&dup=true&dup=false&q=something"),
        ("/?", "/"),
        ("?", ""),
        ("/camps/1", "/camps/1"),
        ("", ""),
    ],
)
def test_normalize_uri_sorts_query_parameters(uri, expected):
    assert normalize_uri(uri) == expected


def test_normalize_uri_is_idempotent():
    once = normalize_uri("/camps?page=1&abc=a b&page=0")
    assert normalize_uri(once) == once


def test_normalize_uri_ignores_query_order():
    assert normalize_uri("/camps?b=2&a=1") == normalize_uri("/camps?a=1&b=2")


def test_normalize_uri_keeps_fragment_of_embedded_collections():
    assert normalize_uri("/periods?camp=1&a=2#days") == "/periods?a=2&camp=1#days"


@pytest.mark.parametrize(
    "base_url, uri, expected",
    [
        ("/api", "/api/activities", "/activities"),
        ("http://localhost:3000", "http://localhost:3000/api/activities", "/api/activities"),
        ("http://localhost:3000/api/", "/api/activities", "/activities"),
        ("http://localhost:3000/api/", "http://localhost:3000/print/activities", "http://localhost:3000/print/activities"),
        (None, "/api/activities", "/api/activities"),
        ("", "http://localhost:3000/api/activities", "http://localhost:3000/api/activities"),
    ],
)
def test_normalize_uri_strips_base_url(base_url, uri, expected):
    assert normalize_uri(uri, base_url) == expected


def test_normalize_uri_rejects_non_strings():
    assert normalize_uri(None) is None
    assert normalize_uri(["/camps"]) is None


def test_sort_query_params_without_query():
    assert sort_query_params("/camps/1") == "/camps/1"


class _View:
    class meta:
        uri = "/camps/1?b=1&a=2"


def test_normalize_entity_uri_accepts_views_references_and_payloads():
    assert normalize_entity_uri(_View()) == "/camps/1?a=2&b=1"
    assert normalize_entity_uri({"href": "/api/camps/1"}, "/api") == "/camps/1"
    assert normalize_entity_uri({"_meta": {"self": "/camps/2"}}) == "/camps/2"
    assert normalize_entity_uri() == ""


def test_normalize_entity_uri_returns_none_for_unknown_input():
    assert normalize_entity_uri(42) is None
    assert normalize_entity_uri({"title": "no link"}) is None


def test_add_query_appends_parameters():
    assert add_query("/books", {"page": 2}) == "/books?page=2"
    assert add_query("/books?q=x", {"page": 2}) == "/books?q=x&page=2"


def test_add_query_repeats_list_values_and_renders_booleans():
    assert add_query("/books", {"tag": ["a", "b"], "active": True}) == "/books?tag=a&tag=b&active=true"


def test_add_query_without_parameters_returns_uri_unchanged():
    assert add_query("/books?q=x", {}) == "/books?q=x"
    assert add_query("/books", None) == "/books"
