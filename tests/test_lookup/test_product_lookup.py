"""Tests for cache-first product lookup."""

from unittest.mock import MagicMock

import requests

from foodlens.database.lookup_cache import LookupCache
from foodlens.errors import ProviderError
from foodlens.lookup.product_lookup import ProductLookup
from foodlens.lookup.providers import FoodDataCentralProvider


class StubProvider:
    def __init__(self, name, result=None, error=None):
        self.name = name
        self.result = result
        self.error = error
        self.calls = []

    def __call__(self, upc):
        self.calls.append(upc)
        if self.error:
            raise self.error
        return self.result


def _record(name="Crackers"):
    return {"upc": "123", "name": name, "brand": "", "nutrients": {}}


class TestLookupUpc:
    def test_blank_code(self, db):
        lookup = ProductLookup(LookupCache(db), providers=[])
        assert lookup.lookup_upc("  ") is None
        assert lookup.lookup_upc(None) is None

    def test_first_named_result_is_cached(self, db):
        cache = LookupCache(db, ttl_days=30)
        nameless = StubProvider("a", {"upc": "123", "name": ""})
        hit = StubProvider("b", _record())
        never = StubProvider("c", _record("Other"))
        lookup = ProductLookup(cache, providers=[nameless, hit, never])

        assert lookup.lookup_upc(" 123 ")["name"] == "Crackers"
        assert never.calls == []
        assert cache.get("123")["name"] == "Crackers"

    def test_cache_hit_skips_providers(self, db):
        cache = LookupCache(db, ttl_days=30)
        cache.put("123", _record("Cached"))
        provider = StubProvider("a", _record("Fresh"))
        lookup = ProductLookup(cache, providers=[provider])

        assert lookup.lookup_upc("123")["name"] == "Cached"
        assert provider.calls == []

    def test_bypass_cache(self, db):
        cache = LookupCache(db, ttl_days=30)
        cache.put("123", _record("Cached"))
        lookup = ProductLookup(cache, providers=[StubProvider("a", _record("Fresh"))])

        assert lookup.lookup_upc("123", bypass_cache=True)["name"] == "Fresh"
        assert cache.get("123")["name"] == "Fresh"

    def test_failing_providers_are_skipped(self, db):
        lookup = ProductLookup(LookupCache(db), providers=[
            StubProvider("a", error=ProviderError("quota")),
            StubProvider("b", error=requests.Timeout()),
            StubProvider("c", _record()),
        ])
        assert lookup.lookup_upc("123")["name"] == "Crackers"

    def test_no_match(self, db):
        cache = LookupCache(db)
        lookup = ProductLookup(cache, providers=[StubProvider("a")])
        assert lookup.lookup_upc("123") is None
        assert cache.get_entry("123") is None

    def test_malformed_provider_payload_falls_through(self, db):
        http = MagicMock(spec=requests.Session)
        body = MagicMock(ok=True, status_code=200)
        body.json.return_value = ["not", "an", "object"]
        http.get.return_value = body
        fallback = StubProvider("fallback", _record("From fallback"))
        lookup = ProductLookup(LookupCache(db), providers=[
            FoodDataCentralProvider(http, api_key="k"),
            fallback,
        ])

        assert lookup.lookup_upc("012")["name"] == "From fallback"
        assert fallback.calls == ["012"]

    def test_unexpected_error_in_plain_provider_is_skipped(self, db):
        def broken(upc):
            raise TypeError("bad provider")

        lookup = ProductLookup(LookupCache(db), providers=[
            broken, StubProvider("b", _record()),
        ])
        assert lookup.lookup_upc("123")["name"] == "Crackers"
