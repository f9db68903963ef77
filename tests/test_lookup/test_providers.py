"""Tests for product providers and their normalizers."""

from unittest.mock import MagicMock

import pytest
import requests

from foodlens.errors import ProviderError
from foodlens.lookup.providers import (
    FoodDataCentralProvider,
    OpenFoodFactsProvider,
    UpcItemDbProvider,
    default_providers,
    normalize_from_fdc,
    normalize_from_off,
    normalize_from_upcitemdb,
)


def _response(status=200, body=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    resp.text = text
    resp.json.return_value = body
    return resp


@pytest.fixture
def http():
    return MagicMock(spec=requests.Session)


class TestNormalizeFromOff:
    def test_serving_values_win(self):
        record = normalize_from_off("123", {"product": {
            "product_name": " Peanut Butter ",
            "brands": "Skippy, Hormel",
            "serving_size": "32 G",
            "nutriments": {
                "energy-kcal_serving": 190, "energy-kcal_100g": 590,
                "proteins_100g": 22, "fat_serving": "16",
            },
        }})
        assert record["name"] == "Peanut Butter"
        assert record["brand"] == "Skippy"
        assert record["serving_qty"] == 32
        assert record["serving_unit"] == "g"
        assert record["nutrients"] == {
            "kcal": 190, "protein": 22, "carbs": None, "fat": 16,
        }

    def test_per_100g_fallback_unit(self):
        record = normalize_from_off("123", {"product": {
            "generic_name": "Yogurt",
            "nutriments": {"energy-kcal_100g": 60},
        }})
        assert record["name"] == "Yogurt"
        assert (record["serving_qty"], record["serving_unit"]) == (100, "g")

    def test_per_100ml_fallback_unit(self):
        record = normalize_from_off("123", {"product": {
            "nutriments": {"energy-kcal_100ml": 42},
        }})
        assert record["name"] == "Unknown item"
        assert record["serving_unit"] == "ml"

    def test_missing_product(self):
        assert normalize_from_off("123", {"status": 0}) is None


class TestNormalizeFromFdc:
    def test_label_nutrients(self):
        record = normalize_from_fdc("123", {
            "description": "GRANOLA",
            "brandOwner": "Acme",
            "servingSize": 55,
            "servingSizeUnit": "G",
            "labelNutrients": {
                "calories": {"value": 250}, "protein": {"value": 6},
                "carbohydrates": {"value": 34}, "fat": {"value": 10},
            },
        })
        assert record["name"] == "GRANOLA"
        assert record["brand"] == "Acme"
        assert record["serving_unit"] == "g"
        assert record["nutrients"]["kcal"] == 250

    def test_empty(self):
        assert normalize_from_fdc("123", None) is None


def test_normalize_from_upcitemdb():
    record = normalize_from_upcitemdb("123", {"title": "Soda", "brand": "Fizz"})
    assert record["name"] == "Soda"
    assert record["serving_unit"] == "unit"
    assert record["nutrients"] == {}


class TestOpenFoodFactsProvider:
    def test_found(self, http):
        http.get.return_value = _response(body={
            "status": 1, "product": {"product_name": "Crackers"},
        })
        provider = OpenFoodFactsProvider(http, timeout=3, app_name="App",
                                         app_email="a@b.c")
        assert provider("0001")["name"] == "Crackers"
        args, kwargs = http.get.call_args
        assert args[0].endswith("/product/0001")
        assert kwargs["headers"]["User-Agent"] == "App/1.0 (a@b.c)"
        assert kwargs["timeout"] == 3

    def test_not_found(self, http):
        http.get.return_value = _response(body={"status": 0})
        assert OpenFoodFactsProvider(http).fetch("0001") is None

    def test_http_error(self, http):
        http.get.return_value = _response(status=503)
        assert OpenFoodFactsProvider(http).fetch("0001") is None


class TestFoodDataCentralProvider:
    def test_without_key_skips_request(self, http):
        assert FoodDataCentralProvider(http, api_key="").fetch("1") is None
        http.get.assert_not_called()

    def test_search_hit_with_label_data(self, http):
        http.get.return_value = _response(body={"foods": [{
            "description": "BAR", "servingSize": 40,
            "labelNutrients": {"calories": {"value": 180}},
        }]})
        record = FoodDataCentralProvider(http, api_key="k").fetch("1")
        assert record["nutrients"]["kcal"] == 180
        assert http.get.call_count == 1

    def test_falls_back_to_detail(self, http):
        http.get.side_effect = [
            _response(body={"foods": [{"fdcId": 99, "description": "BAR"}]}),
            _response(body={"description": "BAR DETAIL", "servingSize": 40}),
        ]
        record = FoodDataCentralProvider(http, api_key="k").fetch("1")
        assert record["name"] == "BAR DETAIL"
        assert http.get.call_args_list[1][0][0].endswith("/food/99")

    def test_bare_label_values(self, http):
        http.get.return_value = _response(body={"foods": [{
            "description": "BAR", "servingSize": 40,
            "labelNutrients": {"calories": 120},
        }]})
        record = FoodDataCentralProvider(http, api_key="k")("1")
        assert record["nutrients"]["kcal"] == 120

    def test_unexpected_body_shape_is_provider_error(self, http):
        http.get.return_value = _response(body={"foods": "nope"})
        with pytest.raises(ProviderError, match="unexpected response"):
            FoodDataCentralProvider(http, api_key="k")("1")

    def test_no_foods(self, http):
        http.get.return_value = _response(body={"foods": []})
        assert FoodDataCentralProvider(http, api_key="k").fetch("1") is None


class TestUpcItemDbProvider:
    def test_found_on_trial_endpoint(self, http):
        http.get.return_value = _response(body={
            "code": "OK", "items": [{"title": "Soda"}],
        })
        assert UpcItemDbProvider(http, api_key="").fetch("1")["name"] == "Soda"
        args, kwargs = http.get.call_args
        assert "/trial/" in args[0]
        assert "user_key" not in kwargs["headers"]

    def test_key_uses_keyed_endpoint(self, http):
        http.get.return_value = _response(body={
            "code": "OK", "items": [{"title": "Soda"}],
        })
        UpcItemDbProvider(http, api_key="secret").fetch("1")
        args, kwargs = http.get.call_args
        assert args[0].endswith("/v1/lookup")
        assert kwargs["headers"]["user_key"] == "secret"

    def test_404_is_no_match(self, http):
        http.get.return_value = _response(status=404)
        assert UpcItemDbProvider(http).fetch("1") is None

    def test_other_errors_raise(self, http):
        http.get.return_value = _response(status=429, text="rate limited")
        with pytest.raises(ProviderError, match="429"):
            UpcItemDbProvider(http).fetch("1")

    def test_empty_items(self, http):
        http.get.return_value = _response(body={"code": "OK", "items": []})
        assert UpcItemDbProvider(http).fetch("1") is None


def test_default_provider_order(http):
    names = [p.name for p in default_providers(http)]
    assert names == ["openfoodfacts", "fdc", "upcitemdb"]
