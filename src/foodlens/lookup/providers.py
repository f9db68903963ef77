"""External product data providers and their normalizers.

Every provider turns a barcode into the same normalized record::

    {"upc", "name", "brand", "serving_qty", "serving_unit",
     "nutrients": {"kcal", "protein", "carbs", "fat"}}

``fetch`` returns None when the provider has no match.
"""

import logging
import re
from typing import Optional
from urllib.parse import quote

import requests

from foodlens.config import Config
from foodlens.errors import ProviderError

logger = logging.getLogger(__name__)

OFF_PRODUCT_URL = "https://world.openfoodfacts.org/api/v2/product/{upc}"
OFF_FIELDS = (
    "product_name,brands,brand_owner,generic_name,serving_size,nutriments"
)
FDC_SEARCH_URL = "https://api.nal.usda.gov/fdc/v1/foods/search"
FDC_FOOD_URL = "https://api.nal.usda.gov/fdc/v1/food/{fdc_id}"
UPCITEMDB_TRIAL_URL = "https://api.upcitemdb.com/prod/trial/lookup"
UPCITEMDB_KEYED_URL = "https://api.upcitemdb.com/prod/v1/lookup"

_SERVING_SIZE_RE = re.compile(r"([\d.]+)\s*([a-zA-Z]+)")


def _num(value) -> Optional[float]:
    """Numeric value or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    if n != n or n in (float("inf"), float("-inf")):
        return None
    return n


def _first(*values):
    for v in values:
        if v is not None:
            return v
    return None


def _json_or_none(response):
    try:
        return response.json()
    except ValueError:
        return None


# ── Normalizers ─────────────────────────────────────────────────

def normalize_from_off(upc: str, payload: dict) -> Optional[dict]:
    """OpenFoodFacts product → normalized record.

    Per-serving nutrients win over per-100g values.
    """
    p = (payload or {}).get("product")
    if not p:
        return None

    name = (
        (p.get("product_name") or "").strip()
        or (p.get("generic_name") or "").strip()
        or "Unknown item"
    )
    brand = str(p.get("brands") or p.get("brand_owner") or "").split(",")[0].strip()

    n = p.get("nutriments") or {}
    kcal = _first(_num(n.get("energy-kcal_serving")), _num(n.get("energy-kcal_100g")))
    protein = _first(_num(n.get("proteins_serving")), _num(n.get("proteins_100g")))
    carbs = _first(
        _num(n.get("carbohydrates_serving")), _num(n.get("carbohydrates_100g"))
    )
    fat = _first(_num(n.get("fat_serving")), _num(n.get("fat_100g")))

    serving_qty = 1
    serving_unit = "serving"
    if p.get("serving_size"):
        m = _SERVING_SIZE_RE.search(str(p["serving_size"]))
        if m:
            serving_qty = _num(m.group(1)) or 1
            serving_unit = m.group(2).lower()
    elif n.get("energy-kcal_100g") is not None:
        serving_qty, serving_unit = 100, "g"
    elif n.get("energy-kcal_100ml") is not None:
        serving_qty, serving_unit = 100, "ml"

    return {
        "upc": upc,
        "name": name,
        "brand": brand,
        "serving_qty": serving_qty,
        "serving_unit": serving_unit,
        "nutrients": {"kcal": kcal, "protein": protein, "carbs": carbs, "fat": fat},
    }


def normalize_from_fdc(upc: str, food: dict) -> Optional[dict]:
    """USDA FoodData Central branded food → normalized record."""
    if not food:
        return None
    name = (
        food.get("description") or food.get("brandName")
        or food.get("brandOwner") or "Unknown item"
    )
    brand = food.get("brandName") or food.get("brandOwner") or ""

    ln = food.get("labelNutrients") or {}

    def label(key):
        entry = ln.get(key)
        if isinstance(entry, dict):
            return _num(entry.get("value"))
        return _num(entry)

    return {
        "upc": upc,
        "name": name,
        "brand": brand,
        "serving_qty": _num(food.get("servingSize")) or 1,
        "serving_unit": (food.get("servingSizeUnit") or "serving").lower(),
        "nutrients": {
            "kcal": label("calories"),
            "protein": label("protein"),
            "carbs": label("carbohydrates"),
            "fat": label("fat"),
        },
    }


def normalize_from_upcitemdb(upc: str, item: dict) -> Optional[dict]:
    """UPCItemDB item → normalized record (no nutrient data)."""
    if not item:
        return None
    return {
        "upc": upc,
        "name": item.get("title") or item.get("description") or "Unknown item",
        "brand": item.get("brand") or item.get("manufacturer") or "",
        "serving_qty": 1,
        "serving_unit": "unit",
        "nutrients": {},
    }


# ── Providers ───────────────────────────────────────────────────

class _HttpProvider:
    name = "provider"

    def __init__(self, session: requests.Session | None = None,
                 timeout: int | None = None):
        self.session = session or requests.Session()
        self.timeout = Config.HTTP_TIMEOUT if timeout is None else timeout

    def __call__(self, upc: str) -> Optional[dict]:
        try:
            return self.fetch(upc)
        except (AttributeError, KeyError, IndexError, TypeError) as e:
            # A 200 response whose body does not have the expected shape
            raise ProviderError(f"{self.name}: unexpected response ({e})") from e

    def fetch(self, upc: str) -> Optional[dict]:
        raise NotImplementedError


class OpenFoodFactsProvider(_HttpProvider):
    name = "openfoodfacts"

    def __init__(self, session=None, timeout=None,
                 app_name: str | None = None, app_email: str | None = None):
        super().__init__(session, timeout)
        self.app_name = app_name or Config.APP_NAME
        self.app_email = app_email or Config.APP_EMAIL

    @property
    def user_agent(self) -> str:
        return f"{self.app_name}/1.0 ({self.app_email})"

    def fetch(self, upc: str) -> Optional[dict]:
        response = self.session.get(
            OFF_PRODUCT_URL.format(upc=quote(upc, safe="")),
            params={"fields": OFF_FIELDS},
            headers={"User-Agent": self.user_agent, "Accept": "application/json"},
            timeout=self.timeout,
        )
        if not response.ok:
            return None
        data = _json_or_none(response)
        if not data or data.get("status") != 1:
            return None
        return normalize_from_off(upc, data)


class FoodDataCentralProvider(_HttpProvider):
    name = "fdc"

    def __init__(self, session=None, timeout=None, api_key: str | None = None):
        super().__init__(session, timeout)
        self.api_key = Config.FDC_API_KEY if api_key is None else api_key

    def fetch(self, upc: str) -> Optional[dict]:
        if not self.api_key:
            return None
        response = self.session.get(
            FDC_SEARCH_URL,
            params={
                "api_key": self.api_key,
                "query": upc,
                "dataType": "Branded",
                "pageSize": 1,
            },
            timeout=self.timeout,
        )
        if not response.ok:
            return None
        data = _json_or_none(response) or {}
        foods = data.get("foods") or []
        if not foods:
            return None
        food = foods[0]

        # The search hit is enough when it already carries label data
        if food.get("labelNutrients") and food.get("servingSize"):
            return normalize_from_fdc(upc, food)

        fdc_id = food.get("fdcId")
        if not fdc_id:
            return None
        detail = self.session.get(
            FDC_FOOD_URL.format(fdc_id=fdc_id),
            params={"api_key": self.api_key},
            timeout=self.timeout,
        )
        if not detail.ok:
            return None
        return normalize_from_fdc(upc, _json_or_none(detail))


class UpcItemDbProvider(_HttpProvider):
    name = "upcitemdb"

    def __init__(self, session=None, timeout=None, api_key: str | None = None):
        super().__init__(session, timeout)
        self.api_key = Config.UPCITEMDB_API_KEY if api_key is None else api_key

    def fetch(self, upc: str) -> Optional[dict]:
        # Without a key the rate-limited trial endpoint is used
        headers = {"Accept": "application/json"}
        url = UPCITEMDB_TRIAL_URL
        if self.api_key:
            url = UPCITEMDB_KEYED_URL
            headers.update({"user_key": self.api_key, "key_type": "3scale"})
        response = self.session.get(
            url,
            params={"upc": upc},
            headers=headers,
            timeout=self.timeout,
        )
        if not response.ok:
            if response.status_code == 404:
                return None
            raise ProviderError(
                f"UPCItemDB {response.status_code}: "
                f"{response.text or 'request failed'}"
            )
        data = _json_or_none(response)
        if (
            not data
            or data.get("code") != "OK"
            or not isinstance(data.get("items"), list)
            or not data["items"]
        ):
            return None
        return normalize_from_upcitemdb(upc, data["items"][0])


def default_providers(session: requests.Session | None = None) -> list:
    """Providers in priority order: OpenFoodFacts, FDC, UPCItemDB."""
    session = session or requests.Session()
    return [
        OpenFoodFactsProvider(session),
        FoodDataCentralProvider(session),
        UpcItemDbProvider(session),
    ]
