"""Barcode lookup: cache first, then providers in priority order."""

import logging
from typing import Callable, Optional

import requests

from foodlens.database.lookup_cache import LookupCache
from foodlens.errors import ProviderError

from .providers import default_providers

logger = logging.getLogger(__name__)


class ProductLookup:
    """Resolves a product code to a normalized record."""

    def __init__(self, cache: LookupCache,
                 providers: list[Callable[[str], Optional[dict]]] | None = None):
        self.cache = cache
        self.providers = default_providers() if providers is None else providers

    def lookup_upc(self, code, ttl_days: int | None = None,
                   bypass_cache: bool = False) -> Optional[dict]:
        """Return the normalized record for ``code``, or None.

        The first provider result that has a name is written back to
        the cache. A failing provider is skipped.
        """
        clean = str(code or "").strip()
        if not clean:
            return None

        if not bypass_cache:
            cached = self.cache.get(clean, ttl_days)
            if cached:
                return cached

        for provider in self.providers:
            name = getattr(provider, "name", repr(provider))
            try:
                info = provider(clean)
            except (ProviderError, requests.RequestException) as e:
                logger.info(f"Lookup provider {name} failed for {clean}: {e}")
                continue
            except Exception as e:
                logger.warning(
                    f"Lookup provider {name} raised "
                    f"{e.__class__.__name__} for {clean}: {e}"
                )
                continue
            if info and info.get("name"):
                self.cache.put(clean, info)
                return info

        return None
