"""Catalog snapshots and the providers that assemble them.

The allocator never talks to the database or the network: it receives one
read-only :class:`CatalogSnapshot` per request. Providers do all of the I/O
(ORM reads, optional live price lookups) before the snapshot is frozen.
"""
import logging
import math
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from itertools import repeat
from types import MappingProxyType
from typing import Iterable, Optional, Tuple

import requests
from django.conf import settings

from .components import Component
from .config import (
    AVAILABILITY_STATES,
    CATEGORIES,
    DEFAULT_REGION_MULTIPLIERS,
    REGION_CURRENCIES,
    REGIONS,
)

logger = logging.getLogger(__name__)


def _sort_key(region):
    return lambda c: (c.price_in(region), c.name, c.id)


class CatalogSnapshot(Mapping):
    """Read-only category -> candidates mapping for one region.

    Every category is present (possibly with no candidates); candidates
    without a price in the region are dropped and the rest are ordered by
    (price, name, id).
    """

    def __init__(self, region, candidates_by_category):
        self.region = region
        frozen = {}
        for category in CATEGORIES:
            candidates = [
                c
                for c in candidates_by_category.get(category, ())
                if c.category == category and c.has_price(region)
            ]
            frozen[category] = tuple(sorted(candidates, key=_sort_key(region)))
        self._by_category = MappingProxyType(frozen)

    def __getitem__(self, category) -> Tuple[Component, ...]:
        return self._by_category[category]

    def __iter__(self):
        return iter(self._by_category)

    def __len__(self):
        return len(self._by_category)

    def candidates(self, category) -> Tuple[Component, ...]:
        return self._by_category.get(category, ())

    def counts(self):
        return {category: len(c) for category, c in self._by_category.items()}


class CatalogProvider:
    """Source of candidate parts.

    Subclasses implement :meth:`list_candidates`; :meth:`snapshot` collects
    every category into a fresh, independent snapshot.
    """

    def list_candidates(self, category, region) -> Tuple[Component, ...]:
        raise NotImplementedError

    def snapshot(self, region) -> CatalogSnapshot:
        collected = {}
        for category in CATEGORIES:
            try:
                collected[category] = tuple(self.list_candidates(category, region))
            except Exception:
                # An unreadable category is treated as empty; the allocator
                # fills it with a fallback part.
                logger.exception("Failed to list %s candidates", category)
                collected[category] = ()
        snapshot = CatalogSnapshot(region, collected)
        logger.debug("Catalog snapshot for %s: %s", region, snapshot.counts())
        return snapshot


class StaticCatalogProvider(CatalogProvider):
    def __init__(self, components: Iterable[Component]):
        self._components = tuple(components)

    def list_candidates(self, category, region):
        return tuple(
            c
            for c in self._components
            if c.category == category and c.has_price(region)
        )


# --- Pricing ---
def load_region_rates():
    """Stored rates for the region currencies, as {currency: rate_to_usd}."""
    from calculator.models import CurrencyRate

    rates = {}
    qs = CurrencyRate.objects.filter(currency__in=set(REGION_CURRENCIES.values()))
    for r in qs:
        try:
            rate = float(r.rate_to_usd)
        except (TypeError, ValueError):
            continue
        if rate > 0:
            rates[str(r.currency).upper()] = rate
    return rates


def convert_from_usd(amount, region, rates=None) -> float:
    """Convert a USD amount into ``region``'s currency.

    ``rates`` maps currency code -> value of one unit in USD. Without a
    stored rate the default regional multiplier is used.
    """
    currency = REGION_CURRENCIES[region]
    if currency == "USD":
        return round(float(amount), 2)
    rate = (rates or {}).get(currency)
    if rate:
        return round(float(amount) / rate, 2)
    return round(float(amount) * DEFAULT_REGION_MULTIPLIERS[region], 2)


class PriceFeed:
    """Live price lookups against an HTTP price service.

    ``GET {base_url}/prices/{component_id}?region=XX`` is expected to return
    ``{"price": <number>, "availability": <state, optional>}``. Any failure
    leaves the stored price in place.
    """

    def __init__(self, base_url, timeout=5.0, max_workers=8):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_workers = max(1, int(max_workers))

    @classmethod
    def from_settings(cls) -> Optional["PriceFeed"]:
        url = getattr(settings, "PRICE_FEED_URL", "")
        if not url:
            return None
        return cls(
            url,
            timeout=getattr(settings, "PRICE_FEED_TIMEOUT", 5.0),
            max_workers=getattr(settings, "PRICE_FEED_WORKERS", 8),
        )

    def fetch(self, component, region):
        resp = requests.get(
            f"{self.base_url}/prices/{component.id}",
            params={"region": region},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def _refreshed(self, component, region):
        try:
            data = self.fetch(component, region)
            price = float(data["price"])
        except (requests.RequestException, ValueError, TypeError, KeyError) as exc:
            logger.warning(
                "Price lookup failed for %s (%s): %s", component.id, region, exc
            )
            return component
        if price < 0 or math.isnan(price):
            logger.warning("Ignoring invalid price for %s: %s", component.id, price)
            return component
        prices = dict(component.prices)
        prices[region] = price
        availability = data.get("availability")
        if availability not in AVAILABILITY_STATES:
            availability = component.availability
        return replace(component, prices=prices, availability=availability)

    def refresh(self, components, region):
        """Return ``components`` with live prices applied, in the same order."""
        components = list(components)
        if not components:
            return []
        workers = min(self.max_workers, len(components))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(self._refreshed, components, repeat(region)))


class DatabaseCatalogProvider(CatalogProvider):
    """Candidates read from the ``hardware`` models."""

    def __init__(self, price_feed=None):
        self.price_feed = price_feed

    @classmethod
    def from_settings(cls):
        return cls(price_feed=PriceFeed.from_settings())

    def to_component(self, row, rates=None) -> Optional[Component]:
        category = row.category
        usd = float(row.price) if row.price is not None else None
        stored = row.regional_prices or {}
        prices = {}
        for region in REGIONS:
            value = stored.get(region)
            if value not in (None, ""):
                try:
                    prices[region] = float(value)
                    continue
                except (TypeError, ValueError):
                    logger.debug("Bad %s price %r on %s", region, value, row)
            if usd is not None:
                prices[region] = convert_from_usd(usd, region, rates)
        if not prices:
            logger.debug("Skipping unpriced %s %s", category, row)
            return None
        availability = row.availability
        if availability not in AVAILABILITY_STATES:
            availability = "out-of-stock"
        return Component(
            id=row.slug or f"{category}-{row.pk}",
            name=row.name or row.slug or f"{category} #{row.pk}",
            brand=row.brand or "",
            category=category,
            prices=prices,
            availability=availability,
            specs=row.spec_bag(),
            description=row.description or "",
        )

    def list_candidates(self, category, region):
        from hardware.models import MODEL_BY_CATEGORY

        model = MODEL_BY_CATEGORY[category]
        rates = load_region_rates()
        components = []
        for row in model.objects.all():
            component = self.to_component(row, rates)
            if component is not None:
                components.append(component)
        if self.price_feed is not None:
            components = self.price_feed.refresh(components, region)
        return tuple(c for c in components if c.has_price(region))
