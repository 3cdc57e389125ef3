import math
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from .config import (
    AVAILABILITY_STATES,
    CATEGORIES,
    IN_STOCK,
    REGION_SYMBOLS,
)


@dataclass(frozen=True)
class Component:
    """Immutable catalog entry.

    ``prices`` maps a region code to the price in that region's currency.
    ``specs`` holds whatever typed specs are known; a missing key means the
    value is unknown, not zero.
    """

    id: str
    name: str
    brand: str
    category: str
    prices: Mapping[str, float]
    availability: str = IN_STOCK
    specs: Mapping[str, object] = field(default_factory=dict)
    description: str = ""
    fallback: bool = False

    def __post_init__(self):
        if self.category not in CATEGORIES:
            raise ValueError(f"Unknown category {self.category!r}")
        if self.availability not in AVAILABILITY_STATES:
            raise ValueError(f"Unknown availability {self.availability!r}")
        prices = {}
        for region, price in dict(self.prices).items():
            price = float(price)
            if price < 0 or math.isnan(price):
                raise ValueError(f"Invalid {region} price {price} for {self.name}")
            prices[region] = price
        object.__setattr__(self, "prices", MappingProxyType(prices))
        specs = {k: v for k, v in dict(self.specs).items() if v is not None}
        object.__setattr__(self, "specs", MappingProxyType(specs))

    def __hash__(self):
        return hash((self.category, self.id))

    def has_price(self, region):
        return region in self.prices

    def price_in(self, region):
        return self.prices[region]

    @property
    def in_stock(self):
        return self.availability == IN_STOCK

    def spec(self, key, default=None):
        return self.specs.get(key, default)

    def spec_number(self, key) -> Optional[float]:
        """Numeric spec value, or None when unknown or unparseable.

        Accepts strings such as ``"650W"`` or ``"320 mm"``.
        """
        value = self.specs.get(key)
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        m = re.search(r"\d+(?:\.\d+)?", str(value))
        return float(m.group(0)) if m else None

    def as_dict(self, region):
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "availability": self.availability,
            "specs": dict(self.specs),
            "description": self.description,
            "fallback": self.fallback,
            "price": self.prices.get(region),
        }


class BuildConfiguration:
    """One optional slot per category.

    The slot keys are fixed to ``CATEGORIES``: reading or assigning any
    other key raises ``KeyError``.
    """

    __slots__ = ("_slots",)

    def __init__(self, **components):
        self._slots = dict.fromkeys(CATEGORIES)
        for category, component in components.items():
            self[category] = component

    def _check(self, category):
        if category not in self._slots:
            raise KeyError(category)

    def __getitem__(self, category) -> Optional[Component]:
        self._check(category)
        return self._slots[category]

    def __setitem__(self, category, component):
        self._check(category)
        if component is not None and component.category != category:
            raise ValueError(
                f"{component.name} is a {component.category}, not a {category}"
            )
        self._slots[category] = component

    def __iter__(self):
        return iter(CATEGORIES)

    def __len__(self):
        return len(self._slots)

    def __eq__(self, other):
        if not isinstance(other, BuildConfiguration):
            return NotImplemented
        return self._slots == other._slots

    def __repr__(self):
        filled = ", ".join(
            f"{cat}={comp.name!r}" for cat, comp in self.items() if comp
        )
        return f"BuildConfiguration({filled})"

    def items(self):
        return [(category, self._slots[category]) for category in CATEGORIES]

    def filled(self) -> List[Component]:
        return [c for c in self._slots.values() if c is not None]

    def missing(self) -> List[str]:
        return [cat for cat in CATEGORIES if self._slots[cat] is None]

    def is_complete(self):
        return not self.missing()

    def copy(self):
        clone = BuildConfiguration()
        clone._slots.update(self._slots)
        return clone

    def total_price(self, region):
        return sum(c.price_in(region) for c in self.filled())


def format_price(amount, region):
    symbol = REGION_SYMBOLS.get(region, "")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


@dataclass
class OptimizedBuild:
    build: BuildConfiguration
    budget: float
    region: str
    total_cost: float
    budget_utilization: float
    is_complete: bool
    compatibility_issues: List[str] = field(default_factory=list)
    optimization_notes: List[str] = field(default_factory=list)
    performance_score: int = 0
    fallback_categories: List[str] = field(default_factory=list)

    @property
    def remaining_budget(self):
        return self.budget - self.total_cost

    def as_dict(self) -> Dict[str, object]:
        return {
            "budget": self.budget,
            "region": self.region,
            "components": {
                category: (
                    component.as_dict(self.region) if component else None
                )
                for category, component in self.build.items()
            },
            "total_cost": round(self.total_cost, 2),
            "remaining_budget": round(self.remaining_budget, 2),
            "budget_utilization": round(self.budget_utilization, 1),
            "is_complete": self.is_complete,
            "compatibility_issues": list(self.compatibility_issues),
            "optimization_notes": list(self.optimization_notes),
            "performance_score": self.performance_score,
            "fallback_categories": list(self.fallback_categories),
        }
