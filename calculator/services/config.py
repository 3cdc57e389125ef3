"""Fixed allocator configuration.

Every tunable number the allocator uses lives on :class:`AllocatorConfig`.
The penalty amounts and repair price multipliers are empirical.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

CATEGORIES = (
    "cpu",
    "gpu",
    "motherboard",
    "ram",
    "storage",
    "psu",
    "cooler",
    "case",
)

REGIONS = ("US", "CA", "UK", "DE", "AU")

REGION_CURRENCIES = {
    "US": "USD",
    "CA": "CAD",
    "UK": "GBP",
    "DE": "EUR",
    "AU": "AUD",
}

REGION_SYMBOLS = {
    "US": "$",
    "CA": "CA$",
    "UK": "£",
    "DE": "€",
    "AU": "A$",
}

# Used when no CurrencyRate row exists for a region's currency.
DEFAULT_REGION_MULTIPLIERS = {
    "US": 1.0,
    "CA": 1.35,
    "UK": 0.8,
    "DE": 0.9,
    "AU": 1.5,
}

IN_STOCK = "in-stock"
LIMITED = "limited"
OUT_OF_STOCK = "out-of-stock"
AVAILABILITY_STATES = (IN_STOCK, LIMITED, OUT_OF_STOCK)


def _frozen(mapping):
    return field(default_factory=lambda: MappingProxyType(dict(mapping)))


@dataclass(frozen=True)
class AllocatorConfig:
    # Non-GPU essentials first; the GPU absorbs what is left.
    greedy_order: Tuple[str, ...] = (
        "cpu",
        "motherboard",
        "ram",
        "storage",
        "psu",
        "cooler",
        "case",
        "gpu",
    )
    upgrade_order: Tuple[str, ...] = ("gpu", "cpu", "ram", "storage")

    category_weights: Mapping[str, float] = _frozen(
        {
            "gpu": 0.45,
            "cpu": 0.25,
            "ram": 0.10,
            "storage": 0.08,
            "motherboard": 0.05,
            "psu": 0.03,
            "cooler": 0.02,
            "case": 0.02,
        }
    )

    # Compatibility penalties, subtracted from 100.
    socket_penalty: float = 50
    memory_penalty: float = 30
    power_penalty: float = 40
    clearance_penalty: float = 30

    # PSU wattage / estimated draw ratios.
    psu_headroom: float = 1.2
    psu_repair_headroom: float = 1.3

    # Replacement price ceilings, as a multiple of the placed part's price.
    socket_repair_price_ratio: float = 1.2
    memory_repair_price_ratio: float = 1.2
    power_repair_price_ratio: float = 1.5
    clearance_repair_price_ratio: float = 1.5

    # Estimated system draw, watts.
    base_system_draw: float = 100
    default_cpu_draw: float = 65
    default_gpu_draw: float = 150
    ram_draw: float = 10
    storage_draw: float = 5

    upgrade_performance_weight: float = 0.5
    upgrade_value_weight: float = 0.3
    upgrade_value_scale: float = 1000
    upgrade_compatibility_weight: float = 0.2
    max_upgrade_passes: int = 8
    # Best-ranked candidates per category whose outcome is simulated.
    upgrade_lookahead_width: int = 8
    min_upgrade_budget: float = 0

    fallback_prices: Mapping[str, float] = _frozen(
        {
            "cpu": 80,
            "gpu": 100,
            "motherboard": 50,
            "ram": 35,
            "storage": 30,
            "psu": 40,
            "cooler": 15,
            "case": 30,
        }
    )
    fallback_region_multipliers: Mapping[str, float] = _frozen(
        {"US": 1.0, "CA": 1.25, "UK": 1.15, "DE": 1.1, "AU": 1.35}
    )
    fallback_psu_wattage: int = 500
    fallback_psu_step: int = 50


DEFAULT_CONFIG = AllocatorConfig()
