"""Heuristic 0-100 performance estimates.

The scores are a proxy for real benchmarks: a component is matched against
an ordered table of name patterns for its category, and when nothing
matches, its price stands in for performance (``min(price / k, 100)``).
More specific patterns must come before the generic ones they contain
("4070 ti" before "4070").
"""
import math

from .config import DEFAULT_CONFIG

SCORING_REGION = "US"

GPU_TIERS = (
    (("5090",), 100),
    (("5080",), 85),
    (("5070 ti",), 75),
    (("5070",), 65),
    (("4090",), 95),
    (("4080",), 80),
    (("4070 ti",), 70),
    (("4070",), 60),
    (("7900 xtx",), 82),
    (("7800 xt",), 68),
)

CPU_TIERS = (
    (("9950x3d",), 98),
    (("9900x3d",), 92),
    (("i9-14900k", "i9-15900k"), 95),
    (("i7-14700k", "i7-15700k"), 85),
    (("ryzen 9",), 90),
    (("ryzen 7",), 80),
    (("i7",), 75),
    (("ryzen 5", "i5"), 65),
)

RAM_TIERS = (
    (("128gb",), 100),
    (("64gb",), 90),
    (("32gb",), 75),
    (("ddr5-9000",), 95),
    (("ddr5-8000",), 90),
    (("ddr5-7200",), 85),
    (("ddr5-6400",), 80),
    (("ddr5",), 70),
    (("ddr4",), 50),
)

STORAGE_TIERS = (
    (("pcie 5.0",), 95),
    (("4tb",), 90),
    (("2tb",), 75),
    (("nvme",), 70),
    (("ssd", "sata"), 50),
)

TIERS = {
    "gpu": GPU_TIERS,
    "cpu": CPU_TIERS,
    "ram": RAM_TIERS,
    "storage": STORAGE_TIERS,
}

# k in min(price / k, 100)
PRICE_DIVISORS = {
    "gpu": 50,
    "cpu": 10,
    "ram": 5,
    "storage": 5,
    "motherboard": 5,
    "psu": 5,
    "cooler": 5,
    "case": 5,
}


def _capacity_token(capacity_gb):
    if capacity_gb >= 1000:
        return f"{capacity_gb / 1000:g}tb"
    return f"{capacity_gb:g}gb"


def match_text(component):
    """Lowercased name, plus spec-derived tokens for RAM and storage.

    Spec tokens are appended after the name so that a RAM kit named
    without its capacity still matches the capacity tiers.
    """
    parts = [component.name.lower()]
    if component.category == "ram":
        capacity = component.spec_number("capacity_gb")
        if capacity:
            parts.append(_capacity_token(capacity))
        memory_type = component.spec("memory_type")
        if memory_type:
            memory_type = str(memory_type).lower().replace(" ", "")
            parts.append(memory_type)
            frequency = component.spec_number("frequency_mhz")
            if frequency:
                parts.append(f"{memory_type}-{frequency:g}")
    elif component.category == "storage":
        interface = component.spec("interface")
        if interface:
            parts.append(str(interface).lower())
        capacity = component.spec_number("capacity_gb")
        if capacity:
            parts.append(_capacity_token(capacity))
    return " ".join(parts)


def tier_score(component):
    """Score from the category's pattern table, or None when nothing matches."""
    table = TIERS.get(component.category)
    if not table:
        return None
    text = match_text(component)
    for needles, value in table:
        if any(needle in text for needle in needles):
            return float(value)
    return None


def price_score(component, region=SCORING_REGION):
    price = component.prices.get(region)
    if price is None:
        # Never-seen region: use the cheapest known price.
        price = min(component.prices.values()) if component.prices else 0.0
    return min(price / PRICE_DIVISORS[component.category], 100.0)


def score(component, region=SCORING_REGION) -> float:
    value = tier_score(component)
    if value is None:
        value = price_score(component, region)
    return max(0.0, min(value, 100.0))


def aggregate_score(build, region=SCORING_REGION, config=DEFAULT_CONFIG) -> float:
    total = 0.0
    for category, component in build.items():
        if component is not None:
            total += score(component, region) * config.category_weights[category]
    return total


def performance_score(build, region=SCORING_REGION, config=DEFAULT_CONFIG) -> int:
    """Aggregate score rounded half-up for display."""
    return int(math.floor(aggregate_score(build, region, config) + 0.5))
