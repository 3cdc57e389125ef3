"""Component factories shared by the test modules."""
from django.utils.text import slugify

from .services.components import Component


def part(category, name, price, availability="in-stock", region="US", **specs):
    """Build a Component priced in a single region."""
    return Component(
        id=slugify(f"{category} {name}"),
        name=name,
        brand="Test",
        category=category,
        prices={region: price},
        availability=availability,
        specs=specs,
    )


def standard_catalog():
    """A small, fully compatible AM5 catalog priced in US dollars."""
    return [
        part("cpu", "Ryzen 5 7600", 200, socket="AM5", power_draw=65),
        part("cpu", "Ryzen 7 7700X", 330, socket="AM5", power_draw=105),
        part("motherboard", "B650 Board", 150, socket="AM5", memory_type="DDR5"),
        part("ram", "DDR5 Kit 16GB", 60, memory_type="DDR5", capacity_gb=16),
        part("storage", "NVMe 1TB", 70, interface="NVMe", capacity_gb=1000),
        part("psu", "650W PSU", 70, wattage=650),
        part("cooler", "Air Cooler", 30, cooler_type="Air"),
        part("case", "Mid Tower", 80, gpu_clearance_mm=380),
        part("gpu", "RTX 4060", 300, power_draw=115, length_mm=240),
        part("gpu", "RTX 4070", 550, power_draw=200, length_mm=300),
    ]


def replace_category(components, category, *replacements):
    """``components`` with every ``category`` part swapped for ``replacements``."""
    return [c for c in components if c.category != category] + list(replacements)
