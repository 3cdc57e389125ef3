from decimal import Decimal

from django.db import models

AVAILABILITY_CHOICES = [
    ("in-stock", "In stock"),
    ("limited", "Limited"),
    ("out-of-stock", "Out of stock"),
]


class Part(models.Model):
    """Columns shared by every catalog category.

    ``price`` is the USD list price. ``regional_prices`` maps a region code
    (US, CA, UK, DE, AU) to a price in that region's currency; regions
    missing from the map are derived from ``price`` by the catalog provider.
    """

    category = None
    # model field -> key in the allocator's spec bag
    spec_fields = {}

    brand = models.CharField(max_length=100, blank=True, null=True)
    name = models.CharField(max_length=200, blank=True, null=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)
    regional_prices = models.JSONField(default=dict, blank=True)
    availability = models.CharField(
        max_length=20, choices=AVAILABILITY_CHOICES, default="in-stock"
    )
    description = models.CharField(max_length=300, blank=True, null=True)
    slug = models.SlugField(max_length=200, unique=True, blank=True, null=True)

    class Meta:
        abstract = True
        ordering = ["price", "name"]

    def __str__(self):
        return self.name or self.slug or f"{self.__class__.__name__} #{self.pk}"

    def spec_bag(self):
        """Typed specs with unknown (null) fields left out."""
        specs = {}
        for field, key in self.spec_fields.items():
            value = getattr(self, field, None)
            if value is None or value == "":
                continue
            if isinstance(value, Decimal):
                value = float(value)
            specs[key] = value
        return specs


class CPU(Part):
    category = "cpu"
    spec_fields = {
        "socket": "socket",
        "tdp": "power_draw",
        "core_count": "core_count",
        "boost_clock": "boost_clock",
    }

    socket = models.CharField(max_length=50, blank=True, null=True)
    tdp = models.IntegerField(blank=True, null=True)
    core_count = models.IntegerField(blank=True, null=True)
    boost_clock = models.DecimalField(max_digits=8, decimal_places=2, blank=True, null=True)


class GPU(Part):
    category = "gpu"
    spec_fields = {
        "tdp": "power_draw",
        "board_length": "length_mm",
        "memory_size_gb": "memory_size_gb",
    }

    tdp = models.IntegerField(blank=True, null=True)
    board_length = models.DecimalField(max_digits=6, decimal_places=2, blank=True, null=True)
    memory_size_gb = models.IntegerField(blank=True, null=True)


class Motherboard(Part):
    category = "motherboard"
    spec_fields = {
        "socket": "socket",
        "ddr_version": "memory_type",
        "form_factor": "form_factor",
    }

    socket = models.CharField(max_length=50, blank=True, null=True)
    ddr_version = models.CharField(max_length=10, blank=True, null=True)
    form_factor = models.CharField(max_length=50, blank=True, null=True)


class RAM(Part):
    category = "ram"
    spec_fields = {
        "ddr_generation": "memory_type",
        "capacity_gb": "capacity_gb",
        "frequency_mhz": "frequency_mhz",
    }

    ddr_generation = models.CharField(max_length=10, blank=True, null=True)
    capacity_gb = models.IntegerField(blank=True, null=True)
    frequency_mhz = models.IntegerField(blank=True, null=True)


class Storage(Part):
    category = "storage"
    spec_fields = {
        "capacity": "capacity_gb",
        "interface": "interface",
    }

    capacity = models.IntegerField(blank=True, null=True)
    interface = models.CharField(max_length=100, blank=True, null=True)


class PSU(Part):
    category = "psu"
    spec_fields = {
        "wattage": "wattage",
        "efficiency": "efficiency",
    }

    wattage = models.IntegerField(blank=True, null=True)
    efficiency = models.CharField(max_length=100, blank=True, null=True)


class CPUCooler(Part):
    category = "cooler"
    spec_fields = {
        "cooler_type": "cooler_type",
        "height": "height_mm",
    }

    cooler_type = models.CharField(max_length=20, blank=True, null=True)
    height = models.DecimalField(max_digits=6, decimal_places=1, blank=True, null=True)


class Case(Part):
    category = "case"
    spec_fields = {
        "case_type": "form_factor",
        "gpu_clearance": "gpu_clearance_mm",
        "cooler_clearance": "cooler_clearance_mm",
    }

    case_type = models.CharField(max_length=100, blank=True, null=True)
    gpu_clearance = models.DecimalField(max_digits=6, decimal_places=1, blank=True, null=True)
    cooler_clearance = models.DecimalField(max_digits=6, decimal_places=1, blank=True, null=True)


MODEL_BY_CATEGORY = {
    "cpu": CPU,
    "gpu": GPU,
    "motherboard": Motherboard,
    "ram": RAM,
    "storage": Storage,
    "psu": PSU,
    "cooler": CPUCooler,
    "case": Case,
}
