import csv
import logging
import re

from django.apps import apps
from django.core.management.base import BaseCommand, CommandError
from django.utils.text import slugify

from hardware.models import AVAILABILITY_CHOICES, MODEL_BY_CATEGORY

logger = logging.getLogger(__name__)

COMMON_ALIASES = {
    "Brand": "brand",
    "Name": "name",
    "Price": "price",
    "Slug": "slug",
    "Availability": "availability",
    "Stock": "availability",
    "Description": "description",
}

MODEL_ALIASES = {
    "CPU": {
        "Socket": "socket",
        "TDP": "tdp",
        "Cores": "core_count",
        "CoreCount": "core_count",
        "BoostClock": "boost_clock",
    },
    "GPU": {
        "GpuName": "name",
        "TDP": "tdp",
        "BoardLength": "board_length",
        "Length": "board_length",
        "MemorySizeGB": "memory_size_gb",
    },
    "Motherboard": {
        "Socket": "socket",
        "DDR": "ddr_version",
        "MemoryType": "ddr_version",
        "FormFactor": "form_factor",
    },
    "RAM": {
        "DDR": "ddr_generation",
        "MemoryType": "ddr_generation",
        "Capacity": "capacity_gb",
        "CapacityGB": "capacity_gb",
        "Speed": "frequency_mhz",
        "Frequency": "frequency_mhz",
    },
    "Storage": {
        "Capacity": "capacity",
        "CapacityGB": "capacity",
        "Interface": "interface",
    },
    "PSU": {
        "Wattage": "wattage",
        "Efficiency": "efficiency",
    },
    "CPUCooler": {
        "Type": "cooler_type",
        "Height": "height",
    },
    "Case": {
        "Type": "case_type",
        "GpuClearance": "gpu_clearance",
        "MaxGpuLength": "gpu_clearance",
        "CoolerClearance": "cooler_clearance",
    },
}

NUMERIC_FIELDS = {
    "price": float,
    "tdp": int,
    "core_count": int,
    "boost_clock": float,
    "board_length": float,
    "memory_size_gb": int,
    "capacity_gb": int,
    "frequency_mhz": int,
    "capacity": int,
    "wattage": int,
    "height": float,
    "gpu_clearance": float,
    "cooler_clearance": float,
}

# price_ca, price_uk, ... -> regional_prices["CA"], ...
REGIONAL_PRICE_COLUMN = re.compile(r"^price[_ ](us|ca|uk|de|au)$", re.IGNORECASE)

AVAILABILITY_VALUES = {value for value, _ in AVAILABILITY_CHOICES}


def clean_number(value: str) -> str:
    if value is None:
        return ""
    s = str(value).strip().replace(",", "")
    m = re.search(r"[-+]?\d*\.?\d+", s)
    return m.group(0) if m else ""


def cast_number(field: str, value: str):
    if value in ("", None):
        return None
    raw = clean_number(value)
    if raw == "":
        return None
    caster = NUMERIC_FIELDS.get(field, float)
    try:
        return caster(float(raw)) if caster is int else caster(raw)
    except (TypeError, ValueError):
        return None


def normalize_availability(value):
    """'In Stock', 'in_stock' and 'IN-STOCK' all become 'in-stock'."""
    s = re.sub(r"[\s_]+", "-", str(value).strip().lower())
    return s if s in AVAILABILITY_VALUES else None


def normalize_value(field, value):
    if value is None:
        return None
    value = str(value).strip()
    if value in ("", "N/A"):
        return None
    if field in NUMERIC_FIELDS:
        return cast_number(field, value)
    if field == "availability":
        return normalize_availability(value)
    return value


def ensure_slug(model_name: str, data: dict) -> None:
    if "slug" in data and data["slug"]:
        return
    base = data.get("name")
    if base:
        brand = data.get("brand")
        if brand and not base.lower().startswith(brand.lower()):
            base = f"{brand} {base}"
        data["slug"] = slugify(f"{model_name} {base}")


def has_price(data: dict) -> bool:
    price = data.get("price")
    try:
        return price is not None and float(price) > 0
    except (TypeError, ValueError):
        return False


def resolve_model(name):
    """Accept either a model name ('CPUCooler') or a category ('cooler')."""
    model = MODEL_BY_CATEGORY.get(name.lower())
    if model is not None:
        return model
    try:
        return apps.get_model("hardware", name)
    except LookupError:
        return None


def normalize_row(row, aliases, valid_fields):
    data = {}
    regional = {}
    for k, v in row.items():
        if k is None:
            continue
        m = REGIONAL_PRICE_COLUMN.match(k.strip())
        if m:
            price = cast_number("price", v)
            if price is not None and price >= 0:
                regional[m.group(1).upper()] = price
            continue
        field = aliases.get(k, COMMON_ALIASES.get(k, k)).lower()
        if field in valid_fields:
            val = normalize_value(field, v)
            if val is not None:
                data[field] = val
    if regional:
        data["regional_prices"] = regional
    return data


class Command(BaseCommand):
    help = "CSV importer for the hardware catalog models"

    def add_arguments(self, parser):
        parser.add_argument("--model", required=True, help="Model name or category")
        parser.add_argument("--csv", required=True)
        parser.add_argument("--dry-run", action="store_true")
        parser.add_argument("--require-price", action="store_true")

    def handle(self, *args, **options):
        csv_path = options["csv"]
        dry_run = options["dry_run"]
        require_price = options["require_price"]

        Model = resolve_model(options["model"])
        if Model is None or Model not in MODEL_BY_CATEGORY.values():
            raise CommandError(f"Model {options['model']} not found")
        model_name = Model.__name__

        aliases = MODEL_ALIASES.get(model_name, {})
        valid_fields = {f.name for f in Model._meta.get_fields()}

        count = created = updated = skipped = 0

        try:
            f = open(csv_path, newline="", encoding="utf-8")
        except OSError as exc:
            raise CommandError(f"Cannot read {csv_path}: {exc}")

        with f:
            reader = csv.DictReader(f)
            for row_idx, row in enumerate(reader, start=1):
                data = normalize_row(row, aliases, valid_fields)
                ensure_slug(model_name, data)

                if require_price and not has_price(data):
                    skipped += 1
                    self.stdout.write(
                        f"Row {row_idx} skipped: missing/zero price"
                    )
                    continue

                if not data.get("slug"):
                    skipped += 1
                    self.stdout.write(
                        f"Row {row_idx} skipped: missing name/slug"
                    )
                    continue

                if dry_run:
                    self.stdout.write(
                        f"[DRY-RUN] Row {row_idx} normalized: {data}"
                    )
                else:
                    slug = data.pop("slug")
                    _, created_flag = Model.objects.update_or_create(
                        slug=slug, defaults=data
                    )
                    if created_flag:
                        created += 1
                    else:
                        updated += 1
                count += 1

        summary = (
            "Processed {} rows for {}: {} created, {} updated, {} skipped"
            .format(count, model_name, created, updated, skipped)
        )
        logger.info(summary)
        if dry_run:
            self.stdout.write(self.style.WARNING("[DRY-RUN] " + summary))
        else:
            self.stdout.write(self.style.SUCCESS(summary))
