import logging
from decimal import Decimal, InvalidOperation

import requests
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from calculator.models import CurrencyRate
from calculator.services.config import REGION_CURRENCIES

logger = logging.getLogger(__name__)

API_URL = "https://v6.exchangerate-api.com/v6/{key}/latest/USD"


class Command(BaseCommand):
    help = "Update region currency rates from ExchangeRate API (base USD)"

    def add_arguments(self, parser):
        parser.add_argument("--timeout", type=float, default=10.0)

    def handle(self, *args, **options):
        api_key = getattr(settings, "EXCHANGE_RATE_API_KEY", "")
        if not api_key:
            raise CommandError("EXCHANGE_RATE_API_KEY is not set")

        try:
            response = requests.get(
                API_URL.format(key=api_key), timeout=options["timeout"]
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise CommandError(f"Failed to fetch rates: {exc}")

        if data.get("result") != "success":
            raise CommandError(
                f"Failed to fetch rates: {data.get('error-type', 'unknown error')}"
            )

        # The API quotes units per USD; stored rates are USD per unit.
        rates = data.get("conversion_rates") or {}
        updated = 0
        for currency in sorted(set(REGION_CURRENCIES.values())):
            try:
                per_usd = Decimal(str(rates[currency]))
                rate_to_usd = (Decimal(1) / per_usd).quantize(Decimal("0.000001"))
            except (KeyError, InvalidOperation, ZeroDivisionError):
                self.stderr.write(f"No usable rate for {currency}")
                logger.warning("No usable rate for %s", currency)
                continue
            CurrencyRate.objects.update_or_create(
                currency=currency, defaults={"rate_to_usd": rate_to_usd}
            )
            updated += 1

        logger.info("Updated %d currency rates", updated)
        self.stdout.write(
            self.style.SUCCESS(f"Currency rates updated successfully ({updated})")
        )
