from decimal import Decimal
from io import StringIO
from unittest import mock

import requests
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings

from calculator.models import CurrencyRate


@override_settings(EXCHANGE_RATE_API_KEY="test-key")
class UpdateRatesCommandTests(TestCase):
    @mock.patch("calculator.management.commands.update_rates.requests.get")
    def test_region_currencies_are_stored_as_usd_per_unit(self, mock_get):
        mock_get.return_value.json.return_value = {
            "result": "success",
            "conversion_rates": {
                "USD": 1,
                "CAD": 1.25,
                "GBP": 0.8,
                "EUR": 0.9,
                "AUD": 1.6,
                "JPY": 150,
            },
        }
        out = StringIO()
        call_command("update_rates", stdout=out)

        self.assertEqual(
            set(CurrencyRate.objects.values_list("currency", flat=True)),
            {"USD", "CAD", "GBP", "EUR", "AUD"},
        )
        self.assertEqual(CurrencyRate.objects.get(currency="CAD").rate_to_usd, Decimal("0.8"))
        self.assertEqual(CurrencyRate.objects.get(currency="GBP").rate_to_usd, Decimal("1.25"))
        self.assertIn("updated successfully", out.getvalue())
        self.assertIn("test-key", mock_get.call_args[0][0])

    @mock.patch("calculator.management.commands.update_rates.requests.get")
    def test_missing_currency_is_skipped(self, mock_get):
        mock_get.return_value.json.return_value = {
            "result": "success",
            "conversion_rates": {"USD": 1, "CAD": 1.25},
        }
        err = StringIO()
        call_command("update_rates", stdout=StringIO(), stderr=err)
        self.assertEqual(CurrencyRate.objects.count(), 2)
        self.assertIn("No usable rate for AUD", err.getvalue())

    @mock.patch("calculator.management.commands.update_rates.requests.get")
    def test_api_error_raises(self, mock_get):
        mock_get.return_value.json.return_value = {"result": "error", "error-type": "invalid-key"}
        with self.assertRaises(CommandError):
            call_command("update_rates", stdout=StringIO())
        self.assertFalse(CurrencyRate.objects.exists())

    @mock.patch("calculator.management.commands.update_rates.requests.get")
    def test_network_error_raises(self, mock_get):
        mock_get.side_effect = requests.Timeout("slow")
        with self.assertRaises(CommandError):
            call_command("update_rates", stdout=StringIO())

    @override_settings(EXCHANGE_RATE_API_KEY="")
    def test_missing_key_raises(self):
        with self.assertRaises(CommandError):
            call_command("update_rates", stdout=StringIO())
