from unittest import mock

import requests
from django.test import SimpleTestCase, TestCase

from calculator.models import CurrencyRate
from calculator.services.catalog import (
    CatalogSnapshot,
    DatabaseCatalogProvider,
    PriceFeed,
    StaticCatalogProvider,
    convert_from_usd,
)
from calculator.services.config import CATEGORIES
from calculator.testing import part
from hardware.models import CPU, GPU, PSU


class TestSnapshot(SimpleTestCase):
    def test_every_category_present_and_sorted(self):
        snap = CatalogSnapshot(
            "US",
            {
                "cpu": [
                    part("cpu", "B", 200),
                    part("cpu", "A", 200),
                    part("cpu", "C", 100),
                ]
            },
        )
        self.assertEqual(set(snap), set(CATEGORIES))
        self.assertEqual([c.name for c in snap["cpu"]], ["C", "A", "B"])
        self.assertEqual(snap["gpu"], ())

    def test_unpriced_and_misfiled_parts_are_dropped(self):
        snap = CatalogSnapshot(
            "CA",
            {"cpu": [part("cpu", "US only", 100), part("gpu", "Wrong slot", 100, region="CA")]},
        )
        self.assertEqual(snap["cpu"], ())

    def test_failing_category_becomes_empty(self):
        class FlakyProvider(StaticCatalogProvider):
            def list_candidates(self, category, region):
                if category == "gpu":
                    raise RuntimeError("backend down")
                return super().list_candidates(category, region)

        provider = FlakyProvider([part("cpu", "Ryzen 5 7600", 200), part("gpu", "RTX 4060", 300)])
        with self.assertLogs("calculator.services.catalog", "ERROR"):
            snap = provider.snapshot("US")
        self.assertEqual(snap["gpu"], ())
        self.assertEqual(len(snap["cpu"]), 1)


class TestConversion(SimpleTestCase):
    def test_stored_rate_is_used(self):
        # 1 CAD = 0.74 USD
        self.assertEqual(convert_from_usd(100, "CA", {"CAD": 0.74}), 135.14)

    def test_default_multiplier_without_rate(self):
        self.assertEqual(convert_from_usd(100, "AU", {}), 150.0)
        self.assertEqual(convert_from_usd(100, "UK"), 80.0)

    def test_usd_is_unchanged(self):
        self.assertEqual(convert_from_usd(99.999, "US", {"USD": 2}), 100.0)


class TestPriceFeed(SimpleTestCase):
    def setUp(self):
        self.feed = PriceFeed("http://prices.test/", timeout=2, max_workers=4)
        self.gpu = part("gpu", "RTX 4060", 300)

    @mock.patch("calculator.services.catalog.requests.get")
    def test_live_price_replaces_stored_price(self, mock_get):
        mock_get.return_value.json.return_value = {"price": 279.99, "availability": "limited"}
        refreshed = self.feed.refresh([self.gpu], "US")
        self.assertEqual(refreshed[0].price_in("US"), 279.99)
        self.assertEqual(refreshed[0].availability, "limited")
        mock_get.assert_called_once_with(
            "http://prices.test/prices/gpu-rtx-4060",
            params={"region": "US"},
            timeout=2,
        )

    @mock.patch("calculator.services.catalog.requests.get")
    def test_request_failure_keeps_stored_price(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("refused")
        with self.assertLogs("calculator.services.catalog", "WARNING"):
            refreshed = self.feed.refresh([self.gpu], "US")
        self.assertIs(refreshed[0], self.gpu)

    @mock.patch("calculator.services.catalog.requests.get")
    def test_malformed_payload_keeps_stored_price(self, mock_get):
        for payload in ({}, {"price": "n/a"}, {"price": -5}):
            with self.subTest(payload=payload):
                mock_get.return_value.json.return_value = payload
                with self.assertLogs("calculator.services.catalog", "WARNING"):
                    refreshed = self.feed.refresh([self.gpu], "US")
                self.assertEqual(refreshed[0].price_in("US"), 300)

    @mock.patch("calculator.services.catalog.requests.get")
    def test_unknown_availability_is_ignored(self, mock_get):
        mock_get.return_value.json.return_value = {"price": 310, "availability": "soon"}
        refreshed = self.feed.refresh([self.gpu], "US")
        self.assertEqual(refreshed[0].availability, "in-stock")

    def test_refresh_preserves_order(self):
        parts = [part("gpu", f"GPU {i}", 100 + i) for i in range(10)]
        with mock.patch.object(PriceFeed, "fetch", side_effect=lambda c, r: {"price": c.price_in(r) + 1}):
            refreshed = self.feed.refresh(parts, "US")
        self.assertEqual([c.name for c in refreshed], [c.name for c in parts])
        self.assertEqual(refreshed[3].price_in("US"), 104)


class TestDatabaseCatalog(TestCase):
    def setUp(self):
        CPU.objects.create(
            brand="AMD", name="Ryzen 5 7600", slug="ryzen-5-7600",
            price=200, socket="AM5", tdp=65,
        )
        CPU.objects.create(
            brand="Intel", name="Core i5-14400", slug="core-i5-14400",
            price=190, socket="LGA1700", regional_prices={"CA": 249.99},
        )
        CPU.objects.create(brand="AMD", name="Unpriced", slug="unpriced")
        GPU.objects.create(
            name="RTX 4060", slug="rtx-4060", price=300, availability="discontinued",
        )
        self.provider = DatabaseCatalogProvider()

    def test_rows_become_components(self):
        cpus = self.provider.list_candidates("cpu", "US")
        self.assertEqual({c.id for c in cpus}, {"ryzen-5-7600", "core-i5-14400"})
        ryzen = next(c for c in cpus if c.id == "ryzen-5-7600")
        self.assertEqual(ryzen.specs, {"socket": "AM5", "power_draw": 65})
        self.assertEqual(ryzen.price_in("US"), 200)
        self.assertEqual(ryzen.category, "cpu")

    def test_regional_price_overrides_conversion(self):
        CurrencyRate.objects.create(currency="CAD", rate_to_usd="0.740000")
        cpus = {c.id: c for c in self.provider.list_candidates("cpu", "CA")}
        self.assertEqual(cpus["core-i5-14400"].price_in("CA"), 249.99)
        self.assertEqual(cpus["ryzen-5-7600"].price_in("CA"), 270.27)

    def test_unknown_availability_is_out_of_stock(self):
        (gpu,) = self.provider.list_candidates("gpu", "US")
        self.assertEqual(gpu.availability, "out-of-stock")

    def test_snapshot_covers_all_categories(self):
        PSU.objects.create(name="650W PSU", slug="650w-psu", price=70, wattage=650)
        snap = self.provider.snapshot("US")
        self.assertEqual(snap.counts()["cpu"], 2)
        self.assertEqual(snap.counts()["psu"], 1)
        self.assertEqual(snap.counts()["case"], 0)
        self.assertEqual(snap["cpu"][0].id, "core-i5-14400")

    def test_price_feed_is_applied(self):
        feed = mock.Mock(spec=PriceFeed)
        feed.refresh.side_effect = lambda components, region: components[:1]
        provider = DatabaseCatalogProvider(price_feed=feed)
        self.assertEqual(len(provider.list_candidates("cpu", "US")), 1)
        feed.refresh.assert_called_once()
