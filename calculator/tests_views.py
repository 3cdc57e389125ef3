import json

from django.test import TestCase, Client
from django.urls import reverse

from hardware.models import CPU, GPU, PSU, RAM, Case, CPUCooler, Motherboard, Storage


class CalculateBuildViewTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.url = reverse("calculate_build")

    def seed_catalog(self):
        CPU.objects.create(name="Ryzen 5 7600", slug="ryzen-5-7600", price=200, socket="AM5", tdp=65)
        Motherboard.objects.create(name="B650 Board", slug="b650-board", price=150, socket="AM5", ddr_version="DDR5")
        RAM.objects.create(name="DDR5 Kit 16GB", slug="ddr5-kit", price=60, ddr_generation="DDR5", capacity_gb=16)
        Storage.objects.create(name="NVMe 1TB", slug="nvme-1tb", price=70, interface="NVMe", capacity=1000)
        PSU.objects.create(name="650W PSU", slug="650w-psu", price=70, wattage=650)
        CPUCooler.objects.create(name="Air Cooler", slug="air-cooler", price=30, cooler_type="Air")
        Case.objects.create(name="Mid Tower", slug="mid-tower", price=80, gpu_clearance=380)
        GPU.objects.create(name="RTX 4060", slug="rtx-4060", price=300, tdp=115, board_length=240)

    def post_json(self, payload):
        return self.client.post(self.url, data=json.dumps(payload), content_type="application/json")

    def test_json_request_returns_build(self):
        self.seed_catalog()
        response = self.post_json({"budget": 1000, "region": "US"})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data["is_complete"])
        self.assertEqual(data["total_cost"], 960)
        self.assertEqual(data["components"]["cpu"]["id"], "ryzen-5-7600")
        self.assertEqual(data["components"]["gpu"]["price"], 300)
        self.assertEqual(data["compatibility_issues"], [])
        self.assertEqual(data["fallback_categories"], [])

    def test_form_request_is_accepted(self):
        self.seed_catalog()
        response = self.client.post(self.url, {"budget": "1000.00", "region": "US"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["region"], "US")

    def test_empty_catalog_falls_back(self):
        response = self.post_json({"budget": 600, "region": "DE"})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data["is_complete"])
        self.assertEqual(len(data["fallback_categories"]), 8)

    def test_invalid_budget_is_rejected(self):
        for budget in (0, -50, "lots"):
            with self.subTest(budget=budget):
                response = self.post_json({"budget": budget, "region": "US"})
                self.assertEqual(response.status_code, 400)
                self.assertIn("budget", response.json()["fields"])

    def test_unknown_region_is_rejected(self):
        response = self.post_json({"budget": 1000, "region": "FR"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("region", response.json()["fields"])

    def test_malformed_json_is_rejected(self):
        response = self.client.post(self.url, data="[1, 2", content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_get_not_allowed(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 405)
