from django.test import SimpleTestCase

from calculator.services import scoring
from calculator.services.components import BuildConfiguration
from calculator.testing import part


class TestTierScores(SimpleTestCase):
    def test_specific_gpu_patterns_win(self):
        self.assertEqual(scoring.score(part("gpu", "GeForce RTX 4070 Ti SUPER", 800)), 70)
        self.assertEqual(scoring.score(part("gpu", "GeForce RTX 4070", 550)), 60)
        self.assertEqual(scoring.score(part("gpu", "GeForce RTX 5070 Ti", 750)), 75)
        self.assertEqual(scoring.score(part("gpu", "Radeon RX 7900 XTX", 900)), 82)

    def test_cpu_tiers(self):
        self.assertEqual(scoring.score(part("cpu", "Intel Core i9-14900K", 550)), 95)
        self.assertEqual(scoring.score(part("cpu", "Intel Core i7-13700", 350)), 75)
        self.assertEqual(scoring.score(part("cpu", "AMD Ryzen 9 7950X", 550)), 90)
        self.assertEqual(scoring.score(part("cpu", "AMD Ryzen 7 9950X3D", 700)), 98)

    def test_ram_and_storage_use_specs(self):
        kit = part("ram", "Vengeance", 110, memory_type="DDR5", capacity_gb=32)
        self.assertEqual(scoring.score(kit), 75)
        fast = part("ram", "Trident Z5", 130, memory_type="DDR5", frequency_mhz=7200, capacity_gb=16)
        self.assertEqual(scoring.score(fast), 85)
        drive = part("storage", "Crucial P3", 120, interface="NVMe", capacity_gb=2000)
        self.assertEqual(scoring.score(drive), 75)
        sata = part("storage", "MX500", 50, interface="SATA", capacity_gb=500)
        self.assertEqual(scoring.score(sata), 50)


class TestPriceScores(SimpleTestCase):
    def test_unmatched_parts_score_by_price(self):
        self.assertEqual(scoring.score(part("gpu", "Arc B580", 250)), 5)
        self.assertEqual(scoring.score(part("motherboard", "B650 Board", 150)), 30)
        self.assertEqual(scoring.score(part("cpu", "Athlon 3000G", 60)), 6)

    def test_price_score_is_capped(self):
        self.assertEqual(scoring.score(part("case", "Showcase", 900)), 100)

    def test_missing_region_uses_cheapest_price(self):
        psu = part("psu", "850W PSU", 120, region="UK")
        self.assertEqual(scoring.score(psu, "US"), 24)


class TestAggregate(SimpleTestCase):
    def test_weighted_sum(self):
        build = BuildConfiguration(
            gpu=part("gpu", "RTX 4070", 550),
            cpu=part("cpu", "Ryzen 7 7700X", 330),
        )
        self.assertAlmostEqual(scoring.aggregate_score(build), 60 * 0.45 + 80 * 0.25)
        self.assertEqual(scoring.performance_score(build), 47)

    def test_empty_build_scores_zero(self):
        self.assertEqual(scoring.performance_score(BuildConfiguration()), 0)
