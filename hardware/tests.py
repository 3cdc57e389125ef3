import os
import tempfile
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, TestCase

from hardware.management.commands.import_hardware import (
    cast_number,
    normalize_availability,
)
from hardware.models import CPU, GPU, MODEL_BY_CATEGORY, Case


class SpecBagTests(SimpleTestCase):
    def test_known_fields_are_mapped(self):
        gpu = GPU(name="RTX 4070", tdp=200, board_length=300)
        self.assertEqual(gpu.spec_bag(), {"power_draw": 200, "length_mm": 300.0})

    def test_unknown_fields_are_left_out(self):
        self.assertEqual(CPU(name="Mystery", socket="").spec_bag(), {})

    def test_every_category_has_a_model(self):
        for category, model in MODEL_BY_CATEGORY.items():
            self.assertEqual(model.category, category)


class ImportHelpersTests(SimpleTestCase):
    def test_cast_number(self):
        self.assertEqual(cast_number("wattage", "750 W"), 750)
        self.assertEqual(cast_number("price", "$1,299.99"), 1299.99)
        self.assertIsNone(cast_number("tdp", "unknown"))

    def test_normalize_availability(self):
        self.assertEqual(normalize_availability("In Stock"), "in-stock")
        self.assertEqual(normalize_availability("out_of_stock"), "out-of-stock")
        self.assertIsNone(normalize_availability("backorder"))


class ImportHardwareCommandTests(TestCase):
    def write_csv(self, text):
        fd, path = tempfile.mkstemp(suffix=".csv")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        self.addCleanup(os.remove, path)
        return path

    def test_rows_are_created_then_updated(self):
        path = self.write_csv(
            "Brand,Name,Price,Socket,TDP,Availability,price_ca\n"
            "AMD,Ryzen 5 7600,199.99,AM5,65W,In Stock,279.00\n"
            "Intel,Core i5-14400,,LGA1700,65,limited,\n"
        )
        out = StringIO()
        call_command("import_hardware", "--model", "CPU", "--csv", path, stdout=out)
        self.assertIn("2 created", out.getvalue())

        ryzen = CPU.objects.get(slug="cpu-amd-ryzen-5-7600")
        self.assertEqual(ryzen.socket, "AM5")
        self.assertEqual(ryzen.tdp, 65)
        self.assertEqual(ryzen.regional_prices, {"CA": 279.0})
        self.assertEqual(CPU.objects.get(slug="cpu-intel-core-i5-14400").availability, "limited")

        call_command("import_hardware", "--model", "cpu", "--csv", path, stdout=out)
        self.assertIn("2 updated", out.getvalue())
        self.assertEqual(CPU.objects.count(), 2)

    def test_require_price_skips_unpriced_rows(self):
        path = self.write_csv(
            "Name,Price,GpuClearance\n"
            "Mid Tower,79.99,380 mm\n"
            "Mystery Case,,\n"
        )
        out = StringIO()
        call_command(
            "import_hardware", "--model", "Case", "--csv", path, "--require-price", stdout=out
        )
        self.assertEqual(Case.objects.count(), 1)
        self.assertEqual(float(Case.objects.get().gpu_clearance), 380.0)
        self.assertIn("Row 2 skipped", out.getvalue())

    def test_dry_run_writes_nothing(self):
        path = self.write_csv("Name,Price\nRTX 4060,299\n")
        out = StringIO()
        call_command("import_hardware", "--model", "gpu", "--csv", path, "--dry-run", stdout=out)
        self.assertFalse(GPU.objects.exists())
        self.assertIn("[DRY-RUN]", out.getvalue())

    def test_unknown_model_raises(self):
        with self.assertRaises(CommandError):
            call_command("import_hardware", "--model", "Monitor", "--csv", "x.csv")
