from django.test import SimpleTestCase

from calculator.services import compatibility
from calculator.services.components import BuildConfiguration
from calculator.testing import part


class TestNorm(SimpleTestCase):
    def test_socket_spellings_normalize_together(self):
        self.assertEqual(compatibility.norm("Socket AM5"), "am5")
        self.assertEqual(compatibility.norm("am-5"), "am5")
        self.assertEqual(compatibility.norm(None), "")


class TestChecks(SimpleTestCase):
    def setUp(self):
        self.cpu = part("cpu", "Ryzen 5 7600", 200, socket="AM5", power_draw=65)
        self.board = part("motherboard", "B650 Board", 150, socket="Socket AM5", memory_type="DDR5")
        self.intel_board = part("motherboard", "B760 Board", 130, socket="LGA1700", memory_type="DDR4")

    def test_sockets_match(self):
        self.assertTrue(compatibility.sockets_match(self.cpu, self.board))
        self.assertFalse(compatibility.sockets_match(self.cpu, self.intel_board))

    def test_unknown_specs_are_not_mismatches(self):
        unknown = part("motherboard", "Mystery Board", 100)
        self.assertIsNone(compatibility.sockets_match(self.cpu, unknown))
        self.assertIsNone(compatibility.sockets_match(self.cpu, None))
        self.assertIsNone(compatibility.memory_matches(part("ram", "Kit", 50), self.board))
        self.assertIsNone(compatibility.psu_sufficient(part("psu", "PSU", 50), 500, 1.2))

    def test_estimate_system_draw(self):
        self.assertEqual(compatibility.estimate_system_draw(BuildConfiguration()), 100)
        build = BuildConfiguration(
            cpu=part("cpu", "Core i7-14700K", 400, power_draw=125),
            gpu=part("gpu", "RX 7900 XTX", 900, power_draw=300),
            ram=part("ram", "Kit", 60),
            storage=part("storage", "SSD", 50),
        )
        self.assertEqual(compatibility.estimate_system_draw(build), 540)

    def test_estimate_system_draw_uses_defaults_for_unknown_parts(self):
        build = BuildConfiguration(
            cpu=part("cpu", "Unknown CPU", 100),
            gpu=part("gpu", "Unknown GPU", 100),
        )
        self.assertEqual(compatibility.estimate_system_draw(build), 100 + 65 + 150)

    def test_wattage_strings_are_parsed(self):
        psu = part("psu", "650W PSU", 70, wattage="650W")
        self.assertTrue(compatibility.psu_sufficient(psu, 500, 1.2))
        self.assertFalse(compatibility.psu_sufficient(psu, 600, 1.2))

    def test_gpu_fits(self):
        gpu = part("gpu", "RTX 4080", 1000, length_mm=320)
        self.assertTrue(compatibility.gpu_fits(gpu, part("case", "Tower", 90, gpu_clearance_mm=320)))
        self.assertFalse(compatibility.gpu_fits(gpu, part("case", "Mini", 60, gpu_clearance_mm=300)))


class TestPenalty(SimpleTestCase):
    def test_clean_candidate_scores_100(self):
        build = BuildConfiguration(motherboard=part("motherboard", "B650", 150, socket="AM5"))
        cpu = part("cpu", "Ryzen 5 7600", 200, socket="AM5")
        self.assertEqual(compatibility.penalty(cpu, build), 100)

    def test_each_mismatch_subtracts_its_penalty(self):
        build = BuildConfiguration(
            cpu=part("cpu", "Core i5-14400", 200, socket="LGA1700"),
            ram=part("ram", "DDR4 Kit", 50, memory_type="DDR4"),
        )
        board = part("motherboard", "B650", 150, socket="AM5", memory_type="DDR5")
        self.assertEqual(compatibility.penalty(board, build), 100 - 50 - 30)

    def test_penalty_ignores_checks_unrelated_to_the_candidate(self):
        build = BuildConfiguration(
            cpu=part("cpu", "Core i5-14400", 200, socket="LGA1700"),
            motherboard=part("motherboard", "B650", 150, socket="AM5"),
        )
        case = part("case", "Tower", 80, gpu_clearance_mm=380)
        self.assertEqual(compatibility.penalty(case, build), 100)

    def test_psu_penalty(self):
        build = BuildConfiguration(gpu=part("gpu", "RX 7900 XTX", 900, power_draw=300))
        psu = part("psu", "450W PSU", 60, wattage=450)
        # 1.2 x (100 + 300) = 480 > 450
        self.assertEqual(compatibility.penalty(psu, build), 60)


class TestViolations(SimpleTestCase):
    def test_violations_are_reported_in_order(self):
        build = BuildConfiguration(
            cpu=part("cpu", "Ryzen 5 7600", 200, socket="AM5", power_draw=65),
            motherboard=part("motherboard", "B760", 130, socket="LGA1700", memory_type="DDR5"),
            ram=part("ram", "DDR4 Kit", 50, memory_type="DDR4"),
            gpu=part("gpu", "RTX 4080", 1000, power_draw=320, length_mm=320),
            psu=part("psu", "450W PSU", 60, wattage=450),
            case=part("case", "Mini", 60, gpu_clearance_mm=300),
        )
        self.assertEqual(
            compatibility.violations(build),
            [
                compatibility.SOCKET,
                compatibility.MEMORY,
                compatibility.POWER,
                compatibility.CLEARANCE,
            ],
        )

    def test_issues_include_unfilled_slots(self):
        build = BuildConfiguration(cpu=part("cpu", "Ryzen 5 7600", 200))
        issues = compatibility.issues(build)
        self.assertIn("gpu slot could not be filled", issues)
        self.assertNotIn("cpu slot could not be filled", issues)
        self.assertEqual(len(issues), 7)
