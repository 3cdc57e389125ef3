import math
from decimal import Decimal

from django.test import SimpleTestCase

from calculator.exceptions import InvalidInput
from calculator.services.build_calculator import (
    BuildState,
    allocate,
    fill_missing,
    greedy_phase,
    optimize,
    repair,
    repair_phase,
    run_pipeline,
    upgrade,
    validate_request,
)
from calculator.services.catalog import StaticCatalogProvider
from calculator.services.components import BuildConfiguration
from calculator.services.config import CATEGORIES
from calculator.testing import part, replace_category, standard_catalog


def snapshot(components, region="US"):
    return StaticCatalogProvider(components).snapshot(region)


class TestPipeline(SimpleTestCase):
    def setUp(self):
        self.catalog = snapshot(standard_catalog())

    def test_build_is_complete_and_accounted(self):
        result = run_pipeline(1000, "US", self.catalog)
        self.assertTrue(result.is_complete)
        self.assertEqual(result.build.missing(), [])
        self.assertEqual(
            result.total_cost,
            sum(c.price_in("US") for c in result.build.filled()),
        )
        self.assertEqual(result.total_cost, 960)
        self.assertAlmostEqual(result.budget_utilization, 96.0)
        self.assertEqual(result.compatibility_issues, [])
        self.assertEqual(result.fallback_categories, [])

    def test_greedy_notes_name_each_selection(self):
        result = run_pipeline(1000, "US", self.catalog)
        selected = [n for n in result.optimization_notes if n.startswith("Selected minimum")]
        self.assertEqual(len(selected), len(CATEGORIES))
        self.assertIn("Selected minimum cpu: Ryzen 5 7600 for $200.00", selected)

    def test_leftover_budget_goes_to_upgrades(self):
        result = run_pipeline(1500, "US", self.catalog)
        self.assertEqual(result.build["gpu"].name, "RTX 4070")
        self.assertEqual(result.build["cpu"].name, "Ryzen 7 7700X")
        self.assertEqual(result.total_cost, 1340)
        self.assertEqual(result.performance_score, 62)
        self.assertTrue(
            any(n.startswith("Upgraded gpu to RTX 4070") for n in result.optimization_notes)
        )

    def test_tight_budget_still_completes_with_over_budget_note(self):
        # every GPU costs at least $300
        result = run_pipeline(300, "US", self.catalog)
        self.assertTrue(result.is_complete)
        self.assertEqual(result.fallback_categories, [])
        self.assertGreater(result.total_cost, 300)
        self.assertTrue(
            any(
                n.startswith("Over budget: selected cheapest available gpu: RTX 4060")
                for n in result.optimization_notes
            )
        )
        self.assertLess(result.remaining_budget, 0)

    def test_identical_inputs_give_identical_builds(self):
        first = run_pipeline(1234, "US", self.catalog)
        second = run_pipeline(1234, "US", self.catalog)
        self.assertEqual(first.build, second.build)
        self.assertEqual(first.as_dict(), second.as_dict())

    def test_higher_budget_never_lowers_score(self):
        scores = [
            run_pipeline(budget, "US", self.catalog).performance_score
            for budget in (300, 600, 1000, 1500, 3000)
        ]
        self.assertEqual(scores, sorted(scores))
        self.assertEqual(scores[2], 34)
        self.assertEqual(scores[-1], 62)

    def test_upgrade_skips_parts_that_do_not_fit(self):
        components = replace_category(
            standard_catalog(),
            "case",
            part("case", "Compact Case", 80, gpu_clearance_mm=280),
        )
        result = run_pipeline(1500, "US", snapshot(components))
        self.assertEqual(result.build["gpu"].name, "RTX 4060")
        self.assertEqual(result.build["cpu"].name, "Ryzen 7 7700X")
        self.assertEqual(result.compatibility_issues, [])

    def test_out_of_stock_parts_are_not_preferred(self):
        components = standard_catalog() + [
            part("cpu", "Ryzen 5 5500", 90, availability="out-of-stock", socket="AM5"),
        ]
        result = run_pipeline(1000, "US", snapshot(components))
        self.assertEqual(result.build["cpu"].name, "Ryzen 5 7600")

    def test_custom_phase_sequence(self):
        result = run_pipeline(1500, "US", self.catalog, phases=(greedy_phase,))
        self.assertEqual(result.build["gpu"].name, "RTX 4060")
        self.assertEqual(result.total_cost, 960)


class TestCompatibilityScenarios(SimpleTestCase):
    def socket_catalog(self, am5_board_price):
        components = replace_category(
            standard_catalog(),
            "cpu",
            part("cpu", "Ryzen 7 7700X", 330, socket="AM5", power_draw=105),
        )
        return snapshot(
            replace_category(
                components,
                "motherboard",
                part("motherboard", "Z790 Board", 140, socket="LGA1700", memory_type="DDR5"),
                part("motherboard", "B650 Board", am5_board_price, socket="AM5", memory_type="DDR5"),
            )
        )

    def test_socket_mismatch_is_repaired_within_price_bound(self):
        result = run_pipeline(1000, "US", self.socket_catalog(160))
        self.assertEqual(result.build["motherboard"].name, "B650 Board")
        self.assertNotIn("CPU socket does not match motherboard", result.compatibility_issues)
        self.assertTrue(
            any(
                n.startswith("Replaced motherboard with B650 Board")
                for n in result.optimization_notes
            )
        )

    def test_socket_mismatch_reported_when_substitute_too_expensive(self):
        # 200 > 1.2 x 140
        result = run_pipeline(1000, "US", self.socket_catalog(200))
        self.assertEqual(result.build["motherboard"].name, "Z790 Board")
        self.assertEqual(
            result.compatibility_issues, ["CPU socket does not match motherboard"]
        )
        self.assertTrue(
            any(n.startswith("Could not resolve") for n in result.optimization_notes)
        )

    def power_hungry_build(self):
        return BuildConfiguration(
            cpu=part("cpu", "Core i7-14700K", 400, socket="LGA1700", power_draw=125),
            gpu=part("gpu", "RX 7900 XTX", 900, power_draw=300, length_mm=287),
            ram=part("ram", "DDR5 Kit 32GB", 110, memory_type="DDR5", capacity_gb=32),
            storage=part("storage", "NVMe 2TB", 120, interface="NVMe", capacity_gb=2000),
            psu=part("psu", "450W PSU", 60, wattage=450),
        )

    def test_weak_psu_is_replaced_with_enough_headroom(self):
        # draw = 100 + 125 + 300 + 10 + 5 = 540 W; repair needs >= 702 W
        catalog = snapshot(
            [
                part("psu", "450W PSU", 60, wattage=450),
                part("psu", "650W PSU", 70, wattage=650),
                part("psu", "750W PSU", 85, wattage=750),
                part("psu", "1000W PSU", 150, wattage=1000),
            ]
        )
        build, issues, notes = repair(self.power_hungry_build(), catalog, "US")
        self.assertEqual(build["psu"].name, "750W PSU")
        self.assertGreaterEqual(build["psu"].spec_number("wattage"), 702)
        self.assertEqual(issues, [])
        self.assertEqual(len(notes), 1)

    def test_weak_psu_reported_when_nothing_qualifies(self):
        catalog = snapshot(
            [
                part("psu", "450W PSU", 60, wattage=450),
                part("psu", "650W PSU", 70, wattage=650),
            ]
        )
        build, issues, _ = repair(self.power_hungry_build(), catalog, "US")
        self.assertEqual(build["psu"].name, "450W PSU")
        self.assertEqual(issues, ["PSU wattage insufficient for system"])

    def test_short_case_is_replaced(self):
        build = BuildConfiguration(
            gpu=part("gpu", "RTX 4080", 1000, length_mm=320),
            case=part("case", "Mini Case", 80, gpu_clearance_mm=300),
        )
        catalog = snapshot(
            [
                part("case", "Mini Case", 80, gpu_clearance_mm=300),
                part("case", "Big Tower", 110, gpu_clearance_mm=400),
                part("case", "Showcase", 200, gpu_clearance_mm=450),
            ]
        )
        build, issues, _ = repair(build, catalog, "US")
        self.assertEqual(build["case"].name, "Big Tower")
        self.assertEqual(issues, [])

    def test_repair_leaves_compatible_build_alone(self):
        catalog = snapshot(standard_catalog())
        build, _, _ = allocate(1000, catalog, "US")
        before = build.copy()
        build, issues, notes = repair(build, catalog, "US")
        self.assertEqual(build, before)
        self.assertEqual(issues, [])
        self.assertEqual(notes, [])

    def test_socket_repair_prefers_board_that_keeps_memory_compatible(self):
        components = replace_category(
            standard_catalog(),
            "cpu",
            part("cpu", "Ryzen 7 7700X", 330, socket="AM5", power_draw=105),
        )
        components = replace_category(
            components,
            "motherboard",
            part("motherboard", "Z790 Board", 140, socket="LGA1700", memory_type="DDR5"),
            part("motherboard", "A620 Board", 150, socket="AM5", memory_type="DDR4"),
            part("motherboard", "B650 Board", 160, socket="AM5", memory_type="DDR5"),
        )
        result = run_pipeline(1000, "US", snapshot(components))
        self.assertEqual(result.build["motherboard"].name, "B650 Board")
        self.assertEqual(result.compatibility_issues, [])

    def test_memory_mismatch_is_repaired_within_price_bound(self):
        build = BuildConfiguration(
            motherboard=part("motherboard", "B650 Board", 150, socket="AM5", memory_type="DDR5"),
            ram=part("ram", "DDR4 Kit 16GB", 45, memory_type="DDR4", capacity_gb=16),
        )
        catalog = snapshot(
            [
                part("ram", "DDR4 Kit 16GB", 45, memory_type="DDR4", capacity_gb=16),
                part("ram", "DDR5 Kit 16GB", 52, memory_type="DDR5", capacity_gb=16),
                part("ram", "DDR5 Kit 32GB", 80, memory_type="DDR5", capacity_gb=32),
            ]
        )
        build, issues, notes = repair(build, catalog, "US")
        self.assertEqual(build["ram"].name, "DDR5 Kit 16GB")
        self.assertEqual(issues, [])
        self.assertTrue(notes[0].startswith("Replaced RAM with DDR5 Kit 16GB"))

    def test_memory_mismatch_reported_when_substitute_too_expensive(self):
        # 60 > 1.2 x 45
        components = replace_category(
            standard_catalog(),
            "ram",
            part("ram", "DDR4 Kit 16GB", 45, memory_type="DDR4", capacity_gb=16),
            part("ram", "DDR5 Kit 16GB", 60, memory_type="DDR5", capacity_gb=16),
        )
        result = run_pipeline(900, "US", snapshot(components))
        self.assertEqual(result.build["ram"].name, "DDR4 Kit 16GB")
        self.assertEqual(
            result.compatibility_issues, ["RAM type does not match motherboard"]
        )
        self.assertIn(
            "Could not resolve: RAM type does not match motherboard",
            " ".join(result.optimization_notes),
        )


class TestUpgradeBudgetSplit(SimpleTestCase):
    """A top-end GPU must not crowd out a CPU upgrade that scores more."""

    def setUp(self):
        # cheapest parts cost $450 in total
        self.catalog = snapshot(
            [
                part("cpu", "Athlon 3000G", 100),
                part("cpu", "Ryzen 9 7900X", 600),
                part("gpu", "Arc A380", 100),
                part("gpu", "RTX 4070", 400),
                part("gpu", "RTX 4090", 1000),
                part("motherboard", "A620 Board", 80),
                part("ram", "DDR5 Kit 16GB", 50, memory_type="DDR5", capacity_gb=16),
                part("storage", "NVMe 1TB", 50, interface="NVMe", capacity_gb=1000),
                part("psu", "850W PSU", 40, wattage=850),
                part("cooler", "Stock Cooler", 10),
                part("case", "Mid Tower", 20),
            ]
        )

    def test_balanced_upgrade_beats_single_expensive_part(self):
        result = run_pipeline(1350, "US", self.catalog)
        self.assertEqual(result.build["gpu"].name, "RTX 4070")
        self.assertEqual(result.build["cpu"].name, "Ryzen 9 7900X")
        self.assertEqual(result.performance_score, 63)

    def test_top_part_taken_once_both_fit(self):
        result = run_pipeline(1850, "US", self.catalog)
        self.assertEqual(result.build["gpu"].name, "RTX 4090")
        self.assertEqual(result.build["cpu"].name, "Ryzen 9 7900X")
        self.assertEqual(result.performance_score, 79)

    def test_score_never_drops_as_budget_grows(self):
        scores = [
            run_pipeline(budget, "US", self.catalog).performance_score
            for budget in range(400, 2400, 50)
        ]
        self.assertEqual(scores, sorted(scores))
        self.assertEqual(scores[0], 17)
        self.assertEqual(scores[-1], 79)


class TestPhases(SimpleTestCase):
    def test_allocate_leaves_empty_categories_unfilled(self):
        components = [c for c in standard_catalog() if c.category != "gpu"]
        build, total, notes = allocate(1000, snapshot(components), "US")
        self.assertIsNone(build["gpu"])
        self.assertEqual(total, 660)
        self.assertIn("No gpu candidates in catalog; slot left for fallback", notes)

    def test_upgrade_returns_remaining_budget(self):
        catalog = snapshot(standard_catalog())
        build, total, _ = allocate(1500, catalog, "US")
        build, remaining, notes = upgrade(build, 1500 - total, catalog, "US")
        self.assertEqual(remaining, 160)
        self.assertEqual(len(notes), 2)

    def test_upgrade_without_budget_is_a_no_op(self):
        catalog = snapshot(standard_catalog())
        build, _, _ = allocate(1000, catalog, "US")
        before = build.copy()
        build, remaining, notes = upgrade(build, 0, catalog, "US")
        self.assertEqual(build, before)
        self.assertEqual(remaining, 0)
        self.assertEqual(notes, [])

    def test_state_tracks_remaining_budget_through_repair(self):
        components = replace_category(
            standard_catalog(),
            "motherboard",
            part("motherboard", "Z790 Board", 140, socket="LGA1700", memory_type="DDR5"),
            part("motherboard", "B650 Board", 160, socket="AM5", memory_type="DDR5"),
        )
        state = BuildState(budget=1000, region="US", catalog=snapshot(components))
        greedy_phase(state)
        self.assertEqual(state.remaining, 1000 - 950)
        repair_phase(state)
        self.assertEqual(state.build["motherboard"].name, "B650 Board")
        self.assertEqual(state.remaining, 1000 - 970)
        self.assertTrue(state.notes[-1].startswith("Replaced motherboard with B650 Board"))


class TestFallback(SimpleTestCase):
    def test_empty_catalog_yields_complete_fallback_build(self):
        with self.assertLogs("calculator.services.build_calculator", "WARNING"):
            result = run_pipeline(500, "US", snapshot([]))
        self.assertTrue(result.is_complete)
        self.assertEqual(result.fallback_categories, list(CATEGORIES))
        self.assertEqual(result.total_cost, 380)
        self.assertEqual(result.compatibility_issues, [])
        fallback_notes = [n for n in result.optimization_notes if n.startswith("FALLBACK:")]
        self.assertEqual(len(fallback_notes), len(CATEGORIES))
        gpu = result.build["gpu"]
        self.assertEqual(gpu.id, "fallback-gpu")
        self.assertEqual(gpu.brand, "Generic")
        self.assertTrue(gpu.fallback)

    def test_fallback_prices_follow_region(self):
        result = run_pipeline(500, "AU", snapshot([], region="AU"))
        self.assertEqual(result.build["cpu"].price_in("AU"), 108)
        self.assertEqual(result.build["cooler"].price_in("AU"), 20)

    def test_fallback_parts_match_placed_parts(self):
        components = [c for c in standard_catalog() if c.category != "motherboard"]
        result = run_pipeline(1000, "US", snapshot(components))
        motherboard = result.build["motherboard"]
        self.assertEqual(result.fallback_categories, ["motherboard"])
        self.assertEqual(motherboard.spec("socket"), "AM5")
        self.assertEqual(motherboard.spec("memory_type"), "DDR5")
        self.assertEqual(result.compatibility_issues, [])

    def test_fallback_psu_covers_system_draw(self):
        # 100 + 65 + 300 + 10 + 5 = 480 W; 1.3 x 480 = 624 -> 650 W
        components = [c for c in standard_catalog() if c.category not in ("psu", "gpu")]
        components.append(part("gpu", "RX 7900 XT", 300, power_draw=300, length_mm=276))
        result = run_pipeline(1000, "US", snapshot(components))
        self.assertEqual(result.fallback_categories, ["psu"])
        self.assertEqual(result.build["psu"].spec("wattage"), 650)
        self.assertEqual(result.compatibility_issues, [])

    def test_fill_missing_keeps_placed_parts(self):
        cpu = part("cpu", "Ryzen 5 7600", 200, socket="AM5")
        build, notes = fill_missing(BuildConfiguration(cpu=cpu), "US")
        self.assertIs(build["cpu"], cpu)
        self.assertTrue(build.is_complete())
        self.assertEqual(len(notes), len(CATEGORIES) - 1)


class TestOptimize(SimpleTestCase):
    def test_region_is_normalized(self):
        provider = StaticCatalogProvider(standard_catalog())
        result = optimize(1000, " us ", provider=provider)
        self.assertEqual(result.region, "US")
        self.assertEqual(result.fallback_categories, [])

    def test_serialized_parts_carry_region_price(self):
        provider = StaticCatalogProvider(standard_catalog())
        data = optimize(1000, "US", provider=provider).as_dict()
        cpu = data["components"]["cpu"]
        self.assertEqual(cpu["price"], 200)
        self.assertNotIn("prices", cpu)

    def test_parts_without_regional_price_are_skipped(self):
        # standard catalog is priced in US only
        provider = StaticCatalogProvider(standard_catalog())
        result = optimize(1000, "UK", provider=provider)
        self.assertEqual(result.fallback_categories, list(CATEGORIES))

    def test_invalid_input_is_rejected_before_catalog_access(self):
        class ExplodingProvider(StaticCatalogProvider):
            def snapshot(self, region):
                raise AssertionError("catalog should not be read")

        provider = ExplodingProvider([])
        for budget in (0, -10, math.nan, math.inf, "500", None, True):
            with self.subTest(budget=budget):
                with self.assertRaises(InvalidInput):
                    optimize(budget, "US", provider=provider)
        with self.assertRaises(InvalidInput):
            optimize(500, "FR", provider=provider)

    def test_invalid_input_is_a_value_error(self):
        with self.assertRaises(ValueError):
            validate_request(-1, "US")

    def test_validate_request_accepts_decimal(self):
        self.assertEqual(validate_request(Decimal("999.50"), "de"), (999.5, "DE"))

