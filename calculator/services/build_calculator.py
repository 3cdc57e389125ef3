"""Budget-constrained build allocation.

One request runs four phases over a read-only catalog snapshot:

1. greedy completion: cheapest viable part per category,
2. compatibility repair: bounded-cost substitutions for hard violations,
3. upgrade: spend leftover budget on higher-scoring parts,
4. emergency fallback: synthesize placeholders for empty categories.

Every phase appends human-readable notes, so the final build explains
itself. Phases are plain functions over a :class:`BuildState`; the fixed
sequence is ``DEFAULT_PHASES``.
"""
import logging
import math
import numbers
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, List, Sequence

from calculator.exceptions import (
    BudgetExceeded,
    CatalogEmpty,
    InvalidInput,
    UnresolvedIncompatibility,
)

from . import compatibility, scoring
from .catalog import CatalogSnapshot, DatabaseCatalogProvider
from .components import (
    BuildConfiguration,
    Component,
    OptimizedBuild,
    format_price,
)
from .config import DEFAULT_CONFIG, REGIONS, AllocatorConfig

logger = logging.getLogger(__name__)


def _cheapest(candidates, region):
    return min(candidates, key=lambda c: (c.price_in(region), c.name, c.id))


# --- Phase 1: greedy completion ---
def pick_within_budget(category, candidates, remaining, region) -> Component:
    """Cheapest in-stock part that fits ``remaining``."""
    affordable = [
        c for c in candidates if c.in_stock and c.price_in(region) <= remaining
    ]
    if not affordable:
        raise BudgetExceeded(category, remaining)
    return _cheapest(affordable, region)


def pick_cheapest(category, candidates, region) -> Component:
    """Cheapest part regardless of budget, preferring in-stock parts."""
    if not candidates:
        raise CatalogEmpty(category)
    in_stock = [c for c in candidates if c.in_stock]
    return _cheapest(in_stock or candidates, region)


def allocate(budget, catalog, region, config=DEFAULT_CONFIG):
    """Fill every category with its cheapest viable candidate.

    A single left-to-right pass in ``config.greedy_order``: no look-ahead,
    no backtracking. Returns ``(build, total_cost, notes)``.
    """
    build = BuildConfiguration()
    notes = []
    remaining = budget

    for category in config.greedy_order:
        candidates = catalog.candidates(category)
        try:
            component = pick_within_budget(category, candidates, remaining, region)
        except BudgetExceeded as exc:
            try:
                component = pick_cheapest(category, candidates, region)
            except CatalogEmpty:
                notes.append(
                    f"No {category} candidates in catalog; slot left for fallback"
                )
                logger.warning("Catalog has no %s candidates", category)
                continue
            price = component.price_in(region)
            over_by = price - max(exc.remaining, 0)
            stock_note = "" if component.in_stock else f" ({component.availability})"
            notes.append(
                f"Over budget: selected cheapest available {category}: "
                f"{component.name}{stock_note} for {format_price(price, region)} "
                f"(exceeds remaining budget by {format_price(over_by, region)})"
            )
            logger.debug("%s over budget by %.2f: %s", category, over_by, component.name)
        else:
            price = component.price_in(region)
            notes.append(
                f"Selected minimum {category}: {component.name} "
                f"for {format_price(price, region)}"
            )
            logger.debug("%s: %s (%.2f)", category, component.name, price)
        build[category] = component
        remaining -= price

    return build, build.total_price(region), notes


# --- Phase 2: compatibility repair ---
@dataclass(frozen=True)
class RepairRule:
    violation: str
    slot: str
    price_ratio_attr: str
    resolves: Callable[[Component, BuildConfiguration, AllocatorConfig], bool]
    verb: str


def _resolves_socket(candidate, build, config):
    return compatibility.sockets_match(build["cpu"], candidate) is True


def _resolves_memory(candidate, build, config):
    return compatibility.memory_matches(candidate, build["motherboard"]) is True


def _resolves_power(candidate, build, config):
    draw = compatibility.estimate_system_draw(build, config)
    return (
        compatibility.psu_sufficient(candidate, draw, config.psu_repair_headroom)
        is True
    )


def _resolves_clearance(candidate, build, config):
    return compatibility.gpu_fits(build["gpu"], candidate) is True


REPAIR_RULES = (
    RepairRule(
        compatibility.SOCKET,
        "motherboard",
        "socket_repair_price_ratio",
        _resolves_socket,
        "Replaced motherboard",
    ),
    RepairRule(
        compatibility.MEMORY,
        "ram",
        "memory_repair_price_ratio",
        _resolves_memory,
        "Replaced RAM",
    ),
    RepairRule(
        compatibility.POWER,
        "psu",
        "power_repair_price_ratio",
        _resolves_power,
        "Upgraded PSU",
    ),
    RepairRule(
        compatibility.CLEARANCE,
        "case",
        "clearance_repair_price_ratio",
        _resolves_clearance,
        "Replaced case",
    ),
)


def _new_violations(build, category, candidate, config):
    """Violations that placing ``candidate`` would add to ``build``."""
    trial = build.copy()
    trial[category] = candidate
    present = set(compatibility.violations(build, config))
    return set(compatibility.violations(trial, config)) - present


def find_substitute(rule, build, catalog, region, config=DEFAULT_CONFIG):
    """Cheapest candidate for ``rule.slot`` that clears the violation.

    The substitute may cost at most ``price_ratio`` times the placed part.
    Candidates that introduce no other violation are preferred; the
    cheapest resolver of any kind is used only when none is clean.
    Raises UnresolvedIncompatibility when nothing qualifies.
    """
    current = build[rule.slot]
    ceiling = current.price_in(region) * getattr(config, rule.price_ratio_attr)
    options = [
        c
        for c in catalog.candidates(rule.slot)
        if c.id != current.id
        and c.price_in(region) <= ceiling
        and rule.resolves(c, build, config)
    ]
    if not options:
        raise UnresolvedIncompatibility(
            compatibility.ISSUE_MESSAGES[rule.violation], rule.slot
        )
    clean = [
        c for c in options if not _new_violations(build, rule.slot, c, config)
    ]
    return _cheapest(clean or options, region)


def repair(build, catalog, region, config=DEFAULT_CONFIG):
    """Resolve hard violations by bounded-cost substitution.

    Returns ``(build, issues, notes)``; ``issues`` lists the violations no
    substitute could fix. A compatible build is returned untouched.
    """
    issues = []
    notes = []
    for rule in REPAIR_RULES:
        if rule.violation not in compatibility.violations(build, config):
            continue
        current = build[rule.slot]
        if current is None:
            continue
        try:
            substitute = find_substitute(rule, build, catalog, region, config)
        except UnresolvedIncompatibility as exc:
            issues.append(exc.issue)
            notes.append(
                f"Could not resolve: {exc.issue} "
                f"(no {rule.slot} substitute within "
                f"{getattr(config, rule.price_ratio_attr):g}x of "
                f"{format_price(current.price_in(region), region)})"
            )
            logger.info("Unresolved incompatibility: %s", exc.issue)
            continue
        build[rule.slot] = substitute
        notes.append(
            f"{rule.verb} with {substitute.name} for compatibility "
            f"({format_price(current.price_in(region), region)} -> "
            f"{format_price(substitute.price_in(region), region)})"
        )
        logger.debug(
            "Repair %s: %s -> %s", rule.violation, current.name, substitute.name
        )
    return build, issues, notes


# --- Phase 3: upgrade ---
def upgrade_value(candidate, build, region, config=DEFAULT_CONFIG) -> float:
    perf = scoring.score(candidate, region)
    price = candidate.price_in(region)
    per_dollar = perf / price if price > 0 else 0.0
    return (
        config.upgrade_performance_weight * perf
        + config.upgrade_value_weight * config.upgrade_value_scale * per_dollar
        + config.upgrade_compatibility_weight
        * compatibility.penalty(candidate, build, config)
    )


def ranked_upgrades(category, build, remaining, catalog, region, config=DEFAULT_CONFIG):
    """Affordable replacements for ``category``, best upgrade value first.

    Candidates are in stock, strictly pricier than the placed part, within
    its price plus ``remaining``, score higher, and add no hard violation.
    Ties go to the cheaper part, then by name.
    """
    current = build[category]
    current_price = current.price_in(region)
    current_perf = scoring.score(current, region)
    ceiling = current_price + remaining

    scored = []
    for candidate in catalog.candidates(category):
        price = candidate.price_in(region)
        if not candidate.in_stock or price <= current_price or price > ceiling:
            continue
        if scoring.score(candidate, region) <= current_perf:
            continue
        if _new_violations(build, category, candidate, config):
            continue
        scored.append((upgrade_value(candidate, build, region, config), candidate))

    scored.sort(key=lambda s: (-s[0], s[1].price_in(region), s[1].name, s[1].id))
    return [candidate for _, candidate in scored]


def best_upgrade(category, build, remaining, catalog, region, config=DEFAULT_CONFIG):
    """Highest-value affordable replacement for ``category``, or None."""
    ranked = ranked_upgrades(category, build, remaining, catalog, region, config)
    return ranked[0] if ranked else None


def _simulated_score(build, remaining, category, choice, catalog, region, config):
    """Aggregate score after placing ``choice`` (or keeping the current part)
    and letting the other categories upgrade greedily."""
    trial = build.copy()
    if choice is not None:
        remaining -= choice.price_in(region) - trial[category].price_in(region)
        trial[category] = choice
    _run_passes(
        trial, remaining, catalog, region, config, pick=best_upgrade, frozen={category}
    )
    return scoring.aggregate_score(trial, region, config)


def lookahead_upgrade(category, build, remaining, catalog, region, config=DEFAULT_CONFIG):
    """Replacement for ``category`` that leads to the best final build, or None.

    Each of the top-ranked candidates is tried and the remaining budget is
    spent greedily on the other categories; the highest resulting aggregate
    score wins, with upgrade value deciding ties. Keeping the current part
    wins only when it does strictly better, so a pricey part that starves
    the other categories is passed over.
    """
    ranked = ranked_upgrades(category, build, remaining, catalog, region, config)
    ranked = ranked[: config.upgrade_lookahead_width]
    if not ranked:
        return None

    best, best_score = None, None
    for candidate in ranked:
        value = _simulated_score(
            build, remaining, category, candidate, catalog, region, config
        )
        if best_score is None or value > best_score:
            best, best_score = candidate, value
    keep = _simulated_score(build, remaining, category, None, catalog, region, config)
    if keep > best_score:
        logger.debug("Keeping %s: upgrading it would starve other parts", category)
        return None
    return best


def _run_passes(build, remaining, catalog, region, config, pick, frozen=()):
    notes = []
    for pass_no in range(1, config.max_upgrade_passes + 1):
        upgraded = False
        for category in config.upgrade_order:
            if remaining <= config.min_upgrade_budget:
                break
            current = build[category]
            if current is None or category in frozen:
                continue
            candidate = pick(category, build, remaining, catalog, region, config)
            if candidate is None:
                continue
            delta = candidate.price_in(region) - current.price_in(region)
            build[category] = candidate
            remaining -= delta
            upgraded = True
            notes.append(
                f"Upgraded {category} to {candidate.name} for additional "
                f"{format_price(delta, region)} (score "
                f"{scoring.score(current, region):.0f} -> "
                f"{scoring.score(candidate, region):.0f})"
            )
        if not upgraded or remaining <= config.min_upgrade_budget:
            break
    return remaining, notes


def upgrade(build, remaining, catalog, region, config=DEFAULT_CONFIG):
    """Spend leftover budget on better parts, one category at a time.

    Returns ``(build, remaining, notes)``. Passes over ``config.upgrade_order``
    repeat until a pass makes no upgrade or the budget runs out. Each
    category's pick is made with :func:`lookahead_upgrade`.
    """
    remaining, notes = _run_passes(
        build, remaining, catalog, region, config, pick=lookahead_upgrade
    )
    for note in notes:
        logger.debug("%s", note)
    return build, remaining, notes


# --- Phase 4: emergency fallback ---
def _fallback_specs(category, build, config):
    cpu, motherboard, ram, gpu = (
        build["cpu"],
        build["motherboard"],
        build["ram"],
        build["gpu"],
    )
    if category == "cpu":
        socket = motherboard.spec("socket") if motherboard else None
        return {"socket": socket or "LGA1700", "power_draw": config.default_cpu_draw}
    if category == "gpu":
        return {"power_draw": config.default_gpu_draw}
    if category == "motherboard":
        socket = cpu.spec("socket") if cpu else None
        memory_type = ram.spec("memory_type") if ram else None
        return {"socket": socket or "LGA1700", "memory_type": memory_type or "DDR4"}
    if category == "ram":
        memory_type = motherboard.spec("memory_type") if motherboard else None
        return {"memory_type": memory_type or "DDR4", "capacity_gb": 16}
    if category == "storage":
        return {"capacity_gb": 500, "interface": "NVMe"}
    if category == "psu":
        # Size for the default parts the fallback will add.
        trial = _with_placeholders(build)
        needed = compatibility.estimate_system_draw(trial, config) * config.psu_repair_headroom
        wattage = config.fallback_psu_wattage
        if wattage < needed:
            step = config.fallback_psu_step
            wattage = int(math.ceil(needed / step) * step)
        return {"wattage": wattage}
    if category == "cooler":
        return {"cooler_type": "Air"}
    if category == "case":
        clearance = 350.0
        length = gpu.spec_number("length_mm") if gpu else None
        if length is not None and length > clearance:
            clearance = float(math.ceil(length))
        return {"gpu_clearance_mm": clearance}
    return {}


def _with_placeholders(build):
    trial = build.copy()
    for category in ("cpu", "gpu", "ram", "storage"):
        if trial[category] is None:
            trial[category] = Component(
                id=f"placeholder-{category}",
                name=category,
                brand="",
                category=category,
                prices={},
            )
    return trial


def fallback_component(category, region, build=None, config=DEFAULT_CONFIG) -> Component:
    """Synthesized placeholder for a category the catalog could not fill."""
    build = build if build is not None else BuildConfiguration()
    base = config.fallback_prices.get(category, 50)
    multipliers = config.fallback_region_multipliers
    prices = {
        r: float(math.floor(base * multipliers.get(r, 1.0) + 0.5)) for r in REGIONS
    }
    return Component(
        id=f"fallback-{category}",
        name=f"Budget {category.capitalize()}",
        brand="Generic",
        category=category,
        prices=prices,
        specs=_fallback_specs(category, build, config),
        description=f"Emergency fallback {category} to complete the build",
        fallback=True,
    )


def fill_missing(build, region, config=DEFAULT_CONFIG):
    """Fill every empty slot with a fallback part. Returns ``(build, notes)``.

    Placement follows the greedy order so each placeholder can inherit the
    socket / memory type of parts placed before it.
    """
    notes = []
    for category in config.greedy_order:
        if build[category] is not None:
            continue
        component = fallback_component(category, region, build, config)
        build[category] = component
        notes.append(
            f"FALLBACK: added placeholder {category} ({component.name}) for "
            f"{format_price(component.price_in(region), region)} to complete "
            f"the build"
        )
        logger.warning("Using fallback %s for region %s", category, region)
    return build, notes


# --- Pipeline ---
@dataclass
class BuildState:
    """Working state of one allocation request."""

    budget: float
    region: str
    catalog: CatalogSnapshot
    config: AllocatorConfig = DEFAULT_CONFIG
    build: BuildConfiguration = field(default_factory=BuildConfiguration)
    notes: List[str] = field(default_factory=list)

    @property
    def remaining(self):
        return self.budget - self.build.total_price(self.region)


def greedy_phase(state):
    build, _, notes = allocate(state.budget, state.catalog, state.region, state.config)
    state.build = build
    state.notes.extend(notes)


def repair_phase(state):
    _, _, notes = repair(state.build, state.catalog, state.region, state.config)
    state.notes.extend(notes)


def upgrade_phase(state):
    remaining = state.remaining
    if remaining <= 0:
        return
    _, _, notes = upgrade(state.build, remaining, state.catalog, state.region, state.config)
    state.notes.extend(notes)


def fallback_phase(state):
    if state.build.is_complete():
        return
    _, notes = fill_missing(state.build, state.region, state.config)
    state.notes.extend(notes)


DEFAULT_PHASES = (greedy_phase, repair_phase, upgrade_phase, fallback_phase)


def validate_request(total_budget, region):
    """Return ``(budget, region)`` or raise InvalidInput."""
    numeric = isinstance(total_budget, (numbers.Real, Decimal))
    if isinstance(total_budget, bool) or not numeric:
        raise InvalidInput(f"Budget must be a number, got {total_budget!r}")
    budget = float(total_budget)
    if not math.isfinite(budget) or budget <= 0:
        raise InvalidInput(f"Budget must be a positive number, got {total_budget!r}")
    if not isinstance(region, str) or region.strip().upper() not in REGIONS:
        raise InvalidInput(
            f"Unknown region {region!r}; expected one of {', '.join(REGIONS)}"
        )
    return budget, region.strip().upper()


def run_pipeline(
    budget,
    region,
    catalog: CatalogSnapshot,
    config: AllocatorConfig = DEFAULT_CONFIG,
    phases: Sequence[Callable[[BuildState], None]] = DEFAULT_PHASES,
) -> OptimizedBuild:
    state = BuildState(budget=budget, region=region, catalog=catalog, config=config)
    for phase in phases:
        phase(state)

    build = state.build
    total = build.total_price(region)
    result = OptimizedBuild(
        build=build,
        budget=budget,
        region=region,
        total_cost=total,
        budget_utilization=total / budget * 100,
        is_complete=build.is_complete(),
        compatibility_issues=compatibility.issues(build, config),
        optimization_notes=state.notes,
        performance_score=scoring.performance_score(build, region, config),
        fallback_categories=[
            category for category, c in build.items() if c is not None and c.fallback
        ],
    )
    logger.info(
        "Build for %s %s: cost %.2f (%.1f%%), score %d, complete=%s, issues=%d",
        format_price(budget, region),
        region,
        total,
        result.budget_utilization,
        result.performance_score,
        result.is_complete,
        len(result.compatibility_issues),
    )
    return result


def optimize(total_budget, region, provider=None) -> OptimizedBuild:
    """Recommend a complete build for ``total_budget`` in ``region``.

    Input is validated before any catalog access. ``provider`` defaults to
    the database catalog (with the live price feed when configured).
    """
    budget, region = validate_request(total_budget, region)
    if provider is None:
        provider = DatabaseCatalogProvider.from_settings()
    snapshot = provider.snapshot(region)
    return run_pipeline(budget, region, snapshot)
