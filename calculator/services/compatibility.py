"""Cross-category compatibility checks.

Four hard constraints are checked: CPU/motherboard socket, RAM/motherboard
memory type, PSU wattage headroom over the estimated system draw, and GPU
length against the case's GPU clearance. A check only fires when both sides
of it are known; missing specs never count as a mismatch.
"""
import logging
import re
from typing import List, Optional

from .config import DEFAULT_CONFIG

logger = logging.getLogger(__name__)

SOCKET = "socket"
MEMORY = "memory"
POWER = "power"
CLEARANCE = "clearance"

VIOLATION_ORDER = (SOCKET, MEMORY, POWER, CLEARANCE)

ISSUE_MESSAGES = {
    SOCKET: "CPU socket does not match motherboard",
    MEMORY: "RAM type does not match motherboard",
    POWER: "PSU wattage insufficient for system",
    CLEARANCE: "Graphics card does not fit in selected case",
}


def norm(s):
    """Normalize socket / memory strings to a compact alphanumeric form.

    'Socket AM5', 'AM5' and 'am-5' all become 'am5'.
    """
    s = str(s or "").lower()
    s = s.replace("socket", "")
    return re.sub(r"[^a-z0-9]", "", s)


def _same(a, b) -> Optional[bool]:
    a, b = norm(a), norm(b)
    if not a or not b:
        return None
    return a == b


def sockets_match(cpu, motherboard) -> Optional[bool]:
    """True/False when both sockets are known, None otherwise."""
    if cpu is None or motherboard is None:
        return None
    return _same(cpu.spec("socket"), motherboard.spec("socket"))


def memory_matches(ram, motherboard) -> Optional[bool]:
    if ram is None or motherboard is None:
        return None
    return _same(ram.spec("memory_type"), motherboard.spec("memory_type"))


def estimate_system_draw(build, config=DEFAULT_CONFIG) -> float:
    """Estimated wattage of the placed parts.

    A fixed base for the rest of the system, the CPU and GPU draw (with
    defaults when unknown) and small fixed allowances for RAM and storage.
    """
    total = config.base_system_draw
    cpu = build["cpu"]
    if cpu is not None:
        draw = cpu.spec_number("power_draw")
        total += config.default_cpu_draw if draw is None else draw
    gpu = build["gpu"]
    if gpu is not None:
        draw = gpu.spec_number("power_draw")
        total += config.default_gpu_draw if draw is None else draw
    if build["ram"] is not None:
        total += config.ram_draw
    if build["storage"] is not None:
        total += config.storage_draw
    return total


def psu_sufficient(psu, required_draw, headroom) -> Optional[bool]:
    if psu is None:
        return None
    wattage = psu.spec_number("wattage")
    if wattage is None:
        return None
    return wattage >= required_draw * headroom


def gpu_fits(gpu, case) -> Optional[bool]:
    if gpu is None or case is None:
        return None
    length = gpu.spec_number("length_mm")
    clearance = case.spec_number("gpu_clearance_mm")
    if length is None or clearance is None:
        return None
    return length <= clearance


def penalty(candidate, build, config=DEFAULT_CONFIG) -> float:
    """Score 0-100 for placing ``candidate`` into ``build``.

    Starts at 100 and subtracts a fixed amount for each mismatch against
    whatever is already placed. The candidate's own slot in ``build`` is
    ignored.
    """
    category = candidate.category
    trial = build.copy()
    trial[category] = candidate
    result = 100.0

    if category in ("cpu", "motherboard"):
        if sockets_match(trial["cpu"], trial["motherboard"]) is False:
            result -= config.socket_penalty
    if category in ("ram", "motherboard"):
        if memory_matches(trial["ram"], trial["motherboard"]) is False:
            result -= config.memory_penalty
    if category in ("psu", "cpu", "gpu"):
        draw = estimate_system_draw(trial, config)
        if psu_sufficient(trial["psu"], draw, config.psu_headroom) is False:
            result -= config.power_penalty
    if category in ("gpu", "case"):
        if gpu_fits(trial["gpu"], trial["case"]) is False:
            result -= config.clearance_penalty

    return max(result, 0.0)


def violations(build, config=DEFAULT_CONFIG) -> List[str]:
    """Hard violations present in ``build``, in VIOLATION_ORDER."""
    found = []
    if sockets_match(build["cpu"], build["motherboard"]) is False:
        found.append(SOCKET)
    if memory_matches(build["ram"], build["motherboard"]) is False:
        found.append(MEMORY)
    draw = estimate_system_draw(build, config)
    if psu_sufficient(build["psu"], draw, config.psu_headroom) is False:
        found.append(POWER)
    if gpu_fits(build["gpu"], build["case"]) is False:
        found.append(CLEARANCE)
    return found


def issues(build, config=DEFAULT_CONFIG) -> List[str]:
    """Human-readable hard violations, then any category left empty."""
    messages = [ISSUE_MESSAGES[v] for v in violations(build, config)]
    messages.extend(
        f"{category} slot could not be filled" for category in build.missing()
    )
    if messages:
        logger.debug("Compatibility issues: %s", messages)
    return messages
