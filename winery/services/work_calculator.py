"""Generic work formula shared by every category estimator."""

import math
from typing import Iterable, Optional

from winery.utils.constants import (
    BASE_WORK_UNITS,
    DEFAULT_VINE_DENSITY,
    GRAPE_FRAGILITY,
    SOIL_DIFFICULTY_MODIFIERS,
)


def calculate_total_work(
    amount: float,
    rate: float,
    initial_work: float = 0,
    density: Optional[float] = None,
    use_density_adjustment: bool = False,
    work_modifiers: Iterable[float] = (),
) -> float:
    """
    Convert an amount of something to process into work units.

    ``rate`` is the amount one standard staff member processes per week.
    Density-based tasks process proportionally slower when vines are planted
    denser than DEFAULT_VINE_DENSITY. Each modifier scales the work by
    ``1 + modifier``. The result is rounded up to a whole work unit.
    """
    adjusted_rate = rate
    if use_density_adjustment and density and density > 0:
        adjusted_rate = rate / (density / DEFAULT_VINE_DENSITY)

    work_weeks = amount / adjusted_rate
    base_work = initial_work + work_weeks * BASE_WORK_UNITS

    total = base_work
    for modifier in work_modifiers:
        total *= 1 + modifier

    return float(math.ceil(total))


def fragility_modifier(grape: Optional[str]) -> float:
    """0..1, fragile grapes need more careful handling."""
    if not grape:
        return 0.0
    return GRAPE_FRAGILITY.get(grape, 0.0)


def soil_modifier(soil: Iterable[str]) -> float:
    """Average difficulty of the known soil types, 0 when none are known."""
    known = [SOIL_DIFFICULTY_MODIFIERS[s] for s in soil if s in SOIL_DIFFICULTY_MODIFIERS]
    if not known:
        return 0.0
    return sum(known) / len(known)


def overgrowth_modifier(years: float, base_increase: float = 0.10, decay_rate: float = 0.5, cap: float = 2.0) -> float:
    """Diminishing-returns penalty for years without maintenance."""
    if not years or years <= 0:
        return 0.0
    max_modifier = base_increase / decay_rate
    curve = max_modifier * (1 - math.pow(1 - decay_rate, years))
    return min(curve, cap)


def vine_age_modifier(vine_age: Optional[int]) -> float:
    """Older vines are harder to remove, up to +180% at 100 years."""
    if not vine_age or vine_age <= 0:
        return 0.0
    age_ratio = min(vine_age / 100, 1)
    return 1.8 * (1 - math.exp(-3 * age_ratio))
