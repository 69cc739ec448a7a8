"""Per-category work estimators.

Every estimator is a pure function of its input model: no I/O and no clock
reads, so previews can be computed any number of times. The engine only
consumes ``WorkEstimate.total_work``; the factors exist for the UI.
"""

import math
from typing import Any, Callable, Union
from pydantic import BaseModel, Field, ValidationError

from winery.models.game_state import Season
from winery.models.staff import Staff
from winery.models.vineyard import Vineyard
from winery.models.work import WorkCategory, WorkEstimate, WorkFactor
from winery.services.work_calculator import (
    calculate_total_work,
    fragility_modifier,
    overgrowth_modifier,
    soil_modifier,
    vine_age_modifier,
)
from winery.utils.constants import (
    BASE_WORK_UNITS,
    BASE_WEEKLY_WAGE,
    CLEARING_SEASON_MODIFIERS,
    CLEARING_TASKS,
    DENSITY_BASED_CATEGORIES,
    FERMENTATION_METHODS,
    FERMENTATION_TEMPERATURES,
    HARVEST_YIELD_RATE,
    INITIAL_WORK,
    LENDER_TYPES,
    PLANTING_SEASON_MODIFIERS,
    SKILL_WAGE_MULTIPLIER,
    TASK_RATES,
)
from winery.utils.errors import InvalidActivityError


class PlantingWorkInput(BaseModel):
    vineyard: Vineyard
    grape: str
    density: int = Field(..., gt=0)
    season: Season = "Spring"


class HarvestingWorkInput(BaseModel):
    vineyard: Vineyard


class ClearingWorkInput(BaseModel):
    vineyard: Vineyard
    tasks: list[str]
    replanting_intensity: float = Field(default=100, ge=0, le=100)
    season: Season = "Spring"


class UprootingWorkInput(BaseModel):
    vineyard: Vineyard


class CrushingWorkInput(BaseModel):
    quantity: float = Field(..., ge=0, description="kg of grapes")
    destemming: bool = True
    cold_soak: bool = False


class FermentationWorkInput(BaseModel):
    quantity: float = Field(..., ge=0, description="kg of must")
    method: str = "Basic"
    temperature: str = "Ambient"


class StaffSearchWorkInput(BaseModel):
    number_of_candidates: int = Field(..., ge=0)
    skill_level: float = Field(..., ge=0, le=1)
    specializations: list[str] = Field(default_factory=list)


class HiringWorkInput(BaseModel):
    candidate: Staff


class LenderSearchWorkInput(BaseModel):
    number_of_offers: int = 3
    lender_types: list[str] = Field(default_factory=list)


class BookkeepingWorkInput(BaseModel):
    transaction_count: int = Field(..., ge=0)
    carry_over_work: float = Field(default=0, ge=0, description="Unfinished work from last season")


def _vineyard_modifiers(vineyard: Vineyard, grape: str | None, factors: list[WorkFactor], difficulty: str) -> list[float]:
    """Fragility, altitude and soil modifiers shared by the vineyard estimators."""
    fragility = fragility_modifier(grape)
    altitude = vineyard.altitude_rating
    soil = soil_modifier(vineyard.soil)

    if fragility > 0:
        factors.append(WorkFactor(
            label="Grape Fragility Impact",
            value=f"{round(fragility * 100)}% fragile",
            modifier=fragility,
            modifier_label="grape fragility",
        ))
    if altitude > 0:
        factors.append(WorkFactor(
            label="Altitude Impact",
            value="Difficult conditions",
            modifier=altitude,
            modifier_label=difficulty,
        ))
    factors.append(WorkFactor(
        label="Soil Type",
        value=", ".join(vineyard.soil) or "Unknown",
        modifier=soil,
        modifier_label="soil difficulty",
    ))
    return [fragility, altitude, soil]


def estimate_planting_work(inputs: PlantingWorkInput) -> WorkEstimate:
    vineyard = inputs.vineyard
    if vineyard.hectares <= 0:
        return WorkEstimate(total_work=0)

    category = WorkCategory.PLANTING
    rate = TASK_RATES[category]
    initial_work = INITIAL_WORK[category]

    factors = [
        WorkFactor(label="Area to Plant", value=vineyard.hectares, unit="hectares", is_primary=True),
        WorkFactor(label="Vine Density", value=inputs.density, unit="vines/ha", is_primary=True),
        WorkFactor(label="Base Rate", value=rate, unit="ha/week"),
        WorkFactor(label="Initial Setup Work", value=initial_work, unit="work units"),
    ]
    modifiers = _vineyard_modifiers(vineyard, inputs.grape, factors, "planting difficulty")

    seasonal = PLANTING_SEASON_MODIFIERS.get(inputs.season, 0.0)
    if seasonal > 0:
        factors.append(WorkFactor(
            label="Seasonal Effect",
            value=f"{inputs.season} season",
            modifier=seasonal,
            modifier_label="planting difficulty",
        ))
    modifiers.append(seasonal)

    overgrowth = min(0.6, overgrowth_modifier(vineyard.years_since_last_clearing))
    if overgrowth > 0:
        factors.append(WorkFactor(
            label="Vegetation Overgrowth Since Clearing",
            value=f"{vineyard.years_since_last_clearing} years",
            modifier=overgrowth,
            modifier_label="overgrowth effect",
        ))
    modifiers.append(overgrowth)

    total_work = calculate_total_work(
        vineyard.hectares,
        rate=rate,
        initial_work=initial_work,
        density=inputs.density,
        use_density_adjustment=category in DENSITY_BASED_CATEGORIES,
        work_modifiers=modifiers,
    )
    return WorkEstimate(total_work=total_work, factors=tuple(factors))


def estimate_harvesting_work(inputs: HarvestingWorkInput) -> WorkEstimate:
    vineyard = inputs.vineyard
    if vineyard.hectares <= 0 or not vineyard.grape:
        return WorkEstimate(total_work=0)

    initial_work = INITIAL_WORK[WorkCategory.HARVESTING]
    base_work = math.ceil(vineyard.expected_yield / HARVEST_YIELD_RATE * BASE_WORK_UNITS)

    factors = [
        WorkFactor(label="Expected Yield", value=vineyard.expected_yield, unit="kg", is_primary=True),
        WorkFactor(label="Vineyard Area", value=vineyard.hectares, unit="hectares", is_primary=True),
        WorkFactor(label="Harvest Rate", value=HARVEST_YIELD_RATE, unit="kg/week"),
        WorkFactor(label="Base Harvest Work", value=base_work, unit="work units"),
        WorkFactor(label="Initial Setup Work", value=initial_work, unit="work units"),
    ]
    modifiers = _vineyard_modifiers(vineyard, vineyard.grape, factors, "harvest difficulty")

    total_work = float(base_work + initial_work)
    for modifier in modifiers:
        total_work *= 1 + modifier

    return WorkEstimate(total_work=float(math.ceil(total_work)), factors=tuple(factors))


def estimate_clearing_work(inputs: ClearingWorkInput) -> WorkEstimate:
    vineyard = inputs.vineyard
    soil = soil_modifier(vineyard.soil)
    terrain = vineyard.altitude_rating * 1.5
    overgrowth = overgrowth_modifier(vineyard.years_since_last_clearing)

    factors = [
        WorkFactor(label="Vineyard Size", value=vineyard.hectares, unit="hectares", is_primary=True),
        WorkFactor(label="Soil Type", value=", ".join(vineyard.soil) or "Unknown",
                   modifier=soil, modifier_label="soil difficulty"),
    ]
    if terrain > 0.01:
        factors.append(WorkFactor(label="Terrain Difficulty", value="High altitude",
                                  modifier=terrain, modifier_label="altitude effect"))
    if overgrowth > 0.01:
        factors.append(WorkFactor(
            label="Overgrowth",
            value=f"{vineyard.years_since_last_clearing} years since last clearing",
            modifier=overgrowth,
            modifier_label="overgrowth effect",
        ))

    total_work = 0.0
    for task_id in inputs.tasks:
        if task_id not in CLEARING_TASKS:
            continue
        name, rate, initial_work = CLEARING_TASKS[task_id]
        replanting = task_id in ("uproot-vines", "replant-vines")

        amount = vineyard.hectares
        if replanting:
            amount *= inputs.replanting_intensity / 100
        if amount <= 0:
            continue

        modifiers = [soil, terrain, overgrowth]
        seasonal = 0.0
        if task_id in ("clear-vegetation", "remove-debris"):
            seasonal = CLEARING_SEASON_MODIFIERS.get(inputs.season, 0.0)
        modifiers.append(seasonal)
        if replanting:
            modifiers.append(vine_age_modifier(vineyard.vine_age))

        task_work = calculate_total_work(
            amount,
            rate=rate,
            initial_work=initial_work,
            density=vineyard.density,
            use_density_adjustment=replanting,
            work_modifiers=modifiers,
        )
        total_work += task_work
        factors.append(WorkFactor(label=name, value=amount, unit="hectares", is_primary=True))

    return WorkEstimate(total_work=round(total_work), factors=tuple(factors))


def estimate_uprooting_work(inputs: UprootingWorkInput) -> WorkEstimate:
    vineyard = inputs.vineyard
    if vineyard.hectares <= 0 or not vineyard.grape:
        return WorkEstimate(total_work=0)

    category = WorkCategory.UPROOTING
    rate = TASK_RATES[category]
    initial_work = INITIAL_WORK[category]
    age = vine_age_modifier(vineyard.vine_age)
    soil = soil_modifier(vineyard.soil)

    factors = [
        WorkFactor(label="Area to Uproot", value=vineyard.hectares, unit="hectares", is_primary=True),
        WorkFactor(label="Vine Density", value=vineyard.density, unit="vines/ha", is_primary=True),
        WorkFactor(label="Base Rate", value=rate, unit="ha/week"),
        WorkFactor(label="Initial Setup Work", value=initial_work, unit="work units"),
        WorkFactor(label="Soil Type", value=", ".join(vineyard.soil) or "Unknown",
                   modifier=soil, modifier_label="soil difficulty"),
    ]
    if age > 0.01:
        factors.append(WorkFactor(label="Vine Age", value=f"{vineyard.vine_age} years",
                                  modifier=age, modifier_label="removal difficulty"))

    total_work = calculate_total_work(
        vineyard.hectares,
        rate=rate,
        initial_work=initial_work,
        density=vineyard.density,
        use_density_adjustment=True,
        work_modifiers=[vineyard.altitude_rating, soil, age],
    )
    return WorkEstimate(total_work=total_work, factors=tuple(factors))


def estimate_crushing_work(inputs: CrushingWorkInput) -> WorkEstimate:
    if inputs.quantity <= 0:
        return WorkEstimate(total_work=0)

    category = WorkCategory.CRUSHING
    tons = inputs.quantity / 1000
    rate = TASK_RATES[category]
    initial_work = INITIAL_WORK[category]

    factors = [
        WorkFactor(label="Grape Quantity", value=inputs.quantity, unit="kg", is_primary=True),
        WorkFactor(label="Processing Volume", value=tons, unit="tons", is_primary=True),
        WorkFactor(label="Crushing Rate", value=rate, unit="tons/week"),
        WorkFactor(label="Initial Setup Work", value=initial_work, unit="work units"),
    ]
    modifiers = []
    if inputs.destemming:
        modifiers.append(0.1)
        factors.append(WorkFactor(label="Destemming", value="Yes", modifier=0.1, modifier_label="extra handling"))
    if inputs.cold_soak:
        modifiers.append(0.15)
        factors.append(WorkFactor(label="Cold Soak", value="Yes", modifier=0.15, modifier_label="extra handling"))

    total_work = calculate_total_work(tons, rate=rate, initial_work=initial_work, work_modifiers=modifiers)
    return WorkEstimate(total_work=total_work, factors=tuple(factors))


def estimate_fermentation_work(inputs: FermentationWorkInput) -> WorkEstimate:
    if inputs.quantity <= 0:
        return WorkEstimate(total_work=0)
    if inputs.method not in FERMENTATION_METHODS:
        raise InvalidActivityError(f"Unknown fermentation method: {inputs.method}")

    category = WorkCategory.FERMENTATION
    volume = inputs.quantity / 1000
    rate = TASK_RATES[category]
    initial_work = INITIAL_WORK[category]
    multiplier, _cost = FERMENTATION_METHODS[inputs.method]
    method_modifier = multiplier - 1

    factors = [
        WorkFactor(label="Must Quantity", value=inputs.quantity, unit="kg", is_primary=True),
        WorkFactor(label="Processing Volume", value=volume, unit="kL", is_primary=True),
        WorkFactor(label="Base Fermentation Rate", value=rate, unit="kL/week"),
        WorkFactor(label="Initial Setup Work", value=initial_work, unit="work units"),
        WorkFactor(
            label="Fermentation Method",
            value=inputs.method,
            modifier=method_modifier or None,
            modifier_label="setup complexity" if method_modifier else None,
        ),
        WorkFactor(label="Temperature Control", value=inputs.temperature),
    ]

    total_work = calculate_total_work(
        volume,
        rate=rate,
        initial_work=initial_work,
        work_modifiers=[method_modifier] if method_modifier else [],
    )
    return WorkEstimate(total_work=total_work, factors=tuple(factors))


def fermentation_cost(method: str, temperature: str) -> float:
    """Equipment cost charged when fermentation starts."""
    _multiplier, method_cost = FERMENTATION_METHODS.get(method, (1.0, 0))
    return method_cost + FERMENTATION_TEMPERATURES.get(temperature, 0)


def estimate_staff_search_work(inputs: StaffSearchWorkInput) -> WorkEstimate:
    if inputs.number_of_candidates <= 0:
        return WorkEstimate(total_work=0)

    category = WorkCategory.STAFF_SEARCH
    rate = TASK_RATES[category]
    initial_work = INITIAL_WORK[category]
    skill_modifier = (inputs.skill_level - 0.5) * 0.4 if inputs.skill_level > 0.5 else 0.0
    spec_modifier = math.pow(1.3, len(inputs.specializations)) - 1 if inputs.specializations else 0.0

    factors = [
        WorkFactor(label="Candidates", value=inputs.number_of_candidates, unit="candidates", is_primary=True),
        WorkFactor(label="Search Rate", value=rate, unit="candidates/week"),
        WorkFactor(label="Initial Setup Work", value=initial_work, unit="work units"),
    ]
    if skill_modifier > 0:
        factors.append(WorkFactor(label="Skill Level", value=f"{round(inputs.skill_level * 100)}%",
                                  modifier=skill_modifier, modifier_label="selective search"))
    if spec_modifier > 0:
        factors.append(WorkFactor(label="Specializations", value=", ".join(inputs.specializations),
                                  modifier=spec_modifier, modifier_label="specialist search"))

    total_work = calculate_total_work(
        inputs.number_of_candidates,
        rate=rate,
        initial_work=initial_work,
        work_modifiers=[skill_modifier, spec_modifier],
    )
    return WorkEstimate(total_work=total_work, factors=tuple(factors))


def calculate_staff_search_cost(number_of_candidates: int, skill_level: float, specializations: list[str]) -> float:
    """Search cost grows with candidates^1.5, skill^1.8 and 2x per specialization."""
    skill_multiplier = 0.5 + skill_level * 9.5
    candidate_scaling = math.pow(number_of_candidates, 1.5)
    skill_scaling = math.pow(skill_multiplier, 1.8)
    specialization_multiplier = math.pow(2, len(specializations)) if specializations else 1
    return float(round(2000 * candidate_scaling * skill_scaling * specialization_multiplier))


def estimate_hiring_work(inputs: HiringWorkInput) -> WorkEstimate:
    candidate = inputs.candidate
    category = WorkCategory.ADMINISTRATION
    rate = TASK_RATES[category]
    initial_work = INITIAL_WORK[category]

    avg_skill = candidate.skills.average()
    skill_modifier = math.pow(avg_skill * 2, 2) - 1
    spec_modifier = math.pow(1.5, len(candidate.specializations)) - 1
    wage = candidate.wage or BASE_WEEKLY_WAGE + avg_skill * SKILL_WAGE_MULTIPLIER
    wage_modifier = math.pow(wage / 1000, 2) - 1

    factors = [
        WorkFactor(label="Candidate", value=candidate.name, is_primary=True),
        WorkFactor(label="Average Skill", value=f"{round(avg_skill * 100)}%",
                   modifier=skill_modifier, modifier_label="skill level effect"),
        WorkFactor(label="Weekly Wage", value=round(wage), modifier=wage_modifier,
                   modifier_label="contract negotiation"),
    ]
    if candidate.specializations:
        factors.append(WorkFactor(label="Specializations", value=", ".join(candidate.specializations),
                                  modifier=spec_modifier, modifier_label="specialist contract"))

    total_work = calculate_total_work(
        1,
        rate=rate,
        initial_work=initial_work,
        work_modifiers=[skill_modifier, spec_modifier, wage_modifier],
    )
    return WorkEstimate(total_work=total_work, factors=tuple(factors))


def estimate_lender_search_work(inputs: LenderSearchWorkInput) -> WorkEstimate:
    category = WorkCategory.LENDER_SEARCH
    rate = TASK_RATES[category]
    initial_work = INITIAL_WORK[category]

    number_of_offers = max(3, min(10, inputs.number_of_offers))
    offers_multiplier = 1 + (number_of_offers - 3) * 0.2

    lender_type_multiplier = 1.0
    selected = len(inputs.lender_types)
    if 0 < selected < len(LENDER_TYPES):
        restriction_ratio = (len(LENDER_TYPES) - selected) / len(LENDER_TYPES)
        lender_type_multiplier = 1 + restriction_ratio * 0.5

    factors = [
        WorkFactor(label="Loan Offers", value=number_of_offers, unit="offers", is_primary=True),
        WorkFactor(label="Processing Rate", value=rate, unit="searches/week"),
        WorkFactor(label="Initial Setup Work", value=initial_work, unit="work units"),
    ]
    if offers_multiplier > 1:
        factors.append(WorkFactor(label="Number of Offers", value=f"{number_of_offers} offers",
                                  modifier=offers_multiplier - 1, modifier_label="multiple offers complexity"))
    if lender_type_multiplier > 1:
        factors.append(WorkFactor(label="Lender Type Filter", value=f"{selected}/{len(LENDER_TYPES)} types selected",
                                  modifier=lender_type_multiplier - 1,
                                  modifier_label="selective filtering complexity"))

    total_work = calculate_total_work(
        1,
        rate=rate,
        initial_work=initial_work,
        work_modifiers=[offers_multiplier * lender_type_multiplier - 1],
    )
    return WorkEstimate(total_work=total_work, factors=tuple(factors))


def calculate_lender_search_cost(number_of_offers: int, lender_types: list[str]) -> float:
    number_of_offers = max(3, min(10, number_of_offers))
    offers_cost_multiplier = 1 + (number_of_offers - 3) * 0.3

    lender_type_multiplier = 1.0
    selected = len(lender_types)
    if 0 < selected < len(LENDER_TYPES):
        restriction_ratio = (len(LENDER_TYPES) - selected) / len(LENDER_TYPES)
        lender_type_multiplier = 1 + restriction_ratio * 0.4

    return float(round(500 * offers_cost_multiplier * lender_type_multiplier))


def estimate_bookkeeping_work(inputs: BookkeepingWorkInput) -> WorkEstimate:
    category = WorkCategory.BOOKKEEPING
    rate = TASK_RATES[category]
    initial_work = INITIAL_WORK[category]

    base_work = calculate_total_work(inputs.transaction_count, rate=rate, initial_work=initial_work)
    factors = [
        WorkFactor(label="Transactions to Process", value=inputs.transaction_count,
                   unit="transactions", is_primary=True),
        WorkFactor(label="Processing Rate", value=rate, unit="transactions/week"),
        WorkFactor(label="Initial Setup Work", value=initial_work, unit="work units"),
    ]
    if inputs.carry_over_work > 0:
        factors.append(WorkFactor(label="Carry-over Work", value=inputs.carry_over_work,
                                  unit="work units", is_primary=True))

    return WorkEstimate(total_work=base_work + inputs.carry_over_work, factors=tuple(factors))


EstimatorInput = Union[
    PlantingWorkInput,
    HarvestingWorkInput,
    ClearingWorkInput,
    UprootingWorkInput,
    CrushingWorkInput,
    FermentationWorkInput,
    StaffSearchWorkInput,
    HiringWorkInput,
    LenderSearchWorkInput,
    BookkeepingWorkInput,
]

WORK_ESTIMATORS: dict[WorkCategory, tuple[type[BaseModel], Callable[[Any], WorkEstimate]]] = {
    WorkCategory.PLANTING: (PlantingWorkInput, estimate_planting_work),
    WorkCategory.HARVESTING: (HarvestingWorkInput, estimate_harvesting_work),
    WorkCategory.CLEARING: (ClearingWorkInput, estimate_clearing_work),
    WorkCategory.UPROOTING: (UprootingWorkInput, estimate_uprooting_work),
    WorkCategory.CRUSHING: (CrushingWorkInput, estimate_crushing_work),
    WorkCategory.FERMENTATION: (FermentationWorkInput, estimate_fermentation_work),
    WorkCategory.STAFF_SEARCH: (StaffSearchWorkInput, estimate_staff_search_work),
    WorkCategory.ADMINISTRATION: (HiringWorkInput, estimate_hiring_work),
    WorkCategory.LENDER_SEARCH: (LenderSearchWorkInput, estimate_lender_search_work),
    WorkCategory.BOOKKEEPING: (BookkeepingWorkInput, estimate_bookkeeping_work),
}


def estimate(category: WorkCategory, inputs: Union[EstimatorInput, dict]) -> WorkEstimate:
    """
    Estimate the work for an activity of ``category``.

    ``inputs`` is the category's input model or a dict that validates into it.
    """
    try:
        input_model, estimator = WORK_ESTIMATORS[WorkCategory(category)]
    except (KeyError, ValueError):
        raise InvalidActivityError(f"No work estimator for category: {category}")

    if isinstance(inputs, dict):
        try:
            inputs = input_model.model_validate(inputs)
        except ValidationError as e:
            raise InvalidActivityError(f"Invalid {category} estimate inputs: {e}")
    elif not isinstance(inputs, input_model):
        raise InvalidActivityError(
            f"{category} estimator expects {input_model.__name__}, got {type(inputs).__name__}"
        )

    return estimator(inputs)
