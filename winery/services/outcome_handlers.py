"""Per-category side effects of activity progress and completion.

Handlers receive the activity (a copy owned by the tick) and a
``DomainContext`` holding every collaborator they may touch. They may mutate
``activity.params`` running state; the tick processor persists it after
``on_progress``. Anything raised here is reported as a ``CallbackFailure``
and never rolls back applied work.
"""

import random
from typing import Optional

from ulid import ULID

from winery.models.activity import Activity
from winery.models.game_state import GameDate, LoanOffer, Transaction
from winery.models.staff import Staff, StaffSkills
from winery.models.vineyard import Vineyard
from winery.models.wine_batch import WineBatch
from winery.models.work import WorkCategory
from winery.services.repositories import GameStateRepository, NotificationSink, Repository
from winery.utils.constants import (
    BASE_WEEKLY_WAGE,
    GROWING_SEASONS,
    LENDER_PARAMS,
    LENDER_TYPES,
    MIN_FINAL_HARVEST_KG,
    MIN_PARTIAL_HARVEST_KG,
    SKILL_WAGE_MULTIPLIER,
    STAFF_FIRST_NAMES,
    STAFF_LAST_NAMES,
    STAFF_NATIONALITIES,
    STAFF_SKILL_NAMES,
)
from winery.utils.errors import WineryError
from winery.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


class DomainContext:
    """Collaborators available to outcome handlers."""

    def __init__(
        self,
        vineyards: Repository[Vineyard],
        wine_batches: Repository[WineBatch],
        staff: Repository[Staff],
        staff_candidates: Repository[Staff],
        loan_offers: Repository[LoanOffer],
        game_state: GameStateRepository,
        notifications: NotificationSink,
        date: Optional[GameDate] = None,
        rng: Optional[random.Random] = None,
    ):
        self.vineyards = vineyards
        self.wine_batches = wine_batches
        self.staff = staff
        self.staff_candidates = staff_candidates
        self.loan_offers = loan_offers
        self.game_state = game_state
        self.notifications = notifications
        self.date = date or GameDate()
        self.rng = rng or random.Random()

    async def record_transaction(self, amount: float, description: str, category: str) -> None:
        """Add ``amount`` (negative for expenses) to the company's money."""
        state = await self.game_state.load()
        state.money += amount
        state.transactions.append(Transaction(
            amount=amount,
            description=description,
            category=category,
            week=self.date.week,
            season=self.date.season,
            year=self.date.year,
        ))
        await self.game_state.save(state)
        logger.info("Transaction recorded", amount=amount, description=description, money=state.money)


class OutcomeHandler:
    """Default handler: no side effects beyond a completion notice."""

    async def on_progress(self, activity: Activity, fraction: float, ctx: DomainContext) -> None:
        pass

    async def on_complete(self, activity: Activity, ctx: DomainContext) -> None:
        await ctx.notifications.notify(
            f"{activity.title} complete.",
            origin=activity.category.value,
            category="activity",
        )


async def require_vineyard(activity: Activity, ctx: DomainContext) -> Vineyard:
    vineyard = await ctx.vineyards.get(activity.target_id) if activity.target_id else None
    if vineyard is None:
        raise WineryError(f"Vineyard not found for activity {activity.activity_id}: {activity.target_id}")
    return vineyard


async def require_batch(batch_id: str, ctx: DomainContext) -> WineBatch:
    batch = await ctx.wine_batches.get(batch_id)
    if batch is None:
        raise WineryError(f"Wine batch not found: {batch_id}")
    return batch


class PlantingHandler(OutcomeHandler):
    """Vines go in progressively; density follows the completed fraction."""

    async def on_progress(self, activity: Activity, fraction: float, ctx: DomainContext) -> None:
        params = activity.params
        vineyard = await require_vineyard(activity, ctx)

        new_density = round(params.density * fraction)
        if new_density - params.planted_density >= 1:
            vineyard.density = new_density
            params.planted_density = new_density

        vineyard.status = f"Planting: {round(fraction * 100)}%"
        await ctx.vineyards.save(vineyard)

    async def on_complete(self, activity: Activity, ctx: DomainContext) -> None:
        params = activity.params
        vineyard = await require_vineyard(activity, ctx)

        vineyard.grape = params.grape
        vineyard.density = params.density
        vineyard.vine_age = 0
        vineyard.status = "Growing" if ctx.date.season in GROWING_SEASONS else "Planted"
        params.planted_density = params.density
        await ctx.vineyards.save(vineyard)

        await ctx.notifications.notify(
            f"Planting of {params.grape} in {vineyard.name} complete ({params.density} vines/ha).",
            origin=activity.category.value,
            category="vineyard",
        )


class HarvestingHandler(OutcomeHandler):
    """
    Grapes are batched as the harvest progresses.

    ``harvested_so_far`` in the params tracks what has already been turned
    into batches so each kg is harvested exactly once.
    """

    async def _create_batch(self, vineyard: Vineyard, grape: str, quantity: float, ctx: DomainContext) -> WineBatch:
        batch = WineBatch(
            batch_id=str(ULID()),
            vineyard_id=vineyard.vineyard_id,
            vineyard_name=vineyard.name,
            grape=grape,
            quantity=round(quantity, 2),
            harvested_week=ctx.date.week,
            harvested_season=ctx.date.season,
            harvested_year=ctx.date.year,
        )
        await ctx.wine_batches.save(batch)
        logger.info("Harvest batch created", batch_id=batch.batch_id, vineyard_id=vineyard.vineyard_id,
                    quantity=batch.quantity)
        return batch

    async def on_progress(self, activity: Activity, fraction: float, ctx: DomainContext) -> None:
        params = activity.params
        vineyard = await require_vineyard(activity, ctx)

        expected_so_far = params.expected_yield * fraction
        harvest_now = expected_so_far - params.harvested_so_far
        if harvest_now >= MIN_PARTIAL_HARVEST_KG:
            batch = await self._create_batch(vineyard, params.grape, harvest_now, ctx)
            params.harvested_so_far += harvest_now
            params.batch_ids.append(batch.batch_id)

        vineyard.status = f"Harvesting: {round(params.harvested_so_far)}/{round(params.expected_yield)}"
        await ctx.vineyards.save(vineyard)

    async def on_complete(self, activity: Activity, ctx: DomainContext) -> None:
        params = activity.params
        vineyard = await require_vineyard(activity, ctx)

        remaining = params.expected_yield - params.harvested_so_far
        if remaining > MIN_FINAL_HARVEST_KG:
            batch = await self._create_batch(vineyard, params.grape, remaining, ctx)
            params.harvested_so_far += remaining
            params.batch_ids.append(batch.batch_id)

        vineyard.status = "Dormant" if ctx.date.season == "Winter" else "Harvested"
        vineyard.ripeness = 0.0
        await ctx.vineyards.save(vineyard)

        await ctx.notifications.notify(
            f"Harvest of {vineyard.name} complete: {round(params.harvested_so_far)} kg of {params.grape} "
            f"in {len(params.batch_ids)} batches.",
            origin=activity.category.value,
            category="vineyard",
        )


class ClearingHandler(OutcomeHandler):
    async def on_complete(self, activity: Activity, ctx: DomainContext) -> None:
        params = activity.params
        vineyard = await require_vineyard(activity, ctx)

        vineyard.years_since_last_clearing = 0
        if "uproot-vines" in params.tasks:
            vineyard.density = round(vineyard.density * (1 - params.replanting_intensity / 100))
            if vineyard.density == 0:
                vineyard.grape = None
                vineyard.vine_age = None
        vineyard.status = "Cleared"
        await ctx.vineyards.save(vineyard)

        await ctx.notifications.notify(
            f"Clearing of {vineyard.name} complete.",
            origin=activity.category.value,
            category="vineyard",
        )


class UprootingHandler(OutcomeHandler):
    async def on_complete(self, activity: Activity, ctx: DomainContext) -> None:
        vineyard = await require_vineyard(activity, ctx)
        vineyard.grape = None
        vineyard.density = 0
        vineyard.vine_age = 0
        vineyard.status = "Barren"
        await ctx.vineyards.save(vineyard)

        await ctx.notifications.notify(
            f"Uprooting of {vineyard.name} complete.",
            origin=activity.category.value,
            category="vineyard",
        )


class CrushingHandler(OutcomeHandler):
    async def on_complete(self, activity: Activity, ctx: DomainContext) -> None:
        batch = await require_batch(activity.params.batch_id, ctx)
        batch.state = "must_ready"
        await ctx.wine_batches.save(batch)

        await ctx.notifications.notify(
            f"Crushing of {batch.grape} from {batch.vineyard_name} complete, must is ready.",
            origin=activity.category.value,
            category="winery",
        )


class FermentationHandler(OutcomeHandler):
    async def on_complete(self, activity: Activity, ctx: DomainContext) -> None:
        params = activity.params
        batch = await require_batch(params.batch_id, ctx)
        batch.state = "fermenting"
        batch.fermentation_method = params.method
        batch.fermentation_temperature = params.temperature
        await ctx.wine_batches.save(batch)

        if params.cost > 0:
            await ctx.record_transaction(
                -params.cost,
                f"Fermentation setup ({params.method}, {params.temperature})",
                "Winery Operations",
            )

        await ctx.notifications.notify(
            f"Fermentation of {batch.grape} from {batch.vineyard_name} started ({params.method}).",
            origin=activity.category.value,
            category="winery",
        )


def generate_skills(rng: random.Random, skill_level: float, specializations: list[str]) -> StaffSkills:
    """Random skills in ``[0.4 * level, 0.6 + 0.4 * level]``, bumped for specializations."""
    values = {}
    for skill in STAFF_SKILL_NAMES:
        value = rng.random() * 0.6 + skill_level * 0.4
        if skill in specializations:
            bumped = min(1.0, value + (1.0 - value) * (0.2 + skill_level * 0.2))
            value = max(bumped, min(1.0, 0.35 + skill_level * 0.3))
        values[skill] = round(value, 3)
    return StaffSkills(**values)


def generate_candidate(rng: random.Random, skill_level: float, specializations: list[str]) -> Staff:
    skills = generate_skills(rng, skill_level, specializations)
    wage = BASE_WEEKLY_WAGE + skills.average() * SKILL_WAGE_MULTIPLIER
    if specializations:
        wage *= 1.3 ** len(specializations)
    return Staff(
        staff_id=str(ULID()),
        name=f"{rng.choice(STAFF_FIRST_NAMES)} {rng.choice(STAFF_LAST_NAMES)}",
        skills=skills,
        specializations=list(specializations),
        wage=round(wage),
        nationality=rng.choice(STAFF_NATIONALITIES),
    )


class StaffSearchHandler(OutcomeHandler):
    async def on_complete(self, activity: Activity, ctx: DomainContext) -> None:
        params = activity.params
        candidates = [
            generate_candidate(ctx.rng, params.skill_level, params.specializations)
            for _ in range(params.number_of_candidates)
        ]
        params.candidates = candidates
        for candidate in candidates:
            await ctx.staff_candidates.save(candidate)

        if params.search_cost > 0:
            await ctx.record_transaction(-params.search_cost, "Staff search", "Staff")

        await ctx.notifications.notify(
            f"Staff search complete: found {len(candidates)} candidates.",
            origin=activity.category.value,
            category="staff",
        )


class HiringHandler(OutcomeHandler):
    async def on_complete(self, activity: Activity, ctx: DomainContext) -> None:
        candidate = activity.params.candidate
        await ctx.staff.save(candidate)
        await ctx.notifications.notify(
            f"{candidate.name} has joined the company (weekly wage {round(candidate.wage)}).",
            origin=activity.category.value,
            category="staff",
        )


def generate_loan_offer(rng: random.Random, lender_type: str) -> LoanOffer:
    interest_range, principal_range, duration_range = LENDER_PARAMS[lender_type]
    return LoanOffer(
        offer_id=str(ULID()),
        lender_type=lender_type,
        principal=round(rng.uniform(*principal_range), -3),
        interest_rate=round(rng.uniform(*interest_range), 4),
        duration_seasons=rng.randint(*duration_range),
    )


class LenderSearchHandler(OutcomeHandler):
    async def on_complete(self, activity: Activity, ctx: DomainContext) -> None:
        params = activity.params
        lender_types = [t for t in params.lender_types if t in LENDER_PARAMS] or list(LENDER_TYPES)

        offers = [
            generate_loan_offer(ctx.rng, ctx.rng.choice(lender_types))
            for _ in range(params.number_of_offers)
        ]
        params.offers = offers
        for offer in offers:
            await ctx.loan_offers.save(offer)

        if params.search_cost > 0:
            await ctx.record_transaction(-params.search_cost, "Lender search", "Finance")

        await ctx.notifications.notify(
            f"Lender search complete! Found {len(offers)} loan offers.",
            origin=activity.category.value,
            category="finance",
        )


class BookkeepingHandler(OutcomeHandler):
    async def on_complete(self, activity: Activity, ctx: DomainContext) -> None:
        params = activity.params
        await ctx.notifications.notify(
            f"Bookkeeping for {params.season} {params.year} complete "
            f"({params.transaction_count} transactions processed).",
            origin=activity.category.value,
            category="finance",
        )


OUTCOME_HANDLERS: dict[WorkCategory, OutcomeHandler] = {
    WorkCategory.PLANTING: PlantingHandler(),
    WorkCategory.HARVESTING: HarvestingHandler(),
    WorkCategory.CLEARING: ClearingHandler(),
    WorkCategory.UPROOTING: UprootingHandler(),
    WorkCategory.CRUSHING: CrushingHandler(),
    WorkCategory.FERMENTATION: FermentationHandler(),
    WorkCategory.STAFF_SEARCH: StaffSearchHandler(),
    WorkCategory.ADMINISTRATION: HiringHandler(),
    WorkCategory.LENDER_SEARCH: LenderSearchHandler(),
    WorkCategory.BOOKKEEPING: BookkeepingHandler(),
}
