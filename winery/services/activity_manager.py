"""Activity manager - the entry point callers use to run activities."""

import os
from typing import Any, Optional, Union
from pydantic import BaseModel, ValidationError

from winery.models.activity import Activity, ActivityProgress
from winery.models.work import WorkCategory, WorkEstimate
from winery.services.activity_registry import ActivityRegistry
from winery.services.allocation import StaffAllocationResolver
from winery.services.outcome_handlers import OUTCOME_HANDLERS, DomainContext, OutcomeHandler
from winery.services.repositories import (
    ActivityStore,
    InMemoryActivityStore,
    InMemoryGameStateRepository,
    InMemoryNotificationSink,
    in_memory_loan_offers,
    in_memory_staff,
    in_memory_vineyards,
    in_memory_wine_batches,
)
from winery.services.staff_capacity import StaffCapacityPlanner, estimate_weeks_remaining, format_time_remaining
from winery.services.supabase_client import (
    SupabaseActivityStore,
    SupabaseGameStateRepository,
    SupabaseNotificationSink,
    supabase_loan_offers,
    supabase_staff,
    supabase_staff_candidates,
    supabase_vineyards,
    supabase_wine_batches,
)
from winery.services.tick_processor import TickProcessor, TickReport
from winery.utils.errors import ActivityNotFoundError, InvalidActivityError, NotCancellableError
from winery.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

# Vineyard operations are mutually exclusive on the same vineyard
VINEYARD_OPERATIONS = frozenset({
    WorkCategory.PLANTING,
    WorkCategory.HARVESTING,
    WorkCategory.CLEARING,
    WorkCategory.UPROOTING,
})


class ActivityManager:
    """
    Creates, cancels and advances activities.

    Owns the registry, the staff capacity planner and the tick processor and
    shares one ``DomainContext`` with the outcome handlers.
    """

    def __init__(
        self,
        store: ActivityStore,
        ctx: DomainContext,
        handlers: Optional[dict[WorkCategory, OutcomeHandler]] = None,
        staff_teams: Optional[dict[WorkCategory, list[str]]] = None,
    ):
        self.ctx = ctx
        self.registry = ActivityRegistry(store)
        self.planner = StaffCapacityPlanner(ctx.staff)
        self.processor = TickProcessor(
            self.registry,
            StaffAllocationResolver(),
            handlers or OUTCOME_HANDLERS,
            ctx,
        )
        self.staff_teams: dict[WorkCategory, list[str]] = dict(staff_teams or {})

    async def initialize(self) -> None:
        """
        Load live activities and the current game date.

        Pending writes from a failed tick are retried first; the store is
        only reloaded once it holds them, otherwise ``PersistenceError``.
        """
        if self.registry.unsynced_ids:
            await self.registry.sync()
        state = await self.ctx.game_state.load()
        self.ctx.date = state.date
        count = await self.registry.load()
        logger.info("Activity manager initialized", activity_count=count, date=str(self.ctx.date))

    async def create_activity(
        self,
        category: WorkCategory,
        title: str,
        params: Union[BaseModel, dict[str, Any]],
        total_work: Optional[float] = None,
        estimate: Optional[WorkEstimate] = None,
        target_id: Optional[str] = None,
        is_cancellable: bool = True,
        assigned_staff_ids: Optional[list[str]] = None,
    ) -> Activity:
        category = WorkCategory(category)
        work = estimate.total_work if estimate is not None else total_work
        if work is None or work <= 0:
            raise InvalidActivityError(f"Cannot create {category.value} activity with total work {work}")

        if target_id:
            self._check_target_available(category, target_id)

        if assigned_staff_ids is None:
            assigned_staff_ids = list(self.staff_teams.get(category, []))

        if isinstance(params, BaseModel):
            params = params.model_dump()

        try:
            activity = Activity(
                category=category,
                title=title,
                target_id=target_id,
                total_work=work,
                params=params,
                is_cancellable=is_cancellable,
                assigned_staff_ids=assigned_staff_ids,
                game_week=self.ctx.date.week,
                game_season=self.ctx.date.season,
                game_year=self.ctx.date.year,
            )
        except ValidationError as e:
            raise InvalidActivityError(f"Invalid {category.value} activity: {e}")

        await self.registry.add(activity)
        await self.ctx.notifications.notify(
            f"Started {title}.",
            origin="activity_manager",
            category="activity",
        )
        return activity

    def _check_target_available(self, category: WorkCategory, target_id: str) -> None:
        for existing in self.registry.get_by_target(target_id):
            conflict = existing.category == category or (
                category in VINEYARD_OPERATIONS and existing.category in VINEYARD_OPERATIONS
            )
            if conflict:
                raise InvalidActivityError(
                    f"Target {target_id} already has a {existing.category.value} activity in progress"
                )

    async def cancel_activity(self, activity_id: str) -> bool:
        """Remove an activity without running its completion effects."""
        activity = self.registry.get_by_id(activity_id)
        if activity is None:
            raise ActivityNotFoundError(activity_id)
        if not activity.is_cancellable:
            raise NotCancellableError(activity_id)

        await self.registry.remove(activity_id)
        logger.info("Activity cancelled", activity_id=activity_id, applied_work=activity.applied_work)
        await self.ctx.notifications.notify(
            f"Cancelled {activity.title}.",
            origin="activity_manager",
            category="activity",
        )
        return True

    async def assign_staff(self, activity_id: str, staff_ids: list[str]) -> Activity:
        """Replace the activity's team; takes effect from the next tick."""
        activity = await self.registry.update(activity_id, assigned_staff_ids=list(dict.fromkeys(staff_ids)))
        logger.info("Staff assigned", activity_id=activity_id, staff_count=len(activity.assigned_staff_ids))
        return activity

    def set_staff_team(self, category: WorkCategory, staff_ids: list[str]) -> None:
        """Default team for new activities of ``category``."""
        self.staff_teams[WorkCategory(category)] = list(staff_ids)

    def get_activities(self) -> list[Activity]:
        return self.registry.get_all()

    def get_activities_for_target(self, target_id: str) -> list[Activity]:
        return self.registry.get_by_target(target_id)

    async def get_activity_progress(self, activity_id: str) -> ActivityProgress:
        activity = self.registry.get_by_id(activity_id)
        if activity is None:
            raise ActivityNotFoundError(activity_id)

        capacity = await self.planner.capacity_for(activity, self.registry.get_all())
        weeks = estimate_weeks_remaining(activity, capacity)
        return ActivityProgress(
            activity_id=activity_id,
            progress=round(activity.fraction * 100, 2),
            is_complete=activity.applied_work >= activity.total_work,
            time_remaining=format_time_remaining(weeks),
        )

    async def advance_week(self) -> TickReport:
        """Run one tick at the current date, then move the clock forward a week."""
        state = await self.ctx.game_state.load()
        self.ctx.date = state.date

        capacities = await self.planner.compute_capacities(self.registry.get_all())
        report = await self.processor.process_tick(capacities)

        # Handlers may have recorded transactions during the tick
        state = await self.ctx.game_state.load()
        state.date = state.date.advance()
        await self.ctx.game_state.save(state)
        self.ctx.date = state.date

        logger.info(
            "Week advanced",
            date=str(state.date),
            completed=len(report.completed),
            failures=len(report.failures),
        )
        return report


def create_in_memory_context(**overrides: Any) -> DomainContext:
    """DomainContext with empty in-memory collaborators."""
    kwargs: dict[str, Any] = {
        "vineyards": in_memory_vineyards(),
        "wine_batches": in_memory_wine_batches(),
        "staff": in_memory_staff(),
        "staff_candidates": in_memory_staff(),
        "loan_offers": in_memory_loan_offers(),
        "game_state": InMemoryGameStateRepository(),
        "notifications": InMemoryNotificationSink(),
    }
    kwargs.update(overrides)
    return DomainContext(**kwargs)


def create_supabase_manager(game_id: Optional[str] = None) -> ActivityManager:
    ctx = DomainContext(
        vineyards=supabase_vineyards(game_id),
        wine_batches=supabase_wine_batches(game_id),
        staff=supabase_staff(game_id),
        staff_candidates=supabase_staff_candidates(game_id),
        loan_offers=supabase_loan_offers(game_id),
        game_state=SupabaseGameStateRepository(game_id),
        notifications=SupabaseNotificationSink(game_id),
    )
    return ActivityManager(SupabaseActivityStore(game_id), ctx)


def create_activity_manager(store_kind: Optional[str] = None) -> ActivityManager:
    """Build a manager for ``WINERY_STORE`` (``memory`` or ``supabase``)."""
    store_kind = (store_kind or os.environ.get("WINERY_STORE", "memory")).lower()
    if store_kind == "supabase":
        return create_supabase_manager()
    if store_kind == "memory":
        return ActivityManager(InMemoryActivityStore(), create_in_memory_context())
    raise ValueError(f"Unknown WINERY_STORE: {store_kind}")


# Shared manager for the API handlers (singleton pattern)
_manager: Optional[ActivityManager] = None


def get_activity_manager() -> ActivityManager:
    """Get or create the process-wide manager."""
    global _manager
    if _manager is None:
        _manager = create_activity_manager()
        logger.info("Activity manager created", store=os.environ.get("WINERY_STORE", "memory"))
    return _manager


def reset_activity_manager() -> None:
    global _manager
    _manager = None
