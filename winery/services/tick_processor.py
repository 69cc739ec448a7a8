"""Tick processor - applies one week of work to every live activity."""

from typing import Any, Mapping, Optional
from pydantic import BaseModel, ConfigDict, Field

from winery.models.game_state import GameDate
from winery.models.work import WorkCategory
from winery.services.activity_registry import ActivityRegistry
from winery.services.allocation import Allocation, StaffAllocationResolver
from winery.services.outcome_handlers import DomainContext, OutcomeHandler
from winery.utils.errors import CallbackFailure
from winery.utils.logging import correlation_context, get_structured_logger, log_timing

logger = get_structured_logger(__name__)


class ActivityTickResult(BaseModel):
    """What one tick did to one activity."""
    activity_id: str
    category: WorkCategory
    delta: float = Field(..., description="Work actually consumed this tick")
    applied_work: float
    fraction: float = Field(..., ge=0, le=1)
    completed: bool = False


class TickReport(BaseModel):
    """Outcome of a tick; callback failures are collected, not raised."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    date: Optional[GameDate] = None
    correlation_id: Optional[str] = None
    progressed: list[ActivityTickResult] = Field(default_factory=list)
    completed: list[ActivityTickResult] = Field(default_factory=list)
    failures: list[CallbackFailure] = Field(default_factory=list)
    allocations: dict[str, Allocation] = Field(default_factory=dict)

    def summary(self) -> dict[str, Any]:
        """JSON-friendly view for API responses."""
        return {
            "date": str(self.date) if self.date else None,
            "correlation_id": self.correlation_id,
            "progressed": [r.model_dump(mode="json") for r in self.progressed],
            "completed": [r.model_dump(mode="json") for r in self.completed],
            "failures": [
                {"activity_id": f.activity_id, "phase": f.phase, "error": str(f.error)}
                for f in self.failures
            ],
        }


class TickProcessor:
    """
    Advances all activities by one tick.

    Allocations are resolved from a snapshot before anything is mutated.
    Each activity with a positive delta gets its applied work persisted
    first and its handler called second, so a failing handler can never
    undo or repeat progress. Completed activities are removed from the
    registry whether or not ``on_complete`` succeeded. A ``PersistenceError``
    from the registry stops the tick; an activity left fully worked by such
    a stop is completed on the next tick.
    """

    def __init__(
        self,
        registry: ActivityRegistry,
        resolver: StaffAllocationResolver,
        handlers: Mapping[WorkCategory, OutcomeHandler],
        ctx: DomainContext,
    ):
        self.registry = registry
        self.resolver = resolver
        self.handlers = handlers
        self.ctx = ctx

    async def process_tick(self, capacities: Mapping[str, float]) -> TickReport:
        with correlation_context(prefix="tick") as correlation_id:
            with log_timing("process_tick", logger=logger, date=str(self.ctx.date)):
                if self.registry.unsynced_ids:
                    await self.registry.sync()

                snapshot = self.registry.get_all()
                allocations = self.resolver.resolve(snapshot, capacities)
                report = TickReport(date=self.ctx.date, correlation_id=correlation_id, allocations=allocations)

                for activity in snapshot:
                    allocation = allocations[activity.activity_id]
                    # A fully worked activity still live here lost its completion to a failed write
                    if allocation.delta <= 0 and activity.remaining_work > 0:
                        continue

                    new_applied = min(activity.total_work, activity.applied_work + allocation.delta)
                    result = ActivityTickResult(
                        activity_id=activity.activity_id,
                        category=activity.category,
                        delta=new_applied - activity.applied_work,
                        applied_work=new_applied,
                        fraction=new_applied / activity.total_work,
                        completed=new_applied >= activity.total_work,
                    )

                    if result.completed:
                        await self._complete(activity.activity_id, report)
                        report.completed.append(result)
                    else:
                        await self._progress(activity.activity_id, new_applied, result.fraction, report)
                        report.progressed.append(result)

                logger.info(
                    "Tick processed",
                    activity_count=len(snapshot),
                    progressed=len(report.progressed),
                    completed=len(report.completed),
                    failures=len(report.failures),
                )
                return report

    async def _progress(self, activity_id: str, applied_work: float, fraction: float, report: TickReport) -> None:
        activity = await self.registry.update(activity_id, applied_work=applied_work)
        handler = self.handlers[activity.category]
        try:
            await handler.on_progress(activity, fraction, self.ctx)
        except Exception as e:
            self._record_failure(report, activity_id, "progress", e)
        # Persisted even after a failure so side effects already made are not repeated
        await self.registry.update(activity_id, params=activity.params)

    async def _complete(self, activity_id: str, report: TickReport) -> None:
        current = self.registry.get_by_id(activity_id)
        activity = await self.registry.update(activity_id, applied_work=current.total_work)
        handler = self.handlers[activity.category]
        try:
            await handler.on_complete(activity, self.ctx)
        except Exception as e:
            self._record_failure(report, activity_id, "complete", e)
        await self.registry.remove(activity_id)

    def _record_failure(self, report: TickReport, activity_id: str, phase: str, error: Exception) -> None:
        failure = CallbackFailure(activity_id, phase, error)
        report.failures.append(failure)
        logger.error(
            "Outcome handler failed",
            exc_info=True,
            activity_id=activity_id,
            phase=phase,
            error=str(error),
            error_type=type(error).__name__,
        )
