"""Staff allocation resolver - per-tick work deltas from offered capacity."""

from typing import Iterable, Mapping, Optional
from pydantic import BaseModel, Field

from winery.models.activity import Activity


class Allocation(BaseModel):
    """Work granted to one activity for one tick."""
    activity_id: str
    offered: float = Field(..., description="Capacity offered by the assigned staff")
    delta: float = Field(..., ge=0, description="Work actually applied, capped at remaining work")


class StaffAllocationResolver:
    """
    Turns capacities into per-activity deltas.

    All allocations are computed from one snapshot before the tick mutates
    anything, so the order activities are processed in cannot change the
    result.
    """

    def __init__(self):
        self.allocations: dict[str, Allocation] = {}

    def resolve(self, activities: Iterable[Activity], capacities: Mapping[str, float]) -> dict[str, Allocation]:
        allocations = {}
        for activity in activities:
            offered = float(capacities.get(activity.activity_id, 0.0) or 0.0)
            delta = max(0.0, min(offered, activity.remaining_work))
            allocations[activity.activity_id] = Allocation(
                activity_id=activity.activity_id,
                offered=offered,
                delta=delta,
            )
        self.allocations = allocations
        return allocations

    def capacity_for(self, activity: Activity) -> float:
        """Delta resolved for ``activity`` in the last ``resolve`` call."""
        allocation: Optional[Allocation] = self.allocations.get(activity.activity_id)
        return allocation.delta if allocation else 0.0
