"""Staff capacity planner - how much work each activity receives per tick.

Per staff member: ``workforce * effective skill`` for the activity's skill,
boosted by specialization and grape experience, then split equally across
every activity the member is assigned to. Per activity the contributions are
averaged and scaled by ``team size ** 0.92`` so larger teams have
diminishing returns.
"""

import math
from typing import Iterable, Optional

from winery.models.activity import Activity
from winery.models.staff import Staff
from winery.models.work import WorkCategory
from winery.services.repositories import Repository
from winery.utils.constants import CATEGORY_SKILLS, SPECIALIZATION_BONUS, TEAM_SIZE_EXPONENT
from winery.utils.logging import get_structured_logger, timed

logger = get_structured_logger(__name__)

# Raw XP at which half of the gap to full skill is closed
XP_HALF_POINT = 1000


def normalize_xp(raw_xp: float) -> float:
    """Map raw XP onto 0..1 with diminishing returns."""
    if raw_xp <= 0:
        return 0.0
    return raw_xp / (raw_xp + XP_HALF_POINT)


def effective_skill(base_skill: float, raw_xp: float) -> float:
    """Base skill with experience filling the remaining gap to 1.0."""
    base = max(0.0, min(1.0, base_skill))
    return base + normalize_xp(raw_xp) * (1 - base)


def individual_contribution(
    staff: Staff,
    category: WorkCategory,
    task_count: int = 1,
    grape: Optional[str] = None,
) -> float:
    """Work one staff member puts into one of their ``task_count`` activities."""
    skill_name = CATEGORY_SKILLS[category]
    skill = effective_skill(getattr(staff.skills, skill_name), staff.experience.get(f"skill:{skill_name}", 0))
    if skill_name in staff.specializations:
        skill *= SPECIALIZATION_BONUS

    contribution = staff.workforce * skill

    if grape:
        grape_xp = staff.experience.get(f"grape:{grape}", 0)
        if grape_xp > 0:
            contribution *= normalize_xp(grape_xp) + 1

    return contribution / max(1, task_count)


def team_capacity(
    staff: list[Staff],
    category: WorkCategory,
    task_counts: Optional[dict[str, int]] = None,
    grape: Optional[str] = None,
) -> float:
    """Work units per tick produced by ``staff`` on one activity."""
    if not staff:
        return 0.0
    task_counts = task_counts or {}
    total = sum(
        individual_contribution(member, category, task_counts.get(member.staff_id, 1), grape)
        for member in staff
    )
    return total / len(staff) * math.pow(len(staff), TEAM_SIZE_EXPONENT)


def activity_grape(activity: Activity) -> Optional[str]:
    return getattr(activity.params, "grape", None)


def count_assignments(activities: Iterable[Activity], roster: dict[str, Staff]) -> dict[str, int]:
    """Number of activities each known staff member is assigned to."""
    counts: dict[str, int] = {}
    for activity in activities:
        for staff_id in set(activity.assigned_staff_ids):
            if staff_id in roster:
                counts[staff_id] = counts.get(staff_id, 0) + 1
    return counts


def estimate_weeks_remaining(activity: Activity, capacity: float) -> Optional[int]:
    """Whole ticks until completion at ``capacity``; None when no work is being done."""
    if activity.remaining_work <= 0:
        return 0
    if capacity <= 0:
        return None
    return math.ceil(activity.remaining_work / capacity)


def format_time_remaining(weeks: Optional[int]) -> str:
    if weeks is None:
        return "No staff assigned"
    if weeks == 0:
        return "Complete"
    if weeks == 1:
        return "1 week"
    return f"{weeks} weeks"


class StaffCapacityPlanner:
    """Computes per-activity capacity from the staff roster once per tick."""

    def __init__(self, staff_repo: Repository[Staff]):
        self.staff_repo = staff_repo

    @timed("compute_capacities", logger=logger)
    async def compute_capacities(self, activities: list[Activity]) -> dict[str, float]:
        roster = {member.staff_id: member for member in await self.staff_repo.list_all()}
        task_counts = count_assignments(activities, roster)

        capacities = {}
        for activity in activities:
            team = [roster[sid] for sid in dict.fromkeys(activity.assigned_staff_ids) if sid in roster]
            capacities[activity.activity_id] = team_capacity(
                team, activity.category, task_counts, activity_grape(activity)
            )

        logger.debug(
            "Staff capacities computed",
            activity_count=len(activities),
            staff_count=len(roster),
            busy_staff=len(task_counts),
        )
        return capacities

    async def capacity_for(self, activity: Activity, activities: list[Activity]) -> float:
        """Capacity of one activity given the full set it shares staff with."""
        capacities = await self.compute_capacities(activities)
        return capacities.get(activity.activity_id, 0.0)
