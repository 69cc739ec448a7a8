"""Activity model - a long-running player action paid down in work units."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, model_validator
from ulid import ULID

from winery.models.params import ActivityParams
from winery.models.work import WorkCategory


def generate_activity_id() -> str:
    """Generate a text-based activity ID (ULID format)."""
    return str(ULID())


class ActivityState(str, Enum):
    """Lifecycle state of an activity still held by the registry."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"


class Activity(BaseModel):
    """Activity model - scheduled work tracked by total/applied work units."""
    activity_id: str = Field(default_factory=generate_activity_id, description="Activity ID (ULID)")
    category: WorkCategory = Field(..., description="Work category")
    title: str = Field(..., description="Display title")
    target_id: Optional[str] = Field(
        None,
        description="Vineyard/wine batch ID, null for global activities"
    )
    total_work: float = Field(..., gt=0, description="Work units required for completion")
    applied_work: float = Field(default=0.0, ge=0, description="Work units applied so far")
    params: ActivityParams = Field(..., description="Category-specific parameters")
    is_cancellable: bool = Field(default=True)
    assigned_staff_ids: list[str] = Field(default_factory=list, description="Staff working on it")
    game_week: Optional[int] = None
    game_season: Optional[str] = None
    game_year: Optional[int] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def check_consistency(self) -> "Activity":
        if self.applied_work > self.total_work:
            raise ValueError("applied_work cannot exceed total_work")
        if self.params.category != self.category.value:
            raise ValueError(
                f"params for {self.params.category} do not match category {self.category.value}"
            )
        return self

    @property
    def remaining_work(self) -> float:
        return max(0.0, self.total_work - self.applied_work)

    @property
    def fraction(self) -> float:
        return self.applied_work / self.total_work

    @property
    def state(self) -> ActivityState:
        if self.applied_work <= 0:
            return ActivityState.PENDING
        return ActivityState.IN_PROGRESS

    def to_record(self) -> dict[str, Any]:
        """Serialise to an ``activities`` table row."""
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Activity":
        """Build from an ``activities`` table row, ignoring storage-only columns."""
        fields = {k: v for k, v in record.items() if k in cls.model_fields}
        return cls.model_validate(fields)


class ActivityProgress(BaseModel):
    """Progress summary shown next to an activity."""
    activity_id: str
    progress: float = Field(..., ge=0, le=100, description="Percent complete")
    is_complete: bool
    time_remaining: str
