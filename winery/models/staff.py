"""Staff model - members of the winery workforce."""

from typing import Optional
from pydantic import BaseModel, Field


class StaffSkills(BaseModel):
    """Skill levels on a 0-1 scale."""
    field: float = Field(default=0.5, ge=0.0, le=1.0)
    winery: float = Field(default=0.5, ge=0.0, le=1.0)
    administration: float = Field(default=0.5, ge=0.0, le=1.0)
    sales: float = Field(default=0.5, ge=0.0, le=1.0)
    maintenance: float = Field(default=0.5, ge=0.0, le=1.0)

    def average(self) -> float:
        return (self.field + self.winery + self.administration + self.sales + self.maintenance) / 5


class Staff(BaseModel):
    """Staff member."""
    staff_id: str = Field(..., description="Staff ID (text)")
    name: str = Field(..., description="Full name")
    workforce: float = Field(default=50, ge=0, description="Work units per week at skill 1.0")
    skills: StaffSkills = Field(default_factory=StaffSkills)
    specializations: list[str] = Field(default_factory=list, description="Specialised skill names")
    experience: dict[str, float] = Field(
        default_factory=dict,
        description="Raw XP keyed by 'skill:<name>' or 'grape:<variety>'"
    )
    wage: float = Field(default=0, ge=0, description="Weekly wage")
    nationality: Optional[str] = None
