"""Work categories and work estimate models."""

from enum import Enum
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class WorkCategory(str, Enum):
    """Activity categories. Each selects an estimator and an outcome handler."""
    PLANTING = "PLANTING"
    HARVESTING = "HARVESTING"
    CLEARING = "CLEARING"
    UPROOTING = "UPROOTING"
    CRUSHING = "CRUSHING"
    FERMENTATION = "FERMENTATION"
    STAFF_SEARCH = "STAFF_SEARCH"
    ADMINISTRATION = "ADMINISTRATION"
    LENDER_SEARCH = "LENDER_SEARCH"
    BOOKKEEPING = "BOOKKEEPING"


class WorkFactor(BaseModel):
    """One labelled line of a work breakdown (display only)."""
    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Factor label, e.g. 'Grape Fragility Impact'")
    value: Union[float, int, str] = Field(..., description="Displayed value")
    unit: Optional[str] = Field(None, description="Unit of the value")
    modifier: Optional[float] = Field(None, description="Relative work modifier, 0.2 = +20%")
    modifier_label: Optional[str] = Field(None, description="What the modifier represents")
    is_primary: bool = Field(default=False, description="Primary row (amount/task)")


class WorkEstimate(BaseModel):
    """Result of a work estimator: the engine only consumes total_work."""
    model_config = ConfigDict(frozen=True)

    total_work: float = Field(..., description="Total abstract work units required")
    factors: tuple[WorkFactor, ...] = Field(default=(), description="Breakdown for previews")
