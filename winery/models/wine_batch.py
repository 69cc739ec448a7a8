"""WineBatch model - grapes/must/wine moving through the winery."""

from typing import Literal, Optional
from pydantic import BaseModel, Field


BatchState = Literal["grapes", "must_ready", "fermenting"]


class WineBatch(BaseModel):
    """Wine batch created from a harvest."""
    batch_id: str = Field(..., description="Batch ID (text)")
    vineyard_id: str = Field(..., description="Source vineyard ID")
    vineyard_name: str = Field(..., description="Source vineyard name")
    grape: str = Field(..., description="Grape variety")
    quantity: float = Field(..., ge=0, description="Quantity in kg")
    state: BatchState = Field(default="grapes")
    fermentation_method: Optional[str] = None
    fermentation_temperature: Optional[str] = None
    harvested_week: Optional[int] = None
    harvested_season: Optional[str] = None
    harvested_year: Optional[int] = None
