"""Vineyard model."""

from typing import Optional
from pydantic import BaseModel, Field


class Vineyard(BaseModel):
    """Vineyard model - the target of planting, harvesting and clearing activities."""
    vineyard_id: str = Field(..., description="Vineyard ID (text)")
    name: str = Field(..., description="Vineyard name")
    hectares: float = Field(..., ge=0, description="Planted area in hectares")
    soil: list[str] = Field(default_factory=list, description="Soil types")
    altitude_rating: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Normalised altitude deviation for the region (0 = ideal)"
    )
    grape: Optional[str] = Field(None, description="Planted grape variety")
    density: int = Field(default=0, ge=0, description="Vines per hectare")
    status: str = Field(default="Barren", description="Free-form status shown in the UI")
    ripeness: float = Field(default=0.0, ge=0.0, le=1.0)
    vine_age: Optional[int] = Field(None, ge=0)
    years_since_last_clearing: int = Field(default=0, ge=0)
    expected_yield: float = Field(default=0.0, ge=0, description="Expected harvest in kg")
