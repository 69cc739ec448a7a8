"""Per-category activity parameters.

Each activity carries exactly one of these models, selected by its
``category`` field. Fields documented as running state are written by the
outcome handlers while the activity progresses and are persisted with the
activity after every tick.
"""

from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

from winery.models.game_state import LoanOffer
from winery.models.staff import Staff


class PlantingParams(BaseModel):
    category: Literal["PLANTING"] = "PLANTING"
    grape: str
    density: int = Field(..., gt=0, description="Target vines per hectare")
    target_name: Optional[str] = None
    planted_density: int = Field(default=0, ge=0, description="Running state: density applied so far")


class HarvestingParams(BaseModel):
    category: Literal["HARVESTING"] = "HARVESTING"
    grape: str
    expected_yield: float = Field(..., ge=0, description="kg expected when the activity was created")
    target_name: Optional[str] = None
    harvested_so_far: float = Field(default=0.0, ge=0, description="Running state: kg already batched")
    batch_ids: list[str] = Field(default_factory=list, description="Running state: batches created")


class ClearingParams(BaseModel):
    category: Literal["CLEARING"] = "CLEARING"
    tasks: list[str] = Field(..., min_length=1, description="Clearing task ids")
    replanting_intensity: float = Field(default=100, ge=0, le=100)
    target_name: Optional[str] = None


class UprootingParams(BaseModel):
    category: Literal["UPROOTING"] = "UPROOTING"
    target_name: Optional[str] = None


class CrushingParams(BaseModel):
    category: Literal["CRUSHING"] = "CRUSHING"
    batch_id: str
    destemming: bool = True
    cold_soak: bool = False
    target_name: Optional[str] = None


class FermentationParams(BaseModel):
    category: Literal["FERMENTATION"] = "FERMENTATION"
    batch_id: str
    method: str = "Basic"
    temperature: str = "Ambient"
    cost: float = Field(default=0, ge=0)
    target_name: Optional[str] = None


class StaffSearchParams(BaseModel):
    category: Literal["STAFF_SEARCH"] = "STAFF_SEARCH"
    number_of_candidates: int = Field(..., ge=1)
    skill_level: float = Field(..., ge=0, le=1)
    specializations: list[str] = Field(default_factory=list)
    search_cost: float = Field(default=0, ge=0)
    candidates: list[Staff] = Field(default_factory=list, description="Running state: search results")


class HiringParams(BaseModel):
    category: Literal["ADMINISTRATION"] = "ADMINISTRATION"
    candidate: Staff


class LenderSearchParams(BaseModel):
    category: Literal["LENDER_SEARCH"] = "LENDER_SEARCH"
    number_of_offers: int = Field(default=3, ge=3, le=10)
    lender_types: list[str] = Field(default_factory=list)
    search_cost: float = Field(default=0, ge=0)
    offers: list[LoanOffer] = Field(default_factory=list, description="Running state: generated offers")


class BookkeepingParams(BaseModel):
    category: Literal["BOOKKEEPING"] = "BOOKKEEPING"
    season: str
    year: int
    transaction_count: int = Field(default=0, ge=0)


ActivityParams = Annotated[
    Union[
        PlantingParams,
        HarvestingParams,
        ClearingParams,
        UprootingParams,
        CrushingParams,
        FermentationParams,
        StaffSearchParams,
        HiringParams,
        LenderSearchParams,
        BookkeepingParams,
    ],
    Field(discriminator="category"),
]
