"""Game clock and company finance models."""

from typing import Literal
from pydantic import BaseModel, Field

from winery.utils.constants import SEASONS, WEEKS_PER_SEASON


Season = Literal["Spring", "Summer", "Fall", "Winter"]


class GameDate(BaseModel):
    """Position on the weekly game clock."""
    week: int = Field(default=1, ge=1, le=WEEKS_PER_SEASON)
    season: Season = Field(default="Spring")
    year: int = Field(default=2025)

    def advance(self) -> "GameDate":
        """Return the date one week later."""
        if self.week < WEEKS_PER_SEASON:
            return self.model_copy(update={"week": self.week + 1})

        index = SEASONS.index(self.season)
        if index == len(SEASONS) - 1:
            return GameDate(week=1, season=SEASONS[0], year=self.year + 1)
        return GameDate(week=1, season=SEASONS[index + 1], year=self.year)

    def __str__(self) -> str:
        return f"Week {self.week}, {self.season} {self.year}"


class Transaction(BaseModel):
    """Money movement recorded against the company."""
    amount: float
    description: str
    category: str
    week: int
    season: Season
    year: int


class GameState(BaseModel):
    """Per-game state shared by the domain services."""
    game_id: str = Field(default="default")
    date: GameDate = Field(default_factory=GameDate)
    money: float = Field(default=0.0)
    transactions: list[Transaction] = Field(default_factory=list)


class LoanOffer(BaseModel):
    """Loan offer produced by a lender search."""
    offer_id: str
    lender_type: str
    principal: float = Field(..., gt=0)
    interest_rate: float = Field(..., ge=0)
    duration_seasons: int = Field(default=12, ge=1)
