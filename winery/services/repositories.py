"""Store interfaces and in-memory implementations.

The engine talks to persistence only through these async interfaces. The
in-memory versions back tests and local play; ``supabase_client`` provides
the durable ones with identical signatures.
"""

from datetime import datetime, timezone
from typing import Generic, Optional, Protocol, TypeVar
from pydantic import BaseModel, Field

from winery.models.activity import Activity
from winery.models.game_state import GameState, LoanOffer
from winery.models.staff import Staff
from winery.models.vineyard import Vineyard
from winery.models.wine_batch import WineBatch
from winery.utils.errors import PersistenceError
from winery.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class Notification(BaseModel):
    """Player-facing message posted by the engine."""
    message: str
    origin: Optional[str] = Field(None, description="Component that raised it")
    category: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ActivityStore(Protocol):
    async def load_activities(self) -> list[Activity]: ...

    async def save_activity(self, activity: Activity) -> None: ...

    async def delete_activity(self, activity_id: str) -> None: ...


class Repository(Protocol[ModelT]):
    async def get(self, item_id: str) -> Optional[ModelT]: ...

    async def save(self, item: ModelT) -> ModelT: ...

    async def list_all(self) -> list[ModelT]: ...


class GameStateRepository(Protocol):
    async def load(self) -> GameState: ...

    async def save(self, state: GameState) -> None: ...


class NotificationSink(Protocol):
    async def notify(self, message: str, origin: Optional[str] = None, category: Optional[str] = None) -> None: ...


class InMemoryActivityStore:
    """
    Activity store holding serialised records in a dict.

    Set ``fail_saves`` / ``fail_deletes`` to simulate an unavailable backend.
    """

    def __init__(self, activities: Optional[list[Activity]] = None):
        self.records: dict[str, dict] = {}
        self.fail_saves = False
        self.fail_deletes = False
        for activity in activities or []:
            self.records[activity.activity_id] = activity.to_record()

    async def load_activities(self) -> list[Activity]:
        activities = [Activity.from_record(record) for record in self.records.values()]
        return sorted(activities, key=lambda a: a.created_at)

    async def save_activity(self, activity: Activity) -> None:
        if self.fail_saves:
            raise PersistenceError("Activity store unavailable", activity_id=activity.activity_id)
        self.records[activity.activity_id] = activity.to_record()

    async def delete_activity(self, activity_id: str) -> None:
        if self.fail_deletes:
            raise PersistenceError("Activity store unavailable", activity_id=activity_id)
        self.records.pop(activity_id, None)


class InMemoryRepository(Generic[ModelT]):
    """Dict-backed repository keyed by one of the model's id fields."""

    def __init__(self, id_field: str, items: Optional[list[ModelT]] = None):
        self.id_field = id_field
        self.items: dict[str, ModelT] = {}
        for item in items or []:
            self.items[getattr(item, id_field)] = item

    async def get(self, item_id: str) -> Optional[ModelT]:
        item = self.items.get(item_id)
        return item.model_copy(deep=True) if item is not None else None

    async def save(self, item: ModelT) -> ModelT:
        self.items[getattr(item, self.id_field)] = item.model_copy(deep=True)
        return item

    async def list_all(self) -> list[ModelT]:
        return [item.model_copy(deep=True) for item in self.items.values()]


def in_memory_vineyards(items: Optional[list[Vineyard]] = None) -> InMemoryRepository[Vineyard]:
    return InMemoryRepository("vineyard_id", items)


def in_memory_wine_batches(items: Optional[list[WineBatch]] = None) -> InMemoryRepository[WineBatch]:
    return InMemoryRepository("batch_id", items)


def in_memory_staff(items: Optional[list[Staff]] = None) -> InMemoryRepository[Staff]:
    return InMemoryRepository("staff_id", items)


def in_memory_loan_offers(items: Optional[list[LoanOffer]] = None) -> InMemoryRepository[LoanOffer]:
    return InMemoryRepository("offer_id", items)


class InMemoryGameStateRepository:
    def __init__(self, state: Optional[GameState] = None):
        self.state = state or GameState()

    async def load(self) -> GameState:
        return self.state.model_copy(deep=True)

    async def save(self, state: GameState) -> None:
        self.state = state.model_copy(deep=True)


class InMemoryNotificationSink:
    """Collects notifications in a list and mirrors them to the log."""

    def __init__(self):
        self.notifications: list[Notification] = []

    async def notify(self, message: str, origin: Optional[str] = None, category: Optional[str] = None) -> None:
        self.notifications.append(Notification(message=message, origin=origin, category=category))
        logger.info("Notification posted", notification=message, origin=origin, notification_category=category)

    @property
    def messages(self) -> list[str]:
        return [n.message for n in self.notifications]
