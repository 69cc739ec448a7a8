"""Supabase client wrapper and Supabase-backed stores."""

import os
from typing import Generic, Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
import logging

from winery.models.activity import Activity
from winery.models.game_state import GameState, LoanOffer
from winery.models.staff import Staff
from winery.models.vineyard import Vineyard
from winery.models.wine_batch import WineBatch
from winery.services.repositories import ModelT
from winery.utils.errors import PersistenceError

logger = logging.getLogger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None

DEFAULT_GAME_ID = "default"


def get_game_id() -> str:
    """Game whose rows every store reads and writes."""
    return os.environ.get("WINERY_GAME_ID", DEFAULT_GAME_ID)


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise PersistenceError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


async def close_supabase_client() -> None:
    """Drop the cached client."""
    global _client
    if _client:
        _client = None
        logger.info("Supabase client closed")


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


class SupabaseActivityStore:
    """Activity store backed by the ``activities`` table."""

    table = "activities"

    def __init__(self, game_id: Optional[str] = None):
        self.game_id = game_id or get_game_id()

    async def load_activities(self) -> list[Activity]:
        async with SupabaseClient() as client:
            try:
                result = (
                    client.table(self.table)
                    .select("*")
                    .eq("game_id", self.game_id)
                    .order("created_at")
                    .execute()
                )
            except Exception as e:
                raise PersistenceError(f"Failed to load activities: {e}")
        return [Activity.from_record(row) for row in result.data or []]

    async def save_activity(self, activity: Activity) -> None:
        record = activity.to_record()
        record["game_id"] = self.game_id
        async with SupabaseClient() as client:
            try:
                client.table(self.table).upsert(record, on_conflict="activity_id").execute()
            except Exception as e:
                raise PersistenceError(f"Failed to save activity: {e}", activity_id=activity.activity_id)

    async def delete_activity(self, activity_id: str) -> None:
        async with SupabaseClient() as client:
            try:
                client.table(self.table).delete().eq("activity_id", activity_id).execute()
            except Exception as e:
                raise PersistenceError(f"Failed to delete activity: {e}", activity_id=activity_id)


class SupabaseRepository(Generic[ModelT]):
    """Repository storing one pydantic model per row of ``table``."""

    def __init__(self, table: str, model: type[ModelT], id_field: str, game_id: Optional[str] = None):
        self.table = table
        self.model = model
        self.id_field = id_field
        self.game_id = game_id or get_game_id()

    def _from_row(self, row: dict) -> ModelT:
        return self.model.model_validate({k: v for k, v in row.items() if k in self.model.model_fields})

    async def get(self, item_id: str) -> Optional[ModelT]:
        async with SupabaseClient() as client:
            try:
                result = (
                    client.table(self.table)
                    .select("*")
                    .eq(self.id_field, item_id)
                    .eq("game_id", self.game_id)
                    .execute()
                )
            except Exception as e:
                raise PersistenceError(f"Failed to get {self.table} row {item_id}: {e}")
        return self._from_row(result.data[0]) if result.data else None

    async def save(self, item: ModelT) -> ModelT:
        record = item.model_dump(mode="json")
        record["game_id"] = self.game_id
        async with SupabaseClient() as client:
            try:
                client.table(self.table).upsert(record, on_conflict=self.id_field).execute()
            except Exception as e:
                raise PersistenceError(f"Failed to save {self.table} row: {e}")
        return item

    async def list_all(self) -> list[ModelT]:
        async with SupabaseClient() as client:
            try:
                result = client.table(self.table).select("*").eq("game_id", self.game_id).execute()
            except Exception as e:
                raise PersistenceError(f"Failed to list {self.table}: {e}")
        return [self._from_row(row) for row in result.data or []]


def supabase_vineyards(game_id: Optional[str] = None) -> SupabaseRepository[Vineyard]:
    return SupabaseRepository("vineyards", Vineyard, "vineyard_id", game_id)


def supabase_wine_batches(game_id: Optional[str] = None) -> SupabaseRepository[WineBatch]:
    return SupabaseRepository("wine_batches", WineBatch, "batch_id", game_id)


def supabase_staff(game_id: Optional[str] = None) -> SupabaseRepository[Staff]:
    return SupabaseRepository("staff", Staff, "staff_id", game_id)


def supabase_staff_candidates(game_id: Optional[str] = None) -> SupabaseRepository[Staff]:
    return SupabaseRepository("staff_candidates", Staff, "staff_id", game_id)


def supabase_loan_offers(game_id: Optional[str] = None) -> SupabaseRepository[LoanOffer]:
    return SupabaseRepository("loan_offers", LoanOffer, "offer_id", game_id)


class SupabaseGameStateRepository:
    """Game clock and finances, one ``game_state`` row per game."""

    table = "game_state"

    def __init__(self, game_id: Optional[str] = None):
        self.game_id = game_id or get_game_id()

    async def load(self) -> GameState:
        async with SupabaseClient() as client:
            try:
                result = client.table(self.table).select("*").eq("game_id", self.game_id).execute()
            except Exception as e:
                raise PersistenceError(f"Failed to load game state: {e}")
        if not result.data:
            return GameState(game_id=self.game_id)
        return GameState.model_validate(
            {k: v for k, v in result.data[0].items() if k in GameState.model_fields}
        )

    async def save(self, state: GameState) -> None:
        record = state.model_dump(mode="json")
        record["game_id"] = self.game_id
        async with SupabaseClient() as client:
            try:
                client.table(self.table).upsert(record, on_conflict="game_id").execute()
            except Exception as e:
                raise PersistenceError(f"Failed to save game state: {e}")


class SupabaseNotificationSink:
    """Appends notifications to the ``notifications`` table."""

    table = "notifications"

    def __init__(self, game_id: Optional[str] = None):
        self.game_id = game_id or get_game_id()

    async def notify(self, message: str, origin: Optional[str] = None, category: Optional[str] = None) -> None:
        async with SupabaseClient() as client:
            try:
                client.table(self.table).insert({
                    "game_id": self.game_id,
                    "message": message,
                    "origin": origin,
                    "category": category,
                }).execute()
            except Exception as e:
                raise PersistenceError(f"Failed to post notification: {e}")
