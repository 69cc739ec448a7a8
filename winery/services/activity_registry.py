"""Activity registry - authoritative in-memory set of live activities."""

from typing import Any, Optional
from pydantic import ValidationError

from winery.models.activity import Activity
from winery.services.repositories import ActivityStore
from winery.utils.errors import ActivityNotFoundError, InvalidActivityError, PersistenceError
from winery.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


class ActivityRegistry:
    """
    Keyed collection of live activities mirrored to an ``ActivityStore``.

    Every mutation is applied in memory first and then written through to the
    store. When the write fails the id is kept in ``unsynced_ids`` and a
    ``PersistenceError`` is raised; ``sync()`` retries the pending writes.
    Reads return copies so callers cannot mutate registry state directly.
    """

    def __init__(self, store: ActivityStore):
        self.store = store
        self._activities: dict[str, Activity] = {}
        self.unsynced_ids: set[str] = set()

    async def load(self) -> int:
        """Replace the in-memory view with the store's content."""
        activities = await self.store.load_activities()
        self._activities = {a.activity_id: a for a in activities}
        self.unsynced_ids.clear()
        logger.info("Activity registry loaded", activity_count=len(self._activities))
        return len(self._activities)

    async def add(self, activity: Activity) -> str:
        if activity.total_work <= 0:
            raise InvalidActivityError(f"Activity total_work must be positive, got {activity.total_work}")
        if activity.activity_id in self._activities:
            raise InvalidActivityError(f"Duplicate activity id: {activity.activity_id}")

        self._activities[activity.activity_id] = activity.model_copy(deep=True)
        logger.info(
            "Activity added",
            activity_id=activity.activity_id,
            category=activity.category.value,
            target_id=activity.target_id,
            total_work=activity.total_work,
        )
        await self._write(activity.activity_id)
        return activity.activity_id

    async def update(self, activity_id: str, **fields: Any) -> Activity:
        current = self._activities.get(activity_id)
        if current is None:
            raise ActivityNotFoundError(activity_id)
        if "activity_id" in fields and fields["activity_id"] != activity_id:
            raise InvalidActivityError("activity_id cannot be changed")

        try:
            updated = Activity.model_validate({**current.model_dump(), **fields}).model_copy(deep=True)
        except ValidationError as e:
            raise InvalidActivityError(f"Invalid update for activity {activity_id}: {e}")

        if updated.applied_work < current.applied_work:
            raise InvalidActivityError(
                f"applied_work cannot decrease ({current.applied_work} -> {updated.applied_work})"
            )

        self._activities[activity_id] = updated
        logger.debug("Activity updated", activity_id=activity_id, fields=sorted(fields))
        await self._write(activity_id)
        return updated.model_copy(deep=True)

    async def remove(self, activity_id: str) -> bool:
        if self._activities.pop(activity_id, None) is None:
            return False
        logger.info("Activity removed", activity_id=activity_id)
        await self._write(activity_id)
        return True

    def get_by_id(self, activity_id: str) -> Optional[Activity]:
        activity = self._activities.get(activity_id)
        return activity.model_copy(deep=True) if activity is not None else None

    def get_by_target(self, target_id: str) -> list[Activity]:
        return [a.model_copy(deep=True) for a in self._activities.values() if a.target_id == target_id]

    def get_all(self) -> list[Activity]:
        """All live activities in creation order."""
        return [a.model_copy(deep=True) for a in self._activities.values()]

    def __len__(self) -> int:
        return len(self._activities)

    def __contains__(self, activity_id: str) -> bool:
        return activity_id in self._activities

    async def sync(self) -> None:
        """Retry every pending write; raises ``PersistenceError`` if any still fails."""
        if not self.unsynced_ids:
            return
        logger.info("Retrying unsynced activity writes", pending=len(self.unsynced_ids))
        failed = []
        for activity_id in list(self.unsynced_ids):
            try:
                await self._write(activity_id)
            except PersistenceError:
                failed.append(activity_id)
        if failed:
            raise PersistenceError(f"{len(failed)} activity changes could not be persisted", activity_id=failed[0])

    async def _write(self, activity_id: str) -> None:
        """Save the current version of an activity, or delete it when it is gone."""
        activity = self._activities.get(activity_id)
        try:
            if activity is None:
                await self.store.delete_activity(activity_id)
            else:
                await self.store.save_activity(activity)
        except PersistenceError as e:
            self.unsynced_ids.add(activity_id)
            logger.error("Activity store write failed", activity_id=activity_id, error=str(e))
            raise
        except Exception as e:
            self.unsynced_ids.add(activity_id)
            logger.error("Activity store write failed", activity_id=activity_id, error=str(e))
            raise PersistenceError(f"Failed to persist activity {activity_id}: {e}", activity_id=activity_id)
        self.unsynced_ids.discard(activity_id)
