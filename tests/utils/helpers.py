"""Test helper functions."""

import json
from typing import Dict, Any, Mapping

from winery.models.activity import Activity
from winery.services.repositories import InMemoryActivityStore
from winery.services.tick_processor import TickProcessor, TickReport
from winery.utils.errors import PersistenceError


class FlakyActivityStore(InMemoryActivityStore):
    """In-memory store whose n-th saves (1-based) fail."""

    def __init__(self, failing_saves=(), activities=None):
        super().__init__(activities)
        self.failing_saves = set(failing_saves)
        self.save_count = 0

    async def save_activity(self, activity: Activity) -> None:
        self.save_count += 1
        if self.save_count in self.failing_saves:
            raise PersistenceError("Activity store unavailable", activity_id=activity.activity_id)
        await super().save_activity(activity)


async def run_ticks(processor: TickProcessor, capacities: Mapping[str, float], count: int) -> list[TickReport]:
    """Run ``count`` ticks with the same capacities."""
    reports = []
    for _ in range(count):
        reports.append(await processor.process_tick(capacities))
    return reports


def create_vercel_request(
    method: str = "POST",
    path: str = "/api/game/advance_week",
    body: Dict[str, Any] = None,
    headers: Dict[str, str] = None,
    query: Dict[str, str] = None,
) -> Dict[str, Any]:
    """Create a Vercel request object for testing."""
    if body is None:
        body = {}

    if headers is None:
        headers = {
            "content-type": "application/json"
        }

    return {
        "method": method,
        "path": path,
        "headers": headers,
        "body": json.dumps(body) if isinstance(body, dict) else body,
        "query": query or {}
    }
