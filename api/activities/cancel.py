"""Cancel-activity endpoint."""

import json
import asyncio
import logging
from winery.services.activity_manager import get_activity_manager
from winery.utils.errors import ActivityNotFoundError, NotCancellableError, PersistenceError
from winery.utils.logging_config import LoggingConfig

logger = logging.getLogger(__name__)
LoggingConfig.setup_logging()


def _response(status_code: int, payload: dict) -> dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload)
    }


def _activity_id(request) -> str | None:
    body = request.get("body") or {}
    if isinstance(body, (str, bytes)):
        body = json.loads(body or "{}")
    query_params = request.get("query", {}) or {}
    return body.get("activity_id") or query_params.get("activity_id")


async def cancel(activity_id: str) -> dict:
    manager = get_activity_manager()
    await manager.initialize()
    await manager.cancel_activity(activity_id)
    return {"ok": True, "activity_id": activity_id}


def handler(request):
    """Cancel a live activity; its completion effects never run."""
    try:
        activity_id = _activity_id(request)
    except json.JSONDecodeError:
        return _response(400, {"error": "Invalid JSON body"})
    if not activity_id:
        return _response(400, {"error": "activity_id is required"})

    try:
        try:
            loop = asyncio.get_event_loop()
        except RuntimeError:
            loop = None
        if loop is None or loop.is_closed():
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)

        return _response(200, loop.run_until_complete(cancel(activity_id)))

    except ActivityNotFoundError as e:
        return _response(404, {"error": str(e)})
    except NotCancellableError as e:
        return _response(409, {"error": str(e)})
    except PersistenceError as e:
        logger.error(f"Cancel not persisted: {e}", exc_info=True)
        return _response(503, {"error": str(e)})
    except Exception as e:
        logger.error(f"Error cancelling activity: {e}", exc_info=True)
        return _response(500, {"error": str(e)})
