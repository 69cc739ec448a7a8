"""Advance-week endpoint (one simulation tick, can be called via Vercel cron)."""

import json
import asyncio
import logging
from winery.services.activity_manager import get_activity_manager
from winery.utils.errors import PersistenceError
from winery.utils.logging_config import LoggingConfig

logger = logging.getLogger(__name__)
LoggingConfig.setup_logging()


async def advance_week() -> dict:
    manager = get_activity_manager()
    await manager.initialize()
    report = await manager.advance_week()
    return {
        "ok": True,
        "date": str(manager.ctx.date),
        "report": report.summary(),
    }


def handler(request):
    """
    Advance the game by one week.

    Applies staff work to every live activity and moves the clock forward.
    Handler failures inside the tick are listed in the report, not raised.
    """
    try:
        try:
            loop = asyncio.get_event_loop()
        except RuntimeError:
            loop = None
        if loop is None or loop.is_closed():
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)

        result = loop.run_until_complete(advance_week())

        return {
            "statusCode": 200,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(result)
        }

    except PersistenceError as e:
        logger.error(f"Tick aborted, activity store unavailable: {e}", exc_info=True)
        return {
            "statusCode": 503,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps({"error": str(e)})
        }
    except Exception as e:
        logger.error(f"Error advancing week: {e}", exc_info=True)
        return {
            "statusCode": 500,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps({"error": str(e)})
        }
