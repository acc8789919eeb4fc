"""
Sentry integration and best-effort view telemetry.

View events are reported from page handlers without awaiting them: the
task is spawned, detached, and any exception it raises is consumed.
"""

import asyncio
import logging
from typing import Optional, Set

import sentry_sdk

from .config import settings

logger = logging.getLogger(__name__)

# Strong references so detached tasks are not garbage collected mid-flight
_background_tasks: Set[asyncio.Task] = set()


def configure_sentry() -> bool:
    """
    Configure Sentry error tracking.

    Returns:
        True if a DSN was configured and the SDK initialised
    """
    if not settings.SENTRY_DSN:
        logger.info("Sentry DSN not configured")
        return False

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment="testing" if settings.TESTING else "production",
        traces_sample_rate=0.1 if settings.DEBUG else 0.01,
    )
    logger.info("Sentry configured")
    return True


async def _record_view(view: str, display_name: str) -> None:
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("view", view)
        scope.set_extra("display_name", display_name)
        sentry_sdk.capture_message(f"user_view_{view}", level="info")


def _discard_result(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"View telemetry dropped: {exc}")


def emit_view_event(view: str, display_name: str) -> Optional[asyncio.Task]:
    """
    Report that a view was rendered for a given user, fire-and-forget.

    Must be called from a running event loop. Returns the detached task
    (mostly useful to tests), or None when scheduling itself failed.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError as e:
        logger.debug(f"View telemetry not scheduled: {e}")
        return None

    task = loop.create_task(_record_view(view, display_name))
    _background_tasks.add(task)
    task.add_done_callback(_discard_result)
    return task
