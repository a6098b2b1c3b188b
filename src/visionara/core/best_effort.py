"""Run side actions whose failure must be logged but never propagated."""

from collections.abc import Awaitable
from typing import Any

from visionara.core.logging import get_logger

logger = get_logger(__name__)


async def best_effort(action: Awaitable[Any], description: str, **log_context: Any) -> bool:
    """Await ``action``, logging and discarding any exception it raises.

    Used for compensating deletes at the identity provider, provider cleanup
    after a local hard delete, and password rotation during profile updates.

    Args:
        action: The awaitable to run.
        description: Short name of the action, used as the log event.
        **log_context: Extra structured fields for the failure log line.

    Returns:
        True if the action completed, False if it raised.
    """
    try:
        await action
    except Exception as e:
        logger.error(
            f"Best-effort action failed: {description}",
            error=str(e),
            error_type=type(e).__name__,
            **log_context,
        )
        return False
    return True
