import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..base import BaseTool, optional_str

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_long(moment: datetime) -> str:
    """E.g. 'Monday, January 2, 2006 at 3:04 PM UTC'."""
    hour = moment.hour % 12 or 12
    return (
        f"{moment:%A, %B} {moment.day}, {moment.year} "
        f"at {hour}:{moment:%M %p} {moment.tzname() or ''}"
    ).rstrip()


class CurrentTimeTool(BaseTool):
    """Reports the current time in a named IANA timezone."""

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._clock = clock or _utcnow

    @property
    def name(self) -> str:
        return "get_current_time"

    @property
    def description(self) -> str:
        return "Get the current date and time in various formats"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "timezone": {
                    "type": "string",
                    "description": "Timezone (e.g., 'UTC', 'America/New_York', 'Asia/Tokyo')",
                    "default": "UTC"
                }
            }
        }

    async def run(self, arguments: dict[str, Any]) -> str:
        tz_name = optional_str(arguments, "timezone", "UTC")
        now = self._clock().astimezone(timezone.utc)
        if tz_name != "UTC":
            try:
                now = now.astimezone(ZoneInfo(tz_name))
            except (ZoneInfoNotFoundError, ValueError):
                # Unknown zones report UTC under the requested label
                logger.debug("Unknown timezone %r, using UTC", tz_name)

        rfc3339 = now.isoformat(timespec="seconds").replace("+00:00", "Z")
        return (
            f"Current time ({tz_name}): {rfc3339}\n"
            f"Timestamp: {int(now.timestamp())}\n"
            f"Formatted: {format_long(now)}"
        )
