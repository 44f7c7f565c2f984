from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from ..base import BaseTool, require_str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WeatherTool(BaseTool):
    """Deterministic stand-in for a weather service."""

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._clock = clock or _utcnow

    @property
    def name(self) -> str:
        return "get_weather"

    @property
    def description(self) -> str:
        return "Get current weather information for a location"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "location": {
                    "type": "string",
                    "description": "City name, country, or coordinates for weather information"
                }
            },
            "required": ["location"]
        }

    async def run(self, arguments: dict[str, Any]) -> str:
        location = require_str(arguments, "location")
        updated = self._clock().isoformat(timespec="seconds").replace("+00:00", "Z")
        return (
            f"Weather for {location}:\n"
            "- Temperature: 22.5°C\n"
            "- Condition: Partly Cloudy\n"
            "- Humidity: 65%\n"
            "- Wind Speed: 12.3 km/h\n"
            "- Pressure: 1013.25 hPa\n"
            "- Visibility: 10 km\n"
            "- UV Index: 5\n"
            f"- Last Updated: {updated}"
        )
