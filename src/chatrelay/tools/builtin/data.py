import json
from typing import Any

import yaml

from ...errors import ToolError, ToolErrorKind
from ..base import BaseTool, optional_str, require_str


def pretty_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


class FormatDataTool(BaseTool):
    """Reformats raw data as JSON, CSV, XML or YAML."""

    @property
    def name(self) -> str:
        return "format_data"

    @property
    def description(self) -> str:
        return "Format and prettify data in various formats (JSON, CSV, XML)"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "data": {"type": "string", "description": "Raw data to format"},
                "format": {
                    "type": "string",
                    "description": "Output format: 'json', 'csv', 'xml', 'yaml'",
                    "default": "json"
                }
            },
            "required": ["data"]
        }

    def _format(self, data: str, fmt: str) -> str:
        match fmt.lower():
            case "json":
                try:
                    return pretty_json(json.loads(data))
                except json.JSONDecodeError as e:
                    raise ToolError(ToolErrorKind.INVALID_ARGUMENTS, f"invalid JSON data: {e}") from e
            case "csv":
                return "\n".join(line.strip() for line in data.split("\n") if line.strip())
            case "xml":
                return f'<?xml version="1.0" encoding="UTF-8"?>\n<data>\n  {data}\n</data>'
            case "yaml":
                # JSON input is converted; anything else passes through
                try:
                    parsed = json.loads(data)
                except json.JSONDecodeError:
                    return data
                return yaml.safe_dump(parsed, sort_keys=False, allow_unicode=True).rstrip("\n")
            case _:
                return data

    async def run(self, arguments: dict[str, Any]) -> str:
        data = require_str(arguments, "data")
        fmt = optional_str(arguments, "format", "json")
        return f"Formatted data ({fmt}):\n\n```{fmt}\n{self._format(data, fmt)}\n```"


class ValidateJSONTool(BaseTool):
    """Validates JSON; invalid input is reported, not raised."""

    @property
    def name(self) -> str:
        return "validate_json"

    @property
    def description(self) -> str:
        return "Validate and prettify JSON data"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "json_data": {"type": "string", "description": "JSON string to validate and format"}
            },
            "required": ["json_data"]
        }

    async def run(self, arguments: dict[str, Any]) -> str:
        raw = require_str(arguments, "json_data")
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            return f"❌ Invalid JSON:\n{raw}\n\nError: {e}"
        return f"✅ Valid JSON:\n\n```json\n{pretty_json(parsed)}\n```"
