from collections.abc import Callable
from datetime import datetime

from ..base import BaseTool
from .calculator import CalculatorTool, evaluate_expression, format_number
from .clock import CurrentTimeTool
from .data import FormatDataTool, ValidateJSONTool
from .media import AnalyzeDocumentTool, AnalyzeImageTool, ExtractTextTool
from .search import WebSearchTool
from .text import GenerateCodeTool, TranslateTool
from .weather import WeatherTool


def default_tools(clock: Callable[[], datetime] | None = None) -> list[BaseTool]:
    """The full built-in catalogue, in declaration order."""
    return [
        WebSearchTool(clock=clock),
        CalculatorTool(),
        CurrentTimeTool(clock=clock),
        WeatherTool(clock=clock),
        AnalyzeImageTool(),
        TranslateTool(),
        AnalyzeDocumentTool(),
        GenerateCodeTool(),
        FormatDataTool(),
        ValidateJSONTool(),
        ExtractTextTool(),
    ]


__all__ = [
    "default_tools",
    "evaluate_expression",
    "format_number",
    "AnalyzeDocumentTool",
    "AnalyzeImageTool",
    "CalculatorTool",
    "CurrentTimeTool",
    "ExtractTextTool",
    "FormatDataTool",
    "GenerateCodeTool",
    "TranslateTool",
    "ValidateJSONTool",
    "WeatherTool",
    "WebSearchTool",
]
