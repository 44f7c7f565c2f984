from dataclasses import dataclass, field

from ..llm.models import FunctionCall, StreamChunk, WireToolCall


@dataclass
class _PartialCall:
    id: str = ""
    name: str = ""
    arguments: list[str] = field(default_factory=list)


class ToolCallAccumulator:
    """Reassembles tool calls spread across stream deltas.

    Deltas are keyed by their index; the name and argument fragments of
    one index are concatenated in arrival order. Complete calls placed at
    choice level are kept as-is and follow the indexed ones.
    """

    def __init__(self) -> None:
        self._partial: dict[int, _PartialCall] = {}
        self._complete: list[WireToolCall] = []

    def add(self, chunk: StreamChunk) -> None:
        for choice in chunk.choices:
            if choice.index != 0:
                continue
            if choice.tool_calls:
                self._complete.extend(choice.tool_calls)
            if choice.delta is None or not choice.delta.tool_calls:
                continue
            for delta in choice.delta.tool_calls:
                partial = self._partial.setdefault(delta.index, _PartialCall())
                if delta.id:
                    partial.id = delta.id
                if delta.function is not None:
                    if delta.function.name:
                        partial.name += delta.function.name
                    if delta.function.arguments:
                        partial.arguments.append(delta.function.arguments)

    def calls(self) -> list[WireToolCall]:
        """Assembled calls in emission order."""
        assembled = [
            WireToolCall(
                id=p.id,
                function=FunctionCall(name=p.name, arguments="".join(p.arguments)),
            )
            for _, p in sorted(self._partial.items())
        ]
        return assembled + self._complete

    def __bool__(self) -> bool:
        return bool(self._partial or self._complete)
