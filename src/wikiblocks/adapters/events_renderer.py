from ..core.events import Event, iter_events
from ..core.model import Block
from ..core.ports import Renderer
from ..core.syntax import EVENTS_1_0

_MACRO_EVENTS = {
    "onMacroStandalone",
    "onMacroInline",
    "beginMacroMarkerStandalone",
    "endMacroMarkerStandalone",
    "beginMacroMarkerInline",
    "endMacroMarkerInline",
}


def _parameters(parameters: dict[str, str]) -> str:
    return "[" + ", ".join(f"{k}={v}" for k, v in parameters.items()) + "]"


def format_event(event: Event) -> str:
    """
    One line of the trace, e.g. ``onWord [hello]`` or
    ``beginMacroMarkerStandalone [toc] [depth=2]``.
    """
    name, args = event
    if name in _MACRO_EVENTS:
        macro_id, parameters, content = args
        line = f"{name} [{macro_id}] {_parameters(parameters)}"
        if content is not None:
            line += f" [{content}]"
        return line

    parts = [name]
    for arg in args:
        if arg is None or arg is False:
            continue
        if isinstance(arg, dict):
            if arg:
                parts.append(_parameters(arg))
        elif arg is True:
            parts.append("[freestanding]")
        elif isinstance(arg, str) and name in ("beginList", "endList", "beginFormat", "endFormat"):
            parts.append(f"[{arg.upper()}]")
        else:
            parts.append(f"[{arg}]")
    return " ".join(parts)


class EventsRenderer(Renderer):
    """Render the event stream of a tree, one event per line."""

    syntax = EVENTS_1_0

    def render(self, block: Block) -> str:
        return "\n".join(format_event(event) for event in iter_events(block))
