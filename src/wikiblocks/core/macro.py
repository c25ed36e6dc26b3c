"""Descriptors and a convenience base class for macro implementations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import MacroExecutionError
from .model import Block

if TYPE_CHECKING:
    from ..transform.macro import MacroTransformationContext

DEFAULT_PRIORITY = 1000

MANDATORY = "mandatory"
OPTIONAL = "optional"
FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    description: str = ""
    mandatory: bool = False
    default: str | None = None


@dataclass(frozen=True)
class MacroDescriptor:
    name: str = ""
    description: str = ""
    parameters: tuple[ParameterDescriptor, ...] = ()
    content: str = OPTIONAL  # mandatory | optional | forbidden
    content_description: str = ""

    def parameter(self, name: str) -> ParameterDescriptor | None:
        lowered = name.lower()
        for descriptor in self.parameters:
            if descriptor.name.lower() == lowered:
                return descriptor
        return None


def prepare_parameters(
    descriptor: MacroDescriptor,
    parameters: dict[str, str],
    content: str | None,
) -> dict[str, str]:
    """
    Check a macro call against its descriptor and fill in default values.

    Parameter names are matched case-insensitively and come back spelled as
    in the descriptor. Parameters the descriptor doesn't know are passed
    through unchanged.

    Raises:
        MacroExecutionError: on a missing mandatory parameter, or content
            that is missing although mandatory or present although forbidden
    """
    out: dict[str, str] = {}
    for name, value in parameters.items():
        known = descriptor.parameter(name)
        out[known.name if known else name] = value

    for known in descriptor.parameters:
        if known.name in out:
            continue
        if known.mandatory:
            raise MacroExecutionError(
                f"Missing mandatory parameter [{known.name}]",
                known.description or None,
            )
        if known.default is not None:
            out[known.name] = known.default

    if descriptor.content == MANDATORY and not content:
        raise MacroExecutionError("This macro requires content")
    if descriptor.content == FORBIDDEN and content:
        raise MacroExecutionError("This macro doesn't accept content")
    return out


@dataclass
class AbstractMacro:
    """
    Base for macros written in Python; subclasses implement ``execute``.
    """

    descriptor: MacroDescriptor = field(default_factory=MacroDescriptor)
    priority: int = DEFAULT_PRIORITY
    inline: bool = False

    def supports_inline(self) -> bool:
        return self.inline

    def execute(
        self,
        parameters: dict[str, str],
        content: str | None,
        context: MacroTransformationContext,
    ) -> list[Block]:
        raise NotImplementedError
