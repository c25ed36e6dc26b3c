"""Macros defined in YAML files as parameterized wiki markup."""

import logging
import re
from pathlib import Path
from string import Template
from typing import Any

import yaml

from ..core.errors import MacroExecutionError, SyntaxParseError
from ..core.macro import (
    DEFAULT_PRIORITY,
    FORBIDDEN,
    MANDATORY,
    OPTIONAL,
    AbstractMacro,
    MacroDescriptor,
    ParameterDescriptor,
)
from ..core.model import Block
from ..format.escape import EscapeState, combines, escape
from .macro_registry import MacroRegistry

logger = logging.getLogger(__name__)


class WikiMacro(AbstractMacro):
    """
    A macro whose body is wiki markup with ``$name`` placeholders.

    Parameter values are escaped before substitution so they always read as
    plain text; ``$content`` is inserted as markup.
    """

    def __init__(
        self,
        macro_id: str,
        code: str,
        descriptor: MacroDescriptor,
        priority: int = DEFAULT_PRIORITY,
        inline: bool = False,
    ):
        super().__init__(descriptor=descriptor, priority=priority, inline=inline)
        self.id = macro_id
        self.code = Template(code)

    def execute(self, parameters, content, context) -> list[Block]:
        return context.parse_content(self.expand(parameters, content))

    def expand(self, parameters: dict[str, str], content: str | None) -> str:
        """
        The wiki markup of one call.

        Each parameter value is escaped against the code around its
        placeholder, so it can't merge with neighbouring markup.
        """
        template = self.code.template
        out: list[str] = []
        position = 0
        for m in self.code.pattern.finditer(template):
            out.append(template[position:m.start()])
            position = m.end()
            if m.group("escaped") is not None:
                out.append(self.code.delimiter)
                continue
            name = m.group("named") or m.group("braced")
            if name is None:
                raise MacroExecutionError(
                    f"Invalid code in wiki macro [{self.id}]",
                    f"Invalid placeholder at index {m.start()}",
                )
            if name == "content":
                out.append(content or "")
                continue
            if name not in parameters:
                raise MacroExecutionError(
                    f"Unknown placeholder [{name}] in wiki macro [{self.id}]"
                )
            value = parameters[name]
            before = "".join(out)
            first = None
            if combines(before, value):
                first = re.compile("(" + re.escape(value[0]) + ")")
            out.append(escape(
                value,
                EscapeState(text_on_new_line=before[-1:] in ("", "\n"), in_paragraph=True),
                escape_last_char=combines(value, template[position:]),
                escape_first_if_matching=first,
            ))
        out.append(template[position:])
        return "".join(out)


def _parameter(name: str, data: Any) -> ParameterDescriptor:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SyntaxParseError(f"Parameter [{name}] must be a mapping")
    default = data.get("default")
    return ParameterDescriptor(
        name=str(name),
        description=str(data.get("description", "")),
        mandatory=bool(data.get("mandatory", False)),
        default=None if default is None else str(default),
    )


def wiki_macro_from_dict(data: dict[str, Any]) -> WikiMacro:
    """
    Build a WikiMacro from one YAML definition.

    Raises:
        SyntaxParseError: on a missing id or code, or a malformed field
    """
    if not isinstance(data, dict):
        raise SyntaxParseError("A macro definition must be a mapping")
    macro_id = data.get("id")
    if not macro_id or not isinstance(macro_id, str):
        raise SyntaxParseError("A macro definition needs a string [id]")
    code = data.get("code")
    if not isinstance(code, str):
        raise SyntaxParseError(f"Macro [{macro_id}] needs a string [code]")

    content = data.get("content", OPTIONAL)
    if content not in (MANDATORY, OPTIONAL, FORBIDDEN):
        raise SyntaxParseError(
            f"Macro [{macro_id}]: content must be one of mandatory, optional, forbidden"
        )

    parameters = data.get("parameters") or {}
    if not isinstance(parameters, dict):
        raise SyntaxParseError(f"Macro [{macro_id}]: parameters must be a mapping")

    priority = data.get("priority", DEFAULT_PRIORITY)
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise SyntaxParseError(f"Macro [{macro_id}]: priority must be an integer")

    descriptor = MacroDescriptor(
        name=str(data.get("name", macro_id)),
        description=str(data.get("description", "")),
        parameters=tuple(_parameter(name, value) for name, value in parameters.items()),
        content=content,
    )
    return WikiMacro(
        macro_id,
        code,
        descriptor,
        priority=priority,
        inline=bool(data.get("inline", False)),
    )


def load_wiki_macros(path: Path) -> list[WikiMacro]:
    """
    Read the macro definitions of a YAML file.

    Raises:
        FileNotFoundError: if the file doesn't exist
        SyntaxParseError: if the file isn't a list of valid definitions
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SyntaxParseError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return []
    if not isinstance(data, list):
        raise SyntaxParseError(f"{path} must contain a list of macro definitions")
    return [wiki_macro_from_dict(item) for item in data]


def register_wiki_macros(registry: MacroRegistry, path: Path) -> list[str]:
    """Load ``path`` and register every macro it defines; returns their ids."""
    ids = []
    for macro in load_wiki_macros(path):
        registry.register(macro.id, macro)
        ids.append(macro.id)
    logger.debug("Registered %d wiki macros from %s", len(ids), path)
    return ids
