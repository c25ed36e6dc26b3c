import logging
import threading
from types import MappingProxyType
from typing import Mapping

from ..core.errors import MacroLookupError, SyntaxParseError
from ..core.ports import Macro, MacroLookup
from ..core.syntax import Syntax

logger = logging.getLogger(__name__)

# (macro id, syntax id or None for every syntax)
MacroKey = tuple[str, str | None]


class MacroRegistrySnapshot(MacroLookup):
    """
    Immutable view of the registrations at one point in time.
    """

    def __init__(self, macros: Mapping[MacroKey, Macro]):
        self._macros = macros

    def _find(self, macro_id: str, syntax: Syntax | None) -> Macro | None:
        if syntax is not None:
            macro = self._macros.get((macro_id, syntax.id))
            if macro is not None:
                return macro
        return self._macros.get((macro_id, None))

    def exists(self, macro_id: str, syntax: Syntax | None = None) -> bool:
        return self._find(macro_id, syntax) is not None

    def resolve(self, macro_id: str, syntax: Syntax | None = None) -> Macro:
        macro = self._find(macro_id, syntax)
        if macro is None:
            where = f" for syntax [{syntax}]" if syntax is not None else ""
            raise MacroLookupError(f"No macro [{macro_id}] is registered{where}")
        return macro

    def macro_ids(self, syntax: Syntax | None = None) -> list[str]:
        wanted = {None, syntax.id if syntax is not None else None}
        return sorted({mid for (mid, sid) in self._macros if sid in wanted})

    def snapshot(self) -> "MacroRegistrySnapshot":
        return self

    def __len__(self) -> int:
        return len(self._macros)


class MacroRegistry(MacroLookup):
    """
    Directory of macro implementations, keyed by id and optionally by syntax.

    Writers replace the whole mapping under a lock; readers always see a
    complete mapping, so lookups need no locking and a transformation pass
    working on a snapshot never observes a half-done registration.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._macros: Mapping[MacroKey, Macro] = MappingProxyType({})

    def register(self, macro_id: str, macro: Macro, syntax: Syntax | None = None) -> None:
        key = (macro_id, syntax.id if syntax is not None else None)
        with self._lock:
            updated = dict(self._macros)
            if key in updated:
                logger.debug("Replacing macro registration %s", key)
            updated[key] = macro
            self._macros = MappingProxyType(updated)

    def register_hint(self, hint: str, macro: Macro) -> bool:
        """
        Register under a hint of the form ``id`` or ``id/type/version``.

        Returns False (and logs a warning) when the hint is malformed.
        """
        parts = hint.split("/")
        if len(parts) == 1 and parts[0]:
            self.register(parts[0], macro)
            return True
        if len(parts) == 3 and all(parts):
            try:
                syntax = Syntax.parse(f"{parts[1]}/{parts[2]}")
            except SyntaxParseError:
                pass
            else:
                self.register(parts[0], macro, syntax)
                return True
        logger.warning(
            "Invalid Macro descriptor format for hint [%s]. The hint should contain "
            "either the macro name only or the macro name followed by the syntax for "
            "which it is valid. In that case the macro name should be followed by a "
            "\"/\" followed by the syntax name followed by another \"/\" followed by "
            "the syntax version. This macro will not be available in the system.",
            hint,
        )
        return False

    def unregister(self, macro_id: str, syntax: Syntax | None = None) -> bool:
        key = (macro_id, syntax.id if syntax is not None else None)
        with self._lock:
            if key not in self._macros:
                return False
            updated = dict(self._macros)
            del updated[key]
            self._macros = MappingProxyType(updated)
            return True

    def snapshot(self) -> MacroRegistrySnapshot:
        return MacroRegistrySnapshot(self._macros)

    def exists(self, macro_id: str, syntax: Syntax | None = None) -> bool:
        return self.snapshot().exists(macro_id, syntax)

    def resolve(self, macro_id: str, syntax: Syntax | None = None) -> Macro:
        return self.snapshot().resolve(macro_id, syntax)

    def macro_ids(self, syntax: Syntax | None = None) -> list[str]:
        return self.snapshot().macro_ids(syntax)

    def __len__(self) -> int:
        return len(self._macros)
