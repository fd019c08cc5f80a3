"""
Capability allow-list: which host modules and classes a script may reach.

ScriptImports.augment() prepends one import line per allowed entry to the
script and reports how many lines it added. The same list backs the
sandbox's guarded __import__, so nothing outside it can be imported.
"""

import importlib.util
import logging
import re
from collections.abc import Iterable, Sequence
from typing import Any

from shapescript.core.config import settings

_log = logging.getLogger(__name__)

# Bump when the default lists change; header line counts depend on them.
ALLOWLIST_VERSION = 1

# Imported as whole modules: ``import math``
SCRIPT_IMPORTS: tuple[str, ...] = ("math",)

# Imported by name: ``from shapescript.geometry import Sphere``
CLASS_IMPORTS: tuple[str, ...] = (
    "shapescript.geometry.Bounds",
    "shapescript.geometry.Shape",
    "shapescript.geometry.Box",
    "shapescript.geometry.Cylinder",
    "shapescript.geometry.Sphere",
    "shapescript.geometry.Union",
)

# Only allow top-level module names (e.g. numpy), no submodules
_SAFE_MODULE_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _extra_modules(raw: str) -> list[str]:
    """Whitelisted extra modules from SCRIPT_EXTRA_MODULES that are installed."""
    out: list[str] = []
    for name in (s.strip() for s in (raw or "").split(",") if s.strip()):
        if not _SAFE_MODULE_NAME_RE.match(name):
            _log.warning("Ignoring extra script module with unsafe name: %r", name)
            continue
        if importlib.util.find_spec(name) is None:
            _log.warning("Ignoring extra script module that is not installed: %s", name)
            continue
        out.append(name)
    return out


class ScriptImports:
    """
    A fixed allow-list of modules and classes. Instances are immutable so
    the header they produce stays the same for the life of an execution context.
    """

    def __init__(
        self,
        modules: Sequence[str] = SCRIPT_IMPORTS,
        classes: Sequence[str] = CLASS_IMPORTS,
        extra_modules: Iterable[str] | None = None,
    ) -> None:
        extra = list(extra_modules) if extra_modules is not None else _extra_modules(
            settings.SCRIPT_EXTRA_MODULES
        )
        mods: list[str] = []
        for name in [*modules, *extra]:
            if name not in mods:
                mods.append(name)
        self._modules: tuple[str, ...] = tuple(mods)
        self._classes: tuple[tuple[str, str], ...] = tuple(
            tuple(path.rsplit(".", 1)) for path in classes  # type: ignore[misc]
        )
        allowed: dict[str, set[str]] = {}
        for module, cls in self._classes:
            allowed.setdefault(module, set()).add(cls)
        self._allowed_names = {k: frozenset(v) for k, v in allowed.items()}
        self._header = self._build_header()

    @property
    def modules(self) -> tuple[str, ...]:
        return self._modules

    @property
    def classes(self) -> tuple[str, ...]:
        return tuple(f"{m}.{c}" for m, c in self._classes)

    def _build_header(self) -> str:
        lines = [f"import {name}" for name in self._modules]
        lines.extend(f"from {module} import {cls}" for module, cls in self._classes)
        return "".join(line + "\n" for line in lines)

    @property
    def header_lines(self) -> int:
        return len(self._modules) + len(self._classes)

    def augment(self, script: str) -> tuple[str, int]:
        """Return (header + script, number of header lines)."""
        return self._header + script, self.header_lines

    def is_allowed(self, name: str, fromlist: Sequence[str] | None = None) -> bool:
        if not fromlist:
            return name in self._modules
        if name in self._modules:
            return True
        names = self._allowed_names.get(name)
        return names is not None and all(n in names for n in fromlist)

    def guarded_import(
        self,
        name: str,
        globals: dict[str, Any] | None = None,
        locals: dict[str, Any] | None = None,
        fromlist: Sequence[str] | None = (),
        level: int = 0,
    ) -> Any:
        """__import__ replacement for the sandbox builtins."""
        if level != 0:
            raise ImportError("Relative imports are not allowed")
        if not self.is_allowed(name, fromlist):
            wanted = f"{name} ({', '.join(fromlist)})" if fromlist else name
            raise ImportError(f"Import of '{wanted}' is not allowed")
        return __import__(name, globals, locals, fromlist, level)
