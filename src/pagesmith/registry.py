"""Template set registry.

Feature modules contribute a ``TemplateSet`` each; the application owns the
``TemplateRegistry`` they register into and hands it to the ``Engine``.

Free-threading safety:
    - TemplateSet is a frozen dataclass (immutable)
    - TemplateRegistry guards its list with a Lock
    - the engine reads a snapshot exactly once, at boot
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass

from pagesmith.errors import ConfigurationError, DuplicateSetError
from pagesmith.sources import TemplateSource


@dataclass(frozen=True, slots=True)
class TemplateSet:
    """One module's template files.

    Usage::

        TemplateSet("users", DirectorySource("users/templates"), ("*.html",))
    """

    name: str
    source: TemplateSource
    patterns: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("TemplateSet name must not be empty")
        if isinstance(self.patterns, str):
            object.__setattr__(self, "patterns", (self.patterns,))
        else:
            object.__setattr__(self, "patterns", tuple(self.patterns))

    def files(self) -> list[str]:
        """All files matched by any pattern, deduplicated and sorted by path."""
        seen: set[str] = set()
        for pattern in self.patterns:
            seen.update(self.source.glob(pattern))
        return sorted(seen)


class TemplateRegistry:
    """Ordered, lock-guarded list of template sets.

    Mutable until the engine that reads it boots, then frozen.
    """

    __slots__ = ("_frozen", "_lock", "_sets")

    def __init__(self, sets: Sequence[TemplateSet] = ()) -> None:
        self._lock = threading.Lock()
        self._sets: list[TemplateSet] = []
        self._frozen = False
        for template_set in sets:
            self.register(template_set)

    def register(self, template_set: TemplateSet) -> TemplateSet:
        """Add a set. Raises ``DuplicateSetError`` if the name is taken."""
        with self._lock:
            self._check_not_frozen()
            if any(s.name == template_set.name for s in self._sets):
                raise DuplicateSetError(template_set.name)
            self._sets.append(template_set)
        return template_set

    def add(self, name: str, source: TemplateSource, *patterns: str) -> TemplateSet:
        """Shorthand for ``register(TemplateSet(name, source, patterns))``."""
        return self.register(TemplateSet(name, source, patterns))

    def all(self) -> tuple[TemplateSet, ...]:
        """Snapshot of every registered set, in registration order."""
        with self._lock:
            return tuple(self._sets)

    def reset(self) -> None:
        """Forget every set and unfreeze. Test helper."""
        with self._lock:
            self._sets.clear()
            self._frozen = False

    def freeze(self) -> tuple[TemplateSet, ...]:
        """Reject further registrations and return the final snapshot."""
        with self._lock:
            self._frozen = True
            return tuple(self._sets)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return any(s.name == name for s in self._sets)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sets)

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot register template sets after the engine has booted. "
                "Register every set before calling engine.boot()."
            )
            raise ConfigurationError(msg)
