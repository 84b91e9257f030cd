"""Engine configuration.

EngineConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from __future__ import annotations

from dataclasses import dataclass

from pagesmith.errors import ConfigurationError

_DUPLICATE_POLICIES = frozenset({"error", "override"})


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Engine configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = EngineConfig(on_duplicate="override", max_workers=4)
    """

    # Template sets
    shared_set: str = "shared"
    content_block: str = "content"
    private_blocks: tuple[str, ...] = ("content",)  # Per-page blocks, never indexed

    # Request markers (htmx conventions)
    partial_header: str = "HX-Request"
    target_header: str = "HX-Target"
    history_restore_header: str = "HX-History-Restore-Request"

    # Jinja2 environment
    autoescape: bool = True
    trim_blocks: bool = True
    lstrip_blocks: bool = True
    strict_undefined: bool = False

    # Compilation
    on_duplicate: str = "error"  # "error" or "override" for cross-set name clashes
    max_workers: int = 0  # 0 or 1 = compile pages sequentially

    def __post_init__(self) -> None:
        if self.on_duplicate not in _DUPLICATE_POLICIES:
            msg = (
                f"on_duplicate must be one of {sorted(_DUPLICATE_POLICIES)}, "
                f"got {self.on_duplicate!r}"
            )
            raise ConfigurationError(msg)
        if self.content_block not in self.private_blocks:
            object.__setattr__(
                self, "private_blocks", (*self.private_blocks, self.content_block)
            )
        if self.max_workers < 0:
            msg = f"max_workers must be >= 0, got {self.max_workers}"
            raise ConfigurationError(msg)
