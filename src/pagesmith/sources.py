"""Template sources: where a template set's files come from.

A *source* is a read-only view over a tree of template files: a directory
on disk, a package's data directory, or an in-memory mapping for tests.
Paths are always POSIX-style and relative to the source root.

Glob semantics follow ``pathlib``: ``*`` and ``?`` never cross a ``/``.
"""

from __future__ import annotations

import importlib.resources
from collections.abc import Iterable, Mapping
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

from pagesmith.errors import ConfigurationError


@runtime_checkable
class TemplateSource(Protocol):
    """A read-only tree of template files."""

    def glob(self, pattern: str) -> list[str]: ...
    def read(self, path: str) -> str: ...


class DirectorySource:
    """Template files below a directory on disk."""

    __slots__ = ("root",)

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    @classmethod
    def for_package(cls, package: str, subdir: str = "templates") -> DirectorySource:
        """Templates shipped as package data, e.g. ``myapp.users/templates``."""
        root = importlib.resources.files(package).joinpath(subdir)
        if not isinstance(root, Path):
            msg = (
                f"Package {package!r} is not installed on the filesystem; "
                f"cannot load templates from {subdir!r}"
            )
            raise ConfigurationError(msg)
        return cls(root)

    def glob(self, pattern: str) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            p.relative_to(self.root).as_posix()
            for p in self.root.glob(pattern)
            if p.is_file()
        )

    def read(self, path: str) -> str:
        return (self.root / path).read_text(encoding="utf-8")

    def __repr__(self) -> str:
        return f"DirectorySource({str(self.root)!r})"


class MemorySource:
    """Template files held in memory. Handy for tests and generated sets."""

    __slots__ = ("_files",)

    def __init__(self, files: Mapping[str, str] | Iterable[tuple[str, str]] = ()) -> None:
        self._files: dict[str, str] = dict(files)

    def glob(self, pattern: str) -> list[str]:
        want = PurePosixPath(pattern)
        depth = len(want.parts)
        return sorted(
            path
            for path in self._files
            if len(PurePosixPath(path).parts) == depth and PurePosixPath(path).match(pattern)
        )

    def read(self, path: str) -> str:
        try:
            return self._files[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    def __repr__(self) -> str:
        return f"MemorySource({sorted(self._files)!r})"
