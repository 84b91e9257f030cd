"""Request markers for partial (htmx) requests.

The transport layer is not ours. Any object with a ``headers`` mapping
(or a bare mapping) is accepted; lookups are case-insensitive.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from pagesmith.config import EngineConfig


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    ``__getitem__`` returns the first matching value.
    """

    __slots__ = ("_pairs",)

    def __init__(self, pairs: Mapping[str, str] | Iterable[tuple[str, str]] = ()) -> None:
        items = pairs.items() if isinstance(pairs, Mapping) else pairs
        object.__setattr__(self, "_pairs", tuple((str(k), str(v)) for k, v in items))

    def __getitem__(self, key: str) -> str:
        key_lower = key.lower()
        for name, value in self._pairs:
            if name.lower() == key_lower:
                return value
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key_lower = key.lower()
        return any(name.lower() == key_lower for name, _ in self._pairs)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._pairs:
            key = name.lower()
            if key not in seen:
                seen.add(key)
                yield key

    def __len__(self) -> int:
        return len(set(self))

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default


def _headers_of(request: Any) -> Headers:
    if request is None:
        return Headers()
    raw = getattr(request, "headers", request)
    if isinstance(raw, Headers):
        return raw
    if isinstance(raw, Mapping):
        return Headers(raw)
    items = getattr(raw, "items", None)
    if callable(items):
        return Headers(items())
    msg = f"Cannot read headers from {type(request).__name__}"
    raise TypeError(msg)


@dataclass(frozen=True, slots=True)
class RequestMarkers:
    """What the client asked for: a full page or a region refresh."""

    is_partial: bool = False
    target: str | None = None
    is_history_restore: bool = False

    @classmethod
    def from_request(cls, request: Any, config: EngineConfig | None = None) -> RequestMarkers:
        config = config or EngineConfig()
        headers = _headers_of(request)
        partial = headers.get(config.partial_header)
        return cls(
            is_partial=bool(partial) and partial.strip().lower() != "false",
            target=headers.get(config.target_header) or None,
            is_history_restore=(
                (headers.get(config.history_restore_header) or "").strip().lower() == "true"
            ),
        )

    @property
    def wants_fragment(self) -> bool:
        """Partial request that is not an htmx history restore."""
        return self.is_partial and not self.is_history_restore
