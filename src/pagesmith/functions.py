"""Template function library.

Built-in helpers available in every compiled environment, plus an
extension point for application functions. Each function is installed
as a Jinja2 global and a filter, so templates can write either
``{{ printf("%d items", n) }}`` or ``{{ name | urlquery }}``. Where
Jinja2 already ships a filter of the same name (``join``, ``lower``,
``upper``, ``title``) the Jinja2 filter is kept and the helper is only
a global.

The library is frozen at boot; later registrations only affect engines
booted afterwards.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any
from urllib.parse import quote_plus

from jinja2.utils import htmlsafe_json_dumps
from markupsafe import Markup

logger = logging.getLogger("pagesmith.functions")


def urlquery(value: Any) -> str:
    """Escape a value for use inside a URL query string.

    Example:
        <a href="/search?q={{ term | urlquery }}">  → ``/search?q=a+b``
    """
    return quote_plus(str(value))


def safe_html(value: Any) -> Markup:
    """Mark a string as trusted HTML, bypassing autoescape.

    Only for content the application generated itself.
    """
    return Markup(str(value))


def lower(value: Any) -> str:
    return str(value).lower()


def upper(value: Any) -> str:
    return str(value).upper()


def title(value: Any) -> str:
    return str(value).title()


def join(items: Iterable[Any], sep: str = "") -> str:
    """Join items into one string.

    Example:
        {{ join(tags, ", ") }}  → "red, green"
    """
    return sep.join(str(item) for item in items)


def printf(fmt: str, *args: Any) -> str:
    """``%``-style string formatting.

    Example:
        {{ printf("%d of %d", page, pages) }}  → "2 of 9"
    """
    if not args:
        return fmt
    return fmt % args


def to_json(value: Any) -> Markup:
    """Serialize a value as JSON that is safe inside ``<script>`` tags.

    ``<``, ``>``, ``&`` and ``'`` are emitted as ``\\u`` escapes so the
    payload can neither close the script element nor break out of a
    single-quoted attribute.

        <script>const rows = {{ rows | to_json }};</script>

    Values that cannot be serialized render as ``null``.
    """
    try:
        return htmlsafe_json_dumps(value)
    except (TypeError, ValueError):
        return Markup("null")


BUILTIN_FUNCTIONS: Mapping[str, Callable[..., Any]] = MappingProxyType(
    {
        "join": join,
        "lower": lower,
        "printf": printf,
        "safe_html": safe_html,
        "title": title,
        "to_json": to_json,
        "upper": upper,
        "urlquery": urlquery,
    }
)


class FunctionLibrary:
    """Built-ins plus application-registered template functions.

    Usage::

        library = FunctionLibrary()

        @library.function()
        def money(cents: int) -> str:
            return f"${cents / 100:.2f}"
    """

    __slots__ = ("_custom", "_frozen", "_lock")

    def __init__(self, functions: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self._lock = threading.Lock()
        self._custom: dict[str, Callable[..., Any]] = {}
        self._frozen = False
        for name, fn in (functions or {}).items():
            self.register(name, fn)

    def register(self, name: str, fn: Callable[..., Any]) -> None:
        """Add (or override) a function. May override a built-in."""
        if not callable(fn):
            msg = f"Template function {name!r} must be callable, got {type(fn).__name__}"
            raise TypeError(msg)
        with self._lock:
            if self._frozen:
                logger.warning(
                    "template function %r registered after boot; "
                    "already compiled templates will not see it",
                    name,
                )
            self._custom[name] = fn

    def function(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a template function via decorator."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.register(name or func.__name__, func)
            return func

        return decorator

    def freeze(self) -> Mapping[str, Callable[..., Any]]:
        """Snapshot the merged table. Custom functions win over built-ins."""
        with self._lock:
            self._frozen = True
            return MappingProxyType({**BUILTIN_FUNCTIONS, **self._custom})

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._custom or name in BUILTIN_FUNCTIONS
