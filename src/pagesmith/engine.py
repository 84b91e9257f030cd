"""The template engine: boot once, then render pages and fragments.

Usage::

    registry = TemplateRegistry()
    registry.add("shared", DirectorySource("templates/shared"), "*.html")
    registry.add("users", DirectorySource("users/templates"), "*.html")

    engine = Engine(registry)
    engine.boot()

    # Full page on first load, a fragment when htmx targets #users-table
    engine.render_auto(out, request, "users_list", "users_table", "users-table", ctx)

Thread safety:
    ``boot()`` uses a Lock + flag so it runs exactly once. After boot the
    index and every compiled page are immutable; renders need no locking.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Mapping
from typing import Any, Protocol

from pagesmith.compiler import (
    CompiledPage,
    LayoutCompiler,
    PageCompiler,
    build_index,
    create_environment,
)
from pagesmith.config import EngineConfig
from pagesmith.errors import (
    ConfigurationError,
    MissingSharedSetError,
    TemplateExecutionError,
    TemplateNotFound,
)
from pagesmith.functions import FunctionLibrary
from pagesmith.markers import RequestMarkers
from pagesmith.registry import TemplateRegistry

logger = logging.getLogger("pagesmith.engine")


class Writer(Protocol):
    """Anything with ``write(str)``: ``io.StringIO``, a response body, a file."""

    def write(self, s: str, /) -> Any: ...


class RenderIntent(enum.Enum):
    """Which of the render paths ``render_auto_map`` took."""

    FULL_PAGE = "full_page"
    SNIPPET = "snippet"
    CONTENT = "content"


def _as_context(data: Any) -> Mapping[str, Any]:
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return data
    return {"data": data}


class Engine:
    """Compiles registered template sets and renders them.

    Mutable during setup (sets and functions are registered elsewhere),
    immutable once ``boot()`` returns.
    """

    __slots__ = (
        "_boot_lock",
        "_booted",
        "_index",
        "_log",
        "config",
        "functions",
        "registry",
    )

    def __init__(
        self,
        registry: TemplateRegistry,
        *,
        config: EngineConfig | None = None,
        functions: FunctionLibrary | None = None,
    ) -> None:
        self.registry = registry
        self.config: EngineConfig = config or EngineConfig()
        self.functions: FunctionLibrary = functions or FunctionLibrary()
        self._boot_lock = threading.Lock()
        self._booted = False
        self._index: Mapping[str, CompiledPage] = {}
        self._log: logging.Logger = logger

    # -- Boot --

    def boot(self, log: logging.Logger | None = None) -> None:
        """Compile every registered set and publish the name index.

        Must be called exactly once, before any render. Raises a
        ``BootError`` subclass if any set fails to load or compile;
        nothing is published in that case.
        """
        with self._boot_lock:
            if self._booted:
                raise ConfigurationError("Engine.boot() has already been called")
            if log is not None:
                self._log = log
            self._index = self._compile()
            self._booted = True

    def _compile(self) -> Mapping[str, CompiledPage]:
        sets = self.registry.freeze()
        funcs = self.functions.freeze()
        if not sets:
            self._log.warning("no template sets registered")
            return build_index((), log=self._log)

        shared = next((s for s in sets if s.name == self.config.shared_set), None)
        if shared is None:
            raise MissingSharedSetError(self.config.shared_set)

        env = create_environment(self.config, funcs)
        core = LayoutCompiler(env, self._log).compile(shared)
        pages_compiler = PageCompiler(env, core, self.config, self._log)

        pages: list[CompiledPage] = []
        for template_set in sorted(
            (s for s in sets if s.name != self.config.shared_set), key=lambda s: s.name
        ):
            pages.extend(pages_compiler.compile_set(template_set))

        index = build_index(pages, on_duplicate=self.config.on_duplicate, log=self._log)
        self._log.info(
            "templates booted: %d sets, %d pages, %d names",
            len(sets),
            len(pages),
            len(index),
        )
        return index

    @property
    def booted(self) -> bool:
        return self._booted

    # -- Lookup --

    def lookup(self, name: str) -> CompiledPage:
        """Return the compiled page that owns *name*."""
        self._ensure_booted()
        page = self._index.get(name)
        if page is None:
            raise TemplateNotFound(name)
        return page

    def names(self) -> tuple[str, ...]:
        """Every indexed template name, sorted."""
        self._ensure_booted()
        return tuple(sorted(self._index))

    def __contains__(self, name: object) -> bool:
        return name in self._index

    # -- Render --

    def render_string(
        self,
        name: str,
        context: Any = None,
        *,
        content_only: bool = False,
    ) -> str:
        """Render *name* (or, with ``content_only``, its page's content block)."""
        page = self.lookup(name)
        block = self.config.content_block if content_only else name
        return self._execute(page, block, name, context)

    def render(self, writer: Writer, request: Any, name: str, context: Any = None) -> None:
        """Full render: the named entry template, layout included."""
        writer.write(self.render_string(name, context))

    def render_snippet(self, writer: Writer, name: str, context: Any = None) -> None:
        """Render a partial by name, without the layout."""
        writer.write(self.render_string(name, context))

    def render_content(self, writer: Writer, entry: str, context: Any = None) -> None:
        """Render only the content block of the page that owns *entry*."""
        writer.write(self.render_string(entry, context, content_only=True))

    def render_auto(
        self,
        writer: Writer,
        request: Any,
        page: str,
        snippet: str,
        target_id: str,
        context: Any = None,
    ) -> RenderIntent:
        """``render_auto_map`` for the common single-region case."""
        return self.render_auto_map(writer, request, page, {target_id: snippet}, context)

    def render_auto_map(
        self,
        writer: Writer,
        request: Any,
        page: str,
        targets: Mapping[str, str],
        context: Any = None,
    ) -> RenderIntent:
        """Serve a page load and its later partial refreshes from one handler.

        - partial request, target mapped in *targets* → that snippet
        - partial request, target is the content block name → content only
        - anything else (including history restores) → full page
        """
        markers = RequestMarkers.from_request(request, self.config)
        if markers.wants_fragment and markers.target is not None:
            snippet = targets.get(markers.target)
            if snippet:
                self.render_snippet(writer, snippet, context)
                return RenderIntent.SNIPPET
            if markers.target == self.config.content_block:
                self.render_content(writer, page, context)
                return RenderIntent.CONTENT
        self.render(writer, request, page, context)
        return RenderIntent.FULL_PAGE

    # -- Internal --

    def _execute(self, page: CompiledPage, block: str, name: str, context: Any) -> str:
        if not page.has_block(block):
            raise TemplateNotFound(block)
        try:
            return page.render_block(block, _as_context(context))
        except Exception as exc:
            raise TemplateExecutionError(name, exc) from exc

    def _ensure_booted(self) -> None:
        if not self._booted:
            msg = "Render called before Engine.boot(). Boot the engine at startup."
            raise ConfigurationError(msg)
