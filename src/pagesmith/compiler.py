"""Layout and per-page template compilation.

Block names live in one flat namespace per compiled template. Every page
defines a block named ``content``, so parsing a whole feature set into a
single template would make the pages overwrite each other's body.

Instead the compiler:

1. parses the shared set once into the *core tree* (layout + partials),
2. for each page file, deep-copies the core tree and every file of the
   page's set into a fresh ``jinja2.nodes.Template``, renaming the private
   blocks (``content``) of every *other* file to a placeholder derived
   from its path,
3. compiles that tree into one ``CompiledPage`` and indexes the names the
   page defines itself.

The rename happens on the AST, so ``{% endblock %}`` markers and block
references are never touched.

Top-level ``{% macro %}`` and ``{% set %}`` statements of any file in the
clone are evaluated once at compile time and visible in every block.

Free-threading safety:
    - ParsedFile, CoreTree and CompiledPage are frozen dataclasses
    - ASTs are deep-copied before compilation; the originals are never
      handed to the code generator
    - the published index is a MappingProxyType
"""

from __future__ import annotations

import copy
import hashlib
import logging
import re
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Any

from jinja2 import Environment, StrictUndefined, Template, TemplateSyntaxError, Undefined, nodes

from pagesmith.config import EngineConfig
from pagesmith.errors import (
    DuplicateTemplateError,
    TemplateNotFound,
    TemplateParseError,
    TemplatePatternError,
    TemplateReadError,
)
from pagesmith.functions import BUILTIN_FUNCTIONS
from pagesmith.registry import TemplateSet

logger = logging.getLogger("pagesmith.compiler")

_NON_WORD_RE = re.compile(r"\W+")


def create_environment(
    config: EngineConfig,
    functions: Mapping[str, Any],
) -> Environment:
    """Create the Jinja2 environment every compiled page is bound to.

    Called once per boot. The environment is not modified afterwards.

    Every function becomes a global. Built-ins that share a name with a
    Jinja2 filter (``join``, ``lower``, ...) leave that filter in place;
    application functions always install as filters.
    """
    env = Environment(
        autoescape=config.autoescape,
        trim_blocks=config.trim_blocks,
        lstrip_blocks=config.lstrip_blocks,
        undefined=StrictUndefined if config.strict_undefined else Undefined,
    )
    for name, fn in functions.items():
        if name in env.filters and BUILTIN_FUNCTIONS.get(name) is fn:
            continue
        env.filters[name] = fn
    env.globals.update(functions)
    return env


def placeholder_name(block: str, set_name: str, path: str) -> str:
    """Deterministic, collision-free stand-in for a foreign private block.

    ``("content", "users", "admin/edit.html")``
    → ``"_content_ignored_admin_edit_"`` + first 8 hex digits of
    ``sha1("users/admin/edit.html")``
    """
    stem = PurePosixPath(path).with_suffix("").as_posix()
    slug = _NON_WORD_RE.sub("_", stem).strip("_") or "file"
    digest = hashlib.sha1(f"{set_name}/{path}".encode()).hexdigest()[:8]
    return f"_{block}_ignored_{slug}_{digest}"


@dataclass(frozen=True, slots=True)
class ParsedFile:
    """One template file, parsed but not compiled."""

    set_name: str
    path: str
    tree: nodes.Template
    names: tuple[str, ...]  # Block names in document order (may repeat)

    @property
    def location(self) -> str:
        return f"{self.set_name}/{self.path}"

    def owned(self, private: Iterable[str]) -> frozenset[str]:
        return frozenset(self.names).difference(private)


@dataclass(frozen=True, slots=True)
class CoreTree:
    """The parsed shared set every page clone starts from."""

    set_name: str
    files: tuple[ParsedFile, ...]

    @property
    def names(self) -> frozenset[str]:
        return frozenset(name for f in self.files for name in f.names)


@dataclass(frozen=True, slots=True)
class CompiledPage:
    """One page's compiled environment.

    Holds the shared layout, every file of the page's set, and exactly
    one ``content`` block: the page's own.
    """

    set_name: str
    path: str
    owned_names: frozenset[str]
    template: Template
    content_block: str = "content"
    definitions: Mapping[str, Any] = field(default_factory=dict)

    @property
    def block_names(self) -> frozenset[str]:
        return frozenset(self.template.blocks)

    def has_block(self, name: str) -> bool:
        return name in self.template.blocks

    def render_block(self, name: str, context: Mapping[str, Any] | None = None) -> str:
        """Render one block to a string.

        Exceptions raised by the template propagate with Jinja2's
        rewritten traceback; the caller decides how to wrap them.
        """
        block = self.template.blocks.get(name)
        if block is None:
            raise TemplateNotFound(name)
        ctx = self.template.new_context({**(context or {}), **self.definitions})
        env = self.template.environment
        try:
            return env.concat(block(ctx))  # type: ignore[attr-defined]
        except Exception:
            env.handle_exception()
            raise  # pragma: no cover

    def render_content(self, context: Mapping[str, Any] | None = None) -> str:
        return self.render_block(self.content_block, context)

    def __repr__(self) -> str:
        return f"CompiledPage({self.set_name!r}, {self.path!r}, owned={sorted(self.owned_names)!r})"


_DEFINITION_NODES = (nodes.Macro, nodes.Assign, nodes.AssignBlock)


def evaluate_definitions(
    env: Environment,
    body: Iterable[nodes.Node],
    name: str,
) -> Mapping[str, Any]:
    """Run the top-level ``{% macro %}`` and ``{% set %}`` statements once.

    Block functions only see their render context, so these names are
    evaluated here, without render data, and merged into every block
    render of the page.
    """
    definitions = [node for node in body if isinstance(node, _DEFINITION_NODES)]
    if not definitions:
        return MappingProxyType({})
    tree = nodes.Template(copy.deepcopy(definitions, {id(env): env}), lineno=1)
    tree.set_environment(env)
    code = env.compile(tree, name=name, filename=name)
    template = env.template_class.from_code(env, code, env.make_globals(None), None)
    ctx = template.new_context()
    env.concat(template.root_render_func(ctx))  # type: ignore[attr-defined]
    return MappingProxyType(ctx.get_exported())


# -- Loading --


def load_set(env: Environment, template_set: TemplateSet) -> list[ParsedFile]:
    """Read and parse every file of a set, sorted by path.

    Each file is also compiled on its own once so that errors the code
    generator raises (unknown filters, malformed blocks) point at the
    offending file rather than at the combined page.
    """
    try:
        paths = template_set.files()
    except (ValueError, NotImplementedError, OSError) as exc:
        raise TemplatePatternError(template_set.name, template_set.patterns) from exc
    parsed: list[ParsedFile] = []
    for path in paths:
        try:
            source = template_set.source.read(path)
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateReadError(path, template_set.name) from exc
        try:
            tree = env.parse(source, name=path, filename=path)
            env.compile(source, name=path, filename=path)
        except TemplateSyntaxError as exc:
            raise TemplateParseError(path, template_set.name) from exc
        names = tuple(block.name for block in tree.find_all(nodes.Block))
        parsed.append(ParsedFile(template_set.name, path, tree, names))
    return parsed


def _check_unique(
    files: Iterable[ParsedFile],
    *,
    skip: frozenset[str] = frozenset(),
) -> None:
    seen: dict[str, list[str]] = {}
    for f in files:
        for name in f.names:
            if name in skip:
                continue
            seen.setdefault(name, []).append(f.location)
    for name, locations in sorted(seen.items()):
        if len(locations) > 1:
            raise DuplicateTemplateError(name, tuple(locations))


def _rename_blocks(tree: nodes.Template, renames: Mapping[str, str]) -> None:
    if not renames:
        return
    for block in tree.find_all(nodes.Block):
        new_name = renames.get(block.name)
        if new_name is not None:
            block.name = new_name


# -- Layout --


class LayoutCompiler:
    """Parses the shared set into the core tree."""

    __slots__ = ("_env", "_log")

    def __init__(self, env: Environment, log: logging.Logger | None = None) -> None:
        self._env = env
        self._log = log or logger

    def compile(self, template_set: TemplateSet) -> CoreTree:
        files = load_set(self._env, template_set)
        if not files:
            self._log.warning("no templates matched in shared set %r", template_set.name)
        _check_unique(files)
        self._log.debug(
            "shared set %r parsed (%d files)", template_set.name, len(files)
        )
        return CoreTree(template_set.name, tuple(files))


# -- Pages --


class PageCompiler:
    """Compiles one ``CompiledPage`` per file of each feature set."""

    __slots__ = ("_config", "_core", "_env", "_log", "_private")

    def __init__(
        self,
        env: Environment,
        core: CoreTree,
        config: EngineConfig,
        log: logging.Logger | None = None,
    ) -> None:
        self._env = env
        self._core = core
        self._config = config
        self._log = log or logger
        self._private = frozenset(config.private_blocks)

    def compile_set(self, template_set: TemplateSet) -> list[CompiledPage]:
        """Compile every page of a feature set, in path order.

        Returns an empty list (and logs a warning) when no file matches.
        """
        files = load_set(self._env, template_set)
        if not files:
            self._log.warning("no templates matched for set %r", template_set.name)
            return []

        _check_unique((*self._core.files, *files), skip=self._private)

        workers = self._config.max_workers
        if workers > 1 and len(files) > 1:
            with ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="pagesmith-compile"
            ) as pool:
                # map() yields in submission order, not completion order
                pages = list(pool.map(lambda target: self._compile_page(target, files), files))
        else:
            pages = [self._compile_page(target, files) for target in files]

        for page in pages:
            self._log.info(
                "template page compiled: set=%s page=%s",
                page.set_name,
                PurePosixPath(page.path).name,
            )
        return pages

    def _compile_page(self, target: ParsedFile, files: list[ParsedFile]) -> CompiledPage:
        memo = {id(self._env): self._env}
        body: list[nodes.Node] = []

        target_private = self._private.intersection(target.names)
        for core_file in self._core.files:
            tree = copy.deepcopy(core_file.tree, memo)
            _rename_blocks(
                tree,
                {
                    name: placeholder_name(name, core_file.set_name, core_file.path)
                    for name in target_private.intersection(core_file.names)
                },
            )
            body.extend(tree.body)

        for f in files:
            tree = copy.deepcopy(f.tree, memo)
            if f is not target:
                _rename_blocks(
                    tree,
                    {
                        name: placeholder_name(name, f.set_name, f.path)
                        for name in self._private.intersection(f.names)
                    },
                )
            body.extend(tree.body)

        combined = nodes.Template(body, lineno=1)
        combined.set_environment(self._env)
        name = target.location
        try:
            definitions = evaluate_definitions(self._env, body, name)
            code = self._env.compile(combined, name=name, filename=name)
        except Exception as exc:
            # syntax errors, or a top-level {% set %} failing to evaluate
            raise TemplateParseError(target.path, target.set_name, page=target.path) from exc
        template = self._env.template_class.from_code(
            self._env, code, self._env.make_globals(None), None
        )
        return CompiledPage(
            set_name=target.set_name,
            path=target.path,
            owned_names=target.owned(self._private),
            template=template,
            content_block=self._config.content_block,
            definitions=definitions,
        )


# -- Index --


def build_index(
    pages: Iterable[CompiledPage],
    *,
    on_duplicate: str = "error",
    log: logging.Logger | None = None,
) -> Mapping[str, CompiledPage]:
    """Map every owned name to the page that owns it.

    ``pages`` must arrive in a deterministic order (set name, then path);
    with ``on_duplicate="override"`` the later page wins.
    """
    log = log or logger
    index: dict[str, CompiledPage] = {}
    for page in pages:
        for name in sorted(page.owned_names):
            previous = index.get(name)
            if previous is not None and previous is not page:
                locations = (
                    f"{previous.set_name}/{previous.path}",
                    f"{page.set_name}/{page.path}",
                )
                if on_duplicate == "error":
                    raise DuplicateTemplateError(name, locations)
                log.warning(
                    "template %r from %s overrides %s", name, locations[1], locations[0]
                )
            index[name] = page
    return MappingProxyType(index)
