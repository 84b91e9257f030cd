"""Pagesmith exception hierarchy.

Boot-time errors abort startup. Render-time errors are raised to the
calling handler, which decides how to turn them into a response.
"""

from __future__ import annotations


class PagesmithError(Exception):
    """Base for all pagesmith-specific errors."""


class ConfigurationError(PagesmithError):
    """Raised when the engine or registry is used out of order or misconfigured."""


class DuplicateSetError(ConfigurationError):
    """Raised when two template sets are registered under the same name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Template set {name!r} is already registered")


# -- Boot --


class BootError(PagesmithError):
    """Base for errors that abort ``Engine.boot()``."""


class MissingSharedSetError(BootError):
    """Sets were registered but none of them is the shared layout set."""

    def __init__(self, shared_name: str) -> None:
        self.shared_name = shared_name
        super().__init__(f"Shared template set {shared_name!r} is not registered")


class TemplatePatternError(BootError):
    """A set's glob patterns could not be expanded."""

    def __init__(self, set_name: str, patterns: tuple[str, ...]) -> None:
        self.set_name = set_name
        self.patterns = patterns
        super().__init__(
            f"Cannot expand patterns {list(patterns)!r} of template set {set_name!r}"
        )

    def __str__(self) -> str:
        base = super().__str__()
        if self.__cause__ is not None:
            return f"{base}: {self.__cause__}"
        return base


class TemplateReadError(BootError):
    """A matched template file could not be read."""

    def __init__(self, path: str, set_name: str) -> None:
        self.path = path
        self.set_name = set_name
        super().__init__(f"Cannot read {path!r} in template set {set_name!r}")


class TemplateParseError(BootError):
    """A template file failed to parse or compile.

    ``page`` is set when the failure happened while compiling a specific
    page's environment (a file can parse on its own and still fail once
    combined with its siblings).
    """

    def __init__(self, path: str, set_name: str, page: str | None = None) -> None:
        self.path = path
        self.set_name = set_name
        self.page = page
        where = f"{path!r} in template set {set_name!r}"
        if page is not None and page != path:
            where += f" (compiling page {page!r})"
        super().__init__(f"Cannot parse {where}")

    def __str__(self) -> str:
        base = super().__str__()
        if self.__cause__ is not None:
            return f"{base}: {self.__cause__}"
        return base


class DuplicateTemplateError(BootError):
    """Two definitions compete for the same template name."""

    def __init__(self, name: str, locations: tuple[str, ...]) -> None:
        self.name = name
        self.locations = locations
        super().__init__(
            f"Template {name!r} is defined more than once: {', '.join(locations)}"
        )


# -- Render --


class RenderError(PagesmithError):
    """Base for errors raised while rendering a booted engine."""


class TemplateNotFound(RenderError):  # noqa: N818
    """No compiled environment owns the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Template {name!r} not found")


class TemplateExecutionError(RenderError):
    """Executing a template failed partway through.

    Nothing is written to the output when this is raised.
    """

    def __init__(self, name: str, cause: BaseException) -> None:
        self.name = name
        self.cause = cause
        super().__init__(f"Template {name!r} failed to render: {cause}")
