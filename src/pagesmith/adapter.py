"""Handler-facing render helpers.

Each helper returns an ``HTMLResult`` instead of raising. Render
failures are logged with their cause and turned into a generic 500
body, so template internals never reach the client.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pagesmith.engine import Engine, RenderIntent
from pagesmith.errors import PagesmithError

logger = logging.getLogger("pagesmith.adapter")

ERROR_BODY = "template exec error"


@dataclass(frozen=True, slots=True)
class HTMLResult:
    """A rendered body plus what the transport needs to send it."""

    body: str
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    render_intent: str = "unknown"

    @property
    def ok(self) -> bool:
        return self.status < 400


def _failure(what: str, name: str, exc: PagesmithError) -> HTMLResult:
    logger.error("%s render failed: %s", what, name, exc_info=exc)
    return HTMLResult(
        body=ERROR_BODY,
        status=500,
        content_type="text/plain; charset=utf-8",
        render_intent="error",
    )


def page(engine: Engine, request: Any, name: str, context: Any = None) -> HTMLResult:
    """Full page with layout."""
    buf = io.StringIO()
    try:
        engine.render(buf, request, name, context)
    except PagesmithError as exc:
        return _failure("template", name, exc)
    return HTMLResult(buf.getvalue(), render_intent=RenderIntent.FULL_PAGE.value)


def snippet(engine: Engine, name: str, context: Any = None) -> HTMLResult:
    """A partial, e.g. ``"groups_table"``."""
    buf = io.StringIO()
    try:
        engine.render_snippet(buf, name, context)
    except PagesmithError as exc:
        return _failure("snippet", name, exc)
    return HTMLResult(buf.getvalue(), render_intent=RenderIntent.SNIPPET.value)


def content(engine: Engine, entry: str, context: Any = None) -> HTMLResult:
    """Only the content block of *entry*'s page."""
    buf = io.StringIO()
    try:
        engine.render_content(buf, entry, context)
    except PagesmithError as exc:
        return _failure("content", entry, exc)
    return HTMLResult(buf.getvalue(), render_intent=RenderIntent.CONTENT.value)


def auto(
    engine: Engine,
    request: Any,
    page_name: str,
    targets: Mapping[str, str] | None = None,
    context: Any = None,
) -> HTMLResult:
    """Full page, snippet or content block, chosen from the request markers."""
    buf = io.StringIO()
    try:
        intent = engine.render_auto_map(buf, request, page_name, targets or {}, context)
    except PagesmithError as exc:
        return _failure("auto", page_name, exc)
    return HTMLResult(buf.getvalue(), render_intent=intent.value)
