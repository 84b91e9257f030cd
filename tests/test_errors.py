"""Tests for pagesmith.errors: exception hierarchy and messages."""

import pytest

from pagesmith.errors import (
    BootError,
    ConfigurationError,
    DuplicateSetError,
    DuplicateTemplateError,
    MissingSharedSetError,
    PagesmithError,
    RenderError,
    TemplateExecutionError,
    TemplateNotFound,
    TemplateParseError,
    TemplatePatternError,
    TemplateReadError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        ("exc", "base"),
        [
            (DuplicateSetError("x"), ConfigurationError),
            (MissingSharedSetError("shared"), BootError),
            (TemplateReadError("a.html", "s"), BootError),
            (TemplateParseError("a.html", "s"), BootError),
            (TemplatePatternError("s", ("*.html",)), BootError),
            (DuplicateTemplateError("n", ("a", "b")), BootError),
            (TemplateNotFound("n"), RenderError),
            (TemplateExecutionError("n", ValueError("v")), RenderError),
        ],
    )
    def test_bases(self, exc: Exception, base: type) -> None:
        assert isinstance(exc, base)
        assert isinstance(exc, PagesmithError)


class TestMessages:
    def test_parse_error_with_page(self) -> None:
        exc = TemplateParseError("edit.html", "users", page="list.html")
        assert str(exc) == (
            "Cannot parse 'edit.html' in template set 'users' (compiling page 'list.html')"
        )

    def test_parse_error_includes_cause(self) -> None:
        try:
            try:
                raise ValueError("unexpected end of template")
            except ValueError as inner:
                raise TemplateParseError("a.html", "users") from inner
        except TemplateParseError as exc:
            assert str(exc).endswith(": unexpected end of template")

    def test_not_found(self) -> None:
        assert str(TemplateNotFound("users_list")) == "Template 'users_list' not found"

    def test_execution_error_keeps_cause(self) -> None:
        cause = TypeError("bad")
        exc = TemplateExecutionError("users_list", cause)
        assert exc.cause is cause
        assert "bad" in str(exc)

    def test_duplicate_template(self) -> None:
        exc = DuplicateTemplateError("nav", ("shared/a.html", "users/b.html"))
        assert "shared/a.html, users/b.html" in str(exc)

    def test_pattern_error(self) -> None:
        exc = TemplatePatternError("users", ("", "*.html"))
        assert str(exc) == "Cannot expand patterns ['', '*.html'] of template set 'users'"
