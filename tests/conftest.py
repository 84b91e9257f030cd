"""Shared pytest fixtures for pagesmith tests.

``SHARED`` and ``USERS`` are the in-memory version of the layout + users
feature set; ``TEMPLATES_DIR`` holds the same shape on disk.
"""

from pathlib import Path

import pytest

from pagesmith.engine import Engine
from pagesmith.registry import TemplateRegistry
from pagesmith.sources import DirectorySource, MemorySource

TEMPLATES_DIR = Path(__file__).parent / "templates"

SHARED = {
    "layout.html": (
        "{% block layout %}<html><body>{{ self.nav() }}"
        '<main id="content">{{ self.content() }}</main></body></html>{% endblock %}'
    ),
    "nav.html": "{% block nav %}<nav>NAV</nav>{% endblock %}",
}

USERS = {
    "list.html": (
        "{% block users_list %}{{ self.layout() }}{% endblock %}"
        "{% block content %}<h1>LIST BODY</h1>{{ self.users_table() }}{% endblock %}"
    ),
    "table.html": (
        '{% block users_table %}<table id="users-table">'
        "{% for u in users %}<tr><td>{{ u }}</td></tr>{% endfor %}"
        "</table>{% endblock %}"
    ),
    "edit.html": (
        "{% block users_edit %}{{ self.layout() }}{% endblock %}"
        "{% block content %}<h1>EDIT BODY</h1>{% endblock %}"
    ),
}


def memory_registry(**sets: dict[str, str]) -> TemplateRegistry:
    """Registry with one ``MemorySource`` set per keyword, matching ``*.html``."""
    registry = TemplateRegistry()
    for name, files in sets.items():
        registry.add(name, MemorySource(files), "*.html")
    return registry


@pytest.fixture
def registry() -> TemplateRegistry:
    return memory_registry(shared=SHARED, users=USERS)


@pytest.fixture
def engine(registry: TemplateRegistry) -> Engine:
    eng = Engine(registry)
    eng.boot()
    return eng


@pytest.fixture
def disk_engine() -> Engine:
    registry = TemplateRegistry()
    registry.add("shared", DirectorySource(TEMPLATES_DIR / "shared"), "*.html")
    registry.add("users", DirectorySource(TEMPLATES_DIR / "users"), "*.html")
    registry.add("groups", DirectorySource(TEMPLATES_DIR), "groups/*.html")
    eng = Engine(registry)
    eng.boot()
    return eng
