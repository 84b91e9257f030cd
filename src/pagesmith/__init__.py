"""Pagesmith: per-page template compilation for htmx-style apps.

Many page templates share one layout and one pool of partials, while each
page keeps its own ``content`` block. One handler serves both the full
document and the fragment an htmx request asks for.

Basic usage::

    from pagesmith import DirectorySource, Engine, TemplateRegistry

    registry = TemplateRegistry()
    registry.add("shared", DirectorySource("templates/shared"), "*.html")
    registry.add("users", DirectorySource("templates/users"), "*.html")

    engine = Engine(registry)
    engine.boot()

    html = engine.render_string("users_list", {"users": users})
"""

__version__ = "0.1.0.dev0"
__all__ = [
    "CompiledPage",
    "ConfigurationError",
    "DirectorySource",
    "Engine",
    "EngineConfig",
    "FunctionLibrary",
    "Headers",
    "HTMLResult",
    "MemorySource",
    "PagesmithError",
    "RenderIntent",
    "RequestMarkers",
    "TemplateExecutionError",
    "TemplateNotFound",
    "TemplateRegistry",
    "TemplateSet",
]

_LAZY = {
    "CompiledPage": "pagesmith.compiler",
    "ConfigurationError": "pagesmith.errors",
    "DirectorySource": "pagesmith.sources",
    "Engine": "pagesmith.engine",
    "EngineConfig": "pagesmith.config",
    "FunctionLibrary": "pagesmith.functions",
    "Headers": "pagesmith.markers",
    "HTMLResult": "pagesmith.adapter",
    "MemorySource": "pagesmith.sources",
    "PagesmithError": "pagesmith.errors",
    "RenderIntent": "pagesmith.engine",
    "RequestMarkers": "pagesmith.markers",
    "TemplateExecutionError": "pagesmith.errors",
    "TemplateNotFound": "pagesmith.errors",
    "TemplateRegistry": "pagesmith.registry",
    "TemplateSet": "pagesmith.registry",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import pagesmith`` fast while providing a clean top-level API.
    """
    module_name = _LAZY.get(name)
    if module_name is None:
        msg = f"module 'pagesmith' has no attribute {name!r}"
        raise AttributeError(msg)
    import importlib

    return getattr(importlib.import_module(module_name), name)
