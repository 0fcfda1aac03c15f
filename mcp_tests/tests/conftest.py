import pytest


class DummyMCP:
    """Minimal FastMCP stand-in to capture tool, resource and route registration."""

    def __init__(self) -> None:
        self.tools = {}
        self.resources = {}
        self.routes = {}

    def tool(self, *, name: str):
        def _decorator(fn):
            self.tools[name] = fn
            return fn
        return _decorator

    def resource(self, uri: str, **kwargs):
        def _decorator(fn):
            self.resources[uri] = fn
            return fn
        return _decorator

    def custom_route(self, path: str, methods, **kwargs):
        def _decorator(fn):
            self.routes[path] = fn
            return fn
        return _decorator


@pytest.fixture
def dummy_mcp():
    return DummyMCP()


@pytest.fixture
def wiki(tmp_path):
    """Small sources root: a.md and sub/b.md."""
    (tmp_path / "a.md").write_text("# A", encoding="utf-8")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "b.md").write_text("# B", encoding="utf-8")
    return tmp_path
