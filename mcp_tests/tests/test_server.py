import sys
import types
import uuid
import importlib.util
from pathlib import Path


def _find_server_py() -> Path:
    root = Path(__file__).resolve().parents[2]
    candidates = [
        root / "server.py",
        root / "server" / "server.py",
        root / "src" / "server" / "server.py",
    ]
    for p in candidates:
        if p.exists():
            return p
    raise FileNotFoundError(f"Could not find server.py. Tried: {candidates}")


def _install_fake_mcp(monkeypatch, captures: dict):
    # ---- Fake mcp.server.fastmcp.FastMCP ----
    mcp_mod = types.ModuleType("mcp")
    mcp_server_mod = types.ModuleType("mcp.server")
    fastmcp_mod = types.ModuleType("mcp.server.fastmcp")

    class DummyFastMCP:
        def __init__(self, name: str):
            captures["fastmcp_name"] = name
            captures["mcp_instance"] = self
            self.tools = {}
            self.resources = {}
            self.routes = {}
            self.run_calls = []

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
                self.routes[path] = (tuple(methods), fn)
                return fn
            return _decorator

        def run(self, *, transport: str):
            self.run_calls.append({"transport": transport})
            captures["run_calls"] = list(self.run_calls)

    fastmcp_mod.FastMCP = DummyFastMCP

    # Mark package structure
    mcp_mod.__path__ = []
    mcp_server_mod.__path__ = []

    monkeypatch.setitem(sys.modules, "mcp", mcp_mod)
    monkeypatch.setitem(sys.modules, "mcp.server", mcp_server_mod)
    monkeypatch.setitem(sys.modules, "mcp.server.fastmcp", fastmcp_mod)


def _load_server_module(monkeypatch, captures: dict):
    _install_fake_mcp(monkeypatch, captures)

    server_path = _find_server_py()
    mod_name = f"server_under_test_{uuid.uuid4().hex}"
    spec = importlib.util.spec_from_file_location(mod_name, server_path)
    assert spec and spec.loader

    module = importlib.util.module_from_spec(spec)
    monkeypatch.setitem(sys.modules, mod_name, module)
    spec.loader.exec_module(module)
    return module


def test_server_registers_tools_resources_and_routes(monkeypatch):
    captures = {}
    module = _load_server_module(monkeypatch, captures)

    assert captures["fastmcp_name"] == "markdown-sources"
    mcp = captures["mcp_instance"]

    assert set(mcp.tools) == {"get_sources", "read_document"}
    assert set(mcp.resources) == {"sources://tree"}
    assert mcp.routes["/api/sources"][0] == ("GET",)
    assert mcp.routes["/api/sources/watch"][0] == ("GET",)

    # One engine shared by everything that was registered
    assert module.engine.hub is not None
    assert not module.engine.initialized


def test_server_main_configures_logging_and_runs(monkeypatch):
    captures = {}
    module = _load_server_module(monkeypatch, captures)

    logging_calls = []
    monkeypatch.setattr(module, "setup_logging", lambda level, log_file: logging_calls.append((level, log_file)))
    monkeypatch.setattr(module, "MCP_TRANSPORT", "stdio")

    stopped = []
    monkeypatch.setattr(module.engine, "stop_watching", lambda: stopped.append(True))

    module.main()

    assert captures["run_calls"] == [{"transport": "stdio"}]
    assert len(logging_calls) == 1
    assert stopped == [True]
