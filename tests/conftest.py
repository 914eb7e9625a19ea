"""
Pytest configuration and fixtures for cmdhandler tests.

Plugins in these tests are small Python scripts written into a temporary
plugin root and launched through the current interpreter, so every test runs
real child processes without depending on what is installed on PATH.
"""

import sys
import threading
from pathlib import Path
from typing import Callable, Optional

import pytest

from cmdhandler.audit import ExecutionLog
from cmdhandler.dispatch import DispatchEngine, EngineConfig
from cmdhandler.loaders import ArgumentStyle, LoaderDescriptor, LoaderRegistry


class FakeCounter:
    """Records counter increments."""

    def __init__(self):
        self.names: list[str] = []
        self._lock = threading.Lock()

    def increment(self, name: str) -> None:
        with self._lock:
            self.names.append(name)


class FakeNotifier:
    """Records failure notifications instead of posting them."""

    def __init__(self):
        self.calls: list[tuple[Optional[str], str]] = []
        self._lock = threading.Lock()

    def notify_failure(self, url: Optional[str], output: str) -> bool:
        with self._lock:
            self.calls.append((url, output))
        return True


@pytest.fixture
def interpreter_registry() -> LoaderRegistry:
    """Loaders that all launch the current Python interpreter."""
    return LoaderRegistry(
        [
            LoaderDescriptor("python", (sys.executable,), ArgumentStyle.PYTHON),
            LoaderDescriptor("go", (sys.executable,), ArgumentStyle.GO),
        ]
    )


@pytest.fixture
def plugin_root(tmp_path: Path) -> Path:
    """Plugin root with one subdirectory per loader."""
    root = tmp_path / "plugins"
    (root / "python").mkdir(parents=True)
    (root / "go").mkdir(parents=True)
    return root


@pytest.fixture
def write_plugin(plugin_root: Path) -> Callable[..., Path]:
    """Factory writing a plugin script under the plugin root."""

    def _write(name: str, source: str, loader: str = "python") -> Path:
        path = plugin_root / loader / name
        path.write_text(source)
        return path

    return _write


@pytest.fixture
def execution_log_path(tmp_path: Path) -> Path:
    return tmp_path / "plugin-execution.log"


@pytest.fixture
def counter() -> FakeCounter:
    return FakeCounter()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def engine_config(interpreter_registry: LoaderRegistry, plugin_root: Path) -> EngineConfig:
    return EngineConfig(
        registry=interpreter_registry,
        plugin_root=plugin_root,
        sync_timeout=30.0,
        background_timeout=30.0,
        max_workers=4,
    )


@pytest.fixture
def engine(engine_config, execution_log_path, counter, notifier):
    """DispatchEngine wired to fakes, with the worker pool joined on teardown."""
    dispatch_engine = DispatchEngine(
        config=engine_config,
        execution_log=ExecutionLog(execution_log_path),
        counter=counter,
        notifier=notifier,
    )
    yield dispatch_engine
    dispatch_engine.shutdown(wait=True)


@pytest.fixture
def api_client(engine: DispatchEngine):
    """Test client with the dispatch engine placed in app state."""
    from fastapi.testclient import TestClient

    from cmdhandler.api.app import app

    # No context manager: lifespan (startup checks, real engine) is skipped
    client = TestClient(app)
    client.app.state.engine = engine
    yield client
