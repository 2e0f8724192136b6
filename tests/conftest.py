"""
Pytest configuration and fixtures for Surface ID Agent tests.
"""

import sys
from pathlib import Path

import pytest

# Make the package and the fixtures package importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from fixtures.fake_host import FakeSurface, InMemoryHost
from fixtures.fake_redis import FakeRedisServer
from surface_id_agent.registry import RegistryClient


@pytest.fixture
def host() -> InMemoryHost:
    """In-memory compositor host."""
    return InMemoryHost()


@pytest.fixture
def redis_server() -> FakeRedisServer:
    """Reachable in-memory Redis."""
    return FakeRedisServer()


@pytest.fixture
def registry(redis_server) -> RegistryClient:
    """Registry client wired to the in-memory Redis, no retry delay."""
    return RegistryClient(client_factory=redis_server.client, retry_delay=0)


@pytest.fixture
def surface_factory():
    """Create surfaces with an app id and/or title."""
    def _make(app_id=None, title=None) -> FakeSurface:
        return FakeSurface(app_id=app_id, title=title)
    return _make


@pytest.fixture
def config_file(tmp_path):
    """Write a configuration file and return its path."""
    def _write(content: str, name: str = "config.toml") -> Path:
        path = tmp_path / name
        path.write_text(content)
        return path
    return _write


@pytest.fixture
def valid_config_toml():
    """Rules plus default range plus a disabled registry."""
    return """
log_level = "DEBUG"

[[desktop-app]]
surface-id = 7
app-id = "nav"

[[desktop-app]]
surface-id = 8
app-title = "Media Player"

[[desktop-app]]
surface-id = 9
app-id = "browser"
app-title = "Settings"

[desktop-app-default]
default-surface-id = 100
default-surface-id-max = 200

[redis-server]
server = "off"
"""
