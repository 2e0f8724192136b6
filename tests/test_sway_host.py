"""
Sway host adapter tests.

Uses a mocked i3ipc.aio connection: ids are published as marks, rebuilt
from marks on connect, and window events are forwarded to the agent.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from surface_id_agent.engine import AssignmentEngine
from surface_id_agent.errors import HostConnectionError, SurfaceIdInUseError
from surface_id_agent.host.sway import SwayHost, build_mark, parse_mark
from surface_id_agent.models import DefaultRange, FailureReason
from surface_id_agent.registry import RegistryClient
from surface_id_agent.rules import DefaultRangeAllocator, RuleStore


def con(con_id, app_id=None, name=None, marks=None, window_class=None, window=None,
        nodes=(), floating_nodes=()):
    """Minimal stand-in for an i3ipc Con."""
    return SimpleNamespace(
        id=con_id,
        app_id=app_id,
        name=name,
        window_class=window_class,
        window=window,
        marks=marks or [],
        nodes=list(nodes),
        floating_nodes=list(floating_nodes),
    )


def make_tree():
    workspace = con(
        2,
        nodes=[
            con(10, app_id="nav", name="Navigation", marks=["surface-id:7"]),
            con(11, app_id="terminal", name="bash"),
        ],
        floating_nodes=[con(12, window_class="Xterm", window=4194307, name="xterm", marks=["other", "surface-id:100"])],
    )
    return con(1, nodes=[workspace])


def make_connection(tree=None, success=True):
    conn = MagicMock()
    conn.get_tree = AsyncMock(return_value=tree or make_tree())
    conn.subscribe = AsyncMock()
    conn.command = AsyncMock(return_value=[SimpleNamespace(success=success, error=None if success else "No matching node")])
    conn.main = AsyncMock()
    return conn


class TestMarks:
    """Mark encoding."""

    def test_round_trip(self):
        assert parse_mark(build_mark(42)) == 42

    def test_foreign_marks_ignored(self):
        assert parse_mark("scoped:terminal:nixos:123") is None
        assert parse_mark("surface-id:abc") is None


class TestConnect:
    """State is rebuilt from marks on connect."""

    @pytest.mark.asyncio
    async def test_rebuild_from_marks(self):
        host = SwayHost(connection=make_connection())
        await host.connect()

        assert await host.get_surface_id(10) == 7
        assert await host.get_surface_id(12) == 100
        assert await host.get_surface_id(11) is None
        assert await host.get_surface_from_id(7) == 10
        assert await host.get_app_id(12) == "Xterm"
        assert await host.get_title(10) == "Navigation"

    @pytest.mark.asyncio
    async def test_subscribes_to_window_and_shutdown(self):
        conn = make_connection()
        host = SwayHost(connection=conn)
        await host.connect()

        conn.subscribe.assert_awaited_once()
        registered = [call.args[0] for call in conn.on.call_args_list]
        assert len(registered) == 4


class TestSetSurfaceId:
    """Ids are applied with a mark command."""

    @pytest.mark.asyncio
    async def test_sets_mark(self):
        conn = make_connection()
        host = SwayHost(connection=conn)
        await host.connect()

        await host.set_surface_id(11, 8)

        conn.command.assert_awaited_once_with('[con_id=11] mark --add "surface-id:8"')
        assert await host.get_surface_id(11) == 8
        assert await host.get_surface_from_id(8) == 11

    @pytest.mark.asyncio
    async def test_rejects_id_held_by_other_window(self):
        conn = make_connection()
        host = SwayHost(connection=conn)
        await host.connect()

        with pytest.raises(SurfaceIdInUseError):
            await host.set_surface_id(11, 7)
        conn.command.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_command_raises(self):
        host = SwayHost(connection=make_connection(success=False))
        await host.connect()

        with pytest.raises(HostConnectionError):
            await host.set_surface_id(11, 8)
        assert await host.get_surface_id(11) is None


class TestEvents:
    """Window events are forwarded to subscribed handlers."""

    @pytest.mark.asyncio
    async def test_new_window_configures(self):
        host = SwayHost(connection=make_connection())
        await host.connect()
        configured = AsyncMock()
        host.subscribe(configured, AsyncMock(), AsyncMock())

        await host._on_window_new(None, SimpleNamespace(container=con(20, app_id="player", name="Music")))

        configured.assert_awaited_once_with(20)
        assert await host.get_app_id(20) == "player"

    @pytest.mark.asyncio
    async def test_failed_mark_stays_inside_the_event(self):
        host = SwayHost(connection=make_connection(success=False))
        await host.connect()
        default_range = DefaultRange(start=200, max=210)
        rules = RuleStore()
        rules.load([], default_range)
        engine = AssignmentEngine(host, rules, DefaultRangeAllocator(default_range), RegistryClient())
        host.subscribe(engine.on_surface_configured, AsyncMock(), AsyncMock())

        await host._on_window_new(None, SimpleNamespace(container=con(20, app_id="player", name="Music")))

        assert await host.get_surface_id(20) is None
        assert engine.failures[-1].reason == FailureReason.HOST_ERROR
        host.conn.main_quit.assert_not_called()

    @pytest.mark.asyncio
    async def test_title_change_reconfigures_only_unassigned(self):
        host = SwayHost(connection=make_connection())
        await host.connect()
        configured = AsyncMock()
        host.subscribe(configured, AsyncMock(), AsyncMock())

        await host._on_window_title(None, SimpleNamespace(container=con(10, app_id="nav", name="Route")))
        configured.assert_not_awaited()

        await host._on_window_title(None, SimpleNamespace(container=con(11, app_id="terminal", name="vim")))
        configured.assert_awaited_once_with(11)
        assert await host.get_title(11) == "vim"

    @pytest.mark.asyncio
    async def test_close_reports_id_before_forgetting(self):
        host = SwayHost(connection=make_connection())
        await host.connect()
        seen = []

        async def removed(surface):
            seen.append(await host.get_surface_id(surface))

        host.subscribe(AsyncMock(), removed, AsyncMock())

        await host._on_window_close(None, SimpleNamespace(container=con(10)))

        assert seen == [7]
        assert await host.get_surface_id(10) is None
        assert await host.get_surface_from_id(7) is None

    @pytest.mark.asyncio
    async def test_shutdown_delivered_once(self):
        host = SwayHost(connection=make_connection())
        await host.connect()
        shutdown = AsyncMock()
        host.subscribe(AsyncMock(), AsyncMock(), shutdown)

        await host._on_ipc_shutdown(None, SimpleNamespace(change="exit"))
        await host.run()

        shutdown.assert_awaited_once()
