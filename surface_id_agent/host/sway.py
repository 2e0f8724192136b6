"""Sway host adapter.

Surfaces are Sway container ids. Assigned surface ids are published as
container marks (``surface-id:<n>``) so other IPC clients can read them, and
the id table is rebuilt from those marks whenever the agent (re)connects.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

from i3ipc import Event
from i3ipc.aio import Connection

from ..errors import HostConnectionError, SurfaceIdInUseError
from .base import SurfaceHost

logger = logging.getLogger(__name__)

MARK_PREFIX = "surface-id:"


def build_mark(surface_id: int) -> str:
    return f"{MARK_PREFIX}{surface_id}"


def parse_mark(mark: str) -> Optional[int]:
    """Extract the surface id from a mark, or None if it is not ours."""
    if not mark.startswith(MARK_PREFIX):
        return None
    try:
        return int(mark[len(MARK_PREFIX):])
    except ValueError:
        return None


def get_app_id(container) -> Optional[str]:
    """Application id in a Sway/i3-compatible way.

    Native Wayland clients report app_id; XWayland clients only have a
    window class.
    """
    if getattr(container, 'app_id', None):
        return container.app_id

    if getattr(container, 'window_class', None):
        return container.window_class

    return None


@dataclass
class SwayWindow:
    """Attributes cached from the last event seen for a container."""
    con_id: int
    app_id: Optional[str] = None
    title: Optional[str] = None

    @classmethod
    def from_container(cls, container) -> "SwayWindow":
        return cls(
            con_id=container.id,
            app_id=get_app_id(container),
            title=container.name or None,
        )


def iter_windows(node) -> Iterator:
    """Walk tiled and floating containers that hold a client window."""
    for child in list(getattr(node, 'nodes', [])) + list(getattr(node, 'floating_nodes', [])):
        if getattr(child, 'app_id', None) or getattr(child, 'window', None):
            yield child
        yield from iter_windows(child)


class SwayHost(SurfaceHost):
    """SurfaceHost backed by Sway IPC."""

    def __init__(self, connection: Optional[Connection] = None, max_attempts: int = 10):
        """
        Initialize Sway host.

        Args:
            connection: Async i3ipc Connection (created on connect if None)
            max_attempts: Connection attempts before giving up
        """
        super().__init__()
        self.conn = connection
        self.max_attempts = max_attempts
        self.reconnect_delay = 0.1

        self._windows: Dict[int, SwayWindow] = {}
        self._ids: Dict[int, int] = {}
        self._holders: Dict[int, int] = {}
        self._shutdown_sent = False

    async def connect(self) -> None:
        """Connect to Sway with exponential backoff and rebuild ids from marks.

        Raises:
            HostConnectionError: If connection fails after max attempts
        """
        if self.conn is None:
            attempt = 0
            delay = self.reconnect_delay

            while self.conn is None:
                try:
                    logger.info(f"Attempting to connect to Sway (attempt {attempt + 1}/{self.max_attempts})")
                    self.conn = await Connection(auto_reconnect=False).connect()
                except Exception as e:
                    logger.warning(f"Connection attempt {attempt + 1} failed: {e}")
                    attempt += 1
                    if attempt >= self.max_attempts:
                        raise HostConnectionError("connect", str(e))
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, 5.0)

        await self.rebuild_state()

        self.conn.on(Event.WINDOW_NEW, self._on_window_new)
        self.conn.on(Event.WINDOW_TITLE, self._on_window_title)
        self.conn.on(Event.WINDOW_CLOSE, self._on_window_close)
        self.conn.on(Event.SHUTDOWN, self._on_ipc_shutdown)
        await self.conn.subscribe([Event.WINDOW, Event.SHUTDOWN])

        logger.info("Subscribed to Sway window and shutdown events")

    async def rebuild_state(self) -> None:
        """Rebuild the id table from container marks."""
        self._windows.clear()
        self._ids.clear()
        self._holders.clear()

        tree = await self.conn.get_tree()
        for container in iter_windows(tree):
            window = SwayWindow.from_container(container)
            self._windows[window.con_id] = window
            for mark in getattr(container, 'marks', None) or []:
                surface_id = parse_mark(mark)
                if surface_id is not None:
                    self._record(window.con_id, surface_id)
                    break

        logger.info(f"Rebuilt state: {len(self._windows)} windows, {len(self._ids)} with surface ids")

    def _record(self, con_id: int, surface_id: int) -> None:
        self._ids[con_id] = surface_id
        self._holders[surface_id] = con_id

    def _forget(self, con_id: int) -> None:
        self._windows.pop(con_id, None)
        surface_id = self._ids.pop(con_id, None)
        if surface_id is not None and self._holders.get(surface_id) == con_id:
            del self._holders[surface_id]

    async def get_app_id(self, surface: int) -> Optional[str]:
        window = self._windows.get(surface)
        return window.app_id if window else None

    async def get_title(self, surface: int) -> Optional[str]:
        window = self._windows.get(surface)
        return window.title if window else None

    async def get_surface_id(self, surface: int) -> Optional[int]:
        return self._ids.get(surface)

    async def get_surface_from_id(self, surface_id: int) -> Optional[int]:
        return self._holders.get(surface_id)

    async def set_surface_id(self, surface: int, surface_id: int) -> None:
        holder = self._holders.get(surface_id)
        if holder is not None and holder != surface:
            raise SurfaceIdInUseError(surface_id, holder)

        # Sway moves a mark that is already set elsewhere, so the holder
        # check above must come first.
        command = f'[con_id={surface}] mark --add "{build_mark(surface_id)}"'
        try:
            result = await self.conn.command(command)
        except Exception as e:
            raise HostConnectionError("mark", str(e))

        if not result or not result[0].success:
            error_msg = result[0].error if result else "Unknown error"
            raise HostConnectionError("mark", error_msg)

        self._record(surface, surface_id)
        logger.debug(f"Marked window {surface} with surface id {surface_id}")

    async def _on_window_new(self, conn, event) -> None:
        window = SwayWindow.from_container(event.container)
        self._windows[window.con_id] = window
        logger.debug(f"New window: {window.con_id} ({window.app_id})")
        if self._on_configured:
            await self._on_configured(window.con_id)

    async def _on_window_title(self, conn, event) -> None:
        window = SwayWindow.from_container(event.container)
        self._windows[window.con_id] = window
        if self._on_configured and window.con_id not in self._ids:
            await self._on_configured(window.con_id)

    async def _on_window_close(self, conn, event) -> None:
        con_id = event.container.id
        try:
            if self._on_removed:
                await self._on_removed(con_id)
        finally:
            self._forget(con_id)

    async def _on_ipc_shutdown(self, conn, event) -> None:
        logger.info("Sway is shutting down")
        await self.notify_shutdown()

    async def notify_shutdown(self) -> None:
        """Deliver the shutdown notification exactly once."""
        if self._shutdown_sent:
            return
        self._shutdown_sent = True
        if self._on_shutdown:
            await self._on_shutdown()

    async def run(self) -> None:
        try:
            await self.conn.main()
        except asyncio.CancelledError:
            logger.info("Event loop cancelled")
        finally:
            await self.notify_shutdown()

    async def close(self) -> None:
        if self.conn:
            self.conn.main_quit()
