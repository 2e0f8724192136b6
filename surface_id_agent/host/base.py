"""
Abstract compositor host consumed by the assignment engine.

A surface is an opaque hashable handle chosen by the host implementation.
All notifications are delivered from one event loop, one at a time.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Hashable, Optional

SurfaceCallback = Callable[[Hashable], Awaitable[None]]
ShutdownCallback = Callable[[], Awaitable[None]]


class SurfaceHost(ABC):
    """
    Compositor interface: surface attributes, the id get/set API, and events.

    Implement this interface to run the agent against a new compositor.
    """

    def __init__(self):
        self._on_configured: Optional[SurfaceCallback] = None
        self._on_removed: Optional[SurfaceCallback] = None
        self._on_shutdown: Optional[ShutdownCallback] = None

    def subscribe(
        self,
        on_configured: SurfaceCallback,
        on_removed: SurfaceCallback,
        on_shutdown: ShutdownCallback,
    ) -> None:
        """
        Register the agent's event handlers.

        Args:
            on_configured: Called when a surface's desktop attributes are available
            on_removed: Called when a surface is destroyed, before the host
                forgets its id
            on_shutdown: Called once when the compositor is shutting down
        """
        self._on_configured = on_configured
        self._on_removed = on_removed
        self._on_shutdown = on_shutdown

    @abstractmethod
    async def get_app_id(self, surface: Hashable) -> Optional[str]:
        """Application identifier published by the surface."""

    @abstractmethod
    async def get_title(self, surface: Hashable) -> Optional[str]:
        """Window title of the surface."""

    @abstractmethod
    async def get_surface_id(self, surface: Hashable) -> Optional[int]:
        """Current id of the surface, or None when unset."""

    @abstractmethod
    async def set_surface_id(self, surface: Hashable, surface_id: int) -> None:
        """
        Assign an id to a surface.

        Raises:
            SurfaceIdInUseError: If a different surface already holds the id
        """

    @abstractmethod
    async def get_surface_from_id(self, surface_id: int) -> Optional[Hashable]:
        """Surface currently holding an id, if any."""

    async def connect(self) -> None:
        """Establish the host connection. No-op for in-process hosts."""

    async def run(self) -> None:
        """Deliver events until the host goes away."""

    async def close(self) -> None:
        """Stop event delivery."""
