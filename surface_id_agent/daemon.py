"""
Surface ID Agent Daemon

Owns one instance of every core component, wires them to the compositor's
events, and tears everything down when the compositor shuts down.
"""
# Module can be run with: python -m surface_id_agent

import asyncio
import logging
import signal
from pathlib import Path
from typing import Hashable, Optional

from .config import ConfigLoader
from .engine import AssignmentEngine, LifecycleTracker
from .errors import AgentError
from .host import SurfaceHost, SwayHost
from .models import AgentConfig
from .registry import RegistryClient
from .rules import DefaultRangeAllocator, RuleStore

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


class SurfaceIdAgent:
    """Surface id assignment for one compositor session."""

    def __init__(
        self,
        config: AgentConfig,
        host: SurfaceHost,
        registry: Optional[RegistryClient] = None,
    ):
        """
        Initialize agent.

        Args:
            config: Loaded configuration
            host: Compositor host delivering surface events
            registry: Registry client (a default Redis client if None)
        """
        self.config = config
        self.host = host
        self.registry = registry or RegistryClient()
        self.rules = RuleStore()
        self.allocator = DefaultRangeAllocator(config.default_range)
        self.engine = AssignmentEngine(host, self.rules, self.allocator, self.registry)
        self.tracker = LifecycleTracker(host, self.rules, self.registry)
        self.running = False

        # Handlers mutate the rule bindings and the allocator cursor; the
        # lock keeps one event from interleaving with another across awaits.
        self._event_lock = asyncio.Lock()

    async def start(self) -> None:
        """
        Validate rules, connect the registry and subscribe to host events.

        Raises:
            RuleConfigError: If the rule set is invalid
        """
        self.rules.load(self.config.rules, self.config.default_range)
        await self.registry.connect(self.config.registry)
        self.host.subscribe(self.on_surface_configured, self.on_surface_removed, self.on_shutdown)
        self.running = True
        logger.info("Surface ID agent started")

    async def on_surface_configured(self, surface: Hashable) -> Optional[int]:
        async with self._event_lock:
            if not self.running:
                return None
            return await self.engine.on_surface_configured(surface)

    async def on_surface_removed(self, surface: Hashable) -> None:
        async with self._event_lock:
            if not self.running:
                return
            await self.tracker.on_surface_removed(surface)

    async def on_shutdown(self) -> None:
        async with self._event_lock:
            self.running = False
            await self.tracker.on_shutdown()


async def run(config_path: Optional[Path] = None, log_level: Optional[str] = None) -> int:
    """
    Load configuration, start the agent against Sway, and serve events.

    Returns:
        Process exit code: 0 on clean shutdown, 1 on startup failure
    """
    try:
        config = ConfigLoader(config_path).load()
    except AgentError as e:
        setup_logging(log_level or "INFO")
        logger.error(f"Read config failed: {e.message}")
        return 1

    setup_logging(log_level or config.log_level)

    host = SwayHost()
    agent = SurfaceIdAgent(config, host)

    try:
        await agent.start()
    except AgentError as e:
        logger.error(f"No valid config found, not activating: {e.message}")
        return 1

    try:
        await host.connect()
    except AgentError as e:
        logger.error(f"Failed to connect to compositor: {e.message}")
        await agent.on_shutdown()
        return 1

    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        asyncio.ensure_future(host.close())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    await host.run()
    logger.info("Surface ID agent stopped")
    return 0
