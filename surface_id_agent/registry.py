"""Redis registry client.

Mirrors surface id assignments into Redis so other processes can look up a
surface id by application id and vice versa:

    SET <app_id> <surface_id>
    SET SURID-<surface_id> <app_id>

Every operation is best-effort. When the registry is disabled, unreachable,
or a command fails, the client logs and carries on; nothing raises past it.
"""

import asyncio
import logging
from typing import Callable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from .models import RegistryEndpoint

logger = logging.getLogger(__name__)

REVERSE_KEY_PREFIX = "SURID-"

ClientFactory = Callable[[RegistryEndpoint], "redis.Redis"]


def reverse_key(surface_id: int) -> str:
    return f"{REVERSE_KEY_PREFIX}{surface_id}"


def default_client_factory(endpoint: RegistryEndpoint) -> "redis.Redis":
    """Create a Redis client with per-call timeouts."""
    return redis.Redis(
        host=endpoint.host,
        port=endpoint.port,
        socket_timeout=endpoint.socket_timeout,
        socket_connect_timeout=endpoint.socket_timeout,
        decode_responses=True,
    )


class RegistryClient:
    """Best-effort Redis mirror of surface id assignments."""

    def __init__(
        self,
        client_factory: ClientFactory = default_client_factory,
        max_attempts: int = 10,
        retry_delay: float = 1.0,
    ):
        """
        Initialize registry client.

        Args:
            client_factory: Builds a redis client for an endpoint
            max_attempts: Connection attempts before giving up
            retry_delay: Fixed delay between attempts in seconds
        """
        self._client_factory = client_factory
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.endpoint: Optional[RegistryEndpoint] = None
        self.client: Optional[redis.Redis] = None

    @property
    def is_connected(self) -> bool:
        return self.client is not None

    async def connect(self, endpoint: Optional[RegistryEndpoint]) -> bool:
        """
        Connect to the registry, retrying with a fixed backoff.

        Args:
            endpoint: Registry endpoint (None or disabled skips the registry)

        Returns:
            True if connected, False if disabled or unreachable
        """
        self.endpoint = endpoint
        if endpoint is None or not endpoint.enabled:
            logger.info("Registry integration disabled, skip using REDIS server")
            return False

        logger.info(f"Try to connect REDIS server '{endpoint}'")

        for attempt in range(1, self.max_attempts + 1):
            client = self._client_factory(endpoint)
            try:
                await client.ping()
            except (RedisError, OSError) as e:
                logger.debug(f"Connection attempt {attempt}/{self.max_attempts} failed: {e}")
                await self._close_quietly(client)
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay)
                continue

            self.client = client
            logger.info("Connected to REDIS server successfully")
            return True

        logger.error(
            f"Failed to connect REDIS server '{endpoint}' after {self.max_attempts} attempts; "
            "registry mirroring disabled"
        )
        return False

    async def register(self, app_id: Optional[str], surface_id: int) -> None:
        """
        Publish app_id <-> surface_id in both directions.

        Args:
            app_id: Application id of the surface
            surface_id: Id assigned to the surface
        """
        if not self.is_connected:
            return

        if not app_id:
            logger.warning(f"Not registering surface id {surface_id}: no app id")
            return

        if surface_id is None or surface_id <= 0:
            logger.warning(f"Not registering {app_id}: invalid surface id {surface_id}")
            return

        try:
            await self.client.set(app_id, surface_id)
        except (RedisError, OSError) as e:
            logger.error(f"Failed to register {app_id} -> {surface_id}: {e}")

        try:
            await self.client.set(reverse_key(surface_id), app_id)
        except (RedisError, OSError) as e:
            logger.error(f"Failed to register {reverse_key(surface_id)} -> {app_id}: {e}")

        logger.info(f"Registered {app_id}@{surface_id}")

    async def unregister(self, surface_id: Optional[int]) -> None:
        """
        Remove both mappings for a surface id. Safe to call repeatedly.

        Args:
            surface_id: Id the surface held (None or <= 0 is ignored)
        """
        if not self.is_connected:
            return

        if surface_id is None or surface_id <= 0:
            return

        app_id = await self.lookup_app_id(surface_id)

        try:
            await self.client.delete(reverse_key(surface_id))
        except (RedisError, OSError) as e:
            logger.error(f"Failed to delete {reverse_key(surface_id)}: {e}")

        if app_id:
            try:
                await self.client.delete(app_id)
            except (RedisError, OSError) as e:
                logger.error(f"Failed to delete {app_id}: {e}")
            logger.info(f"Unregistered {app_id}@{surface_id}")

    async def lookup_app_id(self, surface_id: int) -> Optional[str]:
        """Application id registered for a surface id, if any."""
        if not self.is_connected:
            return None
        try:
            value = await self.client.get(reverse_key(surface_id))
        except (RedisError, OSError) as e:
            logger.error(f"Failed to read {reverse_key(surface_id)}: {e}")
            return None
        if isinstance(value, bytes):
            value = value.decode()
        return value or None

    async def lookup_surface_id(self, app_id: str) -> Optional[int]:
        """Surface id registered for an application id, if any."""
        if not self.is_connected:
            return None
        try:
            value = await self.client.get(app_id)
        except (RedisError, OSError) as e:
            logger.error(f"Failed to read {app_id}: {e}")
            return None
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Registry value for {app_id} is not a surface id: {value!r}")
            return None

    async def close(self) -> None:
        """Close the connection; later operations become no-ops."""
        client, self.client = self.client, None
        if client is not None:
            await self._close_quietly(client)

    @staticmethod
    async def _close_quietly(client) -> None:
        try:
            await client.aclose()
        except (RedisError, OSError) as e:
            logger.debug(f"Error closing registry connection: {e}")
