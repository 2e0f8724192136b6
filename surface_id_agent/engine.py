"""Surface id assignment engine and lifecycle tracker.

AssignmentEngine handles "surface configured": it picks an id from the rule
store or the default range, applies it through the host, and mirrors it to
the registry. LifecycleTracker handles "surface removed" and shutdown.
"""

import logging
from collections import deque
from typing import Deque, Hashable, Optional

from .errors import AgentError, SurfaceIdInUseError
from .host.base import SurfaceHost
from .models import AssignmentFailure, FailureReason, SurfaceIdentity
from .registry import RegistryClient
from .rules import DefaultRangeAllocator, RuleStore

logger = logging.getLogger(__name__)


class AssignmentEngine:
    """Assigns surface ids on configure events."""

    MAX_FAILURE_HISTORY = 100

    def __init__(
        self,
        host: SurfaceHost,
        rules: RuleStore,
        allocator: DefaultRangeAllocator,
        registry: RegistryClient,
    ):
        self.host = host
        self.rules = rules
        self.allocator = allocator
        self.registry = registry
        self.failures: Deque[AssignmentFailure] = deque(maxlen=self.MAX_FAILURE_HISTORY)

    async def identify(self, surface: Hashable) -> SurfaceIdentity:
        """Snapshot the surface's app id and title."""
        title = await self.host.get_title(surface)
        app_id = await self.host.get_app_id(surface)

        if app_id is None and title is not None:
            logger.info(f"No app id found, use app title instead: {title}")

        identity = SurfaceIdentity.from_attributes(app_id, title)
        if identity.is_empty:
            logger.warning(f"No app id found for surface {surface}")
        else:
            logger.info(f"Found application: {identity.app_id}")
        return identity

    async def on_surface_configured(self, surface: Hashable) -> Optional[int]:
        """
        Assign an id to a surface that has none.

        Args:
            surface: Host surface handle

        Returns:
            The surface's id, or None if assignment failed
        """
        current = await self.host.get_surface_id(surface)
        if current is not None:
            return current

        identity = await self.identify(surface)

        rule = self.rules.find_match(identity, surface)
        if rule is not None:
            try:
                await self.host.set_surface_id(surface, rule.surface_id)
            except SurfaceIdInUseError as e:
                logger.warning(f"Could not apply rule {rule.describe()}: {e.message}")
                return self._fail(surface, identity, FailureReason.ID_REJECTED, rule.surface_id)
            except AgentError as e:
                logger.warning(f"Host failed to apply rule {rule.describe()}: {e.message}")
                return self._fail(surface, identity, FailureReason.HOST_ERROR, rule.surface_id)

            self.rules.bind(rule, surface)
            await self._assigned(surface, identity, rule.surface_id)
            return rule.surface_id

        occupied = self.rules.first_match(identity)
        if occupied is not None:
            logger.warning(
                f"Rule {occupied.describe()} is held by surface "
                f"{self.rules.bound_surface(occupied)}"
            )
            return self._fail(surface, identity, FailureReason.RULE_OCCUPIED, occupied.surface_id)

        if not self.allocator.enabled:
            logger.warning("Could not find configuration for application")
            return self._fail(surface, identity, FailureReason.NO_MATCH)

        if self.allocator.exhausted:
            return self._fail(surface, identity, FailureReason.RANGE_EXHAUSTED)

        logger.info("No configuration for application, adding to default range")
        candidate = self.allocator.peek()
        surface_id = await self.allocator.allocate(self.host, surface)
        if surface_id is None:
            return self._fail(surface, identity, FailureReason.DEFAULT_COLLISION, candidate)

        # The cursor has already moved past surface_id, so a default id the
        # host rejects is not handed out again.
        try:
            await self.host.set_surface_id(surface, surface_id)
        except SurfaceIdInUseError as e:
            logger.warning(f"Could not apply default id: {e.message}")
            return self._fail(surface, identity, FailureReason.ID_REJECTED, surface_id)
        except AgentError as e:
            logger.warning(f"Host failed to apply default id {surface_id}: {e.message}")
            return self._fail(surface, identity, FailureReason.HOST_ERROR, surface_id)

        await self._assigned(surface, identity, surface_id)
        return surface_id

    async def _assigned(self, surface: Hashable, identity: SurfaceIdentity, surface_id: int):
        logger.info(f"Assigned surface id {surface_id} to {identity.app_id} (surface {surface})")
        await self.registry.register(identity.app_id, surface_id)

    def _fail(
        self,
        surface: Hashable,
        identity: SurfaceIdentity,
        reason: FailureReason,
        surface_id: Optional[int] = None,
    ) -> None:
        self.failures.append(AssignmentFailure(surface, identity, reason, surface_id))
        logger.error(
            f"Could not create surface_id for application {identity.app_id} "
            f"(surface {surface}, reason: {reason.value})"
        )
        return None


class LifecycleTracker:
    """Releases bindings and unregisters surfaces as they go away."""

    def __init__(self, host: SurfaceHost, rules: RuleStore, registry: RegistryClient):
        self.host = host
        self.rules = rules
        self.registry = registry
        self.is_shut_down = False

    async def on_surface_removed(self, surface: Hashable) -> None:
        """
        Forget a removed surface.

        The id is read from the host before any internal state is cleared so
        the registry is cleaned up under the id the surface held.
        """
        surface_id = await self.host.get_surface_id(surface)
        self.rules.release(surface)
        await self.registry.unregister(surface_id)

    async def on_shutdown(self) -> None:
        """Tear down all core state. Runs at most once."""
        if self.is_shut_down:
            return
        self.is_shut_down = True
        logger.info("Compositor shutting down, releasing surface id state")
        self.rules.clear()
        await self.registry.close()
