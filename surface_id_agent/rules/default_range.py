"""
Default range allocator.

Hands out sequential surface ids from [start, max) to surfaces that match no
rule. Exhaustion is terminal for the lifetime of the process.
"""

import logging
from typing import Hashable, Optional

from ..host.base import SurfaceHost
from ..models import DefaultRange

logger = logging.getLogger(__name__)


class DefaultRangeAllocator:
    """Sequential id cursor over the configured default range."""

    def __init__(self, default_range: Optional[DefaultRange] = None):
        """
        Initialize allocator.

        Args:
            default_range: Configured range (None disables default behavior)
        """
        self.range = default_range
        self.next = default_range.start if default_range else 0

        if default_range:
            logger.info(
                f"Default behavior for unknown applications is set: "
                f"[{default_range.start}, {default_range.max})"
            )

    @property
    def enabled(self) -> bool:
        return self.range is not None

    @property
    def exhausted(self) -> bool:
        return self.enabled and self.next >= self.range.max

    def peek(self) -> Optional[int]:
        """Id the next successful allocation would return."""
        if not self.enabled or self.exhausted:
            return None
        return self.next

    async def allocate(self, host: SurfaceHost, surface: Hashable) -> Optional[int]:
        """
        Take the next id from the range.

        Only the cursor id itself is checked against the host. If a different
        live surface holds it the request fails and the cursor stays put.

        Args:
            host: Host to check for an existing holder of the id
            surface: Surface the id is meant for

        Returns:
            The allocated id, or None when disabled, exhausted, or colliding
        """
        if not self.enabled:
            return None

        if self.exhausted:
            logger.warning(
                f"Interval for default surface_id generation exceeded "
                f"(max {self.range.max})"
            )
            return None

        candidate = self.next
        holder = await host.get_surface_from_id(candidate)
        if holder is not None and holder != surface:
            logger.warning(
                f"surface_id {candidate} already used by another surface ({holder})"
            )
            return None

        self.next += 1
        return candidate
