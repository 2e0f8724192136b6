"""
Rule store for surface id assignment.

Holds the ordered [desktop-app] rules and the relation between each rule's
surface id and the live surface currently occupying it.
"""

import logging
from typing import Dict, Hashable, Iterator, List, Optional, Sequence

from ..errors import ErrorCode, RuleConfigError
from ..models import DefaultRange, SurfaceIdentity, SurfaceRule

logger = logging.getLogger(__name__)


class RuleStore:
    """Ordered rule database with live-surface bindings."""

    def __init__(self):
        self._rules: List[SurfaceRule] = []
        self._bindings: Dict[int, Hashable] = {}

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[SurfaceRule]:
        return iter(self._rules)

    def load(self, rules: Sequence[SurfaceRule], default_range: Optional[DefaultRange] = None):
        """
        Validate and install a rule set.

        The whole set is checked before anything is accepted; on failure the
        store is left empty.

        Args:
            rules: Rules in declaration order
            default_range: Enabled default range, if any

        Raises:
            RuleConfigError: On an empty rule, a duplicate surface id, or a
                surface id inside the default range
        """
        self.clear()
        self._validate(rules, default_range)
        self._rules = list(rules)
        logger.info(f"Loaded {len(self._rules)} surface rules")
        for rule in self._rules:
            logger.debug(f"  rule {rule.describe()}")

    def _validate(self, rules: Sequence[SurfaceRule], default_range: Optional[DefaultRange]):
        seen = set()
        for rule in rules:
            if not rule.has_pattern():
                raise RuleConfigError(
                    ErrorCode.EMPTY_RULE,
                    f"Every parameter is unset in rule for surface_id {rule.surface_id}",
                    rule.surface_id,
                )

            if default_range is not None and default_range.contains(rule.surface_id):
                raise RuleConfigError(
                    ErrorCode.SURFACE_ID_IN_DEFAULT_RANGE,
                    f"surface_id {rule.surface_id} is in default id interval "
                    f"[{default_range.start}, {default_range.max})",
                    rule.surface_id,
                )

            if rule.surface_id in seen:
                raise RuleConfigError(
                    ErrorCode.DUPLICATE_SURFACE_ID,
                    f"Duplicate surface_id: {rule.surface_id}",
                    rule.surface_id,
                )
            seen.add(rule.surface_id)

    def first_match(self, identity: SurfaceIdentity) -> Optional[SurfaceRule]:
        """First rule in declaration order matching the identity, bound or not."""
        for rule in self._rules:
            if rule.matches(identity):
                return rule
        return None

    def find_match(self, identity: SurfaceIdentity, surface: Optional[Hashable] = None) -> Optional[SurfaceRule]:
        """
        Find the rule to apply for a surface.

        Args:
            identity: Attributes of the surface
            surface: Surface asking; a rule bound to this same surface still matches

        Returns:
            The first matching rule, or None if nothing matches or that rule
            is held by a different live surface
        """
        rule = self.first_match(identity)
        if rule is None:
            return None

        holder = self._bindings.get(rule.surface_id)
        if holder is not None and holder != surface:
            logger.debug(f"Rule {rule.surface_id} matches but is held by surface {holder}")
            return None

        return rule

    def bound_surface(self, rule: SurfaceRule) -> Optional[Hashable]:
        return self._bindings.get(rule.surface_id)

    def bind(self, rule: SurfaceRule, surface: Hashable):
        self._bindings[rule.surface_id] = surface

    def release(self, surface: Hashable) -> Optional[SurfaceRule]:
        """
        Clear the binding held by a surface, if any.

        Returns:
            The rule that was released, or None
        """
        for rule in self._rules:
            if self._bindings.get(rule.surface_id) == surface:
                del self._bindings[rule.surface_id]
                logger.debug(f"Released rule {rule.surface_id} from surface {surface}")
                return rule
        return None

    def clear(self):
        self._rules = []
        self._bindings.clear()
