"""
Rule handling for surface id assignment.

Modules:
- rule_store: Ordered [desktop-app] rules and live-surface bindings
- default_range: Sequential fallback ids for unmatched surfaces
"""

from .default_range import DefaultRangeAllocator
from .rule_store import RuleStore

__all__ = [
    "DefaultRangeAllocator",
    "RuleStore",
]
