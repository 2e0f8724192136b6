"""
Compositor hosts for the Surface ID Agent.

Modules:
- base: Abstract SurfaceHost interface consumed by the engine
- sway: SurfaceHost backed by Sway IPC (ids published as marks)
"""

from .base import SurfaceHost
from .sway import SwayHost

__all__ = [
    "SurfaceHost",
    "SwayHost",
]
