"""
Surface ID Agent

Assigns stable numeric ids to compositor surfaces from declarative rules
and mirrors the assignments into a Redis registry.
"""

__version__ = "1.0.0"
__author__ = "NixOS Configuration Team"
