"""Test doubles for the compositor host and the Redis registry."""
