"""Beeper Reader — read-only browsing and search over a local Beeper index.db."""

__version__ = "0.1.0"
