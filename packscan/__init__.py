"""PackScan - packaging material identification service."""

__version__ = "1.0.0"
