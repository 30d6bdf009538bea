"""Unified lookup over Smart Connections sources and blocks collections."""

__version__ = "0.1.0"
