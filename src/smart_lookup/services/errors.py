"""Exceptions surfaced by the lookup services."""

from __future__ import annotations

from typing import Any, Dict, Optional


class SmartLookupError(Exception):
    """Base exception for lookup errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SearchValidationError(SmartLookupError):
    """Raised when a lookup payload or filter is malformed."""


class EnvironmentNotReadyError(SmartLookupError):
    """Raised when no usable collections exist for a vault."""


class BridgeError(SmartLookupError):
    """Raised when the host environment bridge returns an unusable answer."""


__all__ = [
    "SmartLookupError",
    "SearchValidationError",
    "EnvironmentNotReadyError",
    "BridgeError",
]
