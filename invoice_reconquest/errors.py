"""Exception types raised by the reconquest pipeline."""
from __future__ import annotations

from typing import Any, Dict, Optional


class ReconquestError(Exception):
    """Base exception with a message and debugging context."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(message)


class CatalogUnavailableError(ReconquestError):
    """Neither the primary nor the fallback product catalog could be loaded."""
