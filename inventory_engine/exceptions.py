# inventory_engine/exceptions.py

"""
Typed errors raised by the inventory engine.

Callers at the service boundary map these onto their own responses:
- ItemNotFoundError        → "not found"
- IntegratedAnalysisError  → "analysis failed" (generic message)
"""

from typing import Any, Optional


class InventoryEngineError(Exception):
    """Base class for every error raised by inventory_engine."""


class ConfigurationError(InventoryEngineError):
    """A setting could not be parsed or is out of range."""


class ItemNotFoundError(InventoryEngineError):
    """Unknown item id passed to a per-item calculation."""

    def __init__(self, item_id: Any):
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}")


class IntegratedAnalysisError(InventoryEngineError):
    """
    A phase of the integrated analysis pipeline failed.

    The original failure is always chained as ``__cause__``.
    """

    def __init__(self, message: str, request_key: Optional[str] = None):
        self.request_key = request_key
        super().__init__(message)


class ExecutorSaturatedError(IntegratedAnalysisError):
    """The bounded analysis queue is full or the executor is shut down."""
