# Overview: Success/failure envelope returned by every public reconciliation operation.

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Any

from ..validation import NOT_FOUND, VALIDATION, ValidationError
from .concurrency import ConcurrencyConflict

logger = logging.getLogger(__name__)

CONFLICT = "conflict"
ERROR = "error"

__all__ = [
    "CONFLICT",
    "ERROR",
    "NOT_FOUND",
    "VALIDATION",
    "OperationResult",
    "ValidationError",
    "service_operation",
]


@dataclass
class OperationResult:
    success: bool
    message: str
    data: Any = None
    ledger_entries: list[dict] = field(default_factory=list)
    error_kind: str | None = None
    details: dict = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, data: Any = None, ledger_entries: list[dict] | None = None) -> "OperationResult":
        return cls(True, message, data, ledger_entries or [])

    @classmethod
    def fail(cls, message: str, kind: str = ERROR, details: dict | None = None) -> "OperationResult":
        return cls(False, message, None, [], kind, details or {})

    def to_dict(self) -> dict:
        payload = {
            "success": self.success,
            "message": self.message,
            "data": self.data,
            "ledger_entries": self.ledger_entries,
        }
        if not self.success:
            payload["error_kind"] = self.error_kind
            if self.details:
                payload["details"] = self.details
        return payload


def service_operation(action: str):
    """
    Convert exceptions into failed OperationResults at the service boundary.

    - ValidationError: verbatim message, its own kind.
    - ConcurrencyConflict: conflict.
    - anything else: logged with traceback, generic database error.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> OperationResult:
            try:
                return func(*args, **kwargs)
            except ValidationError as exc:
                return OperationResult.fail(str(exc), exc.kind, exc.details)
            except ConcurrencyConflict as exc:
                logger.info("Conflict during %s: %s", action, exc)
                return OperationResult.fail(str(exc), CONFLICT)
            except Exception as exc:
                logger.exception("Failed to %s", action)
                return OperationResult.fail(
                    f"Database error: {exc}. Please try again later.",
                    ERROR,
                )
        return wrapper
    return decorator
