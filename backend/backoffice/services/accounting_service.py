# Overview: Financial adjustment recorder boundary; invoked synchronously inside the atomic scope.

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Protocol

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import FinancialAdjustment

logger = logging.getLogger(__name__)

RECORDER_EXTENSION_KEY = "financial_recorder"


@dataclass(frozen=True)
class FinancialEvent:
    reference_type: str
    reference_id: int
    event_type: str
    total_cents: int
    cogs_cents: int
    received_cents: int
    outstanding_cents: int
    status: str | None = None
    payment_method: str | None = None
    user_id: int | None = None
    device_id: int | None = None
    description: str | None = None
    previous_values: dict | None = field(default=None)

    def to_dict(self) -> dict:
        return asdict(self)


class FinancialRecorder(Protocol):
    def record(self, event: FinancialEvent) -> None: ...


class JournalRecorder:
    """Default recorder: one FinancialAdjustment row per event, same transaction."""

    def record(self, event: FinancialEvent) -> None:
        db.session.add(FinancialAdjustment(**event.to_dict()))


def get_recorder() -> FinancialRecorder:
    if has_app_context():
        recorder = current_app.extensions.get(RECORDER_EXTENSION_KEY)
        if recorder is not None:
            return recorder
    return JournalRecorder()


def set_recorder(app, recorder: FinancialRecorder | None) -> None:
    """Install a recorder on the app (None restores the journal default)."""
    if recorder is None:
        app.extensions.pop(RECORDER_EXTENSION_KEY, None)
    else:
        app.extensions[RECORDER_EXTENSION_KEY] = recorder


def record_financial_event(event: FinancialEvent) -> bool:
    """
    Hand an event to the recorder inside a SAVEPOINT.

    Failures are logged and bypassed: they never unwind the stock changes
    the event accompanies. Returns True when recorded.
    """
    recorder = get_recorder()
    try:
        with db.session.begin_nested():
            recorder.record(event)
    except SQLAlchemyError:
        logger.error(
            "Failed to store %s for %s #%s",
            event.event_type, event.reference_type, event.reference_id,
            exc_info=True,
        )
        return False
    except Exception:
        # Recorders are external collaborators; any failure is non-critical here
        logger.exception(
            "Financial recorder failed on %s for %s #%s",
            event.event_type, event.reference_type, event.reference_id,
        )
        return False
    return True


def compute_cogs(lines) -> int:
    """Cost of goods: sum of unit_cost_cents * quantity over line items."""
    return sum((line.unit_cost_cents or 0) * line.quantity for line in lines)
