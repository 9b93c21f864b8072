from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .time_utils import coerce_datetime


# Maximum amount: $9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999

VALIDATION = "validation"
NOT_FOUND = "not_found"


class ValidationError(ValueError):
    """Rejected before any mutation; message is shown to the caller verbatim."""

    def __init__(self, message: str, kind: str = VALIDATION, details: dict | None = None):
        super().__init__(message)
        self.kind = kind
        self.details = details or {}


def coerce_int(value: Any, field: str, *, required: bool = True, default: int | None = None) -> int | None:
    """
    Strict integer coercion: ints and digit strings only.

    Rejects bools, floats with fractions, decimals in strings and scientific notation.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required and default is None:
            raise ValidationError(f"{field} is required")
        return default

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{field} must be an integer, not a decimal")
    if isinstance(value, str):
        stripped = value.strip()
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    raise ValidationError(f"{field} must be an integer")


def coerce_cents(value: Any, field: str, *, default: int = 0) -> int:
    cents = coerce_int(value, field, required=False, default=default)
    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return cents


def coerce_text(value: Any, field: str, *, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text or None


def coerce_date(value: Any, field: str):
    try:
        return coerce_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


@dataclass(frozen=True)
class LineInput:
    """One normalized line item from a request payload."""
    index: int
    id: int | None
    product_id: int
    quantity: int
    unit_price_cents: int
    unit_cost_cents: int | None = None
    notes: str | None = None


def parse_line_items(raw_items: Any, *, with_cost: bool = True) -> list[LineInput]:
    """
    Normalize an items array. Errors carry the 1-based item position.

    Accepts productId/product_id and price_cents/unit_price_cents spellings.
    """
    if raw_items is None or not isinstance(raw_items, list):
        raise ValidationError("items must be a list")
    if not raw_items:
        raise ValidationError("At least one item is required")

    lines = []
    for index, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Item {index}: invalid item")
        label = f"Item {index}"

        product_id = coerce_int(raw.get("product_id", raw.get("productId")), f"{label}: product_id")
        if product_id <= 0:
            raise ValidationError(f"{label}: Valid product is required")

        quantity = coerce_int(raw.get("quantity"), f"{label}: quantity")
        if quantity <= 0:
            raise ValidationError(f"{label}: Valid quantity is required")

        price = coerce_cents(raw.get("unit_price_cents", raw.get("price_cents")), f"{label}: unit_price_cents")

        cost = None
        if with_cost and raw.get("unit_cost_cents", raw.get("cost_cents")) is not None:
            cost = coerce_cents(raw.get("unit_cost_cents", raw.get("cost_cents")), f"{label}: unit_cost_cents")

        item_id = coerce_int(raw.get("id"), f"{label}: id", required=False)

        lines.append(LineInput(
            index=index,
            id=item_id,
            product_id=product_id,
            quantity=quantity,
            unit_price_cents=price,
            unit_cost_cents=cost,
            notes=coerce_text(raw.get("notes"), f"{label}: notes"),
        ))
    return lines


def check_received(received_cents: int, total_cents: int) -> None:
    if received_cents > total_cents:
        raise ValidationError(
            f"Received amount ({received_cents}) cannot be greater than total amount ({total_cents})"
        )
