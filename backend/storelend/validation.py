from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from storelend.errors import InvalidArgumentError


# NUMERIC(10,2): up to 99,999,999.99
MAX_QUANTITY = Decimal("99999999.99")

MAX_PRODUCT_NAME_LENGTH = 255
MAX_CATEGORY_LENGTH = 120
MAX_UNIT_LENGTH = 32


@dataclass(frozen=True)
class BorrowItemInput:
    product_name: str
    quantity: Decimal
    category: str | None = None
    unit: str | None = None
    notes: str | None = None


def coerce_id(value: Any, field: str) -> int:
    """
    Strict integer id coercion.

    Accepts ints (not bools) and plain digit strings; rejects floats,
    decimals and scientific notation.
    """
    if value is None:
        raise InvalidArgumentError(f"{field} is required")
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise InvalidArgumentError(f"{field} is required")
        if not stripped.isdecimal():
            raise InvalidArgumentError(f"{field} must be an integer")
        try:
            return int(stripped)
        except ValueError:
            raise InvalidArgumentError(f"{field} must be an integer")
    raise InvalidArgumentError(f"{field} must be an integer")


def clean_text(value: Any, field: str, *, max_length: int | None = None) -> str | None:
    """Trim optional free text; blank becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{field} must be a string")
    stripped = value.strip()
    if not stripped:
        return None
    if max_length is not None and len(stripped) > max_length:
        raise InvalidArgumentError(f"{field} exceeds max length {max_length}")
    return stripped


def coerce_quantity(value: Any) -> Decimal:
    """
    Quantity must be a finite number > 0 with at most two decimal places.
    """
    if value is None or isinstance(value, bool):
        raise InvalidArgumentError("Each item must have a quantity greater than 0")

    if isinstance(value, (int, float, Decimal)):
        raw = str(value)
    elif isinstance(value, str):
        raw = value.strip()
    else:
        raise InvalidArgumentError("Each item must have a quantity greater than 0")

    try:
        quantity = Decimal(raw)
    except InvalidOperation:
        raise InvalidArgumentError("Each item must have a quantity greater than 0")

    if not quantity.is_finite() or quantity <= 0:
        raise InvalidArgumentError("Each item must have a quantity greater than 0")
    if quantity > MAX_QUANTITY:
        raise InvalidArgumentError(f"quantity cannot exceed {MAX_QUANTITY}")
    if quantity != quantity.quantize(Decimal("0.01")):
        raise InvalidArgumentError("quantity supports at most two decimal places")
    return quantity


def parse_borrow_items(items: Any) -> list[BorrowItemInput]:
    """
    Validate the item list of a borrow request.

    Accepts dicts with camelCase or snake_case keys, or BorrowItemInput
    instances. Raises InvalidArgumentError on the first bad item.
    """
    if not items or not isinstance(items, (list, tuple)):
        raise InvalidArgumentError("At least one item is required")

    parsed: list[BorrowItemInput] = []
    for raw in items:
        if isinstance(raw, BorrowItemInput):
            raw = {
                "product_name": raw.product_name,
                "quantity": raw.quantity,
                "category": raw.category,
                "unit": raw.unit,
                "notes": raw.notes,
            }
        if not isinstance(raw, dict):
            raise InvalidArgumentError("Each item must be an object")

        name = raw.get("productName", raw.get("product_name"))
        if not isinstance(name, str) or not name.strip():
            raise InvalidArgumentError("Each item must have a productName")

        parsed.append(
            BorrowItemInput(
                product_name=clean_text(name, "productName", max_length=MAX_PRODUCT_NAME_LENGTH),
                quantity=coerce_quantity(raw.get("quantity")),
                category=clean_text(raw.get("category"), "category", max_length=MAX_CATEGORY_LENGTH),
                unit=clean_text(raw.get("unit"), "unit", max_length=MAX_UNIT_LENGTH),
                notes=clean_text(raw.get("notes"), "notes"),
            )
        )

    return parsed
