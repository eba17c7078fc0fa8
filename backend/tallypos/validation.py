from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate item name)."""


@dataclass(frozen=True)
class ProductLine:
    """
    One requested sale line.

    quantity is expressed in `unit`; unit=None means the item's base unit.
    total_price is the client's line total and is only honoured for base-unit
    lines (converted lines are always priced server-side).
    """
    name: str
    quantity: float
    unit: str | None = None
    total_price: float | None = None


@dataclass(frozen=True)
class CustomerRef:
    """Explicit customer address: the customer's business and personal name."""
    name: str
    company: str | None = None


def parse_number(value: Any, field: str, *, allow_negative: bool = False, default: float | None = None) -> float:
    """
    Coerce a JSON value to float.

    - None / "" -> default (ValidationError when no default)
    - bools are rejected (True is an int in Python)
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is None:
            raise ValidationError(f"{field} is required")
        return default

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if number != number or number in (float("inf"), float("-inf")):
        raise ValidationError(f"{field} must be a finite number")
    if not allow_negative and number < 0:
        raise ValidationError(f"{field} cannot be negative")
    return number


def parse_int(value: Any, field: str) -> int:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(f"{field} must be an integer")


_TRUE_STRINGS = {"true", "1", "yes"}
_FALSE_STRINGS = {"false", "0", "no"}


def parse_bool(value: Any, field: str, *, allow_strings: bool = False) -> bool:
    """
    Strict boolean. With allow_strings, "true"/"false" (and 1/0, yes/no)
    spellings are accepted too; any other string is rejected, never truthy.
    """
    if isinstance(value, bool):
        return value
    if allow_strings and isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValidationError(f"{field} must be a boolean")


def parse_products(raw: Any) -> list[ProductLine]:
    """Validate the products array of a receipt payload."""
    if not isinstance(raw, list) or not raw:
        raise ValidationError("Products must be a non-empty array")

    lines = []
    for index, item in enumerate(raw):
        if isinstance(item, ProductLine):
            lines.append(item)
            continue
        if not isinstance(item, dict):
            raise ValidationError(f"products[{index}] must be an object")

        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(f"products[{index}].name is required")

        unit = item.get("unit")
        if unit is not None and not isinstance(unit, str):
            raise ValidationError(f"products[{index}].unit must be a string")

        total_price = item.get("total_price")
        lines.append(ProductLine(
            name=name,
            quantity=parse_number(item.get("quantity"), f"products[{index}].quantity"),
            unit=unit or None,
            total_price=None if total_price is None else parse_number(total_price, f"products[{index}].total_price"),
        ))
    return lines


def parse_customer_label(label: str) -> CustomerRef:
    """
    Legacy wire format adapter: "company - name" -> CustomerRef.

    The company part "nocompany" (any case) or an empty company means the
    customer has no business name. A label without " - " is a bare name.
    """
    if not isinstance(label, str) or not label.strip():
        raise ValidationError("customer is required")

    if " - " not in label:
        return CustomerRef(name=label.strip())

    company, name = label.split(" - ", 1)
    company = company.strip()
    if company.lower() == "nocompany":
        company = ""
    if not name.strip():
        raise ValidationError("customer name is required")
    return CustomerRef(name=name.strip(), company=company or None)


def parse_customer_ref(raw: Any) -> CustomerRef:
    """Accept either {"company": ..., "name": ...} or the legacy label string."""
    if isinstance(raw, CustomerRef):
        return raw
    if isinstance(raw, dict):
        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("customer.name is required")
        company = raw.get("company")
        if company is not None and not isinstance(company, str):
            raise ValidationError("customer.company must be a string")
        if company and company.strip().lower() == "nocompany":
            company = None
        return CustomerRef(name=name.strip(), company=(company or "").strip() or None)
    return parse_customer_label(raw)
