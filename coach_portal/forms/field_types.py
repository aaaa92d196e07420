"""Display-type guessing for values that arrive without a field schema."""

from typing import Any


def guess_field_type(key: str, value: Any) -> str:
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return "checkbox"
    if isinstance(value, (int, float)):
        return "number"
    if "date" in key or key.endswith("_at"):
        return "date"
    if "email" in key:
        return "email"
    return "text"
