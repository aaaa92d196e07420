"""Display formatting for field values in exported documents."""

from datetime import date, datetime
from typing import Any, Callable, Optional

# (thousands separator, decimal separator)
NUMBER_SEPARATORS = {
    "en": (",", "."),
    "de": (".", ","),
    "es": (".", ","),
}


def format_number(value: float, language: str = "en") -> str:
    """Locale thousands-formatting with at most three fraction digits."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int):
        text = f"{value:,}"
    else:
        text = f"{round(value, 3):,.3f}".rstrip("0").rstrip(".")
    thousands, decimal = NUMBER_SEPARATORS.get(language, NUMBER_SEPARATORS["en"])
    return text.replace(",", "\x00").replace(".", decimal).replace("\x00", thousands)


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def format_date(value: Any, language: str = "en") -> str:
    """Locale date display; unparseable input is returned unchanged."""
    parsed = parse_date(value)
    if parsed is None:
        return str(value)
    if language == "de":
        return f"{parsed.day}.{parsed.month}.{parsed.year}"
    if language == "es":
        return f"{parsed.day}/{parsed.month}/{parsed.year}"
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def format_field_value(value: Any, field_type: str, t: Callable[[str], str], language: str = "en") -> str:
    if value is None or value == "":
        return t("forms.pdf.notProvided")

    if field_type == "checkbox" or isinstance(value, bool):
        return t("forms.pdf.yes") if value else t("forms.pdf.no")

    if field_type == "date":
        return format_date(value, language)

    if field_type == "number":
        if isinstance(value, (int, float)):
            return format_number(value, language)
        return str(value)

    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)
