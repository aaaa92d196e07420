"""Fixed field sets for profile sections configured without a field schema.

Older configurations only carry a section title; the fields are implied
by a keyword in it ("Personal Details", "Monthly Expenses", ...).
"""

from typing import Callable, Optional

from coach_portal.forms.labels import format_field_label
from coach_portal.models.form_configuration import FormField, Section


def _fields(*specs: tuple) -> list[FormField]:
    return [FormField(name=name, type=type_, required=required) for name, type_, required in specs]


# Checked in this order; the first keyword found in the title wins
PROFILE_FIELDS: list[tuple[str, list[FormField]]] = [
    ("personal", _fields(
        ("salutation", "text", False),
        ("first_name", "text", True),
        ("last_name", "text", True),
        ("email", "email", True),
        ("phone", "tel", True),
        ("street", "text", True),
        ("house_number", "text", True),
        ("postal_code", "text", True),
        ("city", "text", True),
        ("birth_date", "date", True),
        ("birth_place", "text", True),
        ("nationality", "text", True),
        ("marital_status", "select", True),
        ("housing", "select", True),
        ("eu_citizen", "checkbox", False),
    )),
    ("family", _fields(
        ("first_name", "text", True),
        ("last_name", "text", True),
        ("relation", "select", True),
        ("birth_date", "date", True),
        ("nationality", "text", True),
    )),
    ("employment", _fields(
        ("occupation", "text", True),
        ("contract_type", "select", False),
        ("employer_name", "text", False),
        ("employed_since", "date", False),
    )),
    ("income", _fields(
        ("gross_income", "number", True),
        ("net_income", "number", True),
        ("tax_class", "text", False),
        ("number_of_salaries", "number", False),
        ("child_benefit", "number", False),
        ("other_income", "number", False),
    )),
    ("expenses", _fields(
        ("cold_rent", "number", False),
        ("electricity", "number", False),
        ("living_expenses", "number", False),
        ("gas", "number", False),
        ("telecommunication", "number", False),
        ("other_expenses", "number", False),
    )),
    ("assets", _fields(
        ("real_estate", "number", False),
        ("securities", "number", False),
        ("bank_deposits", "number", False),
        ("building_savings", "number", False),
        ("insurance_values", "number", False),
        ("other_assets", "number", False),
    )),
    ("liabilities", _fields(
        ("loan_type", "select", True),
        ("loan_bank", "text", False),
        ("loan_amount", "number", False),
        ("loan_monthly_rate", "number", False),
        ("loan_interest", "number", False),
    )),
]


def profile_fields_for_title(title: Optional[str]) -> list[FormField]:
    lowered = (title or "").lower()
    for keyword, fields in PROFILE_FIELDS:
        if keyword in lowered:
            return fields
    return []


def section_fields(section: Section, t: Optional[Callable[[str], str]] = None) -> list[FormField]:
    """Declared fields, or the fixed profile set matched by title when none are declared."""
    if section.fields:
        return section.fields
    fields = profile_fields_for_title(section.title)
    if t is None:
        return fields
    return [f.model_copy(update={"label": format_field_label(f.name, t)}) for f in fields]
