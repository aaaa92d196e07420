"""Dynamic field rendering: one control descriptor per configured field.

The browser draws whatever `RenderedControl` says; edits come back as
(field name, raw value) pairs and go through `normalize_field_value`
before they touch the form data.
"""

import re
from typing import Any, Callable, Optional
from pydantic import BaseModel, Field

from coach_portal.forms.profile_fields import section_fields
from coach_portal.models.form_configuration import FormField, Section

INPUT_TYPES = ("text", "number", "email", "tel", "date")

_NUMBER_PREFIX = re.compile(r"\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

# Fixed option lists for well-known enumerations: (stored value, translation key)
KNOWN_OPTIONS: dict[str, list[tuple[str, str]]] = {
    "marital_status": [
        ("", "forms.dynamic.select"),
        ("single", "forms.dynamic.single"),
        ("married", "forms.dynamic.married"),
        ("divorced", "forms.dynamic.divorced"),
        ("widowed", "forms.dynamic.widowed"),
    ],
    "housing": [
        ("", "forms.dynamic.select"),
        ("owned", "forms.dynamic.owned"),
        ("rented", "forms.dynamic.rented"),
        ("livingWithParents", "forms.dynamic.livingWithParents"),
        ("other", "forms.dynamic.other"),
    ],
    "contract_type": [
        ("", "forms.employment.selectContractType"),
        ("permanent", "forms.employment.permanent"),
        ("temporary", "forms.employment.temporary"),
        ("freelance", "forms.employment.freelance"),
        ("consultant", "forms.employment.consultant"),
    ],
    "loan_type": [
        ("", "forms.liabilities.selectLoanType"),
        ("PersonalLoan", "forms.liabilities.personalLoan"),
        ("HomeLoan", "forms.liabilities.homeLoan"),
        ("CarLoan", "forms.liabilities.carLoan"),
        ("BusinessLoan", "forms.liabilities.businessLoan"),
        ("EducationLoan", "forms.liabilities.educationLoan"),
        ("OtherLoan", "forms.liabilities.otherLoan"),
    ],
    "relation": [
        ("", "forms.dynamic.select"),
        ("Spouse", "forms.familyDetails.spouse"),
        ("Child", "forms.familyDetails.child"),
        ("Parent", "forms.familyDetails.parent"),
        ("Other", "forms.dynamic.other"),
    ],
}


class SelectOption(BaseModel):
    value: str
    label: str


class RenderedControl(BaseModel):
    name: str
    label: str
    control: str  # input | select | textarea | checkbox
    input_type: Optional[str] = None
    value: Any = None
    required: bool = False
    required_marker: str = ""
    placeholder: Optional[str] = None
    options: list[SelectOption] = Field(default_factory=list)
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    step: Optional[str] = None
    rows: Optional[int] = None
    disabled: bool = False


class RenderedSection(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    collapsible: bool = False
    required: bool = False
    controls: list[RenderedControl] = Field(default_factory=list)


def select_options(field: FormField, t: Callable[[str], str]) -> list[SelectOption]:
    known = KNOWN_OPTIONS.get(field.name.lower())
    if known:
        return [SelectOption(value=value, label=t(key)) for value, key in known]
    options = [SelectOption(value="", label=t("forms.dynamic.select"))]
    options.extend(SelectOption(value=option, label=option) for option in field.options or [])
    return options


def render_field(field: FormField, value: Any, t: Callable[[str], str], disabled: bool = False) -> RenderedControl:
    control = RenderedControl(
        name=field.name,
        label=field.label or field.name,
        control="input",
        required=field.required,
        required_marker=t("forms.dynamic.required") if field.required else "",
        placeholder=field.placeholder,
        disabled=disabled,
    )

    if field.type == "select":
        control.control = "select"
        control.value = value if value is not None else ""
        control.options = select_options(field, t)
    elif field.type == "textarea":
        control.control = "textarea"
        control.value = value if value is not None else ""
        control.rows = 4
    elif field.type == "checkbox":
        control.control = "checkbox"
        control.input_type = "checkbox"
        control.value = bool(value)
    else:
        control.input_type = field.type if field.type in INPUT_TYPES else "text"
        control.value = value if value is not None else ""
        if control.input_type == "number":
            control.step = "0.01"
        if field.validation:
            control.min = field.validation.min
            control.max = field.validation.max
            control.pattern = field.validation.pattern

    return control


def render_section(section: Section, data: Optional[dict], t: Callable[[str], str],
                   disabled: bool = False) -> RenderedSection:
    data = data or {}
    return RenderedSection(
        id=section.id,
        title=section.title,
        description=section.description,
        collapsible=section.collapsible,
        required=section.required,
        controls=[render_field(f, data.get(f.name), t, disabled) for f in section_fields(section, t)],
    )


def normalize_field_value(field: FormField, raw: Any) -> Any:
    """Bring a raw edit into the field's typed value domain."""
    if field.type == "number":
        if isinstance(raw, bool):
            return float(raw)
        if isinstance(raw, (int, float)):
            return float(raw)
        # Leading numeric prefix, as browsers parse number inputs
        match = _NUMBER_PREFIX.match(str(raw)) if raw is not None else None
        return float(match.group(0)) if match else 0.0

    if field.type == "checkbox":
        if isinstance(raw, str):
            return raw.strip().lower() in ("true", "on", "1", "yes")
        return bool(raw)

    if raw is None:
        return ""
    # Dates stay ISO strings
    return raw if isinstance(raw, str) else str(raw)
