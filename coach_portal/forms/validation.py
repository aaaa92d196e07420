"""Check in-memory form data against its configuration before it is persisted."""

import logging
from typing import Any

from coach_portal.forms.extractor import APPLICANT_KEYS, is_dual_payload, is_reserved_key
from coach_portal.forms.renderer import normalize_field_value
from coach_portal.models.form_configuration import FormConfiguration, FormField, Section

logger = logging.getLogger(__name__)


def _coerce(field: FormField, value: Any) -> Any:
    # Unset stays unset so the export still shows "not provided"
    if value is None:
        return None
    return normalize_field_value(field, value)


def _clean_bucket(section: Section, bucket: dict) -> dict:
    declared = {f.name: f for f in section.fields}
    cleaned = {}
    for key, value in bucket.items():
        field = declared.get(key)
        if field is None:
            if not is_reserved_key(key):
                logger.info(f"Dropping undeclared field {key} from section {section.id}")
                continue
            cleaned[key] = value
        else:
            cleaned[key] = _coerce(field, value)
    return cleaned


def _clean_applicant(config: FormConfiguration, data: dict) -> dict:
    declared = {f.name: f for section in config.sections for f in section.fields}
    cleaned = {}
    for key, value in data.items():
        section = config.get_section(key)
        if section is not None and isinstance(value, dict):
            cleaned[key] = _clean_bucket(section, value) if section.fields else value
        elif key in declared:
            cleaned[key] = _coerce(declared[key], value)
        elif is_reserved_key(key) or not declared:
            cleaned[key] = value
        else:
            logger.info(f"Dropping undeclared applicant field {key}")
    return cleaned


def validate_form_data(config: FormConfiguration, form_data: dict) -> dict:
    """Return a cleaned copy of `form_data`.

    Declared fields are coerced to their declared type and unknown keys in
    declared sections are dropped. Sections without a field schema, the
    signature and the consent flags pass through untouched.
    """
    cleaned = {}
    dual = config.is_dual or is_dual_payload(form_data)
    for key, value in (form_data or {}).items():
        if dual and key in APPLICANT_KEYS and isinstance(value, dict):
            cleaned[key] = _clean_applicant(config, value)
            continue
        section = config.get_section(key)
        if section is not None and section.fields and isinstance(value, dict):
            cleaned[key] = _clean_bucket(section, value)
        else:
            cleaned[key] = value
    return cleaned
