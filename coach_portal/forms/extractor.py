"""Turn a form configuration plus submitted data into ordered export sections.

Two payload shapes are understood:

* single applicant: ``{"<section id>": {"<field name>": value, ...}, ...}``
* dual applicant: ``{"applicant1": {...}, "applicant2": {...}}`` where each
  applicant map is flat (field name -> value) or nested by section id.

The signature (``signature`` / ``signatures``) and consent flags
(``consent_*``) live next to the section buckets and are never emitted as
fields.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from coach_portal.forms.field_types import guess_field_type
from coach_portal.forms.labels import format_field_label
from coach_portal.models.form_configuration import FormConfiguration, Section
from coach_portal.models.form_section_data import FieldEntry, FormSectionData

APPLICANT_KEYS = ("applicant1", "applicant2")


def is_reserved_key(key: str) -> bool:
    return key in ("signature", "signatures") or key.startswith("consent_")


def is_dual_payload(form_data: Optional[dict]) -> bool:
    return bool(form_data) and any(key in form_data for key in APPLICANT_KEYS)


def _section_bucket(section: Section, data: dict, flat_allowed: bool) -> dict:
    nested = data.get(section.id)
    if isinstance(nested, dict):
        return nested
    if flat_allowed and section.fields:
        return data
    return {}


def _section_fields(section: Section, bucket: dict, t: Callable[[str], str]) -> list[FieldEntry]:
    if section.fields:
        return [
            FieldEntry(
                label=f.label or format_field_label(f.name, t),
                value=bucket.get(f.name),
                type=f.type or "text",
                key=f.name,
            )
            for f in section.fields
        ]

    # Legacy sections without a field schema: one entry per stored key
    return [
        FieldEntry(
            label=format_field_label(key, t),
            value=value,
            type=guess_field_type(key, value),
            key=key,
        )
        for key, value in bucket.items()
        if not is_reserved_key(key)
    ]


def _has_applicant_data(section: Section, bucket: dict) -> bool:
    if section.fields:
        return any(f.name in bucket for f in section.fields)
    return any(not is_reserved_key(key) for key in bucket)


def extract_form_sections(
    form_config: Union[FormConfiguration, dict, None],
    form_data: Optional[dict],
    t: Callable[[str], str],
) -> list[FormSectionData]:
    """Ordered sections of (label, value, type) entries; empty sections are dropped."""
    if form_config is None:
        return []
    if isinstance(form_config, dict):
        form_config = FormConfiguration.model_validate(form_config)

    form_data = form_data or {}
    sections: list[FormSectionData] = []

    if is_dual_payload(form_data):
        for section in form_config.sorted_sections():
            for applicant in APPLICANT_KEYS:
                applicant_data = form_data.get(applicant)
                if not isinstance(applicant_data, dict):
                    continue
                bucket = _section_bucket(section, applicant_data, flat_allowed=True)
                if not _has_applicant_data(section, bucket):
                    continue
                fields = _section_fields(section, bucket, t)
                if fields:
                    sections.append(FormSectionData(
                        title=f"{section.title} - {t(f'forms.list.{applicant}')}",
                        description=section.description,
                        fields=fields,
                        section_id=section.id,
                        applicant=applicant,
                        section_title=section.title,
                    ))
        return sections

    for section in form_config.sorted_sections():
        bucket = _section_bucket(section, form_data, flat_allowed=False)
        fields = _section_fields(section, bucket, t)
        if fields:
            sections.append(FormSectionData(
                title=section.title,
                description=section.description,
                fields=fields,
                section_id=section.id,
                section_title=section.title,
            ))
    return sections


@dataclass
class ApplicantRow:
    key: str
    label: str
    type: str
    values: dict[str, Any] = field(default_factory=dict)


@dataclass
class ApplicantSectionGroup:
    section_id: str
    title: str
    description: Optional[str]
    rows: list[ApplicantRow] = field(default_factory=list)


def group_applicant_sections(sections: list[FormSectionData]) -> list[ApplicantSectionGroup]:
    """Pair applicant 1/2 sections by section id and union their fields by field key.

    Group order follows the first appearance of each section id; row order
    follows applicant 1's fields, then fields only applicant 2 has.
    """
    groups: dict[str, ApplicantSectionGroup] = {}
    rows_by_group: dict[str, dict[str, ApplicantRow]] = {}

    for section in sections:
        group_key = section.section_id or section.title
        group = groups.get(group_key)
        if group is None:
            group = ApplicantSectionGroup(
                section_id=group_key,
                title=section.section_title or section.title,
                description=section.description,
            )
            groups[group_key] = group
            rows_by_group[group_key] = {}

        rows = rows_by_group[group_key]
        for entry in section.fields:
            row_key = entry.key or entry.label
            row = rows.get(row_key)
            if row is None:
                row = ApplicantRow(key=row_key, label=entry.label, type=entry.type)
                rows[row_key] = row
                group.rows.append(row)
            row.values[section.applicant or "applicant1"] = entry.value

    return list(groups.values())
