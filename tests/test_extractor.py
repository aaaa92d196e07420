"""Tests for coach_portal.forms.extractor."""

from coach_portal.forms.extractor import (
    extract_form_sections,
    group_applicant_sections,
    is_dual_payload,
)
from coach_portal.forms.formatting import format_field_value
from coach_portal.i18n.translations import create_translation_function
from tests.conftest import make_config, make_config_data, make_dual_config, make_section


# ---------------------------------------------------------------------------
# Single applicant
# ---------------------------------------------------------------------------


def test_declared_fields_in_declaration_order(t):
    config = make_config()
    data = {"personal": {"eu_citizen": True, "birth_date": "1990-03-15", "first_name": "Anna"}}

    sections = extract_form_sections(config, data, t)

    personal = sections[0]
    assert [f.label for f in personal.fields] == ["First Name", "Birth Date", "EU Citizen"]
    assert [f.type for f in personal.fields] == ["text", "date", "checkbox"]
    assert [f.value for f in personal.fields] == ["Anna", "1990-03-15", True]
    assert [f.key for f in personal.fields] == ["first_name", "birth_date", "eu_citizen"]


def test_income_example_renders_thousands(t):
    config = make_config(sections=[make_section("income", "Income", [
        {"name": "gross_income", "label": "Gross Income", "type": "number"},
    ])])

    sections = extract_form_sections(config, {"income": {"gross_income": 5000}}, t)

    assert len(sections) == 1
    entry = sections[0].fields[0]
    assert (entry.label, entry.value, entry.type) == ("Gross Income", 5000, "number")
    assert format_field_value(entry.value, entry.type, t) == "5,000"


def test_legacy_section_emits_one_entry_per_key(t):
    config = make_config(sections=[make_section("notes", "Notes", fields=[])])
    data = {"notes": {
        "active": True,
        "amount": 12.5,
        "start_date": "2024-01-01",
        "contact_email": "a@b.c",
        "custom_note": "hello",
    }}

    fields = extract_form_sections(config, data, t)[0].fields

    assert [(f.key, f.type) for f in fields] == [
        ("active", "checkbox"),
        ("amount", "number"),
        ("start_date", "date"),
        ("contact_email", "email"),
        ("custom_note", "text"),
    ]
    assert fields[-1].label == "Custom Note"


def test_legacy_section_skips_reserved_keys(t):
    config = make_config(sections=[make_section("notes", "Notes", fields=[])])
    data = {"notes": {"city": "Berlin", "signature": "data:...", "consent_0": True}}

    fields = extract_form_sections(config, data, t)[0].fields

    assert [f.key for f in fields] == ["city"]


def test_empty_sections_are_dropped(t):
    config = make_config(sections=[
        make_section("notes", "Notes", fields=[]),
        make_section("income", "Income", [{"name": "gross_income", "label": "Gross Income", "type": "number"}]),
    ])

    sections = extract_form_sections(config, {"income": {"gross_income": 1}}, t)

    assert [s.section_id for s in sections] == ["income"]


def test_sections_follow_order_field(t):
    config = make_config(sections=[
        make_section("a", "A", order=2),
        make_section("b", "B", order=1),
        make_section("c", "C"),
    ])

    sections = extract_form_sections(config, {}, t)

    # "c" has no order and keeps its array position (2)
    assert [s.section_id for s in sections] == ["b", "a", "c"]


def test_missing_config_or_data(t):
    assert extract_form_sections(None, {"x": {}}, t) == []
    sections = extract_form_sections(make_config_data(), None, t)
    assert all(f.value is None for s in sections for f in s.fields)


def test_label_falls_back_to_mapper_when_config_has_none():
    t = create_translation_function("de")
    config = make_config(sections=[make_section("income", "Einkommen", [
        {"name": "gross_income", "type": "number"},
    ])])

    fields = extract_form_sections(config, {"income": {"gross_income": 1}}, t)[0].fields

    assert fields[0].label == "Bruttoeinkommen"


# ---------------------------------------------------------------------------
# Dual applicant
# ---------------------------------------------------------------------------


def test_is_dual_payload():
    assert is_dual_payload({"applicant1": {}})
    assert not is_dual_payload({"personal": {}})
    assert not is_dual_payload(None)


def test_dual_only_applicant2_has_data(t):
    config = make_dual_config(sections=[make_section()])
    data = {"applicant1": {}, "applicant2": {"first_name": "Ben"}}

    sections = extract_form_sections(config, data, t)

    assert len(sections) == 1
    assert sections[0].title == "Personal Details - Applicant 2"
    assert sections[0].applicant == "applicant2"
    assert sections[0].section_id == "personal"


def test_dual_nested_applicant_buckets(t):
    config = make_dual_config()
    data = {
        "applicant1": {"income": {"gross_income": 4000}},
        "applicant2": {"income": {"gross_income": 3000}},
    }

    sections = extract_form_sections(config, data, t)

    assert [(s.section_id, s.applicant) for s in sections] == [
        ("income", "applicant1"),
        ("income", "applicant2"),
    ]


def test_group_applicant_sections_pairs_by_field_key(t):
    config = make_dual_config(sections=[make_section()])
    data = {
        "applicant1": {"first_name": "Anna", "eu_citizen": True},
        "applicant2": {"first_name": "Ben", "birth_date": "1985-01-01"},
    }

    groups = group_applicant_sections(extract_form_sections(config, data, t))

    assert len(groups) == 1
    group = groups[0]
    assert group.title == "Personal Details"
    rows = {row.key: row.values for row in group.rows}
    assert rows["first_name"] == {"applicant1": "Anna", "applicant2": "Ben"}
    assert rows["birth_date"] == {"applicant1": None, "applicant2": "1985-01-01"}
    assert [row.key for row in group.rows] == ["first_name", "birth_date", "eu_citizen"]
