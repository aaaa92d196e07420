"""Tests for the form session lifecycle: open, edit, save, submit, export."""

import asyncio
import time
from datetime import date

import pytest
from unittest.mock import AsyncMock, MagicMock

from coach_portal.errors import ConfigurationNotFoundError, InvalidTransitionError, SubmissionError
from coach_portal.forms.extractor import extract_form_sections
from coach_portal.services.form_workflow import (
    FormWorkflow,
    next_navigation,
    render_session,
    set_consent,
    set_field,
    set_signature,
)
from coach_portal.services.session_registry import FormSession, SessionState
from tests.conftest import make_config, make_dual_config, make_section, make_submission, make_user


@pytest.fixture
def submissions():
    service = MagicMock()
    service.get_configuration = AsyncMock(return_value=make_config())
    service.get = AsyncMock(return_value=make_submission())
    service.create = AsyncMock(return_value=make_submission(id="sub-new"))
    service.update = AsyncMock(side_effect=lambda submission_id, payload: make_submission(
        id=submission_id, form_data=payload["form_data"], status=payload["status"],
    ))
    return service


@pytest.fixture
def workflow(fresh_registry, mock_broadcaster, submissions):
    workflow = FormWorkflow(MagicMock(), registry=fresh_registry, broadcaster=mock_broadcaster)
    workflow.submissions = submissions
    workflow.prefill = MagicMock()
    workflow.prefill.load = AsyncMock(return_value={})
    return workflow


def _session(config=None, **kwargs) -> FormSession:
    return FormSession(config=config or make_config(), user=make_user(), **kwargs)


# ---------------------------------------------------------------------------
# open
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_open_new_form_uses_prefill(workflow, fresh_registry):
    workflow.prefill.load.return_value = {"personal": {"first_name": "Anna"}}

    session = await workflow.open(make_user(), "de", config_id="config_1")

    assert session.state == SessionState.NEW
    assert session.language == "de"
    assert session.submission is None
    assert session.form_data == {"personal": {"first_name": "Anna"}}
    assert fresh_registry.get(session.session_id) is session


@pytest.mark.asyncio
async def test_open_existing_submission(workflow, submissions):
    session = await workflow.open(make_user(), submission_id="sub-1")

    submissions.get_configuration.assert_awaited_once_with("config_1700000000000_abc123def")
    assert session.state == SessionState.DRAFT
    assert session.form_data["income"]["gross_income"] == 5000
    workflow.prefill.load.assert_not_awaited()


@pytest.mark.asyncio
async def test_open_submitted_submission_is_read_only(workflow, submissions):
    submissions.get.return_value = make_submission(status="submitted")

    session = await workflow.open(make_user(), submission_id="sub-1")

    assert session.read_only is True


@pytest.mark.asyncio
async def test_open_dual_form_has_both_applicants(workflow, submissions):
    submissions.get_configuration.return_value = make_dual_config()

    session = await workflow.open(make_user(), config_id="config_1")

    assert session.form_data == {"applicant1": {}, "applicant2": {}}


@pytest.mark.asyncio
async def test_open_missing_configuration_notifies(workflow, submissions, mock_broadcaster):
    submissions.get_configuration.side_effect = ConfigurationNotFoundError("nope")

    with pytest.raises(ConfigurationNotFoundError):
        await workflow.open(make_user(), config_id="nope")

    mock_broadcaster.error.assert_called_once_with("user-1", "Error", "Form configuration not found")


@pytest.mark.asyncio
async def test_open_requires_an_id(workflow):
    with pytest.raises(ValueError):
        await workflow.open(make_user())


# ---------------------------------------------------------------------------
# In-memory edits
# ---------------------------------------------------------------------------


def test_set_field_normalizes_by_declared_type():
    session = _session()

    stored = set_field(session, "income", "gross_income", "5000")

    assert stored == 5000.0
    assert session.form_data["income"]["gross_income"] == 5000.0


def test_set_field_rejects_unknown_section_and_field():
    session = _session()

    with pytest.raises(ValueError):
        set_field(session, "hobbies", "x", 1)
    with pytest.raises(ValueError):
        set_field(session, "income", "shoe_size", 42)


def test_set_field_dual_needs_applicant():
    session = _session(make_dual_config())

    set_field(session, "personal", "first_name", "Ben", applicant="applicant2")

    assert session.form_data["applicant2"] == {"first_name": "Ben"}
    with pytest.raises(ValueError):
        set_field(session, "personal", "first_name", "Ben")


def _dual_with_notes():
    return make_dual_config(sections=[make_section(), make_section("notes", "Notes", fields=[])])


def test_dual_edit_to_section_without_schema_is_nested():
    session = _session(_dual_with_notes())

    set_field(session, "notes", "custom_note", "hello", applicant="applicant1")

    assert session.form_data["applicant1"] == {"notes": {"custom_note": "hello"}}


def test_fixed_profile_field_is_typed_without_schema():
    config = make_dual_config(sections=[make_section("s2", "Monthly Income", fields=[])])
    session = _session(config)

    stored = set_field(session, "s2", "gross_income", "5000", applicant="applicant2")

    assert stored == 5000.0
    assert session.form_data["applicant2"]["s2"] == {"gross_income": 5000.0}


def test_consent_and_signature():
    session = _session()

    set_consent(session, "consent_privacy", True)
    set_signature(session, "data:image/png;base64,AAAA")

    assert session.form_data["consent_privacy"] is True
    assert session.form_data["signature"] == "data:image/png;base64,AAAA"
    with pytest.raises(ValueError):
        set_consent(session, "consent_unknown", True)


def test_dual_signatures_are_per_applicant():
    session = _session(make_dual_config())

    set_signature(session, "sig-1", applicant="applicant1")

    assert session.form_data["signatures"] == {"applicant1": "sig-1"}


def test_submitted_session_rejects_edits():
    session = _session(state=SessionState.SUBMITTED)

    with pytest.raises(InvalidTransitionError) as exc_info:
        set_field(session, "income", "gross_income", 1)

    assert "already been submitted" in exc_info.value.message


def test_render_session_single():
    session = _session(form_data={"personal": {"first_name": "Anna"}, "consent_privacy": True})

    rendered = render_session(session)

    assert rendered["state"] == "new"
    assert [s["id"] for s in rendered["sections"]] == ["personal", "income"]
    assert rendered["sections"][0]["controls"][0]["value"] == "Anna"
    assert rendered["consents"][0]["key"] == "consent_privacy"
    assert rendered["consents"][0]["accepted"] is True


def test_render_session_dual():
    session = _session(make_dual_config(), form_data={"applicant1": {"first_name": "Anna"}, "applicant2": {}})

    rendered = render_session(session)

    assert set(rendered["applicants"]) == {"applicant1", "applicant2"}
    assert rendered["applicants"]["applicant1"][0]["controls"][0]["value"] == "Anna"
    assert "sections" not in rendered


# ---------------------------------------------------------------------------
# save / submit
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_dual_edit_without_schema_survives_save_and_export(workflow, submissions, t):
    config = _dual_with_notes()
    session = _session(config)
    set_field(session, "personal", "first_name", "Anna", applicant="applicant1")
    set_field(session, "notes", "custom_note", "hello", applicant="applicant1")

    await workflow.save_draft(session)

    form_data = submissions.create.call_args.args[2]
    assert form_data["applicant1"] == {"first_name": "Anna", "notes": {"custom_note": "hello"}}
    sections = extract_form_sections(config, form_data, t)
    assert [(s.section_id, s.applicant) for s in sections] == [("personal", "applicant1"), ("notes", "applicant1")]
    assert [(f.key, f.value) for f in sections[1].fields] == [("custom_note", "hello")]
    rendered = render_session(session)
    assert rendered["applicants"]["applicant1"][0]["controls"][0]["value"] == "Anna"


@pytest.mark.asyncio
async def test_second_save_updates_the_same_record(workflow, submissions, mock_broadcaster):
    session = _session(form_data={"personal": {"first_name": "Anna"}})

    first = await workflow.save_draft(session)
    set_field(session, "personal", "first_name", "Anne")
    second = await workflow.save_draft(session)

    submissions.create.assert_awaited_once()
    submissions.update.assert_awaited_once()
    assert first.id == second.id == "sub-new"
    assert submissions.update.call_args.args[1]["form_data"]["personal"]["first_name"] == "Anne"
    assert session.state == SessionState.DRAFT
    assert mock_broadcaster.success.call_count == 2


@pytest.mark.asyncio
async def test_concurrent_saves_create_once(workflow, submissions):
    async def slow_create(*args, **kwargs):
        await asyncio.sleep(0.01)
        return make_submission(id="sub-new")

    submissions.create.side_effect = slow_create
    session = _session()

    await asyncio.gather(workflow.save_draft(session), workflow.save_draft(session))

    submissions.create.assert_awaited_once()
    submissions.update.assert_awaited_once()


@pytest.mark.asyncio
async def test_save_drops_undeclared_fields(workflow, submissions):
    session = _session(form_data={"income": {"gross_income": "100", "bogus": 1}})

    await workflow.save_draft(session)

    form_data = submissions.create.call_args.args[2]
    assert form_data["income"] == {"gross_income": 100.0}


@pytest.mark.asyncio
async def test_save_failure_notifies_and_raises(workflow, submissions, mock_broadcaster):
    submissions.create.side_effect = SubmissionError("Backend down")

    with pytest.raises(SubmissionError):
        await workflow.save_draft(_session())

    mock_broadcaster.error.assert_called_once_with("user-1", "Error", "Backend down")


@pytest.mark.asyncio
async def test_submit_new_form_creates_submitted_record(workflow, submissions):
    submissions.create.return_value = make_submission(id="sub-new", status="submitted")
    session = _session()

    redirect = await workflow.submit(session)

    assert redirect == "/dashboard/forms"
    kwargs = submissions.create.call_args.kwargs
    assert kwargs["status"] == "submitted"
    assert kwargs["submitted_at"]
    assert session.read_only is True
    assert session.submission.submitted_at


@pytest.mark.asyncio
async def test_submit_existing_draft_updates(workflow, submissions):
    session = _session(submission=make_submission(), state=SessionState.DRAFT)

    await workflow.submit(session)

    submissions.create.assert_not_awaited()
    payload = submissions.update.call_args.args[1]
    assert payload["status"] == "submitted"
    assert "submitted_at" in payload


@pytest.mark.asyncio
async def test_submit_with_documents_redirects_to_upload(workflow, submissions):
    config = make_config(documents=[{"id": "d1", "name": "Payslip", "acceptedTypes": [".pdf"]}])
    session = _session(config)

    redirect = await workflow.submit(session)

    assert redirect == "/dashboard/forms/sub-new/documents"


@pytest.mark.asyncio
async def test_submitted_session_cannot_be_saved_again(workflow, submissions):
    session = _session(state=SessionState.SUBMITTED)

    with pytest.raises(InvalidTransitionError):
        await workflow.save_draft(session)
    with pytest.raises(InvalidTransitionError):
        await workflow.submit(session)

    submissions.create.assert_not_awaited()


def test_next_navigation():
    submission = make_submission(id="s-9")

    assert next_navigation(make_config(), submission) == "/dashboard/forms"


# ---------------------------------------------------------------------------
# export / close
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_export_session_returns_pdf(workflow):
    session = _session(form_data={"income": {"gross_income": 5000}})

    filename, content = await workflow.export(session)

    assert filename.startswith("Financial_Profile_")
    assert content.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_export_stored_submission(workflow, submissions):
    filename, content = await workflow.export_submission(make_submission(), make_user(), make_user())

    assert filename.endswith(".pdf")
    assert content.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_export_filename_uses_submission_date(workflow):
    submission = make_submission(submitted_at="2024-03-05T10:00:00Z", status="submitted")

    filename, _ = await workflow.export_submission(submission, make_user(), make_user())

    assert filename == "Financial_Profile_2024-03-05.pdf"


@pytest.mark.asyncio
async def test_export_draft_uses_last_update_and_new_form_uses_today(workflow):
    draft = _session(submission=make_submission(), state=SessionState.DRAFT)

    draft_name, _ = await workflow.export(draft)
    new_name, _ = await workflow.export(_session())

    assert draft_name == "Financial_Profile_2024-03-02.pdf"
    assert new_name == f"Financial_Profile_{date.today().isoformat()}.pdf"


@pytest.mark.asyncio
async def test_close_removes_session(workflow, fresh_registry):
    session = await workflow.open(make_user(), config_id="config_1")

    assert await workflow.close(session.session_id) is True
    assert await workflow.close(session.session_id) is False
    assert fresh_registry.active_count == 0


# ---------------------------------------------------------------------------
# Registry housekeeping
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_remove_stale_sessions(fresh_registry):
    idle = _session()
    idle.last_activity = time.time() - 3600
    active = _session()
    await fresh_registry.register(idle)
    await fresh_registry.register(active)

    removed = await fresh_registry.remove_stale(1800)

    assert removed == [idle.session_id]
    assert fresh_registry.get(active.session_id) is active
    assert fresh_registry.get(idle.session_id) is None
