"""Load, edit, save, submit and export one form submission.

Edits only touch the session's in-memory form data; nothing reaches the
backend until save_draft() or submit().
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from coach_portal.config import settings
from coach_portal.errors import (
    ConfigurationNotFoundError,
    InvalidTransitionError,
    PDFExportError,
    SubmissionError,
)
from coach_portal.forms.extractor import APPLICANT_KEYS
from coach_portal.forms.profile_fields import section_fields
from coach_portal.forms.renderer import normalize_field_value, render_section
from coach_portal.forms.validation import validate_form_data
from coach_portal.i18n.translations import create_translation_function, normalize_language
from coach_portal.models.form_submission import FormSubmission
from coach_portal.models.user import User
from coach_portal.pdf.report import build_metadata, export_form_pdf, submission_date
from coach_portal.services.api_client import BackendClient
from coach_portal.services.broadcaster import Broadcaster
from coach_portal.services.form_service import FormService
from coach_portal.services.form_submission_service import FormSubmissionService, submission_payload
from coach_portal.services.prefill import ClientPrefill
from coach_portal.services.session_registry import FormSession, FormSessionRegistry, SessionState

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# In-memory edits
# ---------------------------------------------------------------------------

def _require_editable(session: FormSession) -> None:
    if session.read_only:
        t = create_translation_function(session.language)
        raise InvalidTransitionError(t("forms.dynamic.submittedLocked"))


def _check_applicant(session: FormSession, applicant: Optional[str]) -> Optional[str]:
    if not session.config.is_dual:
        return None
    if applicant not in APPLICANT_KEYS:
        raise ValueError(f"Dual-applicant forms need applicant1 or applicant2, got {applicant!r}")
    return applicant


def set_field(session: FormSession, section_id: str, field_name: str, value: Any,
              applicant: Optional[str] = None) -> Any:
    """Normalize by declared type and merge into the right bucket. Returns the stored value."""
    _require_editable(session)
    section = session.config.get_section(section_id)
    if section is None:
        raise ValueError(f"Unknown section: {section_id}")

    if section.fields and field_name not in {f.name for f in section.fields}:
        raise ValueError(f"Unknown field {field_name} in section {section_id}")
    # Sections without a schema take any key; fixed profile fields still get typed
    known = {f.name: f for f in section_fields(section)}
    stored = normalize_field_value(known[field_name], value) if field_name in known else value

    applicant = _check_applicant(session, applicant)
    if applicant and section.fields:
        session.form_data.setdefault(applicant, {})[field_name] = stored
    elif applicant:
        session.form_data.setdefault(applicant, {}).setdefault(section_id, {})[field_name] = stored
    else:
        session.form_data.setdefault(section_id, {})[field_name] = stored
    session.touch()
    return stored


def set_consent(session: FormSession, consent_key: str, accepted: bool) -> None:
    _require_editable(session)
    known = set()
    for index, consent in enumerate(session.config.consent_forms):
        known.add(consent.acceptance_key(index))
        known.add(f"consent_{index}")
    if consent_key not in known:
        raise ValueError(f"Unknown consent: {consent_key}")
    session.form_data[consent_key] = bool(accepted)
    session.touch()


def set_signature(session: FormSession, signature: Optional[str], applicant: Optional[str] = None) -> None:
    _require_editable(session)
    applicant = _check_applicant(session, applicant)
    if applicant:
        session.form_data.setdefault("signatures", {})[applicant] = signature
    else:
        session.form_data["signature"] = signature
    session.touch()


def _applicant_bucket(session: FormSession, applicant: str, section) -> dict:
    data = session.form_data.get(applicant) or {}
    nested = data.get(section.id)
    if isinstance(nested, dict):
        return nested
    return data if section.fields else {}


def render_session(session: FormSession) -> dict:
    """Everything the browser needs to draw the form."""
    t = create_translation_function(session.language)
    sections = session.config.sorted_sections()
    if session.config.is_dual:
        applicants = {
            applicant: [
                render_section(s, _applicant_bucket(session, applicant, s), t, session.read_only).model_dump()
                for s in sections
            ]
            for applicant in APPLICANT_KEYS
        }
        rendered = {"applicants": applicants}
    else:
        rendered = {
            "sections": [
                render_section(s, session.form_data.get(s.id) or {}, t, session.read_only).model_dump()
                for s in sections
            ]
        }
    return {
        "session_id": session.session_id,
        "state": session.state.value,
        "read_only": session.read_only,
        "config_id": session.config.reference_id,
        "name": session.config.name,
        "description": session.config.description,
        "dual": session.config.is_dual,
        "submission_id": session.submission.id if session.submission else None,
        "consents": [
            {
                "key": consent.acceptance_key(index),
                "title": consent.title,
                "content": consent.content,
                "checkbox_text": consent.checkbox_text,
                "required": consent.required,
                "accepted": bool(session.form_data.get(consent.acceptance_key(index),
                                                       session.form_data.get(f"consent_{index}", False))),
            }
            for index, consent in enumerate(session.config.consent_forms)
            if consent.enabled
        ],
        "form_data": session.form_data,
        **rendered,
    }


# ---------------------------------------------------------------------------
# Backend round trips
# ---------------------------------------------------------------------------

class FormWorkflow:
    def __init__(self, client: BackendClient, registry: Optional[FormSessionRegistry] = None,
                 broadcaster: Optional[Broadcaster] = None):
        self.submissions = FormSubmissionService(client)
        self.prefill = ClientPrefill(FormService(client))
        self.registry = registry or FormSessionRegistry.get_instance()
        self.broadcaster = broadcaster or Broadcaster.get_instance()

    def _notify_error(self, session_or_user, message: str) -> None:
        user = session_or_user.user if isinstance(session_or_user, FormSession) else session_or_user
        language = session_or_user.language if isinstance(session_or_user, FormSession) else "en"
        t = create_translation_function(language)
        self.broadcaster.error(user.id, t("common.error"), message)

    async def open(self, user: User, language: str = "en", config_id: Optional[str] = None,
                   submission_id: Optional[str] = None) -> FormSession:
        """Open an existing submission, or start a new one from a configuration."""
        language = normalize_language(language)
        t = create_translation_function(language)
        if not config_id and not submission_id:
            raise ValueError("Either config_id or submission_id is required")

        try:
            if submission_id:
                submission = await self.submissions.get(submission_id)
                config = await self.submissions.get_configuration(submission.form_config_id)
                state = SessionState.DRAFT if submission.is_draft else SessionState.SUBMITTED
                form_data = dict(submission.form_data)
            else:
                submission = None
                config = await self.submissions.get_configuration(config_id)
                state = SessionState.NEW
                form_data = await self.prefill.load(config, user)
        except ConfigurationNotFoundError:
            self._notify_error(user, t("forms.dynamic.formNotFound"))
            raise
        except SubmissionError:
            self._notify_error(user, t("forms.dynamic.loadError"))
            raise

        if config.is_dual:
            for applicant in APPLICANT_KEYS:
                form_data.setdefault(applicant, {})

        session = FormSession(
            config=config,
            user=user,
            language=language,
            form_data=form_data,
            submission=submission,
            state=state,
        )
        await self.registry.register(session)
        logger.info(f"Opened form session {session.session_id} ({state.value}) for user {user.id}")
        return session

    async def _persist(self, session: FormSession, status: str) -> FormSubmission:
        session.form_data = validate_form_data(session.config, session.form_data)
        submitted_at = datetime.now(timezone.utc).isoformat() if status == "submitted" else None
        if session.submission is None or not session.submission.id:
            submission = await self.submissions.create(
                session.config.reference_id, session.user.id, session.form_data,
                status=status, submitted_at=submitted_at,
            )
        else:
            payload = submission_payload(session.submission, session.form_data, status=status)
            if submitted_at:
                payload["submitted_at"] = submitted_at
            submission = await self.submissions.update(session.submission.id, payload)
        session.submission = submission
        return submission

    async def save_draft(self, session: FormSession) -> FormSubmission:
        """Create the record on the first save; every later save updates it."""
        _require_editable(session)
        t = create_translation_function(session.language)
        async with session.save_lock:
            _require_editable(session)
            try:
                submission = await self._persist(session, "draft")
            except SubmissionError as e:
                self._notify_error(session, e.message or t("forms.dynamic.submitError"))
                raise
            session.state = SessionState.DRAFT
        self.broadcaster.success(session.user.id, t("common.success"), t("forms.dynamic.saveSuccess"))
        logger.info(f"Saved draft {submission.id} from session {session.session_id}")
        return submission

    async def submit(self, session: FormSession) -> str:
        """Persist with status submitted; returns where the browser goes next."""
        _require_editable(session)
        t = create_translation_function(session.language)
        async with session.save_lock:
            _require_editable(session)
            try:
                submission = await self._persist(session, "submitted")
            except SubmissionError as e:
                self._notify_error(session, e.message or t("forms.dynamic.submitError"))
                raise
            if not submission.submitted_at:
                submission.submitted_at = datetime.now(timezone.utc).isoformat()
            if submission.status != "submitted":
                submission.status = "submitted"
            session.state = SessionState.SUBMITTED
        self.broadcaster.success(session.user.id, t("common.success"), t("forms.dynamic.submitSuccess"))
        logger.info(f"Submitted {submission.id} from session {session.session_id}")
        return next_navigation(session.config, submission)

    async def export(self, session: FormSession, client: Optional[User] = None) -> tuple[str, bytes]:
        metadata = build_metadata(session.config, session.submission, client or session.user, session.language)
        try:
            return export_form_pdf(session.config, session.form_data, metadata, session.language,
                                   submitted_on=submission_date(session.submission))
        except PDFExportError as e:
            self._notify_error(session, e.message)
            raise

    async def export_submission(self, submission: FormSubmission, viewer: User, client: Optional[User] = None,
                                language: str = "en") -> tuple[str, bytes]:
        """Build the PDF straight from a stored submission, without opening a session."""
        config = await self.submissions.get_configuration(submission.form_config_id)
        metadata = build_metadata(config, submission, client, language)
        try:
            return export_form_pdf(config, submission.form_data, metadata, language,
                                   submitted_on=submission_date(submission))
        except PDFExportError as e:
            self._notify_error(viewer, e.message)
            raise

    async def close(self, session_id: str) -> bool:
        return await self.registry.remove(session_id) is not None


def next_navigation(config, submission: FormSubmission) -> str:
    if config.documents:
        return settings.document_upload_path.format(submission_id=submission.id)
    return settings.forms_list_path
