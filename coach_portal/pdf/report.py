import logging
from datetime import date, datetime
from typing import Optional

from coach_portal.forms.extractor import extract_form_sections, is_dual_payload
from coach_portal.forms.formatting import format_date, parse_date
from coach_portal.i18n.translations import create_translation_function, normalize_language
from coach_portal.models.form_configuration import FormConfiguration
from coach_portal.models.form_section_data import FormMetadata
from coach_portal.models.form_submission import FormSubmission
from coach_portal.models.user import User
from coach_portal.pdf.exporter import PDFExporter, build_pdf_filename

logger = logging.getLogger(__name__)


def submission_date(submission: Optional[FormSubmission]) -> Optional[date]:
    """Day the submission was last stamped; None for a form never saved."""
    if submission is None:
        return None
    return parse_date(submission.submitted_at or submission.updated_at or submission.created_at)


def build_metadata(config: FormConfiguration, submission: Optional[FormSubmission],
                   client: Optional[User], language: str = "en") -> FormMetadata:
    stamp = None
    if submission is not None:
        stamp = submission.submitted_at or submission.updated_at or submission.created_at
    return FormMetadata(
        form_name=config.name,
        form_type=config.form_type,
        version=config.version,
        description=config.description,
        submission_date=format_date(stamp or datetime.now(), language),
        client_name=client.full_name if client else "",
        client_email=client.email if client else "",
        status=submission.status if submission is not None else "draft",
    )


def export_form_pdf(config: FormConfiguration, form_data: dict, metadata: FormMetadata,
                    language: str = "en", exporter: Optional[PDFExporter] = None,
                    submitted_on: Optional[date] = None) -> tuple[str, bytes]:
    """Render the report for `form_data`; returns (filename, PDF bytes).

    Dual-applicant payloads get the side-by-side layout, everything else
    the single-applicant one. The filename carries `submitted_on`, or
    today when the form has no submission yet.
    """
    language = normalize_language(language)
    t = create_translation_function(language)
    exporter = exporter or PDFExporter(t=t, language=language)
    sections = extract_form_sections(config, form_data, t)
    consents = [c for c in config.consent_forms if c.enabled]

    if config.is_dual or is_dual_payload(form_data):
        content = exporter.generate_dual_pdf(
            metadata, sections,
            signatures=form_data.get("signatures") or {},
            consent_forms=consents,
            form_data=form_data,
        )
    else:
        content = exporter.generate_pdf(
            metadata, sections,
            signature_data=form_data.get("signature"),
            consent_forms=consents,
            form_data=form_data,
        )

    filename = build_pdf_filename(metadata.form_name or config.name, submitted_on)
    logger.info(f"Exported {filename} ({len(content)} bytes, {len(sections)} section(s))")
    return filename, content
