"""Printable submission report: cover page, content pages, consents, signatures, footer.

Layout works top-down in millimetres on an A4 canvas; `_y()` converts a
distance from the top edge into reportlab's bottom-up points. Pagination
is a fixed-threshold check before each line, not a content measurement.
"""

import base64
import binascii
import io
import logging
import re
from datetime import date, datetime
from typing import Callable, Optional

from PIL import Image
from reportlab.lib.colors import HexColor, black, white
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from coach_portal.config import settings
from coach_portal.errors import PDFExportError
from coach_portal.forms.extractor import APPLICANT_KEYS, group_applicant_sections
from coach_portal.forms.formatting import format_date, format_field_value
from coach_portal.i18n.translations import create_translation_function
from coach_portal.models.form_configuration import ConsentForm
from coach_portal.models.form_section_data import FormMetadata, FormSectionData

logger = logging.getLogger(__name__)

PAGE_WIDTH_MM = A4[0] / mm
PAGE_HEIGHT_MM = A4[1] / mm

FONTS = {
    "normal": "Helvetica",
    "bold": "Helvetica-Bold",
    "italic": "Helvetica-Oblique",
}

# Colors
BLUE = HexColor("#1a4b8c")
LIGHT_GRAY = HexColor("#f0f0f0")
GREEN = HexColor("#16a34a")
RED = HexColor("#dc2626")

CONSENT_PREVIEW_LINES = 10


class FooterCanvas(canvas.Canvas):
    """Canvas that defers page output so every footer can say "Page X of N"."""

    def __init__(self, *args, footer_caption: str = "",
                 page_label: Optional[Callable[[int, int], str]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []
        self.footer_caption = footer_caption
        self.page_label = page_label or (lambda current, total: f"Page {current} of {total}")

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            canvas.Canvas.showPage(self)
        canvas.Canvas.save(self)

    @property
    def page_count(self) -> int:
        return len(self._saved_page_states)

    def _draw_footer(self, total: int):
        width, height = A4
        self.saveState()
        self.setStrokeColor(black)
        self.setLineWidth(0.3 * mm)
        self.line(20 * mm, 15 * mm, width - 20 * mm, 15 * mm)
        self.setFont("Helvetica", 8)
        self.setFillColor(black)
        self.drawString(20 * mm, 10 * mm, self.footer_caption)
        self.drawRightString(width - 20 * mm, 10 * mm, self.page_label(self._pageNumber, total))
        self.restoreState()


def decode_signature_image(signature_data: str) -> ImageReader:
    """Base64 (optionally a data URL) -> ImageReader. Raises ValueError on bad input."""
    payload = signature_data.strip()
    if payload.startswith("data:"):
        payload = payload.split(",", 1)[-1]
    try:
        raw = base64.b64decode(payload, validate=True)
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (binascii.Error, OSError, ValueError) as e:
        raise ValueError(f"Invalid signature image: {e}") from e
    if image.mode not in ("RGB", "RGBA", "L"):
        image = image.convert("RGBA")
    return ImageReader(image)


def build_pdf_filename(form_name: str, on: Optional[date] = None) -> str:
    on = on or date.today()
    return f"{re.sub(r'[^a-zA-Z0-9]', '_', form_name)}_{on.isoformat()}.pdf"


class PDFExporter:
    def __init__(self, t: Optional[Callable[..., str]] = None, language: str = "en",
                 logo_path: Optional[str] = None, company_name: Optional[str] = None,
                 footer_caption: Optional[str] = None, compress: bool = True):
        self.language = language
        self.t = t or create_translation_function(language)
        self.logo_path = logo_path if logo_path is not None else settings.logo_path
        self.company_name = company_name or settings.company_name
        self.footer_caption = footer_caption or settings.pdf_footer_caption
        self.compress = compress

        self.page_width = PAGE_WIDTH_MM
        self.page_height = PAGE_HEIGHT_MM
        self.margin = 20
        self.line_height = 7
        self.current_y = self.margin
        self.pdf: Optional[FooterCanvas] = None
        self.page_count = 0

    # ------------------------------------------------------------------
    # Drawing primitives
    # ------------------------------------------------------------------

    def _y(self, y_mm: float) -> float:
        return (self.page_height - y_mm) * mm

    def _font(self, style: str, size: float):
        self.pdf.setFont(FONTS[style], size)
        self._font_name = FONTS[style]
        self._font_size = size

    def _text(self, x_mm: float, y_mm: float, text: str):
        self.pdf.drawString(x_mm * mm, self._y(y_mm), text)

    def _wrap(self, text: str, width_mm: float) -> list[str]:
        return simpleSplit(str(text), self._font_name, self._font_size, width_mm * mm) or [""]

    def _new_page(self):
        self.pdf.showPage()
        self.current_y = self.margin

    def _add_new_page_if_needed(self, space_needed: float = 20):
        if self.current_y + space_needed > self.page_height - self.margin:
            self._new_page()

    @property
    def _content_width(self) -> float:
        return self.page_width - 2 * self.margin

    # ------------------------------------------------------------------
    # Page blocks
    # ------------------------------------------------------------------

    def _add_logo(self):
        if not self.logo_path:
            return
        try:
            logo = ImageReader(self.logo_path)
            img_width, img_height = logo.getSize()
            logo_width = 30
            logo_height = img_height / img_width * logo_width
            x = self.page_width - self.margin - logo_width
            self.pdf.drawImage(logo, x * mm, self._y(self.margin + logo_height),
                               logo_width * mm, logo_height * mm, mask="auto")
        except Exception as e:
            logger.warning(f"Could not load logo {self.logo_path}: {e}")

    def _add_metadata_page(self, metadata: FormMetadata):
        t = self.t
        self.current_y = self.margin + 5

        self._font("bold", 24)
        self._text(self.margin, self.current_y, self.company_name)
        self.current_y += 15

        self._font("normal", 18)
        self._text(self.margin, self.current_y, t("forms.pdf.formSubmissionReport"))
        self.current_y += 20

        self._font("bold", 14)
        self._text(self.margin, self.current_y, t("forms.pdf.formInformation"))
        self.current_y += 10

        self.pdf.setLineWidth(0.5 * mm)
        self.pdf.line(self.margin * mm, self._y(self.current_y),
                      (self.page_width - self.margin) * mm, self._y(self.current_y))
        self.current_y += 10

        details = [
            (t("forms.pdf.formName"), metadata.form_name),
            (t("forms.pdf.formType"), metadata.form_type),
            (t("forms.pdf.version"), metadata.version),
            (t("forms.pdf.description"), metadata.description),
            (t("forms.pdf.submissionDate"), metadata.submission_date),
            (t("forms.pdf.status"), metadata.status),
        ]
        self._add_label_rows(details)

        self.current_y += 5
        self._font("bold", 11)
        self._text(self.margin, self.current_y, t("forms.pdf.clientInformation"))
        self.current_y += 8

        self._add_label_rows([
            (t("forms.pdf.name"), metadata.client_name),
            (t("forms.pdf.email"), metadata.client_email),
        ])

    def _add_label_rows(self, rows: list[tuple[str, str]]):
        value_x = self.margin + 40
        value_width = self.page_width - self.margin - value_x
        for label, value in rows:
            if not value:
                continue
            self._font("normal", 11)
            lines = self._wrap(value, value_width)
            self._add_new_page_if_needed(len(lines) * self.line_height)
            self._font("bold", 11)
            self._text(self.margin, self.current_y, label)
            self._font("normal", 11)
            for offset, line in enumerate(lines):
                self._text(value_x, self.current_y + offset * self.line_height, line)
            self.current_y += len(lines) * self.line_height

    def _add_section_heading(self, number: int, title: str, description: Optional[str]):
        self._add_new_page_if_needed(30)
        self._font("bold", 14)
        self._text(self.margin, self.current_y, f"{number}. {title}")
        self.current_y += 8

        if description:
            self._font("italic", 10)
            lines = self._wrap(description, self._content_width)
            for offset, line in enumerate(lines):
                self._text(self.margin, self.current_y + offset * 5, line)
            self.current_y += len(lines) * 5 + 5

    def _add_section_content(self, sections: list[FormSectionData]):
        self._new_page()

        self._font("bold", 18)
        self._text(self.margin, self.current_y, self.t("forms.pdf.formContent"))
        self.current_y += 15

        label_x = self.margin + 5
        value_x = self.margin + 50
        value_width = self.page_width - self.margin - value_x

        for index, section in enumerate(sections, start=1):
            self._add_section_heading(index, section.title, section.description)

            for entry in section.fields:
                self._add_new_page_if_needed(10)
                display = format_field_value(entry.value, entry.type, self.t, self.language)

                self._font("bold", 10)
                label_lines = self._wrap(f"{entry.label}:", value_x - label_x - 2)
                for offset, line in enumerate(label_lines):
                    self._text(label_x, self.current_y + offset * 5, line)

                self._font("normal", 10)
                value_lines = self._wrap(display, value_width)
                for offset, line in enumerate(value_lines):
                    self._text(value_x, self.current_y + offset * 5, line)

                self.current_y += max(max(len(label_lines), len(value_lines)) * 5, 7)

            self.current_y += 10

    def _add_table_header(self, columns: list[tuple[str, float]]):
        height = 8
        self.pdf.setFillColor(BLUE)
        self.pdf.rect(self.margin * mm, self._y(self.current_y + height),
                      self._content_width * mm, height * mm, fill=1, stroke=0)
        self.pdf.setFillColor(white)
        self._font("bold", 9)
        x = self.margin
        for title, width in columns:
            self._text(x + 2, self.current_y + 5.5, title)
            x += width
        self.pdf.setFillColor(black)
        self.current_y += height

    def _add_dual_section_content(self, sections: list[FormSectionData]):
        self._new_page()

        self._font("bold", 18)
        self._text(self.margin, self.current_y, self.t("forms.pdf.formContent"))
        self.current_y += 15

        widths = [60, (self._content_width - 60) / 2, (self._content_width - 60) / 2]
        columns = list(zip(
            [self.t("forms.pdf.field"), self.t("forms.list.applicant1"), self.t("forms.list.applicant2")],
            widths,
        ))
        line_step = 4.5
        bottom = self.page_height - self.margin

        for index, group in enumerate(group_applicant_sections(sections), start=1):
            self._add_section_heading(index, group.title, group.description)
            self._add_table_header(columns)

            for row_index, row in enumerate(group.rows):
                self._font("normal", 9)
                cells = [row.label] + [
                    format_field_value(row.values.get(applicant), row.type, self.t, self.language)
                    for applicant in APPLICANT_KEYS
                ]
                wrapped = [self._wrap(cell, width - 4) for cell, width in zip(cells, widths)]
                row_height = max(len(lines) for lines in wrapped) * line_step + 3

                if self.current_y + row_height > bottom:
                    self._new_page()
                    self._add_table_header(columns)

                if row_index % 2 == 1:
                    self.pdf.setFillColor(LIGHT_GRAY)
                    self.pdf.rect(self.margin * mm, self._y(self.current_y + row_height),
                                  self._content_width * mm, row_height * mm, fill=1, stroke=0)
                    self.pdf.setFillColor(black)

                x = self.margin
                for column, lines in enumerate(wrapped):
                    self._font("bold" if column == 0 else "normal", 9)
                    for offset, line in enumerate(lines):
                        self._text(x + 2, self.current_y + line_step + offset * line_step, line)
                    x += widths[column]
                self.current_y += row_height

            self.current_y += 10

    def _add_consents(self, consent_forms: list[ConsentForm], form_data: dict):
        if not consent_forms:
            return
        self._add_new_page_if_needed(40)
        self._font("bold", 14)
        self._text(self.margin, self.current_y, self.t("forms.pdf.consentForms"))
        self.current_y += 10

        for index, consent in enumerate(consent_forms):
            self._add_new_page_if_needed(40)
            self._font("bold", 11)
            self._text(self.margin, self.current_y, consent.title)
            self.current_y += 6

            self._font("normal", 9)
            lines = self._wrap(consent.content, self._content_width)
            preview = lines[:CONSENT_PREVIEW_LINES]
            if len(lines) > CONSENT_PREVIEW_LINES:
                preview[-1] = preview[-1] + " ..."
            for line in preview:
                self._add_new_page_if_needed(5)
                self._text(self.margin, self.current_y, line)
                self.current_y += 4.5
            self.current_y += 2

            accepted = bool(form_data.get(consent.acceptance_key(index), form_data.get(f"consent_{index}", False)))
            color = GREEN if accepted else RED
            self.pdf.setFillColor(color)
            self.pdf.rect(self.margin * mm, self._y(self.current_y + 1), 4 * mm, 4 * mm, fill=1, stroke=0)
            self._font("bold", 10)
            label = self.t("forms.pdf.accepted") if accepted else self.t("forms.pdf.notAccepted")
            self._text(self.margin + 6, self.current_y + 1, label)
            self.pdf.setFillColor(black)
            self.current_y += 10

    def _signed_on(self) -> str:
        now = datetime.now()
        return f"{self.t('forms.pdf.signedOn')}: {format_date(now, self.language)} {now:%H:%M:%S}"

    def _draw_signature(self, signature_data: str, x_mm: float, width: float, height: float) -> bool:
        """Draw at (x, current_y); on failure write the error text instead."""
        try:
            image = decode_signature_image(signature_data)
            self.pdf.drawImage(image, x_mm * mm, self._y(self.current_y + height),
                               width * mm, height * mm, mask="auto", preserveAspectRatio=True)
            return True
        except Exception as e:
            logger.warning(f"Error adding signature to PDF: {e}")
            self._font("normal", 10)
            lines = self._wrap(self.t("forms.pdf.signatureError"), width)
            for offset, line in enumerate(lines):
                self._text(x_mm, self.current_y + 5 + offset * 5, line)
            return False

    def _add_signature(self, signature_data: str):
        if not signature_data:
            return
        self._add_new_page_if_needed(60)

        self._font("bold", 14)
        self._text(self.margin, self.current_y, self.t("forms.pdf.digitalSignature"))
        self.current_y += 15

        if self._draw_signature(signature_data, self.margin, 80, 40):
            self.current_y += 50
            self._font("normal", 10)
            self._text(self.margin, self.current_y, self._signed_on())
        else:
            self.current_y += 10

    def _add_dual_signatures(self, signatures: dict):
        if not any(signatures.get(applicant) for applicant in APPLICANT_KEYS):
            return
        self._new_page()

        self._font("bold", 14)
        self._text(self.margin, self.current_y, self.t("forms.pdf.signatures"))
        self.current_y += 15

        column_width = self._content_width / 2
        top = self.current_y
        for column, applicant in enumerate(APPLICANT_KEYS):
            x = self.margin + column * column_width
            self.current_y = top
            self._font("bold", 11)
            self._text(x, self.current_y, self.t(f"forms.list.{applicant}"))
            self.current_y += 5

            signature = signatures.get(applicant)
            if not signature:
                self._font("normal", 10)
                self._text(x, self.current_y + 5, self.t("forms.pdf.notProvided"))
                continue
            if self._draw_signature(signature, x, column_width - 10, 35):
                self._font("normal", 9)
                self._text(x, self.current_y + 42, self._signed_on())
        self.current_y = top + 55

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def _start(self, buffer: io.BytesIO):
        t = self.t
        self.pdf = FooterCanvas(
            buffer,
            pagesize=A4,
            pageCompression=1 if self.compress else 0,
            footer_caption=self.footer_caption,
            page_label=lambda current, total: t("forms.pdf.page", {"current": current, "total": total}),
        )
        self.pdf.setTitle(self.company_name)
        self.current_y = self.margin

    def _finish(self, buffer: io.BytesIO) -> bytes:
        self.pdf.showPage()
        self.page_count = self.pdf.page_count
        self.pdf.save()
        return buffer.getvalue()

    def generate_pdf(self, metadata: FormMetadata, sections: list[FormSectionData],
                     signature_data: Optional[str] = None,
                     consent_forms: Optional[list[ConsentForm]] = None,
                     form_data: Optional[dict] = None) -> bytes:
        """Single-applicant report as PDF bytes."""
        buffer = io.BytesIO()
        try:
            self._start(buffer)
            self._add_logo()
            self._add_metadata_page(metadata)
            self._add_section_content(sections)
            self._add_consents(consent_forms or [], form_data or {})
            if signature_data:
                self._add_signature(signature_data)
            return self._finish(buffer)
        except Exception as e:
            logger.error(f"Error generating PDF: {e}", exc_info=True)
            raise PDFExportError(self.t("forms.pdf.exportError")) from e

    def generate_dual_pdf(self, metadata: FormMetadata, sections: list[FormSectionData],
                          signatures: Optional[dict] = None,
                          consent_forms: Optional[list[ConsentForm]] = None,
                          form_data: Optional[dict] = None) -> bytes:
        """Dual-applicant report: side-by-side tables and a shared signature page."""
        buffer = io.BytesIO()
        try:
            self._start(buffer)
            self._add_logo()
            self._add_metadata_page(metadata)
            self._add_dual_section_content(sections)
            self._add_consents(consent_forms or [], form_data or {})
            self._add_dual_signatures(signatures or {})
            return self._finish(buffer)
        except Exception as e:
            logger.error(f"Error generating PDF: {e}", exc_info=True)
            raise PDFExportError(self.t("forms.pdf.exportError")) from e
