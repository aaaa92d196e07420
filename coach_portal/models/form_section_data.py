from typing import Any, Optional
from pydantic import BaseModel, Field


class FieldEntry(BaseModel):
    """One (label, value, type) triple; `key` is the field's machine name."""

    label: str
    value: Any = None
    type: str = "text"
    key: Optional[str] = None


class FormSectionData(BaseModel):
    """Export-time projection of one section. Built for rendering, never persisted."""

    title: str
    description: Optional[str] = None
    fields: list[FieldEntry] = Field(default_factory=list)
    section_id: Optional[str] = None
    # Dual-applicant sections: which applicant, and the title without the applicant suffix
    applicant: Optional[str] = None
    section_title: Optional[str] = None


class FormMetadata(BaseModel):
    form_name: str = ""
    form_type: str = ""
    version: str = ""
    description: str = ""
    submission_date: str = ""
    client_name: str = ""
    client_email: str = ""
    status: str = ""
