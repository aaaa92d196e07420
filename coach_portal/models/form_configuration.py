from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class FieldValidation(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    message: Optional[str] = None


class FormField(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str
    label: str = ""
    type: str = "text"
    required: bool = False
    placeholder: Optional[str] = None
    options: Optional[list[str]] = None
    validation: Optional[FieldValidation] = None


class Section(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str = ""
    description: Optional[str] = None
    fields: list[FormField] = Field(default_factory=list)
    required: bool = False
    collapsible: bool = False
    order: Optional[int] = None


class ConsentForm(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[str] = None
    title: str = ""
    content: str = ""
    checkbox_text: str = Field(default="", alias="checkboxText")
    required: bool = False
    enabled: bool = True

    def acceptance_key(self, index: int) -> str:
        """Key under which acceptance is stored in the submission's form data."""
        if self.id:
            return f"consent_{self.id}"
        return f"consent_{index}"


class DocumentRequirement(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str = ""
    max_size: float = Field(default=10, alias="maxSize")  # MB
    required: bool = False
    description: Optional[str] = None
    accepted_types: list[str] = Field(default_factory=list, alias="acceptedTypes")


class FormConfiguration(BaseModel):
    """A server-supplied form definition. Read-only for the lifetime of a session."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    config_id: Optional[str] = None
    name: str = ""
    description: str = ""
    form_type: str = ""
    version: str = ""
    applicantconfig: Optional[str] = None
    sections: list[Section] = Field(default_factory=list)
    consent_forms: list[ConsentForm] = Field(default_factory=list)
    documents: list[DocumentRequirement] = Field(default_factory=list)
    is_active: bool = True

    @model_validator(mode="before")
    @classmethod
    def _accept_singular_consent_key(cls, data: Any) -> Any:
        # The backend sometimes sends "consent_form" instead of "consent_forms"
        if isinstance(data, dict) and not data.get("consent_forms") and data.get("consent_form"):
            data = {**data, "consent_forms": data["consent_form"]}
        if isinstance(data, dict):
            for key in ("sections", "consent_forms", "documents"):
                if key in data and data[key] is None:
                    data = {**data, key: []}
        return data

    @property
    def reference_id(self) -> str:
        """Identifier submissions point at (config_id, falling back to id)."""
        return self.config_id or self.id or ""

    @property
    def is_dual(self) -> bool:
        return (self.applicantconfig or "").lower() == "dual"

    def sorted_sections(self) -> list[Section]:
        """Sections by ascending `order`; sections without one keep their array position."""
        indexed = list(enumerate(self.sections))
        indexed.sort(key=lambda pair: (pair[1].order if pair[1].order is not None else pair[0], pair[0]))
        return [section for _, section in indexed]

    def get_section(self, section_id: str) -> Optional[Section]:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None
