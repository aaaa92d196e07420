from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class FormSubmission(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    form_config_id: str = ""
    user_id: str = ""
    form_data: dict[str, Any] = Field(default_factory=dict)
    status: str = "draft"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    submitted_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_submission_data_key(cls, data: Any) -> Any:
        if isinstance(data, dict):
            if not data.get("form_data") and data.get("submission_data"):
                data = {**data, "form_data": data["submission_data"]}
            if data.get("form_data") is None:
                data = {**data, "form_data": {}}
        return data

    @property
    def is_draft(self) -> bool:
        return self.status == "draft"
