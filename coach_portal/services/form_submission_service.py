import logging
from typing import Any, Optional

from coach_portal.errors import AuthenticationError, BackendError, ConfigurationNotFoundError, SubmissionError
from coach_portal.models.form_configuration import FormConfiguration
from coach_portal.models.form_submission import FormSubmission
from coach_portal.services.api_client import BackendClient, require_data

logger = logging.getLogger(__name__)


class FormSubmissionService:
    """Form configurations (read side) and submissions, including document records."""

    base_path = "/form-submissions"

    def __init__(self, client: BackendClient):
        self.client = client

    async def get_available_configurations(self) -> list[FormConfiguration]:
        response = await self.client.get("/form-configurations")
        data = require_data(response, "fetch form configurations", allow_empty=True) or []
        return [FormConfiguration.model_validate(item) for item in data]

    async def get_configuration(self, config_id: str) -> FormConfiguration:
        try:
            response = await self.client.get(f"/form-configurations/config/{config_id}")
            data = require_data(response, "load form configuration")
        except AuthenticationError:
            raise
        except BackendError as e:
            logger.error(f"Failed to load form configuration {config_id}: {e.message}")
            raise ConfigurationNotFoundError(config_id, e.message) from e
        return FormConfiguration.model_validate(data)

    async def create(self, form_config_id: str, user_id: str, form_data: dict, status: str = "draft",
                     submitted_at: Optional[str] = None) -> FormSubmission:
        payload = {
            "form_config_id": form_config_id,
            "user_id": user_id,
            "form_data": form_data,
            "status": status,
        }
        if submitted_at:
            payload["submitted_at"] = submitted_at
        return await self._call("create form submission", self.client.post(self.base_path, json=payload))

    async def update(self, submission_id: str, data: dict) -> FormSubmission:
        return await self._call(
            "update form submission",
            self.client.put(f"{self.base_path}/{submission_id}", json=data),
        )

    async def get(self, submission_id: str) -> FormSubmission:
        return await self._call("fetch form submission", self.client.get(f"{self.base_path}/{submission_id}"))

    async def list_for_user(self, user_id: str) -> list[FormSubmission]:
        try:
            response = await self.client.get(f"{self.base_path}/user/{user_id}")
            data = require_data(response, "fetch form submissions", allow_empty=True) or []
        except AuthenticationError:
            raise
        except BackendError as e:
            raise SubmissionError(e.message) from e
        return [FormSubmission.model_validate(item) for item in data]

    async def submit(self, submission_id: str) -> FormSubmission:
        return await self._call("submit form", self.client.patch(f"{self.base_path}/{submission_id}/submit"))

    async def delete(self, submission_id: str) -> None:
        try:
            response = await self.client.delete(f"{self.base_path}/{submission_id}")
            require_data(response, "delete form submission", allow_empty=True)
        except AuthenticationError:
            raise
        except BackendError as e:
            raise SubmissionError(e.message) from e

    # Document records

    async def create_document_record(self, submission_id: str, record: dict) -> dict:
        try:
            response = await self.client.post(f"{self.base_path}/{submission_id}/documents", json=record)
            return require_data(response, "mark document as uploaded")
        except AuthenticationError:
            raise
        except BackendError as e:
            raise SubmissionError(e.message) from e

    async def list_documents(self, submission_id: str) -> Any:
        try:
            response = await self.client.get(f"{self.base_path}/{submission_id}/documents")
            return require_data(response, "fetch submission documents", allow_empty=True)
        except AuthenticationError:
            raise
        except BackendError as e:
            raise SubmissionError(e.message) from e

    async def _call(self, action: str, call) -> FormSubmission:
        try:
            response = await call
            data = require_data(response, action)
        except AuthenticationError:
            raise
        except BackendError as e:
            logger.error(f"Failed to {action}: {e.message}")
            raise SubmissionError(e.message) from e
        return FormSubmission.model_validate(data)


def submission_payload(submission: FormSubmission, form_data: dict, status: Optional[str] = None) -> dict:
    """Update body: the stored record with new form data (and optionally status)."""
    return {
        "form_config_id": submission.form_config_id,
        "user_id": submission.user_id,
        "form_data": form_data,
        "status": status or submission.status,
    }
