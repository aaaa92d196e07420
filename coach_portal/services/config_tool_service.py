"""Admin side of form configurations: CRUD, clone, status toggle, statistics,
plus the pre-save validation rules the admin tool enforces."""

import random
import string
import time
from typing import Any, Optional

from coach_portal.services.api_client import BackendClient, require_data

_BASE36 = string.digits + string.ascii_lowercase


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_form_configuration(data: dict) -> tuple[bool, list[str]]:
    """Check a configuration payload before it is saved.

    Returns (is_valid, errors); errors are human-readable and numbered
    from 1 for sections, consent forms and documents.
    """
    errors = []

    if _blank(data.get("name")):
        errors.append("Form name is required")
    if _blank(data.get("form_type")):
        errors.append("Form type is required")
    if _blank(data.get("version")):
        errors.append("Version is required")

    sections = data.get("sections") or []
    if not sections:
        errors.append("At least one section is required")
    for index, section in enumerate(sections, start=1):
        if _blank(section.get("title")):
            errors.append(f"Section {index}: Title is required")
        if _blank(section.get("description")):
            errors.append(f"Section {index}: Description is required")

    for index, consent in enumerate(data.get("consent_forms") or [], start=1):
        if _blank(consent.get("title")):
            errors.append(f"Consent form {index}: Title is required")
        if _blank(consent.get("content")):
            errors.append(f"Consent form {index}: Content is required")

    for index, document in enumerate(data.get("documents") or [], start=1):
        if _blank(document.get("name")):
            errors.append(f"Document {index}: Name is required")
        accepted = document.get("acceptedTypes", document.get("accepted_types"))
        if not accepted:
            errors.append(f"Document {index}: At least one accepted type is required")

    return len(errors) == 0, errors


def generate_config_id() -> str:
    suffix = "".join(random.choice(_BASE36) for _ in range(9))
    return f"config_{int(time.time() * 1000)}_{suffix}"


class ConfigToolService:
    base_path = "/form-configurations"

    def __init__(self, client: BackendClient):
        self.client = client

    async def create(self, data: dict) -> dict:
        response = await self.client.post(self.base_path, json=data)
        return require_data(response, "create form configuration")

    async def list_configurations(self, form_type: Optional[str] = None, is_active: Optional[bool] = None,
                                  search: Optional[str] = None, created_by_id: Optional[str] = None) -> list:
        params = {}
        if form_type:
            params["formType"] = form_type
        if is_active is not None:
            params["isActive"] = str(is_active).lower()
        if search:
            params["search"] = search
        if created_by_id:
            params["createdById"] = created_by_id
        response = await self.client.get(self.base_path, params=params or None)
        return require_data(response, "fetch form configurations", allow_empty=True) or []

    async def statistics(self) -> dict:
        response = await self.client.get(f"{self.base_path}/statistics")
        return require_data(response, "fetch form configuration statistics")

    async def by_user(self, user_id: str) -> list:
        response = await self.client.get(f"{self.base_path}/user/{user_id}")
        return require_data(response, "fetch form configurations", allow_empty=True) or []

    async def by_type(self, form_type: str) -> list:
        response = await self.client.get(f"{self.base_path}/type/{form_type}")
        return require_data(response, "fetch form configurations", allow_empty=True) or []

    async def by_config_id(self, config_id: str) -> dict:
        response = await self.client.get(f"{self.base_path}/config/{config_id}")
        return require_data(response, "fetch form configuration")

    async def get(self, record_id: str) -> dict:
        response = await self.client.get(f"{self.base_path}/{record_id}")
        return require_data(response, "fetch form configuration")

    async def update(self, record_id: str, data: dict) -> dict:
        response = await self.client.put(f"{self.base_path}/{record_id}", json=data)
        return require_data(response, "update form configuration")

    async def delete(self, record_id: str) -> None:
        response = await self.client.delete(f"{self.base_path}/{record_id}")
        require_data(response, "delete form configuration", allow_empty=True)

    async def clone(self, record_id: str, new_name: str) -> dict:
        response = await self.client.post(f"{self.base_path}/{record_id}/clone", json={"name": new_name})
        return require_data(response, "clone form configuration")

    async def toggle_status(self, record_id: str) -> dict:
        response = await self.client.patch(f"{self.base_path}/{record_id}/status")
        return require_data(response, "toggle form configuration status")
