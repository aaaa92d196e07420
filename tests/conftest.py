"""Shared fixtures for coach portal tests."""

import base64
import io
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from coach_portal.i18n.translations import create_translation_function
from coach_portal.models.form_configuration import FormConfiguration
from coach_portal.models.form_submission import FormSubmission
from coach_portal.models.user import User, UserRole


# ---------------------------------------------------------------------------
# Model factory helpers
# ---------------------------------------------------------------------------

def make_section(section_id: str = "personal", title: str = "Personal Details", fields=None, **overrides) -> dict:
    section = {
        "id": section_id,
        "title": title,
        "description": f"{title} of the client",
        "fields": fields if fields is not None else [
            {"name": "first_name", "label": "First Name", "type": "text", "required": True},
            {"name": "birth_date", "label": "Birth Date", "type": "date"},
            {"name": "eu_citizen", "label": "EU Citizen", "type": "checkbox"},
        ],
    }
    section.update(overrides)
    return section


def make_config_data(**overrides) -> dict:
    """A configuration payload as the backend sends it."""
    defaults = {
        "id": "cfg-1",
        "config_id": "config_1700000000000_abc123def",
        "name": "Financial Profile",
        "description": "Basic financial profile",
        "form_type": "profile",
        "version": "1.0",
        "applicantconfig": "single",
        "sections": [
            make_section(),
            make_section("income", "Income", [
                {"name": "gross_income", "label": "Gross Income", "type": "number"},
                {"name": "net_income", "label": "Net Income", "type": "number"},
            ]),
        ],
        "consent_forms": [
            {"id": "privacy", "title": "Privacy", "content": "We store your data.", "required": True},
        ],
        "documents": [],
        "is_active": True,
    }
    defaults.update(overrides)
    return defaults


def make_config(**overrides) -> FormConfiguration:
    return FormConfiguration.model_validate(make_config_data(**overrides))


def make_dual_config(**overrides) -> FormConfiguration:
    return make_config(applicantconfig="dual", **overrides)


def make_submission_data(**overrides) -> dict:
    defaults = {
        "id": "sub-1",
        "form_config_id": "config_1700000000000_abc123def",
        "user_id": "user-1",
        "form_data": {
            "personal": {"first_name": "Anna", "birth_date": "1990-03-15", "eu_citizen": True},
            "income": {"gross_income": 5000, "net_income": 3200.5},
            "consent_privacy": True,
        },
        "status": "draft",
        "created_at": "2024-03-01T10:00:00Z",
        "updated_at": "2024-03-02T10:00:00Z",
        "submitted_at": None,
    }
    defaults.update(overrides)
    return defaults


def make_submission(**overrides) -> FormSubmission:
    return FormSubmission.model_validate(make_submission_data(**overrides))


def make_user(**overrides) -> User:
    defaults = {
        "id": "user-1",
        "email": "anna@example.com",
        "first_name": "Anna",
        "last_name": "Schmidt",
        "role": UserRole.CLIENT,
        "coach_id": "coach-1",
        "is_active": True,
    }
    defaults.update(overrides)
    return User.model_validate(defaults)


def make_signature(size=(40, 20)) -> str:
    """A small PNG as base64, the way the signature pad posts it."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(255, 255, 255)).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


# ---------------------------------------------------------------------------
# HTTP mocks
# ---------------------------------------------------------------------------

def make_response(status_code: int = 200, body=None, reason: str = "OK") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.reason_phrase = reason
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


def make_async_client(response=None, side_effect=None) -> AsyncMock:
    """AsyncMock standing in for httpx.AsyncClient used as an async context manager."""
    client = AsyncMock()
    client.request = AsyncMock(return_value=response, side_effect=side_effect)
    client.get = AsyncMock(return_value=response, side_effect=side_effect)
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


def envelope(data=None, success: bool = True, message: str = "") -> dict:
    return {"success": success, "message": message, "data": data}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def t():
    return create_translation_function("en")


@pytest.fixture
def mock_broadcaster():
    broadcaster = MagicMock()
    broadcaster.success = MagicMock()
    broadcaster.error = MagicMock()
    return broadcaster


@pytest.fixture
def fresh_registry():
    """A clean session registry singleton per test."""
    from coach_portal.services.session_registry import FormSessionRegistry

    FormSessionRegistry._instance = None
    registry = FormSessionRegistry.get_instance()
    yield registry
    FormSessionRegistry._instance = None
