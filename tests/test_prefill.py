"""Tests for coach_portal.services.prefill."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from coach_portal.errors import BackendHTTPError, NetworkError
from coach_portal.models.user import UserRole
from coach_portal.services.prefill import ClientPrefill, map_record, normalize_input_date, rule_for_title
from tests.conftest import make_config, make_dual_config, make_section, make_user


@pytest.fixture
def form_service():
    service = MagicMock()
    service.get = AsyncMock(return_value=None)
    service.get_by_user = AsyncMock(return_value=None)
    service.get_my_personal_details = AsyncMock(return_value=None)
    return service


def test_rule_for_title():
    assert rule_for_title("Personal Details").resource == "personal_details"
    assert rule_for_title("Monthly Expenses").resource == "expenses"
    assert rule_for_title("Family Members").resource == "family_members"
    assert rule_for_title("Hobbies") is None


def test_map_record_defaults_and_dates():
    mapped = map_record(
        {"gross_income": 0, "tax_class": "III", "employed_since": "2020-02-01T00:00:00Z"},
        {"gross_income": 0, "tax_class": "", "number_of_salaries": 12, "employed_since": "date"},
    )

    assert mapped == {
        "gross_income": 0,
        "tax_class": "III",
        "number_of_salaries": 12,
        "employed_since": "2020-02-01",
    }


def test_map_record_empty():
    assert map_record(None, {"a": ""}) == {}


def test_normalize_input_date():
    assert normalize_input_date("1990-03-15T00:00:00.000Z") == "1990-03-15"
    assert normalize_input_date("garbage") == ""
    assert normalize_input_date(None) == ""


@pytest.mark.asyncio
async def test_non_clients_get_nothing(form_service):
    coach = make_user(id="coach-1", role=UserRole.COACH)

    assert await ClientPrefill(form_service).load(make_config(), coach) == {}
    form_service.get.assert_not_awaited()


@pytest.mark.asyncio
async def test_single_prefill_by_section_title(form_service):
    form_service.get.side_effect = [
        {"first_name": "Anna", "birth_date": "1990-03-15T00:00:00Z", "eu_citizen": True},
        [{"gross_income": 5000}],
    ]
    config = make_config()

    prefilled = await ClientPrefill(form_service).load(config, make_user())

    assert prefilled["personal"]["first_name"] == "Anna"
    assert prefilled["personal"]["birth_date"] == "1990-03-15"
    assert prefilled["personal"]["last_name"] == ""
    assert prefilled["income"]["gross_income"] == 5000
    assert prefilled["income"]["number_of_salaries"] == 12
    assert form_service.get.await_args_list[1].args == ("income", "user-1")


@pytest.mark.asyncio
async def test_primary_failure_uses_alternative(form_service):
    form_service.get.side_effect = BackendHTTPError("not found", 404)
    form_service.get_by_user.return_value = {"cold_rent": 900}
    config = make_config(sections=[make_section("costs", "Monthly Expenses", fields=[])])

    prefilled = await ClientPrefill(form_service).load(config, make_user())

    assert prefilled["costs"]["cold_rent"] == 900
    form_service.get_by_user.assert_awaited_once_with("expenses", "user-1")


@pytest.mark.asyncio
async def test_personal_details_falls_back_to_my_endpoint(form_service):
    form_service.get.side_effect = NetworkError()
    form_service.get_my_personal_details.return_value = {"first_name": "Anna"}
    config = make_config(sections=[make_section()])

    prefilled = await ClientPrefill(form_service).load(config, make_user())

    assert prefilled["personal"]["first_name"] == "Anna"


@pytest.mark.asyncio
async def test_all_lookups_failing_leaves_section_empty(form_service):
    form_service.get.side_effect = NetworkError()
    form_service.get_my_personal_details.side_effect = NetworkError()
    form_service.get_by_user.side_effect = NetworkError()

    assert await ClientPrefill(form_service).load(make_config(), make_user()) == {}


@pytest.mark.asyncio
async def test_dual_prefills_applicant1_personal_details(form_service):
    form_service.get.return_value = {"first_name": "Anna", "housing": "rented", "city": "Berlin"}

    prefilled = await ClientPrefill(form_service).load(make_dual_config(), make_user())

    applicant1 = prefilled["applicant1"]
    assert applicant1["first_name"] == "Anna"
    assert applicant1["city"] == "Berlin"
    assert "housing" not in applicant1
    assert "applicant2" not in prefilled
