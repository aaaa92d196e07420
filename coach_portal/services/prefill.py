"""Pre-fill a new submission from the client's stored profile resources.

Sections are matched by a keyword in their title. Each lookup tries a
primary endpoint and then an alternative one; any failure leaves the
section empty.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from coach_portal.errors import BackendError
from coach_portal.forms.formatting import parse_date
from coach_portal.models.form_configuration import FormConfiguration
from coach_portal.models.user import User, UserRole
from coach_portal.services.form_service import FormService

logger = logging.getLogger(__name__)

TEXT = ""
NUMBER = 0
DATE = "date"

PERSONAL_FIELDS = {
    "salutation": TEXT,
    "first_name": TEXT,
    "last_name": TEXT,
    "email": TEXT,
    "phone": TEXT,
    "street": TEXT,
    "house_number": TEXT,
    "postal_code": TEXT,
    "city": TEXT,
    "birth_date": DATE,
    "birth_place": TEXT,
    "nationality": TEXT,
    "marital_status": TEXT,
    "housing": TEXT,
    "eu_citizen": False,
}


@dataclass
class PrefillRule:
    keyword: str
    resource: str
    # "id" looks the record up by id, "user" by user; the other is the fallback
    primary: str
    fields: dict


PREFILL_RULES = [
    PrefillRule("personal", "personal_details", "id", PERSONAL_FIELDS),
    PrefillRule("income", "income", "id", {
        "gross_income": NUMBER,
        "net_income": NUMBER,
        "tax_class": TEXT,
        "number_of_salaries": 12,
        "child_benefit": NUMBER,
        "other_income": NUMBER,
    }),
    PrefillRule("expenses", "expenses", "id", {
        "cold_rent": NUMBER,
        "electricity": NUMBER,
        "living_expenses": NUMBER,
        "other_expenses": NUMBER,
    }),
    PrefillRule("employment", "employment", "user", {
        "occupation": TEXT,
        "contract_type": TEXT,
        "employer_name": TEXT,
        "employed_since": DATE,
    }),
    PrefillRule("assets", "assets", "user", {
        "real_estate": NUMBER,
        "securities": NUMBER,
        "bank_deposits": NUMBER,
        "other_assets": NUMBER,
    }),
    PrefillRule("liabilities", "liabilities", "user", {
        "loan_type": TEXT,
        "loan_bank": TEXT,
        "loan_amount": NUMBER,
        "loan_monthly_rate": NUMBER,
    }),
    PrefillRule("family", "family_members", "user", {
        "first_name": TEXT,
        "last_name": TEXT,
        "relation": TEXT,
        "birth_date": DATE,
        "nationality": TEXT,
    }),
]


def normalize_input_date(value: Any) -> str:
    """YYYY-MM-DD for a date input; anything unparseable becomes ""."""
    parsed = parse_date(value) if value else None
    return parsed.isoformat() if parsed else ""


def map_record(record: Optional[dict], fields: dict) -> dict:
    if not record:
        return {}
    mapped = {}
    for name, default in fields.items():
        value = record.get(name)
        if default == DATE:
            mapped[name] = normalize_input_date(value)
        else:
            # Falsy stored values take the default, like a missing value
            mapped[name] = value or default
    return mapped


def _first(result: Any) -> Optional[dict]:
    if isinstance(result, list):
        return result[0] if result else None
    return result if isinstance(result, dict) else None


def rule_for_title(title: str) -> Optional[PrefillRule]:
    lowered = (title or "").lower()
    for rule in PREFILL_RULES:
        if rule.keyword in lowered:
            return rule
    return None


class ClientPrefill:
    def __init__(self, form_service: FormService):
        self.form_service = form_service

    async def _lookup(self, rule: PrefillRule, user_id: str) -> Optional[dict]:
        by_id = (self.form_service.get, (rule.resource, user_id))
        by_user = (self.form_service.get_by_user, (rule.resource, user_id))
        if rule.resource == "personal_details":
            lookups = [by_id, (self.form_service.get_my_personal_details, ())]
        elif rule.resource == "family_members":
            lookups = [by_user]
        else:
            lookups = [by_id, by_user] if rule.primary == "id" else [by_user, by_id]

        for lookup, args in lookups:
            try:
                record = _first(await lookup(*args))
            except BackendError as e:
                logger.warning(f"{rule.resource} lookup failed for user {user_id}: {e.message}")
                continue
            if record:
                return record
        return None

    async def load(self, config: FormConfiguration, user: User) -> dict:
        """Form data for a new submission; {} unless the user is a client."""
        if user.role != UserRole.CLIENT:
            return {}

        if config.is_dual:
            return await self._load_dual(config, user)

        prefilled = {}
        for section in config.sorted_sections():
            rule = rule_for_title(section.title)
            if rule is None:
                continue
            section_data = map_record(await self._lookup(rule, user.id), rule.fields)
            if section_data:
                prefilled[section.id] = section_data
        logger.info(f"Pre-filled {len(prefilled)} section(s) for user {user.id}")
        return prefilled

    async def _load_dual(self, config: FormConfiguration, user: User) -> dict:
        # Only applicant 1's personal details are known to the backend
        if not any("personal" in (s.title or "").lower() for s in config.sections):
            return {}
        rule = PREFILL_RULES[0]
        fields = {name: default for name, default in rule.fields.items()
                  if name not in ("salutation", "housing", "eu_citizen")}
        applicant1 = map_record(await self._lookup(rule, user.id), fields)
        return {"applicant1": applicant1} if applicant1 else {}
