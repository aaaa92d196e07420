"""Human-readable, localized labels for raw backend field names."""

import re
from typing import Callable

# Raw field name -> translation key, grouped by profile domain
LABEL_KEYS: dict[str, str] = {
    # Personal details
    "coach_id": "forms.personalDetails.assignedCoach",
    "applicant_type": "forms.personalDetails.applicantType",
    "salutation": "forms.personalDetails.salutation",
    "first_name": "forms.personalDetails.firstName",
    "last_name": "forms.personalDetails.lastName",
    "email": "forms.personalDetails.email",
    "phone": "forms.personalDetails.phone",
    "whatsapp": "forms.personalDetails.whatsapp",
    "street": "forms.personalDetails.street",
    "house_number": "forms.personalDetails.houseNumber",
    "postal_code": "forms.personalDetails.postalCode",
    "city": "forms.personalDetails.city",
    "birth_date": "forms.personalDetails.dateOfBirth",
    "birth_place": "forms.personalDetails.placeOfBirth",
    "nationality": "forms.personalDetails.nationality",
    "marital_status": "forms.personalDetails.maritalStatus",
    "housing": "forms.personalDetails.housingSituation",
    "eu_citizen": "forms.personalDetails.euCitizen",
    "tax_id": "forms.personalDetails.taxId",
    "iban": "forms.personalDetails.iban",
    "residence_permit": "forms.personalDetails.residencePermit",
    # Income
    "gross_income": "forms.income.grossIncome",
    "net_income": "forms.income.netIncome",
    "tax_class": "forms.income.taxClass",
    "number_of_salaries": "forms.income.numberOfSalaries",
    "child_benefit": "forms.income.childBenefit",
    "other_income": "forms.income.otherIncome",
    "income_trade_business": "forms.income.incomeTradeBusiness",
    "income_self_employed_work": "forms.income.incomeSelfEmployedWork",
    "income_side_job": "forms.income.incomeSideJob",
    # Employment
    "occupation": "forms.employment.occupation",
    "contract_type": "forms.employment.contractType",
    "contract_duration": "forms.employment.contractDuration",
    "employer_name": "forms.employment.employerName",
    "employed_since": "forms.employment.employedSince",
    # Expenses
    "cold_rent": "forms.expenses.coldRent",
    "electricity": "forms.expenses.electricity",
    "living_expenses": "forms.expenses.livingExpenses",
    "gas": "forms.expenses.gas",
    "telecommunication": "forms.expenses.telecommunication",
    "account_maintenance_fee": "forms.expenses.accountMaintenanceFee",
    "alimony": "forms.expenses.alimony",
    "subscriptions": "forms.expenses.subscriptions",
    "other_expenses": "forms.expenses.otherExpenses",
    # Assets
    "real_estate": "forms.assets.realEstate",
    "securities": "forms.assets.securities",
    "bank_deposits": "forms.assets.bankDeposits",
    "building_savings": "forms.assets.buildingSavings",
    "insurance_values": "forms.assets.insuranceValues",
    "other_assets": "forms.assets.otherAssets",
    # Liabilities
    "loan_type": "forms.liabilities.loanType",
    "loan_bank": "forms.liabilities.loanBank",
    "loan_amount": "forms.liabilities.loanAmount",
    "loan_monthly_rate": "forms.liabilities.loanMonthlyRate",
    "loan_interest": "forms.liabilities.loanInterest",
    # Family
    "relation": "forms.familyDetails.relation",
}


def humanize_key(key: str) -> str:
    """`gross_income` -> `Gross Income`."""
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), key.replace("_", " "))


def format_field_label(key: str, t: Callable[[str], str]) -> str:
    """Localized label for a raw field name; unknown keys are humanized, never rejected."""
    translation_key = LABEL_KEYS.get(key)
    if translation_key:
        translated = t(translation_key)
        if translated and translated not in (key, translation_key) and translated.strip():
            return translated
    return humanize_key(key)
