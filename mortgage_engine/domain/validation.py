"""Explicit request validation - each validator returns a list of field errors"""

import re
from typing import List

from mortgage_engine.config import Settings
from mortgage_engine.domain.exceptions import FieldError, InvalidInputError
from mortgage_engine.domain.models import ApplicantInfo, ApplicationFilter, LoanScenario

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

SORTABLE_FIELDS = ("created_at", "submitted_at")
SORT_ORDERS = ("asc", "desc")


def ensure_valid(errors: List[FieldError]) -> None:
    """Raise InvalidInputError if any validator reported problems"""
    if errors:
        raise InvalidInputError(errors)


def _validate_loan(scenario: LoanScenario, config: Settings) -> List[FieldError]:
    errors = []

    if scenario.property_price <= 0:
        errors.append(FieldError("property_price", "must be greater than 0"))
    elif scenario.property_price > config.max_property_price:
        errors.append(FieldError("property_price", f"must not exceed {config.max_property_price:,.0f}"))
    if scenario.down_payment < 0:
        errors.append(FieldError("down_payment", "must not be negative"))
    elif scenario.down_payment > scenario.property_price:
        errors.append(FieldError("down_payment", "must not exceed property_price"))

    if scenario.term_months <= 0:
        errors.append(FieldError("term_months", "must be greater than 0"))
    elif not config.min_term_months <= scenario.term_months <= config.max_term_months:
        errors.append(
            FieldError(
                "term_months",
                f"must be between {config.min_term_months} and {config.max_term_months}",
            )
        )

    return errors


def _validate_rate_percent(scenario: LoanScenario, config: Settings) -> List[FieldError]:
    if scenario.annual_rate_percent is None:
        return [FieldError("annual_rate_percent", "is required")]
    if scenario.annual_rate_percent < 0 or scenario.annual_rate_percent > config.max_annual_rate_percent:
        return [
            FieldError(
                "annual_rate_percent",
                f"must be between 0 and {config.max_annual_rate_percent}",
            )
        ]
    return []


def validate_calculation(scenario: LoanScenario, config: Settings) -> List[FieldError]:
    """Price, down payment, term and an explicit annual rate"""
    return _validate_loan(scenario, config) + _validate_rate_percent(scenario, config)


def validate_comparison(scenario: LoanScenario, config: Settings) -> List[FieldError]:
    """Price, down payment and term; the rates come from the catalog"""
    return _validate_loan(scenario, config)


def validate_submission(scenario: LoanScenario, applicant: ApplicantInfo, config: Settings) -> List[FieldError]:
    """
    Loan scenario plus applicant snapshot.

    Either a catalog rate_id or an explicit annual_rate_percent must be given.
    """
    errors = _validate_loan(scenario, config)

    if scenario.bank_id is None:
        errors.append(FieldError("bank_id", "is required"))
    if scenario.rate_id is None:
        errors.extend(_validate_rate_percent(scenario, config))

    if not applicant.name or not applicant.name.strip():
        errors.append(FieldError("applicant.name", "is required"))
    elif len(applicant.name) > 100:
        errors.append(FieldError("applicant.name", "must be at most 100 characters"))

    if not applicant.phone or not applicant.phone.strip():
        errors.append(FieldError("applicant.phone", "is required"))
    elif len(applicant.phone) > 20:
        errors.append(FieldError("applicant.phone", "must be at most 20 characters"))

    if not applicant.email or not EMAIL_PATTERN.match(applicant.email):
        errors.append(FieldError("applicant.email", "must be a valid email address"))
    elif len(applicant.email) > 100:
        errors.append(FieldError("applicant.email", "must be at most 100 characters"))

    if applicant.monthly_income < 0:
        errors.append(FieldError("applicant.monthly_income", "must not be negative"))
    elif applicant.monthly_income > config.max_monthly_income:
        errors.append(FieldError("applicant.monthly_income", f"must not exceed {config.max_monthly_income:,.0f}"))

    if applicant.occupation is not None and len(applicant.occupation) > 100:
        errors.append(FieldError("applicant.occupation", "must be at most 100 characters"))

    return errors


def validate_application_filter(app_filter: ApplicationFilter, config: Settings) -> List[FieldError]:
    """Paging and sorting bounds for application listings"""
    errors = []

    if app_filter.page < 1:
        errors.append(FieldError("page", "must be at least 1"))
    if app_filter.page_size is not None and not 1 <= app_filter.page_size <= config.max_page_size:
        errors.append(FieldError("page_size", f"must be between 1 and {config.max_page_size}"))
    if app_filter.sort_by not in SORTABLE_FIELDS:
        errors.append(FieldError("sort_by", f"must be one of {', '.join(SORTABLE_FIELDS)}"))
    if app_filter.sort_order not in SORT_ORDERS:
        errors.append(FieldError("sort_order", f"must be one of {', '.join(SORT_ORDERS)}"))

    return errors
