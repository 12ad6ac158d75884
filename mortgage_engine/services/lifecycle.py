"""Mortgage application lifecycle: submission snapshot and status state machine"""

import logging
import secrets
from dataclasses import replace
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from mortgage_engine.config import Settings
from mortgage_engine.domain.amortization import monthly_payment, to_money, total_cost
from mortgage_engine.domain.exceptions import (
    ApplicationNumberTakenError,
    ConflictError,
    FieldError,
    InvalidInputError,
    InvalidTransitionError,
)
from mortgage_engine.domain.models import (
    ApplicantInfo,
    ApplicationFilter,
    ApplicationStatus,
    LoanScenario,
    MortgageApplication,
    as_decimal,
)
from mortgage_engine.domain.rates import RateCatalog
from mortgage_engine.domain.validation import ensure_valid, validate_submission
from mortgage_engine.infrastructure.observability.logging import log_application_event
from mortgage_engine.infrastructure.observability.metrics import (
    application_number_collision_counter,
    record_submission,
    record_transition,
)
from mortgage_engine.utils.date_utils import compact_date, utc_now


class ApplicationStore(Protocol):
    """Persistence port for applications"""

    def add(self, application: MortgageApplication) -> MortgageApplication:
        """Insert; raises ApplicationNumberTakenError on a duplicate number"""
        ...

    def get(self, application_id: int) -> Optional[MortgageApplication]: ...

    def list_for_user(
        self, user_id: int, app_filter: ApplicationFilter, page_size: int
    ) -> Tuple[List[MortgageApplication], int]: ...

    def transition(
        self,
        application_id: int,
        from_status: ApplicationStatus,
        to_status: ApplicationStatus,
        changes: Dict[str, Any],
    ) -> Optional[MortgageApplication]:
        """Conditional update; None when the row is no longer in from_status"""
        ...


# Same scale as the stored interest_rate column
RATE_QUANTUM = Decimal("0.000001")


def _rate_fraction(value: Decimal) -> Decimal:
    return value.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)


def generate_application_no(prefix: str, now: datetime) -> str:
    """prefix + YYYYMMDD + 6 random digits, e.g. MTG20261019042517"""
    return f"{prefix}{compact_date(now)}{secrets.randbelow(1_000_000):06d}"


def can_update(application: MortgageApplication) -> bool:
    """Financial terms are frozen once review starts"""
    return application.status == ApplicationStatus.PENDING


def can_withdraw(application: MortgageApplication) -> bool:
    return application.status in (ApplicationStatus.PENDING, ApplicationStatus.APPROVED)


class ApplicationLifecycle:
    """Creates applications and moves them through the status state machine"""

    def __init__(
        self,
        catalog: RateCatalog,
        store: ApplicationStore,
        config: Settings,
        clock: Callable[[], datetime] = utc_now,
        number_factory: Optional[Callable[[datetime], str]] = None,
    ):
        self.catalog = catalog
        self.store = store
        self.config = config
        self.clock = clock
        self.number_factory = number_factory or (
            lambda now: generate_application_no(config.application_no_prefix, now)
        )

    def _resolve_rate(self, scenario: LoanScenario, now: datetime) -> Decimal:
        """Annual rate fraction to freeze on the application"""
        if scenario.rate_id is None:
            return _rate_fraction(as_decimal(scenario.annual_rate_percent) / 100)

        rate = self.catalog.get_rate(scenario.rate_id)
        if rate.bank_id != scenario.bank_id:
            raise InvalidInputError([FieldError("rate_id", "does not belong to the selected bank")])
        if not rate.is_effective(now):
            raise InvalidInputError([FieldError("rate_id", "is not currently effective")])
        if not rate.accepts(scenario.loan_amount, scenario.term_months, scenario.ltv):
            raise InvalidInputError([FieldError("rate_id", "does not accept this loan amount, term or LTV")])
        return _rate_fraction(rate.interest_rate)

    def submit(
        self,
        user_id: int,
        scenario: LoanScenario,
        applicant: ApplicantInfo,
        property_summary: Optional[str] = None,
    ) -> MortgageApplication:
        """
        Validate, snapshot and persist a new pending application.

        Everything that can fail on input runs before the first write.

        Raises:
            InvalidInputError: Malformed scenario or applicant, or unusable rate
            NotFoundError: Unknown bank or rate
            ConflictError: Every generated application number was taken
        """
        ensure_valid(validate_submission(scenario, applicant, self.config))
        self.catalog.get_bank(scenario.bank_id)

        now = self.clock()
        interest_rate = self._resolve_rate(scenario, now)

        loan_amount = scenario.loan_amount
        payment = monthly_payment(loan_amount, interest_rate * 100, scenario.term_months)
        total_payment, total_interest = total_cost(payment, scenario.term_months, loan_amount)

        draft = MortgageApplication(
            application_no="",
            user_id=user_id,
            bank_id=scenario.bank_id,
            rate_id=scenario.rate_id,
            property_id=scenario.property_id,
            property_summary=property_summary,
            property_price=to_money(scenario.property_price),
            down_payment=to_money(scenario.down_payment),
            loan_amount=to_money(loan_amount),
            ltv=scenario.ltv.quantize(Decimal("0.0001")),
            term_months=scenario.term_months,
            interest_rate=interest_rate,
            monthly_payment=to_money(payment),
            total_payment=to_money(total_payment),
            total_interest=to_money(total_interest),
            applicant=applicant,
            submitted_at=now,
        )

        for attempt in range(1, self.config.application_no_max_retries + 1):
            candidate = replace(draft, application_no=self.number_factory(now))
            try:
                application = self.store.add(candidate)
            except ApplicationNumberTakenError:
                application_number_collision_counter.inc()
                logging.warning(
                    "Application number collision",
                    extra={"application_no": candidate.application_no, "attempt": attempt},
                )
                continue

            record_submission()
            log_application_event("submitted", application)
            return application

        raise ConflictError(
            f"Could not allocate a unique application number after "
            f"{self.config.application_no_max_retries} attempts"
        )

    def _transition(
        self,
        application: MortgageApplication,
        target: ApplicationStatus,
        changes: Dict[str, Any],
    ) -> MortgageApplication:
        allowed = ApplicationStatus.valid_transitions()[application.status]
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot move application {application.application_no} from "
                f"'{application.status.value}' to '{target.value}'"
            )

        updated = self.store.transition(application.id, application.status, target, changes)
        if updated is None:
            # Someone else moved it first
            raise InvalidTransitionError(
                f"Application {application.application_no} is no longer "
                f"'{application.status.value}'; refetch and retry"
            )

        record_transition(target.value)
        log_application_event(target.value, updated)
        return updated

    def approve(self, application: MortgageApplication, note: Optional[str] = None) -> MortgageApplication:
        return self._transition(
            application,
            ApplicationStatus.APPROVED,
            {"approved_at": self.clock(), "approval_note": note},
        )

    def reject(self, application: MortgageApplication, reason: str) -> MortgageApplication:
        if not reason or not reason.strip():
            raise InvalidInputError([FieldError("reason", "is required when rejecting")])
        return self._transition(
            application,
            ApplicationStatus.REJECTED,
            {"rejected_at": self.clock(), "rejection_reason": reason},
        )

    def withdraw(self, application: MortgageApplication) -> MortgageApplication:
        if not can_withdraw(application):
            raise InvalidTransitionError(
                f"Application {application.application_no} cannot be withdrawn "
                f"while '{application.status.value}'"
            )
        return self._transition(application, ApplicationStatus.WITHDRAWN, {"withdrawn_at": self.clock()})

    def complete(self, application: MortgageApplication) -> MortgageApplication:
        return self._transition(application, ApplicationStatus.COMPLETED, {"completed_at": self.clock()})

    def cancel(self, application: MortgageApplication) -> MortgageApplication:
        return self._transition(application, ApplicationStatus.CANCELLED, {"cancelled_at": self.clock()})
