"""Mortgage engine - public surface composing calculator, catalog, comparator and lifecycle"""

from datetime import datetime
from typing import Callable, List, Optional, Tuple

from mortgage_engine.config import Settings
from mortgage_engine.domain.amortization import (
    monthly_payment,
    payment_schedule,
    schedule_preview,
    to_money,
    total_cost,
)
from mortgage_engine.domain.comparison import compare_rates
from mortgage_engine.domain.exceptions import ForbiddenError, NotFoundError
from mortgage_engine.domain.models import (
    ApplicantInfo,
    ApplicationFilter,
    Bank,
    LoanScenario,
    MortgageApplication,
    MortgageCalculation,
    MortgageRate,
    PaymentScheduleItem,
    RateComparison,
    RateType,
)
from mortgage_engine.domain.rates import BankCatalog, RateCatalog
from mortgage_engine.domain.validation import (
    ensure_valid,
    validate_application_filter,
    validate_calculation,
    validate_comparison,
)
from mortgage_engine.infrastructure.observability.metrics import record_calculation
from mortgage_engine.services.lifecycle import ApplicationLifecycle, ApplicationStore
from mortgage_engine.utils.date_utils import utc_now


class MortgageEngine:
    """Composes the components and enforces ownership; does no math of its own"""

    def __init__(
        self,
        config: Settings,
        bank_catalog: BankCatalog,
        store: ApplicationStore,
        clock: Callable[[], datetime] = utc_now,
        number_factory: Optional[Callable[[datetime], str]] = None,
    ):
        self.config = config
        self.store = store
        self.catalog = RateCatalog(bank_catalog, clock=clock)
        self.lifecycle = ApplicationLifecycle(
            self.catalog,
            store,
            config,
            clock=clock,
            number_factory=number_factory,
        )

    # Calculator

    def calculate(self, scenario: LoanScenario) -> MortgageCalculation:
        """Payment, totals and a schedule preview for an explicit rate"""
        ensure_valid(validate_calculation(scenario, self.config))

        loan_amount = scenario.loan_amount
        payment = monthly_payment(loan_amount, scenario.annual_rate_percent, scenario.term_months)
        total_payment, total_interest = total_cost(payment, scenario.term_months, loan_amount)
        schedule = payment_schedule(loan_amount, scenario.annual_rate_percent, scenario.term_months)

        record_calculation()
        return MortgageCalculation(
            property_price=to_money(scenario.property_price),
            down_payment=to_money(scenario.down_payment),
            loan_amount=to_money(loan_amount),
            annual_rate_percent=scenario.annual_rate_percent,
            term_months=scenario.term_months,
            ltv_percent=to_money(scenario.ltv * 100),
            monthly_payment=to_money(payment),
            total_payment=to_money(total_payment),
            total_interest=to_money(total_interest),
            schedule=schedule_preview(schedule, self.config.schedule_preview_months),
        )

    # Rates

    def list_banks(self) -> List[Bank]:
        return self.catalog.list_banks()

    def list_effective_rates(self, rate_type: Optional[RateType] = None) -> List[MortgageRate]:
        return self.catalog.effective_rates(rate_type=rate_type)

    def rates_for_bank(self, bank_id: int) -> List[MortgageRate]:
        return self.catalog.rates_for_bank(bank_id)

    def compare_rates(self, scenario: LoanScenario) -> RateComparison:
        ensure_valid(validate_comparison(scenario, self.config))
        comparison = compare_rates(self.catalog, scenario)
        record_calculation(rates_compared=len(comparison.rows))
        return comparison

    # Applications

    def submit(
        self,
        user_id: int,
        scenario: LoanScenario,
        applicant: ApplicantInfo,
        property_summary: Optional[str] = None,
    ) -> MortgageApplication:
        return self.lifecycle.submit(user_id, scenario, applicant, property_summary=property_summary)

    def list_applications(
        self, user_id: int, app_filter: Optional[ApplicationFilter] = None
    ) -> Tuple[List[MortgageApplication], int]:
        """One page of the user's applications plus the total match count"""
        app_filter = app_filter or ApplicationFilter()
        ensure_valid(validate_application_filter(app_filter, self.config))
        page_size = app_filter.page_size or self.config.default_page_size
        return self.store.list_for_user(user_id, app_filter, page_size)

    def _load(self, application_id: int) -> MortgageApplication:
        application = self.store.get(application_id)
        if application is None:
            raise NotFoundError(f"Mortgage application {application_id} not found")
        return application

    def get_application(self, user_id: int, application_id: int) -> MortgageApplication:
        """
        Raises:
            NotFoundError: Unknown application
            ForbiddenError: Application belongs to another user
        """
        application = self._load(application_id)
        if application.user_id != user_id:
            raise ForbiddenError(f"Mortgage application {application_id} belongs to another user")
        return application

    def application_schedule(self, user_id: int, application_id: int) -> List[PaymentScheduleItem]:
        """Full schedule recomputed from the stored snapshot"""
        application = self.get_application(user_id, application_id)
        return list(
            payment_schedule(
                application.loan_amount,
                application.interest_rate_percent,
                application.term_months,
            )
        )

    def withdraw_application(self, user_id: int, application_id: int) -> MortgageApplication:
        return self.lifecycle.withdraw(self.get_application(user_id, application_id))

    # Reviewer actions

    def approve_application(self, application_id: int, note: Optional[str] = None) -> MortgageApplication:
        return self.lifecycle.approve(self._load(application_id), note=note)

    def reject_application(self, application_id: int, reason: str) -> MortgageApplication:
        return self.lifecycle.reject(self._load(application_id), reason)

    def complete_application(self, application_id: int) -> MortgageApplication:
        return self.lifecycle.complete(self._load(application_id))

    def cancel_application(self, application_id: int) -> MortgageApplication:
        return self.lifecycle.cancel(self._load(application_id))
