"""Domain models - pure Python dataclasses representing business entities"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional


def as_decimal(value) -> Decimal:
    """Coerce ints, floats and strings to Decimal without binary float noise"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class RateType(str, enum.Enum):
    FIXED = "fixed"
    FLOATING = "floating"
    HYBRID = "hybrid"


class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def valid_transitions(cls) -> dict["ApplicationStatus", frozenset["ApplicationStatus"]]:
        """Allowed status transitions; anything missing here is terminal."""
        return {
            cls.PENDING: frozenset({cls.APPROVED, cls.REJECTED, cls.WITHDRAWN}),
            cls.APPROVED: frozenset({cls.COMPLETED, cls.CANCELLED, cls.WITHDRAWN}),
            cls.REJECTED: frozenset(),
            cls.WITHDRAWN: frozenset(),
            cls.COMPLETED: frozenset(),
            cls.CANCELLED: frozenset(),
        }

    @property
    def is_terminal(self) -> bool:
        return not ApplicationStatus.valid_transitions()[self]


@dataclass(frozen=True)
class Bank:
    """Lender reference record, owned by the external bank catalog"""

    id: int
    name_zh_hant: str
    code: str
    is_active: bool = True
    name_zh_hans: Optional[str] = None
    name_en: Optional[str] = None
    logo: Optional[str] = None
    website: Optional[str] = None
    hotline: Optional[str] = None
    sort_order: int = 0


@dataclass(frozen=True)
class MortgageRate:
    """Time-bounded rate offer; interest_rate is an annual fraction (0.025 = 2.50%)"""

    id: int
    bank_id: int
    rate_type: RateType
    interest_rate: Decimal
    effective_date: datetime
    expiry_date: Optional[datetime] = None
    is_active: bool = True
    min_loan_amount: Optional[Decimal] = None
    max_loan_amount: Optional[Decimal] = None
    min_term_months: Optional[int] = None
    max_term_months: Optional[int] = None
    max_ltv: Optional[Decimal] = None
    processing_fee: Optional[Decimal] = None
    processing_fee_rate: Optional[Decimal] = None
    description: Optional[str] = None
    bank: Optional[Bank] = None

    @property
    def interest_rate_percent(self) -> Decimal:
        return self.interest_rate * 100

    def is_effective(self, at: datetime) -> bool:
        """Active and inside the half-open [effective_date, expiry_date) window."""
        if not self.is_active:
            return False
        if at < self.effective_date:
            return False
        if self.expiry_date is not None and at >= self.expiry_date:
            return False
        return True

    def accepts(self, loan_amount: Decimal, term_months: int, ltv: Decimal) -> bool:
        """Whether a loan falls inside this rate's optional bounds."""
        if self.min_loan_amount is not None and loan_amount < self.min_loan_amount:
            return False
        if self.max_loan_amount is not None and loan_amount > self.max_loan_amount:
            return False
        if self.min_term_months is not None and term_months < self.min_term_months:
            return False
        if self.max_term_months is not None and term_months > self.max_term_months:
            return False
        if self.max_ltv is not None and ltv > self.max_ltv:
            return False
        return True


@dataclass
class LoanScenario:
    """Loan parameters shared by calculation, comparison and submission requests"""

    property_price: Decimal
    down_payment: Decimal
    term_months: int
    annual_rate_percent: Optional[Decimal] = None
    rate_type: Optional[RateType] = None
    bank_id: Optional[int] = None
    rate_id: Optional[int] = None
    property_id: Optional[int] = None

    def __post_init__(self):
        self.property_price = as_decimal(self.property_price)
        self.down_payment = as_decimal(self.down_payment)
        if self.annual_rate_percent is not None:
            self.annual_rate_percent = as_decimal(self.annual_rate_percent)

    @property
    def loan_amount(self) -> Decimal:
        return self.property_price - self.down_payment

    @property
    def ltv(self) -> Decimal:
        if self.property_price == 0:
            return Decimal("0")
        return self.loan_amount / self.property_price


@dataclass
class ApplicantInfo:
    """Applicant details captured at submission time"""

    name: str
    phone: str
    email: str
    monthly_income: Decimal
    occupation: Optional[str] = None
    remarks: Optional[str] = None

    def __post_init__(self):
        self.monthly_income = as_decimal(self.monthly_income)


@dataclass(frozen=True)
class PaymentScheduleItem:
    """One period of an amortization schedule (derived, never stored)"""

    period: int
    payment: Decimal
    principal: Decimal
    interest: Decimal
    remaining_balance: Decimal


@dataclass
class MortgageCalculation:
    """Output of a single-rate mortgage calculation"""

    property_price: Decimal
    down_payment: Decimal
    loan_amount: Decimal
    annual_rate_percent: Decimal
    term_months: int
    ltv_percent: Decimal
    monthly_payment: Decimal
    total_payment: Decimal
    total_interest: Decimal
    schedule: List[PaymentScheduleItem] = field(default_factory=list)

    @property
    def term_years(self) -> int:
        return self.term_months // 12


@dataclass
class ComparisonRow:
    """One lender offer evaluated against a loan scenario"""

    rate: MortgageRate
    loan_amount: Decimal
    monthly_payment: Decimal
    total_payment: Decimal
    total_interest: Decimal
    processing_fee: Decimal
    total_cost: Decimal
    eligible: bool
    savings_vs_lowest: Decimal = Decimal("0")


@dataclass
class RateComparison:
    """Every comparison row plus the lowest-cost one"""

    loan_amount: Decimal
    term_months: int
    rows: List[ComparisonRow]
    lowest: Optional[ComparisonRow] = None


@dataclass
class MortgageApplication:
    """Submitted application with its frozen financial and applicant snapshot"""

    application_no: str
    user_id: int
    bank_id: int
    property_price: Decimal
    down_payment: Decimal
    loan_amount: Decimal
    ltv: Decimal
    term_months: int
    interest_rate: Decimal
    monthly_payment: Decimal
    total_payment: Decimal
    total_interest: Decimal
    applicant: ApplicantInfo
    submitted_at: datetime
    status: ApplicationStatus = ApplicationStatus.PENDING
    id: Optional[int] = None
    rate_id: Optional[int] = None
    property_id: Optional[int] = None
    property_summary: Optional[str] = None
    rejection_reason: Optional[str] = None
    approval_note: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    withdrawn_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def interest_rate_percent(self) -> Decimal:
        return self.interest_rate * 100


@dataclass
class ApplicationFilter:
    """Listing filter for a user's applications"""

    status: Optional[ApplicationStatus] = None
    bank_id: Optional[int] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1
    page_size: Optional[int] = None
