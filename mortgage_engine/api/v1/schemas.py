"""Pydantic schemas for API requests and responses

Requests only carry types; business validation lives in domain/validation.py.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from mortgage_engine.config import settings

from mortgage_engine.domain.models import (
    ApplicantInfo,
    ApplicationStatus,
    Bank,
    ComparisonRow,
    LoanScenario,
    MortgageApplication,
    MortgageRate,
    PaymentScheduleItem,
    RateType,
)


def _money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


# Requests


class CalculateRequest(BaseModel):
    """Request body for POST /v1/mortgage/calculate"""

    property_price: Decimal
    down_payment: Decimal
    term_months: int = Field(default_factory=lambda: settings.default_term_months)
    annual_rate_percent: Decimal = Field(..., description="Annual rate in percent, e.g. 2.5")

    def to_scenario(self) -> LoanScenario:
        return LoanScenario(
            property_price=self.property_price,
            down_payment=self.down_payment,
            term_months=self.term_months,
            annual_rate_percent=self.annual_rate_percent,
        )


class CompareRequest(BaseModel):
    """Request body for POST /v1/mortgage/compare"""

    property_price: Decimal
    down_payment: Decimal
    term_months: int = Field(default_factory=lambda: settings.default_term_months)
    rate_type: Optional[RateType] = None

    def to_scenario(self) -> LoanScenario:
        return LoanScenario(
            property_price=self.property_price,
            down_payment=self.down_payment,
            term_months=self.term_months,
            rate_type=self.rate_type,
        )


class ApplicantSchema(BaseModel):
    """Applicant snapshot"""

    name: str
    phone: str
    email: str
    monthly_income: Decimal
    occupation: Optional[str] = None
    remarks: Optional[str] = None


class SubmitApplicationRequest(BaseModel):
    """Request body for POST /v1/mortgage/applications"""

    bank_id: int
    rate_id: Optional[int] = None
    property_id: Optional[int] = None
    property_price: Decimal
    down_payment: Decimal
    term_months: int = Field(default_factory=lambda: settings.default_term_months)
    annual_rate_percent: Optional[Decimal] = Field(None, description="Required when rate_id is omitted")
    applicant: ApplicantSchema

    def to_scenario(self) -> LoanScenario:
        return LoanScenario(
            property_price=self.property_price,
            down_payment=self.down_payment,
            term_months=self.term_months,
            annual_rate_percent=self.annual_rate_percent,
            bank_id=self.bank_id,
            rate_id=self.rate_id,
            property_id=self.property_id,
        )

    def to_applicant(self) -> ApplicantInfo:
        return ApplicantInfo(**self.applicant.model_dump())


class ApproveRequest(BaseModel):
    note: Optional[str] = None


class RejectRequest(BaseModel):
    reason: str


# Responses


class ScheduleItemSchema(BaseModel):
    """Single period in a payment schedule"""

    period: int
    payment: float
    principal: float
    interest: float
    remaining_balance: float

    @classmethod
    def from_domain(cls, item: PaymentScheduleItem) -> "ScheduleItemSchema":
        return cls(
            period=item.period,
            payment=_money(item.payment),
            principal=_money(item.principal),
            interest=_money(item.interest),
            remaining_balance=_money(item.remaining_balance),
        )


class CalculationResponse(BaseModel):
    """Response for POST /v1/mortgage/calculate"""

    property_price: float
    down_payment: float
    loan_amount: float
    annual_rate_percent: float
    term_months: int
    term_years: int
    ltv_percent: float
    monthly_payment: float
    total_payment: float
    total_interest: float
    payment_schedule: List[ScheduleItemSchema]


class BankSchema(BaseModel):
    id: int
    code: str
    name_zh_hant: str
    name_zh_hans: Optional[str] = None
    name_en: Optional[str] = None
    logo: Optional[str] = None
    website: Optional[str] = None
    hotline: Optional[str] = None

    @classmethod
    def from_domain(cls, bank: Bank) -> "BankSchema":
        return cls(
            id=bank.id,
            code=bank.code,
            name_zh_hant=bank.name_zh_hant,
            name_zh_hans=bank.name_zh_hans,
            name_en=bank.name_en,
            logo=bank.logo,
            website=bank.website,
            hotline=bank.hotline,
        )


class RateSchema(BaseModel):
    id: int
    bank_id: int
    bank: Optional[BankSchema] = None
    rate_type: RateType
    interest_rate: float
    interest_rate_percent: float
    min_loan_amount: Optional[float] = None
    max_loan_amount: Optional[float] = None
    min_term_months: Optional[int] = None
    max_term_months: Optional[int] = None
    max_ltv: Optional[float] = None
    processing_fee: Optional[float] = None
    processing_fee_rate: Optional[float] = None
    description: Optional[str] = None
    effective_date: datetime
    expiry_date: Optional[datetime] = None

    @classmethod
    def from_domain(cls, rate: MortgageRate) -> "RateSchema":
        return cls(
            id=rate.id,
            bank_id=rate.bank_id,
            bank=BankSchema.from_domain(rate.bank) if rate.bank is not None else None,
            rate_type=rate.rate_type,
            interest_rate=float(rate.interest_rate),
            interest_rate_percent=float(rate.interest_rate_percent),
            min_loan_amount=_money(rate.min_loan_amount),
            max_loan_amount=_money(rate.max_loan_amount),
            min_term_months=rate.min_term_months,
            max_term_months=rate.max_term_months,
            max_ltv=_money(rate.max_ltv),
            processing_fee=_money(rate.processing_fee),
            processing_fee_rate=_money(rate.processing_fee_rate),
            description=rate.description,
            effective_date=rate.effective_date,
            expiry_date=rate.expiry_date,
        )


class ComparisonRowSchema(BaseModel):
    rate: RateSchema
    monthly_payment: float
    total_payment: float
    total_interest: float
    processing_fee: float
    total_cost: float
    savings_vs_lowest: float
    eligible: bool

    @classmethod
    def from_domain(cls, row: ComparisonRow) -> "ComparisonRowSchema":
        return cls(
            rate=RateSchema.from_domain(row.rate),
            monthly_payment=_money(row.monthly_payment),
            total_payment=_money(row.total_payment),
            total_interest=_money(row.total_interest),
            processing_fee=_money(row.processing_fee),
            total_cost=_money(row.total_cost),
            savings_vs_lowest=_money(row.savings_vs_lowest),
            eligible=row.eligible,
        )


class ComparisonResponse(BaseModel):
    """Response for POST /v1/mortgage/compare"""

    loan_amount: float
    term_months: int
    rate_comparisons: List[ComparisonRowSchema]
    lowest_rate_id: Optional[int] = None


class ApplicantSnapshotSchema(BaseModel):
    """Applicant details as frozen on the application"""

    name: str
    phone: str
    email: str
    monthly_income: float
    occupation: Optional[str] = None
    remarks: Optional[str] = None


class ApplicationResponse(BaseModel):
    """Full application detail"""

    id: int
    application_no: str
    user_id: int
    bank_id: int
    rate_id: Optional[int] = None
    property_id: Optional[int] = None
    property_summary: Optional[str] = None
    property_price: float
    down_payment: float
    loan_amount: float
    ltv: float
    term_months: int
    interest_rate: float
    monthly_payment: float
    total_payment: float
    total_interest: float
    applicant: ApplicantSnapshotSchema
    status: ApplicationStatus
    rejection_reason: Optional[str] = None
    approval_note: Optional[str] = None
    submitted_at: datetime
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    withdrawn_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, app: MortgageApplication) -> "ApplicationResponse":
        return cls(
            id=app.id,
            application_no=app.application_no,
            user_id=app.user_id,
            bank_id=app.bank_id,
            rate_id=app.rate_id,
            property_id=app.property_id,
            property_summary=app.property_summary,
            property_price=_money(app.property_price),
            down_payment=_money(app.down_payment),
            loan_amount=_money(app.loan_amount),
            ltv=float(app.ltv),
            term_months=app.term_months,
            interest_rate=float(app.interest_rate),
            monthly_payment=_money(app.monthly_payment),
            total_payment=_money(app.total_payment),
            total_interest=_money(app.total_interest),
            applicant=ApplicantSnapshotSchema(
                name=app.applicant.name,
                phone=app.applicant.phone,
                email=app.applicant.email,
                monthly_income=_money(app.applicant.monthly_income),
                occupation=app.applicant.occupation,
                remarks=app.applicant.remarks,
            ),
            status=app.status,
            rejection_reason=app.rejection_reason,
            approval_note=app.approval_note,
            submitted_at=app.submitted_at,
            approved_at=app.approved_at,
            rejected_at=app.rejected_at,
            withdrawn_at=app.withdrawn_at,
            completed_at=app.completed_at,
            cancelled_at=app.cancelled_at,
        )


class ApplicationListResponse(BaseModel):
    """Response for GET /v1/mortgage/applications"""

    items: List[ApplicationResponse]
    total: int
    page: int
    page_size: int
