"""SQLAlchemy ORM models for banks, rates and mortgage applications"""

from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey, Numeric, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class BankRecord(Base):
    """Bank reference data (maintained by the catalog service)"""

    __tablename__ = "banks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name_zh_hant = Column(String(100), nullable=False)
    name_zh_hans = Column(String(100), nullable=True)
    name_en = Column(String(100), nullable=True)
    code = Column(String(20), nullable=False, unique=True)
    logo = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)
    hotline = Column(String(50), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    rates = relationship("MortgageRateRecord", back_populates="bank")


class MortgageRateRecord(Base):
    """Rate offer; rows are deactivated or superseded, never deleted"""

    __tablename__ = "mortgage_rates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bank_id = Column(Integer, ForeignKey("banks.id"), nullable=False, index=True)
    rate_type = Column(String(20), nullable=False, index=True)
    interest_rate = Column(Numeric(9, 6), nullable=False)  # annual fraction, 0.025000 = 2.50%
    min_loan_amount = Column(Numeric(15, 2), nullable=True)
    max_loan_amount = Column(Numeric(15, 2), nullable=True)
    min_term_months = Column(Integer, nullable=True)
    max_term_months = Column(Integer, nullable=True)
    max_ltv = Column(Numeric(5, 4), nullable=True)
    processing_fee = Column(Numeric(10, 2), nullable=True)
    processing_fee_rate = Column(Numeric(5, 4), nullable=True)
    description = Column(Text, nullable=True)
    effective_date = Column(DateTime(timezone=True), nullable=False, index=True)
    expiry_date = Column(DateTime(timezone=True), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    bank = relationship("BankRecord", back_populates="rates")


class MortgageApplicationRecord(Base):
    """Submitted application with its frozen snapshot"""

    __tablename__ = "mortgage_applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_no = Column(String(50), nullable=False, unique=True)
    user_id = Column(Integer, nullable=False, index=True)
    property_id = Column(Integer, nullable=True, index=True)
    property_summary = Column(Text, nullable=True)
    bank_id = Column(Integer, ForeignKey("banks.id"), nullable=False, index=True)
    rate_id = Column(Integer, ForeignKey("mortgage_rates.id"), nullable=True)

    property_price = Column(Numeric(15, 2), nullable=False)
    down_payment = Column(Numeric(15, 2), nullable=False)
    loan_amount = Column(Numeric(15, 2), nullable=False)
    ltv = Column(Numeric(5, 4), nullable=False)
    term_months = Column(Integer, nullable=False)
    interest_rate = Column(Numeric(9, 6), nullable=False)
    monthly_payment = Column(Numeric(12, 2), nullable=False)
    total_payment = Column(Numeric(15, 2), nullable=False)
    total_interest = Column(Numeric(15, 2), nullable=False)

    applicant_name = Column(String(100), nullable=False)
    applicant_phone = Column(String(20), nullable=False)
    applicant_email = Column(String(100), nullable=False)
    applicant_income = Column(Numeric(12, 2), nullable=False)
    applicant_occupation = Column(String(100), nullable=True)
    remarks = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default="pending", index=True)
    rejection_reason = Column(Text, nullable=True)
    approval_note = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False, index=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    withdrawn_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    bank = relationship("BankRecord")
