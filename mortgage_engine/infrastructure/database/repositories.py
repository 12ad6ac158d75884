"""Data access layer for banks, rates and mortgage applications"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session, joinedload
from mortgage_engine.infrastructure.database.models import (
    BankRecord,
    MortgageApplicationRecord,
    MortgageRateRecord,
)
from mortgage_engine.domain.exceptions import ApplicationNumberTakenError, ConflictError, InvalidInputError
from mortgage_engine.domain.models import (
    ApplicantInfo,
    ApplicationFilter,
    ApplicationStatus,
    Bank,
    MortgageApplication,
    MortgageRate,
    RateType,
)
from mortgage_engine.utils.date_utils import ensure_utc


def _bank_to_domain(record: BankRecord) -> Bank:
    return Bank(
        id=record.id,
        name_zh_hant=record.name_zh_hant,
        name_zh_hans=record.name_zh_hans,
        name_en=record.name_en,
        code=record.code,
        logo=record.logo,
        website=record.website,
        hotline=record.hotline,
        is_active=record.is_active,
        sort_order=record.sort_order,
    )


def _rate_to_domain(record: MortgageRateRecord) -> MortgageRate:
    return MortgageRate(
        id=record.id,
        bank_id=record.bank_id,
        rate_type=RateType(record.rate_type),
        interest_rate=Decimal(record.interest_rate),
        min_loan_amount=record.min_loan_amount,
        max_loan_amount=record.max_loan_amount,
        min_term_months=record.min_term_months,
        max_term_months=record.max_term_months,
        max_ltv=record.max_ltv,
        processing_fee=record.processing_fee,
        processing_fee_rate=record.processing_fee_rate,
        description=record.description,
        effective_date=ensure_utc(record.effective_date),
        expiry_date=ensure_utc(record.expiry_date),
        is_active=record.is_active,
        bank=_bank_to_domain(record.bank) if record.bank is not None else None,
    )


def _application_to_domain(record: MortgageApplicationRecord) -> MortgageApplication:
    return MortgageApplication(
        id=record.id,
        application_no=record.application_no,
        user_id=record.user_id,
        property_id=record.property_id,
        property_summary=record.property_summary,
        bank_id=record.bank_id,
        rate_id=record.rate_id,
        property_price=record.property_price,
        down_payment=record.down_payment,
        loan_amount=record.loan_amount,
        ltv=record.ltv,
        term_months=record.term_months,
        interest_rate=record.interest_rate,
        monthly_payment=record.monthly_payment,
        total_payment=record.total_payment,
        total_interest=record.total_interest,
        applicant=ApplicantInfo(
            name=record.applicant_name,
            phone=record.applicant_phone,
            email=record.applicant_email,
            monthly_income=record.applicant_income,
            occupation=record.applicant_occupation,
            remarks=record.remarks,
        ),
        status=ApplicationStatus(record.status),
        rejection_reason=record.rejection_reason,
        approval_note=record.approval_note,
        submitted_at=ensure_utc(record.submitted_at),
        approved_at=ensure_utc(record.approved_at),
        rejected_at=ensure_utc(record.rejected_at),
        withdrawn_at=ensure_utc(record.withdrawn_at),
        completed_at=ensure_utc(record.completed_at),
        cancelled_at=ensure_utc(record.cancelled_at),
        created_at=ensure_utc(record.created_at),
        updated_at=ensure_utc(record.updated_at),
    )


class BankRepository:
    """Read-only repository over the bank and rate catalog"""

    def __init__(self, db: Session):
        self.db = db

    def get_bank(self, bank_id: int) -> Optional[Bank]:
        record = self.db.get(BankRecord, bank_id)
        return _bank_to_domain(record) if record is not None else None

    def list_banks(self) -> List[Bank]:
        records = (
            self.db.query(BankRecord)
            .order_by(BankRecord.sort_order.asc(), BankRecord.name_zh_hant.asc())
            .all()
        )
        return [_bank_to_domain(r) for r in records]

    def list_rates(self, bank_id: Optional[int] = None) -> List[MortgageRate]:
        """Full rate history (inactive and expired included), in catalog order"""
        query = self.db.query(MortgageRateRecord).options(joinedload(MortgageRateRecord.bank))
        if bank_id is not None:
            query = query.filter(MortgageRateRecord.bank_id == bank_id)
        return [_rate_to_domain(r) for r in query.order_by(MortgageRateRecord.id.asc()).all()]

    def get_rate(self, rate_id: int) -> Optional[MortgageRate]:
        record = self.db.get(MortgageRateRecord, rate_id)
        return _rate_to_domain(record) if record is not None else None


class ApplicationRepository:
    """Repository for mortgage applications"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, application: MortgageApplication) -> MortgageApplication:
        """Persist a new application; the unique constraint guards application_no"""
        applicant = application.applicant
        record = MortgageApplicationRecord(
            application_no=application.application_no,
            user_id=application.user_id,
            property_id=application.property_id,
            property_summary=application.property_summary,
            bank_id=application.bank_id,
            rate_id=application.rate_id,
            property_price=application.property_price,
            down_payment=application.down_payment,
            loan_amount=application.loan_amount,
            ltv=application.ltv,
            term_months=application.term_months,
            interest_rate=application.interest_rate,
            monthly_payment=application.monthly_payment,
            total_payment=application.total_payment,
            total_interest=application.total_interest,
            applicant_name=applicant.name,
            applicant_phone=applicant.phone,
            applicant_email=applicant.email,
            applicant_income=applicant.monthly_income,
            applicant_occupation=applicant.occupation,
            remarks=applicant.remarks,
            status=application.status.value,
            submitted_at=application.submitted_at,
        )
        try:
            # Savepoint: a rejected insert leaves the rest of the transaction intact
            with self.db.begin_nested():
                self.db.add(record)
        except IntegrityError as e:
            if self.get_by_number(application.application_no) is not None:
                raise ApplicationNumberTakenError(application.application_no) from e
            raise ConflictError(f"Application could not be stored: {e.orig}") from e
        except DataError as e:
            raise InvalidInputError(f"Application values out of storable range: {e.orig}") from e

        self.db.refresh(record)
        return _application_to_domain(record)

    def get(self, application_id: int) -> Optional[MortgageApplication]:
        record = self.db.get(MortgageApplicationRecord, application_id)
        return _application_to_domain(record) if record is not None else None

    def get_by_number(self, application_no: str) -> Optional[MortgageApplication]:
        record = (
            self.db.query(MortgageApplicationRecord)
            .filter(MortgageApplicationRecord.application_no == application_no)
            .first()
        )
        return _application_to_domain(record) if record is not None else None

    def list_for_user(
        self,
        user_id: int,
        app_filter: ApplicationFilter,
        page_size: int,
    ) -> Tuple[List[MortgageApplication], int]:
        """Filtered, sorted page of a user's applications plus the total count"""
        query = self.db.query(MortgageApplicationRecord).filter(MortgageApplicationRecord.user_id == user_id)

        if app_filter.status is not None:
            query = query.filter(MortgageApplicationRecord.status == app_filter.status.value)
        if app_filter.bank_id is not None:
            query = query.filter(MortgageApplicationRecord.bank_id == app_filter.bank_id)

        total = query.count()

        sort_column = getattr(MortgageApplicationRecord, app_filter.sort_by)
        if app_filter.sort_order == "asc":
            query = query.order_by(sort_column.asc(), MortgageApplicationRecord.id.asc())
        else:
            query = query.order_by(sort_column.desc(), MortgageApplicationRecord.id.desc())

        records = query.offset((app_filter.page - 1) * page_size).limit(page_size).all()
        return [_application_to_domain(r) for r in records], total

    def transition(
        self,
        application_id: int,
        from_status: ApplicationStatus,
        to_status: ApplicationStatus,
        changes: Dict[str, Any],
    ) -> Optional[MortgageApplication]:
        """
        Compare-and-set status change in a single UPDATE.

        Returns None when the row was not in from_status anymore.
        """
        updated = (
            self.db.query(MortgageApplicationRecord)
            .filter(
                MortgageApplicationRecord.id == application_id,
                MortgageApplicationRecord.status == from_status.value,
            )
            .update({"status": to_status.value, **changes}, synchronize_session=False)
        )
        if updated == 0:
            return None

        record = self.db.get(MortgageApplicationRecord, application_id, populate_existing=True)
        return _application_to_domain(record)
