"""Tests for application submission and the status state machine"""

import re
import pytest
from dataclasses import replace
from decimal import Decimal
from mortgage_engine.domain.amortization import monthly_payment, to_money
from mortgage_engine.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
)
from mortgage_engine.domain.models import ApplicationFilter, ApplicationStatus
from mortgage_engine.infrastructure.database.models import MortgageApplicationRecord, MortgageRateRecord
from mortgage_engine.infrastructure.database.repositories import ApplicationRepository, BankRepository
from mortgage_engine.services.engine import MortgageEngine
from mortgage_engine.services.lifecycle import can_update, can_withdraw

USER = 1001
OTHER_USER = 2002


def test_submit_snapshots_financials(mortgage_engine, scenario, applicant, db):
    application = mortgage_engine.submit(USER, scenario, applicant)
    db.commit()

    assert application.id is not None
    assert application.status == ApplicationStatus.PENDING
    assert application.loan_amount == Decimal("4800000.00")
    assert application.down_payment == Decimal("1200000.00")
    assert application.ltv == Decimal("0.8")
    assert application.interest_rate == Decimal("0.03")
    assert application.monthly_payment == to_money(monthly_payment(Decimal("4800000"), 3, 240))
    assert application.total_payment == to_money(monthly_payment(Decimal("4800000"), 3, 240) * 240)
    assert application.total_interest == application.total_payment - application.loan_amount
    assert application.applicant.name == "Chan Tai Man"
    assert application.submitted_at is not None


def test_application_number_format(mortgage_engine, scenario, applicant):
    application = mortgage_engine.submit(USER, scenario, applicant)

    assert re.fullmatch(r"MTG\d{8}\d{6}", application.application_no)


def test_submit_with_catalog_rate_copies_its_rate(mortgage_engine, catalog, scenario, applicant, db):
    chosen = replace(scenario, annual_rate_percent=None, rate_id=catalog["hsbc_fixed"])

    application = mortgage_engine.submit(USER, chosen, applicant)
    db.commit()

    assert application.rate_id == catalog["hsbc_fixed"]
    assert application.interest_rate == Decimal("0.025")
    assert application.monthly_payment == to_money(monthly_payment(Decimal("4800000"), Decimal("2.5"), 240))


def test_later_rate_change_does_not_touch_application(mortgage_engine, catalog, scenario, applicant, db):
    chosen = replace(scenario, annual_rate_percent=None, rate_id=catalog["hsbc_fixed"])
    application = mortgage_engine.submit(USER, chosen, applicant)
    db.commit()

    db.get(MortgageRateRecord, catalog["hsbc_fixed"]).interest_rate = Decimal("0.05")
    db.commit()

    reloaded = mortgage_engine.get_application(USER, application.id)
    assert reloaded.interest_rate == Decimal("0.025")
    assert reloaded.monthly_payment == application.monthly_payment


def test_submit_unknown_bank_persists_nothing(mortgage_engine, scenario, applicant, db):
    with pytest.raises(NotFoundError):
        mortgage_engine.submit(USER, replace(scenario, bank_id=9999), applicant)

    assert db.query(MortgageApplicationRecord).count() == 0


def test_submit_invalid_scenario_persists_nothing(mortgage_engine, scenario, applicant, db):
    with pytest.raises(InvalidInputError) as exc_info:
        mortgage_engine.submit(USER, replace(scenario, down_payment=Decimal("9000000")), applicant)

    assert {e.field for e in exc_info.value.errors} == {"down_payment"}
    assert db.query(MortgageApplicationRecord).count() == 0


def test_submit_rate_from_other_bank(mortgage_engine, catalog, scenario, applicant):
    chosen = replace(scenario, annual_rate_percent=None, rate_id=catalog["boc_fixed"])

    with pytest.raises(InvalidInputError):
        mortgage_engine.submit(USER, chosen, applicant)


def test_submit_expired_rate(mortgage_engine, catalog, scenario, applicant):
    chosen = replace(scenario, annual_rate_percent=None, rate_id=catalog["hsbc_expired"])

    with pytest.raises(InvalidInputError):
        mortgage_engine.submit(USER, chosen, applicant)


def test_submit_rate_outside_ltv_bound(mortgage_engine, catalog, scenario, applicant):
    """HSBC fixed caps LTV at 90%; 95% financing is refused"""
    chosen = replace(
        scenario,
        down_payment=Decimal("300000"),
        annual_rate_percent=None,
        rate_id=catalog["hsbc_fixed"],
    )

    with pytest.raises(InvalidInputError):
        mortgage_engine.submit(USER, chosen, applicant)


def test_submit_unknown_rate(mortgage_engine, scenario, applicant):
    with pytest.raises(NotFoundError):
        mortgage_engine.submit(USER, replace(scenario, annual_rate_percent=None, rate_id=9999), applicant)


def test_number_collision_is_retried(db, config, catalog, scenario, applicant):
    first = MortgageEngine(config, BankRepository(db), ApplicationRepository(db), number_factory=lambda now: "MTG-DUP")
    first.submit(USER, scenario, applicant)
    db.commit()

    numbers = iter(["MTG-DUP", "MTG-DUP", "MTG-NEW"])
    retrying = MortgageEngine(
        config, BankRepository(db), ApplicationRepository(db), number_factory=lambda now: next(numbers)
    )
    application = retrying.submit(USER, scenario, applicant)
    db.commit()

    assert application.application_no == "MTG-NEW"
    assert db.query(MortgageApplicationRecord).count() == 2


def test_number_collision_keeps_uncommitted_work(db, config, catalog, scenario, applicant):
    """Two submissions in one transaction; the second collides with the first before any commit"""
    numbers = iter(["MTG-N1", "MTG-N1", "MTG-N2"])
    engine = MortgageEngine(
        config, BankRepository(db), ApplicationRepository(db), number_factory=lambda now: next(numbers)
    )

    first = engine.submit(USER, scenario, applicant)
    second = engine.submit(USER, scenario, applicant)
    db.commit()

    assert second.application_no == "MTG-N2"
    assert engine.get_application(USER, first.id).application_no == "MTG-N1"
    assert db.query(MortgageApplicationRecord).count() == 2


def test_store_failure_other_than_duplicate_is_conflict(mortgage_engine, scenario, applicant, db):
    existing = mortgage_engine.submit(USER, scenario, applicant)
    broken = replace(
        existing,
        id=None,
        application_no="MTG-BROKEN",
        applicant=replace(existing.applicant, name=None),
    )

    with pytest.raises(ConflictError):
        ApplicationRepository(db).add(broken)

    assert mortgage_engine.get_application(USER, existing.id).status == ApplicationStatus.PENDING
    assert db.query(MortgageApplicationRecord).count() == 1


def test_rate_rounded_to_stored_scale_before_snapshot(mortgage_engine, scenario, applicant, db):
    """A rate finer than six decimals of a fraction is rounded before any figure is derived"""
    application = mortgage_engine.submit(USER, replace(scenario, annual_rate_percent=Decimal("3.1234567")), applicant)
    db.commit()

    assert application.interest_rate == Decimal("0.031235")
    assert application.monthly_payment == to_money(monthly_payment(Decimal("4800000"), Decimal("3.1235"), 240))

    schedule = mortgage_engine.application_schedule(USER, application.id)
    assert schedule[0].payment == application.monthly_payment
    assert schedule[-1].remaining_balance == Decimal("0")


def test_number_collision_exhausted_raises_conflict(db, config, catalog, scenario, applicant):
    attempts = []

    def always_taken(now):
        attempts.append(now)
        return "MTG-DUP"

    engine = MortgageEngine(config, BankRepository(db), ApplicationRepository(db), number_factory=always_taken)
    engine.submit(USER, scenario, applicant)
    db.commit()
    attempts.clear()

    with pytest.raises(ConflictError):
        engine.submit(USER, scenario, applicant)

    assert len(attempts) == config.application_no_max_retries
    assert db.query(MortgageApplicationRecord).count() == 1


def test_predicates(mortgage_engine, scenario, applicant):
    application = mortgage_engine.submit(USER, scenario, applicant)

    assert can_update(application)
    assert can_withdraw(application)

    approved = mortgage_engine.approve_application(application.id)
    assert not can_update(approved)
    assert can_withdraw(approved)

    completed = mortgage_engine.complete_application(application.id)
    assert not can_update(completed)
    assert not can_withdraw(completed)


def test_approve_then_complete(mortgage_engine, scenario, applicant):
    application = mortgage_engine.submit(USER, scenario, applicant)

    approved = mortgage_engine.approve_application(application.id, note="Valuation confirmed")
    assert approved.status == ApplicationStatus.APPROVED
    assert approved.approved_at is not None
    assert approved.approval_note == "Valuation confirmed"
    assert approved.monthly_payment == application.monthly_payment
    assert approved.total_payment == application.total_payment

    completed = mortgage_engine.complete_application(application.id)
    assert completed.status == ApplicationStatus.COMPLETED
    assert completed.completed_at is not None


def test_reject_records_reason(mortgage_engine, scenario, applicant):
    application = mortgage_engine.submit(USER, scenario, applicant)

    rejected = mortgage_engine.reject_application(application.id, "Income not verified")

    assert rejected.status == ApplicationStatus.REJECTED
    assert rejected.rejection_reason == "Income not verified"
    assert rejected.rejected_at is not None


def test_reject_requires_reason(mortgage_engine, scenario, applicant):
    application = mortgage_engine.submit(USER, scenario, applicant)

    with pytest.raises(InvalidInputError):
        mortgage_engine.reject_application(application.id, "  ")


def test_withdraw_pending_and_approved(mortgage_engine, scenario, applicant):
    pending = mortgage_engine.submit(USER, scenario, applicant)
    approved = mortgage_engine.submit(USER, scenario, applicant)
    mortgage_engine.approve_application(approved.id)

    assert mortgage_engine.withdraw_application(USER, pending.id).status == ApplicationStatus.WITHDRAWN
    withdrawn = mortgage_engine.withdraw_application(USER, approved.id)
    assert withdrawn.status == ApplicationStatus.WITHDRAWN
    assert withdrawn.withdrawn_at is not None


def test_withdraw_by_other_user_forbidden(mortgage_engine, scenario, applicant):
    application = mortgage_engine.submit(USER, scenario, applicant)

    with pytest.raises(ForbiddenError):
        mortgage_engine.withdraw_application(OTHER_USER, application.id)


def test_complete_requires_approval(mortgage_engine, scenario, applicant):
    application = mortgage_engine.submit(USER, scenario, applicant)

    with pytest.raises(InvalidTransitionError):
        mortgage_engine.complete_application(application.id)
    with pytest.raises(InvalidTransitionError):
        mortgage_engine.cancel_application(application.id)


def _drive_to(engine, application_id, status):
    if status == ApplicationStatus.REJECTED:
        engine.reject_application(application_id, "Declined")
    elif status == ApplicationStatus.WITHDRAWN:
        engine.withdraw_application(USER, application_id)
    else:
        engine.approve_application(application_id)
        if status == ApplicationStatus.COMPLETED:
            engine.complete_application(application_id)
        elif status == ApplicationStatus.CANCELLED:
            engine.cancel_application(application_id)


@pytest.mark.parametrize(
    "terminal",
    [
        ApplicationStatus.REJECTED,
        ApplicationStatus.WITHDRAWN,
        ApplicationStatus.COMPLETED,
        ApplicationStatus.CANCELLED,
    ],
)
def test_terminal_states_reject_every_transition(mortgage_engine, scenario, applicant, terminal):
    application = mortgage_engine.submit(USER, scenario, applicant)
    _drive_to(mortgage_engine, application.id, terminal)
    assert mortgage_engine.get_application(USER, application.id).status == terminal

    attempts = [
        lambda: mortgage_engine.approve_application(application.id),
        lambda: mortgage_engine.reject_application(application.id, "again"),
        lambda: mortgage_engine.withdraw_application(USER, application.id),
        lambda: mortgage_engine.complete_application(application.id),
        lambda: mortgage_engine.cancel_application(application.id),
    ]
    for attempt in attempts:
        with pytest.raises(InvalidTransitionError):
            attempt()

    assert mortgage_engine.get_application(USER, application.id).status == terminal


def test_stale_copy_loses_race(mortgage_engine, scenario, applicant):
    """Two reviewers act on the same pending application; the second one loses"""
    application = mortgage_engine.submit(USER, scenario, applicant)
    stale = mortgage_engine.get_application(USER, application.id)

    mortgage_engine.approve_application(application.id)

    with pytest.raises(InvalidTransitionError):
        mortgage_engine.lifecycle.reject(stale, "Too late")

    assert mortgage_engine.get_application(USER, application.id).status == ApplicationStatus.APPROVED


def test_get_application_ownership(mortgage_engine, scenario, applicant):
    application = mortgage_engine.submit(USER, scenario, applicant)

    assert mortgage_engine.get_application(USER, application.id).id == application.id
    with pytest.raises(ForbiddenError):
        mortgage_engine.get_application(OTHER_USER, application.id)
    with pytest.raises(NotFoundError):
        mortgage_engine.get_application(USER, 424242)


def test_list_applications_filters_and_pages(mortgage_engine, catalog, scenario, applicant):
    for _ in range(3):
        mortgage_engine.submit(USER, scenario, applicant)
    boc = mortgage_engine.submit(USER, replace(scenario, bank_id=catalog["boc"]), applicant)
    mortgage_engine.submit(OTHER_USER, scenario, applicant)
    mortgage_engine.approve_application(boc.id)

    items, total = mortgage_engine.list_applications(USER)
    assert total == 4
    assert all(app.user_id == USER for app in items)

    items, total = mortgage_engine.list_applications(USER, ApplicationFilter(bank_id=catalog["boc"]))
    assert total == 1
    assert items[0].id == boc.id

    items, total = mortgage_engine.list_applications(USER, ApplicationFilter(status=ApplicationStatus.PENDING))
    assert total == 3

    items, total = mortgage_engine.list_applications(
        USER, ApplicationFilter(sort_by="submitted_at", sort_order="asc", page=2, page_size=3)
    )
    assert total == 4
    assert [app.id for app in items] == [boc.id]


def test_list_applications_rejects_bad_filter(mortgage_engine):
    with pytest.raises(InvalidInputError):
        mortgage_engine.list_applications(USER, ApplicationFilter(page_size=1000))


def test_application_schedule_recomputed_from_snapshot(mortgage_engine, scenario, applicant):
    application = mortgage_engine.submit(USER, scenario, applicant)

    schedule = mortgage_engine.application_schedule(USER, application.id)

    assert len(schedule) == 240
    assert schedule[0].payment == application.monthly_payment
    assert schedule[-1].remaining_balance == Decimal("0")
    assert sum(item.principal for item in schedule) == application.loan_amount
