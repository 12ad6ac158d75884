"""Amortization math for fixed-payment mortgages - pure functions, no I/O"""

from collections import deque
from decimal import Decimal, ROUND_HALF_UP
from itertools import islice
from typing import Iterator, List, Tuple

from mortgage_engine.domain.exceptions import FieldError, InvalidInputError
from mortgage_engine.domain.models import PaymentScheduleItem, as_decimal

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Round half-up to whole cents"""
    return as_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def monthly_rate(annual_rate_percent) -> Decimal:
    """Annual percentage (e.g. 3.0) to periodic monthly rate (0.0025)"""
    return as_decimal(annual_rate_percent) / 100 / 12


def _check_loan(principal: Decimal, term_months: int) -> None:
    errors = []
    if term_months <= 0:
        errors.append(FieldError("term_months", "must be greater than 0"))
    if principal < 0:
        errors.append(FieldError("principal", "must not be negative"))
    if errors:
        raise InvalidInputError(errors)


def monthly_payment(principal, annual_rate_percent, term_months: int) -> Decimal:
    """
    Fixed monthly payment for an amortized loan (PMT formula).

    PMT = P * [r(1+r)^n] / [(1+r)^n - 1], with r the monthly rate and n the
    number of months. A zero rate degenerates to P / n.

    The result is unrounded; round with to_money() for display.

    Raises:
        InvalidInputError: term_months <= 0 or principal < 0
    """
    principal = as_decimal(principal)
    _check_loan(principal, term_months)

    rate = monthly_rate(annual_rate_percent)
    if rate == 0:
        return principal / term_months

    growth = (1 + rate) ** term_months
    return principal * (rate * growth) / (growth - 1)


def total_cost(payment, term_months: int, principal) -> Tuple[Decimal, Decimal]:
    """Return (total_payment, total_interest) over the life of the loan"""
    total_payment = as_decimal(payment) * term_months
    total_interest = total_payment - as_decimal(principal)
    return total_payment, total_interest


class PaymentSchedule:
    """
    Lazy, restartable amortization schedule.

    Every iteration recomputes the periods from scratch, so the schedule can be
    walked any number of times. Amounts are kept in whole cents; the final
    period absorbs the accumulated rounding so the balance closes at exactly 0.

    Example:
        1,000.00 over 3 months at 0% -> 333.33, 333.33, 333.34
    """

    def __init__(self, principal, annual_rate_percent, term_months: int):
        principal = as_decimal(principal)
        _check_loan(principal, term_months)

        self.principal = to_money(principal)
        self.term_months = term_months
        self.rate = monthly_rate(annual_rate_percent)
        self.payment = to_money(monthly_payment(principal, annual_rate_percent, term_months))

    def __len__(self) -> int:
        return self.term_months

    def __iter__(self) -> Iterator[PaymentScheduleItem]:
        balance = self.principal
        for period in range(1, self.term_months + 1):
            interest = to_money(balance * self.rate)

            if period == self.term_months:
                # Last period settles whatever is left
                principal = balance
            else:
                principal = min(self.payment - interest, balance)

            balance -= principal
            yield PaymentScheduleItem(
                period=period,
                payment=principal + interest,
                principal=principal,
                interest=interest,
                remaining_balance=balance,
            )


def payment_schedule(principal, annual_rate_percent, term_months: int) -> PaymentSchedule:
    """Build the full schedule for a loan (evaluated lazily on iteration)"""
    return PaymentSchedule(principal, annual_rate_percent, term_months)


def schedule_preview(schedule: PaymentSchedule, head: int = 12) -> List[PaymentScheduleItem]:
    """First `head` periods plus the final one, for compact display"""
    preview = list(islice(schedule, head))
    if len(schedule) > head:
        preview.append(deque(schedule, maxlen=1)[0])
    return preview
