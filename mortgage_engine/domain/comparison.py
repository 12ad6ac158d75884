"""Rate comparison - ranks every effective offer for one loan scenario"""

from decimal import Decimal
from typing import List, Optional

from mortgage_engine.domain.amortization import monthly_payment, to_money, total_cost
from mortgage_engine.domain.models import ComparisonRow, LoanScenario, MortgageRate, RateComparison
from mortgage_engine.domain.rates import RateCatalog


def processing_fee(rate: MortgageRate, loan_amount: Decimal) -> Decimal:
    """Flat fee plus percentage fee on the loan amount; either may be absent"""
    fee = Decimal("0")
    if rate.processing_fee is not None:
        fee += rate.processing_fee
    if rate.processing_fee_rate is not None:
        fee += rate.processing_fee_rate * loan_amount
    return to_money(fee)


def evaluate_rate(rate: MortgageRate, scenario: LoanScenario) -> ComparisonRow:
    """Price one offer against the scenario"""
    loan_amount = scenario.loan_amount
    payment = monthly_payment(loan_amount, rate.interest_rate_percent, scenario.term_months)
    total_payment, total_interest = total_cost(payment, scenario.term_months, loan_amount)
    fee = processing_fee(rate, loan_amount)

    return ComparisonRow(
        rate=rate,
        loan_amount=to_money(loan_amount),
        monthly_payment=to_money(payment),
        total_payment=to_money(total_payment),
        total_interest=to_money(total_interest),
        processing_fee=fee,
        total_cost=to_money(total_payment + fee),
        eligible=rate.accepts(loan_amount, scenario.term_months, scenario.ltv),
    )


def find_lowest(rows: List[ComparisonRow]) -> Optional[ComparisonRow]:
    """
    Row with the smallest total payment.

    Ties go to the row seen first, i.e. catalog order.
    """
    lowest = None
    for row in rows:
        if lowest is None or row.total_payment < lowest.total_payment:
            lowest = row
    return lowest


def compare_rates(catalog: RateCatalog, scenario: LoanScenario) -> RateComparison:
    """
    Main entry point: evaluate every effective rate matching the scenario's type filter.

    Flow:
    1. Fetch effective rates (lowest interest first)
    2. Price each offer
    3. Pick the lowest total payment as the reference
    4. Fill in savings versus that reference
    """
    rates = catalog.effective_rates(rate_type=scenario.rate_type)
    rows = [evaluate_rate(rate, scenario) for rate in rates]

    lowest = find_lowest(rows)
    if lowest is not None:
        for row in rows:
            row.savings_vs_lowest = row.total_payment - lowest.total_payment

    return RateComparison(
        loan_amount=to_money(scenario.loan_amount),
        term_months=scenario.term_months,
        rows=rows,
        lowest=lowest,
    )
