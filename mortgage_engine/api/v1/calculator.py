"""POST /v1/mortgage/calculate and /v1/mortgage/compare - stateless calculator endpoints"""

import time
from fastapi import APIRouter, Depends, Request

from mortgage_engine.api.v1.schemas import (
    CalculateRequest,
    CalculationResponse,
    CompareRequest,
    ComparisonResponse,
    ComparisonRowSchema,
    ScheduleItemSchema,
)
from mortgage_engine.api.dependencies import get_engine, get_request_id
from mortgage_engine.infrastructure.observability.logging import log_calculation
from mortgage_engine.services.engine import MortgageEngine

router = APIRouter()


@router.post("/mortgage/calculate", response_model=CalculationResponse)
def calculate_mortgage(
    request_body: CalculateRequest,
    request: Request,
    engine: MortgageEngine = Depends(get_engine),
):
    """
    Monthly payment, totals and a schedule preview (first 12 months + last month)
    for an explicit annual rate.
    """
    start_time = time.time()
    result = engine.calculate(request_body.to_scenario())

    duration_ms = (time.time() - start_time) * 1000
    log_calculation(get_request_id(request), result.loan_amount, result.term_months, duration_ms)

    return CalculationResponse(
        property_price=float(result.property_price),
        down_payment=float(result.down_payment),
        loan_amount=float(result.loan_amount),
        annual_rate_percent=float(result.annual_rate_percent),
        term_months=result.term_months,
        term_years=result.term_years,
        ltv_percent=float(result.ltv_percent),
        monthly_payment=float(result.monthly_payment),
        total_payment=float(result.total_payment),
        total_interest=float(result.total_interest),
        payment_schedule=[ScheduleItemSchema.from_domain(item) for item in result.schedule],
    )


@router.post("/mortgage/compare", response_model=ComparisonResponse)
def compare_mortgage_rates(
    request_body: CompareRequest,
    request: Request,
    engine: MortgageEngine = Depends(get_engine),
):
    """
    Price every effective rate (optionally one rate type) for the same loan.

    The lowest total payment is flagged via lowest_rate_id; every row carries
    its extra cost versus that offer in savings_vs_lowest.
    """
    start_time = time.time()
    comparison = engine.compare_rates(request_body.to_scenario())

    duration_ms = (time.time() - start_time) * 1000
    log_calculation(
        get_request_id(request),
        comparison.loan_amount,
        comparison.term_months,
        duration_ms,
        rates_compared=len(comparison.rows),
    )

    return ComparisonResponse(
        loan_amount=float(comparison.loan_amount),
        term_months=comparison.term_months,
        rate_comparisons=[ComparisonRowSchema.from_domain(row) for row in comparison.rows],
        lowest_rate_id=comparison.lowest.rate.id if comparison.lowest is not None else None,
    )
