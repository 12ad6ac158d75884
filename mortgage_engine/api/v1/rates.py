"""GET /v1/mortgage/rates and bank listings"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from mortgage_engine.api.v1.schemas import BankSchema, RateSchema
from mortgage_engine.api.dependencies import get_engine
from mortgage_engine.domain.models import RateType
from mortgage_engine.services.engine import MortgageEngine

router = APIRouter()


@router.get("/mortgage/rates", response_model=List[RateSchema])
def list_effective_rates(
    rate_type: Optional[RateType] = Query(None, description="fixed | floating | hybrid"),
    engine: MortgageEngine = Depends(get_engine),
):
    """Rates usable right now, lowest interest first"""
    return [RateSchema.from_domain(rate) for rate in engine.list_effective_rates(rate_type)]


@router.get("/mortgage/banks", response_model=List[BankSchema])
def list_banks(engine: MortgageEngine = Depends(get_engine)):
    return [BankSchema.from_domain(bank) for bank in engine.list_banks()]


@router.get("/mortgage/banks/{bank_id}/rates", response_model=List[RateSchema])
def list_bank_rates(bank_id: int, engine: MortgageEngine = Depends(get_engine)):
    """All active rates of one bank, including ones not yet effective or already expired"""
    return [RateSchema.from_domain(rate) for rate in engine.rates_for_bank(bank_id)]
