"""Rate catalog - effective-rate lookup over the external bank catalog"""

from datetime import datetime
from typing import Callable, List, Optional, Protocol

from mortgage_engine.domain.exceptions import NotFoundError
from mortgage_engine.domain.models import Bank, MortgageRate, RateType
from mortgage_engine.utils.date_utils import utc_now


class BankCatalog(Protocol):
    """Read-only source of banks and their rate history"""

    def get_bank(self, bank_id: int) -> Optional[Bank]: ...

    def list_banks(self) -> List[Bank]: ...

    def list_rates(self, bank_id: Optional[int] = None) -> List[MortgageRate]: ...

    def get_rate(self, rate_id: int) -> Optional[MortgageRate]: ...


def _by_interest_rate(rates: List[MortgageRate]) -> List[MortgageRate]:
    # sorted() is stable: equal rates keep catalog order
    return sorted(rates, key=lambda r: r.interest_rate)


class RateCatalog:
    """Answers which rates are usable now; never mutates the catalog"""

    def __init__(self, catalog: BankCatalog, clock: Callable[[], datetime] = utc_now):
        self.catalog = catalog
        self.clock = clock

    def get_bank(self, bank_id: int) -> Bank:
        bank = self.catalog.get_bank(bank_id)
        if bank is None:
            raise NotFoundError(f"Bank {bank_id} not found")
        return bank

    def list_banks(self) -> List[Bank]:
        """Active banks by sort order, then name"""
        banks = [b for b in self.catalog.list_banks() if b.is_active]
        return sorted(banks, key=lambda b: (b.sort_order, b.name_zh_hant))

    def get_rate(self, rate_id: int) -> MortgageRate:
        rate = self.catalog.get_rate(rate_id)
        if rate is None:
            raise NotFoundError(f"Mortgage rate {rate_id} not found")
        return rate

    def effective_rates(
        self,
        rate_type: Optional[RateType] = None,
        at: Optional[datetime] = None,
    ) -> List[MortgageRate]:
        """
        Rates that are active and inside their effective window.

        Ordered by ascending interest rate, lowest first; ties keep catalog order.
        """
        at = at or self.clock()
        rates = [
            rate
            for rate in self.catalog.list_rates()
            if rate.is_effective(at) and (rate_type is None or rate.rate_type == rate_type)
        ]
        return _by_interest_rate(rates)

    def rates_for_bank(self, bank_id: int) -> List[MortgageRate]:
        """
        All active rates for one bank, regardless of effective window.

        Raises:
            NotFoundError: Unknown bank
        """
        self.get_bank(bank_id)
        rates = [rate for rate in self.catalog.list_rates(bank_id=bank_id) if rate.is_active]
        return _by_interest_rate(rates)
