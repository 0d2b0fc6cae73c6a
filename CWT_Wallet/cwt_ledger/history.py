"""
Ledger query: validation, filtering, ordering and USDC totals.

Filters run first, then entries are sorted newest first, then totals are summed
over what is left. Amount bounds are compared as integers at the entry
currency's scale.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from CWT_Wallet.cwt_shared import config
from CWT_Wallet.cwt_shared.amounts import compare_amounts, decimals_for, format_amount, parse_amount
from CWT_Wallet.cwt_shared.errors import InvalidAmountFormatError, InvalidQueryError
from CWT_Wallet.cwt_shared.types import LedgerEntry, LedgerReport


@dataclass
class LedgerQuery:
    direction:  Optional[str] = None
    tx_id:      Optional[str] = None
    currency:   Optional[str] = None
    start:      Optional[datetime] = None
    end:        Optional[datetime] = None
    min_amount: Optional[str] = None
    max_amount: Optional[str] = None

    def validate(self) -> None:
        if self.direction is not None and self.direction not in config.VALID_DIRECTIONS:
            raise InvalidQueryError("type must be incoming or outgoing")
        if self.currency is not None and self.currency not in config.VALID_CURRENCIES:
            raise InvalidQueryError("currency must be USDC or SOL")
        if self.start is not None and self.end is not None and self.end < self.start:
            raise InvalidQueryError("to date must be after or equal to from date")

        # Bounds are checked at the finest scale so no digit is lost.
        for label, value in (("minAmount", self.min_amount), ("maxAmount", self.max_amount)):
            if value is not None:
                try:
                    parse_amount(value, config.SOL_DECIMALS)
                except InvalidAmountFormatError as e:
                    raise InvalidQueryError(f"invalid {label}: {e}") from e

        if self.min_amount is not None and self.max_amount is not None:
            if compare_amounts(self.min_amount, self.max_amount, config.SOL_DECIMALS) == 1:
                raise InvalidQueryError("minAmount must be less than or equal to maxAmount")

    def matches(self, entry: LedgerEntry) -> bool:
        if self.direction is not None and entry.direction != self.direction:
            return False
        if self.tx_id is not None and entry.tx_id != self.tx_id:
            return False
        if self.currency is not None and entry.currency != self.currency:
            return False
        if self.start is not None and entry.timestamp < self.start:
            return False
        if self.end is not None and entry.timestamp > self.end:
            return False

        decimals = decimals_for(entry.currency)
        if self.min_amount is not None and compare_amounts(entry.amount, self.min_amount, decimals) < 0:
            return False
        if self.max_amount is not None and compare_amounts(entry.amount, self.max_amount, decimals) > 0:
            return False
        return True


def usdc_totals(entries: Iterable[LedgerEntry]) -> tuple[int, int]:
    """Return (income, spent) in USDC micro units; SOL entries are ignored."""
    income = 0
    spent = 0
    for entry in entries:
        if entry.currency != config.CURRENCY_USDC:
            continue
        amount = parse_amount(entry.amount, config.USDC_DECIMALS)
        if entry.direction == config.DIRECTION_INCOMING:
            income += amount
        elif entry.direction == config.DIRECTION_OUTGOING:
            spent += amount
    return income, spent


def build_report(address: str, entries: Iterable[LedgerEntry], query: Optional[LedgerQuery] = None) -> LedgerReport:
    query = query or LedgerQuery()
    selected = [e for e in entries if query.matches(e)]
    selected.sort(key=lambda e: e.timestamp, reverse=True)

    income, spent = usdc_totals(selected)
    return LedgerReport(
        address=address,
        total_income=format_amount(income, config.USDC_DECIMALS),
        total_spent=format_amount(spent, config.USDC_DECIMALS),
        entries=selected,
    )
