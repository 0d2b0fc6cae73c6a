"""
Lossless conversion between decimal strings and integer base units.

Amounts never pass through float: the decimal point is inserted or removed by
string manipulation and all arithmetic happens on ints.

    format_amount(24981836, 9)        -> "0.024981836"
    parse_amount("0.024981836", 9)    -> 24981836
    parse_amount("10.50", 6)          -> 10500000
"""

import re

from CWT_Wallet.cwt_shared import config
from CWT_Wallet.cwt_shared.errors import InvalidAmountFormatError

_DIGITS = re.compile(r"[0-9]*")


def format_amount(value: int, decimals: int) -> str:
    """Render ``value`` base units with exactly ``decimals`` fractional digits."""
    if value < 0:
        raise ValueError(f"amount must be non-negative, got {value}")
    s = str(value)
    if decimals == 0:
        return s

    s = s.rjust(decimals + 1, "0")
    pos = len(s) - decimals
    return s[:pos] + "." + s[pos:]


def parse_amount(text: str, decimals: int) -> int:
    """Parse a decimal string into base units.

    Fractional digits beyond ``decimals`` are truncated, never rounded.
    """
    s = text.strip() if isinstance(text, str) else ""
    if not s:
        raise InvalidAmountFormatError(text, "empty string")

    parts = s.split(".")
    if len(parts) > 2:
        raise InvalidAmountFormatError(text, "invalid decimal format")

    whole = parts[0]
    frac = parts[1] if len(parts) == 2 else ""
    if not _DIGITS.fullmatch(whole) or not _DIGITS.fullmatch(frac):
        raise InvalidAmountFormatError(text, "non-digit characters")
    if not whole and not frac:
        raise InvalidAmountFormatError(text, "no digits")

    frac = frac[:decimals].ljust(decimals, "0")
    combined = (whole + frac).lstrip("0")
    if len(combined) > len(str(config.MAX_U64)):
        raise InvalidAmountFormatError(text, "value out of range")
    value = int(combined) if combined else 0

    if value > config.MAX_U64:
        raise InvalidAmountFormatError(text, "value out of range")
    return value


def compare_amounts(a: str, b: str, decimals: int) -> int:
    """Return -1, 0 or 1 comparing two decimal strings as integers."""
    a_val = parse_amount(a, decimals)
    b_val = parse_amount(b, decimals)
    if a_val < b_val:
        return -1
    if a_val > b_val:
        return 1
    return 0


def decimals_for(currency: str) -> int:
    try:
        return config.CURRENCY_DECIMALS[currency]
    except KeyError:
        raise ValueError(f"Unknown currency {currency}") from None


# ─── Per-currency helpers ───

def lamports_to_sol(lamports: int) -> str:
    return format_amount(lamports, config.SOL_DECIMALS)


def sol_to_lamports(sol: str) -> int:
    return parse_amount(sol, config.SOL_DECIMALS)


def micro_to_usdc(micro: int) -> str:
    return format_amount(micro, config.USDC_DECIMALS)


def usdc_to_micro(usdc: str) -> int:
    return parse_amount(usdc, config.USDC_DECIMALS)
