from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from CWT_Wallet.cwt_shared import config


@dataclass
class VaultFile:
    network:     str
    address:     str
    qr_image:    str        # base64 PNG
    salt:        bytes
    nonce:       bytes
    cipher_text: bytes


@dataclass
class WalletSecret:
    private_key: bytearray  # 64 bytes, wiped by the owning scope
    created_at:  str

    def wipe(self) -> None:
        for i in range(len(self.private_key)):
            self.private_key[i] = 0


@dataclass
class TokenBalance:
    account_index: int
    mint:          str
    owner:         Optional[str]
    amount:        int      # base units


@dataclass
class RawTransaction:
    """One transaction as returned by the chain, reduced to what the ledger needs."""
    signature:           str
    account_keys:        list[str]
    pre_balances:        list[int]
    post_balances:       list[int]
    pre_token_balances:  list[TokenBalance]
    post_token_balances: list[TokenBalance]
    fee:                 int
    block_time:          Optional[int]
    slot:                int
    succeeded:           bool


@dataclass(frozen=True)
class LedgerEntry:
    direction:    str
    tx_id:        str
    sender:       str
    recipient:    str
    amount:       str
    currency:     str
    fee_paid:     str
    timestamp:    datetime
    block_height: int
    status:       str

    @property
    def counterparty(self) -> str:
        if self.direction == config.DIRECTION_INCOMING:
            return self.sender
        return self.recipient


@dataclass
class LedgerReport:
    address:      str
    total_income: str       # USDC only
    total_spent:  str       # USDC only
    entries:      list[LedgerEntry] = field(default_factory=list)


@dataclass
class BalanceReport:
    address:      str
    usdc:         str
    sol:          str
    rate:         str
    usdc_in_fiat: str


@dataclass
class PayCooldownState:
    last_submission_time: Optional[float] = None    # time.monotonic()


@dataclass
class PayResult:
    tx_id:    str
    currency: str
    amount:   str
    to:       str
