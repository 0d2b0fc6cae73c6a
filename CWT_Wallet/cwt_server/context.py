"""
Composition root for the HTTP server.

Owns the process-wide pieces every request shares: the wallet path, the
password entered at startup, the cooldown state with its guard, and the
factories for the chain and price clients.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from CWT_Wallet.cwt_chain.coingecko import PriceClient
from CWT_Wallet.cwt_chain.solana_client import SolanaClient
from CWT_Wallet.cwt_server import config
from CWT_Wallet.cwt_shared.password import PasswordStore
from CWT_Wallet.cwt_shared.pay_guard import PayGuard
from CWT_Wallet.cwt_shared.types import PayCooldownState
from CWT_Wallet.payments import PaymentService


@dataclass
class WalletContext:
    wallet_path:      str
    passwords:        PasswordStore
    chain_factory:    Callable[[str], SolanaClient]
    price_client:     PriceClient
    cooldown_seconds: float = 0
    state:            PayCooldownState = field(default_factory=PayCooldownState)
    guard:            Optional[PayGuard] = None

    def __post_init__(self):
        if self.guard is None:
            self.guard = PayGuard(self.state)
        self.payments = PaymentService(
            self.wallet_path,
            self.passwords,
            self.guard,
            self.chain_factory,
            cooldown_seconds=self.cooldown_seconds,
        )


def from_environment(passwords: PasswordStore) -> WalletContext:
    if not config.SOLANA_FILE_PATH:
        raise RuntimeError("SOLANA_FILE_PATH is not set")

    def chain_factory(address: str) -> SolanaClient:
        return SolanaClient(address, rpc_url=config.SOLANA_RPC_URL)

    return WalletContext(
        wallet_path=config.SOLANA_FILE_PATH,
        passwords=passwords,
        chain_factory=chain_factory,
        price_client=PriceClient(),
        cooldown_seconds=config.PAY_COOLDOWN_MINUTES * 60,
    )
