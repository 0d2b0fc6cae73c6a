"""
Outgoing transfers.

Both currencies go through the same PayGuard, so only one transfer is in flight
at a time and a submitted transfer starts the cooldown for both. Within the
guard the order is: balances, decrypt, key check, submit. The private key
exists only inside ``open_secret()``.
"""

import logging
from typing import Callable, Optional

from CWT_Wallet.cwt_chain.solana_client import SolanaClient, keypair_from_secret, validate_address
from CWT_Wallet.cwt_shared import config
from CWT_Wallet.cwt_shared.amounts import format_amount, parse_amount
from CWT_Wallet.cwt_shared.crypto_engine import CryptoEngine
from CWT_Wallet.cwt_shared.errors import (
    InsufficientBalanceError,
    InvalidAmountFormatError,
    PasswordRequiredError,
)
from CWT_Wallet.cwt_shared.password import PasswordStore
from CWT_Wallet.cwt_shared.pay_guard import PayGuard
from CWT_Wallet.cwt_shared.types import PayResult
from CWT_Wallet.cwt_vault.vault import open_secret, read_address

logger = logging.getLogger(__name__)


def _positive_amount(text: str, decimals: int) -> int:
    value = parse_amount(text, decimals)
    if value == 0:
        raise InvalidAmountFormatError(text, "amount must be greater than zero")
    return value


class PaymentService:
    def __init__(
        self,
        path,
        passwords: PasswordStore,
        guard: PayGuard,
        chain_factory: Callable[[str], SolanaClient],
        cooldown_seconds: float = 0,
        engine: Optional[CryptoEngine] = None,
    ):
        self.path = path
        self.passwords = passwords
        self.guard = guard
        self.chain_factory = chain_factory
        self.cooldown_seconds = cooldown_seconds
        self.engine = engine or CryptoEngine()

    def _send(self, permit, address: str, send) -> str:
        with self.passwords.borrow() as password:
            with open_secret(self.path, password, self.engine) as secret:
                keypair_from_secret(secret.private_key, address)
                tx_id = send(secret.private_key)
                permit.mark_submitted()
        return tx_id

    def pay_usdc(self, to: str, amount: str) -> PayResult:
        validate_address(to)
        micro = _positive_amount(amount, config.USDC_DECIMALS)
        if not self.passwords.is_set:
            raise PasswordRequiredError()

        with self.guard.try_acquire(self.cooldown_seconds) as permit:
            address = read_address(self.path)
            chain = self.chain_factory(address)

            usdc = chain.get_usdc_balance()
            if usdc < micro:
                logger.warning("USDC transfer refused: balance %d < %d", usdc, micro)
                raise InsufficientBalanceError(config.CURRENCY_USDC, micro, usdc, config.USDC_DECIMALS)

            sol = chain.get_sol_balance()
            if sol < config.SOL_FEE_LAMPORTS:
                logger.warning("USDC transfer refused: %d lamports cannot cover the fee", sol)
                raise InsufficientBalanceError(
                    config.CURRENCY_SOL, config.SOL_FEE_LAMPORTS, sol, config.SOL_DECIMALS,
                    "SOL is required to pay the network fee",
                )

            tx_id = self._send(permit, address, lambda key: chain.send_usdc(key, to, micro))

        logger.info("Paid %s USDC to %s in %s", format_amount(micro, config.USDC_DECIMALS), to, tx_id)
        return PayResult(tx_id=tx_id, currency=config.CURRENCY_USDC,
                         amount=format_amount(micro, config.USDC_DECIMALS), to=to)

    def pay_sol(self, to: str, amount: str) -> PayResult:
        validate_address(to)
        lamports = _positive_amount(amount, config.SOL_DECIMALS)
        if not self.passwords.is_set:
            raise PasswordRequiredError()

        with self.guard.try_acquire(self.cooldown_seconds) as permit:
            address = read_address(self.path)
            chain = self.chain_factory(address)

            sol = chain.get_sol_balance()
            required = lamports + config.SOL_FEE_LAMPORTS
            if sol < required:
                max_sendable = max(0, sol - config.SOL_FEE_LAMPORTS)
                logger.warning("SOL transfer refused: balance %d < %d", sol, required)
                raise InsufficientBalanceError(
                    config.CURRENCY_SOL, required, sol, config.SOL_DECIMALS,
                    f"Maximum sendable amount is {format_amount(max_sendable, config.SOL_DECIMALS)} SOL",
                )

            tx_id = self._send(permit, address, lambda key: chain.send_sol(key, to, lamports))

        logger.info("Paid %s SOL to %s in %s", format_amount(lamports, config.SOL_DECIMALS), to, tx_id)
        return PayResult(tx_id=tx_id, currency=config.CURRENCY_SOL,
                         amount=format_amount(lamports, config.SOL_DECIMALS), to=to)
