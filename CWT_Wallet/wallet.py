"""
Wallet services: generate a vault, read balances and the reconciled history.

Read-only operations only need the address from the vault envelope; the
password is touched by generate and by the payment service, nowhere else.
"""

import base64
import logging
from datetime import datetime, timezone
from io import BytesIO
from typing import Callable, Optional

import qrcode
import qrcode.constants
from qrcode.main import QRCode
from solders.keypair import Keypair

from CWT_Wallet.cwt_chain.coingecko import PriceClient, fiat_value
from CWT_Wallet.cwt_chain.solana_client import SolanaClient
from CWT_Wallet.cwt_ledger.history import LedgerQuery, build_report
from CWT_Wallet.cwt_ledger.reconciler import TransactionReconciler
from CWT_Wallet.cwt_shared import config
from CWT_Wallet.cwt_shared.amounts import format_amount
from CWT_Wallet.cwt_shared.crypto_engine import CryptoEngine
from CWT_Wallet.cwt_shared.errors import PasswordRequiredError
from CWT_Wallet.cwt_shared.types import BalanceReport, LedgerReport, WalletSecret
from CWT_Wallet.cwt_vault.vault import check_destination, read_address, save_vault

logger = logging.getLogger(__name__)

ChainFactory = Callable[[str], SolanaClient]


def render_qr_png(data: str) -> str:
    """Base64 PNG of a QR code encoding ``data``."""
    qr = QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffered = BytesIO()
    img.save(buffered, format="PNG")
    return base64.b64encode(buffered.getvalue()).decode("ascii")


def generate_wallet(path, password, engine: Optional[CryptoEngine] = None) -> str:
    """Create a keypair, encrypt it under ``password`` and write the vault. Returns the address."""
    if not password:
        raise PasswordRequiredError()
    # Refuse early, before any key material exists.
    path = check_destination(path)

    kp = Keypair()
    address = str(kp.pubkey())
    secret = WalletSecret(
        private_key=bytearray(bytes(kp)),
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    try:
        vault = (engine or CryptoEngine()).encrypt(
            secret, password,
            address=address,
            qr_image=render_qr_png(address),
        )
    finally:
        secret.wipe()

    save_vault(path, vault)
    logger.info("Generated wallet %s", address)
    return address


def get_balance(path, chain_factory: ChainFactory, price_client: PriceClient) -> BalanceReport:
    address = read_address(path)
    usdc, sol = chain_factory(address).get_balance()
    rate = price_client.get_rate()

    return BalanceReport(
        address=address,
        usdc=format_amount(usdc, config.USDC_DECIMALS),
        sol=format_amount(sol, config.SOL_DECIMALS),
        rate=str(rate),
        usdc_in_fiat=str(fiat_value(usdc, rate)),
    )


def get_transactions(path, query: LedgerQuery, chain_factory: ChainFactory) -> LedgerReport:
    # Bad filters are rejected before any RPC traffic.
    query.validate()
    address = read_address(path)

    raw = chain_factory(address).get_transactions(config.SIGNATURE_LIMIT)
    entries = TransactionReconciler(address).reconcile(raw)
    return build_report(address, entries, query)

