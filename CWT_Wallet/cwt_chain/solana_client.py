"""
Solana RPC adapter.

Wraps solana-py's synchronous ``Client`` for the four things the wallet needs:
balances, transaction history, rent-exempt lookups and signed transfers.
Responses are reduced to plain ints and RawTransaction records at this
boundary; nothing above it touches solders types.
"""

import logging
from typing import Optional

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    TransferCheckedParams,
    create_associated_token_account,
    get_associated_token_address,
    transfer_checked,
)

from CWT_Wallet.cwt_shared import config
from CWT_Wallet.cwt_shared.errors import (
    InvalidAddressError,
    InvalidVaultFileError,
    KeyMismatchError,
    TokenAccountNotProvisionedError,
    UpstreamUnavailableError,
)
from CWT_Wallet.cwt_shared.types import RawTransaction, TokenBalance

logger = logging.getLogger(__name__)

RPC_ERRORS = (RPCException, SolanaRpcException, httpx.HTTPError)


def validate_address(address: str) -> Pubkey:
    """Parse a base58 address into a 32-byte public key or raise InvalidAddressError."""
    if not isinstance(address, str) or not address.strip():
        raise InvalidAddressError(address)
    try:
        return Pubkey.from_string(address.strip())
    except ValueError:
        raise InvalidAddressError(address) from None


def keypair_from_secret(private_key: bytearray, expected_address: str) -> Keypair:
    """Rebuild the signing keypair and check it belongs to the vault address."""
    if len(private_key) != config.PRIVATE_KEY_SIZE:
        raise InvalidVaultFileError(f"vault of {expected_address}", f"private key must be {config.PRIVATE_KEY_SIZE} bytes")
    kp = Keypair.from_bytes(bytes(private_key))
    if str(kp.pubkey()) != expected_address:
        raise KeyMismatchError(expected_address)
    return kp


class SolanaClient:
    def __init__(
        self,
        owner: str,
        rpc_url: str = config.DEFAULT_RPC_URL,
        mint: str = config.USDC_MINT,
        client: Optional[Client] = None,
    ):
        self.owner = owner
        self.owner_pubkey = validate_address(owner)
        self.mint = mint
        self.mint_pubkey = Pubkey.from_string(mint)
        self.client = client if client is not None else Client(rpc_url, timeout=config.HTTP_TIMEOUT_SECONDS)

    def _call(self, operation: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except RPC_ERRORS as e:
            logger.warning("Solana RPC %s failed: %s", operation, e)
            raise UpstreamUnavailableError(operation, e) from e

    def token_account(self, owner: Optional[Pubkey] = None) -> Pubkey:
        return get_associated_token_address(owner or self.owner_pubkey, self.mint_pubkey)

    def account_exists(self, pubkey: Pubkey) -> bool:
        resp = self._call("get account info", self.client.get_account_info, pubkey, commitment=Confirmed)
        return resp.value is not None

    # ─── Balances ───

    def get_sol_balance(self) -> int:
        resp = self._call("get SOL balance", self.client.get_balance, self.owner_pubkey, commitment=Confirmed)
        return int(resp.value)

    def token_account_rent_exempt(self) -> int:
        resp = self._call(
            "get rent exempt minimum",
            self.client.get_minimum_balance_for_rent_exemption,
            config.TOKEN_ACCOUNT_SIZE,
        )
        return int(resp.value)

    def get_usdc_balance(self) -> int:
        ata = self.token_account()
        if not self.account_exists(ata):
            raise TokenAccountNotProvisionedError(self.owner, self.token_account_rent_exempt())
        resp = self._call("get USDC balance", self.client.get_token_account_balance, ata, commitment=Confirmed)
        return int(resp.value.amount)

    def get_balance(self) -> tuple[int, int]:
        """Return (usdc_micro, sol_lamports)."""
        return self.get_usdc_balance(), self.get_sol_balance()

    # ─── History ───

    def _signatures(self, address: Pubkey, limit: int) -> list:
        resp = self._call(
            "get signatures",
            self.client.get_signatures_for_address,
            address,
            limit=limit,
            commitment=Confirmed,
        )
        return [s.signature for s in resp.value or []]

    def get_signatures(self, limit: int = config.SIGNATURE_LIMIT) -> list:
        """Owner and token account signatures, merged, first occurrence kept."""
        signatures = self._signatures(self.owner_pubkey, limit)
        ata = self.token_account()
        if self.account_exists(ata):
            signatures += self._signatures(ata, limit)
        return list(dict.fromkeys(signatures))

    def get_transactions(self, limit: int = config.SIGNATURE_LIMIT) -> list[RawTransaction]:
        transactions = []
        for sig in self.get_signatures(limit):
            resp = self._call(
                "get transaction",
                self.client.get_transaction,
                sig,
                encoding="json",
                commitment=Confirmed,
                max_supported_transaction_version=config.MAX_SUPPORTED_TX_VERSION,
            )
            if resp.value is None:
                logger.warning("Transaction %s not found, skipping", sig)
                continue
            if resp.value.transaction.meta is None:
                logger.warning("Transaction %s has no metadata, skipping", sig)
                continue
            transactions.append(to_raw_transaction(str(sig), resp.value))
        return transactions

    # ─── Transfers ───

    def _submit(self, kp: Keypair, instructions: list, operation: str) -> str:
        blockhash = self._call("get latest blockhash", self.client.get_latest_blockhash, Confirmed).value.blockhash
        message = Message.new_with_blockhash(instructions, kp.pubkey(), blockhash)
        txn = Transaction([kp], message, blockhash)

        resp = self._call(
            operation,
            self.client.send_raw_transaction,
            bytes(txn),
            opts=TxOpts(preflight_commitment=Confirmed),
        )
        return str(resp.value)

    def send_sol(self, private_key: bytearray, to: str, lamports: int) -> str:
        kp = keypair_from_secret(private_key, self.owner)
        ix = transfer(TransferParams(
            from_pubkey=kp.pubkey(),
            to_pubkey=validate_address(to),
            lamports=lamports,
        ))
        tx_id = self._submit(kp, [ix], "send SOL")
        logger.info("SOL transfer %s submitted: %d lamports to %s", tx_id, lamports, to)
        return tx_id

    def send_usdc(self, private_key: bytearray, to: str, micro: int) -> str:
        kp = keypair_from_secret(private_key, self.owner)
        dest_owner = validate_address(to)
        source = self.token_account()
        dest = self.token_account(dest_owner)

        if not self.account_exists(source):
            raise TokenAccountNotProvisionedError(self.owner, self.token_account_rent_exempt())

        instructions = []
        if not self.account_exists(dest):
            logger.info("Creating USDC token account %s for %s", dest, to)
            instructions.append(create_associated_token_account(
                payer=kp.pubkey(),
                owner=dest_owner,
                mint=self.mint_pubkey,
            ))
        instructions.append(transfer_checked(TransferCheckedParams(
            program_id=TOKEN_PROGRAM_ID,
            source=source,
            mint=self.mint_pubkey,
            dest=dest,
            owner=kp.pubkey(),
            amount=micro,
            decimals=config.USDC_DECIMALS,
        )))

        tx_id = self._submit(kp, instructions, "send USDC")
        logger.info("USDC transfer %s submitted: %d micro to %s", tx_id, micro, to)
        return tx_id


# ─── Conversion ───

def _token_balances(items) -> list[TokenBalance]:
    return [
        TokenBalance(
            account_index=b.account_index,
            mint=str(b.mint),
            owner=str(b.owner) if b.owner is not None else None,
            amount=int(b.ui_token_amount.amount),
        )
        for b in items or []
    ]


def to_raw_transaction(signature: str, value) -> RawTransaction:
    """Reduce a get_transaction result to a RawTransaction."""
    meta = value.transaction.meta
    message = value.transaction.transaction.message

    keys = [str(k) for k in message.account_keys]
    loaded = getattr(meta, "loaded_addresses", None)
    if loaded is not None:
        keys += [str(k) for k in loaded.writable or []]
        keys += [str(k) for k in loaded.readonly or []]

    return RawTransaction(
        signature=signature,
        account_keys=keys,
        pre_balances=list(meta.pre_balances),
        post_balances=list(meta.post_balances),
        pre_token_balances=_token_balances(meta.pre_token_balances),
        post_token_balances=_token_balances(meta.post_token_balances),
        fee=meta.fee,
        block_time=value.block_time,
        slot=value.slot,
        succeeded=meta.err is None,
    )
