"""
Transaction reconciler: turns raw pre/post balance snapshots into ledger entries.

Per transaction, relative to the owner address:

    1. SOL delta    = post - pre at the owner's account index
    2. USDC delta   = sum(post) - sum(pre) of token balances owned by the owner
    3. USDC delta != 0  -> USDC entry, any SOL lost on an incoming transfer is fee
    4. otherwise        -> SOL entry, declared fee removed when owner pays it
                           (owner is the fee payer when it is account 0)
    5. nothing left after fee isolation -> no entry

Counterparties are resolved first-match in iteration order. With more than two
token participants this is not guaranteed to name the "real" counterparty.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from CWT_Wallet.cwt_shared import config
from CWT_Wallet.cwt_shared.amounts import format_amount
from CWT_Wallet.cwt_shared.types import LedgerEntry, RawTransaction

FEE_PAYER_INDEX = 0


class TransactionReconciler:
    def __init__(self, owner: str, mint: str = config.USDC_MINT):
        self.owner = owner
        self.mint = mint

    # ─── Deltas ───

    def _owner_index(self, tx: RawTransaction) -> Optional[int]:
        try:
            return tx.account_keys.index(self.owner)
        except ValueError:
            return None

    def sol_delta(self, tx: RawTransaction) -> int:
        idx = self._owner_index(tx)
        if idx is None or idx >= len(tx.pre_balances) or idx >= len(tx.post_balances):
            return 0
        return tx.post_balances[idx] - tx.pre_balances[idx]

    def token_deltas(self, tx: RawTransaction) -> dict[str, int]:
        """Signed per-holder deltas for the tracked mint, in first-seen order."""
        deltas: dict[str, int] = {}
        for bal in tx.pre_token_balances:
            if bal.mint == self.mint and bal.owner is not None:
                deltas[bal.owner] = deltas.get(bal.owner, 0) - bal.amount
        for bal in tx.post_token_balances:
            if bal.mint == self.mint and bal.owner is not None:
                deltas[bal.owner] = deltas.get(bal.owner, 0) + bal.amount
        return deltas

    # ─── Classification ───

    def classify(self, tx: RawTransaction) -> Optional[LedgerEntry]:
        sol_delta = self.sol_delta(tx)
        token_deltas = self.token_deltas(tx)
        usdc_delta = token_deltas.get(self.owner, 0)

        if usdc_delta != 0:
            return self._classify_usdc(tx, usdc_delta, sol_delta, token_deltas)
        return self._classify_sol(tx, sol_delta)

    def _classify_usdc(
        self,
        tx: RawTransaction,
        usdc_delta: int,
        sol_delta: int,
        token_deltas: dict[str, int],
    ) -> LedgerEntry:
        if usdc_delta > 0:
            direction = config.DIRECTION_INCOMING
            sender = _first(o for o, d in token_deltas.items() if d < 0 and o != self.owner)
            recipient = self.owner
        else:
            direction = config.DIRECTION_OUTGOING
            sender = self.owner
            recipient = _first(o for o, d in token_deltas.items() if d > 0 and o != self.owner)

        # Any SOL the owner lost alongside an incoming USDC transfer is fee.
        fee = "0"
        if direction == config.DIRECTION_INCOMING and sol_delta < 0:
            fee = format_amount(-sol_delta, config.SOL_DECIMALS)

        return self._entry(
            tx, direction, sender, recipient,
            format_amount(abs(usdc_delta), config.USDC_DECIMALS),
            config.CURRENCY_USDC, fee,
        )

    def _classify_sol(self, tx: RawTransaction, sol_delta: int) -> Optional[LedgerEntry]:
        if sol_delta == 0:
            return None

        is_fee_payer = self._owner_index(tx) == FEE_PAYER_INDEX
        transfer = sol_delta + tx.fee if is_fee_payer else sol_delta
        if transfer == 0:
            return None

        changes = [
            (key, tx.post_balances[i] - tx.pre_balances[i])
            for i, key in enumerate(tx.account_keys)
            if i < len(tx.pre_balances) and i < len(tx.post_balances)
        ]
        if transfer > 0:
            direction = config.DIRECTION_INCOMING
            sender = _first(k for k, d in changes if d < 0 and k != self.owner)
            recipient = self.owner
        else:
            direction = config.DIRECTION_OUTGOING
            sender = self.owner
            recipient = _first(k for k, d in changes if d > 0 and k != self.owner)

        fee = "0"
        if direction == config.DIRECTION_OUTGOING and is_fee_payer:
            fee = format_amount(tx.fee, config.SOL_DECIMALS)

        return self._entry(
            tx, direction, sender, recipient,
            format_amount(abs(transfer), config.SOL_DECIMALS),
            config.CURRENCY_SOL, fee,
        )

    def _entry(self, tx, direction, sender, recipient, amount, currency, fee) -> LedgerEntry:
        return LedgerEntry(
            direction=direction,
            tx_id=tx.signature,
            sender=sender,
            recipient=recipient,
            amount=amount,
            currency=currency,
            fee_paid=fee,
            timestamp=_block_timestamp(tx.block_time),
            block_height=tx.slot,
            status=config.STATUS_SUCCESS if tx.succeeded else config.STATUS_FAILED,
        )

    # ─── Batch ───

    def reconcile(self, transactions: Iterable[RawTransaction]) -> list[LedgerEntry]:
        """Deduplicate by signature (first wins) and classify, in input order."""
        seen: set[str] = set()
        entries: list[LedgerEntry] = []
        for tx in transactions:
            if tx.signature in seen:
                continue
            seen.add(tx.signature)

            entry = self.classify(tx)
            if entry is not None:
                entries.append(entry)
        return entries


def _first(candidates) -> str:
    return next(iter(candidates), "")


def _block_timestamp(block_time: Optional[int]) -> datetime:
    # Unconfirmed blocks carry no time yet.
    if block_time is None:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(block_time, tz=timezone.utc)
