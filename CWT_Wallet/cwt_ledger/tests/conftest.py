import pytest

from CWT_Wallet.cwt_shared import config
from CWT_Wallet.cwt_shared.types import RawTransaction, TokenBalance


@pytest.fixture
def make_tx():
    """Build a RawTransaction from {address: (pre, post)} lamport and token maps.

    Accounts are indexed in insertion order of ``sol``; the first is the fee payer.
    """
    def _make(signature, sol, tokens=None, fee=5_000, block_time=1_700_000_000,
              slot=250_000_000, succeeded=True, mint=config.USDC_MINT):
        keys = list(sol)
        pre_tokens, post_tokens = [], []
        for i, (owner, (pre, post)) in enumerate((tokens or {}).items()):
            index = len(keys) + i
            if pre is not None:
                pre_tokens.append(TokenBalance(index, mint, owner, pre))
            if post is not None:
                post_tokens.append(TokenBalance(index, mint, owner, post))
        return RawTransaction(
            signature=signature,
            account_keys=keys,
            pre_balances=[pre for pre, _ in sol.values()],
            post_balances=[post for _, post in sol.values()],
            pre_token_balances=pre_tokens,
            post_token_balances=post_tokens,
            fee=fee,
            block_time=block_time,
            slot=slot,
            succeeded=succeeded,
        )
    return _make
