"""Tests for SolanaClient against an in-memory RPC double."""

from types import SimpleNamespace

import pytest
from solana.rpc.core import RPCException
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from CWT_Wallet.conftest import OTHER, OWNER, OWNER_KEYPAIR, PEER, PEER_KEYPAIR
from CWT_Wallet.cwt_chain.solana_client import (
    SolanaClient,
    keypair_from_secret,
    to_raw_transaction,
    validate_address,
)
from CWT_Wallet.cwt_shared import config
from CWT_Wallet.cwt_shared.errors import (
    InvalidAddressError,
    InvalidVaultFileError,
    KeyMismatchError,
    TokenAccountNotProvisionedError,
    UpstreamUnavailableError,
)

RENT_EXEMPT = 2_039_280


def _resp(value):
    return SimpleNamespace(value=value)


class FakeRpc:
    def __init__(self):
        self.existing = set()
        self.lamports = 1_000_000_000
        self.token_amount = "1500000"
        self.signatures = {}
        self.transactions = {}
        self.sent = []
        self.fail = None

    def _maybe_fail(self):
        if self.fail:
            raise RPCException(self.fail)

    def get_account_info(self, pubkey, commitment=None):
        self._maybe_fail()
        return _resp(SimpleNamespace() if pubkey in self.existing else None)

    def get_balance(self, pubkey, commitment=None):
        self._maybe_fail()
        return _resp(self.lamports)

    def get_minimum_balance_for_rent_exemption(self, size, commitment=None):
        assert size == config.TOKEN_ACCOUNT_SIZE
        return _resp(RENT_EXEMPT)

    def get_token_account_balance(self, pubkey, commitment=None):
        return _resp(SimpleNamespace(amount=self.token_amount))

    def get_signatures_for_address(self, address, limit=None, commitment=None):
        self._maybe_fail()
        names = self.signatures.get(address, [])
        return _resp([SimpleNamespace(signature=s) for s in names[:limit]])

    def get_transaction(self, sig, encoding=None, commitment=None, max_supported_transaction_version=None):
        assert max_supported_transaction_version == 0
        return _resp(self.transactions.get(str(sig)))

    def get_latest_blockhash(self, commitment=None):
        return _resp(SimpleNamespace(blockhash=Hash.default()))

    def send_raw_transaction(self, raw, opts=None):
        self.sent.append(raw)
        return _resp("submitted-signature")


def _encoded(keys, pre, post, fee=5_000, pre_tokens=(), post_tokens=(), err=None, loaded=None):
    meta = SimpleNamespace(
        fee=fee,
        pre_balances=pre,
        post_balances=post,
        pre_token_balances=list(pre_tokens),
        post_token_balances=list(post_tokens),
        err=err,
        loaded_addresses=loaded,
    )
    message = SimpleNamespace(account_keys=[Pubkey.from_string(k) for k in keys])
    return SimpleNamespace(
        slot=321,
        block_time=1_700_000_000,
        transaction=SimpleNamespace(meta=meta, transaction=SimpleNamespace(message=message)),
    )


def _token(index, owner, amount, mint=config.USDC_MINT):
    return SimpleNamespace(
        account_index=index,
        mint=Pubkey.from_string(mint),
        owner=Pubkey.from_string(owner) if owner else None,
        ui_token_amount=SimpleNamespace(amount=str(amount)),
    )


@pytest.fixture
def rpc():
    return FakeRpc()


@pytest.fixture
def chain(rpc):
    return SolanaClient(OWNER, client=rpc)


# ─── Address validation ───

def test_validate_address_accepts_pubkey():
    assert str(validate_address(PEER)) == PEER


@pytest.mark.parametrize("address", ["", "   ", "not-base58-0OIl", "abc", None])
def test_validate_address_rejects(address):
    with pytest.raises(InvalidAddressError):
        validate_address(address)


def test_keypair_from_secret_checks_address():
    secret = bytearray(bytes(OWNER_KEYPAIR))
    assert str(keypair_from_secret(secret, OWNER).pubkey()) == OWNER
    with pytest.raises(KeyMismatchError):
        keypair_from_secret(secret, PEER)


def test_keypair_from_secret_rejects_short_key():
    with pytest.raises(InvalidVaultFileError) as exc:
        keypair_from_secret(bytearray(32), OWNER)
    assert exc.value.code == "INVALID_VAULT_FILE"


# ─── Balances ───

def test_get_balance(chain, rpc):
    rpc.existing.add(chain.token_account())
    assert chain.get_balance() == (1_500_000, 1_000_000_000)


def test_missing_token_account_reports_rent(chain):
    with pytest.raises(TokenAccountNotProvisionedError) as exc:
        chain.get_usdc_balance()
    assert exc.value.min_funding_lamports == RENT_EXEMPT
    assert "0.002039280" in str(exc.value)


def test_rpc_failure_is_upstream_error(chain, rpc):
    rpc.fail = "node is behind"
    with pytest.raises(UpstreamUnavailableError) as exc:
        chain.get_sol_balance()
    assert "node is behind" in str(exc.value)


# ─── History ───

def test_signatures_merged_and_deduplicated(chain, rpc):
    ata = chain.token_account()
    rpc.existing.add(ata)
    rpc.signatures = {chain.owner_pubkey: ["a", "b"], ata: ["b", "c"]}
    assert chain.get_signatures() == ["a", "b", "c"]


def test_signatures_without_token_account(chain, rpc):
    rpc.signatures = {chain.owner_pubkey: ["a"], chain.token_account(): ["z"]}
    assert chain.get_signatures() == ["a"]


def test_signature_limit_passed(chain, rpc):
    rpc.signatures = {chain.owner_pubkey: [str(i) for i in range(150)]}
    assert len(chain.get_signatures()) == config.SIGNATURE_LIMIT


def test_get_transactions_skips_missing(chain, rpc):
    rpc.signatures = {chain.owner_pubkey: ["one", "gone"]}
    rpc.transactions["one"] = _encoded([OWNER, PEER], [10, 0], [5, 5])
    txs = chain.get_transactions()
    assert [t.signature for t in txs] == ["one"]


def test_get_transactions_skips_missing_metadata(chain, rpc):
    rpc.signatures = {chain.owner_pubkey: ["one", "pruned"]}
    rpc.transactions["one"] = _encoded([OWNER, PEER], [10, 0], [5, 5])
    pruned = _encoded([OWNER, PEER], [10, 0], [5, 5])
    pruned.transaction.meta = None
    rpc.transactions["pruned"] = pruned
    txs = chain.get_transactions()
    assert [t.signature for t in txs] == ["one"]


def test_to_raw_transaction_converts_fields():
    value = _encoded(
        [OWNER, PEER],
        [1_000_000_000, 0],
        [994_995_000, 5_000_000],
        pre_tokens=[_token(2, OWNER, 7)],
        post_tokens=[_token(2, OWNER, 9), _token(3, None, 1)],
        err={"InstructionError": [0, "Custom"]},
    )
    tx = to_raw_transaction("sig", value)
    assert tx.account_keys == [OWNER, PEER]
    assert tx.pre_balances == [1_000_000_000, 0]
    assert tx.post_balances == [994_995_000, 5_000_000]
    assert tx.fee == 5_000
    assert tx.slot == 321
    assert tx.block_time == 1_700_000_000
    assert tx.succeeded is False
    assert tx.pre_token_balances[0].owner == OWNER
    assert tx.pre_token_balances[0].amount == 7
    assert tx.post_token_balances[1].owner is None


def test_to_raw_transaction_appends_loaded_addresses():
    loaded = SimpleNamespace(writable=[Pubkey.from_string(OTHER)], readonly=None)
    tx = to_raw_transaction("sig", _encoded([OWNER], [1, 1], [1, 1], loaded=loaded))
    assert tx.account_keys == [OWNER, OTHER]
    assert tx.succeeded is True


# ─── Transfers ───

def test_send_sol_signs_single_transfer(chain, rpc):
    tx_id = chain.send_sol(bytearray(bytes(OWNER_KEYPAIR)), PEER, 5_000_000)
    assert tx_id == "submitted-signature"
    txn = Transaction.from_bytes(rpc.sent[0])
    assert len(txn.message.instructions) == 1
    assert txn.message.account_keys[0] == OWNER_KEYPAIR.pubkey()


def test_send_sol_rejects_foreign_key(chain, rpc):
    with pytest.raises(KeyMismatchError):
        chain.send_sol(bytearray(bytes(PEER_KEYPAIR)), OTHER, 1)
    assert rpc.sent == []


def test_send_usdc_creates_missing_destination_account(chain, rpc):
    rpc.existing.add(chain.token_account())
    chain.send_usdc(bytearray(bytes(OWNER_KEYPAIR)), PEER, 1_000_000)
    txn = Transaction.from_bytes(rpc.sent[0])
    assert len(txn.message.instructions) == 2


def test_send_usdc_existing_destination_account(chain, rpc):
    rpc.existing.add(chain.token_account())
    rpc.existing.add(chain.token_account(Pubkey.from_string(PEER)))
    chain.send_usdc(bytearray(bytes(OWNER_KEYPAIR)), PEER, 1_000_000)
    txn = Transaction.from_bytes(rpc.sent[0])
    assert len(txn.message.instructions) == 1


def test_send_usdc_without_source_account(chain, rpc):
    with pytest.raises(TokenAccountNotProvisionedError):
        chain.send_usdc(bytearray(bytes(OWNER_KEYPAIR)), PEER, 1_000_000)
    assert rpc.sent == []
