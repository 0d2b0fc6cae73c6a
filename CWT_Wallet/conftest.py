from decimal import Decimal

import nacl.pwhash
import pytest
from solders.keypair import Keypair

from CWT_Wallet.cwt_shared import config
from CWT_Wallet.cwt_shared.errors import TokenAccountNotProvisionedError, UpstreamUnavailableError


OWNER_KEYPAIR = Keypair.from_seed(bytes([1] * 32))
PEER_KEYPAIR = Keypair.from_seed(bytes([2] * 32))
OTHER_KEYPAIR = Keypair.from_seed(bytes([3] * 32))

OWNER = str(OWNER_KEYPAIR.pubkey())
PEER = str(PEER_KEYPAIR.pubkey())
OTHER = str(OTHER_KEYPAIR.pubkey())


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    """Use the smallest Argon2id cost so tests do not allocate 256 MiB per derivation."""
    monkeypatch.setattr(config, "KDF_OPSLIMIT", nacl.pwhash.argon2id.OPSLIMIT_MIN)
    monkeypatch.setattr(config, "KDF_MEMLIMIT", nacl.pwhash.argon2id.MEMLIMIT_MIN)


# ─── Collaborator doubles ───

class FakeChain:
    """In-memory stand-in for SolanaClient."""

    def __init__(self):
        self.usdc = 10_000_000
        self.sol = 1_000_000_000
        self.provisioned = True
        self.rent_exempt = 2_039_280
        self.transactions = []
        self.sent = []
        self.fail_send = None
        self.addresses = []

    def get_usdc_balance(self):
        if not self.provisioned:
            raise TokenAccountNotProvisionedError(self.addresses[-1], self.rent_exempt)
        return self.usdc

    def get_sol_balance(self):
        return self.sol

    def get_balance(self):
        return self.get_usdc_balance(), self.get_sol_balance()

    def get_transactions(self, limit=config.SIGNATURE_LIMIT):
        return list(self.transactions)

    def _send(self, currency, key, to, amount):
        assert len(key) == config.PRIVATE_KEY_SIZE
        if self.fail_send:
            raise UpstreamUnavailableError(f"send {currency}", self.fail_send)
        self.sent.append((currency, to, amount))
        return f"sig-{len(self.sent)}"

    def send_sol(self, key, to, lamports):
        return self._send("SOL", key, to, lamports)

    def send_usdc(self, key, to, micro):
        return self._send("USDC", key, to, micro)


class FakePrice:
    def __init__(self, rate=Decimal("90.50")):
        self.rate = rate

    def get_rate(self):
        return self.rate


@pytest.fixture
def fake_chain():
    return FakeChain()


@pytest.fixture
def chain_factory(fake_chain):
    def factory(address):
        fake_chain.addresses.append(address)
        return fake_chain
    return factory


@pytest.fixture
def fake_price():
    return FakePrice()


@pytest.fixture
def wallet_file(tmp_path):
    """A freshly generated vault under password b"pw"; yields (path, address)."""
    from CWT_Wallet.wallet import generate_wallet

    path = tmp_path / "wallet.cwt"
    address = generate_wallet(path, b"pw")
    return path, address
