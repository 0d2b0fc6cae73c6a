"""Tests for vault file storage."""

import os
import stat

import pytest

from CWT_Wallet.cwt_shared import config
from CWT_Wallet.cwt_shared.crypto_engine import CryptoEngine
from CWT_Wallet.cwt_shared.errors import (
    DestinationExistsError,
    InvalidPasswordError,
    InvalidVaultFileError,
    MissingOrEmptyFileError,
    PasswordRequiredError,
)
from CWT_Wallet.cwt_shared.types import WalletSecret
from CWT_Wallet.cwt_vault import vault as vault_store
from CWT_Wallet.cwt_vault.vault import (
    check_destination,
    load_vault,
    open_secret,
    read_address,
    reencrypt_vault,
    save_vault,
)

ADDRESS = "8kQ6dQbrmG5ZNbyHNAXsRp5jGNwXbAoBZ6Hw3tQ3qBmh"


@pytest.fixture
def vault():
    secret = WalletSecret(private_key=bytearray(b"\x07" * 64), created_at="2026-01-01T00:00:00Z")
    return CryptoEngine().encrypt(secret, b"pw", address=ADDRESS, qr_image="UE5H")


@pytest.fixture
def vault_path(tmp_path, vault):
    return save_vault(tmp_path / "wallet.cwt", vault)


# ─── save_vault ───

def test_save_writes_bom_and_mode(vault_path):
    assert vault_path.read_bytes().startswith(config.UTF8_BOM)
    assert stat.S_IMODE(os.stat(vault_path).st_mode) == 0o600


def test_save_rejects_wrong_extension(tmp_path, vault):
    with pytest.raises(InvalidVaultFileError):
        save_vault(tmp_path / "wallet.json", vault)


def test_save_refuses_non_empty_destination(vault_path, vault):
    before = vault_path.read_bytes()
    with pytest.raises(DestinationExistsError) as exc:
        save_vault(vault_path, vault)
    assert exc.value.code == "DESTINATION_EXISTS"
    assert vault_path.read_bytes() == before


def test_save_accepts_existing_empty_file(tmp_path, vault):
    path = tmp_path / "empty.cwt"
    path.touch()
    save_vault(path, vault)
    assert read_address(path) == ADDRESS


@pytest.mark.parametrize("placeholder", [False, True])
def test_save_keeps_file_written_after_check(tmp_path, vault, monkeypatch, placeholder):
    path = tmp_path / "race.cwt"
    if placeholder:
        path.touch()
    checked = vault_store.check_destination

    def check_then_lose_race(p):
        result = checked(p)
        path.write_bytes(b"other vault")
        return result

    monkeypatch.setattr(vault_store, "check_destination", check_then_lose_race)
    with pytest.raises(DestinationExistsError):
        save_vault(path, vault)
    assert path.read_bytes() == b"other vault"


def test_check_destination_missing_file_ok(tmp_path):
    assert check_destination(tmp_path / "new.cwt").name == "new.cwt"


# ─── load_vault / read_address ───

def test_load_round_trip(vault_path, vault):
    assert load_vault(vault_path) == vault


def test_load_missing_file(tmp_path):
    with pytest.raises(MissingOrEmptyFileError):
        load_vault(tmp_path / "absent.cwt")


def test_load_empty_file(tmp_path):
    path = tmp_path / "empty.cwt"
    path.touch()
    with pytest.raises(MissingOrEmptyFileError):
        load_vault(path)


def test_load_garbage(tmp_path):
    path = tmp_path / "bad.cwt"
    path.write_bytes(b"not json")
    with pytest.raises(InvalidVaultFileError):
        load_vault(path)


def test_read_address_without_password(vault_path):
    assert read_address(vault_path) == ADDRESS


# ─── open_secret ───

def test_open_secret_yields_key_and_wipes(vault_path):
    with open_secret(vault_path, bytearray(b"pw")) as secret:
        assert secret.private_key == bytearray(b"\x07" * 64)
        held = secret.private_key
    assert held == bytearray(64)


def test_open_secret_wipes_on_error(vault_path):
    with pytest.raises(RuntimeError):
        with open_secret(vault_path, b"pw") as secret:
            held = secret.private_key
            raise RuntimeError("boom")
    assert held == bytearray(64)


def test_open_secret_wrong_password(vault_path):
    with pytest.raises(InvalidPasswordError):
        with open_secret(vault_path, b"nope"):
            pass


def test_open_secret_requires_password(vault_path):
    with pytest.raises(PasswordRequiredError):
        with open_secret(vault_path, b""):
            pass


# ─── reencrypt_vault ───

def test_reencrypt_switches_password(vault_path, vault):
    reencrypt_vault(vault_path, b"pw", b"new-pw")

    with pytest.raises(InvalidPasswordError):
        with open_secret(vault_path, b"pw"):
            pass
    with open_secret(vault_path, b"new-pw") as secret:
        assert secret.private_key == bytearray(b"\x07" * 64)

    fresh = load_vault(vault_path)
    assert (fresh.network, fresh.address, fresh.qr_image) == (vault.network, vault.address, vault.qr_image)
    assert fresh.salt != vault.salt
    assert fresh.nonce != vault.nonce
    assert stat.S_IMODE(os.stat(vault_path).st_mode) == 0o600


def test_reencrypt_wrong_password_leaves_file(vault_path):
    before = vault_path.read_bytes()
    with pytest.raises(InvalidPasswordError):
        reencrypt_vault(vault_path, b"wrong", b"new-pw")
    assert vault_path.read_bytes() == before
    assert sorted(p.name for p in vault_path.parent.iterdir()) == ["wallet.cwt"]
