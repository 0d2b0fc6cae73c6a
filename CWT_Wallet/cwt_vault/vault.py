"""
Vault file storage: the encrypted wallet on disk.

    save_vault(path, vault)         refuses anything but an empty or missing .cwt file
    load_vault(path)                -> VaultFile
    read_address(path)              address only, no password needed
    open_secret(path, password)     decrypted key, wiped when the block exits
    reencrypt_vault(path, old, new) fresh salt/nonce under a new password
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from CWT_Wallet.cwt_shared import config
from CWT_Wallet.cwt_shared.crypto_engine import (
    CryptoEngine,
    dump_vault_file,
    load_vault_file,
    read_envelope_address,
)
from CWT_Wallet.cwt_shared.errors import (
    DestinationExistsError,
    InvalidVaultFileError,
    MissingOrEmptyFileError,
    PasswordRequiredError,
)
from CWT_Wallet.cwt_shared.types import VaultFile

logger = logging.getLogger(__name__)


def check_extension(path) -> Path:
    path = Path(path)
    if path.suffix != config.VAULT_EXTENSION:
        raise InvalidVaultFileError(path, f"file must have {config.VAULT_EXTENSION} extension")
    return path


def check_destination(path) -> Path:
    """Validate a path that a new vault is about to be written to."""
    path = check_extension(path)
    if path.exists() and path.stat().st_size > 0:
        raise DestinationExistsError(path)
    return path


def save_vault(path, vault: VaultFile) -> Path:
    path = check_destination(path)
    data = dump_vault_file(vault)

    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, config.VAULT_FILE_MODE)
    except FileExistsError:
        # Only an empty placeholder may be reused; never truncate.
        fd = os.open(path, os.O_WRONLY)
        if os.fstat(fd).st_size > 0:
            os.close(fd)
            raise DestinationExistsError(path) from None
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    os.chmod(path, config.VAULT_FILE_MODE)

    logger.info("Vault written to %s for %s", path, vault.address)
    return path


def _read_bytes(path) -> bytes:
    path = Path(path)
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        raise MissingOrEmptyFileError(path, "does not exist") from None
    if not data:
        raise MissingOrEmptyFileError(path, "is empty")
    return data


def load_vault(path) -> VaultFile:
    data = _read_bytes(path)
    try:
        return load_vault_file(data)
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidVaultFileError(path, f"malformed envelope ({e})") from e


def read_address(path) -> str:
    data = _read_bytes(path)
    try:
        _, address = read_envelope_address(data)
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidVaultFileError(path, f"malformed envelope ({e})") from e
    if not address:
        raise InvalidVaultFileError(path, "address is empty")
    return address


@contextmanager
def open_secret(path, password, engine: Optional[CryptoEngine] = None):
    """Yield the decrypted WalletSecret; its key bytes are zeroed on exit."""
    if not password:
        raise PasswordRequiredError()
    engine = engine or CryptoEngine()
    vault = load_vault(path)

    secret = engine.decrypt(vault, password)
    try:
        yield secret
    finally:
        secret.wipe()


def reencrypt_vault(path, old_password, new_password, engine: Optional[CryptoEngine] = None) -> Path:
    if not new_password:
        raise PasswordRequiredError()
    path = check_extension(path)
    engine = engine or CryptoEngine()
    vault = load_vault(path)

    with open_secret(path, old_password, engine) as secret:
        fresh = engine.encrypt(
            secret, new_password,
            address=vault.address,
            qr_image=vault.qr_image,
            network=vault.network,
        )

    # Written beside the target, then swapped in with one rename.
    fd, tmp_name = tempfile.mkstemp(prefix=".", suffix=config.VAULT_EXTENSION, dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(dump_vault_file(fresh))
        os.chmod(tmp_name, config.VAULT_FILE_MODE)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    logger.info("Vault %s re-encrypted", path)
    return path
