"""
Vault crypto engine: password-based key derivation and authenticated encryption
of the wallet secret.

    key        = Argon2id(password, salt)              32 B, salt 16 B
    cipherText = XSalsa20-Poly1305(key, nonce, json)   nonce 24 B, tag 16 B

Salt and nonce are drawn fresh for every encryption and stored in the vault
envelope next to the ciphertext, so a vault file is self-describing.

The at-rest envelope is UTF-8 JSON preceded by a BOM:

    {"network": ..., "address": ..., "qrImage": ..., "salt": ..., "nonce": ..., "cipherText": ...}

Every decryption failure (wrong password, tampered salt, nonce, tag or payload)
is reported as the same InvalidPasswordError.
"""

import base64
import binascii
import json

import nacl.encoding
import nacl.exceptions
import nacl.pwhash
import nacl.secret
import nacl.utils

from CWT_Wallet.cwt_shared import config
from CWT_Wallet.cwt_shared.errors import InvalidPasswordError, PasswordRequiredError
from CWT_Wallet.cwt_shared.types import VaultFile, WalletSecret


def wipe(buf: bytearray) -> None:
    """Overwrite a mutable buffer with zeros in place."""
    for i in range(len(buf)):
        buf[i] = 0


class CryptoEngine:
    """Argon2id + SecretBox engine for the wallet vault."""

    def __init__(self, opslimit: int | None = None, memlimit: int | None = None):
        self._opslimit = opslimit
        self._memlimit = memlimit

    @property
    def opslimit(self) -> int:
        return self._opslimit if self._opslimit is not None else config.KDF_OPSLIMIT

    @property
    def memlimit(self) -> int:
        return self._memlimit if self._memlimit is not None else config.KDF_MEMLIMIT

    def derive_key(self, password: bytes | bytearray, salt: bytes) -> bytes:
        if not password:
            raise PasswordRequiredError()
        return nacl.pwhash.argon2id.kdf(
            config.KDF_KEY_SIZE,
            bytes(password),
            salt,
            opslimit=self.opslimit,
            memlimit=self.memlimit,
            encoder=nacl.encoding.RawEncoder,
        )

    def encrypt(
        self,
        secret: WalletSecret,
        password: bytes | bytearray,
        *,
        address: str,
        qr_image: str,
        network: str = config.NETWORK_SOLANA,
    ) -> VaultFile:
        salt = nacl.utils.random(config.KDF_SALT_SIZE)
        nonce = nacl.utils.random(config.AEAD_NONCE_SIZE)

        key = self.derive_key(password, salt)
        box = nacl.secret.SecretBox(key)

        plaintext = _serialize_secret(secret)
        try:
            cipher_text = box.encrypt(bytes(plaintext), nonce).ciphertext
        finally:
            wipe(plaintext)

        return VaultFile(
            network=network,
            address=address,
            qr_image=qr_image,
            salt=salt,
            nonce=nonce,
            cipher_text=cipher_text,
        )

    def decrypt(self, vault: VaultFile, password: bytes | bytearray) -> WalletSecret:
        if not password:
            raise PasswordRequiredError()
        try:
            key = self.derive_key(password, vault.salt)
            box = nacl.secret.SecretBox(key)
            plaintext = bytearray(box.decrypt(vault.cipher_text, vault.nonce))
        except (nacl.exceptions.CryptoError, ValueError, TypeError):
            raise InvalidPasswordError() from None

        try:
            return _deserialize_secret(plaintext)
        except (ValueError, KeyError, TypeError, binascii.Error):
            raise InvalidPasswordError() from None
        finally:
            wipe(plaintext)


# ─── Secret payload ───

def _serialize_secret(secret: WalletSecret) -> bytearray:
    payload = {
        "privateKey": base64.b64encode(secret.private_key).decode("ascii"),
        "createdAt": secret.created_at,
    }
    return bytearray(json.dumps(payload).encode("utf-8"))


def _deserialize_secret(plaintext: bytearray) -> WalletSecret:
    data = json.loads(plaintext.decode("utf-8"))
    return WalletSecret(
        private_key=bytearray(base64.b64decode(data["privateKey"], validate=True)),
        created_at=data["createdAt"],
    )


# ─── At-rest envelope ───

def dump_vault_file(vault: VaultFile) -> bytes:
    """Serialize the envelope to BOM-prefixed, indented JSON bytes."""
    doc = {
        "network": vault.network,
        "address": vault.address,
        "qrImage": vault.qr_image,
        "salt": base64.b64encode(vault.salt).decode("ascii"),
        "nonce": base64.b64encode(vault.nonce).decode("ascii"),
        "cipherText": base64.b64encode(vault.cipher_text).decode("ascii"),
    }
    return config.UTF8_BOM + json.dumps(doc, indent=2).encode("utf-8")


def _parse_envelope(data: bytes) -> dict:
    if data.startswith(config.UTF8_BOM):
        data = data[len(config.UTF8_BOM):]
    doc = json.loads(data.decode("utf-8"))
    if not isinstance(doc, dict):
        raise ValueError("vault envelope is not a JSON object")
    return doc


def load_vault_file(data: bytes) -> VaultFile:
    """Parse envelope bytes into a VaultFile.

    Raises ValueError/KeyError on a malformed envelope; callers wrap these.
    """
    doc = _parse_envelope(data)
    return VaultFile(
        network=doc["network"],
        address=doc["address"],
        qr_image=doc.get("qrImage", ""),
        salt=base64.b64decode(doc["salt"], validate=True),
        nonce=base64.b64decode(doc["nonce"], validate=True),
        cipher_text=base64.b64decode(doc["cipherText"], validate=True),
    )


def read_envelope_address(data: bytes) -> tuple[str, str]:
    """Return (network, address) without touching salt, nonce or ciphertext."""
    doc = _parse_envelope(data)
    return doc["network"], doc["address"]
