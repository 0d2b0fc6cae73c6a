"""
In-memory holder for the wallet password entered at startup.

Handlers never see the stored buffer itself: ``copy()`` hands out a fresh
bytearray that the caller wipes when done (``borrow()`` does it for them).
"""

import getpass
import sys
import threading
from contextlib import contextmanager

from CWT_Wallet.cwt_shared.crypto_engine import wipe
from CWT_Wallet.cwt_shared.errors import PasswordRequiredError


class PasswordStore:
    def __init__(self, password: bytes | bytearray | None = None):
        self._lock = threading.Lock()
        self._buf = bytearray(password) if password else bytearray()

    @property
    def is_set(self) -> bool:
        return len(self._buf) > 0

    def set(self, password: bytes | bytearray) -> None:
        if not password:
            raise PasswordRequiredError()
        with self._lock:
            wipe(self._buf)
            self._buf = bytearray(password)

    def copy(self) -> bytearray:
        with self._lock:
            if not self._buf:
                raise PasswordRequiredError()
            return bytearray(self._buf)

    @contextmanager
    def borrow(self):
        """Yield a private copy of the password, wiped on exit."""
        pw = self.copy()
        try:
            yield pw
        finally:
            wipe(pw)

    def clear(self) -> None:
        with self._lock:
            wipe(self._buf)
            self._buf = bytearray()

    def prompt(self, label: str = "Enter wallet password: ", confirm: bool = False) -> None:
        """Read the password from the terminal without echo."""
        if not sys.stdin.isatty():
            raise RuntimeError("stdin is not a terminal: run interactively to enter the password")

        raw = bytearray(getpass.getpass(label).encode("utf-8"))
        try:
            if confirm:
                again = bytearray(getpass.getpass("Repeat wallet password: ").encode("utf-8"))
                try:
                    if again != raw:
                        raise ValueError("passwords do not match")
                finally:
                    wipe(again)
            self.set(raw)
        finally:
            wipe(raw)
