"""
Pay guard: serializes outgoing transfers and enforces a cooldown between them.

One lock and one PayCooldownState are shared by SOL and USDC transfers. The lock
is held for the whole attempt (decrypt, build, sign, submit), so at most one
transfer is in flight per process.

    with guard.try_acquire(cooldown_seconds) as permit:
        tx_id = chain.send_sol(...)
        permit.mark_submitted()

The cooldown clock restarts only for permits marked submitted. A permit that
exits with an exception before ``mark_submitted()`` leaves the state untouched.
"""

import threading
import time
from contextlib import contextmanager
from typing import Callable, Optional

from CWT_Wallet.cwt_shared.errors import CooldownActiveError
from CWT_Wallet.cwt_shared.types import PayCooldownState


class PayPermit:
    """Handed to the holder of the guard for one transfer attempt."""

    def __init__(self):
        self.submitted = False

    def mark_submitted(self) -> None:
        self.submitted = True


class PayGuard:
    def __init__(
        self,
        state: Optional[PayCooldownState] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.state = state if state is not None else PayCooldownState()
        self._clock = clock
        self._lock = threading.Lock()

    def remaining(self, cooldown_seconds: float) -> float:
        """Seconds left before the next transfer may start (0 when free)."""
        last = self.state.last_submission_time
        if cooldown_seconds <= 0 or last is None:
            return 0.0
        elapsed = self._clock() - last
        return max(0.0, cooldown_seconds - elapsed)

    @contextmanager
    def try_acquire(self, cooldown_seconds: float):
        with self._lock:
            remaining = self.remaining(cooldown_seconds)
            if remaining > 0:
                raise CooldownActiveError(remaining)

            permit = PayPermit()
            try:
                yield permit
            finally:
                if permit.submitted:
                    self.state.last_submission_time = self._clock()
