import asyncio
import logging
from typing import Optional

from ..config import SUBMIT_SAFETY_TIMEOUT

logger = logging.getLogger(__name__)


class SubmissionState:
    """
    "Submitting" flag for form-style writes.

    Overlapping writes are counted, so the flag stays set until the last one
    finishes. A safety timer force-resets the flag if finish() is never
    reached. It does not cancel the write or any queued operation.
    """

    def __init__(self, timeout: float = SUBMIT_SAFETY_TIMEOUT):
        self.timeout = timeout
        self.timed_out = False
        self._active = 0
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def is_submitting(self) -> bool:
        return self._active > 0

    @property
    def active(self) -> int:
        return self._active

    def start(self):
        self._cancel_timer()
        self._active += 1
        self.timed_out = False
        self._timer = asyncio.get_running_loop().call_later(self.timeout, self._force_reset)

    def finish(self):
        if self._active > 0:
            self._active -= 1
        if self._active == 0:
            self._cancel_timer()

    def _force_reset(self):
        self._timer = None
        if self._active:
            logger.warning(f"⚠️ {self._active} submission(s) still running after {self.timeout}s, resetting state")
            self._active = 0
            self.timed_out = True

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.finish()
        return False
