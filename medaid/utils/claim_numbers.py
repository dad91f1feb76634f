"""Claim number generation."""
import threading
from datetime import datetime
from typing import Callable, Optional

from medaid.utils.timeutils import epoch_ms, utcnow

# Provider code reserved for claims that fall back to manual processing
MANUAL_PROVIDER_CODE = "MAN"

SUFFIX_DIGITS = 6


class ClaimNumberGenerator:
    """
    Builds ``CLM-<providerCode>-<YYYYMM>-<suffix>`` claim numbers.

    The suffix is the last six digits of a millisecond clock that never
    repeats within the process: when two numbers are requested in the same
    millisecond the second one is bumped forward.
    """

    def __init__(
        self,
        clock_ms: Callable[[], int] = epoch_ms,
        now: Callable[[], datetime] = utcnow,
    ):
        self._clock_ms = clock_ms
        self._now = now
        self._last_ms = 0
        self._lock = threading.Lock()

    def _next_tick(self) -> int:
        with self._lock:
            tick = max(self._clock_ms(), self._last_ms + 1)
            self._last_ms = tick
            return tick

    def generate(self, provider_code: str, now: Optional[datetime] = None) -> str:
        """
        Generate a claim number for a provider.

        Args:
            provider_code: Provider mnemonic, or MANUAL_PROVIDER_CODE
            now: Timestamp used for the year/month segment

        Returns:
            Claim number string
        """
        now = now or self._now()
        suffix = str(self._next_tick())[-SUFFIX_DIGITS:].zfill(SUFFIX_DIGITS)
        return f"CLM-{provider_code}-{now.year}{now.month:02d}-{suffix}"


claim_number_generator = ClaimNumberGenerator()


def generate_claim_number(provider_code: str) -> str:
    """Generate a claim number with the process-wide generator."""
    return claim_number_generator.generate(provider_code)
