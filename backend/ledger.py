"""
Capital ledger.

Single write path for the bank's capital: every income and expense source
(economy tick, market events, leak drain, decision penalties) goes through
`CapitalLedger.adjust()` so clamping and the history buffer stay consistent.
"""

from typing import List

import config
from logger import setup_logger

logger = setup_logger("ledger")


class CapitalLedger:
    """Holds capital, a bounded history window and the depletion trigger."""

    def __init__(
        self,
        starting_capital: float = config.STARTING_CAPITAL,
        max_capital: float = config.MAX_CAPITAL,
        history_size: int = config.CAPITAL_HISTORY_SIZE,
    ):
        self.max_capital = max_capital
        self.history_size = history_size
        self.capital = self._clamp(starting_capital)
        self.history: List[float] = [self.capital]
        self._depleted = False

    def _clamp(self, value: float) -> float:
        return max(0.0, min(self.max_capital, value))

    def adjust(self, delta: float, reason: str = "") -> float:
        """Apply a signed change, clamp to [0, max] and record it.

        Once capital has hit zero the ledger is frozen: further adjustments
        are ignored and 0 is returned.
        """
        if self._depleted:
            logger.debug(f"Ignoring adjustment {delta:+,.0f} ({reason}): ledger depleted")
            return self.capital

        previous = self.capital
        self.capital = self._clamp(previous + delta)
        self.history.append(self.capital)
        # Keep only the last history_size samples
        if len(self.history) > self.history_size:
            self.history = self.history[-self.history_size:]

        logger.debug(f"Capital {previous:,.0f} -> {self.capital:,.0f} ({delta:+,.0f} {reason})")

        if self.capital <= 0 and not self._depleted:
            self._depleted = True
            logger.warning(f"Capital depleted ({reason})")
        return self.capital

    def reached_zero(self) -> bool:
        return self._depleted
