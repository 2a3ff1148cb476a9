"""Tests for the capital ledger."""
import config
from ledger import CapitalLedger


class TestCapitalLedger:
    """Tests for clamping, history and depletion."""

    def test_init_defaults(self):
        ledger = CapitalLedger()
        assert ledger.capital == config.STARTING_CAPITAL
        assert ledger.history == [config.STARTING_CAPITAL]
        assert ledger.reached_zero() is False

    def test_starting_capital_clamped_to_max(self):
        ledger = CapitalLedger(starting_capital=500.0, max_capital=100.0)
        assert ledger.capital == 100.0

    def test_adjust_records_history(self):
        ledger = CapitalLedger(starting_capital=100.0, max_capital=1000.0)
        ledger.adjust(50.0, "income")
        ledger.adjust(-20.0, "expense")

        assert ledger.capital == 130.0
        assert ledger.history == [100.0, 150.0, 130.0]

    def test_adjust_clamps_to_max(self):
        ledger = CapitalLedger(starting_capital=900.0, max_capital=1000.0)
        assert ledger.adjust(500.0) == 1000.0

    def test_adjust_clamps_to_zero_and_depletes(self):
        ledger = CapitalLedger(starting_capital=100.0, max_capital=1000.0)
        assert ledger.adjust(-250.0) == 0.0
        assert ledger.reached_zero() is True

    def test_depleted_ledger_ignores_adjustments(self):
        ledger = CapitalLedger(starting_capital=100.0, max_capital=1000.0)
        ledger.adjust(-100.0)
        history_len = len(ledger.history)

        assert ledger.adjust(500.0) == 0.0
        assert len(ledger.history) == history_len

    def test_history_is_bounded(self):
        ledger = CapitalLedger(starting_capital=0.5, max_capital=1000.0, history_size=5)
        for i in range(10):
            ledger.adjust(1.0)

        assert len(ledger.history) == 5
        assert ledger.history[-1] == ledger.capital
