"""Tests for the economic cycle simulator."""
import random

import pytest

import config
from economy import (
    compute_cycle_change,
    drift_cycle,
    in_uncertainty_zone,
    should_sample_geopolitics,
)
from models import EconomicCycle


class FixedRandom:
    """Stand-in rng returning fixed values."""

    def __init__(self, random_value=0.5, uniform_value=0.0, choice_index=0):
        self.random_value = random_value
        self.uniform_value = uniform_value
        self.choice_index = choice_index
        self.uniform_calls = []

    def random(self):
        return self.random_value

    def uniform(self, a, b):
        self.uniform_calls.append((a, b))
        return self.uniform_value

    def choice(self, seq):
        return seq[self.choice_index]


class TestUncertaintyZone:

    def test_zone_boundaries(self):
        assert in_uncertainty_zone(4.0) is False
        assert in_uncertainty_zone(4.1) is True
        assert in_uncertainty_zone(4.5) is True
        assert in_uncertainty_zone(5.0) is True
        assert in_uncertainty_zone(5.1) is False


class TestComputeCycleChange:
    """Tests for the per-tick capital change."""

    def test_growth_at_base_rate(self):
        result = compute_cycle_change(4.5, EconomicCycle.GROWTH, FixedRandom(), tick_seconds=5.0)

        assert result["rate_spread"] == 0.0
        assert result["deposit_flow"] == pytest.approx(60_000)
        assert result["lending_revenue"] == pytest.approx(90_000)
        assert result["interest_expense"] == pytest.approx(60_000)
        assert result["gradual_change"] == pytest.approx(45_000)
        assert result["net_change"] == pytest.approx(45_000)

    def test_crisis_drains_capital(self):
        result = compute_cycle_change(4.5, EconomicCycle.CRISIS, FixedRandom(), tick_seconds=5.0)
        assert result["net_change"] == pytest.approx(-277_000)

    def test_high_rate_shifts_deposits_and_lending(self):
        result = compute_cycle_change(7.0, EconomicCycle.GROWTH, FixedRandom(), tick_seconds=5.0)

        assert result["deposit_flow"] == pytest.approx(82_500)
        assert result["lending_revenue"] == pytest.approx(63_000)

    def test_uncertainty_zone_widens_volatility(self):
        rng = FixedRandom()
        compute_cycle_change(4.5, EconomicCycle.GROWTH, rng)
        compute_cycle_change(6.0, EconomicCycle.GROWTH, rng)

        wide = config.VOLATILITY * config.UNCERTAINTY_VOLATILITY_MULTIPLIER
        assert rng.uniform_calls[0] == (-wide, wide)
        assert rng.uniform_calls[1] == (-config.VOLATILITY, config.VOLATILITY)

    def test_volatility_added_to_net_change(self):
        result = compute_cycle_change(6.0, EconomicCycle.RECESSION, FixedRandom(uniform_value=10_000), tick_seconds=5.0)
        assert result["net_change"] == pytest.approx(result["gradual_change"] + 10_000)

    def test_deterministic_with_seeded_rng(self):
        a = compute_cycle_change(3.2, EconomicCycle.RECESSION, random.Random(7))
        b = compute_cycle_change(3.2, EconomicCycle.RECESSION, random.Random(7))
        assert a == b


class TestDriftCycle:
    """Tests for occasional cycle shifts."""

    def test_no_shift_most_ticks(self):
        assert drift_cycle(EconomicCycle.GROWTH, 7.0, FixedRandom(random_value=0.5)) == EconomicCycle.GROWTH

    def test_tight_policy_pushes_toward_crisis(self):
        rng = FixedRandom(random_value=0.0)
        assert drift_cycle(EconomicCycle.GROWTH, 6.5, rng) == EconomicCycle.RECESSION
        assert drift_cycle(EconomicCycle.CRISIS, 6.5, rng) == EconomicCycle.CRISIS

    def test_loose_policy_pushes_toward_growth(self):
        rng = FixedRandom(random_value=0.0)
        assert drift_cycle(EconomicCycle.CRISIS, 2.5, rng) == EconomicCycle.RECESSION
        assert drift_cycle(EconomicCycle.GROWTH, 2.5, rng) == EconomicCycle.GROWTH

    def test_neutral_policy_wanders(self):
        assert drift_cycle(EconomicCycle.RECESSION, 4.5, FixedRandom(random_value=0.0, choice_index=1)) == EconomicCycle.CRISIS
        assert drift_cycle(EconomicCycle.RECESSION, 4.5, FixedRandom(random_value=0.0, choice_index=0)) == EconomicCycle.GROWTH


class TestGeopoliticalSampling:

    def test_sampling_threshold(self):
        assert should_sample_geopolitics(FixedRandom(random_value=0.05)) is True
        assert should_sample_geopolitics(FixedRandom(random_value=0.5)) is False
