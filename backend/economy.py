"""
Economic cycle simulator.

Gradual capital drift computed on every economy tick from a deposit model,
a lending model and the interest expense on deposits, scaled by the current
economic cycle and jittered by volatility. Shocks (market events, leak,
decision penalties) are applied elsewhere as instant ledger adjustments;
this module only models the slow-moving core of the bank.

Everything here is a pure function of its inputs plus an explicit
random.Random, so ticks can be replayed deterministically.
"""

import random
from typing import Dict

import config
from models import EconomicCycle

CYCLE_ORDER = [EconomicCycle.GROWTH, EconomicCycle.RECESSION, EconomicCycle.CRISIS]


def in_uncertainty_zone(rate: float) -> bool:
    low, high = config.UNCERTAINTY_ZONE
    return low < rate <= high


def cycle_multipliers(cycle: EconomicCycle) -> Dict[str, float]:
    return config.CYCLE_MULTIPLIERS[cycle.value]


def compute_cycle_change(
    rate: float,
    cycle: EconomicCycle,
    rng: random.Random,
    tick_seconds: float = config.CYCLE_TICK_SECONDS,
) -> Dict[str, float]:
    """Compute one economy tick.

    Returns the breakdown (deposit flow, lending revenue, interest expense,
    net interest income, volatility) alongside `net_change`, the amount to
    hand to the ledger.
    """
    rate_spread = rate - config.BASE_RATE

    # Higher rates attract deposits and choke lending
    deposit_flow = max(0.0, config.BASE_DEPOSIT_FLOW * (1 + rate_spread * config.DEPOSIT_SENSITIVITY))
    lending_revenue = max(0.0, config.BASE_LENDING_REVENUE * (1 - rate_spread * config.LENDING_SENSITIVITY))

    # Deposit balance scales with the inflow; expense accrues over the tick
    deposit_balance = config.DEPOSIT_BASE * (deposit_flow / config.BASE_DEPOSIT_FLOW)
    interest_expense = deposit_balance * (rate / 100) * (tick_seconds / config.SECONDS_PER_GAME_YEAR)
    net_interest_income = lending_revenue - interest_expense

    mult = cycle_multipliers(cycle)
    gradual = (
        deposit_flow * mult["deposit"]
        + lending_revenue * mult["lending"]
        - (interest_expense + config.OPERATING_COST) * mult["cost"]
    )

    volatility_range = config.VOLATILITY
    if in_uncertainty_zone(rate):
        volatility_range *= config.UNCERTAINTY_VOLATILITY_MULTIPLIER
    volatility = rng.uniform(-volatility_range, volatility_range)

    return {
        "rate_spread": rate_spread,
        "deposit_flow": deposit_flow,
        "lending_revenue": lending_revenue,
        "interest_expense": interest_expense,
        "net_interest_income": net_interest_income,
        "gradual_change": gradual,
        "volatility": volatility,
        "net_change": gradual + volatility,
    }


def drift_cycle(cycle: EconomicCycle, rate: float, rng: random.Random) -> EconomicCycle:
    """Occasionally move the cycle one step.

    Tight policy pushes toward crisis, loose policy toward growth, anything
    in between wanders.
    """
    if rng.random() >= config.CYCLE_SHIFT_PROBABILITY:
        return cycle

    index = CYCLE_ORDER.index(cycle)
    if rate >= config.TIGHT_RATE:
        step = 1
    elif rate <= config.LOOSE_RATE:
        step = -1
    else:
        step = rng.choice([-1, 1])

    new_index = max(0, min(len(CYCLE_ORDER) - 1, index + step))
    return CYCLE_ORDER[new_index]


def should_sample_geopolitics(rng: random.Random) -> bool:
    return rng.random() < config.GEOPOLITICAL_ALERT_PROBABILITY
