"""
Random market events.

Each event kind carries a base impact range, an optional forced economic
cycle and a narrative message. The signed capital impact is computed by
`compute_event_impact()`, which branches explicitly on the kind and adjusts
the base roll for the current interest rate and cycle.
"""

import random
from enum import Enum
from typing import Optional

import config
from models import EconomicCycle


class EventKind(Enum):
    MARKET_RALLY = "market_rally"
    BANKING_CRISIS = "banking_crisis"
    CYBER_ATTACK = "cyber_attack"
    TECH_BOOM = "tech_boom"
    TRADE_WAR = "trade_war"
    DEBT_DOWNGRADE = "debt_downgrade"
    STIMULUS_PACKAGE = "stimulus_package"
    CENTRAL_BANK_SURPRISE = "central_bank_surprise"


# Format: kind -> {"name", "impact": (min, max) in dollars, "cycle": forced cycle or None, "message"}
EVENT_CATALOG = {
    EventKind.MARKET_RALLY: {
        "name": "Market Rally",
        "impact": (2_000_000, 6_000_000),
        "cycle": EconomicCycle.GROWTH,
        "message": "Equities surge on strong earnings. Loan demand and deposits are climbing.",
    },
    EventKind.BANKING_CRISIS: {
        "name": "Banking Crisis",
        "impact": (-20_000_000, -8_000_000),
        "cycle": EconomicCycle.CRISIS,
        "message": "A regional lender has collapsed. Depositors are pulling funds across the sector.",
    },
    EventKind.CYBER_ATTACK: {
        "name": "Clearing House Cyber Attack",
        "impact": (-10_000_000, -3_000_000),
        "cycle": None,
        "message": "Ransomware has hit the national clearing house. Settlement losses are mounting.",
    },
    EventKind.TECH_BOOM: {
        "name": "Tech Sector Boom",
        "impact": (3_000_000, 8_000_000),
        "cycle": None,
        "message": "Venture funding pours into fintech. Corporate accounts are flush with cash.",
    },
    EventKind.TRADE_WAR: {
        "name": "Trade War Escalation",
        "impact": (-12_000_000, -4_000_000),
        "cycle": EconomicCycle.RECESSION,
        "message": "New tariffs announced overnight. Exporters are drawing down credit lines.",
    },
    EventKind.DEBT_DOWNGRADE: {
        "name": "Sovereign Debt Downgrade",
        "impact": (-15_000_000, -5_000_000),
        "cycle": EconomicCycle.RECESSION,
        "message": "Rating agencies downgrade government debt. Bond holdings are marked down.",
    },
    EventKind.STIMULUS_PACKAGE: {
        "name": "Fiscal Stimulus Package",
        "impact": (4_000_000, 10_000_000),
        "cycle": EconomicCycle.GROWTH,
        "message": "Parliament passes a stimulus bill. Households and small businesses are spending again.",
    },
    EventKind.CENTRAL_BANK_SURPRISE: {
        "name": "Central Bank Surprise",
        "impact": (2_000_000, 6_000_000),
        "cycle": None,
        "message": "An unscheduled policy statement jolts the rate markets.",
    },
}

CYCLE_SEVERITY = {
    EconomicCycle.GROWTH: 0.0,
    EconomicCycle.RECESSION: 0.5,
    EconomicCycle.CRISIS: 1.0,
}


def roll_range(rng: random.Random, min_val: float, max_val: float) -> float:
    """Roll a random value in range, auto-correcting order if needed."""
    if min_val > max_val:
        min_val, max_val = max_val, min_val
    return rng.uniform(min_val, max_val)


def select_event(rng: random.Random) -> EventKind:
    """Pick one event uniformly from the catalog."""
    return rng.choice(list(EVENT_CATALOG))


def compute_event_impact(kind: EventKind, rate: float, cycle: EconomicCycle, rng: random.Random) -> float:
    """Signed capital impact of an event under the current rate and cycle."""
    low, high = EVENT_CATALOG[kind]["impact"]
    base = roll_range(rng, low, high)
    severity = CYCLE_SEVERITY[cycle]
    # 0.0 at the maximum rate, 1.0 at the minimum
    looseness = (config.MAX_RATE - rate) / (config.MAX_RATE - config.MIN_RATE)
    looseness = max(0.0, min(1.0, looseness))

    if kind == EventKind.MARKET_RALLY:
        return base + 1_500_000 * looseness
    elif kind == EventKind.BANKING_CRISIS:
        return base - 3_000_000 * severity
    elif kind == EventKind.CYBER_ATTACK:
        return base
    elif kind == EventKind.TECH_BOOM:
        return base * (0.8 + 0.4 * looseness)
    elif kind == EventKind.TRADE_WAR:
        return base * (1 + 0.3 * severity)
    elif kind == EventKind.DEBT_DOWNGRADE:
        return base * (1 + 0.1 * max(0.0, rate - config.BASE_RATE))
    elif kind == EventKind.STIMULUS_PACKAGE:
        # stimulus is sized to the downturn it answers
        return base * (1 + 0.5 * severity)
    elif kind == EventKind.CENTRAL_BANK_SURPRISE:
        return -base if rate > config.BASE_RATE else base
    raise ValueError(f"Unknown event kind: {kind}")


def event_name(kind: EventKind) -> str:
    return EVENT_CATALOG[kind]["name"]


def event_cycle(kind: EventKind) -> Optional[EconomicCycle]:
    return EVENT_CATALOG[kind]["cycle"]


def event_message(kind: EventKind, impact: float) -> str:
    direction = "gain" if impact >= 0 else "loss"
    return f"{EVENT_CATALOG[kind]['name']}: {EVENT_CATALOG[kind]['message']} (capital {direction} ${abs(impact):,.0f})"
