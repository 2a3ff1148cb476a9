"""
Game configuration for the fraud desk simulation.

All tunables live here as module-level constants. The handful that operators
tweak between sessions can be overridden from the environment or a .env file.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# === Session ===
CASES_PER_DAY = _env_int("CASES_PER_DAY", 5)

# === Capital ledger ===
STARTING_CAPITAL = _env_float("STARTING_CAPITAL", 150_000_000.0)
MAX_CAPITAL = _env_float("MAX_CAPITAL", 300_000_000.0)
CAPITAL_HISTORY_SIZE = 50

# === Decision scoring ===
SCAM_PENALTY_MIN = 30_000_000.0
SCAM_PENALTY_MAX = 50_000_000.0
LEGIT_DENIAL_PENALTY = 5_000_000.0
CORRECT_DECISION_REWARD = 1_000_000.0

# === Leak mechanic ===
LEAK_AMOUNT_PER_SECOND = 50_000.0
LEAK_TICK_SECONDS = 1.0
MITIGATION_COOLDOWN_CASES = 2

# === Interest rate controller ===
MIN_RATE = 2.0
MAX_RATE = 7.0
BASE_RATE = 4.5
UNCERTAINTY_ZONE = (4.0, 5.0)  # (exclusive low, inclusive high)
TIGHT_RATE = 6.0
LOOSE_RATE = 3.0

# === Economic cycle simulator ===
CYCLE_TICK_SECONDS = _env_float("CYCLE_TICK_SECONDS", 5.0)
SECONDS_PER_GAME_YEAR = 300.0  # five real minutes per simulated year
DEPOSIT_BASE = 80_000_000.0
BASE_DEPOSIT_FLOW = 60_000.0
BASE_LENDING_REVENUE = 90_000.0
OPERATING_COST = 100_000.0
DEPOSIT_SENSITIVITY = 0.15
LENDING_SENSITIVITY = 0.12
VOLATILITY = 150_000.0
UNCERTAINTY_VOLATILITY_MULTIPLIER = 2.5
CYCLE_SHIFT_PROBABILITY = 0.03

# cycle -> {deposit, lending, cost}
CYCLE_MULTIPLIERS = {
    "growth": {"deposit": 1.2, "lending": 1.3, "cost": 0.9},
    "recession": {"deposit": 0.6, "lending": 0.7, "cost": 1.2},
    "crisis": {"deposit": -0.8, "lending": 0.3, "cost": 1.6},
}

# === Random events ===
EVENT_INTERVAL_SECONDS = _env_float("EVENT_INTERVAL_SECONDS", 120.0)
EVENT_COUNTDOWN_SECONDS = 30
EVENT_COUNTDOWN_TICK_SECONDS = 1.0

# === Geopolitical alerts ===
GEOPOLITICAL_ALERT_PROBABILITY = 0.1
GEOPOLITICAL_ALERT_DELAY = 2.0
CRITICAL_CAPITAL_RATIO = 0.2
WARNING_CAPITAL_RATIO = 0.4
SUCCESS_CAPITAL_RATIO = 0.8
ALERT_COOLDOWN_SECONDS = {
    "critical": 60.0,
    "warning": 90.0,
    "success": 120.0,
    "info": 180.0,
}
MAX_ALERTS = 20

# === Scenario service ===
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
SCENARIO_MODEL = os.getenv("SCENARIO_MODEL", "claude-sonnet-4-20250514")
SCAM_PROBABILITY = 0.4
MAX_ACTIVITY_LOG = 200
