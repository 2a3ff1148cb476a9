"""
Geopolitical alert trigger.

Classifies capital (as a fraction of the maximum) into a band and, when the
band's severity is off cooldown, picks a narrative headline for it. The
stable mid-range band never produces an alert, whatever the cooldowns say.

The info severity has no capital band; the engine uses its cooldown to
throttle market event announcements.
"""

import random
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import config
from models import AlertSeverity

STABLE = "stable"

GEOPOLITICAL_MESSAGES = {
    AlertSeverity.CRITICAL: [
        "Border tensions erupt into open conflict. Capital flight accelerates and interbank lending freezes.",
        "Sanctions cut off a major trading partner overnight. Liquidity desks report severe strain.",
        "Emergency summit fails. Markets brace for a prolonged energy embargo.",
    ],
    AlertSeverity.WARNING: [
        "Diplomatic talks stall between major economies. Investors are moving to safe havens.",
        "Shipping lanes disrupted by regional unrest. Commodity prices are spiking.",
        "Election uncertainty abroad weighs on foreign exchange reserves.",
    ],
    AlertSeverity.SUCCESS: [
        "Landmark trade agreement signed. Cross-border flows are surging.",
        "Peace accord reached in a long-running dispute. Risk appetite returns to the markets.",
        "International investors name the bank a regional safe haven.",
    ],
}


@dataclass
class AlertCooldowns:
    """Independent per-severity cooldown stamps (seconds, monotonic clock)."""
    durations: Dict[str, float] = field(default_factory=lambda: dict(config.ALERT_COOLDOWN_SECONDS))
    last_fired: Dict[str, float] = field(default_factory=dict)

    def is_ready(self, severity: AlertSeverity, now: float) -> bool:
        last = self.last_fired.get(severity.value)
        if last is None:
            return True
        return now - last >= self.durations.get(severity.value, 0.0)

    def stamp(self, severity: AlertSeverity, now: float) -> None:
        self.last_fired[severity.value] = now


def classify_capital(capital: float, max_capital: float):
    """Return the AlertSeverity band for the capital level, or STABLE."""
    ratio = capital / max_capital if max_capital > 0 else 0.0
    if ratio < config.CRITICAL_CAPITAL_RATIO:
        return AlertSeverity.CRITICAL
    if ratio < config.WARNING_CAPITAL_RATIO:
        return AlertSeverity.WARNING
    if ratio >= config.SUCCESS_CAPITAL_RATIO:
        return AlertSeverity.SUCCESS
    return STABLE


def evaluate_geopolitical_alert(
    capital: float,
    max_capital: float,
    cooldowns: AlertCooldowns,
    now: float,
    rng: random.Random,
) -> Optional[Tuple[AlertSeverity, str]]:
    """Pick an alert for the current capital band, stamping its cooldown.

    Returns None for the stable band or when the band is cooling down.
    """
    band = classify_capital(capital, max_capital)
    if band == STABLE:
        return None
    if not cooldowns.is_ready(band, now):
        return None
    message = rng.choice(GEOPOLITICAL_MESSAGES[band])
    cooldowns.stamp(band, now)
    return band, message
