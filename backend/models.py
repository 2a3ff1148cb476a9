"""
Fraud Desk data models.

Plain dataclasses for everything the engine owns or hands out:
- Scenario (supplied by the scenario service, immutable once issued)
- ResolvedCase / DayStats / DailyReport (decision bookkeeping)
- EconomyState / SessionState (engine-owned state, snapshotted for readers)
- SystemAlert / GameSummary
"""

import uuid
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import List, Optional


# =============================================================================
# ENUMS
# =============================================================================

class Phase(Enum):
    """Session phases of the decision state machine."""
    ONBOARDING = "onboarding"
    RATE_SETTING = "rate_setting"
    IN_ROUND = "in_round"
    END_OF_DAY = "end_of_day"
    GAME_OVER = "game_over"


class EconomicCycle(Enum):
    """Macro-economic regime modulating the gradual capital flows."""
    GROWTH = "growth"
    RECESSION = "recession"
    CRISIS = "crisis"


class Decision(Enum):
    APPROVED = "approved"
    DENIED = "denied"


class AlertSeverity(Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    SUCCESS = "success"
    INFO = "info"


# =============================================================================
# SCENARIOS AND CASES
# =============================================================================

# camelCase keys as emitted by the scenario model -> dataclass field names
_SCENARIO_KEY_MAP = {
    "customerName": "customer_name",
    "phoneNumber": "phone_number",
    "initialMessage": "initial_message",
    "transactionType": "transaction_type",
    "isScam": "is_scam",
    "scamRationale": "scam_rationale",
    "initialMessageEnglish": "initial_message_english",
    "suggestedPrompts": "suggested_prompts",
    "cybersecurityTip": "cybersecurity_tip",
    "id": "scenario_id",
}


@dataclass(frozen=True)
class Scenario:
    """One customer request presented to the analyst."""
    is_scam: bool
    customer_name: str
    phone_number: str = ""
    initial_message: str = ""
    transaction_type: str = ""
    details: str = ""
    scam_rationale: str = ""
    personality: str = ""
    language: str = "English"
    initial_message_english: str = ""
    suggested_prompts: tuple = ()
    cybersecurity_tip: str = ""
    scenario_id: str = field(default_factory=lambda: uuid.uuid4().hex[:9])

    def to_dict(self) -> dict:
        result = asdict(self)
        result["suggested_prompts"] = list(self.suggested_prompts)
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "Scenario":
        """Build a scenario from snake_case or camelCase keys, ignoring extras."""
        known = set(cls.__dataclass_fields__)
        kwargs = {}
        for key, value in data.items():
            name = _SCENARIO_KEY_MAP.get(key, key)
            if name in known:
                kwargs[name] = value
        if "is_scam" not in kwargs or "customer_name" not in kwargs:
            raise ValueError("Scenario requires is_scam and customer_name")
        kwargs["is_scam"] = bool(kwargs["is_scam"])
        kwargs["suggested_prompts"] = tuple(kwargs.get("suggested_prompts") or ())
        if not kwargs.get("scenario_id"):
            kwargs.pop("scenario_id", None)
        return cls(**kwargs)


@dataclass(frozen=True)
class ResolvedCase:
    """A decided case. Never mutated after creation."""
    scenario: Scenario
    player_decision: Decision
    is_correct: bool
    case_index: int
    capital_impact: float = 0.0

    def to_dict(self) -> dict:
        return {
            "scenario": self.scenario.to_dict(),
            "player_decision": self.player_decision.value,
            "is_correct": self.is_correct,
            "case_index": self.case_index,
            "capital_impact": self.capital_impact,
        }


@dataclass
class DayStats:
    correct: int = 0
    incorrect: int = 0
    capital_lost: float = 0.0

    @property
    def total(self) -> int:
        return self.correct + self.incorrect

    def copy(self) -> "DayStats":
        return DayStats(self.correct, self.incorrect, self.capital_lost)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class DailyReport:
    """End-of-day snapshot appended once per finished (or interrupted) day."""
    day: int
    stats: DayStats
    cases: tuple
    final_capital: float
    economic_events: tuple = ()

    def to_dict(self) -> dict:
        return {
            "day": self.day,
            "stats": self.stats.to_dict(),
            "cases": [c.to_dict() for c in self.cases],
            "final_capital": self.final_capital,
            "economic_events": list(self.economic_events),
        }


# =============================================================================
# ENGINE STATE
# =============================================================================

@dataclass
class ActiveEvent:
    """A time-boxed market shock currently counting down."""
    name: str
    remaining_seconds: int
    message: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class EconomyState:
    capital: float
    capital_history: List[float] = field(default_factory=list)
    is_leaking: bool = False
    interest_rate: float = 4.5
    rate_locked: bool = False
    economic_cycle: EconomicCycle = EconomicCycle.GROWTH
    active_event: Optional[ActiveEvent] = None
    last_event_message: str = ""

    def to_dict(self) -> dict:
        return {
            "capital": self.capital,
            "capital_history": list(self.capital_history),
            "is_leaking": self.is_leaking,
            "interest_rate": self.interest_rate,
            "rate_locked": self.rate_locked,
            "economic_cycle": self.economic_cycle.value,
            "active_event": self.active_event.to_dict() if self.active_event else None,
            "last_event_message": self.last_event_message,
        }


@dataclass
class SessionState:
    current_day: int = 1
    cases_today: int = 0
    day_stats: DayStats = field(default_factory=DayStats)
    daily_reports: List[DailyReport] = field(default_factory=list)
    phase: Phase = Phase.ONBOARDING
    total_cases_resolved: int = 0  # global case index, drives mitigation cooldown
    mitigation_cooldown_until: int = 0
    paused: bool = False

    def to_dict(self) -> dict:
        return {
            "current_day": self.current_day,
            "cases_today": self.cases_today,
            "day_stats": self.day_stats.to_dict(),
            "daily_reports": [r.to_dict() for r in self.daily_reports],
            "phase": self.phase.value,
            "total_cases_resolved": self.total_cases_resolved,
            "mitigation_cooldown_until": self.mitigation_cooldown_until,
            "paused": self.paused,
        }


@dataclass
class SystemAlert:
    """Narrative alert surfaced to the player (geopolitical news, etc.)."""
    alert_id: int
    message: str
    severity: AlertSeverity
    created_at: float

    def to_dict(self) -> dict:
        return {
            "alert_id": self.alert_id,
            "message": self.message,
            "severity": self.severity.value,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class GameSummary:
    """Aggregate statistics presented once the game is over."""
    days_played: int
    total_cases: int
    total_correct: int
    total_incorrect: int
    accuracy: float  # percentage, 0..100
    total_capital_lost: float
    final_capital: float
    best_day: Optional[int] = None  # most correct decisions
    worst_day: Optional[int] = None  # most capital lost

    def to_dict(self) -> dict:
        return asdict(self)
