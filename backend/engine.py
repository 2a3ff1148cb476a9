"""
Fraud Desk Engine - game session and economy simulation.

Owns the whole game state and drives it:
- decision scoring and case/day progression (Onboarding -> RateSetting ->
  InRound -> EndOfDay -> ... -> GameOver)
- the interest rate controller (settable once per day)
- timer-driven streams: economy tick, random market events, event countdown,
  leak drain and delayed geopolitical alerts

Everything runs on one asyncio loop. Public intents are synchronous and
return a result dict; scenario generation runs in a worker thread and its
result is discarded if the session moved on in the meantime.
"""

import asyncio
import random
import time
from typing import Callable, List, Optional

import config
from alerts import AlertCooldowns, evaluate_geopolitical_alert
from economy import compute_cycle_change, drift_cycle, should_sample_geopolitics
from events import compute_event_impact, event_cycle, event_message, event_name, select_event
from ledger import CapitalLedger
from logger import setup_logger
from models import (
    ActiveEvent,
    AlertSeverity,
    Decision,
    DayStats,
    EconomicCycle,
    EconomyState,
    GameSummary,
    Phase,
    ResolvedCase,
    Scenario,
    SessionState,
    SystemAlert,
)
from reports import build_daily_report, format_newsletter, summarize_game
from scenario_service import CHAT_FALLBACK_REPLY, ScenarioProvider, fallback_scenario
from timers import TimerMultiplexer

logger = setup_logger("engine")

# Timer names
CYCLE_TIMER = "economy_cycle"
EVENT_TIMER = "market_events"
COUNTDOWN_TIMER = "event_countdown"
LEAK_TIMER = "leak_drain"
ALERT_TIMER = "geopolitical_alert"


def _ignored(message: str) -> dict:
    return {"status": "ignored", "message": message}


class GameEngine:
    """Single owner of EconomyState and SessionState for one game session."""

    def __init__(
        self,
        provider: ScenarioProvider,
        rng: Optional[random.Random] = None,
        timers: Optional[TimerMultiplexer] = None,
        clock: Callable[[], float] = time.monotonic,
        event_interval: float = config.EVENT_INTERVAL_SECONDS,
        cycle_interval: float = config.CYCLE_TICK_SECONDS,
    ):
        self.provider = provider
        self.rng = rng or random.Random()
        self.timers = timers or TimerMultiplexer()
        self.clock = clock
        self.event_interval = event_interval
        self.cycle_interval = cycle_interval
        self._case_task: Optional[asyncio.Task] = None
        self._case_token = 0
        self._init_state()

    def _init_state(self):
        self.ledger = CapitalLedger()
        self.economy = EconomyState(
            capital=self.ledger.capital,
            capital_history=list(self.ledger.history),
            interest_rate=config.BASE_RATE,
        )
        self.session = SessionState()
        self.current_scenario: Optional[Scenario] = None
        self.resolved_cases: List[ResolvedCase] = []
        self.chat_history: List[dict] = []
        self.alerts: List[SystemAlert] = []
        self.cooldowns = AlertCooldowns()
        self.summary: Optional[GameSummary] = None
        self.last_result: Optional[dict] = None
        self._alert_seq = 0
        self._day_events: List[str] = []
        self._day_reported = False

    # =========================================================================
    # Capital
    # =========================================================================

    def _sync_capital(self):
        self.economy.capital = self.ledger.capital
        self.economy.capital_history = list(self.ledger.history)

    def _adjust_capital(self, delta: float, reason: str) -> float:
        """Route a change through the ledger. Returns the delta actually applied."""
        before = self.ledger.capital
        self.ledger.adjust(delta, reason)
        self._sync_capital()
        return self.ledger.capital - before

    def _apply_loss(self, amount: float, reason: str) -> float:
        """Deduct capital and count it toward today's losses."""
        applied = self._adjust_capital(-amount, reason)
        self.session.day_stats.capital_lost += -applied
        return applied

    def _check_depletion(self) -> bool:
        """Enter GameOver the first time the ledger hits zero."""
        if not self.ledger.reached_zero():
            return False
        if self.session.phase != Phase.GAME_OVER:
            self._enter_game_over()
        return True

    # =========================================================================
    # Phase transitions
    # =========================================================================

    def complete_onboarding(self) -> dict:
        if self.session.phase != Phase.ONBOARDING:
            return _ignored("Onboarding already completed")
        self.session.phase = Phase.RATE_SETTING
        logger.info("Onboarding complete, awaiting interest rate for day 1")
        return {"status": "success", "phase": self.session.phase.value}

    def _start_round(self):
        self.session.phase = Phase.IN_ROUND
        self.session.paused = False
        logger.info(f"Day {self.session.current_day} round started at {self.economy.interest_rate:.1f}%")
        self._resume_timers()
        self._request_next_case()

    def _resume_timers(self):
        """(Re)start every timer the active round needs."""
        self.timers.start_repeating(CYCLE_TIMER, self.cycle_interval, self._economy_tick)
        self.timers.start_repeating(EVENT_TIMER, self.event_interval, self._fire_random_event)
        event = self.economy.active_event
        if event is not None and event.remaining_seconds > 0:
            self.timers.start_repeating(COUNTDOWN_TIMER, config.EVENT_COUNTDOWN_TICK_SECONDS, self._countdown_tick)
        if self.economy.is_leaking:
            self.timers.start_repeating(LEAK_TIMER, config.LEAK_TICK_SECONDS, self._leak_tick)

    def _suspend_timers(self):
        """Tear down all round timers. Countdown and leak state is kept for resume."""
        self.timers.cancel_all()

    def _enter_end_of_day(self):
        self._suspend_timers()
        self._cancel_case_fetch()
        self.session.phase = Phase.END_OF_DAY
        self._record_day_report()
        stats = self.session.day_stats
        logger.info(f"End of day {self.session.current_day}: {stats.correct} correct, "
                    f"{stats.incorrect} incorrect, ${stats.capital_lost:,.0f} lost")

    def _record_day_report(self):
        if self._day_reported:
            return
        report = build_daily_report(
            self.session.current_day,
            self.session.day_stats,
            self.resolved_cases,
            self.economy.capital,
            self._day_events,
        )
        self.session.daily_reports.append(report)
        self._day_reported = True

    def _enter_game_over(self):
        self._suspend_timers()
        self._cancel_case_fetch()
        self.economy.is_leaking = False
        self.economy.active_event = None
        self.current_scenario = None
        self.session.phase = Phase.GAME_OVER
        self.session.paused = False
        self._record_day_report()
        self.summary = summarize_game(self.session.daily_reports, self.economy.capital)
        logger.warning(f"GAME OVER on day {self.session.current_day}: capital exhausted "
                       f"after {self.summary.total_cases} cases ({self.summary.accuracy}% accuracy)")

    def start_next_day(self) -> dict:
        """Close out the finished day and move to the next day's rate setting."""
        if self.session.phase != Phase.END_OF_DAY:
            return _ignored("The current day has not ended")
        self.session.current_day += 1
        self.session.cases_today = 0
        self.session.day_stats = DayStats()
        self.resolved_cases = []
        self.chat_history = []
        self.last_result = None
        self._day_events = []
        self._day_reported = False
        self.economy.rate_locked = False
        self.session.phase = Phase.RATE_SETTING
        logger.info(f"Day {self.session.current_day} begins, interest rate unlocked")
        return {"status": "success", "day": self.session.current_day, "phase": self.session.phase.value}

    def acknowledge_end_of_day(self) -> dict:
        return self.start_next_day()

    def pause(self) -> dict:
        if self.session.phase != Phase.IN_ROUND or self.session.paused:
            return _ignored("No running round to pause")
        self.session.paused = True
        self._suspend_timers()
        logger.info("Round paused")
        return {"status": "success", "paused": True}

    def resume(self) -> dict:
        if self.session.phase != Phase.IN_ROUND or not self.session.paused:
            return _ignored("Round is not paused")
        self.session.paused = False
        self._resume_timers()
        logger.info("Round resumed")
        return {"status": "success", "paused": False}

    def reset(self) -> dict:
        """Discard the session and start over from onboarding."""
        self._suspend_timers()
        self._cancel_case_fetch()
        self._init_state()
        logger.info("Session reset")
        return {"status": "success", "phase": self.session.phase.value}

    def shutdown(self):
        """Cancel everything scheduled by this engine."""
        self._suspend_timers()
        self._cancel_case_fetch()

    # =========================================================================
    # Interest rate controller
    # =========================================================================

    @staticmethod
    def _clamp_rate(rate: float) -> float:
        return round(max(config.MIN_RATE, min(config.MAX_RATE, rate)), 1)

    def adjust_interest_rate(self, delta: float) -> dict:
        """Nudge the rate while it is still unlocked."""
        if self.economy.rate_locked or self.session.phase != Phase.RATE_SETTING:
            return _ignored("Interest rate is locked")
        self.economy.interest_rate = self._clamp_rate(self.economy.interest_rate + delta)
        return {"status": "success", "interest_rate": self.economy.interest_rate, "rate_locked": False}

    def set_interest_rate(self, rate: float) -> dict:
        """Set and lock today's rate, then start the round."""
        if self.economy.rate_locked or self.session.phase != Phase.RATE_SETTING:
            return _ignored("Interest rate is locked")
        self.economy.interest_rate = self._clamp_rate(rate)
        self.economy.rate_locked = True
        self._day_events.append(f"Interest rate locked at {self.economy.interest_rate:.1f}%")
        logger.info(f"Interest rate set to {self.economy.interest_rate:.1f}% and locked")
        self._start_round()
        return {
            "status": "success",
            "interest_rate": self.economy.interest_rate,
            "rate_locked": True,
            "phase": self.session.phase.value,
        }

    # =========================================================================
    # Cases and decisions
    # =========================================================================

    def _request_next_case(self):
        self._cancel_case_fetch()
        self.current_scenario = None
        self.chat_history = []
        self._case_token += 1
        self._case_task = asyncio.get_running_loop().create_task(self._open_next_case(self._case_token))

    def _cancel_case_fetch(self):
        self._case_token += 1
        if self._case_task is not None and not self._case_task.done():
            self._case_task.cancel()
        self._case_task = None

    async def _open_next_case(self, token: int):
        try:
            scenario = await asyncio.to_thread(self.provider.generate_scenario)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Scenario provider failed, using fallback: {e}")
            scenario = fallback_scenario()

        if token != self._case_token or self.session.phase != Phase.IN_ROUND:
            logger.debug("Discarding scenario fetched for a stale case")
            return
        self.current_scenario = scenario
        self.chat_history = [{"sender": "customer", "text": scenario.initial_message}]
        logger.info(f"Case opened: {scenario.customer_name} - {scenario.transaction_type}")

    async def wait_for_case(self) -> Optional[Scenario]:
        """Await the in-flight scenario fetch, if any, and return the open case."""
        task = self._case_task
        if task is not None:
            # asyncio.wait never raises for the fetch itself being cancelled,
            # but our own cancellation still propagates
            await asyncio.wait({task})
        return self.current_scenario

    def decide(self, approved: bool) -> dict:
        """Score the open case and advance the day."""
        if self.session.phase != Phase.IN_ROUND:
            return _ignored(f"No round in progress (phase: {self.session.phase.value})")
        if self.session.paused:
            return _ignored("Round is paused")
        scenario = self.current_scenario
        if scenario is None:
            return _ignored("No open case")

        self.current_scenario = None
        stats = self.session.day_stats
        correct = (approved and not scenario.is_scam) or (not approved and scenario.is_scam)
        start_leak = False

        if correct:
            stats.correct += 1
            impact = self._adjust_capital(config.CORRECT_DECISION_REWARD, "correct decision")
        else:
            stats.incorrect += 1
            if scenario.is_scam:
                penalty = self.rng.uniform(config.SCAM_PENALTY_MIN, config.SCAM_PENALTY_MAX)
                impact = self._apply_loss(penalty, "scam approved")
                start_leak = True
            else:
                impact = self._apply_loss(config.LEGIT_DENIAL_PENALTY, "legitimate customer denied")

        case = ResolvedCase(
            scenario=scenario,
            player_decision=Decision.APPROVED if approved else Decision.DENIED,
            is_correct=correct,
            case_index=self.session.total_cases_resolved,
            capital_impact=impact,
        )
        self.resolved_cases.append(case)
        self.session.total_cases_resolved += 1
        self.last_result = {
            "is_correct": correct,
            "was_scam": scenario.is_scam,
            "capital_impact": impact,
            "rationale": scenario.scam_rationale,
            "cybersecurity_tip": scenario.cybersecurity_tip,
        }
        logger.info(f"Decision on {scenario.customer_name}: {case.player_decision.value} "
                    f"({'correct' if correct else 'incorrect'}, {impact:+,.0f})")

        if not self._check_depletion():
            if start_leak:
                self._start_leak()
            if self.session.cases_today + 1 >= config.CASES_PER_DAY:
                self._enter_end_of_day()
            else:
                self.session.cases_today += 1
                self._request_next_case()

        return {"status": "success", **self.last_result, "phase": self.session.phase.value}

    async def submit_decision(self, approved: bool) -> dict:
        """Decide and wait for the next case to open."""
        result = self.decide(approved)
        if result["status"] == "success" and self.session.phase == Phase.IN_ROUND:
            await self.wait_for_case()
        return result

    async def send_chat_message(self, message: str) -> dict:
        """Forward an analyst message to the customer and record the reply."""
        scenario = self.current_scenario
        if scenario is None or self.session.phase != Phase.IN_ROUND:
            return _ignored("No open case")
        message = message.strip()
        if not message:
            return _ignored("Empty message")

        history = list(self.chat_history)
        self.chat_history.append({"sender": "user", "text": message})
        try:
            reply = await asyncio.to_thread(self.provider.chat_reply, scenario, history, message)
        except Exception as e:
            logger.error(f"Chat provider failed: {e}")
            reply = CHAT_FALLBACK_REPLY

        if self.current_scenario is not scenario:
            return _ignored("Case closed before the customer replied")
        self.chat_history.append({"sender": "customer", "text": reply})
        return {"status": "success", "reply": reply}

    # =========================================================================
    # Leak and mitigation
    # =========================================================================

    def _start_leak(self):
        self.economy.is_leaking = True
        self.timers.start_repeating(LEAK_TIMER, config.LEAK_TICK_SECONDS, self._leak_tick)
        self._push_alert(AlertSeverity.CRITICAL, "Fraudulent transfer approved. Funds are draining from the bank!")
        logger.warning("Capital leak started")

    def _leak_tick(self):
        if not self.economy.is_leaking or self.session.phase != Phase.IN_ROUND:
            return
        self._apply_loss(config.LEAK_AMOUNT_PER_SECOND * config.LEAK_TICK_SECONDS, "leak")
        self._check_depletion()

    def mitigation_cooldown_remaining(self) -> int:
        """Cases left before IT security can be dispatched again."""
        return max(0, self.session.mitigation_cooldown_until - self.session.total_cases_resolved)

    def dispatch_mitigation(self) -> dict:
        """Send IT security to stop the leak."""
        if self.session.phase == Phase.GAME_OVER:
            return _ignored("Game over")
        remaining = self.mitigation_cooldown_remaining()
        if remaining > 0:
            return {**_ignored("IT security is on cooldown"), "cooldown_remaining": remaining}
        if not self.economy.is_leaking:
            return _ignored("No active leak")

        self.economy.is_leaking = False
        self.timers.cancel(LEAK_TIMER)
        self.session.mitigation_cooldown_until = self.session.total_cases_resolved + config.MITIGATION_COOLDOWN_CASES
        self._push_alert(AlertSeverity.SUCCESS, "IT security contained the breach. The leak has stopped.")
        logger.info(f"Leak mitigated, IT on cooldown for {config.MITIGATION_COOLDOWN_CASES} cases")
        return {"status": "success", "cooldown_remaining": self.mitigation_cooldown_remaining()}

    # =========================================================================
    # Economy streams
    # =========================================================================

    def _round_active(self) -> bool:
        return self.session.phase == Phase.IN_ROUND and not self.session.paused

    def _economy_tick(self):
        if not self._round_active():
            return
        breakdown = compute_cycle_change(
            self.economy.interest_rate, self.economy.economic_cycle, self.rng, self.cycle_interval
        )
        self._adjust_capital(breakdown["net_change"], "economy tick")
        logger.debug(f"Economy tick ({self.economy.economic_cycle.value}): {breakdown['net_change']:+,.0f}")
        if self._check_depletion():
            return

        new_cycle = drift_cycle(self.economy.economic_cycle, self.economy.interest_rate, self.rng)
        if new_cycle != self.economy.economic_cycle:
            self._set_cycle(new_cycle)

        if should_sample_geopolitics(self.rng):
            capital = self.economy.capital
            self.timers.start_once(
                ALERT_TIMER, config.GEOPOLITICAL_ALERT_DELAY, lambda: self._evaluate_geopolitics(capital)
            )

    def _set_cycle(self, cycle: EconomicCycle):
        previous = self.economy.economic_cycle
        self.economy.economic_cycle = cycle
        self._day_events.append(f"Economy shifted from {previous.value} to {cycle.value}")
        logger.info(f"Economic cycle: {previous.value} -> {cycle.value}")

    def _evaluate_geopolitics(self, capital: float):
        if not self._round_active():
            return
        result = evaluate_geopolitical_alert(capital, self.ledger.max_capital, self.cooldowns, self.clock(), self.rng)
        if result is None:
            return
        severity, message = result
        self._push_alert(severity, message)
        self._day_events.append(message)

    def _fire_random_event(self):
        if not self._round_active():
            return
        kind = select_event(self.rng)
        impact = compute_event_impact(kind, self.economy.interest_rate, self.economy.economic_cycle, self.rng)
        applied = self._adjust_capital(impact, event_name(kind))
        message = event_message(kind, applied)
        self.economy.last_event_message = message
        self._day_events.append(message)
        logger.info(f"Market event: {message}")
        if self._check_depletion():
            return

        forced = event_cycle(kind)
        if forced is not None and forced != self.economy.economic_cycle:
            self._set_cycle(forced)

        self._start_event_countdown(ActiveEvent(event_name(kind), config.EVENT_COUNTDOWN_SECONDS, message))

        if self.cooldowns.is_ready(AlertSeverity.INFO, self.clock()):
            self._push_alert(AlertSeverity.INFO, message)
            self.cooldowns.stamp(AlertSeverity.INFO, self.clock())

    def _start_event_countdown(self, event: ActiveEvent):
        # only one active event: drop any running countdown first
        self.timers.cancel(COUNTDOWN_TIMER)
        self.economy.active_event = event
        self.timers.start_repeating(COUNTDOWN_TIMER, config.EVENT_COUNTDOWN_TICK_SECONDS, self._countdown_tick)

    def _countdown_tick(self):
        event = self.economy.active_event
        if event is None:
            self.timers.cancel(COUNTDOWN_TIMER)
            return
        event.remaining_seconds -= 1
        if event.remaining_seconds <= 0:
            self.economy.last_event_message = event.message
            self.economy.active_event = None
            self.timers.cancel(COUNTDOWN_TIMER)

    # =========================================================================
    # Alerts
    # =========================================================================

    def _push_alert(self, severity: AlertSeverity, message: str) -> SystemAlert:
        self._alert_seq += 1
        alert = SystemAlert(self._alert_seq, message, severity, time.time())
        self.alerts.append(alert)
        if len(self.alerts) > config.MAX_ALERTS:
            self.alerts.pop(0)
        return alert

    def dismiss_alert(self, alert_id: int) -> dict:
        for alert in self.alerts:
            if alert.alert_id == alert_id:
                self.alerts.remove(alert)
                return {"status": "success", "alert_id": alert_id}
        return {"status": "error", "message": f"Alert {alert_id} not found"}

    # =========================================================================
    # Read side
    # =========================================================================

    def get_status(self) -> dict:
        session = self.session.to_dict()
        session.pop("daily_reports")
        return {
            "status": "success",
            "economy": self.economy.to_dict(),
            "session": session,
            "scenario": self.current_scenario.to_dict() if self.current_scenario else None,
            "chat_history": list(self.chat_history),
            "last_result": self.last_result,
            "alerts": [a.to_dict() for a in self.alerts],
            "mitigation": {
                "cooldown_remaining": self.mitigation_cooldown_remaining(),
                "available": self.economy.is_leaking and self.mitigation_cooldown_remaining() == 0,
            },
            "days_reported": len(self.session.daily_reports),
        }

    def get_resolved_cases(self) -> List[dict]:
        return [c.to_dict() for c in self.resolved_cases]

    def get_daily_reports(self) -> List[dict]:
        return [r.to_dict() for r in self.session.daily_reports]

    def get_newsletter(self, day: int) -> Optional[str]:
        for report in self.session.daily_reports:
            if report.day == day:
                return format_newsletter(report)
        return None

    def get_summary(self) -> Optional[dict]:
        return self.summary.to_dict() if self.summary else None
