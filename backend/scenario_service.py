"""
Scenario service - Claude-backed customer generation for the fraud desk.

Produces one Scenario per case and in-character chat replies. Generation is
fallible: any error yields a benign fallback scenario (never a scam) or a
neutral chat line, so case progression is never blocked.
"""

import json
import random
import re
import threading
import time
from typing import List, Optional

import anthropic

import config
from logger import setup_logger
from models import Scenario

logger = setup_logger("scenario_service")

CHAT_FALLBACK_REPLY = "Sorry, I'm having trouble connecting right now. Can you repeat that?"

# Activity log for debugging calls (in-memory, capped)
_activity_log = []
_activity_lock = threading.Lock()


def log_activity(
    activity_type: str,
    action: str = "",
    details: str = "",
    duration_ms: int = None,
    success: bool = True,
    error: str = None
) -> None:
    """Record a scenario-service call."""
    import datetime
    with _activity_lock:
        entry = {
            "timestamp": datetime.datetime.now().isoformat(),
            "type": activity_type,
            "action": action,
            "details": details[:200] if details else "",  # Truncate long details
            "duration_ms": duration_ms,
            "success": success,
            "error": error
        }
        _activity_log.append(entry)
        # Keep only last MAX_ACTIVITY_LOG entries
        if len(_activity_log) > config.MAX_ACTIVITY_LOG:
            _activity_log.pop(0)


def get_activity_log(activity_type: str = None, limit: int = 100) -> list:
    """Get activity log entries, most recent first."""
    with _activity_lock:
        filtered = _activity_log.copy()
    if activity_type:
        filtered = [e for e in filtered if e.get("type") == activity_type]
    return list(reversed(filtered[-limit:]))


def clear_activity_log() -> None:
    with _activity_lock:
        _activity_log.clear()


def fallback_scenario() -> Scenario:
    """Deterministic placeholder used whenever generation fails."""
    message = ("Our customer systems are experiencing a temporary error. "
               "This request is a routine balance inquiry.")
    return Scenario(
        is_scam=False,
        customer_name="System Notice",
        phone_number="N/A",
        initial_message=message,
        transaction_type="Account Balance Inquiry",
        details="Routine balance inquiry (system error placeholder)",
        scam_rationale="System error placeholder - treated as a legitimate routine request.",
        personality="Calm and professional",
        language="English",
        initial_message_english=message,
        suggested_prompts=("What is your full name?", "What is your account number?"),
        cybersecurity_tip="When systems are degraded, fall back to documented verification procedures.",
        scenario_id="fallback",
    )


def extract_json(text: str) -> dict:
    """Pull the first JSON object out of a model response (fences tolerated)."""
    fenced = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", text, re.DOTALL)
    if fenced:
        return json.loads(fenced.group(1))
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("No JSON object found in response")
    return json.loads(text[start:end + 1])


class ScenarioProvider:
    """Interface the engine talks to. Implementations must not raise."""

    def generate_scenario(self) -> Scenario:
        raise NotImplementedError

    def chat_reply(self, scenario: Scenario, history: List[dict], message: str) -> str:
        raise NotImplementedError


# =============================================================================
# PROMPTS
# =============================================================================

SCENARIO_SYSTEM_PROMPT = """You write training scenarios for a bank fraud-analyst game.
Each scenario is one customer contacting the transaction desk. Respond with a single
JSON object and nothing else."""

SCENARIO_USER_PROMPT = """Create one customer request. This scenario {scam_clause}.

Return JSON with exactly these keys:
- customerName: plausible full name
- phoneNumber: phone number the customer claims (scammers may use one that does not match records)
- initialMessage: the customer's opening chat message
- transactionType: e.g. "Wire Transfer", "Password Reset", "Account Unlock", "Update Contact Info"
- details: short summary of the request (amounts, recipients)
- isScam: {is_scam}
- scamRationale: why this is a scam, or why it is legitimate (shown to the player as feedback)
- personality: short persona description for chat consistency
- language: language of initialMessage (default "English")
- initialMessageEnglish: English translation of initialMessage
- suggestedPrompts: array of 3 short verification questions an analyst could ask
- cybersecurityTip: one actionable tip related to this scenario"""

CHAT_SYSTEM_PROMPT = """You are roleplaying as a character in a financial cybersecurity game.
Your core personality is: {personality}.
Keep your responses concise and in character. Do not reveal you are an AI.
The user is a bank transaction analyst handling your request: {details}
{goal}"""

SCAMMER_GOAL = """YOUR SECRET GOAL: YOU ARE A FINANCIAL SCAMMER.
Trick the analyst into approving your fraudulent request.
- If they ask for information you don't have, be evasive or provide fake details.
- If they become suspicious, use urgency, frustration, feigned confusion or appeals to authority.
- Maintain your cover personality unless pressed."""

CUSTOMER_GOAL = """YOUR GOAL: YOU ARE A LEGITIMATE BANK CLIENT.
You genuinely need help with your request. Be polite and cooperative.
If the analyst is rude or off-topic, become more impatient. Show it through tone."""


class ClaudeScenarioProvider(ScenarioProvider):
    """Scenario and chat generation through the Anthropic API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = config.SCENARIO_MODEL,
        scam_probability: float = config.SCAM_PROBABILITY,
        rng: Optional[random.Random] = None,
    ):
        self.model = model
        self.scam_probability = scam_probability
        self.rng = rng or random.Random()
        try:
            self.client = anthropic.Anthropic(api_key=api_key or config.ANTHROPIC_API_KEY)
        except Exception as e:
            logger.error(f"Anthropic client unavailable, using fallback scenarios: {e}")
            self.client = None

    def _complete(self, system: str, messages: List[dict], max_tokens: int) -> str:
        response = self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            system=system,
            messages=messages
        )
        return response.content[0].text

    def generate_scenario(self) -> Scenario:
        if self.client is None:
            log_activity("scenario", "generate", "No client configured", success=False, error="no client")
            return fallback_scenario()

        # Ground truth is decided here, not by the model
        is_scam = self.rng.random() < self.scam_probability
        scam_clause = "MUST be a scam attempt" if is_scam else "MUST be a legitimate request from a real client"
        prompt = SCENARIO_USER_PROMPT.format(scam_clause=scam_clause, is_scam=str(is_scam).lower())

        start_time = time.time()
        try:
            text = self._complete(SCENARIO_SYSTEM_PROMPT, [{"role": "user", "content": prompt}], max_tokens=1024)
            data = extract_json(text)
            data["isScam"] = is_scam
            data.pop("is_scam", None)
            scenario = Scenario.from_dict(data)
        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Scenario generation failed, using fallback: {e}")
            log_activity("scenario", "generate", "fallback", duration_ms=duration_ms, success=False, error=str(e))
            return fallback_scenario()

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Scenario generated: {scenario.customer_name} ({scenario.transaction_type}, scam={scenario.is_scam})")
        log_activity("scenario", "generate", scenario.customer_name, duration_ms=duration_ms, success=True)
        return scenario

    def chat_reply(self, scenario: Scenario, history: List[dict], message: str) -> str:
        if self.client is None:
            return CHAT_FALLBACK_REPLY

        system = CHAT_SYSTEM_PROMPT.format(
            personality=scenario.personality or "Ordinary bank customer",
            details=scenario.details or scenario.transaction_type,
            goal=SCAMMER_GOAL if scenario.is_scam else CUSTOMER_GOAL,
        )
        messages = build_chat_messages(history, message)

        start_time = time.time()
        try:
            reply = self._complete(system, messages, max_tokens=300)
        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Chat reply failed: {e}")
            log_activity("chat", "reply", message, duration_ms=duration_ms, success=False, error=str(e))
            return CHAT_FALLBACK_REPLY

        duration_ms = int((time.time() - start_time) * 1000)
        log_activity("chat", "reply", f"{message[:50]} -> {reply[:50]}", duration_ms=duration_ms, success=True)
        return reply.strip()


def build_chat_messages(history: List[dict], message: str) -> List[dict]:
    """Convert desk chat history into alternating Anthropic messages.

    History entries are {"sender": "user"|"customer", "text": ...}. The
    conversation must open with a user turn and roles must alternate, so a
    greeting is prepended when the customer spoke first and consecutive turns
    from the same side are merged.
    """
    turns = [
        {"role": "user" if entry.get("sender") == "user" else "assistant", "content": entry.get("text", "")}
        for entry in history
    ]
    turns.append({"role": "user", "content": message})
    if turns[0]["role"] != "user":
        turns.insert(0, {"role": "user", "content": "Hello, you've reached the transaction desk."})

    merged = []
    for turn in turns:
        if merged and merged[-1]["role"] == turn["role"]:
            merged[-1]["content"] += "\n" + turn["content"]
        else:
            merged.append(dict(turn))
    return merged
