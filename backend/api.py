"""FastAPI server for the Fraud Desk game."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

import config
from engine import GameEngine
from logger import setup_logger
from scenario_service import clear_activity_log, get_activity_log

logger = setup_logger("api")


# === Centralized Error Handling ===

class APIError(Exception):
    """Base API error with status code and message."""
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found error."""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ValidationError(APIError):
    """Input validation error."""
    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, status_code=422)


class ConflictError(APIError):
    """Intent not allowed in the current game phase."""
    def __init__(self, message: str = "Not allowed right now"):
        super().__init__(message, status_code=409)


def validate_day(day: int) -> int:
    """Validate a day number. Raises ValidationError if invalid."""
    if day < 1:
        raise ValidationError("day must be 1 or greater")
    return day


def create_app(engine: Optional[GameEngine] = None) -> FastAPI:
    """Build the API around a game engine (a Claude-backed one by default)."""
    if engine is None:
        from scenario_service import ClaudeScenarioProvider
        engine = GameEngine(provider=ClaudeScenarioProvider())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.engine.shutdown()
        logger.info("Engine timers shut down")

    app = FastAPI(title="Fraud Desk API", version="1.0.0", lifespan=lifespan)
    app.state.engine = engine

    # Enable CORS for the front end
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """Handle all APIError subclasses with consistent JSON response."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "error", "message": exc.message}
        )

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        """Handle unexpected errors with consistent JSON response."""
        logger.error(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": "Internal server error"}
        )

    _register_routes(app)
    return app


def get_engine(request: Request) -> GameEngine:
    return request.app.state.engine


def _intent(result: dict) -> dict:
    """Ignored intents are reported as 409 so the front end can tell."""
    if result.get("status") == "ignored":
        raise ConflictError(result.get("message", "Not allowed right now"))
    return result


# Pydantic models for request/response
class RateSet(BaseModel):
    rate: float

    @field_validator('rate')
    @classmethod
    def validate_rate_field(cls, v: float) -> float:
        if v != v or v in (float("inf"), float("-inf")):
            raise ValueError('rate must be a finite number')
        return v


class RateAdjust(BaseModel):
    delta: float

    @field_validator('delta')
    @classmethod
    def validate_delta_field(cls, v: float) -> float:
        span = config.MAX_RATE - config.MIN_RATE
        if v != v or abs(v) > span:
            raise ValueError(f'delta must be within +/-{span}')
        return v


class DecisionSubmit(BaseModel):
    approved: bool


class ChatMessage(BaseModel):
    message: str

    @field_validator('message')
    @classmethod
    def validate_message_field(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError('message must not be empty')
        if len(v) > 1000:
            raise ValueError('message must be at most 1000 characters')
        return v


def _register_routes(app: FastAPI):

    @app.get("/api/health")
    async def health_check():
        return {"status": "ok"}

    # Read side

    @app.get("/game/status")
    async def game_status(engine: GameEngine = Depends(get_engine)):
        """Snapshot of economy, session, open case and alerts."""
        return engine.get_status()

    @app.get("/game/cases")
    async def resolved_cases(engine: GameEngine = Depends(get_engine)):
        return {"status": "success", "cases": engine.get_resolved_cases()}

    @app.get("/game/reports")
    async def daily_reports(engine: GameEngine = Depends(get_engine)):
        return {"status": "success", "reports": engine.get_daily_reports()}

    @app.get("/game/summary")
    async def game_summary(engine: GameEngine = Depends(get_engine)):
        summary = engine.get_summary()
        if summary is None:
            raise NotFoundError("Game is still in progress")
        return {"status": "success", "summary": summary}

    @app.get("/game/newsletter/{day}")
    async def newsletter(day: int, engine: GameEngine = Depends(get_engine)):
        content = engine.get_newsletter(validate_day(day))
        if content is None:
            raise NotFoundError(f"No report for day {day}")
        return {"status": "success", "day": day, "content": content}

    # Intents

    @app.post("/game/onboarding/complete")
    async def complete_onboarding(engine: GameEngine = Depends(get_engine)):
        return _intent(engine.complete_onboarding())

    @app.post("/game/rate")
    async def set_rate(update: RateSet, engine: GameEngine = Depends(get_engine)):
        """Lock today's interest rate and start the round."""
        result = _intent(engine.set_interest_rate(update.rate))
        await engine.wait_for_case()
        return result

    @app.put("/game/rate")
    async def adjust_rate(update: RateAdjust, engine: GameEngine = Depends(get_engine)):
        return _intent(engine.adjust_interest_rate(update.delta))

    @app.post("/game/decision")
    async def submit_decision(decision: DecisionSubmit, engine: GameEngine = Depends(get_engine)):
        return _intent(await engine.submit_decision(decision.approved))

    @app.post("/game/mitigation")
    async def dispatch_mitigation(engine: GameEngine = Depends(get_engine)):
        return _intent(engine.dispatch_mitigation())

    @app.post("/game/day/advance")
    async def advance_day(engine: GameEngine = Depends(get_engine)):
        return _intent(engine.acknowledge_end_of_day())

    @app.post("/game/pause")
    async def pause_round(engine: GameEngine = Depends(get_engine)):
        return _intent(engine.pause())

    @app.post("/game/resume")
    async def resume_round(engine: GameEngine = Depends(get_engine)):
        return _intent(engine.resume())

    @app.post("/game/reset")
    async def reset_game(engine: GameEngine = Depends(get_engine)):
        return engine.reset()

    @app.post("/game/chat")
    async def chat(msg: ChatMessage, engine: GameEngine = Depends(get_engine)):
        return _intent(await engine.send_chat_message(msg.message))

    @app.delete("/game/alerts/{alert_id}")
    async def dismiss_alert(alert_id: int, engine: GameEngine = Depends(get_engine)):
        result = engine.dismiss_alert(alert_id)
        if result["status"] == "error":
            raise NotFoundError(result["message"])
        return result

    # Debug console

    @app.get("/debug/activity")
    async def get_debug_activity(activity_type: Optional[str] = None, limit: int = 100):
        """Get the scenario service activity log, most recent first."""
        return {"status": "success", "activities": get_activity_log(activity_type, limit)}

    @app.delete("/debug/activity")
    async def clear_debug_activity():
        clear_activity_log()
        return {"status": "success"}


api = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(api, host="0.0.0.0", port=8000)
