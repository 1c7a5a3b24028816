from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .brain import DiceBrain, sessions_from_dicts
from .config import Settings
from .errors import DiceBrainError
from .models import DiceGroup, GameStateSnapshot, HistoryEntry, PlayerStats

logger = logging.getLogger(__name__)


class DiceGroupIn(BaseModel):
    type: int
    count: int
    results: List[int] = Field(default_factory=list)
    id: str = ""

    def to_domain(self) -> DiceGroup:
        return DiceGroup(type=self.type, count=self.count, results=tuple(self.results), id=self.id)


class DecideReq(BaseModel):
    difficulty: str = "medium"
    game_history: List[List[DiceGroupIn]] = Field(default_factory=list)
    current_pool: List[DiceGroupIn] = Field(default_factory=list)
    available_dice: List[int]
    player_stats: Optional[Dict[str, Any]] = None


class PredictReq(BaseModel):
    state: Dict[str, Any] = Field(default_factory=dict)
    history: List[Dict[str, Any]] = Field(default_factory=list)


class RollReq(BaseModel):
    values: List[int]


class SessionsReq(BaseModel):
    sessions: List[Dict[str, Any]]


def _state_and_history(req: PredictReq):
    state = GameStateSnapshot.from_dict(req.state)
    history = [HistoryEntry.from_dict(h) for h in req.history]
    return state, history


def create_app(brain: Optional[DiceBrain] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or (brain.settings if brain is not None else Settings.from_env())
    brain = brain or DiceBrain(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        brain.close()

    app = FastAPI(title="Knucklebones DiceBrain API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.brain = brain

    @app.post("/decide")
    def decide(req: DecideReq):
        history = [[g.to_domain() for g in rnd] for rnd in req.game_history]
        pool = [g.to_domain() for g in req.current_pool]
        stats = PlayerStats.from_dict(req.player_stats) if req.player_stats else None
        try:
            analysis = brain.analyze_options(req.difficulty, history, pool, req.available_dice, stats)
        except (DiceBrainError, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        out = analysis.optimal_strategy.to_dict()
        out["analysis"] = analysis.to_dict()
        out["thinking_time"] = brain.opponent.thinking_delay(req.difficulty)
        out["description"] = brain.opponent.describe(req.difficulty)
        return out

    @app.post("/predict")
    def predict(req: PredictReq):
        state, history = _state_and_history(req)
        return brain.predict_next_move(state, history).to_dict()

    @app.post("/win-probability")
    def win_probability(req: PredictReq):
        state, history = _state_and_history(req)
        return brain.win_probability(state, history).to_dict()

    @app.post("/analyze-roll")
    def analyze_roll(req: RollReq):
        pattern = brain.analyze_roll(req.values)
        return {"pattern": pattern.to_dict() if pattern is not None else None}

    @app.post("/analyze")
    def analyze(req: SessionsReq):
        try:
            sessions = sessions_from_dicts(req.sessions)
        except (KeyError, TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=f"invalid session payload: {e}")
        return brain.analyze_patterns(sessions).to_dict()

    @app.post("/train")
    def train(req: SessionsReq):
        try:
            sessions = sessions_from_dicts(req.sessions)
        except (KeyError, TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=f"invalid session payload: {e}")
        future = brain.train(sessions, background=True)
        return {"accepted": future is not None, "sessions": len(sessions)}

    @app.post("/save")
    def save():
        brain.save()
        return {"ok": True}

    @app.get("/status")
    def status():
        return brain.status()

    return app
