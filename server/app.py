"""FastAPI host for the Spanish Rain game.

The browser front-end owns rendering and the animation-frame pump; it calls
``/api/session/tick`` once per frame and forwards keystrokes. One engine is
kept per user and reused across sessions.
"""

import logging
import os
import re
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from core.catalog import WordCatalog
from core.config import (
    WORLDS, MODES, DEFAULT_MODE, REVIEW_POOL_SIZE,
    get_world_config, get_stage_id, get_next_stage
)
from core.engine import SessionEngine
from core.progress import ProgressStore, MemoryBackend

from server.file_storage import FileBackend
from server.postgres_storage import PostgresBackend

logger = logging.getLogger(__name__)

# Paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"

USER_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


# Pydantic models for API
class StartRequest(BaseModel):
    world_id: int
    stage_num: int
    mode: str = DEFAULT_MODE
    user_id: str = "default"


class ReviewRequest(BaseModel):
    mode: str = DEFAULT_MODE
    user_id: str = "default"


class InputRequest(BaseModel):
    value: str
    user_id: str = "default"


class KeyRequest(BaseModel):
    key: str
    user_id: str = "default"


class UserRequest(BaseModel):
    user_id: str = "default"


class SubmitResponse(BaseModel):
    correct: Optional[bool]
    state: dict


class StageInfo(BaseModel):
    stage_id: str
    stage_num: int
    category: str
    is_boss: bool
    is_review: bool
    unlocked: bool
    stars: int
    best_score: Optional[int]


# Global state
catalog: WordCatalog = None
storage_type: str = 'file'
stores: dict[str, ProgressStore] = {}
engines: dict[str, SessionEngine] = {}


def create_backend(user_id: str):
    """Backend for a user according to RAIN_STORAGE."""
    if storage_type == 'memory':
        return MemoryBackend()
    if storage_type == 'postgres':
        return PostgresBackend(namespace=user_id)
    state_dir = os.environ.get('RAIN_STATE_DIR', os.path.expanduser('~/.local/share/spanish-rain'))
    return FileBackend(os.path.join(state_dir, user_id))


def get_store(user_id: str = "default") -> ProgressStore:
    """Get or create the progress store for a user."""
    if not USER_ID_RE.match(user_id):
        raise HTTPException(status_code=400, detail="Invalid user id")
    if user_id not in stores:
        store = ProgressStore(create_backend(user_id))
        store.init()
        stores[user_id] = store
    return stores[user_id]


def get_engine(user_id: str = "default") -> SessionEngine:
    """Get or create the session engine for a user."""
    if user_id not in engines:
        engines[user_id] = SessionEngine(catalog, get_store(user_id))
    return engines[user_id]


def require_engine(user_id: str) -> SessionEngine:
    if user_id not in engines:
        raise HTTPException(status_code=404, detail="No session for user")
    return engines[user_id]


def check_mode(mode: str) -> None:
    if mode not in MODES:
        raise HTTPException(status_code=400, detail=f"Unknown mode: {mode}")


app = FastAPI(title="Spanish Rain API", description="Falling-word Spanish vocabulary game")


@app.on_event("startup")
async def startup():
    """Load word data and pick the storage backend."""
    global catalog, storage_type

    # File storage by default, set RAIN_STORAGE=postgres to use PostgreSQL
    storage_type = os.environ.get('RAIN_STORAGE', 'file')
    logger.info(f"Using {storage_type} storage")

    catalog = WordCatalog()
    source = os.environ.get('RAIN_WORDS', str(DATA_DIR))
    if not await catalog.load_all(source):
        logger.error(f"Word data failed to load from {source}")


@app.on_event("shutdown")
async def shutdown():
    """Close database connections held by player stores."""
    for user_id, store in stores.items():
        if isinstance(store.backend, PostgresBackend):
            logger.info(f"Closing database connection for {user_id}")
            store.backend.close()


@app.get("/")
async def root():
    """Health check."""
    return {
        "status": "ok",
        "words_loaded": catalog is not None and catalog.is_loaded(),
        "worlds_loaded": catalog.loaded_worlds if catalog else []
    }


# Catalog and progress endpoints
@app.get("/api/worlds")
async def list_worlds():
    """List world configuration, flagging which worlds have word data."""
    loaded = set(catalog.loaded_worlds)
    return {
        "worlds": [{**w.to_dict(), "available": w.id in loaded} for w in WORLDS]
    }


@app.get("/api/worlds/{world_id}/stages")
async def list_stages(world_id: int, user_id: str = "default"):
    """Stage board for a world: category, boss/review flags, lock state and best result."""
    world = get_world_config(world_id)
    if world is None:
        raise HTTPException(status_code=404, detail="Unknown world")

    store = get_store(user_id)
    stages = []
    for stage_num in range(1, world.stage_count + 1):
        stage_id = get_stage_id(world_id, stage_num)
        result = store.get_stage_result(stage_id)
        stages.append(StageInfo(
            stage_id=stage_id,
            stage_num=stage_num,
            category=catalog.get_stage_category(world_id, stage_num),
            is_boss=catalog.is_boss_stage(world_id, stage_num),
            is_review=catalog.is_review_stage(world_id, stage_num),
            unlocked=store.is_stage_unlocked(world_id, stage_num),
            stars=result.stars if result else 0,
            best_score=result.best_score if result else None
        ))
    return {"world_id": world_id, "stages": stages}


@app.get("/api/worlds/{world_id}/stages/{stage_num}/words")
async def get_stage_words(world_id: int, stage_num: int):
    """Word list of a stage, for the reference panels."""
    words = catalog.get_stage_words(world_id, stage_num)
    return {"words": [w.to_dict() for w in words]}


@app.get("/api/progress")
async def get_progress(user_id: str = "default"):
    """Furthest unlocked stage and the one after it."""
    world_id, stage_num = get_store(user_id).get_current_progress()
    next_stage = get_next_stage(world_id, stage_num)
    return {
        "world_id": world_id,
        "stage_num": stage_num,
        "next": {"world_id": next_stage[0], "stage_num": next_stage[1]} if next_stage else None
    }


@app.get("/api/stats")
async def get_stats(user_id: str = "default"):
    """Aggregate play statistics."""
    return get_store(user_id).get_stats().to_dict()


@app.get("/api/wrong-words")
async def get_wrong_words(user_id: str = "default", limit: int = REVIEW_POOL_SIZE):
    """Most-missed words first."""
    words = get_store(user_id).get_words_for_review(limit)
    return {"total": len(words), "words": [w.to_dict() for w in words]}


# Session endpoints
@app.post("/api/session/start")
async def start_session(request: StartRequest):
    """Start a stage session."""
    check_mode(request.mode)
    if not get_store(request.user_id).is_stage_unlocked(request.world_id, request.stage_num):
        raise HTTPException(status_code=400, detail="Stage is locked")

    engine = get_engine(request.user_id)
    engine.start(request.world_id, request.stage_num, request.mode)
    get_store(request.user_id).set_setting('mode', request.mode)
    return engine.get_display_state()


@app.post("/api/session/review")
async def start_review_session(request: ReviewRequest):
    """Start a review run over the player's most-missed words."""
    check_mode(request.mode)
    store = get_store(request.user_id)
    engine = get_engine(request.user_id)
    pool = engine.pools.create_review_pool()
    if not pool:
        raise HTTPException(status_code=400, detail="Not enough wrong words to review")

    world_id, stage_num = store.get_current_progress()
    engine.start(world_id, stage_num, request.mode, custom_pool=pool)
    return engine.get_display_state()


@app.post("/api/session/tick")
async def tick_session(request: UserRequest):
    """Advance the session by one frame.

    Frames are timed with the engine clock, the same one that times answers,
    so the client sends no timestamp.
    """
    engine = require_engine(request.user_id)
    engine.tick(engine.clock())
    return engine.get_display_state()


@app.post("/api/session/input")
async def set_session_input(request: InputRequest):
    """Replace the input buffer."""
    engine = require_engine(request.user_id)
    engine.set_input(request.value)
    return engine.get_display_state()


@app.post("/api/session/key")
async def send_session_key(request: KeyRequest):
    """Forward one key press (character, Backspace or Enter)."""
    engine = require_engine(request.user_id)
    engine.handle_key_input(request.key)
    return engine.get_display_state()


@app.post("/api/session/submit", response_model=SubmitResponse)
async def submit_answer(request: UserRequest):
    """Submit the current input buffer."""
    engine = require_engine(request.user_id)
    correct = engine.check_answer()
    return SubmitResponse(correct=correct, state=engine.get_display_state())


@app.post("/api/session/pause")
async def pause_session(request: UserRequest):
    engine = require_engine(request.user_id)
    engine.pause()
    return engine.get_display_state()


@app.post("/api/session/resume")
async def resume_session(request: UserRequest):
    engine = require_engine(request.user_id)
    engine.resume()
    return engine.get_display_state()


@app.post("/api/session/stop")
async def stop_session(request: UserRequest):
    engine = require_engine(request.user_id)
    engine.stop()
    return engine.get_display_state()


@app.get("/api/session")
async def get_session(user_id: str = "default"):
    """Current session snapshot."""
    return require_engine(user_id).get_display_state()


def create_app():
    """Factory function for creating the app (useful for testing)."""
    return app
