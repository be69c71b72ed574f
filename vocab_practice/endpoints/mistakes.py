# vocab_practice/endpoints/mistakes.py
import math
import re
import time
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vocab_practice.models.question import CamelModel
from vocab_practice.models.records import PracticeMistake
from vocab_practice.utils.config import settings
from vocab_practice.utils.db import get_db
from vocab_practice.utils.logger import logger

router = APIRouter(
    tags=["Mistakes"]
)

SESSION_TOKEN_PATTERN = re.compile(r"^[a-f0-9]{64}$", re.IGNORECASE)
VALID_QUESTION_TYPES = {"multiple_choice", "fill_blank", "matching"}

# session token -> {"count": int, "reset_at": float}
rate_limits: Dict[str, Dict[str, float]] = {}
_last_sweep = 0.0

class RecordMistakeRequest(CamelModel):
    session_token: Optional[str] = None
    wordlist_id: Optional[str] = None
    word: Optional[str] = None
    translation: Optional[str] = None
    question_type: Optional[str] = None

def _error(status_code: int, code: str, message: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"code": code, "message": message}},
        headers=headers,
    )

def prune_rate_limits(now: float) -> int:
    """Drops every token whose window has already closed. Returns how many were dropped."""
    global _last_sweep
    _last_sweep = now
    expired = [token for token, entry in rate_limits.items() if now > entry["reset_at"]]
    for token in expired:
        del rate_limits[token]
    return len(expired)

def check_rate_limit(session_token: str, now: Optional[float] = None) -> Optional[int]:
    """Counts one request. Returns None when allowed, otherwise seconds until the window resets."""
    now = now if now is not None else time.monotonic()
    # At most one sweep per window
    if now - _last_sweep >= settings.rate_limit_window_seconds:
        prune_rate_limits(now)
    entry = rate_limits.get(session_token)
    if entry is None or now > entry["reset_at"]:
        rate_limits[session_token] = {"count": 1, "reset_at": now + settings.rate_limit_window_seconds}
        return None
    if entry["count"] >= settings.rate_limit_max_requests:
        return max(1, math.ceil(entry["reset_at"] - now))
    entry["count"] += 1
    return None

@router.post("/record-practice-mistake")
async def record_practice_mistake(request: RecordMistakeRequest, db: AsyncSession = Depends(get_db)):
    """Inserts a mistake or increments the count of an existing one."""
    token = request.session_token
    if not isinstance(token, str) or not SESSION_TOKEN_PATTERN.match(token):
        return _error(400, "INVALID_SESSION_TOKEN", "Invalid session token format")

    retry_after = check_rate_limit(token)
    if retry_after is not None:
        logger.warning(f"Rate limit exceeded for session token {token[:8]}...")
        return _error(
            429,
            "RATE_LIMIT_EXCEEDED",
            f"Too many requests. Please try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)},
        )

    if not request.wordlist_id or not request.word or not request.translation or not request.question_type:
        return _error(
            400,
            "INVALID_REQUEST",
            "Missing required fields: sessionToken, wordlistId, word, translation, questionType",
        )
    if request.question_type not in VALID_QUESTION_TYPES:
        return _error(400, "INVALID_QUESTION_TYPE", "Question type must be one of: multiple_choice, fill_blank, matching")

    result = await db.execute(
        select(PracticeMistake).where(
            PracticeMistake.session_token == token,
            PracticeMistake.wordlist_id == request.wordlist_id,
            PracticeMistake.word == request.word,
            PracticeMistake.question_type == request.question_type,
        )
    )
    mistake = result.scalars().first()
    if mistake:
        mistake.mistake_count += 1
        mistake.translation = request.translation
        logger.debug(f"Incremented mistake count to {mistake.mistake_count} for word '{request.word}'")
    else:
        mistake = PracticeMistake(
            session_token=token,
            wordlist_id=request.wordlist_id,
            word=request.word,
            translation=request.translation,
            question_type=request.question_type,
            mistake_count=1,
        )
        db.add(mistake)
        logger.debug(f"Recorded new mistake for word '{request.word}'")

    await db.commit()
    return {"success": True, "mistakeCount": mistake.mistake_count}
