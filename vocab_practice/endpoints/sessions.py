# vocab_practice/endpoints/sessions.py
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from vocab_practice.models.question import CamelModel
from vocab_practice.models.records import PracticeSessionRecord
from vocab_practice.utils.db import get_db
from vocab_practice.utils.logger import logger

router = APIRouter(
    tags=["Sessions"]
)

class SaveSessionRequest(CamelModel):
    practice_set_id: Optional[str] = None
    session_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    timer_duration: Optional[int] = None
    answers: Optional[Dict[str, Any]] = None
    score: Optional[float] = None

def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"code": code, "message": message}},
    )

@router.post("/save-practice-session")
async def save_practice_session(
    request: SaveSessionRequest,
    x_session_id: Optional[str] = Header(None, alias="x-session-id"),
    db: AsyncSession = Depends(get_db),
):
    """Stores one completed practice session."""
    if not request.practice_set_id or request.start_time is None or request.end_time is None \
            or request.answers is None or request.score is None:
        return _error(400, "INVALID_REQUEST", "Missing required fields")
    if request.score < 0 or request.score > 100:
        return _error(400, "INVALID_REQUEST", "Score must be between 0 and 100")

    record = PracticeSessionRecord(
        client_session_id=request.session_id,
        learner_session_id=x_session_id,
        practice_set_id=request.practice_set_id,
        start_time=request.start_time,
        end_time=request.end_time,
        timer_duration=request.timer_duration or None,
        answers=request.answers,
        score=request.score,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)
    logger.info(f"Saved practice session {request.session_id} for practice set {request.practice_set_id} (row {record.id}).")
    return {"success": True, "sessionId": str(record.id)}
