# vocab_practice/models/session.py
# Data models for in-flight session snapshots, results, history and queued telemetry
from pydantic import ConfigDict
from typing import Dict, List, Optional

from vocab_practice.models.answer import Answer
from vocab_practice.models.question import CamelModel


class SessionState(CamelModel):
    practice_set_id: str
    session_id: str
    start_time: int  # epoch ms
    current_index: int = 0
    answers: Dict[str, Answer] = {}
    is_paused: bool = False
    timer_duration: Optional[int] = None  # minutes
    time_remaining: int = 0  # seconds
    is_completed: bool = False


class CategoryResult(CamelModel):
    total: int
    correct: int
    score: float


class SessionResults(CamelModel):
    session_id: str
    total_questions: int
    correct_answers: int
    score: float
    duration_seconds: int
    # Only categories present in the practice set: "matching", "fill_blank", "multiple_choice"
    breakdown: Dict[str, CategoryResult] = {}


class HistoryItem(CamelModel):
    model_config = ConfigDict(frozen=True)

    practice_set_id: str
    wordlist_id: str
    wordlist_name: str
    score: float
    completed_at: int  # epoch ms
    duration_seconds: int
    question_types: List[str] = []


class QueuedMistake(CamelModel):
    wordlist_id: str
    word: str
    translation: str
    question_type: str
    timestamp: int  # epoch ms

    @property
    def dedup_key(self) -> tuple:
        return (self.wordlist_id, self.word, self.question_type)
