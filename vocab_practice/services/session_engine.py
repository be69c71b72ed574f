# vocab_practice/services/session_engine.py
"""
State machine for one practice session.

Active -> Paused -> Active ... -> Completed (terminal). Every navigation,
answer and pause toggle is snapshotted to the SessionStore so the session can
be resumed after a restart; completion scores the session, records history
locally and remotely, and clears the snapshot.
"""
import asyncio
import uuid
from typing import Any, Callable, Dict, List, Optional

from vocab_practice.models.answer import Answer, MatchingAnswer
from vocab_practice.models.enums import QuestionType
from vocab_practice.models.question import (
    FillBlankQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    PracticeSet,
    Question,
)
from vocab_practice.models.session import HistoryItem, SessionResults, SessionState
from vocab_practice.services.analytics import AnalyticsTracker, classify_device
from vocab_practice.services.results import calculate_session_results
from vocab_practice.services.scoring import correct_option_text, is_answer_correct
from vocab_practice.services.session_store import SessionStore
from vocab_practice.utils.config import settings
from vocab_practice.utils.logger import logger
from vocab_practice.utils.scheduler import RecurringTask, now_ms, spawn


def generate_session_id(clock: Callable[[], int] = now_ms) -> str:
    return f"session_{clock()}_{uuid.uuid4().hex[:9]}"


class SessionEngine:
    def __init__(
        self,
        practice_set: PracticeSet,
        timer_duration_minutes: Optional[int] = None,
        on_timer_expire: Optional[Callable[[], Any]] = None,
        on_session_complete: Optional[Callable[[SessionResults], Any]] = None,
        *,
        store: Optional[SessionStore] = None,
        collector=None,
        mistake_recorder=None,
        analytics: Optional[AnalyticsTracker] = None,
        viewport_width: Optional[int] = None,
        learner_session_id: Optional[str] = None,
        tick_interval: Optional[float] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.practice_set = practice_set
        self.timer_duration = timer_duration_minutes
        self.on_timer_expire = on_timer_expire
        self.on_session_complete = on_session_complete
        self.store = store if store is not None else SessionStore(clock=clock)
        self.collector = collector
        self.mistake_recorder = mistake_recorder
        self.analytics = analytics
        self.viewport_width = viewport_width
        self.learner_session_id = learner_session_id
        self.clock = clock

        self._questions: List[Question] = practice_set.questions.all_questions()
        self._session_id = generate_session_id(clock)
        self._start_time = clock()
        self._current_index = 0
        self._answers: Dict[str, Answer] = {}
        self._is_paused = False
        self._is_completed = False
        self._time_remaining = self.timer_duration * 60 if self.has_timer else 0
        self._results: Optional[SessionResults] = None

        interval = tick_interval if tick_interval is not None else settings.timer_tick_seconds
        self._timer = RecurringTask(self.tick, interval, name=f"timer-{practice_set.id}")

        self._initialize()

    # --- Read accessors ---

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def start_time(self) -> int:
        return self._start_time

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def all_questions(self) -> List[Question]:
        return list(self._questions)

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self._current_index < len(self._questions):
            return self._questions[self._current_index]
        return None

    @property
    def answers(self) -> Dict[str, Answer]:
        return dict(self._answers)

    @property
    def total_questions(self) -> int:
        return len(self._questions)

    @property
    def answered_count(self) -> int:
        return len(self._answers)

    @property
    def progress(self) -> float:
        if not self._questions:
            return 0.0
        return (self._current_index / len(self._questions)) * 100

    @property
    def has_timer(self) -> bool:
        return self.timer_duration is not None and self.timer_duration > 0

    @property
    def time_remaining(self) -> int:
        return self._time_remaining

    @property
    def is_paused(self) -> bool:
        return self._is_paused

    @property
    def is_completed(self) -> bool:
        return self._is_completed

    @property
    def is_timer_active(self) -> bool:
        return self.has_timer and not self._is_paused and not self._is_completed

    # --- Initialization & persistence ---

    def _initialize(self) -> None:
        if self._restore():
            logger.info(f"Resumed session {self._session_id} at question {self._current_index}.")
            if self.has_timer and not self._is_paused:
                self.start_timer()
            return
        if self.has_timer:
            self.start_timer()
        self._save_snapshot()

    def _restore(self) -> bool:
        try:
            snapshot = self.store.restore_snapshot()
        except Exception as e:
            logger.error(f"Unexpected error restoring session snapshot: {e}")
            return False
        if snapshot is None:
            return False
        if snapshot.practice_set_id != self.practice_set.id:
            logger.debug(f"Ignoring snapshot for practice set {snapshot.practice_set_id}.")
            return False

        self._session_id = snapshot.session_id
        self._start_time = snapshot.start_time
        self._current_index = snapshot.current_index if 0 <= snapshot.current_index < len(self._questions) else 0
        self._answers = dict(snapshot.answers)
        full_time = self.timer_duration * 60 if self.has_timer else 0
        self._time_remaining = min(max(snapshot.time_remaining, 0), full_time)
        self._is_paused = snapshot.is_paused
        return True

    def _snapshot(self) -> SessionState:
        return SessionState(
            practice_set_id=self.practice_set.id,
            session_id=self._session_id,
            start_time=self._start_time,
            current_index=self._current_index,
            answers=dict(self._answers),
            is_paused=self._is_paused,
            timer_duration=self.timer_duration,
            time_remaining=self._time_remaining,
            is_completed=self._is_completed,
        )

    def _save_snapshot(self) -> None:
        if self._is_completed:
            return
        try:
            self.store.save_snapshot(self._snapshot())
        except Exception as e:
            # Carry on without a saved snapshot
            logger.error(f"Unexpected error saving session snapshot: {e}")

    def _clear_snapshot(self) -> None:
        try:
            self.store.clear_snapshot()
        except Exception as e:
            logger.error(f"Unexpected error clearing session snapshot: {e}")

    # --- Timer ---

    def start_timer(self) -> bool:
        if not self.has_timer or self._is_completed:
            return False
        return self._timer.start()

    def stop_timer(self) -> None:
        self._timer.cancel()

    def tick(self) -> None:
        """One second of session time; expires the session when the clock hits zero."""
        if not self.has_timer or self._is_paused or self._is_completed:
            return
        self._time_remaining = max(0, self._time_remaining - 1)
        if self._time_remaining <= 0:
            self.stop_timer()
            self._finish(expired=True)

    def pause(self) -> None:
        if self._is_completed or self._is_paused:
            return
        self._is_paused = True
        self._save_snapshot()

    def resume(self) -> None:
        if self._is_completed or not self._is_paused:
            return
        self._is_paused = False
        self._save_snapshot()
        self.start_timer()

    # --- Navigation ---

    def go_to_question(self, index: int) -> bool:
        if self._is_completed:
            return False
        if not 0 <= index < len(self._questions):
            return False
        self._current_index = index
        self._save_snapshot()
        return True

    def next_question(self) -> bool:
        if self._is_completed or self._current_index >= len(self._questions) - 1:
            return False
        return self.go_to_question(self._current_index + 1)

    def previous_question(self) -> bool:
        if self._is_completed or self._current_index <= 0:
            return False
        return self.go_to_question(self._current_index - 1)

    # --- Answers ---

    def submit_answer(self, question_id: str, answer: Answer) -> bool:
        if self._is_completed:
            logger.debug(f"Ignoring answer for {question_id}: session {self._session_id} is completed.")
            return False
        self._answers[question_id] = answer
        self._save_snapshot()

        if self.mistake_recorder is not None:
            question = next((q for q in self._questions if q.id == question_id), None)
            if question is not None and not is_answer_correct(question, answer):
                self._report_mistakes(question, answer)
        return True

    def get_answer(self, question_id: str) -> Optional[Answer]:
        return self._answers.get(question_id)

    def has_answer(self, question_id: str) -> bool:
        return question_id in self._answers

    def is_current_answer_correct(self) -> Optional[bool]:
        question = self.current_question
        if question is None or question.id not in self._answers:
            return None
        return is_answer_correct(question, self._answers[question.id])

    def _report_mistakes(self, question: Question, answer: Answer) -> None:
        wordlist_id = self.practice_set.wordlist_id
        try:
            if isinstance(question, MatchingQuestion):
                selected = {}
                if isinstance(answer, MatchingAnswer):
                    selected = {pair.source: pair.selected_target for pair in answer.pairs}
                for pair in question.pairs:
                    if selected.get(pair.source) != pair.target:
                        self.mistake_recorder.record(
                            wordlist_id, pair.source, pair.target, QuestionType.MATCHING.mistake_code
                        )
            elif isinstance(question, FillBlankQuestion):
                self.mistake_recorder.record(
                    wordlist_id,
                    question.correct_answer,
                    question.hint or question.correct_answer,
                    QuestionType.FILL_BLANK.mistake_code,
                )
            elif isinstance(question, MultipleChoiceQuestion):
                self.mistake_recorder.record(
                    wordlist_id,
                    question.target_word,
                    correct_option_text(question) or "",
                    QuestionType.MULTIPLE_CHOICE.mistake_code,
                )
        except Exception as e:
            logger.error(f"Failed to report mistake for question {question.id}: {e}")

    # --- Completion ---

    def calculate_results(self) -> SessionResults:
        return calculate_session_results(
            self.practice_set.questions,
            self._answers,
            self._start_time,
            self._session_id,
            now_ms=self.clock(),
        )

    def complete_session(self) -> SessionResults:
        if self._is_completed and self._results is not None:
            logger.warning(f"Session {self._session_id} already completed; returning existing results.")
            return self._results
        self.stop_timer()
        return self._finish(expired=False)

    def _finish(self, expired: bool) -> SessionResults:
        self._is_completed = True
        results = self.calculate_results()
        self._results = results
        logger.info(
            f"Session {self._session_id} {'expired' if expired else 'completed'}: "
            f"{results.correct_answers}/{results.total_questions} correct, score={results.score}"
        )

        self._save_to_history(results)
        self._clear_snapshot()
        self._track_analytics(results)

        if expired:
            self._invoke_callback(self.on_timer_expire)
        self._invoke_callback(self.on_session_complete, results)
        return results

    def _invoke_callback(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.exception(f"Session callback raised: {e}")

    def _save_to_history(self, results: SessionResults) -> None:
        item = HistoryItem(
            practice_set_id=self.practice_set.id,
            wordlist_id=self.practice_set.wordlist_id,
            wordlist_name=self.practice_set.wordlist_name or self.practice_set.wordlist_id,
            score=results.score,
            completed_at=self.clock(),
            duration_seconds=results.duration_seconds,
            question_types=self.practice_set.questions.question_types(),
        )
        try:
            self.store.append_history(item)
        except Exception as e:
            logger.error(f"Unexpected error appending session history: {e}")

        if self.collector is not None:
            # Captured now: completion callbacks may reset the engine before the task runs
            payload = {
                "practice_set_id": self.practice_set.id,
                "session_id": self._session_id,
                "start_time": self._start_time,
                "end_time": self._start_time + results.duration_seconds * 1000,
                "answers": {qid: answer.model_dump(mode="json", by_alias=True) for qid, answer in self._answers.items()},
                "score": results.score,
                "timer_duration": self.timer_duration,
                "learner_session_id": self.learner_session_id,
            }
            spawn(self._save_remotely(payload), name=f"save-session-{self._session_id}")

    async def _save_remotely(self, payload: Dict[str, Any]) -> None:
        # Local history already holds the record; a failure here is only logged.
        try:
            await asyncio.to_thread(self.collector.save_session, **payload)
        except Exception as e:
            logger.error(f"Failed to save session to database: {e}")

    def _track_analytics(self, results: SessionResults) -> None:
        if self.analytics is None:
            return
        try:
            self.analytics.track_session(
                session_id=self._session_id,
                wordlist_id=self.practice_set.wordlist_id,
                question_types=self.practice_set.questions.question_types(),
                score=results.score,
                duration_seconds=results.duration_seconds,
                device_type=classify_device(self.viewport_width),
                timer_duration=self.timer_duration,
            )
        except Exception as e:
            logger.debug(f"Analytics tracking failed: {e}")

    # --- Lifecycle ---

    def reset_session(self) -> None:
        self.stop_timer()
        self._session_id = generate_session_id(self.clock)
        self._start_time = self.clock()
        self._current_index = 0
        self._answers = {}
        self._is_paused = False
        self._is_completed = False
        self._results = None
        self._time_remaining = self.timer_duration * 60 if self.has_timer else 0
        self._clear_snapshot()
        if self.has_timer:
            self.start_timer()
        logger.info(f"Session reset; new session {self._session_id}.")

    def dispose(self) -> None:
        """Stops the timer so no tick touches this engine after teardown."""
        self.stop_timer()
