# vocab_practice/services/collector_client.py
# HTTP client for the remote collector: completed-session saves and mistake records
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from vocab_practice.models.session import QueuedMistake
from vocab_practice.utils.config import settings
from vocab_practice.utils.logger import logger


class CollectorError(Exception):
    """The collector answered, but not with a success response."""


def _iso(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()


class CollectorClient:
    """
    Blocking client; callers on the event loop run it via asyncio.to_thread.
    Transport problems surface as requests.RequestException.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.collector_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.collector_api_key
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.http = http or requests.Session()

    def _headers(self, learner_session_id: Optional[str] = None) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if learner_session_id:
            headers["x-session-id"] = learner_session_id
        return headers

    def save_session(
        self,
        practice_set_id: str,
        session_id: str,
        start_time: int,
        end_time: int,
        answers: Dict[str, Any],
        score: float,
        timer_duration: Optional[int] = None,
        learner_session_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """POSTs a completed session. Raises CollectorError on a non-success reply."""
        payload = {
            "practiceSetId": practice_set_id,
            "sessionId": session_id,
            "startTime": _iso(start_time),
            "endTime": _iso(end_time),
            "answers": answers,
            "score": score,
            "timerDuration": timer_duration,
        }
        response = self.http.post(
            f"{self.base_url}/save-practice-session",
            json=payload,
            headers=self._headers(learner_session_id),
            timeout=self.timeout,
        )
        if not response.ok:
            raise CollectorError(f"save-practice-session returned {response.status_code}: {response.text[:200]}")
        data = response.json()
        if not data.get("success"):
            raise CollectorError(f"save-practice-session rejected session {session_id}: {data.get('error')}")
        logger.debug(f"Saved session {session_id} to collector.")
        return data

    def record_mistake(self, session_token: str, mistake: QueuedMistake) -> bool:
        """POSTs one mistake. Returns False on a rejected request, raises on transport errors."""
        payload = {
            "sessionToken": session_token,
            "wordlistId": mistake.wordlist_id,
            "word": mistake.word,
            "translation": mistake.translation,
            "questionType": mistake.question_type,
        }
        response = self.http.post(
            f"{self.base_url}/record-practice-mistake",
            json=payload,
            headers=self._headers(),
            timeout=self.timeout,
        )
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not response.ok or not data.get("success"):
            error = data.get("error") or {}
            logger.warning(f"Collector rejected mistake '{mistake.word}' ({response.status_code}): {error.get('message')}")
            return False
        return True
