# vocab_practice/services/analytics.py
# Best-effort local analytics for completed practice sessions
import json
from typing import Any, Dict, List, Optional

from vocab_practice.models.enums import DeviceType
from vocab_practice.utils.config import settings
from vocab_practice.utils.kv_store import KeyValueStore, MemoryKeyValueStore
from vocab_practice.utils.logger import logger
from vocab_practice.utils.scheduler import now_ms


def classify_device(viewport_width: Optional[int]) -> DeviceType:
    if viewport_width is None:
        return DeviceType.DESKTOP
    if viewport_width < 768:
        return DeviceType.MOBILE
    if viewport_width < 1024:
        return DeviceType.TABLET
    return DeviceType.DESKTOP


class AnalyticsTracker:
    """
    Queues events in memory and writes them to the key-value store in
    batches, keeping only the most recent `analytics_max_events`.
    """

    def __init__(self, kv_store: Optional[KeyValueStore] = None):
        self.kv_store = kv_store if kv_store is not None else MemoryKeyValueStore()
        self.storage_key = settings.analytics_storage_key
        self.batch_size = settings.analytics_batch_size
        self.max_events = settings.analytics_max_events
        self._queue: List[Dict[str, Any]] = []

    def track_session(
        self,
        session_id: str,
        wordlist_id: str,
        question_types: List[str],
        score: float,
        duration_seconds: int,
        device_type: DeviceType,
        timer_duration: Optional[int] = None,
    ) -> None:
        event = {
            "type": "session_completed",
            "sessionId": session_id,
            "wordlistId": wordlist_id,
            "wordlistSize": len(question_types),
            "questionTypes": question_types,
            "totalQuestions": len(question_types),
            "score": score,
            "duration": duration_seconds,
            "timerDuration": timer_duration,
            "deviceType": device_type.value,
            "timestamp": now_ms(),
        }
        self._queue.append(event)
        logger.debug(f"Session tracked: {session_id} score={score}")
        if len(self._queue) >= self.batch_size:
            self.flush()

    def flush(self) -> None:
        if not self._queue:
            return
        events, self._queue = self._queue, []
        try:
            stored = self.get_events()
            updated = (stored + events)[-self.max_events:]
            self.kv_store.set(self.storage_key, json.dumps(updated))
        except Exception as e:
            logger.error(f"Failed to store analytics events: {e}")

    def get_events(self) -> List[Dict[str, Any]]:
        try:
            stored = self.kv_store.get(self.storage_key)
            return json.loads(stored) if stored else []
        except Exception as e:
            logger.error(f"Failed to retrieve analytics events: {e}")
            return []

    def summary(self) -> Dict[str, Any]:
        self.flush()
        sessions = [event for event in self.get_events() if event.get("type") == "session_completed"]
        total = len(sessions)
        average = sum(event["score"] for event in sessions) / total if total else 0
        return {"total_sessions": total, "average_score": round(average, 2)}

    def clear(self) -> None:
        self._queue = []
        try:
            self.kv_store.remove(self.storage_key)
        except Exception as e:
            logger.error(f"Failed to clear analytics: {e}")
