# vocab_practice/services/session_store.py
"""
Durable save/restore of the in-flight session snapshot plus the capped, aged
history of completed sessions.

Every public method is synchronous and never raises: storage failures are
logged and reported as False / None / empty results.
"""
import json
from typing import Callable, List, Optional

from pydantic import TypeAdapter, ValidationError

from vocab_practice.models.session import HistoryItem, SessionState
from vocab_practice.utils.config import settings
from vocab_practice.utils.kv_store import KeyValueStore, MemoryKeyValueStore
from vocab_practice.utils.logger import logger
from vocab_practice.utils.scheduler import RecurringTask, now_ms

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS

_history_adapter = TypeAdapter(List[HistoryItem])


class SessionStore:
    def __init__(
        self,
        kv_store: Optional[KeyValueStore] = None,
        clock: Callable[[], int] = now_ms,
        session_key: str = settings.session_storage_key,
        history_key: str = settings.history_storage_key,
    ):
        self.kv_store = kv_store if kv_store is not None else MemoryKeyValueStore()
        self.clock = clock
        self.session_key = session_key
        self.history_key = history_key
        self.expiry_ms = settings.session_expiry_hours * HOUR_MS
        self.max_history_items = settings.history_max_items
        self.max_history_age_ms = settings.history_max_age_days * DAY_MS
        self._cleanup_task: Optional[RecurringTask] = None

    # --- Current snapshot ---

    def save_snapshot(self, state: SessionState) -> bool:
        try:
            self.kv_store.set(self.session_key, state.model_dump_json(by_alias=True))
            return True
        except Exception as e:
            logger.error(f"Failed to save session to storage: {e}")
            return False

    def restore_snapshot(self) -> Optional[SessionState]:
        """Returns the stored snapshot, or None if it is missing, malformed or expired."""
        try:
            stored = self.kv_store.get(self.session_key)
        except Exception as e:
            logger.error(f"Failed to restore session from storage: {e}")
            return None
        if not stored:
            return None

        try:
            state = SessionState.model_validate_json(stored)
        except ValidationError as e:
            logger.warning(f"Discarding malformed session snapshot: {e.error_count()} validation error(s)")
            return None

        if self.is_expired(state.start_time):
            logger.info(f"Session snapshot {state.session_id} expired; clearing it.")
            self.clear_snapshot()
            return None
        return state

    def clear_snapshot(self) -> bool:
        try:
            self.kv_store.remove(self.session_key)
            return True
        except Exception as e:
            logger.error(f"Failed to clear session from storage: {e}")
            return False

    def is_expired(self, start_time: int) -> bool:
        return self.clock() - start_time > self.expiry_ms

    # --- History ---

    def _read_history_raw(self) -> List[HistoryItem]:
        stored = self.kv_store.get(self.history_key)
        if not stored:
            return []
        return _history_adapter.validate_json(stored)

    def _write_history(self, history: List[HistoryItem]) -> None:
        self.kv_store.set(self.history_key, _history_adapter.dump_json(history, by_alias=True).decode("utf-8"))

    def _is_fresh(self, item: HistoryItem) -> bool:
        return item.completed_at > self.clock() - self.max_history_age_ms

    def get_history(self) -> List[HistoryItem]:
        """All history items that are not older than the retention window, oldest first."""
        try:
            history = self._read_history_raw()
        except Exception as e:
            logger.error(f"Failed to get session history: {e}")
            return []
        return [item for item in history if self._is_fresh(item)]

    def append_history(self, item: HistoryItem) -> bool:
        try:
            history = self.get_history()
            history.append(item)
            # Keep only the most recent sessions
            if len(history) > self.max_history_items:
                history = history[-self.max_history_items:]
            self._write_history(history)
            return True
        except Exception as e:
            logger.error(f"Failed to save session to history: {e}")
            return False

    def query_history(self, wordlist_id: Optional[str] = None) -> List[HistoryItem]:
        history = self.get_history()
        if wordlist_id is None:
            return history
        return [item for item in history if item.wordlist_id == wordlist_id]

    def delete_history_item(self, completed_at: int) -> bool:
        """Removes every entry with this completion timestamp."""
        try:
            history = [item for item in self.get_history() if item.completed_at != completed_at]
            self._write_history(history)
            return True
        except Exception as e:
            logger.error(f"Failed to delete history item: {e}")
            return False

    def clear_history(self) -> bool:
        try:
            self.kv_store.remove(self.history_key)
            return True
        except Exception as e:
            logger.error(f"Failed to clear session history: {e}")
            return False

    # --- Maintenance ---

    def cleanup_expired(self) -> None:
        """Eagerly drops an expired snapshot and persists the pruned history."""
        # restore_snapshot clears an expired snapshot as a side effect
        self.restore_snapshot()
        try:
            history = self._read_history_raw()
            fresh = [item for item in history if self._is_fresh(item)]
            if len(fresh) != len(history):
                self._write_history(fresh)
                logger.info(f"Pruned {len(history) - len(fresh)} expired history item(s).")
        except Exception as e:
            logger.error(f"Failed to cleanup expired sessions: {e}")

    def start_cleanup_schedule(self, interval_seconds: Optional[float] = None) -> None:
        """Runs the sweep now and then periodically on the running event loop."""
        interval = interval_seconds if interval_seconds is not None else settings.cleanup_interval_seconds
        self.stop_cleanup_schedule()
        self._cleanup_task = RecurringTask(self.cleanup_expired, interval, name="session-cleanup")
        self.cleanup_expired()
        self._cleanup_task.start()

    def stop_cleanup_schedule(self) -> None:
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            self._cleanup_task = None

    def storage_stats(self) -> dict:
        try:
            current = self.kv_store.get(self.session_key)
            raw_history = self.kv_store.get(self.history_key)
            return {
                "has_current_session": bool(current),
                "history_count": len(self.get_history()),
                "estimated_size": len(current or "") + len(raw_history or ""),
            }
        except Exception as e:
            logger.error(f"Failed to get storage stats: {e}")
            return {"has_current_session": False, "history_count": 0, "estimated_size": 0}

    # --- Backup ---

    def export_data(self) -> str:
        try:
            current = self.restore_snapshot()
            payload = {
                "currentSession": current.model_dump(mode="json", by_alias=True) if current else None,
                "history": [item.model_dump(mode="json", by_alias=True) for item in self.get_history()],
                "exportedAt": self.clock(),
            }
            return json.dumps(payload, indent=2)
        except Exception as e:
            logger.error(f"Failed to export session data: {e}")
            return "{}"

    def import_data(self, blob: str) -> bool:
        """
        Replaces both the snapshot and the history with the exported blob.
        The blob is fully validated before anything is written; if a write
        fails the previous records are put back.
        """
        try:
            data = json.loads(blob)
            if not isinstance(data, dict) or not isinstance(data.get("history"), list):
                raise ValueError("export must be an object with a 'history' list")
            current_raw = data.get("currentSession")
            current = SessionState.model_validate(current_raw) if current_raw is not None else None
            history = _history_adapter.validate_python(data["history"])
        except (TypeError, ValueError, ValidationError) as e:
            logger.error(f"Failed to import session data: {e}")
            return False

        try:
            previous_session = self.kv_store.get(self.session_key)
            previous_history = self.kv_store.get(self.history_key)
        except Exception as e:
            logger.error(f"Failed to import session data: {e}")
            return False

        try:
            self._write_history(history)
            if current is not None:
                self.kv_store.set(self.session_key, current.model_dump_json(by_alias=True))
            else:
                self.kv_store.remove(self.session_key)
            return True
        except Exception as e:
            logger.error(f"Failed to import session data, restoring previous state: {e}")
            self._restore_raw(self.history_key, previous_history)
            self._restore_raw(self.session_key, previous_session)
            return False

    def _restore_raw(self, key: str, value: Optional[str]) -> None:
        try:
            if value is None:
                self.kv_store.remove(key)
            else:
                self.kv_store.set(key, value)
        except Exception as e:
            logger.error(f"Failed to restore '{key}' after a failed import: {e}")
