# vocab_practice/services/mistake_recorder.py
"""
Reports "learner missed this word" events to the collector without blocking
the caller or flooding the network.

Mistakes are buffered and flushed as a batch (size or quiet-interval
trigger); batch members are sent one at a time with a short gap. Anything
that fails to deliver lands in a durable queue which is drained at start-up
and whenever connectivity comes back.
"""
import asyncio
from typing import Callable, List, Optional, Set, Tuple

from pydantic import TypeAdapter

from vocab_practice.models.session import QueuedMistake
from vocab_practice.utils.config import settings
from vocab_practice.utils.kv_store import KeyValueStore, MemoryKeyValueStore
from vocab_practice.utils.logger import logger
from vocab_practice.utils.scheduler import now_ms, spawn

_queue_adapter = TypeAdapter(List[QueuedMistake])


class MistakeRecorder:
    def __init__(
        self,
        client,
        kv_store: Optional[KeyValueStore] = None,
        credential_provider: Optional[Callable[[], Optional[str]]] = None,
        batch_size: Optional[int] = None,
        flush_delay_ms: Optional[int] = None,
        send_interval_ms: Optional[int] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.client = client
        self.kv_store = kv_store if kv_store is not None else MemoryKeyValueStore()
        self.credential_provider = credential_provider or self._stored_session_token
        self.batch_size = batch_size or settings.mistake_batch_size
        self.flush_delay = (flush_delay_ms if flush_delay_ms is not None else settings.mistake_flush_delay_ms) / 1000
        self.send_interval = (send_interval_ms if send_interval_ms is not None else settings.mistake_send_interval_ms) / 1000
        self.clock = clock
        self.queue_key = settings.mistake_queue_key
        self.online = True

        self._pending: List[Tuple[QueuedMistake, str]] = []
        self._flush_handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._draining = False
        # Keys delivered during this process lifetime
        self._reported: Set[tuple] = set()
        # Keys buffered, in flight or sitting in the durable queue
        self._outstanding: Set[tuple] = {mistake.dedup_key for mistake in self.get_queue()}

    def _stored_session_token(self) -> Optional[str]:
        return self.kv_store.get(settings.session_token_key)

    def _credential(self) -> Optional[str]:
        try:
            return self.credential_provider()
        except Exception as e:
            logger.error(f"Failed to read learner session token: {e}")
            return None

    # --- Recording ---

    def record(self, wordlist_id: str, word: str, translation: str, question_type: str) -> bool:
        """
        Accepts a mistake for delivery. Returns False when it was skipped
        (no learner session, or the same word/question type is already reported).
        """
        token = self._credential()
        if not token:
            logger.warning("No student session token found, skipping mistake recording")
            return False

        mistake = QueuedMistake(
            wordlist_id=wordlist_id,
            word=word,
            translation=translation,
            question_type=question_type,
            timestamp=self.clock(),
        )
        key = mistake.dedup_key
        if key in self._reported or key in self._outstanding:
            logger.debug(f"Mistake already reported for {key}; skipping.")
            return False
        self._outstanding.add(key)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; mistake '{word}' queued for later delivery.")
            self._enqueue(mistake)
            return True

        self._pending.append((mistake, token))
        if len(self._pending) >= self.batch_size:
            self._flush_now()
        elif self._flush_handle is None:
            self._flush_handle = loop.call_later(self.flush_delay, self._flush_now)
        return True

    def _flush_now(self) -> Optional[asyncio.Task]:
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None
        if not self._pending:
            return None

        batch, self._pending = self._pending, []
        logger.debug(f"Flushing {len(batch)} mistake(s).")
        task = asyncio.get_running_loop().create_task(self._send_batch(batch), name="mistake-batch")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def flush(self) -> None:
        """Sends whatever is buffered right away and waits for that batch."""
        task = self._flush_now()
        if task is not None:
            await task

    async def _send_batch(self, batch: List[Tuple[QueuedMistake, str]]) -> None:
        for index, (mistake, token) in enumerate(batch):
            if index > 0:
                await asyncio.sleep(self.send_interval)
            if not self.online:
                self._enqueue(mistake)
                continue
            if await self._deliver(token, mistake):
                self._mark_reported(mistake)
            else:
                logger.warning(f"Failed to record mistake, queued for later: {mistake.word} ({mistake.question_type})")
                self._enqueue(mistake)

    async def _deliver(self, token: str, mistake: QueuedMistake) -> bool:
        try:
            return bool(await asyncio.to_thread(self.client.record_mistake, token, mistake))
        except Exception as e:
            logger.warning(f"Network error recording mistake '{mistake.word}': {e}")
            return False

    def _mark_reported(self, mistake: QueuedMistake) -> None:
        self._reported.add(mistake.dedup_key)
        self._outstanding.discard(mistake.dedup_key)

    # --- Durable queue ---

    def get_queue(self) -> List[QueuedMistake]:
        try:
            stored = self.kv_store.get(self.queue_key)
            return _queue_adapter.validate_json(stored) if stored else []
        except Exception as e:
            logger.error(f"Failed to read mistake queue: {e}")
            return []

    def _write_queue(self, queue: List[QueuedMistake]) -> None:
        try:
            if queue:
                self.kv_store.set(self.queue_key, _queue_adapter.dump_json(queue, by_alias=True).decode("utf-8"))
            else:
                self.kv_store.remove(self.queue_key)
        except Exception as e:
            logger.error(f"Failed to persist mistake queue ({len(queue)} item(s)): {e}")

    def _enqueue(self, mistake: QueuedMistake) -> None:
        queue = self.get_queue()
        queue.append(mistake)
        self._write_queue(queue)

    async def drain_queue(self) -> int:
        """Retries every queued mistake once. Returns how many are still queued."""
        if self._draining:
            return len(self.get_queue())
        token = self._credential()
        if not token:
            logger.info("No student session token; leaving mistake queue untouched.")
            return len(self.get_queue())
        snapshot = self.get_queue()
        if not snapshot:
            return 0

        self._draining = True
        logger.info(f"Retrying {len(snapshot)} queued mistake(s).")
        try:
            remaining: List[QueuedMistake] = []
            for index, mistake in enumerate(snapshot):
                if index > 0:
                    await asyncio.sleep(self.send_interval)
                if await self._deliver(token, mistake):
                    self._mark_reported(mistake)
                else:
                    remaining.append(mistake)

            # Failures from batches that ran during the drain were appended meanwhile
            drained = {(m.dedup_key, m.timestamp) for m in snapshot}
            added = [m for m in self.get_queue() if (m.dedup_key, m.timestamp) not in drained]
            self._write_queue(remaining + added)
            if remaining:
                logger.warning(f"{len(remaining)} queued mistake(s) still failing.")
            return len(remaining) + len(added)
        finally:
            self._draining = False

    # --- Lifecycle ---

    async def start(self) -> int:
        """Drains anything left over from a previous run."""
        return await self.drain_queue()

    def set_online(self, online: bool) -> None:
        was_online = self.online
        self.online = online
        if online and not was_online:
            logger.info("Connectivity restored; draining mistake queue.")
            spawn(self.drain_queue(), name="mistake-queue-drain")

    async def aclose(self) -> None:
        """Moves unsent buffered mistakes to the durable queue and waits for in-flight batches."""
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None
        for mistake, _ in self._pending:
            self._enqueue(mistake)
        self._pending = []
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
