# vocab_practice/utils/config.py
import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load .env file before defining settings
load_dotenv()

class Settings(BaseSettings):
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # --- Storage ---
    # Durable key-value store used by the practice client (snapshot, history, queues)
    storage_url: str = os.getenv("STORAGE_URL", "sqlite:///./vocab_practice_store.db")
    # Database used by the collector service
    database_url: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./vocab_practice_collector.db")
    practice_sets_dir: str = os.getenv("PRACTICE_SETS_DIR", "data/practice_sets")

    # Storage keys
    session_storage_key: str = "vocabgo_practice_session"
    history_storage_key: str = "vocabgo_practice_history"
    mistake_queue_key: str = "mistake_queue"
    session_token_key: str = "student_session_token"
    analytics_storage_key: str = "vocabgo_analytics"

    # --- Collector (remote endpoints) ---
    collector_base_url: str = os.getenv("COLLECTOR_BASE_URL", "http://localhost:8000")
    collector_api_key: str | None = os.getenv("COLLECTOR_API_KEY")
    request_timeout_seconds: float = 10.0

    # --- Session persistence ---
    session_expiry_hours: int = 24
    history_max_items: int = 50
    history_max_age_days: int = 90
    cleanup_interval_seconds: int = 3600

    # --- Scoring ---
    fuzzy_match_threshold: float = 0.85

    # --- Mistake reporting ---
    mistake_batch_size: int = 10
    mistake_flush_delay_ms: int = 500
    mistake_send_interval_ms: int = 100

    # --- Session engine ---
    timer_tick_seconds: float = 1.0

    # --- Analytics ---
    analytics_max_events: int = 100
    analytics_batch_size: int = 10

    # --- Collector rate limiting ---
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 60

settings = Settings()

if settings.fuzzy_match_threshold <= 0 or settings.fuzzy_match_threshold > 1:
    raise ValueError("FUZZY_MATCH_THRESHOLD must be in (0, 1]")
