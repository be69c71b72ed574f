# vocab_practice/models/records.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    DateTime,
    JSON,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base
from datetime import datetime


Base = declarative_base()


class KeyValueEntry(Base):
    """One string blob of the client-side durable store."""
    __tablename__ = "kv_entries"
    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class PracticeSessionRecord(Base):
    __tablename__ = "practice_sessions"
    id = Column(Integer, primary_key=True, index=True)
    client_session_id = Column(String, index=True)
    learner_session_id = Column(String, nullable=True, index=True)
    practice_set_id = Column(String, index=True)
    start_time = Column(DateTime)
    end_time = Column(DateTime)
    timer_duration = Column(Integer, nullable=True)  # minutes
    answers = Column(JSON, default=lambda: {})
    score = Column(Float)
    created_at = Column(DateTime, default=datetime.utcnow)


class PracticeMistake(Base):
    __tablename__ = "practice_mistakes"
    __table_args__ = (
        UniqueConstraint("session_token", "wordlist_id", "word", "question_type", name="uq_mistake_key"),
    )
    id = Column(Integer, primary_key=True, index=True)
    session_token = Column(String, index=True)
    wordlist_id = Column(String, index=True)
    word = Column(String)
    translation = Column(String)
    question_type = Column(String)
    mistake_count = Column(Integer, default=1)
    first_seen_at = Column(DateTime, default=datetime.utcnow)
    last_seen_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
