"""
Recommendation storage schema (SQLAlchemy).

Tables:
- taste_vectors: one row per (user_id, media_type), fully replaced on rebuild
- recommendation_runs: one row per generation attempt
- recommendation_candidates: scored candidates of a completed run
- recommendation_evidence: watched items explaining a selected candidate
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TasteVectorRecord(Base):
    """`taste_vectors` table."""

    __tablename__ = "taste_vectors"

    user_id = Column(String(255), primary_key=True)
    media_type = Column(String(16), primary_key=True)
    model_id = Column(String(255), nullable=False)
    vector = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"TasteVectorRecord(user_id={self.user_id}, media_type={self.media_type}, model={self.model_id})"


class RecommendationRunRecord(Base):
    """`recommendation_runs` table."""

    __tablename__ = "recommendation_runs"

    run_id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    media_type = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False, default="pending")
    candidate_count = Column(Integer, nullable=False, default=0)
    selected_count = Column(Integer, nullable=False, default=0)
    duration_ms = Column(Integer)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    completed_at = Column(DateTime(timezone=True))
    error_message = Column(Text)


class RecommendationCandidateRecord(Base):
    """`recommendation_candidates` table."""

    __tablename__ = "recommendation_candidates"

    candidate_id = Column(String(36), primary_key=True)
    run_id = Column(
        String(36),
        ForeignKey("recommendation_runs.run_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_id = Column(String(255), nullable=False)
    rank = Column(Integer, nullable=False)
    similarity = Column(Float, nullable=False)
    novelty = Column(Float, nullable=False)
    rating_score = Column(Float, nullable=False)
    diversity_boost = Column(Float, nullable=False, default=0.0)
    base_score = Column(Float, nullable=False)
    final_score = Column(Float, nullable=False)
    is_selected = Column(Boolean, nullable=False, default=False)
    selection_rank = Column(Integer)


class RecommendationEvidenceRecord(Base):
    """`recommendation_evidence` table."""

    __tablename__ = "recommendation_evidence"

    evidence_id = Column(String(36), primary_key=True)
    candidate_id = Column(
        String(36),
        ForeignKey("recommendation_candidates.candidate_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    similar_item_id = Column(String(255), nullable=False)
    similarity = Column(Float, nullable=False)
    evidence_type = Column(String(16), nullable=False)


def create_db_engine(database_url: str) -> Engine:
    """
    Engine for the given URL. In-memory SQLite shares one connection so every
    session sees the same database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create tables if missing and return a session factory bound to the engine."""
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
