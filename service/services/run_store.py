"""
SQL recommendation store.

Persists runs, candidates, evidence and taste vectors through SQLAlchemy.
finalize_run is the only writer of a run's terminal status; for completed runs
it writes the candidates, selection and evidence in the same transaction.
Library errors surface as PersistenceError.

Sessions are serialized when every session shares one connection (in-memory SQLite).
"""

import logging
import threading
import uuid
from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from recommender.errors import PersistenceError, RecommendationError, RunStateError
from recommender.models.catalog import MediaType
from recommender.models.run import (
    Evidence,
    RecommendationRun,
    RunOutcome,
    RunStatus,
    StoredCandidate,
    TasteVector,
)

from ..db import (
    RecommendationCandidateRecord,
    RecommendationEvidenceRecord,
    RecommendationRunRecord,
    TasteVectorRecord,
    create_db_engine,
    create_session_factory,
)

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def _to_run(record: RecommendationRunRecord) -> RecommendationRun:
    return RecommendationRun(
        run_id=record.run_id,
        user_id=record.user_id,
        media_type=record.media_type,
        status=record.status,
        candidate_count=record.candidate_count,
        selected_count=record.selected_count,
        duration_ms=record.duration_ms,
        created_at=record.created_at,
        completed_at=record.completed_at,
        error_message=record.error_message,
    )


def _to_candidate(
    record: RecommendationCandidateRecord,
    evidence: Optional[List[Evidence]] = None,
) -> StoredCandidate:
    return StoredCandidate(
        candidate_id=record.candidate_id,
        run_id=record.run_id,
        item_id=record.item_id,
        rank=record.rank,
        similarity=record.similarity,
        novelty=record.novelty,
        rating_score=record.rating_score,
        diversity_boost=record.diversity_boost,
        base_score=record.base_score,
        final_score=record.final_score,
        is_selected=record.is_selected,
        selection_rank=record.selection_rank,
        evidence=evidence or [],
    )


class SqlRecommendationStore:
    """
    RecommendationStore backed by any SQLAlchemy database.

    Usage:
        store = SqlRecommendationStore.from_url("sqlite:///recommendations.db")
        run_id = store.create_run("user-1", MediaType.MOVIE)
        store.finalize_run(run_id, RunStatus.COMPLETED, duration_ms=120, outcome=outcome)
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        bind = session_factory.kw.get("bind")
        shared = isinstance(getattr(bind, "pool", None), StaticPool)
        self._lock = threading.Lock() if shared else nullcontext()

    @classmethod
    def from_url(cls, database_url: str) -> "SqlRecommendationStore":
        """Create the store (and its tables) for a database URL."""
        return cls(create_session_factory(create_db_engine(database_url)))

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        with self._lock:
            with self._session_factory.begin() as session:
                yield session

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self._lock:
            with self._session_factory() as session:
                yield session

    # -------------------------------------------------------------------------
    # Runs
    # -------------------------------------------------------------------------

    def create_run(self, user_id: str, media_type: MediaType) -> str:
        run_id = _new_id()
        try:
            with self._transaction() as session:
                session.add(
                    RecommendationRunRecord(
                        run_id=run_id,
                        user_id=user_id,
                        media_type=MediaType(media_type).value,
                        status=RunStatus.PENDING.value,
                        created_at=datetime.now(timezone.utc),
                    )
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create run for user {user_id}: {e}") from e
        return run_id

    def finalize_run(
        self,
        run_id: str,
        status: RunStatus,
        *,
        duration_ms: int,
        outcome: Optional[RunOutcome] = None,
        error_message: Optional[str] = None,
    ) -> RecommendationRun:
        status = RunStatus(status)
        if status == RunStatus.PENDING:
            raise ValueError("A run can only be finalized as completed or failed")
        if status == RunStatus.COMPLETED and outcome is None:
            outcome = RunOutcome(candidate_count=0)

        try:
            with self._transaction() as session:
                record = session.get(RecommendationRunRecord, run_id, with_for_update=True)
                if record is None:
                    raise RecommendationError(f"Run {run_id} not found")
                if record.status != RunStatus.PENDING.value:
                    raise RunStateError(run_id, record.status)

                if status == RunStatus.COMPLETED:
                    self._write_outcome(session, run_id, outcome)
                    record.candidate_count = outcome.candidate_count
                    record.selected_count = outcome.selected_count
                else:
                    record.error_message = error_message

                record.status = status.value
                record.duration_ms = duration_ms
                record.completed_at = datetime.now(timezone.utc)
                session.flush()
                run = _to_run(record)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to finalize run {run_id}: {e}") from e

        logger.debug("[run_store] FINALIZED run=%s status=%s", run_id, status.value)
        return run

    def _write_outcome(self, session: Session, run_id: str, outcome: RunOutcome) -> None:
        candidate_ids: Dict[str, str] = {}
        for candidate in outcome.candidates:
            candidate_id = _new_id()
            candidate_ids[candidate.item_id] = candidate_id
            session.add(
                RecommendationCandidateRecord(
                    candidate_id=candidate_id,
                    run_id=run_id,
                    item_id=candidate.item_id,
                    rank=candidate.rank,
                    similarity=candidate.similarity,
                    novelty=candidate.novelty,
                    rating_score=candidate.rating_score,
                    diversity_boost=candidate.diversity_boost,
                    base_score=candidate.base_score,
                    final_score=candidate.final_score,
                    is_selected=candidate.is_selected,
                    selection_rank=candidate.selection_rank,
                )
            )
        session.flush()
        self._add_evidence(session, candidate_ids, outcome.evidence)

    def _add_evidence(
        self,
        session: Session,
        candidate_ids: Dict[str, str],
        evidence: Dict[str, List[Evidence]],
    ) -> None:
        for item_id, rows in evidence.items():
            candidate_id = candidate_ids.get(item_id)
            if candidate_id is None:
                continue
            for row in rows:
                session.add(
                    RecommendationEvidenceRecord(
                        evidence_id=_new_id(),
                        candidate_id=candidate_id,
                        similar_item_id=row.similar_item_id,
                        similarity=row.similarity,
                        evidence_type=row.evidence_type.value,
                    )
                )

    def get_run(self, run_id: str) -> Optional[RecommendationRun]:
        with self._session() as session:
            record = session.get(RecommendationRunRecord, run_id)
            return _to_run(record) if record is not None else None

    def get_active_run(self, user_id: str, media_type: MediaType) -> Optional[RecommendationRun]:
        stmt = (
            select(RecommendationRunRecord)
            .where(
                RecommendationRunRecord.user_id == user_id,
                RecommendationRunRecord.media_type == MediaType(media_type).value,
                RecommendationRunRecord.status == RunStatus.COMPLETED.value,
            )
            .order_by(
                RecommendationRunRecord.completed_at.desc(),
                RecommendationRunRecord.created_at.desc(),
            )
            .limit(1)
        )
        with self._session() as session:
            record = session.scalars(stmt).first()
            return _to_run(record) if record is not None else None

    def list_runs(self, user_id: str) -> List[RecommendationRun]:
        """All of the user's runs, newest first."""
        stmt = (
            select(RecommendationRunRecord)
            .where(RecommendationRunRecord.user_id == user_id)
            .order_by(RecommendationRunRecord.created_at.desc())
        )
        with self._session() as session:
            return [_to_run(r) for r in session.scalars(stmt)]

    # -------------------------------------------------------------------------
    # Candidates
    # -------------------------------------------------------------------------

    def _load_evidence(self, session: Session, candidate_ids: List[str]) -> Dict[str, List[Evidence]]:
        if not candidate_ids:
            return {}
        stmt = (
            select(RecommendationEvidenceRecord)
            .where(RecommendationEvidenceRecord.candidate_id.in_(candidate_ids))
            .order_by(RecommendationEvidenceRecord.similarity.desc())
        )
        evidence: Dict[str, List[Evidence]] = {}
        for row in session.scalars(stmt):
            evidence.setdefault(row.candidate_id, []).append(
                Evidence(
                    similar_item_id=row.similar_item_id,
                    similarity=row.similarity,
                    evidence_type=row.evidence_type,
                )
            )
        return evidence

    def get_selected_candidates(self, run_id: str) -> List[StoredCandidate]:
        stmt = (
            select(RecommendationCandidateRecord)
            .where(
                RecommendationCandidateRecord.run_id == run_id,
                RecommendationCandidateRecord.is_selected.is_(True),
            )
            .order_by(RecommendationCandidateRecord.selection_rank)
        )
        with self._session() as session:
            records = list(session.scalars(stmt))
            evidence = self._load_evidence(session, [r.candidate_id for r in records])
            return [_to_candidate(r, evidence.get(r.candidate_id)) for r in records]

    def list_candidates(self, run_id: str) -> List[StoredCandidate]:
        """Every stored candidate of a run in base-score rank order (no evidence)."""
        stmt = (
            select(RecommendationCandidateRecord)
            .where(RecommendationCandidateRecord.run_id == run_id)
            .order_by(RecommendationCandidateRecord.rank)
        )
        with self._session() as session:
            return [_to_candidate(r) for r in session.scalars(stmt)]

    # -------------------------------------------------------------------------
    # Clearing
    # -------------------------------------------------------------------------

    def _delete_runs(self, session: Session, run_ids) -> None:
        candidate_ids = select(RecommendationCandidateRecord.candidate_id).where(
            RecommendationCandidateRecord.run_id.in_(run_ids)
        )
        session.query(RecommendationEvidenceRecord).filter(
            RecommendationEvidenceRecord.candidate_id.in_(candidate_ids)
        ).delete(synchronize_session=False)
        session.query(RecommendationCandidateRecord).filter(
            RecommendationCandidateRecord.run_id.in_(run_ids)
        ).delete(synchronize_session=False)
        session.query(RecommendationRunRecord).filter(
            RecommendationRunRecord.run_id.in_(run_ids)
        ).delete(synchronize_session=False)

    def clear_user(self, user_id: str) -> None:
        try:
            with self._transaction() as session:
                run_ids = list(
                    session.scalars(
                        select(RecommendationRunRecord.run_id).where(
                            RecommendationRunRecord.user_id == user_id
                        )
                    )
                )
                if run_ids:
                    self._delete_runs(session, run_ids)
                session.query(TasteVectorRecord).filter(
                    TasteVectorRecord.user_id == user_id
                ).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to clear recommendations for user {user_id}: {e}") from e
        logger.info("[run_store] CLEARED user=%s runs=%s", user_id, len(run_ids))

    def clear_all(self) -> int:
        try:
            with self._transaction() as session:
                session.query(RecommendationEvidenceRecord).delete(synchronize_session=False)
                session.query(RecommendationCandidateRecord).delete(synchronize_session=False)
                removed = session.query(RecommendationRunRecord).delete(synchronize_session=False)
                session.query(TasteVectorRecord).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to clear recommendations: {e}") from e
        logger.info("[run_store] CLEARED_ALL runs=%s", removed)
        return removed

    # -------------------------------------------------------------------------
    # Taste vectors
    # -------------------------------------------------------------------------

    def save_taste_vector(self, taste_vector: TasteVector) -> None:
        media_type = MediaType(taste_vector.media_type).value
        try:
            with self._transaction() as session:
                record = session.get(TasteVectorRecord, (taste_vector.user_id, media_type))
                if record is None:
                    record = TasteVectorRecord(user_id=taste_vector.user_id, media_type=media_type)
                    session.add(record)
                record.model_id = taste_vector.model_id
                record.vector = list(taste_vector.vector)
                record.updated_at = taste_vector.updated_at
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to save taste vector for user {taste_vector.user_id}: {e}"
            ) from e

    def get_taste_vector(self, user_id: str, media_type: MediaType) -> Optional[TasteVector]:
        with self._session() as session:
            record = session.get(TasteVectorRecord, (user_id, MediaType(media_type).value))
            if record is None:
                return None
            return TasteVector(
                user_id=record.user_id,
                media_type=record.media_type,
                model_id=record.model_id,
                vector=record.vector,
                updated_at=record.updated_at,
            )
