"""
Analytics Storage

The storage collaborator every analytics component receives explicitly.
Wraps a SQLAlchemy session and maps rows to the typed domain records in
app.schemas.analytics (and back, for inserts).

Null handling is decided here, once:
- user_answers.time_spent_seconds NULL -> 0
- user_answers.is_correct NULL -> False
- JSON list columns NULL -> []
- questions.metadata NULL or missing topic -> topic ""

Any SQLAlchemyError is logged and re-raised as StorageError.
"""

import logging
from functools import wraps
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import StorageError
from app.models.models import (
    PerformanceAnalytics, Question, TestQuestion, TestSession, UserAnswer
)
from app.schemas.analytics import (
    AnswerRecord, QuestionMetadata, QuestionRecord, SubjectMetricsRecord, TestSessionRecord
)

logger = logging.getLogger(__name__)


def _storage_operation(func):
    """Translate driver failures into StorageError."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error("Storage operation %s failed: %s", func.__name__, e)
            raise StorageError(f"Storage operation '{func.__name__}' failed", details=str(e)) from e
    return wrapper


# =============================================================================
# ROW <-> RECORD MAPPING
# =============================================================================

def row_to_session(row: TestSession) -> TestSessionRecord:
    return TestSessionRecord(
        id=row.id,
        user_id=row.user_id,
        test_type=row.test_type,
        status=row.status,
        started_at=row.started_at,
        completed_at=row.completed_at,
        duration_seconds=row.duration_seconds,
        total_questions=row.total_questions,
        configuration=row.configuration or {},
    )


def row_to_question(row: Question) -> QuestionRecord:
    meta: Dict[str, Any] = row.question_metadata or {}
    return QuestionRecord(
        id=row.id,
        subject=row.subject,
        difficulty=row.difficulty,
        question_text=row.question_text,
        options=row.options or [],
        correct_answer=row.correct_answer,
        explanation=row.explanation,
        source_pattern=row.source_pattern,
        metadata=QuestionMetadata(
            topic=meta.get("topic") or "",
            subtopic=meta.get("subtopic"),
            concept_tags=meta.get("concept_tags") or meta.get("conceptTags") or [],
            estimated_time=meta.get("estimated_time") or meta.get("estimatedTime") or 0,
        ),
    )


def row_to_answer(row: UserAnswer) -> AnswerRecord:
    return AnswerRecord(
        id=row.id,
        test_session_id=row.test_session_id,
        question_id=row.question_id,
        selected_answer=row.selected_answer,
        is_correct=bool(row.is_correct),
        time_spent_seconds=row.time_spent_seconds or 0,
        answered_at=row.answered_at,
        is_marked_for_review=bool(row.is_marked_for_review),
    )


def row_to_subject_metrics(row: PerformanceAnalytics) -> SubjectMetricsRecord:
    return SubjectMetricsRecord(
        id=row.id,
        user_id=row.user_id,
        test_session_id=row.test_session_id,
        subject=row.subject,
        total_questions=row.total_questions,
        correct_answers=row.correct_answers,
        accuracy_percentage=row.accuracy_percentage,
        average_time_per_question=row.average_time_per_question,
        strengths=list(row.strengths or []),
        weaknesses=list(row.weaknesses or []),
        calculated_at=row.calculated_at,
    )


def subject_metrics_to_row(record: SubjectMetricsRecord) -> PerformanceAnalytics:
    return PerformanceAnalytics(
        id=record.id,
        user_id=record.user_id,
        test_session_id=record.test_session_id,
        subject=record.subject,
        total_questions=record.total_questions,
        correct_answers=record.correct_answers,
        accuracy_percentage=record.accuracy_percentage,
        average_time_per_question=record.average_time_per_question,
        strengths=list(record.strengths),
        weaknesses=list(record.weaknesses),
        calculated_at=record.calculated_at,
    )


# =============================================================================
# STORE
# =============================================================================

class AnalyticsStore:
    """
    Read/write access to everything the analytics engine needs.

    Holds no state besides the session; one instance per request.
    """

    def __init__(self, db: Session):
        self.db = db

    @_storage_operation
    def get_session(self, session_id: str) -> Optional[TestSessionRecord]:
        row = self.db.query(TestSession).filter(TestSession.id == session_id).first()
        return row_to_session(row) if row else None

    @_storage_operation
    def get_session_for_user(self, session_id: str, user_id: str) -> Optional[TestSessionRecord]:
        row = self.db.query(TestSession).filter(
            TestSession.id == session_id,
            TestSession.user_id == user_id
        ).first()
        return row_to_session(row) if row else None

    @_storage_operation
    def get_answers(self, session_id: str) -> List[AnswerRecord]:
        rows = self.db.query(UserAnswer).filter(
            UserAnswer.test_session_id == session_id
        ).all()
        return [row_to_answer(r) for r in rows]

    @_storage_operation
    def get_session_questions(self, session_id: str) -> List[QuestionRecord]:
        rows = self.db.query(Question).join(
            TestQuestion, TestQuestion.question_id == Question.id
        ).filter(
            TestQuestion.test_session_id == session_id
        ).order_by(TestQuestion.question_number).all()
        return [row_to_question(r) for r in rows]

    @_storage_operation
    def insert_subject_metrics(self, records: List[SubjectMetricsRecord]) -> int:
        """
        Append one row per record.

        Each row is committed on its own; a failure part-way leaves the
        earlier rows of the batch in place.
        """
        for record in records:
            self.db.add(subject_metrics_to_row(record))
            self.db.commit()
        return len(records)

    @_storage_operation
    def get_subject_metrics_for_user(self, user_id: str) -> List[SubjectMetricsRecord]:
        rows = self.db.query(PerformanceAnalytics).filter(
            PerformanceAnalytics.user_id == user_id
        ).all()
        return [row_to_subject_metrics(r) for r in rows]

    @_storage_operation
    def get_subject_metrics_for_session(self, session_id: str) -> List[SubjectMetricsRecord]:
        rows = self.db.query(PerformanceAnalytics).filter(
            PerformanceAnalytics.test_session_id == session_id
        ).all()
        return [row_to_subject_metrics(r) for r in rows]

    @_storage_operation
    def get_sessions_by_status(self, user_id: str, status: str) -> List[TestSessionRecord]:
        rows = self.db.query(TestSession).filter(
            TestSession.user_id == user_id,
            TestSession.status == status
        ).order_by(TestSession.started_at.asc()).all()
        return [row_to_session(r) for r in rows]

    @_storage_operation
    def ping(self) -> bool:
        self.db.execute(text("SELECT 1"))
        return True
