"""
Pytest configuration and fixtures for the analytics backend tests.

Provides:
- Test database setup/teardown
- FastAPI test client
- Factories for sessions, questions, answers and stored subject metrics
"""

import pytest
import os
from typing import Callable, Generator, List, Optional, Tuple
from datetime import datetime, timedelta
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

# Set test environment before importing app
os.environ["DATABASE_URL"] = "sqlite:///./test_analytics.db"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("SENTRY_DSN", None)

from app.main import app
from app.database import Base, get_db
from app.models.models import (
    TestSession, Question, TestQuestion, UserAnswer, PerformanceAnalytics
)
from app.services.analytics_store import AnalyticsStore
from app.middleware.performance_monitor import reset_stats


# Test database setup
TEST_DATABASE_URL = "sqlite:///./test_analytics.db"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

BASE_TIME = datetime(2024, 1, 1, 9, 0, 0)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database tables once per test session"""
    Base.metadata.create_all(bind=test_engine)
    yield
    # Cleanup after all tests
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()
    # Remove test database file
    if os.path.exists("./test_analytics.db"):
        os.remove("./test_analytics.db")


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Provide a database session for each test, with rollback after"""
    connection = test_engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def store(db: Session) -> AnalyticsStore:
    return AnalyticsStore(db)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Provide FastAPI test client with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass  # Don't close - let the fixture handle it

    reset_stats()
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# =========================================================================
# Factories
# =========================================================================

@pytest.fixture
def create_session(db: Session) -> Callable[..., TestSession]:
    """Factory for test sessions; started_at defaults to BASE_TIME + `day` days"""
    def _create(
        user_id: str = "student-1",
        status: str = "completed",
        day: int = 0,
        total_questions: int = 0,
        test_type: str = "full",
    ) -> TestSession:
        started = BASE_TIME + timedelta(days=day)
        session = TestSession(
            user_id=user_id,
            test_type=test_type,
            status=status,
            started_at=started,
            completed_at=started + timedelta(hours=3) if status == "completed" else None,
            total_questions=total_questions,
            configuration={"subjects": ["physics", "chemistry", "mathematics"]},
        )
        db.add(session)
        db.commit()
        db.refresh(session)
        return session
    return _create


@pytest.fixture
def create_question(db: Session) -> Callable[..., Question]:
    def _create(subject: str = "physics", topic: Optional[str] = "Mechanics", difficulty: str = "medium") -> Question:
        question = Question(
            subject=subject,
            difficulty=difficulty,
            question_text=f"A {subject} question about {topic}",
            options=["A", "B", "C", "D"],
            correct_answer="A",
            question_metadata={"topic": topic, "conceptTags": [], "estimatedTime": 90} if topic is not None else None,
        )
        db.add(question)
        db.commit()
        db.refresh(question)
        return question
    return _create


# (subject, topic, is_correct or None for unanswered, time_spent_seconds)
AnswerSpec = Tuple[str, Optional[str], Optional[bool], int]


@pytest.fixture
def build_test(db: Session, create_session, create_question) -> Callable[..., TestSession]:
    """
    Factory for a complete session: questions assigned in order, one answer
    row per tuple. is_correct=None leaves the question unanswered.
    """
    def _build(specs: List[AnswerSpec], user_id: str = "student-1", day: int = 0,
               status: str = "completed") -> TestSession:
        session = create_session(user_id=user_id, status=status, day=day, total_questions=len(specs))
        for number, (subject, topic, is_correct, seconds) in enumerate(specs, start=1):
            question = create_question(subject=subject, topic=topic)
            db.add(TestQuestion(
                test_session_id=session.id,
                question_id=question.id,
                question_number=number,
            ))
            db.add(UserAnswer(
                test_session_id=session.id,
                question_id=question.id,
                selected_answer=None if is_correct is None else ("A" if is_correct else "B"),
                is_correct=is_correct,
                time_spent_seconds=seconds,
                answered_at=session.started_at + timedelta(minutes=number),
            ))
        db.commit()
        return session
    return _build


@pytest.fixture
def create_metrics_row(db: Session) -> Callable[..., PerformanceAnalytics]:
    """Factory for stored per-subject metric rows"""
    def _create(
        session: TestSession,
        subject: str = "physics",
        total: int = 10,
        correct: int = 7,
        avg_time: float = 90.0,
        strengths: Optional[List[str]] = None,
        weaknesses: Optional[List[str]] = None,
        calculated_at: Optional[datetime] = None,
    ) -> PerformanceAnalytics:
        row = PerformanceAnalytics(
            user_id=session.user_id,
            test_session_id=session.id,
            subject=subject,
            total_questions=total,
            correct_answers=correct,
            accuracy_percentage=correct / total * 100 if total else 0.0,
            average_time_per_question=avg_time,
            strengths=strengths or [],
            weaknesses=weaknesses or [],
            calculated_at=calculated_at or session.started_at + timedelta(hours=4),
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    return _create


@pytest.fixture
def scored_test(create_session, create_metrics_row) -> Callable[..., TestSession]:
    """Completed session with one stored physics row at the given accuracy out of 100"""
    def _create(correct: int, day: int, user_id: str = "student-1", avg_time: float = 90.0,
                weaknesses: Optional[List[str]] = None, strengths: Optional[List[str]] = None) -> TestSession:
        session = create_session(user_id=user_id, day=day, total_questions=100)
        create_metrics_row(
            session, subject="physics", total=100, correct=correct, avg_time=avg_time,
            strengths=strengths, weaknesses=weaknesses,
        )
        return session
    return _create
