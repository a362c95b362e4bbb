from sqlalchemy import Column, String, Integer, Float, Boolean, DateTime, JSON, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from app.database import Base

def generate_uuid():
    return str(uuid.uuid4())


class TestSession(Base):
    """One attempt at a mock test. Lifecycle is owned by the test engine."""
    __tablename__ = "test_sessions"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, index=True)
    test_type = Column(String, nullable=False, default="full")  # "full", "subject-wise", "custom"
    status = Column(String, nullable=False, default="active", index=True)  # "active", "completed", "abandoned"
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    total_questions = Column(Integer, nullable=False)
    configuration = Column(JSON, nullable=True)  # subjects, questions per subject, time limit

    # Relationships
    questions = relationship("TestQuestion", back_populates="session")
    answers = relationship("UserAnswer", back_populates="session")


class Question(Base):
    __tablename__ = "questions"

    id = Column(String, primary_key=True, default=generate_uuid)
    subject = Column(String, nullable=False, index=True)  # "physics", "chemistry", "mathematics"
    difficulty = Column(String, nullable=False, default="medium", index=True)  # "easy", "medium", "hard"
    question_text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)  # List of 4 answer options
    correct_answer = Column(String, nullable=False)
    explanation = Column(Text, nullable=True)
    source_pattern = Column(String, nullable=True)  # Past paper pattern reference
    question_metadata = Column("metadata", JSON, nullable=True)  # topic, subtopic, concept_tags, estimated_time
    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class TestQuestion(Base):
    """Assignment of bank questions to a test session"""
    __tablename__ = "test_questions"
    __table_args__ = (
        UniqueConstraint("test_session_id", "question_number", name="uq_test_question_number"),
    )

    id = Column(String, primary_key=True, default=generate_uuid)
    test_session_id = Column(String, ForeignKey("test_sessions.id"), nullable=False, index=True)
    question_id = Column(String, ForeignKey("questions.id"), nullable=False, index=True)
    question_number = Column(Integer, nullable=False)

    # Relationships
    session = relationship("TestSession", back_populates="questions")
    question = relationship("Question")


class UserAnswer(Base):
    __tablename__ = "user_answers"
    __table_args__ = (
        UniqueConstraint("test_session_id", "question_id", name="uq_user_answer_question"),
    )

    id = Column(String, primary_key=True, default=generate_uuid)
    test_session_id = Column(String, ForeignKey("test_sessions.id"), nullable=False, index=True)
    question_id = Column(String, ForeignKey("questions.id"), nullable=False, index=True)
    selected_answer = Column(String, nullable=True)  # NULL = unanswered
    is_correct = Column(Boolean, nullable=True)
    time_spent_seconds = Column(Integer, nullable=True)
    answered_at = Column(DateTime, nullable=True, index=True)
    is_marked_for_review = Column(Boolean, default=False)

    # Relationships
    session = relationship("TestSession", back_populates="answers")
    question = relationship("Question")


class PerformanceAnalytics(Base):
    """
    Per-session, per-subject performance summary written by the metrics calculator.
    Rows are append-only: recalculating a session adds a new set of rows.
    """
    __tablename__ = "performance_analytics"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, index=True)
    test_session_id = Column(String, ForeignKey("test_sessions.id"), nullable=False, index=True)
    subject = Column(String, nullable=False, index=True)
    total_questions = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False)
    accuracy_percentage = Column(Float, nullable=False)
    average_time_per_question = Column(Float, nullable=False)
    strengths = Column(JSON, nullable=True)  # List of strength areas
    weaknesses = Column(JSON, nullable=True)  # List of weakness areas
    calculated_at = Column(DateTime, default=datetime.utcnow, index=True)
