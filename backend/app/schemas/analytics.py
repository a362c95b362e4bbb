"""
Analytics Schemas

Pydantic models shared by the analytics services and the HTTP layer.

Two groups live here:
- Domain records: typed views of stored rows (sessions, questions, answers,
  persisted subject metrics). Nullable columns surface as Optional fields.
- Derived views: metrics, progress, comparison, trend and recommendation
  payloads. These are computed per request and never stored.

All models serialize with camelCase keys to match the public JSON contract.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS
# =============================================================================

class Subject(str, Enum):
    PHYSICS = "physics"
    CHEMISTRY = "chemistry"
    MATHEMATICS = "mathematics"


# Fixed iteration order for every per-subject view
SUBJECTS: List[str] = [s.value for s in Subject]


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class TestType(str, Enum):
    FULL = "full"
    SUBJECT_WISE = "subject-wise"
    CUSTOM = "custom"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Trend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendationType(str, Enum):
    SUBJECT = "subject"
    TOPIC = "topic"
    TIME_MANAGEMENT = "time-management"
    STRATEGY = "strategy"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AnalyticsModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# DOMAIN RECORDS
# =============================================================================

class TestSessionRecord(AnalyticsModel):
    id: str
    user_id: str
    test_type: TestType = TestType.FULL
    status: SessionStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    total_questions: int = Field(..., ge=0)
    configuration: Dict[str, Any] = Field(default_factory=dict)


class QuestionMetadata(AnalyticsModel):
    topic: str = ""
    subtopic: Optional[str] = None
    concept_tags: List[str] = Field(default_factory=list)
    estimated_time: int = 0


class QuestionRecord(AnalyticsModel):
    id: str
    subject: Subject
    difficulty: Difficulty = Difficulty.MEDIUM
    question_text: str
    options: List[str] = Field(default_factory=list)
    correct_answer: str
    explanation: Optional[str] = None
    source_pattern: Optional[str] = None
    metadata: QuestionMetadata = Field(default_factory=QuestionMetadata)


class AnswerRecord(AnalyticsModel):
    id: str
    test_session_id: str
    question_id: str
    selected_answer: Optional[str] = None
    is_correct: bool = False
    time_spent_seconds: int = Field(0, ge=0)
    answered_at: Optional[datetime] = None
    is_marked_for_review: bool = False

    @property
    def is_answered(self) -> bool:
        return bool(self.selected_answer)


class SubjectMetricsRecord(AnalyticsModel):
    """Persisted per-session, per-subject summary."""
    id: str
    user_id: str
    test_session_id: str
    subject: str
    total_questions: int
    correct_answers: int
    accuracy_percentage: float
    average_time_per_question: float
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    calculated_at: datetime


# =============================================================================
# SESSION METRICS
# =============================================================================

class TopicPerformance(AnalyticsModel):
    topic: str
    total_questions: int
    correct_answers: int
    accuracy_percentage: float


class SubjectAnalysis(AnalyticsModel):
    subject: str
    total_questions: int
    correct_answers: int
    accuracy_percentage: float
    average_time_per_question: float
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    topic_breakdown: List[TopicPerformance] = Field(default_factory=list)


class TimeManagementAnalysis(AnalyticsModel):
    fast_questions: int  # < 60 seconds
    normal_questions: int  # 60-120 seconds
    slow_questions: int  # > 120 seconds
    time_distribution: Dict[str, float]
    suggestions: List[str] = Field(default_factory=list)


class ThinkingAbilityAssessment(AnalyticsModel):
    quick_correct_answers: int  # correct in < 60s
    thoughtful_correct_answers: int  # correct in 60-120s
    slow_correct_answers: int  # correct in > 120s
    impulsive_errors: int  # wrong in < 30s
    confusion_errors: int  # wrong after > 120s
    confidence_score: float = Field(..., ge=0, le=100)
    insights: List[str] = Field(default_factory=list)


class PerformanceMetrics(AnalyticsModel):
    user_id: str
    test_session_id: str
    overall_score: int
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    unanswered_questions: int
    accuracy_percentage: float
    average_time_per_question: float
    total_time_spent: int
    subject_wise_analysis: List[SubjectAnalysis]
    time_management_analysis: TimeManagementAnalysis
    thinking_ability_assessment: ThinkingAbilityAssessment
    calculated_at: datetime


class CalculationResponse(AnalyticsModel):
    metrics: PerformanceMetrics
    calculation_time_ms: float
    stored_rows: int


# =============================================================================
# PROGRESS
# =============================================================================

class TestHistoryItem(AnalyticsModel):
    test_session_id: str
    test_date: datetime
    overall_score: int
    accuracy_percentage: float
    total_questions: int
    correct_answers: int
    test_type: str
    # questions assigned to the session; internal, not part of the JSON contract
    session_question_count: int = Field(0, exclude=True)


class OverallProgress(AnalyticsModel):
    average_score: float = 0
    average_accuracy: float = 0
    best_score: int = 0
    worst_score: int = 0
    improvement_rate: float = 0  # % change first -> last test
    consistency_score: float = Field(0, ge=0, le=100)


class SubjectProgress(AnalyticsModel):
    subject: str
    average_accuracy: float
    trend: Trend
    test_count: int
    recent_performance: List[float]  # last 5 accuracies


class ProgressData(AnalyticsModel):
    user_id: str
    total_tests: int
    test_history: List[TestHistoryItem]
    overall_progress: OverallProgress
    subject_progress: List[SubjectProgress]
    consistent_weak_areas: List[str]
    improvement_areas: List[str]
    calculated_at: datetime


# =============================================================================
# COMPARISON
# =============================================================================

class CompareRequest(AnalyticsModel):
    test_session_ids: List[str]


class SubjectScore(AnalyticsModel):
    subject: str
    accuracy: float


class TestComparisonItem(AnalyticsModel):
    test_session_id: str
    test_date: datetime
    overall_score: int
    accuracy_percentage: float
    subject_scores: List[SubjectScore]
    time_management: float  # mean per-subject average time


class ComparisonData(AnalyticsModel):
    user_id: str
    test_sessions: List[TestComparisonItem]
    improvements: List[str]
    declines: List[str]
    insights: List[str]
    calculated_at: datetime


# =============================================================================
# TRENDS & RECOMMENDATIONS
# =============================================================================

class SubjectTrend(AnalyticsModel):
    subject: str
    trend: Trend


class PerformancePrediction(AnalyticsModel):
    predicted_score: float
    confidence_level: ConfidenceLevel
    based_on_tests: int
    projected_improvement: float  # percentage


class TrendAnalysis(AnalyticsModel):
    user_id: str
    overall_trend: Trend
    subject_trends: List[SubjectTrend]
    performance_prediction: PerformancePrediction
    percentile_ranking: int = Field(..., ge=0, le=100)
    calculated_at: datetime


class Recommendation(AnalyticsModel):
    type: RecommendationType
    priority: Priority
    title: str
    description: str
    action_items: List[str]


# =============================================================================
# ERRORS
# =============================================================================

class ErrorBody(AnalyticsModel):
    code: str
    message: str
    details: Optional[Any] = None
    timestamp: datetime
    request_id: Optional[str] = None


class ErrorResponse(AnalyticsModel):
    error: ErrorBody
