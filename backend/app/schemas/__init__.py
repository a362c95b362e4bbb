"""
Analytics Schemas Package

Pydantic models for stored records and derived analytics views.
"""

from app.schemas.analytics import (
    # Enums
    Subject,
    SUBJECTS,
    SessionStatus,
    TestType,
    Difficulty,
    Trend,
    ConfidenceLevel,
    RecommendationType,
    Priority,

    # Domain records
    TestSessionRecord,
    QuestionMetadata,
    QuestionRecord,
    AnswerRecord,
    SubjectMetricsRecord,

    # Session metrics
    TopicPerformance,
    SubjectAnalysis,
    TimeManagementAnalysis,
    ThinkingAbilityAssessment,
    PerformanceMetrics,
    CalculationResponse,

    # Cross-session views
    TestHistoryItem,
    OverallProgress,
    SubjectProgress,
    ProgressData,
    CompareRequest,
    SubjectScore,
    TestComparisonItem,
    ComparisonData,
    SubjectTrend,
    PerformancePrediction,
    TrendAnalysis,
    Recommendation,

    # Errors
    ErrorBody,
    ErrorResponse,
)

__all__ = [
    "Subject",
    "SUBJECTS",
    "SessionStatus",
    "TestType",
    "Difficulty",
    "Trend",
    "ConfidenceLevel",
    "RecommendationType",
    "Priority",
    "TestSessionRecord",
    "QuestionMetadata",
    "QuestionRecord",
    "AnswerRecord",
    "SubjectMetricsRecord",
    "TopicPerformance",
    "SubjectAnalysis",
    "TimeManagementAnalysis",
    "ThinkingAbilityAssessment",
    "PerformanceMetrics",
    "CalculationResponse",
    "TestHistoryItem",
    "OverallProgress",
    "SubjectProgress",
    "ProgressData",
    "CompareRequest",
    "SubjectScore",
    "TestComparisonItem",
    "ComparisonData",
    "SubjectTrend",
    "PerformancePrediction",
    "TrendAnalysis",
    "Recommendation",
    "ErrorBody",
    "ErrorResponse",
]
