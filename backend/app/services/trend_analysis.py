"""
Trend Analysis & Score Prediction

Derived from progress data:
- overall trend from the first-to-last improvement rate (+/-10%)
- per-subject trends (passed through from progress tracking)
- next-test prediction: least-squares line over the last 5 sessions
- percentile estimate: a fixed lookup on average accuracy. There is no
  population data behind it.
"""

import logging
from datetime import datetime

from app.schemas.analytics import (
    ConfidenceLevel,
    PerformancePrediction,
    ProgressData,
    SubjectTrend,
    Trend,
    TrendAnalysis,
)
from app.services.analytics_store import AnalyticsStore
from app.services.progress_tracker import calculate_progress_data
from app.utils.stats import linear_regression, percent_change

logger = logging.getLogger(__name__)

OVERALL_TREND_THRESHOLD = 10  # improvement rate, percent
MIN_TESTS_FOR_PREDICTION = 3
PREDICTION_WINDOW = 5

# (minimum average accuracy, percentile)
PERCENTILE_TABLE = [
    (90, 95),
    (80, 85),
    (70, 70),
    (60, 55),
    (50, 40),
]
PERCENTILE_FLOOR = 25


def classify_overall_trend(improvement_rate: float) -> Trend:
    if improvement_rate > OVERALL_TREND_THRESHOLD:
        return Trend.IMPROVING
    if improvement_rate < -OVERALL_TREND_THRESHOLD:
        return Trend.DECLINING
    return Trend.STABLE


def confidence_from_consistency(consistency_score: float) -> ConfidenceLevel:
    if consistency_score > 80:
        return ConfidenceLevel.HIGH
    if consistency_score < 50:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.MEDIUM


def predict_performance(progress: ProgressData) -> PerformancePrediction:
    """
    Predict the next test's score.

    The score is the predicted accuracy (clamped to 0-100) applied to the
    question count of the most recent session in the window. The count
    comes from the session itself; stored metric rows are append-only and
    may cover a session more than once.
    """
    overall = progress.overall_progress

    if progress.total_tests < MIN_TESTS_FOR_PREDICTION or not progress.test_history:
        return PerformancePrediction(
            predicted_score=overall.average_score,
            confidence_level=ConfidenceLevel.LOW,
            based_on_tests=progress.total_tests,
            projected_improvement=0,
        )

    window = progress.test_history[-PREDICTION_WINDOW:]
    accuracies = [t.accuracy_percentage for t in window]

    slope, intercept = linear_regression(accuracies)
    predicted_accuracy = slope * len(window) + intercept
    predicted_accuracy = max(0.0, min(100.0, predicted_accuracy))

    question_basis = window[-1].session_question_count
    predicted_score = round(predicted_accuracy / 100 * question_basis)

    return PerformancePrediction(
        predicted_score=predicted_score,
        confidence_level=confidence_from_consistency(overall.consistency_score),
        based_on_tests=len(window),
        projected_improvement=percent_change(overall.average_accuracy, predicted_accuracy),
    )


def calculate_percentile_ranking(average_accuracy: float) -> int:
    for minimum, percentile in PERCENTILE_TABLE:
        if average_accuracy >= minimum:
            return percentile
    return PERCENTILE_FLOOR


def build_trend_analysis(progress: ProgressData) -> TrendAnalysis:
    return TrendAnalysis(
        user_id=progress.user_id,
        overall_trend=classify_overall_trend(progress.overall_progress.improvement_rate),
        subject_trends=[
            SubjectTrend(subject=sp.subject, trend=sp.trend)
            for sp in progress.subject_progress
        ],
        performance_prediction=predict_performance(progress),
        percentile_ranking=calculate_percentile_ranking(progress.overall_progress.average_accuracy),
        calculated_at=datetime.utcnow(),
    )


def calculate_trends(store: AnalyticsStore, user_id: str) -> TrendAnalysis:
    progress = calculate_progress_data(store, user_id)
    analysis = build_trend_analysis(progress)
    logger.debug(
        "Trends for user %s: overall=%s, predicted=%s",
        user_id, analysis.overall_trend.value, analysis.performance_prediction.predicted_score
    )
    return analysis
