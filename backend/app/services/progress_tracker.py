"""
Progress Tracker

Builds a user's longitudinal progress from completed sessions and the
subject metrics stored for them:
- per-session history (totals summed across subjects)
- overall stats: averages, best/worst, improvement rate, consistency
- per-subject trend from the last 3 results vs everything before
- weaknesses that keep recurring, and weaknesses that became strengths
"""

import logging
import math
from collections import OrderedDict, defaultdict
from datetime import datetime
from typing import Dict, List

from app.schemas.analytics import (
    SUBJECTS,
    OverallProgress,
    ProgressData,
    SessionStatus,
    SubjectMetricsRecord,
    SubjectProgress,
    TestHistoryItem,
    TestSessionRecord,
    Trend,
)
from app.services.analytics_store import AnalyticsStore
from app.utils.stats import mean, percent_change, population_stddev

logger = logging.getLogger(__name__)

TREND_THRESHOLD = 5  # accuracy points
TREND_WINDOW = 3
RECENT_PERFORMANCE_WINDOW = 5
CONSISTENT_WEAKNESS_SHARE = 0.5


def build_test_history(
    sessions: List[TestSessionRecord],
    metrics: List[SubjectMetricsRecord]
) -> List[TestHistoryItem]:
    by_session: Dict[str, List[SubjectMetricsRecord]] = defaultdict(list)
    for row in metrics:
        by_session[row.test_session_id].append(row)

    history = []
    for session in sessions:
        rows = by_session.get(session.id, [])
        total = sum(r.total_questions for r in rows)
        correct = sum(r.correct_answers for r in rows)
        history.append(TestHistoryItem(
            test_session_id=session.id,
            test_date=session.started_at,
            overall_score=correct,
            accuracy_percentage=correct / total * 100 if total > 0 else 0.0,
            total_questions=total,
            correct_answers=correct,
            test_type=session.test_type.value,
            session_question_count=session.total_questions,
        ))
    return history


def calculate_overall_progress(history: List[TestHistoryItem]) -> OverallProgress:
    if not history:
        return OverallProgress()

    scores = [t.overall_score for t in history]
    accuracies = [t.accuracy_percentage for t in history]

    improvement_rate = 0.0
    if len(history) >= 2:
        improvement_rate = percent_change(accuracies[0], accuracies[-1])

    consistency = max(0.0, 100 - population_stddev(accuracies) * 2)

    return OverallProgress(
        average_score=mean(scores),
        average_accuracy=mean(accuracies),
        best_score=max(scores),
        worst_score=min(scores),
        improvement_rate=improvement_rate,
        consistency_score=consistency,
    )


def classify_trend(accuracies: List[float]) -> Trend:
    """
    Mean of the last 3 results vs mean of every earlier result.

    Fewer than 3 results are always stable. With exactly 3 there is no
    earlier result and the older mean is 0.
    """
    if len(accuracies) < TREND_WINDOW:
        return Trend.STABLE

    recent = mean(accuracies[-TREND_WINDOW:])
    older = mean(accuracies[:-TREND_WINDOW])

    if recent - older > TREND_THRESHOLD:
        return Trend.IMPROVING
    if recent - older < -TREND_THRESHOLD:
        return Trend.DECLINING
    return Trend.STABLE


def calculate_subject_progress(metrics: List[SubjectMetricsRecord]) -> List[SubjectProgress]:
    progress = []
    for subject in SUBJECTS:
        rows = sorted(
            (m for m in metrics if m.subject == subject),
            key=lambda m: m.calculated_at
        )
        if not rows:
            continue

        accuracies = [r.accuracy_percentage for r in rows]
        progress.append(SubjectProgress(
            subject=subject,
            average_accuracy=mean(accuracies),
            trend=classify_trend(accuracies),
            test_count=len(rows),
            recent_performance=accuracies[-RECENT_PERFORMANCE_WINDOW:],
        ))
    return progress


def identify_consistent_weak_areas(metrics: List[SubjectMetricsRecord]) -> List[str]:
    """Weaknesses recorded in at least half (rounded up) of all stored rows."""
    if not metrics:
        return []

    counts: "OrderedDict[str, int]" = OrderedDict()
    for row in metrics:
        for weakness in row.weaknesses:
            counts[weakness] = counts.get(weakness, 0) + 1

    threshold = math.ceil(len(metrics) * CONSISTENT_WEAKNESS_SHARE)
    return [w for w, count in counts.items() if count >= threshold]


def identify_improvement_areas(metrics: List[SubjectMetricsRecord]) -> List[str]:
    """Weaknesses from older rows that show up as strengths in the latest 3 rows."""
    if len(metrics) < 2:
        return []

    ordered = sorted(metrics, key=lambda m: m.calculated_at)
    recent = ordered[-TREND_WINDOW:]
    older = ordered[:-TREND_WINDOW]

    recent_strengths = {s for row in recent for s in row.strengths}
    improvements: List[str] = []
    for row in older:
        for weakness in row.weaknesses:
            if weakness in recent_strengths and weakness not in improvements:
                improvements.append(weakness)
    return improvements


def calculate_progress_data(store: AnalyticsStore, user_id: str) -> ProgressData:
    sessions = store.get_sessions_by_status(user_id, SessionStatus.COMPLETED.value)
    metrics = store.get_subject_metrics_for_user(user_id)

    history = build_test_history(sessions, metrics)

    logger.debug(
        "Progress for user %s: %d completed sessions, %d metric rows",
        user_id, len(sessions), len(metrics)
    )

    return ProgressData(
        user_id=user_id,
        total_tests=len(sessions),
        test_history=history,
        overall_progress=calculate_overall_progress(history),
        subject_progress=calculate_subject_progress(metrics),
        consistent_weak_areas=identify_consistent_weak_areas(metrics),
        improvement_areas=identify_improvement_areas(metrics),
        calculated_at=datetime.utcnow(),
    )
