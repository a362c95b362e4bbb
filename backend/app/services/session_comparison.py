"""
Test Comparison

Compares two or more of a user's test sessions. Sessions that do not
exist or belong to someone else are skipped silently.
"""

import logging
import math
from datetime import datetime
from typing import List

from app.errors import ValidationError
from app.schemas.analytics import (
    SUBJECTS,
    ComparisonData,
    SubjectScore,
    TestComparisonItem,
)
from app.services.analytics_store import AnalyticsStore
from app.utils.stats import mean, population_variance

logger = logging.getLogger(__name__)

ACCURACY_CHANGE_THRESHOLD = 5  # accuracy points, inclusive
TIME_CHANGE_RATIO = 0.1
CONSISTENT_VARIANCE = 25

NOT_ENOUGH_TESTS_INSIGHT = "Need more tests for meaningful comparison"


def normalize_session_ids(test_session_ids: List[str]) -> List[str]:
    """
    Strip, drop blanks and collapse duplicates (keeping order).

    Raises:
        ValidationError: fewer than 2 distinct ids remain
    """
    ids: List[str] = []
    for raw in test_session_ids or []:
        session_id = (raw or "").strip()
        if session_id and session_id not in ids:
            ids.append(session_id)

    if len(ids) < 2:
        raise ValidationError(
            "At least 2 test sessions are required for comparison",
            details={"testSessionIds": test_session_ids},
        )
    return ids


def build_comparison_item(store: AnalyticsStore, user_id: str, session_id: str):
    session = store.get_session_for_user(session_id, user_id)
    if session is None:
        logger.info("Skipping session %s in comparison for user %s: not found", session_id, user_id)
        return None

    rows = store.get_subject_metrics_for_session(session_id)
    total = sum(r.total_questions for r in rows)
    correct = sum(r.correct_answers for r in rows)

    return TestComparisonItem(
        test_session_id=session_id,
        test_date=session.started_at,
        overall_score=correct,
        accuracy_percentage=correct / total * 100 if total > 0 else 0.0,
        subject_scores=[SubjectScore(subject=r.subject, accuracy=r.accuracy_percentage) for r in rows],
        time_management=mean([r.average_time_per_question for r in rows]),
    )


def _subject_accuracy(item: TestComparisonItem, subject: str):
    for score in item.subject_scores:
        if score.subject == subject:
            return score.accuracy
    return None


def find_changes(items: List[TestComparisonItem]):
    """Improvements and declines between the earliest and the latest item."""
    improvements: List[str] = []
    declines: List[str] = []

    if len(items) < 2:
        return improvements, declines

    first, last = items[0], items[-1]

    delta = last.accuracy_percentage - first.accuracy_percentage
    if delta >= ACCURACY_CHANGE_THRESHOLD:
        improvements.append(f"Overall accuracy improved by {delta:.1f}%")
    elif delta <= -ACCURACY_CHANGE_THRESHOLD:
        declines.append(f"Overall accuracy declined by {-delta:.1f}%")

    for subject in SUBJECTS:
        before = _subject_accuracy(first, subject)
        after = _subject_accuracy(last, subject)
        if before is None or after is None:
            continue

        delta = after - before
        if delta >= ACCURACY_CHANGE_THRESHOLD:
            improvements.append(f"{subject.capitalize()} improved by {delta:.1f}%")
        elif delta <= -ACCURACY_CHANGE_THRESHOLD:
            declines.append(f"{subject.capitalize()} declined by {-delta:.1f}%")

    if last.time_management < first.time_management * (1 - TIME_CHANGE_RATIO):
        improvements.append("Time management improved - answering faster")
    elif last.time_management > first.time_management * (1 + TIME_CHANGE_RATIO):
        declines.append("Time management declined - taking longer per question")

    return improvements, declines


def generate_comparison_insights(items: List[TestComparisonItem]) -> List[str]:
    if len(items) < 2:
        return [NOT_ENOUGH_TESTS_INSIGHT]

    insights = []
    accuracies = [t.accuracy_percentage for t in items]

    if population_variance(accuracies) < CONSISTENT_VARIANCE:
        insights.append("Performance is consistent across tests")
    else:
        insights.append("Performance varies significantly - focus on consistency")

    split = math.ceil(len(accuracies) / 2)
    first_half = mean(accuracies[:split])
    second_half = mean(accuracies[split:])

    if second_half > first_half + ACCURACY_CHANGE_THRESHOLD:
        insights.append("Clear upward trend - keep up the good work!")
    elif second_half < first_half - ACCURACY_CHANGE_THRESHOLD:
        insights.append("Recent performance declining - review study strategy")

    return insights


def compare_test_sessions(store: AnalyticsStore, user_id: str, test_session_ids: List[str]) -> ComparisonData:
    session_ids = normalize_session_ids(test_session_ids)

    items = []
    for session_id in session_ids:
        item = build_comparison_item(store, user_id, session_id)
        if item is not None:
            items.append(item)

    items.sort(key=lambda t: t.test_date)
    improvements, declines = find_changes(items)

    return ComparisonData(
        user_id=user_id,
        test_sessions=items,
        improvements=improvements,
        declines=declines,
        insights=generate_comparison_insights(items),
        calculated_at=datetime.utcnow(),
    )
