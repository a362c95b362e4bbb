"""
Tests for comparing a user's test sessions.
"""

import pytest
from datetime import datetime, timedelta

from app.errors import ValidationError
from app.schemas.analytics import SubjectScore, TestComparisonItem as ComparisonItem
from app.services.analytics_store import AnalyticsStore
from app.services.session_comparison import (
    NOT_ENOUGH_TESTS_INSIGHT,
    compare_test_sessions,
    find_changes,
    generate_comparison_insights,
    normalize_session_ids,
)


def comparison_item(index: int, accuracy: float, time: float = 90, physics: float = None) -> ComparisonItem:
    return ComparisonItem(
        test_session_id=f"s{index}",
        test_date=datetime(2024, 1, 1) + timedelta(days=index),
        overall_score=round(accuracy),
        accuracy_percentage=accuracy,
        subject_scores=[SubjectScore(subject="physics", accuracy=accuracy if physics is None else physics)],
        time_management=time,
    )


class TestSessionIdValidation:
    """At least two distinct ids are required"""

    @pytest.mark.unit
    def test_single_id_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_session_ids(["only-one"])
        assert exc_info.value.code == "INVALID_REQUEST"

    @pytest.mark.unit
    def test_duplicates_and_blanks_collapsed(self):
        with pytest.raises(ValidationError):
            normalize_session_ids(["a", " a ", ""])

    @pytest.mark.unit
    def test_order_kept(self):
        assert normalize_session_ids(["b", "a", "b"]) == ["b", "a"]


class TestChanges:
    """Improvements and declines between first and last session"""

    @pytest.mark.unit
    def test_five_point_gain_is_an_improvement(self):
        improvements, declines = find_changes([comparison_item(0, 70), comparison_item(1, 75)])

        assert "Overall accuracy improved by 5.0%" in improvements
        assert "Physics improved by 5.0%" in improvements
        assert declines == []

    @pytest.mark.unit
    def test_decline(self):
        improvements, declines = find_changes([comparison_item(0, 80), comparison_item(1, 62.5)])

        assert improvements == []
        assert "Overall accuracy declined by 17.5%" in declines
        assert "Physics declined by 17.5%" in declines

    @pytest.mark.unit
    def test_small_change_ignored(self):
        improvements, declines = find_changes([comparison_item(0, 70), comparison_item(1, 74)])
        assert improvements == []
        assert declines == []

    @pytest.mark.unit
    def test_time_management(self):
        faster, _ = find_changes([comparison_item(0, 70, time=100), comparison_item(1, 70, time=80)])
        _, slower = find_changes([comparison_item(0, 70, time=100), comparison_item(1, 70, time=120)])

        assert faster == ["Time management improved - answering faster"]
        assert slower == ["Time management declined - taking longer per question"]

    @pytest.mark.unit
    def test_time_change_of_exactly_ten_percent_ignored(self):
        improvements, declines = find_changes([comparison_item(0, 70, time=100), comparison_item(1, 70, time=110)])
        assert improvements == []
        assert declines == []


class TestInsights:
    """Consistency and trend insights"""

    @pytest.mark.unit
    def test_fewer_than_two_sessions(self):
        assert generate_comparison_insights([comparison_item(0, 70)]) == [NOT_ENOUGH_TESTS_INSIGHT]
        assert generate_comparison_insights([]) == [NOT_ENOUGH_TESTS_INSIGHT]

    @pytest.mark.unit
    def test_consistent_upward(self):
        items = [comparison_item(i, a) for i, a in enumerate([60, 62, 68, 70])]
        # variance 17 < 25; halves 61 vs 69
        assert generate_comparison_insights(items) == [
            "Performance is consistent across tests",
            "Clear upward trend - keep up the good work!",
        ]

    @pytest.mark.unit
    def test_varied_and_declining(self):
        items = [comparison_item(i, a) for i, a in enumerate([90, 80, 50])]
        # halves split after the second item: 85 vs 50
        assert generate_comparison_insights(items) == [
            "Performance varies significantly - focus on consistency",
            "Recent performance declining - review study strategy",
        ]


class TestCompareFromStore:
    """compare_test_sessions against stored sessions"""

    @pytest.mark.integration
    def test_compare_two_sessions(self, store: AnalyticsStore, scored_test):
        later = scored_test(75, day=5)
        earlier = scored_test(70, day=1)

        comparison = compare_test_sessions(store, "student-1", [later.id, earlier.id])

        assert [t.test_session_id for t in comparison.test_sessions] == [earlier.id, later.id]
        assert "Overall accuracy improved by 5.0%" in comparison.improvements
        assert comparison.declines == []

    @pytest.mark.integration
    def test_other_users_sessions_skipped(self, store: AnalyticsStore, scored_test):
        mine = scored_test(70, day=1)
        theirs = scored_test(90, day=2, user_id="someone-else")

        comparison = compare_test_sessions(store, "student-1", [mine.id, theirs.id])

        assert [t.test_session_id for t in comparison.test_sessions] == [mine.id]
        assert comparison.improvements == []
        assert comparison.insights == [NOT_ENOUGH_TESTS_INSIGHT]

    @pytest.mark.integration
    def test_unknown_ids_skipped(self, store: AnalyticsStore):
        comparison = compare_test_sessions(store, "student-1", ["missing-1", "missing-2"])

        assert comparison.test_sessions == []
        assert comparison.insights == [NOT_ENOUGH_TESTS_INSIGHT]

    @pytest.mark.integration
    def test_session_without_metrics(self, store: AnalyticsStore, create_session, scored_test):
        empty = create_session(day=0)
        scored = scored_test(80, day=1)

        comparison = compare_test_sessions(store, "student-1", [empty.id, scored.id])

        first = comparison.test_sessions[0]
        assert first.accuracy_percentage == 0
        assert first.subject_scores == []
        assert first.time_management == 0
