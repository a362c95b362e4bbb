"""
Tests for the analytics API endpoints and the error envelope.
"""

import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from app.dependencies.storage import get_analytics_store
from app.errors import StorageError
from app.main import app


def assert_error_envelope(response, status_code: int, code: str):
    assert response.status_code == status_code
    error = response.json()["error"]
    assert error["code"] == code
    assert error["message"]
    assert "timestamp" in error
    assert error["requestId"] == response.headers["X-Request-ID"]
    return error


def failing_store(method: str) -> MagicMock:
    store = MagicMock()
    getattr(store, method).side_effect = StorageError(
        f"Storage operation '{method}' failed", details="connection reset"
    )
    return store


class TestCalculateEndpoint:
    """POST /calculate/{session_id}"""

    @pytest.mark.api
    def test_calculate_metrics(self, client: TestClient, build_test):
        session = build_test([("physics", "Mechanics", i < 7, 90) for i in range(10)])

        response = client.post(f"/calculate/{session.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["storedRows"] == 1
        assert data["calculationTimeMs"] >= 0
        metrics = data["metrics"]
        assert metrics["testSessionId"] == session.id
        assert metrics["accuracyPercentage"] == 70
        assert metrics["unansweredQuestions"] == 0
        assert [s["subject"] for s in metrics["subjectWiseAnalysis"]] == ["physics", "chemistry", "mathematics"]
        assert "timeManagementAnalysis" in metrics
        assert "thinkingAbilityAssessment" in metrics

    @pytest.mark.api
    def test_calculate_unknown_session(self, client: TestClient):
        response = client.post("/calculate/does-not-exist")

        error = assert_error_envelope(response, 404, "SESSION_NOT_FOUND")
        assert error["details"] == {"testSessionId": "does-not-exist"}

    @pytest.mark.api
    def test_calculate_storage_failure(self, client: TestClient):
        app.dependency_overrides[get_analytics_store] = lambda: failing_store("get_session")

        response = client.post("/calculate/session-1")

        assert_error_envelope(response, 500, "METRICS_CALCULATION_FAILED")

    @pytest.mark.api
    def test_calculated_rows_visible_in_performance(self, client: TestClient, build_test):
        session = build_test([("chemistry", "Organic", True, 45), ("mathematics", "Calculus", False, 130)])

        client.post(f"/calculate/{session.id}")
        response = client.get("/performance/student-1")

        assert response.status_code == 200
        rows = response.json()
        assert sorted(r["subject"] for r in rows) == ["chemistry", "mathematics"]
        assert all(r["testSessionId"] == session.id for r in rows)


class TestUserEndpoints:
    """Per-user read endpoints"""

    @pytest.mark.api
    def test_subject_analysis(self, client: TestClient, scored_test):
        scored_test(70, day=0)
        scored_test(90, day=1)

        response = client.get("/subject-analysis/student-1")

        assert response.status_code == 200
        data = response.json()
        assert data[0]["subject"] == "physics"
        assert data[0]["totalQuestions"] == 200
        assert data[0]["accuracyPercentage"] == 80

    @pytest.mark.api
    def test_progress(self, client: TestClient, scored_test):
        scored_test(60, day=0)
        scored_test(80, day=1)

        response = client.get("/progress/student-1")

        assert response.status_code == 200
        data = response.json()
        assert data["userId"] == "student-1"
        assert data["totalTests"] == 2
        assert data["overallProgress"]["bestScore"] == 80
        assert len(data["testHistory"]) == 2
        assert "sessionQuestionCount" not in data["testHistory"][0]

    @pytest.mark.api
    def test_progress_for_new_user(self, client: TestClient):
        response = client.get("/progress/new_user-1")

        assert response.status_code == 200
        data = response.json()
        assert data["totalTests"] == 0
        assert data["overallProgress"]["averageAccuracy"] == 0

    @pytest.mark.api
    def test_trends(self, client: TestClient, scored_test):
        scored_test(60, day=0)

        response = client.get("/trends/student-1")

        assert response.status_code == 200
        data = response.json()
        assert data["performancePrediction"]["confidenceLevel"] == "low"
        assert data["performancePrediction"]["basedOnTests"] == 1
        assert data["percentileRanking"] == 55

    @pytest.mark.api
    def test_recommendations(self, client: TestClient, scored_test):
        scored_test(40, day=0)

        response = client.get("/recommendations/student-1")

        assert response.status_code == 200
        data = response.json()
        assert data[0]["title"] == "Improve Physics Performance"
        assert data[0]["actionItems"]

    @pytest.mark.api
    def test_storage_failure_uses_component_code(self, client: TestClient):
        app.dependency_overrides[get_analytics_store] = lambda: failing_store("get_sessions_by_status")

        assert_error_envelope(client.get("/progress/student-1"), 500, "PROGRESS_FETCH_FAILED")
        assert_error_envelope(client.get("/trends/student-1"), 500, "TRENDS_FETCH_FAILED")
        assert_error_envelope(client.get("/recommendations/student-1"), 500, "RECOMMENDATIONS_FAILED")


class TestCompareEndpoint:
    """POST /compare/{user_id}"""

    @pytest.mark.api
    def test_compare(self, client: TestClient, scored_test):
        first = scored_test(70, day=0)
        second = scored_test(75, day=1)

        response = client.post("/compare/student-1", json={"testSessionIds": [first.id, second.id]})

        assert response.status_code == 200
        data = response.json()
        assert [t["testSessionId"] for t in data["testSessions"]] == [first.id, second.id]
        assert "Overall accuracy improved by 5.0%" in data["improvements"]
        assert data["declines"] == []

    @pytest.mark.api
    def test_compare_needs_two_sessions(self, client: TestClient):
        response = client.post("/compare/student-1", json={"testSessionIds": ["only-one"]})

        assert_error_envelope(response, 400, "INVALID_REQUEST")

    @pytest.mark.api
    def test_compare_missing_body(self, client: TestClient):
        response = client.post("/compare/student-1")

        error = assert_error_envelope(response, 400, "INVALID_REQUEST")
        assert isinstance(error["details"], list)


class TestUserIdValidation:
    """Malformed user ids are rejected before any storage access"""

    @pytest.mark.api
    @pytest.mark.parametrize("path", [
        "/performance/bad.id",
        "/progress/bad.id",
        "/trends/" + "a" * 101,
        "/recommendations/bad.id",
    ])
    def test_invalid_user_id(self, client: TestClient, path: str):
        assert_error_envelope(client.get(path), 400, "INVALID_USER_ID")

    @pytest.mark.api
    def test_invalid_user_id_on_compare(self, client: TestClient):
        response = client.post("/compare/bad.id", json={"testSessionIds": ["a", "b"]})

        assert_error_envelope(response, 400, "INVALID_USER_ID")
