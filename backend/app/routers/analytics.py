"""
Analytics Router

One endpoint per analytics operation. Every failure is rendered with the
shared error envelope; each endpoint labels server-side failures with its
own error code.
"""

import time
from typing import List

from fastapi import APIRouter, Depends

from app.dependencies.storage import get_analytics_store, valid_user_id
from app.errors import ErrorResponse, component_errors
from app.schemas.analytics import (
    CalculationResponse,
    CompareRequest,
    ComparisonData,
    ProgressData,
    Recommendation,
    SubjectAnalysis,
    SubjectMetricsRecord,
    TrendAnalysis,
)
from app.services.analytics_store import AnalyticsStore
from app.services.performance_metrics import (
    calculate_and_store_metrics,
    get_subject_wise_breakdown,
    get_user_performance,
)
from app.services.progress_tracker import calculate_progress_data
from app.services.recommendations import generate_recommendations
from app.services.session_comparison import compare_test_sessions
from app.services.trend_analysis import calculate_trends

router = APIRouter(
    tags=["analytics"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


@router.post("/calculate/{session_id}", response_model=CalculationResponse)
def calculate_metrics(session_id: str, store: AnalyticsStore = Depends(get_analytics_store)):
    """
    Calculate a session's performance metrics and store the per-subject rows.

    Stored rows are appended: calling this twice for one session stores
    two sets of rows.
    """
    started = time.perf_counter()
    with component_errors("METRICS_CALCULATION_FAILED", "Failed to calculate performance metrics"):
        metrics, stored = calculate_and_store_metrics(store, session_id)

    return CalculationResponse(
        metrics=metrics,
        calculation_time_ms=round((time.perf_counter() - started) * 1000, 2),
        stored_rows=stored,
    )


@router.get("/performance/{user_id}", response_model=List[SubjectMetricsRecord])
def get_performance(
    user_id: str = Depends(valid_user_id),
    store: AnalyticsStore = Depends(get_analytics_store)
):
    """All stored per-session subject metrics for a user."""
    with component_errors("PERFORMANCE_FETCH_FAILED", "Failed to fetch performance analytics"):
        return get_user_performance(store, user_id)


@router.get("/subject-analysis/{user_id}", response_model=List[SubjectAnalysis])
def get_subject_analysis(
    user_id: str = Depends(valid_user_id),
    store: AnalyticsStore = Depends(get_analytics_store)
):
    """Per-subject rollup across every stored session."""
    with component_errors("SUBJECT_ANALYSIS_FAILED", "Failed to build subject analysis"):
        return get_subject_wise_breakdown(store, user_id)


@router.get("/progress/{user_id}", response_model=ProgressData)
def get_progress(
    user_id: str = Depends(valid_user_id),
    store: AnalyticsStore = Depends(get_analytics_store)
):
    with component_errors("PROGRESS_FETCH_FAILED", "Failed to calculate progress"):
        return calculate_progress_data(store, user_id)


@router.post("/compare/{user_id}", response_model=ComparisonData)
def compare_sessions(
    request: CompareRequest,
    user_id: str = Depends(valid_user_id),
    store: AnalyticsStore = Depends(get_analytics_store)
):
    """
    Compare two or more of the user's sessions.

    Ids that don't belong to the user are skipped.
    """
    with component_errors("COMPARISON_FAILED", "Failed to compare test sessions"):
        return compare_test_sessions(store, user_id, request.test_session_ids)


@router.get("/trends/{user_id}", response_model=TrendAnalysis)
def get_trends(
    user_id: str = Depends(valid_user_id),
    store: AnalyticsStore = Depends(get_analytics_store)
):
    with component_errors("TRENDS_FETCH_FAILED", "Failed to calculate trends"):
        return calculate_trends(store, user_id)


@router.get("/recommendations/{user_id}", response_model=List[Recommendation])
def get_recommendations(
    user_id: str = Depends(valid_user_id),
    store: AnalyticsStore = Depends(get_analytics_store)
):
    with component_errors("RECOMMENDATIONS_FAILED", "Failed to generate recommendations"):
        return generate_recommendations(store, user_id)
