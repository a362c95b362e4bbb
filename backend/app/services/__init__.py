# Services module

# Storage collaborator
from app.services.analytics_store import AnalyticsStore

# Per-session metrics
from app.services.performance_metrics import (
    calculate_performance_metrics,
    calculate_and_store_metrics,
    get_user_performance,
    get_subject_wise_breakdown,
)

# Cross-session views
from app.services.progress_tracker import calculate_progress_data
from app.services.session_comparison import compare_test_sessions
from app.services.trend_analysis import calculate_trends
from app.services.recommendations import generate_recommendations

__all__ = [
    "AnalyticsStore",
    "calculate_performance_metrics",
    "calculate_and_store_metrics",
    "get_user_performance",
    "get_subject_wise_breakdown",
    "calculate_progress_data",
    "compare_test_sessions",
    "calculate_trends",
    "generate_recommendations",
]
