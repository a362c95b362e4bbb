"""
Analytics Service Middleware Package

Contains:
- performance_monitor: request ids, response timing, per-endpoint latency stats
"""

from app.middleware.performance_monitor import (
    PerformanceMonitorMiddleware,
    PerformanceStats,
    get_performance_stats,
    reset_stats,
)

__all__ = [
    "PerformanceMonitorMiddleware",
    "PerformanceStats",
    "get_performance_stats",
    "reset_stats",
]
