"""
Request Context & Performance Middleware

For every request:
- assigns a request id (reuses an inbound X-Request-ID header) and stores
  it on request.state for the error envelope
- measures duration and records it per endpoint in a rolling window
- adds X-Request-ID and X-Response-Time headers
- logs requests slower than 3s

The rolling window feeds /health/detailed.
"""

import logging
import time
import uuid
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Optional, Tuple

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_SECONDS = 3.0
UNTRACKED_PATHS = {"/health", "/", "/docs", "/openapi.json", "/redoc"}


class PerformanceStats:
    """Per-endpoint request durations over a sliding time window."""

    def __init__(self, window_minutes: int = 60):
        # {endpoint: deque[(timestamp, duration_seconds)]}
        self._requests: Dict[str, Deque[Tuple[float, float]]] = defaultdict(deque)
        self._window_seconds = window_minutes * 60

    def _expire(self, endpoint: str, now: float):
        cutoff = now - self._window_seconds
        entries = self._requests[endpoint]
        while entries and entries[0][0] <= cutoff:
            entries.popleft()

    def record_request(self, endpoint: str, duration: float):
        now = time.time()
        self._expire(endpoint, now)
        self._requests[endpoint].append((now, duration))

    def endpoint_stats(self, endpoint: str) -> Dict:
        self._expire(endpoint, time.time())
        durations = sorted(d for _, d in self._requests.get(endpoint, ()))

        if not durations:
            return {"count": 0, "avg_ms": 0, "min_ms": 0, "max_ms": 0, "p95_ms": 0, "slow_requests": 0}

        p95_index = min(int(len(durations) * 0.95), len(durations) - 1)
        return {
            "count": len(durations),
            "avg_ms": round(sum(durations) / len(durations) * 1000, 2),
            "min_ms": round(durations[0] * 1000, 2),
            "max_ms": round(durations[-1] * 1000, 2),
            "p95_ms": round(durations[p95_index] * 1000, 2),
            "slow_requests": sum(1 for d in durations if d > SLOW_REQUEST_SECONDS),
        }

    def get_stats(self) -> Dict[str, Dict]:
        return {endpoint: self.endpoint_stats(endpoint) for endpoint in list(self._requests)}


_performance_stats = PerformanceStats(window_minutes=60)


class PerformanceMonitorMiddleware(BaseHTTPMiddleware):
    """Attach a request id, time the request, record the duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{duration * 1000:.2f}ms"

        if request.url.path not in UNTRACKED_PATHS:
            route = request.scope.get("route")
            path = getattr(route, "path", request.url.path)
            endpoint = f"{request.method} {path}"
            _performance_stats.record_request(endpoint, duration)

            if duration > SLOW_REQUEST_SECONDS:
                logger.warning("Slow request %s took %.2fs (request_id=%s)", endpoint, duration, request_id)

        return response


def get_performance_stats(endpoint: Optional[str] = None) -> Dict:
    if endpoint:
        return _performance_stats.endpoint_stats(endpoint)
    return _performance_stats.get_stats()


def reset_stats():
    """Reset all performance statistics"""
    global _performance_stats
    _performance_stats = PerformanceStats(window_minutes=60)
