"""
FastAPI Dependencies for the analytics service
"""

from app.dependencies.storage import (
    get_analytics_store,
    validate_user_id,
    valid_user_id,
)

__all__ = [
    "get_analytics_store",
    "validate_user_id",
    "valid_user_id",
]
