"""
Storage and Path Dependencies

Provides FastAPI dependencies for:
- an AnalyticsStore bound to the request's database session
- user_id path parameter validation

Usage:
    @router.get("/progress/{user_id}")
    def progress(
        user_id: str = Depends(valid_user_id),
        store: AnalyticsStore = Depends(get_analytics_store),
    ):
        ...
"""

import re

from fastapi import Depends, Path
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import ValidationError
from app.services.analytics_store import AnalyticsStore

USER_ID_MAX_LENGTH = 100
USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def get_analytics_store(db: Session = Depends(get_db)) -> AnalyticsStore:
    return AnalyticsStore(db)


def validate_user_id(user_id: str) -> str:
    """
    Validate and sanitize user_id.

    Raises:
        ValidationError: empty, longer than 100 characters, or containing
            anything besides letters, digits, '-' and '_'
    """
    user_id = (user_id or "").strip()

    if not user_id:
        raise ValidationError("user_id cannot be empty", code="INVALID_USER_ID")

    if len(user_id) > USER_ID_MAX_LENGTH:
        raise ValidationError(
            f"user_id must be at most {USER_ID_MAX_LENGTH} characters",
            code="INVALID_USER_ID",
        )

    if not USER_ID_PATTERN.match(user_id):
        raise ValidationError("user_id contains invalid characters", code="INVALID_USER_ID")

    return user_id


def valid_user_id(user_id: str = Path(..., description="User ID")) -> str:
    return validate_user_id(user_id)
