"""
Data models for change notifications.
"""

from enum import Enum
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """
    A row of the urls table changed.

    Published when a short URL is created (the shortener's "url-created"
    signal), deleted, or clicked. List views owned by ``user_id`` refetch
    when they see one.
    """

    event_type: ChangeType = Field(..., description="What happened to the row")
    table: str = Field("urls", description="Table the row belongs to")
    user_id: str = Field(..., description="Owner of the changed row")
    short_code: Optional[str] = Field(None, description="Short code of the changed row")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the change happened",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "event_type": "INSERT",
                "table": "urls",
                "user_id": "5a0c2f0e-8d5b-4c1e-9f55-6f1c8e1d2b3a",
                "short_code": "my-link",
                "timestamp": "2025-10-29T10:30:00Z",
            }
        }
    }
