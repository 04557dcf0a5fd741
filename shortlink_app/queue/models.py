"""
Data models for queue messages.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VisitMessage(BaseModel):
    """
    A request to record one visit, published by the redirect path.

    Carries the raw request metadata only; classification and the
    geo lookup happen in the worker.
    """

    link_id: str = Field(..., description="Id of the resolved short link")
    user_agent: str = Field("", description="Raw User-Agent header")
    referrer: str = Field("", description="Raw Referer header")
    client_ip: Optional[str] = Field(None, description="Client IP address")
    received_at: datetime = Field(default_factory=_utcnow, description="When the visit happened")

    # Set by the queue backend on consume, used for acknowledgment
    message_id: Optional[str] = Field(None, exclude=True)

    model_config = {
        "json_schema_extra": {
            "example": {
                "link_id": "0b5f9c1e-6a41-4a55-9f9b-3c2d1e0f7a11",
                "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0",
                "referrer": "https://twitter.com",
                "client_ip": "203.0.113.7",
                "received_at": "2025-10-29T10:30:00Z",
            }
        }
    }
