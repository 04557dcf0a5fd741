from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel


class VisitContext(BaseModel):
    """Request metadata the redirect path hands to analytics"""
    user_agent: str = ""
    referrer: str = ""
    client_ip: Optional[str] = None


class NotFoundReason(str, Enum):
    MISSING = "missing"
    STORAGE_ERROR = "storage_error"


class Found(BaseModel):
    kind: Literal["found"] = "found"
    destination_url: str


class NotFound(BaseModel):
    """
    No destination for the code.

    Callers treat every NotFound the same way; reason exists so logs
    and metrics can tell a bad code from a storage outage.
    """
    kind: Literal["not_found"] = "not_found"
    reason: NotFoundReason = NotFoundReason.MISSING


RedirectOutcome = Union[Found, NotFound]
