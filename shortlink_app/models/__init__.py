"""
Database models for the short-link service.

Links and their analytics events live in the same database so the
event insert and the click_count bump can share one transaction.
"""

from .link import ShortLink
from .analytics import AnalyticsEvent

__all__ = ["ShortLink", "AnalyticsEvent"]
