from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from shortlink_app.database.connection import Base
from shortlink_app.models.link import new_id


class AnalyticsEvent(Base):
    """
    One recorded visit to a short link. Append-only.

    Rows go away only through the ON DELETE CASCADE of their link.
    """
    __tablename__ = "analytics_events"

    id = Column(String(36), primary_key=True, default=new_id)
    link_id = Column(
        String(36),
        ForeignKey("links.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_agent = Column(String, nullable=False, default="")
    referrer = Column(String, nullable=False, default="")
    browser = Column(String(64), nullable=False)
    os = Column(String(64), nullable=False)
    device_type = Column(String(16), nullable=False, default="desktop")
    country = Column(String(64), nullable=False, default="unknown")
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
