import uuid

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from shortlink_app.database.connection import Base


def new_id() -> str:
    return str(uuid.uuid4())


class ShortLink(Base):
    """
    Mapping of a short code to its destination URL.

    click_count is only ever bumped by the record store, in the same
    write that inserts an analytics event for this link.
    """
    __tablename__ = "links"

    id = Column(String(36), primary_key=True, default=new_id)
    original_url = Column(String, nullable=False)
    # unique=True creates the index that enforces code uniqueness
    short_code = Column(String(64), unique=True, nullable=False, index=True)
    custom_alias = Column(String(64), nullable=True)
    owner_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    click_count = Column(Integer, default=0, nullable=False)
