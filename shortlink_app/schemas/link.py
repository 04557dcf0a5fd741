from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field, ConfigDict

from shortlink_app.config import settings


class ShortLink(BaseModel):
    """A stored short link, built from a record store row."""
    id: str
    original_url: str
    short_code: str
    custom_alias: Optional[str] = None
    owner_id: Optional[str] = None
    created_at: datetime
    click_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class ShortenRequest(BaseModel):
    # Validated by LinkService so the stored URL keeps the caller's spelling
    original_url: str = Field(..., description="Absolute http(s) URL to shorten")
    custom_alias: Optional[str] = Field(
        None,
        description="Optional user-chosen short code",
        examples=["my-launch"],
    )


class ShortenResult(BaseModel):
    short_code: str

    @computed_field
    @property
    def short_url(self) -> str:
        """Computed field - the public URL for the code"""
        return f"{settings.base_url}/{self.short_code}"


class LinkResponse(ShortLink):
    """ShortLink as returned over HTTP (adds the public short URL)"""

    @computed_field
    @property
    def short_url(self) -> str:
        return f"{settings.base_url}/{self.short_code}"
