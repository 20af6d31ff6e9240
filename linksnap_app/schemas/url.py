from pydantic import BaseModel, Field, computed_field, ConfigDict
from typing import List, Optional
from datetime import datetime
from linksnap_app.config import settings
from linksnap_app.schemas.auth import AuthUser


class ShortURL(BaseModel):
    """A row of the ``urls`` table, whichever backend it came from.

    from_attributes=True lets the local backend hand over ORM objects,
    the hosted backend hands over JSON dicts.
    """
    id: str
    user_id: str
    original_url: str
    short_code: str
    clicks: int = 0
    created_at: datetime
    is_custom: bool = False

    model_config = ConfigDict(from_attributes=True)


class NewShortURL(BaseModel):
    """Insert payload for the ``urls`` table"""
    user_id: str
    original_url: str
    short_code: str
    is_custom: bool = False


class URLCreate(BaseModel):
    """Shortener form input.

    ``url`` stays a plain string: the shape check happens in the service so
    the user gets the form's own messages instead of a 422.
    """
    url: str = Field(..., description="The original URL to be shortened")
    use_custom_code: bool = Field(False, description="Use custom_code instead of a generated code")
    custom_code: Optional[str] = Field(None, description="3-20 letters, digits, hyphens or underscores")


class URLResponse(ShortURL):
    """A row as shown on a URL card"""

    @computed_field
    @property
    def short_url(self) -> str:
        return f"{settings.base_url.rstrip('/')}/{self.short_code}"


class RedirectTarget(BaseModel):
    """What a redirect needs to know about a short code (cached)"""
    short_code: str
    original_url: str
    user_id: str


class AnalyticsSummary(BaseModel):
    total_clicks: int
    total_urls: int
    average_clicks: float


class DashboardResponse(BaseModel):
    user: AuthUser
    analytics: AnalyticsSummary
    urls: List[URLResponse]


class MessageResponse(BaseModel):
    message: str
