import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import RedirectResponse

from linksnap_app.config import settings
from linksnap_app.dependencies import get_current_session, get_optional_session, get_url_service
from linksnap_app.exceptions import BackendError
from linksnap_app.schemas.auth import AuthSession
from linksnap_app.schemas.url import AnalyticsSummary, DashboardResponse
from linksnap_app.services import analytics
from linksnap_app.services.url_service import URLService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])


@router.get("/", response_model=DashboardResponse)
async def dashboard(
    session: Optional[AuthSession] = Depends(get_optional_session),
    url_service: URLService = Depends(get_url_service),
):
    """
    Dashboard behind the session gate.

    Visitors without a valid session are sent to the auth page.
    """
    if session is None:
        return RedirectResponse(url=settings.auth_url, status_code=status.HTTP_302_FOUND)

    try:
        urls = await url_service.list_urls(session)
    except BackendError as e:
        logger.error("Error fetching URLs: %r", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load your URLs")

    return DashboardResponse(
        user=session.user,
        analytics=analytics.summarize(urls),
        urls=[url.model_dump() for url in urls],
    )


@router.get("/api/v1/analytics", response_model=AnalyticsSummary)
async def get_analytics(
    session: AuthSession = Depends(get_current_session),
    url_service: URLService = Depends(get_url_service),
):
    """Total clicks, total URLs and average clicks for the current user"""
    try:
        return await url_service.get_analytics(session)
    except BackendError as e:
        logger.error("Error fetching analytics: %r", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load your URLs")
