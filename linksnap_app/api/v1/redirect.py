import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status
from fastapi.responses import RedirectResponse

from linksnap_app.dependencies import get_url_service
from linksnap_app.exceptions import BackendError
from linksnap_app.services.url_service import URLService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["redirect"])


@router.get("/{short_code}")
async def redirect_to_original_url(
    short_code: str,
    background_tasks: BackgroundTasks,
    url_service: URLService = Depends(get_url_service),
):
    """
    Redirect to the original URL.

    Flow:
    1. Resolve the short code (cache, then backend)
    2. Unknown code or failed lookup: back to the dashboard
    3. Schedule the click counter call to run after the response
    4. Redirect

    The counter call never changes the response: the visitor is redirected
    whether it succeeds or not.
    """
    try:
        target = await url_service.resolve_short_code(short_code)
    except BackendError as e:
        logger.error("Redirect lookup failed for %s: %r", short_code, e)
        target = None

    if target is None:
        return RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)

    background_tasks.add_task(url_service.record_click, target)

    # 302 rather than 301: browsers would cache a 301 and stop counting clicks
    return RedirectResponse(url=target.original_url, status_code=status.HTTP_302_FOUND)
