import json
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from fastapi.responses import Response, StreamingResponse

from linksnap_app.dependencies import get_current_session, get_url_service
from linksnap_app.exceptions import BackendError, ShortenerError
from linksnap_app.schemas.auth import AuthSession
from linksnap_app.schemas.url import MessageResponse, URLCreate, URLResponse
from linksnap_app.services.qr_service import MEDIA_TYPES, QRFormat, qr_filename, render_qr
from linksnap_app.services.url_service import URLService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/urls", tags=["urls"])


def _user_error(e: ShortenerError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


def _backend_failure(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=message)


@router.post("/", response_model=URLResponse, status_code=status.HTTP_201_CREATED)
async def create_short_url(
    url_data: URLCreate,
    session: AuthSession = Depends(get_current_session),
    url_service: URLService = Depends(get_url_service),
):
    """Shorten a URL (one per user), with a random or custom code"""
    try:
        return await url_service.create_short_url(session, url_data)
    except ShortenerError as e:
        raise _user_error(e)
    except BackendError as e:
        logger.error("Error creating short URL: %r", e)
        raise _backend_failure("Failed to create short URL")


@router.get("/", response_model=List[URLResponse])
async def list_urls(
    session: AuthSession = Depends(get_current_session),
    url_service: URLService = Depends(get_url_service),
):
    """The current user's URLs, newest first"""
    try:
        return await url_service.list_urls(session)
    except BackendError as e:
        logger.error("Error fetching URLs: %r", e)
        raise _backend_failure("Failed to load your URLs")


@router.get("/changes")
async def stream_url_changes(
    request: Request,
    session: AuthSession = Depends(get_current_session),
    url_service: URLService = Depends(get_url_service),
):
    """
    Server-sent events: the user's URL list now, then after every change.

    Each frame is ``event: urls`` with the JSON list as data.
    """
    async def frames():
        updates = url_service.watch_urls(session)
        try:
            async for urls in updates:
                if await request.is_disconnected():
                    break
                payload = [URLResponse.model_validate(url.model_dump()).model_dump(mode="json") for url in urls]
                yield f"event: urls\ndata: {json.dumps(payload)}\n\n"
        except BackendError as e:
            logger.error("Error fetching URLs: %r", e)
            yield f"event: error\ndata: {json.dumps({'detail': 'Failed to load your URLs'})}\n\n"
        finally:
            await updates.aclose()

    return StreamingResponse(
        frames(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.delete("/{url_id}", response_model=MessageResponse)
async def delete_url(
    url_id: str,
    session: AuthSession = Depends(get_current_session),
    url_service: URLService = Depends(get_url_service),
):
    """Delete one of the current user's URLs"""
    try:
        await url_service.delete_url(session, url_id)
    except ShortenerError as e:
        raise _user_error(e)
    except BackendError as e:
        logger.error("Error deleting URL: %r", e)
        raise _backend_failure("Failed to delete URL")
    return MessageResponse(message="URL deleted successfully")


@router.get("/{url_id}/qr")
async def get_qr_code(
    url_id: str,
    format: QRFormat = Query(QRFormat.SVG, description="Image format"),
    download: bool = Query(False, description="Serve as an attachment"),
    session: AuthSession = Depends(get_current_session),
    url_service: URLService = Depends(get_url_service),
):
    """QR code pointing at the short link"""
    try:
        url = await url_service.get_url(session, url_id)
    except ShortenerError as e:
        raise _user_error(e)
    except BackendError as e:
        logger.error("Error fetching URL %s: %r", url_id, e)
        raise _backend_failure("Failed to load your URLs")

    short_url = URLResponse.model_validate(url.model_dump()).short_url
    headers = {}
    if download:
        headers["Content-Disposition"] = f'attachment; filename="{qr_filename(url.short_code, format)}"'

    return Response(content=render_qr(short_url, format), media_type=MEDIA_TYPES[format], headers=headers)
