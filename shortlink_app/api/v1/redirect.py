from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from shortlink_app.config import settings
from shortlink_app.dependencies import get_link_service
from shortlink_app.schemas.redirect import Found, VisitContext
from shortlink_app.services.link_service import LinkService

router = APIRouter(tags=["redirect"])


@router.get("/{short_code}")
async def redirect_to_original_url(
    short_code: str,
    request: Request,
    link_service: LinkService = Depends(get_link_service)
):
    """
    Redirect to the original URL.

    Analytics are handed off before responding but never awaited, so
    the visitor does not wait for the event write.
    """
    visit = VisitContext(
        user_agent=request.headers.get("user-agent", ""),
        referrer=request.headers.get("referer", ""),
        client_ip=request.client.host if request.client else None,
    )
    outcome = await link_service.resolve(short_code, visit)

    if isinstance(outcome, Found):
        return RedirectResponse(url=outcome.destination_url, status_code=status.HTTP_302_FOUND)

    if settings.not_found_redirect_url:
        return RedirectResponse(url=settings.not_found_redirect_url, status_code=status.HTTP_302_FOUND)

    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Short URL not found"
    )
