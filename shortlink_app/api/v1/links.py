from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from shortlink_app.dependencies import get_link_service
from shortlink_app.schemas.analytics import AnalyticsResponse
from shortlink_app.schemas.link import LinkResponse, ShortenRequest, ShortenResult
from shortlink_app.services.link_service import LinkService

router = APIRouter(prefix="/links", tags=["links"])


def require_owner(owner_id: Optional[str]) -> str:
    if not owner_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Owner-Id header is required"
        )
    return owner_id


@router.post("/", response_model=ShortenResult, status_code=status.HTTP_201_CREATED)
async def shorten_url(
    payload: ShortenRequest,
    owner_id: Optional[str] = Header(None, alias="X-Owner-Id"),
    link_service: LinkService = Depends(get_link_service)
):
    """Create a short link, anonymous unless X-Owner-Id is sent"""
    return await link_service.shorten(
        payload.original_url,
        alias=payload.custom_alias,
        owner_id=owner_id,
    )


@router.get("/", response_model=List[LinkResponse])
async def list_links(
    owner_id: Optional[str] = Header(None, alias="X-Owner-Id"),
    link_service: LinkService = Depends(get_link_service)
):
    """Links of the requesting owner, newest first"""
    links = await link_service.list_for_owner(require_owner(owner_id))
    return [LinkResponse.model_validate(link.model_dump()) for link in links]


@router.get("/{link_id}", response_model=LinkResponse)
async def get_link(
    link_id: str,
    link_service: LinkService = Depends(get_link_service)
):
    link = await link_service.get_link(link_id)
    return LinkResponse.model_validate(link.model_dump())


@router.get("/{link_id}/analytics", response_model=AnalyticsResponse)
async def get_link_analytics(
    link_id: str,
    link_service: LinkService = Depends(get_link_service)
):
    """Aggregated visit counters for one link"""
    aggregation = await link_service.aggregate(link_id)
    return AnalyticsResponse.from_aggregation(aggregation)


@router.delete("/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_link(
    link_id: str,
    owner_id: Optional[str] = Header(None, alias="X-Owner-Id"),
    link_service: LinkService = Depends(get_link_service)
):
    await link_service.remove(link_id, require_owner(owner_id))
