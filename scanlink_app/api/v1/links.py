import logging

from fastapi import APIRouter, Depends, HTTPException, status

from scanlink_app.dependencies import get_link_service, get_owner_id
from scanlink_app.exceptions import NotFoundError, RetriesExhaustedError
from scanlink_app.models.link import Link
from scanlink_app.schemas.link import LinkCreate, LinkList, LinkResponse
from scanlink_app.services.link_service import LinkService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/links", tags=["links"])


def to_response(link: Link, link_service: LinkService) -> LinkResponse:
    return LinkResponse(
        id=link.id,
        owner_id=link.owner_id,
        project_id=link.project_id,
        name=link.name,
        kind=link.kind,
        short_code=link.short_code,
        destination=link.destination,
        style_config=link.style_config,
        active=link.active,
        content=link_service.content_for(link),
        created_at=link.created_at,
        updated_at=link.updated_at,
    )


@router.post("", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
async def create_link(
    link_data: LinkCreate,
    owner_id: str = Depends(get_owner_id),
    link_service: LinkService = Depends(get_link_service)
):
    """Create a link with a fresh short code"""
    try:
        link = await link_service.create_link(
            owner_id=owner_id,
            kind=link_data.kind,
            destination=link_data.destination,
            style=link_data.style,
            name=link_data.name,
            project_id=link_data.project_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except RetriesExhaustedError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return to_response(link, link_service)


@router.get("", response_model=LinkList)
async def list_links(
    owner_id: str = Depends(get_owner_id),
    link_service: LinkService = Depends(get_link_service)
):
    """All links of the caller, newest first"""
    links = await link_service.list_links(owner_id)
    return LinkList(
        total=len(links),
        links=[to_response(link, link_service) for link in links]
    )


@router.get("/{link_id}", response_model=LinkResponse)
async def get_link(
    link_id: str,
    owner_id: str = Depends(get_owner_id),
    link_service: LinkService = Depends(get_link_service)
):
    try:
        link = await link_service.get_link(link_id, owner_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found")
    return to_response(link, link_service)


@router.delete("/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_link(
    link_id: str,
    owner_id: str = Depends(get_owner_id),
    link_service: LinkService = Depends(get_link_service)
):
    """Delete a link. Scans already recorded for it are kept."""
    try:
        await link_service.delete_link(link_id, owner_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found")
