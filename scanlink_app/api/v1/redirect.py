from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.responses import RedirectResponse

from scanlink_app.api.rate_limit import get_client_ip
from scanlink_app.dependencies import get_resolver
from scanlink_app.exceptions import NotFoundError
from scanlink_app.services.resolver import Resolver

router = APIRouter(prefix="/r", tags=["redirect"])


@router.get("/{code}")
async def redirect_to_destination(
    code: str,
    request: Request,
    resolver: Resolver = Depends(get_resolver)
):
    """
    Public scan endpoint.

    Flow:
    1. Rate limit (middleware, before we get here)
    2. Resolve the code; tracked links hand their scan to the recording pool
    3. Redirect immediately, recording finishes on its own
    """
    try:
        destination = await resolver.resolve(
            code,
            client_ip=get_client_ip(request),
            user_agent=request.headers.get("user-agent"),
            referrer=request.headers.get("referer"),
        )
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Link not found or inactive"
        )

    return RedirectResponse(url=destination, status_code=status.HTTP_302_FOUND)
