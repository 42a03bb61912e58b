import ipaddress
import logging
from typing import Optional, Sequence

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

REDIRECT_PREFIX = "/r/"
REDIRECT_ROUTE_KEY = "redirect"


def _is_trusted(host: str, trusted: Sequence[str]) -> bool:
    """Exact match, or an address inside a trusted network such as 10.0.0.0/8"""
    for entry in trusted:
        if host == entry:
            return True
        try:
            if ipaddress.ip_address(host) in ipaddress.ip_network(entry, strict=False):
                return True
        except ValueError:
            continue
    return False


def resolve_client_ip(peer: str, forwarded_for: Optional[str], trusted: Sequence[str]) -> str:
    """
    Client address used for rate limiting and scan records.

    X-Forwarded-For is only believed when the socket peer is a trusted proxy.
    Hops are read right to left and the first one that is not a trusted proxy
    is the client. Anything further left was written by the client itself.
    """
    if not forwarded_for or not _is_trusted(peer, trusted):
        return peer
    hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
    for hop in reversed(hops):
        if not _is_trusted(hop, trusted):
            return hop
    return hops[0] if hops else peer


def get_client_ip(request: Request) -> str:
    peer = request.client.host if request.client else "unknown"
    trusted = getattr(request.app.state, "trusted_proxies", ())
    return resolve_client_ip(peer, request.headers.get("x-forwarded-for"), trusted)


def _quota_headers(decision) -> dict:
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
    }


async def rate_limit_middleware(request: Request, call_next):
    """
    Throttle the public redirect per client.

    Only /r/ paths are limited; dashboard routes sit behind the auth gateway,
    which has its own limits. The limiter is read from app.state so it can be
    swapped out in tests.
    """
    if not request.url.path.startswith(REDIRECT_PREFIX):
        return await call_next(request)

    limiter = request.app.state.rate_limiter
    client_ip = get_client_ip(request)
    decision = await limiter.allow(REDIRECT_ROUTE_KEY, client_ip)

    if not decision.allowed:
        logger.info("Throttled %s on %s", client_ip, request.url.path)
        headers = _quota_headers(decision)
        headers["Retry-After"] = str(decision.retry_after)
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers=headers,
            content={"detail": "rate limit exceeded"}
        )

    response = await call_next(request)
    response.headers.update(_quota_headers(decision))
    return response
