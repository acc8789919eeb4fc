from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from typing import Optional
import logging
import redis

from ..core.config import settings
from ..core.database import get_redis
from ..core.security import (
    security, verify_token, AuthenticationError,
    AuthorizationError, TokenPayload, ADMIN_SUBJECT
)
from ..services.inflight import InFlightGuard

logger = logging.getLogger(__name__)

def _admin_token_from_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(settings.ADMIN_COOKIE_NAME)

async def get_admin_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenPayload:
    """Extract and verify the admin JWT from the Authorization header or cookie."""
    token = _admin_token_from_request(request, credentials)
    if not token:
        raise AuthenticationError("Admin passkey required")

    token_payload = verify_token(token)
    if not token_payload:
        raise AuthenticationError("Invalid or expired token")

    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    if token_payload.sub != ADMIN_SUBJECT:
        raise AuthorizationError("Admin access required")

    return token_payload

async def is_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> bool:
    """True when the request carries a valid admin token, without raising."""
    token = _admin_token_from_request(request, credentials)
    if not token:
        return False
    token_payload = verify_token(token)
    return bool(
        token_payload
        and token_payload.token_type == "access"
        and token_payload.sub == ADMIN_SUBJECT
    )

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client: Optional[redis.Redis] = Depends(get_redis)
) -> None:
    """Basic per-client rate limiting for patient-facing submissions."""
    if redis_client is None:
        return

    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{client_ip}"

    try:
        current_requests = redis_client.get(key)
        if current_requests is None:
            redis_client.setex(key, 3600, 1)  # 1 hour window
            return
        if int(current_requests) >= settings.RATE_LIMIT_PER_HOUR:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        redis_client.incr(key)
    except redis.RedisError as e:
        logger.warning(f"Rate limit check skipped, Redis unavailable: {e}")

def get_inflight_guard(
    redis_client: Optional[redis.Redis] = Depends(get_redis)
) -> InFlightGuard:
    return InFlightGuard(redis_client)
