from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
import logging

from ...core.config import settings
from ...core.security import AdminToken, AuthenticationError, create_admin_token, verify_passkey
from ...api.deps import get_admin_token, rate_limit_check

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

class PasskeyRequest(BaseModel):
    passkey: str

def set_admin_cookie(response: Response, token: AdminToken) -> None:
    response.set_cookie(
        settings.ADMIN_COOKIE_NAME,
        token.access_token,
        max_age=token.expires_in,
        httponly=True,
        samesite="lax",
    )

@router.post("/passkey", response_model=AdminToken)
async def admin_login(
    data: PasskeyRequest,
    response: Response,
    _: None = Depends(rate_limit_check)
):
    """Exchange the admin passkey for an access token."""
    if not verify_passkey(data.passkey):
        logger.warning("Rejected admin passkey")
        raise AuthenticationError("Invalid passkey. Please try again.")

    token = create_admin_token()
    set_admin_cookie(response, token)
    return token

@router.post("/logout")
async def admin_logout(response: Response):
    """Clear the admin session cookie."""
    response.delete_cookie(settings.ADMIN_COOKIE_NAME)
    return {"message": "Successfully logged out"}

@router.post("/verify-token", dependencies=[Depends(get_admin_token)])
async def verify_admin_token():
    """Verify that the admin token is valid."""
    return {"valid": True}
