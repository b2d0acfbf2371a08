"""FastAPI dependencies for the API layer."""

import hmac

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from app.config import Settings, get_settings
from app.services import SignalingServices, get_signaling_services

basic_scheme = HTTPBasic(auto_error=False)


def _matches(candidate: str | None, expected: str) -> bool:
    if not expected or not candidate:
        return False
    return hmac.compare_digest(candidate.encode(), expected.encode())


def require_admin(
    credentials: HTTPBasicCredentials | None = Depends(basic_scheme),
    x_admin_secret: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Accept ``OPENVIDUAPP:<secret>`` basic auth or an ``X-Admin-Secret`` header."""

    if _matches(x_admin_secret, settings.admin_secret):
        return
    if (
        credentials is not None
        and credentials.username == settings.admin_user
        and _matches(credentials.password, settings.admin_secret)
    ):
        return
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid admin credentials",
        headers={"WWW-Authenticate": "Basic"},
    )


def get_services() -> SignalingServices:
    return get_signaling_services()
