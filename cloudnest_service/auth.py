import secrets
from typing import Optional

from fastapi import Depends, Header

from config import Settings, get_settings
from exceptions import UnauthorizedError
from logging_config import get_logger

logger = get_logger(__name__)

def extract_token(authorization: Optional[str], api_key: Optional[str]) -> Optional[str]:
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
    if api_key:
        return api_key.strip()
    return None

async def require_token(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None),
    current_settings: Settings = Depends(get_settings)
) -> None:
    """Enforce AUTH_TOKEN when one is configured; no-op otherwise."""
    if not current_settings.AUTH_TOKEN:
        return
    token = extract_token(authorization, x_api_key)
    if token is None:
        logger.warning("Rejected request without an auth token")
        raise UnauthorizedError("Missing auth token")
    if not secrets.compare_digest(token.encode(), current_settings.AUTH_TOKEN.encode()):
        logger.warning("Rejected request with an invalid auth token")
        raise UnauthorizedError("Invalid auth token")
