# jym/api/dependencies.py
"""Internal API authentication"""
import hmac
from typing import Optional

from fastapi import Header, HTTPException, status

from jym.config.settings import get_settings

settings = get_settings()


async def require_internal_api_key(x_api_key: Optional[str] = Header(None)) -> None:
    """Guard internal routes when INTERNAL_API_KEY is configured"""
    if not settings.INTERNAL_API_KEY:
        return None
    if not x_api_key or not hmac.compare_digest(x_api_key, settings.INTERNAL_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
