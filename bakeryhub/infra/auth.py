"""Service API key authentication for the agent endpoints."""

import hmac
import logging
from typing import Optional
from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from bakeryhub.infra.config import config

logger = logging.getLogger("bakeryhub.auth")

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: Optional[str] = Security(api_key_header)) -> None:
    """
    Verify the caller's service API key.

    The web tier that authenticates end users calls this service with a shared
    key in the ``X-API-Key`` header. When no key is configured, calls are only
    accepted outside production.

    Raises:
        HTTPException: If the key is missing or invalid
    """
    expected = config.SERVICE_API_KEY
    if not expected:
        if config.APP_ENV == "production":
            logger.error("SERVICE_API_KEY is not configured in production")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Service authentication is not configured",
            )
        return

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required. Provide X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not hmac.compare_digest(api_key, expected):
        logger.warning("Rejected request with invalid API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )
