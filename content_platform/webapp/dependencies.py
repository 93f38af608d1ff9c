"""
Shared dependencies for FastAPI routes.
"""

import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request

from content_platform.config import AppConfig
from content_platform.context import RequestContext
from content_platform.utils.logger import get_logger

logger = get_logger(__name__)


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_request_context(
    request: Request,
    x_request_id: Optional[str] = Header(None, alias="X-Request-ID"),
) -> RequestContext:
    return RequestContext.from_config(request.app.state.config, request_id=x_request_id)


async def require_bearer_token(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> None:
    """
    Guard management endpoints with a static bearer token.
    Disabled when no token is configured.
    """
    expected = request.app.state.config.app.bearer_token
    if not expected:
        return
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    provided = authorization[7:].strip()
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected request with invalid bearer token")
        raise HTTPException(status_code=401, detail="Invalid bearer token")
