"""
FastAPI application for content submission, launch and tracking.
"""

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from content_platform.config import AppConfig, load_config
from content_platform.context import RequestContext
from content_platform.db.engine import configure_database, get_engine
from content_platform.db.schema import create_schema
from content_platform.errors import PlatformError
from content_platform.services.annotation import AnnotationGateway
from content_platform.services.asset_mirror import Fetcher, fetch_asset
from content_platform.utils.logger import get_logger
from .routers import content, health, launch, tracking

logger = get_logger(__name__)


def create_app(
    config: Optional[AppConfig] = None,
    annotation_gateway: Optional[Any] = None,
    asset_fetcher: Optional[Fetcher] = None,
    init_schema: bool = True,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application config (loaded from the environment when omitted)
        annotation_gateway: Object with invoke(prompt, system_prompt); defaults to AnnotationGateway
        asset_fetcher: Download function used by the asset mirror
        init_schema: Create missing tables on startup

    Returns:
        Configured FastAPI application
    """
    config = config or load_config()
    configure_database(config.database)
    if init_schema:
        create_schema(get_engine())

    app = FastAPI(
        title="Content Platform",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    # Tracking calls come from artifacts served on customer domains.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.annotation_gateway = annotation_gateway or AnnotationGateway(config.annotation)
    app.state.asset_fetcher = asset_fetcher or fetch_asset

    @app.exception_handler(PlatformError)
    async def platform_error_handler(request: Request, exc: PlatformError) -> JSONResponse:
        ctx = RequestContext.from_config(config, request_id=request.headers.get("X-Request-ID"))
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed [%s]: %s (%s)",
                request.method, request.url.path, ctx.request_id, exc.code, exc.detail or exc.message,
            )
        else:
            logger.info("%s %s rejected [%s]: %s", request.method, request.url.path, ctx.request_id, exc.code)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_payload(debug=ctx.debug),
            headers={"X-Request-ID": ctx.request_id},
        )

    app.include_router(health.router)
    app.include_router(content.router)
    app.include_router(tracking.router)
    app.include_router(launch.router)

    logger.info("Content platform API created (base_url=%s, debug=%s)", config.app.base_url, config.app.debug)
    return app
