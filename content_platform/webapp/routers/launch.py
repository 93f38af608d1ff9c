"""
Launch player: serves a processed artifact bound to one tracking session.
"""
import html

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from content_platform.context import RequestContext
from content_platform.errors import PlatformError, SessionNotFoundError
from content_platform.services.launch_service import LaunchService
from ..dependencies import get_request_context

router = APIRouter(tags=["launch"])


@router.get("/launch/{content_ref}/{tracking_ref}", response_class=HTMLResponse)
async def launch(
    content_ref: str,
    tracking_ref: str,
    request: Request,
    context: RequestContext = Depends(get_request_context),
) -> HTMLResponse:
    service = LaunchService(request.app.state.config.content, context)
    try:
        page = service.launch(content_ref, tracking_ref)
    except SessionNotFoundError:
        return HTMLResponse("<h1>Error: Invalid or expired tracking session</h1>", status_code=403)
    except PlatformError as exc:
        message = exc.message
        if context.debug and exc.detail:
            message = f"{message} ({exc.detail})"
        return HTMLResponse(f"<h1>Error: {html.escape(message)}</h1>", status_code=exc.status_code)
    return HTMLResponse(page)
