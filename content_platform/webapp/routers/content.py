"""
Content management API: submit content, list catalog, issue direct links.
"""
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request

from content_platform.context import RequestContext
from content_platform.errors import ContentNotFoundError, UploadTooLargeError, ValidationError
from content_platform.repositories.content_repo import ContentRepository
from content_platform.services.annotation import AnnotationOrchestrator
from content_platform.services.asset_mirror import AssetMirror
from content_platform.services.content_processor import ContentProcessor
from content_platform.services.content_types import ContentKind, EmailContent, HtmlPage, parse_content_kind
from content_platform.services.link_service import LinkService
from content_platform.utils.logger import get_logger
from ..dependencies import get_request_context, require_bearer_token
from ..schemas import ContentProcessedResponse, CreateContentRequest, DirectLinkRequest

router = APIRouter(prefix="/api", tags=["content"], dependencies=[Depends(require_bearer_token)])
logger = get_logger(__name__)


def get_content_repo() -> ContentRepository:
    return ContentRepository()


def get_processor(request: Request, context: RequestContext) -> ContentProcessor:
    config = request.app.state.config
    return ContentProcessor(
        orchestrator=AnnotationOrchestrator(request.app.state.annotation_gateway, config.annotation),
        asset_mirror=AssetMirror(config.content, fetcher=request.app.state.asset_fetcher),
        content_repo=get_content_repo(),
        config=config.content,
        context=context,
    )


def get_link_service(request: Request) -> LinkService:
    return LinkService(request.app.state.config.app, content_repo=get_content_repo())


@router.post("/content", status_code=201, response_model=ContentProcessedResponse)
async def create_content(
    body: CreateContentRequest,
    request: Request,
    context: RequestContext = Depends(get_request_context),
) -> ContentProcessedResponse:
    """Store raw HTML (training/landing) or an email body, annotate and instrument it."""
    kind = parse_content_kind(body.content_type)
    if kind not in (ContentKind.TRAINING, ContentKind.LANDING, ContentKind.EMAIL):
        raise ValidationError(f"Content type {kind.value} must be uploaded as a file")
    if not (body.html or "").strip():
        raise ValidationError("html is required")
    max_size = request.app.state.config.content.max_upload_size
    if len(body.html.encode("utf-8")) > max_size:
        raise UploadTooLargeError("Content exceeds the maximum allowed size")

    content_id = str(uuid.uuid4())
    repo = get_content_repo()
    is_email = kind is ContentKind.EMAIL
    repo.create_content(
        content_id,
        kind.value,
        title=body.title,
        description=body.description,
        company_id=body.company_id,
        domain_id=body.domain_id,
        email_subject=body.email_subject if is_email else None,
        email_from_address=body.email_from_address if is_email else None,
        email_body_html=body.html if is_email else None,
    )
    if is_email:
        variant = EmailContent(
            content_id=content_id,
            html=body.html,
            subject=body.email_subject or "",
            from_address=body.email_from_address or "",
        )
    else:
        variant = HtmlPage(content_id=content_id, html=body.html, kind=kind)

    try:
        result = await get_processor(request, context).process(variant)
    except Exception as exc:
        logger.warning("Content processing failed for %s: %s", content_id, exc)
        repo.delete_content(content_id)
        raise

    preview_url = get_link_service(request).create_preview_link(content_id)
    return ContentProcessedResponse(
        content_id=content_id,
        content_type=result.content_type,
        path=result.path,
        tags=result.tags,
        difficulty=result.difficulty,
        annotation_skipped=result.annotation_skipped,
        partial=result.partial,
        failed_chunks=result.failed_chunks,
        preview_url=preview_url,
    )


@router.get("/content")
async def list_content(
    company_id: Optional[str] = None,
    content_type: Optional[str] = None,
    limit: int = 100,
) -> Dict[str, Any]:
    if content_type:
        parse_content_kind(content_type)
    rows = get_content_repo().list_content(company_id=company_id, content_type=content_type, limit=max(1, min(limit, 500)))
    return {"content": rows, "total": len(rows)}


@router.get("/content/{content_id}/tags")
async def get_content_tags(content_id: str) -> Dict[str, Any]:
    repo = get_content_repo()
    if not repo.get_content_by_id(content_id):
        raise ContentNotFoundError("Content not found", detail=content_id)
    return {"content_id": content_id, "tags": repo.get_content_tags(content_id)}


@router.post("/direct-link", status_code=201)
async def create_direct_link(body: DirectLinkRequest, request: Request) -> Dict[str, Any]:
    link = get_link_service(request).create_direct_link(body.content_id, body.recipient_id, body.company_id)
    link["success"] = True
    link["recipient"] = {"id": body.recipient_id, "email": body.email or ""}
    return link
