"""
Turn an uploaded content variant into a persisted, tracking-instrumented artifact.
"""

from __future__ import annotations

import os
import re
import shutil
import zipfile
from dataclasses import dataclass, field
from typing import List, Optional

from content_platform.config import ContentConfig
from content_platform.context import RequestContext
from content_platform.errors import UnsupportedContentTypeError, UploadTooLargeError, ValidationError
from content_platform.repositories.content_repo import ContentRepository
from content_platform.services.annotation import AnnotationMode, AnnotationOrchestrator, AnnotationResult
from content_platform.services.asset_mirror import AssetMirror
from content_platform.services.content_types import (
    ContentVariant,
    EmailContent,
    HtmlPackage,
    HtmlPage,
    ScormPackage,
    VideoContent,
)
from content_platform.services.instrumentation import instrument
from content_platform.utils.logger import get_logger

logger = get_logger(__name__)

ARTIFACT_NAME = "index.html"

# Title keyword -> vocabulary tag, used when annotation is skipped.
TITLE_KEYWORD_TAGS = (
    ("phishing", "general-phishing"),
    ("ransomware", "ransomware"),
    ("malware", "malware"),
    ("password", "passwords"),
)

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title\s*>", re.IGNORECASE | re.DOTALL)


@dataclass
class ProcessingResult:
    content_id: str
    content_type: str
    path: str
    tags: List[str] = field(default_factory=list)
    difficulty: Optional[int] = None
    annotation_skipped: bool = False
    partial: bool = False
    failed_chunks: List[int] = field(default_factory=list)
    assets_downloaded: int = 0
    assets_failed: int = 0


def title_keyword_tags(html: str) -> List[str]:
    match = _TITLE_RE.search(html)
    if not match:
        return []
    title = match.group(1).strip().lower()
    return [tag for keyword, tag in TITLE_KEYWORD_TAGS if keyword in title]


def find_index_file(directory: str) -> Optional[str]:
    """index.html at the root first, then the first one found walking subdirectories."""
    root_index = os.path.join(directory, ARTIFACT_NAME)
    if os.path.isfile(root_index):
        return root_index
    for current, dirs, files in os.walk(directory):
        dirs.sort()
        for name in sorted(files):
            if name.lower() == ARTIFACT_NAME:
                return os.path.join(current, name)
    return None


def extract_archive(archive_path: str, destination: str) -> None:
    """Extract a ZIP into destination, refusing members that would land outside it."""
    real_destination = os.path.realpath(destination)
    try:
        with zipfile.ZipFile(archive_path) as archive:
            for member in archive.namelist():
                target = os.path.realpath(os.path.join(destination, member))
                if target != real_destination and not target.startswith(real_destination + os.sep):
                    raise ValidationError("Archive contains unsafe paths", detail=member)
            archive.extractall(destination)
    except zipfile.BadZipFile as exc:
        raise ValidationError("Failed to open ZIP file", detail=str(exc)) from exc


class ContentProcessor:
    def __init__(
        self,
        orchestrator: AnnotationOrchestrator,
        asset_mirror: AssetMirror,
        content_repo: ContentRepository,
        config: ContentConfig,
        context: RequestContext,
    ) -> None:
        self.orchestrator = orchestrator
        self.asset_mirror = asset_mirror
        self.content_repo = content_repo
        self.config = config
        self.context = context

    def content_dir(self, content_id: str) -> str:
        return os.path.join(self.config.upload_dir, content_id)

    def check_extension(self, kind: str, file_name: str) -> None:
        """Reject uploads whose extension is not allowed for their content kind."""
        _, _, ext = file_name.rpartition(".")
        allowed = self.config.allowed_extensions.get(kind, ())
        if not ext or ext == file_name or ext.lower() not in allowed:
            raise UnsupportedContentTypeError(
                f"File extension not allowed for {kind} content",
                detail=f"{file_name!r}; allowed: {', '.join(allowed) or 'none'}",
            )

    async def process(self, variant: ContentVariant) -> ProcessingResult:
        logger.info(
            "Processing %s content %s (request %s)", variant.kind.value, variant.content_id, self.context.request_id
        )
        if isinstance(variant, ScormPackage):
            return await self._process_package(variant, annotate=False)
        if isinstance(variant, HtmlPackage):
            return await self._process_package(variant, annotate=True)
        if isinstance(variant, HtmlPage):
            return await self._process_page(variant)
        if isinstance(variant, EmailContent):
            return await self._process_email(variant)
        if isinstance(variant, VideoContent):
            return self._process_video(variant)
        raise ValidationError(f"Unhandled content variant: {type(variant).__name__}")

    async def _process_package(self, variant, annotate: bool) -> ProcessingResult:
        kind = variant.kind.value
        self.check_extension(kind, os.path.basename(variant.archive_path))
        if os.path.getsize(variant.archive_path) > self.config.max_upload_size:
            raise UploadTooLargeError("Upload exceeds the maximum allowed size")

        directory = self.content_dir(variant.content_id)
        os.makedirs(directory, exist_ok=True)
        try:
            extract_archive(variant.archive_path, directory)
            os.remove(variant.archive_path)

            index_path = find_index_file(directory)
            if not index_path:
                raise ValidationError("index.html not found in ZIP")
            html = _read_text(index_path)
            logger.info("Processing %s content %s, size: %s bytes", kind, variant.content_id, len(html.encode("utf-8")))

            if annotate:
                annotation = await self.orchestrator.annotate(html, AnnotationMode.EDUCATIONAL)
            else:
                annotation = AnnotationResult(html=html, skipped=True)
        except Exception:
            shutil.rmtree(directory, ignore_errors=True)
            raise

        relative = os.path.relpath(index_path, self.config.upload_dir).replace(os.sep, "/")
        return await self._finish(variant.content_id, kind, annotation, index_path, relative)

    async def _process_page(self, variant: HtmlPage) -> ProcessingResult:
        logger.info(
            "Processing raw %s HTML %s, size: %s bytes",
            variant.kind.value,
            variant.content_id,
            len(variant.html.encode("utf-8")),
        )
        annotation = await self.orchestrator.annotate(variant.html, AnnotationMode.EDUCATIONAL)
        directory = self.content_dir(variant.content_id)
        os.makedirs(directory, exist_ok=True)
        artifact = os.path.join(directory, ARTIFACT_NAME)
        return await self._finish(
            variant.content_id, variant.kind.value, annotation, artifact, f"{variant.content_id}/{ARTIFACT_NAME}"
        )

    async def _process_email(self, variant: EmailContent) -> ProcessingResult:
        annotation = await self.orchestrator.annotate(variant.html, AnnotationMode.PHISHING)
        directory = self.content_dir(variant.content_id)
        os.makedirs(directory, exist_ok=True)
        artifact = os.path.join(directory, ARTIFACT_NAME)
        return await self._finish(
            variant.content_id,
            variant.kind.value,
            annotation,
            artifact,
            f"{variant.content_id}/{ARTIFACT_NAME}",
            tag_type="phish-cue",
        )

    def _process_video(self, variant: VideoContent) -> ProcessingResult:
        self.check_extension(variant.kind.value, variant.file_name)
        path = f"{variant.content_id}/video.{variant.extension}"
        self.content_repo.update_processing_result(variant.content_id, path)
        logger.info("Registered video content %s at %s", variant.content_id, path)
        return ProcessingResult(content_id=variant.content_id, content_type=variant.kind.value, path=path)

    async def _finish(
        self,
        content_id: str,
        kind: str,
        annotation: AnnotationResult,
        artifact_path: str,
        relative_path: str,
        tag_type: str = "interaction",
    ) -> ProcessingResult:
        tags = list(annotation.tags)
        if annotation.skipped:
            # Title keywords map into the educational vocabulary only.
            tags = title_keyword_tags(annotation.html) if tag_type != "phish-cue" else []
            logger.info("Annotation skipped for %s; title keyword tags: %s", content_id, tags)

        mirrored = await self.asset_mirror.mirror(
            annotation.html,
            self.content_dir(content_id),
            content_id,
            self.context.base_path,
        )
        final_html = instrument(mirrored.html, self.context.base_path, content_id)
        with open(artifact_path, "w", encoding="utf-8") as handle:
            handle.write(final_html)

        self.content_repo.add_tags(content_id, tags, tag_type=tag_type)
        self.content_repo.update_processing_result(
            content_id,
            relative_path,
            tags=tags,
            difficulty=annotation.difficulty,
        )
        logger.info("Content %s processed: %s tags, artifact %s", content_id, len(tags), relative_path)
        return ProcessingResult(
            content_id=content_id,
            content_type=kind,
            path=relative_path,
            tags=tags,
            difficulty=annotation.difficulty,
            annotation_skipped=annotation.skipped,
            partial=annotation.partial,
            failed_chunks=list(annotation.failed_chunks),
            assets_downloaded=len(mirrored.downloaded),
            assets_failed=len(mirrored.failed),
        )


def _read_text(path: str) -> str:
    with open(path, "rb") as handle:
        return handle.read().decode("utf-8", errors="replace")
