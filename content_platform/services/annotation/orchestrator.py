"""
Drive the annotation service over a document: protect, tokenize, chunk,
annotate concurrently, reassemble and restore.
"""

from __future__ import annotations

import asyncio
import re
from typing import List, Optional, Protocol, Tuple

from content_platform.config import AnnotationConfig
from content_platform.errors import AnnotationResponseError
from content_platform.services.annotation.blocks import protect_blocks, restore_blocks
from content_platform.services.annotation.chunker import split_html
from content_platform.services.annotation.prompts import (
    educational_system_prompt,
    educational_user_prompt,
    phishing_system_prompt,
    phishing_user_prompt,
)
from content_platform.services.annotation.references import restore_references, tokenize_references
from content_platform.services.annotation.response import extract_markers, extract_markup, parse_difficulty
from content_platform.services.annotation.types import AnnotationMode, AnnotationResult
from content_platform.utils.logger import get_logger

logger = get_logger(__name__)

_PLACEHOLDER_RE = re.compile(r"<!-- __PROTECTED_BLOCK_\d+__ -->|__ASSET_REF_\d+__")


class AnnotationClient(Protocol):
    def invoke(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        ...


class AnnotationOrchestrator:
    def __init__(self, gateway: AnnotationClient, config: AnnotationConfig) -> None:
        self.gateway = gateway
        self.config = config

    def vocabulary(self, mode: AnnotationMode) -> Tuple[str, ...]:
        if mode is AnnotationMode.PHISHING:
            return tuple(self.config.phishing_cues)
        return tuple(self.config.educational_tags)

    async def annotate(self, html: str, mode: AnnotationMode) -> AnnotationResult:
        """
        Annotate a full document.

        Documents above max_content_size are returned untouched with no tags.
        Email bodies (phishing mode) are always sent whole because the reply
        carries a document-level difficulty line. Educational documents above
        chunk_size are split and each chunk is annotated independently; a
        failed chunk keeps its original markup and is listed in failed_chunks.
        Failure of a single-call document propagates.
        """
        size = len(html.encode("utf-8"))
        if size > self.config.max_content_size:
            logger.warning(
                "Content size %s exceeds annotation ceiling %s; skipping annotation",
                size,
                self.config.max_content_size,
            )
            return AnnotationResult(html=html, tags=[], skipped=True)

        protected = protect_blocks(html)
        tokenized = tokenize_references(protected.html)
        logger.info(
            "Prepared %s for annotation: %s protected blocks, %s tokenized references",
            mode.value,
            len(protected.blocks),
            len(tokenized.references),
        )

        difficulty: Optional[int] = None
        failed_chunks: List[int] = []
        if mode is AnnotationMode.PHISHING:
            chunks = [tokenized.html]
        else:
            chunks = split_html(tokenized.html, self.config.chunk_size)

        if len(chunks) == 1:
            annotated, difficulty = await asyncio.to_thread(self._annotate_once, chunks[0], mode)
        else:
            annotated, failed_chunks = await self._annotate_chunks(chunks, mode)

        self._check_truncation(tokenized.html, annotated)
        tags = extract_markers(annotated, mode.marker_attribute, self.vocabulary(mode))

        restored = restore_blocks(restore_references(annotated, tokenized.references), protected.blocks)
        logger.info("Annotation complete: %s tags found (%s)", len(tags), ", ".join(tags) or "none")
        return AnnotationResult(
            html=restored,
            tags=tags,
            difficulty=difficulty,
            failed_chunks=failed_chunks,
            chunk_count=len(chunks),
        )

    async def _annotate_chunks(self, chunks: List[str], mode: AnnotationMode) -> Tuple[str, List[int]]:
        semaphore = asyncio.Semaphore(max(1, self.config.max_workers))
        total = len(chunks)

        async def _run(index: int, chunk: str) -> Tuple[str, bool]:
            async with semaphore:
                logger.info("Annotating chunk %s/%s (%s bytes)", index + 1, total, len(chunk.encode("utf-8")))
                try:
                    annotated, _ = await asyncio.to_thread(self._annotate_once, chunk, mode)
                    return annotated, True
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.warning("Chunk %s/%s annotation failed, keeping original markup: %s", index + 1, total, exc)
                    return chunk, False

        results = await asyncio.gather(*(_run(i, chunk) for i, chunk in enumerate(chunks)))
        failed = [i for i, (_, ok) in enumerate(results) if not ok]
        if failed:
            logger.warning("Annotation partial: %s of %s chunks failed (%s)", len(failed), total, failed)
        return "".join(html for html, _ in results), failed

    def _annotate_once(self, html: str, mode: AnnotationMode) -> Tuple[str, Optional[int]]:
        """One synchronous service call for a document or chunk."""
        vocabulary = self.vocabulary(mode)
        if mode is AnnotationMode.PHISHING:
            reply = self.gateway.invoke(phishing_user_prompt(html), phishing_system_prompt(vocabulary))
            difficulty, reply = parse_difficulty(reply)
        else:
            reply = self.gateway.invoke(educational_user_prompt(html), educational_system_prompt(vocabulary))
            difficulty = None

        markup = extract_markup(reply, html)
        missing = _missing_placeholders(html, markup)
        if missing:
            raise AnnotationResponseError(
                "Annotation reply dropped protected placeholders",
                detail=", ".join(missing[:10]),
            )
        return markup, difficulty

    def _check_truncation(self, source: str, output: str) -> None:
        source_bytes = len(source.encode("utf-8"))
        if not source_bytes:
            return
        output_bytes = len(output.encode("utf-8"))
        if output_bytes < source_bytes * self.config.truncation_ratio:
            logger.warning(
                "Annotated output may be truncated: %s bytes out vs %s bytes in",
                output_bytes,
                source_bytes,
            )


def _missing_placeholders(source: str, output: str) -> List[str]:
    present = set(_PLACEHOLDER_RE.findall(output))
    return [p for p in _PLACEHOLDER_RE.findall(source) if p not in present]
