"""
Split oversized HTML into independently annotatable chunks at closing-tag boundaries.
"""

from __future__ import annotations

import re
from typing import List

from content_platform.utils.logger import get_logger

logger = get_logger(__name__)

SAFE_CLOSING_TAGS = (
    "div", "section", "form", "article", "main", "p", "li", "ul", "ol",
    "table", "tr", "td", "th", "header", "footer", "nav", "aside",
)

_SAFE_CLOSE_RE = re.compile(rb"</(?:" + b"|".join(t.encode() for t in SAFE_CLOSING_TAGS) + rb")>", re.IGNORECASE)
_ANY_CLOSE_RE = re.compile(rb"</[^>]+>")


def _last_match_end(pattern: re.Pattern, window: bytes) -> int:
    end = -1
    for match in pattern.finditer(window):
        end = match.end()
    return end


def _char_boundary(data: bytes, pos: int, start: int) -> int:
    """Move pos back onto a UTF-8 character boundary; forward if that would reach start."""
    cut = pos
    while cut > start and cut < len(data) and (data[cut] & 0xC0) == 0x80:
        cut -= 1
    if cut > start:
        return cut
    cut = pos
    while cut < len(data) and (data[cut] & 0xC0) == 0x80:
        cut += 1
    return cut


def split_html(html: str, max_chunk_bytes: int) -> List[str]:
    """
    Split html into chunks of at most max_chunk_bytes UTF-8 bytes.

    Each window is cut right after its last safe closing tag, else after its
    last closing tag of any kind. A window without any closing tag is emitted
    whole (its structure may be broken). Concatenating the chunks always
    reproduces the input exactly.
    """
    if max_chunk_bytes < 1:
        raise ValueError("max_chunk_bytes must be >= 1")
    data = html.encode("utf-8")
    total = len(data)
    if total <= max_chunk_bytes:
        return [html]

    logger.info("Splitting HTML (%s bytes) into chunks of ~%s bytes", total, max_chunk_bytes)
    chunks: List[str] = []
    pos = 0
    while pos < total:
        end = pos + max_chunk_bytes
        if end >= total:
            chunks.append(data[pos:].decode("utf-8"))
            break

        window = data[pos:end]
        split_at = _last_match_end(_SAFE_CLOSE_RE, window)
        if split_at < 0:
            split_at = _last_match_end(_ANY_CLOSE_RE, window)
        if split_at > 0:
            cut = pos + split_at
        else:
            logger.warning(
                "No closing tag in window at byte %s; cutting at greedy boundary (structure may break)",
                pos,
            )
            cut = _char_boundary(data, end, pos)

        chunks.append(data[pos:cut].decode("utf-8"))
        pos = cut

    logger.info("Split HTML into %s chunks", len(chunks))
    return chunks
