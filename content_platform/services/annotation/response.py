"""
Post-processing of annotation service replies.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

from content_platform.errors import AnnotationResponseError
from content_platform.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_DIFFICULTY = 2

_FENCE_RE = re.compile(r"```(?:html)?\s*\n?(.*?)\n?```", re.DOTALL | re.IGNORECASE)
_DIFFICULTY_RE = re.compile(r"^DIFFICULTY:\s*(\d+)[^\n]*(?:\n|$)", re.IGNORECASE)
_MARKER_RE_TEMPLATE = r"\s{attr}\s*=\s*(?:\"([^\"]*)\"|'([^']*)')"


def strip_code_fences(text: str) -> str:
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1)
    return text


def parse_difficulty(text: str) -> Tuple[int, str]:
    """
    Read a leading `DIFFICULTY:<n>` line and drop it from the reply.

    The line may also sit inside a code fence. A missing line, or a value
    outside 1-3, yields the default difficulty.
    """
    body = text.lstrip()
    match = _DIFFICULTY_RE.match(body)
    if not match:
        body = strip_code_fences(text).lstrip()
        match = _DIFFICULTY_RE.match(body)
    if not match:
        logger.warning("Annotation reply has no DIFFICULTY line; defaulting to %s", DEFAULT_DIFFICULTY)
        return DEFAULT_DIFFICULTY, text
    value = int(match.group(1))
    if value not in (1, 2, 3):
        logger.warning("Difficulty %s out of range; defaulting to %s", value, DEFAULT_DIFFICULTY)
        value = DEFAULT_DIFFICULTY
    return value, body[match.end():]


def extract_markup(reply: str, source: str) -> str:
    """
    Recover the annotated markup from a reply to `source`.

    Fences are stripped first. If what remains does not already look like pure
    markup, narration before the first '<' and after the last '>' is trimmed,
    but only on the sides where the source itself begins or ends with a tag.
    Leading and trailing whitespace of the source is carried over.
    """
    text = strip_code_fences(reply).strip()
    if not text:
        raise AnnotationResponseError("Annotation reply is empty")

    if not (text.startswith("<") and text.endswith(">")):
        core = source.strip()
        if core.startswith("<"):
            first = text.find("<")
            if first < 0:
                raise AnnotationResponseError("Annotation reply contains no markup", detail=text[:200])
            text = text[first:]
        if core.endswith(">"):
            last = text.rfind(">")
            if last < 0:
                raise AnnotationResponseError("Annotation reply contains no markup", detail=text[:200])
            text = text[: last + 1]

    leading = source[: len(source) - len(source.lstrip())]
    trailing = source[len(source.rstrip()):]
    return leading + text + trailing


def extract_markers(html: str, attribute: str, vocabulary: Optional[Iterable[str]] = None) -> List[str]:
    """Marker values in first-seen order, deduplicated, limited to vocabulary when given."""
    pattern = re.compile(_MARKER_RE_TEMPLATE.format(attr=re.escape(attribute)), re.IGNORECASE)
    allowed = set(vocabulary) if vocabulary is not None else None
    found: List[str] = []
    seen = set()
    for match in pattern.finditer(html):
        value = (match.group(1) if match.group(1) is not None else match.group(2)).strip()
        if not value or value in seen:
            continue
        seen.add(value)
        if allowed is not None and value not in allowed:
            logger.info("Dropping out-of-vocabulary marker %s=%r", attribute, value)
            continue
        found.append(value)
    return found
