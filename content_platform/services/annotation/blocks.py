"""
Replace <script> and <link> elements with comment placeholders before HTML
leaves the process, and put them back afterwards.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict

_SENSITIVE_BLOCK_PATTERNS = (
    re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<link\b[^>]*?>", re.IGNORECASE),
)
_PLACEHOLDER_RE = re.compile(r"<!-- __PROTECTED_BLOCK_\d+__ -->")


@dataclass
class ProtectedHtml:
    html: str
    blocks: Dict[str, str] = field(default_factory=dict)


def protect_blocks(html: str) -> ProtectedHtml:
    """
    Swap every script element and link tag for `<!-- __PROTECTED_BLOCK_NNNN__ -->`.

    The returned mapping is placeholder comment -> original block, byte for byte.
    Sequence numbers whose placeholder already occurs in the input are skipped so
    restoration can never touch text that was there originally.
    """
    blocks: Dict[str, str] = {}
    counter = 0

    def _next_placeholder() -> str:
        nonlocal counter
        while True:
            placeholder = f"<!-- __PROTECTED_BLOCK_{counter:04d}__ -->"
            counter += 1
            if placeholder not in html:
                return placeholder

    def _replace(match: re.Match) -> str:
        placeholder = _next_placeholder()
        blocks[placeholder] = match.group(0)
        return placeholder

    protected = html
    for pattern in _SENSITIVE_BLOCK_PATTERNS:
        protected = pattern.sub(_replace, protected)
    return ProtectedHtml(html=protected, blocks=blocks)


def restore_blocks(html: str, blocks: Dict[str, str]) -> str:
    """Put protected blocks back. Unknown placeholders are left untouched."""
    if not blocks:
        return html
    return _PLACEHOLDER_RE.sub(lambda m: blocks.get(m.group(0), m.group(0)), html)
