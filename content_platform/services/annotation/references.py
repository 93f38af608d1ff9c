"""
Tokenize URL-bearing attributes and CSS url() references so the annotation
service never sees (or rewrites) asset locations.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict

TOKEN_PREFIX = "__ASSET_REF_"

URL_ATTRIBUTES = ("src", "href", "srcset", "poster", "data-src", "data-href", "action", "background")

_ATTRIBUTE_RE = re.compile(
    r"(?P<lead>\s(?:" + "|".join(re.escape(a) for a in URL_ATTRIBUTES) + r")\s*=\s*)"
    r"(?:\"(?P<dq>[^\"]*)\"|'(?P<sq>[^']*)'|(?P<uq>[^\s\"'=<>`]+))",
    re.IGNORECASE,
)
_STYLE_ATTRIBUTE_RE = re.compile(
    r"(?P<lead>\sstyle\s*=\s*)(?:\"(?P<dq>[^\"]*)\"|'(?P<sq>[^']*)')",
    re.IGNORECASE,
)
_STYLE_BLOCK_RE = re.compile(r"(<style\b[^>]*>)(.*?)(</style\s*>)", re.IGNORECASE | re.DOTALL)
_CSS_URL_RE = re.compile(r"url\(\s*[\"']?(?P<url>[^\"')]+?)[\"']?\s*\)", re.IGNORECASE)
_TOKEN_RE = re.compile(re.escape(TOKEN_PREFIX) + r"\d+__")

_PASSTHROUGH_PREFIXES = ("data:", "javascript:", "mailto:")


@dataclass
class TokenizedHtml:
    html: str
    references: Dict[str, str] = field(default_factory=dict)


def _is_passthrough(value: str) -> bool:
    stripped = value.strip()
    if not stripped:
        return True
    if stripped.startswith(TOKEN_PREFIX):
        return True
    return stripped.lower().startswith(_PASSTHROUGH_PREFIXES)


def tokenize_references(html: str) -> TokenizedHtml:
    """
    Replace reference values with `__ASSET_REF_NNNN__` tokens.

    Covers the URL attributes above, url() inside inline style attributes and
    url() inside <style> blocks. data:, javascript:, mailto: and already
    tokenized values pass through unchanged. One counter spans all passes.
    """
    references: Dict[str, str] = {}
    counter = 0

    def _token_for(value: str) -> str:
        nonlocal counter
        while True:
            token = f"{TOKEN_PREFIX}{counter:04d}__"
            counter += 1
            if token not in html:
                references[token] = value
                return token

    def _css_urls(css: str) -> str:
        def _replace_url(match: re.Match) -> str:
            url = match.group("url")
            if _is_passthrough(url):
                return match.group(0)
            start, end = match.span("url")
            offset = match.start()
            whole = match.group(0)
            return whole[: start - offset] + _token_for(url) + whole[end - offset:]

        return _CSS_URL_RE.sub(_replace_url, css)

    def _quoted_value(transform: Callable[[str], str]) -> Callable[[re.Match], str]:
        def _replace(match: re.Match) -> str:
            groups = match.groupdict()
            if groups.get("uq") is not None:
                quote, value = "", groups["uq"]
            elif groups["dq"] is not None:
                quote, value = '"', groups["dq"]
            else:
                quote, value = "'", groups["sq"]
            new_value = transform(value)
            if new_value == value:
                return match.group(0)
            return f"{match.group('lead')}{quote}{new_value}{quote}"

        return _replace

    def _attribute_value(value: str) -> str:
        if _is_passthrough(value):
            return value
        return _token_for(value)

    tokenized = _ATTRIBUTE_RE.sub(_quoted_value(_attribute_value), html)
    tokenized = _STYLE_ATTRIBUTE_RE.sub(_quoted_value(_css_urls), tokenized)
    tokenized = _STYLE_BLOCK_RE.sub(
        lambda m: m.group(1) + _css_urls(m.group(2)) + m.group(3),
        tokenized,
    )
    return TokenizedHtml(html=tokenized, references=references)


def restore_references(html: str, references: Dict[str, str]) -> str:
    """Substitute tokens back to their original values in a single pass."""
    if not references:
        return html
    return _TOKEN_RE.sub(lambda m: references.get(m.group(0), m.group(0)), html)


def find_tokens(html: str) -> list[str]:
    return _TOKEN_RE.findall(html)
