import pytest

from content_platform.services.annotation.blocks import protect_blocks, restore_blocks
from content_platform.services.annotation.references import (
    find_tokens,
    restore_references,
    tokenize_references,
)

pytestmark = pytest.mark.unit

SAMPLE = """<html><head>
<link rel="stylesheet" href="/css/site.css">
<script src="/js/app.js"></script>
<script>
  var url = "/system/x.png"; if (a < b) { go(); }
</script>
<style>.hero { background: url('/img/hero.jpg'); } .logo { background-image: url(data:image/png;base64,AAAA); }</style>
</head>
<body>
<img src="/foo.png" alt="x">
<a href='https://example.com/page?a=1&b=2'>link</a>
<a href="mailto:help@example.com">mail</a>
<a href="javascript:void(0)">js</a>
<div style="background: url(&quot;/img/bg.png&quot;); color: red" data-src="/lazy.png"></div>
<form action="/submit"><input type="text"></form>
<video poster="/poster.jpg"></video>
</body></html>
"""


def test_protect_replaces_scripts_and_links_and_restores_exactly():
    protected = protect_blocks(SAMPLE)
    assert "<script" not in protected.html
    assert "<link" not in protected.html
    assert len(protected.blocks) == 3
    assert all(key.startswith("<!-- __PROTECTED_BLOCK_") for key in protected.blocks)
    assert restore_blocks(protected.html, protected.blocks) == SAMPLE


def test_protect_keeps_block_whitespace_verbatim():
    html = "<p>a</p><SCRIPT type='text/javascript'>\n\n  x = 1;\n</SCRIPT >"
    protected = protect_blocks(html)
    assert list(protected.blocks.values()) == ["<SCRIPT type='text/javascript'>\n\n  x = 1;\n</SCRIPT >"]
    assert restore_blocks(protected.html, protected.blocks) == html


def test_protect_skips_placeholder_numbers_already_in_input():
    html = "<p><!-- __PROTECTED_BLOCK_0000__ --></p><script>a()</script>"
    protected = protect_blocks(html)
    assert "<!-- __PROTECTED_BLOCK_0000__ -->" not in protected.blocks
    assert restore_blocks(protected.html, protected.blocks) == html


def test_tokenize_covers_attributes_and_css_urls():
    tokenized = tokenize_references(SAMPLE)
    values = set(tokenized.references.values())
    assert "/foo.png" in values
    assert "https://example.com/page?a=1&b=2" in values
    assert "/img/hero.jpg" in values
    assert "/lazy.png" in values
    assert "/submit" in values
    assert "/poster.jpg" in values
    assert "/foo.png" not in tokenized.html
    assert "mailto:help@example.com" in tokenized.html
    assert "javascript:void(0)" in tokenized.html
    assert "data:image/png;base64,AAAA" in tokenized.html


def test_tokens_are_unique_and_zero_padded():
    tokenized = tokenize_references(SAMPLE)
    tokens = list(tokenized.references)
    assert len(tokens) == len(set(tokens))
    assert all(len(token) == len("__ASSET_REF_0000__") for token in tokens)
    assert sorted(find_tokens(tokenized.html)) == sorted(tokens)


def test_tokenize_restore_round_trip():
    tokenized = tokenize_references(SAMPLE)
    restored = restore_references(tokenized.html, tokenized.references)
    assert restored == SAMPLE
    assert restore_references(restored, tokenized.references) == SAMPLE


def test_already_tokenized_values_pass_through():
    html = '<img src="__ASSET_REF_0000__"><img src="/a.png">'
    tokenized = tokenize_references(html)
    assert "__ASSET_REF_0000__" not in tokenized.references
    assert list(tokenized.references.values()) == ["/a.png"]
    assert restore_references(tokenized.html, tokenized.references) == html


def test_protect_then_tokenize_round_trip():
    protected = protect_blocks(SAMPLE)
    tokenized = tokenize_references(protected.html)
    assert "/js/app.js" not in tokenized.references.values()
    assert "/css/site.css" not in tokenized.references.values()
    restored = restore_blocks(restore_references(tokenized.html, tokenized.references), protected.blocks)
    assert restored == SAMPLE


def test_empty_input():
    assert protect_blocks("").html == ""
    assert tokenize_references("").references == {}


def test_unquoted_attribute_values_are_tokenized():
    html = "<img src=/foo.png alt=x><a href=page.html>x</a><a href=mailto:a@b.test>m</a>"
    tokenized = tokenize_references(html)
    assert sorted(tokenized.references.values()) == ["/foo.png", "page.html"]
    assert "/foo.png" not in tokenized.html
    assert "page.html" not in tokenized.html
    assert "href=mailto:a@b.test>" in tokenized.html
    assert "<img src=__ASSET_REF_0000__ alt=x>" in tokenized.html
    assert restore_references(tokenized.html, tokenized.references) == html
