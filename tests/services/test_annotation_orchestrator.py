import logging
import threading
import time

import pytest

from content_platform.config import AnnotationConfig
from content_platform.errors import AnnotationResponseError, AnnotationServiceError
from content_platform.services.annotation import AnnotationMode, AnnotationOrchestrator
from tests.conftest import FakeGateway, add_marker

pytestmark = pytest.mark.unit

PAGE = """<html><head>
<script>var x = "<button>";</script>
<link rel="stylesheet" href="/css/site.css">
</head><body>
<img src="/foo.png">
<form action="/login"><input type="password" name="pw"><button type="submit">Sign in</button></form>
</body></html>
"""


def _tag_buttons(html, prompt, system_prompt):
    return add_marker(html, "button", "data-tag", "passwords")


@pytest.mark.asyncio
async def test_single_pass_keeps_protected_markup_and_reports_tags():
    gateway = FakeGateway(_tag_buttons)
    orchestrator = AnnotationOrchestrator(gateway, AnnotationConfig())
    result = await orchestrator.annotate(PAGE, AnnotationMode.EDUCATIONAL)

    assert len(gateway.calls) == 1
    sent = gateway.calls[0][0]
    assert "<script" not in sent
    assert "/foo.png" not in sent
    assert "/css/site.css" not in sent
    assert '<script>var x = "<button>";</script>' in result.html
    assert '<img src="/foo.png">' in result.html
    assert '<button data-tag="passwords" type="submit">' in result.html
    assert result.tags == ["passwords"]
    assert result.difficulty is None
    assert not result.partial


@pytest.mark.asyncio
async def test_out_of_vocabulary_markers_are_not_reported():
    def _respond(html, prompt, system_prompt):
        html = add_marker(html, "button", "data-tag", "not-a-tag")
        return add_marker(html, "input", "data-tag", "mfa")

    orchestrator = AnnotationOrchestrator(FakeGateway(_respond), AnnotationConfig())
    result = await orchestrator.annotate(PAGE, AnnotationMode.EDUCATIONAL)
    assert result.tags == ["mfa"]
    assert 'data-tag="not-a-tag"' in result.html


@pytest.mark.asyncio
async def test_fenced_reply_with_narration_is_cleaned():
    def _respond(html, prompt, system_prompt):
        return "Sure! Here you go:\n```html\n" + _tag_buttons(html, prompt, system_prompt) + "\n```"

    orchestrator = AnnotationOrchestrator(FakeGateway(_respond), AnnotationConfig())
    result = await orchestrator.annotate(PAGE, AnnotationMode.EDUCATIONAL)
    assert result.html.startswith("<html>")
    assert result.tags == ["passwords"]


@pytest.mark.asyncio
async def test_oversized_document_is_skipped():
    gateway = FakeGateway()
    orchestrator = AnnotationOrchestrator(gateway, AnnotationConfig(max_content_size=100))
    result = await orchestrator.annotate(PAGE, AnnotationMode.EDUCATIONAL)
    assert result.skipped is True
    assert result.html == PAGE
    assert result.tags == []
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_chunks_are_annotated_concurrently_and_reassembled_in_order():
    sections = "".join(f"<div><button>b{i}</button><p>{'x' * 80}</p></div>\n" for i in range(12))
    html = f"<html><body>{sections}</body></html>"
    state = {"active": 0, "peak": 0}
    lock = threading.Lock()

    def _respond(chunk, prompt, system_prompt):
        with lock:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
        time.sleep(0.05)
        with lock:
            state["active"] -= 1
        return chunk.replace("<button>", '<button data-tag="mfa">')

    gateway = FakeGateway(_respond)
    config = AnnotationConfig(chunk_size=300, max_workers=3)
    result = await AnnotationOrchestrator(gateway, config).annotate(html, AnnotationMode.EDUCATIONAL)

    assert result.chunk_count == len(gateway.calls) > 1
    assert 1 < state["peak"] <= 3
    assert result.html == html.replace("<button>", '<button data-tag="mfa">')
    assert result.tags == ["mfa"]
    assert result.failed_chunks == []


@pytest.mark.asyncio
async def test_failed_chunk_keeps_original_markup_and_is_reported():
    sections = "".join(f"<div><button>b{i}</button><p>{'y' * 80}</p></div>\n" for i in range(8))
    html = f"<body>{sections}</body>"

    def _respond(chunk, prompt, system_prompt):
        if "b0<" in chunk:
            raise AnnotationServiceError("boom")
        return chunk.replace("<button>", '<button data-tag="cloud">')

    result = await AnnotationOrchestrator(FakeGateway(_respond), AnnotationConfig(chunk_size=300)).annotate(
        html, AnnotationMode.EDUCATIONAL
    )
    assert result.partial is True
    assert result.failed_chunks == [0]
    assert "<button>b0</button>" in result.html
    assert '<button data-tag="cloud">b7</button>' in result.html
    assert result.tags == ["cloud"]


@pytest.mark.asyncio
async def test_single_call_failure_propagates():
    def _respond(html, prompt, system_prompt):
        raise AnnotationServiceError("service down")

    with pytest.raises(AnnotationServiceError):
        await AnnotationOrchestrator(FakeGateway(_respond), AnnotationConfig()).annotate(PAGE, AnnotationMode.EDUCATIONAL)


@pytest.mark.asyncio
async def test_reply_that_drops_placeholders_is_malformed():
    def _respond(html, prompt, system_prompt):
        return "<p>rewritten</p>"

    with pytest.raises(AnnotationResponseError):
        await AnnotationOrchestrator(FakeGateway(_respond), AnnotationConfig()).annotate(PAGE, AnnotationMode.EDUCATIONAL)


@pytest.mark.asyncio
async def test_phishing_mode_parses_difficulty_and_cues():
    email = "<html><body><p>Dear user, act now!</p><a href='http://evil.test/login'>Verify</a></body></html>"

    def _respond(html, prompt, system_prompt):
        assert "NIST" in system_prompt
        tagged = add_marker(html, "p", "data-cue", "sense-of-urgency")
        tagged = add_marker(tagged, "a", "data-cue", "mfa")
        return "DIFFICULTY:1\n" + tagged

    result = await AnnotationOrchestrator(FakeGateway(_respond), AnnotationConfig()).annotate(email, AnnotationMode.PHISHING)
    assert result.difficulty == 1
    assert result.tags == ["sense-of-urgency"]
    assert "http://evil.test/login" in result.html
    assert not result.html.startswith("DIFFICULTY")


@pytest.mark.asyncio
async def test_phishing_mode_without_difficulty_defaults_to_two():
    email = "<p>Hello</p>"
    result = await AnnotationOrchestrator(FakeGateway(), AnnotationConfig()).annotate(email, AnnotationMode.PHISHING)
    assert result.difficulty == 2
    assert result.html == email


@pytest.mark.asyncio
async def test_truncated_output_is_logged(caplog):
    html = "<div>" + ("<p>text</p>" * 50) + "</div>"

    def _respond(chunk, prompt, system_prompt):
        return "<div><p>text</p></div>"

    caplog.set_level(logging.WARNING)
    await AnnotationOrchestrator(FakeGateway(_respond), AnnotationConfig()).annotate(html, AnnotationMode.EDUCATIONAL)
    assert any("truncated" in record.getMessage() for record in caplog.records)
