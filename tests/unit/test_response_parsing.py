import pytest

from content_platform.errors import AnnotationResponseError
from content_platform.services.annotation.response import (
    extract_markers,
    extract_markup,
    parse_difficulty,
    strip_code_fences,
)

pytestmark = pytest.mark.unit


def test_strip_code_fences():
    assert strip_code_fences("```html\n<p>x</p>\n```") == "<p>x</p>"
    assert strip_code_fences("```\n<p>x</p>\n```") == "<p>x</p>"
    assert strip_code_fences("<p>x</p>") == "<p>x</p>"


def test_extract_markup_trims_narration_around_markup():
    reply = "Here is the updated HTML:\n<div><button data-tag=\"mfa\">Go</button></div>\nLet me know!"
    assert extract_markup(reply, "<div><button>Go</button></div>") == '<div><button data-tag="mfa">Go</button></div>'


def test_extract_markup_keeps_source_edges_that_are_text():
    source = "tail text of a chunk</p><p>start of next"
    reply = "tail text of a chunk</p><p data-tag=\"cloud\">start of next"
    assert extract_markup(reply, source) == reply


def test_extract_markup_restores_surrounding_whitespace():
    source = "\n  <p>x</p>\n"
    assert extract_markup("<p data-tag='mfa'>x</p>", source) == "\n  <p data-tag='mfa'>x</p>\n"


def test_extract_markup_rejects_empty_or_markup_free_replies():
    with pytest.raises(AnnotationResponseError):
        extract_markup("   ", "<p>x</p>")
    with pytest.raises(AnnotationResponseError):
        extract_markup("I cannot help with that.", "<p>x</p>")


def test_parse_difficulty_reads_and_removes_first_line():
    difficulty, body = parse_difficulty("DIFFICULTY:3\n<html><body>hi</body></html>")
    assert difficulty == 3
    assert body == "<html><body>hi</body></html>"


def test_parse_difficulty_inside_fence():
    difficulty, body = parse_difficulty("```html\nDIFFICULTY: 1\n<p>x</p>\n```")
    assert difficulty == 1
    assert body.startswith("<p>x</p>")


def test_parse_difficulty_defaults_to_two():
    assert parse_difficulty("<p>x</p>") == (2, "<p>x</p>")
    difficulty, body = parse_difficulty("DIFFICULTY:9\n<p>x</p>")
    assert difficulty == 2
    assert body == "<p>x</p>"


def test_extract_markers_dedupes_and_filters_vocabulary():
    html = (
        '<button data-tag="mfa">a</button>'
        "<input data-tag='passwords'>"
        '<a data-tag="mfa">b</a>'
        '<span data-tag="made-up">c</span>'
    )
    assert extract_markers(html, "data-tag", ["mfa", "passwords"]) == ["mfa", "passwords"]
    assert extract_markers(html, "data-tag") == ["mfa", "passwords", "made-up"]


def test_extract_markers_only_reads_requested_attribute():
    html = '<span data-cue="sense-of-urgency">now</span><b data-tag="mfa">x</b>'
    assert extract_markers(html, "data-cue", ["sense-of-urgency"]) == ["sense-of-urgency"]
