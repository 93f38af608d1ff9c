import pytest

from content_platform.services.annotation.chunker import split_html

pytestmark = pytest.mark.unit


def _doc(sections: int) -> str:
    body = "".join(f"<div class='s{i}'><p>Section {i} text goes here.</p></div>\n" for i in range(sections))
    return f"<html><body>{body}</body></html>"


def test_small_input_is_identity():
    html = "<p>hello</p>"
    assert split_html(html, 1000) == [html]


def test_chunks_concatenate_to_input_and_respect_ceiling():
    html = _doc(200)
    chunks = split_html(html, 500)
    assert len(chunks) > 1
    assert "".join(chunks) == html
    assert all(len(chunk.encode("utf-8")) <= 500 for chunk in chunks)


def test_cuts_after_safe_closing_tag():
    html = _doc(50)
    chunks = split_html(html, 300)
    for chunk in chunks[:-1]:
        assert chunk.rstrip("\n").lower().endswith(("</div>", "</p>"))


def test_falls_back_to_any_closing_tag():
    html = "<span>a</span>" * 20
    chunks = split_html(html, 50)
    assert "".join(chunks) == html
    assert all(chunk.endswith("</span>") for chunk in chunks)


def test_no_closing_tag_cuts_at_greedy_boundary():
    html = "x" * 1000
    chunks = split_html(html, 300)
    assert "".join(chunks) == html
    assert [len(c) for c in chunks] == [300, 300, 300, 100]


def test_multibyte_text_is_never_split_inside_a_character():
    html = "é" * 401
    chunks = split_html(html, 101)
    assert "".join(chunks) == html
    assert all(len(chunk.encode("utf-8")) <= 101 for chunk in chunks)


@pytest.mark.parametrize("size", [1, 2, 7, 64])
def test_lossless_for_tiny_sizes(size):
    html = "<div><b>ü</b> text</div><p>more</p>"
    assert "".join(split_html(html, size)) == html


def test_rejects_non_positive_size():
    with pytest.raises(ValueError):
        split_html("<p>x</p>", 0)
