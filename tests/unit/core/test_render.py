"""Unit tests for core/render.py"""

import json
from datetime import date

from lessonpub.core.models import DocType, Resolution
from lessonpub.core.render import (
    build_listing, listing_html, listing_json, page_order, render_body_html,
    render_body_markdown, render_corpus, render_page,
)
from lessonpub.core.resolve import resolve_corpus
from lessonpub.core.snippets import validate_corpus, validate_document


UNCLOSED = "Before.\n\n```java\nclass A {\n```\n"


def test_page_order_date_desc_then_identifier(make_doc):
    """Pages sort by date descending; equal dates fall back to identifier ascending."""
    docs = [
        make_doc("b", when=date(2020, 12, 14)),
        make_doc("c", when=date(2021, 1, 1)),
        make_doc("a", when=date(2019, 5, 5)),
        make_doc("a2", when=date(2020, 12, 14)),
    ]
    assert [d.identifier for d in sorted(docs, key=page_order)] == ["c", "a2", "b", "a"]


def test_render_page_html_structure(make_doc):
    doc = make_doc("lessons/logger", "The <Logger>", date(2020, 12, 14), "# Hi\n", categories=("java",))
    page = render_page(doc)
    assert page.output_path == "lessons/logger.html"
    assert page.url == "/lessons/logger.html"
    assert "<title>The &lt;Logger&gt;</title>" in page.content
    assert '<time datetime="2020-12-14">2020-12-14</time>' in page.content
    assert '<ul class="categories"><li>java</li></ul>' in page.content
    assert "<h1>Hi</h1>" in page.content


def test_render_body_html_marks_dangling_links():
    html = render_body_html("See [missing](<#dangling:lessons/missing>).\n")
    assert 'class="dangling-reference"' in html
    assert "dangling:lessons/missing" in html


def test_render_body_html_plain_links_untouched():
    html = render_body_html("See [Intro](</intro.html>).\n")
    assert '<a href="/intro.html">Intro</a>' in html
    assert "dangling-reference" not in html


def test_render_body_html_annotates_unbalanced_block(make_doc):
    """An unbalanced block is rendered as-is, preceded by a warning note."""
    snippets = validate_document(make_doc("x", body=UNCLOSED))
    html = render_body_html(UNCLOSED, snippets)
    note = html.index('<div class="snippet-warning"')
    assert note < html.index("<pre>")
    assert "class A {" in html
    assert "expected &#x27;}&#x27;" in html


def test_render_body_markdown_annotates_unbalanced_block(make_doc):
    snippets = validate_document(make_doc("x", body=UNCLOSED))
    out = render_body_markdown(UNCLOSED, snippets)
    lines = out.splitlines()
    assert lines[2].startswith("<!-- warning: code block 0")
    assert lines[3] == "```java"


def test_render_page_markdown_frontmatter(make_doc):
    doc = make_doc("lessons/logger", "The Logger", date(2020, 12, 14), "# Body\n", categories=("java",))
    page = render_page(doc, Resolution(identifier=doc.identifier, body="# Resolved\n"), fmt="md")
    assert page.output_path == "lessons/logger.md"
    assert page.content.startswith("---\nslug: lessons/logger\ntitle: The Logger\ndate: 2020-12-14\n")
    assert "type: indexed\n" in page.content
    assert page.content.endswith("---\n\n# Resolved\n")


def test_render_corpus_order_and_warnings(corpus, make_doc):
    corpus = {**corpus, "lessons/bad": make_doc("lessons/bad", when=date(2018, 1, 1), body=UNCLOSED)}
    pages = render_corpus(corpus, resolve_corpus(corpus), validate_corpus(corpus))
    assert [p.identifier for p in pages] == ["lessons/constructors", "lessons/logger", "intro", "lessons/bad"]
    bad = pages[-1]
    assert len(bad.warnings) == 1 and "code block 0" in bad.warnings[0]


def test_render_corpus_is_deterministic(corpus):
    first = render_corpus(corpus, resolve_corpus(corpus), validate_corpus(corpus))
    second = render_corpus(corpus, resolve_corpus(corpus, workers=4), validate_corpus(corpus, workers=4))
    assert [p.content for p in first] == [p.content for p in second]


def test_build_listing_only_indexed(corpus):
    """Unindexed pages are rendered but left out of the listing."""
    pages = render_corpus(corpus, {}, {})
    assert "intro" in [p.identifier for p in pages]
    listing = build_listing(pages)
    assert [e.identifier for e in listing.pages] == ["lessons/constructors", "lessons/logger"]
    assert listing.categories == {"java": ("lessons/logger",)}
    assert next(p for p in pages if p.identifier == "intro").doc_type == DocType.unindexed


def test_listing_json_and_html(corpus):
    listing = build_listing(render_corpus(corpus, {}, {}))
    data = json.loads(listing_json(listing))
    assert [p["identifier"] for p in data["pages"]] == ["lessons/constructors", "lessons/logger"]
    assert data["pages"][1]["date"] == "2020-12-14"
    html = listing_html(listing)
    assert '<a href="/lessons/logger.html">The Logger</a>' in html
    assert "Intro" not in html


def test_render_body_markdown_annotation_with_unicode_line_separator(make_doc):
    """The warning comment lands directly above the fence even after a U+2028 in prose."""
    body = "a\u2028b\n\n```java\nclass A {\n```\n"
    snippets = validate_document(make_doc("x", body=body))
    lines = render_body_markdown(body, snippets).split("\n")
    assert lines[0] == "a\u2028b"
    assert lines[2].startswith("<!-- warning: code block 0")
    assert lines[3] == "```java"
