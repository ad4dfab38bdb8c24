"""Page rendering: resolved + validated documents -> ordered RenderedPages and listing"""

import html
import json
import logging
from typing import Mapping, Optional

import yaml
from markdown_it import MarkdownIt

from lessonpub.core.models import (
    Document, Listing, ListingEntry, RenderedPage, Resolution, SnippetReport,
)
from lessonpub.core.resolve import DANGLING_PREFIX
from lessonpub.core.utils.tokens import CODE_TOKEN_TYPES, code_tokens, make_parser, source_lines
from lessonpub.core.utils.urls import output_path, url_for


logger = logging.getLogger(__name__)

PAGE_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
</head>
<body>
<article class="lesson" data-identifier="{identifier}">
<header>
<h1>{title}</h1>
<time datetime="{date}">{date}</time>
{categories}</header>
{body}</article>
</body>
</html>
"""

LISTING_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
</head>
<body>
<nav class="lesson-listing">
<ul>
{items}</ul>
</nav>
</body>
</html>
"""


def page_order(doc: Document) -> tuple[int, str]:
    """Sort key: date descending, then identifier ascending."""
    return (-doc.date.toordinal(), doc.identifier)


def _code_rule(default):
    """Wrap a code render rule so flagged blocks get a warning note before them."""
    def rule(self, tokens, idx, options, env):
        warning = tokens[idx].meta.get("snippet_warning")
        out = default(tokens, idx, options, env)
        if warning:
            note = f'<div class="snippet-warning" role="note">Warning: {html.escape(warning)}</div>\n'
            return note + out
        return out
    return rule


def _link_open(self, tokens, idx, options, env):
    tok = tokens[idx]
    if (tok.attrGet("href") or "").startswith(DANGLING_PREFIX):
        tok.attrJoin("class", "dangling-reference")
    return self.renderToken(tokens, idx, options, env)


def make_renderer(parser_config: str = 'gfm-like') -> MarkdownIt:
    """MarkdownIt instance with snippet-warning and dangling-link render rules."""
    md = make_parser(parser_config)
    for name in CODE_TOKEN_TYPES:
        md.add_render_rule(name, _code_rule(md.renderer.rules[name]))
    md.add_render_rule("link_open", _link_open)
    return md


def _warnings_by_block(snippets: Optional[SnippetReport]) -> dict[int, str]:
    if snippets is None:
        return {}
    return {i: e.message for i, e in snippets.unbalanced.items()}


def render_body_html(body: str, snippets: Optional[SnippetReport] = None, parser_config: str = 'gfm-like') -> str:
    """Render a resolved markdown body to an HTML fragment."""
    md = make_renderer(parser_config)
    env: dict = {}
    tokens = md.parse(body, env)
    warnings = _warnings_by_block(snippets)
    for i, tok in enumerate(code_tokens(tokens)):
        if i in warnings:
            tok.meta["snippet_warning"] = warnings[i]
    return md.renderer.render(tokens, md.options, env)


def render_body_markdown(body: str, snippets: Optional[SnippetReport] = None, parser_config: str = 'gfm-like') -> str:
    """Return the resolved body with an HTML comment above each unbalanced code block."""
    warnings = _warnings_by_block(snippets)
    if not warnings:
        return body
    lines = source_lines(body)
    tokens = make_parser(parser_config).parse(body)
    marks = [
        (tok.map[0], warnings[i])
        for i, tok in enumerate(code_tokens(tokens))
        if i in warnings and tok.map
    ]
    for line, message in reversed(marks):
        lines.insert(line, f"<!-- warning: {message.replace('--', '- -')} -->\n")
    return ''.join(lines)


def build_markdown(doc: Document, body: str) -> str:
    """Return body with a merged YAML frontmatter block prepended."""
    fm = {
        "slug": doc.identifier,
        "title": doc.title,
        "date": doc.date,
        "categories": list(doc.categories),
        "type": doc.doc_type.value,
    }
    fm.update({k: v for k, v in doc.frontmatter.items() if k not in fm})
    header = yaml.safe_dump(fm, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return f"---\n{header}---\n\n{body.lstrip()}"


def build_html(doc: Document, body_html: str) -> str:
    categories = ""
    if doc.categories:
        items = "".join(f"<li>{html.escape(c)}</li>" for c in doc.categories)
        categories = f'<ul class="categories">{items}</ul>\n'
    return PAGE_TEMPLATE.format(
        title=html.escape(doc.title),
        identifier=html.escape(doc.identifier),
        date=doc.date.isoformat(),
        categories=categories,
        body=body_html,
    )


def render_page(
    doc: Document,
    resolution: Optional[Resolution] = None,
    snippets: Optional[SnippetReport] = None,
    fmt: str = 'html',
    base_url: str = '',
    parser_config: str = 'gfm-like',
    ) -> RenderedPage:
    """Render a single document. Pure function of its inputs."""
    body = resolution.body if resolution else doc.body
    if fmt == 'md':
        content = build_markdown(doc, render_body_markdown(body, snippets, parser_config))
    else:
        content = build_html(doc, render_body_html(body, snippets, parser_config))
    errors = (resolution.errors if resolution else []) + (snippets.errors if snippets else [])
    return RenderedPage(
        identifier=doc.identifier,
        title=doc.title,
        date=doc.date,
        categories=doc.categories,
        doc_type=doc.doc_type,
        url=url_for(doc.identifier, base_url, fmt),
        output_path=output_path(doc.identifier, fmt),
        content=content,
        warnings=tuple(e.message for e in errors),
    )


def render_corpus(
    corpus: Mapping[str, Document],
    resolutions: Mapping[str, Resolution],
    snippets: Mapping[str, SnippetReport],
    fmt: str = 'html',
    base_url: str = '',
    parser_config: str = 'gfm-like',
    ) -> list[RenderedPage]:
    """Render every document, ordered by date descending then identifier."""
    pages = [
        render_page(doc, resolutions.get(doc.identifier), snippets.get(doc.identifier), fmt, base_url, parser_config)
        for doc in sorted(corpus.values(), key=page_order)
    ]
    logger.info("Rendered %d page(s)", len(pages))
    return pages


def build_listing(pages: list[RenderedPage]) -> Listing:
    """Navigation over indexed pages only, keeping render order."""
    entries = tuple(
        ListingEntry(identifier=p.identifier, title=p.title, date=p.date, url=p.url, categories=p.categories)
        for p in pages
        if p.indexed
    )
    categories: dict[str, list[str]] = {}
    for e in entries:
        for c in e.categories:
            categories.setdefault(c, []).append(e.identifier)
    return Listing(
        pages=entries,
        categories={c: tuple(ids) for c, ids in sorted(categories.items())},
    )


def listing_json(listing: Listing) -> str:
    return json.dumps(listing.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"


def listing_html(listing: Listing, title: str = "Lessons") -> str:
    items = "".join(
        f'<li><a href="{html.escape(e.url)}">{html.escape(e.title)}</a> '
        f'<time datetime="{e.date.isoformat()}">{e.date.isoformat()}</time></li>\n'
        for e in listing.pages
    )
    return LISTING_TEMPLATE.format(title=html.escape(title), items=items)
