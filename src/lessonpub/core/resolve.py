"""Reference marker resolution: {{< ref "target" >}} -> link to the target's rendered page"""

import logging
import posixpath
import re
from functools import partial
from typing import Mapping, Optional

from lessonpub.core.models import Document, Reference, Resolution
from lessonpub.core.utils.slug import slugify_path
from lessonpub.core.utils.tokens import code_line_ranges, make_parser, source_lines
from lessonpub.core.utils.urls import url_for
from lessonpub.core.utils.workers import map_ordered
from lessonpub.errors import DanglingReferenceError


logger = logging.getLogger(__name__)


def _marker(name: str) -> str:
    return r'\{\{<\s*ref\s+"(?P<' + name + r'>[^"\n]+)"\s*>\}\}'


# A marker used as a link destination keeps the author's label; a bare marker gets the target's title.
REFERENCE_RE = re.compile(
    r'\[(?P<label>[^\]\n]*)\]\(\s*' + _marker('linked') + r'\s*\)'
    r'|' + _marker('bare')
)
SCHEME_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.-]*:')
DANGLING_PREFIX = '#dangling:'
SOURCE_SUFFIXES = ('.md', '.mdx')


def is_external(target: str) -> bool:
    """True for targets carrying a URL scheme (https:, mailto:, ...)."""
    return bool(SCHEME_RE.match(target))


def _escape_label(label: str) -> str:
    return label.replace('\\', '\\\\').replace('[', '\\[').replace(']', '\\]')


def normalize_target(source_id: str, target: str) -> tuple[Optional[str], str]:
    """Turn a marker target into (candidate identifier, fragment).

    './x' and '../x' are taken relative to the source's directory, anything
    else relative to the corpus root. Returns None for the identifier when the
    path escapes the root or is empty.
    """
    path, _, fragment = target.strip().partition('#')
    for suffix in SOURCE_SUFFIXES:
        if path.endswith(suffix):
            path = path[:-len(suffix)]
            break
    if path.startswith('.'):
        path = posixpath.join(posixpath.dirname(source_id), path)
    path = posixpath.normpath(path.lstrip('/')) if path.strip('/') else ''
    if not path or path == '.' or path.startswith('..'):
        return None, fragment
    return slugify_path(path) or None, fragment


def resolve_target(
    source_id: str,
    target: str,
    corpus: Mapping[str, Document],
    base_url: str = '',
    fmt: str = 'html',
    ) -> Reference:
    """Resolve a single marker target. Raises DanglingReferenceError when it is not in the corpus."""
    if is_external(target):
        return Reference(source=source_id, target=target, label=target, url=target, external=True)
    identifier, fragment = normalize_target(source_id, target)
    if identifier is None or identifier not in corpus:
        raise DanglingReferenceError(source_id, target)
    return Reference(
        source=source_id,
        target=target,
        label=corpus[identifier].title,
        resolved=identifier,
        url=url_for(identifier, base_url, fmt, fragment),
    )


def _rewrite_line(line: str, doc: Document, corpus, base_url: str, fmt: str, res: Resolution) -> str:
    """Replace every marker on one line with a Markdown link."""
    def _sub(m: re.Match) -> str:
        linked = m.group('linked')
        target = linked if linked is not None else m.group('bare')
        try:
            ref = resolve_target(doc.identifier, target, corpus, base_url, fmt)
        except DanglingReferenceError as e:
            logger.debug("%s: dangling reference to '%s'", doc.identifier, target)
            res.errors.append(e)
            res.references.append(Reference(source=doc.identifier, target=target, label=target))
            label = m.group('label') if linked is not None else _escape_label(target)
            return f"[{label}](<{DANGLING_PREFIX}{target}>)"
        label = m.group('label') if linked is not None else _escape_label(ref.label)
        res.references.append(ref.model_copy(update={"label": label}))
        return f"[{label}](<{ref.url}>)"

    return REFERENCE_RE.sub(_sub, line)


def resolve_document(
    doc: Document,
    corpus: Mapping[str, Document],
    base_url: str = '',
    fmt: str = 'html',
    parser_config: str = 'gfm-like',
    ) -> Resolution:
    """Rewrite all reference markers in doc's body outside code blocks.

    The Document itself is left untouched; the rewritten body and any
    DanglingReferenceErrors are returned as a Resolution.
    """
    res = Resolution(identifier=doc.identifier, body=doc.body)
    if not REFERENCE_RE.search(doc.body):
        return res

    tokens = make_parser(parser_config).parse(doc.body)
    in_code = set()
    for start, end in code_line_ranges(tokens):
        in_code.update(range(start, end))

    lines = source_lines(doc.body)
    res.body = ''.join(
        line if i in in_code else _rewrite_line(line, doc, corpus, base_url, fmt, res)
        for i, line in enumerate(lines)
    )
    return res


def resolve_corpus(
    corpus: Mapping[str, Document],
    base_url: str = '',
    fmt: str = 'html',
    parser_config: str = 'gfm-like',
    workers: int = 1,
    ) -> dict[str, Resolution]:
    """Resolve every document independently; results keyed in identifier order."""
    ids = sorted(corpus)
    fn = partial(_resolve_one, corpus=corpus, base_url=base_url, fmt=fmt, parser_config=parser_config)
    results = map_ordered(fn, ids, workers)
    dangling = sum(len(r.errors) for r in results)
    logger.info("Resolved %d document(s), %d dangling reference(s)", len(results), dangling)
    return {r.identifier: r for r in results}


def _resolve_one(identifier: str, corpus, base_url: str, fmt: str, parser_config: str) -> Resolution:
    return resolve_document(corpus[identifier], corpus, base_url, fmt, parser_config)
