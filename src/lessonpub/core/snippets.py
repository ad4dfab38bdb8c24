"""Code block extraction and delimiter balance checking.

This is a sanity check for truncated examples, not a compiler: it only
verifies that (), [] and {} nest and close. For languages with a known
comment syntax, string/char literals and comments are skipped so that a
brace inside "..." or // ... does not count.
"""

import logging
from functools import partial
from typing import Iterable, Mapping, Optional

from lessonpub.core.models import CodeBlock, Document, SnippetReport
from lessonpub.core.utils.tokens import code_tokens, fence_language, make_parser
from lessonpub.core.utils.workers import map_ordered
from lessonpub.errors import UnbalancedSnippetError


logger = logging.getLogger(__name__)

PAIRS = {')': '(', ']': '[', '}': '{'}
OPENERS = {v: k for k, v in PAIRS.items()}

C_FAMILY = {
    'java', 'c', 'cpp', 'c++', 'h', 'cs', 'csharp', 'js', 'javascript', 'ts',
    'typescript', 'go', 'kotlin', 'kt', 'swift', 'scala', 'groovy',
    'php', 'dart', 'jsx', 'tsx',
}
HASH_FAMILY = {'python', 'py', 'ruby', 'rb', 'sh', 'bash', 'shell', 'zsh', 'perl', 'r', 'yaml', 'yml', 'toml'}
# ' also starts lifetimes (&'a str), so only double quotes delimit literals
RUST_FAMILY = {'rust', 'rs'}


def _syntax(language: str) -> Optional[dict]:
    """Return lexing rules for a language, or None to scan delimiters raw."""
    if language in C_FAMILY:
        return {"line": "//", "block": ("/*", "*/"), "quotes": "\"'"}
    if language in RUST_FAMILY:
        return {"line": "//", "block": ("/*", "*/"), "quotes": '"'}
    if language in HASH_FAMILY:
        return {"line": "#", "block": None, "quotes": "\"'"}
    return None


def _delimiters(text: str, syntax: Optional[dict]) -> Iterable[tuple[str, int]]:
    """Yield (delimiter, 1-based line) for every bracket outside literals and comments."""
    line = 1
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if ch == '\n':
            line += 1
            i += 1
            continue
        if syntax:
            if text.startswith(syntax["line"], i):
                end = text.find('\n', i)
                i = n if end < 0 else end
                continue
            block = syntax["block"]
            if block and text.startswith(block[0], i):
                end = text.find(block[1], i + len(block[0]))
                stop = n if end < 0 else end + len(block[1])
                line += text.count('\n', i, stop)
                i = stop
                continue
            if ch in syntax["quotes"]:
                # literals end at the matching quote or the end of the line
                j = i + 1
                while j < n and text[j] not in (ch, '\n'):
                    j += 2 if text[j] == '\\' else 1
                line += text.count('\n', i, min(j, n))
                i = j + 1 if j < n and text[j] == ch else j
                continue
        if ch in PAIRS or ch in OPENERS:
            yield ch, line
        i += 1


def check_balance(block: CodeBlock) -> None:
    """Raise UnbalancedSnippetError for the first nesting problem in block."""
    stack: list[tuple[str, int]] = []
    base = block.line or 1
    for ch, line in _delimiters(block.text, _syntax(block.language)):
        if ch in OPENERS:
            stack.append((ch, line))
            continue
        if not stack:
            raise UnbalancedSnippetError(block.document, block.index, None, ch, base + line - 1)
        opener, _ = stack.pop()
        if PAIRS[ch] != opener:
            raise UnbalancedSnippetError(block.document, block.index, OPENERS[opener], ch, base + line - 1)
    if stack:
        opener, line = stack[-1]
        raise UnbalancedSnippetError(block.document, block.index, OPENERS[opener], None, base + line - 1)


def extract_blocks(doc: Document, parser_config: str = 'gfm-like') -> list[CodeBlock]:
    """Return every fenced/indented code block of doc in document order."""
    tokens = make_parser(parser_config).parse(doc.body)
    return [
        CodeBlock(
            document=doc.identifier,
            index=i,
            language=fence_language(tok) if tok.type == 'fence' else '',
            text=tok.content,
            # fences start one line after the opening marker
            line=(tok.map[0] + (2 if tok.type == 'fence' else 1)) if tok.map else None,
        )
        for i, tok in enumerate(code_tokens(tokens))
    ]


def validate_document(
    doc: Document,
    parser_config: str = 'gfm-like',
    unchecked_languages: Iterable[str] = (),
    ) -> SnippetReport:
    """Extract and balance-check doc's code blocks; at most one error per block."""
    skip = {lang.lower() for lang in unchecked_languages}
    report = SnippetReport(identifier=doc.identifier, blocks=extract_blocks(doc, parser_config))
    for block in report.blocks:
        if block.language in skip:
            continue
        try:
            check_balance(block)
        except UnbalancedSnippetError as e:
            logger.debug("%s", e)
            report.errors.append(e)
    return report


def validate_corpus(
    corpus: Mapping[str, Document],
    parser_config: str = 'gfm-like',
    unchecked_languages: Iterable[str] = (),
    workers: int = 1,
    ) -> dict[str, SnippetReport]:
    """Validate every document independently; results keyed in identifier order."""
    fn = partial(_validate_one, corpus=corpus, parser_config=parser_config,
                 unchecked_languages=tuple(unchecked_languages))
    results = map_ordered(fn, sorted(corpus), workers)
    blocks = sum(len(r.blocks) for r in results)
    bad = sum(len(r.errors) for r in results)
    logger.info("Checked %d code block(s), %d unbalanced", blocks, bad)
    return {r.identifier: r for r in results}


def _validate_one(identifier: str, corpus, parser_config: str, unchecked_languages: tuple) -> SnippetReport:
    return validate_document(corpus[identifier], parser_config, unchecked_languages)
