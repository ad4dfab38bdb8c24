"""Shared markdown-it parser and token utilities"""

import re

from markdown_it import MarkdownIt


CODE_TOKEN_TYPES = ('fence', 'code_block')
# Only \n, \r\n and \r break lines in token.map; \f, \x85 and \u2028 do not
LINE_BREAK_RE = re.compile(r'(?<=\n)|(?<=\r)(?!\n)')


def make_parser(preset: str = 'gfm-like') -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    return MarkdownIt(preset, options_update={"linkify": False})


def source_lines(text: str) -> list[str]:
    """Split text into lines (ends kept) numbered the way token.map numbers them."""
    return [part for part in LINE_BREAK_RE.split(text) if part]


def code_tokens(tokens: list) -> list:
    """Return fence/code_block tokens in document order."""
    return [t for t in tokens if t.type in CODE_TOKEN_TYPES]


def code_line_ranges(tokens: list) -> list[tuple[int, int]]:
    """Return 0-based [start, end) source line ranges covered by code tokens."""
    return [tuple(t.map) for t in code_tokens(tokens) if t.map]


def fence_language(token) -> str:
    """Return the declared language of a fence (first word of its info string)."""
    info = (token.info or '').strip()
    return info.split()[0].lower() if info else ''
