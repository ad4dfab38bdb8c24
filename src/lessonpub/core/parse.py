"""Source discovery, frontmatter extraction, and corpus loading"""

import logging
import re
from pathlib import Path, PurePosixPath
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from lessonpub.core.models import Document, Frontmatter, SourceUnit
from lessonpub.core.utils.slug import slugify, slugify_path
from lessonpub.errors import FatalIOError, ParseError


logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r'^---\s*\n(.*?)\n---\s*(?:\n|$)', re.DOTALL)
MD_EXTENSIONS = {'.md', '.mdx'}


def _strip_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Return (frontmatter_dict, body) with YAML header removed."""
    m = FRONTMATTER_RE.match(text)
    if m:
        try:
            fm = yaml.safe_load(m.group(1)) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML frontmatter: {e}") from e
        if not isinstance(fm, dict):
            raise ValueError(f"Invalid YAML frontmatter: expected a mapping, got {type(fm).__name__}")
        return fm, text[m.end():]
    return {}, text


def _describe(e: ValidationError) -> str:
    """Flatten pydantic errors to 'field: message; ...'."""
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "frontmatter"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def discover_files(path: Path) -> list[Path]:
    """Return sorted .md/.mdx files under path, or [path] if a single file."""
    if path.is_file():
        return [path] if path.suffix in MD_EXTENSIONS else []
    return sorted(p for p in path.rglob('*') if p.suffix in MD_EXTENSIONS and p.is_file())


def read_sources(source_dir: Path) -> list[SourceUnit]:
    """Read every lesson source under source_dir. Any I/O failure is fatal."""
    source_dir = Path(source_dir)
    if not source_dir.exists():
        raise FatalIOError(str(source_dir), "source directory does not exist")
    root = source_dir if source_dir.is_dir() else source_dir.parent
    units = []
    for p in discover_files(source_dir):
        try:
            raw = p.read_bytes()
        except OSError as e:
            raise FatalIOError(str(p), f"cannot read source: {e}") from e
        units.append(SourceUnit(path=p, relpath=p.relative_to(root).as_posix(), raw=raw))
    logger.info("Read %d source unit(s) from %s", len(units), source_dir)
    return units


def make_identifier(relpath: str, slug: Optional[str] = None) -> str:
    """Identifier = slugified parent directories + (frontmatter slug or slugified stem)."""
    rel = PurePosixPath(relpath)
    leaf = slugify(slug) if slug else slugify(rel.stem)
    parent = slugify_path(rel.parent.as_posix()) if rel.parent != PurePosixPath('.') else ''
    return f"{parent}/{leaf}" if parent else leaf


def parse_source(unit: SourceUnit) -> Document:
    """Parse one source unit into a Document. Raises ParseError on malformed input."""
    fallback_id = make_identifier(unit.relpath)
    try:
        text = unit.raw.decode('utf-8')
    except UnicodeDecodeError as e:
        raise ParseError(fallback_id, f"source is not valid UTF-8: {e}") from e

    try:
        raw_fm, body = _strip_frontmatter(text)
    except ValueError as e:
        raise ParseError(fallback_id, str(e)) from e
    if not raw_fm:
        raise ParseError(fallback_id, "missing frontmatter")

    try:
        fm = Frontmatter.model_validate(raw_fm)
    except ValidationError as e:
        raise ParseError(fallback_id, f"invalid frontmatter: {_describe(e)}") from e

    identifier = make_identifier(unit.relpath, fm.slug)
    if not identifier:
        raise ParseError(fallback_id or unit.relpath, "cannot derive an identifier")

    return Document(
        identifier=identifier,
        source_path=unit.relpath,
        title=fm.title,
        date=fm.date,
        categories=tuple(sorted(set(fm.categories))),
        doc_type=fm.type,
        body=body,
        frontmatter=dict(fm.model_extra or {}),
    )


def load_corpus(
    units: list[SourceUnit],
    reserved: frozenset[str] = frozenset(),
    ) -> tuple[dict[str, Document], list[ParseError]]:
    """Parse all units into an identifier -> Document mapping.

    Failures are collected and the document left out. Units are taken in
    relpath order, so of two documents sharing an identifier the later one is
    rejected.
    """
    corpus: dict[str, Document] = {}
    errors: list[ParseError] = []
    for unit in sorted(units, key=lambda u: u.relpath):
        try:
            doc = parse_source(unit)
            if doc.identifier in reserved:
                raise ParseError(doc.identifier, f"identifier is reserved ({unit.relpath})")
            if doc.identifier in corpus:
                first = corpus[doc.identifier].source_path
                raise ParseError(doc.identifier, f"duplicate identifier: {unit.relpath} collides with {first}")
        except ParseError as e:
            logger.debug("Dropping %s: %s", unit.relpath, e.message)
            errors.append(e)
            continue
        logger.debug("Loaded %s as '%s'", unit.relpath, doc.identifier)
        corpus[doc.identifier] = doc
    return corpus, errors
