"""Data models for the load, resolve, validate, and render pipeline"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lessonpub.errors import LessonpubError, UnbalancedSnippetError


class DocType(str, Enum):
    """Whether a document takes part in generated navigation/listings."""
    indexed = "indexed"
    unindexed = "unindexed"


class BuildStage(str, Enum):
    """Linear build state machine; no backward transitions."""
    loading = "loading"
    resolving = "resolving"
    validating = "validating"
    rendering = "rendering"
    done = "done"


class BuildStatus(str, Enum):
    success = "success"
    completed_with_errors = "completed_with_errors"


class Frontmatter(BaseModel):
    """Schema for the YAML header of a lesson source. Unknown keys are kept."""
    model_config = ConfigDict(extra="allow")

    title: str = Field(..., min_length=1)
    date: date
    categories: list[str] = []
    type: DocType = DocType.indexed
    slug: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _datetime_to_date(cls, v: Any) -> Any:
        # YAML timestamps with a time part load as datetime
        if isinstance(v, datetime):
            return v.date()
        return v

    @field_validator("categories", mode="before")
    @classmethod
    def _single_category(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v


@dataclass(frozen=True)
class SourceUnit:
    """Raw bytes of one lesson source as supplied by the source provider."""
    path:    Path
    relpath: str        # POSIX path relative to the source root
    raw:     bytes


class Document(BaseModel):
    """A loaded lesson page. Read-only once the loader has produced it."""
    model_config = ConfigDict(frozen=True)

    identifier:  str
    source_path: str
    title:       str
    date:        date
    categories:  tuple[str, ...] = ()     # sorted, de-duplicated
    doc_type:    DocType = DocType.indexed
    body:        str
    frontmatter: dict[str, Any] = {}      # extra front-matter keys not modelled above


class Reference(BaseModel):
    """A reference marker found in a document body and what it resolved to."""
    model_config = ConfigDict(frozen=True)

    source:   str
    target:   str
    label:    str
    resolved: Optional[str] = None        # target identifier when internal and found
    url:      Optional[str] = None
    external: bool = False

    @property
    def dangling(self) -> bool:
        return not self.external and self.resolved is None


class CodeBlock(BaseModel):
    """A fenced or indented code block within one document."""
    model_config = ConfigDict(frozen=True)

    document: str
    index:    int                         # 0-based, in document order
    language: str = ""
    text:     str
    line:     Optional[int] = None        # 1-based start line within the body


@dataclass
class Resolution:
    """Resolver annotation for one document: rewritten body plus what was found."""
    identifier: str
    body:       str
    references: list[Reference] = field(default_factory=list)
    errors:     list[LessonpubError] = field(default_factory=list)


@dataclass
class SnippetReport:
    """Validator annotation for one document."""
    identifier: str
    blocks:     list[CodeBlock] = field(default_factory=list)
    errors:     list[LessonpubError] = field(default_factory=list)

    @property
    def unbalanced(self) -> dict[int, UnbalancedSnippetError]:
        """Map of block index to its balance error."""
        return {e.block_index: e for e in self.errors if isinstance(e, UnbalancedSnippetError)}


class RenderedPage(BaseModel):
    """Final output for one document; regenerated on every build."""
    model_config = ConfigDict(frozen=True)

    identifier:  str
    title:       str
    date:        date
    categories:  tuple[str, ...] = ()
    doc_type:    DocType
    url:         str
    output_path: str                      # relative to the output directory
    content:     str
    warnings:    tuple[str, ...] = ()

    @property
    def indexed(self) -> bool:
        return self.doc_type == DocType.indexed


class ListingEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str
    title:      str
    date:       date
    url:        str
    categories: tuple[str, ...] = ()


class Listing(BaseModel):
    """Navigation over indexed pages in render order, plus a category index."""
    model_config = ConfigDict(frozen=True)

    pages:      tuple[ListingEntry, ...] = ()
    categories: dict[str, tuple[str, ...]] = {}


@dataclass
class BuildReport:
    """Every collected (non-fatal) error of a build, across all stages."""
    errors: list[LessonpubError] = field(default_factory=list)

    def extend(self, errors: list[LessonpubError]) -> None:
        self.errors.extend(errors)
        self.errors.sort(key=lambda e: e.sort_key())

    @property
    def ok(self) -> bool:
        return not self.errors

    def by_kind(self, kind: str) -> list[LessonpubError]:
        return [e for e in self.errors if e.kind == kind]

    def to_dict(self) -> dict[str, Any]:
        return {"errors": [e.to_dict() for e in self.errors]}


@dataclass
class BuildResult:
    """Outcome of one build pass."""
    stage:   BuildStage = BuildStage.loading
    corpus:  dict[str, Document] = field(default_factory=dict)
    pages:   list[RenderedPage] = field(default_factory=list)
    listing: Listing = field(default_factory=Listing)
    report:  BuildReport = field(default_factory=BuildReport)

    @property
    def status(self) -> BuildStatus:
        return BuildStatus.success if self.report.ok else BuildStatus.completed_with_errors
