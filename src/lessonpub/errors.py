"""Build error taxonomy: collected (non-fatal) errors and the fatal I/O abort"""

from enum import IntEnum
from typing import Any, Optional


class Severity(IntEnum):
    """Report severity; values line up with stdlib logging levels."""
    warning = 30
    error = 40
    fatal = 50


class LessonpubError(Exception):
    """Base class for every build error. Carries the offending document identifier."""
    kind = "error"
    severity = Severity.error

    def __init__(self, identifier: str, message: str):
        super().__init__(f"{identifier}: {message}")
        self.identifier = identifier
        self.message = message

    @property
    def detail(self) -> str:
        return self.message

    def sort_key(self) -> tuple[str, str, str]:
        return (self.identifier, self.kind, self.detail)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "severity": self.severity.name,
            "identifier": self.identifier,
            "message": self.message,
        }


class ParseError(LessonpubError):
    """Malformed front-matter or undecodable source; the document is dropped."""
    kind = "parse"


class DanglingReferenceError(LessonpubError):
    """A reference marker whose target is not in the corpus."""
    kind = "dangling-reference"

    def __init__(self, identifier: str, target: str):
        super().__init__(identifier, f"unresolved reference to '{target}'")
        self.target = target

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "target": self.target}


class UnbalancedSnippetError(LessonpubError):
    """A code block whose delimiters do not balance.

    expected is the closer the block needed (None when nothing was open);
    found is the delimiter actually seen (None at end of block).
    """
    kind = "unbalanced-snippet"
    severity = Severity.warning

    def __init__(
        self,
        identifier: str,
        block_index: int,
        expected: Optional[str],
        found: Optional[str],
        line: Optional[int] = None,
        ):
        self.block_index = block_index
        self.expected = expected
        self.found = found
        self.line = line
        want = f"'{expected}'" if expected else "nothing"
        got = f"'{found}'" if found else "end of block"
        where = f" (line {line})" if line else ""
        super().__init__(identifier, f"code block {block_index}{where}: expected {want}, found {got}")

    def sort_key(self) -> tuple[str, str, str]:
        return (self.identifier, self.kind, f"{self.block_index:06d}")

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "block_index": self.block_index,
            "expected": self.expected,
            "found": self.found,
        }


class FatalIOError(LessonpubError):
    """Source or output unreadable/unwritable; aborts the build."""
    kind = "io"
    severity = Severity.fatal

    def __init__(self, path: str, message: str):
        super().__init__(path, message)
        self.path = path
