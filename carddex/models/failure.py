"""
Failure classification for collection conversion and CardDB access.

Structural problems abort the enclosing operation by raising a KnownError
subclass. Per-item mismatches (unmatched holdings, rarity overrides) are
never raised; they are accumulated and reported at the end of a run.

Error classes:
- MalformedRowError: bad identity / quantity / missing column in a CSV file
- MetadataValidationError: CardDB metadata missing, malformed or inconsistent
- TypeLineError: a card object has no type line (caller contract violation)
- InvalidPathError: a required file or directory does not exist
"""

from enum import Enum
from pathlib import Path


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    MALFORMED_ROW = "malformed_row"

    # Resource failures
    NOT_FOUND = "not_found"
    INVALID_METADATA = "invalid_metadata"

    # Internal errors
    INVARIANT_VIOLATION = "invariant_violation"


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        super().__init__(message)


class MalformedRowError(KnownError):
    """
    Raised when a row of an owned-card CSV file cannot be imported.

    Row numbers are 1-based and count the header as row 1, so the first
    data row is row 2. A missing required column is reported at row 1.
    """

    def __init__(self, filepath: str | Path, row: int, reason: str):
        self.filepath = str(filepath)
        self.row = row
        self.reason = reason
        super().__init__(
            kind=FailureKind.MALFORMED_ROW,
            message=f"CSV file on row {row} {reason}: {self.filepath}",
            detail=reason,
            suggestion="Fix the row in the source export and run the conversion again.",
        )


class MetadataValidationError(KnownError):
    """Raised when CardDB metadata is missing, malformed or inconsistent."""

    def __init__(self, message: str, filepath: str | Path | None = None):
        self.filepath = str(filepath) if filepath is not None else None
        super().__init__(
            kind=FailureKind.INVALID_METADATA,
            message=message,
            detail=self.filepath,
        )


class TypeLineError(KnownError):
    """Raised when no type line can be determined for a card."""

    def __init__(self, message: str):
        super().__init__(kind=FailureKind.INVARIANT_VIOLATION, message=message)


class InvalidPathError(KnownError):
    """Raised when a required file or directory path does not exist."""

    def __init__(self, path: str | Path, expected: str = "file or directory"):
        self.path = str(path)
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"Invalid path, expected a {expected}: {self.path}",
        )
