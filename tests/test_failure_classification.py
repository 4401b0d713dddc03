"""
Tests for failure classification.

Every structural failure raised by the conversion and CardDB layers is a
KnownError carrying a FailureKind and a human readable message.
"""

from pathlib import Path

import pytest

from carddex.models.failure import (
    FailureKind,
    InvalidPathError,
    KnownError,
    MalformedRowError,
    MetadataValidationError,
    TypeLineError,
)


class TestKnownErrors:
    """Each error class maps to exactly one failure kind."""

    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (MalformedRowError("binder.csv", 3, "bad quantity"), FailureKind.MALFORMED_ROW),
            (MetadataValidationError("missing meta"), FailureKind.INVALID_METADATA),
            (TypeLineError("card has no type line"), FailureKind.INVARIANT_VIOLATION),
            (InvalidPathError("missing.csv"), FailureKind.NOT_FOUND),
        ],
    )
    def test_kind(self, error: KnownError, kind: FailureKind) -> None:
        assert isinstance(error, KnownError)
        assert error.kind is kind

    def test_malformed_row_message(self) -> None:
        """Row and file are both named so the export can be fixed."""
        error = MalformedRowError(Path("exports/binder.csv"), 3, "has an invalid quantity")

        assert error.row == 3
        assert error.message == "CSV file on row 3 has an invalid quantity: exports/binder.csv"
        assert error.suggestion is not None
        assert str(error) == error.message

    def test_metadata_error_detail(self) -> None:
        error = MetadataValidationError("CardDB metadata is missing", filepath="inventory.json")

        assert error.filepath == "inventory.json"
        assert error.detail == "inventory.json"

    def test_invalid_path_message(self) -> None:
        error = InvalidPathError("collection", expected="directory")

        assert error.message == "Invalid path, expected a directory: collection"
