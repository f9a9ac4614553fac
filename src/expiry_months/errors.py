"""Exceptions raised while analysing and transforming a workbook."""

from __future__ import annotations

from collections.abc import Sequence


class ShelfLifeError(Exception):
    """Base class for failures that abort processing of a single file."""


class EmptyInputError(ShelfLifeError):
    """Raised when the first sheet has no populated cell or no data rows."""

    def __init__(self, message: str = "File is empty or contains no data rows") -> None:
        super().__init__(message)


class MissingRequiredColumnsError(ShelfLifeError):
    """Raised when one or both required date headers are absent."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required columns: {', '.join(self.missing)}")


class DuplicateHeaderError(ShelfLifeError):
    """Raised when two columns share a header name."""

    def __init__(self, duplicates: Sequence[str]) -> None:
        self.duplicates = sorted(set(duplicates))
        super().__init__(
            f"Duplicate column headers: {', '.join(self.duplicates)}. Rename or remove one."
        )


class UnreadableSourceError(ShelfLifeError):
    """Raised when the spreadsheet bytes cannot be decoded."""


class OutputEncodingError(ShelfLifeError):
    """Raised when the processed rows cannot be written as a workbook."""


class BatchRejectedError(Exception):
    """Raised by the admission gate when any file in a batch failed analysis."""

    def __init__(self, file_names: Sequence[str]) -> None:
        self.file_names = list(file_names)
        super().__init__(
            f"Cannot process files with errors: {', '.join(self.file_names)}. "
            "Check the file structure and try again."
        )