"""
Fatal import errors.

Any of these aborts the whole import before a single row is inserted.
Row-level failures are never raised; they are recorded in the result.
"""

from __future__ import annotations


class ImportAbortedError(ValueError):
    """Base class for errors that stop an import before row processing."""

    status_code = 400


class MissingFileError(ImportAbortedError):
    pass


class UnsupportedFileTypeError(ImportAbortedError):
    """Raised when the upload is not a delimited-text file."""


class PayloadDecodeError(ImportAbortedError):
    """Raised when the upload cannot be turned into text."""


class EmptyFileError(ImportAbortedError):
    pass


class MissingRequiredColumnError(ImportAbortedError):
    """Raised when no header cell maps onto ``nome_completo``."""

    def __init__(self, message: str, *, headers: list[str] | None = None) -> None:
        super().__init__(message)
        self.headers = list(headers or [])


class ConfigurationError(RuntimeError):
    """Raised when store settings are missing or malformed."""
