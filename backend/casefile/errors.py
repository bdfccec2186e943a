"""Exceptions raised inside the extraction pipeline.

Lookup clients never raise these; they return
:class:`~casefile.models.outcomes.LookupFailure` values instead.  The
extraction job manager catches every ``CasefileError`` and turns it into
the job's ``error`` state.
"""

from __future__ import annotations

from casefile.models.outcomes import ErrorCode


class CasefileError(Exception):
    """Base exception for casefile errors that carry an error code."""

    code: ErrorCode = ErrorCode.EXTRACTION_FAILED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnsupportedFileTypeError(CasefileError):
    code = ErrorCode.UNSUPPORTED_FILE_TYPE


class DocumentReadError(CasefileError):
    """The document could not be turned into text (bad encoding, corrupt file)."""


class ExtractionParseError(CasefileError):
    """The extraction model answered with something that is not a JSON object."""

    code = ErrorCode.PARSE_ERROR


class JobNotReadyError(CasefileError):
    """``apply`` was called for a subject with no extraction in review."""
