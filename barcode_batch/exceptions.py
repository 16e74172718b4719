"""
Exception hierarchy for the batch barcode pipeline.

Layers:
- Input level (InputError): the request itself is unusable, nothing is processed.
- Item level (CodeValidationError, RenderError): recorded as a failure of one
  code, never aborts sibling items.
- Batch level (BatchExhaustionError, AssemblyError): no archive is produced.

Messages are short, human-readable reasons; they end up verbatim in
``report.json`` and in error bodies, so they never carry tracebacks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

if TYPE_CHECKING:
    from barcode_batch.model.batch import RenderFailure
    from barcode_batch.model.enums import OutputFormat

INVALID_DATA_REASON = "Invalid data (14 digits: ITF-14, 12-13 digits: EAN-13)"


class BarcodeBatchError(Exception):
    """Base exception for all barcode batch failures."""

    def __init__(
        self, message: str = "", *, cause: Optional[BaseException] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.__cause__ = cause

    def to_dict(self) -> Dict[str, Any]:
        """Structured error body for the caller."""
        return {"error": self.message}


class InputError(BarcodeBatchError):
    """Raised when the request is empty or malformed (no processing attempted)."""


class CodeValidationError(BarcodeBatchError):
    """Raised when a code fails the digit/length rules of every symbology."""

    def __init__(
        self,
        code: str,
        message: str = INVALID_DATA_REASON,
        *,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.code = code


class RenderError(BarcodeBatchError):
    """Raised when the rendering capability fails for one output format."""

    def __init__(
        self,
        output_format: "OutputFormat",
        message: str,
        *,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.output_format = output_format


class UnsupportedSymbologyError(BarcodeBatchError):
    """Raised when a render request names a symbology missing from the table.

    Validation upstream makes this unreachable for well-formed requests; it is
    a contract violation, not a data error.
    """


class BatchExhaustionError(BarcodeBatchError):
    """Raised when a batch produced no files at all."""

    def __init__(
        self,
        failures: Sequence["RenderFailure"],
        message: str = "No barcodes were generated. Check the data or options.",
    ) -> None:
        super().__init__(message)
        self.failures: List["RenderFailure"] = list(failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "details": [failure.to_dict() for failure in self.failures],
        }


class AssemblyError(BarcodeBatchError):
    """Raised when the archive cannot be written or finalized."""

    def __init__(
        self,
        message: str = "Internal server error while building the archive.",
        *,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause=cause)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.__cause__ is not None:
            body["details"] = str(self.__cause__)
        return body


__all__ = [
    "INVALID_DATA_REASON",
    "BarcodeBatchError",
    "InputError",
    "CodeValidationError",
    "RenderError",
    "UnsupportedSymbologyError",
    "BatchExhaustionError",
    "AssemblyError",
]
