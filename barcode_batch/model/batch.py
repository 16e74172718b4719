"""
Value objects flowing through one batch run.

RenderRequest -> RenderEngine -> RenderSuccess | RenderFailure -> BatchReport.
All of them are immutable except ``BatchResult``, whose two lists are the
append-only buffers filled by the coordinator.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from barcode_batch.model.enums import BarcodeSymbology, OutputFormat

logger = logging.getLogger(__name__)

DEFAULT_HEIGHT_MM: float = 32
DEFAULT_WIDTH_MM: float = 2

REPORT_NOTE = (
    "Barcode type is detected automatically (14 digits: ITF-14, 12-13 digits: EAN-13)"
)


def _require_positive(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"{name} must be a positive number, got {value!r}")


@dataclass(frozen=True)
class BatchOptions:
    """Options applied to every item of a batch (echoed in the report)."""

    height_mm: float = DEFAULT_HEIGHT_MM
    width_mm: float = DEFAULT_WIDTH_MM
    file_format: OutputFormat = OutputFormat.PNG
    filename_prefix: str = ""

    def __post_init__(self) -> None:
        _require_positive("height_mm", self.height_mm)
        _require_positive("width_mm", self.width_mm)
        if not isinstance(self.file_format, OutputFormat):
            raise TypeError(
                f"file_format must be OutputFormat, got {type(self.file_format)!r}"
            )

    def filename_for(self, code: str, occurrence: int = 1) -> str:
        """File name for the n-th occurrence of ``code`` in a batch."""
        suffix = "" if occurrence <= 1 else f"_{occurrence}"
        return f"{self.filename_prefix}{code}{suffix}.{self.file_format.extension}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "heightMM": self.height_mm,
            "widthMM": self.width_mm,
            "fileFormat": self.file_format.value,
            "filenamePrefix": self.filename_prefix,
        }


@dataclass(frozen=True)
class RenderRequest:
    code: str
    symbology: BarcodeSymbology
    destination: Path
    output_format: OutputFormat = OutputFormat.PNG
    height_mm: float = DEFAULT_HEIGHT_MM
    width_mm: float = DEFAULT_WIDTH_MM

    def __post_init__(self) -> None:
        _require_positive("height_mm", self.height_mm)
        _require_positive("width_mm", self.width_mm)

    @property
    def final_path(self) -> Path:
        """Destination with the extension of the actual output format."""
        return self.destination.with_suffix(f".{self.output_format.extension}")


@dataclass(frozen=True)
class RenderSuccess:
    code: str
    filename: str
    path: Path


@dataclass(frozen=True)
class RenderFailure:
    code: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code, "reason": self.reason}


RenderOutcome = Union[RenderSuccess, RenderFailure]


@dataclass
class BatchResult:
    """Outcomes of one batch, in completion order."""

    successes: List[RenderSuccess] = field(default_factory=list)
    failures: List[RenderFailure] = field(default_factory=list)
    workspace: Optional[Path] = None

    @property
    def total(self) -> int:
        return len(self.successes) + len(self.failures)


@dataclass(frozen=True)
class BatchReport:
    """
    Generation report written as the archive manifest.

    Serialized schema::

        {
          "generationDate": "2026-10-18T09:30:00.000Z",
          "note": "...",
          "options": {"heightMM", "widthMM", "fileFormat", "filenamePrefix"},
          "successCount": int,
          "errorCount": int,
          "errors": [{"code", "reason"}]
        }
    """

    generation_date: str
    options: BatchOptions
    success_count: int
    error_count: int
    errors: Tuple[RenderFailure, ...] = ()
    note: str = REPORT_NOTE

    @classmethod
    def build(
        cls,
        successes: Sequence[RenderSuccess],
        failures: Sequence[RenderFailure],
        options: BatchOptions,
        now: Optional[datetime] = None,
    ) -> "BatchReport":
        moment = now or datetime.now(timezone.utc)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        stamp = (
            moment.astimezone(timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )
        report = cls(
            generation_date=stamp,
            options=options,
            success_count=len(successes),
            error_count=len(failures),
            errors=tuple(failures),
        )
        logger.debug(
            "Report built: %d succeeded, %d failed",
            report.success_count,
            report.error_count,
        )
        return report

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generationDate": self.generation_date,
            "note": self.note,
            "options": self.options.to_dict(),
            "successCount": self.success_count,
            "errorCount": self.error_count,
            "errors": [failure.to_dict() for failure in self.errors],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)


__all__ = [
    "DEFAULT_HEIGHT_MM",
    "DEFAULT_WIDTH_MM",
    "REPORT_NOTE",
    "BatchOptions",
    "RenderRequest",
    "RenderSuccess",
    "RenderFailure",
    "RenderOutcome",
    "BatchResult",
    "BatchReport",
]
