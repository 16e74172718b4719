"""
ZIP packaging of a finished batch.

Layout: one entry per success under its bare file name, then the JSON
report. The archive is built in memory and handed out only after it was
closed cleanly, so a failed finalization never leaks a truncated ZIP.
Source files are left in place; the workspace owner removes them.
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import BinaryIO, Optional, Sequence

from barcode_batch.exceptions import AssemblyError
from barcode_batch.model.batch import (
    BatchOptions,
    BatchReport,
    RenderFailure,
    RenderSuccess,
)

logger = logging.getLogger(__name__)

DEFAULT_REPORT_NAME = "report.json"


@dataclass(frozen=True)
class AssembledArchive:
    content: bytes
    report: BatchReport


class ArchiveAssembler:
    """
    Packages render outputs and the generation report.

    Args:
        report_name: Archive entry name of the report.
        compression_level: zlib level for every entry (9 = maximum).
    """

    def __init__(
        self,
        report_name: str = DEFAULT_REPORT_NAME,
        compression_level: int = 9,
    ) -> None:
        if not 0 <= compression_level <= 9:
            raise ValueError(
                f"compression_level must be between 0 and 9, got {compression_level}"
            )
        self.report_name = report_name
        self.compression_level = compression_level

    def assemble(
        self,
        successes: Sequence[RenderSuccess],
        failures: Sequence[RenderFailure],
        options: BatchOptions,
        now: Optional[datetime] = None,
    ) -> AssembledArchive:
        """Build the archive in memory.

        Raises:
            AssemblyError: a source file is unreadable or the ZIP cannot be
                finalized.
        """
        buf = BytesIO()
        report = self.write_to(buf, successes, failures, options, now=now)
        return AssembledArchive(content=buf.getvalue(), report=report)

    def write_to(
        self,
        stream: BinaryIO,
        successes: Sequence[RenderSuccess],
        failures: Sequence[RenderFailure],
        options: BatchOptions,
        now: Optional[datetime] = None,
    ) -> BatchReport:
        """Write the archive to ``stream``; returns the embedded report."""
        report = BatchReport.build(successes, failures, options, now=now)
        try:
            with zipfile.ZipFile(
                stream,
                mode="w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self.compression_level,
            ) as zf:
                for success in successes:
                    zf.write(success.path, arcname=success.filename)
                zf.writestr(self.report_name, report.to_json())
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            logger.error("Archive assembly failed: %r", e)
            raise AssemblyError(cause=e) from e

        logger.info(
            "Archive assembled: %d files + %s", len(successes), self.report_name
        )
        return report


__all__ = ["ArchiveAssembler", "AssembledArchive", "DEFAULT_REPORT_NAME"]
