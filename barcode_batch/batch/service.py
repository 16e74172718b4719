"""
Request/response contracts of the generator, independent of any transport.

- ``generate_batch``: ``{barcodeNumbers, heightMM?, widthMM?, filenamePrefix?,
  fileFormat?}`` -> ZIP archive bytes + report
- ``preview``: ``{code, heightMM?, widthMM?, fileFormat?}`` -> data URI payload
- ``error_body``: structured ``{error, details?}`` body for any pipeline error

A web or desktop shell only has to map these onto its own request and
response objects.
"""

from __future__ import annotations

import asyncio
import base64
import functools
import logging
import math
import tempfile
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from barcode_batch.barcodegen.barcode_generator import RenderEngine
from barcode_batch.barcodegen.classifier import classify, clean_code, normalize_codes, validate
from barcode_batch.batch.archive import ArchiveAssembler
from barcode_batch.batch.coordinator import BatchCoordinator
from barcode_batch.exceptions import BarcodeBatchError, CodeValidationError, InputError
from barcode_batch.model.batch import (
    DEFAULT_HEIGHT_MM,
    DEFAULT_WIDTH_MM,
    BatchOptions,
    BatchReport,
    RenderRequest,
)
from barcode_batch.model.enums import OutputFormat

logger = logging.getLogger(__name__)

EPS_PREVIEW_PLACEHOLDER = (
    "EPS files cannot be previewed in the browser. "
    "The generated archive contains the EPS barcode."
)
INVALID_PREVIEW_REASON = (
    "Invalid barcode number (14 digits: ITF-14, 12-13 digits: EAN-13)"
)


def _coerce_dimension(value: Any, default: float) -> float:
    """Numeric option with the default for missing, non-numeric or non-positive input."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number <= 0:
        return default
    return int(number) if number.is_integer() else number


def _parse_options(payload: Mapping[str, Any], config: Mapping[str, Any]) -> BatchOptions:
    try:
        file_format = OutputFormat.parse(
            payload.get("fileFormat") or config.get("default_file_format")
        )
    except ValueError as e:
        raise InputError(str(e)) from e

    # falsy values (None, "", 0, False) mean "no prefix given"
    prefix = payload.get("filenamePrefix") or config.get("default_filename_prefix") or ""
    prefix = str(prefix)
    if "/" in prefix or "\\" in prefix or prefix in (".", ".."):
        raise InputError("filenamePrefix must not contain path separators")

    return BatchOptions(
        height_mm=_coerce_dimension(
            payload.get("heightMM"),
            _coerce_dimension(config.get("default_height_mm"), DEFAULT_HEIGHT_MM),
        ),
        width_mm=_coerce_dimension(
            payload.get("widthMM"),
            _coerce_dimension(config.get("default_width_mm"), DEFAULT_WIDTH_MM),
        ),
        file_format=file_format,
        filename_prefix=prefix,
    )


@dataclass(frozen=True)
class BatchRequest:
    barcode_numbers: Tuple[Any, ...]
    options: BatchOptions

    @classmethod
    def from_payload(
        cls, payload: Mapping[str, Any], config: Optional[Mapping[str, Any]] = None
    ) -> "BatchRequest":
        """
        Raises:
            InputError: missing/empty ``barcodeNumbers``, unknown
                ``fileFormat`` or unsafe ``filenamePrefix``.
        """
        if not isinstance(payload, Mapping):
            raise InputError("Request body must be a JSON object.")
        numbers = payload.get("barcodeNumbers")
        if not isinstance(numbers, (list, tuple)) or len(numbers) == 0:
            raise InputError("No barcode numbers were provided.")
        return cls(
            barcode_numbers=tuple(numbers),
            options=_parse_options(payload, config or {}),
        )


@dataclass(frozen=True)
class BatchArchive:
    content: bytes
    report: BatchReport
    filename: str = "barcodes.zip"
    media_type: str = "application/zip"

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


class BarcodeBatchService:
    """
    Entry point for shells: batch generation, preview and error bodies.

    Args:
        engine: Renderer shared by batch and preview.
        coordinator: Batch fan-out (defaults to one built on ``engine``).
        assembler: Archive writer.
        config: Configuration mapping as returned by ``load_config``.
    """

    def __init__(
        self,
        engine: Optional[RenderEngine] = None,
        coordinator: Optional[BatchCoordinator] = None,
        assembler: Optional[ArchiveAssembler] = None,
        config: Optional[Mapping[str, Any]] = None,
    ) -> None:
        if config is None:
            from barcode_batch import load_config

            config = load_config()
        self.config: Mapping[str, Any] = config
        self.engine = engine or RenderEngine()
        self.coordinator = coordinator or BatchCoordinator(
            self.engine, work_dir=config.get("work_dir")
        )
        self.assembler = assembler or ArchiveAssembler(
            report_name=config.get("report_name", "report.json"),
            compression_level=int(config.get("compression_level", 9)),
        )

    # ------------------------------------------------------------------ batch

    async def generate_batch_async(self, payload: Mapping[str, Any]) -> BatchArchive:
        """
        Generate every code of the request and package the archive.

        Raises:
            InputError: unusable request (nothing processed).
            BatchExhaustionError: no code produced a file.
            AssemblyError: the archive could not be finalized.
        """
        request = BatchRequest.from_payload(payload, self.config)
        codes = normalize_codes(request.barcode_numbers)
        logger.info(
            "Batch requested: %d codes as %s", len(codes), request.options.file_format.name
        )

        loop = asyncio.get_running_loop()
        async with self.coordinator.open_workspace() as workspace:
            result = await self.coordinator.run_batch(codes, request.options, workspace)
            # reading, deflating and zipping stay off the event loop
            assembled = await loop.run_in_executor(
                self.engine.executor,
                functools.partial(
                    self.assembler.assemble,
                    result.successes,
                    result.failures,
                    request.options,
                ),
            )

        return BatchArchive(
            content=assembled.content,
            report=assembled.report,
            filename=self.config.get("archive_name", "barcodes.zip"),
        )

    def generate_batch(self, payload: Mapping[str, Any]) -> BatchArchive:
        """Blocking variant of ``generate_batch_async`` (no running loop allowed)."""
        return asyncio.run(self.generate_batch_async(payload))

    # ------------------------------------------------------------------ preview

    def preview(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Render a single code and return it as a data URI.

        Returns:
            ``{"success": True, "image": "data:...;base64,...", "code",
            "type", "format"}``; EPS yields a text placeholder image.

        Raises:
            InputError: missing code or bad options.
            CodeValidationError: the code matches no symbology.
            RenderError: rendering failed.
        """
        if not isinstance(payload, Mapping):
            raise InputError("Request body must be a JSON object.")
        raw = payload.get("code")
        if raw is None or not str(raw).strip():
            raise InputError("Please enter a barcode number.")

        code = clean_code(str(raw).strip())
        symbology = classify(code)
        if symbology is None or not validate(code, symbology):
            raise CodeValidationError(code, INVALID_PREVIEW_REASON)

        options = _parse_options(payload, self.config)
        fmt = options.file_format

        with self._preview_file(code, fmt) as destination:
            path = self.engine.render(
                RenderRequest(
                    code=code,
                    symbology=symbology,
                    destination=destination,
                    output_format=fmt,
                    height_mm=options.height_mm,
                    width_mm=options.width_mm,
                )
            )
            data = path.read_bytes()

        if fmt is OutputFormat.EPS:
            image = _data_uri("text/plain", EPS_PREVIEW_PLACEHOLDER.encode("utf-8"))
        else:
            image = _data_uri(fmt.mime_type, data)

        logger.debug("Preview rendered for %s (%s, %d bytes)", code, fmt.name, len(data))
        return {
            "success": True,
            "image": image,
            "code": code,
            "type": symbology.label,
            "format": fmt.value,
        }

    @contextmanager
    def _preview_file(self, code: str, fmt: OutputFormat) -> Iterator[Path]:
        directory = Path(self.config.get("work_dir") or tempfile.gettempdir())
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"preview_{code}_{uuid.uuid4().hex}.{fmt.extension}"
        try:
            yield path
        finally:
            path.unlink(missing_ok=True)

    # ------------------------------------------------------------------ errors

    @staticmethod
    def error_body(exc: BarcodeBatchError) -> Dict[str, Any]:
        return exc.to_dict()


def _data_uri(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


__all__ = [
    "BarcodeBatchService",
    "BatchArchive",
    "BatchRequest",
    "EPS_PREVIEW_PLACEHOLDER",
]
