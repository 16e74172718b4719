"""
RU: Рендеринг одного штрихкода (ITF-14/EAN-13) в PNG, SVG или EPS с резервным растровым рендерером.
EN: Single-barcode renderer (ITF-14/EAN-13) to PNG, SVG or EPS with a fallback raster renderer.

Output formats:
- PNG: Barcode Writer in Pure PostScript via treepoem (needs Ghostscript);
  when that stage fails, a generic Code 128 image from python-barcode on a
  fixed canvas. The fallback keeps the batch going but does not preserve
  the requested symbology.
- SVG: python-barcode SVGWriter, no fallback.
- EPS: the SVG output converted by ``barcodegen.eps``.

Requirements: Pillow, python-barcode, treepoem (+ Ghostscript for the primary PNG path)
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Final, Mapping, NamedTuple, Optional, Tuple, TypedDict

import barcode as pybarcode
from barcode.writer import ImageWriter, SVGWriter
from PIL import Image, ImageOps

from barcode_batch.barcodegen.eps import svg_to_eps
from barcode_batch.exceptions import RenderError
from barcode_batch.model.batch import RenderRequest
from barcode_batch.model.enums import OutputFormat
from barcode_batch.model.symbology import SymbologySpec, get_symbology_spec

logger = logging.getLogger(__name__)

__all__ = [
    "RenderEngine",
    "RenderSettings",
    "StageResult",
    "BarcodeRenderOptions",
    "FALLBACK_CANVAS_SIZE",
    "FALLBACK_MARGIN",
]

MM_PER_INCH: Final[float] = 25.4

# Минимальные значения масштаба и высоты штрихов
MIN_SCALE: Final[int] = 3
MIN_BAR_HEIGHT_MM: Final[float] = 20.0

# Fixed parameters of the fallback renderer
FALLBACK_SYMBOLOGY: Final[str] = "code128"
FALLBACK_CANVAS_SIZE: Final[Tuple[int, int]] = (400, 100)
FALLBACK_MARGIN: Final[int] = 15
FALLBACK_BACKGROUND: Final[str] = "#ffffff"
FALLBACK_FOREGROUND: Final[str] = "#000000"

_PRIMARY_DEFAULTS: Final[Mapping[str, Any]] = MappingProxyType(
    {
        "includetext": True,
        "textxalign": "center",
        "textyalign": "below",
        "textyoffset": 5,
        "textsize": 12,
        "guardwhitespace": True,
        "paddingwidth": 20,
        "paddingheight": 30,
        "barcolor": "000000",
        "backgroundcolor": "FFFFFF",
    }
)


class BarcodeRenderOptions(TypedDict, total=False):
    """Опции python-barcode writer (векторный и резервный рендеринг)."""

    module_width: float  # Ширина одного модуля (мм)
    module_height: float  # Высота штрихов (мм)
    quiet_zone: float  # Пустая зона слева/справа (мм)
    font_size: int  # Размер шрифта подписи (pt)
    text_distance: float  # Расстояние между штрихами и подписью (мм)
    background: str
    foreground: str
    write_text: bool
    dpi: int  # Только для ImageWriter


@dataclass(frozen=True)
class RenderSettings:
    """Options resolved for one request, shared by all stages."""

    scale: int
    bar_height_mm: float
    primary_options: Mapping[str, Any]
    vector_options: BarcodeRenderOptions


class StageResult(NamedTuple):
    """Outcome of one raster stage: bytes, or the reason there are none."""

    data: Optional[bytes]
    error: Optional[str] = None
    stage: str = ""

    @property
    def ok(self) -> bool:
        return self.data is not None


_Handler = Callable[[str, SymbologySpec, RenderSettings], bytes]


class RenderEngine:
    """
    Renders one validated code in one output format and writes it to disk.

    Args:
        executor: Executor used by ``render_async``; None means the event
            loop's default executor.

    Example:
        >>> engine = RenderEngine()
        >>> path = engine.render(RenderRequest(
        ...     code="4901234567894",
        ...     symbology=BarcodeSymbology.EAN13,
        ...     destination=Path("/tmp/out/4901234567894.png"),
        ...     output_format=OutputFormat.SVG,
        ... ))
        >>> path.name
        '4901234567894.svg'
    """

    def __init__(self, executor: Optional[Executor] = None) -> None:
        self._executor = executor
        self._handlers: Mapping[OutputFormat, _Handler] = MappingProxyType(
            {
                OutputFormat.PNG: self._render_png,
                OutputFormat.SVG: self._render_svg,
                OutputFormat.EPS: self._render_eps,
            }
        )

    @property
    def executor(self) -> Optional[Executor]:
        """Executor for blocking work; None means the loop's default one."""
        return self._executor

    # ------------------------------------------------------------------ options

    @staticmethod
    def resolve_settings(
        request: RenderRequest, spec: Optional[SymbologySpec] = None
    ) -> RenderSettings:
        """Merge computed defaults with the symbology-specific options."""
        spec = spec or get_symbology_spec(request.symbology)
        scale = int(round(max(MIN_SCALE, request.width_mm)))
        bar_height_mm = max(MIN_BAR_HEIGHT_MM, request.height_mm / 3)

        primary: Dict[str, Any] = dict(_PRIMARY_DEFAULTS)
        # BWIPP expects the bar height in inches
        primary["height"] = round(bar_height_mm / MM_PER_INCH, 4)
        primary.update(spec.options)

        vector: BarcodeRenderOptions = {
            "module_width": round(scale * 0.1, 3),
            "module_height": bar_height_mm,
            "quiet_zone": 6.5,
            "font_size": 12,
            "text_distance": 5,
            "background": "#FFFFFF",
            "foreground": "#000000",
            "write_text": True,
        }
        vector.update(spec.vector_options)  # type: ignore[typeddict-item]

        return RenderSettings(
            scale=scale,
            bar_height_mm=bar_height_mm,
            primary_options=MappingProxyType(primary),
            vector_options=vector,
        )

    # ------------------------------------------------------------------ public API

    def render_bytes(self, request: RenderRequest) -> bytes:
        """
        Render ``request`` in memory.

        Raises:
            UnsupportedSymbologyError: symbology missing from the table.
            RenderError: the requested format could not be produced.
        """
        spec = get_symbology_spec(request.symbology)
        handler = self._handlers.get(request.output_format)
        if handler is None:
            raise RenderError(
                request.output_format,
                f"Unsupported output format: {request.output_format!r}",
            )
        settings = self.resolve_settings(request, spec)
        logger.debug(
            "Rendering %s [%s] as %s (scale=%d, bar height=%.2fmm)",
            request.code,
            spec.symbology.name,
            request.output_format.name,
            settings.scale,
            settings.bar_height_mm,
        )
        return handler(request.code, spec, settings)

    def render(self, request: RenderRequest) -> Path:
        """
        Render ``request`` and write the file.

        The extension of ``request.destination`` is replaced by the one of
        the actual output format.

        Returns:
            Path of the written file.
        """
        data = self.render_bytes(request)
        final_path = request.final_path
        try:
            final_path.write_bytes(data)
        except OSError as e:
            raise RenderError(
                request.output_format,
                f"Could not write {final_path.name}: {e}",
                cause=e,
            ) from e
        logger.debug("Wrote %s (%d bytes)", final_path.name, len(data))
        return final_path

    async def render_async(self, request: RenderRequest) -> Path:
        """Async wrapper for ``render`` (runs in the executor)."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self.render, request)

    # ------------------------------------------------------------------ format handlers

    def _render_png(
        self, code: str, spec: SymbologySpec, settings: RenderSettings
    ) -> bytes:
        primary = self.render_primary_raster(code, spec, settings)
        if primary.ok:
            return primary.data  # type: ignore[return-value]

        logger.warning(
            "Primary renderer failed for %s (%s); using %s fallback",
            code,
            primary.error,
            FALLBACK_SYMBOLOGY,
        )
        fallback = self.render_fallback_raster(code)
        if fallback.ok:
            return fallback.data  # type: ignore[return-value]

        raise RenderError(
            OutputFormat.PNG,
            f"Barcode generation failed: {primary.error}; {fallback.error}",
        )

    def _render_svg(
        self, code: str, spec: SymbologySpec, settings: RenderSettings
    ) -> bytes:
        try:
            return self.render_vector(code, spec, settings)
        except Exception as e:
            logger.error("SVG generation error for %s: %r", code, e)
            raise RenderError(
                OutputFormat.SVG, f"SVG generation failed: {e}", cause=e
            ) from e

    def _render_eps(
        self, code: str, spec: SymbologySpec, settings: RenderSettings
    ) -> bytes:
        try:
            markup = self.render_vector(code, spec, settings)
            return svg_to_eps(markup)
        except Exception as e:
            logger.error("EPS generation error for %s: %r", code, e)
            raise RenderError(
                OutputFormat.EPS, f"EPS generation failed: {e}", cause=e
            ) from e

    # ------------------------------------------------------------------ stages

    def render_primary_raster(
        self, code: str, spec: SymbologySpec, settings: RenderSettings
    ) -> StageResult:
        """Stage 1 of PNG output: BWIPP through treepoem."""
        try:
            import treepoem
        except ImportError:
            return StageResult(
                None, "treepoem not installed (pip install treepoem)", "primary"
            )

        try:
            img = treepoem.generate_barcode(
                barcode_type=spec.bcid,
                data=code,
                options=_bwipp_options(settings.primary_options),
                scale=settings.scale,
            )
            if not isinstance(img, Image.Image):
                return StageResult(
                    None, "treepoem did not produce a valid image", "primary"
                )
            return StageResult(_png_bytes(img.convert("RGB")), None, "primary")
        except Exception as e:
            return StageResult(None, f"{spec.bcid} rendering failed: {e}", "primary")

    def render_fallback_raster(self, code: str) -> StageResult:
        """Stage 2 of PNG output: generic Code 128 on a fixed canvas."""
        try:
            bclass = pybarcode.get_barcode_class(FALLBACK_SYMBOLOGY)
            barcode_inst = bclass(code, writer=ImageWriter())
            writer_options: BarcodeRenderOptions = {
                "module_width": 0.2,
                "module_height": 8.0,
                "quiet_zone": 1.0,
                "font_size": 8,
                "text_distance": 3,
                "background": FALLBACK_BACKGROUND,
                "foreground": FALLBACK_FOREGROUND,
                "write_text": True,
                "dpi": 144,
            }
            img = barcode_inst.render(writer_options=dict(writer_options))
            if not isinstance(img, Image.Image):
                return StageResult(
                    None, "Barcode output is not an Image.Image object", "fallback"
                )

            width, height = FALLBACK_CANVAS_SIZE
            canvas = Image.new("RGB", FALLBACK_CANVAS_SIZE, FALLBACK_BACKGROUND)
            fitted = ImageOps.contain(
                img.convert("RGB"),
                (width - 2 * FALLBACK_MARGIN, height - 2 * FALLBACK_MARGIN),
            )
            canvas.paste(
                fitted,
                ((width - fitted.width) // 2, (height - fitted.height) // 2),
            )
            return StageResult(_png_bytes(canvas), None, "fallback")
        except Exception as e:
            return StageResult(None, f"Fallback rendering failed: {e}", "fallback")

    def render_vector(
        self, code: str, spec: SymbologySpec, settings: RenderSettings
    ) -> bytes:
        """SVG markup from python-barcode; errors propagate to the caller.

        python-barcode drops a 13th EAN digit and recomputes the checksum,
        so the encoded value is compared with the request before rendering.
        """
        bclass = pybarcode.get_barcode_class(spec.vector_name)
        barcode_inst = bclass(code, writer=SVGWriter())
        encoded = str(barcode_inst.get_fullcode())
        if not encoded.startswith(code):
            raise ValueError(
                f"check digit mismatch: {code} would be encoded as {encoded}"
            )
        markup = barcode_inst.render(writer_options=dict(settings.vector_options))
        if isinstance(markup, str):
            markup = markup.encode("utf-8")
        if not isinstance(markup, bytes) or not markup:
            raise ValueError("SVG writer returned no markup")
        return markup


def _bwipp_options(options: Mapping[str, Any]) -> Dict[str, Any]:
    """treepoem accepts only str or bool option values."""
    return {
        key: value if isinstance(value, bool) else str(value)
        for key, value in options.items()
    }


def _png_bytes(img: Image.Image) -> bytes:
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
