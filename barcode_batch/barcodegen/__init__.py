"""
barcodegen

Classification, validation and rendering of single ITF-14 / EAN-13 codes.

Public API:
    - classify / validate / clean_code: pure code checks
    - RenderEngine: renders one RenderRequest to PNG, SVG or EPS
    - StageResult: value returned by each PNG rendering stage
    - svg_to_eps: deterministic SVG -> EPS conversion

Примеры:
    >>> from barcode_batch.barcodegen import classify, RenderEngine
    >>> classify("12345678901234")
    <BarcodeSymbology.ITF14: 'itf14'>

Зависимости:
    Pillow, python-barcode, treepoem
"""

from barcode_batch.barcodegen.barcode_generator import (
    BarcodeRenderOptions,
    RenderEngine,
    RenderSettings,
    StageResult,
)
from barcode_batch.barcodegen.classifier import (
    classify,
    clean_code,
    normalize_codes,
    validate,
)
from barcode_batch.barcodegen.eps import SvgConversionError, svg_to_eps

__all__ = [
    "classify",
    "clean_code",
    "normalize_codes",
    "validate",
    "RenderEngine",
    "RenderSettings",
    "StageResult",
    "BarcodeRenderOptions",
    "SvgConversionError",
    "svg_to_eps",
]
