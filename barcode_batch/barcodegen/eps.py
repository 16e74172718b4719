"""
SVG -> EPS conversion for barcode markup.

Barcodes are made of filled rectangles, so the conversion only needs the
document size and the black ``<rect>`` elements:

- root ``width``/``height`` become the bounding box,
- every ``rect`` whose fill is literally ``#000000``, ``black`` or ``#000``
  becomes one ``rectfill`` call,
- everything else (background, text, non-black fills) is dropped.

Lengths are converted to PostScript points and the y axis is flipped
(SVG origin is top-left, PostScript origin is bottom-left). Output is a pure
function of the input markup.
"""

from __future__ import annotations

import logging
import math
import re
import xml.etree.ElementTree as ET
from typing import Dict, Final, FrozenSet, List, Optional, Tuple

logger = logging.getLogger(__name__)

EPS_HEADER: Final[str] = "%!PS-Adobe-3.0 EPSF-3.0"
EPS_TRAILER: Final[str] = "%%EOF"

BLACK_FILLS: Final[FrozenSet[str]] = frozenset({"#000000", "black", "#000"})

# PostScript points per unit
_UNIT_TO_PT: Final[Dict[str, float]] = {
    "": 1.0,
    "pt": 1.0,
    "px": 0.75,
    "mm": 72.0 / 25.4,
    "cm": 72.0 / 2.54,
    "in": 72.0,
}

_LENGTH_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*([a-z%]*)\s*$")


class SvgConversionError(ValueError):
    """Raised when SVG markup cannot be converted to EPS."""


Rect = Tuple[float, float, float, float]


def svg_to_eps(svg: bytes | str, creator: str = "barcode_batch") -> bytes:
    """
    Convert barcode SVG markup to an EPS document.

    Args:
        svg: SVG markup (bytes or text).
        creator: Value of the ``%%Creator`` comment.

    Returns:
        ASCII EPS document starting with ``%!PS-Adobe-3.0 EPSF-3.0`` and
        ending with ``%%EOF``.

    Raises:
        SvgConversionError: on malformed markup or missing/invalid size.
    """
    try:
        root = ET.fromstring(svg)
    except ET.ParseError as e:
        raise SvgConversionError(f"Malformed SVG markup: {e}") from e

    if _local_name(root.tag) != "svg":
        raise SvgConversionError(f"Root element is <{_local_name(root.tag)}>, not <svg>")

    width = _parse_length(root.get("width"), None)
    height = _parse_length(root.get("height"), None)
    if width is None or height is None or width <= 0 or height <= 0:
        raise SvgConversionError("SVG root must declare a positive width and height")

    rects = list(_black_rects(root, width, height))
    logger.debug(
        "EPS conversion: %.3fx%.3f pt, %d filled rectangles", width, height, len(rects)
    )

    lines: List[str] = [
        EPS_HEADER,
        f"%%BoundingBox: 0 0 {math.ceil(round(width, 3))} {math.ceil(round(height, 3))}",
        f"%%HiResBoundingBox: 0 0 {_fmt(width)} {_fmt(height)}",
        f"%%Creator: {creator}",
        "%%Pages: 1",
        "%%EndComments",
        "gsave",
        "0 0 0 setrgbcolor",
    ]
    for x, y, w, h in rects:
        # flip to bottom-left origin
        lines.append(f"{_fmt(x)} {_fmt(height - y - h)} {_fmt(w)} {_fmt(h)} rectfill")
    lines += ["grestore", "showpage", EPS_TRAILER]
    return ("\n".join(lines) + "\n").encode("ascii")


def _black_rects(root: ET.Element, width: float, height: float) -> List[Rect]:
    result: List[Rect] = []
    for element in root.iter():
        if _local_name(element.tag) != "rect":
            continue
        if _fill_of(element) not in BLACK_FILLS:
            continue
        w = _parse_length(element.get("width"), width)
        h = _parse_length(element.get("height"), height)
        if not w or not h:
            continue
        x = _parse_length(element.get("x"), width) or 0.0
        y = _parse_length(element.get("y"), height) or 0.0
        result.append((x, y, w, h))
    return result


def _fill_of(element: ET.Element) -> Optional[str]:
    """Fill from the ``style`` declaration, else the ``fill`` attribute."""
    style = element.get("style")
    if style:
        for declaration in style.split(";"):
            name, sep, value = declaration.partition(":")
            if sep and name.strip() == "fill":
                return value.strip()
    fill = element.get("fill")
    return fill.strip() if fill is not None else None


def _parse_length(value: Optional[str], reference: Optional[float]) -> Optional[float]:
    """Length in points; percentages need a reference length."""
    if value is None:
        return None
    match = _LENGTH_RE.match(value)
    if match is None:
        raise SvgConversionError(f"Unsupported SVG length: {value!r}")
    number, unit = float(match.group(1)), match.group(2)
    if unit == "%":
        if reference is None:
            raise SvgConversionError(f"Relative length {value!r} without reference")
        return reference * number / 100.0
    factor = _UNIT_TO_PT.get(unit)
    if factor is None:
        raise SvgConversionError(f"Unsupported SVG unit: {unit!r}")
    return number * factor


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


def _fmt(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


__all__ = ["EPS_HEADER", "EPS_TRAILER", "BLACK_FILLS", "SvgConversionError", "svg_to_eps"]
