"""
Code classification and validation.

- ``clean_code``: strips all whitespace from a raw input string.
- ``classify``: digit-only code -> symbology by length, or None.
- ``validate``: re-checks a code against a given symbology's rules.
- ``normalize_codes``: turns a raw request list into the non-empty codes of a batch.

Digits means ASCII ``0-9`` only; ``str.isdigit`` is not used because it
accepts superscripts and other Unicode digits.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, List, Optional

from barcode_batch.exceptions import InputError
from barcode_batch.model.enums import BarcodeSymbology
from barcode_batch.model.symbology import SYMBOLOGY_TABLE

logger = logging.getLogger(__name__)

_DIGITS_RE = re.compile(r"[0-9]+")
_WHITESPACE_RE = re.compile(r"\s+")


def is_ascii_digits(code: str) -> bool:
    return isinstance(code, str) and _DIGITS_RE.fullmatch(code) is not None


def clean_code(raw: str) -> str:
    """Remove surrounding and interior whitespace."""
    return _WHITESPACE_RE.sub("", raw)


def classify(code: str) -> Optional[BarcodeSymbology]:
    """
    Detect the symbology of a cleaned code.

    Returns:
        ITF14 for 14 digits, EAN13 for 12 or 13 digits, otherwise None.
        Never raises. Lengths come from ``SYMBOLOGY_TABLE``, whose rules
        do not overlap.
    """
    if not is_ascii_digits(code):
        return None
    size = len(code)
    for symbology, spec in SYMBOLOGY_TABLE.items():
        if size in spec.lengths:
            return symbology
    return None


def validate(code: str, symbology: Any) -> bool:
    """
    Check ``code`` against the length rule of ``symbology``.

    The digit rule is checked again here; the symbology argument is not
    trusted to come from ``classify``. Unknown symbologies yield False.
    Never raises.
    """
    if not is_ascii_digits(code):
        return False
    try:
        spec = SYMBOLOGY_TABLE.get(symbology)
    except TypeError:
        return False
    if spec is None:
        return False
    return spec.accepts_length(len(code))


def normalize_codes(raw_codes: Any) -> List[str]:
    """
    Prepare the raw code list of a batch request.

    Each entry is converted to ``str`` and trimmed; entries empty after
    trimming (and ``None``) are dropped. Interior whitespace is kept here;
    the per-item step cleans it, so failures report the code as entered.

    Raises:
        InputError: if ``raw_codes`` is not a non-empty list, or nothing
            remains after trimming.
    """
    if not isinstance(raw_codes, (list, tuple)) or len(raw_codes) == 0:
        raise InputError("No barcode numbers were provided.")

    codes = _trimmed(raw_codes)
    if not codes:
        raise InputError("Please enter valid barcode numbers.")

    dropped = len(raw_codes) - len(codes)
    if dropped:
        logger.debug("Dropped %d empty entries from the batch", dropped)
    return codes


def _trimmed(raw_codes: Iterable[Any]) -> List[str]:
    result = []
    for raw in raw_codes:
        if raw is None:
            continue
        text = str(raw).strip()
        if text:
            result.append(text)
    return result


__all__ = [
    "is_ascii_digits",
    "clean_code",
    "classify",
    "validate",
    "normalize_codes",
]
