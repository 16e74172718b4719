"""
Process-wide symbology table.

Each supported symbology maps to a frozen ``SymbologySpec`` holding:
- the Barcode Writer in Pure PostScript identifier (primary renderer),
- the python-barcode class name (vector renderer),
- the accepted-length rule,
- renderer options specific to the symbology.

The table is a read-only mapping built at import time and shared by every
concurrent render; nothing mutates it afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, FrozenSet, Mapping, Union

from barcode_batch.exceptions import UnsupportedSymbologyError
from barcode_batch.model.enums import BarcodeSymbology

LengthRule = Union[int, FrozenSet[int]]


@dataclass(frozen=True)
class SymbologySpec:
    symbology: BarcodeSymbology
    bcid: str
    vector_name: str
    length: LengthRule
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    vector_options: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def accepts_length(self, size: int) -> bool:
        if isinstance(self.length, int):
            return size == self.length
        return size in self.length

    @property
    def lengths(self) -> FrozenSet[int]:
        if isinstance(self.length, int):
            return frozenset({self.length})
        return self.length


_ITF14_BORDER = 8

SYMBOLOGY_TABLE: Mapping[BarcodeSymbology, SymbologySpec] = MappingProxyType(
    {
        BarcodeSymbology.ITF14: SymbologySpec(
            symbology=BarcodeSymbology.ITF14,
            bcid="interleaved2of5",
            vector_name="itf",
            length=14,
            options=MappingProxyType(
                {
                    "bordertop": _ITF14_BORDER,
                    "borderbottom": _ITF14_BORDER,
                    "borderleft": _ITF14_BORDER,
                    "borderright": _ITF14_BORDER,
                }
            ),
            vector_options=MappingProxyType({"quiet_zone": _ITF14_BORDER}),
        ),
        BarcodeSymbology.EAN13: SymbologySpec(
            symbology=BarcodeSymbology.EAN13,
            bcid="ean13",
            vector_name="ean13",
            length=frozenset({12, 13}),
        ),
    }
)


def get_symbology_spec(symbology: Any) -> SymbologySpec:
    """Look up a symbology; unknown keys are a contract violation.

    Raises:
        UnsupportedSymbologyError: if ``symbology`` has no table entry.
    """
    try:
        spec = SYMBOLOGY_TABLE.get(symbology)
    except TypeError:
        spec = None
    if spec is None:
        raise UnsupportedSymbologyError(f"Unsupported barcode symbology: {symbology!r}")
    return spec


__all__ = ["LengthRule", "SymbologySpec", "SYMBOLOGY_TABLE", "get_symbology_spec"]
