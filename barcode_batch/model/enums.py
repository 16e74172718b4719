"""
model/enums.py

(Кратко RU: Перечисления символогий и форматов вывода для пакетной генерации.)

EN: Domain enums for batch barcode generation. Only symbologies with a fixed
length rule are listed; each one has an entry in ``model.symbology``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Final, Optional

_logger: Final[logging.Logger] = logging.getLogger(__name__)


class BarcodeSymbology(str, Enum):
    ITF14 = "itf14"
    EAN13 = "ean13"

    @property
    def label(self) -> str:
        """Upper-case tag used in preview responses ("ITF14", "EAN13")."""
        return self.name


class OutputFormat(str, Enum):
    PNG = "png"
    SVG = "svg"
    EPS = "eps"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        return {
            OutputFormat.PNG: "image/png",
            OutputFormat.SVG: "image/svg+xml",
            OutputFormat.EPS: "application/postscript",
        }[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> "OutputFormat":
        """Case-insensitive lookup; ``None`` or blank means PNG.

        Raises:
            ValueError: for any other unknown value.
        """
        if value is None or not str(value).strip():
            return cls.PNG
        normalized = str(value).strip().lower().lstrip(".")
        try:
            return cls(normalized)
        except ValueError:
            _logger.debug("Unknown output format requested: %r", value)
            raise ValueError(
                f"Unsupported file format {value!r}; expected one of: "
                + ", ".join(f.value for f in cls)
            ) from None


__all__ = ["BarcodeSymbology", "OutputFormat"]
