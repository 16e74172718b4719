"""Domain model: symbologies, output formats, render requests and batch outcomes."""

from barcode_batch.model.batch import (
    BatchOptions,
    BatchReport,
    BatchResult,
    RenderFailure,
    RenderOutcome,
    RenderRequest,
    RenderSuccess,
)
from barcode_batch.model.enums import BarcodeSymbology, OutputFormat
from barcode_batch.model.symbology import (
    SYMBOLOGY_TABLE,
    SymbologySpec,
    get_symbology_spec,
)

__all__ = [
    "BarcodeSymbology",
    "OutputFormat",
    "SymbologySpec",
    "SYMBOLOGY_TABLE",
    "get_symbology_spec",
    "BatchOptions",
    "RenderRequest",
    "RenderSuccess",
    "RenderFailure",
    "RenderOutcome",
    "BatchResult",
    "BatchReport",
]
