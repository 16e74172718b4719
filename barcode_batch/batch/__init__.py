"""Batch pipeline: concurrent coordinator, archive assembly and service contracts."""

from barcode_batch.batch.archive import ArchiveAssembler, AssembledArchive
from barcode_batch.batch.coordinator import BatchCoordinator, BatchItem
from barcode_batch.batch.service import BarcodeBatchService, BatchArchive, BatchRequest

__all__ = [
    "ArchiveAssembler",
    "AssembledArchive",
    "BatchCoordinator",
    "BatchItem",
    "BarcodeBatchService",
    "BatchArchive",
    "BatchRequest",
]
