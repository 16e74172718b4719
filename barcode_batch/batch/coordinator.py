"""
coordinator.py

Concurrent fan-out of one batch over classification, validation and rendering.

Features:
  - one coroutine per code, joined with ``asyncio.gather``
  - rendering runs in the engine's executor; the event loop only schedules
  - each item converts its own errors into a RenderFailure, siblings are
    never cancelled
  - outcomes land in two append-only lists in completion order
  - file names are assigned up front in input order, repeated codes get a
    ``_2``, ``_3``... suffix
  - batch workspace as a context manager, removed on every exit path; the
    async variant creates and removes it in the executor
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
import time
from collections import Counter
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import (
    Any,
    AsyncIterator,
    Iterator,
    List,
    NamedTuple,
    Optional,
    Sequence,
    Union,
)

from barcode_batch.barcodegen.barcode_generator import RenderEngine
from barcode_batch.barcodegen.classifier import (
    classify,
    clean_code,
    normalize_codes,
    validate,
)
from barcode_batch.exceptions import (
    INVALID_DATA_REASON,
    BarcodeBatchError,
    BatchExhaustionError,
)
from barcode_batch.model.batch import (
    BatchOptions,
    BatchResult,
    RenderFailure,
    RenderOutcome,
    RenderRequest,
    RenderSuccess,
)

logger = logging.getLogger(__name__)


class BatchItem(NamedTuple):
    raw: str
    code: str
    filename: str


class BatchCoordinator:
    """
    Runs one batch: raw codes in, successes and failures out.

    Args:
        engine: Renderer for validated codes; its executor also runs the
            workspace file-system work of ``open_workspace``.
        work_dir: Parent directory for batch workspaces (None: system temp).
    """

    def __init__(
        self,
        engine: Optional[RenderEngine] = None,
        work_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        self.engine = engine or RenderEngine()
        self.work_dir = Path(work_dir) if work_dir else None

    # ------------------------------------------------------------------ workspace

    def create_workspace(self) -> Path:
        """Create a batch-unique output directory."""
        if self.work_dir is not None:
            self.work_dir.mkdir(parents=True, exist_ok=True)
        path = Path(
            tempfile.mkdtemp(
                prefix=f"barcodes_{int(time.time() * 1000)}_", dir=self.work_dir
            )
        )
        logger.debug("Batch workspace created: %s", path)
        return path

    @staticmethod
    def remove_workspace(path: Path) -> None:
        try:
            shutil.rmtree(path)
            logger.debug("Batch workspace removed: %s", path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove batch workspace %s: %s", path, e)

    @contextmanager
    def workspace(self) -> Iterator[Path]:
        """Blocking workspace scope for callers without an event loop."""
        path = self.create_workspace()
        try:
            yield path
        finally:
            self.remove_workspace(path)

    @asynccontextmanager
    async def open_workspace(self) -> AsyncIterator[Path]:
        """Workspace scope whose file-system work runs in the executor."""
        loop = asyncio.get_running_loop()
        path = await loop.run_in_executor(self.engine.executor, self.create_workspace)
        try:
            yield path
        finally:
            await loop.run_in_executor(
                self.engine.executor, self.remove_workspace, path
            )

    # ------------------------------------------------------------------ batch

    @staticmethod
    def plan(codes: Sequence[str], options: BatchOptions) -> List[BatchItem]:
        """Pair each trimmed code with its cleaned form and file name."""
        seen: Counter[str] = Counter()
        items = []
        for raw in codes:
            code = clean_code(raw)
            seen[code] += 1
            items.append(BatchItem(raw, code, options.filename_for(code, seen[code])))
        return items

    async def run_batch(
        self, raw_codes: Any, options: BatchOptions, workspace: Path
    ) -> BatchResult:
        """
        Process every non-empty code concurrently.

        Returns:
            BatchResult with at least one success.

        Raises:
            InputError: empty list or only empty codes.
            BatchExhaustionError: no code produced a file.
        """
        codes = normalize_codes(raw_codes)
        items = self.plan(codes, options)
        result = BatchResult(workspace=workspace)

        async def collect(item: BatchItem) -> None:
            outcome = await self._process_item(item, options, workspace)
            if isinstance(outcome, RenderSuccess):
                result.successes.append(outcome)
            else:
                result.failures.append(outcome)

        started = time.monotonic()
        await asyncio.gather(*(collect(item) for item in items))
        logger.info(
            "Batch of %d finished in %.3fs: %d succeeded, %d failed (%s)",
            result.total,
            time.monotonic() - started,
            len(result.successes),
            len(result.failures),
            options.file_format.name,
        )

        if not result.successes:
            raise BatchExhaustionError(result.failures)
        return result

    async def _process_item(
        self, item: BatchItem, options: BatchOptions, workspace: Path
    ) -> RenderOutcome:
        symbology = classify(item.code)
        if symbology is None or not validate(item.code, symbology):
            logger.warning("Skipping invalid code %r", item.raw)
            return RenderFailure(item.raw, INVALID_DATA_REASON)

        request = RenderRequest(
            code=item.code,
            symbology=symbology,
            destination=workspace / item.filename,
            output_format=options.file_format,
            height_mm=options.height_mm,
            width_mm=options.width_mm,
        )
        try:
            path = await self.engine.render_async(request)
        except BarcodeBatchError as e:
            logger.warning("Render failed for %r: %s", item.raw, e.message)
            return RenderFailure(item.raw, e.message)
        except Exception as e:
            logger.exception("Unexpected render error for %r", item.raw)
            return RenderFailure(item.raw, f"Barcode generation failed: {e}")

        return RenderSuccess(item.code, path.name, path)


__all__ = ["BatchCoordinator", "BatchItem"]
