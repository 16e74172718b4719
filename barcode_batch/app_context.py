from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Optional

from barcode_batch import load_config
from barcode_batch.barcodegen.barcode_generator import RenderEngine
from barcode_batch.batch.archive import ArchiveAssembler
from barcode_batch.batch.coordinator import BatchCoordinator
from barcode_batch.batch.service import BarcodeBatchService


class AppContext:
    """
    Dependency Injection context (singleton) for the barcode batch generator.
    Wires configuration, render executor, engine, coordinator, assembler and
    service once per process; shells fetch them from here.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        config_path: Optional[Path] = None,
    ) -> None:
        self.config: Dict[str, Any] = (
            dict(config) if config is not None else load_config(config_path)
        )

        # Dedicated render pool only when a size is configured
        max_workers = self.config.get("max_workers")
        self.executor: Optional[ThreadPoolExecutor] = (
            ThreadPoolExecutor(max_workers=int(max_workers), thread_name_prefix="barcode-render")
            if max_workers
            else None
        )

        self.engine = RenderEngine(executor=self.executor)
        self.coordinator = BatchCoordinator(self.engine, work_dir=self.config.get("work_dir"))
        self.assembler = ArchiveAssembler(
            report_name=self.config.get("report_name", "report.json"),
            compression_level=int(self.config.get("compression_level", 9)),
        )
        self.service = BarcodeBatchService(
            engine=self.engine,
            coordinator=self.coordinator,
            assembler=self.assembler,
            config=self.config,
        )

        # Extendable services dictionary (e.g. a web shell)
        self.services: Dict[str, Any] = {}

    def register_service(self, name: str, service: Any) -> None:
        """Register a service by name (extendable)."""
        self.services[name] = service

    def get_service(self, name: str) -> Any:
        """Retrieve a registered service by name."""
        return self.services[name]

    def shutdown(self) -> None:
        """Stop the render pool, waiting for running renders."""
        if self.executor is not None:
            self.executor.shutdown(wait=True)
            self.executor = None


_ctx: Optional[AppContext] = None


def get_app_context(
    config: Optional[Dict[str, Any]] = None,
    config_path: Optional[Path] = None,
) -> AppContext:
    """
    Returns global app context (singleton!). Arguments only matter on the first call.
    """
    global _ctx
    if _ctx is None:
        _ctx = AppContext(config=config, config_path=config_path)
    return _ctx


def reset_app_context() -> None:
    """Drop the singleton (tests, configuration reload)."""
    global _ctx
    if _ctx is not None:
        _ctx.shutdown()
    _ctx = None
