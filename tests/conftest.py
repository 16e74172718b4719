import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import pytest

from barcode_batch import load_config
from barcode_batch.exceptions import RenderError
from barcode_batch.model.batch import RenderRequest

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class FakeEngine:
    """Stand-in for RenderEngine: writes a tiny file, or fails for chosen codes."""

    def __init__(
        self,
        failing: Iterable[str] = (),
        delays: Optional[Dict[str, float]] = None,
        error_factory: Optional[Callable[[RenderRequest], Exception]] = None,
    ) -> None:
        self.failing = set(failing)
        self.delays = delays or {}
        self.error_factory = error_factory
        self.requests: List[RenderRequest] = []
        self.executor = None

    async def render_async(self, request: RenderRequest) -> Path:
        self.requests.append(request)
        await asyncio.sleep(self.delays.get(request.code, 0))
        if request.code in self.failing:
            if self.error_factory is not None:
                raise self.error_factory(request)
            raise RenderError(request.output_format, f"cannot render {request.code}")
        path = request.final_path
        path.write_bytes(f"barcode:{request.code}".encode("ascii"))
        return path


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def config(tmp_path: Path) -> Dict[str, Any]:
    """Default configuration with workspaces under a temp directory."""
    cfg = load_config(tmp_path / "no-such-config.json")
    cfg["work_dir"] = str(tmp_path / "work")
    return cfg


@pytest.fixture
def sample_svg() -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<svg xmlns="http://www.w3.org/2000/svg" width="100" height="50">'
        '<g id="barcode_group">'
        '<rect width="100%" height="100%" style="fill:white"/>'
        '<rect x="10" y="5" width="2" height="40" style="fill:#000000;"/>'
        '<rect x="14" y="5" width="1" height="40" fill="black"/>'
        '<rect x="20" y="5" width="3" height="40" fill="#000"/>'
        '<rect x="30" y="5" width="3" height="40" fill="#ff0000"/>'
        "<text x=\"50\" y=\"48\">123</text>"
        "</g></svg>"
    )
