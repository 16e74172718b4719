"""
Tests for scripts/generate_batch.py (command-line shell).
"""

import importlib.util
import json
import zipfile
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Iterator

import pytest

from barcode_batch.app_context import get_app_context, reset_app_context

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "generate_batch.py"

EAN = "4901234567894"


@pytest.fixture
def script(config: Dict[str, Any]) -> Iterator[ModuleType]:
    reset_app_context()
    get_app_context(config=config)
    spec = importlib.util.spec_from_file_location("generate_batch", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    yield module
    reset_app_context()


def test_writes_archive(script: ModuleType, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    output = tmp_path / "out.zip"
    code = script.main([EAN, "123", "--format", "svg", "-o", str(output)])

    assert code == 0
    with zipfile.ZipFile(output) as zf:
        assert set(zf.namelist()) == {f"{EAN}.svg", "report.json"}
    captured = capsys.readouterr().out
    assert "1 barcodes written" in captured
    assert "123:" in captured


def test_reads_input_file(script: ModuleType, tmp_path: Path) -> None:
    codes = tmp_path / "codes.txt"
    codes.write_text(f"{EAN}\n\n12345678901234\n", encoding="utf-8")
    output = tmp_path / "out.zip"

    assert script.main(["-i", str(codes), "--format", "eps", "-o", str(output)]) == 0
    with zipfile.ZipFile(output) as zf:
        assert len(zf.namelist()) == 3


def test_exhausted_batch_returns_error(
    script: ModuleType, tmp_path: Path, capsys: pytest.CaptureFixture
) -> None:
    assert script.main(["abc", "-o", str(tmp_path / "out.zip")]) == 1
    err = capsys.readouterr().err
    body = json.loads(err[err.index("❌") + 1 :])
    assert body["details"][0]["code"] == "abc"
    assert not (tmp_path / "out.zip").exists()


def test_preview(script: ModuleType, capsys: pytest.CaptureFixture) -> None:
    assert script.main(["--preview", EAN, "--format", "svg"]) == 0
    result = json.loads(capsys.readouterr().out)
    assert result["type"] == "EAN13"
    assert result["image"].startswith("data:image/svg+xml;base64,")
