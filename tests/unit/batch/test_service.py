"""
Tests for barcode_batch.batch.service
"""

import asyncio
import base64
import json
import math
import time
import zipfile
from io import BytesIO
from pathlib import Path
from typing import Any, Dict
from unittest.mock import patch

import pytest

from barcode_batch.batch.service import (
    EPS_PREVIEW_PLACEHOLDER,
    BarcodeBatchService,
    BatchRequest,
    _coerce_dimension,
)
from barcode_batch.exceptions import (
    INVALID_DATA_REASON,
    AssemblyError,
    BatchExhaustionError,
    CodeValidationError,
    InputError,
)
from barcode_batch.model.enums import OutputFormat

from conftest import PNG_MAGIC, FakeEngine

ITF = "12345678901234"
EAN = "4901234567894"


@pytest.fixture
def service(config: Dict[str, Any]) -> BarcodeBatchService:
    return BarcodeBatchService(config=config)


def _work_dir_entries(config: Dict[str, Any]) -> list:
    work_dir = Path(config["work_dir"])
    return list(work_dir.iterdir()) if work_dir.exists() else []


def _decode_data_uri(uri: str, mime_type: str) -> bytes:
    prefix = f"data:{mime_type};base64,"
    assert uri.startswith(prefix)
    return base64.b64decode(uri[len(prefix):])


class TestCoerceDimension:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, 32),
            ("", 32),
            ("abc", 32),
            (0, 32),
            (-5, 32),
            (True, 32),
            (math.nan, 32),
            ("inf", 32),
            ("40", 40),
            (40.0, 40),
            (2.5, 2.5),
            ("7.5", 7.5),
        ],
    )
    def test_falls_back_to_default(self, value: Any, expected: float) -> None:
        assert _coerce_dimension(value, 32) == expected

    def test_integral_values_become_int(self) -> None:
        assert isinstance(_coerce_dimension("40", 32), int)


class TestBatchRequest:
    def test_defaults_from_config(self, config: Dict[str, Any]) -> None:
        request = BatchRequest.from_payload({"barcodeNumbers": [EAN]}, config)
        assert request.barcode_numbers == (EAN,)
        assert request.options.height_mm == 32
        assert request.options.width_mm == 2
        assert request.options.file_format is OutputFormat.PNG
        assert request.options.filename_prefix == ""

    def test_config_defaults_can_change(self, config: Dict[str, Any]) -> None:
        config.update(default_file_format="svg", default_filename_prefix="X_", default_height_mm=50)
        request = BatchRequest.from_payload({"barcodeNumbers": [EAN]}, config)
        assert request.options.file_format is OutputFormat.SVG
        assert request.options.filename_prefix == "X_"
        assert request.options.height_mm == 50

    def test_payload_options(self, config: Dict[str, Any]) -> None:
        request = BatchRequest.from_payload(
            {
                "barcodeNumbers": [EAN],
                "heightMM": "45",
                "widthMM": 3,
                "fileFormat": "EPS",
                "filenamePrefix": "SKU_",
            },
            config,
        )
        assert request.options.to_dict() == {
            "heightMM": 45,
            "widthMM": 3,
            "fileFormat": "eps",
            "filenamePrefix": "SKU_",
        }

    @pytest.mark.parametrize(
        "payload",
        [{}, {"barcodeNumbers": []}, {"barcodeNumbers": EAN}, {"barcodeNumbers": None}],
    )
    def test_missing_codes(self, payload: Dict[str, Any]) -> None:
        with pytest.raises(InputError, match="No barcode numbers were provided."):
            BatchRequest.from_payload(payload)

    def test_non_mapping_payload(self) -> None:
        with pytest.raises(InputError):
            BatchRequest.from_payload([EAN])  # type: ignore[arg-type]

    def test_unknown_format(self) -> None:
        with pytest.raises(InputError, match="Unsupported file format"):
            BatchRequest.from_payload({"barcodeNumbers": [EAN], "fileFormat": "pdf"})

    @pytest.mark.parametrize("prefix", ["../", "a/b", "a\\b", "..", "."])
    def test_unsafe_prefix(self, prefix: str) -> None:
        with pytest.raises(InputError, match="path separators"):
            BatchRequest.from_payload({"barcodeNumbers": [EAN], "filenamePrefix": prefix})

    @pytest.mark.parametrize("prefix", [0, False, "", None])
    def test_falsy_prefix_means_none(self, config: Dict[str, Any], prefix: Any) -> None:
        request = BatchRequest.from_payload(
            {"barcodeNumbers": [EAN], "filenamePrefix": prefix}, config
        )
        assert request.options.filename_prefix == ""

    def test_non_string_prefix_is_stringified(self) -> None:
        request = BatchRequest.from_payload({"barcodeNumbers": [EAN], "filenamePrefix": 7})
        assert request.options.filename_for(EAN) == f"7{EAN}.png"

    @pytest.mark.parametrize("value", [0, -3, "abc", None])
    def test_unusable_config_dimension_uses_builtin_default(
        self, config: Dict[str, Any], value: Any
    ) -> None:
        config["default_height_mm"] = value
        config["default_width_mm"] = value
        request = BatchRequest.from_payload({"barcodeNumbers": [EAN]}, config)
        assert request.options.height_mm == 32
        assert request.options.width_mm == 2


class TestServiceConfig:
    def test_string_compression_level(self, config: Dict[str, Any]) -> None:
        config["compression_level"] = "9"
        service = BarcodeBatchService(engine=FakeEngine(), config=config)  # type: ignore[arg-type]
        assert service.assembler.compression_level == 9


class TestGenerateBatch:
    def test_assembly_runs_off_the_event_loop(self, config: Dict[str, Any]) -> None:
        service = BarcodeBatchService(engine=FakeEngine(), config=config)  # type: ignore[arg-type]
        ticks = [0]
        observed: Dict[str, int] = {}
        real_assemble = service.assembler.assemble

        def slow_assemble(*args: Any, **kwargs: Any) -> Any:
            observed["before"] = ticks[0]
            time.sleep(0.3)
            observed["after"] = ticks[0]
            return real_assemble(*args, **kwargs)

        async def ticker(stop: asyncio.Event) -> None:
            while not stop.is_set():
                ticks[0] += 1
                await asyncio.sleep(0.01)

        async def scenario() -> Any:
            stop = asyncio.Event()
            task = asyncio.create_task(ticker(stop))
            try:
                return await service.generate_batch_async({"barcodeNumbers": [EAN, ITF]})
            finally:
                stop.set()
                await task

        with patch.object(service.assembler, "assemble", side_effect=slow_assemble):
            archive = asyncio.run(scenario())

        assert archive.report.success_count == 2
        assert observed["after"] - observed["before"] >= 5

    def test_svg_archive(self, service: BarcodeBatchService, config: Dict[str, Any]) -> None:
        archive = service.generate_batch(
            {"barcodeNumbers": [ITF, "123", EAN], "fileFormat": "svg", "filenamePrefix": "SKU_"}
        )

        assert archive.filename == "barcodes.zip"
        assert archive.media_type == "application/zip"
        assert archive.content_disposition == 'attachment; filename="barcodes.zip"'

        with zipfile.ZipFile(BytesIO(archive.content)) as zf:
            names = set(zf.namelist())
            report = json.loads(zf.read("report.json"))

        assert names == {f"SKU_{ITF}.svg", f"SKU_{EAN}.svg", "report.json"}
        assert report["successCount"] == 2
        assert report["errorCount"] == 1
        assert report["errors"] == [{"code": "123", "reason": INVALID_DATA_REASON}]
        assert report["options"]["filenamePrefix"] == "SKU_"
        assert archive.report.success_count == 2

    def test_png_archive(self, service: BarcodeBatchService) -> None:
        archive = service.generate_batch({"barcodeNumbers": [EAN, EAN]})
        with zipfile.ZipFile(BytesIO(archive.content)) as zf:
            assert sorted(zf.namelist()) == sorted(
                [f"{EAN}.png", f"{EAN}_2.png", "report.json"]
            )
            assert zf.read(f"{EAN}.png").startswith(PNG_MAGIC)

    def test_workspace_removed_after_success(
        self, service: BarcodeBatchService, config: Dict[str, Any]
    ) -> None:
        service.generate_batch({"barcodeNumbers": [EAN], "fileFormat": "eps"})
        assert _work_dir_entries(config) == []

    def test_all_invalid(self, service: BarcodeBatchService, config: Dict[str, Any]) -> None:
        with pytest.raises(BatchExhaustionError) as exc_info:
            service.generate_batch({"barcodeNumbers": ["abc"]})

        assert service.error_body(exc_info.value) == {
            "error": "No barcodes were generated. Check the data or options.",
            "details": [{"code": "abc", "reason": INVALID_DATA_REASON}],
        }
        assert _work_dir_entries(config) == []

    def test_only_blank_codes(self, service: BarcodeBatchService) -> None:
        with pytest.raises(InputError, match="Please enter valid barcode numbers."):
            service.generate_batch({"barcodeNumbers": ["", "   "]})

    def test_custom_archive_name(self, config: Dict[str, Any]) -> None:
        config["archive_name"] = "labels.zip"
        service = BarcodeBatchService(engine=FakeEngine(), config=config)  # type: ignore[arg-type]
        archive = service.generate_batch({"barcodeNumbers": [EAN]})
        assert archive.filename == "labels.zip"

    def test_assembly_failure(self, config: Dict[str, Any], tmp_path: Path) -> None:
        class LyingEngine(FakeEngine):
            async def render_async(self, request):
                return tmp_path / "never-written.png"

        service = BarcodeBatchService(engine=LyingEngine(), config=config)  # type: ignore[arg-type]
        with pytest.raises(AssemblyError):
            service.generate_batch({"barcodeNumbers": [EAN]})
        assert _work_dir_entries(config) == []


class TestPreview:
    def test_svg_preview(self, service: BarcodeBatchService) -> None:
        result = service.preview({"code": " 4901 234567894 ", "fileFormat": "svg"})

        assert result["success"] is True
        assert result["code"] == EAN
        assert result["type"] == "EAN13"
        assert result["format"] == "svg"
        assert b"<svg" in _decode_data_uri(result["image"], "image/svg+xml")

    def test_png_preview(self, service: BarcodeBatchService) -> None:
        result = service.preview({"code": ITF})
        assert result["type"] == "ITF14"
        assert _decode_data_uri(result["image"], "image/png").startswith(PNG_MAGIC)

    def test_eps_preview_is_placeholder(self, service: BarcodeBatchService) -> None:
        result = service.preview({"code": EAN, "fileFormat": "eps"})
        assert result["format"] == "eps"
        text = _decode_data_uri(result["image"], "text/plain").decode("utf-8")
        assert text == EPS_PREVIEW_PLACEHOLDER

    def test_preview_file_removed(
        self, service: BarcodeBatchService, config: Dict[str, Any]
    ) -> None:
        service.preview({"code": EAN, "fileFormat": "svg"})
        assert _work_dir_entries(config) == []

    @pytest.mark.parametrize("payload", [{}, {"code": ""}, {"code": "   "}, {"code": None}])
    def test_missing_code(self, service: BarcodeBatchService, payload: Dict[str, Any]) -> None:
        with pytest.raises(InputError, match="Please enter a barcode number."):
            service.preview(payload)

    @pytest.mark.parametrize("code", ["123", "abcdefghijklm", "123456789012345"])
    def test_invalid_code(self, service: BarcodeBatchService, code: str) -> None:
        with pytest.raises(CodeValidationError) as exc_info:
            service.preview({"code": code})
        assert exc_info.value.code == code
        assert "14 digits: ITF-14" in service.error_body(exc_info.value)["error"]

    def test_unknown_format(self, service: BarcodeBatchService) -> None:
        with pytest.raises(InputError):
            service.preview({"code": EAN, "fileFormat": "gif"})
