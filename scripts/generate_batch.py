#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Generate a barcode archive from the command line.

Usage:
    python generate_batch.py 12345678901234 4901234567894 -o barcodes.zip
    python generate_batch.py --input codes.txt --format svg --prefix SKU_
    python generate_batch.py --preview 4901234567894
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from barcode_batch import BarcodeBatchError, get_logger  # noqa: E402
from barcode_batch.app_context import get_app_context  # noqa: E402

logger = get_logger(__name__)


def print_success(text: str) -> None:
    """Print success message."""
    print(f"✅ {text}")


def print_error(text: str) -> None:
    """Print error message."""
    print(f"❌ {text}", file=sys.stderr)


def read_codes(args: argparse.Namespace) -> List[str]:
    """Codes from positional arguments and/or one-per-line input file."""
    codes = list(args.codes)
    if args.input:
        text = Path(args.input).read_text(encoding="utf-8")
        codes.extend(text.splitlines())
    return codes


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Batch ITF-14 / EAN-13 barcode generator")
    parser.add_argument("codes", nargs="*", help="barcode numbers")
    parser.add_argument("-i", "--input", help="text file with one code per line")
    parser.add_argument("-o", "--output", help="archive path (default: configured archive name)")
    parser.add_argument("--height", type=float, help="bar height in mm")
    parser.add_argument("--width", type=float, help="module width")
    parser.add_argument("--prefix", default=None, help="file name prefix")
    parser.add_argument("--format", choices=["png", "svg", "eps"], default=None)
    parser.add_argument("--preview", metavar="CODE", help="render one code and print the preview JSON")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    service = get_app_context().service

    try:
        if args.preview:
            result = service.preview(
                {
                    "code": args.preview,
                    "heightMM": args.height,
                    "widthMM": args.width,
                    "fileFormat": args.format,
                }
            )
            print(json.dumps(result, ensure_ascii=False))
            return 0

        archive = service.generate_batch(
            {
                "barcodeNumbers": read_codes(args),
                "heightMM": args.height,
                "widthMM": args.width,
                "filenamePrefix": args.prefix,
                "fileFormat": args.format,
            }
        )
    except BarcodeBatchError as e:
        logger.error("Generation failed: %s", e.message)
        print_error(json.dumps(service.error_body(e), ensure_ascii=False, indent=2))
        return 1

    output = Path(args.output or archive.filename)
    output.write_bytes(archive.content)
    print_success(
        f"{archive.report.success_count} barcodes written to {output} "
        f"({archive.report.error_count} skipped)"
    )
    for failure in archive.report.errors:
        print(f"   {failure.code}: {failure.reason}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
