"""
Barcode Batch Generator
=======================

Batch generation of ITF-14 / EAN-13 barcode images (PNG, SVG, EPS) packaged
into a ZIP archive with a machine-readable generation report.

This package provides:
    - Automatic symbology detection by code length (14: ITF-14, 12-13: EAN-13)
    - Rendering through Barcode Writer in Pure PostScript (treepoem) with a
      python-barcode fallback for raster output
    - Vector SVG output and a deterministic SVG -> EPS conversion
    - Concurrent batch processing with per-item failure isolation
    - Archive assembly with ``report.json``
    - Single-code preview as a data URI

Basic usage:
    >>> from barcode_batch import BarcodeBatchService, get_logger
    >>>
    >>> logger = get_logger(__name__)
    >>> service = BarcodeBatchService()
    >>> archive = service.generate_batch(
    ...     {"barcodeNumbers": ["12345678901234", "4901234567894"]}
    ... )
    >>> logger.info("Archive: %d bytes", len(archive.content))

Configuration management:
    >>> import os
    >>> os.environ["BARCODE_BATCH_LOG_LEVEL"] = "DEBUG"
    >>>
    >>> from barcode_batch import load_config
    >>> config = load_config()
    >>> config["default_height_mm"]
    32

Version: 0.1.0
License: MIT
Python: 3.11+
"""

import json
import logging
import logging.handlers
import math
import os
import shutil
import sys
from pathlib import Path
from typing import Any, Dict, Optional

# =============================================================================
# VERSION METADATA
# =============================================================================

__version__ = "0.1.0"
__author__ = "Barcode Batch Development Team"
__description__ = "Batch ITF-14/EAN-13 barcode generator with archive and report output"
__license__ = "MIT"
__python_requires__ = ">=3.11"

VERSION_MAJOR = 0
VERSION_MINOR = 1
VERSION_PATCH = 0

# =============================================================================
# PYTHON VERSION CHECK
# =============================================================================

if sys.version_info < (3, 11):
    raise RuntimeError(
        f"Barcode Batch Generator requires Python 3.11 or newer. "
        f"Current version: {sys.version_info.major}."
        f"{sys.version_info.minor}.{sys.version_info.micro}"
    )

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

LOG_LEVEL_ENV = "BARCODE_BATCH_LOG_LEVEL"
CONFIG_PATH_ENV = "BARCODE_BATCH_CONFIG"


def _setup_logging() -> None:
    """
    Initialize package-wide logging.

    Configures the ``barcode_batch`` logger with:
    - a console handler (stderr) for WARNING and above
    - a rotating file handler (``logs/barcode_batch.log``) for all levels
    - ``[timestamp] LEVEL [module.function:line] message`` format

    The level is read from the ``BARCODE_BATCH_LOG_LEVEL`` environment
    variable (DEBUG, INFO, WARNING, ERROR, CRITICAL; default INFO).

    Idempotent: repeated calls leave the existing handlers in place.
    """
    log_level_str = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()

    log_level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    log_level = log_level_map.get(log_level_str, logging.INFO)

    root_logger = logging.getLogger("barcode_batch")
    if root_logger.handlers:
        return

    root_logger.setLevel(log_level)

    formatter = logging.Formatter(
        fmt=("[%(asctime)s] %(levelname)-8s " "[%(name)s.%(funcName)s:%(lineno)d] %(message)s"),
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    try:
        log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_dir / "barcode_batch.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except (OSError, PermissionError) as e:
        root_logger.warning(
            "File logging could not be initialized: %s. Console only.", e
        )

    root_logger.propagate = False


def get_logger(module_name: str) -> logging.Logger:
    """
    Return a logger inside the ``barcode_batch`` namespace.

    Modules of this package may simply use ``logging.getLogger(__name__)``;
    this helper is for scripts and plugins whose ``__name__`` lives outside
    the package.

    Args:
        module_name: Usually ``__name__`` of the caller.

    Returns:
        Logger named ``barcode_batch.<module_name>`` (``__main__`` maps to
        ``barcode_batch.main``).

    Example:
        >>> logger = get_logger("scripts.generate_batch")
        >>> logger.name
        'barcode_batch.scripts.generate_batch'
    """
    if not module_name.startswith("barcode_batch"):
        if module_name == "__main__":
            full_name = "barcode_batch.main"
        else:
            clean_name = module_name.lstrip(".")
            full_name = f"barcode_batch.{clean_name}"
    else:
        full_name = module_name

    return logging.getLogger(full_name)


# =============================================================================
# CONFIGURATION MANAGEMENT
# =============================================================================

_DEFAULT_CONFIG: Dict[str, Any] = {
    "default_height_mm": 32,
    "default_width_mm": 2,
    "default_file_format": "png",
    "default_filename_prefix": "",
    "archive_name": "barcodes.zip",
    "report_name": "report.json",
    "compression_level": 9,
    "work_dir": None,
    "max_workers": None,
    "log_level": "INFO",
}


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from a JSON file merged over the defaults.

    Keys:
        - default_height_mm: float - bar height used when a request omits it
        - default_width_mm: float - module width used when a request omits it
        - default_file_format: str - "png", "svg" or "eps"
        - default_filename_prefix: str - prefix for generated file names
        - archive_name: str - download name of the ZIP archive
        - report_name: str - name of the JSON report entry
        - compression_level: int - zlib level for archive entries (0-9)
        - work_dir: str | None - parent of batch workspaces (None: system temp)
        - max_workers: int | None - render executor size (None: default)
        - log_level: str - informational; the effective level comes from
          the BARCODE_BATCH_LOG_LEVEL environment variable

    Args:
        config_path: Optional path to the JSON file. When None the path is
            taken from BARCODE_BATCH_CONFIG, then ``config.json`` in the
            current directory.

    Returns:
        Dictionary that always contains every default key.
    """
    logger = get_logger(__name__)

    if config_path is None:
        config_path = Path(os.environ.get(CONFIG_PATH_ENV, "config.json"))

    config = _DEFAULT_CONFIG.copy()

    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                user_config = json.load(f)

            if not isinstance(user_config, dict):
                raise ValueError(
                    f"Configuration file must contain a JSON object, "
                    f"got {type(user_config).__name__}"
                )

            config.update(user_config)
            config = _validate_config(config)

            logger.info("Configuration loaded from %s", config_path)
            logger.debug("Configuration: %s", config)

        except json.JSONDecodeError as e:
            logger.warning(
                "Could not parse %s: invalid JSON at line %d, column %d. "
                "Using default configuration.",
                config_path,
                e.lineno,
                e.colno,
            )
        except (OSError, PermissionError) as e:
            logger.warning(
                "Could not read %s: %s. Using default configuration.", config_path, e
            )
        except ValueError as e:
            logger.warning(
                "Invalid configuration format: %s. Using default configuration.", e
            )
    else:
        logger.info(
            "Configuration file %s not found. Using default configuration.",
            config_path,
        )

    return config


def _validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replace unusable values with their defaults (logged as warnings).

    Dimensions must be positive finite numbers, ``compression_level`` an
    integer 0-9 (numeric strings accepted), ``default_file_format`` one of
    png/svg/eps.
    """
    logger = get_logger(__name__)

    def reject(key: str) -> None:
        logger.warning(
            "Invalid configuration value %s=%r. Using default %r.",
            key,
            config[key],
            _DEFAULT_CONFIG[key],
        )
        config[key] = _DEFAULT_CONFIG[key]

    for key in ("default_height_mm", "default_width_mm"):
        value = config.get(key)
        try:
            number = float(value)
        except (TypeError, ValueError):
            reject(key)
            continue
        if isinstance(value, bool) or not math.isfinite(number) or number <= 0:
            reject(key)
        else:
            config[key] = int(number) if number.is_integer() else number

    try:
        level = int(config.get("compression_level"))
    except (TypeError, ValueError):
        reject("compression_level")
    else:
        if 0 <= level <= 9:
            config["compression_level"] = level
        else:
            reject("compression_level")

    try:
        OutputFormat.parse(config.get("default_file_format"))
    except ValueError:
        reject("default_file_format")

    return config


def check_dependencies() -> Dict[str, bool]:
    """
    Report which rendering dependencies are usable.

    Checked:
        - pillow: raster output and fallback canvas
        - python-barcode: vector output and fallback renderer
        - treepoem: primary renderer (Barcode Writer in Pure PostScript)
        - ghostscript: executable required by treepoem at render time

    Without Ghostscript every PNG is produced by the fallback renderer.

    Returns:
        Mapping of dependency name to availability.
    """
    dependencies: Dict[str, bool] = {}

    try:
        import PIL  # noqa: F401

        dependencies["pillow"] = True
    except ImportError:
        dependencies["pillow"] = False

    try:
        import barcode  # noqa: F401

        dependencies["python-barcode"] = True
    except ImportError:
        dependencies["python-barcode"] = False

    try:
        import treepoem  # noqa: F401

        dependencies["treepoem"] = True
    except ImportError:
        dependencies["treepoem"] = False

    dependencies["ghostscript"] = any(
        shutil.which(name) is not None for name in ("gs", "gswin64c", "gswin32c")
    )

    return dependencies


# =============================================================================
# PUBLIC API IMPORTS
# =============================================================================

# Placed after the utilities so that logging is configured first.

from .exceptions import (  # noqa: E402
    AssemblyError,
    BarcodeBatchError,
    BatchExhaustionError,
    CodeValidationError,
    InputError,
    RenderError,
    UnsupportedSymbologyError,
)
from .model.enums import BarcodeSymbology, OutputFormat  # noqa: E402
from .model.batch import (  # noqa: E402
    BatchOptions,
    BatchReport,
    BatchResult,
    RenderFailure,
    RenderRequest,
    RenderSuccess,
)
from .barcodegen.classifier import classify, clean_code, validate  # noqa: E402
from .barcodegen.barcode_generator import RenderEngine  # noqa: E402
from .batch.coordinator import BatchCoordinator  # noqa: E402
from .batch.archive import ArchiveAssembler  # noqa: E402
from .batch.service import BarcodeBatchService, BatchArchive, BatchRequest  # noqa: E402

__all__ = [
    # Version metadata
    "__version__",
    "__author__",
    "__description__",
    "__license__",
    "__python_requires__",
    "VERSION_MAJOR",
    "VERSION_MINOR",
    "VERSION_PATCH",
    # Utilities
    "get_logger",
    "load_config",
    "check_dependencies",
    # Errors
    "BarcodeBatchError",
    "InputError",
    "CodeValidationError",
    "RenderError",
    "UnsupportedSymbologyError",
    "BatchExhaustionError",
    "AssemblyError",
    # Model
    "BarcodeSymbology",
    "OutputFormat",
    "BatchOptions",
    "RenderRequest",
    "RenderSuccess",
    "RenderFailure",
    "BatchResult",
    "BatchReport",
    # Pipeline
    "classify",
    "clean_code",
    "validate",
    "RenderEngine",
    "BatchCoordinator",
    "ArchiveAssembler",
    "BarcodeBatchService",
    "BatchArchive",
    "BatchRequest",
]

# =============================================================================
# PACKAGE INITIALIZATION
# =============================================================================

_setup_logging()

_logger = get_logger(__name__)
_logger.debug("Barcode Batch Generator v%s initializing", __version__)
_logger.debug("Python version: %s", sys.version)

_deps = check_dependencies()
_missing = [
    name
    for name, available in _deps.items()
    if not available and name != "ghostscript"
]

if _missing:
    _logger.warning(
        "Missing rendering dependencies: %s. Install with: pip install %s",
        ", ".join(_missing),
        " ".join(_missing),
    )
if not _deps["ghostscript"]:
    _logger.info("Ghostscript not found: PNG output will use the fallback renderer")
