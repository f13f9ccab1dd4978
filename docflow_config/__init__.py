"""
docflow_config -- single public entrypoint for runtime settings.

Responsibility:
    Provides ``get_active_settings()``, the one way services obtain their
    settings.  Reads the YAML file named by the ``DOCFLOW_CONFIG``
    environment variable (or an explicit path), and falls back to the
    built-in defaults when neither is given.

Architecture position:
    Configuration -- sits above ``docflow_kernel`` and beside
    ``docflow_services``.  The kernel MUST NEVER import from
    ``docflow_config``; ``LifecycleSettings.to_approval_settings()`` and
    ``to_document_settings()`` translate into kernel settings objects.

Failure modes:
    - ``FileNotFoundError`` -- DOCFLOW_CONFIG points at a missing file.
    - ``ConfigError`` -- a value in the file is malformed.

Audit relevance:
    Every successful call emits a ``DOCFLOW_CONFIG_TRACE`` log entry with
    the source path and checksum, tying document activity to the settings
    that governed it.
"""

from __future__ import annotations

import os
from pathlib import Path

from docflow_config.loader import load_settings, parse_settings
from docflow_config.schema import DocflowSettings, LifecycleSettings
from docflow_kernel.logging_config import get_logger

_logger = get_logger("config")

CONFIG_ENV_VAR = "DOCFLOW_CONFIG"

# Reference settings file mirroring the built-in defaults
DEFAULT_SETTINGS_FILE = Path(__file__).parent / "default.yaml"


def get_active_settings(path: Path | str | None = None) -> DocflowSettings:
    """Load settings from ``path``, else ``$DOCFLOW_CONFIG``, else defaults."""
    source = path or os.environ.get(CONFIG_ENV_VAR)
    settings = load_settings(source) if source else DocflowSettings()

    _logger.info(
        "DOCFLOW_CONFIG_TRACE",
        extra={
            "trace_type": "DOCFLOW_CONFIG_TRACE",
            "source": settings.source or "<defaults>",
            "checksum": settings.checksum,
        },
    )
    return settings


__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_SETTINGS_FILE",
    "DocflowSettings",
    "LifecycleSettings",
    "get_active_settings",
    "load_settings",
    "parse_settings",
]
