"""
Settings loader (``docflow_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen dataclasses of
``docflow_config.schema``.  Runtime code obtains settings through
``docflow_config.get_active_settings()``; this module is its parser.

Invariants enforced
-------------------
* Every value is validated while parsing.  A malformed value raises
  ``ConfigError`` naming the offending setting; nothing is silently
  replaced by a default.
* Omitted keys take the dataclass defaults.
* ``compute_checksum`` is a deterministic SHA-256 of the parsed file.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad value or unknown key  -> ``ConfigError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from docflow_config.schema import DocflowSettings, LifecycleSettings
from docflow_kernel.domain.approval import ContractStatus
from docflow_kernel.domain.cost_input import CalculationSettings
from docflow_kernel.domain.document import LockType
from docflow_kernel.exceptions import ConfigError

_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})

_TOP_LEVEL_KEYS = frozenset({"calculation", "lifecycle", "database", "logging"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError("<root>", f"expected a mapping, got {type(data).__name__}")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(name, "expected a mapping")
    return section


def _check_keys(section: dict[str, Any], allowed: set[str], prefix: str) -> None:
    unknown = sorted(set(section) - allowed)
    if unknown:
        raise ConfigError(f"{prefix}.{unknown[0]}", "unknown setting")


def _decimal(value: Any, setting: str) -> Decimal:
    if isinstance(value, bool):
        raise ConfigError(setting, "expected a number, got a boolean")
    try:
        # str() keeps YAML floats like 0.1 from picking up binary noise
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ConfigError(setting, f"expected a number, got {value!r}") from exc
    if not result.is_finite():
        raise ConfigError(setting, f"expected a finite number, got {value!r}")
    return result


def _bool(value: Any, setting: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(setting, f"expected true or false, got {value!r}")
    return value


def _roles(value: Any, setting: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(r, str) for r in value):
        raise ConfigError(setting, "expected a list of role names")
    return tuple(value)


def parse_calculation(data: dict[str, Any]) -> CalculationSettings:
    """Parse the ``calculation`` section."""
    _check_keys(data, {"tax_rate", "base_utility_cost", "solar_horizon_months"}, "calculation")
    defaults = CalculationSettings()
    horizon = data.get("solar_horizon_months", defaults.solar_horizon_months)
    if isinstance(horizon, bool) or not isinstance(horizon, int):
        raise ConfigError("calculation.solar_horizon_months", f"expected an integer, got {horizon!r}")
    try:
        return CalculationSettings(
            tax_rate=_decimal(data.get("tax_rate", defaults.tax_rate), "calculation.tax_rate"),
            base_utility_cost=_decimal(
                data.get("base_utility_cost", defaults.base_utility_cost),
                "calculation.base_utility_cost",
            ),
            solar_horizon_months=horizon,
        )
    except ValueError as exc:
        raise ConfigError("calculation", str(exc)) from exc


def parse_lifecycle(data: dict[str, Any]) -> LifecycleSettings:
    """Parse the ``lifecycle`` section."""
    _check_keys(
        data,
        {
            "require_return_comment",
            "reference_prefix",
            "lock_notes",
            "restore_note_template",
            "stage_roles",
            "superuser_roles",
        },
        "lifecycle",
    )
    defaults = LifecycleSettings()

    lock_notes = dict(defaults.lock_notes)
    for key, note in _section(data, "lock_notes").items():
        try:
            lock_notes[LockType(key)] = str(note)
        except ValueError as exc:
            raise ConfigError(f"lifecycle.lock_notes.{key}", "unknown lock type") from exc

    stage_roles = dict(defaults.stage_roles)
    for key, roles in _section(data, "stage_roles").items():
        try:
            status = ContractStatus(key)
        except ValueError as exc:
            raise ConfigError(f"lifecycle.stage_roles.{key}", "unknown status") from exc
        stage_roles[status] = _roles(roles, f"lifecycle.stage_roles.{key}")

    prefix = data.get("reference_prefix", defaults.reference_prefix)
    if not isinstance(prefix, str) or not prefix:
        raise ConfigError("lifecycle.reference_prefix", "expected a non-empty string")

    template = data.get("restore_note_template", defaults.restore_note_template)
    if not isinstance(template, str) or "{version}" not in template:
        raise ConfigError("lifecycle.restore_note_template", "must contain '{version}'")

    return LifecycleSettings(
        require_return_comment=_bool(
            data.get("require_return_comment", defaults.require_return_comment),
            "lifecycle.require_return_comment",
        ),
        reference_prefix=prefix,
        lock_notes=lock_notes,
        restore_note_template=template,
        stage_roles=stage_roles,
        superuser_roles=_roles(
            data.get("superuser_roles", list(defaults.superuser_roles)),
            "lifecycle.superuser_roles",
        ),
    )


def parse_settings(data: dict[str, Any], source: str | None = None) -> DocflowSettings:
    """Parse a whole settings document."""
    unknown = sorted(set(data) - _TOP_LEVEL_KEYS)
    if unknown:
        raise ConfigError(unknown[0], "unknown section")

    database = _section(data, "database")
    _check_keys(database, {"url"}, "database")
    url = database.get("url", DocflowSettings.database_url)
    if not isinstance(url, str) or not url:
        raise ConfigError("database.url", "expected a non-empty string")

    log = _section(data, "logging")
    _check_keys(log, {"level"}, "logging")
    level = str(log.get("level", DocflowSettings.log_level)).upper()
    if level not in _LOG_LEVELS:
        raise ConfigError("logging.level", f"unknown level {level!r}")

    return DocflowSettings(
        calculation=parse_calculation(_section(data, "calculation")),
        lifecycle=parse_lifecycle(_section(data, "lifecycle")),
        database_url=url,
        log_level=level,
        source=source,
        checksum=compute_checksum(data),
    )


def load_settings(path: Path | str) -> DocflowSettings:
    """Load and parse one YAML settings file."""
    path = Path(path)
    return parse_settings(load_yaml_file(path), source=str(path))
