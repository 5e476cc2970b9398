from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

from .sources import DEFAULT_PRIMARY_SOURCE, DEFAULT_SECONDARY_SOURCE, DEFAULT_TIMEOUT_SEC


ENV_PREFIX = "ARCTIC_WATCH_"

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "auto"
DEFAULT_USE_FIXTURE = True
DEFAULT_SELECTION_ZOOM = 8
DEFAULT_REPORT_TITLE = "Arctic Watch"

_VALID_LOG_FORMATS = {"auto", "json", "console"}
_VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class RuntimeConfig:
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: str = DEFAULT_LOG_FORMAT
    primary_source: str | None = DEFAULT_PRIMARY_SOURCE
    secondary_source: str | None = DEFAULT_SECONDARY_SOURCE
    source_timeout_sec: float = DEFAULT_TIMEOUT_SEC
    use_fixture: bool = DEFAULT_USE_FIXTURE
    selection_zoom: int = DEFAULT_SELECTION_ZOOM
    report_title: str = DEFAULT_REPORT_TITLE


def normalize_log_level(value: str) -> str:
    level = str(value).strip().upper()
    if level in _VALID_LOG_LEVELS:
        return level

    try:
        numeric = int(level)
    except ValueError as exc:
        raise ValueError(
            f"Invalid {ENV_PREFIX}LOG_LEVEL '{value}'. "
            f"Expected one of {sorted(_VALID_LOG_LEVELS)} or a numeric level."
        ) from exc
    if numeric < 0:
        raise ValueError(f"Invalid {ENV_PREFIX}LOG_LEVEL '{value}'. Numeric levels must be >= 0.")
    return str(numeric)


def normalize_log_format(value: str) -> str:
    fmt = str(value).strip().lower()
    if fmt not in _VALID_LOG_FORMATS:
        raise ValueError(
            f"Invalid {ENV_PREFIX}LOG_FORMAT '{value}'. "
            f"Expected one of {sorted(_VALID_LOG_FORMATS)}."
        )
    return fmt


def parse_positive_float(value: str, *, env_var: str) -> float:
    try:
        parsed = float(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid {env_var} '{value}'. Expected a positive float.") from exc
    if parsed <= 0:
        raise ValueError(f"Invalid {env_var} '{value}'. Value must be > 0.")
    return parsed


def parse_positive_int(value: str, *, env_var: str) -> int:
    try:
        parsed = int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid {env_var} '{value}'. Expected a positive integer.") from exc
    if parsed <= 0:
        raise ValueError(f"Invalid {env_var} '{value}'. Value must be > 0.")
    return parsed


def parse_bool(value: str, *, env_var: str) -> bool:
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(
        f"Invalid {env_var} '{value}'. Expected one of {sorted(_TRUE_VALUES | _FALSE_VALUES)}."
    )


def parse_optional_source(value: str) -> str | None:
    stripped = str(value).strip()
    return stripped or None


def load_runtime_config(
    env: Mapping[str, str] | None = None,
    *,
    read_dotenv: bool = True,
) -> RuntimeConfig:
    if env is None and read_dotenv:
        load_dotenv(override=False)
    source = env if env is not None else os.environ

    def _get(name: str, default: str) -> str:
        return source.get(f"{ENV_PREFIX}{name}", default)

    log_level = normalize_log_level(_get("LOG_LEVEL", DEFAULT_LOG_LEVEL))
    log_format = normalize_log_format(_get("LOG_FORMAT", DEFAULT_LOG_FORMAT))
    primary_source = parse_optional_source(_get("PRIMARY_SOURCE", DEFAULT_PRIMARY_SOURCE))
    secondary_source = parse_optional_source(_get("SECONDARY_SOURCE", DEFAULT_SECONDARY_SOURCE))
    source_timeout_sec = parse_positive_float(
        _get("SOURCE_TIMEOUT_SEC", str(DEFAULT_TIMEOUT_SEC)),
        env_var=f"{ENV_PREFIX}SOURCE_TIMEOUT_SEC",
    )
    use_fixture = parse_bool(
        _get("USE_FIXTURE", str(DEFAULT_USE_FIXTURE)),
        env_var=f"{ENV_PREFIX}USE_FIXTURE",
    )
    selection_zoom = parse_positive_int(
        _get("SELECTION_ZOOM", str(DEFAULT_SELECTION_ZOOM)),
        env_var=f"{ENV_PREFIX}SELECTION_ZOOM",
    )
    report_title = _get("REPORT_TITLE", DEFAULT_REPORT_TITLE).strip()
    if not report_title:
        raise ValueError(f"{ENV_PREFIX}REPORT_TITLE must not be empty.")

    return RuntimeConfig(
        log_level=log_level,
        log_format=log_format,
        primary_source=primary_source,
        secondary_source=secondary_source,
        source_timeout_sec=source_timeout_sec,
        use_fixture=use_fixture,
        selection_zoom=selection_zoom,
        report_title=report_title,
    )
