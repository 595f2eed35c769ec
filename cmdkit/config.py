from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
import os
import tomllib
from typing import Any

DEFAULT_TIMEOUT = 60.0

ENV_TIMEOUT = "CMDKIT_PROCESS_TIMEOUT"
ENV_IDLE_TIMEOUT = "CMDKIT_PROCESS_IDLE_TIMEOUT"
ENV_PREVENT_STRAY = "CMDKIT_PREVENT_STRAY_PROCESSES"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class ProcessSettings:
    timeout: float | None = DEFAULT_TIMEOUT
    idle_timeout: float | None = None
    prevent_stray_processes: bool = False


def find_pyproject(start: Path | None = None) -> Path | None:
    cwd = (start or Path.cwd()).resolve()
    for parent in (cwd, *cwd.parents):
        candidate = parent / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def _seconds(value: object, source: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip().lower()
        if text in {"", "none", "forever"}:
            return None
        value = text
    if isinstance(value, bool):
        raise ValueError(f"{source}: expected a number of seconds, got {value!r}")
    try:
        seconds = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ValueError(f"{source}: expected a number of seconds, got {value!r}") from e
    if seconds < 0:
        raise ValueError(f"{source}: timeout must not be negative")
    return seconds or None


def _flag(value: object, source: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    raise ValueError(f"{source}: expected a boolean, got {value!r}")


def _from_table(settings: ProcessSettings, table: Mapping[str, Any], source: str) -> ProcessSettings:
    if "timeout" in table:
        settings = replace(settings, timeout=_seconds(table["timeout"], f"{source}.timeout"))
    if "idle_timeout" in table:
        settings = replace(
            settings, idle_timeout=_seconds(table["idle_timeout"], f"{source}.idle_timeout")
        )
    if "prevent_stray_processes" in table:
        settings = replace(
            settings,
            prevent_stray_processes=_flag(
                table["prevent_stray_processes"], f"{source}.prevent_stray_processes"
            ),
        )
    return settings


def read_pyproject_settings(path: Path) -> ProcessSettings:
    data = tomllib.loads(path.read_text(encoding="utf-8"))
    tool = data.get("tool", {}).get("cmdkit", {})
    table = tool.get("process", {}) if isinstance(tool, dict) else {}
    if not isinstance(table, dict):
        return ProcessSettings()
    return _from_table(ProcessSettings(), table, "tool.cmdkit.process")


def load_settings(
    start: Path | None = None, environ: Mapping[str, str] | None = None
) -> ProcessSettings:
    env = os.environ if environ is None else environ
    pyproject = find_pyproject(start)
    settings = read_pyproject_settings(pyproject) if pyproject else ProcessSettings()
    if ENV_TIMEOUT in env:
        settings = replace(settings, timeout=_seconds(env[ENV_TIMEOUT], ENV_TIMEOUT))
    if ENV_IDLE_TIMEOUT in env:
        settings = replace(
            settings, idle_timeout=_seconds(env[ENV_IDLE_TIMEOUT], ENV_IDLE_TIMEOUT)
        )
    if ENV_PREVENT_STRAY in env:
        settings = replace(
            settings, prevent_stray_processes=_flag(env[ENV_PREVENT_STRAY], ENV_PREVENT_STRAY)
        )
    return settings
