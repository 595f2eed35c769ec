from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from cmdkit.domain.process import ProcessResult

RESULT_SCHEMA_VERSION = 1


def exit_code_for(results: Iterable[ProcessResult]) -> int:
    for result in results:
        if result.successful():
            continue
        code = result.exit_code
        if code is None:
            return 1
        # Negative codes mean the child died from a signal.
        return 128 - code if code < 0 else code
    return 0


def _json_key(key: Hashable) -> int | str:
    return key if isinstance(key, (int, str)) else str(key)


def serialize_process_result(result: ProcessResult, key: Hashable | None = None) -> dict[str, Any]:
    return {
        "key": None if key is None else _json_key(key),
        "command": result.command,
        "exit_code": result.exit_code,
        "successful": result.successful(),
        "output": result.output,
        "error_output": result.error_output,
    }


def serialize_results(
    results: Mapping[Hashable, ProcessResult],
    command: str,
    args: list[str],
) -> dict[str, Any]:
    return {
        "result_schema_version": RESULT_SCHEMA_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "command": command,
        "args": args,
        "exit_code": exit_code_for(results.values()),
        "processes": [serialize_process_result(r, key) for key, r in results.items()],
    }
