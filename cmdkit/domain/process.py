from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
import os
from typing import TypeAlias

from cmdkit.domain.errors import ProcessFailedError
from cmdkit.domain.patterns import command_line

OutputHandler: TypeAlias = Callable[[str, str], None]
OUT = "out"
ERR = "err"


def normalize_output(output: str | Sequence[str]) -> str:
    if not output:
        return ""
    if isinstance(output, str):
        return output.rstrip("\n") + "\n"
    return "".join(str(line).rstrip("\n") + "\n" for line in output)


@dataclass(frozen=True)
class ProcessSpec:
    command: str | tuple[str, ...]
    path: str | None = None
    environment: Mapping[str, str | None] = field(default_factory=dict)
    input: str | None = None
    timeout: float | None = None
    idle_timeout: float | None = None
    quiet: bool = False

    @property
    def command_line(self) -> str:
        return command_line(self.command)

    @property
    def uses_shell(self) -> bool:
        return isinstance(self.command, str)

    def child_environment(self, base: Mapping[str, str] | None = None) -> dict[str, str] | None:
        if not self.environment:
            return None
        env = dict(os.environ if base is None else base)
        for key, value in self.environment.items():
            if value is None:
                env.pop(key, None)
            else:
                env[key] = str(value)
        return env


@dataclass(frozen=True)
class ProcessResult:
    command: str = ""
    exit_code: int | None = 0
    output: str = ""
    error_output: str = ""

    def successful(self) -> bool:
        return self.exit_code == 0

    def failed(self) -> bool:
        return not self.successful()

    def see_in_output(self, text: str) -> bool:
        return text in self.output

    def see_in_error_output(self, text: str) -> bool:
        return text in self.error_output

    def with_command(self, command: str) -> ProcessResult:
        return replace(self, command=command)

    def throw(
        self,
        callback: Callable[[ProcessResult, ProcessFailedError], object] | None = None,
    ) -> ProcessResult:
        if self.successful():
            return self
        error = ProcessFailedError(
            _failure_message(self),
            details={"command": self.command, "exit_code": self.exit_code},
            result=self,
        )
        if callback is not None:
            callback(self, error)
        raise error

    def throw_if(
        self,
        condition: bool,
        callback: Callable[[ProcessResult, ProcessFailedError], object] | None = None,
    ) -> ProcessResult:
        if condition:
            return self.throw(callback)
        return self


@dataclass(frozen=True)
class FakeProcessResult(ProcessResult):
    def __init__(
        self,
        output: str | Sequence[str] = "",
        error_output: str | Sequence[str] = "",
        exit_code: int = 0,
        command: str = "",
    ):
        object.__setattr__(self, "command", command)
        object.__setattr__(self, "exit_code", exit_code)
        object.__setattr__(self, "output", normalize_output(output))
        object.__setattr__(self, "error_output", normalize_output(error_output))


def _failure_message(result: ProcessResult) -> str:
    message = f'The command "{result.command}" failed.\n\nExit Code: {result.exit_code}'
    if result.output.strip():
        message += f"\n\nOutput:\n================\n{result.output}"
    if result.error_output.strip():
        message += f"\n\nError Output:\n================\n{result.error_output}"
    return message
