from collections.abc import Callable
from typing import Protocol

from cmdkit.domain.process import OutputHandler, ProcessResult, ProcessSpec


class InvokedProcessPort(Protocol):
    @property
    def pid(self) -> int | None: ...

    @property
    def command(self) -> str: ...

    def running(self) -> bool: ...

    def signal(self, signal: int) -> None: ...

    def output(self) -> str: ...

    def error_output(self) -> str: ...

    def latest_output(self) -> str: ...

    def latest_error_output(self) -> str: ...

    def wait(self, output: OutputHandler | None = None) -> ProcessResult: ...


class ProcessRunnerPort(Protocol):
    def start(
        self,
        spec: ProcessSpec,
        output: OutputHandler | None = None,
        on_complete: Callable[[ProcessResult], None] | None = None,
    ) -> InvokedProcessPort: ...
