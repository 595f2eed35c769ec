from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
import logging
import os
from typing import TYPE_CHECKING, TypeAlias

from cmdkit.application.fakes import (
    FakeInvokedProcess,
    FakeProcessDescription,
    FakeProcessSequence,
)
from cmdkit.domain.errors import StrayProcessError, UnsupportedFakeResultError
from cmdkit.domain.patterns import first_match
from cmdkit.domain.process import (
    ERR,
    OUT,
    FakeProcessResult,
    OutputHandler,
    ProcessResult,
    ProcessSpec,
)
from cmdkit.ports.process_runner import InvokedProcessPort

if TYPE_CHECKING:
    from cmdkit.application.process_factory import Factory

logger = logging.getLogger(__name__)


def _is_lines(value: object) -> bool:
    return isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value)


class PendingProcess:
    def __init__(self, factory: Factory) -> None:
        self.factory = factory
        self.spec = ProcessSpec(
            command="",
            timeout=factory.settings.timeout,
            idle_timeout=factory.settings.idle_timeout,
        )
        self.fake_handlers: dict[str, FakeHandler] = {}

    @property
    def command_line(self) -> str:
        return self.spec.command_line

    def command(self, command: str | Sequence[str]) -> PendingProcess:
        frozen = command if isinstance(command, str) else tuple(str(part) for part in command)
        self.spec = replace(self.spec, command=frozen)
        return self

    def path(self, path: str | os.PathLike[str]) -> PendingProcess:
        self.spec = replace(self.spec, path=os.fspath(path))
        return self

    def timeout(self, seconds: float) -> PendingProcess:
        self.spec = replace(self.spec, timeout=seconds)
        return self

    def idle_timeout(self, seconds: float) -> PendingProcess:
        self.spec = replace(self.spec, idle_timeout=seconds)
        return self

    def forever(self) -> PendingProcess:
        self.spec = replace(self.spec, timeout=None)
        return self

    def env(self, environment: Mapping[str, str | None]) -> PendingProcess:
        self.spec = replace(self.spec, environment={**self.spec.environment, **environment})
        return self

    def input(self, text: str | None) -> PendingProcess:
        self.spec = replace(self.spec, input=text)
        return self

    def quietly(self) -> PendingProcess:
        self.spec = replace(self.spec, quiet=True)
        return self

    def with_fake_handlers(self, handlers: Mapping[str, FakeHandler]) -> PendingProcess:
        self.fake_handlers = dict(handlers)
        return self

    def run(
        self,
        command: str | Sequence[str] | None = None,
        output: OutputHandler | None = None,
    ) -> ProcessResult:
        line = self._prepare(command)
        fake = self._fake_for(line)
        if fake is not None:
            result = self._resolve_synchronous_fake(line, fake)
            logger.debug("Resolved fake for process: %s", line)
            if output is not None:
                if result.output:
                    output(OUT, result.output)
                if result.error_output:
                    output(ERR, result.error_output)
            self.factory.record_if_recording(self, result)
            return result
        self._guard_stray(line)
        invoked = self.factory.runner.start(
            self.spec, output=output, on_complete=self._record
        )
        return invoked.wait()

    def start(
        self,
        command: str | Sequence[str] | None = None,
        output: OutputHandler | None = None,
    ) -> InvokedProcessPort:
        line = self._prepare(command)
        fake = self._fake_for(line)
        if fake is not None:
            description = self._resolve_asynchronous_fake(line, fake)
            invoked = FakeInvokedProcess(line, description).with_output_handler(output)
            logger.debug("Resolved asynchronous fake for process: %s", line)
            self.factory.record_if_recording(self, invoked.predict_process_result())
            return invoked
        self._guard_stray(line)
        return self.factory.runner.start(self.spec, output=output, on_complete=self._record)

    def _prepare(self, command: str | Sequence[str] | None) -> str:
        if command is not None:
            self.command(command)
        line = self.command_line
        if not line.strip():
            raise ValueError("A command must be provided before running a process.")
        return line

    def _record(self, result: ProcessResult) -> None:
        self.factory.record_if_recording(self, result)

    def _fake_for(self, line: str) -> FakeHandler | None:
        pattern = first_match(list(self.fake_handlers), line)
        if pattern is None:
            return None
        return self.fake_handlers[pattern]

    def _guard_stray(self, line: str) -> None:
        if not self.factory.preventing_stray_processes():
            return
        logger.debug("Rejected stray process: %s", line)
        raise StrayProcessError(
            f"Attempted process [{line}] without a matching fake.",
            details={"command": line},
        )

    def _resolve_synchronous_fake(self, line: str, fake: FakeHandler) -> ProcessResult:
        result = fake(self)
        if isinstance(result, str) or _is_lines(result):
            return FakeProcessResult(output=result, command=line)  # type: ignore[arg-type]
        if isinstance(result, ProcessResult):
            return result.with_command(line)
        if isinstance(result, FakeProcessDescription):
            return result.to_process_result(line)
        if isinstance(result, FakeProcessSequence):
            return self._resolve_synchronous_fake(line, lambda _process: result())
        raise UnsupportedFakeResultError(
            "Unsupported synchronous process fake result provided.",
            details={"command": line, "type": type(result).__name__},
        )

    def _resolve_asynchronous_fake(self, line: str, fake: FakeHandler) -> FakeProcessDescription:
        result = fake(self)
        if isinstance(result, str) or _is_lines(result):
            return FakeProcessDescription().replace_output(result)  # type: ignore[arg-type]
        if isinstance(result, ProcessResult):
            return FakeProcessDescription.from_result(result)
        if isinstance(result, FakeProcessDescription):
            return result
        if isinstance(result, FakeProcessSequence):
            return self._resolve_asynchronous_fake(line, lambda _process: result())
        raise UnsupportedFakeResultError(
            "Unsupported asynchronous process fake result provided.",
            details={"command": line, "type": type(result).__name__},
        )


FakeHandler: TypeAlias = Callable[[PendingProcess], object]
