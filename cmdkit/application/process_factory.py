from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
import logging
import os
from typing import TypeAlias

from cmdkit.adapters.process.subprocess_runner import SubprocessRunner
from cmdkit.application.fakes import FakeProcessDescription, FakeProcessSequence
from cmdkit.application.pending_process import FakeHandler, PendingProcess
from cmdkit.application.pool import Pool, PoolOutputHandler, ProcessPoolResults
from cmdkit.config import ProcessSettings
from cmdkit.domain.patterns import CATCH_ALL, matches
from cmdkit.domain.process import FakeProcessResult, OutputHandler, ProcessResult
from cmdkit.ports.process_runner import InvokedProcessPort, ProcessRunnerPort

logger = logging.getLogger(__name__)

FakeValue: TypeAlias = (
    str | Sequence[str] | ProcessResult | FakeProcessDescription | FakeProcessSequence
)
Predicate: TypeAlias = Callable[[PendingProcess, ProcessResult], bool]
RecordedEntry: TypeAlias = tuple[PendingProcess, ProcessResult]

_FAKE_VALUES = (str, list, tuple, ProcessResult, FakeProcessDescription, FakeProcessSequence)


def _as_handler(handler: FakeHandler | FakeValue) -> FakeHandler:
    if isinstance(handler, _FAKE_VALUES):
        return lambda _process: handler
    if callable(handler):
        return handler
    raise TypeError(f"Unsupported fake process handler: {type(handler).__name__}")


def _as_predicate(callback: Predicate | str) -> Predicate:
    if isinstance(callback, str):
        pattern = callback
        return lambda process, _result: matches(pattern, process.command_line)
    return callback


class Factory:
    def __init__(
        self,
        settings: ProcessSettings | None = None,
        runner: ProcessRunnerPort | None = None,
    ) -> None:
        self.settings = settings or ProcessSettings()
        self.runner: ProcessRunnerPort = runner or SubprocessRunner()
        self._recording = False
        self._recorded: list[RecordedEntry] = []
        self._fake_handlers: dict[str, FakeHandler] = {}
        self._prevent_stray_processes = self.settings.prevent_stray_processes

    def result(
        self,
        output: str | Sequence[str] = "",
        error_output: str | Sequence[str] = "",
        exit_code: int = 0,
    ) -> FakeProcessResult:
        return FakeProcessResult(output=output, error_output=error_output, exit_code=exit_code)

    def describe(self) -> FakeProcessDescription:
        return FakeProcessDescription()

    def sequence(self, processes: Iterable[object] = ()) -> FakeProcessSequence:
        return FakeProcessSequence(processes)

    def fake(
        self,
        callback: FakeHandler | FakeValue | Mapping[str | int, FakeHandler | FakeValue] | None = None,
    ) -> Factory:
        self._recording = True

        if callback is None:
            self._fake_handlers = {CATCH_ALL: lambda _process: FakeProcessResult()}
            return self

        if isinstance(callback, Mapping):
            for command, handler in callback.items():
                key = CATCH_ALL if isinstance(command, int) else str(command)
                self._fake_handlers[key] = _as_handler(handler)
            return self

        self._fake_handlers = {CATCH_ALL: _as_handler(callback)}
        return self

    def is_recording(self) -> bool:
        return self._recording

    def record_if_recording(self, process: PendingProcess, result: ProcessResult) -> Factory:
        if self.is_recording():
            self.record(process, result)
        return self

    def record(self, process: PendingProcess, result: ProcessResult) -> Factory:
        self._recorded.append((process, result))
        return self

    def recorded(self, callback: Predicate | str | None = None) -> list[RecordedEntry]:
        if callback is None:
            return list(self._recorded)
        predicate = _as_predicate(callback)
        return [(p, r) for p, r in self._recorded if predicate(p, r)]

    def prevent_stray_processes(self, prevent: bool = True) -> Factory:
        self._prevent_stray_processes = prevent
        return self

    def preventing_stray_processes(self) -> bool:
        return self._prevent_stray_processes

    def assert_ran(self, callback: Predicate | str) -> Factory:
        if not self.recorded(callback):
            raise AssertionError("An expected process was not invoked.")
        return self

    def assert_ran_times(self, callback: Predicate | str, times: int = 1) -> Factory:
        count = len(self.recorded(callback))
        if count != times:
            raise AssertionError(
                f"An expected process ran {count} times instead of {times} times."
            )
        return self

    def assert_not_ran(self, callback: Predicate | str) -> Factory:
        if self.recorded(callback):
            raise AssertionError("An unexpected process was invoked.")
        return self

    assert_did_not_run = assert_not_ran

    def assert_nothing_ran(self) -> Factory:
        if self._recorded:
            raise AssertionError("An unexpected process was invoked.")
        return self

    def reset(self) -> Factory:
        self._recording = False
        self._recorded = []
        self._fake_handlers = {}
        self._prevent_stray_processes = self.settings.prevent_stray_processes
        return self

    def pool(self, callback: Callable[[Pool], object]) -> Pool:
        return Pool(self, callback)

    def concurrently(
        self,
        callback: Callable[[Pool], object],
        output: PoolOutputHandler | None = None,
    ) -> ProcessPoolResults:
        return Pool(self, callback).start(output).wait()

    def new_pending_process(self) -> PendingProcess:
        return PendingProcess(self).with_fake_handlers(self._fake_handlers)

    def command(self, command: str | Sequence[str]) -> PendingProcess:
        return self.new_pending_process().command(command)

    def path(self, path: str | os.PathLike[str]) -> PendingProcess:
        return self.new_pending_process().path(path)

    def timeout(self, seconds: float) -> PendingProcess:
        return self.new_pending_process().timeout(seconds)

    def idle_timeout(self, seconds: float) -> PendingProcess:
        return self.new_pending_process().idle_timeout(seconds)

    def forever(self) -> PendingProcess:
        return self.new_pending_process().forever()

    def env(self, environment: Mapping[str, str | None]) -> PendingProcess:
        return self.new_pending_process().env(environment)

    def input(self, text: str | None) -> PendingProcess:
        return self.new_pending_process().input(text)

    def quietly(self) -> PendingProcess:
        return self.new_pending_process().quietly()

    def run(
        self,
        command: str | Sequence[str] | None = None,
        output: OutputHandler | None = None,
    ) -> ProcessResult:
        return self.new_pending_process().run(command, output)

    def start(
        self,
        command: str | Sequence[str] | None = None,
        output: OutputHandler | None = None,
    ) -> InvokedProcessPort:
        return self.new_pending_process().start(command, output)
