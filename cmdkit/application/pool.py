from __future__ import annotations

from collections.abc import Callable, Hashable, Iterator, Mapping, Sequence
import contextlib
import logging
import os
import signal as signals
from typing import TYPE_CHECKING, TypeAlias

from cmdkit.application.pending_process import PendingProcess
from cmdkit.domain.errors import CmdkitError
from cmdkit.domain.process import OutputHandler, ProcessResult
from cmdkit.ports.process_runner import InvokedProcessPort

if TYPE_CHECKING:
    from cmdkit.application.process_factory import Factory

logger = logging.getLogger(__name__)

PoolOutputHandler: TypeAlias = Callable[[str, str, Hashable], None]

STOP_SIGNAL = getattr(signals, "SIGKILL", signals.SIGTERM)


def _keyed(output: PoolOutputHandler, key: Hashable) -> OutputHandler:
    def handler(kind: str, buffer: str) -> None:
        output(kind, buffer, key)

    return handler


def _stop(processes: Sequence[InvokedProcessPort]) -> None:
    """Kill and reap processes left behind by a failed pool."""
    for process in processes:
        if process.running():
            process.signal(STOP_SIGNAL)
    for process in processes:
        with contextlib.suppress(CmdkitError):
            process.wait()


class Pool:
    def __init__(self, factory: Factory, callback: Callable[[Pool], object]) -> None:
        self.factory = factory
        self.callback = callback
        self._pending: dict[Hashable, PendingProcess] = {}

    @property
    def processes(self) -> dict[Hashable, PendingProcess]:
        return dict(self._pending)

    def as_(self, key: Hashable) -> PendingProcess:
        process = self.factory.new_pending_process()
        self._pending[key] = process
        return process

    def new_process(self) -> PendingProcess:
        index = 0
        while index in self._pending:
            index += 1
        return self.as_(index)

    def command(self, command: str | Sequence[str]) -> PendingProcess:
        return self.new_process().command(command)

    def path(self, path: str | os.PathLike[str]) -> PendingProcess:
        return self.new_process().path(path)

    def env(self, environment: Mapping[str, str | None]) -> PendingProcess:
        return self.new_process().env(environment)

    def timeout(self, seconds: float) -> PendingProcess:
        return self.new_process().timeout(seconds)

    def input(self, text: str | None) -> PendingProcess:
        return self.new_process().input(text)

    def quietly(self) -> PendingProcess:
        return self.new_process().quietly()

    def start(self, output: PoolOutputHandler | None = None) -> InvokedProcessPool:
        self._pending = {}
        self.callback(self)
        invoked: dict[Hashable, InvokedProcessPort] = {}
        try:
            for key, process in self._pending.items():
                handler = None if output is None else _keyed(output, key)
                invoked[key] = process.start(output=handler)
        except Exception:
            logger.debug("Pool start failed, stopping %d started processes", len(invoked))
            _stop(list(invoked.values()))
            raise
        logger.debug("Started pool of %d processes", len(invoked))
        return InvokedProcessPool(invoked)


class InvokedProcessPool(Mapping[Hashable, InvokedProcessPort]):
    def __init__(self, processes: Mapping[Hashable, InvokedProcessPort]) -> None:
        self._processes = dict(processes)

    def __getitem__(self, key: Hashable) -> InvokedProcessPort:
        return self._processes[key]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._processes)

    def __len__(self) -> int:
        return len(self._processes)

    def running(self) -> list[InvokedProcessPort]:
        return [process for process in self._processes.values() if process.running()]

    def signal(self, signal: int) -> list[InvokedProcessPort]:
        signalled = self.running()
        for process in signalled:
            process.signal(signal)
        return signalled

    def wait(self) -> ProcessPoolResults:
        results: dict[Hashable, ProcessResult] = {}
        try:
            for key, process in self._processes.items():
                results[key] = process.wait()
        except Exception:
            _stop([p for key, p in self._processes.items() if key not in results])
            raise
        return ProcessPoolResults(results)


class ProcessPoolResults(Mapping[Hashable, ProcessResult]):
    def __init__(self, results: Mapping[Hashable, ProcessResult]) -> None:
        self._results = dict(results)

    def __getitem__(self, key: Hashable) -> ProcessResult:
        return self._results[key]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def successful(self) -> bool:
        return all(result.successful() for result in self._results.values())

    def failed(self) -> bool:
        return any(result.failed() for result in self._results.values())

    def collect(self) -> dict[Hashable, ProcessResult]:
        return dict(self._results)
