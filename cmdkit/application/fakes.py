from __future__ import annotations

from collections.abc import Iterable, Sequence

from cmdkit.domain.errors import ProcessSequenceEmptyError
from cmdkit.domain.process import (
    ERR,
    OUT,
    FakeProcessResult,
    OutputHandler,
    ProcessResult,
)


def _line(text: str) -> str:
    return text.rstrip("\n") + "\n"


class FakeProcessDescription:
    def __init__(self) -> None:
        self.process_id = 1000
        self.outputs: list[tuple[str, str]] = []
        self.result_code = 0
        self.run_iterations = 0

    @classmethod
    def from_result(cls, result: ProcessResult) -> FakeProcessDescription:
        return (
            cls()
            .replace_output(result.output)
            .replace_error_output(result.error_output)
            .exit_code(result.exit_code or 0)
        )

    def pid(self, process_id: int) -> FakeProcessDescription:
        self.process_id = process_id
        return self

    def output(self, output: str | Sequence[str]) -> FakeProcessDescription:
        return self._append(OUT, output)

    def error_output(self, output: str | Sequence[str]) -> FakeProcessDescription:
        return self._append(ERR, output)

    def replace_output(self, output: str | Sequence[str]) -> FakeProcessDescription:
        self.outputs = [entry for entry in self.outputs if entry[0] != OUT]
        return self.output(output) if output else self

    def replace_error_output(self, output: str | Sequence[str]) -> FakeProcessDescription:
        self.outputs = [entry for entry in self.outputs if entry[0] != ERR]
        return self.error_output(output) if output else self

    def exit_code(self, exit_code: int) -> FakeProcessDescription:
        self.result_code = exit_code
        return self

    def iterations(self, iterations: int) -> FakeProcessDescription:
        self.run_iterations = iterations
        return self

    def to_process_result(self, command: str) -> FakeProcessResult:
        return FakeProcessResult(
            command=command,
            exit_code=self.result_code,
            output=self._joined(OUT),
            error_output=self._joined(ERR),
        )

    def _append(self, kind: str, output: str | Sequence[str]) -> FakeProcessDescription:
        lines = [output] if isinstance(output, str) else list(output)
        for line in lines:
            self.outputs.append((kind, _line(line)))
        return self

    def _joined(self, kind: str) -> str:
        return "".join(buffer for entry_kind, buffer in self.outputs if entry_kind == kind)


class FakeProcessSequence:
    def __init__(self, processes: Iterable[object] = ()) -> None:
        self._processes = list(processes)
        self._fail_when_empty = True
        self._empty_process: object = None

    def push(self, process: object) -> FakeProcessSequence:
        self._processes.append(process)
        return self

    def when_empty(self, process: object) -> FakeProcessSequence:
        self._fail_when_empty = False
        self._empty_process = process
        return self

    def dont_fail_when_empty(self) -> FakeProcessSequence:
        return self.when_empty(FakeProcessResult())

    def is_empty(self) -> bool:
        return not self._processes

    def __len__(self) -> int:
        return len(self._processes)

    def __call__(self) -> object:
        if self._processes:
            return self._processes.pop(0)
        if self._fail_when_empty:
            raise ProcessSequenceEmptyError(
                "A process was invoked, but the process result sequence is empty."
            )
        return self._empty_process


class FakeInvokedProcess:
    def __init__(self, command: str, description: FakeProcessDescription) -> None:
        self._command = command
        self.description = description
        self.received_signals: list[int] = []
        self._handler: OutputHandler | None = None
        self._remaining_iterations: int | None = None
        self._next_output = 0
        self._cursors: dict[str, int] = {OUT: 0, ERR: 0}

    @property
    def pid(self) -> int | None:
        return self.description.process_id

    @property
    def command(self) -> str:
        return self._command

    def with_output_handler(self, output: OutputHandler | None) -> FakeInvokedProcess:
        self._handler = output
        return self

    def signal(self, signal: int) -> None:
        self.received_signals.append(signal)

    def has_received_signal(self, signal: int) -> bool:
        return signal in self.received_signals

    def running(self) -> bool:
        self._emit_next()
        if self._remaining_iterations is None:
            self._remaining_iterations = self.description.run_iterations
        if self._remaining_iterations == 0:
            while self._emit_next():
                pass
            return False
        self._remaining_iterations -= 1
        return True

    def output(self) -> str:
        return self._emitted(OUT)

    def error_output(self) -> str:
        return self._emitted(ERR)

    def latest_output(self) -> str:
        return self._latest(OUT)

    def latest_error_output(self) -> str:
        return self._latest(ERR)

    def wait(self, output: OutputHandler | None = None) -> ProcessResult:
        if output is not None:
            self._handler = output
        while self._emit_next():
            pass
        self._remaining_iterations = 0
        return self.predict_process_result()

    def predict_process_result(self) -> ProcessResult:
        return self.description.to_process_result(self._command)

    def _emit_next(self) -> bool:
        outputs = self.description.outputs
        if self._next_output >= len(outputs):
            return False
        kind, buffer = outputs[self._next_output]
        self._next_output += 1
        if self._handler is not None:
            self._handler(kind, buffer)
        return True

    def _emitted_chunks(self, kind: str) -> list[str]:
        emitted = self.description.outputs[: self._next_output]
        return [buffer for entry_kind, buffer in emitted if entry_kind == kind]

    def _emitted(self, kind: str) -> str:
        return "".join(self._emitted_chunks(kind))

    def _latest(self, kind: str) -> str:
        chunks = self._emitted_chunks(kind)
        latest = "".join(chunks[self._cursors[kind] :])
        self._cursors[kind] = len(chunks)
        return latest
