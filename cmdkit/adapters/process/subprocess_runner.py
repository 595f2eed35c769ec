from __future__ import annotations

from collections.abc import Callable
import contextlib
import logging
import os
import queue
import signal as signals
import subprocess
import threading
import time
from typing import IO

from cmdkit.domain.errors import (
    ExecutableNotFoundError,
    ProcessStartError,
    ProcessTimedOutError,
    WorkingDirectoryNotFoundError,
)
from cmdkit.domain.process import ERR, OUT, OutputHandler, ProcessResult, ProcessSpec

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05


def _pump(pipe: IO[str], kind: str, sink: queue.Queue[tuple[str, str]]) -> None:
    try:
        for chunk in iter(pipe.readline, ""):
            sink.put((kind, chunk))
    finally:
        pipe.close()


def _feed(pipe: IO[str], text: str) -> None:
    # The child may exit or be killed before reading everything.
    with contextlib.suppress(OSError, ValueError):
        pipe.write(text)
    with contextlib.suppress(OSError, ValueError):
        pipe.close()


class InvokedProcess:
    def __init__(
        self,
        spec: ProcessSpec,
        popen: subprocess.Popen[str],
        output: OutputHandler | None = None,
        on_complete: Callable[[ProcessResult], None] | None = None,
    ) -> None:
        self.spec = spec
        self._popen = popen
        self._handler = output
        self._on_complete = on_complete
        self._queue: queue.Queue[tuple[str, str]] = queue.Queue()
        self._chunks: dict[str, list[str]] = {OUT: [], ERR: []}
        self._cursors: dict[str, int] = {OUT: 0, ERR: 0}
        self._started_at = time.monotonic()
        self._last_activity = self._started_at
        self._result: ProcessResult | None = None
        self._readers: list[threading.Thread] = []
        for pipe, kind in ((popen.stdout, OUT), (popen.stderr, ERR)):
            if pipe is None:
                continue
            reader = threading.Thread(
                target=_pump, args=(pipe, kind, self._queue), daemon=True
            )
            reader.start()
            self._readers.append(reader)
        if spec.input is not None and popen.stdin is not None:
            threading.Thread(target=_feed, args=(popen.stdin, spec.input), daemon=True).start()

    @property
    def pid(self) -> int | None:
        return self._popen.pid

    @property
    def command(self) -> str:
        return self.spec.command_line

    def running(self) -> bool:
        self._drain()
        return self._popen.poll() is None

    def signal(self, signal: int) -> None:
        if self._popen.poll() is not None:
            return
        if os.name == "posix":
            # Each child leads its own session, so shell grandchildren are reached too.
            with contextlib.suppress(ProcessLookupError, PermissionError):
                os.killpg(self._popen.pid, signal)
        else:
            self._popen.send_signal(signal)

    def output(self) -> str:
        self._drain()
        return "".join(self._chunks[OUT])

    def error_output(self) -> str:
        self._drain()
        return "".join(self._chunks[ERR])

    def latest_output(self) -> str:
        return self._latest(OUT)

    def latest_error_output(self) -> str:
        return self._latest(ERR)

    def wait(self, output: OutputHandler | None = None) -> ProcessResult:
        if self._result is not None:
            return self._result
        handler = output or self._handler
        while True:
            self._drain(handler)
            if self._finished():
                break
            self._enforce_timeouts()
            try:
                kind, chunk = self._queue.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue
            self._accept(kind, chunk, handler)
        self._drain(handler)
        self._result = self._build_result()
        logger.debug(
            "Process %s finished with exit code %s", self.pid, self._result.exit_code
        )
        if self._on_complete is not None:
            self._on_complete(self._result)
        return self._result

    def _latest(self, kind: str) -> str:
        self._drain()
        chunks = self._chunks[kind]
        latest = "".join(chunks[self._cursors[kind] :])
        self._cursors[kind] = len(chunks)
        return latest

    def _accept(self, kind: str, chunk: str, handler: OutputHandler | None) -> None:
        self._chunks[kind].append(chunk)
        self._last_activity = time.monotonic()
        if handler is not None:
            handler(kind, chunk)

    def _drain(self, handler: OutputHandler | None = None) -> None:
        handler = handler or self._handler
        while True:
            try:
                kind, chunk = self._queue.get_nowait()
            except queue.Empty:
                return
            self._accept(kind, chunk, handler)

    def _finished(self) -> bool:
        if self._popen.poll() is None:
            return False
        return not any(reader.is_alive() for reader in self._readers)

    def _enforce_timeouts(self) -> None:
        now = time.monotonic()
        timeout = self.spec.timeout
        if timeout is not None and now - self._started_at > timeout:
            self._abort(
                f'The process "{self.command}" exceeded the timeout of {timeout} seconds.'
            )
        idle = self.spec.idle_timeout
        if idle is not None and now - self._last_activity > idle:
            self._abort(
                f'The process "{self.command}" exceeded the idle timeout of {idle} seconds.'
            )

    def _abort(self, message: str) -> None:
        self._kill()
        logger.warning(message)
        self._result = self._build_result()
        if self._on_complete is not None:
            self._on_complete(self._result)
        raise ProcessTimedOutError(
            message,
            details={"command": self.command, "pid": self.pid},
            result=self._result,
        )

    def _kill(self) -> None:
        if self._popen.poll() is None:
            if os.name == "posix":
                with contextlib.suppress(ProcessLookupError, PermissionError):
                    os.killpg(self._popen.pid, signals.SIGKILL)
            else:
                self._popen.kill()
        self._popen.wait()
        for reader in self._readers:
            reader.join(timeout=1)
        self._drain()

    def _build_result(self) -> ProcessResult:
        return ProcessResult(
            command=self.command,
            exit_code=self._popen.returncode,
            output="".join(self._chunks[OUT]),
            error_output="".join(self._chunks[ERR]),
        )


class SubprocessRunner:
    def start(
        self,
        spec: ProcessSpec,
        output: OutputHandler | None = None,
        on_complete: Callable[[ProcessResult], None] | None = None,
    ) -> InvokedProcess:
        if spec.path is not None and not os.path.isdir(spec.path):
            raise WorkingDirectoryNotFoundError(
                f'Unable to start "{spec.command_line}": working directory "{spec.path}" does not exist.',
                details={"command": spec.command_line, "path": spec.path},
            )
        capture = subprocess.DEVNULL if spec.quiet else subprocess.PIPE
        try:
            popen = subprocess.Popen(
                spec.command if spec.uses_shell else list(spec.command),
                shell=spec.uses_shell,
                cwd=spec.path,
                env=spec.child_environment(),
                stdin=subprocess.PIPE if spec.input is not None else subprocess.DEVNULL,
                stdout=capture,
                stderr=capture,
                text=True,
                encoding="utf-8",
                errors="replace",
                start_new_session=os.name == "posix",
            )
        except FileNotFoundError as e:
            raise ExecutableNotFoundError(
                f'Unable to start "{spec.command_line}": {e.strerror}',
                details={"command": spec.command_line, "path": spec.path},
                cause=e,
            ) from e
        except OSError as e:
            raise ProcessStartError(
                f'Unable to start "{spec.command_line}" in "{spec.path or os.getcwd()}": {e.strerror or e}',
                details={"command": spec.command_line, "path": spec.path},
                cause=e,
            ) from e
        logger.debug("Started process %s: %s", popen.pid, spec.command_line)
        return InvokedProcess(spec, popen, output=output, on_complete=on_complete)
