import json
from pathlib import Path

import typer

from cmdkit.application.pending_process import PendingProcess
from cmdkit.application.pool import Pool
from cmdkit.application.process_factory import Factory
from cmdkit.application.result_serialization import exit_code_for, serialize_results
from cmdkit.config import ProcessSettings, load_settings
from cmdkit.console.application import Application
from cmdkit.console.command import Command
from cmdkit.domain.errors import ProcessTimedOutError
from cmdkit.domain.process import ERR, ProcessResult
from cmdkit.ports.process_runner import InvokedProcessPort


def _parse_env(values: list[str] | None) -> dict[str, str]:
    environment: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected KEY=VALUE, got {item!r}", param_hint="'--env'")
        environment[key] = value
    return environment


class RunCommand(Command):
    name = "run"
    description = "Run shell commands through the process factory."

    def handle(
        self,
        commands: list[str] = typer.Argument(..., help="Shell command lines to run."),
        path: Path | None = typer.Option(None, "--path", help="Working directory."),
        timeout: float | None = typer.Option(None, "--timeout", help="Seconds before a process is killed."),
        env: list[str] = typer.Option(None, "--env", help="Extra environment, KEY=VALUE."),
        parallel: bool = typer.Option(False, "--parallel", help="Run the commands concurrently."),
        as_json: bool = typer.Option(False, "--json", help="Print a JSON result document."),
    ) -> int:
        environment = _parse_env(env)

        def configure(process: PendingProcess, command: str) -> PendingProcess:
            process.command(command)
            if path is not None:
                process.path(path)
            if timeout is not None:
                if timeout > 0:
                    process.timeout(timeout)
                else:
                    process.forever()
            if environment:
                process.env(environment)
            return process

        if parallel:
            results = self._run_parallel(commands, configure, stream=not as_json)
        else:
            results = self._run_sequential(commands, configure, stream=not as_json)

        if as_json:
            self.line(json.dumps(serialize_results(results, self.name, list(commands))))
        return exit_code_for(results.values())

    def _run_sequential(self, commands, configure, stream: bool) -> dict[int, ProcessResult]:
        results: dict[int, ProcessResult] = {}
        for index, command in enumerate(commands):
            process = configure(self.processes.new_pending_process(), command)
            invoked = process.start(output=self._stream if stream else None)
            results[index] = self._wait(invoked)
        return results

    def _run_parallel(self, commands, configure, stream: bool) -> dict[int, ProcessResult]:
        def build(pool: Pool) -> None:
            for index, command in enumerate(commands):
                configure(pool.as_(index), command)

        def prefixed(kind: str, buffer: str, key: object) -> None:
            self._stream(kind, "".join(f"[{key}] {line}" for line in buffer.splitlines(True)))

        invoked = self.processes.pool(build).start(prefixed if stream else None)
        return {key: self._wait(process) for key, process in invoked.items()}

    def _stream(self, kind: str, buffer: str) -> None:
        self.output.write(buffer, err=kind == ERR, nl=False)

    def _wait(self, invoked: InvokedProcessPort) -> ProcessResult:
        try:
            return invoked.wait()
        except ProcessTimedOutError as e:
            self.error(str(e))
            return e.result or ProcessResult(command=invoked.command, exit_code=None)


def build_application(
    settings: ProcessSettings | None = None,
    processes: Factory | None = None,
) -> Application:
    application = Application(
        name="cmdkit",
        help="Run and inspect external processes.",
        processes=processes or Factory(settings),
    )
    application.add(RunCommand())
    return application


def main() -> None:
    try:
        settings = load_settings()
    except ValueError as e:
        typer.echo(f"cmdkit: invalid configuration: {e}", err=True)
        raise SystemExit(2)
    raise SystemExit(build_application(settings).run())
