from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import logging
import sys
from typing import Any

import click
import typer
from typer.main import get_group

from cmdkit.application.process_factory import Factory
from cmdkit.config import ProcessSettings
from cmdkit.console.command import Command
from cmdkit.console.output import Output
from cmdkit.domain.errors import CmdkitError, CommandNotFoundError, UnknownInputError
from cmdkit.log import configure_logging
from cmdkit.ports.container import ContainerPort

logger = logging.getLogger(__name__)


def _bootstrap(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    if verbose:
        configure_logging(verbose=True)
    ctx.ensure_object(Output)


def _option_tokens(key: str, value: Any) -> list[str]:
    if value is True:
        return [key]
    if value is False or value is None:
        return []
    if isinstance(value, (list, tuple)):
        tokens: list[str] = []
        for item in value:
            tokens.extend([key, str(item)])
        return tokens
    return [key, str(value)]


def command_arguments(command: click.Command, arguments: Mapping[str, Any]) -> list[str]:
    """Translate a ``{"name": value, "--option": value}`` mapping into argv."""
    options: list[str] = []
    positional: dict[str, Any] = {}
    for key, value in arguments.items():
        if key.startswith("-"):
            options.extend(_option_tokens(key, value))
        else:
            positional[key] = value

    declared = [p for p in command.params if isinstance(p, click.Argument)]
    unknown = sorted(set(positional) - {p.name for p in declared})
    if unknown:
        raise UnknownInputError(
            f'The "{unknown[0]}" argument does not exist.',
            details={"command": command.name, "unknown": unknown},
        )

    values: list[str] = []
    for param in declared:
        if param.name not in positional:
            continue
        value = positional[param.name]
        if isinstance(value, (list, tuple)):
            values.extend(str(item) for item in value)
        else:
            values.append(str(value))
    return options + (["--", *values] if values else [])


def _exit_code(rv: object) -> int:
    if isinstance(rv, int) and not isinstance(rv, bool):
        return rv
    return 0


class Application:
    def __init__(
        self,
        container: ContainerPort | None = None,
        *,
        name: str = "cmdkit",
        help: str | None = None,
        processes: Factory | None = None,
        settings: ProcessSettings | None = None,
    ) -> None:
        self.container = container
        self.name = name
        self.processes = processes or Factory(settings)
        self.typer = typer.Typer(name=name, help=help, add_completion=False)
        self.typer.callback()(_bootstrap)
        self._commands: dict[str, Command | click.Command] = {}

    @classmethod
    def start(
        cls,
        container: ContainerPort | None,
        commands: Iterable[str] = (),
        **kwargs: Any,
    ) -> Application:
        application = cls(container, **kwargs)
        application.resolve_commands(commands)
        return application

    def set_container(self, container: ContainerPort | None) -> None:
        self.container = container
        for command in self._commands.values():
            if isinstance(command, Command):
                command.set_container(container)

    def add(self, command: Command | click.Command) -> Command | click.Command:
        if isinstance(command, Command):
            if not command.name:
                raise ValueError(
                    f"The command defined in {type(command).__name__} cannot have an empty name."
                )
            command.set_container(self.container)
            command.set_application(self)
            self.typer.command(
                name=command.name,
                help=command.description or None,
                hidden=command.hidden,
            )(command.callback())
            name = command.name
        elif isinstance(command, click.Command):
            if not command.name:
                raise ValueError("Click commands must have a name to be registered.")
            name = command.name
        else:
            raise TypeError(f"Cannot register {type(command).__name__} as a console command.")
        self._commands[name] = command
        logger.debug("Registered command %s", name)
        return command

    def resolve(self, key: str) -> Command | click.Command:
        if self.container is None:
            raise CmdkitError(
                f"Cannot resolve [{key}] without a container.",
                hint="Pass a container to Application() or call set_container().",
            )
        return self.add(self.container[key])  # type: ignore[arg-type]

    def resolve_commands(self, keys: Iterable[str]) -> list[Command | click.Command]:
        return [self.resolve(key) for key in keys]

    def has(self, name: str) -> bool:
        return name in self._commands

    def all(self) -> dict[str, Command | click.Command]:
        return dict(self._commands)

    def group(self) -> click.Group:
        group = get_group(self.typer)
        for name, command in self._commands.items():
            if not isinstance(command, Command):
                group.add_command(command, name)
        return group

    def find(self, name: str) -> click.Command:
        if name not in self._commands:
            raise CommandNotFoundError(
                f'Command "{name}" is not defined.',
                details={"name": name, "available": sorted(self._commands)},
            )
        return self.group().commands[name]

    def call(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        output: Output | None = None,
    ) -> int:
        command = self.find(name)
        argv = command_arguments(command, arguments or {})
        logger.debug("Calling command %s with %s", name, argv)
        rv = command.main(
            args=argv,
            prog_name=name,
            standalone_mode=False,
            obj=output or Output(),
        )
        return _exit_code(rv)

    def run(self, args: Sequence[str] | None = None) -> int:
        group = self.group()
        try:
            rv = group.main(
                args=list(args) if args is not None else None,
                prog_name=self.name,
                standalone_mode=False,
            )
        except click.ClickException as e:
            e.show()
            return e.exit_code
        except click.Abort:
            click.echo("Aborted!", err=True)
            return 1
        except CmdkitError as e:
            logger.debug("Command failed", exc_info=True)
            click.echo(f"Error: {e}", err=True)
            if e.hint:
                click.echo(f"Hint: {e.hint}", err=True)
            return 1
        return _exit_code(rv)

    def __call__(self, args: Sequence[str] | None = None) -> None:
        sys.exit(self.run(args))
