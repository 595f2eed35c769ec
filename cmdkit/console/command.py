from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
import functools
from typing import TYPE_CHECKING, Any

import click
import typer

from cmdkit.console.output import Output
from cmdkit.domain.errors import UnknownInputError
from cmdkit.ports.container import ContainerPort

if TYPE_CHECKING:
    from cmdkit.application.process_factory import Factory
    from cmdkit.console.application import Application


def _option_name(key: str) -> str:
    return key.lstrip("-").replace("-", "_")


class Command:
    """Base class for console commands.

    Subclasses set ``name`` and ``description`` and implement ``handle``. The
    parameters of ``handle`` are the command's arguments and options, declared
    the usual typer way (``typer.Argument`` / ``typer.Option`` defaults or
    ``Annotated`` metadata). ``handle`` returns the exit code; ``None`` means 0.
    """

    name: str = ""
    description: str = ""
    hidden: bool = False

    def __init__(self) -> None:
        self.container: ContainerPort | None = None
        self.application: Application | None = None
        self.context: click.Context | None = None
        self.input: dict[str, Any] = {}
        self.output = Output()

    def handle(self) -> int | None:
        raise NotImplementedError(f"{type(self).__name__} must implement handle()")

    def set_container(self, container: ContainerPort | None) -> None:
        self.container = container

    def set_application(self, application: Application) -> None:
        self.application = application

    @property
    def processes(self) -> Factory:
        return self._require_application().processes

    def callback(self) -> Callable[..., None]:
        handle = self.handle

        @functools.wraps(handle)
        def invoke(**params: Any) -> None:
            code = self.run(click.get_current_context(), params)
            if code:
                raise typer.Exit(code)

        return invoke

    def run(self, ctx: click.Context, params: Mapping[str, Any]) -> int:
        previous = (self.context, self.input, self.output)
        self.context = ctx
        self.input = dict(params)
        self.output = ctx.ensure_object(Output)
        try:
            code = self.handle(**params)
        finally:
            self.context, self.input, self.output = previous
        return int(code or 0)

    # Input

    def _parameters(self, kind: type[click.Parameter]) -> dict[str, Any]:
        if self.context is None:
            return {}
        names = [
            p.name for p in self.context.command.params if isinstance(p, kind) and p.name
        ]
        return {name: self.input.get(name) for name in names}

    def arguments(self) -> dict[str, Any]:
        return self._parameters(click.Argument)

    def options(self) -> dict[str, Any]:
        return self._parameters(click.Option)

    def argument(self, key: str | None = None) -> Any:
        arguments = self.arguments()
        if key is None:
            return arguments
        if key not in arguments:
            raise UnknownInputError(f'The "{key}" argument does not exist.')
        return arguments[key]

    def option(self, key: str | None = None) -> Any:
        options = self.options()
        if key is None:
            return options
        name = _option_name(key)
        if name not in options:
            raise UnknownInputError(f'The "--{key.lstrip("-")}" option does not exist.')
        return options[name]

    def has_argument(self, key: str) -> bool:
        return key in self.arguments()

    def has_option(self, key: str) -> bool:
        return _option_name(key) in self.options()

    # Output

    def line(self, text: str = "", style: str | None = None) -> None:
        self.output.write(text, style)

    def info(self, text: str) -> None:
        self.line(text, "info")

    def comment(self, text: str) -> None:
        self.line(text, "comment")

    def question(self, text: str) -> None:
        self.line(text, "question")

    def error(self, text: str) -> None:
        self.output.write(text, "error", err=True)

    def warn(self, text: str) -> None:
        self.output.write(text, "warning", err=True)

    def alert(self, text: str) -> None:
        border = "*" * (len(text) + 12)
        self.comment(border)
        self.comment(f"*     {text}     *")
        self.comment(border)
        self.new_line()

    def new_line(self, count: int = 1) -> None:
        self.output.new_line(count)

    def table(self, headers: Sequence[object], rows: Iterable[Sequence[object]]) -> None:
        self.output.table(headers, rows)

    # Prompts

    def confirm(self, question: str, default: bool = False) -> bool:
        return typer.confirm(question, default=default)

    def ask(self, question: str, default: str | None = None) -> str:
        return typer.prompt(question, default=default)

    def secret(self, question: str) -> str:
        return typer.prompt(question, hide_input=True)

    def choice(self, question: str, choices: Sequence[str], default: str | None = None) -> str:
        return typer.prompt(question, default=default, type=click.Choice(list(choices)))

    # Sibling commands

    def call(self, command: str, arguments: Mapping[str, Any] | None = None) -> int:
        return self._require_application().call(command, arguments, output=self.output)

    def call_silently(self, command: str, arguments: Mapping[str, Any] | None = None) -> int:
        return self._require_application().call(command, arguments, output=Output(quiet=True))

    def _require_application(self) -> Application:
        if self.application is None:
            raise RuntimeError(f'Command "{self.name}" is not registered with an application.')
        return self.application
