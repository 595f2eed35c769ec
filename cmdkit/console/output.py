from __future__ import annotations

from collections.abc import Iterable, Sequence
import sys
from typing import Any

import click
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

STYLES: dict[str, dict[str, Any]] = {
    "info": {"fg": "green"},
    "comment": {"fg": "yellow"},
    "question": {"fg": "black", "bg": "cyan"},
    "error": {"fg": "white", "bg": "red"},
    "warning": {"fg": "yellow"},
}


def build_table(headers: Sequence[object], rows: Iterable[Sequence[object]]) -> Table:
    table = Table(box=box.ASCII, show_header=bool(headers))
    for header in headers:
        table.add_column(Text(str(header)))
    for row in rows:
        table.add_row(*(Text(str(cell)) for cell in row))
    return table


class Output:
    def __init__(self, quiet: bool = False, color: bool | None = None) -> None:
        self.quiet = quiet
        self.color = color

    def write(
        self,
        text: str = "",
        style: str | None = None,
        *,
        err: bool = False,
        nl: bool = True,
    ) -> None:
        if self.quiet:
            return
        click.secho(text, err=err, nl=nl, color=self.color, **STYLES.get(style or "", {}))

    def new_line(self, count: int = 1) -> None:
        for _ in range(count):
            self.write()

    def console(self, err: bool = False) -> Console:
        # Resolved per call so redirected streams (CliRunner, capsys) are honoured.
        return Console(
            file=sys.stderr if err else sys.stdout,
            quiet=self.quiet,
            force_terminal=self.color,
            no_color=self.color is False,
            highlight=False,
        )

    def table(
        self,
        headers: Sequence[object],
        rows: Iterable[Sequence[object]],
        *,
        err: bool = False,
    ) -> None:
        self.console(err).print(build_table(headers, rows))
