from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cmdkit.domain.process import ProcessResult


@dataclass(eq=False)
class CmdkitError(Exception):
    message: str
    details: dict[str, Any] | None = None
    hint: str | None = None
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class ProcessFailedError(CmdkitError):
    result: ProcessResult | None = None


@dataclass(eq=False)
class ProcessTimedOutError(CmdkitError):
    result: ProcessResult | None = None


class ProcessStartError(CmdkitError):
    pass


class ExecutableNotFoundError(ProcessStartError):
    pass


class WorkingDirectoryNotFoundError(ProcessStartError):
    pass


class StrayProcessError(CmdkitError):
    pass


class ProcessSequenceEmptyError(CmdkitError):
    pass


class UnsupportedFakeResultError(CmdkitError):
    pass


class CommandNotFoundError(CmdkitError):
    pass


class UnknownInputError(CmdkitError):
    pass
