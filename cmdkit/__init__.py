from cmdkit.application.fakes import (
    FakeInvokedProcess,
    FakeProcessDescription,
    FakeProcessSequence,
)
from cmdkit.application.pending_process import PendingProcess
from cmdkit.application.pool import InvokedProcessPool, Pool, ProcessPoolResults
from cmdkit.application.process_factory import Factory
from cmdkit.config import ProcessSettings, load_settings
from cmdkit.console.application import Application
from cmdkit.console.command import Command
from cmdkit.console.output import Output
from cmdkit.domain.process import FakeProcessResult, ProcessResult

__all__ = [
    "Application",
    "Command",
    "Factory",
    "FakeInvokedProcess",
    "FakeProcessDescription",
    "FakeProcessResult",
    "FakeProcessSequence",
    "InvokedProcessPool",
    "Output",
    "PendingProcess",
    "Pool",
    "ProcessPoolResults",
    "ProcessResult",
    "ProcessSettings",
    "load_settings",
]
