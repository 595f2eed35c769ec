import os
import sys
import time

import pytest

from cmdkit.adapters.process.subprocess_runner import SubprocessRunner
from cmdkit.domain.errors import (
    ExecutableNotFoundError,
    ProcessStartError,
    ProcessTimedOutError,
    WorkingDirectoryNotFoundError,
)
from cmdkit.domain.process import ProcessSpec


def python(code: str) -> tuple[str, ...]:
    return (sys.executable, "-c", code)


def test_runs_and_captures_both_streams():
    code = "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"
    result = SubprocessRunner().start(ProcessSpec(command=python(code))).wait()
    assert result.output == "out\n"
    assert result.error_output == "err\n"
    assert result.exit_code == 3
    assert result.failed()


def test_string_commands_run_through_the_shell():
    result = SubprocessRunner().start(ProcessSpec(command="echo shell && echo again")).wait()
    assert result.output.split() == ["shell", "again"]
    assert result.successful()


def test_working_directory_and_environment(tmp_path):
    code = "import os; print(os.getcwd()); print(os.environ['CMDKIT_TEST'])"
    spec = ProcessSpec(command=python(code), path=str(tmp_path), environment={"CMDKIT_TEST": "yes"})
    lines = SubprocessRunner().start(spec).wait().output.splitlines()
    assert lines[0] == str(tmp_path.resolve())
    assert lines[1] == "yes"


def test_input_is_fed_to_stdin():
    spec = ProcessSpec(command=python("import sys; print(sys.stdin.read().upper())"), input="hello")
    assert SubprocessRunner().start(spec).wait().output == "HELLO\n"


def test_quiet_discards_output():
    spec = ProcessSpec(command=python("print('noise')"), quiet=True)
    result = SubprocessRunner().start(spec).wait()
    assert result.output == ""
    assert result.successful()


def test_output_handler_and_completion_callback():
    chunks = []
    completed = []
    process = SubprocessRunner().start(
        ProcessSpec(command=python("print('a'); print('b')")),
        output=lambda kind, buffer: chunks.append((kind, buffer)),
        on_complete=completed.append,
    )
    result = process.wait()
    assert chunks == [("out", "a\n"), ("out", "b\n")]
    assert completed == [result]
    assert process.wait() is result
    assert not process.running()


def test_timeout_kills_the_process():
    spec = ProcessSpec(command=python("import time; print('started', flush=True); time.sleep(30)"), timeout=0.5)
    with pytest.raises(ProcessTimedOutError) as info:
        SubprocessRunner().start(spec).wait()
    assert "exceeded the timeout of 0.5 seconds" in str(info.value)
    assert info.value.result is not None
    assert info.value.result.output == "started\n"


def test_idle_timeout_kills_a_silent_process():
    spec = ProcessSpec(command=python("import time; time.sleep(30)"), idle_timeout=0.3)
    with pytest.raises(ProcessTimedOutError, match="idle timeout"):
        SubprocessRunner().start(spec).wait()


def test_missing_executable():
    with pytest.raises(ExecutableNotFoundError):
        SubprocessRunner().start(ProcessSpec(command=("definitely-not-a-real-binary-cmdkit",)))


def test_large_input_does_not_block_start_or_timeout():
    spec = ProcessSpec(
        command=python("import time; time.sleep(5)"),
        input="x" * 2_000_000,
        timeout=0.5,
    )
    began = time.monotonic()
    process = SubprocessRunner().start(spec)
    assert time.monotonic() - began < 1.0
    with pytest.raises(ProcessTimedOutError):
        process.wait()
    assert time.monotonic() - began < 4.0


def test_timed_out_process_is_completed_with_partial_result():
    completed = []
    process = SubprocessRunner().start(
        ProcessSpec(command=python("import time; time.sleep(30)"), timeout=0.3),
        on_complete=completed.append,
    )
    with pytest.raises(ProcessTimedOutError) as info:
        process.wait()
    assert completed == [info.value.result]
    assert process.wait() is info.value.result
    assert info.value.result.failed()


def test_missing_working_directory_is_reported(tmp_path):
    missing = tmp_path / "gone"
    spec = ProcessSpec(command="echo hi", path=str(missing))
    with pytest.raises(WorkingDirectoryNotFoundError) as info:
        SubprocessRunner().start(spec)
    assert str(missing) in str(info.value)
    assert isinstance(info.value, ProcessStartError)


def test_file_as_working_directory_is_reported(tmp_path):
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x")
    with pytest.raises(WorkingDirectoryNotFoundError):
        SubprocessRunner().start(ProcessSpec(command="echo hi", path=str(not_a_dir)))


@pytest.mark.skipif(os.name != "posix", reason="execute permission bits are POSIX only")
def test_unexecutable_program_is_a_start_error(tmp_path):
    script = tmp_path / "script.sh"
    script.write_text("#!/bin/sh\necho hi\n")
    script.chmod(0o644)
    with pytest.raises(ProcessStartError) as info:
        SubprocessRunner().start(ProcessSpec(command=(str(script),), path=str(tmp_path)))
    assert str(tmp_path) in str(info.value)
