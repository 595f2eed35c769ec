import pytest

from cmdkit.domain.errors import CmdkitError, ProcessFailedError
from cmdkit.domain.process import (
    FakeProcessResult,
    ProcessResult,
    ProcessSpec,
    normalize_output,
)


def test_normalize_output_appends_single_newline():
    assert normalize_output("") == ""
    assert normalize_output("hello\n\n") == "hello\n"
    assert normalize_output(["a", "b\n"]) == "a\nb\n"


def test_fake_result_normalizes_output():
    result = FakeProcessResult(output=["one", "two"], error_output="oops", exit_code=3)
    assert result.output == "one\ntwo\n"
    assert result.error_output == "oops\n"
    assert result.exit_code == 3
    assert result.failed()
    assert result.see_in_output("two")
    assert result.see_in_error_output("oops")


def test_with_command_keeps_other_fields():
    result = ProcessResult(exit_code=2, output="x\n").with_command("ls")
    assert result.command == "ls"
    assert result.exit_code == 2
    assert result.output == "x\n"


def test_throw_on_success_returns_self():
    result = ProcessResult(command="ls")
    assert result.throw() is result
    assert result.throw_if(True) is result


def test_throw_on_failure_raises_with_result():
    result = ProcessResult(command="ls", exit_code=1, error_output="denied\n")
    seen = []
    with pytest.raises(ProcessFailedError) as info:
        result.throw(lambda r, e: seen.append((r, e)))
    assert info.value.result is result
    assert 'The command "ls" failed.' in str(info.value)
    assert "Exit Code: 1" in str(info.value)
    assert "denied" in str(info.value)
    assert seen and seen[0][0] is result
    assert isinstance(info.value, CmdkitError)


def test_throw_if_false_does_not_raise():
    result = ProcessResult(command="ls", exit_code=1)
    assert result.throw_if(False) is result


def test_spec_environment_overrides_and_removals():
    spec = ProcessSpec(command="env", environment={"A": "1", "B": None})
    env = spec.child_environment({"B": "gone", "C": "kept"})
    assert env == {"A": "1", "C": "kept"}
    assert ProcessSpec(command="env").child_environment() is None


def test_spec_shell_depends_on_command_type():
    assert ProcessSpec(command="ls -la").uses_shell
    spec = ProcessSpec(command=("ls", "-la"))
    assert not spec.uses_shell
    assert spec.command_line == "ls -la"
