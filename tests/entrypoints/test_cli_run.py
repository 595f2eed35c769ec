import json
import sys

from click.testing import CliRunner
import pytest

from cmdkit.application.process_factory import Factory
from cmdkit.entrypoints import cli
from cmdkit.entrypoints.cli import build_application


def invoke(factory, args):
    return CliRunner().invoke(build_application(processes=factory).group(), args)


def test_run_streams_output_and_records(process_factory):
    process_factory.fake({"ls": ["a", "b"], "pwd": "/srv"})

    result = invoke(process_factory, ["run", "ls", "pwd"])

    assert result.exit_code == 0
    assert "a\nb\n/srv\n" in result.output
    process_factory.assert_ran("ls").assert_ran("pwd")


def test_run_exit_code_is_first_failure(process_factory):
    process_factory.fake(
        {
            "ok": "fine",
            "bad": process_factory.result(exit_code=4),
            "worse": process_factory.result(exit_code=9),
        }
    )
    result = invoke(process_factory, ["run", "ok", "bad", "worse"])
    assert result.exit_code == 4
    process_factory.assert_ran_times("*", 3)


def test_run_json_document(process_factory):
    process_factory.fake({"ls": "a"})

    result = invoke(process_factory, ["run", "--json", "ls"])

    assert result.exit_code == 0
    doc = json.loads(result.stdout)
    assert doc["result_schema_version"] == 1
    assert doc["command"] == "run"
    assert doc["args"] == ["ls"]
    assert doc["processes"][0]["output"] == "a\n"
    assert doc["processes"][0]["key"] == 0


def test_run_parallel_prefixes_output(process_factory):
    process_factory.fake({"one": "1", "two": "2"})

    result = invoke(process_factory, ["run", "--parallel", "one", "two"])

    assert result.exit_code == 0
    assert "[0] 1" in result.output
    assert "[1] 2" in result.output


def test_run_applies_path_timeout_and_env(process_factory, tmp_path):
    seen = []

    def handler(process):
        seen.append(process.spec)
        return ""

    process_factory.fake(handler)
    result = invoke(
        process_factory,
        ["run", "--path", str(tmp_path), "--timeout", "0", "--env", "A=1", "--env", "B=x=y", "make"],
    )

    assert result.exit_code == 0
    spec = seen[0]
    assert spec.path == str(tmp_path)
    assert spec.timeout is None
    assert dict(spec.environment) == {"A": "1", "B": "x=y"}


def test_run_rejects_malformed_env(process_factory):
    result = invoke(process_factory, ["run", "--env", "nope", "ls"])
    assert result.exit_code == 2
    process_factory.assert_nothing_ran()


def test_run_real_process():
    factory = Factory()
    command = f'"{sys.executable}" -c "print(42)"'
    result = invoke(factory, ["run", "--", command])
    assert result.exit_code == 0
    assert "42" in result.output


def test_main_reports_bad_configuration(monkeypatch):
    monkeypatch.setenv("CMDKIT_PROCESS_TIMEOUT", "soon")
    with pytest.raises(SystemExit) as info:
        cli.main()
    assert info.value.code == 2


def test_main_runs_the_application(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "argv", ["cmdkit", "--help"])
    with pytest.raises(SystemExit) as info:
        cli.main()
    assert info.value.code == 0
