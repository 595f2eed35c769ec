import pytest

from cmdkit.config import ProcessSettings, find_pyproject, load_settings, read_pyproject_settings


def write_pyproject(path, body):
    path.write_text(body, encoding="utf-8")
    return path


def test_defaults_without_tool_table(tmp_path):
    write_pyproject(tmp_path / "pyproject.toml", "[project]\nname = \"demo\"\n")
    assert find_pyproject(tmp_path) == (tmp_path / "pyproject.toml").resolve()
    assert load_settings(tmp_path, environ={}) == ProcessSettings()


def test_reads_tool_table(tmp_path):
    pyproject = write_pyproject(
        tmp_path / "pyproject.toml",
        "[tool.cmdkit.process]\ntimeout = 5\nidle_timeout = 1.5\nprevent_stray_processes = true\n",
    )
    settings = read_pyproject_settings(pyproject)
    assert settings == ProcessSettings(timeout=5.0, idle_timeout=1.5, prevent_stray_processes=True)


def test_finds_pyproject_in_parent(tmp_path):
    write_pyproject(tmp_path / "pyproject.toml", "[tool.cmdkit.process]\ntimeout = 7\n")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert load_settings(nested, environ={}).timeout == 7.0


def test_environment_overrides_pyproject(tmp_path):
    write_pyproject(tmp_path / "pyproject.toml", "[tool.cmdkit.process]\ntimeout = 7\n")
    settings = load_settings(
        tmp_path,
        environ={
            "CMDKIT_PROCESS_TIMEOUT": "none",
            "CMDKIT_PROCESS_IDLE_TIMEOUT": "2",
            "CMDKIT_PREVENT_STRAY_PROCESSES": "yes",
        },
    )
    assert settings.timeout is None
    assert settings.idle_timeout == 2.0
    assert settings.prevent_stray_processes


def test_zero_timeout_means_forever(tmp_path):
    write_pyproject(tmp_path / "pyproject.toml", "[tool.cmdkit.process]\ntimeout = 0\n")
    assert load_settings(tmp_path, environ={}).timeout is None


@pytest.mark.parametrize(
    "environ",
    [
        {"CMDKIT_PROCESS_TIMEOUT": "soon"},
        {"CMDKIT_PROCESS_TIMEOUT": "-1"},
        {"CMDKIT_PREVENT_STRAY_PROCESSES": "maybe"},
    ],
)
def test_invalid_values_raise(tmp_path, environ):
    write_pyproject(tmp_path / "pyproject.toml", "")
    with pytest.raises(ValueError):
        load_settings(tmp_path, environ=environ)
