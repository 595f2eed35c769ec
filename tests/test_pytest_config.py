from pathlib import Path
import tomllib


def test_pytest_collects_tool_tests_in_importlib_mode() -> None:
    pyproject_path = Path(__file__).resolve().parents[1] / "pyproject.toml"
    data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
    pytest_options = data.get("tool", {}).get("pytest", {}).get("ini_options", {})
    assert "tools/forbidden_imports/tests" in pytest_options.get("testpaths", [])
    assert "--import-mode=importlib" in pytest_options.get("addopts", "")
