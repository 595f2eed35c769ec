from cmdkit.testing.pytest_plugin import process_factory  # noqa: F401
