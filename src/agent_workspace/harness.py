"""Test-runner configuration as a record.

The settings themselves live in ``pyproject.toml`` (``[tool.pytest.ini_options]``
and ``[tool.coverage.run]``). ``load_harness_config`` reads them back into a
``HarnessConfig`` so they can be inspected and asserted on.
"""

import shlex
import tomllib
from dataclasses import dataclass
from pathlib import Path

from .errors import ParsingError

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_COVERAGE_EXCLUDE = (
    "*/site-packages/*",
    "*/.venv/*",
    "build/*",
    "dist/*",
    "*.pyi",
    "*/conftest.py",
    "setup.py",
    "tests/*",
)

# pytest-cov report names mapped to coverage.py reporter names
_REPORT_NAMES = {
    "term": "text",
    "term-missing": "text",
}


@dataclass(frozen=True)
class HarnessConfig:
    environment: str = "process"  # tests run in the local interpreter, no browser shim
    globals: bool = True  # pytest injects fixtures without imports
    setup_files: tuple[str, ...] = ("tests/conftest.py",)
    test_timeout_ms: int = DEFAULT_TIMEOUT_MS
    hook_timeout_ms: int = DEFAULT_TIMEOUT_MS
    coverage_provider: str = "coverage.py"
    coverage_reporters: tuple[str, ...] = ("text", "json", "html")
    coverage_exclude: tuple[str, ...] = DEFAULT_COVERAGE_EXCLUDE


def _timeout_ms(value) -> int:
    try:
        return int(float(value) * 1000)
    except (TypeError, ValueError) as e:
        raise ParsingError(f"Invalid pytest timeout: {value!r}", original=e) from e


def _coverage_reports(addopts) -> tuple[str, ...]:
    args = shlex.split(addopts) if isinstance(addopts, str) else list(addopts)
    reports = []
    for i, arg in enumerate(args):
        if arg.startswith("--cov-report="):
            value = arg.split("=", 1)[1]
        elif arg == "--cov-report" and i + 1 < len(args):
            value = args[i + 1]
        else:
            continue
        name = value.split(":", 1)[0]
        reports.append(_REPORT_NAMES.get(name, name))
    return tuple(reports)


def load_harness_config(pyproject_path: str | Path) -> HarnessConfig:
    """Build a HarnessConfig from a pyproject.toml; absent settings keep defaults."""
    path = Path(pyproject_path)
    try:
        with open(path, "rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as e:
        raise ParsingError(f"Invalid TOML in {path}: {e}", original=e) from e

    tool = data.get("tool", {})
    pytest_options = tool.get("pytest", {}).get("ini_options", {})
    coverage_run = tool.get("coverage", {}).get("run", {})
    defaults = HarnessConfig()

    timeout_ms = defaults.test_timeout_ms
    if "timeout" in pytest_options:
        timeout_ms = _timeout_ms(pytest_options["timeout"])

    reporters = defaults.coverage_reporters
    if "addopts" in pytest_options:
        reporters = _coverage_reports(pytest_options["addopts"]) or reporters

    setup_files = defaults.setup_files
    if "testpaths" in pytest_options:
        setup_files = tuple(f"{p}/conftest.py" for p in pytest_options["testpaths"])

    return HarnessConfig(
        setup_files=setup_files,
        # pytest-timeout applies one budget to the test and its fixture setup/teardown
        test_timeout_ms=timeout_ms,
        hook_timeout_ms=timeout_ms,
        coverage_reporters=reporters,
        coverage_exclude=tuple(coverage_run.get("omit", defaults.coverage_exclude)),
    )
