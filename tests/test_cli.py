"""Tests for the depbound command line.

The registry is never contacted: ``_compat_async`` is replaced with an
AsyncMock returning a prepared :class:`CompatResult` or raising the error
under test.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Generator, List, Optional, Tuple
from unittest.mock import AsyncMock, patch

import click
import pytest
from click.testing import CliRunner
from semantic_version import Version

from depbound.cli import cli, main
from depbound.core.bound import compute_combined_bound
from depbound.core.compat import CompatResult
from depbound.exceptions import (
    DepBoundError,
    FileOperationError,
    PairwiseDependentsUnsatisfiableError,
)
from depbound.models import Dependent, PackageId, PublishedVersion, parse_constraint
from depbound.utils.logger import disable_logging

COMPAT_ASYNC = "depbound.commands.compat._compat_async"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep env vars and logging set by the CLI from leaking between tests."""
    for name in ("NO_COLOR", "DEPBOUND_CONFIG", "DEPBOUND_LOCKFILE", "DEPBOUND_MAX_RUST_VERSION"):
        monkeypatch.delenv(name, raising=False)
    yield
    disable_logging()


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def dependent(name: str, version: str, requirement: str) -> Dependent:
    return Dependent(PackageId(name, version), parse_constraint(requirement))


def release(number: str, yanked: bool = False, rust_version: Optional[str] = None) -> PublishedVersion:
    return PublishedVersion(Version(number), yanked=yanked, rust_version=rust_version)


@pytest.fixture
def serde_result() -> CompatResult:
    """serde with dependents requiring ^1.2.0 and ~1.3.0."""
    combined = compute_combined_bound(
        [dependent("a", "0.1.0", "^1.2.0"), dependent("b", "0.2.0", "~1.3.0")], "serde"
    )
    versions = (
        release("1.2.0"),
        release("1.3.0", rust_version="1.56"),
        release("1.3.1", yanked=True),
        release("1.3.5", rust_version="1.60"),
        release("1.4.0"),
    )
    return CompatResult(target="serde", combined=combined, low=1, high=3, versions=versions)


def table_versions(output: str) -> List[str]:
    """Versions in the first column of the rendered table rows."""
    return re.findall(r"^\W*(\d+\.\d+\.\d+)\s", output, re.MULTILINE)


def invoke(runner: CliRunner, *args: str):
    with runner.isolated_filesystem():
        return runner.invoke(cli, list(args), catch_exceptions=False)


@pytest.mark.unit
class TestGroup:
    """Tests for global options."""

    def test_version(self, runner: CliRunner) -> None:
        from depbound.__version__ import __version__

        result = invoke(runner, "--version")

        assert result.exit_code == 0
        assert result.output.strip() == f"depbound {__version__}"

    def test_help_lists_compat(self, runner: CliRunner) -> None:
        result = invoke(runner, "--help")

        assert result.exit_code == 0
        assert "compat" in result.output

    def test_no_color_sets_env(self, runner: CliRunner) -> None:
        import os

        result = invoke(runner, "--no-color", "compat", "--help")

        assert result.exit_code == 0
        assert os.environ["NO_COLOR"] == "1"

    @pytest.mark.parametrize(
        "flags, level",
        [((), logging.WARNING), (("-v",), logging.INFO), (("-vv",), logging.DEBUG)],
    )
    def test_verbosity_sets_log_level(
        self, runner: CliRunner, flags: Tuple[str, ...], level: int
    ) -> None:
        result = invoke(runner, *flags, "compat", "--help")

        assert result.exit_code == 0
        assert logging.getLogger("depbound").level == level

    def test_invalid_config_file(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "depbound.toml"
        config.write_text("[depbound]\nunknown = 1\n", encoding="utf-8")

        result = runner.invoke(cli, ["--config", str(config), "compat", "serde"])

        assert result.exit_code == 1
        assert "Unknown configuration keys: unknown" in result.output


@pytest.mark.unit
class TestCompatCommand:
    """Tests for ``depbound compat``."""

    def test_table(self, runner: CliRunner, serde_result: CompatResult) -> None:
        with patch(COMPAT_ASYNC, new_callable=AsyncMock, return_value=serde_result):
            result = invoke(runner, "compat", "serde", "--no-cache")

        assert result.exit_code == 0
        assert "Compatible versions of serde" in result.output
        assert table_versions(result.output) == ["1.3.5", "1.3.0"]
        assert ">=1.3.0, <1.4.0 from 2 dependent(s)" in result.output

    def test_simple_newest_first(self, runner: CliRunner, serde_result: CompatResult) -> None:
        with patch(COMPAT_ASYNC, new_callable=AsyncMock, return_value=serde_result):
            result = invoke(runner, "compat", "serde", "--format", "simple", "--include-yanked")

        assert result.exit_code == 0
        assert result.output == "Compatible versions of serde:\n\n1.3.5\n1.3.1\n1.3.0\n"

    def test_json(self, runner: CliRunner, serde_result: CompatResult) -> None:
        with patch(COMPAT_ASYNC, new_callable=AsyncMock, return_value=serde_result):
            result = invoke(runner, "compat", "serde", "-f", "json", "-n", "1")

        data = json.loads(result.output)
        assert data["target"] == "serde"
        assert data["requirement"] == ">=1.3.0, <1.4.0"
        assert data["bound"]["upper"] == {"version": "1.4.0", "inclusive": False}
        assert [d["name"] for d in data["dependents"]] == ["a", "b"]
        assert data["versions"] == [{"version": "1.3.5", "yanked": False, "rust_version": "1.60"}]

    def test_max_rust_version(self, runner: CliRunner, serde_result: CompatResult) -> None:
        with patch(COMPAT_ASYNC, new_callable=AsyncMock, return_value=serde_result):
            result = invoke(runner, "compat", "serde", "-f", "simple", "-m", "1.56")

        assert result.output.splitlines()[2:] == ["1.3.0"]

    def test_lockfile_path_passed(self, runner: CliRunner, serde_result: CompatResult) -> None:
        with patch(COMPAT_ASYNC, new_callable=AsyncMock, return_value=serde_result) as mock:
            invoke(runner, "compat", "serde", "--path", "sub/Cargo.lock", "--no-cache")

        name, lockfile, cache = mock.await_args[0]
        assert name == "serde"
        assert lockfile == Path("sub/Cargo.lock")
        assert cache is None

    def test_default_lockfile_and_cache(self, runner: CliRunner, serde_result: CompatResult) -> None:
        with patch(COMPAT_ASYNC, new_callable=AsyncMock, return_value=serde_result) as mock:
            invoke(runner, "compat", "serde")

        _, lockfile, cache = mock.await_args[0]
        assert lockfile == Path("Cargo.lock")
        assert cache is not None

    @pytest.mark.parametrize("count", ["0", "-1", "many"])
    def test_invalid_count(self, runner: CliRunner, count: str) -> None:
        with patch(COMPAT_ASYNC, new_callable=AsyncMock) as mock:
            result = invoke(runner, "compat", "serde", f"--count={count}")

        assert result.exit_code == 2
        assert "--count" in result.output
        mock.assert_not_awaited()

    def test_config_file_values(self, runner: CliRunner, serde_result: CompatResult) -> None:
        with runner.isolated_filesystem():
            Path("depbound.toml").write_text(
                '[depbound]\ncount = "all"\ninclude_yanked = true\n', encoding="utf-8"
            )
            with patch(COMPAT_ASYNC, new_callable=AsyncMock, return_value=serde_result):
                result = runner.invoke(cli, ["compat", "serde", "-f", "simple", "--no-cache"])

        assert result.output.splitlines()[2:] == ["1.3.5", "1.3.1", "1.3.0"]

    def test_conflict_text(self, runner: CliRunner) -> None:
        error = PairwiseDependentsUnsatisfiableError(
            target="serde",
            lower=dependent("a", "0.1.0", "^1.2.0"),
            upper=dependent("c", "1.0.0", "<1.0.0"),
        )

        with patch(COMPAT_ASYNC, new_callable=AsyncMock, side_effect=error):
            result = invoke(runner, "compat", "serde")

        assert result.exit_code == 1
        assert "a v0.1.0" in result.output
        assert "c v1.0.0" in result.output
        assert "Dependents involved:" in result.output

    def test_conflict_json(self, runner: CliRunner) -> None:
        error = PairwiseDependentsUnsatisfiableError(
            target="serde",
            lower=dependent("a", "0.1.0", "^1.2.0"),
            upper=dependent("c", "1.0.0", "<1.0.0"),
        )

        with patch(COMPAT_ASYNC, new_callable=AsyncMock, side_effect=error):
            result = invoke(runner, "compat", "serde", "--format", "json")

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["target"] == "serde"
        assert [d["requirement"] for d in data["dependents"]] == ["^1.2.0", "<1.0.0"]

    def test_missing_lockfile(self, runner: CliRunner) -> None:
        with patch(
            COMPAT_ASYNC,
            new_callable=AsyncMock,
            side_effect=FileOperationError("File not found: Cargo.lock"),
        ):
            result = invoke(runner, "compat", "serde")

        assert result.exit_code == 1
        assert "File not found: Cargo.lock" in result.output


@pytest.mark.unit
class TestMain:
    """Tests for the exit codes of main()."""

    def test_success(self) -> None:
        with patch("depbound.cli.cli") as mock_cli:
            assert main() == 0

        mock_cli.assert_called_once_with(standalone_mode=False)

    def test_usage_error(self) -> None:
        with patch("depbound.cli.cli", side_effect=click.UsageError("bad")):
            assert main() == 2

    def test_abort(self) -> None:
        with patch("depbound.cli.cli", side_effect=click.exceptions.Abort()):
            assert main() == 130

    def test_keyboard_interrupt(self) -> None:
        with patch("depbound.cli.cli", side_effect=KeyboardInterrupt()):
            assert main() == 130

    def test_depbound_error(self) -> None:
        with patch("depbound.cli.cli", side_effect=DepBoundError("boom")):
            assert main() == 1

    def test_unexpected_error(self) -> None:
        with patch("depbound.cli.cli", side_effect=RuntimeError("boom")):
            assert main() == 1
