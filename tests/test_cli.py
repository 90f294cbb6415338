"""Tests for the command line entry point."""

import io
import signal
import sys

import pytest

from src import cli


@pytest.fixture
def quiet_signals(monkeypatch):
    """Keep the test runner's own signal handlers in place."""
    monkeypatch.setattr(signal, "signal", lambda *args: None)


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "TREEWATCH_DEBOUNCE_MS",
        "TREEWATCH_SPAM_WARNING_SECONDS",
        "TREEWATCH_FOLLOW_SYMLINKS",
        "TREEWATCH_CASCADE_RELEASE",
        "TREEWATCH_VERBOSE",
        "TREEWATCH_IGNORE_PATTERNS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(cli, "load_dotenv", lambda: None)


class TestBuildParser:
    """Tests for argument parsing."""

    def test_path_only(self):
        args = cli.build_parser().parse_args(["/data"])

        assert args.path == "/data"
        assert args.verbose is None
        assert args.debounce is None
        assert args.cascade_release is None

    def test_single_dash_verbose(self):
        args = cli.build_parser().parse_args(["/data", "-verbose"])
        assert args.verbose is True

    def test_double_dash_verbose(self):
        args = cli.build_parser().parse_args(["/data", "--verbose"])
        assert args.verbose is True

    def test_no_cascade(self):
        args = cli.build_parser().parse_args(["/data", "--no-cascade"])
        assert args.cascade_release is False

    def test_missing_path_exits_with_one(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.build_parser().parse_args([])

        assert exc_info.value.code == 1

    def test_unknown_argument_exits_with_one(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.build_parser().parse_args(["/data", "--bogus"])

        assert exc_info.value.code == 1


class TestLoadConfig:
    """Tests for merging CLI overrides with the environment."""

    def test_defaults(self, clean_env):
        config = cli.load_config(cli.build_parser().parse_args(["/data"]))

        assert config.debounce_ms == 50
        assert config.verbose is False
        assert config.cascade_release is True

    def test_cli_overrides_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv("TREEWATCH_DEBOUNCE_MS", "500")
        monkeypatch.setenv("TREEWATCH_VERBOSE", "false")

        args = cli.build_parser().parse_args(["/data", "--debounce", "75", "-verbose"])
        config = cli.load_config(args)

        assert config.debounce_ms == 75
        assert config.verbose is True

    def test_environment_used_without_flag(self, clean_env, monkeypatch):
        monkeypatch.setenv("TREEWATCH_CASCADE_RELEASE", "0")

        config = cli.load_config(cli.build_parser().parse_args(["/data"]))

        assert config.cascade_release is False


class TestMain:
    """Tests for the main entry point."""

    def test_missing_directory_returns_one(self, tmp_path, clean_env, capsys):
        missing = tmp_path / "missing"

        assert cli.main([str(missing)]) == 1
        assert "does not exist" in capsys.readouterr().err

    def test_file_instead_of_directory_returns_one(self, tmp_path, clean_env):
        target = tmp_path / "file.txt"
        target.write_text("x")

        assert cli.main([str(target)]) == 1

    def test_invalid_debounce_returns_one(self, tmp_path, clean_env):
        assert cli.main([str(tmp_path), "--debounce", "0"]) == 1

    def test_runs_until_input(self, tmp_path, clean_env, quiet_signals, monkeypatch):
        stdout = io.StringIO()
        monkeypatch.setattr(sys, "stdin", io.StringIO("q"))
        monkeypatch.setattr(sys, "stdout", stdout)

        assert cli.main([str(tmp_path)]) == 0

    def test_runs_until_end_of_input(self, tmp_path, clean_env, quiet_signals, monkeypatch):
        monkeypatch.setattr(sys, "stdin", io.StringIO(""))
        monkeypatch.setattr(sys, "stdout", io.StringIO())

        assert cli.main([str(tmp_path)]) == 0


class TestGracefulShutdown:
    """Tests for GracefulShutdown class."""

    def test_signal_handler_sets_flag(self, quiet_signals):
        shutdown = cli.GracefulShutdown()
        assert shutdown.should_exit is False

        shutdown._handler(signal.SIGTERM, None)

        assert shutdown.should_exit is True

    def test_input_sets_flag(self, quiet_signals):
        shutdown = cli.GracefulShutdown(io.StringIO("\n"))

        assert shutdown.wait(timeout=2.0) is True
        assert shutdown.should_exit
