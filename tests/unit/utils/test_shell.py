"""Unit tests for shell execution utilities."""

import subprocess
import sys
from unittest.mock import MagicMock, patch

import pytest
from pakky.utils.shell import CommandResult, command_exists, run_command, stream_command


class TestCommandResult:
    """Tests for CommandResult dataclass."""

    def test_success(self) -> None:
        """Exit code 0 is success."""
        assert CommandResult(stdout="", stderr="", returncode=0).success
        assert not CommandResult(stdout="", stderr="", returncode=2).success

    def test_output_lines(self) -> None:
        """Non-empty stdout lines come before stderr lines."""
        result = CommandResult(stdout="a\n\nb\n", stderr="  \nc\n", returncode=0)
        assert result.output_lines == ["a", "b", "c"]


class TestRunCommand:
    """Tests for run_command function."""

    @patch("pakky.utils.shell.subprocess.run")
    def test_captures_output(self, mock_run: MagicMock) -> None:
        """run_command returns captured output and exit code."""
        mock_run.return_value = MagicMock(stdout="out", stderr="err", returncode=3)

        result = run_command(["brew", "list"])

        assert result == CommandResult(stdout="out", stderr="err", returncode=3)
        assert mock_run.call_args.kwargs["capture_output"] is True
        assert mock_run.call_args.kwargs["timeout"] == 60.0

    @patch("pakky.utils.shell.subprocess.run")
    def test_merges_env(self, mock_run: MagicMock) -> None:
        """Custom env is merged with the current environment."""
        mock_run.return_value = MagicMock(stdout="", stderr="", returncode=0)

        run_command(["brew", "list"], env={"HOMEBREW_NO_AUTO_UPDATE": "1"})

        call_env = mock_run.call_args.kwargs["env"]
        assert call_env["HOMEBREW_NO_AUTO_UPDATE"] == "1"
        assert "PATH" in call_env

    @patch("pakky.utils.shell.subprocess.run")
    def test_no_env_inherits(self, mock_run: MagicMock) -> None:
        """Without env the child inherits the environment unchanged."""
        mock_run.return_value = MagicMock(stdout="", stderr="", returncode=0)

        run_command(["true"])

        assert mock_run.call_args.kwargs["env"] is None

    def test_raises_file_not_found(self) -> None:
        """Missing executables raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            run_command(["definitely-not-a-real-command-pakky"])


class TestStreamCommand:
    """Tests for stream_command function."""

    def test_streams_lines_in_order(self) -> None:
        """Lines reach the callback in order, empty lines dropped."""
        lines: list[str] = []
        code = stream_command(
            [sys.executable, "-c", "print('one'); print(); print('two')"],
            lines.append,
        )

        assert code == 0
        assert lines == ["one", "two"]

    def test_merges_stderr(self) -> None:
        """stderr is delivered through the same callback."""
        lines: list[str] = []
        code = stream_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('oops\\n'); sys.exit(4)"],
            lines.append,
        )

        assert code == 4
        assert lines == ["oops"]

    def test_raises_file_not_found(self) -> None:
        """Missing executables raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            stream_command(["definitely-not-a-real-command-pakky"], lambda line: None)

    @patch("pakky.utils.shell.subprocess.Popen")
    def test_stdin_is_closed(self, mock_popen: MagicMock) -> None:
        """Child processes never read from the terminal."""
        process = mock_popen.return_value.__enter__.return_value
        process.stdout = iter(["done\n"])
        process.wait.return_value = 0

        stream_command(["brew", "install", "jq"], lambda line: None)

        assert mock_popen.call_args.kwargs["stdin"] is subprocess.DEVNULL

    @patch("pakky.utils.shell.subprocess.Popen")
    def test_missing_output_pipe(self, mock_popen: MagicMock) -> None:
        """A process without an output pipe raises OSError."""
        process = mock_popen.return_value.__enter__.return_value
        process.stdout = None

        with pytest.raises(OSError, match="No output pipe"):
            stream_command(["brew", "install", "jq"], lambda line: None)


class TestCommandExists:
    """Tests for command_exists function."""

    def test_existing(self) -> None:
        """Commands found by which exist."""
        with patch("pakky.utils.shell.shutil.which", return_value="/usr/bin/brew"):
            assert command_exists("brew") is True

    def test_missing(self) -> None:
        """Unknown commands are reported missing."""
        with patch("pakky.utils.shell.shutil.which", return_value=None):
            assert command_exists("brew") is False
