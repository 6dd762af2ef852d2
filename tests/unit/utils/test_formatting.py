"""Unit tests for console formatting helpers."""

import pytest
from pakky.models.package import PackageStatus, PackageType
from pakky.utils.formatting import format_log_line, format_package_type, format_status


class TestFormatStatus:
    """Tests for format_status function."""

    @pytest.mark.parametrize("status", list(PackageStatus))
    def test_every_status_has_display(self, status: PackageStatus) -> None:
        """Every status renders with its own style."""
        assert format_status(status).startswith(f"[status.{status.value}]")

    def test_label(self) -> None:
        """Underscores become spaces in the label."""
        assert format_status(PackageStatus.ALREADY_INSTALLED).endswith("● already installed[/]")


class TestFormatPackageType:
    """Tests for format_package_type function."""

    def test_cask(self) -> None:
        """Types are styled by value."""
        assert format_package_type(PackageType.CASK) == "[package.cask]cask[/]"


class TestFormatLogLine:
    """Tests for format_log_line function."""

    def test_command_echo(self) -> None:
        """Command echo lines get the command style."""
        assert format_log_line("$ brew install jq") == "[log.command]$ brew install jq[/]"

    def test_failure_and_success(self) -> None:
        """Failure and success markers get their styles."""
        assert format_log_line("✗ failed").startswith("[error]")
        assert format_log_line("✓ done").startswith("[success]")

    def test_output_is_escaped(self) -> None:
        """Brackets in tool output are not read as markup."""
        assert format_log_line("[bold]not markup[/bold]") == "[muted]\\[bold]not markup\\[/bold][/]"
