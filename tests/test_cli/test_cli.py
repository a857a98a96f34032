"""Tests for the command-line interface."""

from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from gbprint import __version__
from gbprint.cli import main
from gbprint.config import Settings
from gbprint.exceptions import FatalStartupError, PollError
from gbprint.printing import PrinterStatus
from gbprint.remote import WorkCount


@pytest.fixture
def runner():
    """Click test runner."""
    return CliRunner()


@pytest.fixture
def settings():
    """Settings isolated from the environment."""
    return Settings(_env_file=None, printer_name="QL800")


@pytest.fixture
def mock_settings(settings):
    """Patch settings loading in the CLI."""
    with patch("gbprint.cli.get_settings", return_value=settings):
        yield settings


@pytest.fixture
def mock_transport():
    """Patch the transport factory in the CLI."""
    transport = MagicMock()
    transport.check_status.return_value = PrinterStatus(True, "Printer QL800 is idle")
    with patch("gbprint.cli.get_transport", return_value=transport):
        yield transport


class TestVersion:
    """Tests for --version."""

    def test_version(self, runner):
        """Should print the package version."""
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestStatus:
    """Tests for the status command."""

    def test_shows_configuration(self, runner, mock_settings, mock_transport):
        """Should show effective settings and printer state."""
        result = runner.invoke(main, ["status"])

        assert result.exit_code == 0
        assert "Poll Interval: 15000ms" in result.output
        assert "Printer: QL800" in result.output
        assert "Media: (auto-detect)" in result.output
        assert "Printer is ready" in result.output

    def test_invalid_configuration(self, runner):
        """Invalid settings should exit with status 1."""
        with patch(
            "gbprint.cli.get_settings",
            side_effect=lambda: Settings(_env_file=None, poll_interval=0),
        ):
            result = runner.invoke(main, ["status"])

        assert result.exit_code == 1
        assert "invalid configuration" in result.output


class TestCheck:
    """Tests for the check command."""

    def test_printer_ready(self, runner, mock_settings, mock_transport):
        """A ready printer should pass without touching the endpoint."""
        with patch("gbprint.cli.WorkSource") as work_source:
            result = runner.invoke(main, ["check"])

        assert result.exit_code == 0
        assert "All checks passed" in result.output
        work_source.assert_not_called()

    def test_printer_not_ready(self, runner, mock_settings, mock_transport):
        """A printer that is not ready should fail the check."""
        mock_transport.check_status.return_value = PrinterStatus(False, "Printer QL800 is disabled")

        result = runner.invoke(main, ["check"])

        assert result.exit_code == 1
        assert "x Printer: Printer QL800 is disabled" in result.output

    def test_fetch_reports_endpoint(self, runner, mock_settings, mock_transport):
        """--fetch should query the endpoint once."""
        with patch("gbprint.cli.WorkSource") as work_source:
            work_source.return_value.fetch.return_value = WorkCount(count=0)
            result = runner.invoke(main, ["check", "--fetch"])

        assert result.exit_code == 0
        assert "+ Endpoint: reachable (0 labels pending)" in result.output
        work_source.return_value.fetch.assert_called_once()

    def test_fetch_warns_about_consumed_labels(self, runner, mock_settings, mock_transport):
        """Labels read by --fetch are not printed, which should be called out."""
        with patch("gbprint.cli.WorkSource") as work_source:
            work_source.return_value.fetch.return_value = WorkCount(count=4)
            result = runner.invoke(main, ["check", "--fetch"])

        assert "4 pending labels were consumed and not printed" in result.output

    def test_fetch_failure(self, runner, mock_settings, mock_transport):
        """An unreachable endpoint should fail the check."""
        with patch("gbprint.cli.WorkSource") as work_source:
            work_source.return_value.fetch.side_effect = PollError("Request timeout", "timeout")
            result = runner.invoke(main, ["check", "--fetch"])

        assert result.exit_code == 1
        assert "x Endpoint: Request timeout" in result.output


class TestStart:
    """Tests for the start command."""

    def test_runs_service(self, runner, mock_settings):
        """start should build the service and run it."""
        service = MagicMock()
        with (
            patch("gbprint.cli.get_service", return_value=service) as get_service,
            patch("gbprint.cli.setup_logging"),
        ):
            result = runner.invoke(main, ["start"])

        assert result.exit_code == 0
        get_service.assert_called_once_with(mock_settings)
        service.run.assert_called_once()

    def test_verbose_enables_debug(self, runner, mock_settings):
        """--verbose should switch logging to DEBUG."""
        with (
            patch("gbprint.cli.get_service"),
            patch("gbprint.cli.setup_logging") as setup_logging,
        ):
            runner.invoke(main, ["start", "-v"])

        setup_logging.assert_called_once_with("DEBUG")

    def test_fatal_startup_error(self, runner, mock_settings):
        """A fatal startup error should exit with status 1."""
        with (
            patch("gbprint.cli.get_service", side_effect=FatalStartupError("No entropy source")),
            patch("gbprint.cli.setup_logging"),
        ):
            result = runner.invoke(main, ["start"])

        assert result.exit_code == 1
        assert "No entropy source" in result.output
