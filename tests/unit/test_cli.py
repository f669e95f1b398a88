"""Unit tests for the groupbuy command line."""

import pytest
from click.testing import CliRunner

from groupbuy import __version__, get_version
from groupbuy.cli import main


@pytest.fixture
def runner():
    """Create a click CliRunner."""
    return CliRunner()


@pytest.mark.unit
class TestQuoteCommand:
    """Tests for `groupbuy quote`."""

    def test_quote_discounted(self, runner: CliRunner) -> None:
        """Prints the split price and discount."""
        result = runner.invoke(main, ["quote", "200000", "4", "5"])

        assert result.exit_code == 0
        assert "Per student: 40000" in result.output
        assert "Discount: 80%" in result.output

    def test_quote_below_minimum(self, runner: CliRunner) -> None:
        """Below the minimum the full amount is printed."""
        result = runner.invoke(main, ["quote", "200000", "4", "3"])

        assert result.exit_code == 0
        assert "Per student: 200000" in result.output
        assert "Discount: 0%" in result.output

    def test_quote_schedule(self, runner: CliRunner) -> None:
        """--schedule-to prints one row per head-count."""
        result = runner.invoke(main, ["quote", "200000", "4", "0", "--schedule-to", "6"])

        assert result.exit_code == 0
        assert "Head-count" in result.output
        assert "33333" in result.output

    def test_quote_schedule_below_minimum(self, runner: CliRunner) -> None:
        """A schedule capacity below the minimum is an error."""
        result = runner.invoke(main, ["quote", "200000", "4", "0", "--schedule-to", "2"])

        assert result.exit_code == 1

    def test_quote_rejects_zero_minimum(self, runner: CliRunner) -> None:
        """MIN_STUDENT must be at least one."""
        result = runner.invoke(main, ["quote", "200000", "0", "3"])

        assert result.exit_code == 2


@pytest.mark.unit
class TestDeadlineCommand:
    """Tests for `groupbuy deadline`."""

    def test_deadline_default(self, runner: CliRunner) -> None:
        """Prints the date one week before the start."""
        result = runner.invoke(main, ["deadline", "2024-06-10"])

        assert result.exit_code == 0
        assert result.output.strip() == "2024-06-03"

    def test_deadline_custom_lead(self, runner: CliRunner) -> None:
        """--lead-days changes the lead time."""
        result = runner.invoke(main, ["deadline", "2024-06-10", "--lead-days", "3"])

        assert result.exit_code == 0
        assert result.output.strip() == "2024-06-07"

    def test_deadline_invalid_lead(self, runner: CliRunner) -> None:
        """A zero lead time is reported as an error."""
        result = runner.invoke(main, ["deadline", "2024-06-10", "--lead-days", "0"])

        assert result.exit_code == 1


@pytest.mark.unit
class TestVersionOption:
    """Tests for `groupbuy --version`."""

    def test_version_matches_package(self, runner: CliRunner) -> None:
        """--version reports the package version."""
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert result.output.strip() == f"groupbuy, version {__version__}"
        assert get_version() == __version__
