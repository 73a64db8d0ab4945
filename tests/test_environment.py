"""Tests for memdock.environment."""

from unittest.mock import patch

import pytest

from memdock.environment import EnvironmentReport, check_environment
from memdock.errors import RuntimeUnavailableError, ToolMissingError


class TestCheckEnvironment:
    @patch("memdock.environment.shutil.which", return_value="/usr/bin/git")
    def test_all_present(self, mock_which, runtime):
        report = check_environment(runtime)
        assert report.ok is True
        assert report.tools == {"git": True}
        report.raise_for_missing()

    @patch("memdock.environment.shutil.which", return_value=None)
    def test_missing_tool(self, mock_which, runtime):
        report = check_environment(runtime)
        assert report.missing_tools == ["git"]
        with pytest.raises(ToolMissingError, match="git is not installed"):
            report.raise_for_missing()

    @patch("memdock.environment.shutil.which", return_value=None)
    def test_runtime_reported_before_tools(self, mock_which, runtime):
        runtime.is_available.return_value = False
        report = check_environment(runtime)
        assert report.ok is False
        with pytest.raises(RuntimeUnavailableError):
            report.raise_for_missing()


class TestEnvironmentReport:
    def test_custom_tools(self):
        report = EnvironmentReport(runtime_available=True, tools={"git": True, "node": False})
        assert report.missing_tools == ["node"]
        assert report.ok is False

    def test_ok_report_does_not_raise(self):
        report = EnvironmentReport(runtime_available=True, tools={"git": True})
        assert report.ok is True
        assert report.raise_for_missing() is None
