"""Tests for the command line interface."""

import os
from unittest.mock import patch

from click.testing import CliRunner

from codechat.cli import main


def test_serve_uses_port_from_environment():
    runner = CliRunner()
    with patch.dict(os.environ, {"PORT": "4321"}), patch("codechat.cli.uvicorn.run") as run:
        result = runner.invoke(main, ["serve"])

    assert result.exit_code == 0
    run.assert_called_once_with("codechat.server:app", host="127.0.0.1", port=4321, reload=False)
    assert "http://127.0.0.1:4321" in result.output


def test_serve_port_option_wins():
    runner = CliRunner()
    with patch.dict(os.environ, {"PORT": "4321"}), patch("codechat.cli.uvicorn.run") as run:
        result = runner.invoke(main, ["serve", "--port", "5000", "--host", "0.0.0.0"])

    assert result.exit_code == 0
    run.assert_called_once_with("codechat.server:app", host="0.0.0.0", port=5000, reload=False)


def test_sessions_reports_unreachable_relay():
    runner = CliRunner()
    result = runner.invoke(main, ["sessions", "--url", "http://127.0.0.1:9"])
    assert result.exit_code == 1
    assert "Error" in result.output
