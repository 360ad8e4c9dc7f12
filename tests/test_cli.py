"""Tests for the tablebridge CLI."""

from unittest.mock import patch

from typer.testing import CliRunner

from tablebridge.main import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "0.3.0" in result.stdout


def test_tables(introspector):
    with patch("tablebridge.main._introspector", return_value=introspector):
        result = runner.invoke(app, ["tables"])
    assert result.exit_code == 0
    assert "orders" in result.stdout


def test_schema(introspector):
    with patch("tablebridge.main._introspector", return_value=introspector):
        result = runner.invoke(app, ["schema", "customers"])
    assert result.exit_code == 0
    assert "email" in result.stdout


def test_schema_unknown_table(introspector):
    with patch("tablebridge.main._introspector", return_value=introspector):
        result = runner.invoke(app, ["schema", "nope"])
    assert result.exit_code == 1
    assert "not found" in result.stdout
