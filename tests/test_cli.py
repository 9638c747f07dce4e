"""Tests for the chatguard CLI."""

import json

import pytest
from click.testing import CliRunner

from chatguard.cli import main


@pytest.fixture(autouse=True)
def local_only(monkeypatch):
    monkeypatch.delenv("CHATGUARD_CONFIG", raising=False)
    monkeypatch.delenv("CHATGUARD_REMOTE_MODERATION", raising=False)


def test_scan_command():
    result = CliRunner().invoke(main, ["scan", "You are a chutiya"])
    assert result.exit_code == 0, result.output
    assert "You are a *******" in result.output
    assert "chutiya" in result.output


def test_moderate_json():
    result = CliRunner().invoke(main, ["moderate", "You are a chutiya", "--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["severity"] == "high"
    assert data["source"] == "local-lexicon"
    assert data["masked_text"] == "You are a *******"


def test_moderate_panel():
    result = CliRunner().invoke(main, ["moderate", "Hello, how are you?"])
    assert result.exit_code == 0, result.output
    assert "Moderation Report" in result.output


def test_language_command():
    result = CliRunner().invoke(main, ["language", "કેમ છો"])
    assert result.exit_code == 0
    assert "gu (Gujarati)" in result.output


def test_lexicon_command():
    result = CliRunner().invoke(main, ["lexicon", "--locale", "gu-Latn"])
    assert result.exit_code == 0, result.output
    assert "gaandu" in result.output


def test_simulate_command():
    result = CliRunner().invoke(main, ["simulate", "alice", "--count", "12", "--interval", "0.1"])
    assert result.exit_code == 0, result.output
    assert "allowed" in result.output
    assert "blocked" in result.output


def test_config_command():
    result = CliRunner().invoke(main, ["config"])
    assert result.exit_code == 0
    assert json.loads(result.output)["rate_limit"]["cooldown"] == 15.0


def test_bad_config_path():
    result = CliRunner().invoke(main, ["--config", "/nonexistent.yaml", "config"])
    assert result.exit_code != 0
    assert "not found" in result.output
