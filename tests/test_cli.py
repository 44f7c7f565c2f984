"""Tests for the command-line interface."""
import pytest
from typer.testing import CliRunner

from chatrelay.cli.app import app

runner = CliRunner()


@pytest.fixture
def env(tmp_path, monkeypatch):
    """Point the CLI at a throwaway SQLite database."""
    monkeypatch.setenv("HISTORY_BACKEND", "sqlite")
    monkeypatch.setenv("HISTORY_DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.delenv("AI_API_KEY", raising=False)
    monkeypatch.delenv("QUOTA_POLICY", raising=False)
    return tmp_path


class TestQuotaCommands:
    """Tests for `chatrelay quota`."""

    def test_grant_then_show(self, env):
        """Test that granted counters are persisted and shown."""
        result = runner.invoke(app, ["quota", "grant", "alice", "--chat", "3", "--search", "2"])
        assert result.exit_code == 0, result.output
        assert "Granted alice: chat=3 search=2" in result.output

        result = runner.invoke(app, ["quota", "show", "alice"])
        assert result.exit_code == 0, result.output
        assert "chat: 3" in result.output
        assert "search: 2" in result.output

    def test_grant_defaults_from_environment(self, env, monkeypatch):
        monkeypatch.setenv("CHAT_TOKENS_PER_USER", "7")
        result = runner.invoke(app, ["quota", "grant", "bob"])
        assert "Granted bob: chat=7 search=100" in result.output

    def test_negative_grant_rejected(self, env):
        result = runner.invoke(app, ["quota", "grant", "alice", "--chat=-1"])
        assert result.exit_code == 1

    def test_show_unknown_user(self, env):
        result = runner.invoke(app, ["quota", "show", "nobody"])
        assert "No quota granted to nobody" in result.output


class TestCommands:
    """Tests for the top-level commands that need no gateway."""

    def test_sessions_empty(self, env):
        result = runner.invoke(app, ["sessions", "--user", "alice"])
        assert result.exit_code == 0
        assert "No sessions" in result.output

    def test_history_empty(self, env):
        result = runner.invoke(app, ["history", "s1"])
        assert "No turns" in result.output

    def test_chat_requires_api_key(self, env):
        """Test that chat exits with an error when no API key is configured."""
        result = runner.invoke(app, ["chat", "s1", "hello"])
        assert result.exit_code == 1
        assert "AI_API_KEY not set" in result.output

    def test_invalid_setting(self, env, monkeypatch):
        monkeypatch.setenv("AI_MAX_TOKENS", "many")
        result = runner.invoke(app, ["sessions"])
        assert result.exit_code == 1
        assert "AI_MAX_TOKENS" in result.output
