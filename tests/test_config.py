"""
Tests for environment-driven configuration.
"""
import pytest

import config
from config import load_bracket_config, load_config, load_mysql_config
from domain.enums import EntrantPolicy, RevisionPolicy

_VARS = (
    "DISCORD_TOKEN", "DEV_GUILD_ID", "COMMAND_PREFIX", "LOG_LEVEL",
    "DB_HOST", "DB_PORT", "DB_USER", "DB_PASSWORD", "DB_NAME",
    "DB_POOL_MIN", "DB_POOL_MAX", "DB_CONNECT_TIMEOUT",
    "BRACKET_ENTRANT_POLICY", "BRACKET_REVISION_POLICY", "DB_TX_RETRIES",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "_maybe_load_env_file", lambda: None)


class TestLoadConfig:
    def test_token_is_required(self):
        with pytest.raises(RuntimeError, match="DISCORD_TOKEN"):
            load_config()

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", " abc ")
        cfg = load_config()
        assert cfg.token == "abc"
        assert cfg.dev_guild_id is None
        assert cfg.command_prefix == "!"
        assert cfg.log_level == "INFO"
        assert cfg.mysql.database == "tournament_db"
        assert cfg.mysql.port == 3306
        assert cfg.bracket.entrant_policy == EntrantPolicy.FLOOR
        assert cfg.bracket.revision_policy == RevisionPolicy.OVERWRITE
        assert cfg.bracket.tx_retries == 3

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "abc")
        monkeypatch.setenv("DEV_GUILD_ID", "123")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        cfg = load_config()
        assert cfg.dev_guild_id == 123
        assert cfg.log_level == "DEBUG"

    def test_bad_guild_id(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "abc")
        monkeypatch.setenv("DEV_GUILD_ID", "my-server")
        with pytest.raises(ValueError, match="DEV_GUILD_ID"):
            load_config()


class TestBracketConfig:
    def test_policies_are_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("BRACKET_ENTRANT_POLICY", "STRICT")
        monkeypatch.setenv("BRACKET_REVISION_POLICY", "Cascade")
        cfg = load_bracket_config()
        assert cfg.entrant_policy == EntrantPolicy.STRICT
        assert cfg.revision_policy == RevisionPolicy.CASCADE

    def test_unknown_policy_lists_choices(self, monkeypatch):
        monkeypatch.setenv("BRACKET_REVISION_POLICY", "undo")
        with pytest.raises(ValueError, match="overwrite, forbid, cascade"):
            load_bracket_config()

    def test_retries_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("DB_TX_RETRIES", "0")
        with pytest.raises(ValueError, match="DB_TX_RETRIES"):
            load_bracket_config()


class TestMySqlConfig:
    def test_pool_bounds(self, monkeypatch):
        monkeypatch.setenv("DB_POOL_MIN", "4")
        monkeypatch.setenv("DB_POOL_MAX", "2")
        with pytest.raises(ValueError, match="DB_POOL_MAX"):
            load_mysql_config()

    def test_blank_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("DB_HOST", "   ")
        monkeypatch.setenv("DB_PORT", "3307")
        cfg = load_mysql_config()
        assert cfg.host == "127.0.0.1"
        assert cfg.port == 3307
