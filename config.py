# config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from domain.enums import EntrantPolicy, RevisionPolicy


def _maybe_load_env_file() -> None:
    """
    Load .env from the project root (same folder as this config.py).
    Never overwrites already-set environment variables.
    """
    dotenv_path = Path(__file__).resolve().parent / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path, override=False)


@dataclass(frozen=True)
class MySqlConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    minsize: int = 1
    maxsize: int = 5
    connect_timeout: int = 10


@dataclass(frozen=True)
class BracketConfig:
    entrant_policy: EntrantPolicy = EntrantPolicy.FLOOR
    revision_policy: RevisionPolicy = RevisionPolicy.OVERWRITE
    tx_retries: int = 3


@dataclass(frozen=True)
class BotConfig:
    token: str
    dev_guild_id: int | None
    command_prefix: str
    log_level: str
    mysql: MySqlConfig
    bracket: BracketConfig


def _getenv(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def _int_or_none(value: str | None, var_name: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{var_name} must be an integer, got: {value!r}") from e


def _int(value: str | None, var_name: str, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{var_name} must be an integer, got: {value!r}") from e


def _choice(value: str | None, var_name: str, enum_cls, default):
    if value is None:
        return default
    try:
        return enum_cls(value.lower())
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"{var_name} must be one of: {allowed}; got: {value!r}") from e


def load_bracket_config() -> BracketConfig:
    retries = _int(_getenv("DB_TX_RETRIES"), "DB_TX_RETRIES", 3)
    if retries < 1:
        raise ValueError("DB_TX_RETRIES must be >= 1")
    return BracketConfig(
        entrant_policy=_choice(_getenv("BRACKET_ENTRANT_POLICY"), "BRACKET_ENTRANT_POLICY", EntrantPolicy, EntrantPolicy.FLOOR),
        revision_policy=_choice(_getenv("BRACKET_REVISION_POLICY"), "BRACKET_REVISION_POLICY", RevisionPolicy, RevisionPolicy.OVERWRITE),
        tx_retries=retries,
    )


def load_mysql_config() -> MySqlConfig:
    minsize = _int(_getenv("DB_POOL_MIN"), "DB_POOL_MIN", 1)
    maxsize = _int(_getenv("DB_POOL_MAX"), "DB_POOL_MAX", 5)
    if minsize < 1:
        raise ValueError("DB_POOL_MIN must be >= 1")
    if maxsize < minsize:
        raise ValueError("DB_POOL_MAX must be >= DB_POOL_MIN")

    return MySqlConfig(
        host=_getenv("DB_HOST", "127.0.0.1") or "127.0.0.1",
        port=_int(_getenv("DB_PORT"), "DB_PORT", 3306),
        user=_getenv("DB_USER", "root") or "root",
        password=_getenv("DB_PASSWORD", "") or "",
        database=_getenv("DB_NAME", "tournament_db") or "tournament_db",
        minsize=minsize,
        maxsize=maxsize,
        connect_timeout=_int(_getenv("DB_CONNECT_TIMEOUT"), "DB_CONNECT_TIMEOUT", 10),
    )


def load_config() -> BotConfig:
    _maybe_load_env_file()

    token = (_getenv("DISCORD_TOKEN") or "").strip()
    if not token:
        raise RuntimeError("Missing DISCORD_TOKEN environment variable.")

    return BotConfig(
        token=token,
        dev_guild_id=_int_or_none(_getenv("DEV_GUILD_ID"), "DEV_GUILD_ID"),
        command_prefix=_getenv("COMMAND_PREFIX", "!") or "!",
        log_level=(_getenv("LOG_LEVEL", "INFO") or "INFO").upper(),
        mysql=load_mysql_config(),
        bracket=load_bracket_config(),
    )
