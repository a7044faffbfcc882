"""Tests for the command-line entry point."""

from __future__ import annotations

import json

import pytest

from dex_trade_aggregator.__main__ import main
from dex_trade_aggregator.config import clear_settings_cache

TX_HASH = "0x" + "ab" * 32


def _trade_line(pay: int, buy: int, log_index: int) -> str:
    return json.dumps(
        {
            "event": "LogTrade",
            "transactionHash": TX_HASH,
            "logIndex": log_index,
            "args": {
                "payGem": "0x" + "11" * 20,
                "payAmt": str(pay),
                "buyGem": "0x" + "22" * 20,
                "buyAmt": str(buy),
                "timestamp": 3600,
            },
        }
    )


@pytest.fixture(autouse=True)
def memory_backend(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("STORE_BACKEND", "memory")
    clear_settings_cache()
    yield
    clear_settings_cache()


def test_replay_file(tmp_path) -> None:
    events = tmp_path / "events.jsonl"
    events.write_text(_trade_line(100, 50, 0) + "\n\n" + _trade_line(50, 50, 1) + "\n")
    assert main(["replay", str(events)]) == 0


def test_replay_stops_on_malformed_trade(tmp_path) -> None:
    events = tmp_path / "events.jsonl"
    events.write_text(_trade_line(100, 0, 0) + "\n")
    assert main(["replay", str(events)]) == 1


def test_replay_rejects_invalid_json(tmp_path) -> None:
    events = tmp_path / "events.jsonl"
    events.write_text("{not json\n")
    assert main(["replay", str(events)]) == 1


def test_init_db_requires_sql_backend() -> None:
    assert main(["init-db"]) == 1


def test_init_db_sqlite(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("STORE_BACKEND", "sql")
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    clear_settings_cache()
    assert main(["init-db"]) == 0
    assert (tmp_path / "cli.db").exists()


def test_requires_command() -> None:
    with pytest.raises(SystemExit):
        main([])
