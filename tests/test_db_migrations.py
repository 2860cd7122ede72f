"""Alembic migration tests against a temporary SQLite world state."""

import sqlite3
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config

from db import WorldState

MIGRATIONS_DIR = str(Path(__file__).resolve().parent.parent / "migrations")


@pytest.fixture
def alembic_cfg(tmp_path, monkeypatch):
    db_file = tmp_path / "migrated.db"
    monkeypatch.setenv("TOURISM_DATABASE_URL", f"sqlite:///{db_file}")
    cfg = Config()
    cfg.set_main_option("script_location", MIGRATIONS_DIR)
    return cfg, str(db_file)


def _tables(db_file):
    with sqlite3.connect(db_file) as conn:
        return {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}


class TestMigrations:
    def test_upgrade_creates_world_state(self, alembic_cfg):
        cfg, db_file = alembic_cfg
        command.upgrade(cfg, "head")
        assert "world_state" in _tables(db_file)
        with sqlite3.connect(db_file) as conn:
            columns = [r[1] for r in conn.execute("PRAGMA table_info(world_state)")]
        assert columns == ["key", "value", "version", "tx_id"]

    def test_world_state_runs_on_migrated_schema(self, alembic_cfg):
        cfg, db_file = alembic_cfg
        command.upgrade(cfg, "head")
        ws = WorldState(db_file)
        with ws.transaction() as ctx:
            ctx.put_state("k", b"v")
        with ws.transaction() as ctx:
            assert ctx.get_state("k") == b"v"
        assert ws.get_version("k") == 1

    def test_downgrade(self, alembic_cfg):
        cfg, db_file = alembic_cfg
        command.upgrade(cfg, "head")
        command.downgrade(cfg, "base")
        assert "world_state" not in _tables(db_file)
