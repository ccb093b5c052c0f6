"""Tests for the SQLite connection adapter."""

import os

import pytest

from litetable.config import LitetableConfig
from litetable.db import Database
from litetable.errors import EngineError


@pytest.fixture
def db():
    d = Database(":memory:")
    d.exec("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT UNIQUE);")
    yield d
    d.close()


class TestExecutor:
    def test_run_reports_id_and_changes(self, db: Database):
        result = db.run("INSERT INTO t (name) VALUES (?)", ("a",))
        assert result.last_insert_id == 1
        assert result.changes == 1

    def test_get_and_all(self, db: Database):
        db.run("INSERT INTO t (name) VALUES ($name)", {"name": "a"})
        db.run("INSERT INTO t (name) VALUES ($name)", {"name": "b"})
        assert db.get("SELECT name FROM t ORDER BY id") == {"name": "a"}
        assert db.get("SELECT name FROM t WHERE id = 99") is None
        assert db.all("SELECT id, name FROM t ORDER BY id") == [
            {"id": 1, "name": "a"}, {"id": 2, "name": "b"},
        ]

    def test_each(self, db: Database):
        db.exec("INSERT INTO t (name) VALUES ('a'); INSERT INTO t (name) VALUES ('b');")
        names = []
        assert db.each("SELECT name FROM t ORDER BY id", None, lambda r: names.append(r["name"])) == 2
        assert names == ["a", "b"]

    def test_exec_runs_every_statement(self, db: Database):
        db.exec("CREATE TABLE u (x); CREATE TABLE v (y);")
        names = {r["name"] for r in db.all("SELECT name FROM sqlite_master WHERE type='table'")}
        assert names == {"t", "u", "v"}

    def test_engine_error_carries_statement(self, db: Database):
        with pytest.raises(EngineError) as exc:
            db.run("INSERT INTO nope (x) VALUES (?)", (1,))
        assert exc.value.sql == "INSERT INTO nope (x) VALUES (?)"
        assert exc.value.params == (1,)
        assert "no such table" in str(exc.value)
        assert not exc.value.is_unique_violation

    def test_prepared_statement_rebinds(self, db: Database):
        db.exec("INSERT INTO t (name) VALUES ('a'); INSERT INTO t (name) VALUES ('b');")
        with db.prepare("SELECT name FROM t WHERE id = ?", (1,)) as statement:
            assert statement.get() == {"name": "a"}
            assert statement.bind((2,)).all() == [{"name": "b"}]
        assert statement.finalized


class TestTransactions:
    def test_commit(self, db: Database):
        with db.transaction():
            db.run("INSERT INTO t (name) VALUES ('a')")
            assert db.in_transaction
        assert not db.in_transaction
        assert db.get("SELECT count(*) AS n FROM t")["n"] == 1

    def test_rollback(self, db: Database):
        with pytest.raises(RuntimeError):
            with db.transaction():
                db.run("INSERT INTO t (name) VALUES ('a')")
                raise RuntimeError("boom")
        assert not db.in_transaction
        assert db.get("SELECT count(*) AS n FROM t")["n"] == 0

    def test_nested_joins_outer(self, db: Database):
        with pytest.raises(EngineError):
            with db.transaction():
                db.run("INSERT INTO t (name) VALUES ('a')")
                with db.transaction():
                    db.run("INSERT INTO t (name) VALUES ('b')")
                db.run("INSERT INTO t (name) VALUES ('a')")
        assert db.get("SELECT count(*) AS n FROM t")["n"] == 0


class TestPragmas:
    def test_foreign_keys(self, db: Database):
        assert not db.is_foreign_keys_enabled()
        db.enable_foreign_keys()
        assert db.is_foreign_keys_enabled()
        db.enable_foreign_keys(False)
        assert not db.is_foreign_keys_enabled()

    def test_config_applied(self, tmp_path):
        cfg = LitetableConfig(database=str(tmp_path / "x.db"), foreign_keys=True,
                              journal_mode="WAL", busy_timeout=1234)
        with Database(config=cfg) as db:
            assert db.is_foreign_keys_enabled()
            assert db.pragma("journal_mode") == "wal"
            assert db.pragma("busy_timeout") == 1234
        assert os.path.exists(tmp_path / "x.db")


class TestLifecycle:
    def test_close_and_reopen(self, tmp_path):
        path = str(tmp_path / "life.db")
        db = Database(path)
        db.exec("CREATE TABLE a (x);")
        db.close()
        assert not db.is_open
        with pytest.raises(EngineError):
            db.all("SELECT * FROM a")
        db.open()
        assert db.all("SELECT * FROM a") == []
        db.close()

    def test_autoopen_disabled(self):
        db = Database(":memory:", autoopen=False)
        assert not db.is_open
