"""Tests for the query builder."""

import pytest

from litetable.builder import QueryBuilder, build_query
from litetable.db import Database
from litetable.errors import (
    InvalidExpressionSyntaxError, InvalidLimitError, InvalidOffsetError,
    InvalidOrderDirectionError, InvalidQueryShapeError,
)
from litetable.statement import RunResult


class RecordingDb:
    """Executor that records statements instead of running them."""

    def __init__(self, rows=None):
        self.rows = rows or []
        self.calls = []

    def all(self, sql, params=None):
        self.calls.append(("all", sql, params))
        return list(self.rows)

    def get(self, sql, params=None):
        self.calls.append(("get", sql, params))
        return self.rows[0] if self.rows else None

    def each(self, sql, params, callback):
        self.calls.append(("each", sql, params))
        for row in self.rows:
            callback(row)
        return len(self.rows)

    def run(self, sql, params=None):
        self.calls.append(("run", sql, params))
        return RunResult(None, 0)

    @property
    def last(self):
        return self.calls[-1][1:]


@pytest.fixture
def rec():
    return RecordingDb()


@pytest.fixture
def db():
    d = Database(":memory:")
    d.exec(
        "CREATE TABLE people (id INTEGER PRIMARY KEY, name TEXT, age INTEGER, team TEXT);"
        "INSERT INTO people (name, age, team) VALUES "
        "('ann', 31, 'red'), ('bob', 25, 'blue'), ('cid', 40, 'red'), ('dee', 25, 'blue');"
    )
    yield d
    d.close()


class TestSelect:
    def test_all_rows(self, rec: RecordingDb):
        build_query(rec).from_("t").all()
        assert rec.last == ("SELECT * FROM t", {})

    def test_where(self, rec: RecordingDb):
        build_query(rec).from_("t").find({"a": 1, "b": {"$gt": 2}}).get()
        assert rec.last == ("SELECT * FROM t WHERE ((a = $p1) AND (b > $p2))", {"p1": 1, "p2": 2})

    def test_clause_order(self, rec: RecordingDb):
        (build_query(rec).select(["a", "b"]).from_("t").find({"a": 1})
         .group_by("a").order_by({"b": "desc"}).limit(10).offset(5).all())
        assert rec.last == (
            "SELECT a, b FROM t WHERE ((a = $p1)) GROUP BY a ORDER BY b DESC LIMIT 10 OFFSET 5",
            {"p1": 1},
        )

    def test_select_string(self, rec: RecordingDb):
        build_query(rec).select("COUNT(*) AS n").from_("t").all()
        assert rec.last[0] == "SELECT COUNT(*) AS n FROM t"

    def test_offset_without_limit(self, rec: RecordingDb):
        build_query(rec).from_("t").offset(5).all()
        assert rec.last[0] == "SELECT * FROM t LIMIT -1 OFFSET 5"

    def test_zero_offset_omitted(self, rec: RecordingDb):
        build_query(rec).from_("t").offset(0).all()
        assert rec.last[0] == "SELECT * FROM t"

    def test_order_by_appends(self, rec: RecordingDb):
        build_query(rec).from_("t").order_by("a").order_by([{"b": -1}, {"c": "ascending"}]).all()
        assert rec.last[0] == "SELECT * FROM t ORDER BY a, b DESC, c ASC"

    @pytest.mark.parametrize("direction, sql", [
        ("asc", "ASC"), ("ascending", "ASC"), (1, "ASC"),
        ("desc", "DESC"), ("descending", "DESC"), (-1, "DESC"),
    ])
    def test_order_directions(self, rec: RecordingDb, direction, sql):
        build_query(rec).from_("t").order_by({"a": direction}).all()
        assert rec.last[0] == f"SELECT * FROM t ORDER BY a {sql}"

    def test_each(self):
        rec = RecordingDb(rows=[{"a": 1}, {"a": 2}])
        seen = []
        assert build_query(rec).from_("t").each(seen.append) == 2
        assert seen == [{"a": 1}, {"a": 2}]


class TestValidation:
    @pytest.mark.parametrize("n", [0, -1, 1.5, "3", True])
    def test_invalid_limit(self, rec: RecordingDb, n):
        query = build_query(rec).from_("t").limit(n)
        with pytest.raises(InvalidLimitError):
            query.all()
        assert rec.calls == []

    def test_limit_one(self, rec: RecordingDb):
        build_query(rec).from_("t").limit(1).all()
        assert rec.last[0] == "SELECT * FROM t LIMIT 1"

    def test_invalid_offset(self, rec: RecordingDb):
        with pytest.raises(InvalidOffsetError):
            build_query(rec).from_("t").offset(-1).all()

    @pytest.mark.parametrize("direction", ["up", 0, 2, True, None])
    def test_invalid_direction(self, rec: RecordingDb, direction):
        with pytest.raises(InvalidOrderDirectionError):
            build_query(rec).from_("t").order_by({"a": direction}).all()

    def test_order_by_multi_key_mapping(self, rec: RecordingDb):
        with pytest.raises(InvalidOrderDirectionError):
            build_query(rec).from_("t").order_by({"a": 1, "b": 1}).all()

    def test_empty_find_rejected_immediately(self, rec: RecordingDb):
        with pytest.raises(InvalidExpressionSyntaxError):
            build_query(rec).from_("t").find({})

    def test_missing_table(self, rec: RecordingDb):
        with pytest.raises(InvalidQueryShapeError):
            build_query(rec).all()


class TestImmutability:
    def test_find_merges_last_write_wins(self, rec: RecordingDb):
        build_query(rec).from_("t").find({"a": 1, "b": 2}).find({"a": 3}).all()
        assert rec.last == ("SELECT * FROM t WHERE ((a = $p1) AND (b = $p2))", {"p1": 3, "p2": 2})

    def test_derived_queries_do_not_share_state(self, rec: RecordingDb):
        base = build_query(rec).from_("t").find({"a": 1})
        base.find({"b": 2}).order_by("a").all()
        base.all()
        assert rec.last[0] == "SELECT * FROM t WHERE ((a = $p1))"

    def test_clause_methods_return_new_builder(self, rec: RecordingDb):
        base = QueryBuilder(rec)
        assert base.from_("t") is not base
        assert base.from_table is None

    def test_parameters_fresh_per_terminal(self, rec: RecordingDb):
        query = build_query(rec).from_("t").find({"a": 1})
        query.all()
        query.all()
        assert rec.calls[0][2] == rec.calls[1][2] == {"p1": 1}


class TestModifyingStatements:
    def test_remove(self, rec: RecordingDb):
        build_query(rec).from_("t").find({"a": 1}).remove()
        assert rec.last == ("DELETE FROM t WHERE ((a = $p1))", {"p1": 1})

    def test_remove_all(self, rec: RecordingDb):
        build_query(rec).from_("t").remove()
        assert rec.last == ("DELETE FROM t", {})

    @pytest.mark.parametrize("clause, apply", [
        ("orderBy", lambda q: q.order_by("a")),
        ("limit", lambda q: q.limit(1)),
        ("offset", lambda q: q.offset(2)),
        ("groupBy", lambda q: q.group_by("a")),
    ])
    def test_remove_rejects_clauses(self, rec: RecordingDb, clause, apply):
        query = apply(build_query(rec).from_("t"))
        with pytest.raises(InvalidQueryShapeError) as exc:
            query.remove()
        assert str(exc.value) == f"Invalid remove with {clause}"
        assert rec.calls == []

    def test_update_numbering_continues_after_where(self, rec: RecordingDb):
        build_query(rec).from_("t").find({"a": 1}).update({"b": 2, "c": True})
        assert rec.last == (
            "UPDATE t SET b = $p2, c = $p3 WHERE ((a = $p1))",
            {"p1": 1, "p2": 2, "p3": 1},
        )

    def test_update_rejects_limit(self, rec: RecordingDb):
        with pytest.raises(InvalidQueryShapeError):
            build_query(rec).from_("t").limit(3).update({"b": 2})

    def test_update_requires_values(self, rec: RecordingDb):
        with pytest.raises(InvalidQueryShapeError):
            build_query(rec).from_("t").update({})

    def test_count(self):
        rec = RecordingDb(rows=[{"count": 3}])
        assert build_query(rec).from_("t").find({"a": 1}).count() == 3
        assert rec.last == ("SELECT COUNT(*) AS count FROM t WHERE ((a = $p1))", {"p1": 1})

    def test_count_groups(self):
        rec = RecordingDb(rows=[{"count": 2}])
        build_query(rec).from_("t").group_by("a").count()
        assert rec.last[0] == "SELECT COUNT(*) AS count FROM (SELECT 1 FROM t GROUP BY a)"

    @pytest.mark.parametrize("apply", [
        lambda q: q.order_by("a"), lambda q: q.limit(1), lambda q: q.offset(1),
    ])
    def test_count_rejects_clauses(self, rec: RecordingDb, apply):
        with pytest.raises(InvalidQueryShapeError):
            apply(build_query(rec).from_("t")).count()


class TestAgainstSqlite:
    def test_filter_and_order(self, db: Database):
        rows = (build_query(db).select(["name"]).from_("people")
                .find({"age": {"$ge": 25}, "team": "red"}).order_by({"age": "desc"}).all())
        assert rows == [{"name": "cid"}, {"name": "ann"}]

    def test_or(self, db: Database):
        rows = (build_query(db).from_("people")
                .find({"$or": [{"name": "ann"}, {"age": {"$lt": 30}}]}).order_by("id").all())
        assert [r["name"] for r in rows] == ["ann", "bob", "dee"]

    def test_limit_offset(self, db: Database):
        query = build_query(db).select("name").from_("people").order_by("name")
        assert [r["name"] for r in query.limit(2).offset(1).all()] == ["bob", "cid"]
        assert [r["name"] for r in query.offset(3).all()] == ["dee"]

    def test_get_missing(self, db: Database):
        assert build_query(db).from_("people").find({"name": "zed"}).get() is None

    def test_count_and_group_count(self, db: Database):
        assert build_query(db).from_("people").find({"team": "red"}).count() == 2
        assert build_query(db).from_("people").group_by("team").count() == 2

    def test_update_and_remove(self, db: Database):
        result = build_query(db).from_("people").find({"team": "blue"}).update({"age": 26})
        assert result.changes == 2
        assert build_query(db).from_("people").find({"age": 26}).count() == 2

        result = build_query(db).from_("people").find({"age": {"$gt": 30}}).remove()
        assert result.changes == 2
        assert build_query(db).from_("people").count() == 2

    def test_stream(self, db: Database):
        with build_query(db).from_("people").order_by("id").stream(prefetch=3) as rows:
            names = [r["name"] for r in rows]
        assert names == ["ann", "bob", "cid", "dee"]
