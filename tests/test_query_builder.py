"""
Tests for fluentlite.core.db.query_builder.

The parameter ordering contract (values follow placeholder order) and the
`or_where` binding rule are pinned here.
"""

from __future__ import annotations

import pytest

from fluentlite.core.db.query_builder import QueryBuilder, WhereBuilder
from fluentlite.core.sqlite_tool import SQLiteTool


def _placeholders(sql: str) -> int:
    return sql.count("?")


class TestSelect:
    def test_default_select_all(self) -> None:
        sql, values = QueryBuilder("users").to_sql()
        assert sql == "SELECT * FROM users"
        assert values == []

    def test_projection_and_distinct(self) -> None:
        sql, _ = QueryBuilder("users").select(["id", "name"]).distinct().to_sql()
        assert sql == "SELECT DISTINCT id, name FROM users"

    def test_full_clause_order(self) -> None:
        query = (
            QueryBuilder("orders o")
            .select(["o.user_id", "COUNT(*) AS n"])
            .limit(5)
            .offset(10)
            .order_by("n", "desc")
            .having("COUNT(*) > ?", [2])
            .group_by("o.user_id")
            .where("o.total", ">", 100)
            .left_join("users u", "u.id", "=", "o.user_id")
            .to_sql()
        )
        assert query.sql == (
            "SELECT o.user_id, COUNT(*) AS n FROM orders o "
            "LEFT JOIN users u ON u.id = o.user_id "
            "WHERE o.total > ? "
            "GROUP BY o.user_id "
            "HAVING COUNT(*) > ? "
            "ORDER BY n DESC "
            "LIMIT 5 OFFSET 10"
        )
        # WHERE value first even though having() was called before where().
        assert query.values == [100, 2]

    def test_join_kinds(self) -> None:
        sql, _ = (
            QueryBuilder("a")
            .join("b", "a.id", "=", "b.a_id")
            .right_join("c", "a.id", "=", "c.a_id")
            .to_sql()
        )
        assert sql == (
            "SELECT * FROM a INNER JOIN b ON a.id = b.a_id RIGHT JOIN c ON a.id = c.a_id"
        )

    def test_last_call_wins(self) -> None:
        sql, values = (
            QueryBuilder("t")
            .order_by("a")
            .order_by(["b", "c"], "DESC")
            .group_by("x")
            .group_by(["y", "z"])
            .having("COUNT(*) > ?", [1])
            .having("SUM(v) < ?", [9])
            .limit(1)
            .limit(3)
            .to_sql()
        )
        assert sql == "SELECT * FROM t GROUP BY y, z HAVING SUM(v) < ? ORDER BY b, c DESC LIMIT 3"
        assert values == [9]

    def test_paginate(self) -> None:
        sql, _ = QueryBuilder("t").paginate(3, 20).to_sql()
        assert sql == "SELECT * FROM t LIMIT 20 OFFSET 40"

    def test_offset_without_limit_is_unbounded(self) -> None:
        sql, _ = QueryBuilder("t").offset(5).to_sql()
        assert sql == "SELECT * FROM t LIMIT -1 OFFSET 5"

    async def test_offset_without_limit_runs(self) -> None:
        async with SQLiteTool(":memory:") as db:
            await db.create_table("t", lambda t: t.id().integer("v"))
            for v in range(8):
                await db.insert("t", {"v": v})
            sql, values = QueryBuilder("t").select(["v"]).order_by("v").offset(5).to_sql()
            assert await db.fetch_all(sql, values) == [{"v": 5}, {"v": 6}, {"v": 7}]

    def test_invalid_direction(self) -> None:
        with pytest.raises(ValueError):
            QueryBuilder("t").order_by("a", "SIDEWAYS")


class TestPredicates:
    def test_where_chain_is_and_joined(self) -> None:
        sql, values = (
            QueryBuilder("users").where("age", ">", 18).where("status", "=", "active").to_sql()
        )
        assert sql == "SELECT * FROM users WHERE age > ? AND status = ?"
        assert values == [18, "active"]

    def test_where_rejects_unknown_operator(self) -> None:
        with pytest.raises(ValueError):
            QueryBuilder("t").where("a", "; DROP TABLE t", 1)

    def test_where_in(self) -> None:
        sql, values = QueryBuilder("t").where_in("id", [1, 2, 3]).to_sql()
        assert sql == "SELECT * FROM t WHERE id IN (?, ?, ?)"
        assert values == [1, 2, 3]

    def test_where_in_empty_matches_nothing(self) -> None:
        sql, values = QueryBuilder("t").where_in("id", []).to_sql()
        assert sql == "SELECT * FROM t WHERE 1 = 0"
        assert values == []

    def test_where_not_in_empty_adds_nothing(self) -> None:
        sql, values = QueryBuilder("t").where_not_in("id", []).to_sql()
        assert sql == "SELECT * FROM t"
        assert values == []

    def test_where_not_in(self) -> None:
        sql, values = QueryBuilder("t").where_not_in("id", (4, 5)).to_sql()
        assert sql == "SELECT * FROM t WHERE id NOT IN (?, ?)"
        assert values == [4, 5]

    def test_null_helpers_bind_nothing(self) -> None:
        sql, values = QueryBuilder("t").where_null("a").where_not_null("b").to_sql()
        assert sql == "SELECT * FROM t WHERE a IS NULL AND b IS NOT NULL"
        assert values == []

    def test_between_and_like(self) -> None:
        sql, values = (
            QueryBuilder("t")
            .where_between("age", 18, 65)
            .where_not_between("score", 0, 10)
            .where_like("name", "A%")
            .where_not_like("name", "%z")
            .to_sql()
        )
        assert sql == (
            "SELECT * FROM t WHERE age BETWEEN ? AND ? AND score NOT BETWEEN ? AND ? "
            "AND name LIKE ? AND name NOT LIKE ?"
        )
        assert values == [18, 65, 0, 10, "A%", "%z"]

    def test_where_raw_is_verbatim(self) -> None:
        sql, values = QueryBuilder("t").where_raw("(a = ? OR b = ?)", [1, 2]).to_sql()
        assert sql == "SELECT * FROM t WHERE (a = ? OR b = ?)"
        assert values == [1, 2]

    def test_or_where_binds_to_sole_previous_predicate(self) -> None:
        sql, values = (
            QueryBuilder("users").where("age", ">", 18).or_where("status", "=", "vip").to_sql()
        )
        assert sql == "SELECT * FROM users WHERE age > ? OR status = ?"
        assert values == [18, "vip"]

    def test_or_where_binds_only_to_immediately_preceding_predicate(self) -> None:
        sql, values = (
            QueryBuilder("t")
            .where("a", "=", 1)
            .where("b", "=", 2)
            .or_where("c", "=", 3)
            .where("d", "=", 4)
            .to_sql()
        )
        assert sql == "SELECT * FROM t WHERE a = ? AND b = ? OR c = ? AND d = ?"
        assert values == [1, 2, 3, 4]

    def test_or_where_without_previous_acts_like_where(self) -> None:
        sql, values = QueryBuilder("t").or_where("a", "<", 5).to_sql()
        assert sql == "SELECT * FROM t WHERE a < ?"
        assert values == [5]

    def test_values_match_placeholders(self) -> None:
        builder = (
            QueryBuilder("t")
            .where("a", "=", 1)
            .where_in("b", [1, 2])
            .where_in("c", [])
            .where_not_in("d", [])
            .where_between("e", 1, 2)
            .or_where("f", "!=", 0)
            .where_null("g")
            .where_raw("h = ?", [7])
            .having("COUNT(*) > ?", [1])
            .group_by("a")
        )
        sql, values = builder.to_sql()
        assert _placeholders(sql) == len(values)
        count_sql, count_values = builder.to_count_sql()
        assert _placeholders(count_sql) == len(count_values)

    def test_values_are_a_copy(self) -> None:
        builder = QueryBuilder("t").where("a", "=", 1)
        query = builder.to_sql()
        query.values.append("junk")
        assert builder.to_sql().values == [1]


class TestCount:
    def test_count_drops_projection_order_and_limit(self) -> None:
        sql, values = (
            QueryBuilder("users u")
            .select(["u.name"])
            .distinct()
            .join("teams t", "t.id", "=", "u.team_id")
            .where("u.age", ">=", 21)
            .order_by("u.name")
            .limit(10)
            .offset(20)
            .to_count_sql()
        )
        assert sql == (
            "SELECT COUNT(*) AS count FROM users u "
            "INNER JOIN teams t ON t.id = u.team_id WHERE u.age >= ?"
        )
        assert values == [21]

    def test_count_keeps_group_and_having(self) -> None:
        sql, values = (
            QueryBuilder("t").group_by("k").having("SUM(v) > ?", [3]).to_count_sql()
        )
        assert sql == "SELECT COUNT(*) AS count FROM t GROUP BY k HAVING SUM(v) > ?"
        assert values == [3]


class TestWhereBuilder:
    def test_and_or_raw(self) -> None:
        clause, values = (
            WhereBuilder()
            .and_("a", "=", 1)
            .and_("b", ">", 2)
            .or_("c", "<", 3)
            .raw("AND d IS NULL")
            .build()
        )
        assert clause == "a = ? AND b > ? OR c < ? AND d IS NULL"
        assert values == [1, 2, 3]

    def test_leading_or_is_callers_responsibility(self) -> None:
        result = WhereBuilder().or_("a", "=", 1).build()
        assert result.clause == "OR a = ?"
        assert result.values == [1]

    def test_empty(self) -> None:
        result = WhereBuilder().build()
        assert result.clause == ""
        assert result.values == []

    def test_raw_values_are_kept_in_order(self) -> None:
        clause, values = WhereBuilder().raw("x IN (?, ?)", [5, 6]).and_("y", "=", 7).build()
        assert clause == "x IN (?, ?) AND y = ?"
        assert values == [5, 6, 7]
