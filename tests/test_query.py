"""Tests for query builders and the read-only query surface."""

import pytest

from micasa.core.models import NewVendor
from micasa.core.query import (
    MAX_QUERY_ROWS,
    build_list_query,
    build_update_clause,
    build_where_clause,
)
from micasa.exceptions import ValidationError


class TestBuilders:
    """Tests for the SQL clause builders."""

    def test_where_clause_skips_none(self):
        assert build_where_clause({"project_id": 3, "vendor_id": None}) == (
            "project_id = ?", [3]
        )

    def test_where_clause_empty(self):
        assert build_where_clause({}) == ("1=1", [])

    def test_update_clause_keeps_none(self):
        """None values become NULL assignments."""
        assert build_update_clause({"city": "Springfield", "year_built": None}) == (
            "city = ?, year_built = ?", ["Springfield", None]
        )

    def test_list_query_excludes_deleted(self):
        sql, params = build_list_query("quotes", False, {"project_id": 3})
        assert "project_id = ? AND deleted_at IS NULL" in sql
        assert sql.endswith("ORDER BY updated_at DESC, id DESC")
        assert params == [3]

    def test_list_query_including_deleted(self):
        sql, _ = build_list_query("quotes", True)
        assert "deleted_at" not in sql.split("ORDER BY")[0]

    def test_list_query_select_list(self):
        """columns replaces the default star select list."""
        sql, _ = build_list_query("documents", False, columns="id, title")
        assert sql.startswith("SELECT id, title FROM documents WHERE")


class TestReadOnlyQuery:
    """Tests for store.query."""

    def test_table_names(self, store):
        names = store.query.table_names()
        assert "projects" in names
        assert "chat_inputs" in names
        assert names == sorted(names)

    def test_table_columns(self, store):
        columns = {c.name: c for c in store.query.table_columns("vendors")}
        assert columns["id"].primary_key == 1
        assert columns["name"].not_null

    def test_table_columns_rejects_injection(self, store):
        with pytest.raises(ValidationError):
            store.query.table_columns("vendors); DROP TABLE vendors; --")

    def test_select_returns_strings(self, store, vendor_id):
        """Values come back as strings, NULL as empty."""
        columns, rows = store.query.run(
            "SELECT id, name, deleted_at FROM vendors ORDER BY id"
        )
        assert columns == ["id", "name", "deleted_at"]
        assert rows == [[str(vendor_id.value), "Acme Roofing", ""]]

    def test_with_query_allowed(self, store):
        columns, rows = store.query.run("WITH t AS (SELECT 1 AS one) SELECT one FROM t")
        assert rows == [["1"]]

    def test_row_cap(self, store):
        """At most MAX_QUERY_ROWS rows are returned."""
        for i in range(MAX_QUERY_ROWS + 5):
            store.vendors.create(NewVendor(name=f"Vendor {i}"))
        _, rows = store.query.run("SELECT name FROM vendors")
        assert len(rows) == MAX_QUERY_ROWS

    @pytest.mark.parametrize("sql", [
        "",
        "   ",
        "DELETE FROM vendors",
        "SELECT 1; DROP TABLE vendors",
        "SELECT * FROM vendors WHERE name IN (SELECT name FROM vendors) AND 1 = (UPDATE x)",
        "PRAGMA table_info(vendors)",
        "select * from vendors where id in (select id from vendors) union select attach",
    ])
    def test_rejects_non_select(self, store, sql):
        with pytest.raises(ValidationError):
            store.query.run(sql)

    def test_keyword_inside_identifier_allowed(self, store):
        """Column names containing a keyword as a substring are fine."""
        columns, _ = store.query.run("SELECT updated_at, created_at FROM vendors")
        assert columns == ["updated_at", "created_at"]

    def test_write_behind_cte_refused(self, store, vendor_id):
        """A CTE-prefixed REPLACE INTO is refused and changes nothing."""
        sql = (
            "WITH x AS (SELECT 1) "
            "REPLACE INTO vendors (id, name, created_at, updated_at) "
            f"VALUES ({vendor_id.value}, 'Hijacked', '2024-01-01', '2024-01-01')"
        )
        with pytest.raises(ValidationError):
            store.query.run(sql)

        assert store.vendors.get(vendor_id).name == "Acme Roofing"
        assert [v.name for v in store.vendors.list()] == ["Acme Roofing"]

    def test_replace_function_allowed(self, store, vendor_id):
        """The replace() string function is still usable."""
        _, rows = store.query.run("SELECT replace(name, 'Acme', 'Apex') FROM vendors")
        assert rows == [["Apex Roofing"]]

    def test_store_writable_after_refused_query(self, store):
        """Refusing a query leaves normal writes working."""
        with pytest.raises(ValidationError):
            store.query.run("WITH x AS (SELECT 1) REPLACE INTO vendors (name) VALUES ('x')")

        store.vendors.create(NewVendor(name="Later"))
        assert [v.name for v in store.vendors.list()] == ["Later"]
