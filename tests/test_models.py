"""
Unit tests for models.py
"""

import pytest

from anon_dumper.exceptions import ConfigurationError
from anon_dumper.models import (
    ColumnInfo,
    ConnectionSettings,
    DetectionResult,
    DumpOptions,
    DumpResult,
    TableStats,
)


class TestColumnInfo:
    """Tests for ColumnInfo."""

    def test_json_column(self):
        """Test JSON detection is case insensitive."""
        assert ColumnInfo("t", "c", "JSON").is_json
        assert not ColumnInfo("t", "c", "varchar", "varchar(20)").is_json

    def test_enum_values(self):
        """Test enum values are parsed from the column type."""
        info = ColumnInfo("t", "status", "enum", "enum('new','in progress','done')")
        assert info.is_enum
        assert info.enum_values == ["new", "in progress", "done"]

    def test_enum_values_with_quotes_and_commas(self):
        """Test doubled quotes and commas inside values."""
        info = ColumnInfo("t", "c", "enum", "enum('it''s','a,b')")
        assert info.enum_values == ["it's", "a,b"]

    def test_non_enum_values(self):
        """Test non-enum columns have no values."""
        assert ColumnInfo("t", "c", "set", "set('a')").enum_values == []


class TestConnectionSettings:
    """Tests for ConnectionSettings.from_config."""

    def test_defaults(self):
        """Test defaults for a minimal config."""
        settings = ConnectionSettings.from_config({"database": "shop"})
        assert settings.host == "localhost"
        assert settings.port == 3306
        assert settings.user == "root"
        assert settings.password == ""
        assert settings.socket is None
        assert settings.connection_limit == 10

    def test_missing_database(self):
        """Test the database name is required."""
        with pytest.raises(ConfigurationError):
            ConnectionSettings.from_config({"host": "localhost"})

    def test_connection_limit_bounds(self):
        """Test the pool size must fit the driver's pool."""
        with pytest.raises(ConfigurationError):
            ConnectionSettings.from_config({"database": "shop", "connection_limit": 0})
        with pytest.raises(ConfigurationError):
            ConnectionSettings.from_config({"database": "shop", "connection_limit": 33})

    def test_none_values_use_defaults(self):
        """Test explicit nulls fall back to defaults."""
        settings = ConnectionSettings.from_config({"database": "shop", "host": None})
        assert settings.host == "localhost"


class TestDumpOptions:
    """Tests for DumpOptions."""

    def test_defaults(self):
        """Test default flags."""
        options = DumpOptions.from_config({})
        assert options.all_tables
        assert options.schema and options.data and options.if_not_exist and options.auto_increment
        assert not options.drop_table
        assert options.dest == "./data.sql"

    def test_tables_all(self):
        """Test 'all' and '*' select every table."""
        assert DumpOptions.from_config({"tables": "all"}).all_tables
        assert DumpOptions.from_config({"tables": "*"}).all_tables

    def test_single_table_string(self):
        """Test a single table name."""
        assert DumpOptions.from_config({"tables": "users"}).tables == ["users"]

    def test_unknown_keys_ignored(self):
        """Test unknown keys do not break loading."""
        assert DumpOptions.from_config({"unknown": 1}).schema is True

    def test_tables_with_data(self):
        """Test which tables get data."""
        assert DumpOptions().tables_with_data(["a", "b"]) == ["a", "b"]
        assert DumpOptions(data=False, where={"b": "x"}).tables_with_data(["a", "b"]) == ["b"]
        assert DumpOptions(data=False).tables_with_data(["a", "b"]) == []

    def test_per_table_values(self):
        """Test scalar, wildcard and per-table order/limit values."""
        options = DumpOptions(order_by={"*": " id ", "logs": "ts"}, limit=50)
        assert options.order_by_for("users") == "id"
        assert options.order_by_for("logs") == "ts"
        assert options.limit_for("users") == "50"
        assert DumpOptions().order_by_for("users") == ""
        assert DumpOptions(limit={"logs": 5}).limit_for("users") == ""


class TestResults:
    """Tests for result dataclasses."""

    def test_table_stats_defaults(self):
        """Test TableStats defaults."""
        stats = TableStats(table="users")
        assert stats.rows_dumped == 0
        assert stats.success is False
        assert stats.error is None

    def test_dump_result_aggregates(self):
        """Test errors and totals."""
        result = DumpResult(table_stats=[
            TableStats("a", rows_dumped=3, success=True),
            TableStats("b", error="boom"),
        ])
        assert result.total_rows == 3
        assert [s.table for s in result.errors] == ["b"]

    def test_detection_result(self):
        """Test DetectionResult fields."""
        result = DetectionResult("email", ("work",), "a@x.com", "b@y.com")
        assert result.type == "email"
        assert result.sub_types == ("work",)
