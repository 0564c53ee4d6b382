"""
Unit tests for utils.py
"""

import logging
import tempfile
from pathlib import Path

import pytest

from anon_dumper.models import ConnectionSettings, DumpOptions
from anon_dumper.utils import setup_logging, format_table_settings, print_dry_run_info


class TestSetupLogging:
    """Tests for setup_logging function."""

    @pytest.fixture(autouse=True)
    def reset_logging(self):
        """Reset logging configuration before each test."""
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        root_logger.setLevel(logging.NOTSET)
        yield

    def test_default_log_level(self):
        """Test default log level is INFO."""
        setup_logging({})
        assert logging.getLogger().level == logging.INFO

    def test_custom_log_level(self):
        """Test setting custom log level."""
        setup_logging({"level": "DEBUG"})
        assert logging.getLogger().level == logging.DEBUG

    def test_log_level_case_insensitive(self):
        """Test log level is case insensitive."""
        setup_logging({"level": "warning"})
        assert logging.getLogger().level == logging.WARNING

    def test_log_to_file(self):
        """Test logging to a file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = Path(tmpdir) / "test.log"
            setup_logging({"file": str(log_file)})
            logging.info("Test message")
            assert log_file.exists()

    def test_creates_log_directory(self):
        """Test that log directory is created if it doesn't exist."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = Path(tmpdir) / "nested" / "dir" / "test.log"
            setup_logging({"file": str(log_file)})
            assert log_file.parent.exists()


class TestFormatTableSettings:
    """Tests for format_table_settings function."""

    def test_empty_settings(self):
        """Test formatting with no settings."""
        assert format_table_settings(DumpOptions(), "users") == []

    def test_predicate_only(self):
        """Test formatting with only a WHERE predicate."""
        assert format_table_settings(DumpOptions(), "users", "id > 5") == ["where='id > 5'"]

    def test_all_settings(self):
        """Test formatting with predicate, ordering and limit."""
        options = DumpOptions(order_by={"users": "id DESC"}, limit={"*": 10})
        parts = format_table_settings(options, "users", "active = 1")
        assert parts == ["where='active = 1'", "order=id DESC", "limit=10"]


class TestPrintDryRunInfo:
    """Tests for print_dry_run_info function."""

    @pytest.fixture
    def connection(self):
        return ConnectionSettings(database="shop", host="db", port=3306, connection_limit=3)

    def test_all_tables(self, connection, caplog):
        """Test dry run output for a full dump."""
        with caplog.at_level(logging.INFO):
            print_dry_run_info(connection, DumpOptions(), {"users": {"email": "email"}})

        assert "Would dump database: shop from db:3306" in caplog.text
        assert "All tables" in caplog.text
        assert "Matcher hints for 1 table(s)" in caplog.text
        assert "Concurrency: 3 connection(s)" in caplog.text

    def test_listed_tables_with_filters(self, connection, caplog):
        """Test dry run output for filtered data."""
        options = DumpOptions(tables=["users", "orders"], data=False,
                              where={"orders": "id > 5"}, compress=True)
        with caplog.at_level(logging.INFO):
            print_dry_run_info(connection, options, {})

        assert "  - users" in caplog.text
        assert "  - orders" in caplog.text
        assert "Data: only orders" in caplog.text
        assert "orders: where='id > 5'" in caplog.text
        assert "./data.sql.gz" in caplog.text

    def test_no_data(self, connection, caplog):
        """Test dry run output for a schema-only dump."""
        with caplog.at_level(logging.INFO):
            print_dry_run_info(connection, DumpOptions(data=False), {})
        assert "Data: none" in caplog.text
