"""
SQL REPLACE statement generation with per-cell anonymization.
"""

import json
import logging
import math
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

from mysql.connector.conversion import MySQLConverter

from .anonymizer import ValueAnonymizer
from .geometry import encode_geometry, is_geometry


def _format_float(value: float) -> str:
    # MySQL has no literal for NaN or infinity.
    return repr(value) if math.isfinite(value) else 'NULL'


def _format_decimal(value: Decimal) -> str:
    return str(value) if value.is_finite() else 'NULL'


def _format_timedelta(value: timedelta) -> str:
    seconds = int(value.total_seconds())
    sign = '-' if seconds < 0 else ''
    hours, remainder = divmod(abs(seconds), 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"'{sign}{hours:02d}:{minutes:02d}:{seconds:02d}'"


class InsertBuilder:
    """Turns a batch of rows into one multi-row REPLACE statement."""

    def __init__(self, anonymizer: ValueAnonymizer):
        self.anonymizer = anonymizer
        self._converter = MySQLConverter()

        # Pre-build type formatters for faster dispatch
        self._type_formatters: dict[type, Callable[[Any], str]] = {
            type(None): lambda v: 'NULL',
            bool: lambda v: '1' if v else '0',
            int: str,
            float: _format_float,
            Decimal: _format_decimal,
            bytes: lambda v: f"X'{v.hex()}'",
            bytearray: lambda v: f"X'{v.hex()}'",
            datetime: lambda v: f"'{v.isoformat(' ')}'",
            date: lambda v: f"'{v.isoformat()}'",
            time: lambda v: f"'{v.isoformat()}'",
            timedelta: _format_timedelta,
        }

    def build(self, rows: list[dict[str, Any]], table: str, columns: Optional[Iterable[str]] = None) -> str:
        """
        Build ``REPLACE INTO `table` (...) VALUES (...),(...);`` for ``rows``.

        Rows are rendered strictly in order. Returns an empty string for an
        empty batch.
        """
        if not rows:
            return ''

        if columns is None:
            columns = [name for name, value in rows[0].items() if not callable(value)]
        columns = list(columns)

        tuples = [f"({','.join(self._render_row(table, columns, row))})" for row in rows]
        quoted_columns = '`,`'.join(columns)
        statement = f"REPLACE INTO `{table}` (`{quoted_columns}`) VALUES {','.join(tuples)};"
        logging.debug(f"{table}: {len(rows)} row(s) rendered")
        return statement

    def _render_row(self, table: str, columns: list[str], row: dict[str, Any]) -> list[str]:
        values = []
        for column in columns:
            value = row.get(column)
            if callable(value):
                continue
            if value is None:
                values.append('NULL')
            elif isinstance(value, str) and value == '':
                values.append("''")
            else:
                key_value = self.anonymizer.key_value_for(table, column, row)
                values.append(self.format_value(self.anonymizer.anonymize(table, column, key_value, value)))
        return values

    def format_value(self, value: Any) -> str:
        """Render an (already anonymized) value as a SQL literal."""
        if is_geometry(value):
            return encode_geometry(value)

        formatter = self._type_formatters.get(type(value))
        if formatter:
            return formatter(value)

        if isinstance(value, (dict, list)):
            value = json.dumps(value, ensure_ascii=False)
        return self.escape_string(str(value))

    def escape_string(self, value: str) -> str:
        """Quote a string using the driver's escaping rules."""
        escaped = self._converter.escape(value)
        if isinstance(escaped, (bytes, bytearray)):
            escaped = escaped.decode('utf-8')
        return f"'{escaped}'"
