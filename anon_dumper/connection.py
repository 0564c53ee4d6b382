"""
Pooled MySQL access for the anonymizing dumper.
"""

import logging
import threading
from typing import Optional, Any

from mysql.connector import pooling
from mysql.connector import Error as MySQLError

from .geometry import GeometryConverter
from .models import ColumnInfo, ConnectionSettings


class Database:
    """
    Connection pool with context manager support.

    ``MySQLConnectionPool.get_connection`` fails immediately when every
    connection is taken, so callers wait on a semaphore sized to the pool.
    """

    POOL_NAME = 'anon_dumper'

    def __init__(self, settings: ConnectionSettings):
        self.settings = settings
        self.pool = None
        self._slots = threading.BoundedSemaphore(settings.connection_limit)

    def __enter__(self) -> "Database":
        """Context manager entry - create the pool."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - release the pool."""
        self.disconnect()

    @property
    def database(self) -> str:
        return self.settings.database

    @property
    def pool_size(self) -> int:
        return self.settings.connection_limit

    def connect_args(self) -> dict[str, Any]:
        """Keyword arguments for every pooled connection."""
        args = {
            'host': self.settings.host,
            'port': self.settings.port,
            'user': self.settings.user,
            'password': self.settings.password,
            'database': self.settings.database,
            'charset': self.settings.charset,
            'use_unicode': True,
            # The custom converter only runs on the pure Python protocol.
            'use_pure': True,
            'converter_class': GeometryConverter,
        }
        if self.settings.socket:
            args['unix_socket'] = self.settings.socket
        return args

    def connect(self) -> None:
        """Create the connection pool."""
        try:
            self.pool = pooling.MySQLConnectionPool(
                pool_name=self.POOL_NAME,
                pool_size=self.pool_size,
                **self.connect_args()
            )
            logging.info(
                f"Connected to {self.settings.host}:{self.settings.port}/{self.database} "
                f"(pool size {self.pool_size})"
            )
        except MySQLError as e:
            logging.error(f"Failed to connect to database: {e}")
            raise

    def disconnect(self) -> None:
        """Close idle pooled connections."""
        if self.pool is not None:
            try:
                self.pool._remove_connections()
            except MySQLError as e:
                logging.warning(f"Error while closing connection pool: {e}")
            self.pool = None
            logging.debug("Connection pool closed")

    def query(self, sql: str, params: Optional[tuple] = None) -> tuple[list[dict[str, Any]], list[str]]:
        """
        Run a query on a pooled connection and return rows (as dicts) and field names.

        Blocks until a pooled connection is free.
        """
        with self._slots:
            connection = self.pool.get_connection()
            try:
                cursor = connection.cursor(dictionary=True)
                try:
                    cursor.execute(sql, params)
                    rows = cursor.fetchall()
                    fields = list(cursor.column_names)
                finally:
                    cursor.close()
            finally:
                # Returns the connection to the pool.
                connection.close()
        return rows, fields

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        rows, fields = self.query(f"SHOW TABLES FROM `{self.database}`")
        return [row[fields[0]] for row in rows]

    def get_create_table(self, table: str) -> str:
        """Get CREATE TABLE (or CREATE VIEW) statement."""
        rows, _ = self.query(f"SHOW CREATE TABLE `{table}`")
        return rows[0].get('Create Table') or rows[0]['Create View']

    def get_key_columns(self) -> set[tuple[str, str]]:
        """(table, column) pairs that are primary keys, foreign keys or referenced by one."""
        rows, _ = self.query(
            "SELECT TABLE_NAME, COLUMN_NAME, CONSTRAINT_NAME, "
            "REFERENCED_TABLE_NAME, REFERENCED_COLUMN_NAME "
            "FROM information_schema.KEY_COLUMN_USAGE "
            "WHERE TABLE_SCHEMA = %s "
            "AND (CONSTRAINT_NAME = 'PRIMARY' OR REFERENCED_TABLE_NAME IS NOT NULL)",
            (self.database,)
        )
        keys = set()
        for row in rows:
            keys.add((row['TABLE_NAME'], row['COLUMN_NAME']))
            if row['REFERENCED_TABLE_NAME']:
                keys.add((row['REFERENCED_TABLE_NAME'], row['REFERENCED_COLUMN_NAME']))
        return keys

    def get_columns(self) -> list[ColumnInfo]:
        """Column metadata for every table in the database."""
        rows, _ = self.query(
            "SELECT TABLE_NAME, COLUMN_NAME, DATA_TYPE, COLUMN_TYPE "
            "FROM information_schema.COLUMNS "
            "WHERE TABLE_SCHEMA = %s "
            "ORDER BY TABLE_NAME, ORDINAL_POSITION",
            (self.database,)
        )
        return [
            ColumnInfo(
                table=row['TABLE_NAME'],
                name=row['COLUMN_NAME'],
                data_type=_text(row['DATA_TYPE']),
                column_type=_text(row['COLUMN_TYPE'])
            )
            for row in rows
        ]


def _text(value: Any) -> str:
    """information_schema text columns can arrive as bytes on some servers."""
    if isinstance(value, (bytes, bytearray)):
        return value.decode('utf-8')
    return value or ''
