"""
Data models for the anonymizing MySQL dumper.
"""

from dataclasses import dataclass, field
from typing import Optional, Any

from .exceptions import ConfigurationError

ALL_TABLES = 'all'
WILDCARD = '*'
MAX_CONNECTION_LIMIT = 32  # mysql.connector pool maximum


@dataclass
class ColumnInfo:
    """Column metadata read from information_schema."""
    table: str
    name: str
    data_type: str
    column_type: str = ""

    @property
    def is_json(self) -> bool:
        return self.data_type.lower() == 'json'

    @property
    def is_enum(self) -> bool:
        return self.data_type.lower() == 'enum'

    @property
    def enum_values(self) -> list[str]:
        """Values of an ``enum('a','b')`` column type, unescaped."""
        if not self.is_enum:
            return []
        body = self.column_type[self.column_type.find('(') + 1:self.column_type.rfind(')')]
        values = []
        current = None
        i = 0
        while i < len(body):
            char = body[i]
            if current is None:
                if char == "'":
                    current = ''
            elif char == "'" and body[i + 1:i + 2] == "'":
                current += "'"
                i += 1
            elif char == "'":
                values.append(current)
                current = None
            else:
                current += char
            i += 1
        return values


@dataclass(frozen=True)
class DetectionResult:
    """A single detector match for a checked value."""
    type: str
    sub_types: tuple[str, ...] = ()
    original: Any = None
    anonymized: Any = None


@dataclass
class TableStats:
    """Statistics for a single table's data export."""
    table: str
    rows_dumped: int = 0
    success: bool = False
    error: Optional[str] = None


@dataclass
class ConnectionSettings:
    """Settings for the database connection pool."""
    database: str
    host: str = 'localhost'
    port: int = 3306
    user: str = 'root'
    password: str = ''
    charset: str = 'utf8mb4'
    socket: Optional[str] = None
    connection_limit: int = 10

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "ConnectionSettings":
        """Build settings from the ``connection`` config section."""
        if not config.get('database'):
            raise ConfigurationError("Database not specified")

        settings = {k: config[k] for k in (
            'host', 'port', 'user', 'password', 'charset', 'socket', 'connection_limit'
        ) if config.get(k) is not None}
        limit = int(settings.get('connection_limit', cls.connection_limit))
        if not 1 <= limit <= MAX_CONNECTION_LIMIT:
            raise ConfigurationError(
                f"connection_limit must be between 1 and {MAX_CONNECTION_LIMIT}, got {limit}"
            )
        settings['connection_limit'] = limit
        return cls(database=config['database'], **settings)


@dataclass
class DumpOptions:
    """What to dump and how to rewrite it."""
    tables: list[str] = field(default_factory=list)
    schema: bool = True
    data: bool = True
    if_not_exist: bool = True
    auto_increment: bool = True
    drop_table: bool = False
    where: dict[str, str] = field(default_factory=dict)
    order_by: Any = None
    limit: Any = None
    pre_sql: str = ''
    post_sql: str = ''
    dest: str = './data.sql'
    compress: bool = False
    hints_output: Optional[str] = None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "DumpOptions":
        """Build options from the ``dump`` config section."""
        options = {k: v for k, v in config.items() if k in cls.__dataclass_fields__ and v is not None}

        tables = options.pop('tables', None)
        if isinstance(tables, str):
            tables = [] if tables in (ALL_TABLES, WILDCARD) else [tables]
        options['tables'] = list(tables or [])
        return cls(**options)

    @property
    def all_tables(self) -> bool:
        return not self.tables

    def tables_with_data(self, tables: list[str]) -> list[str]:
        """Tables whose rows should be exported."""
        if self.data:
            return list(tables)
        return list(self.where)

    def order_by_for(self, table: str) -> str:
        return _per_table_value(self.order_by, table)

    def limit_for(self, table: str) -> str:
        return _per_table_value(self.limit, table)


def _per_table_value(setting: Any, table: str) -> str:
    """Resolve a scalar or ``{'*': ..., table: ...}`` setting to trimmed text."""
    if setting is None:
        return ''
    if isinstance(setting, dict):
        value = setting.get(table)
        if value in (None, ''):
            value = setting.get(WILDCARD)
        if value is None:
            return ''
        return str(value).strip()
    return str(setting).strip()


@dataclass
class DumpResult:
    """Outcome of a dump run."""
    dump: str = ''
    table_stats: list[TableStats] = field(default_factory=list)
    stats: dict[str, dict[str, int]] = field(default_factory=dict)
    timings: dict[str, float] = field(default_factory=dict)
    error: Optional[Exception] = None

    @property
    def errors(self) -> list[TableStats]:
        return [t for t in self.table_stats if not t.success]

    @property
    def total_rows(self) -> int:
        return sum(t.rows_dumped for t in self.table_stats)
