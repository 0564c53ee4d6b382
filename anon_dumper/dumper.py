"""
Dump orchestration for the anonymizing MySQL dumper.
"""

import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

from .anonymizer import ValueAnonymizer
from .detector import Detector, NullDetector
from .exceptions import MetadataError, OutputError, PerTableQueryError
from .insert_builder import InsertBuilder
from .models import DumpOptions, DumpResult, TableStats
from .output import FileSink, OutputSink
from .scheduler import TaskGraph
from .session import DumpSession

AUTO_INCREMENT_PATTERN = re.compile(r"AUTO_INCREMENT=\d+ ")


class DumpOrchestrator:
    """
    Runs one dump as a graph of tasks.

    ``install_hints``, ``load_constraints``, ``discover_column_types`` and
    ``list_tables`` have no dependencies; ``dump_schema`` needs the table list;
    ``dump_data`` needs the schema and all metadata; ``assemble_dump`` joins
    schema and data. Table data is exported on a thread pool bounded by the
    connection limit, and a failing table only loses its own data.
    """

    def __init__(
        self,
        database: Any,
        options: DumpOptions,
        detector: Optional[Detector] = None,
        matcher_hints: Optional[dict[str, Any]] = None,
        sink: Optional[OutputSink] = None,
        connection_limit: int = 10,
        session: Optional[DumpSession] = None
    ):
        self.database = database
        self.options = options
        self.matcher_hints = matcher_hints or {}
        self.sink = sink
        self.connection_limit = connection_limit
        self.session = session or DumpSession()
        self.anonymizer = ValueAnonymizer(self.session, detector or NullDetector())
        self.builder = InsertBuilder(self.anonymizer)

    def run(self) -> DumpResult:
        """Run the dump; the first fatal error is returned on the result, not raised."""
        self.session.reset()
        result = DumpResult()
        started = time.perf_counter()

        graph = TaskGraph()
        graph.add('install_hints', self._timed('install_hints', self._install_hints))
        graph.add('load_constraints', self._timed('load_constraints', self._load_constraints))
        graph.add('discover_column_types',
                  self._timed('discover_column_types', self._discover_column_types))
        graph.add('list_tables', self._timed('list_tables', self._list_tables))
        graph.add('dump_schema', self._timed('dump_schema', self._dump_schema),
                  depends_on=['list_tables'])
        graph.add('dump_data',
                  self._timed('dump_data', lambda results: self._dump_data(results, result.table_stats)),
                  depends_on=['dump_schema', 'load_constraints', 'install_hints', 'discover_column_types'])
        graph.add('assemble_dump', self._timed('assemble_dump', self._assemble_dump),
                  depends_on=['dump_schema', 'dump_data'])

        outcome = graph.run()
        if outcome.ok:
            result.dump = outcome.results['assemble_dump']
            try:
                with self.session.timers.measure('write_output'):
                    self._write_output(result.dump)
            except OutputError as e:
                logging.error(f"Failed to write dump: {e}")
                result.error = e
        else:
            result.error = outcome.error

        self._finish(result, time.perf_counter() - started)
        return result

    def _timed(self, name: str, function: Callable[[dict[str, Any]], Any]) -> Callable[[dict[str, Any]], Any]:
        def task(results: dict[str, Any]) -> Any:
            with self.session.timers.measure(name):
                return function(results)
        return task

    def _install_hints(self, results: dict[str, Any]) -> int:
        count = self.session.hints.load_tree(self.matcher_hints)
        logging.info(f"Installed {count} matcher hint(s)")
        return count

    def _load_constraints(self, results: dict[str, Any]) -> int:
        try:
            keys = self.database.get_key_columns()
        except Exception as e:
            raise MetadataError(f"Cannot load key constraints: {e}") from e
        self.session.constraints.update(keys)
        logging.info(f"Found {len(keys)} key column(s) excluded from anonymization")
        return len(keys)

    def _discover_column_types(self, results: dict[str, Any]) -> int:
        try:
            columns = self.database.get_columns()
        except Exception as e:
            raise MetadataError(f"Cannot read column types: {e}") from e

        for info in columns:
            self.session.column_types[(info.table, info.name)] = info
            if info.is_enum:
                self.session.hints.set_default_hint(
                    info.table, info.name, None, None,
                    {'type': 'enum', 'values': info.enum_values}
                )
        logging.debug(f"Discovered types of {len(columns)} column(s)")
        return len(columns)

    def _list_tables(self, results: dict[str, Any]) -> list[str]:
        if not self.options.all_tables:
            return list(self.options.tables)
        try:
            tables = self.database.get_tables()
        except Exception as e:
            raise MetadataError(f"Cannot list tables: {e}") from e
        logging.debug(f"Tables: {tables}")
        return tables

    def _dump_schema(self, results: dict[str, Any]) -> list[str]:
        if not self.options.schema:
            return []

        statements = []
        for table in results['list_tables']:
            try:
                ddl = self.database.get_create_table(table)
            except Exception as e:
                raise MetadataError(f"Cannot read schema of '{table}': {e}") from e
            statement = self.rewrite_ddl(table, ddl)
            logging.debug(statement)
            statements.append(statement)
        return statements

    def rewrite_ddl(self, table: str, ddl: str) -> str:
        """Apply the drop_table / if_not_exist / auto_increment rewrites."""
        statement = f"{ddl};"
        if self.options.drop_table:
            statement = statement.replace(
                'CREATE TABLE `', f'DROP TABLE IF EXISTS `{table}`;\nCREATE TABLE `', 1
            )
        if self.options.if_not_exist:
            statement = statement.replace('CREATE TABLE `', 'CREATE TABLE IF NOT EXISTS `', 1)
        if not self.options.auto_increment:
            statement = AUTO_INCREMENT_PATTERN.sub('', statement)
        return statement

    def _dump_data(self, results: dict[str, Any], table_stats: list[TableStats]) -> list[str]:
        tables = self.options.tables_with_data(results['list_tables'])
        if not tables:
            logging.info("No table data selected")
            return []

        logging.info(f"Dumping data of {len(tables)} table(s) from '{self.database_name}'")
        with ThreadPoolExecutor(max_workers=self.connection_limit) as executor:
            outcomes = list(executor.map(self._dump_table_data, tables))

        statements = []
        for stats, statement in outcomes:
            table_stats.append(stats)
            self._log_table_result(stats)
            if statement:
                statements.append(statement)
        return statements

    def _dump_table_data(self, table: str) -> tuple[TableStats, str]:
        """Export one table; failures are recorded on the stats, never raised."""
        stats = TableStats(table=table)
        query = self.build_select_query(table)
        logging.debug(query)
        try:
            rows, fields = self.database.query(query)
            statement = self.builder.build(rows, table, fields)
        except Exception as e:
            error = PerTableQueryError(table, query, e)
            logging.error(str(error))
            stats.error = str(e)
            return stats, ''

        stats.rows_dumped = len(rows)
        stats.success = True
        return stats, statement

    def build_select_query(self, table: str) -> str:
        """Build SELECT query with the table's filter, ordering and limit."""
        query = f"SELECT * FROM `{table}`"

        where = self.options.where.get(table)
        if where is not None and str(where).strip():
            query += f" WHERE {where}"

        order_by = self.options.order_by_for(table)
        if order_by:
            query += f" ORDER BY {order_by}"

        limit = self.options.limit_for(table)
        if limit:
            query += f" LIMIT {limit}"

        return query

    def _assemble_dump(self, results: dict[str, Any]) -> str:
        return '\n\n'.join(results['dump_schema'] + results['dump_data'])

    def _write_output(self, dump: str) -> None:
        sink = self.sink or FileSink(self.options.dest, self.options.compress)
        with sink:
            if self.options.pre_sql:
                sink.write(f"{self.options.pre_sql}\n\n")
            sink.write(dump)
            if self.options.post_sql:
                sink.write(f"\n\n{self.options.post_sql}")
            sink.write('\n')

    def _finish(self, result: DumpResult, elapsed: float) -> None:
        """Report statistics and timers, then clear per-run state."""
        result.stats = self.session.stats.snapshot()
        result.timings = self.session.timers.snapshot()
        result.timings['total'] = elapsed

        self.session.stats.log_summary()
        logging.info("Timers:")
        self.session.timers.log_summary()
        logging.info(f"  total: {elapsed:.3f}s")

        if self.options.hints_output:
            try:
                self.session.stats.write_hint_file(self.options.hints_output, self.matcher_hints)
            except OSError as e:
                logging.error(f"Failed to write hint file: {e}")
                if result.error is None:
                    result.error = OutputError(f"Cannot write '{self.options.hints_output}': {e}")

        self.session.reset()

    @property
    def database_name(self) -> str:
        return getattr(self.database, 'database', '')

    def _log_table_result(self, stats: TableStats) -> None:
        """Log the result of a table export."""
        if stats.success:
            logging.info(f"  ✓ {stats.table}: {stats.rows_dumped} rows")
        else:
            logging.error(f"  ✗ {stats.table}: {stats.error}")
