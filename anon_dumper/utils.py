"""
Utility functions for the anonymizing MySQL dumper.
"""

import logging
import sys
from pathlib import Path
from typing import Any

from .models import ConnectionSettings, DumpOptions


def setup_logging(log_settings: dict[str, Any]) -> None:
    """Setup logging configuration."""
    log_level = getattr(logging, log_settings.get('level', 'INFO').upper())
    log_file = log_settings.get('file')

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def print_dry_run_info(
    connection: ConnectionSettings,
    options: DumpOptions,
    matcher_hints: dict[str, Any]
) -> None:
    """Log what a run would do without touching the database."""
    logging.info(f"Would dump database: {connection.database} from {connection.host}:{connection.port}")
    logging.info(f"  Destination: {options.dest}{'.gz' if options.compress else ''}")
    logging.info(f"  Schema: {'yes' if options.schema else 'no'}")

    if options.all_tables:
        logging.info("  - All tables")
    else:
        for table in options.tables:
            logging.info(f"  - {table}")

    if options.data:
        logging.info(f"  Data: {'all tables' if options.all_tables else 'listed tables'}")
    elif options.where:
        logging.info(f"  Data: only {', '.join(options.where)}")
    else:
        logging.info("  Data: none")

    for table, predicate in options.where.items():
        logging.info(f"    {table}: {', '.join(format_table_settings(options, table, predicate))}")

    logging.info(f"  Matcher hints for {len(matcher_hints)} table(s)")
    logging.info(f"  Concurrency: {connection.connection_limit} connection(s)")


def format_table_settings(options: DumpOptions, table: str, predicate: Any = None) -> list[str]:
    """Format a table's filter, ordering and limit for display."""
    parts = []
    if predicate:
        parts.append(f"where='{predicate}'")
    order_by = options.order_by_for(table)
    if order_by:
        parts.append(f"order={order_by}")
    limit = options.limit_for(table)
    if limit:
        parts.append(f"limit={limit}")
    return parts
