#!/usr/bin/env python3
"""
MySQL Anonymizing Dumper - CLI Entry Point
==========================================
Dumps a MySQL database to a replayable SQL file while anonymizing
sensitive cell values:
- Schema and data export, DDL rewrites
- Per-table WHERE, ORDER BY and LIMIT
- Hierarchical anonymization hints (table, column, JSON path)
- Key columns preserved for referential integrity
- Spatial columns re-encoded as GeomFromText literals
"""

import argparse
import logging
import sys

import yaml

from .config import ConfigLoader
from .connection import Database
from .detector import load_detector
from .dumper import DumpOrchestrator
from .exceptions import ConfigurationError
from .utils import print_dry_run_info, setup_logging


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='MySQL Anonymizing Dumper - privacy-safe database dumps'
    )
    parser.add_argument(
        '-c', '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would be dumped without actually dumping'
    )
    parser.add_argument(
        '--dest',
        help='Write the dump to this path instead of the configured one'
    )

    args = parser.parse_args()

    # Load configuration
    try:
        config = ConfigLoader(args.config)
    except FileNotFoundError:
        print(f"Error: Configuration file '{args.config}' not found")
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file: {e}")
        sys.exit(1)
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    # Setup logging
    log_settings = config.get_logging_settings()
    if args.verbose:
        log_settings['level'] = 'DEBUG'
    setup_logging(log_settings)

    try:
        connection = config.get_connection_settings()
        options = config.get_dump_options()
        matcher_hints = config.get_matcher_hints()
    except ConfigurationError as e:
        logging.error(f"Configuration error: {e}")
        sys.exit(1)

    if args.dest:
        options.dest = args.dest

    # Dry run mode
    if args.dry_run:
        logging.info("DRY RUN MODE - No data will be dumped")
        print_dry_run_info(connection, options, matcher_hints)
        sys.exit(0)

    # Run dump
    try:
        detector = load_detector(config.get_detector_settings())
        with Database(connection) as database:
            dumper = DumpOrchestrator(
                database,
                options,
                detector=detector,
                matcher_hints=matcher_hints,
                connection_limit=connection.connection_limit
            )
            result = dumper.run()
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        sys.exit(1)

    # Print summary
    logging.info("=" * 50)
    logging.info("DUMP COMPLETE" if result.error is None else "DUMP FAILED")
    logging.info(f"Tables with data: {len(result.table_stats)}")
    logging.info(f"Total Rows: {result.total_rows}")

    if result.error is not None:
        logging.error(f"Fatal error: {result.error}")
        sys.exit(1)

    if result.errors:
        logging.warning(f"Errors: {len(result.errors)}")
        for stats in result.errors:
            logging.warning(f"  - {stats.table}: {stats.error}")
        sys.exit(1)


if __name__ == '__main__':
    main()
