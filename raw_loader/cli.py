"""
Command-line interface for the raw table loader.

Sub-commands:
    config  Show the configuration summary and validate it
    ddl     Print the CREATE TABLE statement of a raw table
    stage   Stage a JSON-lines record file into a bulk-loadable CSV file
    load    Create schema and raw table if needed and insert a JSON-lines record file
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterator, List, Optional

from .config.config_manager import get_config_manager
from .database.connection import PyodbcDatabase
from .database.error_classifier import SqlStateErrorClassifier
from .database.insert_loader import ParameterizedInsertOperations
from .exceptions import ConfigurationError, RawLoaderError
from .models import StreamRecord, TableSchemaVersion
from .staging.batch_stager import BatchStager
from .utils import JsonUtils


def read_records(path: Path) -> Iterator[StreamRecord]:
    """
    Read records from a JSON-lines file.

    Each line is an object: {"data": {...}, "emitted_at": <epoch ms>, "meta": {...}}.
    Blank lines are skipped.
    """
    with open(path, 'r', encoding='utf-8') as file:
        for line_number, line in enumerate(file, start=1):
            if not line.strip():
                continue
            try:
                message = json.loads(line)
                yield StreamRecord(
                    serialized=JsonUtils.serialize(message['data']),
                    emitted_at=int(message['emitted_at']),
                    meta=message.get('meta')
                )
            except (ValueError, KeyError, TypeError) as e:
                raise RawLoaderError(f"Invalid record on line {line_number} of {path}: {e}") from e


def _resolve_version(args: argparse.Namespace) -> TableSchemaVersion:
    if args.v2:
        return TableSchemaVersion.V2
    if args.v1:
        return TableSchemaVersion.V1
    return get_config_manager().get_schema_version()


def _add_version_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--v1', action='store_true', help='Use the legacy raw table layout')
    group.add_argument('--v2', action='store_true', help='Use the typing and deduping raw table layout')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='raw_loader', description='Raw table loader')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging level (default: INFO)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('config', help='Show and validate the configuration')

    ddl_parser = subparsers.add_parser('ddl', help='Print the CREATE TABLE statement of a raw table')
    ddl_parser.add_argument('--schema', required=True)
    ddl_parser.add_argument('--table', required=True)
    _add_version_arguments(ddl_parser)

    stage_parser = subparsers.add_parser('stage', help='Stage a JSON-lines record file as CSV')
    stage_parser.add_argument('--input', required=True, type=Path)
    stage_parser.add_argument('--output', type=Path,
                              help='Output CSV file (default: <staging directory>/<input name>.csv)')
    _add_version_arguments(stage_parser)

    load_parser = subparsers.add_parser('load', help='Insert a JSON-lines record file into a raw table')
    load_parser.add_argument('--schema', required=True)
    load_parser.add_argument('--table', required=True)
    load_parser.add_argument('--input', required=True, type=Path)
    _add_version_arguments(load_parser)

    return parser


def _run_config(args: argparse.Namespace, logger: logging.Logger) -> int:
    config_manager = get_config_manager()
    summary = config_manager.get_configuration_summary()

    logger.info("=== Configuration Summary ===")
    logger.info(f"Database Server: {summary['database']['server']}:{summary['database']['port']}")
    logger.info(f"Database Name: {summary['database']['database']}")
    logger.info(f"Raw Table Version: {summary['loader']['schema_version']}")
    logger.info(f"Batch Size: {summary['loader']['batch_size']}")
    logger.info(f"Staging Directory: {summary['loader']['staging_directory']}")

    is_valid = config_manager.validate_configuration()
    logger.info(f"Configuration Status: {'VALID' if is_valid else 'INVALID'}")
    return 0


def _run_ddl(args: argparse.Namespace, logger: logging.Logger) -> int:
    operations = ParameterizedInsertOperations(schema_version=_resolve_version(args))
    print(operations.create_table_query(None, args.schema, args.table), end='')
    return 0


def _run_stage(args: argparse.Namespace, logger: logging.Logger) -> int:
    output = args.output or get_config_manager().get_staging_directory() / f"{args.input.stem}.csv"
    # Input is fully parsed before the output file is opened
    records = list(read_records(args.input))
    stager = BatchStager(_resolve_version(args))
    row_count = stager.write_batch_to_file(output, records)
    logger.info(f"Staged {row_count} records from {args.input} to {output}")
    return 0


def _run_load(args: argparse.Namespace, logger: logging.Logger) -> int:
    database = PyodbcDatabase()
    operations = ParameterizedInsertOperations(
        schema_version=_resolve_version(args),
        error_classifier=SqlStateErrorClassifier()
    )
    records: List[StreamRecord] = list(read_records(args.input))

    operations.create_schema_if_not_exists(database, args.schema)
    operations.create_table_if_not_exists(database, args.schema, args.table)
    operations.insert_records(database, records, args.schema, args.table)
    logger.info(f"Loaded {len(records)} records into {args.schema}.{args.table}")
    return 0


_COMMANDS = {
    'config': _run_config,
    'ddl': _run_ddl,
    'stage': _run_stage,
    'load': _run_load,
}


def main(args: Optional[list] = None) -> int:
    """
    Main entry point for the CLI application.

    Args:
        args: Optional command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if args is None:
        args = sys.argv[1:]

    parsed = build_parser().parse_args(args)

    # Set up logging without reconfiguring root if already configured
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, parsed.log_level))
    logger = logging.getLogger(__name__)

    try:
        return _COMMANDS[parsed.command](parsed, logger)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except Exception as e:
        logger.error(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
