"""
MySQL Anonymizing Dumper
========================
Dumps a MySQL database to a replayable SQL file while anonymizing
sensitive cell values:
- Schema and data export, DDL rewrites
- Per-table WHERE, ORDER BY and LIMIT
- Hierarchical anonymization hints (table, column, JSON path)
- Key columns preserved for referential integrity
- Spatial columns re-encoded as GeomFromText literals
"""

from .anonymizer import ValueAnonymizer
from .cache import SubstitutionCache, normalize_value
from .config import ConfigLoader
from .connection import Database
from .detector import Detector, NullDetector, load_detector
from .dumper import DumpOrchestrator
from .exceptions import (
    ConfigurationError,
    DumperError,
    EncodingError,
    MetadataError,
    OutputError,
    PerTableQueryError,
)
from .geometry import Geometry, GeometryConverter, Point, WkbType, decode_geometry, encode_geometry
from .hints import Hint, HintRegistry
from .insert_builder import InsertBuilder
from .main import main
from .models import (
    ColumnInfo,
    ConnectionSettings,
    DetectionResult,
    DumpOptions,
    DumpResult,
    TableStats,
)
from .output import FileSink, MemorySink, OutputSink
from .scheduler import GraphResult, TaskGraph
from .session import DumpSession
from .stats import NOT_MATCHED, AnonymizationStats, PhaseTimers
from .utils import format_table_settings, print_dry_run_info, setup_logging

__version__ = "1.0.0"

__all__ = [
    # Main entry point
    "main",
    # Core classes
    "ConfigLoader",
    "Database",
    "DumpOrchestrator",
    "DumpSession",
    "InsertBuilder",
    "TaskGraph",
    "GraphResult",
    "ValueAnonymizer",
    # Anonymization
    "AnonymizationStats",
    "Detector",
    "Hint",
    "HintRegistry",
    "NOT_MATCHED",
    "NullDetector",
    "PhaseTimers",
    "SubstitutionCache",
    "load_detector",
    "normalize_value",
    # Geometry
    "Geometry",
    "GeometryConverter",
    "Point",
    "WkbType",
    "decode_geometry",
    "encode_geometry",
    # Output
    "FileSink",
    "MemorySink",
    "OutputSink",
    # Models
    "ColumnInfo",
    "ConnectionSettings",
    "DetectionResult",
    "DumpOptions",
    "DumpResult",
    "TableStats",
    # Errors
    "ConfigurationError",
    "DumperError",
    "EncodingError",
    "MetadataError",
    "OutputError",
    "PerTableQueryError",
    # Utilities
    "format_table_settings",
    "print_dry_run_info",
    "setup_logging",
]
