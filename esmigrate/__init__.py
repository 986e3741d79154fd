"""Migrate prototype-based JavaScript sources to ES class syntax."""

from .config import MigrationConfig, resolve_config
from .errors import InputUnavailableError, MigrationError
from .file_walker import iter_source_files, read_units, write_units
from .graph import DependencyGraph, SymbolTable
from .models import Diagnostic, SourceUnit
from .pipeline import MigrationResult, migrate_root, migrate_units
from .storage import load_graph, load_report, save_graph, save_report

__all__ = [
    "MigrationConfig",
    "resolve_config",
    "InputUnavailableError",
    "MigrationError",
    "iter_source_files",
    "read_units",
    "write_units",
    "DependencyGraph",
    "SymbolTable",
    "Diagnostic",
    "SourceUnit",
    "MigrationResult",
    "migrate_root",
    "migrate_units",
    "load_graph",
    "load_report",
    "save_graph",
    "save_report",
]
