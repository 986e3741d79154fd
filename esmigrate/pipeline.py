"""End-to-end driver migrating a set of legacy source units to ES classes."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from .assembler import assemble_class
from .config import MigrationConfig, resolve_config
from .errors import MigrationError
from .file_walker import iter_source_files, read_units, write_units
from .graph import DependencyGraph, SymbolTable, combine
from .models import DIAG_INHERITANCE_CYCLE, DIAG_SYNTAX_ERROR, Diagnostic, SourceUnit
from .stages import DISCOVERY_STAGES, REWRITE_STAGES, StageContext, export_properties
from .storage import save_graph, save_report


logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    units: list[SourceUnit]
    symbols: SymbolTable
    dependencies: DependencyGraph
    diagnostics: list[Diagnostic]

    def unit(self, path: str) -> SourceUnit:
        for unit in self.units:
            if unit.path == path:
                return unit
        raise KeyError(path)

    def diagnostics_of(self, kind: str) -> list[Diagnostic]:
        return [diagnostic for diagnostic in self.diagnostics if diagnostic.kind == kind]

    def to_dict(self, include_text: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "symbols": self.symbols.to_dict(),
            "dependencies": self.dependencies.to_dict(),
            "diagnostics": [diagnostic.to_dict() for diagnostic in self.diagnostics],
        }
        if include_text:
            data["units"] = [{"path": unit.path, "text": unit.text} for unit in self.units]
        return data


def migrate_units(
    units: Iterable[SourceUnit],
    config: MigrationConfig | None = None,
) -> MigrationResult:
    """Run every unit through the rewrite stages and the class assembler.

    With ``config.two_phase`` the symbol table and dependency graph are built
    from the whole corpus first and frozen, so the output does not depend on
    unit order. Otherwise units are processed in a single pass and each one
    sees only what earlier units (and its own earlier stages) recorded.
    """
    config = config or MigrationConfig()
    units = list(units)
    symbols = SymbolTable()
    dependencies = DependencyGraph()
    diagnostics: list[Diagnostic] = []

    for unit in units:
        dependencies.add_unit(unit.path)

    if config.two_phase:
        discover(units, config, symbols, dependencies, diagnostics)
        _report_cycles(symbols, diagnostics)
        symbols.freeze()
        dependencies.freeze()

    migrated = [
        migrate_unit(
            unit,
            config,
            symbols,
            dependencies,
            diagnostics,
            recording=not config.two_phase,
        )
        for unit in units
    ]

    if not config.two_phase:
        _report_cycles(symbols, diagnostics)
    if config.validate_output:
        validate_units(migrated, diagnostics)

    logger.debug("Inheritance index: %s", symbols.to_dict())
    logger.debug("Internal dependencies: %s", dependencies.to_dict())

    return MigrationResult(
        units=migrated,
        symbols=symbols,
        dependencies=dependencies,
        diagnostics=diagnostics,
    )


def discover(
    units: list[SourceUnit],
    config: MigrationConfig,
    symbols: SymbolTable,
    dependencies: DependencyGraph,
    diagnostics: list[Diagnostic],
) -> None:
    for unit in units:
        context = StageContext(unit, config, symbols, dependencies, diagnostics, recording=True)
        text = unit.text
        for stage in DISCOVERY_STAGES:
            text = stage(text, context)


def migrate_unit(
    unit: SourceUnit,
    config: MigrationConfig,
    symbols: SymbolTable,
    dependencies: DependencyGraph,
    diagnostics: list[Diagnostic],
    recording: bool = True,
) -> SourceUnit:
    logger.info("v -- Processing %s -- v", unit.path)
    context = StageContext(unit, config, symbols, dependencies, diagnostics, recording=recording)
    text = unit.text
    for stage in REWRITE_STAGES:
        text = stage(text, context)
    text = assemble_class(text, context)
    if config.export_properties:
        text = export_properties(text, context)
    return unit.replace_text(text)


def validate_units(units: list[SourceUnit], diagnostics: list[Diagnostic]) -> None:
    from .parser import JavaScriptParser

    parser = JavaScriptParser()
    for unit in units:
        problems = parser.find_syntax_errors(unit.text)
        if not problems:
            continue
        first = problems[0]
        diagnostic = Diagnostic(
            kind=DIAG_SYNTAX_ERROR,
            unit=unit.path,
            message=f"syntax error at line {first.line}, column {first.column}",
            details={
                "problems": [
                    {"line": p.line, "column": p.column, "kind": p.kind, "snippet": p.snippet}
                    for p in problems
                ]
            },
        )
        diagnostics.append(diagnostic)
        logger.warning("%s: %s", unit.path, diagnostic.message)


def _report_cycles(symbols: SymbolTable, diagnostics: list[Diagnostic]) -> None:
    for cycle in symbols.cycles():
        diagnostic = Diagnostic(
            kind=DIAG_INHERITANCE_CYCLE,
            unit=None,
            message="inheritance cycle: " + " -> ".join(cycle),
            details={"symbols": cycle},
        )
        diagnostics.append(diagnostic)
        logger.warning(diagnostic.message)


def migrate_root(
    root: str | Path,
    output_dir: str | Path | None = None,
    config: MigrationConfig | None = None,
    report_path: str | Path | None = None,
    graph_path: str | Path | None = None,
) -> MigrationResult:
    config = config or MigrationConfig()
    paths = iter_source_files(root, include=config.include)
    units = read_units(root, paths)

    result = migrate_units(units, config)

    if output_dir:
        write_units(result.units, output_dir)
    if report_path:
        save_report(result.to_dict(), report_path)
    if graph_path:
        save_graph(combine(result.symbols, result.dependencies), graph_path)

    return result


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Migrate prototype-based sources to ES class syntax"
    )
    parser.add_argument("--root", default="src", help="Root directory of the legacy sources")
    parser.add_argument("--output", default="src-esm", help="Directory for migrated sources")
    parser.add_argument("--report", help="Write symbols, dependencies and diagnostics as JSON")
    parser.add_argument("--graph", help="Write the combined node-link graph JSON")
    parser.add_argument("--namespace", help="Legacy namespace object (default ROS3D)")
    parser.add_argument("--root-unit", help="Unit holding the namespace declaration")
    parser.add_argument(
        "--include",
        action="append",
        help="Glob relative to --root; repeat to fix processing order",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Single order-sensitive pass instead of discovery + rewrite",
    )
    parser.add_argument("--validate", action="store_true", help="Syntax-check output")
    parser.add_argument(
        "--export-properties",
        action="store_true",
        help="Rewrite remaining namespace assignments to exported consts",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(name)s: %(message)s",
    )

    config = resolve_config(
        namespace=args.namespace,
        root_unit=args.root_unit,
        include=args.include,
        two_phase=False if args.sequential else None,
        validate_output=True if args.validate else None,
        export_properties=True if args.export_properties else None,
    )

    try:
        result = migrate_root(
            args.root,
            output_dir=args.output,
            config=config,
            report_path=args.report,
            graph_path=args.graph,
        )
    except MigrationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    classes = sum(1 for name in result.symbols.names() if result.symbols.is_class(name))
    print(
        len(result.units),
        classes,
        result.dependencies.number_of_edges(),
        len(result.diagnostics),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
