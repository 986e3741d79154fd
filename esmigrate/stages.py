"""Ordered text rewrite stages from the legacy prototype dialect to ES classes.

Every stage is a plain function ``stage(text, context) -> text``. Stages
never mutate the unit they work on; they read and, while
``context.recording`` is set, extend the shared symbol table and dependency
graph carried by the context.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Iterator

from .config import MigrationConfig
from .graph import DependencyGraph, SymbolTable
from .models import (
    DIAG_CLASS_MISMATCH,
    DIAG_EXTRA_PARENT_CALL,
    DIAG_PARENT_CONFLICT,
    DIAG_ROOT_MISSING,
    Diagnostic,
    SourceUnit,
)


logger = logging.getLogger(__name__)

# An assignment operator later on the same line. Comparisons and arrows are
# not assignments.
ASSIGNMENT_AHEAD = r"[^\n]*(?<![=!<>])=(?![=>])"
QUOTES = "'\"`"


@dataclass
class StageContext:
    unit: SourceUnit
    config: MigrationConfig
    symbols: SymbolTable
    dependencies: DependencyGraph
    diagnostics: list[Diagnostic] = field(default_factory=list)
    recording: bool = True

    def report(self, kind: str, message: str, **details) -> Diagnostic:
        diagnostic = Diagnostic(kind=kind, unit=self.unit.path, message=message, details=details)
        self.diagnostics.append(diagnostic)
        logger.warning("%s: %s %s", self.unit.path, message, details)
        return diagnostic


Stage = Callable[[str, StageContext], str]


@dataclass(frozen=True)
class _Patterns:
    root_declaration: re.Pattern
    migrated_root: re.Pattern
    dependency: re.Pattern
    template_link: re.Pattern
    capability_merge: re.Pattern
    method: re.Pattern
    constructor: re.Pattern
    exported_property: re.Pattern


@lru_cache(maxsize=None)
def _compile(namespace: str, template: str, template_link: str) -> _Patterns:
    ns = re.escape(namespace)
    tpl = re.escape(template)
    link = re.escape(template_link)
    function_head = r"\s*=\s*function\b\s*(?:[\w$]+\s*)?(?=\()"
    return _Patterns(
        root_declaration=re.compile(
            rf"var\s+{ns}\s*=\s*{ns}\s*\|\|\s*\{{\s*REVISION\s*:\s*(['\"])(.*?)\1\s*,?\s*\}};?"
        ),
        migrated_root=re.compile(r"^export\s+const\s+REVISION\b", re.M),
        dependency=re.compile(rf"(?<![\w.$]){ns}\.(\w+)\b(?!{ASSIGNMENT_AHEAD})"),
        template_link=re.compile(
            rf"(?<![\w.$]){ns}\.(\w+)\.{tpl}\.{link}\s*=\s*([\w$][\w.$]*)\.{tpl}\s*;[ \t]*(?:\r?\n)?"
        ),
        capability_merge=re.compile(
            rf"Object\.assign\(\s*(?!this\b)(?:{ns}\.)?(\w+)\.{tpl}\s*,"
            rf"\s*([\w$][\w.$]*)\.{tpl}\s*\)\s*;[ \t]*(?:\r?\n)?"
        ),
        method=re.compile(rf"(?<![\w.$]){ns}\.(\w+)\.{tpl}\.(\w+){function_head}"),
        constructor=re.compile(rf"(?<![\w.$]){ns}\.(\w+){function_head}"),
        exported_property=re.compile(rf"^{ns}\.(\w+)(?=\s*=)", re.M),
    )


def patterns_for(config: MigrationConfig) -> _Patterns:
    return _compile(config.namespace, config.template, config.template_link)


def _strip_namespace(name: str, config: MigrationConfig) -> str:
    prefix = f"{config.namespace}."
    return name[len(prefix):] if name.startswith(prefix) else name


def rewrite_root_declaration(text: str, context: StageContext) -> str:
    """Turn the namespace bootstrap of the root unit into an exported revision."""
    if context.unit.path != context.config.root_unit:
        return text

    patterns = patterns_for(context.config)
    match = patterns.root_declaration.search(text)
    if match is None:
        if not patterns.migrated_root.search(text):
            context.report(
                DIAG_ROOT_MISSING,
                "root namespace declaration not found",
                namespace=context.config.namespace,
            )
        return text

    quote, revision = match.group(1), match.group(2)
    replacement = f"export const REVISION = {quote}{revision}{quote};"
    return text[: match.start()] + replacement + text[match.end():]


def extract_dependencies(text: str, context: StageContext) -> str:
    """Record and unqualify namespace reads; assignment targets are skipped."""

    def replace(match: re.Match) -> str:
        name = match.group(1)
        if context.recording:
            if context.dependencies.track(context.unit.path, name):
                logger.debug("%s depends on %s", context.unit.path, name)
        return name

    return patterns_for(context.config).dependency.sub(replace, text)


def link_inheritance(text: str, context: StageContext) -> str:
    """Consume template-link statements into the symbol table."""

    def replace(match: re.Match) -> str:
        child = match.group(1)
        parent = _strip_namespace(match.group(2), context.config)
        if context.recording:
            existing = context.symbols.link(child, parent)
            if existing is not None:
                context.report(
                    DIAG_PARENT_CONFLICT,
                    "ignoring second parent",
                    symbol=child,
                    parent=existing,
                    ignored=parent,
                )
            else:
                logger.debug("%s extends %s", child, parent)
        return ""

    return patterns_for(context.config).template_link.sub(replace, text)


def merge_capabilities(text: str, context: StageContext) -> str:
    """Consume ``Object.assign`` template merges into the symbol table."""

    def replace(match: re.Match) -> str:
        child = match.group(1)
        source = _strip_namespace(match.group(2), context.config)
        if context.recording and context.symbols.merge(child, source):
            logger.debug("%s merges %s", child, source)
        return ""

    return patterns_for(context.config).capability_merge.sub(replace, text)


def tag_methods(text: str, context: StageContext) -> str:
    """``NS.Owner.prototype.name = function(`` becomes ``name(``."""

    def replace(match: re.Match) -> str:
        owner, method = match.group(1), match.group(2)
        if method == context.config.template_link:
            return match.group(0)
        if context.recording:
            context.symbols.mark_class(owner)
        return method

    return patterns_for(context.config).method.sub(replace, text)


def tag_constructors(text: str, context: StageContext) -> str:
    """``NS.Name = function(`` becomes ``constructor(`` for known classes."""

    def replace(match: re.Match) -> str:
        name = match.group(1)
        table_says_class = context.symbols.is_class(name)
        file_says_class = name == context.unit.class_name
        if table_says_class != file_says_class:
            context.report(
                DIAG_CLASS_MISMATCH,
                "class mismatch",
                symbol=name,
                symbol_table=table_says_class,
                file_name=file_says_class,
            )
        if table_says_class:
            logger.debug("%s: found constructor for %s", context.unit.path, name)
            return "constructor"
        return match.group(0)

    return patterns_for(context.config).constructor.sub(replace, text)


PARENT_CALL = re.compile(r"^([ \t]*)([\w$][\w.$]*)\.call\(\s*(?:this|that)\b", re.M)
STATEMENT_END = re.compile(r"[ \t]*;?")
BLANK_REST = re.compile(r"[ \t]*(?:\r?\n|$)")


def _delegated_method(ref: str, prefixes: tuple[str, ...]) -> str | None:
    for prefix in prefixes:
        if ref.startswith(prefix) and re.fullmatch(r"[\w$]+", ref[len(prefix):]):
            return ref[len(prefix):]
    return None


def rewrite_parent_calls(text: str, context: StageContext) -> str:
    """Rewrite ``Parent.call(this, ...)`` to ``super(...)``; drop foreign calls."""
    child = context.unit.class_name
    parent = context.symbols.parent_of(child)
    template = context.config.template
    # Calls through either the parent's or the unit's own template delegate
    # to the overridden method.
    method_prefixes: tuple[str, ...] = ()
    if parent is not None:
        method_prefixes = (
            f"{parent}.{template}.",
            f"{child}.{template}.",
            f"{context.config.namespace}.{child}.{template}.",
        )

    pieces: list[str] = []
    position = 0
    while True:
        match = PARENT_CALL.search(text, position)
        if match is None:
            break
        open_index = match.start() + match.group(0).index("(")
        close_index = find_closing_paren(text, open_index)
        if close_index is None:
            pieces.append(text[position : match.end()])
            position = match.end()
            continue

        indent, ref = match.group(1), match.group(2)
        args = split_arguments(text[open_index + 1 : close_index])[1:]
        end = STATEMENT_END.match(text, close_index + 1).end()

        replacement = None
        if parent is not None and ref == parent:
            replacement = f"{indent}super({', '.join(args)});"
        else:
            method = _delegated_method(ref, method_prefixes)
            if method is not None:
                replacement = f"{indent}super.{method}({', '.join(args)});"

        pieces.append(text[position : match.start()])
        if replacement is not None:
            logger.debug("%s: %s -> %s", context.unit.path, ref, replacement.strip())
            pieces.append(replacement)
        else:
            statement = text[match.start() : end].strip()
            context.report(
                DIAG_EXTRA_PARENT_CALL,
                "removing extra parent constructor call",
                call=statement,
                parent=parent,
            )
            rest = BLANK_REST.match(text, end)
            if rest is not None:
                end = rest.end()
            else:
                pieces.append(indent)
        position = end

    pieces.append(text[position:])
    return "".join(pieces)


def export_properties(text: str, context: StageContext) -> str:
    """Remaining column-0 ``NS.NAME = ...`` statements become exported consts."""
    return patterns_for(context.config).exported_property.sub(r"export const \1", text)


def _code_positions(text: str, start: int) -> Iterator[tuple[int, str]]:
    """Yield (index, char) for characters outside string literals and comments."""
    index = start
    length = len(text)
    while index < length:
        char = text[index]
        if char in QUOTES:
            index += 1
            while index < length and text[index] != char:
                index += 2 if text[index] == "\\" else 1
            index += 1
            continue
        if text.startswith("//", index):
            newline = text.find("\n", index)
            index = length if newline == -1 else newline
            continue
        if text.startswith("/*", index):
            close = text.find("*/", index + 2)
            index = length if close == -1 else close + 2
            continue
        yield index, char
        index += 1


def find_closing_paren(text: str, open_index: int) -> int | None:
    depth = 0
    for index, char in _code_positions(text, open_index):
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
            if depth == 0:
                return index if char == ")" else None
    return None


def split_arguments(args_text: str) -> list[str]:
    """Split an argument list at top-level commas."""
    args: list[str] = []
    depth = 0
    start = 0
    for index, char in _code_positions(args_text, 0):
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif char == "," and depth == 0:
            args.append(args_text[start:index].strip())
            start = index + 1
    args.append(args_text[start:].strip())
    return [arg for arg in args if arg]


DISCOVERY_STAGES: tuple[Stage, ...] = (
    extract_dependencies,
    link_inheritance,
    merge_capabilities,
    tag_methods,
)

REWRITE_STAGES: tuple[Stage, ...] = (
    rewrite_root_declaration,
    extract_dependencies,
    link_inheritance,
    merge_capabilities,
    tag_methods,
    tag_constructors,
    rewrite_parent_calls,
)
