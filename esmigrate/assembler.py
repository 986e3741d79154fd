"""Wrap a rewritten unit's constructor and everything after it into a class."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Iterator

from .models import DIAG_UNWRAPPED_CONSTRUCTOR
from .stages import StageContext


logger = logging.getLogger(__name__)

# A doc comment at column 0 followed only by whitespace and a bare
# constructor head. The comment body cannot run past its first "*/".
OPEN_CHUNK = re.compile(r"/\*\*(?:\*(?!/)|[^*])*?\*/\s*constructor\([^\n]*")
BARE_CONSTRUCTOR = re.compile(r"^[ \t]*constructor\(", re.M)


class State(enum.Enum):
    SEARCHING = "searching"
    INSIDE_CLASS = "inside_class"


@dataclass(frozen=True)
class Chunk:
    text: str
    opens_class: bool = False


def iter_chunks(text: str) -> Iterator[Chunk]:
    """Split text into lines, keeping doc-comment + constructor runs together."""
    position = 0
    length = len(text)
    while position < length:
        match = OPEN_CHUNK.match(text, position)
        if match is not None:
            yield Chunk(text=match.group(0), opens_class=True)
            end = match.end()
        else:
            newline = text.find("\n", position)
            end = length if newline == -1 else newline
            yield Chunk(text=text[position:end])
        # skip the line break that terminated the chunk
        position = end + 1 if end < length else end


def _indent(text: str, prefix: str) -> str:
    return "\n".join(prefix + line if line.strip() else "" for line in text.split("\n"))


def class_header(name: str, parent: str | None, exported: bool) -> str:
    header = f"class {name}"
    if parent:
        header = f"{header} extends {parent}"
    if exported:
        header = f"export {header}"
    return f"{header} {{"


def _declares_class(text: str, name: str) -> bool:
    pattern = rf"^[ \t]*(?:export\s+(?:default\s+)?)?class\s+{re.escape(name)}\b"
    return re.search(pattern, text, re.M) is not None


def assemble_class(text: str, context: StageContext) -> str:
    """Open at most one class block per unit and close it at end of input."""
    name = context.unit.class_name
    if _declares_class(text, name):
        return text

    indent = context.config.indent
    parent = context.symbols.parent_of(name)
    state = State.SEARCHING
    output: list[str] = []

    for chunk in iter_chunks(text):
        if state is State.SEARCHING:
            if chunk.opens_class:
                logger.debug("%s: opening class %s extends %s", context.unit.path, name, parent)
                output.append(class_header(name, parent, context.config.export_classes))
                output.append("")
                output.append(_indent(chunk.text, indent))
                state = State.INSIDE_CLASS
            else:
                output.append(chunk.text)
        else:
            output.append(_indent(chunk.text, indent))

    if state is State.SEARCHING:
        if BARE_CONSTRUCTOR.search(text):
            context.report(
                DIAG_UNWRAPPED_CONSTRUCTOR,
                "constructor without a preceding doc comment; class not opened",
                symbol=name,
            )
        return text

    while output and not output[-1].strip():
        output.pop()
    mixins = context.symbols.extra_merges(name)
    if mixins:
        output.append("")
        output.append(f"{indent}static {{")
        for source in mixins:
            output.append(
                f"{indent * 2}Object.assign(this.{context.config.template}, "
                f"{source}.{context.config.template});"
            )
        output.append(f"{indent}}}")
    output.append("}")
    return "\n".join(output) + "\n"
