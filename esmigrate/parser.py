"""Tree-sitter based syntax check for migrated JavaScript output."""

from __future__ import annotations

from dataclasses import dataclass

from tree_sitter import Parser

from .ts_lang import load_javascript_language


@dataclass
class ParsedSource:
    tree: object
    source_bytes: bytes


@dataclass(frozen=True)
class SyntaxProblem:
    line: int
    column: int
    kind: str  # error | missing
    snippet: str


class JavaScriptParser:
    def __init__(self) -> None:
        self._parser = Parser()
        language = load_javascript_language()
        # tree-sitter API supports either set_language or direct attribute.
        if hasattr(self._parser, "set_language"):
            self._parser.set_language(language)
        else:  # pragma: no cover - newer API
            self._parser.language = language

    def parse_bytes(self, source_bytes: bytes) -> ParsedSource:
        tree = self._parser.parse(source_bytes)
        return ParsedSource(tree=tree, source_bytes=source_bytes)

    def parse_text(self, source_text: str) -> ParsedSource:
        return self.parse_bytes(source_text.encode("utf-8"))

    def find_syntax_errors(self, source_text: str, limit: int = 5) -> list[SyntaxProblem]:
        parsed = self.parse_text(source_text)
        root = parsed.tree.root_node
        if not root.has_error:
            return []

        problems: list[SyntaxProblem] = []
        stack = [root]
        while stack and len(problems) < limit:
            node = stack.pop()
            if node.type == "ERROR" or node.is_missing:
                line, column = node.start_point
                snippet = parsed.source_bytes[node.start_byte : node.end_byte]
                problems.append(
                    SyntaxProblem(
                        line=line + 1,
                        column=column + 1,
                        kind="missing" if node.is_missing else "error",
                        snippet=snippet.decode("utf-8", errors="replace")[:80],
                    )
                )
                continue
            if node.has_error:
                stack.extend(reversed(node.children))
        if not problems:
            problems.append(SyntaxProblem(line=1, column=1, kind="error", snippet=""))
        return problems
