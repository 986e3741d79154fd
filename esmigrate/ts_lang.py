"""Grammar loading for the optional output syntax check."""

from __future__ import annotations


def load_javascript_language():
    from tree_sitter import Language

    try:
        import tree_sitter_javascript
    except ImportError as exc:  # pragma: no cover - optional grammar
        raise RuntimeError("install tree-sitter-javascript to validate output") from exc

    # The grammar wheel hands out a raw pointer from language(); py-tree-sitter
    # 0.22+ wraps it.
    grammar = tree_sitter_javascript.language()
    if isinstance(grammar, Language):
        return grammar
    return Language(grammar)
