"""Lightweight data models for source units and diagnostics."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any


DIAG_CLASS_MISMATCH = "class-mismatch"
DIAG_EXTRA_PARENT_CALL = "extra-parent-call"
DIAG_PARENT_CONFLICT = "parent-conflict"
DIAG_ROOT_MISSING = "root-declaration-missing"
DIAG_INHERITANCE_CYCLE = "inheritance-cycle"
DIAG_SYNTAX_ERROR = "syntax-error"
DIAG_UNWRAPPED_CONSTRUCTOR = "unwrapped-constructor"


@dataclass(frozen=True)
class SourceUnit:
    path: str
    text: str

    @property
    def class_name(self) -> str:
        """Presumed class name: the file name without its extension."""
        return PurePosixPath(self.path).stem

    def replace_text(self, text: str) -> SourceUnit:
        return SourceUnit(path=self.path, text=text)


@dataclass(frozen=True)
class Diagnostic:
    kind: str
    unit: str | None
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "unit": self.unit,
            "message": self.message,
            "details": dict(self.details),
        }
