"""File walking, reading and writing for source units."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from .config import DEFAULT_INCLUDE
from .errors import InputUnavailableError
from .models import SourceUnit


DEFAULT_EXCLUDES = {"node_modules", ".git", ".hg", ".svn", "build", "dist"}


def iter_source_files(
    root: str | Path,
    include: Iterable[str] | None = None,
    excludes: Iterable[str] | None = None,
) -> list[str]:
    """Return source paths relative to ``root`` in a stable order.

    Patterns are applied in the order given; a file matched by an earlier
    pattern keeps its position.
    """
    root_path = Path(root)
    exclude_set = set(excludes or DEFAULT_EXCLUDES)
    matches: list[str] = []
    seen: set[str] = set()

    for pattern in include or DEFAULT_INCLUDE:
        for path in sorted(root_path.glob(pattern)):
            if not path.is_file():
                continue
            relative = path.relative_to(root_path)
            if any(part in exclude_set for part in relative.parts):
                continue
            key = relative.as_posix()
            if key not in seen:
                seen.add(key)
                matches.append(key)

    return matches


def read_units(root: str | Path, paths: Iterable[str]) -> list[SourceUnit]:
    root_path = Path(root)
    units: list[SourceUnit] = []
    for path in paths:
        try:
            text = (root_path / path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InputUnavailableError(path, str(exc)) from exc
        units.append(SourceUnit(path=path, text=text))
    return units


def write_units(units: Iterable[SourceUnit], output_dir: str | Path) -> list[Path]:
    out_root = Path(output_dir)
    written: list[Path] = []
    for unit in units:
        target = out_root / unit.path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(unit.text, encoding="utf-8")
        written.append(target)
    return written
