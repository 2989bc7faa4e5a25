"""
File scanning and line handling.

Handles:
- Directory walking with exclusions
- Line splitting and lookup
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator

from .config import LintConfig, should_exclude_path


def split_lines(text: str) -> list[str]:
    """
    Split text into lines the way the lexer counts them.

    A trailing newline does not start an extra line, and a `\\r` before
    the newline is dropped.
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def get_line(lines: list[str], line_no: int) -> str:
    """Get line by 1-based line number."""
    if line_no <= 0 or line_no > len(lines):
        return ""
    return lines[line_no - 1]


def iter_files(cfg: LintConfig, paths: Iterable[Path], exts: tuple[str, ...]) -> Iterator[Path]:
    """
    Iterate over files with the given extensions.

    Explicit file arguments are yielded as-is; directories are walked
    with the configured exclusions applied.
    """
    if cfg.explicit_files is not None:
        paths = cfg.explicit_files

    seen: set[Path] = set()
    for path in paths:
        path = Path(path)
        if path.is_file():
            candidates: Iterable[Path] = [path]
        elif path.is_dir():
            candidates = sorted(p for p in path.rglob("*") if p.is_file() and p.suffix in exts)
        else:
            raise FileNotFoundError(f"No such file or directory: {path}")

        for candidate in candidates:
            if candidate.is_dir() or should_exclude_path(cfg, candidate):
                continue
            key = candidate.resolve()
            if key in seen:
                continue
            seen.add(key)
            yield candidate


def iter_swift_files(cfg: LintConfig, paths: Iterable[Path]) -> Iterator[Path]:
    return iter_files(cfg, paths, cfg.swift_exts)


def iter_doc_files(cfg: LintConfig, paths: Iterable[Path]) -> Iterator[Path]:
    return iter_files(cfg, paths, cfg.docs_exts)
