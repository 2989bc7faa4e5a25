"""
Markdown checks for the style guide documents.

- MD001 unclosed-code-fence: every opening ``` / ~~~ fence is closed by
  the same character, at least as long.
- MD002 fence-language: opening fences declare a language.
- MD003 heading-increment: heading levels go up one at a time.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .config import LintConfig
from .parser import read_source
from .reporting import Diagnostic, Reporter, Severity
from .scanner import iter_doc_files, split_lines

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")
_HEADING = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+|$)")


@dataclass(frozen=True)
class DocRule:
    code: str
    name: str
    severity: Severity
    description: str


UNCLOSED_FENCE = DocRule("MD001", "unclosed-code-fence", Severity.ERROR,
                         "Every opening code fence has a matching closing fence.")
FENCE_LANGUAGE = DocRule("MD002", "fence-language", Severity.WARNING,
                         "Opening code fences declare a language (```swift).")
HEADING_INCREMENT = DocRule("MD003", "heading-increment", Severity.WARNING,
                            "Heading levels only increase one level at a time.")

DOC_RULES = (UNCLOSED_FENCE, FENCE_LANGUAGE, HEADING_INCREMENT)


def _diagnostic(cfg: LintConfig, rule: DocRule, path: str, line: int, message: str,
                context: str, suggestion: str = "") -> Diagnostic:
    return Diagnostic(
        code=rule.code,
        rule=rule.name,
        severity=cfg.severity_for(rule.code, rule.name, rule.severity),
        path=path,
        line=line,
        column=1,
        message=message,
        context=context.strip(),
        suggestion=suggestion,
    )


def check_markdown(text: str, path: str = "<string>", cfg: Optional[LintConfig] = None) -> list[Diagnostic]:
    """Check one Markdown document."""
    cfg = cfg or LintConfig()
    enabled = {r.code for r in DOC_RULES if cfg.rule_enabled(r.code, r.name)}
    diags: list[Diagnostic] = []

    fence: Optional[tuple[str, int, int, str]] = None  # (char, length, line, text)
    last_level = 0

    for n, line in enumerate(split_lines(text), 1):
        m = _FENCE.match(line)
        if fence is not None:
            char, length, _, _ = fence
            if m and m.group(1)[0] == char and len(m.group(1)) >= length and not m.group(2).strip():
                fence = None
            continue

        # A backtick info string containing a backtick is inline code, not a fence
        if m and not (m.group(1)[0] == "`" and "`" in m.group(2)):
            marker, info = m.group(1), m.group(2).strip()
            fence = (marker[0], len(marker), n, line)
            if not info and FENCE_LANGUAGE.code in enabled:
                diags.append(_diagnostic(cfg, FENCE_LANGUAGE, path, n, "Code fence has no language",
                                         line, suggestion=f"{marker}swift"))
            continue

        h = _HEADING.match(line)
        if h:
            level = len(h.group(1))
            if last_level and level > last_level + 1 and HEADING_INCREMENT.code in enabled:
                diags.append(_diagnostic(
                    cfg, HEADING_INCREMENT, path, n,
                    f"Heading level jumps from {last_level} to {level}",
                    line, suggestion=f"Use {'#' * (last_level + 1)}",
                ))
            last_level = level

    if fence is not None and UNCLOSED_FENCE.code in enabled:
        char, length, line_no, line = fence
        diags.append(_diagnostic(cfg, UNCLOSED_FENCE, path, line_no,
                                 f"Code fence opened on line {line_no} is never closed",
                                 line, suggestion=f"Close it with {char * length}"))
    return diags


def check_docs(cfg: LintConfig, paths: Iterable[Path]) -> Reporter:
    """Check every Markdown file under paths."""
    reporter = Reporter()
    for path in iter_doc_files(cfg, paths):
        logger.debug("Checking %s", path)
        try:
            text = read_source(str(path))
        except OSError as e:
            reporter.add(Diagnostic("E000", "lexer-error", Severity.ERROR, str(path), 1, 1,
                                    f"Cannot read file: {e}"))
            continue
        reporter.files_checked += 1
        reporter.extend(check_markdown(text, str(path), cfg))
    reporter.sort()
    return reporter
