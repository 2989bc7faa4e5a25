"""
Reporting and output formatting.

Handles:
- Severity levels
- Diagnostic dataclass
- Human-readable, JSON and GitHub Actions output
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, asdict
from enum import Enum


class Severity(Enum):
    """Diagnostic severity levels, most severe first."""
    ERROR = "error"         # Breaks a hard rule (architecture, force try)
    WARNING = "warning"     # Style violation that should be fixed
    INFO = "info"           # Suggestion
    HINT = "hint"           # Minor improvement

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    def at_least(self, other: "Severity") -> bool:
        """True if this severity is as severe as `other` or more."""
        return self.rank <= other.rank

    @classmethod
    def parse(cls, value: "str | Severity") -> "Severity":
        if isinstance(value, Severity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown severity {value!r} (expected one of: {', '.join(s.value for s in cls)})"
            ) from None


_SEVERITY_ORDER = [Severity.ERROR, Severity.WARNING, Severity.INFO, Severity.HINT]


@dataclass
class Diagnostic:
    """A single rule violation."""
    code: str               # e.g. "SS301"
    rule: str               # e.g. "no-force-unwrap"
    severity: Severity
    path: str
    line: int
    column: int
    message: str
    context: str = ""       # The offending source line
    suggestion: str = ""    # How to fix it
    fixable: bool = False

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}: {self.severity.value} {self.code} {self.message}"

    @property
    def sort_key(self) -> tuple:
        return (self.path, self.line, self.column, self.code)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["severity"] = self.severity.value
        return data


class Reporter:
    """Collects and formats diagnostics."""

    def __init__(self) -> None:
        self.diagnostics: list[Diagnostic] = []
        self.files_checked = 0

    def add(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    def extend(self, diagnostics) -> None:
        self.diagnostics.extend(diagnostics)

    def sort(self) -> None:
        self.diagnostics.sort(key=lambda d: d.sort_key)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    def filter(self, min_severity: Severity) -> None:
        """Drop diagnostics less severe than min_severity."""
        self.diagnostics = [d for d in self.diagnostics if d.severity.at_least(min_severity)]

    def counts(self) -> dict[str, int]:
        counter = Counter(d.severity for d in self.diagnostics)
        return {sev.value: counter.get(sev, 0) for sev in Severity}

    def exit_code(self, fail_on: Severity = Severity.ERROR) -> int:
        """1 if any diagnostic is at least as severe as fail_on, else 0."""
        return 1 if any(d.severity.at_least(fail_on) for d in self.diagnostics) else 0

    def render_human(self) -> str:
        """Render diagnostics as human-readable text."""
        if not self.diagnostics:
            return f"swiftstyle: OK - {self.files_checked} file(s), no issues"

        lines = []
        for d in sorted(self.diagnostics, key=lambda d: d.sort_key):
            lines.append(str(d))
            if d.context:
                lines.append(f"    {d.context}")
            if d.suggestion:
                lines.append(f"    -> {d.suggestion}")

        counts = self.counts()
        summary = ", ".join(f"{n} {sev}" for sev, n in counts.items() if n)
        lines.append("")
        lines.append(f"Summary: {len(self.diagnostics)} issue(s) in {self.files_checked} file(s) ({summary})")
        return "\n".join(lines)

    def render_json(self) -> str:
        """Render diagnostics as JSON."""
        return json.dumps(
            {
                "files_checked": self.files_checked,
                "counts": self.counts(),
                "diagnostics": [d.to_dict() for d in sorted(self.diagnostics, key=lambda d: d.sort_key)],
            },
            indent=2,
        )

    def render_github(self) -> str:
        """Render diagnostics as GitHub Actions workflow commands."""
        level = {
            Severity.ERROR: "error",
            Severity.WARNING: "warning",
            Severity.INFO: "notice",
            Severity.HINT: "notice",
        }
        lines = []
        for d in sorted(self.diagnostics, key=lambda d: d.sort_key):
            message = d.message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
            lines.append(
                f"::{level[d.severity]} file={d.path},line={d.line},col={d.column},"
                f"title={d.code} {d.rule}::{message}"
            )
        return "\n".join(lines)

    def render(self, fmt: str) -> str:
        if fmt == "json":
            return self.render_json()
        if fmt == "github":
            return self.render_github()
        return self.render_human()
