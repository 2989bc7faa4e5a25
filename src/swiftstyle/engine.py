"""
Lint engine.

Runs the selected rules over Swift sources in two phases:

1. Per-file rules run on each file (optionally in a process pool),
   producing diagnostics and a FileIndex of declarations.
2. Project rules run once over the merged indexes.

Inline suppressions are applied to both phases, and the merged result is
sorted so output does not depend on the number of worker processes.
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from .config import LintConfig, layer_for_path
from .parser import LexerError, ParseResult, parse_source, read_source, read_source_encoded
from .reporting import Diagnostic, Reporter, Severity
from .rules import FileIndex, ProjectRule, Rule, RuleContext, all_rules, build_file_index, select_rules
from .scanner import get_line, iter_swift_files, split_lines
from .suppression import Suppressions, build_suppressions

logger = logging.getLogger(__name__)

MAX_FIX_PASSES = 10

# Engine diagnostics: (code, rule name)
LEXER_ERROR = ("E000", "lexer-error")
PARSE_ERROR = ("E001", "parse-error")
INTERNAL_ERROR = ("E999", "internal-error")


@dataclass
class FileResult:
    """Per-file phase output."""
    path: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    index: Optional[FileIndex] = None
    suppressions: Suppressions = field(default_factory=Suppressions)


def _engine_diagnostic(kind: tuple[str, str], path: str, line: int, column: int,
                       message: str, context: str = "") -> Diagnostic:
    code, name = kind
    return Diagnostic(
        code=code,
        rule=name,
        severity=Severity.ERROR,
        path=path,
        line=line,
        column=column,
        message=message,
        context=context.strip(),
    )


class Linter:
    """Applies the configured rule set to sources, files and directory trees."""

    def __init__(self, config: Optional[LintConfig] = None, rules: Optional[list[Rule]] = None) -> None:
        self.config = config or LintConfig()
        self.rules = rules if rules is not None else select_rules(self.config)
        self.file_rules = [r for r in self.rules if not isinstance(r, ProjectRule)]
        self.project_rules = [r for r in self.rules if isinstance(r, ProjectRule)]

    # ------------------------------------------------------------------
    # Per-file phase
    # ------------------------------------------------------------------

    def _parse(self, text: str, path: str) -> tuple[Optional[ParseResult], list[Diagnostic]]:
        try:
            result = parse_source(text, path)
        except LexerError as e:
            context = get_line(split_lines(text), e.line)
            return None, [_engine_diagnostic(LEXER_ERROR, path, e.line, e.column, e.reason, context)]
        return result, []

    def _context(self, text: str, path: str, result: ParseResult) -> RuleContext:
        layer = layer_for_path(self.config, path) if path and not path.startswith("<") else None
        return RuleContext(path, text, result, self.config, layer)

    def _run_rule(self, rule: Rule, ctx: RuleContext) -> list[Diagnostic]:
        try:
            return rule.check(ctx)
        except Exception as e:
            logger.exception("Rule %s failed on %s", rule.code, ctx.path)
            return [_engine_diagnostic(
                INTERNAL_ERROR, ctx.path, 1, 1,
                f"Internal error in rule {rule.code} ({rule.name}): {e}",
            )]

    def analyze_source(self, text: str, path: str = "<string>") -> FileResult:
        """Run the per-file phase on source text."""
        result, diags = self._parse(text, path)
        if result is None:
            return FileResult(path, diags)

        ctx = self._context(text, path, result)
        lines = ctx.lines
        for d in result.diagnostics:
            diags.append(_engine_diagnostic(PARSE_ERROR, path, d.line, d.column, d.message, get_line(lines, d.line)))
        for rule in self.file_rules:
            diags.extend(self._run_rule(rule, ctx))

        suppressions = build_suppressions(result.tokens)
        if suppressions:
            diags = [d for d in diags if not suppressions.is_suppressed(d.code, d.rule, d.line)]
        index = build_file_index(ctx) if self.project_rules else None
        diags.sort(key=lambda d: d.sort_key)
        return FileResult(path, diags, index, suppressions)

    def analyze_file(self, path: Path | str) -> FileResult:
        """Run the per-file phase on a file; unreadable files become E000."""
        path = str(path)
        try:
            text = read_source(path)
        except OSError as e:
            logger.debug("Cannot read %s: %s", path, e)
            return FileResult(path, [_engine_diagnostic(LEXER_ERROR, path, 1, 1, f"Cannot read file: {e}")])
        return self.analyze_source(text, path)

    # ------------------------------------------------------------------
    # Project phase
    # ------------------------------------------------------------------

    def run_project_rules(self, results: list[FileResult]) -> list[Diagnostic]:
        """Run project rules over the merged indexes of results."""
        indexes = [r.index for r in results if r.index is not None]
        if not self.project_rules or not indexes:
            return []
        by_path = {r.path: r.suppressions for r in results}
        diags: list[Diagnostic] = []
        for rule in self.project_rules:
            try:
                found = rule.check_project(indexes)
            except Exception as e:
                logger.exception("Project rule %s failed", rule.code)
                found = [_engine_diagnostic(INTERNAL_ERROR, "<project>", 1, 1,
                                            f"Internal error in rule {rule.code} ({rule.name}): {e}")]
            for d in found:
                sup = by_path.get(d.path)
                if sup is None or not sup.is_suppressed(d.code, d.rule, d.line):
                    diags.append(d)
        return diags

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def lint_source(self, text: str, path: str = "<string>") -> list[Diagnostic]:
        """Lint source text as a one-file project."""
        result = self.analyze_source(text, path)
        diags = result.diagnostics + self.run_project_rules([result])
        diags.sort(key=lambda d: d.sort_key)
        return diags

    def lint_file(self, path: Path | str) -> list[Diagnostic]:
        result = self.analyze_file(path)
        diags = result.diagnostics + self.run_project_rules([result])
        diags.sort(key=lambda d: d.sort_key)
        return diags

    def lint_paths(self, paths: Iterable[Path | str], jobs: int = 1) -> Reporter:
        """
        Lint every Swift file under paths.

        Args:
            paths: Files and directories to lint.
            jobs: Worker processes for the per-file phase (1 = in process).

        Raises:
            FileNotFoundError: a path does not exist.
        """
        files = [str(p) for p in iter_swift_files(self.config, [Path(p) for p in paths])]
        logger.debug("Linting %d file(s) with %d job(s)", len(files), jobs)

        if jobs > 1 and len(files) > 1:
            codes = [r.code for r in self.rules]
            with ProcessPoolExecutor(max_workers=jobs, initializer=_init_worker,
                                     initargs=(self.config, codes)) as pool:
                results = list(pool.map(_analyze_in_worker, files, chunksize=8))
        else:
            results = [self.analyze_file(f) for f in files]

        reporter = Reporter()
        reporter.files_checked = len(results)
        for result in results:
            reporter.extend(result.diagnostics)
        reporter.extend(self.run_project_rules(results))
        reporter.sort()
        return reporter

    # ------------------------------------------------------------------
    # Fixing
    # ------------------------------------------------------------------

    def fix_source(self, text: str, path: str = "<string>") -> str:
        """
        Apply every enabled fixable rule until the text stops changing.

        The source is re-parsed after each rule's rewrite so later rules
        see current positions.
        """
        fixers = [r for r in self.file_rules if r.fixable]
        for _ in range(MAX_FIX_PASSES):
            changed = False
            for rule in fixers:
                result, errors = self._parse(text, path)
                if result is None:
                    logger.warning("Not fixing %s: %s", path, errors[0].message)
                    return text
                ctx = self._context(text, path, result)
                suppressions = build_suppressions(result.tokens)
                try:
                    diags = [
                        d for d in rule.check(ctx)
                        if d.fixable and not suppressions.is_suppressed(d.code, d.rule, d.line)
                    ]
                    if not diags:
                        continue
                    new_text = rule.fix(ctx, diags)
                except Exception:
                    logger.exception("Fix for rule %s failed on %s", rule.code, path)
                    continue
                if new_text != text:
                    logger.debug("%s: applied %d fix(es) for %s", path, len(diags), rule.code)
                    text = new_text
                    changed = True
            if not changed:
                return text
        logger.warning("Fixes for %s did not settle after %d passes", path, MAX_FIX_PASSES)
        return text

    def fix_file(self, path: Path | str, write: bool = True) -> bool:
        """
        Fix a file in place. Returns True if its content changed (or would change).

        The file is written back in the encoding it was read with. Files that
        cannot be read or written are logged and left alone; linting reports
        them as E000.
        """
        path = str(path)
        try:
            text, encoding = read_source_encoded(path)
        except OSError as e:
            logger.warning("Cannot fix %s: %s", path, e)
            return False
        fixed = self.fix_source(text, path)
        if fixed == text:
            return False
        if write:
            try:
                data = fixed.encode(encoding)
                with open(path, 'wb') as f:
                    f.write(data)
            except (OSError, UnicodeEncodeError) as e:
                logger.warning("Cannot write fixes to %s: %s", path, e)
                return False
            logger.info("Fixed %s", path)
        return True


# =============================================================================
# Process pool workers
# =============================================================================

_worker_linter: Optional[Linter] = None


def _init_worker(config: LintConfig, codes: list[str]) -> None:
    global _worker_linter
    wanted = set(codes)
    rules = [cls(config) for cls in all_rules() if cls.code in wanted]
    _worker_linter = Linter(config, rules)


def _analyze_in_worker(path: str) -> FileResult:
    return _worker_linter.analyze_file(path)
