"""
Rule base classes, rule context and the rule registry.

Every rule is independent: it receives a RuleContext for one file and
returns diagnostics. Rules share no state and may run in any order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import Any, ClassVar, Optional

from ..config import LintConfig
from ..parser import DeclNode, FileNode, ParseResult, Token, TokenType
from ..reporting import Diagnostic, Severity
from ..scanner import get_line, split_lines


class Category(Enum):
    SPACING = "spacing"
    NAMING = "naming"
    OPTIONALS = "optionals"
    CLOSURES = "closures"
    CONTROL_FLOW = "control_flow"
    ORGANIZATION = "organization"
    ARCHITECTURE = "architecture"


CONTROL_KEYWORDS = frozenset({"if", "guard", "while", "for", "switch", "catch", "do", "repeat", "defer", "else"})
CONDITION_KEYWORDS = frozenset({"if", "guard", "while", "for", "switch"})

ASSIGNMENT_OPERATORS = frozenset({
    "=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<=", ">>=", "&+=", "&-=", "&*=",
})

_OPENERS = {
    TokenType.LPAREN: TokenType.RPAREN,
    TokenType.LBRACKET: TokenType.RBRACKET,
    TokenType.LBRACE: TokenType.RBRACE,
}


@dataclass(frozen=True)
class Edit:
    """Replace `length` characters at (line, column) with `replacement`."""
    line: int
    column: int
    length: int
    replacement: str = ""


def apply_edits(text: str, edits: list[Edit]) -> str:
    """Apply column edits right to left so earlier positions stay valid."""
    lines = text.split("\n")
    for edit in sorted(set(edits), key=lambda e: (e.line, e.column), reverse=True):
        if not 1 <= edit.line <= len(lines):
            continue
        s = lines[edit.line - 1]
        idx = edit.column - 1
        lines[edit.line - 1] = s[:idx] + edit.replacement + s[idx + edit.length:]
    return "\n".join(lines)


class RuleContext:
    """One parsed file plus the configuration it is linted under."""

    def __init__(self, path: str, text: str, result: ParseResult, config: LintConfig,
                 layer: Optional[str] = None) -> None:
        self.path = path
        self.text = text
        self.result = result
        self.config = config
        self.layer = layer

    @property
    def tokens(self) -> list[Token]:
        return self.result.tokens

    @property
    def code(self) -> list[Token]:
        return self.result.code_tokens

    @property
    def tree(self) -> FileNode:
        return self.result.tree

    @cached_property
    def lines(self) -> list[str]:
        return split_lines(self.text)

    def line_text(self, line_no: int) -> str:
        return get_line(self.lines, line_no)

    @cached_property
    def comments(self) -> list[Token]:
        return [t for t in self.tokens if t.type in (TokenType.COMMENT, TokenType.DOC_COMMENT)]

    @cached_property
    def string_lines(self) -> frozenset[int]:
        """Lines that lie inside a multi-line string literal (exclusive of the delimiters' lines)."""
        inside: set[int] = set()
        for tok in self.tokens:
            if tok.type == TokenType.STRING and tok.end_line > tok.line:
                inside.update(range(tok.line + 1, tok.end_line))
        return frozenset(inside)

    @cached_property
    def matches(self) -> dict[int, int]:
        """Map each bracket code-token index to its partner's index."""
        pairs: dict[int, int] = {}
        stacks: dict[TokenType, list[int]] = {t: [] for t in _OPENERS}
        closers = {v: k for k, v in _OPENERS.items()}
        for i, tok in enumerate(self.code):
            if tok.type in _OPENERS:
                stacks[tok.type].append(i)
            elif tok.type in closers:
                stack = stacks[closers[tok.type]]
                if stack:
                    j = stack.pop()
                    pairs[i] = j
                    pairs[j] = i
        return pairs

    @cached_property
    def _brace_analysis(self) -> tuple[dict[int, str], list[tuple[int, int]]]:
        owners: dict[int, str] = {}
        for node, _ in self.tree.walk():
            if isinstance(node, DeclNode) and node.has_body:
                owners[node.body_start] = node.kind

        spans: list[tuple[int, int]] = []
        pending: Optional[list] = None  # [keyword, depth, index, condition_closed]
        depth = 0
        code = self.code
        for i, tok in enumerate(code):
            if tok.type in (TokenType.LPAREN, TokenType.LBRACKET):
                depth += 1
            elif tok.type in (TokenType.RPAREN, TokenType.RBRACKET):
                depth = max(0, depth - 1)
            elif tok.type == TokenType.KEYWORD and tok.value in CONTROL_KEYWORDS:
                if tok.value == "else" and pending and pending[0] == "guard" and pending[1] == depth:
                    spans.append((pending[2], i))
                    pending[3] = True
                elif (tok.value == "while" and i > 0 and code[i - 1].type == TokenType.RBRACE
                      and owners.get(self.matches.get(i - 1, -1)) == "repeat"):
                    continue
                else:
                    pending = [tok.value, depth, i, False]
            elif tok.type == TokenType.LBRACE:
                if i in owners:
                    pending = None
                elif pending is not None and pending[1] == depth:
                    owners[i] = pending[0]
                    if pending[0] in CONDITION_KEYWORDS and not pending[3]:
                        spans.append((pending[2], i))
                    pending = None
                else:
                    owners[i] = "closure"
        return owners, spans

    @property
    def brace_owner(self) -> dict[int, str]:
        """Map each `{` code-token index to what opened it: a keyword, a declaration kind, or "closure"."""
        return self._brace_analysis[0]

    @cached_property
    def condition_mask(self) -> list[bool]:
        """True for code tokens inside an if/guard/while/for/switch condition."""
        mask = [False] * len(self.code)
        for start, end in self._brace_analysis[1]:
            for i in range(start, end + 1):
                mask[i] = True
        return mask

    def in_condition(self, index: int) -> bool:
        return 0 <= index < len(self.code) and self.condition_mask[index]

    def prev_code(self, index: int, offset: int = 1) -> Optional[Token]:
        j = index - offset
        return self.code[j] if 0 <= j < len(self.code) else None

    def next_code(self, index: int, offset: int = 1) -> Optional[Token]:
        j = index + offset
        return self.code[j] if 0 <= j < len(self.code) else None


class Rule:
    """Base class for per-file rules."""

    code: ClassVar[str] = "SS000"
    name: ClassVar[str] = "unnamed"
    category: ClassVar[Category] = Category.SPACING
    severity: Severity = Severity.WARNING
    description: ClassVar[str] = ""
    fixable: ClassVar[bool] = False
    options: ClassVar[dict[str, Any]] = {}

    def __init__(self, config: LintConfig) -> None:
        self.config = config
        self.severity = config.severity_for(self.code, self.name, type(self).severity)
        self.opts = {**type(self).options, **config.options_for(self.code, self.name)}

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        """Check a file and return any diagnostics found."""
        raise NotImplementedError

    def fix(self, ctx: RuleContext, diagnostics: list[Diagnostic]) -> str:
        """Return ctx.text with the given diagnostics fixed."""
        return ctx.text

    def make(self, path: str, line: int, column: int, message: str, context: str = "",
             suggestion: str = "", fixable: Optional[bool] = None) -> Diagnostic:
        return Diagnostic(
            code=self.code,
            rule=self.name,
            severity=self.severity,
            path=path,
            line=line,
            column=column,
            message=message,
            context=context.strip(),
            suggestion=suggestion,
            fixable=self.fixable if fixable is None else fixable,
        )

    def diagnostic(self, ctx: RuleContext, line: int, column: int, message: str,
                   suggestion: str = "", fixable: Optional[bool] = None) -> Diagnostic:
        return self.make(ctx.path, line, column, message, ctx.line_text(line), suggestion, fixable)

    def at_token(self, ctx: RuleContext, tok: Token, message: str, suggestion: str = "",
                 fixable: Optional[bool] = None) -> Diagnostic:
        return self.diagnostic(ctx, tok.line, tok.column, message, suggestion, fixable)


class ProjectRule(Rule):
    """A rule that needs every file before it can decide (e.g. layering)."""

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        return []

    def check_project(self, indexes: list) -> list[Diagnostic]:
        raise NotImplementedError


# =============================================================================
# Registry
# =============================================================================

_REGISTRY: dict[str, type[Rule]] = {}


def register(cls: type[Rule]) -> type[Rule]:
    """Class decorator adding a rule to the registry."""
    if cls.code in _REGISTRY:
        raise ValueError(f"Duplicate rule code {cls.code}")
    _REGISTRY[cls.code] = cls
    return cls


def all_rules() -> list[type[Rule]]:
    return [_REGISTRY[code] for code in sorted(_REGISTRY)]


def get_rule(key: str) -> Optional[type[Rule]]:
    """Look a rule up by code (case-insensitive) or name."""
    rule = _REGISTRY.get(key.upper())
    if rule is not None:
        return rule
    for cls in _REGISTRY.values():
        if cls.name == key:
            return cls
    return None


def select_rules(config: LintConfig) -> list[Rule]:
    """Instantiate every rule the configuration enables."""
    return [cls(config) for cls in all_rules() if config.rule_enabled(cls.code, cls.name)]
