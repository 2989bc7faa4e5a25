"""
Optional-handling rules (SS3xx).

Prefer optional binding and optional chaining over force unwrapping,
force try, force casts and implicitly unwrapped optionals.
"""

from __future__ import annotations

from ..parser import DeclNode, NodeType, TokenType
from ..reporting import Diagnostic, Severity
from .base import Category, Rule, RuleContext, register

_OPERAND_END = frozenset({TokenType.IDENTIFIER, TokenType.RPAREN, TokenType.RBRACKET})

# May sit between a closure's parameter list and `in`
_CLOSURE_HEADER_KEYWORDS = frozenset({"throws", "rethrows", "in"})


def _closure_parameter_spans(ctx: RuleContext) -> list[tuple[int, int]]:
    """(open, close) code-token indices of `{ (a: T, b: U) in` parameter lists."""
    code = ctx.code
    spans = []
    for brace, owner in ctx.brace_owner.items():
        if owner != "closure":
            continue
        i = brace + 1
        if i < len(code) and code[i].type == TokenType.LBRACKET:
            i = ctx.matches.get(i, len(code)) + 1
        if i >= len(code) or code[i].type != TokenType.LPAREN or i not in ctx.matches:
            continue
        close = ctx.matches[i]
        k = close + 1
        while k < len(code):
            tok = code[k]
            if tok.type in (TokenType.LBRACE, TokenType.RBRACE, TokenType.SEMICOLON):
                break
            if tok.type == TokenType.KEYWORD and tok.value not in _CLOSURE_HEADER_KEYWORDS:
                break
            if tok.is_keyword("in"):
                spans.append((i, close))
                break
            k += 1
    return spans


def _signature_indices(ctx: RuleContext) -> set[int]:
    """Code-token indices inside type annotations, function signatures and closure parameter lists."""
    indices: set[int] = set()
    for node, _ in ctx.tree.walk():
        if isinstance(node, DeclNode) and node.type_start >= 0 and node.type_end > node.type_start:
            indices.update(range(node.type_start, node.type_end))
    for start, end in _closure_parameter_spans(ctx):
        indices.update(range(start + 1, end))
    return indices


def _unwrap_column(ctx: RuleContext, index: int) -> int:
    """Column of the `!` closing an implicitly unwrapped type at index, or 0."""
    tok = ctx.code[index]
    if tok.type != TokenType.OPERATOR or tok.leading_space or index == 0:
        return 0
    if tok.value == "!":
        prev = ctx.code[index - 1]
        if prev.type in _OPERAND_END or (prev.type == TokenType.OPERATOR and prev.value.endswith(">")):
            return tok.column
    # `Array<Array<Int>>!` lexes the closing `>`s and the `!` as one operator
    elif tok.value.endswith("!") and set(tok.value[:-1]) == {">"}:
        return tok.end_column - 1
    return 0


def _is_postfix(ctx: RuleContext, index: int, symbol: str) -> bool:
    tok = ctx.code[index]
    if not tok.is_operator(symbol) or tok.leading_space or index == 0:
        return False
    prev = ctx.code[index - 1]
    return prev.type in _OPERAND_END or prev.is_keyword("self", "super", "Self")


@register
class NoForceUnwrap(Rule):
    code = "SS301"
    name = "no-force-unwrap"
    category = Category.OPTIONALS
    description = "Avoid force unwrapping (`value!`); use `if let`, `guard let` or `??`."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        skip = _signature_indices(ctx)
        diags = []
        for i, tok in enumerate(ctx.code):
            if i in skip or not _is_postfix(ctx, i, "!"):
                continue
            diags.append(self.at_token(
                ctx, tok, "Force unwrapping an optional",
                suggestion="Bind with `if let`/`guard let` or provide a default with `??`",
            ))
        return diags


@register
class NoForceTry(Rule):
    code = "SS302"
    name = "no-force-try"
    category = Category.OPTIONALS
    severity = Severity.ERROR
    description = "Avoid `try!`; handle the error or use `try?`."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        for i, tok in enumerate(ctx.code):
            nxt = ctx.next_code(i)
            if tok.is_keyword("try") and nxt is not None and nxt.is_operator("!") and not nxt.leading_space:
                diags.append(self.at_token(
                    ctx, tok, "Force try crashes on error",
                    suggestion="Use `do`/`catch`, `try?`, or propagate with `throws`",
                ))
        return diags


@register
class NoForceCast(Rule):
    code = "SS303"
    name = "no-force-cast"
    category = Category.OPTIONALS
    description = "Avoid `as!`; use `as?` with optional binding."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        for i, tok in enumerate(ctx.code):
            nxt = ctx.next_code(i)
            if tok.is_keyword("as") and nxt is not None and nxt.is_operator("!") and not nxt.leading_space:
                diags.append(self.at_token(
                    ctx, tok, "Force cast crashes when the cast fails",
                    suggestion="Use `as?` and bind the result",
                ))
        return diags


@register
class NoImplicitlyUnwrappedOptional(Rule):
    code = "SS304"
    name = "no-implicitly-unwrapped-optional"
    category = Category.OPTIONALS
    description = "Avoid implicitly unwrapped optional types (`Type!`); `@IBOutlet` properties are exempt."
    options = {"exempt_attributes": ["@IBOutlet"]}

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        exempt = set(self.opts["exempt_attributes"])
        suggestion = "Use a regular optional (`?`) or a non-optional type"
        diags = []
        for node, _ in ctx.tree.walk():
            if not isinstance(node, DeclNode) or node.type_start < 0:
                continue
            if node.node_type not in (NodeType.VARIABLE, NodeType.FUNCTION):
                continue
            if exempt.intersection(node.attributes):
                continue
            for i in range(node.type_start, node.type_end):
                column = _unwrap_column(ctx, i)
                if column:
                    diags.append(self.diagnostic(
                        ctx, ctx.code[i].line, column,
                        f"Implicitly unwrapped optional in declaration of '{node.name}'",
                        suggestion=suggestion,
                    ))
        for start, end in _closure_parameter_spans(ctx):
            for i in range(start + 1, end):
                column = _unwrap_column(ctx, i)
                if column:
                    diags.append(self.diagnostic(
                        ctx, ctx.code[i].line, column,
                        "Implicitly unwrapped optional in closure parameter",
                        suggestion=suggestion,
                    ))
        return diags


@register
class UnusedOptionalBinding(Rule):
    code = "SS305"
    name = "unused-optional-binding"
    category = Category.OPTIONALS
    description = "Do not bind to `_` in a condition (`if let _ = value`); compare with `nil` instead."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        code = ctx.code
        for i, tok in enumerate(code):
            if not tok.is_keyword("let", "var") or not ctx.in_condition(i):
                continue
            name = ctx.next_code(i)
            eq = ctx.next_code(i, 2)
            if name is None or eq is None:
                continue
            if name.type == TokenType.IDENTIFIER and name.value == "_" and eq.is_operator("="):
                diags.append(self.at_token(
                    ctx, tok, "Optional binding to `_` is unused",
                    suggestion="Use `value != nil` instead",
                ))
        return diags
