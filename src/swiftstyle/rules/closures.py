"""
Closure and local-binding rules (SS4xx).
"""

from __future__ import annotations

from typing import Iterator

from ..parser import ASTNode, DeclNode, NodeType, TokenType
from ..reporting import Diagnostic
from .base import ASSIGNMENT_OPERATORS, Category, Edit, Rule, RuleContext, apply_edits, register


def _local_vars(scope: ASTNode) -> Iterator[tuple[DeclNode, int]]:
    """Yield (variable, end of enclosing body) for `var`s declared directly in scope's blocks."""
    for child in scope.children:
        if isinstance(child, DeclNode):
            if child.node_type == NodeType.VARIABLE:
                yield child, scope.body_end
            continue
        yield from _local_vars(child)


def _is_mutated(ctx: RuleContext, name: str, start: int, end: int) -> bool:
    """True if `name` is assigned, passed inout, or mutated through a member between start and end."""
    code = ctx.code
    i = start
    while i < end:
        tok = code[i]
        if tok.type != TokenType.IDENTIFIER or tok.value != name:
            i += 1
            continue
        prev = ctx.prev_code(i)
        if prev is not None and prev.type == TokenType.DOT:
            i += 1
            continue
        if prev is not None and prev.is_operator("&") and not tok.leading_space:
            return True

        # Follow `name?.a.b[0](...)` to whatever ends the chain
        j = i + 1
        while j < end:
            t = code[j]
            if t.is_operator("?", "!") and not t.leading_space:
                j += 1
            elif t.type == TokenType.DOT and j + 1 < end and code[j + 1].type == TokenType.IDENTIFIER:
                after = code[j + 2] if j + 2 < end else None
                if after is not None and after.type == TokenType.LPAREN and not after.leading_space:
                    return True  # method call, possibly mutating
                j += 2
            elif t.type == TokenType.LBRACKET and not t.leading_space:
                j = ctx.matches.get(j, end) + 1
            else:
                break
        if j < end and code[j].type == TokenType.OPERATOR and code[j].value in ASSIGNMENT_OPERATORS:
            return True
        i = j
    return False


@register
class PreferLet(Rule):
    code = "SS401"
    name = "prefer-let"
    category = Category.CLOSURES
    description = "Declare locals with `let` unless they are reassigned or mutated in their scope."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        for node, _ in ctx.tree.walk():
            if not isinstance(node, DeclNode) or not node.has_body:
                continue
            if node.node_type not in (NodeType.FUNCTION, NodeType.VARIABLE):
                continue
            for var, scope_end in _local_vars(node):
                if var.kind != "var" or not var.has_initializer or var.has_body or var.is_pattern:
                    continue
                if var.name == "_" or var.attributes:
                    continue
                if {"lazy", "weak", "unowned"} & set(var.modifiers):
                    continue
                start = (var.type_end if var.type_end > 0 else var.name_index + 1) + 1
                if _is_mutated(ctx, var.name, start, scope_end):
                    continue
                diags.append(self.diagnostic(
                    ctx, var.line, var.column,
                    f"Variable '{var.name}' is never mutated",
                    suggestion=f"Declare '{var.name}' with `let`",
                ))
        return diags


@register
class TrailingClosure(Rule):
    code = "SS402"
    name = "trailing-closure"
    category = Category.CLOSURES
    description = "Pass a single final closure argument with trailing closure syntax."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        code = ctx.code
        owners = ctx.brace_owner
        diags = []
        for i, tok in enumerate(code):
            if tok.type != TokenType.LPAREN or tok.leading_space or i == 0:
                continue
            callee = code[i - 1]
            if callee.type != TokenType.IDENTIFIER or ctx.in_condition(i):
                continue
            before = ctx.prev_code(i, 2)
            if before is not None and before.is_keyword("func"):
                continue
            close = ctx.matches.get(i)
            if close is None or code[close - 1].type != TokenType.RBRACE:
                continue
            nxt = ctx.next_code(close)
            if nxt is not None and nxt.type == TokenType.LBRACE:
                continue

            closures = []
            k = i + 1
            while k < close:
                t = code[k]
                if t.type == TokenType.LBRACE and owners.get(k) == "closure":
                    closures.append(k)
                if t.type in (TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBRACE):
                    k = ctx.matches.get(k, close) + 1
                else:
                    k += 1
            if len(closures) != 1 or ctx.matches.get(closures[0]) != close - 1:
                continue
            diags.append(self.at_token(
                ctx, callee, f"Use trailing closure syntax for the closure passed to '{callee.value}'",
                suggestion=f"{callee.value}(...) {{ ... }}",
            ))
        return diags


@register
class EmptyParensTrailingClosure(Rule):
    code = "SS403"
    name = "empty-parens-trailing-closure"
    category = Category.CLOSURES
    description = "Drop empty parentheses before a trailing closure: `foo { }`, not `foo() { }`."
    fixable = True

    def _candidates(self, ctx: RuleContext) -> Iterator[int]:
        code = ctx.code
        owners = ctx.brace_owner
        for i in range(1, len(code) - 2):
            if code[i].type != TokenType.LPAREN or code[i + 1].type != TokenType.RPAREN:
                continue
            if code[i + 2].type != TokenType.LBRACE or owners.get(i + 2) != "closure":
                continue
            if code[i - 1].type != TokenType.IDENTIFIER or code[i].leading_space:
                continue
            before = ctx.prev_code(i, 2)
            if before is not None and before.is_keyword("func"):
                continue
            yield i

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        for i in self._candidates(ctx):
            lp, rp = ctx.code[i], ctx.code[i + 1]
            diags.append(self.at_token(
                ctx, lp, "Empty parentheses before a trailing closure",
                suggestion=f"Write `{ctx.code[i - 1].value} {{ ... }}`",
                fixable=rp.line == lp.line and rp.column == lp.column + 1,
            ))
        return diags

    def fix(self, ctx: RuleContext, diagnostics: list[Diagnostic]) -> str:
        wanted = {(d.line, d.column) for d in diagnostics if d.fixable}
        edits = []
        for i in self._candidates(ctx):
            lp = ctx.code[i]
            if (lp.line, lp.column) not in wanted:
                continue
            brace = ctx.code[i + 2]
            edits.append(Edit(lp.line, lp.column, 2, "" if brace.leading_space else " "))
        return apply_edits(ctx.text, edits)


@register
class UnownedSelf(Rule):
    code = "SS404"
    name = "unowned-self"
    category = Category.CLOSURES
    description = "Capture `[weak self]` rather than `[unowned self]`."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        code = ctx.code
        diags = []
        for i, tok in enumerate(code):
            if tok.type != TokenType.IDENTIFIER or tok.value != "unowned":
                continue
            prev = ctx.prev_code(i)
            if prev is None or prev.type not in (TokenType.LBRACKET, TokenType.COMMA):
                continue
            j = i + 1
            if j < len(code) and code[j].type == TokenType.LPAREN:
                j = ctx.matches.get(j, j) + 1
            if j < len(code) and code[j].is_keyword("self"):
                diags.append(self.at_token(
                    ctx, tok, "Capturing `unowned self` crashes if self is deallocated",
                    suggestion="Capture `[weak self]` and unwrap with `guard let self`",
                ))
        return diags
