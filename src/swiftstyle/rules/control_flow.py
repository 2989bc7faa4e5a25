"""
Control flow and error handling rules (SS5xx).
"""

from __future__ import annotations

from typing import Iterator, Optional

from ..parser import TokenType
from ..reporting import Diagnostic, Severity
from .base import Category, Edit, Rule, RuleContext, apply_edits, register

_CASE_LABEL_BREAKERS = frozenset({"if", "guard", "while", "for"})


@register
class NoConditionParens(Rule):
    code = "SS501"
    name = "no-condition-parens"
    category = Category.CONTROL_FLOW
    description = "Conditions of `if`, `guard` and `while` are not wrapped in parentheses."
    fixable = True

    def _candidates(self, ctx: RuleContext) -> Iterator[tuple[int, int]]:
        """Yield (index of `(`, index of `)`) for parenthesised conditions."""
        code = ctx.code
        owners = ctx.brace_owner
        for i, tok in enumerate(code):
            if not tok.is_keyword("if", "guard", "while"):
                continue
            lp = i + 1
            if lp >= len(code) or code[lp].type != TokenType.LPAREN:
                continue
            rp = ctx.matches.get(lp)
            if rp is None or rp + 1 >= len(code):
                continue
            after = code[rp + 1]
            if tok.value == "guard":
                if not after.is_keyword("else"):
                    continue
            elif after.type != TokenType.LBRACE or owners.get(rp + 1) != tok.value:
                continue
            if self._is_tuple(ctx, lp, rp):
                continue
            yield lp, rp

    @staticmethod
    def _is_tuple(ctx: RuleContext, lp: int, rp: int) -> bool:
        k = lp + 1
        while k < rp:
            t = ctx.code[k]
            if t.type == TokenType.COMMA:
                return True
            if t.type in (TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBRACE):
                k = ctx.matches.get(k, rp)
            k += 1
        return False

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        for lp, _ in self._candidates(ctx):
            keyword = ctx.code[lp - 1].value
            diags.append(self.at_token(
                ctx, ctx.code[lp], f"Unnecessary parentheses around `{keyword}` condition",
                suggestion=f"Write `{keyword} condition` without parentheses",
            ))
        return diags

    def fix(self, ctx: RuleContext, diagnostics: list[Diagnostic]) -> str:
        wanted = {(d.line, d.column) for d in diagnostics if d.fixable}
        code = ctx.code
        edits = []
        for lp, rp in self._candidates(ctx):
            open_tok, close_tok = code[lp], code[rp]
            if (open_tok.line, open_tok.column) not in wanted:
                continue
            first, last, follower = code[lp + 1], code[rp - 1], code[rp + 1]

            length = first.column - open_tok.column if first.line == open_tok.line else 1
            edits.append(Edit(open_tok.line, open_tok.column, length, " " if not open_tok.leading_space else ""))

            if last.line == close_tok.line and last.end_line == last.line:
                start = last.end_column
            else:
                start = close_tok.column
            edits.append(Edit(close_tok.line, start, close_tok.column - start + 1,
                              " " if not follower.leading_space else ""))
        return apply_edits(ctx.text, edits)


@register
class UnreachableDefault(Rule):
    code = "SS502"
    name = "unreachable-default"
    category = Category.CONTROL_FLOW
    severity = Severity.INFO
    description = "A `default:` that only breaks hides missing cases; make it `fatalError` or throw."

    @staticmethod
    def _enclosing_brace(ctx: RuleContext, index: int) -> Optional[int]:
        depth = 0
        for k in range(index - 1, -1, -1):
            t = ctx.code[k]
            if t.type == TokenType.RBRACE:
                depth += 1
            elif t.type == TokenType.LBRACE:
                if depth == 0:
                    return k
                depth -= 1
        return None

    @staticmethod
    def _body(ctx: RuleContext, colon: int, end: int) -> list[int]:
        """Indices of the statements after a case label, up to the next label."""
        code = ctx.code
        body = []
        k = colon + 1
        while k < end:
            t = code[k]
            if t.is_keyword("case", "default"):
                prev = code[k - 1]
                if not (prev.is_keyword(*_CASE_LABEL_BREAKERS) or prev.type == TokenType.COMMA):
                    break
            if t.type == TokenType.AT and t.value == "@unknown":
                break
            body.append(k)
            if t.type in (TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBRACE):
                k = ctx.matches.get(k, end)
            k += 1
        return body

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        code = ctx.code
        diags = []
        for i, tok in enumerate(code):
            if not tok.is_keyword("default"):
                continue
            nxt = ctx.next_code(i)
            prev = ctx.prev_code(i)
            if nxt is None or nxt.type != TokenType.COLON:
                continue
            if prev is not None and prev.type in (TokenType.DOT, TokenType.COMMA, TokenType.LPAREN, TokenType.LBRACKET):
                continue
            brace = self._enclosing_brace(ctx, i)
            if brace is None or ctx.brace_owner.get(brace) != "switch":
                continue
            end = ctx.matches.get(brace, len(code) - 1)
            body = self._body(ctx, i + 1, end)
            if body and not (len(body) == 1 and code[body[0]].is_keyword("break")):
                continue
            diags.append(self.at_token(
                ctx, tok, "`default` case does nothing",
                suggestion="Handle the remaining cases explicitly or call `fatalError` in `default`",
            ))
        return diags
