"""
Spacing and formatting rules (SS1xx).

These rules work on raw lines or on token positions and never need the
declaration tree. Most of them can rewrite the text they flag.
"""

from __future__ import annotations

from ..parser import TokenType
from ..reporting import Diagnostic, Severity
from .base import Category, Edit, Rule, RuleContext, apply_edits, register


def _flagged_lines(diagnostics: list[Diagnostic]) -> set[int]:
    return {d.line for d in diagnostics if d.fixable}


@register
class TrailingWhitespace(Rule):
    code = "SS101"
    name = "trailing-whitespace"
    category = Category.SPACING
    description = "Lines must not end with spaces or tabs."
    fixable = True
    options = {"ignore_blank_lines": False}

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        for n, line in enumerate(ctx.lines, 1):
            if n in ctx.string_lines:
                continue
            stripped = line.rstrip(" \t")
            if stripped == line:
                continue
            if not stripped and self.opts["ignore_blank_lines"]:
                continue
            diags.append(self.diagnostic(ctx, n, len(stripped) + 1, "Trailing whitespace",
                                         suggestion="Remove the trailing whitespace"))
        return diags

    def fix(self, ctx: RuleContext, diagnostics: list[Diagnostic]) -> str:
        flagged = _flagged_lines(diagnostics)
        raw = ctx.text.split("\n")
        for n in flagged:
            s = raw[n - 1]
            cr = "\r" if s.endswith("\r") else ""
            body = s[:-1] if cr else s
            raw[n - 1] = body.rstrip(" \t") + cr
        return "\n".join(raw)


@register
class LineLength(Rule):
    code = "SS102"
    name = "line-length"
    category = Category.SPACING
    description = "Lines must not exceed the configured maximum length (default 120)."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        limit = self.config.max_line_length
        if limit <= 0:
            return []
        diags = []
        for n, line in enumerate(ctx.lines, 1):
            if len(line) <= limit:
                continue
            if self.config.ignore_url_lines and "://" in line:
                continue
            if self.config.ignore_comment_lines and line.lstrip().startswith(("//", "/*", "*")):
                continue
            diags.append(self.diagnostic(
                ctx, n, limit + 1,
                f"Line is {len(line)} characters long (limit {limit})",
                suggestion="Wrap the line",
            ))
        return diags


@register
class NoTabs(Rule):
    code = "SS103"
    name = "no-tabs"
    category = Category.SPACING
    description = "Indent with spaces, never tabs."
    fixable = True

    @staticmethod
    def _indent(line: str) -> str:
        return line[:len(line) - len(line.lstrip(" \t"))]

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        for n, line in enumerate(ctx.lines, 1):
            if n in ctx.string_lines:
                continue
            indent = self._indent(line)
            if "\t" in indent:
                diags.append(self.diagnostic(
                    ctx, n, indent.index("\t") + 1,
                    "Indentation contains tabs",
                    suggestion=f"Indent with {self.config.indent_width} spaces",
                ))
        return diags

    def fix(self, ctx: RuleContext, diagnostics: list[Diagnostic]) -> str:
        flagged = _flagged_lines(diagnostics)
        raw = ctx.text.split("\n")
        spaces = " " * self.config.indent_width
        for n in flagged:
            s = raw[n - 1]
            indent = self._indent(s)
            raw[n - 1] = indent.replace("\t", spaces) + s[len(indent):]
        return "\n".join(raw)


@register
class ColonSpacing(Rule):
    code = "SS104"
    name = "colon-spacing"
    category = Category.SPACING
    description = "Colons have no space before and exactly one space after (ternaries excepted)."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        code = ctx.code
        diags = []
        pending_ternary = 0
        skip_until = -1

        for i, tok in enumerate(code):
            if i <= skip_until:
                continue
            if tok.type == TokenType.HASH and tok.value in ("#selector", "#keyPath"):
                nxt = ctx.next_code(i)
                if nxt is not None and nxt.type == TokenType.LPAREN:
                    skip_until = ctx.matches.get(i + 1, i + 1)
                continue
            if tok.is_operator("?") and tok.leading_space:
                nxt = ctx.next_code(i)
                if nxt is not None and nxt.leading_space:
                    pending_ternary += 1
                continue
            if tok.type in (TokenType.LBRACE, TokenType.RBRACE):
                pending_ternary = 0
                continue
            if tok.type != TokenType.COLON:
                continue
            if pending_ternary:
                pending_ternary -= 1
                continue

            line = ctx.line_text(tok.line)
            prev = ctx.prev_code(i)
            if prev is not None and prev.line == tok.line and tok.column > 1 and line[tok.column - 2] in " \t":
                diags.append(self.at_token(ctx, tok, "Unexpected space before colon",
                                           suggestion="Attach the colon to the preceding token"))

            nxt = ctx.next_code(i)
            if nxt is None or nxt.type == TokenType.EOF or nxt.line != tok.line:
                continue
            if nxt.type in (TokenType.RPAREN, TokenType.RBRACKET):
                continue
            gap = nxt.column - tok.column - 1
            if gap == 1:
                continue
            after = ctx.next_code(i, 2)
            # Selector-style references: `perform(_:with:)`
            if (gap == 0 and nxt.type in (TokenType.IDENTIFIER, TokenType.KEYWORD)
                    and after is not None and after.type == TokenType.COLON and not after.leading_space):
                continue
            diags.append(self.at_token(ctx, tok, "Expected exactly one space after colon",
                                       suggestion="Use `name: Type` spacing"))
        return diags


@register
class CommaSpacing(Rule):
    code = "SS105"
    name = "comma-spacing"
    category = Category.SPACING
    description = "Commas have no space before and exactly one space after."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        for i, tok in enumerate(ctx.code):
            if tok.type != TokenType.COMMA:
                continue
            line = ctx.line_text(tok.line)
            prev = ctx.prev_code(i)
            if prev is not None and prev.line == tok.line and tok.column > 1 and line[tok.column - 2] in " \t":
                diags.append(self.at_token(ctx, tok, "Unexpected space before comma"))
            nxt = ctx.next_code(i)
            if nxt is None or nxt.type == TokenType.EOF or nxt.line != tok.line:
                continue
            if nxt.type in (TokenType.RPAREN, TokenType.RBRACKET):
                continue
            if nxt.column - tok.column - 1 != 1:
                diags.append(self.at_token(ctx, tok, "Expected exactly one space after comma"))
        return diags


@register
class OpeningBraceSameLine(Rule):
    code = "SS106"
    name = "opening-brace-same-line"
    category = Category.SPACING
    description = "Opening braces go on the same line as the statement or declaration they open."

    _NOT_A_HEADER = frozenset({"return", "in", "throw", "try", "await", "case", "default"})

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        for i, tok in enumerate(ctx.code):
            if tok.type != TokenType.LBRACE or i == 0:
                continue
            prev = ctx.code[i - 1]
            if prev.line >= tok.line:
                continue
            if prev.type in (TokenType.RPAREN, TokenType.RBRACKET, TokenType.IDENTIFIER):
                pass
            elif prev.type == TokenType.KEYWORD and prev.value not in self._NOT_A_HEADER:
                pass
            elif prev.is_operator(">", "?", "!"):
                pass
            else:
                continue
            diags.append(self.at_token(
                ctx, tok, "Opening brace should be on the same line as its statement",
                suggestion=f"Move '{{' to the end of line {prev.line}",
            ))
        return diags


@register
class NoSemicolons(Rule):
    code = "SS107"
    name = "no-semicolons"
    category = Category.SPACING
    description = "Statements are not terminated with semicolons, and only one statement goes on a line."
    fixable = True

    _TRAILING_FOLLOWERS = frozenset({
        TokenType.NEWLINE, TokenType.COMMENT, TokenType.DOC_COMMENT, TokenType.EOF, TokenType.RBRACE,
    })

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        tokens = ctx.tokens
        for k, tok in enumerate(tokens):
            if tok.type != TokenType.SEMICOLON:
                continue
            nxt = tokens[k + 1] if k + 1 < len(tokens) else None
            if nxt is None or nxt.type in self._TRAILING_FOLLOWERS:
                diags.append(self.at_token(ctx, tok, "Remove trailing semicolon", fixable=True))
            else:
                diags.append(self.at_token(
                    ctx, tok, "Do not put multiple statements on one line",
                    suggestion="Move the next statement to its own line", fixable=False,
                ))
        return diags

    def fix(self, ctx: RuleContext, diagnostics: list[Diagnostic]) -> str:
        edits = []
        for d in diagnostics:
            if not d.fixable:
                continue
            line = ctx.line_text(d.line)
            start = d.column - 1
            while start > 0 and line[start - 1] in " \t":
                start -= 1
            edits.append(Edit(d.line, start + 1, d.column - start))
        return apply_edits(ctx.text, edits)


@register
class VerticalWhitespace(Rule):
    code = "SS108"
    name = "vertical-whitespace"
    category = Category.SPACING
    description = "No more than the configured number of consecutive blank lines (default 1)."
    fixable = True

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        limit = self.config.max_blank_lines
        diags = []
        run = 0
        for n, line in enumerate(ctx.lines, 1):
            if n not in ctx.string_lines and not line.strip():
                run += 1
                if run == limit + 1:
                    diags.append(self.diagnostic(
                        ctx, n, 1, f"Too many consecutive blank lines (limit {limit})",
                        suggestion="Remove the extra blank lines",
                    ))
            else:
                run = 0
        return diags

    def fix(self, ctx: RuleContext, diagnostics: list[Diagnostic]) -> str:
        limit = self.config.max_blank_lines
        flagged = _flagged_lines(diagnostics)
        count = len(ctx.lines)
        out = []
        run = 0
        removing = False
        for n, s in enumerate(ctx.text.split("\n"), 1):
            if n <= count and n not in ctx.string_lines and not s.strip():
                run += 1
                if run == limit + 1:
                    removing = n in flagged
                if run > limit and removing:
                    continue
            else:
                run = 0
                removing = False
            out.append(s)
        return "\n".join(out)


@register
class TrailingNewline(Rule):
    code = "SS109"
    name = "trailing-newline"
    category = Category.SPACING
    description = "Files end with exactly one newline."
    fixable = True
    severity = Severity.WARNING

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        text = ctx.text
        if not text.strip():
            return []
        last = max(1, len(ctx.lines))
        if not text.endswith("\n"):
            return [self.diagnostic(ctx, last, len(ctx.line_text(last)) + 1,
                                    "File should end with a newline")]
        if text.rstrip("\r\n") != text[:-2 if text.endswith("\r\n") else -1]:
            return [self.diagnostic(ctx, last, 1, "File should end with a single newline")]
        return []

    def fix(self, ctx: RuleContext, diagnostics: list[Diagnostic]) -> str:
        if not diagnostics:
            return ctx.text
        newline = "\r\n" if "\r\n" in ctx.text else "\n"
        return ctx.text.rstrip("\r\n") + newline
