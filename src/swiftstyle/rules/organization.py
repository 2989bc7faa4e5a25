"""
File organization rules (SS6xx).
"""

from __future__ import annotations

import re
from pathlib import Path

from ..parser import DeclNode, NodeType, TokenType
from ..reporting import Diagnostic, Severity
from .base import Category, Rule, RuleContext, register

_MARK_LIKE = re.compile(r"^//\s*MARK\b", re.IGNORECASE)
_MARK_OK = re.compile(r"^// MARK: (- \S|[^-\s])")

_CONDITIONAL_DIRECTIVES = frozenset({"#if", "#elseif", "#else", "#endif"})


@register
class MarkFormat(Rule):
    code = "SS601"
    name = "mark-format"
    category = Category.ORGANIZATION
    description = "MARK comments read `// MARK: - Section` (or `// MARK: Section`)."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        for tok in ctx.comments:
            if tok.type != TokenType.COMMENT or not _MARK_LIKE.match(tok.value):
                continue
            if _MARK_OK.match(tok.value):
                continue
            diags.append(self.at_token(
                ctx, tok, "Malformed MARK comment",
                suggestion="Use `// MARK: - Section`",
            ))
        return diags


@register
class DuplicateImport(Rule):
    code = "SS602"
    name = "duplicate-import"
    category = Category.ORGANIZATION
    description = "Each module is imported once per file."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        seen: dict[str, DeclNode] = {}
        diags = []
        for node, _ in ctx.tree.walk():
            if not isinstance(node, DeclNode) or node.node_type != NodeType.IMPORT or not node.name:
                continue
            first = seen.get(node.name)
            if first is None or self._conditional_between(ctx, first.start, node.start):
                seen[node.name] = node
                continue
            diags.append(self.diagnostic(
                ctx, node.line, node.column,
                f"Module '{node.name}' is already imported on line {first.line}",
                suggestion="Remove the duplicate import",
            ))
        return diags

    @staticmethod
    def _conditional_between(ctx: RuleContext, start: int, end: int) -> bool:
        return any(
            t.type == TokenType.HASH and t.value in _CONDITIONAL_DIRECTIVES
            for t in ctx.code[start:end]
        )


@register
class FileNameMatchesType(Rule):
    code = "SS603"
    name = "file-name-matches-type"
    category = Category.ORGANIZATION
    severity = Severity.INFO
    description = "A file declaring a single top-level type is named after it (`Type+Feature.swift` for extensions)."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        path = Path(ctx.path)
        if path.suffix != ".swift" or path.name == "main.swift":
            return []
        stem = path.stem
        base = stem.split("+", 1)[0]

        types = ctx.tree.declarations(NodeType.TYPE)
        primary = [d for d in types if d.kind != "extension"]
        if len(primary) == 1:
            node = primary[0]
            if node.name in (stem, base):
                return []
            return [self.diagnostic(
                ctx, node.line, node.column,
                f"File '{path.name}' declares '{node.name}'",
                suggestion=f"Rename the file to '{node.name}.swift'",
            )]

        if not primary and types and "+" in stem:
            extended = {d.name for d in types} | {d.name.split(".")[0] for d in types}
            if base not in extended:
                node = types[0]
                return [self.diagnostic(
                    ctx, node.line, node.column,
                    f"File '{path.name}' extends '{node.name}'",
                    suggestion=f"Rename the file to '{node.name}+{stem.split('+', 1)[1]}.swift'",
                )]
        return []
