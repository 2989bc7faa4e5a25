"""
Naming rules (SS2xx).

Types are UpperCamelCase; everything else (functions, properties,
locals, enum cases) is lowerCamelCase. Constants get no `k` prefix and
are not SCREAMING_CASE.
"""

from __future__ import annotations

import re

from ..parser import DeclNode, NodeType, TokenType
from ..reporting import Diagnostic
from .base import Category, Rule, RuleContext, register

_UPPER_CAMEL = re.compile(r"^[A-Z][A-Za-z0-9]*$")
_LOWER_CAMEL = re.compile(r"^[a-z][A-Za-z0-9]*$")
_K_PREFIX = re.compile(r"^k[A-Z]")
_SCREAMING = re.compile(r"^[A-Z][A-Z0-9]*(_[A-Z0-9]+)+$|^[A-Z]{2,}[0-9]*$")

TYPE_KINDS = frozenset({"class", "struct", "enum", "protocol", "actor", "typealias", "associatedtype"})


def is_prefixed_constant(name: str) -> bool:
    """`kMaxRetries`, `MAX_RETRIES`, `TIMEOUT`."""
    return bool(_K_PREFIX.match(name) or _SCREAMING.match(name))


def lower_camel(name: str) -> str:
    """Best-effort lowerCamelCase spelling of name."""
    name = name.lstrip("_")
    if _K_PREFIX.match(name):
        name = name[1:]
    if "_" in name or name.isupper():
        parts = [p for p in name.split("_") if p]
        if not parts:
            return name
        return parts[0].lower() + "".join(p.capitalize() for p in parts[1:])
    return name[:1].lower() + name[1:]


def upper_camel(name: str) -> str:
    parts = [p for p in re.split(r"[_\s]+", name) if p]
    return "".join(p[:1].upper() + p[1:] for p in parts) or name


@register
class TypeNameUpperCamel(Rule):
    code = "SS201"
    name = "type-name-upper-camel"
    category = Category.NAMING
    description = "Type names (class, struct, enum, protocol, actor, typealias) are UpperCamelCase."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        for node, _ in ctx.tree.walk():
            if not isinstance(node, DeclNode) or node.kind not in TYPE_KINDS or not node.name:
                continue
            name = node.name.lstrip("_") if self.config.allow_leading_underscore else node.name
            if _UPPER_CAMEL.match(name):
                continue
            tok = ctx.code[node.name_index]
            diags.append(self.at_token(
                ctx, tok, f"Type name '{node.name}' should be UpperCamelCase",
                suggestion=f"Rename to '{upper_camel(node.name)}'",
            ))
        return diags


@register
class MemberNameLowerCamel(Rule):
    code = "SS202"
    name = "member-name-lower-camel"
    category = Category.NAMING
    description = "Functions, properties, variables and enum cases are lowerCamelCase."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        for node, _ in ctx.tree.walk():
            if not isinstance(node, DeclNode) or node.name_index < 0:
                continue
            if node.node_type == NodeType.FUNCTION:
                if node.kind != "func":
                    continue
                what = "Function"
            elif node.node_type == NodeType.VARIABLE:
                if node.is_pattern or node.name == "_":
                    continue
                what = "Variable"
            elif node.node_type == NodeType.CASE:
                what = "Enum case"
            else:
                continue

            tok = ctx.code[node.name_index]
            if tok.type == TokenType.OPERATOR:
                continue
            name = node.name
            if self.config.allow_leading_underscore:
                name = name.lstrip("_")
            if node.node_type == NodeType.VARIABLE and is_prefixed_constant(name):
                continue  # reported by no-prefix-constants
            if _LOWER_CAMEL.match(name):
                continue
            diags.append(self.at_token(
                ctx, tok, f"{what} name '{node.name}' should be lowerCamelCase",
                suggestion=f"Rename to '{lower_camel(node.name)}'",
            ))
        return diags


@register
class NoPrefixConstants(Rule):
    code = "SS203"
    name = "no-prefix-constants"
    category = Category.NAMING
    description = "Constants are lowerCamelCase: no `k` prefix and no SCREAMING_CASE."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        diags = []
        for node, _ in ctx.tree.walk():
            if not isinstance(node, DeclNode) or node.node_type != NodeType.VARIABLE:
                continue
            if node.is_pattern or node.name_index < 0:
                continue
            if not is_prefixed_constant(node.name.lstrip("_")):
                continue
            tok = ctx.code[node.name_index]
            diags.append(self.at_token(
                ctx, tok, f"Constant '{node.name}' should not use a prefix or SCREAMING_CASE",
                suggestion=f"Rename to '{lower_camel(node.name)}'",
            ))
        return diags
