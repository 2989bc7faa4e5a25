"""
Clean Architecture layering rules (SS7xx).

Files are assigned to a layer by directory (see `LintConfig.layers`).
Layer dependencies are checked across the whole project: each file
contributes a FileIndex of the types it declares, the type names it
references and the modules it imports, and SS701 runs once over the
merged indexes after every file has been linted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..parser import DeclNode, NodeType, TokenType
from ..reporting import Diagnostic, Severity
from .base import Category, ProjectRule, Rule, RuleContext, register


@dataclass
class FileIndex:
    """What one file declares, references and imports."""
    path: str
    layer: Optional[str]
    declared_types: set[str] = field(default_factory=set)
    # name -> (line, column, source line) of the first reference
    type_refs: dict[str, tuple[int, int, str]] = field(default_factory=dict)
    # (module, line, column, source line)
    imports: list[tuple[str, int, int, str]] = field(default_factory=list)


def build_file_index(ctx: RuleContext) -> FileIndex:
    index = FileIndex(path=ctx.path, layer=ctx.layer)
    declaration_names: set[int] = set()

    for node, _ in ctx.tree.walk():
        if not isinstance(node, DeclNode):
            continue
        # Extending a type depends on it
        if node.name_index >= 0 and node.kind != "extension":
            declaration_names.add(node.name_index)
        if node.is_type and node.kind != "extension" and node.name:
            index.declared_types.add(node.name)
        elif node.node_type == NodeType.TYPEALIAS and node.name:
            index.declared_types.add(node.name)
        elif node.node_type == NodeType.IMPORT and node.name:
            index.imports.append((node.name, node.line, node.column, ctx.line_text(node.line).strip()))

    for i, tok in enumerate(ctx.code):
        if tok.type != TokenType.IDENTIFIER or not tok.value[:1].isupper():
            continue
        if i in declaration_names:
            continue
        prev = ctx.prev_code(i)
        if prev is not None and (prev.type == TokenType.DOT or prev.is_keyword("import")):
            continue
        if tok.value not in index.type_refs:
            index.type_refs[tok.value] = (tok.line, tok.column, ctx.line_text(tok.line).strip())
    return index


@register
class LayerDependency(ProjectRule):
    code = "SS701"
    name = "layer-dependency"
    category = Category.ARCHITECTURE
    severity = Severity.ERROR
    description = (
        "Layers only depend on the layers they are allowed to: Domain on nothing, "
        "Data and Presentation on Domain."
    )

    def check_project(self, indexes: list[FileIndex]) -> list[Diagnostic]:
        owners: dict[str, set[str]] = {}
        for idx in indexes:
            if idx.layer is None:
                continue
            for name in idx.declared_types:
                owners.setdefault(name, set()).add(idx.layer)

        diags = []
        for idx in indexes:
            spec = self.config.layers.get(idx.layer) if idx.layer else None
            if spec is None:
                continue
            allowed = spec.may_depend_on | {spec.name}

            for name, (line, column, context) in sorted(idx.type_refs.items(), key=lambda kv: kv[1][:2]):
                if name in idx.declared_types:
                    continue
                layers = owners.get(name)
                if not layers or layers & allowed:
                    continue
                other = ", ".join(sorted(layers))
                diags.append(self.make(
                    idx.path, line, column,
                    f"{spec.name} layer references '{name}' from the {other} layer",
                    context=context,
                    suggestion=self._suggestion(spec.name, spec.may_depend_on),
                ))

            for module, line, column, context in idx.imports:
                target = module.split(".")[0]
                if target in self.config.layers and target not in allowed:
                    diags.append(self.make(
                        idx.path, line, column,
                        f"{spec.name} layer imports the {target} layer",
                        context=context,
                        suggestion=self._suggestion(spec.name, spec.may_depend_on),
                    ))
        return diags

    @staticmethod
    def _suggestion(layer: str, allowed: frozenset[str]) -> str:
        if not allowed:
            return f"{layer} must not depend on other layers"
        return f"{layer} may only depend on: {', '.join(sorted(allowed))}"


@register
class DomainFrameworkImport(Rule):
    code = "SS702"
    name = "domain-framework-import"
    category = Category.ARCHITECTURE
    severity = Severity.ERROR
    description = "Domain files do not import UI frameworks (UIKit, SwiftUI, AppKit, WatchKit by default)."

    def check(self, ctx: RuleContext) -> list[Diagnostic]:
        if ctx.layer != "Domain":
            return []
        forbidden = set(self.config.forbidden_domain_imports)
        diags = []
        for node in ctx.tree.declarations(NodeType.IMPORT):
            module = node.name.split(".")[0]
            if module in forbidden:
                diags.append(self.diagnostic(
                    ctx, node.line, node.column,
                    f"Domain layer imports UI framework '{module}'",
                    suggestion="Move UI-dependent code to the Presentation layer",
                ))
        return diags
