"""
Swift Declaration Parser

Converts a token stream from the lexer into a lightweight declaration tree.
This is not a full Swift grammar: it recognises type, function, variable,
enum case, import and typealias declarations, and the brace structure
between them. Expressions and statements are kept as token spans.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterator, List, Optional, Tuple

from swiftstyle.parser.lexer import Lexer, Token, TokenType, LexerError, read_source


class NodeType(Enum):
    """Types of tree nodes."""
    FILE = auto()           # Top-level container
    TYPE = auto()           # class / struct / enum / protocol / extension / actor
    FUNCTION = auto()       # func / init / deinit / subscript
    VARIABLE = auto()       # let / var
    CASE = auto()           # enum case element
    IMPORT = auto()         # import Foundation
    TYPEALIAS = auto()      # typealias / associatedtype
    BLOCK = auto()          # anonymous braces: closures, control-flow bodies


TYPE_KEYWORDS = frozenset({"class", "struct", "enum", "protocol", "extension"})
FUNCTION_KEYWORDS = frozenset({"func", "init", "deinit", "subscript"})
VARIABLE_KEYWORDS = frozenset({"let", "var"})
TYPEALIAS_KEYWORDS = frozenset({"typealias", "associatedtype"})

DECL_KEYWORDS = (
    TYPE_KEYWORDS | FUNCTION_KEYWORDS | VARIABLE_KEYWORDS | TYPEALIAS_KEYWORDS
    | frozenset({"case", "import"})
)

MODIFIERS = frozenset({
    "private", "fileprivate", "internal", "public", "open", "package",
    "static", "class", "final", "override", "mutating", "nonmutating",
    "lazy", "weak", "unowned", "convenience", "required", "dynamic",
    "optional", "indirect", "prefix", "postfix", "infix", "nonisolated",
})

# A `let`/`var` after one of these is a pattern binding, not a declaration
_BINDING_PREFIXES = frozenset({"if", "guard", "while", "case", "for", "catch"})

_CODE_SKIP = frozenset({TokenType.COMMENT, TokenType.DOC_COMMENT, TokenType.NEWLINE})


@dataclass
class ParseDiagnostic:
    """A structural problem found while parsing."""
    message: str
    line: int
    column: int


@dataclass
class ASTNode:
    """Base class for tree nodes. Token indices refer to code tokens."""
    node_type: NodeType = None  # Set by subclasses in __post_init__
    line: int = 0
    column: int = 0
    start: int = 0
    body_start: int = -1   # index of `{`, -1 when there is no body
    body_end: int = -1     # index of the matching `}`
    children: List['ASTNode'] = field(default_factory=list)

    @property
    def has_body(self) -> bool:
        return self.body_start >= 0

    def walk(self, ancestors: Tuple['ASTNode', ...] = ()) -> Iterator[Tuple['ASTNode', Tuple['ASTNode', ...]]]:
        """Yield (node, ancestors) for every descendant, depth first."""
        for child in self.children:
            yield child, ancestors
            yield from child.walk(ancestors + (child,))


@dataclass
class DeclNode(ASTNode):
    """A declaration: type, function, variable, case, import or typealias."""
    kind: str = ""             # the introducing keyword: struct, func, let ...
    name: str = ""
    name_index: int = -1
    modifiers: List[str] = field(default_factory=list)
    attributes: List[str] = field(default_factory=list)
    # VARIABLE: span of the type annotation; FUNCTION: span of the signature
    type_start: int = -1
    type_end: int = -1
    has_initializer: bool = False
    is_pattern: bool = False   # `let (a, b) = ...`

    @property
    def is_type(self) -> bool:
        return self.node_type == NodeType.TYPE

    def __repr__(self):
        return f"Decl({self.kind} {self.name}, L{self.line})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            '_type': self.node_type.name.lower(),
            'kind': self.kind,
            'name': self.name,
            'line': self.line,
            'column': self.column,
            'modifiers': list(self.modifiers),
            'attributes': list(self.attributes),
            'children': [c.to_dict() for c in self.children],
        }


@dataclass
class BlockNode(ASTNode):
    """An anonymous brace block (closure or statement body)."""

    def __post_init__(self):
        self.node_type = NodeType.BLOCK

    def __repr__(self):
        return f"Block(L{self.line}, {len(self.children)} children)"

    def to_dict(self) -> Dict[str, Any]:
        return {
            '_type': 'block',
            'line': self.line,
            'column': self.column,
            'children': [c.to_dict() for c in self.children],
        }


@dataclass
class FileNode(ASTNode):
    """Root of the tree, contains all top-level declarations."""
    filename: str = "<unknown>"

    def __post_init__(self):
        self.node_type = NodeType.FILE

    def __repr__(self):
        return f"File({self.filename}, {len(self.children)} children)"

    def declarations(self, node_type: Optional[NodeType] = None) -> List[DeclNode]:
        """Top-level declarations, optionally filtered by node type."""
        decls = [c for c in self.children if isinstance(c, DeclNode)]
        if node_type is not None:
            decls = [d for d in decls if d.node_type == node_type]
        return decls

    def to_dict(self) -> Dict[str, Any]:
        return {
            '_type': 'file',
            'filename': self.filename,
            'children': [c.to_dict() for c in self.children],
        }


@dataclass
class ParseResult:
    """Everything a rule needs from one parse."""
    tree: FileNode
    tokens: List[Token]          # every token, including comments and newlines
    code_tokens: List[Token]     # tokens the tree indices refer to
    diagnostics: List[ParseDiagnostic] = field(default_factory=list)


class Parser:
    """
    Builds a declaration tree from tokens.

    Unbalanced braces never abort the parse: they are recorded as
    diagnostics and the tree built so far is returned.
    """

    def __init__(self, tokens: List[Token], filename: str = "<unknown>"):
        self.tokens = [t for t in tokens if t.type not in _CODE_SKIP]
        if not self.tokens or self.tokens[-1].type != TokenType.EOF:
            last_line = self.tokens[-1].line if self.tokens else 1
            self.tokens.append(Token(TokenType.EOF, '', last_line, 1))
        self.filename = filename
        self.pos = 0
        self.diagnostics: List[ParseDiagnostic] = []

    def _current(self) -> Token:
        return self.tokens[min(self.pos, len(self.tokens) - 1)]

    def _peek(self, offset: int = 1) -> Token:
        return self.tokens[min(self.pos + offset, len(self.tokens) - 1)]

    def _previous(self) -> Optional[Token]:
        return self.tokens[self.pos - 1] if self.pos > 0 else None

    def _at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _skip_balanced(self) -> None:
        """Skip a balanced ( ... ) or [ ... ] group starting at the current token."""
        opener = self._current().type
        closer = TokenType.RPAREN if opener == TokenType.LPAREN else TokenType.RBRACKET
        depth = 0
        while not self._at_end():
            tok = self._current()
            if tok.type == opener:
                depth += 1
            elif tok.type == closer:
                depth -= 1
                if depth == 0:
                    self.pos += 1
                    return
            self.pos += 1

    def parse(self) -> FileNode:
        root = FileNode(filename=self.filename, line=1, column=1)
        root.children = self._parse_items(parent=root, nested=False)
        return root

    # ------------------------------------------------------------------
    # Item level
    # ------------------------------------------------------------------

    def _is_modifier(self) -> bool:
        tok = self._current()
        if tok.type not in (TokenType.IDENTIFIER, TokenType.KEYWORD) or tok.value not in MODIFIERS:
            return False
        nxt = self._peek()
        if nxt.type == TokenType.LPAREN:
            # private(set), unowned(unsafe)
            return tok.value not in ("class",)
        if nxt.type == TokenType.KEYWORD and nxt.value in DECL_KEYWORDS:
            return True
        if nxt.type in (TokenType.IDENTIFIER, TokenType.KEYWORD) and nxt.value in MODIFIERS:
            return True
        if nxt.type == TokenType.IDENTIFIER and nxt.value == "actor":
            return True
        return False

    def _is_binding(self) -> bool:
        prev = self._previous()
        if prev is None:
            return False
        if prev.type == TokenType.KEYWORD and prev.value in _BINDING_PREFIXES:
            return True
        return prev.type in (TokenType.COMMA, TokenType.LPAREN)

    def _parse_items(self, parent: ASTNode, nested: bool) -> List[ASTNode]:
        children: List[ASTNode] = []
        attributes: List[str] = []
        modifiers: List[str] = []
        start: Optional[int] = None

        while True:
            tok = self._current()

            if tok.type == TokenType.EOF:
                return children

            if tok.type == TokenType.RBRACE:
                if nested:
                    return children
                self.diagnostics.append(ParseDiagnostic("Unexpected '}'", tok.line, tok.column))
                self.pos += 1
                continue

            if tok.type == TokenType.AT:
                if start is None:
                    start = self.pos
                attributes.append(tok.value)
                self.pos += 1
                if self._current().type == TokenType.LPAREN:
                    self._skip_balanced()
                continue

            if self._is_modifier():
                if start is None:
                    start = self.pos
                modifiers.append(tok.value)
                self.pos += 1
                if self._current().type == TokenType.LPAREN:
                    self._skip_balanced()
                continue

            decl_start = self.pos if start is None else start
            nodes: List[ASTNode] = []

            if tok.type == TokenType.KEYWORD and tok.value in TYPE_KEYWORDS:
                if self._peek().type in (TokenType.IDENTIFIER, TokenType.KEYWORD):
                    nodes = [self._parse_type(tok.value, decl_start)]
                else:
                    # `protocol P: class`, `Foo.self`
                    self.pos += 1
            elif tok.type == TokenType.IDENTIFIER and tok.value == "actor" and self._peek().type == TokenType.IDENTIFIER:
                nodes = [self._parse_type("actor", decl_start)]
            elif tok.type == TokenType.KEYWORD and tok.value in FUNCTION_KEYWORDS:
                if tok.value == "init" and self._previous() is not None and self._previous().type == TokenType.DOT:
                    self.pos += 1  # `super.init(...)`, `Foo.init`
                else:
                    nodes = [self._parse_function(tok.value, decl_start)]
            elif tok.type == TokenType.KEYWORD and tok.value in VARIABLE_KEYWORDS:
                if self._is_binding():
                    self.pos += 1
                else:
                    nodes = [self._parse_variable(tok.value, decl_start)]
            elif tok.type == TokenType.KEYWORD and tok.value == "case":
                if isinstance(parent, DeclNode) and parent.kind == "enum":
                    nodes = self._parse_enum_cases(decl_start)
                else:
                    self.pos += 1
            elif tok.type == TokenType.KEYWORD and tok.value == "import":
                nodes = [self._parse_import(decl_start)]
            elif tok.type == TokenType.KEYWORD and tok.value in TYPEALIAS_KEYWORDS:
                nodes = [self._parse_typealias(tok.value, decl_start)]
            elif tok.type == TokenType.LBRACE:
                block = BlockNode(line=tok.line, column=tok.column, start=self.pos)
                self._parse_body(block, "block")
                nodes = [block]
            else:
                self.pos += 1

            for node in nodes:
                if isinstance(node, DeclNode):
                    node.attributes = list(attributes)
                    node.modifiers = list(modifiers)
            children.extend(nodes)
            attributes, modifiers, start = [], [], None

    def _parse_body(self, node: ASTNode, label: str) -> None:
        """Parse `{ ... }` at the current position into node.children."""
        open_tok = self._current()
        node.body_start = self.pos
        self.pos += 1
        node.children = self._parse_items(parent=node, nested=True)
        if self._current().type == TokenType.RBRACE:
            node.body_end = self.pos
            self.pos += 1
        else:
            node.body_end = self.pos
            self.diagnostics.append(ParseDiagnostic(
                f"Missing closing '}}' for {label} opened at line {open_tok.line}",
                open_tok.line,
                open_tok.column,
            ))

    def _find_body(self, decl_line: int) -> bool:
        """
        Advance to the `{` that opens the current declaration's body.

        Returns False (leaving the position on the stopping token) when the
        declaration has no body, e.g. protocol requirements.
        """
        depth = 0
        while True:
            tok = self._current()
            if tok.type == TokenType.EOF:
                return False
            if tok.type in (TokenType.LPAREN, TokenType.LBRACKET):
                depth += 1
            elif tok.type in (TokenType.RPAREN, TokenType.RBRACKET):
                depth = max(0, depth - 1)
            elif depth == 0:
                if tok.type == TokenType.LBRACE:
                    return True
                if tok.type in (TokenType.RBRACE, TokenType.SEMICOLON):
                    return False
                if tok.type == TokenType.KEYWORD and tok.value in DECL_KEYWORDS:
                    return False
                if tok.line > decl_line and (
                    tok.type == TokenType.AT
                    or (tok.type in (TokenType.IDENTIFIER, TokenType.KEYWORD) and tok.value in MODIFIERS)
                ):
                    return False
            self.pos += 1

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _new_decl(self, node_type: NodeType, kind: str, start: int) -> DeclNode:
        tok = self._current()
        return DeclNode(node_type=node_type, kind=kind, line=tok.line, column=tok.column, start=start)

    def _read_name(self, node: DeclNode, dotted: bool = False) -> None:
        tok = self._current()
        if tok.type in (TokenType.IDENTIFIER, TokenType.KEYWORD, TokenType.OPERATOR):
            node.name = tok.value
            node.name_index = self.pos
            self.pos += 1
            while dotted and self._current().type == TokenType.DOT and self._peek().type == TokenType.IDENTIFIER:
                node.name += '.' + self._peek().value
                self.pos += 2

    def _parse_type(self, kind: str, start: int) -> DeclNode:
        node = self._new_decl(NodeType.TYPE, kind, start)
        self.pos += 1
        self._read_name(node, dotted=(kind == "extension"))
        if self._find_body(node.line):
            self._parse_body(node, kind)
        return node

    def _parse_function(self, kind: str, start: int) -> DeclNode:
        node = self._new_decl(NodeType.FUNCTION, kind, start)
        kw_index = self.pos
        self.pos += 1
        if kind == "func":
            self._read_name(node)
        else:
            node.name = kind
            node.name_index = kw_index
        node.type_start = self.pos
        found = self._find_body(node.line)
        node.type_end = self.pos
        if found:
            self._parse_body(node, kind)
        return node

    def _parse_variable(self, kind: str, start: int) -> DeclNode:
        node = self._new_decl(NodeType.VARIABLE, kind, start)
        self.pos += 1
        tok = self._current()
        if tok.type == TokenType.LPAREN:
            begin = self.pos
            self._skip_balanced()
            node.is_pattern = True
            node.name_index = begin
            node.name = "(" + ", ".join(
                t.value for t in self.tokens[begin:self.pos] if t.type == TokenType.IDENTIFIER
            ) + ")"
        else:
            self._read_name(node)

        if self._current().type == TokenType.COLON:
            colon = self._current()
            self.pos += 1
            node.type_start = self.pos
            depth = 0
            angle = 0  # open generic argument lists
            while not self._at_end():
                tok = self._current()
                if tok.type == TokenType.OPERATOR and set(tok.value.rstrip("!?")) <= {"<", ">"}:
                    angle = max(0, angle + tok.value.count("<") - tok.value.count(">"))
                if tok.type in (TokenType.LPAREN, TokenType.LBRACKET):
                    depth += 1
                elif tok.type in (TokenType.RPAREN, TokenType.RBRACKET):
                    if depth == 0:
                        break
                    depth -= 1
                elif depth == 0 and (
                    tok.line != colon.line
                    or tok.type in (TokenType.LBRACE, TokenType.RBRACE, TokenType.SEMICOLON)
                    or (tok.type == TokenType.COMMA and angle == 0)
                    or tok.is_operator("=")
                ):
                    break
                self.pos += 1
            node.type_end = self.pos

        tok = self._current()
        if tok.is_operator("="):
            node.has_initializer = True
        elif tok.type == TokenType.LBRACE and tok.line == node.line or (
            tok.type == TokenType.LBRACE and node.type_end > node.type_start >= 0
        ):
            # Computed property or observers
            self._parse_body(node, "property")
        return node

    def _parse_enum_cases(self, start: int) -> List[DeclNode]:
        nodes: List[DeclNode] = []
        case_line = self._current().line
        self.pos += 1
        while True:
            tok = self._current()
            if tok.type not in (TokenType.IDENTIFIER, TokenType.KEYWORD):
                break
            node = DeclNode(node_type=NodeType.CASE, kind="case", line=tok.line, column=tok.column, start=start)
            node.name = tok.value
            node.name_index = self.pos
            self.pos += 1
            if self._current().type == TokenType.LPAREN:
                self._skip_balanced()
            if self._current().is_operator("="):
                self.pos += 1
                while (not self._at_end() and self._current().line == case_line
                       and self._current().type not in (TokenType.COMMA, TokenType.RBRACE)):
                    self.pos += 1
            nodes.append(node)
            if self._current().type != TokenType.COMMA:
                break
            self.pos += 1
        return nodes

    def _parse_import(self, start: int) -> DeclNode:
        node = self._new_decl(NodeType.IMPORT, "import", start)
        self.pos += 1
        # `import class UIKit.UIView`
        if self._current().type == TokenType.KEYWORD and self._peek().type == TokenType.IDENTIFIER:
            self.pos += 1
        self._read_name(node, dotted=True)
        return node

    def _parse_typealias(self, kind: str, start: int) -> DeclNode:
        node = self._new_decl(NodeType.TYPEALIAS, kind, start)
        self.pos += 1
        self._read_name(node)
        return node


def parse_source(source: str, filename: str = "<string>") -> ParseResult:
    """
    Tokenize and parse Swift source text.

    Raises:
        LexerError: the source cannot be tokenized (unterminated string or comment).
    """
    tokens = Lexer(source, filename).tokenize_all(include_comments=True, include_newlines=True)
    parser = Parser(tokens, filename)
    tree = parser.parse()
    return ParseResult(
        tree=tree,
        tokens=tokens,
        code_tokens=parser.tokens,
        diagnostics=parser.diagnostics,
    )


def parse_file(filepath: str) -> ParseResult:
    """Parse a Swift file from disk."""
    return parse_source(read_source(filepath), filepath)
