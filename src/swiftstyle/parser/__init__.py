"""
swiftstyle.parser - Swift Source Parser

Lexer and declaration parser for Swift source files.
Converts .swift files into tokens and a lightweight declaration tree.
"""

from swiftstyle.parser.lexer import Lexer, Token, TokenType, LexerError, tokenize_file, read_source, read_source_encoded
from swiftstyle.parser.parser import (
    Parser,
    ParseDiagnostic,
    ParseResult,
    parse_file,
    parse_source,
    # Tree node types
    ASTNode,
    NodeType,
    FileNode,
    DeclNode,
    BlockNode,
)

__all__ = [
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    "LexerError",
    "tokenize_file",
    "read_source",
    "read_source_encoded",
    # Parser
    "Parser",
    "ParseDiagnostic",
    "ParseResult",
    "parse_file",
    "parse_source",
    # Tree nodes
    "ASTNode",
    "NodeType",
    "FileNode",
    "DeclNode",
    "BlockNode",
]
