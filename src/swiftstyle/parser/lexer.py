"""
Swift Source Lexer (Tokenizer)

Converts raw .swift source text into a stream of tokens.
Handles: identifiers, keywords, operators, punctuation, string literals
(including multi-line, raw and interpolated strings), numbers, comments.
"""

import codecs
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, List, Optional, Tuple

from swiftstyle.errors import SwiftStyleError


class TokenType(Enum):
    """Types of tokens in Swift source."""
    IDENTIFIER = auto()      # foo, fetchUser, `default`, $0
    KEYWORD = auto()         # func, let, if, guard, try
    STRING = auto()          # "text", """multi""", #"raw"#
    NUMBER = auto()          # 42, 0.5, 0xFF, 1_000
    OPERATOR = auto()        # + - = == -> ?? ... !
    LPAREN = auto()          # (
    RPAREN = auto()          # )
    LBRACE = auto()          # {
    RBRACE = auto()          # }
    LBRACKET = auto()        # [
    RBRACKET = auto()        # ]
    COMMA = auto()           # ,
    COLON = auto()           # :
    SEMICOLON = auto()       # ;
    DOT = auto()             # .
    AT = auto()              # @IBOutlet, @escaping
    HASH = auto()            # #if, #selector, #available
    COMMENT = auto()         # // comment, /* comment */
    DOC_COMMENT = auto()     # /// doc, /** doc */
    NEWLINE = auto()         # \n
    EOF = auto()             # End of file


# Reserved words. Contextual keywords (get, set, weak, actor, some...) lex
# as identifiers and are interpreted by the parser where they matter.
KEYWORDS = frozenset({
    "associatedtype", "class", "deinit", "enum", "extension", "fileprivate",
    "func", "import", "init", "inout", "internal", "let", "open", "operator",
    "private", "protocol", "public", "rethrows", "static", "struct",
    "subscript", "typealias", "var",
    "break", "case", "catch", "continue", "default", "defer", "do", "else",
    "fallthrough", "for", "guard", "if", "in", "repeat", "return", "throw",
    "switch", "where", "while",
    "as", "false", "is", "nil", "self", "Self", "super", "throws", "true",
    "try", "await",
})

OPERATOR_CHARS = frozenset("/=-+!*%<>&|^~?")

# Non-ASCII identifier and operator characters, per the Swift grammar's
# lexical structure. Inclusive (first, last) code point ranges.
_IDENT_HEAD_RANGES = (
    (0x00A8, 0x00A8), (0x00AA, 0x00AA), (0x00AD, 0x00AD), (0x00AF, 0x00AF),
    (0x00B2, 0x00B5), (0x00B7, 0x00BA), (0x00BC, 0x00BE), (0x00C0, 0x00D6),
    (0x00D8, 0x00F6), (0x00F8, 0x00FF), (0x0100, 0x02FF), (0x0370, 0x167F),
    (0x1681, 0x180D), (0x180F, 0x1DBF), (0x1E00, 0x1FFF), (0x200B, 0x200D),
    (0x202A, 0x202E), (0x203F, 0x2040), (0x2054, 0x2054), (0x2060, 0x206F),
    (0x2070, 0x20CF), (0x2100, 0x218F), (0x2460, 0x24FF), (0x2776, 0x2793),
    (0x2C00, 0x2DFF), (0x2E80, 0x2FFF), (0x3004, 0x3007), (0x3021, 0x302F),
    (0x3031, 0x303F), (0x3040, 0xD7FF), (0xF900, 0xFD3D), (0xFD40, 0xFDCF),
    (0xFDF0, 0xFE1F), (0xFE30, 0xFE44), (0xFE47, 0xFFFD),
) + tuple((plane << 16, (plane << 16) | 0xFFFD) for plane in range(1, 15))

# Combining marks may continue identifiers and operators
_COMBINING_RANGES = (
    (0x0300, 0x036F), (0x1DC0, 0x1DFF), (0x20D0, 0x20FF), (0xFE20, 0xFE2F),
)

_OPERATOR_HEAD_RANGES = (
    (0x00A1, 0x00A7), (0x00A9, 0x00A9), (0x00AB, 0x00AC), (0x00AE, 0x00AE),
    (0x00B0, 0x00B1), (0x00B6, 0x00B6), (0x00BB, 0x00BB), (0x00BF, 0x00BF),
    (0x00D7, 0x00D7), (0x00F7, 0x00F7), (0x2016, 0x2017), (0x2020, 0x2027),
    (0x2030, 0x203E), (0x2041, 0x2053), (0x2055, 0x205E), (0x2190, 0x23FF),
    (0x2500, 0x2775), (0x2794, 0x2BFF), (0x2E00, 0x2E7F), (0x3001, 0x3003),
    (0x3008, 0x3020), (0x3030, 0x3030),
)

_OPERATOR_CONT_RANGES = _COMBINING_RANGES + ((0xFE00, 0xFE0F), (0xE0100, 0xE01EF))


def _in_ranges(ch: str, ranges) -> bool:
    cp = ord(ch)
    return any(first <= cp <= last for first, last in ranges)

# Operators that stay whole even when glued to the previous token
_BINARY_BANG_QUESTION = frozenset({"!=", "!==", "??", "??="})

_PUNCTUATION = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ",": TokenType.COMMA,
    ":": TokenType.COLON,
    ";": TokenType.SEMICOLON,
}


@dataclass
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: str
    line: int
    column: int
    leading_space: bool = False  # whitespace or line start precedes it
    end_line: int = 0

    def __post_init__(self):
        if not self.end_line:
            self.end_line = self.line

    def __repr__(self):
        if self.type == TokenType.NEWLINE:
            return f"Token({self.type.name}, '\\n', L{self.line}:{self.column})"
        return f"Token({self.type.name}, {self.value!r}, L{self.line}:{self.column})"

    @property
    def end_column(self) -> int:
        """Column just past the token (single-line tokens only)."""
        return self.column + len(self.value)

    def is_keyword(self, *names: str) -> bool:
        return self.type == TokenType.KEYWORD and (not names or self.value in names)

    def is_operator(self, *ops: str) -> bool:
        return self.type == TokenType.OPERATOR and (not ops or self.value in ops)


class LexerError(SwiftStyleError):
    """Error during lexical analysis."""
    def __init__(self, message: str, line: int, column: int):
        self.line = line
        self.column = column
        self.reason = message
        super().__init__(f"Lexer error at line {line}, column {column}: {message}")


class Lexer:
    """
    Tokenizer for Swift source files.

    Usage:
        lexer = Lexer(source_text)
        tokens = list(lexer.tokenize())
    """

    @staticmethod
    def _is_ident_start(ch: str) -> bool:
        if ch == '_' or ch.isalpha():
            return True
        return ch > '\x7f' and _in_ranges(ch, _IDENT_HEAD_RANGES)

    @staticmethod
    def _is_ident_cont(ch: str) -> bool:
        if ch == '_' or ch.isalnum():
            return True
        return ch > '\x7f' and (_in_ranges(ch, _IDENT_HEAD_RANGES) or _in_ranges(ch, _COMBINING_RANGES))

    @staticmethod
    def _is_operator_start(ch: str) -> bool:
        return ch in OPERATOR_CHARS or (ch > '\x7f' and _in_ranges(ch, _OPERATOR_HEAD_RANGES))

    @staticmethod
    def _is_operator_cont(ch: str) -> bool:
        if ch in OPERATOR_CHARS:
            return True
        return ch > '\x7f' and (_in_ranges(ch, _OPERATOR_HEAD_RANGES) or _in_ranges(ch, _OPERATOR_CONT_RANGES))

    def __init__(self, source: str, filename: str = "<unknown>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self.length = len(source)

    def _current(self) -> Optional[str]:
        """Get current character or None if at end."""
        if self.pos >= self.length:
            return None
        return self.source[self.pos]

    def _peek(self, offset: int = 1) -> Optional[str]:
        """Peek ahead by offset characters."""
        pos = self.pos + offset
        if pos >= self.length:
            return None
        return self.source[pos]

    def _advance(self) -> Optional[str]:
        """Advance one character and return it."""
        ch = self._current()
        if ch is not None:
            self.pos += 1
            if ch == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        return ch

    def _advance_n(self, n: int) -> None:
        for _ in range(n):
            self._advance()

    def _skip_whitespace(self) -> bool:
        """Skip spaces and tabs (but not newlines). Returns True if any were skipped."""
        skipped = False
        while self._current() in (' ', '\t', '\r', '\f', '\v'):
            self._advance()
            skipped = True
        return skipped

    def _count_hashes(self) -> int:
        n = 0
        while self._peek(n) == '#':
            n += 1
        return n

    def _read_line_comment(self) -> str:
        """Read a comment from // to end of line."""
        start = self.pos
        while self._current() not in (None, '\n'):
            self._advance()
        return self.source[start:self.pos]

    def _read_block_comment(self) -> str:
        """Read a /* ... */ comment. Swift block comments nest."""
        start = self.pos
        start_line, start_col = self.line, self.column
        self._advance_n(2)
        depth = 1
        while depth:
            ch = self._current()
            if ch is None:
                raise LexerError("Unterminated block comment", start_line, start_col)
            if ch == '/' and self._peek() == '*':
                depth += 1
                self._advance_n(2)
            elif ch == '*' and self._peek() == '/':
                depth -= 1
                self._advance_n(2)
            else:
                self._advance()
        return self.source[start:self.pos]

    def _read_string(self, hashes: int = 0) -> str:
        """
        Read a string literal starting at the current position.

        Handles `"..."`, `\"\"\"...\"\"\"` and raw `#"..."#` forms, escapes,
        and `\\( ... )` interpolation (which may itself contain strings).
        Returns the raw literal text including delimiters.
        """
        start = self.pos
        start_line, start_col = self.line, self.column
        self._advance_n(hashes)

        multiline = self.source.startswith('"""', self.pos)
        self._advance_n(3 if multiline else 1)
        closer = ('"""' if multiline else '"') + '#' * hashes
        escape = '\\' + '#' * hashes

        while True:
            ch = self._current()
            if ch is None:
                raise LexerError("Unterminated string", start_line, start_col)
            if ch == '\n' and not multiline:
                raise LexerError("Unterminated string", start_line, start_col)
            if self.source.startswith(escape, self.pos):
                self._advance_n(len(escape))
                if self._current() == '(':
                    self._read_interpolation(start_line, start_col)
                elif self._current() is not None:
                    self._advance()
                continue
            if self.source.startswith(closer, self.pos):
                self._advance_n(len(closer))
                break
            self._advance()

        return self.source[start:self.pos]

    def _read_interpolation(self, start_line: int, start_col: int) -> None:
        """Skip a balanced `( ... )` interpolation segment."""
        depth = 0
        while True:
            ch = self._current()
            if ch is None:
                raise LexerError("Unterminated string interpolation", start_line, start_col)
            if ch == '(':
                depth += 1
                self._advance()
            elif ch == ')':
                depth -= 1
                self._advance()
                if depth == 0:
                    return
            elif ch == '"':
                self._read_string(0)
            elif ch == '#' and self._peek(self._count_hashes()) == '"':
                self._read_string(self._count_hashes())
            else:
                self._advance()

    def _read_identifier(self) -> str:
        start = self.pos
        while self._current() is not None and self._is_ident_cont(self._current()):
            self._advance()
        return self.source[start:self.pos]

    def _read_number(self) -> str:
        """Read an integer or floating point literal."""
        start = self.pos
        if self._current() == '0' and self._peek() in ('x', 'o', 'b'):
            self._advance_n(2)
            while self._current() is not None and (self._current().isalnum() or self._current() == '_'):
                self._advance()
            return self.source[start:self.pos]

        while self._current() is not None and (self._current().isdigit() or self._current() == '_'):
            self._advance()
        # Fraction: `1.5` but not `1...5` or `tuple.0.1`
        if self._current() == '.' and self._peek() is not None and self._peek().isdigit():
            self._advance()
            while self._current() is not None and (self._current().isdigit() or self._current() == '_'):
                self._advance()
        if self._current() in ('e', 'E'):
            nxt = self._peek()
            if nxt is not None and (nxt.isdigit() or (nxt in '+-' and (self._peek(2) or '').isdigit())):
                self._advance_n(2)
                while self._current() is not None and self._current().isdigit():
                    self._advance()
        return self.source[start:self.pos]

    def _read_operator(self, dotted: bool) -> str:
        """Read the longest run of operator characters."""
        start = self.pos
        while True:
            ch = self._current()
            if ch is None:
                break
            if ch == '/' and self._peek() in ('/', '*') and self.pos > start:
                break
            if self._is_operator_cont(ch) or (dotted and ch == '.'):
                self._advance()
            else:
                break
        return self.source[start:self.pos]

    def tokenize(self, include_comments: bool = False, include_newlines: bool = False) -> Iterator[Token]:
        """
        Generate tokens from the source.

        Args:
            include_comments: If True, emit COMMENT/DOC_COMMENT tokens.
            include_newlines: If True, emit NEWLINE tokens.
        """
        spaced = True  # start of file counts as a line start

        while True:
            if self._skip_whitespace():
                spaced = True

            ch = self._current()
            start_line = self.line
            start_col = self.column

            if ch is None:
                yield Token(TokenType.EOF, '', start_line, start_col, spaced)
                break

            if ch == '\n':
                self._advance()
                if include_newlines:
                    yield Token(TokenType.NEWLINE, '\n', start_line, start_col, spaced)
                spaced = True
                continue

            # Comments
            if ch == '/' and self._peek() == '/':
                text = self._read_line_comment()
                is_doc = text.startswith('///') and not text.startswith('////')
                if include_comments:
                    kind = TokenType.DOC_COMMENT if is_doc else TokenType.COMMENT
                    yield Token(kind, text, start_line, start_col, spaced)
                spaced = True
                continue

            if ch == '/' and self._peek() == '*':
                text = self._read_block_comment()
                is_doc = text.startswith('/**') and text != '/**/'
                if include_comments:
                    kind = TokenType.DOC_COMMENT if is_doc else TokenType.COMMENT
                    yield Token(kind, text, start_line, start_col, spaced, self.line)
                spaced = True
                continue

            # Strings
            if ch == '"':
                value = self._read_string(0)
                yield Token(TokenType.STRING, value, start_line, start_col, spaced, self.line)
                spaced = False
                continue

            if ch == '#':
                hashes = self._count_hashes()
                if self._peek(hashes) == '"':
                    value = self._read_string(hashes)
                    yield Token(TokenType.STRING, value, start_line, start_col, spaced, self.line)
                    spaced = False
                    continue
                nxt = self._peek()
                if nxt is not None and self._is_ident_start(nxt):
                    self._advance()
                    value = '#' + self._read_identifier()
                    yield Token(TokenType.HASH, value, start_line, start_col, spaced)
                    spaced = False
                    continue
                raise LexerError("Unexpected character '#'", start_line, start_col)

            # Attributes
            if ch == '@':
                self._advance()
                name = self._read_identifier()
                if not name:
                    raise LexerError("Expected attribute name after '@'", start_line, start_col)
                yield Token(TokenType.AT, '@' + name, start_line, start_col, spaced)
                spaced = False
                continue

            # Escaped identifiers: `default`
            if ch == '`':
                self._advance()
                name = self._read_identifier()
                if self._current() != '`':
                    raise LexerError("Unterminated escaped identifier", start_line, start_col)
                self._advance()
                yield Token(TokenType.IDENTIFIER, name, start_line, start_col, spaced)
                spaced = False
                continue

            # Closure shorthand and projected values: $0, $viewModel
            if ch == '$':
                self._advance()
                value = '$' + self._read_identifier()
                yield Token(TokenType.IDENTIFIER, value, start_line, start_col, spaced)
                spaced = False
                continue

            if ch.isdigit():
                value = self._read_number()
                yield Token(TokenType.NUMBER, value, start_line, start_col, spaced)
                spaced = False
                continue

            if self._is_ident_start(ch):
                value = self._read_identifier()
                kind = TokenType.KEYWORD if value in KEYWORDS else TokenType.IDENTIFIER
                yield Token(kind, value, start_line, start_col, spaced)
                spaced = False
                continue

            if ch == '.':
                if self._peek() == '.':
                    value = self._read_operator(dotted=True)
                    yield Token(TokenType.OPERATOR, value, start_line, start_col, spaced)
                else:
                    self._advance()
                    yield Token(TokenType.DOT, '.', start_line, start_col, spaced)
                spaced = False
                continue

            if self._is_operator_start(ch):
                value = self._read_operator(dotted=False)
                # Postfix `!`/`?` glued to an operand stays a single character:
                # `value!.count`, `items?>`.
                if (not spaced and len(value) > 1 and value[0] in '!?'
                        and value not in _BINARY_BANG_QUESTION):
                    self.pos -= len(value) - 1
                    self.column -= len(value) - 1
                    value = value[0]
                yield Token(TokenType.OPERATOR, value, start_line, start_col, spaced)
                spaced = False
                continue

            if ch == '\\':
                self._advance()
                yield Token(TokenType.OPERATOR, '\\', start_line, start_col, spaced)
                spaced = False
                continue

            if ch in _PUNCTUATION:
                self._advance()
                yield Token(_PUNCTUATION[ch], ch, start_line, start_col, spaced)
                spaced = False
                continue

            raise LexerError(f"Unexpected character {ch!r}", start_line, start_col)

    def tokenize_all(self, include_comments: bool = False, include_newlines: bool = False) -> List[Token]:
        """Convenience method to get all tokens as a list."""
        return list(self.tokenize(include_comments, include_newlines))


def read_source_encoded(filepath: str) -> Tuple[str, str]:
    """Read a source file, returning its text and the encoding that decoded it."""
    with open(filepath, 'rb') as f:
        data = f.read()
    if data.startswith(codecs.BOM_UTF8):
        encoding = 'utf-8-sig'
    else:
        try:
            data.decode('utf-8')
            encoding = 'utf-8'
        except UnicodeDecodeError:
            # latin-1 decodes any byte sequence
            encoding = 'latin-1'
    return data.decode(encoding), encoding


def read_source(filepath: str) -> str:
    """Read a source file, falling back through common encodings."""
    return read_source_encoded(filepath)[0]


def tokenize_file(filepath: str, **kwargs) -> List[Token]:
    """Tokenize a file and return all tokens."""
    lexer = Lexer(read_source(filepath), filename=filepath)
    return lexer.tokenize_all(**kwargs)
