# Lexer.py

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from Error import ErrorHandler
from Nodes_AST import Label, SyntaxNode

logger = logging.getLogger(__name__)

class TokenType:
    DELIMITER  = 'Delimiter'
    OPERATOR   = 'Operator'
    KEYWORD    = 'Keyword'
    IDENTIFIER = 'Identifier'
    INTEGER    = 'Integer'
    REAL       = 'Real'
    STRING     = 'String'
    # Display-only kinds, never part of the filtered stream
    WHITESPACE = 'Whitespace'
    NEWLINE    = 'Newline'
    COMMENT    = 'Comment'
    ERROR      = 'Error'

KEYWORDS = ('if', 'else', 'while', 'for', 'read', 'write',
            'int', 'real', 'bool', 'string', 'true', 'false')

SEPARATORS = '(){}[],;'
OPERATOR_CHARS = '+-*/=<>'
BLANKS = ' \t\r\n'
# A malformed numeral is skipped up to the first of these characters
RESYNC_CHARS = '\n, \t{}();=+-*/[]<>'

INTEGER_PATTERN = re.compile(r'-?[0-9]+')
LEADING_ZEROS_PATTERN = re.compile(r'-?0+[0-9]+')
REAL_PATTERN = re.compile(r'[-+]?[0-9]+(\.[0-9]+)?')
LEADING_ZEROS_REAL_PATTERN = re.compile(r'-?0{2,}(\.[0-9]+)+')
IDENTIFIER_PATTERN = re.compile(r'[A-Za-z][A-Za-z0-9_]*')

def match_integer(text: str) -> bool:
    """Integer text without redundant leading zeros: '0' and '-12' pass, '00' and '007' do not."""
    return INTEGER_PATTERN.fullmatch(text) is not None and LEADING_ZEROS_PATTERN.fullmatch(text) is None

def match_real(text: str) -> bool:
    return REAL_PATTERN.fullmatch(text) is not None and LEADING_ZEROS_REAL_PATTERN.fullmatch(text) is None

def match_identifier(text: str) -> bool:
    return IDENTIFIER_PATTERN.fullmatch(text) is not None and not text.endswith('_')

def is_letter(ch: str) -> bool:
    return ('a' <= ch <= 'z') or ('A' <= ch <= 'Z') or ch == '_'

def is_digit(ch: str) -> bool:
    return '0' <= ch <= '9'

def is_recognized(ch: str) -> bool:
    return (ch in SEPARATORS or ch in OPERATOR_CHARS or ch == '"' or ch in BLANKS
            or is_letter(ch) or is_digit(ch))

@dataclass(frozen=True)
class Token:
    """A lexical unit. Line and column are 1-based."""
    type: str
    value: str
    lineno: int
    column: int

    def __repr__(self) -> str:
        value_repr = self.value.replace('\n', '\\n')
        return f"Token(type='{self.type}', value='{value_repr}', lineno={self.lineno}, column={self.column})"

    def __str__(self) -> str:
        value_repr = self.value.replace('\n', '\\n').replace('\t', '\\t').replace('\r', '\\r')
        return f"{self.type:<10} line {self.lineno}, column {self.column}: {value_repr}"

class LexState:
    IDLE       = 0
    PLUS       = 1
    MINUS      = 2
    TIMES      = 3
    SLASH      = 4
    ASSIGN     = 5
    LESS       = 6
    IDENTIFIER = 7
    NUMBER     = 8
    GREATER    = 9
    STRING     = 10

@dataclass
class LexResult:
    tokens: List[Token]
    display_tokens: List[Token]
    error_handler: ErrorHandler
    lines: List[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return self.error_handler.get_error_count()

    @property
    def error_text(self) -> str:
        return self.error_handler.get_formatted_errors()

    def line_tree(self) -> SyntaxNode:
        """A PROGRAM node with one child per source line, holding that line's tokens."""
        root = SyntaxNode(content=Label.PROGRAM)
        line_nodes = [SyntaxNode(content=f"line {n}: {text}", lineno=n)
                      for n, text in enumerate(self.lines, start=1)]
        for token in self.display_tokens:
            if token.type in (TokenType.WHITESPACE, TokenType.NEWLINE):
                continue
            line_nodes[token.lineno - 1].add(SyntaxNode(token.type, token.value, token.lineno))
        for node in line_nodes:
            root.add(node)
        return root

class Lexer:
    """
    Line-oriented scanner. Each line runs through a finite-state machine with one
    character of lookahead; only block comments carry state from one line to the
    next. Errors are recorded and scanning always continues.
    """

    def __init__(self):
        self.error_handler = ErrorHandler()
        self.tokens: List[Token] = []
        self.display_tokens: List[Token] = []
        self.in_block_comment: bool = False
        self._lines: List[str] = []

    def scan(self, text: str) -> LexResult:
        self.error_handler = ErrorHandler()
        self.tokens = []
        self.display_tokens = []
        self.in_block_comment = False
        self._lines = text.splitlines()

        for index, line in enumerate(self._lines):
            self._scan_line(line, index + 1)

        logger.debug("Scanned %d lines: %d tokens, %d lexical errors",
                     len(self._lines), len(self.tokens), self.error_handler.get_error_count())
        return LexResult(self.tokens, self.display_tokens, self.error_handler, list(self._lines))

    # --- Token emission ---

    def _emit(self, token_type: str, value: str, lineno: int, column: int) -> None:
        token = Token(token_type, value, lineno, column)
        self.tokens.append(token)
        self.display_tokens.append(token)

    def _display(self, token_type: str, value: str, lineno: int, column: int) -> None:
        self.display_tokens.append(Token(token_type, value, lineno, column))

    def _error(self, message: str, lineno: int, column: int, lexeme: Optional[str] = None) -> None:
        self.error_handler.add_lexical_error(message, lineno, column)
        if lexeme is not None:
            self._display(TokenType.ERROR, lexeme, lineno, column)

    def _minus_is_binary(self) -> bool:
        if not self.tokens:
            return False
        previous = self.tokens[-1]
        if previous.type in (TokenType.INTEGER, TokenType.REAL, TokenType.IDENTIFIER):
            return True
        return previous.type == TokenType.DELIMITER and previous.value in (')', ']')

    @staticmethod
    def _find_resync(text: str, start: int) -> int:
        for index in range(start, len(text)):
            if text[index] in RESYNC_CHARS:
                return index
        return len(text)

    def _finish_word(self, word: str, lineno: int, column: int) -> None:
        if word in KEYWORDS:
            self._emit(TokenType.KEYWORD, word, lineno, column)
        elif match_identifier(word):
            self._emit(TokenType.IDENTIFIER, word, lineno, column)
        else:
            self._error(f"'{word}' is an illegal identifier", lineno, column, word)

    def _finish_number(self, word: str, lineno: int, column: int) -> None:
        if '.' not in word:
            if match_integer(word):
                self._emit(TokenType.INTEGER, word, lineno, column)
            else:
                self._error(f"'{word}' is an illegal integer", lineno, column, word)
        elif match_real(word):
            self._emit(TokenType.REAL, word, lineno, column)
        else:
            self._error(f"'{word}' is an illegal real number", lineno, column, word)

    # --- Comments ---

    def _open_block_comment(self, text: str, star: int, lineno: int) -> None:
        """`star` is the index of the '*' in '/*'."""
        self._display(TokenType.COMMENT, '/*', lineno, star)
        rest_of_source = [text[star + 1:]] + self._lines[lineno:]
        if not any('*/' in chunk for chunk in rest_of_source):
            self._error("comment is not closed", lineno, star)
        self.in_block_comment = True

    def _scan_block_comment(self, text: str, start: int, lineno: int) -> int:
        """Consumes comment text from `start`; returns the index to resume scanning at."""
        end = text.find('*/', start)
        if end == -1:
            if start < len(text) - 1:
                self._display(TokenType.COMMENT, text[start:-1], lineno, start + 1)
            self._display(TokenType.NEWLINE, '\n', lineno, len(text))
            return len(text)
        if end > start:
            self._display(TokenType.COMMENT, text[start:end], lineno, start + 1)
        self._display(TokenType.COMMENT, '*/', lineno, end + 1)
        self.in_block_comment = False
        return end + 2

    # --- The state machine ---

    def _scan_line(self, line: str, lineno: int) -> None:
        text = line + '\n'
        length = len(text)
        state = LexState.IDLE
        begin = 0
        i = 0

        while i < length:
            ch = text[i]

            if self.in_block_comment:
                i = self._scan_block_comment(text, i, lineno)
                continue

            if state == LexState.STRING:
                if ch == '"':
                    self._emit(TokenType.STRING, text[begin:i], lineno, begin + 1)
                    self._emit(TokenType.DELIMITER, '"', lineno, i + 1)
                    state = LexState.IDLE
                elif i == length - 1:
                    literal = text[begin:i]
                    self._error(f"string \"{literal}\" is missing its closing quote", lineno, begin + 1, literal)
                i += 1
                continue

            # Pending operators are resolved against the lookahead character.
            # Columns below are i because the operator started one character back.
            if state in (LexState.PLUS, LexState.GREATER):
                self._emit(TokenType.OPERATOR, '+' if state == LexState.PLUS else '>', lineno, i)
                state = LexState.IDLE
                continue

            if state == LexState.TIMES:
                if ch == '/':
                    self._error("operator '*' is misused", lineno, i, '*/')
                    i += 1
                else:
                    self._emit(TokenType.OPERATOR, '*', lineno, i)
                state = LexState.IDLE
                continue

            if state == LexState.SLASH:
                if ch == '/':
                    self._display(TokenType.COMMENT, text[i - 1:length - 1], lineno, i)
                    i = length - 1
                elif ch == '*':
                    self._open_block_comment(text, i, lineno)
                    i += 1
                else:
                    self._emit(TokenType.OPERATOR, '/', lineno, i)
                state = LexState.IDLE
                continue

            if state == LexState.ASSIGN:
                if ch == '=':
                    self._emit(TokenType.OPERATOR, '==', lineno, i)
                    i += 1
                else:
                    self._emit(TokenType.OPERATOR, '=', lineno, i)
                state = LexState.IDLE
                continue

            if state == LexState.LESS:
                if ch == '>':
                    self._emit(TokenType.OPERATOR, '<>', lineno, i)
                    i += 1
                else:
                    self._emit(TokenType.OPERATOR, '<', lineno, i)
                state = LexState.IDLE
                continue

            if state == LexState.MINUS:
                if not self._minus_is_binary() and is_digit(ch):
                    # Fold the sign into the numeral that follows
                    begin = i - 1
                    state = LexState.NUMBER
                    continue
                self._emit(TokenType.OPERATOR, '-', lineno, i)
                state = LexState.IDLE
                continue

            if state == LexState.IDENTIFIER:
                if is_letter(ch) or is_digit(ch):
                    i += 1
                    continue
                # Anything else ends the word and is scanned again from IDLE
                self._finish_word(text[begin:i], lineno, begin + 1)
                state = LexState.IDLE
                continue

            if state == LexState.NUMBER:
                if is_digit(ch) or ch == '.':
                    i += 1
                    continue
                if is_letter(ch):
                    end = self._find_resync(text, i)
                    self._error("malformed number or identifier", lineno, begin + 1, text[begin:end])
                    i = end
                    state = LexState.IDLE
                    continue
                if not is_recognized(ch):
                    self._error(f"'{ch}' is an unrecognized symbol", lineno, i + 1)
                    i += 1
                    continue
                self._finish_number(text[begin:i], lineno, begin + 1)
                i = self._find_resync(text, i)
                state = LexState.IDLE
                continue

            # LexState.IDLE
            if not is_recognized(ch):
                self._error(f"'{ch}' is an unrecognized symbol", lineno, i + 1, ch)
            elif ch in SEPARATORS:
                self._emit(TokenType.DELIMITER, ch, lineno, i + 1)
            elif ch == '+':
                state = LexState.PLUS
            elif ch == '-':
                state = LexState.MINUS
            elif ch == '*':
                state = LexState.TIMES
            elif ch == '/':
                state = LexState.SLASH
            elif ch == '=':
                state = LexState.ASSIGN
            elif ch == '<':
                state = LexState.LESS
            elif ch == '>':
                state = LexState.GREATER
            elif is_letter(ch):
                begin = i
                state = LexState.IDENTIFIER
            elif is_digit(ch):
                begin = i
                state = LexState.NUMBER
            elif ch == '"':
                self._emit(TokenType.DELIMITER, '"', lineno, i + 1)
                begin = i + 1
                state = LexState.STRING
            elif ch == '\n':
                self._display(TokenType.NEWLINE, ch, lineno, i + 1)
            else:
                self._display(TokenType.WHITESPACE, ch, lineno, i + 1)
            i += 1

def tokenize(text: str, error_handler: ErrorHandler) -> List[Token]:
    """Tokenize the input text into the filtered token list, recording errors in error_handler."""
    result = Lexer().scan(text)
    for entry in result.error_handler.get_entries():
        error_handler.add_lexical_error(entry.message, entry.lineno, entry.colno)
    return result.tokens

def format_tokens(tokens: List[Token]) -> str:
    """Renders a filtered token stream back to source text, one statement per line."""
    lines: List[str] = []
    words: List[str] = []
    indent = 0
    paren_depth = 0

    def flush() -> None:
        nonlocal words
        if words:
            lines.append('    ' * indent + ' '.join(words))
        words = []

    i = 0
    while i < len(tokens):
        token = tokens[i]
        if (token.type == TokenType.DELIMITER and token.value == '"' and i + 2 < len(tokens)
                and tokens[i + 1].type == TokenType.STRING and tokens[i + 2].value == '"'):
            words.append(f'"{tokens[i + 1].value}"')
            i += 3
            continue

        if token.value == '{' and token.type == TokenType.DELIMITER:
            words.append('{')
            flush()
            indent += 1
        elif token.value == '}' and token.type == TokenType.DELIMITER:
            flush()
            indent = max(indent - 1, 0)
            words.append('}')
            flush()
        else:
            words.append(token.value)
            if token.type == TokenType.DELIMITER:
                if token.value == '(':
                    paren_depth += 1
                elif token.value == ')':
                    paren_depth = max(paren_depth - 1, 0)
                elif token.value == ';' and paren_depth == 0:
                    flush()
        i += 1
    flush()
    return '\n'.join(lines) + ('\n' if lines else '')
