# Parser.py
import logging
from dataclasses import dataclass
from typing import List, Optional

from Error import ErrorHandler
from Lexer import Token, TokenType
from Nodes_AST import NodeKind, Label, SyntaxNode, COMPARISON_OPERATORS
from Types import cmm_typenames

logger = logging.getLogger(__name__)

# Token types that only appear in the display stream
DISPLAY_ONLY = (TokenType.WHITESPACE, TokenType.NEWLINE, TokenType.COMMENT, TokenType.ERROR)
# Token types whose value is a fixed spelling rather than user text
PUNCTUATION = (TokenType.DELIMITER, TokenType.OPERATOR, TokenType.KEYWORD)
STATEMENT_KEYWORDS = cmm_typenames + ('if', 'while', 'for', 'read', 'write')

@dataclass
class ParseResult:
    tree: SyntaxNode
    error_handler: ErrorHandler

    @property
    def error_count(self) -> int:
        return self.error_handler.get_error_count()

    @property
    def error_text(self) -> str:
        return self.error_handler.get_formatted_errors()

class Parser:
    def __init__(self, tokens: List[Token], error_handler: Optional[ErrorHandler] = None):
        self.tokens: List[Token] = [t for t in tokens if t.type not in DISPLAY_ONLY]
        self.error_handler: ErrorHandler = error_handler if error_handler is not None else ErrorHandler()
        self.pos: int = 0
        self.current_token: Optional[Token] = self.tokens[0] if self.tokens else None

    def advance(self) -> None:
        self.pos += 1
        self.current_token = self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def check(self, *values: str) -> bool:
        token = self.current_token
        return token is not None and token.type in PUNCTUATION and token.value in values

    def match(self, *values: str) -> Optional[Token]:
        if self.check(*values):
            token = self.current_token
            self.advance()
            return token
        return None

    def match_type(self, *types: str) -> Optional[Token]:
        if self.current_token and self.current_token.type in types:
            token = self.current_token
            self.advance()
            return token
        return None

    def error(self, message: str) -> None:
        """Reports a syntax error at the current token (or just past the last one)."""
        if self.current_token:
            lineno, colno = self.current_token.lineno, self.current_token.column
        elif self.tokens:
            last = self.tokens[-1]
            lineno, colno = last.lineno, last.column + len(last.value)
        else:
            lineno, colno = 1, 1
        self.error_handler.add_syntax_error(message, lineno, colno)

    def _describe_current(self) -> str:
        return f"'{self.current_token.value}'" if self.current_token else "end of file"

    def consume(self, value: str, error_message: str) -> Optional[Token]:
        token = self.match(value)
        if token is None:
            self.error(f"{error_message}, got {self._describe_current()}")
        return token

    def consume_type(self, token_type: str, error_message: str) -> Optional[Token]:
        token = self.match_type(token_type)
        if token is None:
            self.error(f"{error_message}, got {self._describe_current()}")
        return token

    def _synchronize(self) -> None:
        """
        Statement-level recovery: skip to just after the next ';', or stop before
        a '}' or a keyword that starts a statement.
        """
        while self.current_token:
            if self.check(';'):
                self.advance()
                return
            if self.check('}') or self.check(*STATEMENT_KEYWORDS):
                return
            self.advance()

    def _synchronize_past_block(self) -> None:
        """
        Used when the header of if/while/for is malformed: find the '{' of the body
        (within a few tokens) and skip to its matching '}'.
        """
        skipped_initial_tokens = 0
        max_initial_skip = 10

        while self.current_token and not self.check('{') and skipped_initial_tokens < max_initial_skip:
            if self.check(';', '}') or self.check(*STATEMENT_KEYWORDS):
                return
            self.advance()
            skipped_initial_tokens += 1

        if not self.check('{'):
            return

        self.advance()
        nesting_level = 1
        while self.current_token:
            if self.check('{'):
                nesting_level += 1
            elif self.check('}'):
                nesting_level -= 1
                if nesting_level == 0:
                    self.advance()
                    return
            self.advance()

    # --- Main Parsing Method ---
    def parse(self) -> SyntaxNode:
        """Parses the whole token list into a PROGRAM node, one child per statement."""
        root = SyntaxNode(content=Label.PROGRAM, lineno=1)
        for statement in self.parse_statement_list(inside_block=False):
            root.add(statement)
        logger.debug("Parsed %d top-level statements with %d syntax errors",
                     root.child_count, self.error_handler.get_error_count())
        return root

    def parse_statement_list(self, inside_block: bool) -> List[SyntaxNode]:
        statements: List[SyntaxNode] = []
        while self.current_token:
            if self.check('}'):
                if inside_block:
                    break
                self.error("Unmatched '}'")
                self.advance()
                continue
            if self.match(';'):
                continue # Empty statement

            errors_before_stmt = self.error_handler.get_error_count()
            pos_before_stmt = self.pos
            stmt = self.parse_statement()

            if stmt is not None:
                statements.append(stmt)
                continue
            if self.error_handler.get_error_count() == errors_before_stmt:
                self.error(f"Unexpected token {self._describe_current()}, cannot start a statement")
                self.advance()
                continue
            self._synchronize()
            if self.pos == pos_before_stmt:
                self.advance() # Always make progress
        return statements

    # --- Statement Parsers ---
    def parse_statement(self) -> Optional[SyntaxNode]:
        token = self.current_token
        if token is None:
            return None

        if self.check(*cmm_typenames):
            return self.parse_declaration()
        if self.check('if'):
            return self.parse_if()
        if self.check('while'):
            return self.parse_while()
        if self.check('for'):
            return self.parse_for()
        if self.check('read'):
            return self.parse_read()
        if self.check('write'):
            return self.parse_write()
        if self.check('{'):
            return self.parse_statements_block()
        if token.type == TokenType.IDENTIFIER:
            return self.parse_assignment(';')
        return None

    def parse_statements_block(self, label: str = Label.STATEMENTS) -> Optional[SyntaxNode]:
        lbrace = self.consume('{', "Expected '{' to start block")
        if not lbrace:
            return None
        block = SyntaxNode(content=label, lineno=lbrace.lineno)
        for statement in self.parse_statement_list(inside_block=True):
            block.add(statement)
        # A missing '}' is reported; the statements gathered so far are kept
        self.consume('}', "Expected '}' to end block")
        return block

    def parse_block(self, label: str = Label.STATEMENTS) -> Optional[SyntaxNode]:
        """The body of if/else/while/for: a braced block or a single statement."""
        if self.check('{'):
            return self.parse_statements_block(label)
        lineno = self.current_token.lineno if self.current_token else 0
        errors_before = self.error_handler.get_error_count()
        statement = self.parse_statement()
        if statement is None:
            if not self.error_handler.has_errors_since(errors_before):
                self.error(f"Expected a statement or block, got {self._describe_current()}")
            return None
        return SyntaxNode(content=label, lineno=lineno, children=[statement])

    def parse_declaration(self) -> Optional[SyntaxNode]:
        type_token = self.match(*cmm_typenames)
        if not type_token:
            return None
        node = SyntaxNode(content=type_token.value, lineno=type_token.lineno)

        while True:
            name_token = self.consume_type(TokenType.IDENTIFIER, f"Expected variable name after '{type_token.value}'")
            if not name_token:
                return None
            id_node = node.add(SyntaxNode(NodeKind.IDENTIFIER, name_token.value, name_token.lineno))

            if self.match('['):
                size_expr = self.parse_expression()
                if size_expr is None:
                    return None
                id_node.add(size_expr)
                if not self.consume(']', "Expected ']' after array size"):
                    return None
                if self.check('='):
                    self.error(f"Array '{name_token.value}' cannot have an initializer")
                    return None
            elif assign_token := self.match('='):
                value = self.parse_expression()
                if value is None:
                    return None
                node.add(SyntaxNode(content=Label.ASSIGN, lineno=assign_token.lineno, children=[value]))

            if not self.match(','):
                break

        if not self.consume(';', "Expected ';' after declaration"):
            return None
        return node

    def parse_variable(self) -> Optional[SyntaxNode]:
        """An identifier, optionally followed by one '[' index ']'."""
        id_token = self.consume_type(TokenType.IDENTIFIER, "Expected variable name")
        if not id_token:
            return None
        node = SyntaxNode(NodeKind.IDENTIFIER, id_token.value, id_token.lineno)
        if self.match('['):
            index = self.parse_expression()
            if index is None:
                return None
            node.add(index)
            if not self.consume(']', "Expected ']' after array index"):
                return None
        return node

    def parse_assignment(self, terminator: str) -> Optional[SyntaxNode]:
        target = self.parse_variable()
        if target is None:
            return None
        if not self.consume('=', f"Expected '=' after '{target.content}'"):
            return None
        value = self.parse_expression()
        if value is None:
            return None
        if not self.consume(terminator, f"Expected '{terminator}' after assignment"):
            return None
        return SyntaxNode(content=Label.ASSIGN, lineno=target.lineno, children=[target, value])

    def parse_condition_header(self, keyword: str) -> Optional[SyntaxNode]:
        """'(' condition ')' wrapped in a Condition node."""
        if not self.consume('(', f"Expected '(' after '{keyword}'"):
            return None
        lineno = self.current_token.lineno if self.current_token else 0
        condition = self.parse_expression()
        if condition is None:
            return None
        if not self.consume(')', f"Expected ')' after {keyword} condition"):
            return None
        return SyntaxNode(content=Label.CONDITION, lineno=lineno, children=[condition])

    def parse_if(self) -> Optional[SyntaxNode]:
        if_token = self.match('if')
        if not if_token:
            return None
        condition = self.parse_condition_header('if')
        if condition is None:
            self._synchronize_past_block()
            return None
        consequence = self.parse_block()
        if consequence is None:
            return None
        node = SyntaxNode(content='if', lineno=if_token.lineno, children=[condition, consequence])
        if self.match('else'):
            alternative = self.parse_block(Label.ELSE)
            if alternative is None:
                return None
            node.add(alternative)
        return node

    def parse_while(self) -> Optional[SyntaxNode]:
        while_token = self.match('while')
        if not while_token:
            return None
        condition = self.parse_condition_header('while')
        if condition is None:
            self._synchronize_past_block()
            return None
        body = self.parse_block()
        if body is None:
            return None
        return SyntaxNode(content='while', lineno=while_token.lineno, children=[condition, body])

    def parse_for(self) -> Optional[SyntaxNode]:
        for_token = self.match('for')
        if not for_token:
            return None
        if not self.consume('(', "Expected '(' after 'for'"):
            self._synchronize_past_block()
            return None

        init = self.parse_assignment(';')
        if init is None:
            self._synchronize_past_block()
            return None
        cond_lineno = self.current_token.lineno if self.current_token else for_token.lineno
        condition = self.parse_expression()
        if condition is None or not self.consume(';', "Expected ';' after for condition"):
            self._synchronize_past_block()
            return None
        change = self.parse_assignment(')')
        if change is None:
            self._synchronize_past_block()
            return None

        body = self.parse_block()
        if body is None:
            return None
        return SyntaxNode(content='for', lineno=for_token.lineno, children=[
            SyntaxNode(content=Label.INITIALIZATION, lineno=init.lineno, children=[init]),
            SyntaxNode(content=Label.CONDITION, lineno=cond_lineno, children=[condition]),
            SyntaxNode(content=Label.CHANGE, lineno=change.lineno, children=[change]),
            body,
        ])

    def parse_read(self) -> Optional[SyntaxNode]:
        read_token = self.match('read')
        if not read_token:
            return None
        target = self.parse_variable()
        if target is None:
            return None
        if not self.consume(';', "Expected ';' after read statement"):
            return None
        return SyntaxNode(content='read', lineno=read_token.lineno, children=[target])

    def parse_write(self) -> Optional[SyntaxNode]:
        write_token = self.match('write')
        if not write_token:
            return None
        expr = self.parse_expression()
        if expr is None:
            return None
        if not self.consume(';', "Expected ';' after write statement"):
            return None
        return SyntaxNode(content='write', lineno=write_token.lineno, children=[expr])

    # --- Expressions ---
    # Operand parsers report their own errors; callers only propagate None.

    def parse_expression(self) -> Optional[SyntaxNode]:
        """additive [ ('==' | '<>' | '<' | '>') additive ]; comparisons do not chain."""
        node = self.parse_additive()
        if node is None:
            return None
        if op_token := self.match(*COMPARISON_OPERATORS):
            right = self.parse_additive()
            if right is None:
                return None
            node = SyntaxNode(content=op_token.value, lineno=op_token.lineno, children=[node, right])
            if self.check(*COMPARISON_OPERATORS):
                self.error("Comparison operators cannot be chained")
                return None
        return node

    def parse_additive(self) -> Optional[SyntaxNode]:
        node = self.parse_term()
        while node is not None and (op_token := self.match('+', '-')):
            right = self.parse_term()
            if right is None:
                return None
            node = SyntaxNode(content=op_token.value, lineno=op_token.lineno, children=[node, right])
        return node

    def parse_term(self) -> Optional[SyntaxNode]:
        node = self.parse_factor()
        while node is not None and (op_token := self.match('*', '/')):
            right = self.parse_factor()
            if right is None:
                return None
            node = SyntaxNode(content=op_token.value, lineno=op_token.lineno, children=[node, right])
        return node

    def parse_factor(self) -> Optional[SyntaxNode]:
        token = self.current_token
        if token is None:
            self.error("Expected an expression")
            return None

        if lit_token := self.match_type(TokenType.INTEGER, TokenType.REAL):
            return SyntaxNode(lit_token.type, lit_token.value, lit_token.lineno)
        if quote_token := self.match('"'):
            string_token = self.consume_type(TokenType.STRING, "Expected string literal after '\"'")
            if not string_token:
                return None
            if not self.consume('"', "Expected closing '\"'"):
                return None
            return SyntaxNode(NodeKind.STRING, string_token.value, quote_token.lineno)
        if bool_token := self.match('true', 'false'):
            return SyntaxNode(NodeKind.BOOLEAN, bool_token.value, bool_token.lineno)
        if token.type == TokenType.IDENTIFIER:
            return self.parse_variable()
        if self.match('('):
            expr = self.parse_expression()
            if expr is None:
                return None
            if not self.consume(')', "Expected ')' after parenthesized expression"):
                return None
            return expr
        if minus_token := self.match('-'):
            # A minus the lexer did not fold into a numeral: 0 - operand
            operand = self.parse_factor()
            if operand is None:
                return None
            zero = SyntaxNode(NodeKind.INTEGER, '0', minus_token.lineno)
            return SyntaxNode(content='-', lineno=minus_token.lineno, children=[zero, operand])

        self.error(f"Expected an expression, got {self._describe_current()}")
        return None

def parse_tokens(tokens: List[Token]) -> ParseResult:
    """Parses a filtered token stream with a fresh error handler."""
    parser = Parser(tokens, ErrorHandler())
    tree = parser.parse()
    return ParseResult(tree, parser.error_handler)
