# SemanticAnalyzer.py

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from Error import ErrorHandler, ErrorType, SemanticError
from Nodes_AST import NodeKind, Label, SyntaxNode
from ProgramIO import InputMailbox, OutputSink
from SymbolTable import SymbolTable, SymbolEntry, element_name
from Types import (INT, STRING, BOOL, NUMERIC, cmm_typenames, Value, int_value, real_value, bool_value,
                   string_value, format_value, check_binop_type, arithmetic, compare,
                   CoercionError, coerce, describe_literal, describe_variable, parse_input)

logger = logging.getLogger(__name__)

@dataclass
class RunResult:
    error_handler: ErrorHandler
    output: List[str] = field(default_factory=list)
    input_errors: List[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return self.error_handler.get_error_count()

    @property
    def error_text(self) -> str:
        return self.error_handler.get_formatted_errors()

class SemanticAnalyzer:
    """
    Checks and executes a CMM syntax tree in one walk.

    Every block construct raises the scope level on entry; on exit the level drops
    and the symbol table evicts whatever was declared deeper. A statement that hits
    a semantic error is abandoned and the walk continues with the next one.
    """
    def __init__(self, tree: SyntaxNode, output: Optional[OutputSink] = None,
                 mailbox: Optional[InputMailbox] = None,
                 on_input_error: Optional[Callable[[str], None]] = None,
                 error_handler: Optional[ErrorHandler] = None):
        self.tree: SyntaxNode = tree
        self.output: OutputSink = output if output is not None else OutputSink()
        self.mailbox: InputMailbox = mailbox if mailbox is not None else InputMailbox()
        self.on_input_error = on_input_error
        self.error_handler: ErrorHandler = error_handler if error_handler is not None else ErrorHandler()
        self.symbol_table: SymbolTable = SymbolTable()
        self.level: int = 0
        self.input_errors: List[str] = []
        self._thread: Optional[threading.Thread] = None

        self._statement_handlers: Dict[str, Callable[[SyntaxNode], None]] = {
            type_name: self.visit_declaration for type_name in cmm_typenames
        }
        self._statement_handlers.update({
            Label.ASSIGN: self.visit_assign,
            Label.STATEMENTS: self.visit_block,
            'if': self.visit_if,
            'while': self.visit_while,
            'for': self.visit_for,
            'read': self.visit_read,
            'write': self.visit_write,
        })

    # --- Running ---

    def run(self) -> RunResult:
        self.symbol_table.clear()
        self.level = 0
        logger.debug("Running program with %d top-level statements", self.tree.child_count)
        self.run_statements(self.tree)
        logger.debug("Program finished: %d semantic errors, %d output lines",
                     self.error_handler.get_error_count(), len(self.output))
        return self.result()

    def start(self) -> None:
        """Runs the program on a daemon worker thread so `read` can block without blocking the caller."""
        self._thread = threading.Thread(target=self.run, name="cmm-interpreter", daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> Optional[RunResult]:
        """Waits for a start()ed run. Returns None if it is still running after `timeout`."""
        if self._thread is None:
            raise RuntimeError("join() called before start()")
        self._thread.join(timeout)
        if self._thread.is_alive():
            return None
        return self.result()

    def result(self) -> RunResult:
        return RunResult(self.error_handler, list(self.output.lines), list(self.input_errors))

    def enter_scope(self) -> None:
        self.level += 1
        logger.debug("Entering scope level %d", self.level)

    def exit_scope(self) -> None:
        self.level -= 1
        self.symbol_table.update(self.level)
        logger.debug("Back at scope level %d, %d symbols live", self.level, len(self.symbol_table))

    # --- Statements ---

    def run_statements(self, node: SyntaxNode) -> None:
        for statement in node.children:
            self.execute(statement)

    def execute(self, node: SyntaxNode) -> None:
        handler = self._statement_handlers.get(node.content) if node.kind == NodeKind.NONE else None
        if handler is None:
            logger.debug("Skipping non-statement node %r", node)
            return
        try:
            handler(node)
        except SemanticError as err:
            self.error_handler.add_compiler_error(err, ErrorType.SEMANTIC)

    def visit_block(self, node: SyntaxNode) -> None:
        self.enter_scope()
        try:
            self.run_statements(node)
        finally:
            self.exit_scope()

    def visit_declaration(self, node: SyntaxNode) -> None:
        cmm_type = node.content
        children = node.children
        i = 0
        while i < len(children):
            id_node = children[i]
            initializer: Optional[SyntaxNode] = None
            if i + 1 < len(children) and children[i + 1].kind == NodeKind.NONE and children[i + 1].content == Label.ASSIGN:
                initializer = children[i + 1].child(0)
                i += 2
            else:
                i += 1
            self.declare(cmm_type, id_node, initializer)

    def declare(self, cmm_type: str, id_node: SyntaxNode, initializer: Optional[SyntaxNode]) -> None:
        name = id_node.content
        if id_node.child_count:
            size = self.array_size(id_node)
            self.add_symbol(SymbolEntry(name, cmm_type, id_node.lineno, self.level, array_size=size))
            for index in range(size):
                self.symbol_table.add_symbol(
                    SymbolEntry(element_name(name, index), cmm_type, id_node.lineno, self.level))
            return

        entry = SymbolEntry(name, cmm_type, id_node.lineno, self.level)
        self.add_symbol(entry)
        if initializer is not None:
            # A failed initializer leaves the variable declared but uninitialized
            entry.value = self.assign_value(cmm_type, initializer, id_node.lineno)

    def add_symbol(self, entry: SymbolEntry) -> None:
        try:
            self.symbol_table.add_symbol(entry)
        except SymbolTable.SymbolAlreadyDefinedError:
            raise SemanticError(f"variable '{entry.name}' has already been declared", entry.lineno)

    def array_size(self, id_node: SyntaxNode) -> int:
        size = self.evaluate(id_node.child(0))
        if size.type != INT:
            raise SemanticError("type mismatch, array size must be an integer", id_node.lineno)
        if size.payload < 1:
            raise SemanticError("array size must be greater than zero", id_node.lineno)
        return size.payload

    def visit_assign(self, node: SyntaxNode) -> None:
        target, expr = node.child(0), node.child(1)
        entry = self.resolve(target)
        if entry.is_array:
            raise SemanticError(f"array '{target.content}' cannot be assigned without an index", node.lineno)
        entry.value = self.assign_value(entry.cmm_type, expr, node.lineno)

    def visit_if(self, node: SyntaxNode) -> None:
        self.enter_scope()
        try:
            if self.test_condition(node.child(0)):
                self.run_statements(node.child(1))
            elif node.child_count > 2:
                self.run_statements(node.child(2))
        finally:
            self.exit_scope()

    def visit_while(self, node: SyntaxNode) -> None:
        self.enter_scope()
        try:
            while self.test_condition(node.child(0)):
                self.run_statements(node.child(1))
                # Body locals do not survive into the next iteration
                self.exit_scope()
                self.enter_scope()
        finally:
            self.exit_scope()

    def visit_for(self, node: SyntaxNode) -> None:
        init, condition, change, body = node.children
        self.enter_scope()
        try:
            self.run_statements(init)
            while self.test_condition(condition):
                self.run_statements(body)
                # Evict body locals, then run the change step at the restored level
                self.exit_scope()
                self.enter_scope()
                self.run_statements(change)
        finally:
            self.exit_scope()

    def visit_read(self, node: SyntaxNode) -> None:
        target = node.child(0)
        entry = self.resolve(target)
        if entry.is_array:
            raise SemanticError(f"array '{target.content}' cannot be read without an index", node.lineno)
        text = self.mailbox.request(target.content)
        value = parse_input(entry.cmm_type, text)
        if value is None:
            self.report_input_error(f'cannot assign "{text}" to variable {target.content}')
            return
        entry.value = value

    def visit_write(self, node: SyntaxNode) -> None:
        expr = node.child(0)
        if expr.kind == NodeKind.REAL:
            # A real literal is echoed as written
            self.output.write(expr.content)
            return
        self.output.write(format_value(self.evaluate(expr)))

    def report_input_error(self, message: str) -> None:
        logger.info("Input rejected: %s", message)
        self.input_errors.append(message)
        if self.on_input_error is not None:
            self.on_input_error(message)

    def test_condition(self, wrapper: SyntaxNode) -> bool:
        """Evaluates a Condition node. An erroneous or non-bool condition is reported and counts as false."""
        expr = wrapper.child(0)
        try:
            value = self.evaluate(expr)
            if value.type != BOOL:
                if expr.is_identifier():
                    raise SemanticError(f"cannot use variable '{expr.content}' as a condition", expr.lineno)
                raise SemanticError(f"cannot use {value.type} value as a condition", expr.lineno)
        except SemanticError as err:
            self.error_handler.add_compiler_error(err, ErrorType.SEMANTIC)
            return False
        return value.payload

    # --- Expressions ---

    def assign_value(self, target_type: str, expr: SyntaxNode, lineno: int) -> Value:
        value = self.evaluate(expr)
        try:
            return coerce(target_type, value, self.describe_source(target_type, expr, value))
        except CoercionError as err:
            raise SemanticError(str(err), lineno)

    @staticmethod
    def describe_source(target_type: str, expr: SyntaxNode, value: Value) -> str:
        if expr.is_identifier():
            return describe_variable(value.type)
        if expr.is_arithmetic() and target_type == STRING:
            return "arithmetic expression"
        return describe_literal(value)

    def evaluate(self, node: SyntaxNode) -> Value:
        if node.kind == NodeKind.INTEGER:
            return int_value(int(node.content))
        if node.kind == NodeKind.REAL:
            return real_value(float(node.content))
        if node.kind == NodeKind.STRING:
            return string_value(node.content)
        if node.kind == NodeKind.BOOLEAN:
            return bool_value(node.content == 'true')
        if node.kind == NodeKind.IDENTIFIER:
            return self.load(node)

        if node.is_arithmetic():
            left = self.evaluate(node.child(0))
            right = self.evaluate(node.child(1))
            if check_binop_type(node.content, left.type, right.type) is None:
                bad = left if left.type not in NUMERIC else right
                raise SemanticError(f"cannot use {bad.type} value in arithmetic expression", node.lineno)
            try:
                return arithmetic(node.content, left, right)
            except ZeroDivisionError:
                raise SemanticError("division by zero", node.child(1).lineno)
            except OverflowError:
                raise SemanticError("value out of range for real", node.lineno)

        if node.is_comparison():
            left = self.evaluate(node.child(0))
            right = self.evaluate(node.child(1))
            if check_binop_type(node.content, left.type, right.type) is None:
                raise SemanticError(
                    f"cannot compare {left.type} value with {right.type} value using '{node.content}'", node.lineno)
            return compare(node.content, left, right)

        raise SemanticError(f"'{node.content}' is not an expression", node.lineno)

    def resolve(self, node: SyntaxNode) -> SymbolEntry:
        """The entry an identifier node refers to: the variable itself, or one array element."""
        name = node.content
        entry = self.symbol_table.lookup_symbol(name, self.level)
        if entry is None:
            raise SemanticError(f"variable '{name}' is undeclared", node.lineno)
        if node.child_count == 0:
            return entry
        if not entry.is_array:
            raise SemanticError(f"'{name}' is not an array", node.lineno)

        index = self.evaluate(node.child(0))
        if index.type != INT:
            raise SemanticError("type mismatch, array index must be an integer", node.lineno)
        if index.payload < 0:
            raise SemanticError("array index cannot be negative", node.lineno)
        if index.payload >= entry.array_size:
            raise SemanticError("array index out of range", node.lineno)
        return self.symbol_table.lookup_current(element_name(name, index.payload), entry.scope_level)

    def load(self, node: SyntaxNode) -> Value:
        entry = self.resolve(node)
        if entry.is_array:
            raise SemanticError(f"array '{node.content}' must be indexed", node.lineno)
        if not entry.initialized:
            raise SemanticError(f"variable '{node.content}' is used before it is initialized", node.lineno)
        return entry.value

def analyze_tree(tree: SyntaxNode, output: Optional[OutputSink] = None,
                 mailbox: Optional[InputMailbox] = None,
                 on_input_error: Optional[Callable[[str], None]] = None) -> RunResult:
    return SemanticAnalyzer(tree, output, mailbox, on_input_error).run()
