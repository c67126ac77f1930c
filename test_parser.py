import unittest
from Lexer import Lexer
from Parser import Parser, parse_tokens
from Nodes_AST import NodeKind, SyntaxNode

def parse_source(text):
    lex_result = Lexer().scan(text)
    assert lex_result.error_count == 0, lex_result.error_text
    return parse_tokens(lex_result.tokens)

def shape(node):
    """(content, [child shapes]) for compact structural comparisons."""
    return (node.content, [shape(child) for child in node.children])

class TestParser(unittest.TestCase):
    def parse_ok(self, text):
        result = parse_source(text)
        self.assertEqual(result.error_count, 0, result.error_text)
        return result.tree

    def test_program_root(self):
        tree = self.parse_ok("int x; x = 1; write x;")
        self.assertEqual(tree.content, "PROGRAM")
        self.assertEqual([child.content for child in tree], ["int", "=", "write"])

    def test_declaration_shape(self):
        decl = self.parse_ok("int a[3], b = 2, c;").child(0)
        self.assertEqual(decl.content, "int")
        self.assertEqual(shape(decl), ("int", [
            ("a", [("3", [])]),
            ("b", []),
            ("=", [("2", [])]),
            ("c", []),
        ]))
        self.assertEqual(decl.child(0).kind, NodeKind.IDENTIFIER)
        self.assertEqual(decl.child(0).child(0).kind, NodeKind.INTEGER)

    def test_assignment_shape(self):
        assign = self.parse_ok("a[i + 1] = 2.5;").child(0)
        self.assertEqual(shape(assign), ("=", [("a", [("+", [("i", []), ("1", [])])]), ("2.5", [])]))
        self.assertEqual(assign.child(1).kind, NodeKind.REAL)

    def test_if_else_shape(self):
        node = self.parse_ok("if (a < 1) write 1; else { write 2; write 3; }").child(0)
        self.assertEqual(shape(node), ("if", [
            ("Condition", [("<", [("a", []), ("1", [])])]),
            ("Statements", [("write", [("1", [])])]),
            ("Else", [("write", [("2", [])]), ("write", [("3", [])])]),
        ]))

    def test_while_shape(self):
        node = self.parse_ok("while (go) { n = n - 1; }").child(0)
        self.assertEqual(shape(node), ("while", [
            ("Condition", [("go", [])]),
            ("Statements", [("=", [("n", []), ("-", [("n", []), ("1", [])])])]),
        ]))

    def test_for_shape(self):
        node = self.parse_ok("for (i = 0; i < 3; i = i + 1) write i;").child(0)
        self.assertEqual([child.content for child in node], ["Initialization", "Condition", "Change", "Statements"])
        self.assertEqual(shape(node.child(0)), ("Initialization", [("=", [("i", []), ("0", [])])]))
        self.assertEqual(shape(node.child(2)), ("Change", [("=", [("i", []), ("+", [("i", []), ("1", [])])])]))

    def test_read_and_write(self):
        tree = self.parse_ok('read a[0]; write "hi";')
        self.assertEqual(shape(tree.child(0)), ("read", [("a", [("0", [])])]))
        self.assertEqual(tree.child(1).child(0).kind, NodeKind.STRING)
        self.assertEqual(tree.child(1).child(0).content, "hi")

    def test_bare_block_and_empty_statement(self):
        tree = self.parse_ok("; { int x; ; } ;")
        self.assertEqual(shape(tree), ("PROGRAM", [("Statements", [("int", [("x", [])])])]))

    def test_precedence_and_associativity(self):
        expr = self.parse_ok("x = 1 + 2 * 3 - 4 / 2;").child(0).child(1)
        self.assertEqual(shape(expr), ("-", [
            ("+", [("1", []), ("*", [("2", []), ("3", [])])]),
            ("/", [("4", []), ("2", [])]),
        ]))

    def test_comparison_binds_loosest(self):
        expr = self.parse_ok("b = x + 1 == (y);").child(0).child(1)
        self.assertEqual(shape(expr), ("==", [("+", [("x", []), ("1", [])]), ("y", [])]))

    def test_unary_minus_becomes_subtraction(self):
        expr = self.parse_ok("x = -y;").child(0).child(1)
        self.assertEqual(shape(expr), ("-", [("0", []), ("y", [])]))
        self.assertEqual(expr.child(0).kind, NodeKind.INTEGER)

    def test_booleans(self):
        decl = self.parse_ok("bool t = true, f = false;").child(0)
        self.assertEqual(decl.child(1).child(0).kind, NodeKind.BOOLEAN)
        self.assertEqual(decl.child(3).child(0).content, "false")

    def test_line_numbers(self):
        tree = self.parse_ok("int x;\n\nwrite x;")
        self.assertEqual([child.lineno for child in tree], [1, 3])

class TestParserRecovery(unittest.TestCase):
    def test_missing_expression(self):
        result = parse_source("int x = ;\nwrite 1;")
        self.assertEqual(result.error_count, 1)
        self.assertEqual(result.error_text, "ERROR: line 1, column 9: Expected an expression, got ';'")
        self.assertEqual([child.content for child in result.tree], ["write"])

    def test_missing_semicolon_keeps_next_statement(self):
        result = parse_source("int x = 1\nwrite x;")
        self.assertEqual(result.error_count, 1)
        entry = result.error_handler.get_entries()[0]
        self.assertEqual((entry.lineno, entry.colno), (2, 1))
        self.assertEqual([child.content for child in result.tree], ["write"])

    def test_unexpected_token(self):
        result = parse_source("else write 1;")
        self.assertEqual(result.error_count, 1)
        self.assertIn("Unexpected token 'else'", result.error_text)
        self.assertEqual([child.content for child in result.tree], ["write"])

    def test_chained_comparison(self):
        result = parse_source("b = 1 < 2 < 3; write 1;")
        self.assertEqual(result.error_count, 1)
        self.assertIn("cannot be chained", result.error_text)
        self.assertEqual([child.content for child in result.tree], ["write"])

    def test_array_initializer_rejected(self):
        result = parse_source("int a[2] = 1; write 1;")
        self.assertEqual(result.error_count, 1)
        self.assertIn("cannot have an initializer", result.error_text)

    def test_bad_if_header_skips_body(self):
        result = parse_source("if (x > ) { write x; }\nwrite 2;")
        self.assertEqual(result.error_count, 1)
        self.assertEqual(shape(result.tree), ("PROGRAM", [("write", [("2", [])])]))

    def test_missing_closing_brace(self):
        result = parse_source("while (a) { write a;")
        self.assertEqual(result.error_count, 1)
        self.assertIn("Expected '}' to end block, got end of file", result.error_text)

    def test_errors_inside_block_recover_in_block(self):
        result = parse_source("{ int = 2; write 1; }\nwrite 2;")
        self.assertEqual(result.error_count, 1)
        self.assertEqual(shape(result.tree), ("PROGRAM", [
            ("Statements", [("write", [("1", [])])]),
            ("write", [("2", [])]),
        ]))

    def test_stray_closing_brace(self):
        result = parse_source("} x = 1; write x;")
        self.assertEqual(result.error_count, 1)
        self.assertIn("Unmatched '}'", result.error_text)
        self.assertEqual([child.content for child in result.tree], ["=", "write"])

    def test_display_tokens_are_ignored(self):
        display = Lexer().scan("write 1; // note\n").display_tokens
        tree = Parser(display).parse()
        self.assertEqual(shape(tree), ("PROGRAM", [("write", [("1", [])])]))

class TestSyntaxNode(unittest.TestCase):
    def test_single_parent(self):
        parent = SyntaxNode(content="a")
        child = parent.add(SyntaxNode(content="b"))
        with self.assertRaises(ValueError):
            SyntaxNode(content="c").add(child)

    def test_no_cycles(self):
        root = SyntaxNode(content="root")
        with self.assertRaises(ValueError):
            root.add(root)

    def test_pretty_and_dict(self):
        node = SyntaxNode(content="+", lineno=1, children=[
            SyntaxNode(NodeKind.INTEGER, "1", 1), SyntaxNode(NodeKind.IDENTIFIER, "x", 1)])
        self.assertEqual(node.pretty(), "+\n  Integer: 1\n  Identifier: x")
        self.assertEqual(node.to_dict()["children"][1], {"kind": "Identifier", "content": "x", "lineno": 1})
        self.assertTrue(node.is_arithmetic())
        self.assertFalse(node.is_comparison())

if __name__ == '__main__':
    unittest.main()
