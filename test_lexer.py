import unittest
from Lexer import Lexer, Token, TokenType, format_tokens, tokenize, match_integer, match_real, match_identifier
from Error import ErrorHandler

def kinds_and_values(tokens):
    return [(t.type, t.value) for t in tokens]

class TestLexer(unittest.TestCase):
    def scan(self, text):
        return Lexer().scan(text)

    def test_declaration(self):
        result = self.scan("int x = -5;")
        expected = [
            Token(TokenType.KEYWORD, "int", 1, 1),
            Token(TokenType.IDENTIFIER, "x", 1, 5),
            Token(TokenType.OPERATOR, "=", 1, 7),
            Token(TokenType.INTEGER, "-5", 1, 9),
            Token(TokenType.DELIMITER, ";", 1, 11),
        ]
        print("\n--- Test: Declaration ---")
        for token in result.tokens:
            print(token)
        self.assertEqual(result.tokens, expected)
        self.assertEqual(result.error_count, 0)
        self.assertEqual(result.error_text, "")

    def test_keywords(self):
        code = "if else while for read write int real bool string true false"
        tokens = self.scan(code).tokens
        self.assertEqual([t.type for t in tokens], [TokenType.KEYWORD] * 12)
        self.assertEqual([t.value for t in tokens], code.split())

    def test_valid_integers(self):
        for text in ("0", "7", "42", "-12", "123456789"):
            with self.subTest(text=text):
                result = self.scan(text)
                self.assertEqual(kinds_and_values(result.tokens), [(TokenType.INTEGER, text)])
                self.assertEqual(result.error_count, 0)

    def test_leading_zeros(self):
        for text in ("00", "007"):
            with self.subTest(text=text):
                result = self.scan(text)
                self.assertEqual(result.error_count, 1)
                self.assertEqual(result.tokens, [])
                self.assertIn("illegal integer", result.error_text)

    def test_reals(self):
        result = self.scan("0.5 3.25")
        self.assertEqual(kinds_and_values(result.tokens), [(TokenType.REAL, "0.5"), (TokenType.REAL, "3.25")])
        self.assertEqual(kinds_and_values(self.scan("-1.5").tokens), [(TokenType.REAL, "-1.5")])
        self.assertEqual(self.scan("1.2.3").error_count, 1)
        self.assertEqual(self.scan("00.5").error_count, 1)

    def test_minus_after_operand_is_binary(self):
        result = self.scan("a-1 (b)-2 c[0]-3")
        values = [t.value for t in result.tokens]
        self.assertEqual(values, ["a", "-", "1", "(", "b", ")", "-", "2", "c", "[", "0", "]", "-", "3"])

    def test_minus_is_folded_after_operator(self):
        result = self.scan("x = 3 - -5;")
        self.assertEqual(kinds_and_values(result.tokens), [
            (TokenType.IDENTIFIER, "x"), (TokenType.OPERATOR, "="), (TokenType.INTEGER, "3"),
            (TokenType.OPERATOR, "-"), (TokenType.INTEGER, "-5"), (TokenType.DELIMITER, ";"),
        ])

    def test_minus_before_identifier_stays_operator(self):
        result = self.scan("x = -y;")
        self.assertEqual([t.value for t in result.tokens], ["x", "=", "-", "y", ";"])

    def test_comparison_operators(self):
        result = self.scan("a==b a<>b a<b a=b")
        ops = [t.value for t in result.tokens if t.type == TokenType.OPERATOR]
        self.assertEqual(ops, ["==", "<>", "<", "="])

    def test_greater_never_combines(self):
        result = self.scan("a>=b")
        self.assertEqual(kinds_and_values(result.tokens), [
            (TokenType.IDENTIFIER, "a"), (TokenType.OPERATOR, ">"),
            (TokenType.OPERATOR, "="), (TokenType.IDENTIFIER, "b"),
        ])

    def test_operator_columns(self):
        tokens = self.scan("a<>b+c").tokens
        self.assertEqual([(t.value, t.column) for t in tokens],
                         [("a", 1), ("<>", 2), ("b", 4), ("+", 5), ("c", 6)])

    def test_string_framing(self):
        result = self.scan('write "hello world";')
        self.assertEqual(kinds_and_values(result.tokens), [
            (TokenType.KEYWORD, "write"), (TokenType.DELIMITER, '"'), (TokenType.STRING, "hello world"),
            (TokenType.DELIMITER, '"'), (TokenType.DELIMITER, ";"),
        ])

    def test_empty_string(self):
        result = self.scan('""')
        self.assertEqual(kinds_and_values(result.tokens),
                         [(TokenType.DELIMITER, '"'), (TokenType.STRING, ""), (TokenType.DELIMITER, '"')])

    def test_unterminated_string(self):
        result = self.scan('write "abc')
        self.assertEqual(result.error_count, 1)
        self.assertIn('string "abc" is missing its closing quote', result.error_text)

    def test_line_comment(self):
        result = self.scan("x = 1; // trailing words\ny = 2;")
        self.assertEqual([t.value for t in result.tokens], ["x", "=", "1", ";", "y", "=", "2", ";"])
        comments = [t for t in result.display_tokens if t.type == TokenType.COMMENT]
        self.assertEqual(comments[0].value, "// trailing words")

    def test_block_comment_spanning_lines(self):
        result = self.scan("a /* one\ntwo */ b")
        self.assertEqual([(t.value, t.lineno, t.column) for t in result.tokens], [("a", 1, 1), ("b", 2, 8)])
        self.assertEqual(result.error_count, 0)

    def test_unterminated_block_comment(self):
        result = self.scan("1 /* unterminated")
        self.assertEqual(result.error_count, 1)
        entry = result.error_handler.get_entries()[0]
        self.assertEqual((entry.lineno, entry.colno), (1, 3))
        self.assertEqual(kinds_and_values(result.tokens), [(TokenType.INTEGER, "1")])

    def test_unterminated_block_comment_across_lines(self):
        result = self.scan("x;\n/* open\nstill open\n")
        self.assertEqual(result.error_count, 1)
        self.assertEqual(result.error_handler.get_entries()[0].lineno, 2)
        self.assertEqual([t.value for t in result.tokens], ["x", ";"])

    def test_misused_comment_close(self):
        result = self.scan("x = 1 */")
        self.assertEqual(result.error_count, 1)
        self.assertIn("operator '*' is misused", result.error_text)

    def test_unrecognized_symbol(self):
        result = self.scan("x = 1 @ 2;")
        self.assertEqual(result.error_count, 1)
        self.assertEqual(result.error_text, "ERROR: line 1, column 7: '@' is an unrecognized symbol")
        self.assertEqual([t.value for t in result.tokens], ["x", "=", "1", "2", ";"])

    def test_number_followed_by_letter_resyncs(self):
        result = self.scan("int a = 12x;")
        self.assertEqual(result.error_count, 1)
        self.assertIn("malformed number or identifier", result.error_text)
        self.assertEqual([t.value for t in result.tokens], ["int", "a", "=", ";"])

    def test_dot_ends_identifier(self):
        result = self.scan("a.b = 1;")
        self.assertEqual(result.error_count, 1)
        self.assertEqual(result.error_text, "ERROR: line 1, column 2: '.' is an unrecognized symbol")
        self.assertEqual(kinds_and_values(result.tokens), [
            (TokenType.IDENTIFIER, "a"), (TokenType.IDENTIFIER, "b"), (TokenType.OPERATOR, "="),
            (TokenType.INTEGER, "1"), (TokenType.DELIMITER, ";"),
        ])

    def test_illegal_identifiers(self):
        for text in ("a_", "_a"):
            with self.subTest(text=text):
                result = self.scan(text)
                self.assertEqual(result.error_count, 1)
                self.assertIn("illegal identifier", result.error_text)
                self.assertEqual(result.tokens, [])

    def test_display_stream(self):
        result = self.scan("a b\n")
        display_types = [t.type for t in result.display_tokens]
        self.assertEqual(display_types, [TokenType.IDENTIFIER, TokenType.WHITESPACE,
                                         TokenType.IDENTIFIER, TokenType.NEWLINE])
        error_tokens = [t for t in self.scan("$").display_tokens if t.type == TokenType.ERROR]
        self.assertEqual([t.value for t in error_tokens], ["$"])

    def test_line_tree(self):
        tree = self.scan("int x;\n// note\nwrite x;").line_tree()
        self.assertEqual(tree.content, "PROGRAM")
        self.assertEqual(tree.child_count, 3)
        self.assertEqual([n.content for n in tree.child(0)], ["int", "x", ";"])
        self.assertEqual([n.kind for n in tree.child(1)], [TokenType.COMMENT])

    def test_tokenize_records_errors(self):
        handler = ErrorHandler()
        tokens = tokenize("x = 007;", handler)
        self.assertEqual([t.value for t in tokens], ["x", "=", ";"])
        self.assertEqual(handler.get_error_count(), 1)

    def test_text_rules(self):
        self.assertTrue(match_integer("0"))
        self.assertFalse(match_integer("01"))
        self.assertTrue(match_real("10.25"))
        self.assertFalse(match_real("000.1"))
        self.assertTrue(match_identifier("a_1"))
        self.assertFalse(match_identifier("1a"))

class TestFormatTokens(unittest.TestCase):
    def test_round_trip(self):
        program = (
            'int i, n = 3; real r[2]; string s = "a b";\n'
            'for (i = 0; i < n; i = i + 1) { if (i <> 1) write i - -1; else { write s; } }\n'
            'while (n > 0) n = n - 1; r[0] = -2.5 * (1 + n);\n'
        )
        first = Lexer().scan(program)
        self.assertEqual(first.error_count, 0)
        text = format_tokens(first.tokens)
        print("\n--- Test: Pretty printed ---")
        print(text)
        second = Lexer().scan(text)
        self.assertEqual(second.error_count, 0)
        self.assertEqual(kinds_and_values(second.tokens), kinds_and_values(first.tokens))

    def test_layout(self):
        tokens = Lexer().scan("if (a) { b = 1; }").tokens
        self.assertEqual(format_tokens(tokens), "if ( a ) {\n    b = 1 ;\n}\n")

if __name__ == '__main__':
    unittest.main()
