# Compiler.py

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional, TextIO

from AST_to_JSON import ast_to_json, tokens_to_json, errors_to_json, pretty_print_json, save_ast_to_json
from Lexer import Lexer, LexResult, Token
from Nodes_AST import SyntaxNode
from Parser import ParseResult, parse_tokens
from ProgramIO import InputMailbox, OutputSink
from SemanticAnalyzer import RunResult, SemanticAnalyzer

logger = logging.getLogger(__name__)

# --- Pipeline stages ---

def lex(text: str) -> LexResult:
    return Lexer().scan(text)

def parse(tokens: List[Token]) -> ParseResult:
    return parse_tokens(tokens)

def analyze_and_run(tree: SyntaxNode, output: Optional[OutputSink] = None,
                    mailbox: Optional[InputMailbox] = None,
                    on_input_error: Optional[Callable[[str], None]] = None) -> RunResult:
    """Checks and runs the tree on the calling thread. `read` blocks on `mailbox`."""
    return SemanticAnalyzer(tree, output, mailbox, on_input_error).run()

@dataclass
class ExecutionResult:
    lex_result: LexResult
    parse_result: ParseResult
    run_result: Optional[RunResult] = None # None when lexing or parsing failed

    @property
    def executed(self) -> bool:
        return self.run_result is not None

    @property
    def error_count(self) -> int:
        run_errors = self.run_result.error_count if self.run_result else 0
        return self.lex_result.error_count + self.parse_result.error_count + run_errors

    @property
    def output(self) -> List[str]:
        return self.run_result.output if self.run_result else []

def execute(source: str, output: Optional[OutputSink] = None,
            mailbox: Optional[InputMailbox] = None,
            on_input_error: Optional[Callable[[str], None]] = None) -> ExecutionResult:
    """
    Lexes and parses `source`, and runs it only when both stages were error free.
    Either way the lexical and syntax reports are returned for display.
    """
    lex_result = lex(source)
    parse_result = parse(lex_result.tokens)
    if lex_result.error_count or parse_result.error_count:
        logger.info("Not running: %d lexical and %d syntax errors",
                    lex_result.error_count, parse_result.error_count)
        return ExecutionResult(lex_result, parse_result)
    run_result = analyze_and_run(parse_result.tree, output, mailbox, on_input_error)
    return ExecutionResult(lex_result, parse_result, run_result)

# --- Command line ---

def read_source(path: str) -> Optional[str]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except OSError as e:
        print(f"Error: cannot read '{path}': {e.strerror}", file=sys.stderr)
        return None

def run_interactive(tree: SyntaxNode, stdin: TextIO, stdout: TextIO, stderr: TextIO) -> RunResult:
    """
    Runs the program on a worker thread and answers each `read` with one line
    from `stdin`, printing output lines as they are written.
    """
    output = OutputSink(on_line=lambda line: print(line, file=stdout, flush=True))
    mailbox = InputMailbox()
    analyzer = SemanticAnalyzer(tree, output, mailbox,
                                on_input_error=lambda message: print(f"Input error: {message}", file=stderr))
    analyzer.start()
    while (result := analyzer.join(timeout=0.05)) is None:
        name = mailbox.wait_for_request(timeout=0.05)
        if name is not None:
            print(f"{name}? ", end='', file=stdout, flush=True)
            mailbox.supply(stdin.readline().rstrip('\r\n'))
    return result

def command_lex(args: argparse.Namespace, source: str) -> int:
    result = lex(source)
    tokens = result.display_tokens if args.display else result.tokens
    if args.json:
        pretty_print_json({"tokens": tokens_to_json(tokens), "errors": errors_to_json(result.error_handler)},
                          title="Tokens (JSON)")
    else:
        for token in tokens:
            print(token)
    result.error_handler.report_errors(title="Lexical Errors")
    return 1 if result.error_count else 0

def command_parse(args: argparse.Namespace, source: str) -> int:
    lex_result = lex(source)
    parse_result = parse(lex_result.tokens)
    tree_json = ast_to_json(parse_result.tree)
    if args.json:
        pretty_print_json(tree_json)
    else:
        print(parse_result.tree.pretty())
    if args.save:
        try:
            save_ast_to_json(tree_json, args.save)
        except OSError as e:
            print(f"Error: cannot write '{args.save}': {e.strerror}", file=sys.stderr)
            return 2
        print(f"AST successfully saved to {args.save}")
    lex_result.error_handler.report_errors(title="Lexical Errors")
    parse_result.error_handler.report_errors(title="Syntax Errors")
    return 1 if lex_result.error_count or parse_result.error_count else 0

def command_run(args: argparse.Namespace, source: str) -> int:
    lex_result = lex(source)
    parse_result = parse(lex_result.tokens)
    if lex_result.error_count or parse_result.error_count:
        lex_result.error_handler.report_errors(title="Lexical Errors")
        parse_result.error_handler.report_errors(title="Syntax Errors")
        return 1
    result = run_interactive(parse_result.tree, sys.stdin, sys.stdout, sys.stderr)
    result.error_handler.report_errors(title="Semantic Errors")
    return 1 if result.error_count else 0

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='cmm', description="Lexer, parser and interpreter for the CMM language")
    parser.add_argument('--verbose', action='store_true', help="log pipeline details to stderr")
    commands = parser.add_subparsers(dest='command', required=True)

    lex_parser = commands.add_parser('lex', help="print the token stream")
    lex_parser.add_argument('file', help="CMM source file")
    lex_parser.add_argument('--display', action='store_true', help="include whitespace, newlines, comments and errors")
    lex_parser.add_argument('--json', action='store_true', help="print tokens as JSON")
    lex_parser.set_defaults(handler=command_lex)

    parse_parser = commands.add_parser('parse', help="print the syntax tree")
    parse_parser.add_argument('file', help="CMM source file")
    parse_parser.add_argument('--json', action='store_true', help="print the tree as JSON")
    parse_parser.add_argument('--save', metavar='PATH', help="also write the tree JSON to PATH")
    parse_parser.set_defaults(handler=command_parse)

    run_parser = commands.add_parser('run', help="check and execute the program")
    run_parser.add_argument('file', help="CMM source file")
    run_parser.set_defaults(handler=command_run)
    return parser

def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    source = read_source(args.file)
    if source is None:
        return 2
    return args.handler(args, source)

if __name__ == "__main__":
    sys.exit(main())
