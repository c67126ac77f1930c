# AST_to_JSON.py
import json
import sys
from typing import Any, Dict, List, Optional, TextIO

from Error import ErrorHandler

# ANSI color codes for the headers printed around JSON output
class Colors:
    HEADER = '\033[95m'
    BOLD = '\033[1m'
    UNDERLINE = '\033[4m'
    ENDC = '\033[0m'

def ast_to_json(node_or_value: Any) -> Any:
    """
    Converts a syntax tree (or a list of trees, tokens, or plain values) to a
    JSON serializable structure. Tree nodes supply their own to_dict().
    """
    if hasattr(node_or_value, 'to_dict') and callable(getattr(node_or_value, 'to_dict')):
        return node_or_value.to_dict()
    if isinstance(node_or_value, list):
        return [ast_to_json(item) for item in node_or_value]
    return node_or_value

def tokens_to_json(tokens: List[Any]) -> List[Dict[str, Any]]:
    return [{"type": t.type, "value": t.value, "lineno": t.lineno, "column": t.column} for t in tokens]

def errors_to_json(error_handler: ErrorHandler) -> List[Dict[str, Any]]:
    return [entry.to_dict() for entry in error_handler.get_entries()]

def dumps(json_data: Any, indent: int = 2) -> str:
    return json.dumps(json_data, indent=indent, ensure_ascii=False, sort_keys=False)

def pretty_print_json(json_data: Any, title: str = "Abstract Syntax Tree (JSON)", out: Optional[TextIO] = None,
                      color: bool = False) -> None:
    """Prints JSON data between a title line and a rule."""
    if out is None:
        out = sys.stdout
    header, rule, end = (Colors.HEADER + Colors.BOLD, Colors.UNDERLINE, Colors.ENDC) if color else ('', '', '')
    print(f"{header}{title}:{end}", file=out)
    print(f"{rule}{'=' * 60}{end}", file=out)
    print(dumps(json_data), file=out)
    print(f"{rule}{'=' * 60}{end}", file=out)

def save_ast_to_json(ast_serializable_data: Any, filename: str = "ast_output.json") -> None:
    """Writes the serializable tree to `filename`. OSError propagates to the caller."""
    with open(filename, 'w', encoding='utf-8') as f:
        json.dump(ast_serializable_data, f, indent=2, ensure_ascii=False, sort_keys=False)
