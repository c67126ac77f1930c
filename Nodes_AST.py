# Nodes_AST.py
from typing import Any, Dict, Iterator, List, Optional

class NodeKind:
    """Kind tags of literal and identifier nodes. Structural and operator nodes use ''."""
    INTEGER    = 'Integer'
    REAL       = 'Real'
    STRING     = 'String'
    BOOLEAN    = 'Boolean'
    IDENTIFIER = 'Identifier'
    NONE       = ''

    LITERALS = (INTEGER, REAL, STRING, BOOLEAN)

class Label:
    """Contents of the structural nodes the parser builds."""
    PROGRAM        = 'PROGRAM'
    CONDITION      = 'Condition'
    STATEMENTS     = 'Statements'
    ELSE           = 'Else'
    INITIALIZATION = 'Initialization'
    CHANGE         = 'Change'
    ASSIGN         = '='

ARITHMETIC_OPERATORS = ('+', '-', '*', '/')
COMPARISON_OPERATORS = ('==', '<>', '<', '>')

class SyntaxNode:
    """
    An ordered, rooted, multi-child tree node.

    `kind` is one of the NodeKind tags, `content` carries the operator symbol,
    identifier name, literal text or a structural label. A node belongs to at
    most one parent, so a tree built with add() is always acyclic.
    """
    def __init__(self, kind: str = NodeKind.NONE, content: str = '', lineno: int = 0,
                 children: Optional[List['SyntaxNode']] = None):
        self.kind: str = kind
        self.content: str = content
        self.lineno: int = lineno
        self.parent: Optional[SyntaxNode] = None
        self.children: List[SyntaxNode] = []
        for child in children or []:
            self.add(child)

    def add(self, child: 'SyntaxNode') -> 'SyntaxNode':
        if child.parent is not None:
            raise ValueError(f"Node '{child.content}' already belongs to '{child.parent.content}'")
        node: Optional[SyntaxNode] = self
        while node is not None:
            if node is child:
                raise ValueError(f"Adding '{child.content}' would create a cycle")
            node = node.parent
        child.parent = self
        self.children.append(child)
        return child

    def child(self, index: int) -> 'SyntaxNode':
        return self.children[index]

    @property
    def child_count(self) -> int:
        return len(self.children)

    def is_literal(self) -> bool:
        return self.kind in NodeKind.LITERALS

    def is_identifier(self) -> bool:
        return self.kind == NodeKind.IDENTIFIER

    def is_arithmetic(self) -> bool:
        return self.kind == NodeKind.NONE and self.content in ARITHMETIC_OPERATORS and self.child_count == 2

    def is_comparison(self) -> bool:
        return self.kind == NodeKind.NONE and self.content in COMPARISON_OPERATORS and self.child_count == 2

    def __iter__(self) -> Iterator['SyntaxNode']:
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)

    def __repr__(self) -> str:
        return f"SyntaxNode(kind='{self.kind}', content='{self.content}', lineno={self.lineno}, children={len(self.children)})"

    def pretty(self, indent: int = 0) -> str:
        """Indented text rendering of the subtree, one node per line."""
        label = f"{self.kind}: {self.content}" if self.kind else self.content
        lines = [f"{'  ' * indent}{label}"]
        for child in self.children:
            lines.append(child.pretty(indent + 1))
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        node_dict: Dict[str, Any] = {
            "kind": self.kind,
            "content": self.content,
            "lineno": self.lineno,
        }
        if self.children:
            node_dict["children"] = [child.to_dict() for child in self.children]
        return node_dict
