# Error.py

import sys
from typing import List, Optional, Any

class ErrorType:
    LEXICAL  = 'LEXICAL'
    SYNTAX   = 'SYNTAX'
    SEMANTIC = 'SEMANTIC'
    GENERAL  = 'GENERAL' # Default or unspecified error type

    @classmethod
    def normalize(cls, t: Any) -> str:
        t_str = str(t).upper()
        if t_str in {cls.LEXICAL, cls.SYNTAX, cls.SEMANTIC, cls.GENERAL}:
            return t_str
        return cls.GENERAL

class ErrorEntry:
    def __init__(self, message: str, lineno: Optional[int], colno: Optional[int], error_type: str):
        self.message: str = message
        self.lineno: Optional[int] = lineno
        self.colno: Optional[int] = colno # Semantic errors carry no column
        self.type: str = ErrorType.normalize(error_type)

    def __str__(self) -> str:
        if self.lineno is None:
            return f"ERROR: {self.message}"
        if self.colno is None:
            return f"ERROR: line {self.lineno}: {self.message}"
        return f"ERROR: line {self.lineno}, column {self.colno}: {self.message}"

    def __repr__(self) -> str:
        return f"ErrorEntry(type='{self.type}', message='{self.message}', lineno={self.lineno}, colno={self.colno})"

    def to_dict(self) -> dict:
        """Converts the error entry to a dictionary for serialization."""
        return {
            "type": self.type,
            "message": self.message,
            "lineno": self.lineno,
            "colno": self.colno,
        }

class CompilerError(Exception):
    """Base exception for compiler phases. Never escapes the phase that raised it."""
    def __init__(self, message: str, lineno: Optional[int] = None, colno: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.lineno = lineno
        self.colno = colno

class LexicalError(CompilerError): pass
class SemanticError(CompilerError): pass

class ErrorHandler:
    """Accumulates the diagnostics of one pipeline stage, in the order they were found."""

    def __init__(self):
        self._errors: List[ErrorEntry] = []

    def add_error(self, message: str, lineno: Optional[int] = None, colno: Optional[int] = None, error_type: str = ErrorType.GENERAL):
        """Registers an error in any compiler phase."""
        self._errors.append(ErrorEntry(message, lineno, colno, error_type))

    def add_lexical_error(self, message: str, lineno: int, colno: Optional[int] = None):
        self.add_error(message, lineno, colno, ErrorType.LEXICAL)

    def add_syntax_error(self, message: str, lineno: Optional[int], colno: Optional[int] = None):
        self.add_error(message, lineno, colno, ErrorType.SYNTAX)

    def add_semantic_error(self, message: str, lineno: Optional[int]):
        self.add_error(message, lineno, None, ErrorType.SEMANTIC)

    def add_compiler_error(self, error: CompilerError, error_type: str):
        self.add_error(error.message, error.lineno, error.colno, error_type)

    def get_formatted_errors(self) -> str:
        """Returns all errors as text, one per line. Empty when there are none."""
        return "\n".join(str(error) for error in self._errors)

    def get_entries(self) -> List[ErrorEntry]:
        """Returns the list of collected error entries."""
        return self._errors

    def has_errors(self) -> bool:
        return bool(self._errors)

    def report_errors(self, out=None, title: str = "Compilation Errors"):
        """Prints all registered errors to the specified output stream (stderr by default)."""
        if not self.has_errors():
            return
        if out is None:
            out = sys.stderr

        print(f"\n--- {title} ---", file=out)
        print(self.get_formatted_errors(), file=out)
        print(f"Total errors: {len(self._errors)}", file=out)

    def clear_errors(self):
        self._errors = []

    def has_errors_since(self, previous_error_count: int) -> bool:
        """Checks if new errors were added since a certain point."""
        return len(self._errors) > previous_error_count

    def get_error_count(self) -> int:
        return len(self._errors)
