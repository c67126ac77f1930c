# SymbolTable.py
from typing import Iterator, List, Optional

from Types import Value, format_value

ARRAY_ELEMENT_SEPARATOR = '@'

def element_name(array_name: str, index: int) -> str:
    """Internal name of one array element, e.g. 'a@0'."""
    return f"{array_name}{ARRAY_ELEMENT_SEPARATOR}{index}"

class SymbolEntry:
    """
    A declared variable. An array is one entry with `array_size` set plus one
    entry per element, named with element_name(), at the same scope level.
    """
    def __init__(self, name: str, cmm_type: str, lineno: int, scope_level: int,
                 value: Optional[Value] = None, array_size: Optional[int] = None):
        self.name: str = name
        self.cmm_type: str = cmm_type        # int, real, bool, string
        self.lineno: int = lineno            # Declaration line
        self.scope_level: int = scope_level
        self.value: Optional[Value] = value
        self.array_size: Optional[int] = array_size

    @property
    def initialized(self) -> bool:
        return self.value is not None

    @property
    def is_array(self) -> bool:
        return self.array_size is not None

    def __str__(self) -> str:
        array_str = f"[{self.array_size}]" if self.is_array else ""
        return f"SymbolEntry(name='{self.name}{array_str}', type='{self.cmm_type}', scope={self.scope_level})"

    def __repr__(self) -> str:
        return self.__str__()

class SymbolTable:
    """
    Flat, insertion-ordered table of every live variable. Lookups scan from the
    given scope level down to level 0, so the nearest enclosing declaration wins.
    """
    class SymbolAlreadyDefinedError(Exception):
        """Raised when a symbol is redefined in the same scope."""
        pass

    def __init__(self):
        self.entries: List[SymbolEntry] = []

    def add_symbol(self, entry: SymbolEntry) -> None:
        if self.lookup_current(entry.name, entry.scope_level) is not None:
            raise SymbolTable.SymbolAlreadyDefinedError(
                f"Symbol '{entry.name}' already defined at level {entry.scope_level}."
            )
        self.entries.append(entry)

    def lookup_current(self, name: str, level: int) -> Optional[SymbolEntry]:
        for entry in self.entries:
            if entry.name == name and entry.scope_level == level:
                return entry
        return None

    def lookup_symbol(self, name: str, level: int) -> Optional[SymbolEntry]:
        while level > -1:
            entry = self.lookup_current(name, level)
            if entry is not None:
                return entry
            level -= 1
        return None

    def update(self, level: int) -> None:
        """Evicts every entry declared deeper than `level`; called on leaving a block."""
        self.entries = [entry for entry in self.entries if entry.scope_level <= level]

    def clear(self) -> None:
        self.entries = []

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[SymbolEntry]:
        return iter(self.entries)

    def __contains__(self, name: str) -> bool:
        return any(entry.name == name for entry in self.entries)

    def format_table(self) -> str:
        """The table as fixed-width text, one row per entry."""
        header = f"| {'Name':<18} | {'Type':<8} | {'Level':<6} | {'Decl. Line':<10} | {'Value':<16} |"
        rows = [header, f"|{'-'*20}|{'-'*10}|{'-'*8}|{'-'*12}|{'-'*18}|"]
        if not self.entries:
            rows.append(f"| {'(empty)':<72} |")
        for entry in self.entries:
            name = f"{entry.name}[{entry.array_size}]" if entry.is_array else entry.name
            value = format_value(entry.value) if entry.initialized else ''
            rows.append(f"| {name:<18} | {entry.cmm_type:<8} | {entry.scope_level:<6} | {entry.lineno:<10} | {value:<16} |")
        return "\n".join(rows)
