# SymbolTable.py
from typing import Any, Dict, Optional

Node = Any # Nodes_AST.Node; kept loose to avoid a circular import

# Every declared variable starts from the default of its type
DEFAULT_VALUES = {
    'int': 0,
    'float': 0.0,
    'bool': False,
    'string': "",
}

class SymbolEntry:
    """A declared variable: its name, its language type and where it was declared."""
    def __init__(self, name: str, lang_type: str, declaration_node: Optional[Node] = None):
        self.name: str = name
        self.lang_type: str = lang_type            # "int", "float", "bool" or "string"
        self.declaration_node: Optional[Node] = declaration_node

    def default_value(self) -> Any:
        return DEFAULT_VALUES.get(self.lang_type)

    def __str__(self) -> str:
        return f"SymbolEntry(name='{self.name}', type='{self.lang_type}')"

    def __repr__(self) -> str:
        return self.__str__()

class SymbolTable:
    """
    Name -> declared type lookup for a program.
    The language has a single global namespace, so there is one table per program.
    """
    class SymbolAlreadyDefinedError(Exception):
        """Raised when a name is declared twice."""
        pass

    class SymbolNotFoundError(Exception):
        """Raised when a name is used without being declared."""
        pass

    def __init__(self):
        self.entries: Dict[str, SymbolEntry] = {}

    def declare(self, name: str, lang_type: str, lineno: Optional[int] = None,
                declaration_node: Optional[Node] = None) -> SymbolEntry:
        if name in self.entries:
            raise SymbolTable.SymbolAlreadyDefinedError(
                f"{lineno}: variable '{name}' already declared."
            )
        entry = SymbolEntry(name, lang_type, declaration_node)
        self.entries[name] = entry
        return entry

    def lookup_symbol(self, name: str) -> Optional[SymbolEntry]:
        return self.entries.get(name)

    def get_type(self, name: str, lineno: Optional[int] = None) -> str:
        entry = self.entries.get(name)
        if entry is None:
            raise SymbolTable.SymbolNotFoundError(f"{lineno}: variable '{name}' not declared.")
        return entry.lang_type

    def __contains__(self, name: str) -> bool:
        return name in self.entries
