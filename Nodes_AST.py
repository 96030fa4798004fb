# Nodes_AST.py
from typing import Any, List, Optional

class Node:
    """Base class for all AST nodes."""
    def __init__(self, lineno: Optional[int] = None):
        self.lineno: Optional[int] = lineno
        # Resolved language type of the expression, filled by the SemanticAnalyzer
        self.lang_type: Optional[str] = None

    def accept(self, visitor: Any, *args: Any, **kwargs: Any) -> Any:
        """Calls visit_NodeName on the visitor, or its generic_visit fallback."""
        method_name = f'visit_{self.__class__.__name__}'
        visitor_method = getattr(visitor, method_name, visitor.generic_visit)
        return visitor_method(self, *args, **kwargs)

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.__dict__.items()
                           if k not in ("lineno", "lang_type"))
        return f"{self.__class__.__name__}({fields})"

# ---------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------

class Integer(Node):
    """Integer literal."""
    def __init__(self, value: int, lineno: Optional[int] = None):
        super().__init__(lineno)
        self.value: int = value
        self.lang_type = 'int' # Literals have their type known immediately

class Float(Node):
    """Float literal."""
    def __init__(self, value: float, lineno: Optional[int] = None):
        super().__init__(lineno)
        self.value: float = value
        self.lang_type = 'float'

class String(Node):
    """String literal. `value` is the text between the quotes."""
    def __init__(self, value: str, lineno: Optional[int] = None):
        super().__init__(lineno)
        self.value: str = value
        self.lang_type = 'string'

class Boolean(Node):
    """Boolean literal."""
    def __init__(self, value: bool, lineno: Optional[int] = None):
        super().__init__(lineno)
        self.value: bool = value
        self.lang_type = 'bool'

class Location(Node):
    """A variable reference."""
    def __init__(self, name: str, lineno: Optional[int] = None):
        super().__init__(lineno)
        self.name: str = name

class BinOp(Node):
    """Arithmetic (+ - * / %) or string concatenation (.)."""
    def __init__(self, op: str, left: Node, right: Node, lineno: Optional[int] = None):
        super().__init__(lineno)
        self.op: str = op
        self.left: Node = left
        self.right: Node = right

class CompareOp(Node):
    """Comparison (== != < >). Always bool."""
    def __init__(self, op: str, left: Node, right: Node, lineno: Optional[int] = None):
        super().__init__(lineno)
        self.op: str = op
        self.left: Node = left
        self.right: Node = right
        self.lang_type = 'bool'

class LogicalOp(Node):
    """Logical && / ||. Both sides are always evaluated."""
    def __init__(self, op: str, left: Node, right: Node, lineno: Optional[int] = None):
        super().__init__(lineno)
        self.op: str = op
        self.left: Node = left
        self.right: Node = right
        self.lang_type = 'bool'

class UnaryOp(Node):
    """Unary minus or logical not."""
    def __init__(self, op: str, operand: Node, lineno: Optional[int] = None):
        super().__init__(lineno)
        self.op: str = op
        self.operand: Node = operand

class Assignment(Node):
    """
    Assignment expression `target = expr`. Chained assignments nest to the
    right: `a = b = 1` is Assignment(a, Assignment(b, Integer(1))).
    """
    def __init__(self, target: Location, expr: Node, lineno: Optional[int] = None):
        super().__init__(lineno)
        self.target: Location = target
        self.expr: Node = expr

# ---------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------

class VariableDecl(Node):
    """`int a, b, c;`"""
    def __init__(self, type_spec: str, names: List[str], lineno: Optional[int] = None):
        super().__init__(lineno)
        self.type_spec: str = type_spec
        self.names: List[str] = names

class ExpressionStatement(Node):
    """An expression evaluated for its effect; its value is discarded."""
    def __init__(self, expr: Node, lineno: Optional[int] = None):
        super().__init__(lineno)
        self.expr: Node = expr

class EmptyStatement(Node):
    """A lone `;`."""
    pass

class Write(Node):
    """`write e1, e2, ...;`"""
    def __init__(self, exprs: List[Node], lineno: Optional[int] = None):
        super().__init__(lineno)
        self.exprs: List[Node] = exprs

class Read(Node):
    """`read v1, v2, ...;`"""
    def __init__(self, names: List[str], lineno: Optional[int] = None):
        super().__init__(lineno)
        self.names: List[str] = names

class If(Node):
    def __init__(self, test: Node, consequence: List[Node], alternative: Optional[List[Node]] = None, lineno: Optional[int] = None):
        super().__init__(lineno)
        self.test: Node = test
        self.consequence: List[Node] = consequence
        self.alternative: Optional[List[Node]] = alternative

class While(Node):
    def __init__(self, test: Node, body: List[Node], lineno: Optional[int] = None):
        super().__init__(lineno)
        self.test: Node = test
        self.body: List[Node] = body

class For(Node):
    """`for (init; test; update) body` where init and update are single assignments."""
    def __init__(self, init: Optional[Assignment], test: Node, update: Optional[Assignment],
                 body: List[Node], lineno: Optional[int] = None):
        super().__init__(lineno)
        self.init: Optional[Assignment] = init
        self.test: Node = test
        self.update: Optional[Assignment] = update
        self.body: List[Node] = body

# ---------------------------------------------------------------------
# Program Root
# ---------------------------------------------------------------------

class Program(Node):
    """Root node: the statements of a program in source order."""
    def __init__(self, body: List[Node], lineno: Optional[int] = None):
        super().__init__(lineno)
        self.body: List[Node] = body
