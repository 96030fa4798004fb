# TypeRules.py

from typing import Optional
from Nodes_AST import *
from Error import CodeGenerationError
from SymbolTable import SymbolTable

# Valid declared type names
lang_typenames = {'int', 'float', 'bool', 'string'}

# Language type -> value tag used by the instruction set and the VM
TYPE_TAGS = {
    'int': 'I',
    'float': 'F',
    'bool': 'B',
    'string': 'S',
}

NUMERIC = {'int', 'float'}

def _numeric_result(left_type: str, right_type: str) -> Optional[str]:
    # int op int stays int; any float operand promotes the int side
    if left_type not in NUMERIC or right_type not in NUMERIC:
        return None
    if left_type == 'float' or right_type == 'float':
        return 'float'
    return 'int'

def check_binop_type(op_symbol: str, left_type: Optional[str], right_type: Optional[str]) -> Optional[str]:
    """
    Result type of a binary operation, or None when the combination is illegal.
    Covers arithmetic, concatenation, comparisons and logical operators.
    """
    if left_type is None or right_type is None:
        return None

    if op_symbol in ('+', '-', '*', '/'):
        return _numeric_result(left_type, right_type)
    if op_symbol == '%':
        return 'int' if (left_type, right_type) == ('int', 'int') else None
    if op_symbol == '.':
        return 'string' if (left_type, right_type) == ('string', 'string') else None
    if op_symbol in ('==', '!='):
        if left_type == right_type and left_type in lang_typenames:
            return 'bool'
        return 'bool' if _numeric_result(left_type, right_type) else None
    if op_symbol in ('<', '>'):
        return 'bool' if _numeric_result(left_type, right_type) else None
    if op_symbol in ('&&', '||'):
        return 'bool' if (left_type, right_type) == ('bool', 'bool') else None
    return None

# Unary operations: (operator_symbol, operand_type) -> result_type
unary_ops_type_rules = {
    ('-', 'int'): 'int',
    ('-', 'float'): 'float',
    ('!', 'bool'): 'bool',
}

def check_unaryop_type(op_symbol: str, operand_type: Optional[str]) -> Optional[str]:
    if operand_type is None:
        return None
    return unary_ops_type_rules.get((op_symbol, operand_type))

def is_assignable(target_type: Optional[str], value_type: Optional[str]) -> bool:
    """Same type, or the one sanctioned widening int -> float."""
    if target_type is None or value_type is None:
        return False
    return target_type == value_type or (target_type == 'float' and value_type == 'int')

def operand_promotion(left_type: str, right_type: str) -> bool:
    """True when a mixed int/float pair has to be evaluated as float."""
    return {left_type, right_type} == {'int', 'float'}


class TypeOracle:
    """
    Static type lookups for the code generator.

    Prefers the annotation the SemanticAnalyzer left on a node and falls back to
    deriving the type from the rule tables. Never emits code, so it can be asked
    about a subtree before that subtree is generated.
    """
    def __init__(self, symbol_table: SymbolTable):
        self.symbol_table = symbol_table

    def declared_type(self, name: str, lineno: Optional[int] = None) -> str:
        return self.symbol_table.get_type(name, lineno)

    def type_of(self, node: Node) -> str:
        if node.lang_type is not None:
            return node.lang_type
        result = self._infer(node)
        if result is None:
            raise CodeGenerationError(f"Cannot determine the type of {type(node).__name__}.", node.lineno)
        return result

    def _infer(self, node: Node) -> Optional[str]:
        if isinstance(node, Location):
            try:
                return self.declared_type(node.name, node.lineno)
            except SymbolTable.SymbolNotFoundError as e:
                raise CodeGenerationError(str(e), node.lineno) from e
        if isinstance(node, Assignment):
            return self._infer(node.target)
        if isinstance(node, (BinOp, CompareOp, LogicalOp)):
            return check_binop_type(node.op, self.type_of(node.left), self.type_of(node.right))
        if isinstance(node, UnaryOp):
            return check_unaryop_type(node.op, self.type_of(node.operand))
        return None
