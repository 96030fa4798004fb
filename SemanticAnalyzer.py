# SemanticAnalyzer.py

from typing import List, Optional
from Nodes_AST import * # Import all AST node types
from Error import ErrorHandler
from SymbolTable import SymbolTable
from TypeRules import lang_typenames, check_binop_type, check_unaryop_type, is_assignable

class SemanticAnalyzer:
    """
    Type checker run before code generation.

    Declares every variable in the symbol table, annotates each expression node
    with its `lang_type` and reports every problem it finds to the ErrorHandler
    instead of stopping at the first one.
    """
    def __init__(self, error_handler: ErrorHandler):
        self.error_handler: ErrorHandler = error_handler
        self.symbol_table: SymbolTable = SymbolTable()

    def analyze(self, node: Optional[Node]) -> Optional[str]: # Returns the type of the node/expression
        if node is None:
            return None
        return node.accept(self)

    def generic_visit(self, node: Node) -> None:
        self.error_handler.add_semantic_error(f"Unsupported node {type(node).__name__}.", node.lineno)
        return None

    def _analyze_block(self, statements: Optional[List[Node]]) -> None:
        for stmt in statements or []:
            self.analyze(stmt)

    def visit_Program(self, node: Program) -> None:
        self._analyze_block(node.body)
        return None

    # --- Literals ---
    def visit_Integer(self, node: Integer) -> str:
        node.lang_type = 'int'
        return 'int'

    def visit_Float(self, node: Float) -> str:
        node.lang_type = 'float'
        return 'float'

    def visit_String(self, node: String) -> str:
        node.lang_type = 'string'
        return 'string'

    def visit_Boolean(self, node: Boolean) -> str:
        node.lang_type = 'bool'
        return 'bool'

    def visit_Location(self, node: Location) -> Optional[str]:
        symbol_entry = self.symbol_table.lookup_symbol(node.name)
        if not symbol_entry:
            self.error_handler.add_semantic_error(f"Variable '{node.name}' not declared.", node.lineno)
            return None

        node.lang_type = symbol_entry.lang_type
        return symbol_entry.lang_type

    # --- Statements ---
    def visit_VariableDecl(self, node: VariableDecl) -> None:
        if node.type_spec not in lang_typenames:
            self.error_handler.add_semantic_error(f"Unknown type: {node.type_spec}", node.lineno)
            return None

        for name in node.names:
            try:
                self.symbol_table.declare(name, node.type_spec, node.lineno, declaration_node=node)
            except SymbolTable.SymbolAlreadyDefinedError:
                self.error_handler.add_semantic_error(f"Variable '{name}' already declared.", node.lineno)
        return None

    def visit_Assignment(self, node: Assignment) -> Optional[str]:
        target_type = self.analyze(node.target)
        value_type = self.analyze(node.expr)

        if not target_type:
            return None
        if not value_type:
            self.error_handler.add_semantic_error(
                f"Right-hand side of assignment to '{node.target.name}' has invalid type.", node.lineno)
            return None

        if not is_assignable(target_type, value_type):
            self.error_handler.add_semantic_error(
                f"Variable '{node.target.name}' type is {target_type}, but the assigned value is {value_type}.",
                node.lineno
            )
            return None

        node.lang_type = target_type
        return target_type

    def visit_ExpressionStatement(self, node: ExpressionStatement) -> None:
        self.analyze(node.expr)
        return None

    def visit_EmptyStatement(self, node: EmptyStatement) -> None:
        return None

    def visit_Write(self, node: Write) -> None:
        for expr in node.exprs:
            self.analyze(expr)
        return None

    def visit_Read(self, node: Read) -> None:
        for name in node.names:
            if name not in self.symbol_table:
                self.error_handler.add_semantic_error(f"Variable '{name}' not declared.", node.lineno)
        return None

    def _check_condition(self, test: Node, statement_name: str, lineno: Optional[int]) -> None:
        condition_type = self.analyze(test)
        # Only report the condition type if the condition itself was well typed
        if condition_type is not None and condition_type != 'bool':
            self.error_handler.add_semantic_error(
                f"Condition in {statement_name} must be bool, got {condition_type}.",
                test.lineno if test.lineno is not None else lineno
            )

    def visit_If(self, node: If) -> None:
        self._check_condition(node.test, "if statement", node.lineno)
        self._analyze_block(node.consequence)
        self._analyze_block(node.alternative)
        return None

    def visit_While(self, node: While) -> None:
        self._check_condition(node.test, "while loop", node.lineno)
        self._analyze_block(node.body)
        return None

    def visit_For(self, node: For) -> None:
        self.analyze(node.init)
        self._check_condition(node.test, "for loop", node.lineno)
        self.analyze(node.update)
        self._analyze_block(node.body)
        return None

    # --- Operators ---
    def _visit_binary(self, node: Node) -> Optional[str]:
        left_type = self.analyze(node.left)
        right_type = self.analyze(node.right)

        if not left_type or not right_type:
            return None # Error in operands

        result_type = check_binop_type(node.op, left_type, right_type)
        if result_type is None:
            self.error_handler.add_semantic_error(
                f"Invalid operands for '{node.op}': {left_type}, {right_type}.",
                node.lineno
            )
            return None

        node.lang_type = result_type
        return result_type

    def visit_BinOp(self, node: BinOp) -> Optional[str]:
        return self._visit_binary(node)

    def visit_CompareOp(self, node: CompareOp) -> Optional[str]:
        return self._visit_binary(node)

    def visit_LogicalOp(self, node: LogicalOp) -> Optional[str]:
        return self._visit_binary(node)

    def visit_UnaryOp(self, node: UnaryOp) -> Optional[str]:
        operand_type = self.analyze(node.operand)
        if not operand_type:
            return None

        result_type = check_unaryop_type(node.op, operand_type)
        if result_type is None:
            self.error_handler.add_semantic_error(
                f"Invalid unary operation: '{node.op}{operand_type}'.",
                node.lineno
            )
            return None

        node.lang_type = result_type
        return result_type
