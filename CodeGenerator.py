# CodeGenerator.py (Lowers the annotated AST to a linear list of stack instructions)

import logging
from typing import Any, List, Optional, Set
from Nodes_AST import *
from Error import ErrorHandler, CodeGenerationError
from SymbolTable import SymbolTable
from TypeRules import TYPE_TAGS, TypeOracle, check_binop_type, check_unaryop_type, is_assignable, operand_promotion
from Instruction import Instruction, OpCode, format_program, quote_string

logger = logging.getLogger(__name__)

# Default literal pushed when a variable is declared, per value tag
DEFAULT_LITERALS = {
    'I': '0',
    'F': '0.0',
    'B': 'false',
    'S': '""',
}

# Operator symbol -> typed mnemonic. Type suffix is picked after promotion.
_ARITH_MNEMONICS = {'+': 'add', '-': 'sub', '*': 'mul', '/': 'div'}
_RELATIONAL_MNEMONICS = {'<': 'lt', '>': 'gt'}


class CodeGenerator:
    """
    Walks a type-annotated Program and emits stack instructions.

    Every visit_<Expr> method leaves exactly one value on the stack and returns
    its language type; statement visitors leave the stack as they found it and
    return None.
    """
    def __init__(self, error_handler: ErrorHandler, symbol_table: SymbolTable, label_prefix: str = "L"):
        self.error_handler: ErrorHandler = error_handler
        self.symbol_table: SymbolTable = symbol_table
        self.oracle: TypeOracle = TypeOracle(symbol_table)
        self.label_prefix: str = label_prefix
        self.label_counter: int = 0
        self.instructions: List[Instruction] = []
        self._initialized: Set[str] = set()
        self.print_ir_to_console: bool = False # Echo every emitted instruction

    def _emit(self, opcode: OpCode, operand: Optional[Any] = None) -> None:
        instruction = Instruction(opcode, None if operand is None else str(operand))
        self.instructions.append(instruction)
        if self.print_ir_to_console:
            print(f"  IR: {instruction}")

    def _new_label(self) -> str:
        label = f"{self.label_prefix}{self.label_counter}"
        self.label_counter += 1
        return label

    def _tag(self, lang_type: Optional[str], node: Node) -> str:
        tag = TYPE_TAGS.get(lang_type)
        if tag is None:
            raise CodeGenerationError(f"Unsupported type '{lang_type}'.", node.lineno)
        return tag

    def generate(self, program: Program) -> Optional[List[Instruction]]:
        """
        Generates the instruction list for a whole program.
        Returns None (and records the error) if generation fails; no partial
        output is ever returned.
        """
        self.instructions = []
        self.label_counter = 0
        self._initialized = set()
        try:
            self.visit(program)
        except CodeGenerationError as e:
            self.error_handler.add_generation_error(e.message, e.lineno)
            logger.debug("generation aborted: %s", e.message)
            self.instructions = []
            return None
        logger.debug("generated %d instructions, %d labels", len(self.instructions), self.label_counter)
        return list(self.instructions)

    def to_text(self) -> str:
        return format_program(self.instructions)

    def save_to_file(self, filename: str) -> None:
        with open(filename, 'w', encoding='utf-8') as f:
            f.write(self.to_text())

    # --- Dispatch ---
    def visit(self, node: Node) -> Optional[str]:
        return node.accept(self)

    def generic_visit(self, node: Node):
        raise CodeGenerationError(f"No code generation rule for {type(node).__name__}.", node.lineno)

    def _visit_block(self, statements: Optional[List[Node]]) -> None:
        for stmt in statements or []:
            self.visit(stmt)

    def visit_Program(self, node: Program) -> None:
        self._visit_block(node.body)

    # --- Declarations ---
    def visit_VariableDecl(self, node: VariableDecl) -> None:
        if node.type_spec not in TYPE_TAGS:
            raise CodeGenerationError(f"Unknown type: {node.type_spec}", node.lineno)
        tag = TYPE_TAGS[node.type_spec]
        for name in node.names:
            if name in self._initialized:
                raise CodeGenerationError(f"Variable '{name}' already declared.", node.lineno)
            if self._declared_type(name, node) != node.type_spec:
                raise CodeGenerationError(
                    f"Declaration of '{name}' as {node.type_spec} disagrees with the symbol table.", node.lineno)
            self._initialized.add(name)
            self._emit(OpCode.typed('push', tag), DEFAULT_LITERALS[tag])
            self._emit(OpCode.typed('save', tag), name)

    def _declared_type(self, name: str, node: Node) -> str:
        try:
            return self.oracle.declared_type(name, node.lineno)
        except SymbolTable.SymbolNotFoundError as e:
            raise CodeGenerationError(str(e), node.lineno) from e

    def _variable_type(self, name: str, node: Node) -> str:
        lang_type = self._declared_type(name, node)
        if name not in self._initialized:
            raise CodeGenerationError(f"Variable '{name}' used before its declaration.", node.lineno)
        return lang_type

    # --- Literals ---
    def visit_Integer(self, node: Integer) -> str:
        self._emit(OpCode.PUSH_I, int(node.value))
        return 'int'

    def visit_Float(self, node: Float) -> str:
        self._emit(OpCode.PUSH_F, repr(float(node.value)))
        return 'float'

    def visit_Boolean(self, node: Boolean) -> str:
        self._emit(OpCode.PUSH_B, 'true' if node.value else 'false')
        return 'bool'

    def visit_String(self, node: String) -> str:
        self._emit(OpCode.PUSH_S, quote_string(node.value))
        return 'string'

    def visit_Location(self, node: Location) -> str:
        lang_type = self._variable_type(node.name, node)
        self._emit(OpCode.LOAD, node.name)
        return lang_type

    # --- Assignment ---
    def _emit_assignment(self, node: Assignment) -> str:
        """
        Emits the save chain of an assignment and leaves nothing on the stack.
        For `a = b = expr` the inner assignment is generated first and its
        target is re-loaded before saving into the outer target.
        """
        target_type = self._variable_type(node.target.name, node.target)
        value_type = self.visit(node.expr)
        if not is_assignable(target_type, value_type):
            raise CodeGenerationError(
                f"Variable '{node.target.name}' type is {target_type}, but the assigned value is {value_type}.",
                node.lineno)
        if target_type == 'float' and value_type == 'int':
            self._emit(OpCode.ITOF)
        self._emit(OpCode.typed('save', self._tag(target_type, node)), node.target.name)
        return target_type

    def visit_Assignment(self, node: Assignment) -> str:
        # Assignment used as a value: its result is the freshly saved target
        target_type = self._emit_assignment(node)
        self._emit(OpCode.LOAD, node.target.name)
        return target_type

    # --- Statements ---
    def visit_ExpressionStatement(self, node: ExpressionStatement) -> None:
        self.visit(node.expr)
        self._emit(OpCode.POP)

    def visit_EmptyStatement(self, node: EmptyStatement) -> None:
        pass

    def visit_Write(self, node: Write) -> None:
        for expr in node.exprs:
            self.visit(expr)
        self._emit(OpCode.PRINT, len(node.exprs))

    def visit_Read(self, node: Read) -> None:
        for name in node.names:
            tag = self._tag(self._variable_type(name, node), node)
            self._emit(OpCode.typed('read', tag))
            self._emit(OpCode.typed('save', tag), name)

    def _emit_condition(self, test: Node) -> None:
        cond_type = self.visit(test)
        if cond_type != 'bool':
            raise CodeGenerationError(f"Condition must be bool, got {cond_type}.", test.lineno)

    def visit_If(self, node: If) -> None:
        else_label = self._new_label()
        end_label = self._new_label()
        self._emit_condition(node.test)
        self._emit(OpCode.FJMP, else_label)
        self._visit_block(node.consequence)
        self._emit(OpCode.JMP, end_label)
        self._emit(OpCode.LABEL, else_label)
        self._visit_block(node.alternative)
        self._emit(OpCode.LABEL, end_label)

    def visit_While(self, node: While) -> None:
        start_label = self._new_label()
        end_label = self._new_label()
        self._emit(OpCode.LABEL, start_label)
        self._emit_condition(node.test)
        self._emit(OpCode.FJMP, end_label)
        self._visit_block(node.body)
        self._emit(OpCode.JMP, start_label)
        self._emit(OpCode.LABEL, end_label)

    def visit_For(self, node: For) -> None:
        if node.init is not None:
            self._emit_assignment(node.init)
        start_label = self._new_label()
        end_label = self._new_label()
        self._emit(OpCode.LABEL, start_label)
        self._emit_condition(node.test)
        self._emit(OpCode.FJMP, end_label)
        self._visit_block(node.body)
        if node.update is not None:
            self._emit_assignment(node.update)
        self._emit(OpCode.JMP, start_label)
        self._emit(OpCode.LABEL, end_label)

    # --- Operators ---
    def _visit_operand(self, node: Node, promote: bool) -> str:
        lang_type = self.visit(node)
        if promote and lang_type == 'int':
            self._emit(OpCode.ITOF)
            return 'float'
        return lang_type

    def _visit_operands(self, node: Node) -> str:
        """
        Emits both operands left to right, converting an int side to float
        right after its own code when the other side is float. Returns the
        common operand type.
        """
        left_type = self.oracle.type_of(node.left)
        right_type = self.oracle.type_of(node.right)
        promote = operand_promotion(left_type, right_type)
        left_type = self._visit_operand(node.left, promote)
        right_type = self._visit_operand(node.right, promote)
        if left_type != right_type:
            raise CodeGenerationError(
                f"Invalid operands for '{node.op}': {left_type}, {right_type}.", node.lineno)
        return left_type

    def _check_binop(self, node: Node) -> str:
        result = check_binop_type(node.op, self.oracle.type_of(node.left), self.oracle.type_of(node.right))
        if result is None:
            raise CodeGenerationError(
                f"No lowering for {self.oracle.type_of(node.left)} {node.op} {self.oracle.type_of(node.right)}.",
                node.lineno)
        return result

    def visit_BinOp(self, node: BinOp) -> str:
        result_type = self._check_binop(node)
        operand_type = self._visit_operands(node)
        if node.op == '%':
            self._emit(OpCode.MOD)
        elif node.op == '.':
            self._emit(OpCode.CONCAT)
        else:
            self._emit(OpCode.typed(_ARITH_MNEMONICS[node.op], self._tag(operand_type, node)))
        return result_type

    def visit_CompareOp(self, node: CompareOp) -> str:
        self._check_binop(node)
        operand_type = self._visit_operands(node)
        tag = self._tag(operand_type, node)
        if node.op in ('==', '!='):
            self._emit(OpCode.typed('eq', tag))
            if node.op == '!=':
                self._emit(OpCode.NOT) # no dedicated not-equal opcode
        else:
            self._emit(OpCode.typed(_RELATIONAL_MNEMONICS[node.op], tag))
        return 'bool'

    def visit_LogicalOp(self, node: LogicalOp) -> str:
        self._check_binop(node)
        # Both sides always run; there is no short-circuit
        self.visit(node.left)
        self.visit(node.right)
        self._emit(OpCode.AND if node.op == '&&' else OpCode.OR)
        return 'bool'

    def visit_UnaryOp(self, node: UnaryOp) -> str:
        operand_type = self.oracle.type_of(node.operand)
        result = check_unaryop_type(node.op, operand_type)
        if result is None:
            raise CodeGenerationError(f"No lowering for unary {node.op} on {operand_type}.", node.lineno)
        self.visit(node.operand)
        if node.op == '!':
            self._emit(OpCode.NOT)
        else:
            self._emit(OpCode.typed('uminus', self._tag(operand_type, node)))
        return result
