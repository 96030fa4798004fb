# StackMachine.py (Executes the linear instruction list)

import re
import sys
import math
import logging
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, TextIO, Union
from Error import ErrorHandler, InterpretationError
from Instruction import Instruction, OpCode, parse_program, unquote_string

logger = logging.getLogger(__name__)

# Integers are 32-bit two's complement; arithmetic wraps around
INT_MIN = -2**31
INT_MAX = 2**31 - 1

_INT_TEXT = re.compile(r'[+-]?[0-9]+')
_FLOAT_TEXT = re.compile(r'[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?')


class Value(NamedTuple):
    """A tagged runtime value. tag is one of 'I', 'F', 'S', 'B'."""
    tag: str
    data: Any

    def __str__(self) -> str:
        if self.tag == 'B':
            return 'true' if self.data else 'false'
        if self.tag == 'F':
            return repr(float(self.data))
        return str(self.data)


def _wrap_int(v: int) -> int:
    return (v - INT_MIN) % 2**32 + INT_MIN

def _truncated_div(l: int, r: int) -> int:
    q = abs(l) // abs(r)
    return q if (l < 0) == (r < 0) else -q

def _truncated_mod(l: int, r: int) -> int:
    return l - r * _truncated_div(l, r)

def parse_int(text: str) -> int:
    """Decimal integer in 32-bit range. Raises ValueError otherwise."""
    text = text.strip()
    if not _INT_TEXT.fullmatch(text):
        raise ValueError(text)
    value = int(text)
    if not INT_MIN <= value <= INT_MAX:
        raise ValueError(text)
    return value

def parse_float(text: str) -> float:
    """Plain decimal float, optional exponent. No nan, inf or underscores."""
    text = text.strip()
    if not _FLOAT_TEXT.fullmatch(text):
        raise ValueError(text)
    return float(text)


class StackMachine:
    """
    Stack-based VM for the instruction stream produced by CodeGenerator.

    load_program() resolves every label to an instruction index once; run()
    executes from index 0 with a fresh operand stack and variable store. A
    fault stops the run immediately and is recorded in the ErrorHandler.
    """
    def __init__(self, error_handler: ErrorHandler, input_stream: Optional[TextIO] = None,
                 output_stream: Optional[TextIO] = None, max_steps: Optional[int] = None):
        self.error_handler: ErrorHandler = error_handler
        self.input_stream: TextIO = input_stream if input_stream is not None else sys.stdin
        self.output_stream: TextIO = output_stream if output_stream is not None else sys.stdout
        self.max_steps: Optional[int] = max_steps

        self.program: List[Instruction] = []
        self.labels: Dict[str, int] = {}
        self.stack: List[Value] = []
        self.variables: Dict[str, Value] = {}
        self.pc: int = 0
        self.running: bool = False

    # --- Loading ---
    def load_program(self, program: Iterable[Union[Instruction, str]]) -> bool:
        """
        Loads instructions (Instruction objects or text lines) and resolves labels.
        Returns False if the program could not be loaded.
        """
        items = list(program)
        try:
            if all(isinstance(item, Instruction) for item in items):
                self.program = items
            else:
                self.program = parse_program(str(item) for item in items)
            self.labels = self._resolve_labels(self.program)
        except InterpretationError as e:
            self.error_handler.add_interpretation_error(f"Load error: {e.message}", e.lineno)
            self.program, self.labels = [], {}
            return False
        return True

    @staticmethod
    def _resolve_labels(program: List[Instruction]) -> Dict[str, int]:
        labels: Dict[str, int] = {}
        for index, instr in enumerate(program):
            if instr.opcode is OpCode.LABEL:
                if instr.operand in labels:
                    raise InterpretationError(f"Label '{instr.operand}' defined twice.", index)
                labels[instr.operand] = index
        return labels

    def execute(self, program: Iterable[Union[Instruction, str]]) -> bool:
        return self.load_program(program) and self.run()

    def execute_text(self, text: str) -> bool:
        return self.execute(text.split("\n"))

    # --- Execution ---
    def run(self) -> bool:
        """Runs the loaded program. Returns True on a clean finish, False after a fault."""
        self.stack = []
        self.variables = {}
        self.pc = 0
        self.running = True
        steps = 0
        logger.debug("run start: %d instructions, %d labels", len(self.program), len(self.labels))

        while self.running and self.pc < len(self.program):
            instr = self.program[self.pc]
            current_instr_pc = self.pc
            self.pc += 1

            method: Callable[..., None] = getattr(self, f"op_{instr.opcode.name}", self.op_UNKNOWN)
            try:
                if self.max_steps is not None and steps >= self.max_steps:
                    raise InterpretationError(f"Step limit of {self.max_steps} exceeded.")
                steps += 1
                if instr.operand is None:
                    method()
                else:
                    method(instr.operand)
            except InterpretationError as e:
                self.error_handler.add_interpretation_error(
                    f"Runtime error during '{instr}': {e.message}", current_instr_pc)
                logger.debug("run halted at %d: %s", current_instr_pc, e.message)
                self.running = False
                return False

        self.running = False
        logger.debug("run finished after %d steps", steps)
        return True

    def op_UNKNOWN(self, *args):
        raise InterpretationError("Unknown opcode.")

    # --- Stack helpers ---
    def _push(self, tag: str, data: Any) -> None:
        if tag == 'I':
            data = _wrap_int(data)
        self.stack.append(Value(tag, data))

    def _pop(self, op_name: str) -> Value:
        if not self.stack:
            raise InterpretationError(f"Stack underflow on {op_name}.")
        return self.stack.pop()

    def _pop_typed(self, expected_tag: str, op_name: str) -> Any:
        value = self._pop(op_name)
        if value.tag != expected_tag:
            raise InterpretationError(
                f"{op_name}: expected type '{expected_tag.lower()}', got '{value.tag.lower()}'.")
        return value.data

    def _pop_pair(self, tag: str, op_name: str):
        r = self._pop_typed(tag, f"{op_name} rhs")
        l = self._pop_typed(tag, f"{op_name} lhs")
        return l, r

    # --- Push / Pop / Variables ---
    def _push_literal(self, tag: str, text: str) -> None:
        try:
            if tag == 'I': self._push('I', parse_int(text))
            elif tag == 'F': self._push('F', parse_float(text))
            elif tag == 'S': self._push('S', unquote_string(text))
            elif tag == 'B':
                if text not in ('true', 'false'):
                    raise ValueError(text)
                self._push('B', text == 'true')
        except ValueError:
            raise InterpretationError(f"Invalid literal '{text}' for type '{tag.lower()}'.") from None

    def op_PUSH_I(self, text: str): self._push_literal('I', text)
    def op_PUSH_F(self, text: str): self._push_literal('F', text)
    def op_PUSH_S(self, text: str): self._push_literal('S', text)
    def op_PUSH_B(self, text: str): self._push_literal('B', text)

    def op_POP(self): self._pop("pop")

    def op_LOAD(self, name: str):
        if name not in self.variables:
            raise InterpretationError(f"Variable '{name}' not defined.")
        self.stack.append(self.variables[name])

    def _save(self, tag: str, name: str):
        self.variables[name] = Value(tag, self._pop_typed(tag, f"save '{name}'"))

    def op_SAVE_I(self, name: str): self._save('I', name)
    def op_SAVE_F(self, name: str): self._save('F', name)
    def op_SAVE_S(self, name: str): self._save('S', name)
    def op_SAVE_B(self, name: str): self._save('B', name)

    # --- Arithmetic ---
    def op_ADD_I(self): l, r = self._pop_pair('I', "add I"); self._push('I', l + r)
    def op_SUB_I(self): l, r = self._pop_pair('I', "sub I"); self._push('I', l - r)
    def op_MUL_I(self): l, r = self._pop_pair('I', "mul I"); self._push('I', l * r)
    def op_DIV_I(self):
        l, r = self._pop_pair('I', "div I")
        if r == 0: raise InterpretationError("Division by zero.")
        self._push('I', _truncated_div(l, r))
    def op_MOD(self):
        l, r = self._pop_pair('I', "mod")
        if r == 0: raise InterpretationError("Modulo by zero.")
        self._push('I', _truncated_mod(l, r))

    def op_ADD_F(self): l, r = self._pop_pair('F', "add F"); self._push('F', l + r)
    def op_SUB_F(self): l, r = self._pop_pair('F', "sub F"); self._push('F', l - r)
    def op_MUL_F(self): l, r = self._pop_pair('F', "mul F"); self._push('F', l * r)
    def op_DIV_F(self):
        l, r = self._pop_pair('F', "div F")
        if r == 0.0: raise InterpretationError("Division by zero.")
        self._push('F', l / r)

    def op_UMINUS_I(self): self._push('I', -self._pop_typed('I', "uminus I"))
    def op_UMINUS_F(self): self._push('F', -self._pop_typed('F', "uminus F"))

    def op_CONCAT(self): l, r = self._pop_pair('S', "concat"); self._push('S', l + r)

    def op_ITOF(self): self._push('F', float(self._pop_typed('I', "itof")))

    # --- Comparison / Logic ---
    def _compare(self, tag: str, op_name: str, py_operator: Callable[[Any, Any], bool]):
        l, r = self._pop_pair(tag, op_name)
        self._push('B', py_operator(l, r))

    def op_GT_I(self): self._compare('I', "gt I", lambda a, b: a > b)
    def op_GT_F(self): self._compare('F', "gt F", lambda a, b: a > b)
    def op_LT_I(self): self._compare('I', "lt I", lambda a, b: a < b)
    def op_LT_F(self): self._compare('F', "lt F", lambda a, b: a < b)
    def op_EQ_I(self): self._compare('I', "eq I", lambda a, b: a == b)
    def op_EQ_F(self): self._compare('F', "eq F", lambda a, b: a == b)
    def op_EQ_S(self): self._compare('S', "eq S", lambda a, b: a == b)
    def op_EQ_B(self): self._compare('B', "eq B", lambda a, b: a == b)

    def op_AND(self): l, r = self._pop_pair('B', "and"); self._push('B', l and r)
    def op_OR(self): l, r = self._pop_pair('B', "or"); self._push('B', l or r)
    def op_NOT(self): self._push('B', not self._pop_typed('B', "not"))

    # --- Control flow ---
    def op_LABEL(self, name: str): pass # Resolved at load time

    def _jump(self, label: str):
        if label not in self.labels:
            raise InterpretationError(f"Label '{label}' not found.")
        self.pc = self.labels[label]

    def op_JMP(self, label: str): self._jump(label)

    def op_FJMP(self, label: str):
        if not self._is_truthy(self._pop("fjmp")):
            self._jump(label)

    @staticmethod
    def _is_truthy(value: Value) -> bool:
        if value.tag == 'B': return bool(value.data)
        if value.tag == 'I': return value.data != 0
        if value.tag == 'F':
            # Truncated to an integer first, as a Java (int) cast does
            if math.isnan(value.data): return False
            return math.isinf(value.data) or int(value.data) != 0
        raise InterpretationError(f"Unsupported type for fjmp: '{value.tag.lower()}'.")

    # --- I/O ---
    def op_PRINT(self, count_text: str):
        try:
            count = parse_int(count_text)
        except ValueError:
            count = -1
        if count < 0:
            raise InterpretationError(f"Invalid print count '{count_text}'.")
        values = [self._pop("print") for _ in range(count)]
        values.reverse() # popped last-argument-first
        self.output_stream.write("".join(str(v) for v in values) + "\n")

    def _read_line(self) -> str:
        line = self.input_stream.readline()
        if line == "":
            raise InterpretationError("Input closed during read.")
        return line.rstrip("\r\n")

    def op_READ_I(self):
        line = self._read_line()
        try: self._push('I', parse_int(line))
        except ValueError: raise InterpretationError(f"Invalid input for read i: '{line}'.") from None

    def op_READ_F(self):
        line = self._read_line()
        try: self._push('F', parse_float(line))
        except ValueError: raise InterpretationError(f"Invalid input for read f: '{line}'.") from None

    def op_READ_S(self): self._push('S', self._read_line())

    def op_READ_B(self):
        line = self._read_line()
        text = line.strip().lower()
        if text not in ('true', 'false'):
            raise InterpretationError(f"Invalid input for read b: '{line}'.")
        self._push('B', text == 'true')
