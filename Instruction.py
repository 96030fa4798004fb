# Instruction.py (Instruction set and its one-line text form)

from enum import Enum
from typing import Iterable, List, NamedTuple, Optional
from Error import InterpretationError

# Text format: <op> [type] [operand], type tags in lower case
#   push i 42      save f result     add i     load x
#   label L0       jmp L0            fjmp L1   print 3     read s

class OpCode(Enum):
    # (mnemonic, type tag or None)
    ADD_I = ('add', 'I');       ADD_F = ('add', 'F')
    SUB_I = ('sub', 'I');       SUB_F = ('sub', 'F')
    MUL_I = ('mul', 'I');       MUL_F = ('mul', 'F')
    DIV_I = ('div', 'I');       DIV_F = ('div', 'F')
    MOD = ('mod', None)
    UMINUS_I = ('uminus', 'I'); UMINUS_F = ('uminus', 'F')
    CONCAT = ('concat', None)
    AND = ('and', None)
    OR = ('or', None)
    NOT = ('not', None)
    GT_I = ('gt', 'I');         GT_F = ('gt', 'F')
    LT_I = ('lt', 'I');         LT_F = ('lt', 'F')
    EQ_I = ('eq', 'I');         EQ_F = ('eq', 'F')
    EQ_S = ('eq', 'S');         EQ_B = ('eq', 'B')
    ITOF = ('itof', None)
    PUSH_I = ('push', 'I');     PUSH_F = ('push', 'F')
    PUSH_S = ('push', 'S');     PUSH_B = ('push', 'B')
    POP = ('pop', None)
    LOAD = ('load', None)
    SAVE_I = ('save', 'I');     SAVE_F = ('save', 'F')
    SAVE_S = ('save', 'S');     SAVE_B = ('save', 'B')
    LABEL = ('label', None)
    JMP = ('jmp', None)
    FJMP = ('fjmp', None)
    PRINT = ('print', None)
    READ_I = ('read', 'I');     READ_F = ('read', 'F')
    READ_S = ('read', 'S');     READ_B = ('read', 'B')

    @property
    def mnemonic(self) -> str:
        return self.value[0]

    @property
    def type_tag(self) -> Optional[str]:
        return self.value[1]

    @classmethod
    def typed(cls, mnemonic: str, type_tag: str) -> 'OpCode':
        """OpCode for a typed mnemonic, e.g. typed('add', 'F') -> ADD_F."""
        try:
            return _BY_TEXT[(mnemonic, type_tag)]
        except KeyError:
            raise KeyError(f"No '{mnemonic}' instruction for type '{type_tag}'") from None


_BY_TEXT = {op.value: op for op in OpCode}
TYPED_MNEMONICS = {op.mnemonic for op in OpCode if op.type_tag is not None}
OPERAND_MNEMONICS = {'push', 'save', 'load', 'label', 'jmp', 'fjmp', 'print'}


class Instruction(NamedTuple):
    """One immutable bytecode instruction: an opcode plus an optional text operand."""
    opcode: OpCode
    operand: Optional[str] = None

    def __str__(self) -> str:
        parts = [self.opcode.mnemonic]
        if self.opcode.type_tag is not None:
            parts.append(self.opcode.type_tag.lower())
        if self.operand is not None:
            parts.append(self.operand)
        return " ".join(parts)

    @classmethod
    def parse(cls, line: str) -> 'Instruction':
        """Rebuilds an instruction from its text form. Raises InterpretationError if malformed."""
        tokens = line.strip().split(None, 2)
        if not tokens:
            raise InterpretationError("Empty instruction line.")

        mnemonic = tokens[0].lower()
        rest = tokens[1:]
        type_tag = None
        if mnemonic in TYPED_MNEMONICS:
            if not rest:
                raise InterpretationError(f"Missing type for '{mnemonic}': {line.strip()}")
            type_tag = rest[0].upper()
            rest = rest[1:]
        elif len(rest) > 1:
            raise InterpretationError(f"Too many tokens for '{mnemonic}': {line.strip()}")

        opcode = _BY_TEXT.get((mnemonic, type_tag))
        if opcode is None:
            raise InterpretationError(f"Unknown instruction: {line.strip()}")

        if mnemonic in OPERAND_MNEMONICS:
            if not rest:
                raise InterpretationError(f"Missing operand for '{mnemonic}': {line.strip()}")
            operand = rest[0]
            if opcode is not OpCode.PUSH_S and any(c.isspace() for c in operand):
                raise InterpretationError(f"Operand of '{mnemonic}' contains whitespace: {line.strip()}")
            return cls(opcode, operand)
        if rest:
            raise InterpretationError(f"Unexpected operand for '{mnemonic}': {line.strip()}")
        return cls(opcode)


_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '"': '"', '\\': '\\'}
_QUOTED = {v: k for k, v in _ESCAPES.items()}
_HEX_DIGITS = set("0123456789abcdefABCDEF")

def quote_string(text: str) -> str:
    """
    String literal as it appears in a `push S` operand. Every character that
    is not printable (line breaks included) is escaped, so the literal always
    stays on its own line.
    """
    chars = []
    for c in text:
        if c in _QUOTED:
            chars.append('\\' + _QUOTED[c])
        elif not c.isprintable():
            chars.append(f"\\u{ord(c):04x}" if ord(c) <= 0xFFFF else f"\\U{ord(c):08x}")
        else:
            chars.append(c)
    return '"' + "".join(chars) + '"'

def unquote_string(literal: str) -> str:
    if len(literal) < 2 or literal[0] != '"' or literal[-1] != '"':
        raise InterpretationError(f"Malformed string literal: {literal}")
    body = literal[1:-1]
    chars = []
    i = 0
    while i < len(body):
        c = body[i]
        if c != '\\' or i + 1 == len(body):
            chars.append(c)
            i += 1
            continue
        kind = body[i + 1]
        if kind in ('u', 'U'):
            width = 4 if kind == 'u' else 8
            digits = body[i + 2:i + 2 + width]
            try:
                if len(digits) != width or not all(d in _HEX_DIGITS for d in digits):
                    raise ValueError(digits)
                chars.append(chr(int(digits, 16)))
            except ValueError:
                raise InterpretationError(f"Malformed escape in string literal: {literal}") from None
            i += 2 + width
            continue
        chars.append(_ESCAPES.get(kind, kind))
        i += 2
    return "".join(chars)


def format_program(instructions: Iterable[Instruction]) -> str:
    """Text form of a program, one instruction per line."""
    return "".join(f"{instr}\n" for instr in instructions)

def parse_program(lines: Iterable[str]) -> List[Instruction]:
    """Parses text lines into instructions, skipping blank lines."""
    return [Instruction.parse(line) for line in lines if line.strip()]
