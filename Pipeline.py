# Pipeline.py (Runs the phases in order: analysis, generation, execution)

import logging
from typing import List, Optional, TextIO
from Nodes_AST import Program
from Error import ErrorHandler
from SemanticAnalyzer import SemanticAnalyzer
from CodeGenerator import CodeGenerator
from StackMachine import StackMachine
from Instruction import Instruction, format_program

logger = logging.getLogger(__name__)

def compile_program(program: Program, error_handler: ErrorHandler) -> Optional[List[Instruction]]:
    """Type checks and generates code. Returns None if either phase reported errors."""
    semantic_analyzer = SemanticAnalyzer(error_handler)
    semantic_analyzer.analyze(program)
    if error_handler.has_errors():
        logger.debug("semantic analysis failed with %d errors", error_handler.get_error_count())
        return None

    generator = CodeGenerator(error_handler, semantic_analyzer.symbol_table)
    return generator.generate(program)

def run_program(program: Program, error_handler: ErrorHandler,
                input_stream: Optional[TextIO] = None, output_stream: Optional[TextIO] = None,
                via_text: bool = True) -> bool:
    """
    Compiles and executes a program. With via_text the instructions go through
    their text form first, the same way a saved program file would be run.
    """
    instructions = compile_program(program, error_handler)
    if instructions is None:
        return False

    vm = StackMachine(error_handler, input_stream=input_stream, output_stream=output_stream)
    if via_text:
        return vm.execute_text(format_program(instructions))
    return vm.execute(instructions)
