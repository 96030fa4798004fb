# Error.py

import sys
from typing import List, Optional, TextIO

class ErrorType:
    SEMANTIC       = 'SEMANTIC'
    GENERATION     = 'GENERATION'
    INTERPRETATION = 'INTERPRETATION'

class ErrorEntry:
    """One reported problem. For runtime faults `lineno` is the instruction index."""
    def __init__(self, message: str, lineno: Optional[int], error_type: str):
        self.message: str = message
        self.lineno: Optional[int] = lineno
        self.type: str = error_type

    def __str__(self) -> str:
        where = f" [Line {self.lineno}]" if self.lineno is not None else ""
        return f"{self.type}: {self.message}{where}"

class CompilerError(Exception):
    """Base exception for all phases. Raised internally, recorded by the phase driver."""
    def __init__(self, message: str, lineno: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.lineno = lineno

class CodeGenerationError(CompilerError): pass

class InterpretationError(CompilerError):
    """Runtime fault. `lineno` holds the index of the faulting instruction when known."""
    pass

class ErrorHandler:
    def __init__(self):
        self._errors: List[ErrorEntry] = []

    def _add(self, message: str, lineno: Optional[int], error_type: str):
        self._errors.append(ErrorEntry(message, lineno, error_type))

    def add_semantic_error(self, message: str, lineno: Optional[int] = None):
        self._add(message, lineno, ErrorType.SEMANTIC)

    def add_generation_error(self, message: str, lineno: Optional[int] = None):
        self._add(message, lineno, ErrorType.GENERATION)

    def add_interpretation_error(self, message: str, lineno: Optional[int] = None):
        self._add(message, lineno, ErrorType.INTERPRETATION)

    def get_formatted_errors(self) -> str:
        """Returns all errors, one per line, sorted by line number."""
        if not self._errors:
            return "No errors found."
        # Entries without a line go last; sorted() keeps report order among equals
        sorted_errors = sorted(
            self._errors,
            key=lambda e: e.lineno if e.lineno is not None else float('inf')
        )
        return "\n".join(str(error) for error in sorted_errors)

    def get_entries(self) -> List[ErrorEntry]:
        return self._errors

    def has_errors(self) -> bool:
        return bool(self._errors)

    def get_error_count(self) -> int:
        return len(self._errors)

    def report_errors(self, out: TextIO = sys.stderr):
        """Prints all registered errors, sorted by location, to the specified output stream."""
        if not self.has_errors():
            return

        print("\n--- Errors ---", file=out)
        print(self.get_formatted_errors(), file=out)
        print(f"Total errors: {len(self._errors)}", file=out)
