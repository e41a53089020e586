from dataclasses import dataclass
from typing import Any, Optional

from vybe.types import ExceptionVal, to_string


# Built-in exception types and their base type.
EXCEPTION_BASES = {
    'SystemException': 'Exception',
    'ApplicationException': 'Exception',
    'ArithmeticException': 'SystemException',
    'DivideByZeroException': 'ArithmeticException',
    'OverflowException': 'ArithmeticException',
    'InvalidCastException': 'SystemException',
    'FormatException': 'SystemException',
    'IndexOutOfRangeException': 'SystemException',
    'ArgumentException': 'SystemException',
    'ArgumentNullException': 'ArgumentException',
    'ArgumentOutOfRangeException': 'ArgumentException',
    'NullReferenceException': 'SystemException',
    'InvalidOperationException': 'SystemException',
    'KeyNotFoundException': 'SystemException',
    'NotImplementedException': 'SystemException',
    'NotSupportedException': 'SystemException',
    'MemberAccessException': 'SystemException',
    'MissingMemberException': 'MemberAccessException',
    'StackOverflowException': 'SystemException',
    'TimeoutException': 'SystemException',
    'IOException': 'SystemException',
    'FileNotFoundException': 'IOException',
    'DirectoryNotFoundException': 'IOException',
    'UnauthorizedAccessException': 'SystemException',
}

# Classic VB error numbers reported through `Err.Number`.
ERROR_NUMBERS = {
    'OverflowException': 6,
    'IndexOutOfRangeException': 9,
    'DivideByZeroException': 11,
    'InvalidCastException': 13,
    'FormatException': 13,
    'StackOverflowException': 28,
    'FileNotFoundException': 53,
    'IOException': 57,
    'NullReferenceException': 91,
    'MissingMemberException': 438,
    'ArgumentException': 5,
    'ArgumentNullException': 5,
    'ArgumentOutOfRangeException': 5,
    'KeyNotFoundException': 5,
}


def exception_chain(category: str):
    """Yield `category` and every built-in base type above it."""
    current: Optional[str] = category
    seen = set()
    while current is not None and current not in seen:
        seen.add(current)
        yield current
        if current == 'Exception':
            return
        current = EXCEPTION_BASES.get(current, 'Exception')


def is_builtin_exception(name: str) -> bool:
    return name == 'Exception' or name in EXCEPTION_BASES


def normalize_exception_name(name: str) -> str:
    """Map `system.io.ioexception` style spellings to the canonical name."""
    short = name.split('.')[-1]
    lowered = short.lower()
    if lowered == 'exception':
        return 'Exception'
    for known in EXCEPTION_BASES:
        if known.lower() == lowered:
            return known
    return short


class VybeError(Exception):
    """Exception type used to propagate Vybe runtime errors.

    `value` is the exception value seen by Vybe code: an `ExceptionVal`
    for built-in exceptions or an object whose class derives from one.
    """
    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"{self.category}: {self.message}")

    @property
    def category(self) -> str:
        if isinstance(self.value, ExceptionVal):
            return self.value.category
        cls = getattr(self.value, 'cls', None)
        return cls.name if cls is not None else 'Exception'

    @property
    def message(self) -> str:
        if isinstance(self.value, ExceptionVal):
            return self.value.message
        message = getattr(self.value, 'exception_message', None)
        if message is None:
            return f"Exception of type '{self.category}' was thrown."
        return to_string(message)

    @property
    def number(self) -> int:
        if isinstance(self.value, ExceptionVal) and self.value.number:
            return self.value.number
        base = self.category
        base_category = getattr(self.value, 'cls', None)
        if base_category is not None:
            base = base_category.exception_base() or base
        return ERROR_NUMBERS.get(base, 5)


class BindingError(VybeError):
    """Name resolution, arity and addressability failures."""
    def __init__(self, category: str, message: str):
        super().__init__(ExceptionVal(category, message))


class ParseError(Exception):
    """A syntax error with its position in the source text."""
    def __init__(self, message: str, line: int = 0, column: int = 0):
        super().__init__(f"{message} (line {line}, column {column})" if line else message)
        self.message = message
        self.line = line
        self.column = column


class ProgramEnd(Exception):
    """Raised by the `End` statement to stop the program."""
    pass


def raise_exception(category: str, message: str, inner: Any = None):
    raise VybeError(ExceptionVal(category, message, inner))


def unresolved(name: str):
    raise BindingError('MissingMemberException', f"'{name}' is not declared.")


@dataclass
class ReturnSignal:
    """Returned from statement execution by `Return`."""
    value: Any


@dataclass
class ExitSignal:
    """`Exit For`, `Exit Sub`, ... `kind` is the lower-cased block word."""
    kind: str


@dataclass
class ContinueSignal:
    kind: str


@dataclass
class GotoSignal:
    label: str


@dataclass
class ResumeSignal:
    """`Resume` (mode 'retry'), `Resume Next` ('next') or `Resume label`."""
    mode: str
    label: Optional[str] = None
