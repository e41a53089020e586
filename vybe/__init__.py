# Vybe language package
# This package provides a parser and tree-walking interpreter for Vybe, a VB.NET-flavoured BASIC.
from .interpreter import run_program, parse_program, Interpreter
from .errors import VybeError, BindingError, ParseError

__all__ = [
    'run_program',
    'parse_program',
    'Interpreter',
    'VybeError',
    'BindingError',
    'ParseError',
]
