"""Exception types and the classic `Err` object for the Vybe language."""

from typing import Any

from vybe.errors import ERROR_NUMBERS, EXCEPTION_BASES, VybeError, normalize_exception_name
from vybe.objects import ObjectVal
from vybe.types import NOTHING, ExceptionVal, to_integer, to_string
from vybe.std.support import arg, text_arg


VB_OBJECT_ERROR = -2147221504

# Descriptions `Err.Raise` uses when none is supplied.
ERROR_DESCRIPTIONS = {
    5: 'Procedure call or argument is not valid.',
    6: 'Overflow.',
    9: 'Index was outside the bounds of the array.',
    11: 'Attempted to divide by zero.',
    13: 'Type mismatch.',
    28: 'Out of stack space.',
    53: 'File not found.',
    57: 'Device I/O error.',
    91: 'Object variable or With block variable not set.',
    438: 'Object doesn\'t support this property or method.',
}


def category_for_number(number: int) -> str:
    """The first built-in exception type reported with `number`."""
    for category, code in ERROR_NUMBERS.items():
        if code == number:
            return category
    return 'Exception'


def default_message(category: str) -> str:
    return f"Exception of type 'System.{category}' was thrown."


def exception_message(value: Any) -> str:
    if isinstance(value, ExceptionVal):
        return value.message
    return VybeError(value).message


def inner_of(value: Any) -> Any:
    inner = value.inner if isinstance(value, ExceptionVal) else getattr(value, 'inner_exception', None)
    return NOTHING if inner is None else inner


def populate_exceptions(registry):
    def new_exception(interp, type_spec, args):
        category = normalize_exception_name(type_spec.kind)
        message = text_arg(args, 0) if arg(args, 0, None) is not None else default_message(category)
        return ExceptionVal(category, message, inner_of_arg(args))

    def inner_of_arg(args):
        inner = arg(args, 1, None)
        return inner if isinstance(inner, (ExceptionVal, ObjectVal)) else None

    registry.constructor(('Exception',) + tuple(EXCEPTION_BASES), new_exception)

    def e_message(interp, ex, args):
        return exception_message(ex)

    def e_to_string(interp, ex, args):
        if isinstance(ex, ObjectVal):
            return interp.default_string(ex)
        return to_string(ex)

    def e_base_exception(interp, ex, args):
        current = ex
        while inner_of(current) is not NOTHING:
            current = inner_of(current)
        return current

    registry.method('exception', 'Message', e_message, 0, 0, category='exceptions')
    registry.method('exception', 'InnerException', lambda interp, ex, args: inner_of(ex), 0, 0,
                    category='exceptions')
    registry.method('exception', 'ToString', e_to_string, 0, 0, category='exceptions')
    registry.method('exception', 'GetBaseException', e_base_exception, 0, 0, category='exceptions')
    registry.method('exception', 'StackTrace', lambda interp, ex, args: '', 0, 0, category='exceptions')
    registry.method('exception', 'Source', lambda interp, ex, args: 'Vybe', 0, 0, category='exceptions')

    # ------------------------------------------------------------------
    # Err
    # ------------------------------------------------------------------
    def err(interp, args):
        return interp.err

    def err_raise(interp, e, args):
        number = to_integer(args[0])
        category = category_for_number(number)
        description = text_arg(args, 2) or ERROR_DESCRIPTIONS.get(number, 'Application-defined or object-defined error.')
        if interp.debug_level >= 1:
            interp.debug(f"Err.Raise {number}: {description}")
        raise VybeError(ExceptionVal(category, description, number=number))

    def err_get_exception(interp, e, args):
        return NOTHING if e.exception is None else e.exception

    def setter(attribute: str, convert):
        def assign(interp, e, args):
            setattr(e, attribute, convert(args[0]))
        return assign

    def error_to_string(interp, args):
        number = to_integer(arg(args, 0, interp.err.number))
        if number == interp.err.number and interp.err.description:
            return interp.err.description
        return ERROR_DESCRIPTIONS.get(number, 'Application-defined or object-defined error.' if number else '')

    registry.function(('Err', 'Information.Err'), err, 0, 0, category='exceptions')
    registry.function(('ErrorToString', 'Error', 'Conversion.ErrorToString'), error_to_string, 0, 1,
                      category='exceptions')
    registry.constant(('vbObjectError', 'Constants.vbObjectError'), VB_OBJECT_ERROR)
    registry.method('errobject', 'Number', lambda interp, e, args: e.number, 0, 0, category='exceptions')
    registry.method('errobject', 'Description', lambda interp, e, args: e.description, 0, 0, category='exceptions')
    registry.method('errobject', 'Source', lambda interp, e, args: e.source, 0, 0, category='exceptions')
    registry.method('errobject', 'set_Number', setter('number', to_integer), 1, 1, category='exceptions')
    registry.method('errobject', 'set_Description', setter('description', to_string), 1, 1, category='exceptions')
    registry.method('errobject', 'set_Source', setter('source', to_string), 1, 1, category='exceptions')
    registry.method('errobject', 'Clear', lambda interp, e, args: e.clear(), 0, 0, category='exceptions')
    registry.method('errobject', 'Raise', err_raise, 1, 5, category='exceptions')
    registry.method('errobject', 'GetException', err_get_exception, 0, 0, category='exceptions')
    registry.method('errobject', ('Erl', 'LastDllError'), lambda interp, e, args: 0, 0, 0, category='exceptions')
