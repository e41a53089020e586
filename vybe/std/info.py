"""Information functions, `Array.*`, common object members and tasks for the Vybe language."""

import os
import time
from datetime import datetime
from functools import cmp_to_key
from typing import Any

from vybe.environment import Cell
from vybe.errors import ProgramEnd, raise_exception
from vybe.objects import EnumVal, ObjectVal
from vybe.operators import compare_values, identical, values_equal
from vybe.types import (
    NOTHING, ArrayVal, Long, TaskVal, TypeSpec, default_value, is_numeric_value, parse_date,
    parse_number, to_boolean, to_double, to_integer, type_name,
)
from vybe.std.conversion import format_value
from vybe.std.support import arg, compare_items, int_arg, rest_values, sort_values, text_arg, values_of


VAR_TYPES = {
    'Nothing': 0, 'Short': 2, 'Integer': 3, 'Single': 4, 'Double': 5, 'Decimal': 14,
    'Date': 7, 'String': 8, 'Object': 9, 'Boolean': 11, 'Byte': 17, 'Char': 18, 'Long': 20,
}
VB_ARRAY = 8192


def var_type(value: Any) -> int:
    if isinstance(value, ArrayVal):
        elem = value.elem_type.kind if value.elem_type else 'Object'
        return VB_ARRAY + VAR_TYPES.get(elem.capitalize(), 9)
    if isinstance(value, EnumVal):
        return VAR_TYPES['Integer']
    return VAR_TYPES.get(type_name(value), 9)


def is_numeric(value: Any) -> bool:
    if isinstance(value, (bool, int, float)):
        return True
    if isinstance(value, str):
        return parse_number(value) is not None
    return False


def sleep_milliseconds(milliseconds: Any):
    time.sleep(max(to_double(milliseconds), 0) / 1000.0)


def _array(value: Any, name: str) -> ArrayVal:
    if not isinstance(value, ArrayVal):
        raise_exception('ArgumentException', f"Argument '{name}' is not an array.")
    return value


def populate_info(registry):
    # ------------------------------------------------------------------
    # Information functions
    # ------------------------------------------------------------------
    def type_name_fn(interp, args):
        value = args[0]
        if isinstance(value, ObjectVal):
            return value.cls.name
        return type_name(value)

    def is_date(interp, args):
        value = args[0]
        if isinstance(value, datetime):
            return True
        return isinstance(value, str) and parse_date(value) is not None

    def ubound(interp, args):
        array = _array(args[0], 'Array')
        return array.upper_bound(int_arg(args, 1, 1) - 1)

    def lbound(interp, args):
        array = _array(args[0], 'Array')
        rank = int_arg(args, 1, 1)
        if rank < 1 or rank > array.rank:
            raise_exception('IndexOutOfRangeException', 'Index was outside the bounds of the array.')
        return 0

    def iif(interp, args):
        return args[1] if to_boolean(args[0]) else args[2]

    def choose(interp, args):
        index = to_integer(args[0])
        choices = rest_values(args, 1)
        if index < 1 or index > len(choices):
            return NOTHING
        return choices[index - 1]

    def switch(interp, args):
        if len(args) % 2:
            raise_exception('ArgumentException', "Argument 'VarExpr' must have an even number of elements.")
        for i in range(0, len(args), 2):
            if to_boolean(args[i]):
                return args[i + 1]
        return NOTHING

    registry.function(('TypeName', 'Information.TypeName'), type_name_fn, 1, 1, category='info')
    registry.function(('VarType', 'Information.VarType'), lambda interp, args: var_type(args[0]), 1, 1,
                      category='info')
    registry.function(('IsNumeric', 'Information.IsNumeric'), lambda interp, args: is_numeric(args[0]), 1, 1,
                      category='info')
    registry.function(('IsDate', 'Information.IsDate'), is_date, 1, 1, category='info')
    registry.function(('IsNothing', 'Information.IsNothing'), lambda interp, args: args[0] is NOTHING, 1, 1,
                      category='info')
    registry.function(('IsDBNull', 'IsError'), lambda interp, args: False, 1, 1, category='info')
    registry.function(('IsArray', 'Information.IsArray'), lambda interp, args: isinstance(args[0], ArrayVal), 1, 1,
                      category='info')
    registry.function(('UBound', 'Information.UBound'), ubound, 1, 2, category='info')
    registry.function(('LBound', 'Information.LBound'), lbound, 1, 2, category='info')
    registry.function(('IIf', 'Interaction.IIf'), iif, 3, 3, category='info')
    registry.function(('Choose', 'Interaction.Choose'), choose, 1, None, category='info')
    registry.function(('Switch', 'Interaction.Switch'), switch, 0, None, category='info')
    for name, code in VAR_TYPES.items():
        registry.constant(f"vb{'Empty' if name == 'Nothing' else name}", code)
    registry.constant('vbArray', VB_ARRAY)

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------
    def environ(interp, args):
        return os.environ.get(text_arg(args, 0), '')

    def get_environment_variable(interp, args):
        value = os.environ.get(text_arg(args, 0))
        return NOTHING if value is None else value

    def sleep(interp, args):
        if interp.debug_level >= 3:
            interp.debug(f"Sleep {args[0]}")
        sleep_milliseconds(args[0])

    def environment_exit(interp, args):
        raise ProgramEnd()

    registry.function(('Environ', 'Interaction.Environ'), environ, 1, 1, category='info')
    registry.function('Environment.GetEnvironmentVariable', get_environment_variable, 1, 1, category='info')
    registry.function('Environment.TickCount', lambda interp, args: int(time.monotonic() * 1000) % (2 ** 31),
                      0, 0, category='info')
    registry.function('Environment.MachineName', lambda interp, args: os.uname().nodename, 0, 0, category='info')
    registry.function('Environment.CurrentDirectory', lambda interp, args: os.getcwd(), 0, 0, category='info')
    registry.function('Environment.Exit', environment_exit, 0, 1, category='info')
    registry.function(('Sleep', 'Thread.Sleep'), sleep, 1, 1, category='info')
    registry.function(('DoEvents', 'Application.DoEvents'), lambda interp, args: 0, 0, 0, category='info')

    # ------------------------------------------------------------------
    # Array statics
    # ------------------------------------------------------------------
    def array_sort(interp, args):
        array = _array(args[0], 'array')
        if len(args) > 1 and isinstance(args[1], ArrayVal):
            items = _array(args[1], 'items')
            order = cmp_to_key(lambda x, y: compare_items(interp, x[0], y[0]))
            pairs = sorted(zip(array.items, items.items), key=order)
            array.items[:] = [k for k, _ in pairs]
            items.items[:] = [v for _, v in pairs]
            return
        array.items[:] = sort_values(interp, array.items, arg(args, 1, None))

    def array_reverse(interp, args):
        array = _array(args[0], 'array')
        start = int_arg(args, 1, 0)
        length = int_arg(args, 2, len(array.items) - start)
        if start < 0 or length < 0 or start + length > len(array.items):
            raise_exception('ArgumentException', 'Offset and length were out of bounds for the array.')
        array.items[start:start + length] = array.items[start:start + length][::-1]

    def array_index_of(interp, args):
        items = values_of(args[0])
        for i in range(int_arg(args, 2, 0), len(items)):
            if values_equal(items[i], args[1]):
                return i
        return -1

    def array_last_index_of(interp, args):
        items = values_of(args[0])
        for i in range(len(items) - 1, -1, -1):
            if values_equal(items[i], args[1]):
                return i
        return -1

    def array_resize(interp, args):
        cell: Cell = args[0]
        size = to_integer(args[1])
        if size < 0:
            raise_exception('ArgumentOutOfRangeException', 'Non-negative number required.')
        current = cell.value
        if current is NOTHING:
            cell.assign(ArrayVal(None, [size]))
        else:
            cell.assign(_array(current, 'array').resized([size], True))

    def array_copy(interp, args):
        if len(args) == 3:
            source, target, length = args[0], args[1], to_integer(args[2])
            source_index = target_index = 0
        else:
            source, source_index, target, target_index, length = (
                args[0], to_integer(args[1]), args[2], to_integer(args[3]), to_integer(args[4]))
        source, target = _array(source, 'sourceArray'), _array(target, 'destinationArray')
        if (source_index + length > len(source.items) or target_index + length > len(target.items)
                or min(source_index, target_index, length) < 0):
            raise_exception('ArgumentException', 'Source array was not long enough.')
        chunk = source.items[source_index:source_index + length]
        for offset, value in enumerate(chunk):
            target.items[target_index + offset] = value

    def array_clear(interp, args):
        array = _array(args[0], 'array')
        start = int_arg(args, 1, 0)
        length = int_arg(args, 2, len(array.items) - start)
        for i in range(start, start + length):
            array.items[i] = default_value(array.elem_type)

    def predicate_search(kind: str):
        def search(interp, args):
            items = values_of(args[0])
            predicate = args[1]
            matches = [(i, v) for i, v in enumerate(items) if to_boolean(interp.call_function(predicate, [v]))]
            if kind == 'exists':
                return bool(matches)
            if kind == 'trueforall':
                return len(matches) == len(items)
            if kind == 'find':
                elem = args[0].elem_type if isinstance(args[0], ArrayVal) else None
                return matches[0][1] if matches else default_value(elem)
            if kind == 'findlast':
                elem = args[0].elem_type if isinstance(args[0], ArrayVal) else None
                return matches[-1][1] if matches else default_value(elem)
            if kind == 'findindex':
                return matches[0][0] if matches else -1
            elem = args[0].elem_type if isinstance(args[0], ArrayVal) else None
            return ArrayVal(elem, [len(matches)], [v for _, v in matches])
        return search

    def array_for_each(interp, args):
        for value in values_of(args[0]):
            interp.call_function(args[1], [value])

    def array_convert_all(interp, args):
        values = [interp.call_function(args[1], [v]) for v in values_of(args[0])]
        return ArrayVal.from_list(values)

    def array_binary_search(interp, args):
        items = values_of(args[0])
        low, high = 0, len(items) - 1
        while low <= high:
            middle = (low + high) // 2
            order = compare_items(interp, items[middle], args[1])
            if order == 0:
                return middle
            if order < 0:
                low = middle + 1
            else:
                high = middle - 1
        return ~low

    registry.function('Array.Sort', array_sort, 1, 2, category='info')
    registry.function('Array.Reverse', array_reverse, 1, 3, category='info')
    registry.function('Array.IndexOf', array_index_of, 2, 3, category='info')
    registry.function('Array.LastIndexOf', array_last_index_of, 2, 2, category='info')
    registry.function('Array.Resize', array_resize, 2, 2, byref=(0,), category='info')
    registry.function(('Array.Copy', 'Array.ConstrainedCopy'), array_copy, 3, 5, category='info')
    registry.function('Array.Clear', array_clear, 1, 3, category='info')
    registry.function('Array.Exists', predicate_search('exists'), 2, 2, category='info')
    registry.function('Array.TrueForAll', predicate_search('trueforall'), 2, 2, category='info')
    registry.function('Array.Find', predicate_search('find'), 2, 2, category='info')
    registry.function('Array.FindLast', predicate_search('findlast'), 2, 2, category='info')
    registry.function('Array.FindIndex', predicate_search('findindex'), 2, 2, category='info')
    registry.function('Array.FindAll', predicate_search('findall'), 2, 2, category='info')
    registry.function('Array.ForEach', array_for_each, 2, 2, category='info')
    registry.function('Array.ConvertAll', array_convert_all, 2, 2, category='info')
    registry.function('Array.BinarySearch', array_binary_search, 2, 2, category='info')
    registry.function('Array.Empty', lambda interp, args: ArrayVal(None, [0]), 0, 0, category='info')

    # ------------------------------------------------------------------
    # Members of array values
    # ------------------------------------------------------------------
    def upper(interp, array, args):
        return array.upper_bound(to_integer(args[0]))

    def lower(interp, array, args):
        array.upper_bound(to_integer(args[0]))
        return 0

    def get_length(interp, array, args):
        return array.upper_bound(int_arg(args, 0, 0)) + 1

    def clone(interp, array, args):
        return ArrayVal(array.elem_type, list(array.dims), list(array.items))

    def copy_to(interp, array, args):
        target = _array(args[0], 'array')
        start = int_arg(args, 1, 0)
        if start < 0 or start + len(array.items) > len(target.items):
            raise_exception('ArgumentException', 'Destination array was not long enough.')
        for offset, value in enumerate(array.items):
            target.items[start + offset] = value

    def get_value(interp, array, args):
        return array.get([to_integer(a) for a in args])

    def set_value(interp, array, args):
        array.set([to_integer(a) for a in args[1:]], args[0])

    registry.method('array', 'Length', lambda interp, a, args: len(a.items), 0, 0, category='info')
    registry.method('array', 'LongLength', lambda interp, a, args: Long(len(a.items)), 0, 0, category='info')
    registry.method('array', 'Rank', lambda interp, a, args: a.rank, 0, 0, category='info')
    registry.method('array', 'GetUpperBound', upper, 1, 1, category='info')
    registry.method('array', 'GetLowerBound', lower, 1, 1, category='info')
    registry.method('array', 'GetLength', get_length, 0, 1, category='info')
    registry.method('array', 'Clone', clone, 0, 0, category='info')
    registry.method('array', 'CopyTo', copy_to, 1, 2, category='info')
    registry.method('array', 'GetValue', get_value, 1, None, category='info')
    registry.method('array', 'SetValue', set_value, 2, None, category='info')

    # ------------------------------------------------------------------
    # Members every value has
    # ------------------------------------------------------------------
    def to_string_m(interp, value, args):
        fmt = text_arg(args, 0)
        if fmt and (is_numeric_value(value) or isinstance(value, datetime)) and not isinstance(value, EnumVal):
            return format_value(value, fmt)
        return interp.stringify(value)

    def equals(interp, value, args):
        other = args[0]
        if isinstance(value, ObjectVal) or isinstance(other, ObjectVal):
            return identical(value, other)
        return values_equal(value, other)

    def get_type(interp, value, args):
        if isinstance(value, ObjectVal):
            return TypeSpec(value.cls.name)
        return TypeSpec(type_name(value))

    def get_hash_code(interp, value, args):
        if isinstance(value, (str, int, float, bool)):
            return hash(value) & 0x7FFFFFFF
        return id(value) & 0x7FFFFFFF

    def compare_to(interp, value, args):
        return compare_values(value, args[0], '<')

    registry.method('object', 'ToString', to_string_m, 0, 1, category='info')
    registry.method('object', 'Equals', equals, 1, 1, category='info')
    registry.method('object', 'GetType', get_type, 0, 0, category='info')
    registry.method('object', 'GetHashCode', get_hash_code, 0, 0, category='info')
    registry.method(('number', 'boolean'), 'CompareTo', compare_to, 1, 1, category='info')
    registry.function('Object.ReferenceEquals', lambda interp, args: identical(args[0], args[1]), 2, 2,
                      category='info')

    def type_name_m(interp, spec, args):
        return spec.kind.split('.')[-1]

    def type_full_name(interp, spec, args):
        if '.' in spec.kind or interp.find_class(spec.kind) is not None:
            return spec.kind
        return f"System.{spec.kind}"

    registry.method('type', 'Name', type_name_m, 0, 0, category='info')
    registry.method('type', 'FullName', type_full_name, 0, 0, category='info')
    registry.method('type', 'ToString', type_full_name, 0, 0, category='info')

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------
    def task_run(interp, args):
        if interp.debug_level >= 1:
            interp.debug("Task.Run")
        result = interp.call_function(args[0], [])
        return result if isinstance(result, TaskVal) else TaskVal(result)

    def task_delay(interp, args):
        sleep_milliseconds(args[0])
        return TaskVal(NOTHING)

    def task_when_all(interp, args):
        tasks = rest_values(args, 0)
        if len(tasks) == 1 and not isinstance(tasks[0], TaskVal):
            tasks = values_of(tasks[0])
        results = [t.result if isinstance(t, TaskVal) else t for t in tasks]
        return TaskVal(ArrayVal.from_list(results))

    def task_when_any(interp, args):
        tasks = rest_values(args, 0)
        if len(tasks) == 1 and not isinstance(tasks[0], TaskVal):
            tasks = values_of(tasks[0])
        if not tasks:
            raise_exception('ArgumentException', 'The tasks argument contains no tasks.')
        return TaskVal(tasks[0])

    registry.function(('Task.Run', 'Task.Factory.StartNew'), task_run, 1, 1, category='tasks')
    registry.function('Task.Delay', task_delay, 1, 1, category='tasks')
    registry.function('Task.FromResult', lambda interp, args: TaskVal(args[0]), 1, 1, category='tasks')
    registry.function('Task.WhenAll', task_when_all, 0, None, category='tasks')
    registry.function('Task.WhenAny', task_when_any, 0, None, category='tasks')
    registry.function('Task.WaitAll', lambda interp, args: None, 0, None, category='tasks')
    registry.constant('Task.CompletedTask', TaskVal(NOTHING))
    registry.method('task', 'Result', lambda interp, t, args: t.result, 0, 0, category='tasks')
    registry.method('task', 'Wait', lambda interp, t, args: None, 0, 1, category='tasks')
    registry.method('task', 'IsCompleted', lambda interp, t, args: True, 0, 0, category='tasks')
    registry.method('task', ('ConfigureAwait', 'GetAwaiter'), lambda interp, t, args: t, 0, 1, category='tasks')
    registry.method('task', 'GetResult', lambda interp, t, args: t.result, 0, 0, category='tasks')
