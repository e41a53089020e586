"""Type definitions and helpers for Vybe.

This module defines the runtime value system used by the Vybe interpreter:
type specifications as written in declarations, the representation of the
primitive values (Integer, Long, Double, String, Boolean, Date, Nothing),
dense N-dimensional arrays, exception values and the conversion rules that
the `C*` conversion functions, declared-type assignment and the operators
all share.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, date, time as dt_time, timedelta
from typing import Any, Dict, List, Optional, Tuple
import math
import re


INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1
INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1


@dataclass(frozen=True)
class TypeSpec:
    """Represents a Vybe type as written after `As`.

    `kind` is the type name as spelled in the source (`Integer`,
    `List`, `Customer`, ...), `args` holds generic arguments from an
    `(Of ...)` clause and `rank` is the array rank (0 for scalars). For
    example `List(Of Integer)()` becomes
    `TypeSpec('List', (TypeSpec('Integer'),), 1)`.
    """
    kind: str
    args: Tuple['TypeSpec', ...] = ()
    rank: int = 0

    def __repr__(self) -> str:
        text = self.kind
        if self.args:
            text += '(Of ' + ', '.join(repr(a) for a in self.args) + ')'
        if self.rank:
            text += '(' + ',' * (self.rank - 1) + ')'
        return text

    @property
    def key(self) -> str:
        """Lower-cased kind without any `System.` qualification."""
        name = self.kind.lower()
        for prefix in ('system.collections.generic.', 'system.collections.', 'system.text.', 'system.'):
            if name.startswith(prefix):
                return name[len(prefix):]
        return name

    def element(self) -> 'TypeSpec':
        return TypeSpec(self.kind, self.args, 0)

    def array_of(self, rank: int = 1) -> 'TypeSpec':
        return TypeSpec(self.kind, self.args, rank)

    @staticmethod
    def integer() -> 'TypeSpec':
        return TypeSpec('Integer')

    @staticmethod
    def long() -> 'TypeSpec':
        return TypeSpec('Long')

    @staticmethod
    def double() -> 'TypeSpec':
        return TypeSpec('Double')

    @staticmethod
    def string() -> 'TypeSpec':
        return TypeSpec('String')

    @staticmethod
    def boolean() -> 'TypeSpec':
        return TypeSpec('Boolean')

    @staticmethod
    def object() -> 'TypeSpec':
        return TypeSpec('Object')


INTEGER_KINDS = {'integer', 'int32', 'short', 'int16', 'byte', 'sbyte', 'uinteger', 'uint32', 'ushort', 'uint16'}
LONG_KINDS = {'long', 'int64', 'ulong', 'uint64'}
DOUBLE_KINDS = {'double', 'single', 'decimal', 'float', 'currency'}
STRING_KINDS = {'string'}
BOOLEAN_KINDS = {'boolean', 'bool'}
DATE_KINDS = {'date', 'datetime'}
CHAR_KINDS = {'char'}
OBJECT_KINDS = {'object', 'variant', ''}


class NothingVal:
    """Marker object for the Vybe `Nothing` value."""
    _instance: Optional['NothingVal'] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'Nothing'

    def __bool__(self) -> bool:
        return False


NOTHING = NothingVal()


class Long(int):
    """A 64-bit integer; plain `int` values are 32-bit Integers."""
    def __repr__(self) -> str:
        return f"{int(self)}L"


@dataclass
class ExceptionVal:
    """Represents a raised or constructed .NET-style exception.

    `category` is the exception type name (e.g. `DivideByZeroException`)
    and `message` its human readable text. `number` is the classic VB
    error number reported through the `Err` object.
    """
    category: str
    message: str
    inner: Any = None
    number: int = 0
    data: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"{self.category}: {self.message}"


@dataclass(frozen=True)
class TimeSpanVal:
    """A `TimeSpan`: the difference between two dates."""
    delta: timedelta

    type_label = 'TimeSpan'
    receiver_kind = 'timespan'

    @property
    def total_seconds(self) -> float:
        return self.delta.total_seconds()

    @property
    def display_name(self) -> str:
        total = self.delta
        sign = '-' if total < timedelta(0) else ''
        total = abs(total)
        hours, rest = divmod(total.seconds, 3600)
        minutes, seconds = divmod(rest, 60)
        text = f"{hours:02d}:{minutes:02d}:{seconds:02d}"
        if total.days:
            text = f"{total.days}.{text}"
        if total.microseconds:
            text += f".{total.microseconds:06d}0"
        return sign + text


@dataclass
class TaskVal:
    """A completed task; `Async` code runs synchronously."""
    result: Any

    def __repr__(self) -> str:
        return 'Task'


class ArrayVal:
    """A dense, zero-based, N-dimensional array.

    Items are stored flat in row-major order. `dims` holds the length of
    each dimension, so `Dim a(2, 3)` produces `dims == [3, 4]`.
    """
    def __init__(self, elem_type: Optional[TypeSpec], dims: List[int], items: Optional[List[Any]] = None):
        self.elem_type = elem_type
        self.dims = [max(0, d) for d in dims]
        total = 1
        for d in self.dims:
            total *= d
        if items is None:
            fill = default_value(elem_type)
            if isinstance(fill, (int, float, str, bool, datetime)) or fill is NOTHING:
                items = [fill] * total
            else:
                items = [default_value(elem_type) for _ in range(total)]
        self.items = items

    @classmethod
    def from_list(cls, items: List[Any], elem_type: Optional[TypeSpec] = None) -> 'ArrayVal':
        return cls(elem_type, [len(items)], list(items))

    @property
    def rank(self) -> int:
        return len(self.dims)

    @property
    def length(self) -> int:
        return len(self.items)

    def offset(self, indices: List[int]) -> int:
        from .errors import raise_exception
        if len(indices) != len(self.dims):
            raise_exception('IndexOutOfRangeException',
                            f'Array has {len(self.dims)} dimension(s) but {len(indices)} index(es) were supplied.')
        pos = 0
        for idx, dim in zip(indices, self.dims):
            if idx < 0 or idx >= dim:
                raise_exception('IndexOutOfRangeException', 'Index was outside the bounds of the array.')
            pos = pos * dim + idx
        return pos

    def get(self, indices: List[int]) -> Any:
        return self.items[self.offset(indices)]

    def set(self, indices: List[int], value: Any) -> None:
        self.items[self.offset(indices)] = coerce_value(value, self.elem_type)

    def upper_bound(self, dimension: int = 0) -> int:
        from .errors import raise_exception
        if dimension < 0 or dimension >= len(self.dims):
            raise_exception('IndexOutOfRangeException', 'Index was outside the bounds of the array.')
        return self.dims[dimension] - 1

    def resized(self, dims: List[int], preserve: bool) -> 'ArrayVal':
        """Return a new array with `dims`; copy overlapping cells when `preserve`."""
        result = ArrayVal(self.elem_type, dims)
        if preserve and self.items:
            if len(self.dims) == 1 and len(dims) == 1:
                count = min(self.dims[0], result.dims[0])
                result.items[:count] = self.items[:count]
            elif len(self.dims) == len(dims):
                for pos, value in enumerate(self.items):
                    indices = self._unflatten(pos)
                    if all(i < d for i, d in zip(indices, result.dims)):
                        result.items[result.offset(indices)] = value
        return result

    def _unflatten(self, pos: int) -> List[int]:
        indices = []
        for dim in reversed(self.dims):
            indices.append(pos % dim if dim else 0)
            pos = pos // dim if dim else 0
        return list(reversed(indices))

    def __repr__(self) -> str:
        return f"Array({self.elem_type!r}, {self.dims!r}, {self.items!r})"


###############################################################################
# Conversions
###############################################################################

_HEX_RE = re.compile(r'^\s*&h([0-9a-f]+)\s*$', re.IGNORECASE)
_OCT_RE = re.compile(r'^\s*&o([0-7]+)\s*$', re.IGNORECASE)
_BIN_RE = re.compile(r'^\s*&b([01]+)\s*$', re.IGNORECASE)


def parse_number(text: str) -> Optional[Any]:
    """Parse a numeric string the way `Val`/`CDbl` accept it, or None."""
    s = text.strip()
    if not s:
        return None
    for regex, base in ((_HEX_RE, 16), (_OCT_RE, 8), (_BIN_RE, 2)):
        m = regex.match(s)
        if m:
            return int(m.group(1), base)
    cleaned = s.replace(',', '')
    if cleaned.startswith('$'):
        cleaned = cleaned[1:]
    try:
        if re.fullmatch(r'[+-]?\d+', cleaned):
            return int(cleaned)
        value = float(cleaned)
    except ValueError:
        return None
    if math.isnan(value) and cleaned.lower() not in ('nan', '+nan', '-nan'):
        return None
    return value


def _cast_error(value: Any, target: str):
    from .errors import raise_exception
    if isinstance(value, str):
        raise_exception('InvalidCastException',
                        f'Conversion from string "{value}" to type \'{target}\' is not valid.')
    raise_exception('InvalidCastException',
                    f"Conversion from type '{type_name(value)}' to type '{target}' is not valid.")


def _check_range(value: int, low: int, high: int, target: str) -> int:
    if value < low or value > high:
        from .errors import raise_exception
        raise_exception('OverflowException', f'Arithmetic operation resulted in an overflow converting to {target}.')
    return value


def to_double(value: Any) -> float:
    if isinstance(value, bool):
        return -1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if value is NOTHING:
        return 0.0
    if isinstance(value, str):
        parsed = parse_number(value)
        if parsed is None:
            _cast_error(value, 'Double')
        return float(parsed)
    if isinstance(value, datetime):
        return date_to_oa(value)
    _cast_error(value, 'Double')


def _round_half_even(x: float) -> int:
    return int(round(x))


def to_integer(value: Any, target: str = 'Integer', low: int = INT32_MIN, high: int = INT32_MAX) -> int:
    """`CInt` semantics: banker's rounding, range checked."""
    if isinstance(value, bool):
        return -1 if value else 0
    if isinstance(value, int):
        return _check_range(int(value), low, high, target)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            from .errors import raise_exception
            raise_exception('OverflowException', 'Arithmetic operation resulted in an overflow.')
        return _check_range(_round_half_even(value), low, high, target)
    if value is NOTHING:
        return 0
    if isinstance(value, str):
        parsed = parse_number(value)
        if parsed is None:
            _cast_error(value, target)
        return to_integer(parsed, target, low, high)
    _cast_error(value, target)


def to_long(value: Any) -> Long:
    return Long(to_integer(value, 'Long', INT64_MIN, INT64_MAX))


def to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if value is NOTHING:
        return False
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == 'true':
            return True
        if lowered == 'false':
            return False
        parsed = parse_number(value)
        if parsed is None:
            _cast_error(value, 'Boolean')
        return parsed != 0
    _cast_error(value, 'Boolean')


_DATE_FORMATS = [
    '%m/%d/%Y %I:%M:%S %p', '%m/%d/%Y %I:%M %p', '%m/%d/%Y %H:%M:%S', '%m/%d/%Y %H:%M',
    '%m/%d/%Y', '%Y-%m-%d %H:%M:%S', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%d %H:%M', '%Y-%m-%d',
    '%Y/%m/%d', '%d %B %Y', '%B %d, %Y', '%B %d %Y', '%d-%b-%Y', '%b %d, %Y',
    '%I:%M:%S %p', '%I:%M %p', '%H:%M:%S', '%H:%M',
]


def parse_date(text: str) -> Optional[datetime]:
    s = ' '.join(text.strip().split())
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(s, fmt)
        except ValueError:
            continue
        if fmt.startswith('%I') or fmt.startswith('%H'):
            return datetime.combine(date(1, 1, 1), parsed.time())
        return parsed
    return None


def to_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        parsed = parse_date(value)
        if parsed is None:
            _cast_error(value, 'Date')
        return parsed
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return oa_to_date(float(value))
    _cast_error(value, 'Date')


_OA_EPOCH = datetime(1899, 12, 30)


def date_to_oa(value: datetime) -> float:
    delta = value - _OA_EPOCH
    return delta.days + delta.seconds / 86400.0


def oa_to_date(value: float) -> datetime:
    return _OA_EPOCH + timedelta(days=value)


def format_double(x: float) -> str:
    """Render a Double the way `CStr` does."""
    if math.isnan(x):
        return 'NaN'
    if math.isinf(x):
        return 'Infinity' if x > 0 else '-Infinity'
    if x == int(x) and abs(x) < 1e15:
        return str(int(x))
    text = format(x, '.15g')
    if 'e' in text:
        mantissa, exponent = text.split('e')
        sign = exponent[0]
        digits = exponent[1:].lstrip('0').rjust(2, '0')
        text = f"{mantissa}E{sign}{digits}"
    return text


def format_date(value: datetime) -> str:
    hour = value.hour % 12 or 12
    suffix = 'AM' if value.hour < 12 else 'PM'
    clock = f"{hour}:{value.minute:02d}:{value.second:02d} {suffix}"
    if value.date() == date(1, 1, 1) and value.time() != dt_time(0):
        return clock
    day = f"{value.month}/{value.day}/{value.year}"
    if value.time() == dt_time(0):
        return day
    return f"{day} {clock}"


def to_string(value: Any) -> str:
    """`CStr` semantics for primitive values; references render their type name."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return 'True' if value else 'False'
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, float):
        return format_double(value)
    if value is NOTHING or value is None:
        return ''
    if isinstance(value, datetime):
        return format_date(value)
    if isinstance(value, ExceptionVal):
        return f"System.{value.category}: {value.message}"
    if isinstance(value, ArrayVal):
        elem = value.elem_type.kind if value.elem_type else 'Object'
        return f"System.{elem}[]"
    if isinstance(value, TypeSpec):
        return value.kind
    display = getattr(value, 'display_name', None)
    if display is not None:
        return display
    return type_name(value)


def to_char(value: Any) -> str:
    if isinstance(value, str):
        if not value:
            _cast_error(value, 'Char')
        return value[0]
    if isinstance(value, int) and not isinstance(value, bool):
        return chr(value)
    _cast_error(value, 'Char')


def default_value(type_spec: Optional[TypeSpec]) -> Any:
    if type_spec is None or type_spec.rank:
        return NOTHING
    key = type_spec.key
    if key in INTEGER_KINDS:
        return 0
    if key in LONG_KINDS:
        return Long(0)
    if key in DOUBLE_KINDS:
        return 0.0
    if key in STRING_KINDS:
        return ''
    if key in BOOLEAN_KINDS:
        return False
    if key in DATE_KINDS:
        return datetime(1, 1, 1)
    if key in CHAR_KINDS:
        return '\0'
    return NOTHING


def coerce_value(value: Any, type_spec: Optional[TypeSpec]) -> Any:
    """Convert `value` for storage in a slot declared as `type_spec`."""
    if type_spec is None or type_spec.rank:
        return value
    key = type_spec.key
    if key in OBJECT_KINDS:
        return value
    if value is NOTHING:
        return default_value(type_spec)
    if key in INTEGER_KINDS:
        if key in ('byte',):
            return to_integer(value, 'Byte', 0, 255)
        if key in ('short', 'int16'):
            return to_integer(value, 'Short', -32768, 32767)
        if type(value) is int:
            return _check_range(value, INT32_MIN, INT32_MAX, 'Integer')
        return to_integer(value)
    if key in LONG_KINDS:
        return value if type(value) is Long else to_long(value)
    if key in DOUBLE_KINDS:
        return value if type(value) is float else to_double(value)
    if key in STRING_KINDS:
        if isinstance(value, (ArrayVal,)) or hasattr(value, 'cls'):
            _cast_error(value, 'String')
        return to_string(value)
    if key in BOOLEAN_KINDS:
        return to_boolean(value)
    if key in DATE_KINDS:
        return to_date(value)
    if key in CHAR_KINDS:
        return to_char(value)
    return value


def is_numeric_value(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def type_name(value: Any) -> str:
    """The name `TypeName` reports for a value."""
    enum_name = getattr(value, 'enum_name', None)
    if enum_name:
        return enum_name
    if isinstance(value, bool):
        return 'Boolean'
    if type(value) is Long:
        return 'Long'
    if isinstance(value, int):
        return 'Integer'
    if isinstance(value, float):
        return 'Double'
    if isinstance(value, str):
        return 'String'
    if isinstance(value, datetime):
        return 'Date'
    if value is NOTHING or value is None:
        return 'Nothing'
    if isinstance(value, ArrayVal):
        elem = value.elem_type.kind if value.elem_type else 'Object'
        return f"{elem}()"
    if isinstance(value, ExceptionVal):
        return value.category
    if isinstance(value, TypeSpec):
        return 'Type'
    if isinstance(value, TaskVal):
        return 'Task'
    name = getattr(value, 'type_label', None)
    if name is not None:
        return name
    return type(value).__name__
