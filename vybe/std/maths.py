"""Math library for the Vybe language: VB math functions, `Math.*` and `Random`."""

import math
import random
from decimal import Decimal, ROUND_HALF_EVEN, ROUND_HALF_UP
from typing import Any

from vybe.errors import raise_exception
from vybe.objects import EnumVal
from vybe.types import Long, is_numeric_value, to_double, to_integer
from vybe.std.support import arg


class RandomVal:
    """A `System.Random` instance."""
    type_label = 'Random'
    display_name = 'System.Random'
    receiver_kind = 'random'

    def __init__(self, seed: Any = None):
        self.generator = random.Random(seed)


def _number(value: Any) -> Any:
    """Numeric argument; integers stay integers."""
    if isinstance(value, bool):
        return -1 if value else 0
    if is_numeric_value(value):
        return value
    return to_double(value)


def _like(template: Any, result: int) -> Any:
    return Long(result) if type(template) is Long else result


def round_to(value: Any, digits: int = 0, away_from_zero: bool = False) -> Any:
    """`Math.Round`: banker's rounding unless `away_from_zero`."""
    value = _number(value)
    if isinstance(value, int):
        return value
    if math.isnan(value) or math.isinf(value):
        return value
    mode = ROUND_HALF_UP if away_from_zero else ROUND_HALF_EVEN
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=mode))


def _away(args, index: int) -> bool:
    value = arg(args, index, None)
    return isinstance(value, EnumVal) and value.member_name == 'AwayFromZero'


def populate_maths(registry):
    def abs_fn(interp, args):
        value = _number(args[0])
        if isinstance(value, int):
            return _like(value, abs(value))
        return abs(value)

    def int_fn(interp, args):
        value = _number(args[0])
        if isinstance(value, int):
            return value
        return float(math.floor(value))

    def fix_fn(interp, args):
        value = _number(args[0])
        if isinstance(value, int):
            return value
        return float(math.trunc(value))

    def sgn(interp, args):
        value = _number(args[0])
        if isinstance(value, float) and math.isnan(value):
            raise_exception('ArithmeticException', 'Function does not accept floating point Not-a-Number values.')
        return (value > 0) - (value < 0)

    def sqrt(interp, args):
        value = to_double(args[0])
        return math.sqrt(value) if value >= 0 else math.nan

    def log(interp, args):
        value = to_double(args[0])
        if len(args) > 1:
            base = to_double(args[1])
            return math.log(value) / math.log(base) if value > 0 else math.nan
        if value == 0:
            return -math.inf
        return math.log(value) if value > 0 else math.nan

    def log10(interp, args):
        value = to_double(args[0])
        if value == 0:
            return -math.inf
        return math.log10(value) if value > 0 else math.nan

    def exp(interp, args):
        try:
            return math.exp(to_double(args[0]))
        except OverflowError:
            return math.inf

    def pow_fn(interp, args):
        base, exponent = to_double(args[0]), to_double(args[1])
        try:
            return math.pow(base, exponent)
        except OverflowError:
            return math.inf
        except ValueError:
            return math.nan

    def round_fn(interp, args):
        digits = 0
        if len(args) > 1 and not isinstance(args[1], EnumVal):
            digits = to_integer(args[1])
            if digits < 0 or digits > 15:
                raise_exception('ArgumentOutOfRangeException', 'Rounding digits must be between 0 and 15, inclusive.')
        return round_to(args[0], digits, _away(args, len(args) - 1))

    def floor(interp, args):
        value = _number(args[0])
        return value if isinstance(value, int) else float(math.floor(value))

    def ceiling(interp, args):
        value = _number(args[0])
        return value if isinstance(value, int) else float(math.ceil(value))

    def max_fn(interp, args):
        a, b = _number(args[0]), _number(args[1])
        return a if a >= b else b

    def min_fn(interp, args):
        a, b = _number(args[0]), _number(args[1])
        return a if a <= b else b

    def clamp(interp, args):
        value, low, high = _number(args[0]), _number(args[1]), _number(args[2])
        if low > high:
            raise_exception('ArgumentException', f"'{low}' cannot be greater than {high}.")
        return low if value < low else high if value > high else value

    def trig(fn):
        def compute(interp, args):
            try:
                return fn(to_double(args[0]))
            except ValueError:
                return math.nan
        return compute

    def atan2(interp, args):
        return math.atan2(to_double(args[0]), to_double(args[1]))

    def rnd(interp, args):
        value = arg(args, 0, None)
        if value is not None and to_double(value) < 0:
            interp.random.seed(to_double(value))
        return interp.random.random()

    def randomize(interp, args):
        seed = arg(args, 0, None)
        interp.random.seed(seed if seed is None else to_double(seed))

    registry.function(('Abs', 'Math.Abs'), abs_fn, 1, 1, category='math')
    registry.function(('Int', 'Conversion.Int'), int_fn, 1, 1, category='math')
    registry.function(('Fix', 'Conversion.Fix'), fix_fn, 1, 1, category='math')
    registry.function(('Sgn', 'Math.Sign'), sgn, 1, 1, category='math')
    registry.function(('Sqr', 'Math.Sqrt'), sqrt, 1, 1, category='math')
    registry.function('Math.Cbrt', lambda interp, args: math.copysign(abs(to_double(args[0])) ** (1 / 3),
                                                                        to_double(args[0])), 1, 1, category='math')
    registry.function(('Log', 'Math.Log'), log, 1, 2, category='math')
    registry.function('Math.Log10', log10, 1, 1, category='math')
    registry.function(('Exp', 'Math.Exp'), exp, 1, 1, category='math')
    registry.function('Math.Pow', pow_fn, 2, 2, category='math')
    registry.function(('Round', 'Math.Round'), round_fn, 1, 3, category='math')
    registry.function('Math.Floor', floor, 1, 1, category='math')
    registry.function('Math.Ceiling', ceiling, 1, 1, category='math')
    registry.function('Math.Truncate', fix_fn, 1, 1, category='math')
    registry.function('Math.Max', max_fn, 2, 2, category='math')
    registry.function('Math.Min', min_fn, 2, 2, category='math')
    registry.function('Math.Clamp', clamp, 3, 3, category='math')
    registry.function(('Sin', 'Math.Sin'), trig(math.sin), 1, 1, category='math')
    registry.function(('Cos', 'Math.Cos'), trig(math.cos), 1, 1, category='math')
    registry.function(('Tan', 'Math.Tan'), trig(math.tan), 1, 1, category='math')
    registry.function(('Atn', 'Math.Atan'), trig(math.atan), 1, 1, category='math')
    registry.function('Math.Asin', trig(math.asin), 1, 1, category='math')
    registry.function('Math.Acos', trig(math.acos), 1, 1, category='math')
    registry.function('Math.Sinh', trig(math.sinh), 1, 1, category='math')
    registry.function('Math.Cosh', trig(math.cosh), 1, 1, category='math')
    registry.function('Math.Tanh', trig(math.tanh), 1, 1, category='math')
    registry.function('Math.Atan2', atan2, 2, 2, category='math')
    registry.function('Rnd', rnd, 0, 1, category='math')
    registry.function('Randomize', randomize, 0, 1, category='math')
    registry.constant('Math.PI', math.pi)
    registry.constant('Math.E', math.e)
    registry.constant('MidpointRounding.ToEven', EnumVal(0, 'MidpointRounding', 'ToEven'))
    registry.constant('MidpointRounding.AwayFromZero', EnumVal(1, 'MidpointRounding', 'AwayFromZero'))

    # ------------------------------------------------------------------
    # Random
    # ------------------------------------------------------------------
    def new_random(interp, type_spec, args):
        seed = arg(args, 0, None)
        return RandomVal(None if seed is None else to_integer(seed))

    def next_int(interp, rng, args):
        if not args:
            return rng.generator.randrange(0, 2 ** 31 - 1)
        if len(args) == 1:
            low, high = 0, to_integer(args[0])
        else:
            low, high = to_integer(args[0]), to_integer(args[1])
        if high < low or (len(args) == 1 and high < 0):
            raise_exception('ArgumentOutOfRangeException', "'minValue' cannot be greater than maxValue.")
        if high == low:
            return low
        return rng.generator.randrange(low, high)

    def next_double(interp, rng, args):
        return rng.generator.random()

    def next_bytes(interp, rng, args):
        buffer = args[0]
        for i in range(len(buffer.items)):
            buffer.items[i] = rng.generator.randrange(0, 256)

    registry.constructor('Random', new_random)
    registry.method('random', 'Next', next_int, 0, 2, category='math')
    registry.method('random', 'NextDouble', next_double, 0, 0, category='math')
    registry.method('random', 'NextBytes', next_bytes, 1, 1, category='math')
