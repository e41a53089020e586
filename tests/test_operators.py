import math

import pytest

from vybe.errors import VybeError
from vybe.operators import binary_op, compare_values, like_match, unary_op
from vybe.types import INT64_MAX, Long


def test_integer_addition_widens_to_long():
    result = binary_op('+', 2147483647, 1)
    assert result == 2147483648
    assert type(result) is Long


def test_long_overflow_raises():
    with pytest.raises(VybeError) as excinfo:
        binary_op('+', Long(INT64_MAX), 1)
    assert excinfo.value.category == 'OverflowException'


def test_division_operators():
    assert binary_op('/', 7, 2) == 3.5
    assert binary_op('\\', 7, 2) == 3
    assert binary_op('\\', -7, 2) == -3
    assert binary_op('mod', -7, 2) == -1
    assert binary_op('^', 2, 10) == 1024.0


@pytest.mark.parametrize('a, b', [(17, 5), (-17, 5), (17, -5), (-17, -5), (4, 2)])
def test_integer_division_and_mod_agree(a, b):
    assert binary_op('+', binary_op('*', b, binary_op('\\', a, b)), binary_op('mod', a, b)) == a


def test_divide_by_zero():
    with pytest.raises(VybeError) as excinfo:
        binary_op('/', 1, 0)
    assert excinfo.value.category == 'DivideByZeroException'
    assert excinfo.value.number == 11
    with pytest.raises(VybeError):
        binary_op('\\', 1, 0)
    assert math.isnan(binary_op('mod', 5.0, 0))


def test_concatenation_uses_string_forms():
    assert binary_op('&', 1, True) == '1True'
    assert binary_op('&', 'x', 2.5) == 'x2.5'
    assert binary_op('+', 'a', 'b') == 'ab'


def test_numeric_strings_take_part_in_arithmetic():
    assert binary_op('+', '2', 3) == 5.0
    with pytest.raises(VybeError) as excinfo:
        binary_op('+', 'abc', 1)
    assert excinfo.value.category == 'InvalidCastException'


def test_comparisons():
    assert binary_op('<', 'B', 'a')
    assert binary_op('=', 1, 1.0)
    assert binary_op('<>', 'abc', 'ABC')
    # True is -1 in comparisons.
    assert compare_values(True, False) == -1


def test_logical_and_bitwise():
    assert binary_op('and', 6, 3) == 2
    assert binary_op('or', 4, 1) == 5
    assert binary_op('xor', True, True) is False
    assert unary_op('not', 0) == -1
    assert unary_op('not', True) is False


def test_shift_masks_count():
    assert binary_op('<<', 1, 33) == 2
    assert binary_op('>>', -8, 1) == -4


@pytest.mark.parametrize('text, pattern, expected', [
    ('hello', 'h*o', True),
    ('a1', 'a#', True),
    ('b', '[a-c]', True),
    ('d', '[!a-c]', True),
    ('abc', 'a?', False),
])
def test_like(text, pattern, expected):
    assert like_match(text, pattern) is expected
