import pytest

from vybe.errors import ParseError
from vybe.lexer import tokenize
from vybe.types import Long


def kinds(source):
    return [(t.type, t.value) for t in tokenize(source)]


def test_tokenize_declaration():
    assert kinds('Dim x As Integer = &HFF') == [
        ('NAME', 'Dim'), ('NAME', 'x'), ('NAME', 'As'), ('NAME', 'Integer'),
        ('OP', '='), ('INT', 255), ('NEWLINE', '\n'), ('EOF', ''),
    ]


def test_string_char_and_date_literals():
    toks = tokenize('s = "say ""hi""" & "x"c & #1/2/2024#')
    assert (toks[2].type, toks[2].value) == ('STRING', 'say "hi"')
    assert (toks[4].type, toks[4].value) == ('CHAR', 'x')
    assert (toks[6].type, toks[6].value) == ('DATE', '1/2/2024')


def test_numeric_literals():
    toks = tokenize('a = 3000000000 + &HFFFFFFFF + 2.5 + 7L')
    values = [t.value for t in toks if t.type in ('INT', 'FLOAT')]
    assert values == [3000000000, -1, 2.5, 7]
    assert type(values[0]) is Long
    assert type(values[3]) is Long


def test_hex_literals_ending_in_letter_digits():
    toks = tokenize('a = &HFFFFFFFF + &HFFFFFFFE + &H80000000 + &H7FFFFFFF + &HFFFFFFFFL')
    values = [t.value for t in toks if t.type == 'INT']
    assert values == [-1, -2, -2147483648, 2147483647, 4294967295]
    assert type(values[4]) is Long


def test_comments_and_line_continuation():
    toks = tokenize("x = 1 + _\n    2 ' trailing note\nREM whole line\n")
    assert [t.value for t in toks if t.type != 'NEWLINE'] == ['x', '=', 1, '+', 2, '']
    assert [t.type for t in toks].count('NEWLINE') == 2


def test_newline_after_operator_is_continued():
    toks = tokenize('total = a +\nb')
    newline = next(t for t in toks if t.type == 'NEWLINE')
    assert newline.continued


def test_bracket_depth_on_newlines():
    toks = tokenize('Foo(1,\n2)\n')
    newlines = [t for t in toks if t.type == 'NEWLINE']
    assert newlines[0].depth == 1
    assert newlines[1].depth == 0


def test_unexpected_character():
    with pytest.raises(ParseError) as excinfo:
        tokenize('x = 1 ~ 2')
    assert excinfo.value.line == 1
