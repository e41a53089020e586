import json

import pytest

from vybe.ast import BinaryOp, Literal
from vybe.ast_json import ast_from_obj, ast_to_obj
from vybe.interpreter import parse_program, Interpreter


def test_node_serialization_shape():
    node = BinaryOp('+', Literal(1, 'Integer'), Literal('a', 'String'))
    obj = ast_to_obj(node)
    assert obj['type'] == 'BinaryOp'
    assert obj['left'] == {'type': 'Literal', 'value': 1, 'literal_type': 'Integer'}
    assert ast_from_obj(obj) == node


def test_program_runs_from_json_round_trip(capsys):
    with open('examples/classes.vb', 'r', encoding='utf-8') as f:
        source = f.read()
    Interpreter().run(parse_program(source))
    expected = capsys.readouterr().out

    data = json.loads(json.dumps(ast_to_obj(parse_program(source))))
    Interpreter().run(ast_from_obj(data))
    assert capsys.readouterr().out == expected


def test_unknown_node_type():
    with pytest.raises(ValueError):
        ast_from_obj({'type': 'NoSuchNode'})
