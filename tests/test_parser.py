import pytest

from vybe.ast import (
    AssignStmt, BinaryOp, ClassDecl, DimStmt, Ident, IfStmt, Interpolation, InterpolatedString,
    Lambda, Literal, MethodDecl, SelectStmt,
)
from vybe.errors import ParseError
from vybe.interpreter import parse_program


def test_operator_precedence():
    program = parse_program('Dim x = 1 + 2 * 3 ^ 2')
    stmt = program.body[0]
    assert isinstance(stmt, DimStmt)
    expr = stmt.decls[0].expr
    assert isinstance(expr, BinaryOp) and expr.op == '+'
    assert expr.right.op == '*'
    assert expr.right.right.op == '^'


def test_assignment_right_side_equals_is_comparison():
    program = parse_program('flag = a = b')
    stmt = program.body[0]
    assert isinstance(stmt, AssignStmt)
    assert isinstance(stmt.target, Ident) and stmt.target.name == 'flag'
    assert isinstance(stmt.value, BinaryOp) and stmt.value.op == '='


def test_module_with_optional_parameter():
    source = (
        'Module M\n'
        '    Function Add(a As Integer, Optional b As Integer = 1) As Integer\n'
        '        Return a + b\n'
        '    End Function\n'
        'End Module\n'
    )
    program = parse_program(source)
    module = program.body[0]
    assert isinstance(module, ClassDecl) and module.kind == 'module'
    method = module.members[0]
    assert isinstance(method, MethodDecl) and method.is_function
    assert method.return_type.kind == 'Integer'
    assert [p.name for p in method.params] == ['a', 'b']
    assert method.params[1].optional
    assert isinstance(method.params[1].default, Literal) and method.params[1].default.value == 1


def test_single_line_if_with_else():
    program = parse_program('If x > 1 Then y = 2 Else y = 3')
    stmt = program.body[0]
    assert isinstance(stmt, IfStmt)
    assert len(stmt.then_body) == 1 and len(stmt.else_body) == 1


def test_select_case_condition_kinds():
    source = (
        'Select Case n\n'
        '    Case Is < 0\n'
        '        r = "neg"\n'
        '    Case 1 To 9, 42\n'
        '        r = "some"\n'
        '    Case Else\n'
        '        r = "other"\n'
        'End Select\n'
    )
    stmt = parse_program(source).body[0]
    assert isinstance(stmt, SelectStmt)
    assert [c.kind for c in stmt.cases[0].conditions] == ['is']
    assert stmt.cases[0].conditions[0].op == '<'
    assert [c.kind for c in stmt.cases[1].conditions] == ['range', 'value']
    assert stmt.else_body is not None


def test_interpolated_string_holes():
    stmt = parse_program('s = $"{total,-5:F2} and {{x}}"').body[0]
    value = stmt.value
    assert isinstance(value, InterpolatedString)
    hole, tail = value.parts
    assert isinstance(hole, Interpolation)
    assert hole.alignment == -5 and hole.format == 'F2'
    assert tail == ' and {x}'


def test_multiline_lambda_argument():
    source = (
        'Dim f = Function(n As Integer)\n'
        '            Return n * 2\n'
        '        End Function\n'
    )
    decl = parse_program(source).body[0].decls[0]
    assert isinstance(decl.expr, Lambda)
    assert decl.expr.multiline and decl.expr.is_function


def test_missing_end_if_reports_position():
    with pytest.raises(ParseError) as excinfo:
        parse_program('If x Then\n    y = 1\n')
    assert "missing 'End If'" in str(excinfo.value)
    assert excinfo.value.line > 0
