from vybe.interpreter import parse_program, Interpreter


def test_program_errors_structured_and_classic(capsys):
    with open('examples/errors.vb', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == [
        'after divide, Err.Number = 11',
        'cleared: 0',
        'handled 9: Index was outside the bounds of the array.',
        'resumed here',
        'caught: Attempted to divide by zero.',
        'finally',
        'invalid: age must not be negative',
        'outer <- inner',
    ]
