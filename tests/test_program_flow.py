from vybe.interpreter import parse_program, Interpreter


def test_program_flow(capsys):
    with open('examples/flow.vb', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == [
        'orelse 0',
        'and 1 False',
        '8',
        '15',
        '1357',
        'ab',
        'one few many',
        'trapped 11',
        'escaped Attempted to divide by zero.',
        'a1b1a2b2a3b3',
        'in-if 3',
        'after',
    ]
