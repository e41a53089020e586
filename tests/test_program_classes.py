from vybe.interpreter import parse_program, Interpreter


def test_program_classes_inheritance(capsys):
    with open('examples/classes.vb', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == [
        'circle with area 3.14',
        'square with area 4.00 (side 2)',
        'square with area 9.00 (side 3)',
        '2',
        'Shape(circle)',
        'True',
        'Ada Lovelace',
    ]
