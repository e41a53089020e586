from vybe.interpreter import parse_program, Interpreter


def test_program_control_flow(capsys):
    with open('examples/control.vb', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == ['Medium', '3', 'Medium < High', 'ABCF', '25', '35', '22', '64', '0', 'xy']
