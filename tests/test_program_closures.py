from vybe.interpreter import parse_program, Interpreter


def test_program_closures(capsys):
    """Lambdas capture their defining scope, ByRef arguments write back,
    Static locals survive between calls and ParamArray collects extras."""
    with open('examples/closures.vb', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == ['x = 5', '3', '15', 'Tally 1', 'Tally 2', 'Tally 3', '0', '3']
