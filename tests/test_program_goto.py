from vybe.interpreter import parse_program, Interpreter


def test_program_goto_top_level_script(capsys):
    with open('examples/goto.vb', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == ['start', 'pass 1', 'pass 2', 'pass 3', 'done']
