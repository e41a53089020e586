from vybe.interpreter import parse_program, Interpreter


def test_program_events(capsys):
    with open('examples/events.vb', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    # OnChanged is removed after the second deposit; the tracker sees all three balances.
    assert out_lines == [
        'balance is now 10',
        'balance is now 15',
        '16 41',
        'audit 10;audit 15;audit 16',
    ]
