from vybe.interpreter import parse_program, Interpreter


def test_program_dates(capsys):
    with open('examples/dates.vb', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    # AddMonths clamps Jan 31 to the last day of February in a leap year.
    assert out_lines == [
        '2024-02-29',
        'February',
        'Wednesday',
        'Mar 1, 2024',
        '30',
        '30',
        'False 28',
        '4',
    ]
