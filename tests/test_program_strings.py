from vybe.interpreter import parse_program, Interpreter


def test_program_strings(capsys):
    with open('examples/strings.vb', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == [
        '[Hello, Vybe World]',
        'Hello|World|Vybe',
        '8 7',
        'HELLO, VYBE WORLD',
        'Hello, Vybe There',
        '4',
        'a-b--c',
        '007',
        'ebyV',
        '1;2;3;',
        'Ada scored 92.5',
        'ab   |   cd',
        '17 Vybe World',
    ]
