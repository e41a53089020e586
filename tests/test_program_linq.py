from vybe.interpreter import parse_program, Interpreter


def test_program_linq_query_operators(capsys):
    with open('examples/linq.vb', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == [
        '80,20',
        '1 9 28',
        '4.66666666666667',
        'True True',
        'fig kiwi apple banana cherry',
        '4: kiwi',
        '5: apple',
        '3: fig',
        '6: banana/cherry',
        '2,3,4',
        '24',
    ]
