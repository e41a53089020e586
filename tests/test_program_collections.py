from vybe.interpreter import parse_program, Interpreter


def test_program_collections(capsys):
    with open('examples/collections.vb', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == [
        'Alice',
        'Bob',
        '2',
        'duplicate: Add failed. Duplicate key value supplied.',
        'True',
        'apple, banana, fig, pear',
        'apple 4',
        'Ann=32',
        'Ben=25',
        'no Zed',
        '3',
        'y1',
        '0,99,0',
    ]
