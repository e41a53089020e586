import builtins
from vybe.interpreter import parse_program, Interpreter


def test_program_sum_input(monkeypatch, capsys):
    monkeypatch.setattr(builtins, 'input', lambda prompt='': '5')
    with open('examples/sum_input.vb', 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter()
    interp.run(ast)
    out = capsys.readouterr().out.strip()
    assert out == 'sum(1..5) = 15'
