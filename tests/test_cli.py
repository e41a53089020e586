import pytest

from vybe.__main__ import main


def test_cli_runs_program(capsys):
    main(['examples/hello.vb'])
    assert capsys.readouterr().out.strip() == 'Hello, World!'


def test_cli_runtime_error_exits_with_status_1(tmp_path, capsys):
    program = tmp_path / 'boom.vb'
    program.write_text('Dim zero As Integer = 0\nConsole.WriteLine(1 \\ zero)\n', encoding='utf-8')
    with pytest.raises(SystemExit) as excinfo:
        main([str(program)])
    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert 'Runtime error: DivideByZeroException: Attempted to divide by zero.' in err


def test_cli_syntax_error(tmp_path, capsys):
    program = tmp_path / 'bad.vb'
    program.write_text('While True\n    x = 1\n', encoding='utf-8')
    with pytest.raises(SystemExit) as excinfo:
        main([str(program)])
    assert excinfo.value.code == 1
    assert "Syntax error: missing 'End While'" in capsys.readouterr().err


def test_cli_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit):
        main([str(tmp_path / 'nope.vb')])
    assert 'not found' in capsys.readouterr().err


def test_cli_emit_then_run_ast(tmp_path, capsys):
    program = tmp_path / 'greet.vb'
    program.write_text(
        'Module Greet\n'
        '    Sub Main()\n'
        '        Console.WriteLine("hi from {0}", "json")\n'
        '    End Sub\n'
        'End Module\n',
        encoding='utf-8',
    )
    main(['--emit-ast', str(program)])
    out_path = tmp_path / 'greet.vb.ast.json'
    assert capsys.readouterr().out.strip() == str(out_path)
    assert out_path.exists()
    main(['--ast', str(out_path)])
    assert capsys.readouterr().out.strip() == 'hi from json'


def test_cli_entry_option(tmp_path, capsys):
    program = tmp_path / 'entry.vb'
    program.write_text(
        'Sub Main()\n'
        '    Console.WriteLine("main")\n'
        'End Sub\n'
        'Sub Other()\n'
        '    Console.WriteLine("other")\n'
        'End Sub\n',
        encoding='utf-8',
    )
    main(['--entry', 'Other', str(program)])
    assert capsys.readouterr().out.strip() == 'other'
