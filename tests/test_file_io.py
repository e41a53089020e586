from vybe.interpreter import run_program


def program_for(path):
    return (
        'Imports System.IO\n'
        'Module Files\n'
        '    Sub Main()\n'
        f'        Dim path As String = "{path}"\n'
        '        File.WriteAllText(path, "alpha" & vbLf)\n'
        '        File.AppendAllText(path, "beta" & vbLf)\n'
        '        Console.WriteLine(File.Exists(path))\n'
        '        Dim lines() As String = File.ReadAllLines(path)\n'
        '        Console.WriteLine(lines.Length & " " & lines(1))\n'
        '        Using writer As New StreamWriter(path, True)\n'
        '            writer.WriteLine("gamma")\n'
        '        End Using\n'
        '        Dim reader As New StreamReader(path)\n'
        '        Dim count As Integer = 0\n'
        '        Do While Not reader.EndOfStream\n'
        '            Console.WriteLine(reader.ReadLine().ToUpper())\n'
        '            count += 1\n'
        '        Loop\n'
        '        reader.Close()\n'
        '        Console.WriteLine(count)\n'
        '    End Sub\n'
        'End Module\n'
    )


def test_file_round_trip(tmp_path, capsys):
    target = tmp_path / 'notes.txt'
    run_program(program_for(target))
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == ['True', '2 beta', 'ALPHA', 'BETA', 'GAMMA', '3']
    assert target.read_text(encoding='utf-8') == 'alpha\nbeta\ngamma\n'


def test_missing_file_is_catchable(tmp_path, capsys):
    source = (
        'Try\n'
        f'    Console.WriteLine(IO.File.ReadAllText("{tmp_path / "absent.txt"}"))\n'
        'Catch ex As FileNotFoundException\n'
        '    Console.WriteLine("missing " & Err.Number)\n'
        'End Try\n'
    )
    run_program(source)
    assert capsys.readouterr().out.strip() == 'missing 53'


def test_directory_listing(tmp_path, capsys):
    (tmp_path / 'b.txt').write_text('x', encoding='utf-8')
    (tmp_path / 'a.txt').write_text('x', encoding='utf-8')
    (tmp_path / 'c.log').write_text('x', encoding='utf-8')
    source = (
        f'For Each name As String In System.IO.Directory.GetFiles("{tmp_path}", "*.txt")\n'
        '    Console.WriteLine(System.IO.Path.GetFileName(name))\n'
        'Next\n'
    )
    run_program(source)
    assert capsys.readouterr().out.strip().split('\n') == ['a.txt', 'b.txt']
