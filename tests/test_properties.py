import pytest

from vybe.interpreter import run_program


def output_of(source, capsys):
    run_program(source)
    return capsys.readouterr().out.strip().split('\n')


@pytest.mark.parametrize('expression, expected', [
    ('2 + 3 ^ 2', '11'),
    ('4 * 2 ^ 3', '32'),
    ('(True Or True) Xor True', 'False'),
    ('True Or (False And False)', 'True'),
    ('-2 ^ 2', '-4'),
    ('17 \\ 5 * 5 + 17 Mod 5', '17'),
    ('-17 \\ 5 * 5 + -17 Mod 5', '-17'),
    ('"10" = 10', 'True'),
    ('7 / 2', '3.5'),
    ('CInt(2.5) & CInt(3.5)', '24'),
])
def test_expression_values(expression, expected, capsys):
    assert output_of(f'Console.WriteLine({expression})', capsys) == [expected]


def test_closure_sees_later_mutation(capsys):
    source = (
        'Dim n As Integer = 1\n'
        'Dim show = Function() n * 10\n'
        'n = 4\n'
        'Console.WriteLine(show())\n'
    )
    assert output_of(source, capsys) == ['40']


def test_static_local_per_declaration(capsys):
    source = (
        'Function NextId() As Integer\n'
        '    Static counter As Integer\n'
        '    counter += 1\n'
        '    Return counter\n'
        'End Function\n'
        'Function Other() As Integer\n'
        '    Static counter As Integer = 100\n'
        '    counter += 1\n'
        '    Return counter\n'
        'End Function\n'
        'Console.WriteLine(NextId() & " " & NextId() & " " & Other() & " " & NextId())\n'
    )
    assert output_of(source, capsys) == ['1 2 101 3']


def test_byref_array_element_and_field(capsys):
    source = (
        'Class Box\n'
        '    Public Value As Integer\n'
        'End Class\n'
        'Sub Twice(ByRef n As Integer)\n'
        '    n *= 2\n'
        'End Sub\n'
        'Dim arr() As Integer = {1, 2, 3}\n'
        'Dim b As New Box()\n'
        'b.Value = 21\n'
        'Twice(arr(2))\n'
        'Twice(b.Value)\n'
        'Console.WriteLine(arr(2) & " " & b.Value)\n'
    )
    assert output_of(source, capsys) == ['6 42']


def test_goto_forward_and_backward(capsys):
    source = (
        'Dim i As Integer = 0\n'
        'Again:\n'
        'i += 1\n'
        'If i < 3 Then GoTo Again\n'
        'GoTo Finish\n'
        'Console.WriteLine("skipped")\n'
        'Finish:\n'
        'Console.WriteLine(i)\n'
    )
    assert output_of(source, capsys) == ['3']


def test_multidimensional_cells_are_independent(capsys):
    source = (
        'Dim grid(2, 2) As Integer\n'
        'grid(1, 2) = 5\n'
        'grid(2, 1) = 7\n'
        'Console.WriteLine(grid(1, 2) & "," & grid(2, 1) & "," & grid(0, 0))\n'
        'Console.WriteLine(UBound(grid, 2) & " " & grid.Length)\n'
    )
    assert output_of(source, capsys) == ['5,7,0', '2 9']


def test_param_array_counts(capsys):
    source = (
        'Function HowMany(ParamArray items() As Object) As Integer\n'
        '    Return items.Length\n'
        'End Function\n'
        'Console.WriteLine(HowMany() & HowMany(1) & HowMany(1, "a", 2.5))\n'
    )
    assert output_of(source, capsys) == ['013']


def test_on_error_goto_and_resume_label(capsys):
    source = (
        'Sub Work()\n'
        '    On Error GoTo Fail\n'
        '    Err.Raise(5, "Work", "bad call")\n'
        '    Console.WriteLine("not reached")\n'
        'Done:\n'
        '    Console.WriteLine("done")\n'
        '    Exit Sub\n'
        'Fail:\n'
        '    Console.WriteLine(Err.Number & " " & Err.Description)\n'
        '    Resume Done\n'
        'End Sub\n'
        'Work()\n'
        'Console.WriteLine(Err.Number)\n'
    )
    assert output_of(source, capsys) == ['5 bad call', 'done', '0']


def test_error_inside_handler_propagates(capsys):
    source = (
        'Sub Inner()\n'
        '    On Error GoTo Handler\n'
        '    Dim z As Integer = 0\n'
        '    z = 1 \\ z\n'
        '    Exit Sub\n'
        'Handler:\n'
        '    Throw New InvalidOperationException("from handler")\n'
        'End Sub\n'
        'Try\n'
        '    Inner()\n'
        'Catch ex As InvalidOperationException\n'
        '    Console.WriteLine(ex.Message)\n'
        'End Try\n'
    )
    assert output_of(source, capsys) == ['from handler']


def test_finally_runs_on_return(capsys):
    source = (
        'Function Pick() As String\n'
        '    Try\n'
        '        Return "body"\n'
        '    Finally\n'
        '        Console.WriteLine("cleanup")\n'
        '    End Try\n'
        'End Function\n'
        'Console.WriteLine(Pick())\n'
    )
    assert output_of(source, capsys) == ['cleanup', 'body']


def test_async_runs_synchronously(capsys):
    source = (
        'Async Function Compute(x As Integer) As Task(Of Integer)\n'
        '    Await Task.Delay(1)\n'
        '    Return x + 1\n'
        'End Function\n'
        'Dim t = Task.Run(Function() 41)\n'
        'Console.WriteLine(t.Result & " " & Await Compute(1))\n'
    )
    assert output_of(source, capsys) == ['41 2']


def test_delegates_and_address_of(capsys):
    source = (
        'Delegate Function Transform(x As Integer) As Integer\n'
        'Function Triple(x As Integer) As Integer\n'
        '    Return x * 3\n'
        'End Function\n'
        'Dim f As Transform = AddressOf Triple\n'
        'Console.WriteLine(f(4) & " " & f.Invoke(5))\n'
    )
    assert output_of(source, capsys) == ['12 15']


def test_delegate_invoke_through_parameter_and_lambda(capsys):
    source = (
        'Delegate Function Transform(x As Integer) As Integer\n'
        'Function Twice(x As Integer) As Integer\n'
        '    Return x * 2\n'
        'End Function\n'
        'Function Apply(t As Transform, v As Integer) As Integer\n'
        '    Return t.Invoke(v) + 1\n'
        'End Function\n'
        'Dim inc As Func(Of Integer, Integer) = Function(n) n + 1\n'
        'Console.WriteLine(Apply(AddressOf Twice, 10) & " " & inc.Invoke(6))\n'
    )
    assert output_of(source, capsys) == ['21 7']


def test_object_and_collection_initializers(capsys):
    source = (
        'Class Pet\n'
        '    Public Property Name As String\n'
        '    Public Property Age As Integer\n'
        'End Class\n'
        'Dim pets As New List(Of Pet) From {New Pet With {.Name = "Rex", .Age = 3}, New Pet With {.Name = "Tom", .Age = 5}}\n'
        'Dim total = 0\n'
        'For Each p In pets\n'
        '    total += p.Age\n'
        'Next\n'
        'Console.WriteLine(pets(1).Name & " " & total)\n'
    )
    assert output_of(source, capsys) == ['Tom 8']
