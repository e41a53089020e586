import pytest

from vybe.errors import VybeError
from vybe.interpreter import parse_program, run_program, Interpreter


class ScriptedConsole:
    """Collects output lines and answers ReadLine from a fixed list."""

    def __init__(self, answers=()):
        self.lines = ['']
        self.answers = list(answers)

    def write(self, text):
        self.lines[-1] += text

    def write_line(self, text=''):
        self.lines[-1] += text
        self.lines.append('')

    def read_line(self):
        return self.answers.pop(0) if self.answers else None


def test_custom_console_receives_output():
    console = ScriptedConsole(['Grace'])
    source = (
        'Dim name As String = Console.ReadLine()\n'
        'Console.Write("Hi, ")\n'
        'Console.WriteLine(name)\n'
        'Console.WriteLine(Console.ReadLine() Is Nothing)\n'
    )
    run_program(source, console=console)
    assert console.lines == ['Hi, Grace', 'True', '']


def test_unhandled_throw_propagates():
    with pytest.raises(VybeError) as excinfo:
        run_program('Throw New InvalidOperationException("boom")')
    assert str(excinfo.value) == 'InvalidOperationException: boom'


def test_unknown_entry_point():
    with pytest.raises(VybeError) as excinfo:
        Interpreter().run(parse_program('Sub Main()\nEnd Sub\n'), entry='Start')
    assert excinfo.value.category == 'MissingMemberException'


def test_runaway_recursion_is_reported():
    source = (
        'Function Down(n As Integer) As Integer\n'
        '    Return Down(n + 1)\n'
        'End Function\n'
        'Down(0)\n'
    )
    with pytest.raises(VybeError) as excinfo:
        run_program(source, max_call_depth=50)
    assert excinfo.value.category == 'StackOverflowException'


def test_call_procedure_after_run(capsys):
    source = (
        'Module MathHelpers\n'
        '    Function Square(x As Integer) As Integer\n'
        '        Return x * x\n'
        '    End Function\n'
        'End Module\n'
    )
    interp = Interpreter()
    interp.run(parse_program(source))
    assert interp.call_procedure('Square', 7) == 49


def test_register_native(capsys):
    interp = Interpreter()
    interp.register_native('HostAdd', lambda a, b: a + b, 2, 2)
    interp.run(parse_program('Console.WriteLine(HostAdd(2, 3))'))
    assert capsys.readouterr().out.strip() == '5'


def test_end_statement_stops_program(capsys):
    run_program('Console.WriteLine("before")\nEnd\nConsole.WriteLine("after")\n')
    assert capsys.readouterr().out.strip() == 'before'


def test_integer_overflow_into_typed_variable(capsys):
    source = (
        'Dim big As Long = 2147483647 + 1\n'
        'Console.WriteLine(big)\n'
        'Dim small As Integer\n'
        'Try\n'
        '    small = big\n'
        'Catch ex As OverflowException\n'
        '    Console.WriteLine("overflow")\n'
        'End Try\n'
    )
    run_program(source)
    assert capsys.readouterr().out.strip().split('\n') == ['2147483648', 'overflow']


def test_byref_requires_variable():
    source = (
        'Sub Bump(ByRef n As Integer)\n'
        '    n += 1\n'
        'End Sub\n'
        'Bump(1 + 2)\n'
    )
    with pytest.raises(VybeError):
        run_program(source)


def test_properties_with_backing_field(capsys):
    source = (
        'Class Temperature\n'
        '    Private _celsius As Double\n'
        '    Public Property Celsius As Double\n'
        '        Get\n'
        '            Return _celsius\n'
        '        End Get\n'
        '        Set(value As Double)\n'
        '            If value < -273.15 Then Throw New ArgumentOutOfRangeException("value")\n'
        '            _celsius = value\n'
        '        End Set\n'
        '    End Property\n'
        '    Public ReadOnly Property Fahrenheit As Double\n'
        '        Get\n'
        '            Return _celsius * 9 / 5 + 32\n'
        '        End Get\n'
        '    End Property\n'
        'End Class\n'
        'Dim t As New Temperature()\n'
        't.Celsius = 100\n'
        'Console.WriteLine(t.Fahrenheit)\n'
        'Try\n'
        '    t.Celsius = -300\n'
        'Catch ex As ArgumentException\n'
        '    Console.WriteLine("rejected " & t.Celsius)\n'
        'End Try\n'
    )
    run_program(source)
    assert capsys.readouterr().out.strip().split('\n') == ['212', 'rejected 100']


def test_interfaces_and_type_checks(capsys):
    source = (
        'Interface IGreeter\n'
        '    Function Greet(name As String) As String\n'
        'End Interface\n'
        'Class Polite\n'
        '    Implements IGreeter\n'
        '    Public Function Greet(name As String) As String Implements IGreeter.Greet\n'
        '        Return "Good day, " & name\n'
        '    End Function\n'
        'End Class\n'
        'Dim g As IGreeter = New Polite()\n'
        'Console.WriteLine(g.Greet("Lin"))\n'
        'Console.WriteLine(TypeOf g Is IGreeter)\n'
        'Console.WriteLine(TypeName(g))\n'
    )
    run_program(source)
    assert capsys.readouterr().out.strip().split('\n') == ['Good day, Lin', 'True', 'Polite']


@pytest.mark.parametrize('statement, message', [
    ('Exit For', "'Exit For' must appear inside a matching block."),
    ('Continue Do', "'Continue Do' must appear inside a matching loop."),
])
def test_loop_exit_outside_loop_is_rejected(statement, message, capsys):
    source = (
        'Sub Work()\n'
        '    Console.WriteLine("start")\n'
        f'    {statement}\n'
        '    Console.WriteLine("not reached")\n'
        'End Sub\n'
        'Work()\n'
    )
    with pytest.raises(VybeError) as excinfo:
        run_program(source)
    assert excinfo.value.category == 'InvalidOperationException'
    assert excinfo.value.message == message
    assert capsys.readouterr().out == 'start\n'


def test_variable_named_like_a_class_is_a_clash():
    source = (
        'Class P\n'
        'End Class\n'
        'Dim p As New P()\n'
    )
    with pytest.raises(VybeError) as excinfo:
        run_program(source)
    assert excinfo.value.message == "'p' clashes with the type of the same name in this scope."
