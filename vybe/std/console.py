"""Console facade for Vybe programs: `Console.*`, `Debug.*`, `MsgBox` and `InputBox`."""

from typing import Any, List, Optional

from vybe.types import NOTHING
from vybe.std.conversion import composite_format
from vybe.std.support import arg, text_arg


class ConsoleIO:
    """Default console: standard output through `print`, input through `input`.

    Hosts substitute their own object with the same three methods through
    `Interpreter(console=...)`.
    """

    def write(self, text: str):
        print(text, end='')

    def write_line(self, text: str = ''):
        print(text)

    def read_line(self) -> Optional[str]:
        try:
            return input()
        except EOFError:
            return None


def _render(interp, args: List[Any]) -> str:
    if not args:
        return ''
    if len(args) > 1 and isinstance(args[0], str):
        return composite_format(interp, args[0], args[1:])
    return interp.stringify(args[0])


def populate_console(registry):
    def console_write_line(interp, args: List[Any]) -> Any:
        interp.console.write_line(_render(interp, args))

    def console_write(interp, args: List[Any]) -> Any:
        interp.console.write(_render(interp, args))

    def console_read_line(interp, args: List[Any]) -> Any:
        line = interp.console.read_line()
        return NOTHING if line is None else line

    def debug_print(interp, args: List[Any]) -> Any:
        text = _render(interp, args)
        if interp.debug_level >= 1:
            interp.debug(f"Debug.Print {text}")
        interp.console.write_line(text)

    def msg_box(interp, args: List[Any]) -> Any:
        interp.console.write_line(interp.stringify(arg(args, 0, '')))
        return 1

    def input_box(interp, args: List[Any]) -> Any:
        prompt = text_arg(args, 0)
        if prompt:
            interp.console.write(prompt + ' ')
        line = interp.console.read_line()
        if line is None or line == '':
            return text_arg(args, 2)
        return line

    def console_clear(interp, args: List[Any]) -> Any:
        return None

    registry.function(('Console.WriteLine', 'Console.Out.WriteLine'), console_write_line, 0, None, category='console')
    registry.function(('Console.Write', 'Console.Out.Write'), console_write, 0, None, category='console')
    registry.function(('Console.ReadLine', 'Console.In.ReadLine'), console_read_line, 0, 0, category='console')
    registry.function('Console.Clear', console_clear, 0, 0, category='console')
    registry.function(('Debug.Print', 'Debug.WriteLine', 'Debug.Write', 'Trace.WriteLine'), debug_print, 0, None,
                      category='console')
    registry.function(('MsgBox', 'MessageBox.Show', 'Interaction.MsgBox'), msg_box, 1, 3, category='console')
    registry.function(('InputBox', 'Interaction.InputBox'), input_box, 1, 3, category='console')
    registry.constant(('vbOK', 'MsgBoxResult.Ok', 'DialogResult.OK'), 1)
    registry.constant(('vbCancel', 'MsgBoxResult.Cancel', 'DialogResult.Cancel'), 2)
    registry.constant(('vbYes', 'MsgBoxResult.Yes', 'DialogResult.Yes'), 6)
    registry.constant(('vbNo', 'MsgBoxResult.No', 'DialogResult.No'), 7)
    registry.constant(('vbOKOnly', 'MsgBoxStyle.OkOnly'), 0)
    registry.constant(('vbOKCancel', 'MsgBoxStyle.OkCancel'), 1)
    registry.constant(('vbYesNo', 'MsgBoxStyle.YesNo'), 4)
    registry.constant(('vbInformation', 'MsgBoxStyle.Information'), 64)
    registry.constant(('vbExclamation', 'MsgBoxStyle.Exclamation'), 48)
    registry.constant(('vbCritical', 'MsgBoxStyle.Critical'), 16)
