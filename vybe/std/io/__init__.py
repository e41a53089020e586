from .file_io import HostFileSystem, StreamReaderVal, StreamWriterVal
import os
from typing import Any, List

from vybe.types import NOTHING, to_boolean, to_string
from vybe.std.support import arg, text_arg, values_of, string_array, rest_values


def populate_io(registry):
    """Register `File`, `Directory`, `Path` and the stream types.

    Every disk access goes through `interp.filesystem`, so a host-supplied
    file system sees all of them.
    """

    def read_all_text(interp, args: List[Any]) -> Any:
        return interp.filesystem.read_text(text_arg(args, 0))

    def read_all_lines(interp, args: List[Any]) -> Any:
        return string_array(interp.filesystem.read_lines(text_arg(args, 0)))

    def write_all_text(interp, args: List[Any]) -> Any:
        interp.filesystem.write_text(text_arg(args, 0), text_arg(args, 1))

    def append_all_text(interp, args: List[Any]) -> Any:
        interp.filesystem.write_text(text_arg(args, 0), text_arg(args, 1), append=True)

    def lines_text(value: Any) -> str:
        return ''.join(to_string(line) + '\n' for line in values_of(value))

    def write_all_lines(interp, args: List[Any]) -> Any:
        interp.filesystem.write_text(text_arg(args, 0), lines_text(args[1]))

    def append_all_lines(interp, args: List[Any]) -> Any:
        interp.filesystem.write_text(text_arg(args, 0), lines_text(args[1]), append=True)

    def file_exists(interp, args: List[Any]) -> Any:
        path = arg(args, 0, None)
        return path is not None and interp.filesystem.file_exists(to_string(path))

    def delete_file(interp, args: List[Any]) -> Any:
        interp.filesystem.delete_file(text_arg(args, 0))

    def copy_file(interp, args: List[Any]) -> Any:
        interp.filesystem.copy_file(text_arg(args, 0), text_arg(args, 1), to_boolean(arg(args, 2, False)))

    def move_file(interp, args: List[Any]) -> Any:
        interp.filesystem.move_file(text_arg(args, 0), text_arg(args, 1))

    def open_text(interp, args: List[Any]) -> Any:
        return interp.filesystem.open_reader(text_arg(args, 0))

    def create_text(interp, args: List[Any]) -> Any:
        return interp.filesystem.open_writer(text_arg(args, 0))

    def append_text(interp, args: List[Any]) -> Any:
        return interp.filesystem.open_writer(text_arg(args, 0), append=True)

    registry.function(('IO.File.ReadAllText', 'My.Computer.FileSystem.ReadAllText'), read_all_text, 1, 2,
                      category='io')
    registry.function('IO.File.ReadAllLines', read_all_lines, 1, 2, category='io')
    registry.function('IO.File.ReadLines', read_all_lines, 1, 2, category='io')
    registry.function('IO.File.WriteAllText', write_all_text, 2, 3, category='io')
    registry.function('IO.File.AppendAllText', append_all_text, 2, 3, category='io')
    registry.function('IO.File.WriteAllLines', write_all_lines, 2, 3, category='io')
    registry.function('IO.File.AppendAllLines', append_all_lines, 2, 3, category='io')
    registry.function(('IO.File.Exists', 'My.Computer.FileSystem.FileExists'), file_exists, 1, 1, category='io')
    registry.function(('IO.File.Delete', 'Kill'), delete_file, 1, 1, category='io')
    registry.function(('IO.File.Copy', 'FileCopy'), copy_file, 2, 3, category='io')
    registry.function('IO.File.Move', move_file, 2, 3, category='io')
    registry.function('IO.File.OpenText', open_text, 1, 1, category='io')
    registry.function('IO.File.CreateText', create_text, 1, 1, category='io')
    registry.function('IO.File.AppendText', append_text, 1, 1, category='io')

    # ------------------------------------------------------------------
    # Directory
    # ------------------------------------------------------------------
    def create_directory(interp, args: List[Any]) -> Any:
        path = text_arg(args, 0)
        interp.filesystem.create_directory(path)
        return path

    def directory_exists(interp, args: List[Any]) -> Any:
        path = arg(args, 0, None)
        return path is not None and interp.filesystem.directory_exists(to_string(path))

    def delete_directory(interp, args: List[Any]) -> Any:
        interp.filesystem.delete_directory(text_arg(args, 0), to_boolean(arg(args, 1, False)))

    def get_files(interp, args: List[Any]) -> Any:
        return string_array(interp.filesystem.list_entries(text_arg(args, 0), text_arg(args, 1, '*')))

    def get_directories(interp, args: List[Any]) -> Any:
        return string_array(interp.filesystem.list_entries(text_arg(args, 0), text_arg(args, 1, '*'),
                                                           directories=True))

    registry.function(('IO.Directory.CreateDirectory', 'MkDir'), create_directory, 1, 1, category='io')
    registry.function('IO.Directory.Exists', directory_exists, 1, 1, category='io')
    registry.function('IO.Directory.Delete', delete_directory, 1, 2, category='io')
    registry.function('IO.Directory.GetFiles', get_files, 1, 3, category='io')
    registry.function('IO.Directory.GetDirectories', get_directories, 1, 3, category='io')
    registry.function(('IO.Directory.GetCurrentDirectory', 'CurDir'), lambda interp, args: os.getcwd(), 0, 0,
                      category='io')

    # ------------------------------------------------------------------
    # Path
    # ------------------------------------------------------------------
    def path_combine(interp, args: List[Any]) -> Any:
        parts = [to_string(part) for part in rest_values(args, 0)]
        return os.path.join(*parts) if parts else ''

    def path_extension(interp, args: List[Any]) -> Any:
        return os.path.splitext(text_arg(args, 0))[1]

    def path_stem(interp, args: List[Any]) -> Any:
        return os.path.splitext(os.path.basename(text_arg(args, 0)))[0]

    def change_extension(interp, args: List[Any]) -> Any:
        root = os.path.splitext(text_arg(args, 0))[0]
        extension = arg(args, 1, None)
        if extension is None:
            return root
        extension = to_string(extension)
        return root + (extension if extension.startswith('.') or not extension else '.' + extension)

    registry.function('IO.Path.Combine', path_combine, 1, None, category='io')
    registry.function('IO.Path.GetFileName', lambda interp, args: os.path.basename(text_arg(args, 0)), 1, 1,
                      category='io')
    registry.function('IO.Path.GetExtension', path_extension, 1, 1, category='io')
    registry.function('IO.Path.GetFileNameWithoutExtension', path_stem, 1, 1, category='io')
    registry.function('IO.Path.GetDirectoryName', lambda interp, args: os.path.dirname(text_arg(args, 0)), 1, 1,
                      category='io')
    registry.function('IO.Path.GetFullPath', lambda interp, args: os.path.abspath(text_arg(args, 0)), 1, 1,
                      category='io')
    registry.function('IO.Path.ChangeExtension', change_extension, 2, 2, category='io')
    registry.constant('IO.Path.DirectorySeparatorChar', os.sep)

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------
    def new_reader(interp, type_spec, args: List[Any]) -> Any:
        return interp.filesystem.open_reader(text_arg(args, 0))

    def new_writer(interp, type_spec, args: List[Any]) -> Any:
        return interp.filesystem.open_writer(text_arg(args, 0), to_boolean(arg(args, 1, False)))

    registry.constructor('IO.StreamReader', new_reader)
    registry.constructor('IO.StreamWriter', new_writer)

    def read_line(interp, reader: StreamReaderVal, args: List[Any]) -> Any:
        line = reader.read_line()
        return NOTHING if line is None else line

    def close_stream(interp, stream: Any, args: List[Any]) -> Any:
        interp.filesystem.close(stream)

    def writer_write(interp, writer: StreamWriterVal, args: List[Any]) -> Any:
        writer.write(interp.stringify(args[0]))

    def writer_write_line(interp, writer: StreamWriterVal, args: List[Any]) -> Any:
        writer.write((interp.stringify(args[0]) if args else '') + '\n')

    registry.method('streamreader', 'ReadLine', read_line, 0, 0, category='io')
    registry.method('streamreader', 'ReadToEnd', lambda interp, r, args: r.read_to_end(), 0, 0, category='io')
    registry.method('streamreader', 'Read', lambda interp, r, args: r.read_char(), 0, 0, category='io')
    registry.method('streamreader', 'Peek', lambda interp, r, args: r.peek(), 0, 0, category='io')
    registry.method('streamreader', 'EndOfStream', lambda interp, r, args: r.peek() == -1, 0, 0, category='io')
    registry.method('streamwriter', 'Write', writer_write, 1, 1, category='io')
    registry.method('streamwriter', 'WriteLine', writer_write_line, 0, 1, category='io')
    registry.method('streamwriter', 'Flush', lambda interp, w, args: w.flush(), 0, 0, category='io')
    registry.method(('streamreader', 'streamwriter'), ('Close', 'Dispose'), close_stream, 0, 0, category='io')


__all__ = ['HostFileSystem', 'StreamReaderVal', 'StreamWriterVal', 'populate_io']
