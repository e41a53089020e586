"""Host file system facade used by the `File`, `Directory` and stream natives.

This is the only place the interpreter touches the disk. Hosts that want
to sandbox programs pass their own object with the same methods through
`Interpreter(filesystem=...)`.
"""

import fnmatch
import os
import shutil
from typing import List, Optional, TextIO

from vybe.errors import raise_exception


class StreamReaderVal:
    """An open text file read line by line."""
    type_label = 'StreamReader'
    display_name = 'System.IO.StreamReader'
    receiver_kind = 'streamreader'

    def __init__(self, handle: TextIO):
        self.handle = handle

    @property
    def closed(self) -> bool:
        return self.handle.closed

    def read_line(self) -> Optional[str]:
        line = self.handle.readline()
        if line == '':
            return None
        return line.rstrip('\r\n') if line.endswith('\n') else line

    def read_to_end(self) -> str:
        return self.handle.read()

    def peek(self) -> int:
        position = self.handle.tell()
        char = self.handle.read(1)
        self.handle.seek(position)
        return ord(char) if char else -1

    def read_char(self) -> int:
        char = self.handle.read(1)
        return ord(char) if char else -1

    def close(self):
        self.handle.close()


class StreamWriterVal:
    """An open text file written sequentially."""
    type_label = 'StreamWriter'
    display_name = 'System.IO.StreamWriter'
    receiver_kind = 'streamwriter'

    def __init__(self, handle: TextIO):
        self.handle = handle

    def write(self, text: str):
        self.handle.write(text)

    def flush(self):
        self.handle.flush()

    def close(self):
        self.handle.close()


class HostFileSystem:
    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding
        self.open_files: List[object] = []

    def _check_file(self, path: str):
        if not os.path.isfile(path):
            if os.path.isdir(os.path.dirname(path) or '.'):
                raise_exception('FileNotFoundException', f"Could not find file '{path}'.")
            raise_exception('DirectoryNotFoundException', f"Could not find a part of the path '{path}'.")

    def _check_parent(self, path: str):
        parent = os.path.dirname(path)
        if parent and not os.path.isdir(parent):
            raise_exception('DirectoryNotFoundException', f"Could not find a part of the path '{path}'.")

    def read_text(self, path: str) -> str:
        self._check_file(path)
        try:
            with open(path, 'r', encoding=self.encoding, newline='') as f:
                return f.read()
        except OSError as e:
            raise_exception('IOException', f"Error reading file '{path}': {e.strerror}")

    def read_lines(self, path: str) -> List[str]:
        return self.read_text(path).splitlines()

    def write_text(self, path: str, data: str, append: bool = False):
        self._check_parent(path)
        try:
            with open(path, 'a' if append else 'w', encoding=self.encoding, newline='') as f:
                f.write(data)
        except OSError as e:
            raise_exception('IOException', f"Error writing file '{path}': {e.strerror}")

    def file_exists(self, path: str) -> bool:
        return os.path.isfile(path)

    def directory_exists(self, path: str) -> bool:
        return os.path.isdir(path)

    def delete_file(self, path: str):
        if not os.path.exists(path):
            return
        try:
            os.remove(path)
        except OSError as e:
            raise_exception('IOException', f"Error deleting file '{path}': {e.strerror}")

    def copy_file(self, source: str, dest: str, overwrite: bool = False):
        self._check_file(source)
        if os.path.exists(dest) and not overwrite:
            raise_exception('IOException', f"The file '{dest}' already exists.")
        try:
            shutil.copy(source, dest)
        except OSError as e:
            raise_exception('IOException', f"Error copying file '{source}': {e.strerror}")

    def move_file(self, source: str, dest: str):
        self._check_file(source)
        if os.path.exists(dest):
            raise_exception('IOException', f"Cannot create '{dest}' because a file or directory with the same name already exists.")
        try:
            shutil.move(source, dest)
        except OSError as e:
            raise_exception('IOException', f"Error moving file '{source}': {e.strerror}")

    def create_directory(self, path: str):
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise_exception('IOException', f"Error creating directory '{path}': {e.strerror}")

    def delete_directory(self, path: str, recursive: bool = False):
        if not os.path.isdir(path):
            raise_exception('DirectoryNotFoundException', f"Could not find a part of the path '{path}'.")
        try:
            if recursive:
                shutil.rmtree(path)
            else:
                os.rmdir(path)
        except OSError as e:
            raise_exception('IOException', f"Error deleting directory '{path}': {e.strerror}")

    def list_entries(self, path: str, pattern: str = '*', directories: bool = False) -> List[str]:
        if not os.path.isdir(path):
            raise_exception('DirectoryNotFoundException', f"Could not find a part of the path '{path}'.")
        found = []
        for name in sorted(os.listdir(path)):
            full = os.path.join(path, name)
            if os.path.isdir(full) == directories and fnmatch.fnmatch(name, pattern):
                found.append(full)
        return found

    def open_reader(self, path: str) -> StreamReaderVal:
        self._check_file(path)
        try:
            reader = StreamReaderVal(open(path, 'r', encoding=self.encoding))
        except OSError as e:
            raise_exception('IOException', f"Error opening file '{path}': {e.strerror}")
        self.open_files.append(reader)
        return reader

    def open_writer(self, path: str, append: bool = False) -> StreamWriterVal:
        self._check_parent(path)
        try:
            writer = StreamWriterVal(open(path, 'a' if append else 'w', encoding=self.encoding))
        except OSError as e:
            raise_exception('IOException', f"Error opening file '{path}': {e.strerror}")
        self.open_files.append(writer)
        return writer

    def close(self, stream):
        stream.close()
        if stream in self.open_files:
            self.open_files.remove(stream)

    def close_all(self):
        for stream in list(self.open_files):
            self.close(stream)
