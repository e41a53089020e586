"""CLI entry point for the Vybe interpreter.

Usage:
    python -m vybe [-v|-vv|-vvv] [--entry NAME] <program_file>
    python -m vybe [-v...] --emit-ast <program_file>
    python -m vybe [-v...] [--entry NAME] --ast <ast_json_file>

Options:
  -v            Increase debug verbosity (can be repeated)
  --entry       Procedure to call after the top-level statements (default Main)
  --emit-ast    Parse the given .vb file and emit an AST JSON file
  --ast         Execute a previously emitted AST JSON file

Debug information is written to `debug.txt` in the current directory when
verbosity is greater than zero. The standard library is loaded
automatically.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .ast_json import ast_to_obj, ast_from_obj
from .errors import ParseError
from .interpreter import parse_program, Interpreter


def read_source(path: Path) -> str:
    if not path.exists():
        print(f"Error: file {path} not found", file=sys.stderr)
        sys.exit(1)
    with open(path, 'r', encoding='utf-8-sig') as f:
        return f.read()


def parse_or_exit(source: str):
    try:
        return parse_program(source)
    except ParseError as e:
        print(f"Syntax error: {e}", file=sys.stderr)
        sys.exit(1)


def execute(ast_program, debug_level: int, entry: str):
    interpreter = Interpreter(debug_level=debug_level)
    try:
        interpreter.run(ast_program, entry=entry)
    except Exception as e:
        print(f"Runtime error: {e}", file=sys.stderr)
        sys.exit(1)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Vybe language interpreter")
    parser.add_argument('-v', action='count', default=0, help='increase debug verbosity (can be repeated)')
    parser.add_argument('--entry', default='Main', help='entry procedure to call (default: Main)')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--emit-ast', metavar='VB_FILE', help='emit AST JSON for the given .vb file')
    group.add_argument('--ast', metavar='AST_JSON_FILE', help='execute AST from a JSON file')
    parser.add_argument('program', nargs='?', help='Vybe program file (.vb) to execute')
    args = parser.parse_args(argv)

    # Emit AST mode
    if args.emit_ast:
        program_file = Path(args.emit_ast)
        ast_program = parse_or_exit(read_source(program_file))
        obj = ast_to_obj(ast_program)
        out_path = program_file.with_name(program_file.name + '.ast.json')
        with open(out_path, 'w', encoding='utf-8') as out:
            json.dump(obj, out, ensure_ascii=False, indent=2)
        print(str(out_path))
        return

    # Execute from AST JSON
    if args.ast:
        ast_path = Path(args.ast)
        if not ast_path.exists():
            print(f"Error: file {ast_path} not found", file=sys.stderr)
            sys.exit(1)
        with open(ast_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        execute(ast_from_obj(data), args.v, args.entry)
        return

    # Default: execute source file
    if not args.program:
        parser.error('missing program file; or use --emit-ast/--ast')
    ast_program = parse_or_exit(read_source(Path(args.program)))
    execute(ast_program, args.v, args.entry)


if __name__ == '__main__':
    main()
