"""Tokenizer for the Vybe language.

Tokenizing happens in two stages:

1. **Lexing**: a Lark grammar describes the lexical structure of Vybe
   (identifiers, numeric/string/date literals, operators, comments and the
   explicit ` _` line continuation). Lark's basic lexer turns the source
   text into raw tokens and reports stray characters with their position.

2. **Line joining**: newlines are statement terminators, but Vybe lets a
   statement continue onto the next line inside brackets and after a
   binary operator or comma. Each newline token is annotated with the
   bracket depth it appears at and whether it follows such an operator,
   so the parser can decide which newlines are significant. A multi-line
   lambda inside an argument list raises the depth at which newlines
   count again.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List

from lark import Lark
from lark.exceptions import UnexpectedCharacters, UnexpectedInput

from .errors import ParseError
from .types import Long, INT32_MAX


VYBE_LEXICON = r"""
    start: token*
    ?token: NAME
          | HEX_NUMBER
          | FLOAT_NUMBER
          | INT_NUMBER
          | STRING
          | INTERP_STRING
          | DATE_LITERAL
          | OP
          | NEWLINE

    NAME: /[a-z_][a-z0-9_]*\$?/i
        | /\[[a-z_][a-z0-9_]*\]/i

    HEX_NUMBER.2: /&[hob][0-9a-f]+(ul|us|ui|[lsi])?/i
    FLOAT_NUMBER.1: /(\d+\.\d+|\.\d+)(e[+-]?\d+)?[fdr!#@]?/i
                  | /\d+e[+-]?\d+[fdr!#@]?/i
                  | /\d+[fdr!#@]/i
    INT_NUMBER: /\d+(ul|us|ui|[lsi])?/i

    STRING: /"([^"]|"")*"c?/i
    INTERP_STRING.2: /\$"(""|\{\{|\}\}|\{[^}]*\}|[^"{}])*"/
    DATE_LITERAL: /#[^#\n]+#/

    OP: /<<=|>>=|<>|<=|>=|<<|>>|:=|\+=|-=|\*=|\/=|\\=|\^=|&=/
      | /[-+*\/\\^&=<>(){},.:!?;]/

    NEWLINE: /\n/

    LINE_CONTINUATION.4: /[ \t]+_[ \t]*\n/
    REM_COMMENT.3: /rem\b[^\n]*/i
    COMMENT: /'[^\n]*/
    WS: /[ \t\f\r]+/

    %ignore LINE_CONTINUATION
    %ignore REM_COMMENT
    %ignore COMMENT
    %ignore WS
"""


VYBE_LEXER = Lark(
    VYBE_LEXICON,
    parser='lalr',
    lexer='basic',
    maybe_placeholders=False,
)


# A newline directly after one of these does not end the statement.
CONTINUATION_OPS = {
    ',', '(', '{', '&', '+', '-', '*', '/', '\\', '^', '=', '<', '>', '<=', '>=', '<>',
    ':=', '+=', '-=', '*=', '/=', '\\=', '^=', '&=', '<<', '>>', '<<=', '>>=',
}
CONTINUATION_WORDS = {'and', 'andalso', 'or', 'orelse', 'xor', 'mod', 'like'}


@dataclass
class Token:
    type: str
    value: Any
    line: int
    column: int
    depth: int = 0
    continued: bool = False

    def is_word(self, *words: str) -> bool:
        return self.type == 'NAME' and self.value.lower() in words

    def is_op(self, *ops: str) -> bool:
        return self.type == 'OP' and self.value in ops


def _convert(raw) -> Token:
    kind = raw.type
    text = str(raw)
    line, column = raw.line, raw.column
    if kind == 'NAME':
        if text.startswith('['):
            return Token('IDENT', text[1:-1], line, column)
        return Token('NAME', text.rstrip('$'), line, column)
    if kind == 'HEX_NUMBER':
        base = {'h': 16, 'o': 8, 'b': 2}[text[1].lower()]
        digits = text[2:].rstrip('lsiuLSIU')
        suffix = text[2 + len(digits):]
        try:
            value = int(digits, base)
        except ValueError:
            raise ParseError(f"invalid numeric literal {text}", line, column)
        if suffix.lower() in ('l', 'ul') or value > 0xFFFFFFFF:
            return Token('INT', Long(value), line, column)
        if base == 16 and value > INT32_MAX and not suffix:
            # &HFFFFFFFF is the 32-bit pattern for -1.
            value -= 1 << 32
        return Token('INT', value, line, column)
    if kind == 'INT_NUMBER':
        digits = text.rstrip('lsiuLSIU')
        value = int(digits)
        if text[-1] in 'lL' or value > INT32_MAX:
            return Token('INT', Long(value), line, column)
        return Token('INT', value, line, column)
    if kind == 'FLOAT_NUMBER':
        return Token('FLOAT', float(text.rstrip('fdrFDR!#@')), line, column)
    if kind == 'STRING':
        if text[-1] in 'cC':
            body = text[1:-2].replace('""', '"')
            return Token('CHAR', body[:1], line, column)
        return Token('STRING', text[1:-1].replace('""', '"'), line, column)
    if kind == 'INTERP_STRING':
        return Token('INTERP', text[2:-1], line, column)
    if kind == 'DATE_LITERAL':
        return Token('DATE', text[1:-1].strip(), line, column)
    if kind == 'NEWLINE':
        return Token('NEWLINE', '\n', line, column)
    return Token('OP', text, line, column)


def _lex(source: str):
    try:
        tree = VYBE_LEXER.parse(source)
    except UnexpectedCharacters as e:
        raise ParseError(f"unexpected character {e.char!r}", e.line, e.column)
    except UnexpectedInput as e:
        raise ParseError("unexpected input", getattr(e, 'line', 0), getattr(e, 'column', 0))
    return tree.children


def tokenize(source: str, line_offset: int = 0) -> List[Token]:
    """Convert source text into tokens annotated for line joining."""
    text = source.replace('\r\n', '\n').replace('\r', '\n')
    if not text.endswith('\n'):
        text += '\n'
    tokens: List[Token] = []
    depth = 0
    previous = None
    for raw in _lex(text):
        tok = _convert(raw)
        tok.line += line_offset
        if tok.type == 'NEWLINE':
            tok.depth = depth
            if previous is not None:
                tok.continued = ((previous.type == 'OP' and previous.value in CONTINUATION_OPS)
                                 or (previous.type == 'NAME' and previous.value.lower() in CONTINUATION_WORDS))
            tokens.append(tok)
            continue
        if tok.type == 'OP' and tok.value in ('(', '{'):
            tok.depth = depth
            depth += 1
        elif tok.type == 'OP' and tok.value in (')', '}'):
            depth = max(0, depth - 1)
            tok.depth = depth
        else:
            tok.depth = depth
        tokens.append(tok)
        previous = tok
    last_line = tokens[-1].line if tokens else 1
    tokens.append(Token('EOF', '', last_line + 1, 1))
    return tokens
