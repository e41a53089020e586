"""Parser for the Vybe language.

The parser consumes the tokens produced by :mod:`vybe.lexer` and builds
the AST defined in :mod:`vybe.ast` by recursive descent. Keywords are
matched case-insensitively and are only reserved where a statement or
expression needs them, so any keyword can still be used as a member name
after a dot (`list.Select(...)`, `MyBase.New(...)`).

The public entry points are `parse_program`, which parses a complete
source file, and `parse_expression_str`, used for the holes of
interpolated strings.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple

from .ast import (
    Program, Literal, InterpolatedString, Interpolation, Ident, Me, MyBase,
    BinaryOp, UnaryOp, Call, Member, New, ArrayNew, ArrayLit, Param, Lambda,
    IfExpr, TypeOfIs, Cast, AddressOf, Await, GetTypeExpr, VarDecl, DimStmt,
    ReDimStmt, AssignStmt, ExprStmt, IfStmt, CaseCond, CaseClause, SelectStmt,
    ForStmt, ForEachStmt, WhileStmt, DoLoopStmt, ExitStmt, ContinueStmt,
    ReturnStmt, LabelStmt, GotoStmt, OnErrorStmt, ResumeStmt, CatchClause,
    TryStmt, ThrowStmt, WithStmt, UsingStmt, SyncLockStmt, RaiseEventStmt,
    HandlerStmt, EndStmt, MethodDecl, PropertyDecl, EventDecl, DelegateDecl,
    EnumDecl, ClassDecl, ImportsStmt, Node,
)
from .errors import ParseError
from .lexer import Token, tokenize
from .types import TypeSpec, Long


NAME_TYPES = ('NAME', 'IDENT')

MODIFIER_WORDS = {
    'public', 'private', 'friend', 'protected', 'shared', 'partial', 'mustinherit',
    'notinheritable', 'overrides', 'overridable', 'mustoverride', 'notoverridable',
    'overloads', 'shadows', 'readonly', 'writeonly', 'async', 'iterator', 'default',
    'withevents', 'widening', 'narrowing',
}

# Words that begin a statement form and therefore never name a label.
STATEMENT_WORDS = {
    'dim', 'const', 'static', 'redim', 'if', 'else', 'elseif', 'end', 'select', 'case',
    'for', 'next', 'while', 'wend', 'do', 'loop', 'exit', 'continue', 'return', 'goto',
    'on', 'resume', 'try', 'catch', 'finally', 'throw', 'with', 'using', 'synclock',
    'raiseevent', 'addhandler', 'removehandler', 'call', 'set', 'let', 'erase', 'stop',
    'await',
}

# Words that can never appear where an operand is expected.
NON_OPERAND_WORDS = {
    'then', 'else', 'elseif', 'end', 'next', 'loop', 'wend', 'to', 'step', 'case', 'as',
    'each', 'in', 'is', 'isnot', 'like', 'and', 'andalso', 'or', 'orelse', 'xor', 'mod',
    'dim', 'select', 'catch', 'finally',
}

RELATIONAL_OPS = ('=', '<>', '<', '>', '<=', '>=')
COMPOUND_OPS = {
    '+=': '+', '-=': '-', '*=': '*', '/=': '/', '\\=': '\\', '^=': '^', '&=': '&',
    '<<=': '<<', '>>=': '>>',
}


class Parser:
    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0
        # Newlines count as terminators only at this bracket depth.
        self.newline_floor = 0

    ###########################################################################
    # Token access
    ###########################################################################

    def _significant(self, tok: Token) -> bool:
        if tok.type != 'NEWLINE':
            return True
        return not tok.continued and tok.depth == self.newline_floor

    def _scan(self, k: int) -> int:
        i = self.pos
        seen = 0
        while True:
            tok = self.tokens[i]
            if tok.type == 'EOF':
                return i
            if self._significant(tok):
                if seen == k:
                    return i
                seen += 1
            i += 1

    def peek(self, k: int = 0) -> Token:
        return self.tokens[self._scan(k)]

    def advance(self) -> Token:
        i = self._scan(0)
        tok = self.tokens[i]
        if tok.type != 'EOF':
            self.pos = i + 1
        return tok

    def error(self, message: str, tok: Optional[Token] = None) -> ParseError:
        tok = tok or self.peek()
        return ParseError(message, tok.line, tok.column)

    def at_word(self, *words: str) -> bool:
        return self.peek().is_word(*words)

    def accept_word(self, *words: str) -> bool:
        if self.at_word(*words):
            self.advance()
            return True
        return False

    def expect_word(self, word: str) -> Token:
        tok = self.peek()
        if not tok.is_word(word):
            raise self.error(f"expected '{word}' but found {self.describe(tok)}", tok)
        return self.advance()

    def at_op(self, *ops: str) -> bool:
        return self.peek().is_op(*ops)

    def accept_op(self, *ops: str) -> bool:
        if self.at_op(*ops):
            self.advance()
            return True
        return False

    def expect_op(self, op: str) -> Token:
        tok = self.peek()
        if not tok.is_op(op):
            raise self.error(f"expected '{op}' but found {self.describe(tok)}", tok)
        return self.advance()

    def expect_name(self) -> str:
        tok = self.peek()
        if tok.type not in NAME_TYPES:
            raise self.error(f"expected identifier but found {self.describe(tok)}", tok)
        return self.advance().value

    @staticmethod
    def describe(tok: Token) -> str:
        if tok.type == 'EOF':
            return 'end of input'
        if tok.type == 'NEWLINE':
            return 'end of line'
        return repr(str(tok.value))

    def at_line_end(self) -> bool:
        return self.peek().type in ('NEWLINE', 'EOF')

    def at_statement_end(self) -> bool:
        tok = self.peek()
        return (tok.type in ('NEWLINE', 'EOF') or tok.is_op(':', ')', ',')
                or tok.is_word('else'))

    def end_statement(self):
        tok = self.peek()
        if tok.type == 'NEWLINE' or tok.is_op(':'):
            self.advance()
        elif tok.type != 'EOF':
            raise self.error(f"expected end of statement but found {self.describe(tok)}", tok)

    def skip_separators(self):
        while self.peek().type == 'NEWLINE' or self.at_op(':'):
            self.advance()

    def skip_rest_of_line(self):
        while not self.at_line_end():
            self.advance()

    def at_sequence(self, words: Tuple[str, ...]) -> bool:
        return all(self.peek(i).is_word(w) for i, w in enumerate(words))

    def at_end_block(self, word: str) -> bool:
        return self.at_word('end') and self.peek(1).is_word(word)

    def expect_end(self, word: str):
        self.expect_word('end')
        self.expect_word(word)

    ###########################################################################
    # Program and declarations
    ###########################################################################

    def parse_program(self) -> Program:
        body: List[Node] = []
        self.skip_separators()
        while self.peek().type != 'EOF':
            body.extend(self.parse_member('top'))
            self.skip_separators()
        return Program(body)

    def skip_attributes(self):
        while self.at_op('<') and self.peek(1).type in NAME_TYPES:
            while not self.at_op('>'):
                if self.at_line_end():
                    raise self.error("unterminated attribute")
                self.advance()
            self.advance()
            self.skip_separators()

    def parse_modifiers(self) -> List[str]:
        modifiers = []
        while self.peek().is_word(*MODIFIER_WORDS):
            modifiers.append(self.advance().value.lower())
        return modifiers

    def skip_type_params(self):
        if self.at_op('(') and self.peek(1).is_word('of'):
            depth = 0
            while True:
                tok = self.advance()
                if tok.is_op('('):
                    depth += 1
                elif tok.is_op(')'):
                    depth -= 1
                    if depth == 0:
                        return
                elif tok.type == 'EOF':
                    raise self.error("unterminated type parameter list", tok)

    def parse_member(self, context: str) -> List[Node]:
        """Parse one declaration (or, at top level, one statement)."""
        self.skip_attributes()
        start = self.peek()
        modifiers = self.parse_modifiers()
        tok = self.peek()
        line = tok.line
        if tok.is_word('class', 'structure', 'module', 'interface'):
            return [self.parse_type_block(modifiers)]
        if tok.is_word('namespace'):
            self.advance()
            self.parse_dotted_name()
            self.end_statement()
            items: List[Node] = []
            while True:
                self.skip_separators()
                if self.at_end_block('namespace'):
                    break
                if self.peek().type == 'EOF':
                    raise self.error("missing 'End Namespace'")
                items.extend(self.parse_member('namespace'))
            self.expect_end('namespace')
            return items
        if tok.is_word('imports'):
            self.advance()
            name = self.parse_dotted_name()
            if self.accept_op('='):
                name = self.parse_dotted_name()
            self.end_statement()
            return [ImportsStmt(name, line)]
        if tok.is_word('option'):
            self.skip_rest_of_line()
            return []
        if tok.is_word('enum'):
            return [self.parse_enum()]
        if tok.is_word('delegate'):
            return [self.parse_delegate()]
        if tok.is_word('event'):
            return [self.parse_event(modifiers)]
        if tok.is_word('sub', 'function') and not self.peek(1).is_op('('):
            return [self.parse_method(modifiers, context)]
        if tok.is_word('sub', 'function') and context != 'top':
            return [self.parse_method(modifiers, context)]
        if tok.is_word('property'):
            return [self.parse_property(modifiers, context)]
        if tok.is_word('operator'):
            raise self.error("operator overloading is not supported", tok)
        if context == 'top' and not modifiers:
            return [self.parse_statement()]
        if tok.is_word('dim', 'const') or (modifiers and tok.type in NAME_TYPES):
            is_const = tok.is_word('const')
            if tok.is_word('dim', 'const'):
                self.advance()
            decls = self.parse_declarators(is_const, modifiers, line)
            self.end_statement()
            if context == 'top':
                return [DimStmt(decls, False, line)]
            return list(decls)
        raise self.error(f"unexpected {self.describe(start)} in declaration", start)

    def parse_dotted_name(self) -> str:
        name = self.expect_name()
        while self.at_op('.'):
            self.advance()
            name += '.' + self.expect_name()
        return name

    def parse_type_block(self, modifiers: List[str]) -> ClassDecl:
        tok = self.advance()
        kind = tok.value.lower()
        name = self.expect_name()
        self.skip_type_params()
        self.end_statement()
        base = None
        implements: List[str] = []
        members: List[Node] = []
        while True:
            self.skip_separators()
            if self.at_end_block(kind):
                break
            if self.peek().type == 'EOF':
                raise self.error(f"missing 'End {kind.capitalize()}'")
            if self.accept_word('inherits'):
                names = [self.parse_type().kind]
                while self.accept_op(','):
                    names.append(self.parse_type().kind)
                if kind == 'interface':
                    implements.extend(names)
                else:
                    base = names[0]
                self.end_statement()
                continue
            if self.accept_word('implements'):
                implements.append(self.parse_type().kind)
                while self.accept_op(','):
                    implements.append(self.parse_type().kind)
                self.end_statement()
                continue
            members.extend(self.parse_member(kind))
        self.expect_end(kind)
        return ClassDecl(name, kind, members, base, implements, modifiers, tok.line)

    def parse_enum(self) -> EnumDecl:
        line = self.advance().line
        name = self.expect_name()
        if self.accept_word('as'):
            self.parse_type()
        self.end_statement()
        members: List[Tuple[str, Optional[Node]]] = []
        while True:
            self.skip_separators()
            if self.at_end_block('enum'):
                break
            self.skip_attributes()
            member = self.expect_name()
            value = self.parse_expression() if self.accept_op('=') else None
            members.append((member, value))
            self.end_statement()
        self.expect_end('enum')
        return EnumDecl(name, members, line)

    def parse_delegate(self) -> DelegateDecl:
        line = self.advance().line
        is_function = self.advance().is_word('function')
        name = self.expect_name()
        self.skip_type_params()
        params = self.parse_params() if self.at_op('(') else []
        return_type = self.parse_type() if self.accept_word('as') else None
        self.end_statement()
        return DelegateDecl(name, params, is_function, return_type, line)

    def parse_event(self, modifiers: List[str]) -> EventDecl:
        line = self.advance().line
        name = self.expect_name()
        params = self.parse_params() if self.at_op('(') else []
        if self.accept_word('as'):
            self.parse_type()
            params = [Param('sender'), Param('e')]
        if self.accept_word('implements'):
            self.parse_dotted_name()
        self.end_statement()
        return EventDecl(name, params, modifiers, line)

    def parse_method(self, modifiers: List[str], context: str) -> MethodDecl:
        tok = self.advance()
        kind = tok.value.lower()
        is_function = kind == 'function'
        name_tok = self.peek()
        if name_tok.type not in NAME_TYPES:
            raise self.error("expected procedure name", name_tok)
        name = self.advance().value
        self.skip_type_params()
        params = self.parse_params() if self.at_op('(') else []
        return_type = None
        if is_function and self.accept_word('as'):
            return_type = self.parse_type()
        handles: List[str] = []
        while True:
            if self.accept_word('handles'):
                handles.append(self.parse_dotted_name())
                while self.accept_op(','):
                    handles.append(self.parse_dotted_name())
            elif self.accept_word('implements'):
                self.parse_dotted_name()
                while self.accept_op(','):
                    self.parse_dotted_name()
            else:
                break
        self.end_statement()
        body = None
        if context != 'interface' and 'mustoverride' not in modifiers:
            body = self.parse_block(('end', kind))
            self.expect_end(kind)
        return MethodDecl(name, params, is_function, return_type, body, modifiers, handles, tok.line)

    def parse_property(self, modifiers: List[str], context: str) -> PropertyDecl:
        line = self.advance().line
        name = self.expect_name()
        params = self.parse_params() if self.at_op('(') else []
        type_spec = None
        init = None
        if self.accept_word('as'):
            if self.accept_word('new'):
                init = self.parse_new_rest()
                type_spec = init.type_spec if isinstance(init, New) else None
            else:
                type_spec = self.parse_type()
        if self.accept_op('='):
            init = self.parse_expression()
        if self.accept_word('implements'):
            self.parse_dotted_name()
            while self.accept_op(','):
                self.parse_dotted_name()
        self.end_statement()
        if context == 'interface' or 'mustoverride' in modifiers:
            return PropertyDecl(name, params, type_spec, modifiers=modifiers, line=line)
        self.skip_separators()
        probe = 0
        while self.peek(probe).is_word(*MODIFIER_WORDS):
            probe += 1
        if not self.peek(probe).is_word('get', 'set'):
            return PropertyDecl(name, params, type_spec, is_auto=True, init=init,
                                modifiers=modifiers, line=line)
        prop = PropertyDecl(name, params, type_spec, modifiers=modifiers, line=line)
        while True:
            self.skip_separators()
            if self.at_end_block('property'):
                break
            self.parse_modifiers()
            if self.accept_word('get'):
                self.end_statement()
                prop.getter = self.parse_block(('end', 'get'))
                self.expect_end('get')
            elif self.accept_word('set'):
                if self.at_op('('):
                    set_params = self.parse_params()
                    if set_params:
                        prop.setter_param = set_params[0].name
                self.end_statement()
                prop.setter = self.parse_block(('end', 'set'))
                self.expect_end('set')
            else:
                raise self.error("expected 'Get' or 'Set' in property")
        self.expect_end('property')
        return prop

    def parse_params(self) -> List[Param]:
        self.expect_op('(')
        params: List[Param] = []
        if self.accept_op(')'):
            return params
        while True:
            self.skip_attributes()
            param = Param('')
            while self.peek().is_word('optional', 'byval', 'byref', 'paramarray'):
                word = self.advance().value.lower()
                if word == 'optional':
                    param.optional = True
                elif word == 'byref':
                    param.by_ref = True
                elif word == 'paramarray':
                    param.param_array = True
            param.name = self.expect_name()
            is_array = False
            if self.at_op('(') and self.peek(1).is_op(')'):
                self.advance()
                self.advance()
                is_array = True
            self.accept_op('?')
            if self.accept_word('as'):
                param.type_spec = self.parse_type()
            if is_array or param.param_array:
                base = param.type_spec or TypeSpec.object()
                if not base.rank:
                    base = base.array_of(1)
                param.type_spec = base
            if self.accept_op('='):
                param.default = self.parse_expression()
            params.append(param)
            if not self.accept_op(','):
                break
        self.expect_op(')')
        return params

    def parse_type(self) -> TypeSpec:
        name = self.expect_name()
        while self.at_op('.') and self.peek(1).type in NAME_TYPES:
            self.advance()
            name += '.' + self.advance().value
        args: Tuple[TypeSpec, ...] = ()
        if self.at_op('(') and self.peek(1).is_word('of'):
            self.advance()
            self.advance()
            items = [self.parse_type()]
            while self.accept_op(','):
                items.append(self.parse_type())
            self.expect_op(')')
            args = tuple(items)
        rank = 0
        while self.at_op('(') and self.peek(1).is_op(')', ','):
            self.advance()
            rank += 1
            while self.accept_op(','):
                rank += 1
            self.expect_op(')')
        self.accept_op('?')
        return TypeSpec(name, args, rank)

    def parse_declarators(self, is_const: bool, modifiers: List[str], line: int) -> List[VarDecl]:
        decls: List[VarDecl] = []
        ranks: List[int] = []
        while True:
            name = self.expect_name()
            bounds = None
            rank = 0
            if self.at_op('('):
                self.advance()
                if self.accept_op(')'):
                    rank = 1
                elif self.at_op(','):
                    rank = 1
                    while self.accept_op(','):
                        rank += 1
                    self.expect_op(')')
                else:
                    bounds = [self.parse_expression()]
                    while self.accept_op(','):
                        bounds.append(self.parse_expression())
                    self.expect_op(')')
                    rank = len(bounds)
            self.accept_op('?')
            type_spec = None
            expr = None
            if self.accept_word('as'):
                if self.accept_word('new'):
                    expr = self.parse_new_rest()
                    type_spec = getattr(expr, 'type_spec', None)
                else:
                    type_spec = self.parse_type()
            if self.accept_op('='):
                expr = self.parse_expression()
            if rank and type_spec is not None:
                type_spec = type_spec.array_of(rank + type_spec.rank)
            decls.append(VarDecl(name, type_spec, expr, is_const, bounds, list(modifiers), line))
            ranks.append(rank)
            if not self.accept_op(','):
                break
        # `Dim a, b As Integer` gives both names the trailing type.
        carry: Optional[TypeSpec] = None
        for decl, rank in zip(reversed(decls), reversed(ranks)):
            if decl.type_spec is not None:
                carry = decl.type_spec.element()
            elif decl.expr is None and carry is not None:
                decl.type_spec = carry.array_of(rank) if rank else carry
            elif rank:
                decl.type_spec = TypeSpec.object().array_of(rank)
        return decls

    ###########################################################################
    # Statements
    ###########################################################################

    def parse_block(self, *enders: Tuple[str, ...]) -> List[Node]:
        body: List[Node] = []
        while True:
            self.skip_separators()
            tok = self.peek()
            if tok.type == 'EOF':
                closing = next((words for words in enders if words[0] == 'end'), enders[0])
                raise self.error(f"missing '{' '.join(w.capitalize() for w in closing)}'", tok)
            if any(self.at_sequence(words) for words in enders):
                return body
            body.append(self.parse_statement())

    def parse_statement(self) -> Node:
        tok = self.peek()
        line = tok.line
        if tok.type == 'NAME':
            word = tok.value.lower()
            if word not in STATEMENT_WORDS and word not in MODIFIER_WORDS and self.peek(1).is_op(':'):
                self.advance()
                self.advance()
                return LabelStmt(tok.value, line)
            handler = getattr(self, f'parse_{word}_stmt', None)
            if handler is not None and word in STATEMENT_WORDS:
                return handler()
        if tok.type == 'INT' and self.peek(1).is_op(':'):
            self.advance()
            self.advance()
            return LabelStmt(str(tok.value), line)
        return self.parse_simple_statement()

    def parse_simple_statement(self) -> Node:
        line = self.peek().line
        target = self.parse_postfix()
        tok = self.peek()
        if tok.is_op('='):
            self.advance()
            return AssignStmt(target, self.parse_expression(), None, line)
        if tok.type == 'OP' and tok.value in COMPOUND_OPS:
            self.advance()
            return AssignStmt(target, self.parse_expression(), COMPOUND_OPS[tok.value], line)
        if isinstance(target, Call):
            return ExprStmt(target, line)
        if isinstance(target, (Ident, Member)):
            if not self.at_statement_end():
                args = [self.parse_expression()]
                while self.accept_op(','):
                    args.append(self.parse_expression())
                return ExprStmt(Call(target, args), line)
            return ExprStmt(Call(target, []), line)
        return ExprStmt(target, line)

    def parse_inline_statements(self) -> List[Node]:
        body = [self.parse_statement()]
        while self.at_op(':'):
            self.advance()
            if self.at_line_end() or self.at_word('else'):
                break
            body.append(self.parse_statement())
        return body

    def parse_dim_stmt(self) -> Node:
        line = self.advance().line
        decls = self.parse_declarators(False, [], line)
        return DimStmt(decls, False, line)

    def parse_const_stmt(self) -> Node:
        line = self.advance().line
        decls = self.parse_declarators(True, [], line)
        return DimStmt(decls, False, line)

    def parse_static_stmt(self) -> Node:
        line = self.advance().line
        decls = self.parse_declarators(False, ['static'], line)
        return DimStmt(decls, True, line)

    def parse_redim_stmt(self) -> Node:
        line = self.advance().line
        preserve = self.accept_word('preserve')
        target = self.parse_postfix()
        if not isinstance(target, Call) or not target.args:
            raise self.error("ReDim requires array bounds")
        if self.accept_word('as'):
            self.parse_type()
        return ReDimStmt(target.func, list(target.args), preserve, line)

    def parse_erase_stmt(self) -> Node:
        line = self.advance().line
        target = self.parse_postfix()
        return AssignStmt(target, Literal(None, 'Nothing'), None, line)

    def parse_set_stmt(self) -> Node:
        self.advance()
        return self.parse_simple_statement()

    parse_let_stmt = parse_set_stmt

    def parse_call_stmt(self) -> Node:
        line = self.advance().line
        expr = self.parse_postfix()
        if not isinstance(expr, Call):
            expr = Call(expr, [])
        return ExprStmt(expr, line)

    def parse_await_stmt(self) -> Node:
        line = self.peek().line
        return ExprStmt(self.parse_expression(), line)

    def parse_stop_stmt(self) -> Node:
        line = self.advance().line
        return EndStmt(line)

    def parse_end_stmt(self) -> Node:
        tok = self.advance()
        if not self.at_statement_end():
            raise self.error(f"unexpected 'End {self.peek().value}'")
        return EndStmt(tok.line)

    def parse_if_stmt(self) -> Node:
        line = self.advance().line
        condition = self.parse_expression()
        self.accept_word('then')
        if not self.at_line_end():
            then_body = self.parse_inline_statements()
            else_body = None
            if self.accept_word('else'):
                else_body = self.parse_inline_statements()
            return IfStmt(condition, then_body, [], else_body, line)
        enders = (('elseif',), ('else',), ('end', 'if'))
        then_body = self.parse_block(*enders)
        elseifs: List[Tuple[Node, List[Node]]] = []
        else_body = None
        while True:
            if self.at_word('elseif') or (self.at_word('else') and self.peek(1).is_word('if')):
                if self.accept_word('else'):
                    self.advance()
                else:
                    self.advance()
                cond = self.parse_expression()
                self.accept_word('then')
                elseifs.append((cond, self.parse_block(*enders)))
            elif self.accept_word('else'):
                else_body = self.parse_block(('end', 'if'))
            else:
                break
        self.expect_end('if')
        return IfStmt(condition, then_body, elseifs, else_body, line)

    def parse_select_stmt(self) -> Node:
        line = self.advance().line
        self.accept_word('case')
        subject = self.parse_expression()
        self.end_statement()
        cases: List[CaseClause] = []
        else_body = None
        enders = (('case',), ('end', 'select'))
        while True:
            self.skip_separators()
            if self.at_end_block('select'):
                break
            self.expect_word('case')
            if self.accept_word('else'):
                else_body = self.parse_block(*enders)
                continue
            conditions = [self.parse_case_condition()]
            while self.accept_op(','):
                conditions.append(self.parse_case_condition())
            cases.append(CaseClause(conditions, self.parse_block(*enders)))
        self.expect_end('select')
        return SelectStmt(subject, cases, else_body, line)

    def parse_case_condition(self) -> CaseCond:
        if self.accept_word('is') or self.at_op(*RELATIONAL_OPS):
            tok = self.peek()
            if not tok.is_op(*RELATIONAL_OPS):
                raise self.error("expected comparison operator after 'Is'", tok)
            self.advance()
            return CaseCond('is', self.parse_expression(), None, tok.value)
        expr = self.parse_expression()
        if self.accept_word('to'):
            return CaseCond('range', expr, self.parse_expression())
        return CaseCond('value', expr)

    def parse_for_stmt(self) -> Node:
        line = self.advance().line
        if self.accept_word('each'):
            var = Ident(self.expect_name())
            var_type = self.parse_type() if self.accept_word('as') else None
            self.expect_word('in')
            iterable = self.parse_expression()
            self.end_statement()
            body = self.parse_block(('next',))
            self.parse_next()
            return ForEachStmt(var, var_type, iterable, body, line)
        var = Ident(self.expect_name())
        var_type = self.parse_type() if self.accept_word('as') else None
        self.expect_op('=')
        start = self.parse_expression()
        self.expect_word('to')
        end = self.parse_expression()
        step = self.parse_expression() if self.accept_word('step') else None
        self.end_statement()
        body = self.parse_block(('next',))
        self.parse_next()
        return ForStmt(var, var_type, start, end, step, body, line)

    def parse_next(self):
        self.expect_word('next')
        if self.peek().type in NAME_TYPES and not self.at_word('else'):
            self.advance()

    def parse_while_stmt(self) -> Node:
        line = self.advance().line
        condition = self.parse_expression()
        self.end_statement()
        body = self.parse_block(('end', 'while'), ('wend',))
        if not self.accept_word('wend'):
            self.expect_end('while')
        return WhileStmt(condition, body, line)

    def parse_do_stmt(self) -> Node:
        line = self.advance().line
        stmt = DoLoopStmt([], line=line)
        if self.at_word('while', 'until'):
            stmt.pre_kind = self.advance().value.lower()
            stmt.pre_cond = self.parse_expression()
        self.end_statement()
        stmt.body = self.parse_block(('loop',))
        self.expect_word('loop')
        if self.at_word('while', 'until'):
            stmt.post_kind = self.advance().value.lower()
            stmt.post_cond = self.parse_expression()
        return stmt

    def parse_exit_stmt(self) -> Node:
        line = self.advance().line
        tok = self.peek()
        if not tok.is_word('sub', 'function', 'property', 'for', 'do', 'while', 'select', 'try'):
            raise self.error(f"unexpected {self.describe(tok)} after 'Exit'", tok)
        return ExitStmt(self.advance().value.lower(), line)

    def parse_continue_stmt(self) -> Node:
        line = self.advance().line
        tok = self.peek()
        if not tok.is_word('for', 'do', 'while'):
            raise self.error(f"unexpected {self.describe(tok)} after 'Continue'", tok)
        return ContinueStmt(self.advance().value.lower(), line)

    def parse_return_stmt(self) -> Node:
        line = self.advance().line
        value = None if self.at_statement_end() else self.parse_expression()
        return ReturnStmt(value, line)

    def parse_label_name(self) -> str:
        tok = self.peek()
        if tok.type in NAME_TYPES or tok.type == 'INT':
            return str(self.advance().value)
        raise self.error("expected label", tok)

    def parse_goto_stmt(self) -> Node:
        line = self.advance().line
        return GotoStmt(self.parse_label_name(), line)

    def parse_on_stmt(self) -> Node:
        line = self.advance().line
        self.expect_word('error')
        if self.accept_word('resume'):
            self.expect_word('next')
            return OnErrorStmt('resume_next', None, line)
        self.expect_word('goto')
        if self.accept_op('-'):
            self.advance()
            return OnErrorStmt('reset', None, line)
        tok = self.peek()
        if tok.type == 'INT' and tok.value == 0:
            self.advance()
            return OnErrorStmt('disable', None, line)
        return OnErrorStmt('goto', self.parse_label_name(), line)

    def parse_resume_stmt(self) -> Node:
        line = self.advance().line
        if self.at_statement_end():
            return ResumeStmt('retry', None, line)
        if self.accept_word('next'):
            return ResumeStmt('next', None, line)
        return ResumeStmt('label', self.parse_label_name(), line)

    def parse_try_stmt(self) -> Node:
        line = self.advance().line
        self.end_statement()
        enders = (('catch',), ('finally',), ('end', 'try'))
        body = self.parse_block(*enders)
        catches: List[CatchClause] = []
        finally_body = None
        while self.accept_word('catch'):
            name = None
            type_spec = None
            when = None
            if self.peek().type in NAME_TYPES and not self.at_word('when'):
                name = self.expect_name()
                if self.accept_word('as'):
                    type_spec = self.parse_type()
            if self.accept_word('when'):
                when = self.parse_expression()
            self.end_statement()
            catches.append(CatchClause(name, type_spec, when, self.parse_block(*enders)))
        if self.accept_word('finally'):
            self.end_statement()
            finally_body = self.parse_block(('end', 'try'))
        self.expect_end('try')
        return TryStmt(body, catches, finally_body, line)

    def parse_throw_stmt(self) -> Node:
        line = self.advance().line
        expr = None if self.at_statement_end() else self.parse_expression()
        return ThrowStmt(expr, line)

    def parse_with_stmt(self) -> Node:
        line = self.advance().line
        target = self.parse_expression()
        self.end_statement()
        body = self.parse_block(('end', 'with'))
        self.expect_end('with')
        return WithStmt(target, body, line)

    def parse_using_stmt(self) -> Node:
        line = self.advance().line
        name = None
        type_spec = None
        if self.peek().type in NAME_TYPES and self.peek(1).is_word('as'):
            name = self.expect_name()
            self.advance()
            if self.accept_word('new'):
                resource = self.parse_new_rest()
                type_spec = resource.type_spec if isinstance(resource, New) else None
            else:
                type_spec = self.parse_type()
                self.expect_op('=')
                resource = self.parse_expression()
        elif self.peek().type in NAME_TYPES and self.peek(1).is_op('='):
            name = self.expect_name()
            self.advance()
            resource = self.parse_expression()
        else:
            resource = self.parse_expression()
        self.end_statement()
        body = self.parse_block(('end', 'using'))
        self.expect_end('using')
        return UsingStmt(name, type_spec, resource, body, line)

    def parse_synclock_stmt(self) -> Node:
        line = self.advance().line
        lock = self.parse_expression()
        self.end_statement()
        body = self.parse_block(('end', 'synclock'))
        self.expect_end('synclock')
        return SyncLockStmt(lock, body, line)

    def parse_raiseevent_stmt(self) -> Node:
        line = self.advance().line
        name = self.expect_name()
        args: List[Node] = []
        if self.at_op('('):
            raw, _named = self.parse_call_args()
            args = [a for a in raw if a is not None]
        return RaiseEventStmt(name, args, line)

    def parse_addhandler_stmt(self) -> Node:
        tok = self.advance()
        event = self.parse_expression()
        self.expect_op(',')
        handler = self.parse_expression()
        return HandlerStmt(event, handler, tok.is_word('removehandler'), tok.line)

    parse_removehandler_stmt = parse_addhandler_stmt

    ###########################################################################
    # Expressions
    ###########################################################################

    def parse_expression(self) -> Node:
        return self.parse_xor()

    def _binary_level(self, operand: Callable[[], Node], words: Tuple[str, ...] = (),
                      ops: Tuple[str, ...] = ()) -> Node:
        node = operand()
        while True:
            tok = self.peek()
            if words and tok.is_word(*words):
                op = tok.value.lower()
            elif ops and tok.is_op(*ops):
                op = tok.value
            else:
                return node
            self.advance()
            node = BinaryOp(op, node, operand())

    def parse_xor(self) -> Node:
        return self._binary_level(self.parse_or, words=('xor',))

    def parse_or(self) -> Node:
        return self._binary_level(self.parse_and, words=('or', 'orelse'))

    def parse_and(self) -> Node:
        return self._binary_level(self.parse_not, words=('and', 'andalso'))

    def parse_not(self) -> Node:
        if self.accept_word('not'):
            return UnaryOp('not', self.parse_not())
        return self.parse_relational()

    def parse_relational(self) -> Node:
        return self._binary_level(self.parse_shift, words=('is', 'isnot', 'like'), ops=RELATIONAL_OPS)

    def parse_shift(self) -> Node:
        return self._binary_level(self.parse_concat, ops=('<<', '>>'))

    def parse_concat(self) -> Node:
        return self._binary_level(self.parse_additive, ops=('&',))

    def parse_additive(self) -> Node:
        return self._binary_level(self.parse_multiplicative, ops=('+', '-'))

    def parse_multiplicative(self) -> Node:
        return self._binary_level(self.parse_unary, words=('mod',), ops=('*', '/', '\\'))

    def parse_unary(self) -> Node:
        if self.accept_op('-'):
            return UnaryOp('-', self.parse_unary())
        if self.accept_op('+'):
            return UnaryOp('+', self.parse_unary())
        return self.parse_exponent()

    def parse_exponent(self) -> Node:
        base = self.parse_postfix()
        if self.accept_op('^'):
            # Right operand may itself be negated or raised: 2 ^ -1, 2 ^ 3 ^ 2.
            return BinaryOp('^', base, self.parse_unary())
        return base

    def parse_postfix(self) -> Node:
        node = self.parse_primary()
        while True:
            tok = self.peek()
            if tok.is_op('('):
                if self.peek(1).is_word('of'):
                    self.skip_type_params()
                    continue
                args, named = self.parse_call_args()
                node = Call(node, args, named)
            elif tok.is_op('.'):
                self.advance()
                node = Member(node, self.expect_member_name())
            elif tok.is_op('!') and self.peek(1).type in NAME_TYPES:
                self.advance()
                node = Call(node, [Literal(self.advance().value, 'String')])
            else:
                return node

    def expect_member_name(self) -> str:
        tok = self.peek()
        if tok.type not in NAME_TYPES:
            raise self.error(f"expected member name but found {self.describe(tok)}", tok)
        return self.advance().value

    def parse_call_args(self) -> Tuple[List[Optional[Node]], List[Tuple[str, Node]]]:
        self.expect_op('(')
        args: List[Optional[Node]] = []
        named: List[Tuple[str, Node]] = []
        if self.accept_op(')'):
            return args, named
        while True:
            tok = self.peek()
            if tok.is_op(',', ')'):
                args.append(None)
            elif tok.type in NAME_TYPES and self.peek(1).is_op(':='):
                self.advance()
                self.advance()
                named.append((tok.value, self.parse_expression()))
            else:
                args.append(self.parse_expression())
            if not self.accept_op(','):
                break
        self.expect_op(')')
        return args, named

    def parse_array_literal(self) -> ArrayLit:
        self.expect_op('{')
        elements: List[Node] = []
        if not self.at_op('}'):
            elements.append(self.parse_expression())
            while self.accept_op(','):
                elements.append(self.parse_expression())
        self.expect_op('}')
        return ArrayLit(elements)

    def parse_primary(self) -> Node:
        tok = self.peek()
        if tok.type == 'INT':
            self.advance()
            return Literal(int(tok.value), 'Long' if isinstance(tok.value, Long) else 'Integer')
        if tok.type == 'FLOAT':
            self.advance()
            return Literal(tok.value, 'Double')
        if tok.type == 'STRING':
            self.advance()
            return Literal(tok.value, 'String')
        if tok.type == 'CHAR':
            self.advance()
            return Literal(tok.value, 'Char')
        if tok.type == 'DATE':
            self.advance()
            return Literal(tok.value, 'Date')
        if tok.type == 'INTERP':
            self.advance()
            return self.parse_interpolated(tok)
        if tok.type == 'IDENT':
            self.advance()
            return Ident(tok.value)
        if tok.is_op('('):
            self.advance()
            expr = self.parse_expression()
            self.expect_op(')')
            return expr
        if tok.is_op('{'):
            return self.parse_array_literal()
        if tok.is_op('.'):
            self.advance()
            return Member(None, self.expect_member_name())
        if tok.type != 'NAME':
            raise self.error(f"unexpected {self.describe(tok)} in expression", tok)
        word = tok.value.lower()
        if word in ('true', 'false'):
            self.advance()
            return Literal(word == 'true', 'Boolean')
        if word == 'nothing':
            self.advance()
            return Literal(None, 'Nothing')
        if word in ('me', 'myclass'):
            self.advance()
            return Me()
        if word == 'mybase':
            self.advance()
            return MyBase()
        if word == 'new':
            self.advance()
            return self.parse_new_rest()
        if word in ('function', 'sub'):
            return self.parse_lambda()
        if word == 'async' and self.peek(1).is_word('function', 'sub'):
            self.advance()
            return self.parse_lambda()
        if word == 'if' and self.peek(1).is_op('('):
            self.advance()
            self.advance()
            first = self.parse_expression()
            self.expect_op(',')
            second = self.parse_expression()
            if self.accept_op(','):
                third = self.parse_expression()
                self.expect_op(')')
                return IfExpr(first, second, third)
            self.expect_op(')')
            return IfExpr(None, first, second)
        if word == 'typeof':
            self.advance()
            expr = self.parse_postfix()
            if self.accept_word('isnot'):
                negate = True
            else:
                self.expect_word('is')
                negate = False
            return TypeOfIs(expr, self.parse_type(), negate)
        if word in ('ctype', 'directcast', 'trycast') and self.peek(1).is_op('('):
            self.advance()
            self.advance()
            expr = self.parse_expression()
            self.expect_op(',')
            type_spec = self.parse_type()
            self.expect_op(')')
            return Cast(word, expr, type_spec)
        if word == 'addressof':
            self.advance()
            return AddressOf(self.parse_postfix())
        if word == 'await':
            self.advance()
            return Await(self.parse_unary())
        if word == 'not':
            self.advance()
            return UnaryOp('not', self.parse_unary())
        if word == 'gettype' and self.peek(1).is_op('('):
            self.advance()
            self.advance()
            type_spec = self.parse_type()
            self.expect_op(')')
            return GetTypeExpr(type_spec)
        if word == 'nameof' and self.peek(1).is_op('('):
            self.advance()
            self.advance()
            expr = self.parse_expression()
            self.expect_op(')')
            if isinstance(expr, Member):
                return Literal(expr.name, 'String')
            if isinstance(expr, Ident):
                return Literal(expr.name, 'String')
            raise self.error("NameOf requires a name")
        if word in NON_OPERAND_WORDS:
            raise self.error(f"unexpected keyword {tok.value!r} in expression", tok)
        self.advance()
        return Ident(tok.value)

    def parse_new_rest(self) -> Node:
        """Parse what follows `New`: an object or array creation."""
        type_spec = self.parse_type()
        args: List[Optional[Node]] = []
        if self.at_op('('):
            args, _named = self.parse_call_args()
        if self.at_op('{'):
            init = self.parse_array_literal()
            if type_spec.rank:
                return ArrayNew(type_spec.element(), None, init, type_spec.rank)
            bounds = [a for a in args if a is not None]
            return ArrayNew(type_spec, bounds or None, init, len(bounds) or 1)
        if type_spec.rank:
            type_spec = type_spec.element()
        node = New(type_spec, [a for a in args if a is not None])
        if self.accept_word('from'):
            node.collection_init = self.parse_array_literal().elements
        if self.accept_word('with'):
            self.expect_op('{')
            node.member_init = []
            if not self.at_op('}'):
                while True:
                    self.expect_op('.')
                    name = self.expect_member_name()
                    self.expect_op('=')
                    node.member_init.append((name, self.parse_expression()))
                    if not self.accept_op(','):
                        break
            self.expect_op('}')
        return node

    def parse_lambda(self) -> Node:
        kind = self.advance().value.lower()
        is_function = kind == 'function'
        params = self.parse_params() if self.at_op('(') else []
        if is_function and self.accept_word('as'):
            self.parse_type()
        raw = self.tokens[self.pos]
        if raw.type == 'NEWLINE' and not raw.continued:
            saved = self.newline_floor
            self.newline_floor = raw.depth
            try:
                body = self.parse_block(('end', kind))
                self.expect_end(kind)
            finally:
                self.newline_floor = saved
            return Lambda(params, is_function, body, True)
        if is_function:
            return Lambda(params, True, self.parse_expression(), False)
        return Lambda(params, False, self.parse_statement(), False)

    def parse_interpolated(self, tok: Token) -> Node:
        text = tok.value
        parts: List[Any] = []
        buf: List[str] = []
        i = 0
        while i < len(text):
            c = text[i]
            if text.startswith('{{', i) or text.startswith('}}', i):
                buf.append(c)
                i += 2
                continue
            if text.startswith('""', i):
                buf.append('"')
                i += 2
                continue
            if c == '{':
                end = text.find('}', i)
                if end < 0:
                    raise self.error("unterminated interpolation hole", tok)
                if buf:
                    parts.append(''.join(buf))
                    buf = []
                parts.append(self.parse_hole(text[i + 1:end], tok))
                i = end + 1
                continue
            buf.append(c)
            i += 1
        if buf:
            parts.append(''.join(buf))
        return InterpolatedString(parts)

    def parse_hole(self, hole: str, tok: Token) -> Interpolation:
        depth = 0
        in_string = False
        split_fmt = None
        split_align = None
        for i, c in enumerate(hole):
            if c == '"':
                in_string = not in_string
            elif in_string:
                continue
            elif c == '(':
                depth += 1
            elif c == ')':
                depth -= 1
            elif depth == 0 and c == ',' and split_align is None and split_fmt is None:
                split_align = i
            elif depth == 0 and c == ':' and split_fmt is None:
                split_fmt = i
                break
        fmt = None
        alignment = None
        end = len(hole)
        if split_fmt is not None:
            fmt = hole[split_fmt + 1:]
            end = split_fmt
        if split_align is not None:
            try:
                alignment = int(hole[split_align + 1:end].strip())
            except ValueError:
                raise self.error("invalid interpolation alignment", tok)
            end = split_align
        expr = parse_expression_str(hole[:end], tok.line, tok.column)
        return Interpolation(expr, fmt, alignment)


def parse_expression_str(text: str, line: int = 1, column: int = 1) -> Node:
    """Parse a standalone expression, e.g. the hole of an interpolated string."""
    parser = Parser(tokenize(text, line_offset=max(0, line - 1)))
    parser.skip_separators()
    expr = parser.parse_expression()
    parser.skip_separators()
    if parser.peek().type != 'EOF':
        raise parser.error(f"unexpected {parser.describe(parser.peek())} in expression")
    return expr


def parse_program(source: str) -> Program:
    """Parse Vybe source code into an AST Program.

    Any syntax errors are raised as `ParseError` carrying the line and
    column of the offending token.
    """
    return Parser(tokenize(source)).parse_program()
