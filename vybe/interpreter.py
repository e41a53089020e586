"""Interpreter for the Vybe language.

The interpreter walks the AST produced by `vybe.parser` directly. Each
procedure activation gets a `Frame` holding its scope, its return slot and
its unstructured error-handling state (`On Error`). Statement execution
returns `None` or a control-flow signal (`ReturnSignal`, `ExitSignal`,
`ContinueSignal`, `GotoSignal`, `ResumeSignal`) that enclosing statement
lists and loops consume; raised errors travel as `VybeError` exceptions.

Library calls go through the `BuiltinRegistry`; see `vybe.std` for the
natives themselves.
"""

from __future__ import annotations

import random
import sys
from dataclasses import fields
from typing import Any, Dict, List, Optional, Tuple

from .ast import (
    AddressOf, ArrayLit, ArrayNew, AssignStmt, Await, BinaryOp, Call, Cast, ClassDecl,
    ContinueStmt, DelegateDecl, DimStmt, DoLoopStmt, EndStmt, EnumDecl, EventDecl,
    ExitStmt, ExprStmt, ForEachStmt, ForStmt, GetTypeExpr, GotoStmt, HandlerStmt, Ident,
    IfExpr, IfStmt, ImportsStmt, InterpolatedString, LabelStmt, Lambda, Literal, Me,
    Member, MethodDecl, MyBase, New, Node, OnErrorStmt, Param, Program, PropertyDecl,
    RaiseEventStmt, ReDimStmt, ResumeStmt, ReturnStmt, SelectStmt, SyncLockStmt,
    ThrowStmt, TryStmt, TypeOfIs, UnaryOp, UsingStmt, VarDecl, WhileStmt, WithStmt,
)
from .builtin_function import (
    BoundBuiltin, BuiltinFunction, BuiltinRegistry, default_registry, receiver_kind,
)
from .collection_types import iterate_values
from .environment import Cell, Environment
from .errors import (
    BindingError, ContinueSignal, ExitSignal, GotoSignal, ProgramEnd, ResumeSignal,
    ReturnSignal, VybeError, exception_chain, is_builtin_exception,
    normalize_exception_name, raise_exception, unresolved,
)
from .objects import (
    BaseRef, BoundProperty, ClassDef, ClassEnvironment, ConstructorRef, DelegateVal,
    ElementCell, EnumDef, EnumVal, ErrObject, LambdaVal, MethodGroup, NamespaceRef,
    ObjectVal, Procedure, PropertyCell, get_element, is_indexable, member_cell,
    set_element,
)
from .operators import binary_op, compare_values, unary_op
from .parser import parse_program
from .std.console import ConsoleIO
from .std.conversion import format_value
from .std.io.file_io import HostFileSystem
from .types import (
    ArrayVal, ExceptionVal, Long, NOTHING, OBJECT_KINDS, TaskVal, TypeSpec,
    coerce_value, default_value, to_boolean, to_date, to_integer, to_string, type_name,
)


_NO_RECEIVER = object()
_UNSET = object()

# `TypeOf x Is T` spellings that name the same runtime type.
_TYPE_ALIASES = {
    'int32': 'integer', 'int16': 'integer', 'short': 'integer', 'byte': 'integer',
    'int64': 'long', 'single': 'double', 'decimal': 'double', 'datetime': 'date',
    'bool': 'boolean',
}

_LOOP_KINDS = {ForStmt: 'for', ForEachStmt: 'for', WhileStmt: 'while', DoLoopStmt: 'do'}

# Declarations with their own activation keep their labels to themselves.
_OWN_SCOPE = (Lambda, MethodDecl, PropertyDecl, ClassDecl)


def _nested_blocks(node: Any):
    """Statement lists directly nested inside `node`."""
    if not isinstance(node, Node) or isinstance(node, _OWN_SCOPE):
        return
    for field in fields(node):
        value = getattr(node, field.name)
        if isinstance(value, list):
            if value and isinstance(value[0], tuple):
                for item in value:
                    yield from (part for part in item if isinstance(part, list))
            elif value and isinstance(value[0], Node):
                yield value
        elif isinstance(value, Node):
            yield from _nested_blocks(value)


class Frame:
    """Activation record of one procedure, property accessor or lambda call."""

    def __init__(self, name: str, env: Environment, decl: Any = None, cls: Optional[ClassDef] = None,
                 obj: Optional[ObjectVal] = None):
        self.name = name
        self.env = env
        self.decl = decl
        self.cls = cls
        self.obj = obj
        self.is_function = False
        self.return_name: Optional[str] = None
        self.return_type: Optional[TypeSpec] = None
        self.return_value: Any = NOTHING
        # Unstructured error handling: None, 'resume_next' or 'goto'.
        self.error_mode: Optional[str] = None
        self.error_label: Optional[str] = None
        self.in_handler = False
        self.body: Optional[List[Node]] = None
        self.caught: List[VybeError] = []
        self.with_stack: List[Any] = []

    def __repr__(self) -> str:
        return f"<frame {self.name}>"


class Argument:
    """An argument expression, evaluated at most once and on first use."""
    __slots__ = ('interp', 'node', 'env', '_value')

    def __init__(self, interp: 'Interpreter', node: Optional[Node], env: Optional[Environment],
                 value: Any = _UNSET):
        self.interp = interp
        self.node = node
        self.env = env
        self._value = value

    @classmethod
    def of(cls, interp: 'Interpreter', value: Any) -> 'Argument':
        return cls(interp, None, None, NOTHING if value is None else value)

    @property
    def missing(self) -> bool:
        return self.node is None and self._value is _UNSET

    @property
    def value(self) -> Any:
        if self._value is _UNSET:
            self._value = NOTHING if self.node is None else self.interp.evaluate(self.node, self.env)
        return self._value

    def cell(self) -> Optional[Any]:
        """The storage the argument names, for ByRef binding."""
        if self.node is None:
            return Cell(self.value)
        return self.interp.address_of(self.node, self.env)


class Interpreter:
    """Core interpreter that executes Vybe ASTs."""

    def __init__(self, debug_level: int = 0, debug_file: str = 'debug.txt', console: Any = None,
                 filesystem: Any = None, max_call_depth: int = 512,
                 registry: Optional[BuiltinRegistry] = None):
        self.global_env = Environment(name='<global>')
        self.registry = registry if registry is not None else default_registry()
        self.console = console if console is not None else ConsoleIO()
        self.filesystem = filesystem if filesystem is not None else HostFileSystem()
        self.max_call_depth = max_call_depth
        self.classes: Dict[str, ClassDef] = {}
        self.enums: Dict[str, EnumDef] = {}
        self.delegates: Dict[str, DelegateDecl] = {}
        self.statics: Dict[Tuple[int, Any], Cell] = {}
        self.handlers: Dict[str, List[Any]] = {}
        self.labels: Dict[int, Dict[str, int]] = {}
        self.script: List[Node] = []
        self.err = ErrObject()
        self.random = random.Random()
        self.frames: List[Frame] = [Frame('<global>', self.global_env)]
        self.debug_level = debug_level
        self.debug_fp = open(debug_file, 'w') if debug_level > 0 else None
        sys.setrecursionlimit(max(sys.getrecursionlimit(), 20000))

    def debug(self, msg: str):
        if self.debug_level > 0:
            if self.debug_fp:
                self.debug_fp.write(msg + '\n')
                self.debug_fp.flush()
            else:
                print(msg)

    @property
    def frame(self) -> Frame:
        return self.frames[-1]

    ###########################################################################
    # Loading
    ###########################################################################

    def load(self, *programs: Program):
        """Register the declarations of one or more parsed programs."""
        new_classes: List[ClassDef] = []
        for program in programs:
            for node in program.body:
                self.register(node, new_classes)
        for cls in new_classes:
            self.link_base(cls)
        for cls in new_classes:
            self.setup_shared_env(cls)
        for cls in new_classes:
            self.initialize_shared(cls)

    def register(self, node: Node, new_classes: List[ClassDef]):
        if isinstance(node, ClassDecl):
            key = node.name.lower()
            cls = self.classes.get(key)
            if cls is None:
                cls = ClassDef(node.name, node.kind, self.global_env)
                self.classes[key] = cls
                new_classes.append(cls)
                self.global_env.bind(node.name, Cell(cls, is_const=True))
                if self.debug_level >= 2:
                    self.debug(f"define {node.kind} {node.name}")
            cls.add_members(node)
            for member in node.members:
                if isinstance(member, (ClassDecl, EnumDecl, DelegateDecl)):
                    self.register(member, new_classes)
        elif isinstance(node, EnumDecl):
            self.register_enum(node)
        elif isinstance(node, DelegateDecl):
            self.delegates[node.name.lower()] = node
        elif isinstance(node, MethodDecl):
            procedure = Procedure(node, None, self.global_env)
            cell = self.global_env.cells.get(node.name.lower())
            if cell is not None and isinstance(cell.value, MethodGroup):
                cell.value.procedures.append(procedure)
            else:
                self.global_env.bind(node.name, Cell(MethodGroup(node.name, [procedure]), is_const=True))
            if self.debug_level >= 2:
                self.debug(f"define procedure {node.name}")
        elif isinstance(node, (ImportsStmt, EventDecl, PropertyDecl)):
            return
        else:
            self.script.append(node)

    def register_enum(self, node: EnumDecl):
        enum = EnumDef(node.name)
        scope = Environment(self.global_env, node.name)
        next_value = 0
        for name, expr in node.members:
            if expr is not None:
                next_value = to_integer(self.evaluate(expr, scope))
            member = EnumVal(next_value, node.name, name)
            enum.members[name.lower()] = member
            scope.bind(name, Cell(member, is_const=True))
            next_value += 1
        self.enums[node.name.lower()] = enum
        self.global_env.bind(node.name, Cell(enum, is_const=True))
        if self.debug_level >= 2:
            self.debug(f"define enum {node.name} ({len(enum.members)} members)")

    def link_base(self, cls: ClassDef):
        if not cls.base_name or cls.base is not None:
            return
        base = self.find_class(cls.base_name)
        if base is not None:
            cls.base = base
        elif not is_builtin_exception(normalize_exception_name(cls.base_name)):
            raise BindingError('MissingMemberException', f"Type '{cls.base_name}' is not defined.")

    def setup_shared_env(self, cls: ClassDef):
        if cls.shared_env is not None:
            return
        if cls.base is not None:
            self.setup_shared_env(cls.base)
        parent = cls.base.shared_env if cls.base is not None else self.global_env
        cls.shared_env = ClassEnvironment(parent, cls)
        cls.interp = self

    def initialize_shared(self, cls: ClassDef):
        frame = Frame(cls.name, cls.shared_env, None, cls)
        self.frames.append(frame)
        try:
            for decl in cls.shared_fields:
                if cls.shared_env.has_local(decl.name):
                    continue
                value = self.initial_value(decl, cls.shared_env)
                value = self.default_for(decl.type_spec) if value is None else self.prepare(value, decl.type_spec)
                cls.shared_env.declare(decl.name, decl.type_spec, value, decl.is_const)
        finally:
            self.frames.pop()
        for decl in cls.shared_constructors:
            self.call_user(Procedure(decl, cls, cls.shared_env), [], [])
        if cls.kind == 'module':
            # Module members also resolve unqualified, through the same cells.
            for key, cell in cls.shared_env.cells.items():
                self.global_env.cells.setdefault(key, cell)
            for key in list(cls.methods) + list(cls.properties):
                if key not in self.global_env.cells:
                    cell = member_cell(cls, None, key, cls)
                    if cell is not None:
                        self.global_env.cells[key] = cell
        if self.debug_level >= 2:
            self.debug(f"initialized {cls.kind} {cls.name}")

    def find_class(self, name: str) -> Optional[ClassDef]:
        return self.classes.get(name.split('.')[-1].lower())

    ###########################################################################
    # Public API
    ###########################################################################

    def run(self, program: Optional[Program] = None, entry: str = 'Main') -> Any:
        """Load `program`, run its top-level statements, then call `entry`."""
        try:
            if program is not None:
                self.load(program)
            self.run_script()
            return self.call_entry(entry)
        except ProgramEnd:
            return NOTHING
        finally:
            if isinstance(self.filesystem, HostFileSystem):
                self.filesystem.close_all()
            if self.debug_fp:
                self.debug_fp.close()
                self.debug_fp = None

    def run_script(self):
        statements, self.script = self.script, []
        if not statements:
            return
        self.frame.body = statements
        signal = self.execute_block(statements, self.global_env)
        if isinstance(signal, GotoSignal):
            raise BindingError('InvalidOperationException', f"Label '{signal.label}' is not defined.")
        self.check_stray_signal(signal)

    @staticmethod
    def check_stray_signal(signal: Any):
        """Reject `Exit`/`Continue` statements that reached a procedure boundary."""
        if isinstance(signal, ExitSignal) and signal.kind not in ('sub', 'function', 'property'):
            raise BindingError('InvalidOperationException',
                               f"'Exit {signal.kind.capitalize()}' must appear inside a matching block.")
        if isinstance(signal, ContinueSignal):
            raise BindingError('InvalidOperationException',
                               f"'Continue {signal.kind.capitalize()}' must appear inside a matching loop.")

    def call_entry(self, entry: str) -> Any:
        group = None
        cell = self.global_env.lookup(entry)
        if cell is not None and isinstance(cell.value, MethodGroup):
            group = cell.value
        else:
            for cls in self.classes.values():
                procedures = [Procedure(d, cls, cls.shared_env) for d, _ in cls.find_method(entry.lower())
                              if 'shared' in d.modifiers or cls.kind == 'module']
                if procedures:
                    group = MethodGroup(entry, procedures)
                    break
        if group is None:
            if entry.lower() == 'main':
                return NOTHING
            raise BindingError('MissingMemberException', f"Entry point '{entry}' was not found.")
        if self.debug_level >= 1:
            self.debug(f"entry {entry}")
        decl = group.procedures[0].decl
        args = []
        if len(decl.params) == 1 and not decl.params[0].optional:
            args = [Argument.of(self, ArrayVal(TypeSpec.string(), [0]))]
        return self.invoke(group, args)

    def call_procedure(self, name: str, *args: Any) -> Any:
        """Call a procedure by (possibly dotted) name with host values."""
        parts = name.split('.')
        target = self.lookup_name(parts[0], self.global_env, invoke=False)
        for part in parts[1:]:
            target = self.get_member(target, part, invoke=False)
        if not self.is_callable(target):
            raise BindingError('MissingMemberException', f"'{name}' is not a procedure.")
        return self.call_function(target, list(args))

    def invoke_event_handler(self, name: str, sender: Any, event_args: Any) -> Any:
        """Drive a handler the way a form would: `(sender, e)`."""
        return self.call_procedure(name, sender, event_args)

    def register_native(self, name: str, fn, min_args: int = 0, max_args: Optional[int] = None):
        """Expose a host function `fn(*values)` to Vybe code as `name`."""
        def native(interp, args):
            return fn(*[None if value is NOTHING else value for value in args])
        return self.registry.function(name, native, min_args, max_args, category='host')

    def call_function(self, callee: Any, values: List[Any]) -> Any:
        """Invoke a Vybe callable with already evaluated argument values."""
        return self.invoke(callee, [Argument.of(self, v) for v in values], [])

    ###########################################################################
    # Statements
    ###########################################################################

    def execute_block(self, statements: List[Node], env: Environment) -> Any:
        i = 0
        count = len(statements)
        while i < count:
            try:
                signal = self.execute(statements[i], env)
            except VybeError as e:
                frame = self.frame
                if frame.error_mode is None or frame.in_handler:
                    raise
                self.err.capture(e)
                if self.debug_level >= 1:
                    self.debug(f"trapped {e.category}: {e.message} ({frame.error_mode})")
                if frame.error_mode == 'resume_next':
                    i += 1
                    continue
                signal = self.run_error_handler(frame, statements, env)
                if isinstance(signal, ResumeSignal):
                    if signal.mode == 'next':
                        i += 1
                    continue
            if signal is None:
                i += 1
                continue
            if isinstance(signal, GotoSignal):
                target = self.find_label(statements, signal.label)
                if target is None:
                    return signal
                i = target
                continue
            return signal
        return None

    def run_error_handler(self, frame: Frame, statements: List[Node], env: Environment) -> Any:
        """Run the `On Error GoTo` handler while the failing statement list is still active.

        Returns the `ResumeSignal` ending the handler (`Resume label` comes
        back as a `GotoSignal`), or whatever signal leaves the procedure from
        inside it. Running off the end of the handler ends the procedure.
        """
        located = self.locate_label(frame.body if frame.body is not None else statements, frame.error_label)
        if located is None:
            raise BindingError('InvalidOperationException', f"Label '{frame.error_label}' is not defined.")
        handler, i = located
        handler_env = env if handler is statements else frame.env
        frame.in_handler = True
        count = len(handler)
        while i < count:
            signal = self.execute(handler[i], handler_env)
            if signal is None:
                i += 1
                continue
            if isinstance(signal, GotoSignal):
                target = self.find_label(handler, signal.label)
                if target is None:
                    return signal
                i = target
                continue
            if isinstance(signal, ResumeSignal):
                frame.in_handler = False
                self.err.clear()
                if signal.mode == 'label':
                    return GotoSignal(signal.label)
            return signal
        return ReturnSignal(None)

    def locate_label(self, statements: List[Node], label: str) -> Optional[Tuple[List[Node], int]]:
        """The statement list declaring `label`, searched through nested blocks, and its index."""
        index = self.find_label(statements, label)
        if index is not None:
            return statements, index
        for stmt in statements:
            for block in _nested_blocks(stmt):
                found = self.locate_label(block, label)
                if found is not None:
                    return found
        return None

    def find_label(self, statements: List[Node], label: str) -> Optional[int]:
        labels = self.labels.get(id(statements))
        if labels is None:
            labels = {s.name.lower(): i for i, s in enumerate(statements) if isinstance(s, LabelStmt)}
            self.labels[id(statements)] = labels
        return labels.get(label.lower())

    def execute(self, node: Node, env: Environment) -> Any:
        if isinstance(node, ExprStmt):
            self.evaluate(node.expr, env)
            return None
        if isinstance(node, AssignStmt):
            self.execute_assign(node, env)
            return None
        if isinstance(node, DimStmt):
            for decl in node.decls:
                self.declare_local(decl, env, node.is_static or 'static' in decl.modifiers)
            return None
        if isinstance(node, IfStmt):
            if to_boolean(self.evaluate(node.condition, env)):
                return self.execute_block(node.then_body, Environment(env))
            for condition, body in node.elseifs:
                if to_boolean(self.evaluate(condition, env)):
                    return self.execute_block(body, Environment(env))
            if node.else_body is not None:
                return self.execute_block(node.else_body, Environment(env))
            return None
        if isinstance(node, SelectStmt):
            return self.execute_select(node, env)
        if isinstance(node, ForStmt):
            return self.execute_for(node, env)
        if isinstance(node, ForEachStmt):
            return self.execute_for_each(node, env)
        if isinstance(node, WhileStmt):
            loop_env = Environment(env)
            while to_boolean(self.evaluate(node.condition, loop_env)):
                signal = self.execute_block(node.body, loop_env)
                if self.loop_ends(signal, 'while'):
                    break
                if self.loop_passes(signal, 'while'):
                    return signal
            return None
        if isinstance(node, DoLoopStmt):
            return self.execute_do(node, env)
        if isinstance(node, ExitStmt):
            return ExitSignal(node.kind)
        if isinstance(node, ContinueStmt):
            return ContinueSignal(node.kind)
        if isinstance(node, ReturnStmt):
            if node.value is None:
                return ReturnSignal(None)
            return ReturnSignal(self.evaluate(node.value, env))
        if isinstance(node, LabelStmt):
            return None
        if isinstance(node, GotoStmt):
            return GotoSignal(node.label)
        if isinstance(node, OnErrorStmt):
            frame = self.frame
            if node.mode == 'reset':
                frame.in_handler = False
            elif node.mode == 'disable':
                frame.error_mode = None
                frame.error_label = None
            else:
                frame.error_mode = node.mode
                frame.error_label = node.label
            self.err.clear()
            return None
        if isinstance(node, ResumeStmt):
            if not self.frame.in_handler:
                raise_exception('InvalidOperationException', 'Resume without error.')
            return ResumeSignal(node.mode, node.label)
        if isinstance(node, TryStmt):
            return self.execute_try(node, env)
        if isinstance(node, ThrowStmt):
            self.execute_throw(node, env)
        if isinstance(node, ReDimStmt):
            self.execute_redim(node, env)
            return None
        if isinstance(node, WithStmt):
            target = self.evaluate(node.target, env)
            self.frame.with_stack.append(target)
            try:
                return self.execute_block(node.body, Environment(env))
            finally:
                self.frame.with_stack.pop()
        if isinstance(node, UsingStmt):
            resource = self.evaluate(node.resource, env)
            body_env = Environment(env)
            if node.name:
                body_env.declare(node.name, node.type_spec, resource)
            try:
                return self.execute_block(node.body, body_env)
            finally:
                self.dispose(resource)
        if isinstance(node, SyncLockStmt):
            self.evaluate(node.lock, env)
            return self.execute_block(node.body, Environment(env))
        if isinstance(node, RaiseEventStmt):
            self.raise_event(node, env)
            return None
        if isinstance(node, HandlerStmt):
            self.execute_handler(node, env)
            return None
        if isinstance(node, EndStmt):
            raise ProgramEnd()
        if isinstance(node, (ClassDecl, MethodDecl, EnumDecl, DelegateDecl, ImportsStmt, EventDecl,
                             PropertyDecl)):
            return None
        raise NotImplementedError(f"execute: unexpected node type {type(node)}")

    @staticmethod
    def loop_ends(signal: Any, kind: str) -> bool:
        return isinstance(signal, ExitSignal) and signal.kind == kind

    @staticmethod
    def loop_passes(signal: Any, kind: str) -> bool:
        """Whether `signal` must leave the loop of `kind` and propagate."""
        if signal is None:
            return False
        return not (isinstance(signal, ContinueSignal) and signal.kind == kind)

    def declare_local(self, decl: VarDecl, env: Environment, is_static: bool):
        if is_static:
            key = (id(decl), self.frame.obj)
            cell = self.statics.get(key)
            if cell is None:
                value = self.initial_value(decl, env)
                value = self.default_for(decl.type_spec) if value is None else self.prepare(value, decl.type_spec)
                cell = Cell(coerce_value(value, decl.type_spec), decl.type_spec)
                self.statics[key] = cell
            env.bind(decl.name, cell)
            return
        existing = env.find_local(decl.name.lower())
        if existing is not None and existing.is_const and not decl.is_const:
            what = 'procedure' if isinstance(existing.value, MethodGroup) else 'type'
            if not isinstance(existing.value, (ClassDef, EnumDef, MethodGroup)):
                what = 'constant'
            raise BindingError('InvalidOperationException',
                               f"'{decl.name}' clashes with the {what} of the same name in this scope.")
        value = self.initial_value(decl, env)
        if existing is not None:
            # Re-running a declaration (loop bodies) re-initializes it only when it has an initializer.
            if value is not None and not decl.is_const:
                env.lookup(decl.name).assign(self.prepare(value, decl.type_spec))
            return
        if value is None:
            value = self.default_for(decl.type_spec)
        env.declare(decl.name, decl.type_spec, self.prepare(value, decl.type_spec), decl.is_const)
        if self.debug_level >= 2:
            self.debug(f"declare {decl.name} As {decl.type_spec!r}")

    def initial_value(self, decl: VarDecl, env: Environment) -> Any:
        """The value a declaration starts with, or None for the type's default."""
        type_spec = decl.type_spec
        if decl.expr is not None:
            if isinstance(decl.expr, ArrayLit) and type_spec is not None and type_spec.rank:
                return self.build_array(decl.expr, type_spec.element(), type_spec.rank, env)
            return self.evaluate(decl.expr, env)
        if decl.bounds is not None:
            dims = [to_integer(self.evaluate(b, env)) + 1 for b in decl.bounds]
            return ArrayVal(type_spec.element() if type_spec is not None else None, dims)
        if type_spec is not None and not type_spec.rank:
            cls = self.find_class(type_spec.kind)
            if cls is not None and cls.kind == 'structure':
                return self.create_object(cls)
        return None

    def default_for(self, type_spec: Optional[TypeSpec]) -> Any:
        if type_spec is not None and not type_spec.rank:
            enum = self.enums.get(type_spec.key)
            if enum is not None:
                return EnumVal(0, enum.name, enum.name_of(0) or '')
        return default_value(type_spec)

    def prepare(self, value: Any, type_spec: Optional[TypeSpec]) -> Any:
        """Convert values stored into enum-typed slots to enum members and
        wrap methods stored into delegate-typed slots."""
        if type_spec is None or type_spec.rank:
            return value
        if type_spec.key in self.enums:
            return self.convert_to(value, type_spec)
        delegate = self.delegates.get(type_spec.key)
        if delegate is not None and self.is_callable(value) and not isinstance(value, DelegateVal):
            return DelegateVal(delegate.name, value)
        return value

    def execute_assign(self, node: AssignStmt, env: Environment):
        if node.op is None:
            self.assign_to(node.target, self.evaluate(node.value, env), env)
            return
        cell = self.address_of(node.target, env)
        current = cell.value if cell is not None else self.evaluate(node.target, env)
        operand = self.evaluate(node.value, env)
        if node.op == '&':
            result = self.concat(current, operand)
        else:
            result = binary_op(node.op, current, operand)
        if cell is not None:
            cell.assign(self.prepare(result, cell.type_spec))
        else:
            self.assign_to(node.target, result, env)

    def assign_to(self, target: Node, value: Any, env: Environment):
        if isinstance(target, Ident):
            frame = self.frame
            if frame.return_name is not None and target.name.lower() == frame.return_name:
                frame.return_value = value
                return
            cell = env.lookup(target.name)
            if cell is None:
                frame.env.declare(target.name, None, value)
                if self.debug_level >= 2:
                    self.debug(f"implicitly declare {target.name}")
                return
            cell.assign(self.prepare(value, cell.type_spec))
            return
        if isinstance(target, Member):
            self.set_member(self.member_target(target, env), target.name, value)
            return
        if isinstance(target, Call):
            container = self.resolve_callee(target.func, env)
            indices = [self.evaluate(a, env) for a in target.args if a is not None]
            if isinstance(container, BoundProperty):
                self.set_property(container.obj, container.decl, container.cls, indices, value)
                return
            if isinstance(container, MethodGroup):
                container = self.invoke(container, [], [])
            if isinstance(container, ObjectVal):
                found = self.default_property(container.cls)
                if found is not None:
                    self.set_property(container, found[0], found[1], indices, value)
                    return
            if container is NOTHING:
                raise_exception('NullReferenceException', 'Object reference not set to an instance of an object.')
            set_element(container, indices, value)
            return
        raise BindingError('InvalidOperationException', 'Expression is not assignable.')

    def execute_select(self, node: SelectStmt, env: Environment) -> Any:
        subject = self.evaluate(node.subject, env)
        body = node.else_body
        for clause in node.cases:
            if any(self.case_matches(cond, subject, env) for cond in clause.conditions):
                body = clause.body
                break
        if self.debug_level >= 3:
            self.debug(f"select {to_string(subject)!r} -> {'match' if body is not None else 'no match'}")
        if body is None:
            return None
        signal = self.execute_block(body, Environment(env))
        if isinstance(signal, ExitSignal) and signal.kind == 'select':
            return None
        return signal

    def case_matches(self, cond, subject: Any, env: Environment) -> bool:
        value = self.evaluate(cond.expr, env)
        if cond.kind == 'range':
            upper = self.evaluate(cond.to_expr, env)
            return compare_values(subject, value, '>=') >= 0 and compare_values(subject, upper, '<=') <= 0
        if cond.kind == 'is':
            return to_boolean(binary_op(cond.op, subject, value))
        return compare_values(subject, value) == 0

    def execute_for(self, node: ForStmt, env: Environment) -> Any:
        start = self.evaluate(node.start, env)
        end = self.evaluate(node.end, env)
        step = self.evaluate(node.step, env) if node.step is not None else 1
        loop_env = Environment(env)
        cell = None
        if node.var_type is None:
            cell = self.address_of(node.var, env)
        if cell is None:
            cell = loop_env.declare(node.var.name, node.var_type)
        cell.assign(start)
        descending = compare_values(step, 0) < 0
        while True:
            order = compare_values(cell.value, end)
            if (order < 0) if descending else (order > 0):
                break
            if self.debug_level >= 3:
                self.debug(f"for {to_string(cell.value)} to {to_string(end)}")
            signal = self.execute_block(node.body, Environment(loop_env))
            if self.loop_ends(signal, 'for'):
                break
            if self.loop_passes(signal, 'for'):
                return signal
            cell.assign(binary_op('+', cell.value, step))
        return None

    def execute_for_each(self, node: ForEachStmt, env: Environment) -> Any:
        items = iterate_values(self.evaluate(node.iterable, env))
        name = node.var.name if isinstance(node.var, Ident) else None
        declare = node.var_type is not None or (name is not None and env.lookup(name) is None)
        for item in items:
            body_env = Environment(env)
            if declare:
                body_env.declare(name, node.var_type, self.prepare(item, node.var_type))
            else:
                self.assign_to(node.var, item, env)
            signal = self.execute_block(node.body, body_env)
            if self.loop_ends(signal, 'for'):
                break
            if self.loop_passes(signal, 'for'):
                return signal
        return None

    def execute_do(self, node: DoLoopStmt, env: Environment) -> Any:
        loop_env = Environment(env)

        def holds(kind: Optional[str], cond: Optional[Node]) -> bool:
            if cond is None:
                return True
            value = to_boolean(self.evaluate(cond, loop_env))
            return value if kind == 'while' else not value

        while holds(node.pre_kind, node.pre_cond):
            signal = self.execute_block(node.body, loop_env)
            if self.loop_ends(signal, 'do'):
                break
            if self.loop_passes(signal, 'do'):
                return signal
            if node.post_cond is not None and not holds(node.post_kind, node.post_cond):
                break
        return None

    def execute_try(self, node: TryStmt, env: Environment) -> Any:
        signal = None
        pending: Optional[VybeError] = None
        try:
            signal = self.execute_block(node.body, Environment(env))
        except VybeError as e:
            matched = self.match_catch(node, e, env)
            if matched is None:
                pending = e
            else:
                clause, catch_env = matched
                self.err.capture(e)
                if self.debug_level >= 1:
                    self.debug(f"caught {e.category}: {e.message}")
                frame = self.frame
                frame.caught.append(e)
                try:
                    signal = self.execute_block(clause.body, catch_env)
                except VybeError as inner:
                    pending = inner
                finally:
                    frame.caught.pop()
        if isinstance(signal, ExitSignal) and signal.kind == 'try':
            signal = None
        if node.finally_body is not None:
            final = self.execute_block(node.finally_body, Environment(env))
            if final is not None:
                return final
        if pending is not None:
            raise pending
        return signal

    def match_catch(self, node: TryStmt, error: VybeError, env: Environment):
        for clause in node.catches:
            if clause.type_spec is not None and not self.exception_matches(error.value, clause.type_spec.kind):
                continue
            catch_env = Environment(env)
            if clause.name:
                catch_env.declare(clause.name, None, error.value)
            if clause.when is not None and not to_boolean(self.evaluate(clause.when, catch_env)):
                continue
            return clause, catch_env
        return None

    def exception_matches(self, value: Any, name: str) -> bool:
        target = normalize_exception_name(name).lower()
        if isinstance(value, ExceptionVal):
            return any(c.lower() == target for c in exception_chain(value.category))
        if isinstance(value, ObjectVal):
            return value.cls.is_subtype_of(name)
        return False

    def execute_throw(self, node: ThrowStmt, env: Environment):
        if node.expr is None:
            if self.frame.caught:
                raise self.frame.caught[-1]
            raise_exception('InvalidOperationException', 'No exception is being handled.')
        value = self.evaluate(node.expr, env)
        if value is NOTHING:
            raise_exception('NullReferenceException', 'Object reference not set to an instance of an object.')
        if isinstance(value, ExceptionVal) or (isinstance(value, ObjectVal) and value.cls.exception_base()):
            raise VybeError(value)
        if isinstance(value, str):
            raise VybeError(ExceptionVal('Exception', value))
        raise_exception('InvalidCastException', f"Value of type '{type_name(value)}' cannot be thrown.")

    def execute_redim(self, node: ReDimStmt, env: Environment):
        cell = self.address_of(node.target, env)
        dims = [to_integer(self.evaluate(b, env)) + 1 for b in node.bounds]
        current = cell.value if cell is not None else NOTHING
        if isinstance(current, ArrayVal):
            array = current.resized(dims, node.preserve) if node.preserve else ArrayVal(current.elem_type, dims)
        else:
            type_spec = cell.type_spec if cell is not None else None
            array = ArrayVal(type_spec.element() if type_spec is not None else None, dims)
        if cell is None:
            self.assign_to(node.target, array, env)
        else:
            cell.assign(array)

    def dispose(self, resource: Any):
        if resource is NOTHING:
            return
        if isinstance(resource, ObjectVal):
            if resource.cls.find_method('dispose'):
                self.call_method(resource, 'Dispose', [])
            return
        builtin = self.registry.lookup_method(receiver_kind(resource), 'dispose')
        if builtin is not None:
            self.call_builtin(builtin, [], resource)

    def event_owner(self) -> Any:
        frame = self.frame
        if frame.obj is not None:
            return frame.obj
        if frame.cls is not None:
            return frame.cls
        return self

    def raise_event(self, node: RaiseEventStmt, env: Environment):
        values = [self.evaluate(a, env) for a in node.args]
        owner = self.event_owner()
        handlers = list(owner.handlers.get(node.name.lower(), ()))
        if self.debug_level >= 1:
            self.debug(f"raise event {node.name} ({len(handlers)} handler(s))")
        for handler in handlers:
            self.call_function(handler, values)

    def execute_handler(self, node: HandlerStmt, env: Environment):
        if isinstance(node.event, Member):
            owner = self.member_target(node.event, env)
            name = node.event.name
        elif isinstance(node.event, Ident):
            owner = self.event_owner()
            name = node.event.name
        else:
            raise BindingError('InvalidOperationException', 'Event name expected.')
        table = getattr(owner, 'handlers', None)
        if table is None:
            raise BindingError('MissingMemberException',
                               f"'{name}' is not an event of '{type_name(owner)}'.")
        handler = self.evaluate(node.handler, env)
        handlers = table.setdefault(name.lower(), [])
        if node.remove:
            for i, existing in enumerate(handlers):
                if existing == handler:
                    del handlers[i]
                    break
        else:
            handlers.append(handler)

    ###########################################################################
    # Expressions
    ###########################################################################

    def evaluate(self, node: Node, env: Environment) -> Any:
        if isinstance(node, Literal):
            kind = node.literal_type
            if kind == 'Nothing':
                return NOTHING
            if kind == 'Long':
                return Long(node.value)
            if kind == 'Date':
                return to_date(node.value)
            return node.value
        if isinstance(node, Ident):
            return self.lookup_name(node.name, env)
        if isinstance(node, BinaryOp):
            return self.evaluate_binary(node, env)
        if isinstance(node, UnaryOp):
            return unary_op(node.op, self.evaluate(node.operand, env))
        if isinstance(node, Call):
            return self.evaluate_call(node, env)
        if isinstance(node, Member):
            return self.get_member(self.member_target(node, env), node.name)
        if isinstance(node, InterpolatedString):
            return self.interpolate(node, env)
        if isinstance(node, Me):
            if self.frame.obj is None:
                raise BindingError('InvalidOperationException', "'Me' is only valid within an instance member.")
            return self.frame.obj
        if isinstance(node, MyBase):
            frame = self.frame
            if frame.obj is None or frame.cls is None:
                raise BindingError('InvalidOperationException', "'MyBase' is only valid within an instance member.")
            return BaseRef(frame.obj, frame.cls)
        if isinstance(node, New):
            return self.evaluate_new(node, env)
        if isinstance(node, ArrayNew):
            if node.bounds and not (node.init and node.init.elements):
                dims = [to_integer(self.evaluate(b, env)) + 1 for b in node.bounds]
                return ArrayVal(node.elem_type, dims)
            return self.build_array(node.init or ArrayLit([]), node.elem_type, node.rank, env)
        if isinstance(node, ArrayLit):
            return self.build_array(node, None, 1, env)
        if isinstance(node, Lambda):
            frame = self.frame
            return LambdaVal(node, env, frame.obj, frame.cls)
        if isinstance(node, IfExpr):
            if node.condition is None:
                first = self.evaluate(node.true_expr, env)
                return first if first is not NOTHING else self.evaluate(node.false_expr, env)
            if to_boolean(self.evaluate(node.condition, env)):
                return self.evaluate(node.true_expr, env)
            return self.evaluate(node.false_expr, env)
        if isinstance(node, TypeOfIs):
            result = self.type_is(self.evaluate(node.expr, env), node.type_spec)
            return not result if node.negate else result
        if isinstance(node, Cast):
            value = self.evaluate(node.expr, env)
            if node.kind == 'trycast':
                return value if self.type_is(value, node.type_spec) else NOTHING
            return self.convert_to(value, node.type_spec)
        if isinstance(node, AddressOf):
            target = self.resolve_callee(node.target, env)
            if not self.is_callable(target):
                raise BindingError('InvalidOperationException', "'AddressOf' operand must be the name of a method.")
            return target
        if isinstance(node, Await):
            value = self.evaluate(node.expr, env)
            return value.result if isinstance(value, TaskVal) else value
        if isinstance(node, GetTypeExpr):
            return node.type_spec
        raise NotImplementedError(f"evaluate: unexpected node type {type(node)}")

    def evaluate_binary(self, node: BinaryOp, env: Environment) -> Any:
        op = node.op
        if op == 'andalso':
            return to_boolean(self.evaluate(node.left, env)) and to_boolean(self.evaluate(node.right, env))
        if op == 'orelse':
            return to_boolean(self.evaluate(node.left, env)) or to_boolean(self.evaluate(node.right, env))
        left = self.evaluate(node.left, env)
        right = self.evaluate(node.right, env)
        if op == '&':
            return self.concat(left, right)
        return binary_op(op, left, right)

    def concat(self, left: Any, right: Any) -> str:
        if isinstance(left, ObjectVal) or isinstance(right, ObjectVal):
            return self.stringify(left) + self.stringify(right)
        return binary_op('&', left, right)

    def interpolate(self, node: InterpolatedString, env: Environment) -> str:
        out = []
        for part in node.parts:
            if isinstance(part, str):
                out.append(part)
                continue
            value = self.evaluate(part.expr, env)
            text = format_value(value, part.format) if part.format else self.stringify(value)
            if part.alignment is not None:
                width = abs(part.alignment)
                text = text.rjust(width) if part.alignment > 0 else text.ljust(width)
            out.append(text)
        return ''.join(out)

    def lookup_name(self, name: str, env: Environment, invoke: bool = True) -> Any:
        key = name.lower()
        frame = self.frame
        if invoke and frame.return_name == key:
            return frame.return_value
        cell = env.lookup(name)
        if cell is not None:
            value = cell.value
            if invoke and isinstance(value, MethodGroup):
                return self.invoke(value, [], [])
            return value
        builtin = self.registry.lookup_function(name)
        if builtin is not None:
            if invoke and builtin.min_args == 0:
                return self.call_builtin(builtin, [])
            return builtin
        if self.registry.has_constant(name):
            return self.registry.lookup_constant(name)
        if self.registry.is_namespace(name):
            return NamespaceRef(name)
        unresolved(name)

    def member_target(self, node: Member, env: Environment) -> Any:
        if node.target is None:
            stack = self.frame.with_stack
            if not stack:
                raise BindingError('InvalidOperationException', f"'.{node.name}' used outside a With block.")
            return stack[-1]
        if node.name.lower() == 'invoke':
            return self.resolve_callee(node.target, env)
        return self.evaluate(node.target, env)

    def resolve_callee(self, node: Node, env: Environment) -> Any:
        """Evaluate the target of a call without auto-invoking methods."""
        if isinstance(node, Ident):
            return self.lookup_name(node.name, env, invoke=False)
        if isinstance(node, Member):
            return self.get_member(self.member_target(node, env), node.name, invoke=False)
        return self.evaluate(node, env)

    @staticmethod
    def is_callable(value: Any) -> bool:
        return isinstance(value, (MethodGroup, LambdaVal, DelegateVal, BuiltinFunction, BoundBuiltin,
                                  BoundProperty, ConstructorRef))

    def param_count(self, callee: Any) -> Optional[int]:
        """Maximum positional arguments `callee` takes; None when unbounded."""
        if isinstance(callee, BuiltinFunction):
            return callee.max_args
        if isinstance(callee, BoundBuiltin):
            return callee.fn.max_args
        if isinstance(callee, LambdaVal):
            return len(callee.node.params)
        if isinstance(callee, DelegateVal):
            return self.param_count(callee.target)
        if isinstance(callee, MethodGroup):
            counts = []
            for proc in callee.procedures:
                if any(p.param_array for p in proc.decl.params):
                    return None
                counts.append(len(proc.decl.params))
            return max(counts) if counts else 0
        if isinstance(callee, BoundProperty):
            return len(callee.decl.params)
        return None

    def evaluate_call(self, node: Call, env: Environment) -> Any:
        callee = self.resolve_callee(node.func, env)
        if self.is_callable(callee):
            args = [Argument(self, a, env) for a in node.args]
            named = [(name, Argument(self, expr, env)) for name, expr in node.named]
            if args and not named and self.param_count(callee) == 0:
                # `GetItems(2)` indexes the result of a parameterless call.
                return self.index_value(self.invoke(callee, [], []), [a.value for a in args])
            return self.invoke(callee, args, named)
        if not node.args:
            return callee
        return self.index_value(callee, [self.evaluate(a, env) for a in node.args if a is not None])

    def index_value(self, container: Any, indices: List[Any]) -> Any:
        if is_indexable(container):
            return get_element(container, indices)
        if isinstance(container, ObjectVal):
            found = self.default_property(container.cls)
            if found is not None:
                return self.get_property(container, found[0], found[1], indices)
        if container is NOTHING:
            raise_exception('NullReferenceException', 'Object reference not set to an instance of an object.')
        raise BindingError('MissingMemberException', f"Value of type '{type_name(container)}' cannot be indexed.")

    @staticmethod
    def default_property(cls: ClassDef) -> Optional[Tuple[PropertyDecl, ClassDef]]:
        for owner in cls.chain():
            for decl in owner.properties.values():
                if 'default' in decl.modifiers:
                    return decl, owner
        return None

    def address_of(self, node: Node, env: Environment) -> Optional[Any]:
        """The cell an lvalue expression names, or None when it is not addressable."""
        if isinstance(node, Ident):
            cell = env.lookup(node.name)
            if cell is None or cell.is_const or isinstance(cell.value, MethodGroup):
                return None
            return cell
        if isinstance(node, Member):
            target = self.member_target(node, env)
            if isinstance(target, (ObjectVal, ClassDef, BaseRef)):
                cell = self.find_member_cell(target, node.name.lower())
                if cell is not None and not cell.is_const:
                    return cell
            return None
        if isinstance(node, Call):
            container = self.resolve_callee(node.func, env)
            indices = [self.evaluate(a, env) for a in node.args if a is not None]
            if isinstance(container, BoundProperty):
                return PropertyCell(self, container.obj, container.decl, container.cls, indices)
            if is_indexable(container) and not isinstance(container, str):
                return ElementCell(container, indices)
        return None

    def find_member_cell(self, target: Any, key: str) -> Optional[Any]:
        if isinstance(target, ObjectVal):
            cell = target.env.find_local(key)
            if cell is not None:
                return cell
            for cls in target.cls.chain():
                cell = cls.shared_env.cells.get(key)
                if cell is not None:
                    return cell
            return None
        if isinstance(target, ClassDef):
            for cls in target.chain():
                cell = cls.shared_env.find_local(key)
                if cell is not None:
                    return cell
            return None
        if isinstance(target, BaseRef):
            start = target.cls.base
            if start is None:
                return None
            cell = member_cell(target.obj.cls, target.obj, key, start)
            if cell is None:
                cell = target.obj.fields.get(key)
            return cell
        return None

    def get_member(self, target: Any, name: str, invoke: bool = True) -> Any:
        key = name.lower()
        if isinstance(target, NamespaceRef):
            return self.qualified_member(target, name, invoke)
        if isinstance(target, EnumDef):
            return target.member(name)
        if key == 'new' and isinstance(target, (ObjectVal, BaseRef)):
            if isinstance(target, BaseRef):
                ref = ConstructorRef(target.obj, target.cls.base, target.cls)
            else:
                ref = ConstructorRef(target, self.frame.cls or target.cls, target.cls)
            if invoke:
                self.construct_base(ref, [], [])
                return NOTHING
            return ref
        if isinstance(target, (ObjectVal, ClassDef, BaseRef)):
            cell = self.find_member_cell(target, key)
            if cell is not None:
                value = cell.value
                if invoke and isinstance(value, MethodGroup):
                    return self.invoke(value, [], [])
                return value
            if isinstance(target, ClassDef):
                # Nested type declarations are registered globally.
                nested = self.enums.get(key) or self.classes.get(key)
                if nested is not None:
                    return nested
                raise BindingError('MissingMemberException', f"'{name}' is not a member of '{target.name}'.")
        if target is NOTHING:
            raise_exception('NullReferenceException', 'Object reference not set to an instance of an object.')
        if key == 'invoke' and self.is_callable(target):
            return target
        receiver = target.obj if isinstance(target, BaseRef) else target
        if isinstance(target, BaseRef) and key == 'tostring':
            return self.default_string(receiver)
        builtin = self.registry.lookup_method(receiver_kind(receiver), key)
        if builtin is None:
            raise BindingError('MissingMemberException', f"'{name}' is not a member of '{type_name(receiver)}'.")
        if invoke and builtin.min_args == 0:
            return self.call_builtin(builtin, [], receiver)
        return BoundBuiltin(builtin, receiver)

    def qualified_member(self, namespace: NamespaceRef, name: str, invoke: bool) -> Any:
        qualified = f"{namespace.name}.{name}"
        builtin = self.registry.lookup_function(qualified)
        if builtin is not None:
            if invoke and builtin.min_args == 0:
                return self.call_builtin(builtin, [])
            return builtin
        if self.registry.has_constant(qualified):
            return self.registry.lookup_constant(qualified)
        cls = self.find_class(name)
        if cls is not None:
            return cls
        enum = self.enums.get(name.lower())
        if enum is not None:
            return enum
        if self.registry.is_namespace(qualified):
            return NamespaceRef(qualified)
        raise BindingError('MissingMemberException', f"'{name}' is not a member of '{namespace.name}'.")

    def set_member(self, target: Any, name: str, value: Any):
        key = name.lower()
        if isinstance(target, (ObjectVal, ClassDef, BaseRef)):
            cell = self.find_member_cell(target, key)
            if cell is None:
                raise BindingError('MissingMemberException', f"'{name}' is not a member of '{type_name(target)}'.")
            cell.assign(self.prepare(value, cell.type_spec))
            return
        if target is NOTHING:
            raise_exception('NullReferenceException', 'Object reference not set to an instance of an object.')
        builtin = self.registry.lookup_method(receiver_kind(target), 'set_' + key)
        if builtin is None:
            raise BindingError('MissingMemberException',
                               f"Property '{name}' of '{type_name(target)}' is ReadOnly or not defined.")
        self.call_builtin(builtin, [value], target)

    def call_method(self, target: Any, name: str, values: List[Any]) -> Any:
        return self.call_function(self.get_member(target, name, invoke=False), values)

    def evaluate_new(self, node: New, env: Environment) -> Any:
        args = [Argument(self, a, env) for a in node.args]
        obj = self.instantiate(node.type_spec, args)
        if node.collection_init is not None:
            for element in node.collection_init:
                if isinstance(element, ArrayLit):
                    values = [self.evaluate(e, env) for e in element.elements]
                else:
                    values = [self.evaluate(element, env)]
                self.call_method(obj, 'Add', values)
        if node.member_init is not None:
            for name, expr in node.member_init:
                self.set_member(obj, name, self.evaluate(expr, env))
        return obj

    def build_array(self, lit: ArrayLit, elem_type: Optional[TypeSpec], rank: int, env: Environment) -> ArrayVal:
        if rank > 1:
            dims = []
            probe: Any = lit
            for _ in range(rank):
                if isinstance(probe, ArrayLit):
                    dims.append(len(probe.elements))
                    probe = probe.elements[0] if probe.elements else None
                else:
                    dims.append(0)
            items: List[Any] = []
            self.flatten_literal(lit, rank, items, env)
            expected = 1
            for d in dims:
                expected *= d
            if expected != len(items):
                raise_exception('ArgumentException', 'Array initializer has an inconsistent shape.')
            return ArrayVal(elem_type, dims, [coerce_value(v, elem_type) for v in items])
        values = []
        for element in lit.elements:
            if isinstance(element, ArrayLit) and elem_type is not None and elem_type.rank:
                values.append(self.build_array(element, elem_type.element(), elem_type.rank, env))
            else:
                values.append(self.prepare(self.evaluate(element, env), elem_type))
        return ArrayVal(elem_type, [len(values)], [coerce_value(v, elem_type) for v in values])

    def flatten_literal(self, lit: Node, depth: int, out: List[Any], env: Environment):
        if depth == 0 or not isinstance(lit, ArrayLit):
            out.append(self.evaluate(lit, env))
            return
        for element in lit.elements:
            self.flatten_literal(element, depth - 1, out, env)

    def type_is(self, value: Any, type_spec: TypeSpec) -> bool:
        if value is NOTHING:
            return False
        key = type_spec.key
        if key in OBJECT_KINDS:
            return True
        if type_spec.rank:
            return isinstance(value, ArrayVal)
        if isinstance(value, ObjectVal):
            return value.cls.is_subtype_of(type_spec.kind)
        if isinstance(value, ExceptionVal):
            return self.exception_matches(value, type_spec.kind)
        if key == 'char':
            return isinstance(value, str) and len(value) == 1
        return type_name(value).lower() == _TYPE_ALIASES.get(key, key)

    def convert_to(self, value: Any, type_spec: TypeSpec) -> Any:
        """`CType`/`DirectCast` conversion, also used for declared return types."""
        if type_spec.rank:
            return value
        enum = self.enums.get(type_spec.key)
        if enum is not None:
            number = to_integer(value)
            return EnumVal(number, enum.name, enum.name_of(number) or '')
        cls = self.find_class(type_spec.kind)
        if cls is not None:
            if value is NOTHING or self.type_is(value, type_spec):
                return value
            raise_exception('InvalidCastException',
                            f"Unable to cast object of type '{type_name(value)}' to type '{cls.name}'.")
        if isinstance(value, EnumVal) and type_spec.key not in OBJECT_KINDS:
            value = int(value)
        return coerce_value(value, type_spec)

    def stringify(self, value: Any) -> str:
        """Text of a value as `Console.WriteLine` and interpolation render it."""
        if isinstance(value, ObjectVal):
            for decl, owner in value.cls.find_method('tostring'):
                if not decl.params and decl.body is not None:
                    return to_string(self.call_user(Procedure(decl, owner, value.env, value), [], []))
            return self.default_string(value)
        if isinstance(value, EnumVal):
            return value.member_name or str(int(value))
        return to_string(value)

    def default_string(self, obj: ObjectVal) -> str:
        if obj.cls.exception_base():
            return f"{obj.cls.name}: {VybeError(obj).message}"
        return obj.cls.name

    ###########################################################################
    # Invocation
    ###########################################################################

    def invoke(self, callee: Any, args: List[Argument], named: List[Tuple[str, Argument]] = ()) -> Any:
        if isinstance(callee, MethodGroup):
            procedure = self.select_overload(callee.name, callee.procedures, args, named)
            return self.call_user(procedure, args, named)
        if isinstance(callee, LambdaVal):
            return self.call_lambda(callee, args, named)
        if isinstance(callee, DelegateVal):
            return self.invoke(callee.target, args, named)
        if isinstance(callee, BuiltinFunction):
            return self.call_builtin(callee, self.native_args(callee, args, named))
        if isinstance(callee, BoundBuiltin):
            return self.call_builtin(callee.fn, self.native_args(callee.fn, args, named), callee.receiver)
        if isinstance(callee, BoundProperty):
            return self.get_property(callee.obj, callee.decl, callee.cls, [a.value for a in args])
        if isinstance(callee, ConstructorRef):
            self.construct_base(callee, args, named)
            return NOTHING
        if callee is NOTHING:
            raise_exception('NullReferenceException', 'Object reference not set to an instance of an object.')
        raise BindingError('MissingMemberException', f"Value of type '{type_name(callee)}' is not callable.")

    def native_args(self, builtin: BuiltinFunction, args: List[Argument],
                    named: List[Tuple[str, Argument]]) -> List[Any]:
        values = []
        for i, arg in enumerate(list(args) + [a for _, a in named]):
            if i in builtin.byref:
                cell = arg.cell()
                values.append(cell if cell is not None else Cell(arg.value))
            else:
                values.append(arg.value)
        return values

    def call_builtin(self, builtin: BuiltinFunction, values: List[Any], receiver: Any = _NO_RECEIVER) -> Any:
        builtin.check_arity(len(values))
        try:
            if receiver is _NO_RECEIVER:
                result = builtin.fn(self, values)
            else:
                result = builtin.fn(self, receiver, values)
        except ZeroDivisionError:
            raise_exception('DivideByZeroException', 'Attempted to divide by zero.')
        except OverflowError:
            raise_exception('OverflowException', 'Arithmetic operation resulted in an overflow.')
        except FileNotFoundError as e:
            raise_exception('FileNotFoundException', f"Could not find file '{e.filename}'.")
        except OSError as e:
            raise_exception('IOException', e.strerror or str(e))
        except IndexError as e:
            raise_exception('ArgumentOutOfRangeException', f"{builtin.name}: {e}")
        except KeyError as e:
            raise_exception('KeyNotFoundException', f"The given key '{e.args[0] if e.args else ''}' was not present.")
        except (ValueError, TypeError) as e:
            raise_exception('ArgumentException', f"{builtin.name}: {e}")
        return NOTHING if result is None else result

    def select_overload(self, name: str, procedures: List[Procedure], args: List[Argument],
                        named: List[Tuple[str, Argument]]) -> Procedure:
        if len(procedures) == 1:
            return procedures[0]
        count = len(args)
        names = {n.lower() for n, _ in named}
        candidates = [p for p in procedures if self.accepts(p.decl.params, count, names)]
        if not candidates:
            raise BindingError('ArgumentException',
                               f"No overload of '{name}' accepts {count} argument(s).")
        if len(candidates) == 1:
            return candidates[0]
        return max(candidates, key=lambda p: self.fit_score(p.decl.params, args))

    @staticmethod
    def accepts(params: List[Param], count: int, names) -> bool:
        if params and params[-1].param_array:
            fixed = params[:-1]
        else:
            fixed = params
            if count > len(params):
                return False
        for i, param in enumerate(fixed):
            if i >= count and not param.optional and param.name.lower() not in names:
                return False
        return True

    def fit_score(self, params: List[Param], args: List[Argument]) -> int:
        score = 0
        for param, arg in zip(params, args):
            if param.param_array or arg.missing:
                continue
            score += self.fit(arg.value, param.type_spec)
        return score

    def fit(self, value: Any, type_spec: Optional[TypeSpec]) -> int:
        if type_spec is None or type_spec.key in OBJECT_KINDS:
            return 1
        if type_spec.rank:
            return 3 if isinstance(value, ArrayVal) else -1
        if self.type_is(value, type_spec):
            return 3
        key = type_spec.key
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if key in ('double', 'single', 'decimal', 'long', 'int64'):
                return 2
            return 0
        return -1

    def bind_params(self, params: List[Param], args: List[Argument], named: List[Tuple[str, Argument]],
                    call_env: Environment, name: str):
        positional = list(args)
        by_name = {n.lower(): a for n, a in named}
        for index, param in enumerate(params):
            if param.param_array:
                rest = [a for a in positional[index:] if not a.missing]
                elem_type = param.type_spec.element() if param.type_spec is not None else None
                if len(rest) == 1 and isinstance(rest[0].value, ArrayVal):
                    array = rest[0].value
                else:
                    array = ArrayVal(elem_type, [len(rest)], [coerce_value(a.value, elem_type) for a in rest])
                call_env.declare(param.name, param.type_spec, array)
                positional = positional[:index]
                break
            arg = positional[index] if index < len(positional) else None
            if arg is not None and arg.missing:
                arg = None
            if arg is None:
                arg = by_name.pop(param.name.lower(), None)
            if arg is None:
                if not param.optional:
                    raise BindingError('ArgumentException',
                                       f"Argument not specified for parameter '{param.name}' of '{name}'.")
                value = self.evaluate(param.default, call_env) if param.default is not None else None
                call_env.declare(param.name, param.type_spec,
                                 self.default_for(param.type_spec) if value is None else value)
                continue
            if param.by_ref:
                cell = arg.cell()
                if cell is None:
                    raise BindingError('ArgumentException',
                                       f"ByRef argument for parameter '{param.name}' of '{name}' is not a variable.")
                call_env.bind(param.name, cell)
            else:
                call_env.declare(param.name, param.type_spec, self.prepare(arg.value, param.type_spec))
        if len(positional) > len(params):
            raise BindingError('ArgumentException',
                               f"'{name}' expects {len(params)} argument(s) but received {len(positional)}.")
        if by_name:
            unknown = next(iter(by_name))
            raise BindingError('ArgumentException', f"'{unknown}' is not a parameter of '{name}'.")

    def run_frame(self, frame: Frame, body: List[Node]) -> Any:
        if len(self.frames) > self.max_call_depth:
            raise_exception('StackOverflowException',
                            f"Call depth exceeded {self.max_call_depth} frames in '{frame.name}'.")
        frame.body = body
        self.frames.append(frame)
        if self.debug_level >= 1:
            self.debug(f"enter {frame.name}")
        try:
            signal = self.execute_block(body, frame.env)
        except RecursionError:
            raise_exception('StackOverflowException', f"Recursion too deep in '{frame.name}'.")
        finally:
            self.frames.pop()
        if self.debug_level >= 1:
            self.debug(f"exit {frame.name}")
        if isinstance(signal, GotoSignal):
            raise BindingError('InvalidOperationException', f"Label '{signal.label}' is not defined.")
        if isinstance(signal, ResumeSignal):
            raise_exception('InvalidOperationException', 'Resume without error.')
        self.check_stray_signal(signal)
        if isinstance(signal, ReturnSignal) and signal.value is not None:
            return signal.value
        return frame.return_value

    def function_frame(self, name: str, env: Environment, decl: Any, cls: Optional[ClassDef],
                       obj: Optional[ObjectVal], return_type: Optional[TypeSpec]) -> Frame:
        frame = Frame(name, env, decl, cls, obj)
        frame.is_function = True
        frame.return_name = name.lower()
        frame.return_type = return_type
        frame.return_value = self.default_for(return_type)
        return frame

    def call_user(self, procedure: Procedure, args: List[Argument], named: List[Tuple[str, Argument]]) -> Any:
        decl = procedure.decl
        if decl.body is None:
            raise_exception('NotImplementedException', f"'{decl.name}' has no implementation.")
        call_env = Environment(procedure.env, decl.name)
        self.bind_params(decl.params, args, named, call_env, decl.name)
        if decl.is_function:
            frame = self.function_frame(decl.name, call_env, decl, procedure.cls, procedure.obj, decl.return_type)
        else:
            frame = Frame(decl.name, call_env, decl, procedure.cls, procedure.obj)
        result = self.run_frame(frame, decl.body)
        if not decl.is_function:
            result = NOTHING
        elif decl.return_type is not None and decl.return_type.key != 'task':
            result = self.convert_to(result, decl.return_type)
        if 'async' in decl.modifiers and not isinstance(result, TaskVal):
            result = TaskVal(result)
        return result

    def call_lambda(self, lam: LambdaVal, args: List[Argument], named: List[Tuple[str, Argument]]) -> Any:
        node = lam.node
        call_env = Environment(lam.env, 'lambda')
        self.bind_params(node.params, args, named, call_env, 'lambda')
        frame = Frame('lambda', call_env, None, lam.cls, lam.obj)
        frame.is_function = node.is_function
        if node.multiline:
            result = self.run_frame(frame, node.body)
        else:
            body = [ReturnStmt(node.body)] if node.is_function else [node.body]
            result = self.run_frame(frame, body)
        return result if node.is_function else NOTHING

    def get_property(self, obj: Optional[ObjectVal], decl: PropertyDecl, cls: ClassDef, values: List[Any]) -> Any:
        if decl.getter is None:
            raise BindingError('MissingMemberException', f"Property '{decl.name}' is WriteOnly.")
        call_env = Environment(obj.env if obj is not None else cls.shared_env, decl.name)
        self.bind_params(decl.params, [Argument.of(self, v) for v in values], [], call_env, decl.name)
        frame = self.function_frame(decl.name, call_env, decl, cls, obj, decl.type_spec)
        result = self.run_frame(frame, decl.getter)
        return self.convert_to(result, decl.type_spec) if decl.type_spec is not None else result

    def set_property(self, obj: Optional[ObjectVal], decl: PropertyDecl, cls: ClassDef, values: List[Any],
                     value: Any):
        if decl.setter is None:
            raise BindingError('MissingMemberException', f"Property '{decl.name}' is ReadOnly.")
        call_env = Environment(obj.env if obj is not None else cls.shared_env, decl.name)
        self.bind_params(decl.params, [Argument.of(self, v) for v in values], [], call_env, decl.name)
        call_env.declare(decl.setter_param, decl.type_spec, self.prepare(value, decl.type_spec))
        self.run_frame(Frame(decl.name, call_env, decl, cls, obj), decl.setter)

    def instantiate(self, type_spec: TypeSpec, args: List[Argument],
                    named: List[Tuple[str, Argument]] = ()) -> Any:
        cls = self.find_class(type_spec.kind)
        if cls is not None:
            if cls.kind == 'module' or cls.is_abstract():
                raise BindingError('InvalidOperationException', f"'New' cannot be used on '{cls.name}'.")
            obj = self.create_object(cls)
            self.run_constructor(obj, cls, args, named)
            return obj
        delegate = self.delegates.get(type_spec.key)
        if delegate is not None:
            if len(args) != 1:
                raise BindingError('ArgumentException', f"'{delegate.name}' expects one method argument.")
            return DelegateVal(delegate.name, args[0].value)
        constructor = self.registry.lookup_constructor(type_spec)
        if constructor is not None:
            native = BuiltinFunction(f"New {type_spec.kind}", lambda interp, values: constructor(interp, type_spec, values))
            return self.call_builtin(native, [a.value for a in args])
        raise BindingError('MissingMemberException', f"Type '{type_spec.kind}' is not defined.")

    def create_object(self, cls: ClassDef) -> ObjectVal:
        obj = ObjectVal(cls)
        self.frames.append(Frame(f"{cls.name}.<init>", obj.env, None, cls, obj))
        try:
            for owner in reversed(cls.chain()):
                for decl in owner.fields:
                    value = self.initial_value(decl, obj.env)
                    value = self.default_for(decl.type_spec) if value is None else self.prepare(value, decl.type_spec)
                    obj.fields[decl.name.lower()] = Cell(coerce_value(value, decl.type_spec), decl.type_spec)
        finally:
            self.frames.pop()
        for owner in cls.chain():
            for decls in owner.methods.values():
                for decl in decls:
                    for handled in decl.handles:
                        parts = handled.split('.')
                        if len(parts) == 2 and parts[0].lower() in ('me', 'mybase'):
                            group = MethodGroup(decl.name, [Procedure(decl, owner, obj.env, obj)])
                            obj.handlers.setdefault(parts[1].lower(), []).append(group)
        if self.debug_level >= 2:
            self.debug(f"new {cls.name}")
        return obj

    def run_constructor(self, obj: ObjectVal, cls: ClassDef, args: List[Argument],
                        named: List[Tuple[str, Argument]] = ()):
        if not cls.constructors:
            if args:
                raise BindingError('ArgumentException',
                                   f"'{cls.name}' has no constructor that accepts {len(args)} argument(s).")
            self.run_base_constructor(obj, cls)
            return
        procedures = [Procedure(d, cls, obj.env, obj) for d in cls.constructors]
        procedure = self.select_overload(f"{cls.name}.New", procedures, args, named)
        if not self.chains_constructor(procedure.decl.body or []):
            self.run_base_constructor(obj, cls)
        self.call_user(procedure, args, named)

    def run_base_constructor(self, obj: ObjectVal, cls: ClassDef):
        if cls.base is not None:
            self.run_constructor(obj, cls.base, [])

    @staticmethod
    def chains_constructor(body: List[Node]) -> bool:
        """Whether a constructor body starts with `MyBase.New` or `Me.New`."""
        if not body or not isinstance(body[0], ExprStmt):
            return False
        expr = body[0].expr
        if isinstance(expr, Call):
            expr = expr.func
        return (isinstance(expr, Member) and expr.name.lower() == 'new'
                and isinstance(expr.target, (Me, MyBase)))

    def construct_base(self, ref: ConstructorRef, args: List[Argument], named: List[Tuple[str, Argument]]):
        if ref.cls is not None:
            self.run_constructor(ref.obj, ref.cls, args, named)
            return
        # Constructor of a built-in exception base type: (message[, inner]).
        if args:
            ref.obj.exception_message = to_string(args[0].value)
        if len(args) > 1:
            ref.obj.inner_exception = args[1].value


def run_program(source: str, debug_level: int = 0, **options: Any) -> Any:
    """Convenience function to parse and run a Vybe program from a source string."""
    ast_program = parse_program(source)
    interpreter = Interpreter(debug_level=debug_level, **options)
    return interpreter.run(ast_program)
