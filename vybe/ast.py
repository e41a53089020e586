"""Abstract Syntax Tree (AST) definitions for the Vybe language.

The AST classes defined in this module represent the syntactic structure
of parsed Vybe programs. They are produced by the parser, are never
mutated afterwards and are evaluated directly by the interpreter. Statement
nodes carry the source line they start on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from .types import TypeSpec


@dataclass
class Node:
    """Base class for all AST nodes."""
    pass


@dataclass
class Program(Node):
    body: List[Node]


###############################################################################
# Expressions
###############################################################################

@dataclass
class Literal(Node):
    value: Any
    literal_type: str  # Integer, Long, Double, String, Char, Boolean, Date, Nothing


@dataclass
class InterpolatedString(Node):
    # Items are either literal text (str) or Interpolation nodes.
    parts: List[Any]


@dataclass
class Interpolation(Node):
    expr: Node
    format: Optional[str] = None
    alignment: Optional[int] = None


@dataclass
class Ident(Node):
    name: str


@dataclass
class Me(Node):
    pass


@dataclass
class MyBase(Node):
    pass


@dataclass
class BinaryOp(Node):
    op: str
    left: Node
    right: Node


@dataclass
class UnaryOp(Node):
    op: str
    operand: Node


@dataclass
class Call(Node):
    """`target(args)`: a procedure call or an index, decided at run time."""
    func: Node
    args: List[Optional[Node]]
    named: List[Tuple[str, Node]] = field(default_factory=list)


@dataclass
class Member(Node):
    """`target.name`; `target` is None for `.name` inside a `With` block."""
    target: Optional[Node]
    name: str


@dataclass
class New(Node):
    type_spec: TypeSpec
    args: List[Node] = field(default_factory=list)
    collection_init: Optional[List[Node]] = None
    member_init: Optional[List[Tuple[str, Node]]] = None


@dataclass
class ArrayNew(Node):
    """`New Integer(4) {}` / `New String() {"a", "b"}`."""
    elem_type: TypeSpec
    bounds: Optional[List[Node]]
    init: Optional['ArrayLit']
    rank: int = 1


@dataclass
class ArrayLit(Node):
    elements: List[Node]


@dataclass
class Param(Node):
    name: str
    type_spec: Optional[TypeSpec] = None
    by_ref: bool = False
    optional: bool = False
    default: Optional[Node] = None
    param_array: bool = False


@dataclass
class Lambda(Node):
    params: List[Param]
    is_function: bool
    # A single expression (Function) or statement (Sub), or a statement list.
    body: Any
    multiline: bool = False


@dataclass
class IfExpr(Node):
    """`If(cond, a, b)`; `cond` is None for the two-operand coalescing form."""
    condition: Optional[Node]
    true_expr: Node
    false_expr: Node


@dataclass
class TypeOfIs(Node):
    expr: Node
    type_spec: TypeSpec
    negate: bool = False


@dataclass
class Cast(Node):
    kind: str  # ctype, directcast, trycast
    expr: Node
    type_spec: TypeSpec


@dataclass
class AddressOf(Node):
    target: Node


@dataclass
class Await(Node):
    expr: Node


@dataclass
class GetTypeExpr(Node):
    type_spec: TypeSpec


###############################################################################
# Statements
###############################################################################

@dataclass
class VarDecl(Node):
    name: str
    type_spec: Optional[TypeSpec]
    expr: Optional[Node] = None
    is_const: bool = False
    bounds: Optional[List[Node]] = None
    modifiers: List[str] = field(default_factory=list)
    line: int = 0


@dataclass
class DimStmt(Node):
    decls: List[VarDecl]
    is_static: bool = False
    line: int = 0


@dataclass
class ReDimStmt(Node):
    target: Node
    bounds: List[Node]
    preserve: bool = False
    line: int = 0


@dataclass
class AssignStmt(Node):
    target: Node
    value: Node
    op: Optional[str] = None  # compound operator, e.g. '+' for +=
    line: int = 0


@dataclass
class ExprStmt(Node):
    expr: Node
    line: int = 0


@dataclass
class IfStmt(Node):
    condition: Node
    then_body: List[Node]
    elseifs: List[Tuple[Node, List[Node]]] = field(default_factory=list)
    else_body: Optional[List[Node]] = None
    line: int = 0


@dataclass
class CaseCond(Node):
    kind: str  # value, range, is
    expr: Node
    to_expr: Optional[Node] = None
    op: Optional[str] = None


@dataclass
class CaseClause(Node):
    conditions: List[CaseCond]
    body: List[Node]


@dataclass
class SelectStmt(Node):
    subject: Node
    cases: List[CaseClause]
    else_body: Optional[List[Node]] = None
    line: int = 0


@dataclass
class ForStmt(Node):
    var: Node
    var_type: Optional[TypeSpec]
    start: Node
    end: Node
    step: Optional[Node]
    body: List[Node]
    line: int = 0


@dataclass
class ForEachStmt(Node):
    var: Node
    var_type: Optional[TypeSpec]
    iterable: Node
    body: List[Node]
    line: int = 0


@dataclass
class WhileStmt(Node):
    condition: Node
    body: List[Node]
    line: int = 0


@dataclass
class DoLoopStmt(Node):
    body: List[Node]
    pre_kind: Optional[str] = None  # while / until
    pre_cond: Optional[Node] = None
    post_kind: Optional[str] = None
    post_cond: Optional[Node] = None
    line: int = 0


@dataclass
class ExitStmt(Node):
    kind: str
    line: int = 0


@dataclass
class ContinueStmt(Node):
    kind: str
    line: int = 0


@dataclass
class ReturnStmt(Node):
    value: Optional[Node]
    line: int = 0


@dataclass
class LabelStmt(Node):
    name: str
    line: int = 0


@dataclass
class GotoStmt(Node):
    label: str
    line: int = 0


@dataclass
class OnErrorStmt(Node):
    mode: str  # resume_next, goto, disable, reset
    label: Optional[str] = None
    line: int = 0


@dataclass
class ResumeStmt(Node):
    mode: str  # retry, next, label
    label: Optional[str] = None
    line: int = 0


@dataclass
class CatchClause(Node):
    name: Optional[str]
    type_spec: Optional[TypeSpec]
    when: Optional[Node]
    body: List[Node]


@dataclass
class TryStmt(Node):
    body: List[Node]
    catches: List[CatchClause]
    finally_body: Optional[List[Node]] = None
    line: int = 0


@dataclass
class ThrowStmt(Node):
    expr: Optional[Node]
    line: int = 0


@dataclass
class WithStmt(Node):
    target: Node
    body: List[Node]
    line: int = 0


@dataclass
class UsingStmt(Node):
    name: Optional[str]
    type_spec: Optional[TypeSpec]
    resource: Node
    body: List[Node]
    line: int = 0


@dataclass
class SyncLockStmt(Node):
    lock: Node
    body: List[Node]
    line: int = 0


@dataclass
class RaiseEventStmt(Node):
    name: str
    args: List[Node]
    line: int = 0


@dataclass
class HandlerStmt(Node):
    """`AddHandler` / `RemoveHandler`."""
    event: Node
    handler: Node
    remove: bool = False
    line: int = 0


@dataclass
class EndStmt(Node):
    line: int = 0


###############################################################################
# Declarations
###############################################################################

@dataclass
class MethodDecl(Node):
    name: str
    params: List[Param]
    is_function: bool
    return_type: Optional[TypeSpec]
    body: Optional[List[Node]]
    modifiers: List[str] = field(default_factory=list)
    handles: List[str] = field(default_factory=list)
    line: int = 0


@dataclass
class PropertyDecl(Node):
    name: str
    params: List[Param]
    type_spec: Optional[TypeSpec]
    getter: Optional[List[Node]] = None
    setter: Optional[List[Node]] = None
    setter_param: str = 'value'
    is_auto: bool = False
    init: Optional[Node] = None
    modifiers: List[str] = field(default_factory=list)
    line: int = 0


@dataclass
class EventDecl(Node):
    name: str
    params: List[Param]
    modifiers: List[str] = field(default_factory=list)
    line: int = 0


@dataclass
class DelegateDecl(Node):
    name: str
    params: List[Param]
    is_function: bool
    return_type: Optional[TypeSpec]
    line: int = 0


@dataclass
class EnumDecl(Node):
    name: str
    members: List[Tuple[str, Optional[Node]]]
    line: int = 0


@dataclass
class ClassDecl(Node):
    name: str
    kind: str  # class, structure, module, interface
    members: List[Node]
    base: Optional[str] = None
    implements: List[str] = field(default_factory=list)
    modifiers: List[str] = field(default_factory=list)
    line: int = 0


@dataclass
class ImportsStmt(Node):
    namespace: str
    line: int = 0
