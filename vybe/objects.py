"""Classes, instances and callable values for the Vybe language.

A `ClassDef` collects the members of every (partial) declaration of a
class, structure or interface. Instances are `ObjectVal`s; their scope is
an `ObjectEnvironment` that resolves fields, properties and methods of
the instance before falling back to shared members and the enclosing
module or program scope, which is how unqualified member names resolve
inside method bodies.

Property and element accesses that must behave like variables (ByRef
arguments, compound assignment) are represented by proxy cells exposing
the same `value` / `assign` surface as `Cell`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from .ast import ClassDecl, EventDecl, Lambda, MethodDecl, PropertyDecl, VarDecl
from .collection_types import DictionaryVal, KeyedCollection, ListVal, StringBuilderVal
from .environment import Cell, Environment
from .errors import BindingError, is_builtin_exception, normalize_exception_name, raise_exception
from .types import ArrayVal, TypeSpec, to_integer, to_string


class ClassDef:
    """A user class, structure or interface."""

    def __init__(self, name: str, kind: str, outer_env: Environment):
        self.name = name
        self.kind = kind
        self.base_name: Optional[str] = None
        self.base: Optional[ClassDef] = None
        self.interfaces: List[str] = []
        self.modifiers: List[str] = []
        self.fields: List[VarDecl] = []
        self.shared_fields: List[VarDecl] = []
        self.methods: Dict[str, List[MethodDecl]] = {}
        self.properties: Dict[str, PropertyDecl] = {}
        self.constructors: List[MethodDecl] = []
        self.shared_constructors: List[MethodDecl] = []
        self.events: Dict[str, EventDecl] = {}
        self.handlers: Dict[str, List[Any]] = {}
        self.outer_env = outer_env
        self.shared_env: Optional[ClassEnvironment] = None
        self.interp = None

    type_label = 'Type'

    @property
    def display_name(self) -> str:
        return self.name

    def add_members(self, decl: ClassDecl):
        if decl.base:
            self.base_name = decl.base
        self.interfaces.extend(decl.implements)
        self.modifiers.extend(decl.modifiers)
        for member in decl.members:
            if isinstance(member, VarDecl):
                if member.is_const or 'shared' in member.modifiers or self.kind == 'module':
                    self.shared_fields.append(member)
                else:
                    self.fields.append(member)
            elif isinstance(member, MethodDecl):
                if member.name.lower() == 'new':
                    if 'shared' in member.modifiers:
                        self.shared_constructors.append(member)
                    else:
                        self.constructors.append(member)
                else:
                    self.methods.setdefault(member.name.lower(), []).append(member)
            elif isinstance(member, PropertyDecl):
                if member.is_auto:
                    field = VarDecl(member.name, member.type_spec, member.init, False, None,
                                    member.modifiers, member.line)
                    if 'shared' in member.modifiers:
                        self.shared_fields.append(field)
                    else:
                        self.fields.append(field)
                else:
                    self.properties[member.name.lower()] = member
            elif isinstance(member, EventDecl):
                self.events[member.name.lower()] = member

    def chain(self) -> List['ClassDef']:
        """This class followed by its base classes."""
        result = []
        cls: Optional[ClassDef] = self
        while cls is not None and cls not in result:
            result.append(cls)
            cls = cls.base
        return result

    def exception_base(self) -> Optional[str]:
        """The built-in exception type at the root of the chain, if any."""
        for cls in self.chain():
            if cls.base is None and cls.base_name and is_builtin_exception(normalize_exception_name(cls.base_name)):
                return normalize_exception_name(cls.base_name)
        return None

    def is_abstract(self) -> bool:
        return self.kind == 'interface' or 'mustinherit' in self.modifiers

    def is_subtype_of(self, name: str) -> bool:
        key = name.split('.')[-1].lower()
        for cls in self.chain():
            if cls.name.lower() == key:
                return True
            if any(i.split('.')[-1].lower() == key for i in cls.interfaces):
                return True
            interp = cls.interp
            if interp is not None:
                for iface in cls.interfaces:
                    iface_def = interp.classes.get(iface.split('.')[-1].lower())
                    if iface_def is not None and iface_def is not cls and iface_def.is_subtype_of(name):
                        return True
        base = self.exception_base()
        if base is not None:
            from .errors import exception_chain
            return any(c.lower() == key for c in exception_chain(base))
        return False

    def find_method(self, key: str, start: Optional['ClassDef'] = None) -> List[Tuple[MethodDecl, 'ClassDef']]:
        """Overloads visible from `start` (default: this class), most derived first."""
        found: List[Tuple[MethodDecl, ClassDef]] = []
        signatures = set()
        for cls in (start or self).chain():
            for decl in cls.methods.get(key, ()):
                signature = tuple((p.type_spec.key if p.type_spec else '') for p in decl.params)
                if signature in signatures:
                    continue
                signatures.add(signature)
                found.append((decl, cls))
        return found

    def find_property(self, key: str, start: Optional['ClassDef'] = None) -> Optional[Tuple[PropertyDecl, 'ClassDef']]:
        for cls in (start or self).chain():
            decl = cls.properties.get(key)
            if decl is not None and (decl.getter is not None or decl.setter is not None):
                return decl, cls
        return None

    def __repr__(self) -> str:
        return f"<class {self.name}>"


class ClassEnvironment(Environment):
    """Scope of a class's shared members."""

    def __init__(self, parent: Optional[Environment], cls: ClassDef):
        super().__init__(parent, cls.name)
        self.cls = cls

    def find_local(self, key: str) -> Optional[Cell]:
        cell = self.cells.get(key)
        if cell is not None:
            return cell
        return member_cell(self.cls, None, key, self.cls)


class ObjectVal:
    """An instance of a user class or structure."""

    def __init__(self, cls: ClassDef):
        self.cls = cls
        self.fields: Dict[str, Cell] = {}
        self.handlers: Dict[str, List[Any]] = {}
        self.env = ObjectEnvironment(cls.shared_env, self)
        # Set by the built-in exception constructor for user exception types.
        self.exception_message: Optional[str] = None
        self.inner_exception: Any = None

    @property
    def type_label(self) -> str:
        return self.cls.name

    @property
    def display_name(self) -> str:
        return self.cls.name

    @property
    def receiver_kind(self) -> str:
        return 'userexception' if self.cls.exception_base() else 'userobject'

    def __repr__(self) -> str:
        return f"<{self.cls.name} object>"


class ObjectEnvironment(Environment):
    """Scope of an instance: fields, properties and methods of `obj`."""

    def __init__(self, parent: Optional[Environment], obj: ObjectVal):
        super().__init__(parent, obj.cls.name)
        self.obj = obj

    def find_local(self, key: str) -> Optional[Cell]:
        cell = self.obj.fields.get(key)
        if cell is not None:
            return cell
        return member_cell(self.obj.cls, self.obj, key, self.obj.cls)


def member_cell(cls: ClassDef, obj: Optional[ObjectVal], key: str, start: ClassDef) -> Optional[Any]:
    """Resolve a property or method named `key` as a cell, or None."""
    shared_only = obj is None and cls.kind != 'module'
    found = cls.find_property(key, start)
    if found is not None:
        decl, owner = found
        if shared_only and 'shared' not in decl.modifiers:
            return None
        if decl.params:
            return Cell(BoundProperty(obj, decl, owner), is_const=True)
        return PropertyCell(cls.interp, obj, decl, owner)
    methods = cls.find_method(key, start)
    if methods:
        if shared_only:
            methods = [(d, c) for d, c in methods if 'shared' in d.modifiers]
            if not methods:
                return None
        procedures = [Procedure(decl, owner, obj.env if obj is not None else owner.shared_env, obj)
                      for decl, owner in methods]
        return Cell(MethodGroup(methods[0][0].name, procedures), is_const=True)
    return None


class Procedure:
    """A user Sub or Function together with the scope its body runs in."""
    __slots__ = ('decl', 'cls', 'env', 'obj')

    def __init__(self, decl: MethodDecl, cls: Optional[ClassDef], env: Environment,
                 obj: Optional[ObjectVal] = None):
        self.decl = decl
        self.cls = cls
        self.env = env
        self.obj = obj

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, Procedure) and self.decl is other.decl and self.obj is other.obj

    def __hash__(self) -> int:
        return hash((id(self.decl), id(self.obj)))


class MethodGroup:
    """The overloads reachable through one procedure name."""
    type_label = 'Delegate'

    def __init__(self, name: str, procedures: List[Procedure]):
        self.name = name
        self.procedures = procedures

    @property
    def display_name(self) -> str:
        return self.name

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, MethodGroup) and self.procedures == other.procedures

    def __hash__(self) -> int:
        return hash(tuple(self.procedures))

    def __repr__(self) -> str:
        return f"<method {self.name}>"


class LambdaVal:
    """A lambda closed over the scope it was created in."""
    type_label = 'Delegate'
    display_name = 'Lambda'

    def __init__(self, node: Lambda, env: Environment, obj: Optional[ObjectVal] = None,
                 cls: Optional[ClassDef] = None):
        self.node = node
        self.env = env
        self.obj = obj
        self.cls = cls

    def __repr__(self) -> str:
        return '<lambda>'


class DelegateVal:
    """An instance of a declared `Delegate` type wrapping another callable."""

    def __init__(self, name: str, target: Any):
        self.name = name
        self.target = target

    @property
    def type_label(self) -> str:
        return self.name

    @property
    def display_name(self) -> str:
        return self.name

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, DelegateVal) and self.target == other.target

    def __hash__(self) -> int:
        return hash(id(self.target))


class BoundProperty:
    """A parameterized property, called like a method to read it."""

    def __init__(self, obj: Optional[ObjectVal], decl: PropertyDecl, cls: ClassDef):
        self.obj = obj
        self.decl = decl
        self.cls = cls


class ConstructorRef:
    """`MyBase.New` / `Me.New` inside a constructor."""

    def __init__(self, obj: ObjectVal, cls: Optional[ClassDef], owner: ClassDef):
        self.obj = obj
        self.cls = cls
        self.owner = owner


class BaseRef:
    """`MyBase`: the current instance seen from the base of `cls`."""

    def __init__(self, obj: ObjectVal, cls: ClassDef):
        self.obj = obj
        self.cls = cls


class EnumVal(int):
    """An enum member: an Integer that remembers its member name."""

    def __new__(cls, value: int, enum_name: str = '', member_name: str = ''):
        obj = super().__new__(cls, value)
        obj.enum_name = enum_name
        obj.member_name = member_name
        return obj

    @property
    def type_label(self) -> str:
        return self.enum_name

    def __repr__(self) -> str:
        return f"{self.enum_name}.{self.member_name}"


class EnumDef:
    type_label = 'Type'

    def __init__(self, name: str):
        self.name = name
        self.members: Dict[str, EnumVal] = {}

    @property
    def display_name(self) -> str:
        return self.name

    def member(self, name: str) -> EnumVal:
        value = self.members.get(name.lower())
        if value is None:
            raise BindingError('MissingMemberException', f"'{name}' is not a member of '{self.name}'.")
        return value

    def name_of(self, value: int) -> Optional[str]:
        for member in self.members.values():
            if int(member) == int(value):
                return member.member_name
        return None


class NamespaceRef:
    """A partially qualified library name such as `System.IO`."""

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"<namespace {self.name}>"


class ErrObject:
    """The classic `Err` object describing the last trapped error."""
    type_label = 'ErrObject'
    receiver_kind = 'errobject'

    def __init__(self):
        self.clear()

    def clear(self):
        self.number = 0
        self.description = ''
        self.source = ''
        self.exception = None

    def capture(self, error):
        self.number = error.number
        self.description = error.message
        self.source = 'Vybe'
        self.exception = error.value

    @property
    def display_name(self) -> str:
        return str(self.number)


###############################################################################
# Proxy cells
###############################################################################

class PropertyCell:
    """A property access that reads through its getter and writes through its setter."""
    is_const = False

    def __init__(self, interp, obj: Optional[ObjectVal], decl: PropertyDecl, cls: ClassDef,
                 args: Optional[List[Any]] = None):
        self.interp = interp
        self.obj = obj
        self.decl = decl
        self.cls = cls
        self.args = args or []

    @property
    def type_spec(self) -> Optional[TypeSpec]:
        return self.decl.type_spec

    @property
    def value(self) -> Any:
        return self.interp.get_property(self.obj, self.decl, self.cls, self.args)

    def assign(self, value: Any):
        self.interp.set_property(self.obj, self.decl, self.cls, self.args, value)


class ElementCell:
    """One element of an array, list, dictionary or collection."""
    is_const = False
    type_spec = None

    def __init__(self, container: Any, indices: List[Any]):
        self.container = container
        self.indices = indices

    @property
    def value(self) -> Any:
        return get_element(self.container, self.indices)

    def assign(self, value: Any):
        set_element(self.container, self.indices, value)


def _single_index(indices: List[Any], what: str) -> Any:
    if len(indices) != 1:
        raise BindingError('ArgumentException', f"{what} takes exactly one index.")
    return indices[0]


def is_indexable(value: Any) -> bool:
    return isinstance(value, (ArrayVal, ListVal, DictionaryVal, KeyedCollection, str, StringBuilderVal))


def get_element(container: Any, indices: List[Any]) -> Any:
    if isinstance(container, ArrayVal):
        return container.get([to_integer(i) for i in indices])
    if isinstance(container, ListVal):
        return container.get(to_integer(_single_index(indices, 'List')))
    if isinstance(container, DictionaryVal):
        return container.get(_single_index(indices, 'Dictionary'))
    if isinstance(container, KeyedCollection):
        return container.item(_single_index(indices, 'Collection'))
    if isinstance(container, (str, StringBuilderVal)):
        text = container if isinstance(container, str) else container.text
        position = to_integer(_single_index(indices, 'String'))
        if position < 0 or position >= len(text):
            raise_exception('IndexOutOfRangeException', 'Index was outside the bounds of the array.')
        return text[position]
    raise BindingError('MissingMemberException',
                       f"Value of type '{getattr(container, 'type_label', type(container).__name__)}' cannot be indexed.")


def set_element(container: Any, indices: List[Any], value: Any):
    if isinstance(container, ArrayVal):
        container.set([to_integer(i) for i in indices], value)
    elif isinstance(container, ListVal):
        container.set(to_integer(_single_index(indices, 'List')), value)
    elif isinstance(container, DictionaryVal):
        container.set(_single_index(indices, 'Dictionary'), value)
    elif isinstance(container, KeyedCollection):
        container.set_item(_single_index(indices, 'Collection'), value)
    elif isinstance(container, StringBuilderVal):
        position = to_integer(_single_index(indices, 'StringBuilder'))
        if position < 0 or position >= len(container.text):
            raise_exception('ArgumentOutOfRangeException', 'Index was out of range.')
        text = container.text
        container.text = text[:position] + to_string(value)[:1] + text[position + 1:]
    else:
        raise BindingError('MissingMemberException',
                           f"Value of type '{getattr(container, 'type_label', type(container).__name__)}' cannot be indexed.")
