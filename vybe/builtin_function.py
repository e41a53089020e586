"""Built-in dispatch registry for the Vybe language.

Natives come in three shapes. Functions are reached by (possibly dotted)
name, e.g. `Len` or `Math.Sqrt`, and are called as `fn(interp, args)`.
Methods are keyed by the kind of their receiver, e.g. `("string",
"toupper")`, and are called as `fn(interp, receiver, args)`. Constructors
back `New T(...)` for library types and are called as `fn(interp,
type_spec, args)`.

Method lookup walks a fixed fallback chain per receiver kind, so a query
operator registered once for "sequence" serves arrays, lists and every
other collection. Nothing outside these tables is ever tried.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from vybe.errors import BindingError
from vybe.types import ArrayVal, ExceptionVal, TaskVal, TypeSpec, NOTHING


@dataclass
class BuiltinFunction:
    name: str
    fn: Any
    min_args: int = 0
    max_args: Optional[int] = None
    # Argument positions that receive the caller's cell instead of a value.
    byref: Tuple[int, ...] = ()
    category: str = ''

    def check_arity(self, count: int):
        if count < self.min_args or (self.max_args is not None and count > self.max_args):
            if self.max_args is None:
                expected = f"at least {self.min_args}"
            elif self.min_args == self.max_args:
                expected = str(self.min_args)
            else:
                expected = f"{self.min_args} to {self.max_args}"
            raise BindingError('ArgumentException',
                               f"'{self.name}' expects {expected} argument(s) but received {count}.")

    def __repr__(self) -> str:
        return f"<builtin {self.name}>"


@dataclass
class BoundBuiltin:
    """A native method together with the value it was looked up on."""
    fn: BuiltinFunction
    receiver: Any

    def __repr__(self) -> str:
        return f"<builtin {self.fn.name}>"


# Leading namespaces that are accepted and ignored in qualified names.
NAMESPACE_PREFIXES = (
    'system.', 'microsoft.visualbasic.', 'io.', 'collections.generic.', 'collections.',
    'text.', 'threading.tasks.', 'threading.', 'linq.', 'diagnostics.', 'globalization.',
)

RECEIVER_CHAINS = {
    'string': ('string', 'sequence', 'object'),
    'array': ('array', 'sequence', 'object'),
    'list': ('list', 'sequence', 'object'),
    'dictionary': ('dictionary', 'sequence', 'object'),
    'collection': ('collection', 'sequence', 'object'),
    'queue': ('queue', 'sequence', 'object'),
    'stack': ('stack', 'sequence', 'object'),
    'hashset': ('hashset', 'sequence', 'object'),
    'grouping': ('grouping', 'sequence', 'object'),
    'number': ('number', 'object'),
    'boolean': ('boolean', 'object'),
    'date': ('date', 'object'),
    'userobject': ('userobject', 'object'),
    'userexception': ('exception', 'userobject', 'object'),
}


def receiver_kind(value: Any) -> str:
    """Classify a value for method dispatch."""
    from vybe.collection_types import (
        ListVal, DictionaryVal, KeyedCollection, QueueVal, StackVal, HashSetVal, Grouping,
        StringBuilderVal, KeyValuePair,
    )
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, (int, float)):
        return 'number'
    if isinstance(value, str):
        return 'string'
    if isinstance(value, datetime):
        return 'date'
    if isinstance(value, ArrayVal):
        return 'array'
    if isinstance(value, ListVal):
        return 'list'
    if isinstance(value, DictionaryVal):
        return 'dictionary'
    if isinstance(value, KeyedCollection):
        return 'collection'
    if isinstance(value, QueueVal):
        return 'queue'
    if isinstance(value, StackVal):
        return 'stack'
    if isinstance(value, HashSetVal):
        return 'hashset'
    if isinstance(value, Grouping):
        return 'grouping'
    if isinstance(value, StringBuilderVal):
        return 'stringbuilder'
    if isinstance(value, KeyValuePair):
        return 'keyvaluepair'
    if isinstance(value, ExceptionVal):
        return 'exception'
    if isinstance(value, TaskVal):
        return 'task'
    if isinstance(value, TypeSpec):
        return 'type'
    if value is NOTHING:
        return 'nothing'
    return getattr(value, 'receiver_kind', 'object')


def normalize_name(name: str) -> str:
    """Lower-case a qualified name and drop namespace prefixes."""
    key = name.lower()
    stripped = True
    while stripped:
        stripped = False
        for prefix in NAMESPACE_PREFIXES:
            if key.startswith(prefix):
                key = key[len(prefix):]
                stripped = True
    return key


class BuiltinRegistry:
    """Case-insensitive tables of native functions, methods and constructors."""

    def __init__(self):
        self.functions: Dict[str, BuiltinFunction] = {}
        self.methods: Dict[Tuple[str, str], BuiltinFunction] = {}
        self.constructors: Dict[str, Callable] = {}
        self.constants: Dict[str, Any] = {}
        self.namespaces = {'system', 'microsoft', 'microsoft.visualbasic'}

    def _note_namespaces(self, key: str):
        parts = key.split('.')
        for i in range(1, len(parts)):
            self.namespaces.add('.'.join(parts[:i]))

    def function(self, names, fn, min_args: int = 0, max_args: Optional[int] = None,
                 byref: Tuple[int, ...] = (), category: str = '') -> BuiltinFunction:
        names = (names,) if isinstance(names, str) else tuple(names)
        builtin = BuiltinFunction(names[0], fn, min_args, max_args, byref, category)
        for name in names:
            key = normalize_name(name)
            self.functions[key] = builtin
            self._note_namespaces(key)
        return builtin

    def method(self, receivers, names, fn, min_args: int = 0, max_args: Optional[int] = None,
               byref: Tuple[int, ...] = (), category: str = '') -> BuiltinFunction:
        receivers = (receivers,) if isinstance(receivers, str) else tuple(receivers)
        names = (names,) if isinstance(names, str) else tuple(names)
        builtin = BuiltinFunction(names[0], fn, min_args, max_args, byref, category)
        for receiver in receivers:
            for name in names:
                self.methods[(receiver, name.lower())] = builtin
        return builtin

    def constructor(self, names, fn):
        names = (names,) if isinstance(names, str) else tuple(names)
        for name in names:
            self.constructors[normalize_name(name)] = fn

    def constant(self, names, value: Any):
        names = (names,) if isinstance(names, str) else tuple(names)
        for name in names:
            key = normalize_name(name)
            self.constants[key] = value
            self._note_namespaces(key)

    def lookup_function(self, name: str) -> Optional[BuiltinFunction]:
        return self.functions.get(normalize_name(name))

    def has_constant(self, name: str) -> bool:
        return normalize_name(name) in self.constants

    def lookup_constant(self, name: str) -> Any:
        return self.constants[normalize_name(name)]

    def lookup_constructor(self, type_spec: TypeSpec) -> Optional[Callable]:
        return self.constructors.get(normalize_name(type_spec.kind))

    def is_namespace(self, name: str) -> bool:
        key = name.lower()
        if key in self.namespaces or normalize_name(key) in self.namespaces:
            return True
        # `System.IO` and friends are pure prefixes.
        return normalize_name(key + '.') == ''

    def lookup_method(self, kind: str, name: str) -> Optional[BuiltinFunction]:
        key = name.lower()
        for receiver in RECEIVER_CHAINS.get(kind, (kind, 'object')):
            builtin = self.methods.get((receiver, key))
            if builtin is not None:
                return builtin
        return None


def default_registry() -> BuiltinRegistry:
    """Build a registry holding the whole standard library."""
    from vybe.std import populate_registry
    registry = BuiltinRegistry()
    populate_registry(registry)
    return registry
