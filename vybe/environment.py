from typing import Any, Dict, Optional

from vybe.errors import BindingError, unresolved
from vybe.types import TypeSpec, coerce_value, default_value, NOTHING


class Cell:
    """A storage slot shared by every scope (and closure) that binds it."""
    __slots__ = ('value', 'type_spec', 'is_const')

    def __init__(self, value: Any = NOTHING, type_spec: Optional[TypeSpec] = None, is_const: bool = False):
        self.value = value
        self.type_spec = type_spec
        self.is_const = is_const

    def assign(self, value: Any):
        if self.is_const:
            raise BindingError('InvalidOperationException', 'Constant cannot be the target of an assignment.')
        self.value = coerce_value(value, self.type_spec)

    def __repr__(self) -> str:
        return f"Cell({self.value!r})"


class Environment:
    """A scope mapping case-insensitive identifiers to cells.

    Scopes only point to their parent; a closure keeps its defining scope
    alive by holding a reference to it.
    """
    def __init__(self, parent: Optional['Environment'] = None, name: str = ''):
        self.parent = parent
        self.name = name
        self.cells: Dict[str, Cell] = {}

    def lookup(self, name: str) -> Optional[Cell]:
        key = name.lower()
        env: Optional[Environment] = self
        while env is not None:
            cell = env.find_local(key)
            if cell is not None:
                return cell
            env = env.parent
        return None

    def find_local(self, key: str) -> Optional[Cell]:
        return self.cells.get(key)

    def has_local(self, name: str) -> bool:
        return name.lower() in self.cells

    def get(self, name: str) -> Any:
        cell = self.lookup(name)
        if cell is None:
            unresolved(name)
        return cell.value

    def set(self, name: str, value: Any):
        cell = self.lookup(name)
        if cell is None:
            unresolved(name)
        cell.assign(value)

    def declare(self, name: str, type_spec: Optional[TypeSpec] = None, value: Any = None,
                is_const: bool = False) -> Cell:
        key = name.lower()
        if key in self.cells:
            raise BindingError('InvalidOperationException', f"'{name}' is already declared in this scope.")
        if value is None:
            value = default_value(type_spec)
        else:
            value = coerce_value(value, type_spec)
        cell = Cell(value, type_spec, is_const)
        self.cells[key] = cell
        return cell

    def bind(self, name: str, cell: Cell):
        """Alias an existing cell under `name` in this scope."""
        self.cells[name.lower()] = cell

    def __repr__(self) -> str:
        return f"<Environment {self.name or hex(id(self))}: {sorted(self.cells)}>"
