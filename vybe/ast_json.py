"""JSON serialization/deserialization for Vybe AST.

This module converts between Vybe AST dataclasses and plain Python
dict/list structures suitable for JSON encoding. Nodes are written as
`{"type": <class name>, <field>: ...}` using the dataclass fields of each
node, so every node type and `TypeSpec` round-trips without a per-node
table.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any, Dict

from . import ast as ast_nodes
from .types import TypeSpec


NODE_TYPES: Dict[str, type] = {
    name: cls for name, cls in vars(ast_nodes).items()
    if isinstance(cls, type) and issubclass(cls, ast_nodes.Node)
}


def typespec_to_obj(t: TypeSpec) -> Dict[str, Any]:
    return {"kind": t.kind, "args": [typespec_to_obj(a) for a in t.args], "rank": t.rank}


def typespec_from_obj(o: Dict[str, Any]) -> TypeSpec:
    return TypeSpec(o["kind"], tuple(typespec_from_obj(x) for x in o.get("args", [])), o.get("rank", 0))


def ast_to_obj(node: Any) -> Any:
    # Primitives
    if node is None:
        return None
    if isinstance(node, (int, float, str, bool)):
        return node

    # TypeSpec
    if isinstance(node, TypeSpec):
        return {"__type__": "TypeSpec", "value": typespec_to_obj(node)}

    if isinstance(node, list):
        return [ast_to_obj(n) for n in node]
    if isinstance(node, tuple):
        return {"__tuple__": [ast_to_obj(n) for n in node]}

    # Node types
    if is_dataclass(node) and isinstance(node, ast_nodes.Node):
        obj = {"type": type(node).__name__}
        for f in fields(node):
            obj[f.name] = ast_to_obj(getattr(node, f.name))
        return obj

    raise TypeError(f"Unsupported node for serialization: {type(node).__name__}")


def ast_from_obj(obj: Any) -> Any:
    if obj is None or isinstance(obj, (int, float, str, bool)):
        return obj
    if isinstance(obj, list):
        return [ast_from_obj(o) for o in obj]
    if not isinstance(obj, dict):
        raise TypeError("Invalid AST object")
    if obj.get("__type__") == "TypeSpec":
        return typespec_from_obj(obj["value"])
    if "__tuple__" in obj:
        return tuple(ast_from_obj(o) for o in obj["__tuple__"])
    t = obj.get("type")
    cls = NODE_TYPES.get(t)
    if cls is None:
        raise ValueError(f"Unknown AST node type: {t}")
    kwargs = {f.name: ast_from_obj(obj[f.name]) for f in fields(cls) if f.name in obj}
    return cls(**kwargs)
