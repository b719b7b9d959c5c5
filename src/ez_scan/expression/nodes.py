"""Expression AST nodes."""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Set, Tuple


class Node:
    """Base class for immutable expression nodes."""

    def children(self) -> Tuple["Node", ...]:
        return ()

    def walk(self) -> Iterator["Node"]:
        """Yield this node and all descendants, depth first."""
        yield self
        for child in self.children():
            yield from child.walk()

    def fields(self) -> Set[str]:
        """Base fields referenced anywhere in the tree."""
        return {n.field for n in self.walk() if isinstance(n, Symbol)}

    def functions(self) -> Set[str]:
        """Function names called anywhere in the tree."""
        return {n.name for n in self.walk() if isinstance(n, Call)}

    @property
    def is_boolean(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class Number(Node):
    value: float

    def __str__(self) -> str:
        if float(self.value).is_integer():
            return str(int(self.value))
        return repr(self.value)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "number", "value": self.value}


@dataclass(frozen=True)
class Symbol(Node):
    name: str
    field: str

    def __str__(self) -> str:
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "field", "symbol": self.name, "field": self.field}


@dataclass(frozen=True)
class Call(Node):
    name: str
    args: Tuple[Node, ...]

    def children(self) -> Tuple[Node, ...]:
        return self.args

    def __str__(self) -> str:
        return f"{self.name}({', '.join(str(a) for a in self.args)})"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "call", "name": self.name, "args": [a.to_dict() for a in self.args]}


@dataclass(frozen=True)
class Unary(Node):
    op: str
    operand: Node

    def children(self) -> Tuple[Node, ...]:
        return (self.operand,)

    def __str__(self) -> str:
        return f"{self.op}{_wrap(self.operand)}"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "unary", "op": self.op, "operand": self.operand.to_dict()}


@dataclass(frozen=True)
class Binary(Node):
    """Arithmetic operation."""

    op: str
    left: Node
    right: Node

    def children(self) -> Tuple[Node, ...]:
        return (self.left, self.right)

    def __str__(self) -> str:
        return f"{_wrap(self.left)} {self.op} {_wrap(self.right)}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "binary",
            "op": self.op,
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
        }


@dataclass(frozen=True)
class Compare(Node):
    """Comparison producing a boolean."""

    op: str
    left: Node
    right: Node

    def children(self) -> Tuple[Node, ...]:
        return (self.left, self.right)

    @property
    def is_boolean(self) -> bool:
        return True

    def __str__(self) -> str:
        left = f"({self.left})" if isinstance(self.left, Compare) else str(self.left)
        right = f"({self.right})" if isinstance(self.right, Compare) else str(self.right)
        return f"{left} {self.op} {right}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "compare",
            "op": self.op,
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
        }


def _wrap(node: Node) -> str:
    # Parenthesize compound operands so str() round-trips through the parser.
    if isinstance(node, (Binary, Compare, Unary)):
        return f"({node})"
    return str(node)


def node_from_dict(data: Dict[str, Any]) -> Node:
    """Rebuild a tree produced by ``Node.to_dict``."""
    kind = data.get("type")
    if kind == "number":
        return Number(float(data["value"]))
    if kind == "field":
        return Symbol(data["symbol"], data["field"])
    if kind == "call":
        return Call(data["name"], tuple(node_from_dict(a) for a in data["args"]))
    if kind == "unary":
        return Unary(data["op"], node_from_dict(data["operand"]))
    if kind == "binary":
        return Binary(data["op"], node_from_dict(data["left"]), node_from_dict(data["right"]))
    if kind == "compare":
        return Compare(data["op"], node_from_dict(data["left"]), node_from_dict(data["right"]))
    raise ValueError(f"Unknown node type '{kind}'")
