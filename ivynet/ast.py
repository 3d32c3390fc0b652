"""The syntax tree of interaction nets and their types."""

from __future__ import annotations

import enum
import math
import struct
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union


class PrimitiveType(enum.Enum):
    N32 = "N32"
    F32 = "F32"
    IO = "IO"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FlowLabel:
    """A flow label; ``name`` is ``None`` for the default label."""

    name: Optional[str] = None

    def __str__(self) -> str:
        return "" if self.name is None else f"'{self.name}"


@dataclass(frozen=True)
class TypeIn:
    ty: PrimitiveType

    def __str__(self) -> str:
        return f"~{self.ty}"


@dataclass(frozen=True)
class TypeOut:
    ty: PrimitiveType

    def __str__(self) -> str:
        return str(self.ty)


@dataclass(frozen=True)
class TypePair:
    label: str
    left: "Type"
    right: "Type"

    def __str__(self) -> str:
        return f"{self.label}({self.left} {self.right})"


Type = Union[TypeIn, TypeOut, TypePair]


@dataclass(frozen=True)
class NetIn:
    ty: PrimitiveType
    flow_label: FlowLabel = FlowLabel()

    def to_type(self) -> Type:
        return TypeIn(self.ty)

    def __str__(self) -> str:
        return f"~{self.ty}{self.flow_label}"


@dataclass(frozen=True)
class NetOut:
    ty: PrimitiveType
    flow_labels: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "flow_labels", tuple(self.flow_labels))

    def to_type(self) -> Type:
        return TypeOut(self.ty)

    def __str__(self) -> str:
        return f"{self.ty}" + "".join(str(f) for f in self.flow_labels)


@dataclass(frozen=True)
class NetPair:
    label: str
    left: "NetType"
    right: "NetType"

    def to_type(self) -> Type:
        return TypePair(self.label, self.left.to_type(), self.right.to_type())

    def __str__(self) -> str:
        return f"{self.label}({self.left} {self.right})"


NetType = Union[NetIn, NetOut, NetPair]


def _f32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _format_f32(value: float) -> str:
    if math.isnan(value):
        return "+NaN"
    sign = "-" if math.copysign(1.0, value) < 0 else "+"
    a = abs(value)
    if math.isinf(a):
        return sign + "inf"
    if a == 0:
        return sign + "0.0"
    target = _f32(a)
    for precision in range(0, 17):
        text = f"{a:.{precision}e}"
        if _f32(float(text)) == target:
            break
    mantissa, exp_text = text.split("e")
    exp = int(exp_text)
    digits = mantissa.replace(".", "").rstrip("0") or "0"
    if -4 <= exp < 16:
        if exp >= 0:
            whole = digits[: exp + 1].ljust(exp + 1, "0")
            frac = digits[exp + 1:] or "0"
        else:
            whole = "0"
            frac = "0" * (-exp - 1) + digits
        return f"{sign}{whole}.{frac}"
    mant = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
    return f"{sign}{mant}e{exp}"


@dataclass
class Erase:
    def __str__(self) -> str:
        return "_"


@dataclass
class Comb:
    label: str
    left: "Tree"
    right: "Tree"

    def __str__(self) -> str:
        return f"{self.label}({self.left} {self.right})"


@dataclass
class ExtFnNode:
    name: str
    swap: bool
    left: "Tree"
    right: "Tree"

    def __str__(self) -> str:
        return f"@{self.name}{'$' if self.swap else ''}({self.left} {self.right})"


@dataclass
class Branch:
    zero: "Tree"
    positive: "Tree"
    out: "Tree"

    def __str__(self) -> str:
        return f"?({self.zero} {self.positive} {self.out})"


@dataclass
class N32:
    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= 0xFFFF_FFFF:
            raise ValueError(f"{self.value} does not fit in 32 bits")

    def __str__(self) -> str:
        return str(self.value)


@dataclass
class F32:
    value: float

    def __post_init__(self) -> None:
        v = float(self.value)
        if not (math.isnan(v) or math.isinf(v)):
            v = _f32(v)
        self.value = v

    def __str__(self) -> str:
        return _format_f32(self.value)


@dataclass
class Var:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass
class GlobalRef:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass
class BlackBox:
    inner: "Tree"

    def __str__(self) -> str:
        return f"#[{self.inner}]"


TreeNode = Union[Erase, Comb, ExtFnNode, Branch, N32, F32, Var, GlobalRef, BlackBox]


@dataclass
class Tree:
    """A tree node together with its type, once known."""

    tree_node: TreeNode = field(default_factory=Erase)
    ty: Optional[Type] = None

    def children(self) -> tuple[Tree, ...]:
        """The direct subtrees, in order."""
        node = self.tree_node
        if isinstance(node, (Comb, ExtFnNode)):
            return (node.left, node.right)
        if isinstance(node, Branch):
            return (node.zero, node.positive, node.out)
        if isinstance(node, BlackBox):
            return (node.inner,)
        return ()

    @staticmethod
    def n_ary(label: str, ports) -> Tree:
        """Nest ``ports`` right-associatively under combinators labelled ``label``."""
        ports = list(ports)
        if not ports:
            return Tree()
        acc = ports[-1]
        for a in reversed(ports[:-1]):
            b = acc
            if b.ty is not None and a.ty is not None:
                ty: Optional[Type] = TypePair(label, b.ty, a.ty)
            else:
                ty = None
            acc = Tree(Comb(label, a, b), ty)
        return acc

    def __str__(self) -> str:
        if self.ty is not None:
            return f"{self.tree_node}:{self.ty}"
        return str(self.tree_node)


@dataclass
class Net:
    net_type: NetType
    root: Tree
    pairs: list = field(default_factory=list)

    def trees(self) -> Iterator[Tree]:
        """The root, then both sides of every pair."""
        yield self.root
        for a, b in self.pairs:
            yield a
            yield b

    def __str__(self) -> str:
        if not self.pairs:
            return f"{{ {self.root} }}"
        lines = [f"{{\n  {self.root}"]
        lines += [f"\n  {a} = {b}" for a, b in self.pairs]
        return "".join(lines) + "\n}"


class Nets(dict):
    """Named nets in definition order."""

    def __str__(self) -> str:
        return "".join(f"\n{name} {net}\n" for name, net in self.items())