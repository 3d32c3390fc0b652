"""Inference of missing tree types from net types and node kinds."""

from __future__ import annotations

from typing import Optional

from ivynet.ast import (
    BlackBox, Branch, Comb, Erase, ExtFnNode, F32, GlobalRef, N32, NetType, Nets,
    PrimitiveType, Tree, Type, TypeIn, TypeOut, TypePair, Var,
)

_N32_FNS = frozenset({
    "n32_add", "n32_sub", "n32_mul", "n32_div", "n32_rem", "n32_eq", "n32_ne", "n32_lt",
    "n32_le", "n32_shl", "n32_shr", "n32_rotl", "n32_rotr", "n32_and", "n32_or", "n32_xor",
    "n32_add_high", "n32_mul_high",
})
_F32_FNS = frozenset({
    "f32_add", "f32_sub", "f32_mul", "f32_div", "f32_rem", "f32_eq", "f32_ne", "f32_lt",
    "f32_le",
})
_IO_FNS = frozenset({"io_print_char", "io_print_byte", "io_flush", "io_read_byte"})

_IN_N32 = TypeIn(PrimitiveType.N32)
_OUT_N32 = TypeOut(PrimitiveType.N32)
_IN_F32 = TypeIn(PrimitiveType.F32)
_OUT_F32 = TypeOut(PrimitiveType.F32)
_IN_IO = TypeIn(PrimitiveType.IO)
_OUT_IO = TypeOut(PrimitiveType.IO)


class TypeInference:
    """Fills in the ``ty`` of trees whose type can be inferred."""

    def __init__(self, global_types: dict[str, NetType]) -> None:
        self.global_types = global_types

    @staticmethod
    def infer_types(nets: Nets) -> None:
        """Infer types throughout ``nets`` in place."""
        global_types = {name: net.net_type for name, net in nets.items()}
        TypeInference(global_types).infer_types_nets(nets)

    def infer_types_nets(self, nets: Nets) -> None:
        for net in nets.values():
            self._infer_tree(net.root, net.net_type.to_type())
            for a, b in net.pairs:
                self._infer_tree(a, None)
                self._infer_tree(b, None)

    def _infer_tree(self, tree: Tree, hint: Optional[Type]) -> None:
        if hint is None:
            hint = tree.ty
        node = tree.tree_node
        inferred: Optional[Type] = None
        if isinstance(node, (Erase, Var)):
            inferred = None
        elif isinstance(node, N32):
            inferred = _OUT_N32
        elif isinstance(node, F32):
            inferred = _OUT_F32
        elif isinstance(node, GlobalRef):
            inferred = self.global_types[node.name].to_type()
        elif isinstance(node, ExtFnNode):
            hint_left: Optional[Type] = None
            hint_right: Optional[Type] = None
            name = node.name
            if name in _N32_FNS:
                hint_left, hint_right, inferred = _OUT_N32, _IN_N32, _IN_N32
            elif name in _F32_FNS:
                hint_left, hint_right, inferred = _OUT_F32, _IN_F32, _IN_F32
            elif name in _IO_FNS:
                hint_right = _IN_N32 if name == "io_read_byte" else _IN_IO
                if node.swap:
                    hint_left, inferred = _OUT_IO, _IN_N32
                else:
                    hint_left, inferred = _OUT_N32, _IN_IO
            elif name == "seq":
                inferred = node.right.ty
            self._infer_tree(node.left, hint_left)
            self._infer_tree(node.right, hint_right)
        elif isinstance(node, Comb):
            if isinstance(hint, TypePair):
                left_hint, right_hint = hint.left, hint.right
            else:
                left_hint = right_hint = None
            self._infer_tree(node.left, left_hint)
            self._infer_tree(node.right, right_hint)
            if node.left.ty is not None and node.right.ty is not None:
                inferred = TypePair(node.label, node.left.ty, node.right.ty)
        elif isinstance(node, Branch):
            self._infer_tree(node.zero, None)
            self._infer_tree(node.positive, None)
            self._infer_tree(node.out, None)
            inferred = _IN_N32
        elif isinstance(node, BlackBox):
            self._infer_tree(node.inner, hint)
            inferred = node.inner.ty

        if tree.ty is None:
            tree.ty = inferred if inferred is not None else hint