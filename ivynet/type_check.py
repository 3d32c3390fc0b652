"""Checking that the types of trees and nets fit together."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from ivynet.ast import (
    BlackBox, Branch, Comb, Erase, ExtFnNode, F32, GlobalRef, N32, Net, Nets,
    PrimitiveType, Tree, Type, TypeIn, TypeOut, TypePair, Var,
)

_N32_FNS = frozenset({
    "n32_add", "n32_sub", "n32_mul", "n32_div", "n32_rem", "n32_eq", "n32_ne", "n32_lt",
    "n32_le", "n32_shl", "n32_shr", "n32_rotl", "n32_rotr", "n32_and", "n32_or", "n32_xor",
    "n32_add_high", "n32_mul_high",
})
_F32_ARITH_FNS = frozenset({"f32_add", "f32_sub", "f32_mul", "f32_div", "f32_rem"})
_F32_CMP_FNS = frozenset({"f32_eq", "f32_ne", "f32_lt", "f32_le"})
_IO_FNS = frozenset({"io_print_char", "io_print_byte", "io_flush", "io_read_byte"})

_IN_N32 = TypeIn(PrimitiveType.N32)
_OUT_N32 = TypeOut(PrimitiveType.N32)
_IN_F32 = TypeIn(PrimitiveType.F32)
_OUT_F32 = TypeOut(PrimitiveType.F32)
_IN_IO = TypeIn(PrimitiveType.IO)
_OUT_IO = TypeOut(PrimitiveType.IO)


class TypeCheckError(Exception):
    """Types that do not fit; the cause chain holds the more specific reasons."""


@contextmanager
def _context(message: str) -> Iterator[None]:
    try:
        yield
    except TypeCheckError as err:
        raise TypeCheckError(message) from err


def can_interact_with(a: Type, b: Type) -> None:
    """Raise :class:`TypeCheckError` unless ports of types ``a`` and ``b`` may meet."""
    match a, b:
        case (TypeIn(ty1), TypeOut(ty2)) | (TypeOut(ty1), TypeIn(ty2)):
            if ty1 != ty2:
                raise TypeCheckError(f"Types {ty1} and {ty2} cannot interact")
        case (TypeIn(), TypeIn()) | (TypeOut(), TypeOut()):
            raise TypeCheckError(f"Types {a} and {b} of the same polarity cannot interact")
        case (TypePair(label1, left1, right1), TypePair(label2, left2, right2)):
            if label1 == label2:
                with _context(f"Left children of: {a} and {b}"):
                    can_interact_with(left1, left2)
                with _context(f"Right children of: {a} and {b}"):
                    can_interact_with(right1, right2)
            else:
                with _context(f"Left child of {a} and {b}"):
                    can_interact_with(left1, b)
                with _context(f"Right child of {a} and {b}"):
                    can_interact_with(right1, b)
                with _context(f"{a} and left child of {b}"):
                    can_interact_with(left2, a)
                with _context(f"{a} and right child of {b}"):
                    can_interact_with(right2, a)
        case (TypePair(_, left, right), _):
            with _context(f"Left child of {a} and {b}"):
                can_interact_with(left, b)
            with _context(f"Right child of {a} and {b}"):
                can_interact_with(right, b)
        case (_, TypePair(_, left, right)):
            with _context(f"{a} and left child of {b}"):
                can_interact_with(a, left)
            with _context(f"{a} and right child of {b}"):
                can_interact_with(a, right)
        case _:
            raise TypeCheckError(f"Types {a} and {b} are not types")


def compatible_with(a: Type, b: Type) -> None:
    """Raise :class:`TypeCheckError` unless ``a`` fits where ``b`` is expected."""
    match a, b:
        case (TypeIn(ty1), TypeIn(ty2)) | (TypeOut(ty1), TypeOut(ty2)):
            if ty1 != ty2:
                raise TypeCheckError(f"Types {ty1} and {ty2} are not the same")
        case (TypePair(label1, left1, right1), TypePair(label2, left2, right2)):
            if label1 != label2:
                raise TypeCheckError(f"Types {label1} and {label2} are not the same")
            with _context(f"Left children of: {a} and {b}"):
                compatible_with(left1, left2)
            with _context(f"Right children of: {a} and {b}"):
                compatible_with(right1, right2)
        case (TypePair(_, left, right), prim) | (prim, TypePair(_, left, right)):
            with _context(f"Left child of {a} if not compatible with {prim}"):
                compatible_with(left, prim)
            with _context(f"Right child of {a} if not compatible with {prim}"):
                compatible_with(right, prim)
        case _:
            raise TypeCheckError(f"Types {a} and {b} are not compatible")


def trees_can_interact(a: Tree, b: Tree) -> None:
    """Raise :class:`TypeCheckError` unless the typed trees ``a`` and ``b`` may meet."""
    if a.ty is None or b.ty is None:
        raise TypeCheckError(f"Type is empty for {a} or {b}")
    can_interact_with(a.ty, b.ty)


def _typed(tree: Tree, message: str) -> Type:
    if tree.ty is None:
        raise TypeCheckError(message)
    return tree.ty


class TypeChecker:
    """Checks every net of a set of typed nets."""

    def __init__(self, nets: Nets) -> None:
        self.nets = nets
        self.var_types: dict[str, Type] = {}

    @staticmethod
    def type_check(nets: Nets) -> None:
        """Raise :class:`TypeCheckError` if any net of ``nets`` is ill-typed."""
        TypeChecker(nets).type_check_nets()

    def type_check_nets(self) -> None:
        for name, net in self.nets.items():
            with _context(f"Failed to type check net {name}"):
                self._type_check_net(net)
        main = self.nets.get("::main")
        if main is None:
            raise TypeCheckError("No net named ::main")
        main_ty = main.net_type.to_type()
        with _context(f"Main net needs to be able to interact with ~IO but has type {main_ty}"):
            compatible_with(main_ty, _IN_IO)

    def _type_check_net(self, net: Net) -> None:
        self.var_types.clear()
        self._type_check_tree(net.root)
        net_type = net.net_type.to_type()
        root_type = net.root.ty
        if root_type != net_type:
            raise TypeCheckError(
                f"Root of the net has type {root_type} but needs to be {net_type}"
            )
        for t1, t2 in net.pairs:
            self._type_check_tree(t1)
            self._type_check_tree(t2)
            with _context(f"Types of {t1} and {t2} cannot interact"):
                trees_can_interact(t1, t2)

    def _type_check_tree(self, tree: Tree) -> None:
        ty = tree.ty
        if ty is None:
            raise TypeCheckError(f"Type not set for {tree}")
        node = tree.tree_node

        if isinstance(node, Erase):
            pass
        elif isinstance(node, N32):
            if ty != _OUT_N32:
                raise TypeCheckError(f"N32 nodes needs to be of type N32 but got {ty}")
        elif isinstance(node, F32):
            if ty != _OUT_F32:
                raise TypeCheckError(f"F32 nodes needs to be of type F32 but got {ty}")
        elif isinstance(node, Var):
            var_type = self.var_types.get(node.name)
            if var_type is None:
                self.var_types[node.name] = ty
            else:
                with _context(
                    f"Variable {node.name} has two types that cannot interact: "
                    f"{var_type} and {ty}"
                ):
                    can_interact_with(var_type, ty)
        elif isinstance(node, GlobalRef):
            net = self.nets.get(node.name)
            if net is None:
                raise TypeCheckError(f"Unknown global {node.name}")
            net_type = net.net_type.to_type()
            if net_type != ty:
                raise TypeCheckError(
                    f"Global {node.name} has type {net_type} and was used as {ty}"
                )
        elif isinstance(node, ExtFnNode):
            self._check_ext_fn(tree, node, ty)
        elif isinstance(node, Comb):
            left_ty = _typed(node.left, f"Left child of {tree} has no type")
            right_ty = _typed(node.right, "Right child has no type")
            if not isinstance(ty, TypePair):
                raise TypeCheckError(f"Comb nodes needs to be of type Pair but got {ty}")
            if node.label != ty.label:
                raise TypeCheckError(
                    f"Type label of {tree} needs to be {ty.label} but got {node.label}"
                )
            if ty.left != left_ty:
                raise TypeCheckError(
                    f"Left child of {tree} needs to be of type {ty.left} but got {left_ty}"
                )
            if ty.right != right_ty:
                raise TypeCheckError(
                    f"Right child of {tree} needs to be of type {ty.right} but got {right_ty}"
                )
        elif isinstance(node, Branch):
            with _context(f"Type of {tree} needs to be compatible with ~N32 but got {ty}"):
                compatible_with(ty, _IN_N32)
            zero_ty = _typed(node.zero, f"Zero child of {tree} has no type")
            positive_ty = _typed(node.positive, f"Positive child of {tree} has no type")
            out_ty = _typed(node.out, f"Out child of {tree} has no type")
            with _context(
                f"Out child of {tree} needs to be able to interact with {positive_ty} "
                f"but has type {out_ty}"
            ):
                can_interact_with(out_ty, positive_ty)
            with _context(
                f"Out child of {tree} needs to be able to interact with {zero_ty} "
                f"but has type {out_ty}"
            ):
                can_interact_with(out_ty, zero_ty)
        elif isinstance(node, BlackBox):
            inner_ty = _typed(node.inner, f"Inner child of {tree} has no type")
            if ty != inner_ty:
                raise TypeCheckError(
                    f"BlackBox nodes needs to be of type {inner_ty} but got {ty}"
                )

        for child in tree.children():
            self._type_check_tree(child)

    def _check_ext_fn(self, tree: Tree, node: ExtFnNode, ty: Type) -> None:
        name = node.name
        left_ty = _typed(node.left, f"Left child of {tree} has to have a type")
        out_ty = _typed(node.right, f"Out port of {tree} has no type")

        if name in _N32_FNS or name in _F32_ARITH_FNS or name in _F32_CMP_FNS:
            if name in _N32_FNS:
                fn_ty, arg_ty, res_ty = _IN_N32, _OUT_N32, _IN_N32
            elif name in _F32_ARITH_FNS:
                fn_ty, arg_ty, res_ty = _IN_F32, _OUT_F32, _IN_F32
            else:
                fn_ty, arg_ty, res_ty = _IN_N32, _OUT_F32, _IN_N32
            with _context(
                f"Type of ExtFn {name} needs to be compatible with {fn_ty} but got {ty}"
            ):
                compatible_with(ty, fn_ty)
            with _context(
                f"Left child of ExtFn {name} needs to be compatible with {arg_ty} "
                f"but got {left_ty}"
            ):
                compatible_with(left_ty, arg_ty)
            with _context(
                f"Result port of ExtFn {name} has to be compatible with {res_ty} "
                f"but has type {out_ty}"
            ):
                compatible_with(out_ty, res_ty)
        elif name in _IO_FNS:
            if node.swap:
                with _context(
                    f"ExtFn {name} with swapped arguments needs to be compatible "
                    f"with ~N32 but got {ty}"
                ):
                    compatible_with(ty, _IN_N32)
                with _context(
                    f"Second argument to ExtFn {name} has to be compatible with IO "
                    f"but got {left_ty}"
                ):
                    compatible_with(left_ty, _OUT_IO)
            else:
                with _context(f"ExtFn {name} needs to be compatible with ~IO but got {ty}"):
                    compatible_with(ty, _IN_IO)
                with _context(
                    f"First argument to ExtFn {name} has to be compatible with N32 "
                    f"but got {left_ty}"
                ):
                    compatible_with(left_ty, _OUT_N32)
            res_ty = _IN_N32 if name == "io_read_byte" else _IN_IO
            with _context(
                f"Result port of ExtFn {name} has to be compatible with {res_ty} "
                f"but has type {out_ty}"
            ):
                compatible_with(out_ty, res_ty)
        elif name == "seq":
            if node.swap:
                with _context(
                    f"Out port of ExtFn {name} with swapped arguments needs to be able "
                    f"to interact with {left_ty} but has type {out_ty}"
                ):
                    can_interact_with(out_ty, left_ty)
            elif out_ty != ty:
                raise TypeCheckError(f"Type of ExtFn {name} needs to be {out_ty} but got {ty}")
        else:
            raise TypeCheckError(f"Cannot type check unknown ExtFn {name}")