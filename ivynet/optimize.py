"""Simplifications of nets that preserve their meaning."""

from __future__ import annotations

import copy

from ivynet.ast import (
    BlackBox, Comb, Erase, F32, GlobalRef, N32, Net, Nets, Tree, TreeNode, Var,
)


def _replace(tree: Tree, new: Tree) -> None:
    tree.tree_node = new.tree_node
    tree.ty = new.ty


# Pruning


def prune(nets: Nets) -> None:
    """Remove every net not reachable from ``::main``, if there is one."""
    if "::main" not in nets:
        return
    keep: set[str] = set()
    todo = ["::main"]
    while todo:
        name = todo.pop()
        if name in keep:
            continue
        keep.add(name)
        stack = list(nets[name].trees())
        while stack:
            tree = stack.pop()
            if isinstance(tree.tree_node, GlobalRef):
                todo.append(tree.tree_node.name)
            stack.extend(tree.children())
    for name in [n for n in nets if n not in keep]:
        del nets[name]


# Inlining globals


def _is_nilary(node: TreeNode) -> bool:
    if isinstance(node, (Erase, N32, F32, GlobalRef)):
        return True
    if isinstance(node, BlackBox):
        return _is_nilary(node.inner.tree_node)
    return False


def _should_inline(net: Net) -> bool:
    return not net.pairs and _is_nilary(net.root.tree_node)


def inline_globals(nets: Nets) -> bool:
    """Inline globals defined to be single-node nets; return whether any were."""
    candidates: dict[str, Tree] = {}
    for name, net in nets.items():
        if not _should_inline(net):
            continue
        seen = {name}
        while isinstance(net.root.tree_node, GlobalRef):
            target = net.root.tree_node.name
            referenced = nets[target]
            if target in seen or not _should_inline(referenced):
                break
            seen.add(target)
            net = referenced
        candidates[name] = copy.deepcopy(net.root)

    inlined = False

    def process(tree: Tree) -> None:
        nonlocal inlined
        node = tree.tree_node
        if isinstance(node, GlobalRef):
            candidate = candidates.get(node.name)
            if candidate is not None:
                _replace(tree, copy.deepcopy(candidate))
                inlined = True
        else:
            for child in tree.children():
                process(child)

    for net in nets.values():
        for tree in net.trees():
            process(tree)
    return inlined


# Inlining variables


class InlineVars:
    """Removes ``var = tree`` pairs, inlining ``tree`` where ``var`` is used."""

    def __init__(self) -> None:
        self.mappings: dict[str, Tree] = {}

    def apply(self, net: Net) -> None:
        kept = []
        for a, b in net.pairs:
            while True:
                if isinstance(a.tree_node, Var):
                    var, other = a.tree_node.name, b
                elif isinstance(b.tree_node, Var):
                    var, other = b.tree_node.name, a
                else:
                    if not (isinstance(a.tree_node, Erase) and isinstance(b.tree_node, Erase)):
                        kept.append((a, b))
                    break
                if var in self.mappings:
                    a, b = self.mappings.pop(var), other
                else:
                    self.mappings[var] = other
                    break
        net.pairs = kept

        for tree in net.trees():
            self._apply_tree(tree)

        if self.mappings:
            names = ", ".join(sorted(self.mappings))
            self.mappings.clear()
            raise ValueError(f"variables used only once: {names}")

    def _apply_tree(self, tree: Tree) -> None:
        while isinstance(tree.tree_node, Var):
            new = self.mappings.pop(tree.tree_node.name, None)
            if new is None:
                break
            _replace(tree, new)
        for child in tree.children():
            self._apply_tree(child)


# Eta reduction


def _walk(tree: Tree, vars_: dict[str, int], nodes: list[tuple]) -> None:
    node = tree.tree_node
    if isinstance(node, Erase):
        kind: tuple = ("erase",)
    elif isinstance(node, N32):
        kind = ("n32", node.value)
    elif isinstance(node, F32):
        kind = ("f32", node.value)
    elif isinstance(node, Var):
        i = vars_.pop(node.name, None)
        if i is None:
            vars_[node.name] = len(nodes)
            kind = ("hole",)
        else:
            j = len(nodes)
            nodes[i] = ("var", j - i)
            kind = ("var", i - j)
    elif isinstance(node, Comb):
        kind = ("comb", node.label)
    else:
        kind = ("other",)
    nodes.append(kind)
    for child in tree.children():
        _walk(child, vars_, nodes)


def _same_kind(a: tuple, b: tuple) -> bool:
    return len(a) == len(b) and all(x == y for x, y in zip(a, b))


class _Reducer:
    def __init__(self, nodes: list[tuple]) -> None:
        self.nodes = nodes
        self.index = 0
        self.reduced = False

    def reduce(self, tree: Tree) -> tuple:
        index = self.index
        self.index += 1
        kind = self.nodes[index]
        node = tree.tree_node
        if isinstance(node, Comb):
            ak = self.reduce(node.left)
            bk = self.reduce(node.right)
            if _same_kind(ak, bk):
                if ak[0] == "var":
                    target = index + ak[1]
                    reducible = 0 <= target and _same_kind(self.nodes[target], kind)
                else:
                    reducible = ak[0] in ("erase", "n32", "f32")
                if reducible:
                    self.reduced = True
                    _replace(tree, node.left)
                    return ak
        else:
            for child in tree.children():
                self.reduce(child)
        return kind


def eta_reduce(net: Net) -> bool:
    """Replace ``(_ _)`` with ``_`` and ``(a b) ... (a b)`` with ``x ... x``.

    Returns whether anything was reduced.
    """
    nodes: list[tuple] = []
    vars_: dict[str, int] = {}
    for tree in net.trees():
        _walk(tree, vars_, nodes)
    reducer = _Reducer(nodes)
    for tree in net.trees():
        reducer.reduce(tree)
    return reducer.reduced


# The optimizer


class Optimizer:
    """Runs pruning, inlining and eta reduction until nothing changes."""

    def __init__(self) -> None:
        self.inline_vars = InlineVars()

    def optimize(self, nets: Nets) -> None:
        prune(nets)
        while True:
            for net in nets.values():
                while True:
                    self.inline_vars.apply(net)
                    if not eta_reduce(net):
                        break
            if not inline_globals(nets):
                break
        prune(nets)