import pytest

from ivynet.ast import (
    Comb, Erase, GlobalRef, N32, Net, NetIn, Nets, PrimitiveType, Tree, Var,
)
from ivynet.optimize import InlineVars, Optimizer, eta_reduce, inline_globals, prune

IO = NetIn(PrimitiveType.IO)


def _net(root, pairs=()):
    return Net(IO, root, list(pairs))


def _comb(label, a, b):
    return Tree(Comb(label, a, b))


def test_prune_drops_unreachable_nets():
    nets = Nets()
    nets["::main"] = _net(Tree(GlobalRef("::a")))
    nets["::a"] = _net(Tree(Erase()))
    nets["::b"] = _net(Tree(Erase()))
    prune(nets)
    assert list(nets) == ["::main", "::a"]


def test_prune_without_main_keeps_everything():
    nets = Nets()
    nets["::a"] = _net(Tree(Erase()))
    nets["::b"] = _net(Tree(GlobalRef("::a")))
    prune(nets)
    assert list(nets) == ["::a", "::b"]


def test_inline_globals_replaces_nilary_global():
    nets = Nets()
    nets["::main"] = _net(_comb("t", Tree(GlobalRef("::a")), Tree(Erase())))
    nets["::a"] = _net(Tree(N32(5)))
    assert inline_globals(nets) is True
    assert nets["::main"].root.tree_node.left == Tree(N32(5))


def test_inline_globals_follows_chains():
    nets = Nets()
    nets["::main"] = _net(_comb("t", Tree(GlobalRef("::a")), Tree(Erase())))
    nets["::a"] = _net(Tree(GlobalRef("::b")))
    nets["::b"] = _net(Tree(N32(7)))
    inline_globals(nets)
    assert nets["::main"].root.tree_node.left == Tree(N32(7))


def test_inline_globals_skips_nets_with_pairs():
    nets = Nets()
    nets["::main"] = _net(_comb("t", Tree(GlobalRef("::a")), Tree(Erase())))
    nets["::a"] = _net(Tree(Var("x")), [(Tree(Var("x")), Tree(Erase()))])
    assert inline_globals(nets) is False
    assert nets["::main"].root.tree_node.left == Tree(GlobalRef("::a"))


def test_inline_vars_moves_tree_into_use():
    comb = _comb("t", Tree(Erase()), Tree(N32(1)))
    net = _net(Tree(Var("x")), [(Tree(Var("x")), comb)])
    InlineVars().apply(net)
    assert net.pairs == []
    assert net.root == _comb("t", Tree(Erase()), Tree(N32(1)))


def test_inline_vars_drops_erase_pairs_and_keeps_others():
    active = (_comb("t", Tree(Erase()), Tree(Erase())), Tree(N32(3)))
    net = _net(Tree(Erase()), [(Tree(Erase()), Tree(Erase())), active])
    InlineVars().apply(net)
    assert net.pairs == [active]


def test_inline_vars_rejects_unmatched_variable():
    net = _net(Tree(Erase()), [(Tree(Var("y")), Tree(N32(2)))])
    inliner = InlineVars()
    with pytest.raises(ValueError):
        inliner.apply(net)
    assert inliner.mappings == {}


def test_eta_reduce_erasers():
    net = _net(_comb("t", Tree(Erase()), Tree(Erase())))
    assert eta_reduce(net) is True
    assert net.root == Tree(Erase())


def test_eta_reduce_keeps_distinct_numbers():
    root = _comb("t", Tree(N32(1)), Tree(N32(2)))
    net = _net(root)
    assert eta_reduce(net) is False
    assert str(net.root) == "t(1 2)"


def test_eta_reduce_matching_variable_pairs():
    net = _net(
        _comb("t", Tree(Var("a")), Tree(Var("b"))),
        [(_comb("t", Tree(Var("a")), Tree(Var("b"))), Tree(Erase()))],
    )
    assert eta_reduce(net) is True
    assert str(net.root) == "a"
    assert net.pairs == [(Tree(Var("a")), Tree(Erase()))]


def test_eta_reduce_requires_same_label():
    net = _net(
        _comb("t", Tree(Var("a")), Tree(Var("b"))),
        [(_comb("u", Tree(Var("a")), Tree(Var("b"))), Tree(Erase()))],
    )
    assert eta_reduce(net) is False
    assert str(net.root) == "t(a b)"


def test_optimizer_simplifies_and_prunes():
    nets = Nets()
    nets["::main"] = _net(
        Tree(Var("x")), [(Tree(Var("x")), _comb("t", Tree(Erase()), Tree(Erase())))]
    )
    nets["::dead"] = _net(Tree(Erase()))
    Optimizer().optimize(nets)
    assert list(nets) == ["::main"]
    assert nets["::main"].root == Tree(Erase())
    assert nets["::main"].pairs == []