import pytest

from ivynet.ast import (
    BlackBox, Branch, Comb, Erase, ExtFnNode, F32, FlowLabel, GlobalRef, N32, Net, NetIn,
    NetOut, NetPair, Nets, PrimitiveType, Tree, TypeIn, TypeOut, TypePair, Var,
)


def t(node, ty=None):
    return Tree(node, ty)


def test_tree_display():
    tree = t(Comb("a", t(N32(1)), t(Erase())))
    assert str(tree) == "a(1 _)"
    assert str(t(ExtFnNode("n32_add", True, t(Var("x")), t(Var("y"))))) == "@n32_add$(x y)"
    assert str(t(ExtFnNode("seq", False, t(Var("x")), t(Var("y"))))) == "@seq(x y)"
    assert str(t(Branch(t(Var("a")), t(Var("b")), t(Var("c"))))) == "?(a b c)"
    assert str(t(BlackBox(t(GlobalRef("::g"))))) == "#[::g]"


def test_typed_tree_display():
    assert str(t(N32(5), TypeOut(PrimitiveType.N32))) == "5:N32"
    assert str(t(Var("x"), TypeIn(PrimitiveType.IO))) == "x:~IO"


@pytest.mark.parametrize("value,text", [(1.0, "+1.0"), (-2.5, "-2.5"), (float("nan"), "+NaN"),
                                        (float("inf"), "+inf")])
def test_f32_display(value, text):
    assert str(F32(value)) == text


def test_net_type_display_and_to_type():
    ty = NetPair("p", NetIn(PrimitiveType.N32, FlowLabel("a")),
                 NetOut(PrimitiveType.IO, [FlowLabel("a"), FlowLabel("b")]))
    assert str(ty) == "p(~N32'a IO'a'b)"
    assert ty.to_type() == TypePair("p", TypeIn(PrimitiveType.N32), TypeOut(PrimitiveType.IO))
    assert str(ty.to_type()) == "p(~N32 IO)"


def test_children():
    a, b, c = t(Var("a")), t(Var("b")), t(Var("c"))
    assert t(Branch(a, b, c)).children() == (a, b, c)
    assert t(BlackBox(a)).children() == (a,)
    assert t(N32(1)).children() == ()


def test_n_ary():
    assert Tree.n_ary("t", []).tree_node == Erase()
    tree = Tree.n_ary("t", [t(Var("a")), t(Var("b")), t(Var("c"))])
    assert str(tree) == "t(a t(b c))"
    assert tree.ty is None


def test_net_display_and_trees():
    root = t(Var("x"))
    assert str(Net(NetIn(PrimitiveType.IO), root)) == "{ x }"
    p1, p2 = t(Var("x")), t(Erase())
    net = Net(NetIn(PrimitiveType.IO), root, [(p1, p2)])
    assert str(net) == "{\n  x\n  x = _\n}"
    assert list(net.trees()) == [root, p1, p2]
    nets = Nets({"::main": Net(NetIn(PrimitiveType.IO), t(Erase()))})
    assert str(nets) == "\n::main { _ }\n"


def test_n32_range():
    with pytest.raises(ValueError):
        N32(1 << 32)