from ivynet.ast import (
    BlackBox, Branch, Comb, Erase, ExtFnNode, GlobalRef, N32, Net, NetIn, NetOut, NetPair,
    Nets, PrimitiveType, Tree, TypeIn, TypeOut, TypePair, Var,
)
from ivynet.type_inference import TypeInference

IN_N32 = TypeIn(PrimitiveType.N32)
OUT_N32 = TypeOut(PrimitiveType.N32)
IN_IO = TypeIn(PrimitiveType.IO)
OUT_IO = TypeOut(PrimitiveType.IO)


def infer(root, net_type=NetIn(PrimitiveType.IO), pairs=(), extra=None):
    nets = Nets(extra or {})
    nets["::main"] = Net(net_type, root, list(pairs))
    TypeInference.infer_types(nets)
    return nets


def test_root_var_takes_net_type():
    root = Tree(Var("x"))
    infer(root)
    assert root.ty == IN_IO


def test_n32_ext_fn():
    left, right = Tree(N32(1)), Tree(Var("o"))
    a, b = Tree(ExtFnNode("n32_add", False, left, right)), Tree(N32(2))
    infer(Tree(Erase()), pairs=[(a, b)])
    assert a.ty == IN_N32
    assert left.ty == OUT_N32
    assert right.ty == IN_N32
    assert b.ty == OUT_N32


def test_io_ext_fn_swapped():
    left, right = Tree(Var("i")), Tree(Var("o"))
    a = Tree(ExtFnNode("io_print_char", True, left, right))
    infer(Tree(Erase()), pairs=[(a, Tree(N32(0)))])
    assert a.ty == IN_N32
    assert left.ty == OUT_IO
    assert right.ty == IN_IO


def test_comb_hint_propagates():
    l, r = Tree(Var("a")), Tree(Var("b"))
    root = Tree(Comb("p", l, r))
    infer(root, NetPair("p", NetIn(PrimitiveType.IO), NetOut(PrimitiveType.N32)))
    assert l.ty == IN_IO
    assert r.ty == OUT_N32
    assert root.ty == TypePair("p", IN_IO, OUT_N32)


def test_global_ref_and_branch_and_blackbox():
    g = Tree(GlobalRef("::g"))
    br = Tree(Branch(Tree(Var("z")), Tree(Var("p")), Tree(Var("o"))))
    bb = Tree(BlackBox(Tree(N32(3))))
    extra = {"::g": Net(NetOut(PrimitiveType.N32), Tree(N32(1)))}
    infer(Tree(Erase()), pairs=[(g, br), (bb, Tree(Var("q")))], extra=extra)
    assert g.ty == OUT_N32
    assert br.ty == IN_N32
    assert bb.ty == OUT_N32


def test_existing_type_kept():
    root = Tree(Var("x"), OUT_N32)
    infer(root)
    assert root.ty == OUT_N32


def test_seq_uses_right_type():
    right = Tree(Var("o"), IN_IO)
    a = Tree(ExtFnNode("seq", False, Tree(Var("x")), right))
    infer(Tree(Erase()), pairs=[(a, Tree(Erase()))])
    assert a.ty == right.ty