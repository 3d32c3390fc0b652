import pytest

from ivynet.ast import (
    Comb, Erase, FlowLabel, GlobalRef, Net, NetIn, NetOut, NetPair, Nets, PrimitiveType,
    Tree, TypeIn, TypeOut, TypePair, Var,
)
from ivynet.flow_analysis import (
    FlowAnalysis, FlowCycleError, FlowError, IncompatibleFlowLabelError,
)

N32 = PrimitiveType.N32
IO = PrimitiveType.IO


def _edges_consistent(analysis):
    counts = [0] * len(analysis.flow_nodes)
    for node in analysis.flow_nodes:
        for n in node.neighbors:
            counts[n] += 1
    return counts == [node.num_incoming_edges for node in analysis.flow_nodes]


def _labelled_net(in_label, out_labels):
    net_type = NetPair("t", NetIn(N32, in_label), NetOut(N32, tuple(out_labels)))
    root = Tree(
        Comb("t", Tree(Var("x"), TypeIn(N32)), Tree(Var("x"), TypeOut(N32))),
        TypePair("t", TypeIn(N32), TypeOut(N32)),
    )
    return Net(net_type, root)


def test_matching_flow_label_passes():
    a = FlowLabel("a")
    analysis = FlowAnalysis.analyze_net(_labelled_net(a, [a]), {})
    assert _edges_consistent(analysis)
    assert all(node.tree.tree_node == Var("x") for node in analysis.flow_nodes)


def test_default_label_must_be_accepted():
    with pytest.raises(IncompatibleFlowLabelError) as info:
        FlowAnalysis.analyze_net(_labelled_net(FlowLabel(), []), {})
    assert info.value.flow_label == FlowLabel()
    ok = FlowAnalysis.analyze_net(_labelled_net(FlowLabel(), [FlowLabel()]), {})
    assert _edges_consistent(ok)


def test_cycle_through_variable_is_detected():
    net = Net(
        NetIn(IO),
        Tree(Erase(), TypeIn(IO)),
        [(Tree(Var("x"), TypeIn(N32)), Tree(Var("x"), TypeOut(N32)))],
    )
    with pytest.raises(FlowCycleError) as info:
        FlowAnalysis.analyze_net(net, {})
    assert {str(t.tree_node) for t in info.value.cycle} == {"x"}
    assert str(info.value).startswith("Cycle detected in flow graph:\n")
    assert isinstance(info.value, FlowError)


def test_global_net_type_connects_labelled_ports():
    a = FlowLabel("a")
    f_type = NetPair("t", NetIn(N32, a), NetOut(N32, (a,)))
    pair_ty = TypePair("t", TypeIn(N32), TypeOut(N32))
    net = Net(
        NetIn(IO),
        Tree(Erase(), TypeIn(IO)),
        [(Tree(GlobalRef("::f"), pair_ty),
          Tree(Erase(), TypePair("t", TypeOut(N32), TypeIn(N32))))],
    )
    analysis = FlowAnalysis.analyze_net(net, {"::f": f_type})
    assert analysis.flow_nodes[0].neighbors == [1]
    assert _edges_consistent(analysis)
    assert str(analysis).startswith("Node 0: ::f:")


def test_analyze_nets_covers_every_net():
    nets = Nets()
    nets["::f"] = Net(NetIn(IO), Tree(Erase(), TypeIn(IO)))
    nets["::main"] = Net(NetIn(IO), Tree(GlobalRef("::f"), TypeIn(IO)))
    result = FlowAnalysis.analyze_nets(nets)
    assert list(result) == ["::f", "::main"]
    assert all(_edges_consistent(a) for a in result.values())


def test_untyped_tree_is_rejected():
    net = Net(NetIn(IO), Tree(Erase()))
    with pytest.raises(ValueError):
        FlowAnalysis.analyze_net(net, {})