"""Flow analysis: checks that values flow through a net without cycles and
only along the flow labels its type allows."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from ivynet.ast import FlowLabel, Net, NetIn, NetOut, NetPair, NetType, Nets, Tree, TreeNode
from ivynet.ast import (
    BlackBox, Branch, Comb, Erase, ExtFnNode, F32, GlobalRef, N32, Type, TypeIn, TypeOut,
    TypePair, Var,
)


class FlowError(Exception):
    """A net whose flow graph is not acceptable."""


class FlowCycleError(FlowError):
    """The flow graph of a net contains a cycle."""

    def __init__(self, cycle: list[Tree]) -> None:
        self.cycle = list(cycle)
        message = "Cycle detected in flow graph:\n" + "".join(f"{t}\n" for t in self.cycle)
        super().__init__(message)


class IncompatibleFlowLabelError(FlowError):
    """A flow label reaches an output that does not accept it."""

    def __init__(self, flow_label: FlowLabel, tree: Tree) -> None:
        self.flow_label = flow_label
        self.tree = tree
        super().__init__(
            f"Tree {tree} has the incompatible flow with label {flow_label} flowing into it\n"
        )


@dataclass(frozen=True)
class _In:
    """Flow towards the leaves of the tree."""

    node: int


@dataclass(frozen=True)
class _Out:
    """Flow towards the root of the tree."""

    node: int


@dataclass(frozen=True)
class _Pair:
    label: str
    left: "_Flow"
    right: "_Flow"


_Flow = Union[_In, _Out, _Pair]


@dataclass(eq=False)
class FlowNode:
    """A node of the flow graph, belonging to one tree."""

    tree: Tree
    neighbors: list[int] = field(default_factory=list)
    num_incoming_edges: int = 0


class FlowAnalysis:
    """The flow graph of one net."""

    def __init__(self, net_types: dict[str, NetType]) -> None:
        self.net_types = net_types
        self.flow_nodes: list[FlowNode] = []
        self._var_flow: dict[str, _Flow] = {}

    @staticmethod
    def analyze_nets(nets: Nets) -> dict[str, FlowAnalysis]:
        """Analyze every net, raising :class:`FlowError` on the first bad one."""
        net_types = {name: net.net_type for name, net in nets.items()}
        return {name: FlowAnalysis.analyze_net(net, net_types) for name, net in nets.items()}

    @staticmethod
    def analyze_net(net: Net, net_types: dict[str, NetType]) -> FlowAnalysis:
        """Build and check the flow graph of ``net``; return the analysis."""
        analysis = FlowAnalysis(net_types)
        for tree1, tree2 in net.pairs:
            flow1 = analysis._build(tree1)
            flow2 = analysis._build(tree2)
            analysis._connect_tree_flows(flow1, flow2)
        root_flow = analysis._build(net.root)
        analysis._detect_cycles()
        analysis._check_flow_labels(root_flow, net.net_type)
        return analysis

    def __str__(self) -> str:
        lines = []
        for i, node in enumerate(self.flow_nodes):
            lines.append(f"Node {i}: {node.tree}\n")
            lines.append("    -> " + ", ".join(str(n) for n in node.neighbors) + "\n")
        return "".join(lines)

    # Building the graph

    def _build(self, tree: Tree) -> _Flow:
        ty = tree.ty
        if ty is None:
            raise ValueError(f"tree {tree} has no type")
        node: TreeNode = tree.tree_node
        if isinstance(node, (Erase, N32, F32)):
            return self._flow_from_type(ty, tree)
        if isinstance(node, GlobalRef):
            return self._flow_from_net_type(self.net_types[node.name], tree)
        if isinstance(node, Var):
            flow = self._flow_from_type(ty, tree)
            other = self._var_flow.pop(node.name, None)
            if other is None:
                self._var_flow[node.name] = flow
            else:
                self._connect_var_flows(flow, other)
            return flow
        if isinstance(node, ExtFnNode):
            arg2_flow = self._build(node.left)
            out_flow = self._build(node.right)
            flow = self._flow_from_type(ty, tree)
            self._connect_stacked_flows(flow, out_flow)
            self._connect_stacked_flows(flow, arg2_flow)
            self._connect_tree_flows(arg2_flow, out_flow)
            return flow
        if isinstance(node, Comb):
            if not isinstance(ty, TypePair):
                raise ValueError(f"combinator {tree} does not have a pair type")
            return _Pair(node.label, self._build(node.left), self._build(node.right))
        if isinstance(node, Branch):
            flow = self._flow_from_type(ty, tree)
            zero_flow = self._build(node.zero)
            positive_flow = self._build(node.positive)
            out_flow = self._build(node.out)
            self._connect_stacked_flows(flow, zero_flow)
            self._connect_stacked_flows(flow, positive_flow)
            self._connect_stacked_flows(flow, out_flow)
            self._connect_tree_flows(zero_flow, out_flow)
            self._connect_tree_flows(positive_flow, out_flow)
            return flow
        if isinstance(node, BlackBox):
            return self._build(node.inner)
        raise TypeError(f"not a tree node: {node!r}")

    def _new_node(self, tree: Tree) -> int:
        self.flow_nodes.append(FlowNode(tree))
        return len(self.flow_nodes) - 1

    def _flow_from_type(self, ty: Type, tree: Tree) -> _Flow:
        if isinstance(ty, TypeOut):
            return _Out(self._new_node(tree))
        if isinstance(ty, TypeIn):
            return _In(self._new_node(tree))
        left = self._flow_from_type(ty.left, tree)
        right = self._flow_from_type(ty.right, tree)
        return _Pair(ty.label, left, right)

    def _flow_from_net_type(self, net_type: NetType, tree: Tree) -> _Flow:
        return self._flow_from_net_type_aux(net_type, tree, {}, {})

    def _flow_from_net_type_aux(
        self,
        net_type: NetType,
        tree: Tree,
        flows_in: dict[FlowLabel, set[int]],
        flows_out: dict[FlowLabel, set[int]],
    ) -> _Flow:
        if isinstance(net_type, NetIn):
            node_id = self._new_node(tree)
            flows_in.setdefault(net_type.flow_label, set()).add(node_id)
            for out_node in flows_out.get(net_type.flow_label, ()):
                self._add_edge(node_id, out_node)
            return _In(node_id)
        if isinstance(net_type, NetOut):
            node_id = self._new_node(tree)
            for label in net_type.flow_labels:
                flows_out.setdefault(label, set()).add(node_id)
                for in_node in flows_in.get(label, ()):
                    self._add_edge(in_node, node_id)
            return _Out(node_id)
        left = self._flow_from_net_type_aux(net_type.left, tree, flows_in, flows_out)
        right = self._flow_from_net_type_aux(net_type.right, tree, flows_in, flows_out)
        return _Pair(net_type.label, left, right)

    def _connect_var_flows(self, flow1: _Flow, flow2: _Flow) -> None:
        match flow1, flow2:
            case _In(n1), _Out(n2):
                self._add_edge(n1, n2)
            case _Out(n1), _In(n2):
                self._add_edge(n2, n1)
            case _Pair(l1, left1, right1), _Pair(l2, left2, right2) if l1 == l2:
                self._connect_var_flows(left1, left2)
                self._connect_var_flows(right1, right2)
            case _:
                raise ValueError("the two ends of a variable have mismatching flows")

    def _connect_stacked_flows(self, top: _Flow, bottom: _Flow) -> None:
        match top, bottom:
            case _In(t), _In(b):
                self._add_edge(t, b)
            case _Out(t), _Out(b):
                self._add_edge(b, t)
            case (_In(), _Out()) | (_Out(), _In()):
                pass
            case _Pair(lt, left_t, right_t), _Pair(lb, left_b, right_b):
                if lt != lb:
                    raise ValueError("Mismatching flows")
                self._connect_stacked_flows(left_t, left_b)
                self._connect_stacked_flows(right_t, right_b)
            case single, _Pair(_, left, right):
                self._connect_stacked_flows(single, left)
                self._connect_stacked_flows(single, right)
            case _Pair(_, left, right), single:
                self._connect_stacked_flows(left, single)
                self._connect_stacked_flows(right, single)

    def _connect_tree_flows(self, flow1: _Flow, flow2: _Flow) -> None:
        match flow1, flow2:
            case _In(n1), _Out(n2):
                self._add_edge(n2, n1)
            case _Out(n1), _In(n2):
                self._add_edge(n1, n2)
            case (_Out(), _Out()) | (_In(), _In()):
                pass
            case _Pair(l1, left1, right1), _Pair(l2, left2, right2):
                if l1 == l2:
                    self._connect_tree_flows(left1, left2)
                    self._connect_tree_flows(right1, right2)
                else:
                    self._connect_tree_flows(left1, flow2)
                    self._connect_tree_flows(left2, flow2)
                    self._connect_tree_flows(flow1, right1)
                    self._connect_tree_flows(flow1, right2)
            case (single, _Pair(_, left, right)) | (_Pair(_, left, right), single):
                self._connect_tree_flows(left, single)
                self._connect_tree_flows(right, single)

    def _add_edge(self, source: int, target: int) -> None:
        self.flow_nodes[source].neighbors.append(target)
        self.flow_nodes[target].num_incoming_edges += 1

    # Checking the graph

    def _detect_cycles(self) -> None:
        visited = [False] * len(self.flow_nodes)
        for start in range(len(self.flow_nodes)):
            if visited[start]:
                continue
            visited[start] = True
            path = [start]
            on_path = {start}
            iters = [iter(self.flow_nodes[start].neighbors)]
            while iters:
                for neighbor in iters[-1]:
                    if neighbor in on_path:
                        cycle = path[path.index(neighbor):]
                        raise FlowCycleError([self.flow_nodes[i].tree for i in cycle])
                    if not visited[neighbor]:
                        visited[neighbor] = True
                        path.append(neighbor)
                        on_path.add(neighbor)
                        iters.append(iter(self.flow_nodes[neighbor].neighbors))
                        break
                else:
                    on_path.discard(path.pop())
                    iters.pop()

    @staticmethod
    def _root_flow_labels(
        root_flow: _Flow, net_type: NetType
    ) -> tuple[dict[int, FlowLabel], dict[int, tuple[FlowLabel, ...]]]:
        if isinstance(root_flow, _In) and isinstance(net_type, NetIn):
            return {root_flow.node: net_type.flow_label}, {}
        if isinstance(root_flow, _Out) and isinstance(net_type, NetOut):
            return {}, {root_flow.node: tuple(net_type.flow_labels)}
        if isinstance(root_flow, _Pair) and isinstance(net_type, NetPair):
            left_in, left_out = FlowAnalysis._root_flow_labels(root_flow.left, net_type.left)
            right_in, right_out = FlowAnalysis._root_flow_labels(root_flow.right, net_type.right)
            left_in.update(right_in)
            left_out.update(right_out)
            return left_in, left_out
        raise ValueError("root flow does not match the net type")

    def _check_flow_labels(self, root_flow: _Flow, net_type: NetType) -> None:
        root_in, root_out = self._root_flow_labels(root_flow, net_type)
        flows: list[set[FlowLabel]] = [set() for _ in self.flow_nodes]
        todo = []
        for node_index, label in root_in.items():
            todo.append(node_index)
            flows[node_index].add(label)

        unprocessed = [node.num_incoming_edges for node in self.flow_nodes]
        while todo:
            node_index = todo.pop()
            node_flow = set(flows[node_index])
            for neighbor in self.flow_nodes[node_index].neighbors:
                flows[neighbor] |= node_flow
                unprocessed[neighbor] -= 1
                if unprocessed[neighbor] == 0:
                    todo.append(neighbor)

        for node_index, labels in root_out.items():
            for reaching in flows[node_index]:
                if reaching not in labels:
                    raise IncompatibleFlowLabelError(reaching, self.flow_nodes[node_index].tree)