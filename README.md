# ivynet

`ivynet` works with Ivy interaction nets. You build them as Python objects and
then analyse and simplify them. You can infer the types of their trees, check
that those types fit together, reject nets whose flow graph has a cycle or
breaks a flow label, and optimize them. It also has the building blocks that
sit under a net runtime: external values and functions, a word-addressed heap
with wires, and a string interner.

## Modules

| Module | Contents |
| --- | --- |
| `ivynet.ast` | `Nets`, `Net`, `Tree`. Tree nodes: `Erase`, `Comb`, `ExtFnNode`, `Branch`, `N32`, `F32`, `Var`, `GlobalRef`, `BlackBox`. Tree types: `TypeIn`, `TypeOut`, `TypePair`. Net types: `NetIn`, `NetOut`, `NetPair`. Also `PrimitiveType` and `FlowLabel`. |
| `ivynet.type_inference` | `TypeInference.infer_types(nets)` fills in missing tree types in place. |
| `ivynet.type_check` | `TypeChecker.type_check(nets)`, the helpers `can_interact_with`, `compatible_with` and `trees_can_interact`, and `TypeCheckError`. |
| `ivynet.flow_analysis` | `FlowAnalysis.analyze_nets(nets)` and `FlowAnalysis.analyze_net(net, net_types)`. Failures raise `FlowCycleError` or `IncompatibleFlowLabelError`, both subclasses of `FlowError`. |
| `ivynet.optimize` | `Optimizer`, and the passes `prune`, `inline_globals`, `InlineVars` and `eta_reduce`. |
| `ivynet.ext` | `Extrinsics`, `ExtTy`, `ExtVal`, `ExtFn`. |
| `ivynet.heap` | `Heap`, `Wire`, `other_half`, `left_half`, and the free-word markers `FREE` and `FreeLink`. |
| `ivynet.interner` | `StringInterner` and `Interned`. |

## Checking a net

```python
from ivynet.ast import ExtFnNode, N32, NetIn, Net, Nets, PrimitiveType, Tree, Var
from ivynet.flow_analysis import FlowAnalysis
from ivynet.optimize import Optimizer
from ivynet.type_check import TypeChecker
from ivynet.type_inference import TypeInference

root = Tree(ExtFnNode("io_print_char", False, Tree(N32(72)), Tree(Var("done"))))
nets = Nets({"::main": Net(NetIn(PrimitiveType.IO), root)})

TypeInference.infer_types(nets)
print(root)                      # @io_print_char(72:N32 done:~IO):~IO

TypeChecker.type_check(nets)     # raises TypeCheckError if ill-typed
FlowAnalysis.analyze_nets(nets)  # raises FlowCycleError / IncompatibleFlowLabelError

Optimizer().optimize(nets)
print(nets)
```

The type checker requires a net named `::main` whose type can interact with
`~IO`. When a check fails, the `TypeCheckError` it raises carries the more
specific reasons in its cause chain (`__cause__`).

`FlowAnalysis.analyze_nets` returns a dictionary that maps each net name to
its `FlowAnalysis`. Printing one of these lists the nodes of its flow graph and
their edges.

## Optimizing

`Optimizer().optimize(nets)` does the following until nothing changes:

* removes nets that cannot be reached from `::main` (`prune`);
* replaces `var = tree` pairs by putting `tree` where `var` is used
  (`InlineVars`);
* eta-reduces `(_ _)` to `_`, and `(a b) ... (a b)` to `x ... x`
  (`eta_reduce`);
* inlines globals whose net is a single node (`inline_globals`).

`InlineVars.apply` raises `ValueError` if the net uses a variable only once.

## External values and functions

`Extrinsics` is a registry. `register_light_ext_ty()` and
`register_n32_ext_ty()` add value types. `register_ext_fn(f)` adds a function
of two `ExtVal`s and returns its `ExtFn`. `call(ext_fn, a, b)` applies the
function and swaps the arguments when the `ExtFn` has its swap bit set.
`ExtVal.as_ty(ty)` raises `TypeError` if the value has a different type.

## What the package does not do

* It does not reduce nets. There is no engine that links ports and runs
  interactions, and no way to run a net in parallel.
* It does not turn nets into runnable definitions, and it does not read ports
  back into trees.
* It does not register a default set of external functions such as `n32_add`
  or `io_print_char`. The type checker and type inference know their names, but
  nothing here carries them out.
* It has no parser for Ivy source text. Nets are built from the `ivynet.ast`
  classes.
* It has no command-line tool and produces no execution statistics.

## Tests

The tests use pytest and live in `tests/`. Install with the `test` extra and
run `pytest`.