"""
Control Flow Graph Plan for NCL Code Generation.

While a function body is emitted, the generator records its blocks, the
branch edges between them and the incoming edges each phi node will need,
all as plain data. Phi incoming lists are attached to the backend in a
single finalize() pass once the body is complete.

Keeping the plan separate from the backend lets the shape of the graph be
checked on its own: validate() confirms that every phi has exactly one
incoming value per predecessor of its block.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple
from typing import TYPE_CHECKING

from ncl_errors import CompileError

if TYPE_CHECKING:
    from codegen.backend import LLVMBackend


@dataclass
class BlockPlan:
    """One basic block and its planned neighbours"""
    label: str
    handle: Any = None
    successors: List[str] = field(default_factory=list)
    predecessors: List[str] = field(default_factory=list)


@dataclass
class PhiPlan:
    """A phi node and the (value, predecessor label) pairs it will receive"""
    block: str
    name: str
    handle: Any = None
    incoming: List[Tuple[Any, str]] = field(default_factory=list)


class ControlFlowGraph:
    """Plan of blocks, edges and phi incomings for one function"""

    def __init__(self, function_name: str):
        self.function_name = function_name
        self.blocks: Dict[str, BlockPlan] = {}
        self.phis: List[PhiPlan] = []
        self.finalized = False

    def add_block(self, label: str, handle: Any = None) -> BlockPlan:
        if label in self.blocks:
            raise CompileError(f"Duplicate block '{label}' in '{self.function_name}'")
        plan = BlockPlan(label, handle)
        self.blocks[label] = plan
        return plan

    def add_edge(self, source: str, target: str):
        self.blocks[source].successors.append(target)
        self.blocks[target].predecessors.append(source)

    def plan_phi(self, block: str, name: str, handle: Any = None) -> PhiPlan:
        phi = PhiPlan(block, name, handle)
        self.phis.append(phi)
        return phi

    def add_incoming(self, phi: PhiPlan, value: Any, predecessor: str):
        phi.incoming.append((value, predecessor))

    def predecessors(self, label: str) -> List[str]:
        return list(self.blocks[label].predecessors)

    def successors(self, label: str) -> List[str]:
        return list(self.blocks[label].successors)

    def validate(self):
        """Check each phi has exactly one incoming edge per predecessor"""
        for phi in self.phis:
            expected = sorted(self.blocks[phi.block].predecessors)
            actual = sorted(pred for _, pred in phi.incoming)
            if expected != actual:
                raise CompileError(
                    f"Phi '{phi.name}' in block '{phi.block}' of "
                    f"'{self.function_name}' has incoming {actual}, "
                    f"predecessors are {expected}"
                )

    def finalize(self, backend: 'LLVMBackend'):
        """Validate the plan, then attach every phi incoming in one pass"""
        self.validate()
        for phi in self.phis:
            for value, predecessor in phi.incoming:
                backend.add_phi_incoming(phi.handle, value,
                                         self.blocks[predecessor].handle)
        self.finalized = True
