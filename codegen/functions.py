"""
Function Code Generation for NCL.

This module handles:
- Extern declarations and forward declarations
- Function body generation
- Redeclaration checks against earlier prototypes
- Rolling back a definition whose body fails to generate
"""
from llvmlite import ir
from typing import TYPE_CHECKING, Optional

from ast_nodes import Prototype, FunctionDef
from ncl_errors import ArityMismatchError, RedefinitionError

from codegen.cfg import ControlFlowGraph

if TYPE_CHECKING:
    from codegen.core import CodeGenerator


class FunctionGenerator:
    """Generates function-related LLVM IR for the NCL compiler."""

    def __init__(self, cg: 'CodeGenerator'):
        """Initialize with reference to parent CodeGenerator instance."""
        self.cg = cg

    # ========================================================================
    # Function Declaration
    # ========================================================================

    def declare_function(self, proto: Prototype) -> ir.Function:
        """Declare a function, or return the matching existing declaration"""
        existing = self.cg.backend.get_function(proto.name)
        if existing is not None:
            self._check_signature(proto)
            return existing

        func = self.cg.backend.create_function(proto.name, proto.params)
        self.cg.prototypes[proto.name] = proto
        return func

    def _check_signature(self, proto: Prototype):
        prior = self.cg.prototypes[proto.name]
        if prior.arity != proto.arity:
            raise ArityMismatchError(
                f"'{proto.name}' was declared with {prior.arity} parameter(s), "
                f"now {proto.arity}"
            )
        if prior.params != proto.params:
            raise ArityMismatchError(
                f"'{proto.name}' was declared as {prior!r}, now {proto!r}"
            )

    # ========================================================================
    # Function Definition
    # ========================================================================

    def generate_function(self, func: FunctionDef) -> ir.Function:
        """Generate a function with a body.

        A name that already has a body is rejected before anything changes.
        If the body fails, the function is removed again and an earlier
        extern of the same name is put back.
        """
        proto = func.prototype
        existing = self.cg.backend.get_function(proto.name)
        if existing is not None and not existing.is_declaration:
            raise RedefinitionError(f"Function cannot be redefined: '{proto.name}'")

        prior = self.cg.prototypes.get(proto.name) if existing is not None else None
        llvm_func = self.declare_function(proto)

        try:
            self._generate_body(llvm_func, func)
        except Exception:
            self._discard(proto.name, prior)
            raise
        finally:
            self.cg.scope.clear()
            self.cg.current_function = None
        return llvm_func

    def _generate_body(self, llvm_func: ir.Function, func: FunctionDef):
        cg = self.cg
        cg.current_function = llvm_func
        cg.cfg = ControlFlowGraph(llvm_func.name)

        # Parameters; with duplicate names the last one wins
        cg.scope.clear()
        for arg, name in zip(llvm_func.args, func.prototype.params):
            cg.scope.bind(name, arg)

        entry = cg.new_block("entry")
        cg.position_at(entry)
        value = cg.generate_expression(func.body)
        cg.backend.emit_return(value)

        cg.cfg.finalize(cg.backend)
        if cg.verify:
            cg.backend.verify(llvm_func)

    def _discard(self, name: str, prior: Optional[Prototype]):
        self.cg.erase_function(name)
        if prior is not None:
            self.cg.backend.create_function(prior.name, prior.params)
            self.cg.prototypes[name] = prior
