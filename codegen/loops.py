"""
Loop Code Generation for NCL.

This module handles:
- Counted for loops with an induction variable carried by a phi
- Shadowing and restoring the induction variable's scope binding
"""
from llvmlite import ir
from typing import TYPE_CHECKING

from ast_nodes import BinaryOp, ForExpr

if TYPE_CHECKING:
    from codegen.core import CodeGenerator


class LoopGenerator:
    """Generates loop-related LLVM IR for the NCL compiler."""

    def __init__(self, cg: 'CodeGenerator'):
        """Initialize with reference to parent CodeGenerator instance."""
        self.cg = cg

    def generate_for(self, expr: ForExpr) -> ir.Value:
        """Generate code for: for var = start, cond, step in body

        Layout:
            <current>  start; br loop
            loop:      var = phi [start, <current>], [nextvar, <step end>]
                       cond; br cond, loopbody, loopafter
            loopbody:  body; br loopstep
            loopstep:  step; nextvar = var + step; br loop
            loopafter:

        The loop always evaluates to 0.0.
        """
        cg = self.cg
        backend = cg.backend

        start = cg.generate_expression(expr.start)
        preheader = backend.current_block

        loop_block = cg.new_block("loop")
        body_block = cg.new_block("loopbody")
        step_block = cg.new_block("loopstep")
        after_block = cg.new_block("loopafter")

        cg.branch(loop_block)
        cg.position_at(loop_block)
        phi = cg.cfg.plan_phi(loop_block.name, expr.var_name,
                              backend.emit_phi(expr.var_name))
        cg.cfg.add_incoming(phi, start, preheader.name)

        with cg.scope.shadowed(expr.var_name, phi.handle):
            cond = cg.generate_expression(expr.condition)
            cond = backend.emit_truth_test(cond, "loopcond")
            cg.cond_branch(cond, body_block, after_block)

            cg.position_at(body_block)
            cg.generate_expression(expr.body)
            cg.branch(step_block)

            cg.position_at(step_block)
            step = cg.generate_expression(expr.step)
            next_value = backend.emit_binary(BinaryOp.ADD, phi.handle, step, "nextvar")
            cg.cfg.add_incoming(phi, next_value, backend.current_block.name)
            cg.branch(loop_block)

        cg.position_at(after_block)
        return backend.emit_const(0.0)
