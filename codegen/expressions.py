"""
Expressions Module for NCL Code Generator

Expression types handled:
- Literals: numbers
- Identifiers: variable references
- Binary: arithmetic and comparison operators
- Calls: calls to defined or extern functions
- Conditionals: if/then/else merged through a phi
"""
from typing import TYPE_CHECKING
from llvmlite import ir

from ast_nodes import NumberLiteral, VariableRef, BinaryExpr, CallExpr, IfExpr
from ncl_errors import UnknownSymbolError, ArityMismatchError

if TYPE_CHECKING:
    from codegen.core import CodeGenerator


class ExpressionsGenerator:
    """Generates code for NCL expressions."""

    def __init__(self, codegen: 'CodeGenerator'):
        """Initialize with reference to parent CodeGenerator instance."""
        self.codegen = codegen

    @property
    def backend(self):
        return self.codegen.backend

    # ========================================================================
    # Leaves
    # ========================================================================

    def generate_number(self, expr: NumberLiteral) -> ir.Value:
        return self.backend.emit_const(expr.value)

    def generate_variable(self, expr: VariableRef) -> ir.Value:
        """Look up a variable; names with no binding read as 0.0"""
        value = self.codegen.scope.lookup(expr.name)
        if value is None:
            return self.backend.emit_const(0.0)
        return value

    # ========================================================================
    # Operators and Calls
    # ========================================================================

    def generate_binary(self, expr: BinaryExpr) -> ir.Value:
        left = self.codegen.generate_expression(expr.left)
        right = self.codegen.generate_expression(expr.right)
        return self.backend.emit_binary(expr.op, left, right)

    def generate_call(self, expr: CallExpr) -> ir.Value:
        callee = self.backend.get_function(expr.callee)
        if callee is None:
            raise UnknownSymbolError(f"Unknown function referenced: '{expr.callee}'")

        expected = len(callee.args)
        if len(expr.args) != expected:
            raise ArityMismatchError(
                f"'{expr.callee}' takes {expected} argument(s), "
                f"{len(expr.args)} given"
            )

        args = [self.codegen.generate_expression(arg) for arg in expr.args]
        return self.backend.emit_call(callee, args)

    # ========================================================================
    # Conditionals
    # ========================================================================

    def generate_if(self, expr: IfExpr) -> ir.Value:
        """Generate code for if/then/else.

        Both arms branch to 'ifcont', whose phi takes each arm's value from
        the block that arm ends in. Nested control flow inside an arm can
        move that block away from 'then' or 'else'.
        """
        cg = self.codegen
        cond = cg.generate_expression(expr.condition)
        cond = self.backend.emit_truth_test(cond, "ifcond")

        then_block = cg.new_block("then")
        else_block = cg.new_block("else")
        merge_block = cg.new_block("ifcont")
        cg.cond_branch(cond, then_block, else_block)

        cg.position_at(then_block)
        then_value = cg.generate_expression(expr.then_branch)
        then_end = self.backend.current_block
        cg.branch(merge_block)

        cg.position_at(else_block)
        else_value = cg.generate_expression(expr.else_branch)
        else_end = self.backend.current_block
        cg.branch(merge_block)

        cg.position_at(merge_block)
        phi = cg.cfg.plan_phi(merge_block.name, "iftmp", self.backend.emit_phi("iftmp"))
        cg.cfg.add_incoming(phi, then_value, then_end.name)
        cg.cfg.add_incoming(phi, else_value, else_end.name)
        return phi.handle
