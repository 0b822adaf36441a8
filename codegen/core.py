"""
NCL LLVM Code Generator

Generates LLVM IR from the NCL AST using llvmlite, one top-level unit at a
time, into a single live module that persists across units.
"""

from llvmlite import ir
from typing import Dict, Iterable, Optional

from ast_nodes import (
    Expr, NumberLiteral, VariableRef, BinaryExpr, CallExpr, IfExpr, ForExpr,
    Prototype, FunctionDef
)
from ncl_errors import CompileError

from codegen.backend import LLVMBackend
from codegen.cfg import ControlFlowGraph
from codegen.scope import Scope
from codegen.expressions import ExpressionsGenerator
from codegen.loops import LoopGenerator
from codegen.functions import FunctionGenerator


class CodeGenerator:
    """Generates LLVM IR from NCL AST"""

    def __init__(self, module_name: str = "ncl_module", opt_level: int = 2,
                 verify: bool = True):
        self.backend = LLVMBackend(module_name, opt_level)
        self.verify = verify

        # Per-function emission state
        self.scope = Scope()
        self.cfg: Optional[ControlFlowGraph] = None
        self.current_function: Optional[ir.Function] = None

        # Declared signatures, by function name
        self.prototypes: Dict[str, Prototype] = {}

        self.expressions = ExpressionsGenerator(self)
        self.loops = LoopGenerator(self)
        self.functions = FunctionGenerator(self)

    @property
    def module(self) -> ir.Module:
        return self.backend.module

    # ========================================================================
    # Top-level Units
    # ========================================================================

    def generate_prototype(self, proto: Prototype) -> ir.Function:
        return self.functions.declare_function(proto)

    def generate_function(self, func: FunctionDef) -> ir.Function:
        return self.functions.generate_function(func)

    def erase_function(self, name: str):
        """Forget a function entirely, declaration included"""
        self.backend.erase_function(name)
        self.prototypes.pop(name, None)

    def get_ir(self, roots: Optional[Iterable[str]] = None) -> str:
        return self.backend.get_ir(roots)

    # ========================================================================
    # Expressions
    # ========================================================================

    def generate_expression(self, expr: Expr) -> ir.Value:
        """Generate code for an expression"""
        if isinstance(expr, NumberLiteral):
            return self.expressions.generate_number(expr)
        elif isinstance(expr, VariableRef):
            return self.expressions.generate_variable(expr)
        elif isinstance(expr, BinaryExpr):
            return self.expressions.generate_binary(expr)
        elif isinstance(expr, CallExpr):
            return self.expressions.generate_call(expr)
        elif isinstance(expr, IfExpr):
            return self.expressions.generate_if(expr)
        elif isinstance(expr, ForExpr):
            return self.loops.generate_for(expr)
        else:
            raise CompileError(f"Unknown expression type: {type(expr).__name__}")

    # ========================================================================
    # Blocks and Branches
    # ========================================================================

    def new_block(self, name: str) -> ir.Block:
        """Append a block to the current function and record it in the CFG plan"""
        block = self.backend.create_block(self.current_function, name)
        self.cfg.add_block(block.name, block)
        return block

    def position_at(self, block: ir.Block):
        self.backend.set_insertion_point(block)

    def branch(self, target: ir.Block):
        source = self.backend.current_block
        self.backend.emit_branch(target)
        self.cfg.add_edge(source.name, target.name)

    def cond_branch(self, cond: ir.Value, then_block: ir.Block, else_block: ir.Block):
        source = self.backend.current_block
        self.backend.emit_cond_branch(cond, then_block, else_block)
        self.cfg.add_edge(source.name, then_block.name)
        self.cfg.add_edge(source.name, else_block.name)
