"""
LLVM Backend for NCL Code Generation.

The generator never touches llvmlite directly; it goes through LLVMBackend,
which owns the live ir.Module and the single IRBuilder cursor used to place
instructions.

This module handles:
- Function, block and instruction creation
- Verification of the live module
- Snapshots of the live module in a fresh LLVM context for the JIT
- The function optimisation pipeline run on snapshots
"""
from collections import deque
from typing import Iterable, List, Optional, Set, Tuple

from llvmlite import ir, binding

from ast_nodes import BinaryOp
from ncl_errors import CompileError, VerificationError

binding.initialize_native_target()
binding.initialize_native_asmprinter()


DOUBLE = ir.DoubleType()


class LLVMBackend:
    """Builds LLVM IR for one live module"""

    def __init__(self, module_name: str = "ncl_module", opt_level: int = 2):
        self.module = ir.Module(name=module_name)
        self.module.triple = binding.get_default_triple()

        target = binding.Target.from_default_triple()
        self.target_machine = target.create_target_machine(opt=opt_level)
        self.module.data_layout = str(self.target_machine.target_data)
        self.opt_level = opt_level

        # The one insertion point shared by every unit
        self.builder = ir.IRBuilder()

    # ========================================================================
    # Functions and Blocks
    # ========================================================================

    def get_function(self, name: str) -> Optional[ir.Function]:
        value = self.module.globals.get(name)
        if isinstance(value, ir.Function):
            return value
        return None

    def create_function(self, name: str, params: Iterable[str]) -> ir.Function:
        """Declare double name(double, ...) with named parameters"""
        params = list(params)
        func_type = ir.FunctionType(DOUBLE, [DOUBLE] * len(params))
        func = ir.Function(self.module, func_type, name=name)
        for arg, param in zip(func.args, params):
            arg.name = param
        return func

    def erase_function(self, name: str):
        """Remove a function from the live module so its name can be reused"""
        # llvmlite has no public way to release a global name
        used = getattr(self.module.scope, "_useset", None)
        if not isinstance(used, set):
            raise CompileError(
                f"Cannot erase '{name}': this llvmlite release does not keep "
                "module names in NameScope._useset"
            )
        self.module.globals.pop(name, None)
        used.discard(name)

    def create_block(self, function: ir.Function, name: str = "") -> ir.Block:
        return function.append_basic_block(name)

    def set_insertion_point(self, block: ir.Block):
        self.builder.position_at_end(block)

    @property
    def current_block(self) -> ir.Block:
        return self.builder.block

    # ========================================================================
    # Instructions
    # ========================================================================

    def emit_const(self, value: float) -> ir.Constant:
        return ir.Constant(DOUBLE, float(value))

    def emit_binary(self, op: BinaryOp, lhs: ir.Value, rhs: ir.Value,
                    name: Optional[str] = None) -> ir.Value:
        if op == BinaryOp.ADD:
            return self.builder.fadd(lhs, rhs, name or "addtmp")
        if op == BinaryOp.SUB:
            return self.builder.fsub(lhs, rhs, "subtmp")
        if op == BinaryOp.MUL:
            return self.builder.fmul(lhs, rhs, "multmp")
        if op == BinaryOp.DIV:
            return self.builder.fdiv(lhs, rhs, "divtmp")
        if op in (BinaryOp.LT, BinaryOp.GT):
            cmp = self.builder.fcmp_unordered(op.value, lhs, rhs, "cmptmp")
            return self.builder.uitofp(cmp, DOUBLE, "booltmp")
        raise CompileError(f"Invalid binary operator '{op}'")

    def emit_truth_test(self, value: ir.Value, name: str = "cond") -> ir.Value:
        """value != 0.0 as an i1"""
        return self.builder.fcmp_ordered("!=", value, self.emit_const(0.0), name)

    def emit_call(self, callee: ir.Function, args: List[ir.Value]) -> ir.Value:
        return self.builder.call(callee, args, "calltmp")

    def emit_cond_branch(self, cond: ir.Value, then_block: ir.Block, else_block: ir.Block):
        self.builder.cbranch(cond, then_block, else_block)

    def emit_branch(self, block: ir.Block):
        self.builder.branch(block)

    def emit_phi(self, name: str = "") -> ir.PhiInstr:
        """Create an empty double phi; incoming edges arrive via add_phi_incoming"""
        return self.builder.phi(DOUBLE, name)

    def add_phi_incoming(self, phi: ir.PhiInstr, value: ir.Value, block: ir.Block):
        phi.add_incoming(value, block)

    def emit_return(self, value: ir.Value):
        self.builder.ret(value)

    # ========================================================================
    # Module Text, Verification and Snapshots
    # ========================================================================

    def callees(self, function: ir.Function) -> Set[str]:
        """Names of the functions called directly from function"""
        names = set()
        for block in function.blocks:
            for instr in block.instructions:
                if isinstance(instr, ir.CallInstr):
                    names.add(instr.callee.name)
        return names

    def reachable(self, roots: Iterable[str]) -> List[str]:
        """Call-graph closure of roots, in module order"""
        seen: Set[str] = set()
        pending = deque(roots)
        while pending:
            name = pending.popleft()
            if name in seen:
                continue
            func = self.get_function(name)
            if func is None:
                continue
            seen.add(name)
            pending.extend(self.callees(func))
        return [name for name in self.module.globals if name in seen]

    def get_ir(self, roots: Optional[Iterable[str]] = None) -> str:
        """LLVM IR of the live module, or of the closure of roots"""
        if roots is None:
            return str(self.module)

        lines = [
            f'; ModuleID = "{self.module.name}"',
            f'target triple = "{self.module.triple}"',
            f'target datalayout = "{self.module.data_layout}"',
            "",
        ]
        for name in self.reachable(roots):
            lines.append(str(self.module.globals[name]))
        return "\n".join(lines)

    def verify(self, function: ir.Function):
        """Verify the live module after function has been emitted"""
        context = binding.create_context()
        try:
            mod = binding.parse_assembly(self.get_ir(), context=context)
        except RuntimeError as e:
            raise VerificationError(f"Invalid IR for '{function.name}': {e}")
        try:
            mod.verify()
        except RuntimeError as e:
            raise VerificationError(f"Verification of '{function.name}' failed: {e}")
        finally:
            mod.close()

    def clone_module(self, roots: Optional[Iterable[str]] = None
                     ) -> Tuple[binding.ModuleRef, binding.ContextRef]:
        """Deep copy of the live module in a context of its own.

        The returned module shares nothing with the live ir.Module: later
        edits to either side are invisible to the other. With roots, only
        their call-graph closure is copied.
        """
        context = binding.create_context()
        try:
            snapshot = binding.parse_assembly(self.get_ir(roots), context=context)
        except RuntimeError as e:
            raise VerificationError(f"Could not copy module: {e}")
        return snapshot, context

    def optimize(self, snapshot: binding.ModuleRef):
        """Run instcombine, reassociate, GVN and simplify-cfg on each function body"""
        if self.opt_level == 0:
            return

        pto = binding.create_pipeline_tuning_options(speed_level=self.opt_level)
        pb = binding.create_pass_builder(self.target_machine, pto)
        fpm = binding.create_new_function_pass_manager()
        fpm.add_instruction_combine_pass()
        fpm.add_reassociate_pass()
        fpm.add_new_gvn_pass()
        fpm.add_simplify_cfg_pass()

        for func in snapshot.functions:
            if not func.is_declaration:
                fpm.run(func, pb)
