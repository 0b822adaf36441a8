"""
NCL JIT Execution

Runs standalone top-level expressions. Each one is compiled into a wrapper
function in the live module, copied into a snapshot module with its own
LLVM context, linked into an ORC LLJIT as a library of its own, called, and
then retired: the library's resource tracker is closed, which unloads its
machine code, and the wrapper is erased.

Named definitions and externs never reach the JIT on their own. They are
copied into the snapshot of each expression that calls them.
"""

import ctypes
import itertools
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from llvmlite import binding

from ast_nodes import FunctionDef
from codegen import CodeGenerator
from ncl_errors import ExecutionError, UnknownSymbolError, VerificationError


@dataclass
class JITOptions:
    """Settings shared by the code generator and the execution environment"""
    opt_level: int = 2
    verify: bool = True
    emit_ir: bool = False
    libraries: List[str] = field(default_factory=list)


@dataclass
class ResourceTracker:
    """One snapshot linked into the JIT as its own library"""
    key: int
    library: str
    handle: binding.ResourceTracker
    symbols: Dict[str, int] = field(default_factory=dict)
    released: bool = False


# ============================================================================
# Execution Environment
# ============================================================================

class ExecutionEnvironment:
    """Long-lived ORC LLJIT that snapshots are linked into and unloaded from"""

    def __init__(self):
        self.lljit = binding.create_lljit_compiler()
        self.trackers: Dict[int, ResourceTracker] = {}
        self._keys = itertools.count(1)
        # Symbols of the running executable and the libraries it links
        self._process = ctypes.CDLL(None) if os.name == "posix" else None

    @property
    def loaded(self) -> int:
        """Number of snapshots currently linked into the JIT"""
        return len(self.trackers)

    def load_library(self, path: str):
        """Make a shared library's symbols available to extern declarations"""
        try:
            binding.load_library_permanently(path)
        except RuntimeError as e:
            raise ExecutionError(f"Cannot load library '{path}': {e}")

    def host_address(self, name: str) -> Optional[int]:
        """Address of name in a loaded library or the host process, or None"""
        address = binding.address_of_symbol(name)
        if address is None and self._process is not None:
            try:
                address = ctypes.cast(self._process[name], ctypes.c_void_p).value
            except AttributeError:
                return None
        return address

    def resolve_externals(self, snapshot: binding.ModuleRef) -> Dict[str, int]:
        """Host addresses for every declaration in snapshot.

        Raises UnknownSymbolError naming every declaration the host cannot
        provide.
        """
        resolved, missing = {}, []
        for func in snapshot.functions:
            if not func.is_declaration or func.name.startswith("llvm."):
                continue
            address = self.host_address(func.name)
            if address is None:
                missing.append(func.name)
            else:
                resolved[func.name] = address
        if missing:
            raise UnknownSymbolError(
                f"Unresolved external symbol(s): {', '.join(missing)}"
            )
        return resolved

    def add_module(self, snapshot: binding.ModuleRef,
                   context: Optional[binding.ContextRef] = None) -> ResourceTracker:
        """Link snapshot into a library of its own and compile it.

        The JIT works from the snapshot's text, so the snapshot and its
        context are disposed here whether linking succeeds or not.
        """
        try:
            externals = self.resolve_externals(snapshot)
            defined = [f.name for f in snapshot.functions if not f.is_declaration]
            text = str(snapshot)
        finally:
            self._dispose(snapshot, context)

        key = next(self._keys)
        # ORC library names cannot be reused, even after unloading
        library = f"ncl_snapshot_{key}"
        builder = binding.JITLibraryBuilder().add_ir(text).add_current_process()
        for name, address in externals.items():
            builder.import_symbol(name, address)
        for name in defined:
            builder.export_symbol(name)
        try:
            handle = builder.link(self.lljit, library)
        except RuntimeError as e:
            raise ExecutionError(f"Cannot link snapshot into the JIT: {e}")

        tracker = ResourceTracker(key, library, handle,
                                  {name: handle[name] for name in defined})
        self.trackers[key] = tracker
        return tracker

    def lookup_symbol(self, name: str) -> int:
        """Address of a function defined in one of the loaded snapshots"""
        for tracker in self.trackers.values():
            address = tracker.symbols.get(name)
            if address:
                return address
        raise ExecutionError(f"Symbol not found: '{name}'")

    def remove_tracker(self, tracker: ResourceTracker):
        """Unload a snapshot's library and free its machine code"""
        if tracker.released:
            return
        self.trackers.pop(tracker.key, None)
        tracker.released = True
        try:
            tracker.handle.close()
        except RuntimeError as e:
            raise ExecutionError(f"Cannot unload '{tracker.library}': {e}")

    def close(self):
        for tracker in list(self.trackers.values()):
            self.remove_tracker(tracker)
        self.lljit.close()

    @staticmethod
    def _dispose(module: binding.ModuleRef, context: Optional[binding.ContextRef]):
        module.close()
        if context is not None:
            context.close()


# ============================================================================
# Orchestrator
# ============================================================================

class JITOrchestrator:
    """Compile, execute and discard one anonymous wrapper at a time"""

    def __init__(self, codegen: CodeGenerator, env: ExecutionEnvironment,
                 options: Optional[JITOptions] = None):
        self.codegen = codegen
        self.env = env
        self.options = options or JITOptions()
        self.last_ir = ""

    def execute(self, func: FunctionDef) -> float:
        """Generate func, run it once in the JIT and return its value.

        Whatever happens, the wrapper is gone from the live module and no
        snapshot is left loaded when this returns.
        """
        cg = self.codegen
        cg.generate_function(func)
        try:
            if self.options.emit_ir:
                self.last_ir = cg.get_ir([func.name])

            snapshot, context = cg.backend.clone_module(roots=[func.name])
            self._prepare(snapshot, context)

            tracker = self.env.add_module(snapshot, context)
            try:
                address = self.env.lookup_symbol(func.name)
                return self._call(address)
            finally:
                self.env.remove_tracker(tracker)
        finally:
            cg.erase_function(func.name)

    def _prepare(self, snapshot: binding.ModuleRef, context: binding.ContextRef):
        """Verify and optimise a snapshot before the JIT sees it"""
        try:
            if self.options.verify:
                snapshot.verify()
            self.codegen.backend.optimize(snapshot)
        except RuntimeError as e:
            ExecutionEnvironment._dispose(snapshot, context)
            raise VerificationError(f"Snapshot failed verification: {e}")

    @staticmethod
    def _call(address: int) -> float:
        cfunc = ctypes.CFUNCTYPE(ctypes.c_double)(address)
        return cfunc()
