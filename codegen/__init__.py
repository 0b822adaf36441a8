"""
NCL LLVM Code Generator Package

This package generates LLVM IR from the NCL AST.

    codegen/
    ├── __init__.py      # re-exports CodeGenerator
    ├── core.py          # CodeGenerator: dispatch, blocks and branches
    ├── backend.py       # llvmlite module, builder, verify, clone, optimise
    ├── scope.py         # name -> SSA value bindings
    ├── cfg.py           # block/edge/phi plan, finalised per function
    ├── expressions.py   # numbers, variables, operators, calls, if
    ├── loops.py         # for loops
    └── functions.py     # externs and definitions
"""

from codegen.core import CodeGenerator

__all__ = ['CodeGenerator']
