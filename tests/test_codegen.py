"""
Tests for IR generation without executing anything.

These tests verify:
- The shape of the generated LLVM IR
- Extern and definition bookkeeping in the live module
- Rollback of definitions whose body fails
"""

import pytest

from ast_nodes import Expr, FunctionDef, Prototype
from ncl_errors import (
    ArityMismatchError, CompileError, RedefinitionError, UnknownSymbolError
)
from ncl_lexer import Lexer
from ncl_parser import Parser


def generate(codegen, source):
    unit = Parser(Lexer.from_string(source)).parse_toplevel()
    if isinstance(unit, Prototype):
        return codegen.generate_prototype(unit)
    return codegen.generate_function(unit)


def ir_text(func):
    """IR of func with runs of whitespace collapsed; llvmlite's padding varies by release"""
    return " ".join(str(func).split())


class TestGeneratedIR:
    """Tests for the text of generated functions."""

    def test_arithmetic(self, codegen):
        ir = ir_text(generate(codegen, "def f(a b) a*b + a/b - b"))
        assert 'define double @"f"(double %"a", double %"b")' in ir
        for op in ("fmul", "fdiv", "fadd", "fsub"):
            assert op in ir

    def test_comparison_is_unordered_and_widened(self, codegen):
        ir = ir_text(generate(codegen, "def f(a b) a < b"))
        assert "fcmp ult" in ir
        assert "uitofp i1" in ir

    def test_greater_than(self, codegen):
        ir = ir_text(generate(codegen, "def f(a b) a > b"))
        assert "fcmp ugt" in ir

    def test_if_uses_phi(self, codegen):
        ir = ir_text(generate(codegen, "def f(x) if x then 1 else 2"))
        assert "fcmp one" in ir
        assert "phi double" in ir
        assert "ifcont:" in ir

    def test_for_blocks(self, codegen):
        ir = ir_text(generate(codegen, "def f(n) for i = 1, i < n, 1 in i"))
        for label in ("loop:", "loopbody:", "loopstep:", "loopafter:"):
            assert label in ir
        assert "nextvar" in ir

    def test_unbound_variable_is_zero(self, codegen):
        ir = ir_text(generate(codegen, "def f() y"))
        assert "ret double 0x0" in ir

    def test_call(self, codegen):
        generate(codegen, "extern sin(x)")
        ir = ir_text(generate(codegen, "def f(x) sin(x)"))
        assert 'call double @"sin"(double %"x")' in ir

    def test_unknown_expression_node(self, codegen):
        with pytest.raises(CompileError, match="Unknown expression type"):
            codegen.generate_function(FunctionDef(Prototype("f"), Expr()))


class TestDeclarations:
    """Tests for externs, definitions and the live module."""

    def test_extern_is_declaration(self, codegen):
        func = generate(codegen, "extern cos(x)")
        assert func.is_declaration
        assert codegen.prototypes["cos"] == Prototype("cos", ("x",))

    def test_extern_twice_is_noop(self, codegen):
        first = generate(codegen, "extern h(a)")
        second = generate(codegen, "extern h(a)")
        assert first is second

    def test_extern_with_different_arity(self, codegen):
        generate(codegen, "extern h(a)")
        with pytest.raises(ArityMismatchError):
            generate(codegen, "extern h(a b)")

    def test_extern_with_different_names(self, codegen):
        generate(codegen, "extern h(a)")
        with pytest.raises(ArityMismatchError):
            generate(codegen, "extern h(b)")

    def test_definition_after_extern(self, codegen):
        generate(codegen, "extern g(a)")
        func = generate(codegen, "def g(a) a+1")
        assert not func.is_declaration
        assert codegen.backend.get_function("g") is func

    def test_definition_mismatching_extern(self, codegen):
        generate(codegen, "extern g(a)")
        with pytest.raises(ArityMismatchError):
            generate(codegen, "def g(a b) a")
        assert codegen.backend.get_function("g").is_declaration

    def test_redefinition_leaves_module_untouched(self, codegen):
        generate(codegen, "def g(a) a")
        before = codegen.get_ir()
        with pytest.raises(RedefinitionError):
            generate(codegen, "def g(a) a+1")
        assert codegen.get_ir() == before

    def test_extern_after_definition(self, codegen):
        generate(codegen, "def g(a) a")
        func = generate(codegen, "extern g(a)")
        assert not func.is_declaration


class TestRollback:
    """Tests for definitions whose body fails to generate."""

    def test_unknown_callee_removes_function(self, codegen):
        with pytest.raises(UnknownSymbolError):
            generate(codegen, "def f(x) nope(x)")
        assert codegen.backend.get_function("f") is None
        assert "f" not in codegen.prototypes

    def test_name_reusable_after_failure(self, codegen):
        with pytest.raises(UnknownSymbolError):
            generate(codegen, "def f(x) nope(x)")
        func = generate(codegen, "def f(x) x")
        assert func.name == "f"

    def test_failed_definition_restores_extern(self, codegen):
        generate(codegen, "extern f(x)")
        with pytest.raises(ArityMismatchError):
            generate(codegen, "def f(x) f(x, x)")
        func = codegen.backend.get_function("f")
        assert func is not None and func.is_declaration
        assert codegen.prototypes["f"] == Prototype("f", ("x",))

    def test_call_arity_mismatch(self, codegen):
        generate(codegen, "def two(a b) a+b")
        with pytest.raises(ArityMismatchError):
            generate(codegen, "def f(x) two(x)")

    def test_scope_is_empty_after_function(self, codegen):
        generate(codegen, "def f(x) for i = 1, i < x, 1 in i")
        assert len(codegen.scope) == 0
        with pytest.raises(UnknownSymbolError):
            generate(codegen, "def g(y) missing(y)")
        assert len(codegen.scope) == 0
