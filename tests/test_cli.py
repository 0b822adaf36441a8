"""
Tests for the ncl.py command line.
"""

import pytest


class TestFileMode:
    """Tests for running a source file."""

    def test_results_on_stdout(self, run_ncl):
        result = run_ncl("1+2*3\n(1+2)*3\n")
        assert result.returncode == 0, result.stderr
        assert result.stdout == "Result: 7.000000\nResult: 9.000000\n"

    def test_definitions_print_nothing(self, run_ncl):
        result = run_ncl("def foo(a b) a*a + b*b\nfoo(3, 4)\n")
        assert result.stdout == "Result: 25.000000\n"

    def test_error_exit_status(self, run_ncl):
        result = run_ncl("nope(1)\n2\n")
        assert result.returncode == 1
        assert "UnknownSymbol" in result.stderr
        # Later units still run
        assert "Result: 2.000000" in result.stdout

    def test_exit_on_error(self, run_ncl):
        result = run_ncl("nope(1)\n2\n", "--exit-on-error")
        assert result.returncode == 1
        assert result.stdout == ""

    def test_syntax_error_position(self, run_ncl):
        result = run_ncl("def f(x\n")
        assert result.returncode == 1
        assert "Line " in result.stderr
        assert "SyntaxError" in result.stderr

    def test_emit_ir(self, run_ncl):
        result = run_ncl("def f(x) x+1\nf(1)\n", "--emit-ir")
        assert result.returncode == 0, result.stderr
        assert 'define double @"f"' in result.stdout
        assert "Result: 2.000000" in result.stdout

    def test_optimisation_level(self, run_ncl):
        result = run_ncl("(1+2)*3\n", "-O", "0", "--no-verify")
        assert result.stdout == "Result: 9.000000\n"

    def test_missing_file(self, run_ncl, tmp_path):
        result = run_ncl(None, str(tmp_path / "absent.ncl"))
        assert result.returncode == 1
        assert "Cannot read source" in result.stderr


class TestStdinMode:
    """Tests for reading units from stdin."""

    def test_prompt_on_stderr(self, run_ncl):
        result = run_ncl(None, stdin="1+1\n")
        assert result.returncode == 0
        assert result.stdout == "Result: 2.000000\n"
        assert "ready> " in result.stderr

    def test_no_prompt(self, run_ncl):
        result = run_ncl(None, "--no-prompt", stdin="4*4\n")
        assert result.stdout == "Result: 16.000000\n"
        assert "ready> " not in result.stderr

    def test_close_keyword(self, run_ncl):
        result = run_ncl(None, "--no-prompt", stdin="1\nclose\n2\n")
        assert result.stdout == "Result: 1.000000\n"

    def test_errors_do_not_fail_interactive_session(self, run_ncl):
        result = run_ncl(None, "--no-prompt", stdin="nope()\n3\n")
        assert result.returncode == 0
        assert "Result: 3.000000" in result.stdout
