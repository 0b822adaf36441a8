"""
Pytest configuration and fixtures for NCL tests.

Provides reusable fixtures for:
- Running NCL source through an in-process session
- Verifying the value of the last expression
- Checking compilation errors
- Running the ncl.py command line
"""

import pytest
import subprocess
import tempfile
import os
import sys
from pathlib import Path

from codegen import CodeGenerator
from ncl_jit import JITOptions
from ncl_session import Session


@pytest.fixture
def compiler_root():
    """Path to repository root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def session():
    """A fresh session, closed after the test."""
    s = Session()
    yield s
    s.close()


@pytest.fixture
def codegen():
    """A code generator with no execution environment attached."""
    return CodeGenerator()


@pytest.fixture
def run_source():
    """
    Fixture that returns a function to run NCL source in a new session.

    Usage:
        s = run_source("def f(x) x*2; f(4)")
        assert s.results[-1].value == 8.0
    """
    sessions = []

    def _run(source: str, options: JITOptions = None) -> Session:
        s = Session(options)
        sessions.append(s)
        s.evaluate(source)
        return s

    yield _run

    for s in sessions:
        s.close()


@pytest.fixture
def expect_value(run_source):
    """
    Fixture that runs code and asserts the value of the last expression.

    Usage:
        expect_value("1+2*3", 7.0)
    """
    def _expect(source: str, expected: float, options: JITOptions = None):
        s = run_source(source, options)
        assert not s.errors, \
            "Unexpected errors:\n" + "\n".join(str(d) for d in s.errors)
        values = [r.value for r in s.results if r.kind == "expression"]
        assert values, f"No expression was evaluated in {source!r}"
        assert values[-1] == pytest.approx(expected), \
            f"Value mismatch:\nExpected: {expected!r}\nGot: {values[-1]!r}"

    return _expect


@pytest.fixture
def expect_compile_error(run_source):
    """
    Fixture that verifies a unit fails with the expected error.

    Usage:
        expect_compile_error("foo(1)", "Unknown function")
        expect_compile_error("def f(", category="SyntaxError")
    """
    def _expect(source: str, error_substring: str = None, category: str = None) -> Session:
        s = run_source(source)
        assert s.errors, \
            f"Expected an error but every unit succeeded.\nResults: {s.results}"
        output = "\n".join(str(d) for d in s.errors)
        if error_substring:
            assert error_substring.lower() in output.lower(), \
                f"Expected error containing '{error_substring}' but got:\n{output}"
        if category:
            assert category in [d.category for d in s.errors], \
                f"Expected a {category} diagnostic but got:\n{output}"
        return s

    return _expect


@pytest.fixture
def run_ncl(compiler_root):
    """
    Fixture that runs ncl.py as a subprocess.

    Usage:
        result = run_ncl("1+2", "--emit-ir")            # source written to a file
        result = run_ncl(None, "--no-prompt", stdin="1+2\\n")
    """
    def _run(source: str = None, *args, stdin: str = None) -> subprocess.CompletedProcess:
        with tempfile.TemporaryDirectory() as tmpdir:
            cmd = [sys.executable, os.path.join(compiler_root, "ncl.py")]
            if source is not None:
                source_path = os.path.join(tmpdir, "test.ncl")
                with open(source_path, 'w') as f:
                    f.write(source)
                cmd.append(source_path)
            cmd.extend(args)

            return subprocess.run(
                cmd,
                input=stdin if stdin is not None else "",
                capture_output=True,
                text=True,
                cwd=compiler_root
            )

    return _run
