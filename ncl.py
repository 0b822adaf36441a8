#!/usr/bin/env python3
"""
NCL Interpreter

Usage:
    python ncl.py [source_file] [--emit-ir] [-O N] [--no-verify]
                  [--exit-on-error] [--no-prompt] [-l LIBRARY]

Examples:
    python ncl.py                        # Interactive session on stdin
    python ncl.py fib.ncl                # Run every unit in fib.ncl
    python ncl.py fib.ncl --emit-ir      # Also print the IR of each unit
    python ncl.py fib.ncl -O 0           # Run without optimisation
    echo "1+2*3" | python ncl.py         # Prints Result: 7.000000
"""

import sys
import argparse

from ncl_errors import Diagnostic, NclError
from ncl_jit import JITOptions
from ncl_lexer import Lexer
from ncl_session import Session


PROMPT = "ready> "


def make_reporter(emit_ir: bool):
    """Print results to stdout and diagnostics to stderr as they happen"""
    def report(event):
        if isinstance(event, Diagnostic):
            print(f"Error: {event}", file=sys.stderr)
            return
        if emit_ir and event.ir:
            print(event.ir)
        if event.kind == "expression":
            print(event.format())
        sys.stdout.flush()
    return report


def run_ncl(lexer: Lexer, options: JITOptions, prompt: bool = False,
            exit_on_error: bool = False) -> Session:
    """Run a whole input through a new session and return it"""
    with Session(options, reporter=make_reporter(options.emit_ir)) as session:
        if prompt:
            print(PROMPT, end="", file=sys.stderr, flush=True)
        parser = session.parser_for(lexer)
        while session.step(parser):
            if exit_on_error and session.failed:
                break
            if prompt:
                print(PROMPT, end="", file=sys.stderr, flush=True)
    return session


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="NCL JIT Interpreter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                       Interactive session on stdin
  %(prog)s fib.ncl               Run every unit in fib.ncl
  %(prog)s fib.ncl --emit-ir     Also print the IR of each unit
  %(prog)s fib.ncl -O 0          Run without optimisation
        """
    )

    parser.add_argument("source", nargs="?", help="Source file (default: stdin)")
    parser.add_argument("--emit-ir", action="store_true",
                        help="Print the LLVM IR of each unit to stdout")
    parser.add_argument("-O", dest="opt_level", type=int, default=2,
                        choices=[0, 1, 2, 3], help="Optimisation level (default: 2)")
    parser.add_argument("--no-verify", action="store_true",
                        help="Skip LLVM verification of generated functions")
    parser.add_argument("--exit-on-error", action="store_true",
                        help="Stop at the first unit that fails")
    parser.add_argument("--no-prompt", action="store_true",
                        help="Do not print the prompt when reading stdin")
    parser.add_argument("-l", "--library", action="append", default=[],
                        help="Shared library providing extern functions")

    args = parser.parse_args(argv)

    options = JITOptions(
        opt_level=args.opt_level,
        verify=not args.no_verify,
        emit_ir=args.emit_ir,
        libraries=args.library,
    )

    try:
        if args.source:
            with open(args.source, "r") as f:
                lexer = Lexer.from_string(f.read())
            prompt = False
        else:
            lexer = Lexer.from_stream(sys.stdin)
            prompt = not args.no_prompt

        session = run_ncl(lexer, options, prompt=prompt,
                          exit_on_error=args.exit_on_error)
        if prompt:
            print(file=sys.stderr)
    except OSError as e:
        print(f"Cannot read source: {e}", file=sys.stderr)
        return 1
    except NclError as e:
        print(f"Error: {Diagnostic.from_error(e)}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 2

    if session.failed and (args.source or args.exit_on_error):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
