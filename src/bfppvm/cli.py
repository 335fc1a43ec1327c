"""Command-line front end for the BF++ virtual machine."""
from __future__ import annotations

import argparse
import logging
import sys
import time
from contextlib import ExitStack
from typing import List, Optional

from .config import CellWidth, VMConfig
from .errors import BFPPError, BFPPSyntaxError, error_positions
from .lexer import line_of
from .machine import BrainFuckPlusPlusVM, RunResult, RunStatus, status_for

logger = logging.getLogger(__name__)

COMMAND_HELP = """\
BrainFuck++ commands:
  >  Move active pointer right
  <  Move active pointer left
  +  Increment cell value at active pointer
  -  Decrement cell value at active pointer
  .  Output cell value at active pointer
  ,  Input one byte into cell at active pointer (0 on EOF)
  [  Start loop (based on active pointer's cell value)
  ]  End loop (based on active pointer's cell value)
  {  Open scope: temporary pointer at the current cell
  }  Close scope: undo its writes, restore the enclosing pointer
  !  Run the cell value as a command (only with --interpret)
  #  Comment to end of line
"""


def _attach_inline_code(argv: List[str]) -> List[str]:
    # inline programs often start with '-', which argparse would read as a flag
    args: List[str] = []
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in ("-e", "--execute") and i + 1 < len(argv):
            args.append(f"--execute={argv[i + 1]}")
            i += 2
            continue
        if arg == "--":
            args.extend(argv[i:])
            break
        args.append(arg)
        i += 1
    return args


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="bfppvm",
        description="BrainFuck++ interpreter with scoped, self-restoring pointers.",
        epilog=COMMAND_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("file", nargs="?", help="BF++ source file")
    source.add_argument("-e", "--execute", metavar="CODE", help="Execute BF++ code given on the command line")
    parser.add_argument("-i", "--input", metavar="FILE", help="Read program input from FILE instead of stdin")
    parser.add_argument("-o", "--output", metavar="FILE", help="Write program output to FILE instead of stdout")
    parser.add_argument("-d", "--debug", action="store_true", help="Log every step to the debug log file")
    parser.add_argument("--log-file", default="debug_log.txt", help="Debug log path (default: debug_log.txt)")
    parser.add_argument(
        "--cell-width",
        choices=[w.value for w in CellWidth],
        default=CellWidth.BYTE.value,
        help="byte: unsigned 8-bit cells; int: signed 64-bit cells",
    )
    parser.add_argument("--max-instructions", type=int, default=VMConfig.max_instructions)
    parser.add_argument("--max-scope-depth", type=int, default=VMConfig.max_scope_depth)
    parser.add_argument("--interpret", action="store_true", help="Enable the '!' command")
    parser.add_argument("--stats", action="store_true", help="Print timing and the first tape cells to stderr")
    if argv is None:
        argv = sys.argv[1:]
    return parser.parse_args(_attach_inline_code(list(argv)))


def _report_error(result: RunResult, source: str, config: VMConfig) -> None:
    error = result.error
    print(error, file=sys.stderr)
    if isinstance(error, BFPPSyntaxError):
        lines = [
            line_of(source, pos, comment_char=config.comment_char, extra_commands=config.extra_commands)
            for pos in error_positions(error)
        ]
        label = 'line' if len(lines) == 1 else 'lines'
        print(f"(source {label} {', '.join(str(n) for n in lines)})", file=sys.stderr)
    if result.status is RunStatus.RESOURCE_EXHAUSTED:
        print("Execution stopped by the instruction limit.", file=sys.stderr)
    else:
        print("Execution halted due to an error.", file=sys.stderr)


def _file_sink(f):
    def sink(line: str) -> None:
        f.write(line + "\n")
    return sink


def _print_stats(vm: BrainFuckPlusPlusVM, elapsed: float) -> None:
    cells = vm.tape.snapshot(0, 32)
    print(f"\nExecution took {elapsed * 1000:.2f} ms, {vm.state.instruction_count} instructions", file=sys.stderr)
    for i in range(0, len(cells), 8):
        print(" ".join(f"{c:3d}" for c in cells[i:i + 8]), file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    if args.execute is not None:
        source = args.execute
    else:
        try:
            with open(args.file, "r", encoding="utf-8") as f:
                source = f.read()
        except OSError as e:
            print(f"Error opening code file: {e}", file=sys.stderr)
            return 1
        logger.debug("Loaded %d characters from %s", len(source), args.file)

    try:
        config = VMConfig(
            cell_width=CellWidth(args.cell_width),
            max_instructions=args.max_instructions,
            max_scope_depth=args.max_scope_depth,
            enable_interpret=args.interpret,
            debug=args.debug,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    with ExitStack() as stack:
        try:
            stdin = stack.enter_context(open(args.input, "rb")) if args.input else sys.stdin.buffer
            stdout = stack.enter_context(open(args.output, "wb")) if args.output else sys.stdout.buffer
            log_file = stack.enter_context(open(args.log_file, "w", encoding="utf-8")) if args.debug else None
        except OSError as e:
            print(f"Error opening file: {e}", file=sys.stderr)
            return 1

        trace_sink = None
        if log_file is not None:
            log_file.write("--- BrainFuck++ Debug Log ---\n")
            trace_sink = _file_sink(log_file)

        try:
            vm = BrainFuckPlusPlusVM(source, stdin=stdin, stdout=stdout, config=config, trace_sink=trace_sink)
        except BFPPError as e:
            _report_error(RunResult(status=status_for(e), error=e), source, config)
            return 1

        start = time.time()
        result = vm.run()
        elapsed = time.time() - start

        if log_file is not None:
            log_file.write("--- End of Execution ---\n")
        if args.stats:
            _print_stats(vm, elapsed)

    if not result.ok:
        _report_error(result, source, config)
        return 1
    return 0


__all__ = ['main', 'parse_args', 'COMMAND_HELP']
