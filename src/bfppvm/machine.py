from __future__ import annotations

import enum
import io
import logging
import sys
from dataclasses import dataclass
from typing import BinaryIO, Callable, Dict, Optional, Union

from .config import DEFAULT_CONFIG, INTERPRET_COMMAND, VMConfig
from .errors import (
    BFPPError,
    BFPPResourceError,
    BFPPResourceExhausted,
    BFPPSyntaxError,
    make_runtime_error,
)
from .lexer import filter_code
from .pairing import JumpMaps, build_maps
from .scopes import ScopeStack
from .state import MachineState
from .tape import Tape

logger = logging.getLogger(__name__)

_SIMPLE_COMMANDS = '+-<>.,'
_FLOW_COMMANDS = '[]{}' + INTERPRET_COMMAND


class RunStatus(enum.Enum):
    OK = 'ok'
    SYNTAX_ERROR = 'syntax_error'
    RESOURCE_ERROR = 'resource_error'
    RUNTIME_ERROR = 'runtime_error'
    RESOURCE_EXHAUSTED = 'resource_exhausted'


@dataclass(frozen=True)
class RunResult:
    status: RunStatus
    error: Optional[BFPPError] = None
    instructions: int = 0
    output: bytes = b''

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.OK

    @property
    def message(self) -> str:
        return '' if self.error is None else str(self.error)


def status_for(error: BFPPError) -> RunStatus:
    if isinstance(error, BFPPSyntaxError):
        return RunStatus.SYNTAX_ERROR
    if isinstance(error, BFPPResourceExhausted):
        return RunStatus.RESOURCE_EXHAUSTED
    if isinstance(error, BFPPResourceError):
        return RunStatus.RESOURCE_ERROR
    return RunStatus.RUNTIME_ERROR


class BrainFuckPlusPlusVM:
    """
    BrainFuck++ virtual machine

    Runs Brainfuck extended with ``{ }`` scopes. A scope starts a temporary
    pointer at the current cell; when it closes, every cell written inside it
    is restored and the enclosing pointer becomes active again.

    Execution Model:
    - Code is filtered and both jump maps are built in the constructor, so a
      syntax error is raised before anything runs
    - ``[`` and ``]`` jump to their partner's own index; the instruction
      pointer is then advanced like after every other command
    - The run stops at the end of the code, on the first error, or when
      ``max_instructions`` commands have executed
    """

    def __init__(
        self,
        source: Union[str, bytes],
        *,
        stdin: Optional[BinaryIO] = None,
        stdout: Optional[BinaryIO] = None,
        config: Optional[VMConfig] = None,
        trace_sink: Optional[Callable[[str], None]] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.code = filter_code(
            source, comment_char=self.config.comment_char, extra_commands=self.config.extra_commands
        )
        if len(self.code) > self.config.max_code_size:
            raise BFPPResourceError(
                message=f"ResourceError: Code exceeds maximum allowed size ({self.config.max_code_size})"
            )
        self.maps: JumpMaps = build_maps(self.code, max_depth=self.config.max_nesting_depth)

        self.stdin = stdin
        self.stdout = stdout

        self.tape = Tape(
            self.config.initial_tape_size,
            self.config.cell_width,
            max_size=self.config.max_tape_size,
        )
        self.scopes = ScopeStack(self.config.max_scope_depth, max_undo_entries=self.config.max_undo_entries)
        self.state = MachineState(
            is_tracing=self.config.debug or trace_sink is not None,
            trace_sink=trace_sink,
        )

    # ===== Public API =====

    @property
    def pointer(self) -> int:
        return self.scopes.current.index

    @property
    def level(self) -> int:
        return self.scopes.level

    def run(self) -> RunResult:
        """Run the program to completion, error or instruction limit."""
        if self.state.finished:
            raise make_runtime_error(message="VM has already run; create a new instance to run again")

        logger.debug("Running %d instructions of code with %d delimiter pairs", len(self.code), self.maps.pairs)
        status = RunStatus.OK
        error: Optional[BFPPError] = None
        try:
            self._execute()
            self._close_open_scopes()
        except BFPPResourceExhausted as e:
            status, error = RunStatus.RESOURCE_EXHAUSTED, e
            self._close_open_scopes()
        except BFPPError as e:
            status, error = status_for(e), e
        finally:
            self.state.finished = True
            self._flush_output()

        logger.debug("Execution ended: %s after %d instructions", status.value, self.state.instruction_count)
        return RunResult(status=status, error=error, instructions=self.state.instruction_count)

    # ===== Execution loop =====

    def _execute(self) -> None:
        state = self.state
        code = self.code
        length = len(code)
        limit = self.config.max_instructions

        while state.ip < length:
            if state.instruction_count >= limit:
                logger.warning("Maximum instruction limit (%d) reached.", limit)
                raise BFPPResourceExhausted(
                    message=f"ResourceExhausted: Maximum instruction limit ({limit}) reached",
                    instructions=state.instruction_count,
                )

            cmd = code[state.ip]
            state.instruction_count += 1
            if state.is_tracing:
                state.add_trace(self._describe_step(cmd))

            if cmd in _SIMPLE_COMMANDS:
                self._apply(cmd)
            elif cmd == '[':
                if self.tape.read(self.pointer) == 0:
                    state.ip = self._jump_target(self.maps.loops, cmd)
            elif cmd == ']':
                if self.tape.read(self.pointer) != 0:
                    state.ip = self._jump_target(self.maps.loops, cmd)
            elif cmd == '{':
                self.scopes.push(state.ip, code)
            elif cmd == '}':
                self.scopes.pop(self.tape, state.ip, code)
            elif cmd == INTERPRET_COMMAND:
                self._interpret_cell()

            state.ip += 1

    def _apply(self, cmd: str) -> None:
        tape = self.tape
        ctx = self.scopes.current

        if cmd == '>':
            tape.ensure(ctx.index + 1)
            ctx.index += 1
        elif cmd == '<':
            tape.ensure(ctx.index - 1)
            ctx.index -= 1
        elif cmd == '+':
            self.scopes.log_if_first(tape, ctx.index)
            tape.add(ctx.index, 1)
        elif cmd == '-':
            self.scopes.log_if_first(tape, ctx.index)
            tape.add(ctx.index, -1)
        elif cmd == '.':
            self._write_byte(tape.read(ctx.index) & 0xFF)
        elif cmd == ',':
            tape.ensure(ctx.index)
            value = self._read_byte()
            self.scopes.log_if_first(tape, ctx.index)
            tape.write(ctx.index, 0 if value is None else value)

    def _jump_target(self, table: Dict[int, int], cmd: str) -> int:
        target = table.get(self.state.ip)
        if target is None:
            raise make_runtime_error(
                message=f"Invalid jump target for '{cmd}'",
                code=self.code,
                position=self.state.ip,
            )
        return target

    def _interpret_cell(self) -> None:
        # executes the current cell's value as a single command
        value = self.tape.read(self.pointer)
        if not 0 <= value < 0x110000:
            return
        ch = chr(value)
        if ch in _SIMPLE_COMMANDS:
            self._apply(ch)
        elif ch in _FLOW_COMMANDS:
            logger.warning(
                "Execution of flow control command %s (%d) via '!' is disabled (ip %d)",
                ch, value, self.state.ip,
            )

    def _close_open_scopes(self) -> None:
        if self.scopes.level > 0:
            logger.warning("Execution finished with %d open scope(s); rolling them back", self.scopes.level)
            self.scopes.close_all(self.tape)

    def _describe_step(self, cmd: str) -> str:
        index = self.pointer
        phys = self.tape.zero_offset + index
        value = int(self.tape.cells[phys]) if 0 <= phys < self.tape.size else 0
        line = (
            f"IP: {self.state.ip:<5d} | Cmd: '{cmd}' | Lvl: {self.scopes.level:<3d} "
            f"| Idx: {index:<5d} | Val: {value}"
        )
        if cmd == '}':
            line += f" | Undo: {len(self.scopes.entries_for(self.scopes.level))}"
        return line

    # ===== I/O =====

    @staticmethod
    def _binary(stream):
        # text wrappers over a byte buffer are read and written through the buffer
        if isinstance(stream, io.TextIOBase) and hasattr(stream, 'buffer'):
            stream.flush()
            return stream.buffer
        return stream

    def _input_stream(self):
        if self.stdin is None:
            self.stdin = sys.stdin.buffer
        else:
            self.stdin = self._binary(self.stdin)
        return self.stdin

    def _output_stream(self):
        if self.stdout is None:
            self.stdout = sys.stdout.buffer
        else:
            self.stdout = self._binary(self.stdout)
        return self.stdout

    def _read_byte(self) -> Optional[int]:
        try:
            data = self._input_stream().read(1)
        except (OSError, ValueError, TypeError) as e:
            raise make_runtime_error(
                message=f"Error reading input: {e}",
                code=self.code,
                position=self.state.ip,
            ) from e
        if not data:
            return None
        if isinstance(data, str):
            # in-memory text streams carry one byte per character (Latin-1)
            value = ord(data)
            if value > 0xFF:
                raise make_runtime_error(
                    message=f"Error reading input: character {data!r} is outside the byte range",
                    code=self.code,
                    position=self.state.ip,
                )
            return value
        return data[0]

    def _write_byte(self, value: int) -> None:
        stream = self._output_stream()
        try:
            if isinstance(stream, io.TextIOBase):
                stream.write(chr(value))
            else:
                stream.write(bytes((value,)))
        except (OSError, ValueError, TypeError) as e:
            raise make_runtime_error(
                message=f"Error writing output: {e}",
                code=self.code,
                position=self.state.ip,
            ) from e

    def _flush_output(self) -> None:
        stream = self.stdout
        if stream is None:
            return
        try:
            stream.flush()
        except (OSError, ValueError):
            logger.debug("Output stream could not be flushed", exc_info=True)


__all__ = ['BrainFuckPlusPlusVM', 'RunResult', 'RunStatus', 'status_for']
