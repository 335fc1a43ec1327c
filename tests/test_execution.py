#!/usr/bin/env python3
"""
Test actual execution of BF++ programs on the VM.
"""

import io
import logging
import os
import sys
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

import pytest

from bfppvm import BrainFuckPlusPlusVM, CellWidth, RunStatus, VMConfig
from bfppvm.errors import BFPPResourceError, BFPPRuntimeError, BFPPSyntaxError


def execute(code, input_data=b"", **config):
    stdout = io.BytesIO()
    vm = BrainFuckPlusPlusVM(code, stdin=io.BytesIO(input_data), stdout=stdout, config=VMConfig(**config))
    result = vm.run()
    return vm, result, stdout.getvalue()


def test_output_single_byte():
    vm, result, out = execute("+++.")
    assert result.ok
    assert result.status is RunStatus.OK
    assert out == bytes([3])


def test_echo_input():
    _, result, out = execute(",.", b"A")
    assert result.ok
    assert out == b"A"


def test_eof_stores_zero():
    vm, result, out = execute("+++++,.", b"")
    assert result.ok
    assert out == b"\x00"


def test_hello_world():
    code = """
    ++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]>>.>---.+++++++..+++.>>.<-.<.+++.------.--------.>>+.>++.
    """
    _, result, out = execute(code)
    assert result.ok
    assert out == b"Hello World!\n"


def test_transfer_loop_moves_value():
    vm, result, _ = execute("+++++[->+<]")
    assert result.ok
    assert vm.tape.read(0) == 0
    assert vm.tape.read(1) == 5
    assert vm.pointer == 0


def test_transfer_loop_adds_to_existing_destination():
    vm, result, _ = execute(">++<++++[->+<]")
    assert vm.tape.snapshot(0, 2) == [0, 6]


def test_skipped_loop_jumps_past_matching_close():
    _, result, out = execute("[.+.]+.")
    assert result.ok
    assert out == b"\x01"


def test_nested_loops():
    # 3 * 4 via nested loops
    vm, result, out = execute("+++[>++++[>+<-]<-]>>.")
    assert result.ok
    assert out == bytes([12])


def test_scope_rolls_back_mutations():
    vm, result, _ = execute("{+++}")
    assert result.ok
    assert vm.tape.read(0) == 0


def test_same_program_without_scope_keeps_mutations():
    vm, result, _ = execute("+++")
    assert vm.tape.read(0) == 3


def test_scope_output_sees_temporary_values():
    _, result, out = execute("+{++.}.")
    assert out == bytes([3, 1])


def test_scope_pointer_is_temporary():
    vm, result, out = execute(">+{>>>+}.")
    assert result.ok
    assert vm.pointer == 1
    assert out == bytes([1])
    assert vm.tape.read(4) == 0


def test_repeated_writes_in_scope_restore_entry_value():
    vm, result, _ = execute("++{+++---+++[-]+}")
    assert vm.tape.read(0) == 2


def test_nested_scopes_on_same_cell():
    vm, result, out = execute("+{+{+.}.}.")
    assert result.ok
    assert out == bytes([3, 2, 1])
    assert vm.tape.read(0) == 1


def test_input_inside_scope_is_rolled_back():
    vm, result, out = execute("+{,.}.", b"Z")
    assert out == b"Z\x01"


def test_scope_inside_loop_and_loop_inside_scope():
    # loop body uses a scope to print a shifted copy without changing the counter
    vm, result, out = execute("+++[{>++++++[<+>-]<.}-]")
    assert result.ok
    assert out == bytes([9, 8, 7])
    assert vm.tape.snapshot(0, 2) == [0, 0]


def test_byte_cells_wrap_on_decrement():
    _, result, out = execute("-.")
    assert out == b"\xff"


def test_int_cells_go_negative():
    vm, result, out = execute("-", cell_width=CellWidth.INT)
    assert vm.tape.read(0) == -1


def test_int_cells_output_low_byte():
    _, result, out = execute("-.", cell_width="int")
    assert out == b"\xff"


def test_moving_left_of_origin_grows_tape():
    vm, result, _ = execute("<<<<<+++++>>>>>>>>>>++", initial_tape_size=4)
    assert result.ok
    assert vm.tape.read(-5) == 5
    assert vm.tape.read(5) == 2
    assert vm.tape.read(0) == 0


def test_infinite_loop_hits_instruction_bound(caplog):
    with caplog.at_level(logging.WARNING, logger="bfppvm"):
        vm, result, _ = execute("+[]", max_instructions=1000)
    assert result.status is RunStatus.RESOURCE_EXHAUSTED
    assert not result.ok
    assert result.instructions == 1000
    assert "instruction limit" in result.message
    assert "Maximum instruction limit" in caplog.text


def test_program_finishing_exactly_at_bound_succeeds():
    _, result, _ = execute("+++", max_instructions=3)
    assert result.ok
    assert result.instructions == 3


def test_instruction_bound_closes_open_scopes():
    vm, result, _ = execute("{+[]}", max_instructions=50)
    assert result.status is RunStatus.RESOURCE_EXHAUSTED
    assert vm.level == 0
    assert vm.tape.read(0) == 0


def test_scope_depth_overflow_is_runtime_error():
    vm, result, _ = execute("{{{}}}", max_scope_depth=2)
    assert result.status is RunStatus.RUNTIME_ERROR
    assert isinstance(result.error, BFPPRuntimeError)
    assert result.error.position == 2


def test_output_failure_is_runtime_error():
    stdout = io.BytesIO()
    stdout.close()
    vm = BrainFuckPlusPlusVM("+.", stdin=io.BytesIO(), stdout=stdout)
    result = vm.run()
    assert result.status is RunStatus.RUNTIME_ERROR
    assert "Error writing output" in result.message


def test_partial_output_is_kept_on_error():
    _, result, out = execute("+.+.{{{}}}", max_scope_depth=1)
    assert result.status is RunStatus.RUNTIME_ERROR
    assert out == bytes([1, 2])


def test_syntax_error_raised_before_execution():
    stdout = io.BytesIO()
    with pytest.raises(BFPPSyntaxError):
        BrainFuckPlusPlusVM("+.[", stdin=io.BytesIO(), stdout=stdout)
    assert stdout.getvalue() == b""


def test_code_size_limit():
    with pytest.raises(BFPPResourceError):
        BrainFuckPlusPlusVM("+" * 11, config=VMConfig(max_code_size=10))


def test_tape_limit_is_resource_error():
    _, result, _ = execute(">" * 40, initial_tape_size=4, max_tape_size=16)
    assert result.status is RunStatus.RESOURCE_ERROR


def test_vm_runs_only_once():
    vm, result, _ = execute("+")
    with pytest.raises(BFPPRuntimeError):
        vm.run()


def test_comments_are_ignored():
    _, result, out = execute("+++ # these are comments. [ { \n.")
    assert out == b"\x03"


def test_text_streams_are_supported():
    stdout = io.StringIO()
    vm = BrainFuckPlusPlusVM(",.,.", stdin=io.StringIO("hi"), stdout=stdout)
    assert vm.run().ok
    assert stdout.getvalue() == "hi"


def test_non_ascii_text_round_trips():
    stdout = io.StringIO()
    vm = BrainFuckPlusPlusVM(",.,.", stdin=io.StringIO("é\xff"), stdout=stdout)
    assert vm.run().ok
    assert stdout.getvalue() == "é\xff"


def test_text_character_above_byte_range_is_runtime_error():
    vm = BrainFuckPlusPlusVM(",.", stdin=io.StringIO("€"), stdout=io.StringIO())
    result = vm.run()
    assert result.status is RunStatus.RUNTIME_ERROR
    assert "outside the byte range" in result.message


def test_text_wrappers_use_their_byte_buffer():
    stdin = io.TextIOWrapper(io.BytesIO("é".encode("utf-8")), encoding="utf-8")
    stdout = io.TextIOWrapper(io.BytesIO(), encoding="utf-8")
    vm = BrainFuckPlusPlusVM(",.,.", stdin=stdin, stdout=stdout)
    assert vm.run().ok
    assert stdout.buffer.getvalue() == "é".encode("utf-8")


class _RejectingWriter:
    def write(self, data):
        raise TypeError("write() argument must be str")

    def flush(self):
        pass


def test_output_type_error_is_runtime_error():
    vm = BrainFuckPlusPlusVM("+.", stdin=io.BytesIO(), stdout=_RejectingWriter())
    result = vm.run()
    assert result.status is RunStatus.RUNTIME_ERROR
    assert "Error writing output" in result.message


def test_interpret_command_runs_cell_as_command():
    # cell 0 holds '+' (43); '!' applies it to cell 0 itself
    code = "+" * 43 + "!."
    _, result, out = execute(code, enable_interpret=True)
    assert result.ok
    assert out == bytes([44])


def test_interpret_command_ignores_flow_control(caplog):
    code = "+" * 91 + "!."  # '['
    with caplog.at_level(logging.WARNING, logger="bfppvm"):
        _, result, out = execute(code, enable_interpret=True)
    assert result.ok
    assert out == bytes([91])
    assert "via '!' is disabled" in caplog.text


def test_interpret_command_is_filtered_when_disabled():
    vm, result, _ = execute("+" * 43 + "!")
    assert vm.code == "+" * 43
    assert vm.tape.read(0) == 43


def test_tracing_through_sink():
    lines = []
    vm = BrainFuckPlusPlusVM("+{>}", stdin=io.BytesIO(), stdout=io.BytesIO(), trace_sink=lines.append)
    assert vm.run().ok
    assert len(lines) == 4
    assert lines[0].startswith("IP: 0")
    assert "Cmd: '{'" in lines[1]
    assert "Lvl: 1" in lines[2]
    assert vm.state.trace == []


def test_trace_reports_undo_entries_on_scope_close():
    lines = []
    vm = BrainFuckPlusPlusVM("{+>+}", stdin=io.BytesIO(), stdout=io.BytesIO(), trace_sink=lines.append)
    assert vm.run().ok
    assert lines[-1].endswith("| Undo: 2")
    assert "Undo" not in lines[0]


def test_debug_config_keeps_trace_in_state():
    vm, result, _ = execute("++", debug=True)
    assert len(vm.state.trace) == 2


def test_no_trace_by_default():
    vm, result, _ = execute("++")
    assert vm.state.trace == []
