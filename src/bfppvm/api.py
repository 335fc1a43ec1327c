from __future__ import annotations

import dataclasses
import io
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

from .config import VMConfig
from .errors import BFPPError
from .machine import BrainFuckPlusPlusVM, RunResult, status_for


def run_string(
    source: Union[str, bytes],
    *,
    stdin: Optional[BinaryIO] = None,
    stdout: Optional[BinaryIO] = None,
    config: Optional[VMConfig] = None,
    trace_sink: Optional[Callable[[str], None]] = None,
) -> RunResult:
    """Run BF++ source and return its status.

    Input defaults to an empty stream. Without ``stdout`` the output is
    captured and returned in ``RunResult.output``.
    """
    captured = None
    if stdout is None:
        captured = io.BytesIO()
        stdout = captured
    if stdin is None:
        stdin = io.BytesIO()

    try:
        vm = BrainFuckPlusPlusVM(source, stdin=stdin, stdout=stdout, config=config, trace_sink=trace_sink)
    except BFPPError as e:
        return RunResult(status=status_for(e), error=e)

    result = vm.run()
    if captured is not None:
        result = dataclasses.replace(result, output=captured.getvalue())
    return result


def run_file(
    path: Union[str, Path],
    *,
    stdin: Optional[BinaryIO] = None,
    stdout: Optional[BinaryIO] = None,
    config: Optional[VMConfig] = None,
    trace_sink: Optional[Callable[[str], None]] = None,
    encoding: str = "utf-8",
) -> RunResult:
    p = Path(path)
    return run_string(
        p.read_text(encoding=encoding),
        stdin=stdin,
        stdout=stdout,
        config=config,
        trace_sink=trace_sink,
    )
