from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional


@dataclass
class MachineState:
    ip: int = 0
    instruction_count: int = 0
    finished: bool = False
    trace: List[str] = field(default_factory=list)
    is_tracing: bool = False
    trace_sink: Optional[Callable[[str], None]] = None

    def add_trace(self, message: str) -> None:
        if not self.is_tracing:
            return
        # lines handed to a sink are not also kept in memory
        if self.trace_sink is not None:
            self.trace_sink(message)
        else:
            self.trace.append(message)
