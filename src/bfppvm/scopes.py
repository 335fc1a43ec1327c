from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from .errors import BFPPResourceError, make_runtime_error
from .tape import Tape

logger = logging.getLogger(__name__)


@dataclass
class PointerContext:
    index: int = 0
    level: int = 0


@dataclass(frozen=True)
class UndoEntry:
    index: int
    value: int
    level: int


class ScopeStack:
    """
    Pointer contexts for nested ``{ }`` scopes plus the undo log that rolls
    their tape writes back.

    Level 0 is the root context; nothing is logged there. Inside a scope the
    first write to a cell records its value as of scope entry, later writes to
    the same cell at the same level do not, so closing the scope restores the
    entry-time value.
    """

    def __init__(self, max_depth: int = 256, *, max_undo_entries: int = 4 * 65536):
        self.max_depth = max_depth
        self.max_undo_entries = max_undo_entries
        self.contexts: List[PointerContext] = [PointerContext()]
        self.undo_log: List[UndoEntry] = []
        # (index, level) pairs with a live undo entry
        self._logged: Set[Tuple[int, int]] = set()

    @property
    def level(self) -> int:
        return len(self.contexts) - 1

    @property
    def current(self) -> PointerContext:
        return self.contexts[-1]

    @property
    def root(self) -> PointerContext:
        return self.contexts[0]

    def push(self, position: Optional[int] = None, code: str = '') -> PointerContext:
        if self.level + 1 > self.max_depth:
            raise make_runtime_error(
                message=f"Pointer stack overflow (max depth {self.max_depth})",
                code=code,
                position=position,
            )
        ctx = PointerContext(index=self.current.index, level=self.level + 1)
        self.contexts.append(ctx)
        return ctx

    def log_if_first(self, tape: Tape, index: int) -> bool:
        level = self.level
        if level == 0:
            return False
        key = (index, level)
        if key in self._logged:
            return False
        if len(self.undo_log) >= self.max_undo_entries:
            raise BFPPResourceError(
                message=f"ResourceError: Undo log capacity limit ({self.max_undo_entries}) reached"
            )
        self.undo_log.append(UndoEntry(index=index, value=tape.read(index), level=level))
        self._logged.add(key)
        return True

    def rollback(self, tape: Tape) -> int:
        """Restore every cell logged at the current level; returns the count."""
        level = self.level
        restored = 0
        while self.undo_log and self.undo_log[-1].level == level:
            entry = self.undo_log.pop()
            self._logged.discard((entry.index, entry.level))
            tape.write(entry.index, entry.value)
            restored += 1
        return restored

    def pop(self, tape: Tape, position: Optional[int] = None, code: str = '') -> PointerContext:
        if self.level == 0:
            raise make_runtime_error(message="Pointer stack underflow", code=code, position=position)
        self.rollback(tape)
        self.contexts.pop()
        return self.current

    def close_all(self, tape: Tape) -> int:
        closed = 0
        while self.level > 0:
            logger.debug("Force-closing scope level %d", self.level)
            self.pop(tape)
            closed += 1
        return closed

    def entries_for(self, level: int) -> List[UndoEntry]:
        return [e for e in self.undo_log if e.level == level]


__all__ = ['PointerContext', 'UndoEntry', 'ScopeStack']
