from __future__ import annotations

import enum
from dataclasses import dataclass, fields
from typing import Any, Mapping


class CellWidth(enum.Enum):
    """Cell arithmetic for the tape.

    BYTE is unsigned 8-bit with wraparound (``-`` on 0 gives 255).
    INT is signed 64-bit two's complement with wraparound (``-`` on 0 gives -1).
    """

    BYTE = 'byte'
    INT = 'int'

    def wrap(self, value: int) -> int:
        if self is CellWidth.BYTE:
            return value & 0xFF
        value &= 0xFFFFFFFFFFFFFFFF
        return value - (1 << 64) if value >= (1 << 63) else value


COMMANDS = '+-<>.,[]{}'
INTERPRET_COMMAND = '!'
COMMENT_CHAR = '#'


@dataclass(frozen=True)
class VMConfig:
    max_nesting_depth: int = 1024
    max_scope_depth: int = 256
    max_instructions: int = 100_000_000
    initial_tape_size: int = 30000
    max_tape_size: int = 1 << 28
    cell_width: CellWidth = CellWidth.BYTE
    comment_char: str = COMMENT_CHAR
    max_code_size: int = 65536
    max_undo_entries: int = 4 * 65536
    enable_interpret: bool = False
    debug: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.cell_width, str):
            object.__setattr__(self, 'cell_width', CellWidth(self.cell_width))
        for name in ('max_nesting_depth', 'max_scope_depth', 'max_instructions',
                     'initial_tape_size', 'max_tape_size', 'max_code_size', 'max_undo_entries'):
            if int(getattr(self, name)) <= 0:
                raise ValueError(f'{name} must be positive, got {getattr(self, name)!r}')
        if self.initial_tape_size > self.max_tape_size:
            raise ValueError('initial_tape_size must not exceed max_tape_size')
        if len(self.comment_char) != 1 or self.comment_char in COMMANDS + INTERPRET_COMMAND:
            raise ValueError(f'Invalid comment character: {self.comment_char!r}')

    @property
    def extra_commands(self) -> str:
        """Commands accepted on top of the base set."""
        return INTERPRET_COMMAND if self.enable_interpret else ''

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'VMConfig':
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config option(s): {', '.join(unknown)}")
        return cls(**dict(data))


DEFAULT_CONFIG = VMConfig()


__all__ = [
    'CellWidth',
    'VMConfig',
    'DEFAULT_CONFIG',
    'COMMANDS',
    'INTERPRET_COMMAND',
    'COMMENT_CHAR',
]
