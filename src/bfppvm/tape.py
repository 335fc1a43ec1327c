from __future__ import annotations

from typing import List

import numpy as np

from .config import CellWidth
from .errors import BFPPResourceError

_DTYPES = {
    CellWidth.BYTE: np.uint8,
    CellWidth.INT: np.int64,
}


class Tape:
    """
    Zero-initialised memory tape addressed by signed logical index.

    Storage is one numpy array; ``zero_offset`` is the physical slot of
    logical index 0. Growth doubles the array. Growing right appends zeros,
    growing left copies the existing cells to the right half of a new array
    and moves the zero point by the same amount, so logical indices never
    change meaning.
    """

    def __init__(self, initial_size: int = 30000, cell_width: CellWidth = CellWidth.BYTE, *, max_size: int = 1 << 28):
        if initial_size <= 0:
            raise ValueError('initial_size must be positive')
        self.cell_width = cell_width
        self.initial_size = initial_size
        self.max_size = max_size
        self.dtype = _DTYPES[cell_width]
        self.reset()

    def reset(self) -> None:
        self.cells = self._allocate(self.initial_size)
        self.zero_offset = self.initial_size // 2
        self.grow_count = 0

    @property
    def size(self) -> int:
        return len(self.cells)

    @property
    def low(self) -> int:
        return -self.zero_offset

    @property
    def high(self) -> int:
        return self.size - self.zero_offset - 1

    def _allocate(self, size: int) -> np.ndarray:
        try:
            return np.zeros(size, dtype=self.dtype)
        except (MemoryError, ValueError) as e:
            raise BFPPResourceError(message=f"ResourceError: Failed to allocate tape of {size} cells ({e})") from e

    def _grown_size(self, needed: int) -> int:
        if needed > self.max_size:
            raise BFPPResourceError(
                message=f"ResourceError: Cannot expand tape further, maximum size ({self.max_size}) reached"
            )
        new_size = self.size
        while new_size < needed:
            new_size = min(new_size * 2, self.max_size)
        return new_size

    def ensure(self, index: int) -> None:
        phys = self.zero_offset + index
        if 0 <= phys < self.size:
            return

        old_size = self.size
        if phys >= old_size:
            new_size = self._grown_size(phys + 1)
            new_cells = self._allocate(new_size)
            new_cells[:old_size] = self.cells
        else:
            new_size = self._grown_size(old_size - phys)
            shift = new_size - old_size
            new_cells = self._allocate(new_size)
            new_cells[shift:] = self.cells
            self.zero_offset += shift

        self.cells = new_cells
        self.grow_count += 1

    def read(self, index: int) -> int:
        self.ensure(index)
        return int(self.cells[self.zero_offset + index])

    def write(self, index: int, value: int) -> int:
        self.ensure(index)
        value = self.cell_width.wrap(int(value))
        self.cells[self.zero_offset + index] = value
        return value

    def add(self, index: int, delta: int) -> int:
        return self.write(index, self.read(index) + delta)

    def snapshot(self, start: int, stop: int) -> List[int]:
        """Values for logical indices ``start..stop-1`` without growing the tape."""
        out: List[int] = []
        for index in range(start, stop):
            phys = self.zero_offset + index
            out.append(int(self.cells[phys]) if 0 <= phys < self.size else 0)
        return out

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"Tape(size={self.size}, zero_offset={self.zero_offset}, width={self.cell_width.value})"


__all__ = ['Tape']
