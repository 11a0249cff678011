"""
Circular tape of bounded cells.

Cell values live in [0, cell_max] and wrap modulo cell_max + 1. The pointer
lives in [0, length) and wraps to the opposite end; a wrap is reported back to
the caller so it can raise a range warning with the current source location.
"""

from typing import Tuple

import numpy as np

from .config import DEFAULT_CELL_MAX, DEFAULT_TAPE_LENGTH


class Tape:
    def __init__(self, length: int = DEFAULT_TAPE_LENGTH, cell_max: int = DEFAULT_CELL_MAX):
        if length < 1:
            raise ValueError("tape length must be at least 1")
        if cell_max < 1:
            raise ValueError("cell_max must be at least 1")
        self.length = length
        self.cell_max = cell_max
        self.modulus = cell_max + 1
        self.cells = np.zeros(length, dtype=np.int64)
        self.pointer = 0

    def move(self, delta: int) -> bool:
        """Move the pointer by delta. Returns True if it wrapped around."""
        target = self.pointer + delta
        if target >= self.length:
            self.pointer = 0
            return True
        if target < 0:
            self.pointer = self.length - 1
            return True
        self.pointer = target
        return False

    def adjust(self, delta: int) -> int:
        value = (int(self.cells[self.pointer]) + delta) % self.modulus
        self.cells[self.pointer] = value
        return value

    def read(self) -> int:
        return int(self.cells[self.pointer])

    def write(self, value: int) -> int:
        """Store an external byte value, folded into the cell domain."""
        value = int(value) % self.modulus
        self.cells[self.pointer] = value
        return value

    def __getitem__(self, index: int) -> int:
        return int(self.cells[index])

    def window(self, width: int) -> Tuple[int, int]:
        """Inclusive (start, end) index range of `width` cells around the pointer."""
        width = max(1, min(width, self.length))
        start = max(0, self.pointer - width // 2)
        end = min(start + width - 1, self.length - 1)
        start = max(0, end - width + 1)
        return start, end
