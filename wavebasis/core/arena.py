"""Level arena and TensorRef handles for packet tree storage.

A packet tree is stored as an array of levels: level ``d`` is a single
tensor of shape ``(arity**d, *node_shape)`` and node ``(d, i)`` is row ``i``
of that tensor. All levels of one tree live in one contiguous Arena buffer,
so addressing a node never copies data.

Key Features:
- Bump allocation with dtype alignment
- Row refs: ``TensorRef.row(i)`` addresses one node of a level
- Freezing: once a tree is built its arena hands out read-only views
- Generation counter: detects stale TensorRefs after ``reset()``

Example:
    >>> arena = Arena(size_bytes=1024)
    >>> level = arena.alloc_tensor((2, 8), np.float64)
    >>> arena.view(level)[:] = 1.0
    >>> arena.freeze()
    >>> arena.view(level.row(1)).flags.writeable
    False
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass(frozen=True)
class TensorRef:
    """Lightweight handle pointing to tensor data in an Arena.

    Attributes:
        offset: Byte offset into arena buffer
        shape: Tensor dimensions
        dtype: NumPy data type
        strides: Byte strides for each dimension
        generation: Arena generation counter (for staleness detection)
    """

    offset: int
    shape: tuple[int, ...]
    dtype: np.dtype[Any]
    strides: tuple[int, ...]
    generation: int

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError(f"offset must be non-negative, got {self.offset}")
        if len(self.shape) != len(self.strides):
            raise ValueError(
                f"shape and strides must have same length: "
                f"shape={self.shape}, strides={self.strides}"
            )
        if self.generation < 0:
            raise ValueError(f"generation must be non-negative, got {self.generation}")

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def size(self) -> int:
        return int(np.prod(self.shape))

    @property
    def nbytes(self) -> int:
        """Byte span from the first to the last element."""
        if self.size == 0:
            return 0
        last_offset = sum((s - 1) * st for s, st in zip(self.shape, self.strides))
        return last_offset + self.dtype.itemsize

    def row(self, index: int) -> TensorRef:
        """Return a ref to row ``index`` along the first axis.

        For a level ref this is the ref of one tree node.

        Raises:
            IndexError: If index is out of bounds
        """
        if self.ndim == 0:
            raise IndexError("Cannot take a row of a 0-d TensorRef")
        count = self.shape[0]
        if index < 0:
            index += count
        if not 0 <= index < count:
            raise IndexError(f"Row {index} out of bounds for {count} rows")
        return TensorRef(
            offset=self.offset + index * self.strides[0],
            shape=self.shape[1:],
            dtype=self.dtype,
            strides=self.strides[1:],
            generation=self.generation,
        )


class Arena:
    """Contiguous memory allocator with bump allocation strategy.

    Attributes:
        size: Total arena size in bytes
        offset: Current allocation offset (bump pointer)
        generation: Incremented on reset() to invalidate old TensorRefs
        frozen: Whether views are read-only
    """

    def __init__(self, size_bytes: int):
        if size_bytes <= 0:
            raise ValueError(f"size_bytes must be positive, got {size_bytes}")

        self._buffer = bytearray(size_bytes)
        self._size = size_bytes
        self._offset = 0
        self._generation = 0
        self._frozen = False

    @classmethod
    def for_shapes(
        cls, shapes: list[tuple[int, ...]], dtype: np.dtype[Any] | type | str
    ) -> Arena:
        """Create an arena just large enough for the given tensor shapes."""
        dt = np.dtype(dtype)
        total = sum(int(np.prod(shape)) for shape in shapes) * dt.itemsize
        # alignment padding is at most one itemsize per tensor
        return cls(size_bytes=max(total + len(shapes) * dt.alignment, 1))

    @property
    def size(self) -> int:
        return self._size

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def available(self) -> int:
        return self._size - self._offset

    def freeze(self) -> None:
        """Permanently make every view read-only and forbid allocation and reset."""
        self._frozen = True

    def reset(self) -> None:
        """Reset arena for reuse. Invalidates all existing TensorRefs.

        Raises:
            ValueError: If the arena is frozen
        """
        if self._frozen:
            raise ValueError("Cannot reset a frozen arena")
        self._offset = 0
        self._generation += 1

    def alloc_tensor(
        self,
        shape: tuple[int, ...],
        dtype: np.dtype[Any] | type | str,
    ) -> TensorRef:
        """Allocate a C-contiguous tensor in the arena.

        Raises:
            ValueError: If the arena is frozen or out of memory
        """
        if self._frozen:
            raise ValueError("Cannot allocate in a frozen arena")

        dt = np.dtype(dtype)
        shape = tuple(int(s) for s in shape)
        nbytes = int(np.prod(shape)) * dt.itemsize

        alignment = dt.alignment
        aligned_offset = (self._offset + alignment - 1) // alignment * alignment

        end_offset = aligned_offset + nbytes
        if end_offset > self._size:
            raise ValueError(
                f"Arena out of memory: need {nbytes} bytes at offset {aligned_offset}, "
                f"but arena size is {self._size} (available: {self.available})"
            )

        strides = []
        stride = dt.itemsize
        for dim_size in reversed(shape):
            strides.append(stride)
            stride *= dim_size
        strides.reverse()

        ref = TensorRef(
            offset=aligned_offset,
            shape=shape,
            dtype=dt,
            strides=tuple(strides),
            generation=self._generation,
        )
        self._offset = end_offset
        return ref

    def view(self, ref: TensorRef, readonly: bool = False) -> np.ndarray:
        """Get a NumPy view of a TensorRef (zero-copy).

        Views of a frozen arena are always read-only.

        Raises:
            ValueError: If TensorRef is stale or out of bounds
        """
        if ref.generation != self._generation:
            raise ValueError(
                f"Stale TensorRef: arena was reset (current generation {self._generation}, "
                f"ref is from generation {ref.generation})"
            )

        end_offset = ref.offset + ref.nbytes
        if end_offset > self._size:
            raise ValueError(
                f"TensorRef out of bounds: offset={ref.offset}, nbytes={ref.nbytes}, "
                f"arena size={self._size}"
            )

        arr = np.ndarray(
            shape=ref.shape,
            dtype=ref.dtype,
            buffer=self._buffer,
            offset=ref.offset,
            strides=ref.strides,
        )
        if readonly or self._frozen:
            arr.flags.writeable = False
        return arr

    def copy_tensor(self, arr: np.ndarray) -> TensorRef:
        """Allocate tensor and copy data from array."""
        ref = self.alloc_tensor(arr.shape, arr.dtype)
        self.view(ref)[:] = arr
        return ref

    def __repr__(self) -> str:
        return (
            f"Arena(size={self._size}, offset={self._offset}, "
            f"generation={self._generation}, frozen={self._frozen})"
        )
