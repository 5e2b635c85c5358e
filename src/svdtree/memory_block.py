# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from functools import partial
from typing import Callable, List, Optional, Tuple

import numpy as np
from typing_extensions import Self

from .errors import SvdMemoryError


class MemoryBlock:
    """
    A contiguous little endian memory region at a given (offset, length).
    Holds the live content of the registers in a peripheral.
    """

    class Builder:
        """
        Builder that can be used to construct a MemoryBlock in several steps.
        """

        def __init__(self) -> None:
            self._offset: int = 0
            self._length: Optional[int] = None
            self._ops: List[Callable[[MemoryBlock], None]] = []

        def build(self) -> MemoryBlock:
            """
            Build the memory block based on the parameters set.

            :return: The built memory block.
            """
            if self._length is None:
                raise ValueError("Missing memory block extent")

            block = MemoryBlock(offset=self._offset, length=self._length)

            for op in self._ops:
                op(block)

            return block

        def set_extent(self, offset: int, length: int) -> Self:
            """
            Set the offset and length of the memory block.
            This is required.

            :param offset: Starting offset of the memory block.
            :param length: Length of the memory block, starting at the given offset.
            :return: The builder instance.
            """
            self._offset = offset
            self._length = length
            return self

        def fill(self, start: int, content: int, item_size: int = 4) -> Self:
            """
            Initialize the item at the given offset with a value.
            Bits of the value outside the item size are discarded.

            :param start: Offset of the item.
            :param content: Value to fill with.
            :param item_size: Size in bytes of content.
            :return: The builder instance.
            """
            if item_size > 0:
                self._ops.append(
                    partial(
                        MemoryBlock._fill,
                        start=start,
                        value=content & _one_bits(item_size),
                        item_size=item_size,
                    )
                )
            return self

    def __init__(self, offset: int, length: int) -> None:
        """
        :param offset: Starting offset of the memory block.
        :param length: Length in bytes of the memory block.
        """
        if length < 0:
            raise ValueError(f"Invalid memory block length {length}")

        self._offset: int = offset
        self._length: int = length
        self._array: np.ndarray = np.zeros(length, dtype=np.uint8)

    @property
    def offset(self) -> int:
        """Starting offset of the memory block."""
        return self._offset

    def at(self, offset: int, item_size: int = 4) -> int:
        """
        Get the memory value at a given address offset.

        :param offset: Address offset.
        :param item_size: Size of the value to get.
        :return: The value stored at the given offset.
        """
        start, end = self._translate_access(offset, item_size)
        return int.from_bytes(self._array[start:end].tobytes(), byteorder="little")

    def set_at(self, offset: int, value: int, item_size: int = 4) -> None:
        """
        Set the memory value at a given address offset.

        :param offset: Address offset.
        :param value: Value to write to the offset.
        :param item_size: Size of the value to set.
        """
        start, end = self._translate_access(offset, item_size)
        try:
            content = value.to_bytes(item_size, byteorder="little")
        except OverflowError as e:
            raise SvdMemoryError(
                f"Value {hex(value)} does not fit in {item_size} byte(s)"
            ) from e

        self._array[start:end] = np.frombuffer(content, dtype=np.uint8)

    def load(self, offset: int, data: bytes) -> None:
        """
        Copy raw bytes into the memory block, for example values read from a device.
        Bytes outside the memory block are ignored.

        :param offset: Address offset of the first byte.
        :param data: Bytes to copy.
        """
        src = np.frombuffer(bytes(data), dtype=np.uint8)
        start = offset - self._offset
        src_start = max(-start, 0)
        dst_start = max(start, 0)
        count = min(len(src) - src_start, self._length - dst_start)
        if count <= 0:
            return

        self._array[dst_start : dst_start + count] = src[src_start : src_start + count]

    def __len__(self) -> int:
        """Length of the memory block."""
        return self._length

    def _translate_access(self, offset: int, item_size: int) -> Tuple[int, int]:
        """
        Translate offset and size arguments given in the public API to indices in the internal
        numpy arrays.
        """
        start = offset - self._offset
        end = start + item_size

        if start < 0 or end > self._length or item_size <= 0:
            raise SvdMemoryError(
                f"Access of {item_size} byte(s) at offset 0x{offset:x} is outside the memory "
                f"block [0x{self._offset:x}-0x{self._offset + self._length:x})"
            )

        return start, end

    def _fill(self, /, *, start: int, value: int, item_size: int) -> None:
        """Inline fill operation. See MemoryBlock.Builder.fill() for details"""
        begin, end = self._translate_access(start, item_size)
        content = value.to_bytes(item_size, byteorder="little")
        self._array[begin:end] = np.frombuffer(content, dtype=np.uint8)


def _one_bits(item_size: int) -> int:
    """:return: bitfield of all ones with the given item size."""
    return 2 ** (8 * item_size) - 1
