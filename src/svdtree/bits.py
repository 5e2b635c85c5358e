# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Bit level access to register values and numeric formatting.
All functions in this module are pure and can be called concurrently.
"""

from __future__ import annotations

import enum
import math

from .errors import SvdMemoryError


@enum.unique
class NumberFormat(enum.Enum):
    """Base used to display a value."""

    # Defer to the parent setting, or pick a base from the value width.
    AUTO = "auto"
    HEXADECIMAL = "hex"
    DECIMAL = "decimal"
    BINARY = "binary"


def bit_mask(offset: int, width: int) -> int:
    """:return: Mask of width bits starting at the given bit offset."""
    return ((1 << width) - 1) << offset


def extract_bits(value: int, offset: int, width: int) -> int:
    """
    Extract a bit range from a raw value.
    The value is treated as unsigned, so the result is never sign extended.

    :param value: Raw register value.
    :param offset: Bit offset of the range.
    :param width: Bit width of the range.
    :return: The value of the bit range.
    """
    if width <= 0:
        return 0
    return (value >> offset) & ((1 << width) - 1)


def update_bits(value: int, width: int, offset: int, new_value: int) -> int:
    """
    Replace a bit range in a raw value.

    :param value: Raw register value.
    :param width: Bit width of the range.
    :param offset: Bit offset of the range.
    :param new_value: New value of the bit range.
    :raises SvdMemoryError: If new_value does not fit in width bits.
    :return: The updated raw value.
    """
    limit = 1 << max(width, 0)
    if not 0 <= new_value < limit:
        raise SvdMemoryError(
            f"Value {new_value} ({hex(new_value)}) is invalid. "
            f"Maximum value for a {width}-bit field is {limit - 1} ({hex(limit - 1)})."
        )

    mask = bit_mask(offset, width)
    return (value & ~mask) | ((new_value << offset) & mask)


def hex_format(value: int, padding: int = 8, include_prefix: bool = True) -> str:
    """Format a value as upper case hexadecimal, zero padded to the given number of digits."""
    digits = f"{value:0{padding}X}"
    return f"0x{digits}" if include_prefix else digits


def binary_format(
    value: int, padding: int = 0, include_prefix: bool = True, group: bool = False
) -> str:
    """
    Format a value as binary, zero padded to the given number of digits.

    :param group: Separate the digits in groups of four, starting from the least significant digit.
    """
    digits = f"{value:0{padding}b}"
    if group:
        head = len(digits) % 4
        groups = [digits[:head]] if head else []
        groups.extend(digits[i : i + 4] for i in range(head, len(digits), 4))
        digits = " ".join(groups)
    return f"0b{digits}" if include_prefix else digits


def resolve_format(number_format: NumberFormat, width: int) -> NumberFormat:
    """Resolve AUTO to hexadecimal for values at least 4 bits wide, binary otherwise."""
    if number_format != NumberFormat.AUTO:
        return number_format
    return NumberFormat.HEXADECIMAL if width >= 4 else NumberFormat.BINARY


def format_number(value: int, width: int, number_format: NumberFormat) -> str:
    """
    Format a value of the given bit width.
    Hexadecimal values are padded to ceil(width / 4) digits and binary values to width digits.
    """
    resolved = resolve_format(number_format, width)

    if resolved == NumberFormat.DECIMAL:
        return str(value)
    if resolved == NumberFormat.BINARY:
        return binary_format(value, max(width, 1))
    return hex_format(value, max(math.ceil(width / 4), 1))
