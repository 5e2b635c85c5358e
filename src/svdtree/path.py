# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Class for refererencing nodes in the peripheral tree based on name.
"""

from __future__ import annotations

from itertools import chain
from typing import Any, List, Optional, Sequence, Tuple, Union, overload

from typing_extensions import Self


class NodePath(Sequence[str]):
    """
    Path to a node in the peripheral tree.
    A NodePath like "UART0.CTRL.ENABLE" refers to the field with name "ENABLE" in the register
    "CTRL" of the peripheral "UART0".

    Array elements are expanded into ordinary siblings when the tree is built, so an element
    such as "CH[2]" is just a name and is never treated as an index.
    """

    __slots__ = "_parts"

    def __init__(self, *parts: Union[str, Sequence[str]]) -> None:
        """
        :param parts: Path segments. String segments are split on ".".
        """
        split_parts: List[str] = []

        for part in parts:
            if isinstance(part, str):
                split_parts.extend(part.split("."))
            elif isinstance(part, NodePath):
                split_parts.extend(part)
            else:
                sub_parts = (p.split(".") for p in part)
                split_parts.extend(chain.from_iterable(sub_parts))

        if not split_parts:
            raise ValueError(f"Empty {self.__class__.__name__} not allowed")

        if any(not p for p in split_parts):
            raise ValueError(f"Invalid {self.__class__.__name__} parts: {parts}")

        self._parts: Tuple[str, ...] = tuple(split_parts)

    @property
    def parts(self) -> Tuple[str, ...]:
        """:return: Path components."""
        return self._parts

    @property
    def name(self) -> str:
        """:return: Name of the node pointed to by the path."""
        return self._parts[-1]

    @property
    def parent(self) -> Optional[NodePath]:
        """:return: Path to the parent node of this path, if it exists."""
        if len(self._parts) <= 1:
            return None
        return NodePath(*self._parts[:-1])

    def join(self, *other: Union[str, Sequence[str]]) -> Self:
        """:return: The path resulting from appending other to the end of this path."""
        return self.__class__(*self._parts, *other)

    @overload
    def __getitem__(self, item: int, /) -> str:
        ...

    @overload
    def __getitem__(self, item: slice, /) -> Self:
        ...

    def __getitem__(self, item: Union[int, slice], /) -> Union[str, Self]:
        if isinstance(item, slice):
            return self.__class__(*self._parts[item])
        else:
            return self._parts[item]

    def __len__(self) -> int:
        return len(self._parts)

    def __hash__(self) -> int:
        return hash(self._parts)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, NodePath):
            return self._parts == other._parts
        if isinstance(other, str):
            return ".".join(self._parts) == other
        return self._parts == other

    def __repr__(self) -> str:
        return ".".join(self._parts)
