# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Various internal functionality used by the bindings module.
"""

from __future__ import annotations

import enum
import re
from types import MappingProxyType
from typing import (
    Any,
    Callable,
    Generic,
    List,
    Literal,
    Mapping,
    Optional,
    Type,
    TypeVar,
    Union,
    overload,
)

from typing_extensions import Self

# Key holding the attributes of an element in the descriptor mapping.
ATTRIBUTES_KEY = "$"

# Key holding the text of an element that also carries attributes.
TEXT_KEY = "_"

_BIN_RE = re.compile(r"0b([01]+)", re.IGNORECASE)
_HEX_RE = re.compile(r"0x([0-9a-f]+)", re.IGNORECASE)
_DEC_RE = re.compile(r"[0-9]+")
_HASH_BIN_RE = re.compile(r"#([01]+)")


class CaseInsensitiveStrEnum(enum.Enum):
    """String enum class that can be constructed from a case-insensitive string."""

    @classmethod
    def _missing_(cls, value: object) -> Optional[Self]:
        """Handler for string values with mismatched case."""
        if not isinstance(value, str):
            return None

        value_lower = value.lower()
        for member in cls:
            if member.value.lower() == value_lower:
                return member

        return None


def to_int(number: Optional[str]) -> Optional[int]:
    """
    Convert a string representation of an integer following the SVD format to its corresponding
    integer representation.

    Decimal, "0x" hexadecimal, "0b" binary and "#" binary literals are accepted.

    :param number: String representation of the integer.

    :return: Decoded integer, or None if the string is not a valid integer literal.
    """
    if number is None:
        return None

    text = number.strip()

    if (match := _HEX_RE.fullmatch(text)) is not None:
        return int(match[1], base=16)
    if (match := _BIN_RE.fullmatch(text)) is not None:
        return int(match[1], base=2)
    if (match := _HASH_BIN_RE.fullmatch(text)) is not None:
        return int(match[1], base=2)
    if _DEC_RE.fullmatch(text) is not None:
        return int(text, base=10)
    return None


def cleanup_description(text: Optional[str]) -> str:
    """Normalize whitespace in a description, joining wrapped lines with a single space."""
    if not text:
        return ""
    return re.sub(r"\n\s*", " ", text.replace("\r", ""))


def leaf_text(value: Any) -> str:
    """
    Get the text of a leaf value in the descriptor mapping.
    Leaf values are either plain strings or mappings with the text under TEXT_KEY.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return str(value.get(TEXT_KEY, ""))
    return str(value)


class DescriptorElement:
    """
    Base class for the read-only wrappers around elements of the descriptor mapping.
    Subclasses declare their content with the Elem, Attr and Children descriptors.
    """

    TAG: str

    __slots__ = ["_raw"]

    def __init__(self, raw: Any) -> None:
        """
        :param raw: The element's mapping in the descriptor. Empty elements may be represented
                    by a string, which is treated as an element without children.
        """
        self._raw: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}

    @property
    def raw(self) -> Mapping[str, Any]:
        """The element's mapping in the descriptor."""
        return self._raw

    @property
    def attributes(self) -> Mapping[str, str]:
        """Attributes of the element."""
        return MappingProxyType(self._raw.get(ATTRIBUTES_KEY, None) or {})

    def has(self, name: str) -> bool:
        """True if the element contains a child element with the given name."""
        return name in self._raw

    def __repr__(self) -> str:
        """
        A more informative string representation than the default one.
        This is mostly useful for the messages of errors raised while building the model.
        """
        return self._repr()

    def _repr(self, props: Mapping[Any, Any] = MappingProxyType({})) -> str:
        """Default repr() implementation for the binding classes."""
        props = {k: v for k, v in props.items() if v is not None}
        props_str = f" {props}" if props else ""
        return f"[{self.TAG}{props_str}]"


class _Self:
    ...


# Sentinel value used for child element properties where the wrapper class is equal to the class
# of the owner. This is required since self-referential class members are not allowed.
SELF_CLASS = _Self()


class _Missing:
    ...


# Sentinel value used to indicate that a default value is missing.
MISSING = _Missing()


O = TypeVar("O", bound=DescriptorElement)
T = TypeVar("T")
E = TypeVar("E", bound=DescriptorElement)


class Elem(Generic[T]):
    """Data descriptor class used to access the text of a leaf element."""

    def __init__(
        self,
        name: str,
        /,
        *,
        converter: Optional[Callable[[str], T]] = None,
        default: Union[T, _Missing] = MISSING,
    ) -> None:
        """
        :param name: Name of the element.
        :param converter: Optional callable that converts the element text to another type.
        :param default: Default value to return if the element is not found.
        """
        self.name: str = name
        self.converter: Optional[Callable[[str], T]] = converter
        self.default: Union[T, _Missing] = default

    @overload
    def __get__(self, node: Literal[None], owner: Optional[Type] = None) -> Self:
        ...

    @overload
    def __get__(self, node: O, owner: Optional[Type] = None) -> T:
        ...

    def __get__(self, node: Optional[O], owner: Any = None) -> Union[T, Self]:
        """Get the element value from the given node."""
        if node is None:
            # Accessed through the class object
            return self

        values = node.raw.get(self.name, None)
        if not values:
            if not isinstance(self.default, _Missing):
                return self.default
            raise AttributeError(f"Element {self.name} was not found in {node!r}")

        text = leaf_text(values[0] if isinstance(values, list) else values)

        if self.converter is None:
            return text  # type: ignore

        return self.converter(text)


class Attr(Generic[T]):
    """Data descriptor used to access an attribute of an element."""

    def __init__(
        self,
        name: str,
        /,
        *,
        converter: Optional[Callable[[str], T]] = None,
        default: Union[T, _Missing] = MISSING,
    ) -> None:
        """
        :param name: Name of the attribute.
        :param converter: Optional callable that converts the attribute value to another type.
        :param default: Default value to return if the attribute is not found.
        """
        self.name: str = name
        self.converter: Optional[Callable[[str], T]] = converter
        self.default: Union[T, _Missing] = default

    @overload
    def __get__(self, node: Literal[None], owner: Optional[Type] = None) -> Self:
        ...

    @overload
    def __get__(self, node: O, owner: Optional[Type] = None) -> T:
        ...

    def __get__(self, node: Optional[O], owner: Any = None) -> Union[T, Self]:
        """Get the attribute value from the given node."""
        if node is None:
            return self

        value = node.attributes.get(self.name, None)

        if not value:
            if not isinstance(self.default, _Missing):
                return self.default
            raise AttributeError(f"Attribute {self.name} was not found in {node!r}")

        if self.converter is None:
            return value  # type: ignore

        return self.converter(value)


class Child(Generic[E]):
    """Data descriptor used to access the first occurrence of a child element."""

    def __init__(self, name: str, element_class: Type[E], /) -> None:
        """
        :param name: Name of the child element.
        :param element_class: Wrapper class to use for the child.
        """
        self.name: str = name
        self.element_class: Type[E] = element_class

    @overload
    def __get__(self, node: Literal[None], owner: Optional[Type] = None) -> Self:
        ...

    @overload
    def __get__(self, node: O, owner: Optional[Type] = None) -> Optional[E]:
        ...

    def __get__(self, node: Optional[O], owner: Any = None) -> Union[Optional[E], Self]:
        if node is None:
            return self

        values = node.raw.get(self.name, None)
        if values is None:
            return None
        if isinstance(values, list):
            if not values:
                return None
            return self.element_class(values[0])
        return self.element_class(values)


class Children(Generic[E]):
    """Data descriptor used to access a repeated child element as a list of wrappers."""

    def __init__(self, name: str, element_class: Union[Type[E], _Self], /) -> None:
        """
        :param name: Name of the child element.
        :param element_class: Wrapper class to use for each child, or SELF_CLASS to use the
                              class that owns the descriptor.
        """
        self.name: str = name
        self.element_class: Type[E] = element_class  # type: ignore

    def __set_name__(self, owner: Type[Any], name: str) -> None:
        if isinstance(self.element_class, _Self):
            self.element_class = owner

    @overload
    def __get__(self, node: Literal[None], owner: Optional[Type] = None) -> Self:
        ...

    @overload
    def __get__(self, node: O, owner: Optional[Type] = None) -> List[E]:
        ...

    def __get__(self, node: Optional[O], owner: Any = None) -> Union[List[E], Self]:
        if node is None:
            return self

        values = node.raw.get(self.name, None) or []
        if not isinstance(values, list):
            values = [values]

        return [self.element_class(v) for v in values]
