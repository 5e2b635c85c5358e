# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
High level representation of a SVD device.

The device is a tree of peripherals, clusters, registers and fields built from the descriptor
mapping in a single pass. Inheritance and array expansion are resolved while the tree is built,
so every node in the tree is a concrete instance with a unique path. Absolute addresses are
assigned in a separate pass once every peripheral has been built.

Each peripheral owns a memory block holding the live content of its registers, initialized with
the register reset values. Register and field values are read and updated through that block.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from functools import cached_property
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Dict,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
    Union,
)

import svdtree

from . import bits
from ._bindings import to_int
from ._device import (
    ElementInstance,
    ParseContext,
    expand_element,
    resolve_derived_peripherals,
    svd_element_repr,
)
from .bindings import (
    Access,
    ClusterElement,
    DeviceElement,
    FieldElement,
    PeripheralElement,
    RegisterElement,
    RegisterProperties,
    effective_access,
)
from .bits import NumberFormat
from .errors import SvdDefinitionError, SvdKeyError, SvdMemoryError
from .memory_block import MemoryBlock
from .path import NodePath

if TYPE_CHECKING:
    from .parsing import Options


class EnumeratedValue(NamedTuple):
    """A named value of a field."""

    name: str
    description: str
    value: int


# Read-only mapping from field value to enumerated value.
EnumerationMap = Mapping[int, EnumeratedValue]

# Text displayed in place of the value of a write-only field.
WRITE_ONLY_TEXT = "(Write Only)"

# Label used for field values that are missing from the field enumeration.
UNKNOWN_ENUMERATION_TEXT = "Unknown Enumeration Value"

# Nodes that can be children of a peripheral or cluster.
RegisterUnion = Union["Cluster", "Register"]

# Path argument accepted by the lookup methods.
PathLike = Union[str, Sequence[str], NodePath]


class _Node(ABC):
    """Base class for the nodes in the device tree."""

    def __init__(
        self, name: str, description: str, parent: Optional[_Node] = None
    ) -> None:
        """
        :param name: Name of the node.
        :param description: Description of the node.
        :param parent: Parent node, None for peripherals.
        """
        self._name: str = name
        self._description: str = description
        self._parent: Optional[_Node] = parent
        self._address: Optional[int] = None

        # Display format of the node. AUTO defers to the parent node.
        self.format: NumberFormat = NumberFormat.AUTO

    @property
    def name(self) -> str:
        """Name of the node."""
        return self._name

    @property
    def description(self) -> str:
        """Description of the node."""
        return self._description

    @property
    def parent(self) -> Optional[_Node]:
        """Parent node, or None if this is a top level node."""
        return self._parent

    @property
    def path(self) -> NodePath:
        """Path to the node, starting at the peripheral."""
        if self._parent is None:
            return NodePath(self._name)
        return self._parent.path.join(self._name)

    @property
    def address(self) -> int:
        """
        Absolute address of the node.

        :raises SvdMemoryError: If the address has not been assigned yet.
        """
        if self._address is None:
            raise SvdMemoryError(f"{self.path} has not been assigned an address")
        return self._address

    @property
    @abstractmethod
    def children(self) -> Sequence[_Node]:
        """Child nodes, in ascending offset order."""
        ...

    def get_format(self) -> NumberFormat:
        """
        Effective display format of the node.
        The format falls back to the parent when set to AUTO.
        """
        if self.format != NumberFormat.AUTO or self._parent is None:
            return self.format
        return self._parent.get_format()

    def find_by_path(self, path: PathLike) -> Optional[_Node]:
        """
        Find a descendant of this node.

        :param path: Path to the descendant, relative to this node.
        :return: The node at the path, or None if there is no such node.
        """
        if not isinstance(path, str) and len(path) == 0:
            return self

        node_path = _to_node_path(path)
        if node_path is None:
            return None

        node: _Node = self
        for part in node_path:
            child = next((c for c in node.children if c.name == part), None)
            if child is None:
                return None
            node = child
        return node


class Device(Mapping[str, "Peripheral"]):
    """Representation of a SVD device."""

    def __init__(self, device: DeviceElement, options: Options) -> None:
        """
        :param device: SVD device element.
        :param options: Parsing options.
        :raises SvdDefinitionError: If the device cannot be built from the descriptor.
        """
        self._device: DeviceElement = device
        self._options: Options = options
        self._reg_props: RegisterProperties = device.register_properties

        context = ParseContext()
        fragments: Dict[str, Mapping] = {}

        for element in device.peripherals:
            if element.name is None:
                raise SvdDefinitionError([element], "Peripheral has no name element.")
            if element.name in fragments:
                svdtree.log.warning(
                    f"Peripheral '{element.name}' is defined more than once, "
                    "using the last definition"
                )
            fragments[element.name] = element.raw

        resolved = resolve_derived_peripherals(
            fragments, transitive=options.resolve_derived_chains
        )

        peripherals = [
            Peripheral(
                PeripheralElement(raw),
                device_props=self._reg_props,
                default_format=options.default_format,
                context=context,
                options=options,
            )
            for raw in resolved.values()
        ]
        peripherals.sort(key=lambda p: (p.base_address, p.name))

        for peripheral in peripherals:
            peripheral.mark_addresses()

        self._peripherals: Dict[str, Peripheral] = {p.name: p for p in peripherals}

    @property
    def name(self) -> str:
        """Name of the device."""
        return self._device.name or ""

    @property
    def description(self) -> str:
        """Description of the device."""
        return self._device.description

    @property
    def register_properties(self) -> RegisterProperties:
        """Default register properties of the device."""
        return self._reg_props

    @property
    def default_format(self) -> NumberFormat:
        """Display format used by nodes that do not set one."""
        return self._options.default_format

    @property
    def peripherals(self) -> Mapping[str, Peripheral]:
        """
        Map of peripherals in the device, indexed by name.
        The peripherals are sorted by ascending base address, then name.
        """
        return MappingProxyType(self._peripherals)

    def find_by_path(self, path: PathLike) -> Optional[_Node]:
        """
        Find a node in the device.

        :param path: Path to the node, starting with the peripheral name.
        :return: The node at the path, or None if there is no such node.
        """
        node_path = _to_node_path(path)
        if node_path is None:
            return None

        peripheral = self._peripherals.get(node_path[0], None)
        if peripheral is None:
            return None
        if len(node_path) == 1:
            return peripheral
        return peripheral.find_by_path(node_path[1:])

    def __getitem__(self, name: str) -> Peripheral:
        """
        :param name: Peripheral name.
        :raises SvdKeyError: if the peripheral was not found.
        :return: Peripheral with the given name.
        """
        try:
            return self._peripherals[name]
        except LookupError as e:
            raise SvdKeyError(name, self, "peripheral not found") from e

    def __iter__(self) -> Iterator[str]:
        """:return: Iterator over the names of peripherals in the device."""
        return iter(self._peripherals)

    def __len__(self) -> int:
        """:return: Number of peripherals in the device."""
        return len(self._peripherals)

    def __repr__(self) -> str:
        """Short description of the device."""
        return svd_element_repr(
            self.__class__, self.name, kv_props={"peripherals": len(self)}
        )


class _RegisterContainer(_Node, Mapping[str, RegisterUnion]):
    """Common peripheral/cluster functionality."""

    def __init__(
        self,
        name: str,
        description: str,
        parent: Optional[_Node],
        reg_props: RegisterProperties,
    ) -> None:
        super().__init__(name, description, parent)
        self._reg_props: RegisterProperties = reg_props
        self._children: List[RegisterUnion] = []
        self._children_by_name: Dict[str, RegisterUnion] = {}

    def _set_children(self, children: List[RegisterUnion]) -> None:
        self._children = children
        self._children_by_name = {c.name: c for c in children}

    @property
    def children(self) -> Sequence[RegisterUnion]:
        return tuple(self._children)

    @property
    def access(self) -> Access:
        """Default access of the registers in the element."""
        return self._reg_props.access

    @property
    def size(self) -> int:
        """Default size in bits of the registers in the element."""
        return self._reg_props.size

    @property
    def reset_value(self) -> int:
        """Default reset value of the registers in the element."""
        return self._reg_props.reset_value

    @property
    def register_properties(self) -> RegisterProperties:
        """Register properties inherited by the children of the element."""
        return self._reg_props

    def register_iter(self) -> Iterator[Register]:
        """:return: Iterator over every register in the element, depth first."""
        for child in self._children:
            if isinstance(child, Register):
                yield child
            else:
                yield from child.register_iter()

    def __getitem__(self, name: str) -> RegisterUnion:
        """
        :param name: Register or cluster name.
        :raises SvdKeyError: if the element was not found.
        :return: Register or cluster with the given name.
        """
        try:
            return self._children_by_name[name]
        except LookupError as e:
            raise SvdKeyError(name, self, "register or cluster not found") from e

    def __iter__(self) -> Iterator[str]:
        """:return: Iterator over the names of the child elements."""
        return iter(self._children_by_name)

    def __len__(self) -> int:
        """:return: Number of child elements."""
        return len(self._children_by_name)


class Peripheral(_RegisterContainer):
    """
    Representation of a specific device peripheral.

    The registers of the peripheral share a memory block that starts out containing the reset
    values defined in the SVD file.
    """

    def __init__(
        self,
        element: PeripheralElement,
        device_props: RegisterProperties,
        context: ParseContext,
        options: Options,
        default_format: NumberFormat = NumberFormat.AUTO,
    ) -> None:
        """
        :param element: SVD peripheral element, with any 'derivedFrom' already merged in.
        :param device_props: Register properties of the device.
        :param context: Registries of the current parse.
        :param options: Parsing options.
        :param default_format: Display format used when the peripheral does not set one.
        """
        super().__init__(
            name=element.name or "",
            description=element.description,
            parent=None,
            reg_props=element.get_register_properties(
                device_props, restrict_access=False
            ),
        )

        self._element: PeripheralElement = element
        self._default_format: NumberFormat = default_format

        base_address = element.base_address
        if base_address is None:
            svdtree.log.warning(
                f"{element!r} has a missing or invalid baseAddress, using 0"
            )
            base_address = 0
        self._base_address: int = base_address

        self._total_length: int = max(
            (
                (block.offset or 0) + (block.size or 0)
                for block in element.address_blocks
            ),
            default=0,
        )

        self._set_children(
            _build_children(
                self,
                element.registers,
                element.clusters,
                reg_props=self._reg_props,
                context=context,
                options=options,
                memory_offset=0,
            )
        )

    @property
    def base_address(self) -> int:
        """Base address of the peripheral."""
        return self._base_address

    @property
    def group_name(self) -> Optional[str]:
        """Name of the group that the peripheral belongs to, if any."""
        return self._element.group_name

    @property
    def total_length(self) -> int:
        """Number of bytes covered by the address blocks of the peripheral."""
        return self._total_length

    @property
    def derived_from(self) -> Optional[str]:
        """Name of the peripheral that this peripheral is derived from, if any."""
        return self._element.derived_from

    def get_format(self) -> NumberFormat:
        if self.format != NumberFormat.AUTO:
            return self.format
        return self._default_format

    def mark_addresses(self) -> None:
        """Assign absolute addresses to the peripheral and every element within it."""
        self._address = self._base_address
        for child in self._children:
            child._mark_addresses(self._base_address)

    @cached_property
    def memory(self) -> MemoryBlock:
        """Memory block holding the content of the registers in the peripheral."""
        registers = list(self.register_iter())
        length = max(
            self._total_length,
            max((r.memory_offset + r.byte_size for r in registers), default=0),
        )

        builder = MemoryBlock.Builder().set_extent(offset=0, length=length)
        for register in registers:
            builder.fill(
                register.memory_offset,
                register.reset_value,
                item_size=register.byte_size,
            )

        return builder.build()

    def load_memory(self, data: bytes, offset: int = 0) -> None:
        """
        Store the raw content of the peripheral memory, for example as read from a device.

        :param data: Bytes to store.
        :param offset: Offset of the first byte, relative to the base address.
        """
        self.memory.load(offset, data)

    def __repr__(self) -> str:
        """Short peripheral description."""
        kv_props = {"derived_from": self.derived_from} if self.derived_from else {}
        return svd_element_repr(
            self.__class__, self.name, address=self._base_address, kv_props=kv_props
        )


class Cluster(_RegisterContainer):
    """
    Group of registers and nested clusters in a peripheral.

    A Cluster instance corresponds to either a SVD cluster element without dimensions,
    or a specific index of a cluster array element.
    """

    def __init__(
        self,
        element: ClusterElement,
        instance: ElementInstance,
        parent: _RegisterContainer,
        context: ParseContext,
        options: Options,
        memory_offset: int,
    ) -> None:
        """
        :param element: SVD cluster element.
        :param instance: Name, description and offset of this instance of the element.
        :param parent: Peripheral or cluster containing the cluster.
        :param context: Registries of the current parse.
        :param options: Parsing options.
        :param memory_offset: Offset of the parent relative to the peripheral.
        """
        super().__init__(
            name=instance.name,
            description=instance.description,
            parent=parent,
            reg_props=element.get_register_properties(parent.register_properties),
        )

        self._offset: int = instance.offset
        self._is_array: bool = element.dimensions is not None

        self._set_children(
            _build_children(
                self,
                element.registers,
                element.clusters,
                reg_props=self._reg_props,
                context=context,
                options=options,
                memory_offset=memory_offset + instance.offset,
            )
        )

    @property
    def offset(self) -> int:
        """Address offset of the cluster, relative to its parent."""
        return self._offset

    @property
    def is_array_member(self) -> bool:
        """True if the cluster was expanded from an element with dimensions."""
        return self._is_array

    def _mark_addresses(self, parent_address: int) -> None:
        self._address = parent_address + self._offset
        for child in self._children:
            child._mark_addresses(self._address)

    def __repr__(self) -> str:
        """Short cluster description."""
        return svd_element_repr(self.__class__, str(self.path), address=self._address)


class Register(_Node, Mapping[str, "Field"]):
    """
    Register instance.

    A Register instance corresponds to either a SVD register element without dimensions,
    or a specific index of a register array element.
    Registers can be used to query or update the memory content of the peripheral.
    """

    def __init__(
        self,
        element: RegisterElement,
        instance: ElementInstance,
        parent: _RegisterContainer,
        context: ParseContext,
        options: Options,
        memory_offset: int,
    ) -> None:
        """
        :param element: SVD register element, with any 'derivedFrom' already merged in.
        :param instance: Name, description and offset of this instance of the element.
        :param parent: Peripheral or cluster containing the register.
        :param context: Registries of the current parse.
        :param options: Parsing options.
        :param memory_offset: Offset of the parent relative to the peripheral.
        """
        super().__init__(instance.name, instance.description, parent)

        self._offset: int = instance.offset
        self._memory_offset: int = memory_offset + instance.offset
        self._reg_props: RegisterProperties = element.get_register_properties(
            parent.register_properties
        )
        self._derived_from: Optional[str] = element.resolved_from

        self._fields: List[Field] = _build_fields(
            self, element.fields, context, options
        )
        self._fields_by_name: Dict[str, Field] = {f.name: f for f in self._fields}

    @property
    def offset(self) -> int:
        """Address offset of the register, relative to its parent."""
        return self._offset

    @property
    def memory_offset(self) -> int:
        """Address offset of the register, relative to the peripheral."""
        return self._memory_offset

    @property
    def size(self) -> int:
        """Bit width of the register."""
        return self._reg_props.size

    @property
    def byte_size(self) -> int:
        """Number of bytes occupied by the register."""
        return max(math.ceil(self.size / 8), 1)

    @property
    def access(self) -> Access:
        """Register access."""
        return self._reg_props.access

    @property
    def reset_value(self) -> int:
        """Register reset value."""
        return self._reg_props.reset_value

    @property
    def derived_from(self) -> Optional[str]:
        """Reference to the register that this register was derived from, if any."""
        return self._derived_from

    @property
    def fields(self) -> Sequence[Field]:
        """Fields of the register, in ascending bit offset order."""
        return tuple(self._fields)

    @property
    def children(self) -> Sequence[Field]:
        return tuple(self._fields)

    @property
    def peripheral(self) -> Peripheral:
        """Peripheral that the register belongs to."""
        node = self._parent
        while not isinstance(node, Peripheral):
            assert node is not None
            node = node.parent
        return node

    @property
    def content(self) -> int:
        """Current value of the register."""
        return self.peripheral.memory.at(self._memory_offset, self.byte_size)

    @content.setter
    def content(self, new_content: int) -> None:
        self.set_content(new_content)

    def set_content(self, new_content: int) -> None:
        """
        Set the value of the register.

        :param new_content: New value for the register.
        :raises SvdMemoryError: If the value does not fit in the register.
        """
        if new_content < 0 or new_content.bit_length() > self.size:
            raise SvdMemoryError(
                f"Value {hex(new_content)} is invalid for {self.size}-bit register {self.path}."
            )

        self.peripheral.memory.set_at(
            self._memory_offset, new_content, item_size=self.byte_size
        )

    @property
    def modified(self) -> bool:
        """True if the register contains a different value now than at reset."""
        return self.content != self.reset_value

    def extract_bits(self, offset: int, width: int) -> int:
        """:return: The value of a bit range in the current register value."""
        return bits.extract_bits(self.content, offset, width)

    def extract_bits_from_reset(self, offset: int, width: int) -> int:
        """:return: The value of a bit range in the register reset value."""
        return bits.extract_bits(self.reset_value, offset, width)

    def update_bits(self, offset: int, width: int, value: int) -> int:
        """
        Replace a bit range in the register value.

        :param offset: Bit offset of the range.
        :param width: Bit width of the range.
        :param value: New value of the range.
        :raises SvdMemoryError: If the value does not fit in the range.
        :return: The new register value.
        """
        new_content = bits.update_bits(self.content, width, offset, value)
        self.set_content(new_content)
        return new_content

    def formatted_value(self, number_format: Optional[NumberFormat] = None) -> str:
        """
        Format the current register value.
        Hexadecimal values are padded to the register size and binary values are grouped
        in nibbles.

        :param number_format: Format to use. If None, the effective format of the register is used.
        """
        resolved = bits.resolve_format(number_format or self.get_format(), self.size)
        value = self.content

        if resolved == NumberFormat.DECIMAL:
            return str(value)
        if resolved == NumberFormat.BINARY:
            return bits.binary_format(value, max(self.size, 1), group=True)
        return bits.hex_format(value, max(math.ceil(self.size / 4), 1))

    def _mark_addresses(self, parent_address: int) -> None:
        self._address = parent_address + self._offset

    def __getitem__(self, name: str) -> Field:
        """
        :param name: Field name.
        :raises SvdKeyError: if the field was not found.
        :return: The field with the given name.
        """
        try:
            return self._fields_by_name[name]
        except LookupError as e:
            raise SvdKeyError(name, self, "field not found") from e

    def __iter__(self) -> Iterator[str]:
        """:return: Iterator over the field names in the register."""
        return iter(self._fields_by_name)

    def __len__(self) -> int:
        """:return: Number of fields in the register."""
        return len(self._fields_by_name)

    def __repr__(self) -> str:
        """Short register description."""
        bool_props = ("modified",) if self.modified else ()

        return svd_element_repr(
            self.__class__,
            str(self.path),
            address=self._address,
            content=self.content,
            content_max_width=self.size,
            bool_props=bool_props,
        )


class Field(_Node):
    """
    Field instance.
    Fields can be used to query or update a bit range in the content of the parent register.
    """

    def __init__(
        self,
        instance: ElementInstance,
        width: int,
        access: Optional[Access],
        register: Register,
        enumeration: Optional[EnumerationMap] = None,
    ) -> None:
        """
        :param instance: Name, description and bit offset of this instance of the element.
        :param width: Bit width of the field.
        :param access: Access declared on the field element, if any.
        :param register: Register containing the field.
        :param enumeration: Enumerated values of the field, if any.
        """
        super().__init__(instance.name, instance.description, register)

        self._register: Register = register
        self._offset: int = instance.offset
        self._width: int = width
        self._access: Access = effective_access(access, register.access)
        self._enumeration: Optional[EnumerationMap] = enumeration

    @property
    def register(self) -> Register:
        """Register containing the field."""
        return self._register

    @property
    def offset(self) -> int:
        """Bit offset of the field."""
        return self._offset

    @property
    def width(self) -> int:
        """Bit width of the field."""
        return self._width

    @property
    def access(self) -> Access:
        """Effective access of the field."""
        return self._access

    @property
    def enumeration(self) -> Optional[EnumerationMap]:
        """Enumerated values of the field, indexed by value."""
        return self._enumeration

    @property
    def address(self) -> int:
        """Address of the register containing the field."""
        return self._register.address

    @property
    def children(self) -> Sequence[_Node]:
        return ()

    @property
    def mask(self) -> int:
        """Bitmask of the field."""
        return bits.bit_mask(self._offset, self._width)

    @property
    def bit_range_str(self) -> str:
        """Bit range of the field in the form "[msb:lsb]"."""
        return f"[{self._offset + self._width - 1}:{self._offset}]"

    @property
    def content(self) -> int:
        """Current value of the field."""
        return self._register.extract_bits(self._offset, self._width)

    @content.setter
    def content(self, new_content: Union[int, str]) -> None:
        self.update(new_content)

    @property
    def reset_content(self) -> int:
        """Value of the field at reset."""
        return self._register.extract_bits_from_reset(self._offset, self._width)

    @property
    def enum_values(self) -> Mapping[str, int]:
        """Mapping from enumerated value name to value. Empty if the field has no enumeration."""
        if self._enumeration is None:
            return {}
        return {e.name: e.value for e in self._enumeration.values()}

    def enumeration_name(self, value: int) -> Optional[str]:
        """:return: Name of the enumerated value with the given value, if any."""
        if self._enumeration is None:
            return None
        entry = self._enumeration.get(value, None)
        return entry.name if entry is not None else None

    def parse_value(self, text: str) -> int:
        """
        Convert user input to a field value.

        :param text: Name of an enumerated value, or an integer literal.
        :raises SvdMemoryError: If the text is neither.
        :return: The field value.
        """
        enum_values = self.enum_values
        if text in enum_values:
            return enum_values[text]

        value = to_int(text)
        if value is None:
            raise SvdMemoryError(
                f"'{text}' is not a valid value for field {self.path}"
                + (
                    f", expected one of {', '.join(enum_values)} or a number"
                    if enum_values
                    else ", expected a number"
                )
            )
        return value

    def update(self, value: Union[int, str]) -> int:
        """
        Write a new value to the field.

        :param value: New field value, or the name of an enumerated value.
        :raises SvdMemoryError: If the field is read-only or the value is invalid.
        :return: The new value of the register.
        """
        if self._access == Access.READ_ONLY:
            raise SvdMemoryError(f"Field {self.path} is read-only")

        if isinstance(value, str):
            if value not in self.enum_values:
                raise SvdMemoryError(
                    f"Field {self.path} has no enumerated value named '{value}'"
                )
            value = self.enum_values[value]

        return self._register.update_bits(self._offset, self._width, value)

    def format_value(
        self,
        value: int,
        number_format: Optional[NumberFormat] = None,
        include_enumeration: bool = True,
    ) -> str:
        """
        Format a field value for display.

        :param value: Field value.
        :param number_format: Format to use. If None, the effective format of the field is used.
        :param include_enumeration: Prefix the value with its enumerated value name.
        :return: The formatted value.
        """
        if self._access == Access.WRITE_ONLY:
            return WRITE_ONLY_TEXT

        formatted = bits.format_number(
            value, self._width, number_format or self.get_format()
        )

        if include_enumeration and self._enumeration is not None:
            label = self.enumeration_name(value) or UNKNOWN_ENUMERATION_TEXT
            return f"{label} ({formatted})"

        return formatted

    @property
    def formatted_value(self) -> str:
        """Current value of the field, formatted for display."""
        return self.format_value(self.content)

    def copy_value(self) -> str:
        """:return: Current value of the field in the effective format, without enumeration."""
        return bits.format_number(self.content, self._width, self.get_format())

    def __repr__(self) -> str:
        """Short field description."""
        return svd_element_repr(
            self.__class__,
            str(self.path),
            content=self.content,
            content_max_width=self._width,
            kv_props={"bits": self.bit_range_str},
        )


def _build_children(
    parent: _RegisterContainer,
    registers: List[RegisterElement],
    clusters: List[ClusterElement],
    reg_props: RegisterProperties,
    context: ParseContext,
    options: Options,
    memory_offset: int,
) -> List[RegisterUnion]:
    """
    Build the registers and clusters of a peripheral or cluster, sorted by offset.

    :param parent: The peripheral or cluster.
    :param registers: Register elements of the parent.
    :param clusters: Cluster elements of the parent.
    :param reg_props: Register properties of the parent.
    :param context: Registries of the current parse.
    :param options: Parsing options.
    :param memory_offset: Offset of the parent relative to the peripheral.
    """
    children: List[RegisterUnion] = []

    resolved_registers = context.resolve_registers(
        [r.raw for r in registers], parent.name
    )

    for raw in resolved_registers:
        element = RegisterElement(raw)
        for instance in expand_element(element, _element_offset(element)):
            children.append(
                Register(
                    element,
                    instance,
                    parent=parent,
                    context=context,
                    options=options,
                    memory_offset=memory_offset,
                )
            )

    for cluster_element in clusters:
        for instance in expand_element(cluster_element, _element_offset(cluster_element)):
            cluster = Cluster(
                cluster_element,
                instance,
                parent=parent,
                context=context,
                options=options,
                memory_offset=memory_offset,
            )
            if options.drop_empty_clusters and not cluster.is_array_member and not cluster:
                svdtree.log.info(f"Dropping empty cluster {cluster.path}")
                continue
            children.append(cluster)

    children.sort(key=lambda c: c.offset)

    return children


def _to_node_path(path: PathLike) -> Optional[NodePath]:
    try:
        return NodePath(path)
    except ValueError:
        svdtree.log.debug(f"Invalid node path {path!r}")
        return None


def _element_offset(element: Union[RegisterElement, ClusterElement]) -> int:
    offset = element.offset
    if offset is None:
        svdtree.log.warning(
            f"{element!r} has a missing or invalid addressOffset, using 0"
        )
        return 0
    return offset


def _build_fields(
    register: Register,
    elements: List[FieldElement],
    context: ParseContext,
    options: Options,
) -> List[Field]:
    """Build the fields of a register, sorted by bit offset."""
    fields: List[Field] = []

    for element in elements:
        bit_range = element.bit_range
        if bit_range.width < 1:
            svdtree.log.warning(
                f"{element!r} in register {register.path} has bit width {bit_range.width}"
            )

        enumeration = _build_enumeration(element, register, context, options)

        for instance in expand_element(element, bit_range.offset):
            fields.append(
                Field(
                    instance,
                    width=bit_range.width,
                    access=element.access,
                    register=register,
                    enumeration=enumeration,
                )
            )

    fields.sort(key=lambda f: f.offset)

    return fields


def _build_enumeration(
    element: FieldElement,
    register: Register,
    context: ParseContext,
    options: Options,
) -> Optional[EnumerationMap]:
    """
    Build the enumeration of a field, or find the enumeration it is derived from.
    Named enumerations are registered in the parse context so that later fields can derive
    from them.

    :param element: SVD field element.
    :param register: Register containing the field.
    :param context: Registries of the current parse.
    :param options: Parsing options.
    :raises SvdDefinitionError: If the enumeration is derived from an unknown enumeration.
    :return: The enumeration map, or None if the field has no enumeration.
    """
    enumeration_element = element.enumeration
    if enumeration_element is None:
        return None

    if (derived_from := enumeration_element.derived_from) is not None:
        found = context.find_enumeration(derived_from)
        if found is None:
            raise SvdDefinitionError(
                [element, enumeration_element],
                f"Invalid derivedFrom '{derived_from}' for the enumeratedValues of field "
                f"'{element.name}'",
            )
        return found

    values: Dict[int, EnumeratedValue] = {}
    for value_element in enumeration_element.enumerated_values:
        value = value_element.value
        if value is None or (value == 0 and not options.keep_zero_enumerated_values):
            svdtree.log.debug(
                f"Skipping {value_element!r} of field '{element.name}' with value "
                f"{value_element.value_text!r}"
            )
            continue
        values[value] = EnumeratedValue(
            value_element.name, value_element.description, value
        )

    enumeration: EnumerationMap = MappingProxyType(values)

    if enumeration_element.name:
        scopes = [element.name or "", register.name]
        if register.parent is not None:
            scopes.append(register.parent.name)
        context.add_enumeration(enumeration_element.name, scopes, enumeration)

    return enumeration
