# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Read-only Python representation of the SVD descriptor mapping. Each type of element in the
descriptor is represented by a class in this module. The class properties correspond more or less
directly to the SVD elements/attributes, with some abstractions and simplifications added for
convenience.

The descriptor mapping is the form produced by a structured-markup reader: every repeated element
is a list, attributes are stored under the "$" key and leaf text is a one-element list of strings.
"""

from __future__ import annotations

import enum
import re
import string
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

from ._bindings import (
    SELF_CLASS,
    Attr,
    CaseInsensitiveStrEnum,
    Child,
    Children,
    DescriptorElement,
    Elem,
    cleanup_description,
    to_int,
)
from .errors import SvdDefinitionError

# Attribute used to remember the reference of a register after its 'derivedFrom' is resolved.
RESOLVED_FROM_ATTR = "_derivedFrom"


@enum.unique
class Access(CaseInsensitiveStrEnum):
    """
    Access rights for a given peripheral, cluster, register or field.
    See "accessType" in the SVD schema.
    """

    # Read access is permitted. Write operations have an undefined result.
    READ_ONLY = "read-only"
    # Write access is permitted. Read operations have an undefined result.
    WRITE_ONLY = "write-only"
    # Read and write accesses are permitted.
    READ_WRITE = "read-write"


def to_access(value: str) -> Access:
    """
    Convert a SVD access string to an Access value.
    The write-once variants are folded into their closest equivalent, and unrecognized strings
    are treated as read-only.
    """
    text = value.strip().lower()
    if text in ("write-only", "writeonce"):
        return Access.WRITE_ONLY
    if text in ("read-write", "read-writeonce"):
        return Access.READ_WRITE
    return Access.READ_ONLY


def effective_access(declared: Optional[Access], parent: Access) -> Access:
    """
    Compute the access of an element from its own declared access and the access of its parent.
    A read-only or write-only parent restricts every child to the same access.
    """
    if declared is None:
        return parent
    if parent == Access.READ_ONLY and declared != Access.READ_ONLY:
        return Access.READ_ONLY
    if parent == Access.WRITE_ONLY and declared != Access.WRITE_ONLY:
        return Access.WRITE_ONLY
    return declared


@dataclass(frozen=True)
class RegisterProperties:
    """Effective register properties, either inherited or specified on the element itself."""

    # Size of the register in bits.
    size: int

    # Access rights of the register.
    access: Access

    # Reset value of the register.
    reset_value: int


# Properties used when the device element does not override them.
DEFAULT_REGISTER_PROPERTIES = RegisterProperties(
    size=32, access=Access.READ_WRITE, reset_value=0
)


class RegisterPropertiesGroupMixin(DescriptorElement):
    """Common functionality for elements that contain a SVD 'registerPropertiesGroup'."""

    def get_register_properties(
        self, base_props: RegisterProperties, restrict_access: bool = True
    ) -> RegisterProperties:
        """
        Get the register properties of the element, inheriting from a base set of properties.
        Unparseable values are treated as absent.

        :param base_props: Properties of the parent element.
        :param restrict_access: Apply the parent access restriction rule. If False, an access
                                declared on the element simply overrides the base access.
        """
        if restrict_access:
            access = effective_access(self._access, base_props.access)
        else:
            access = self._access if self._access is not None else base_props.access

        return RegisterProperties(
            size=self._size if self._size is not None else base_props.size,
            access=access,
            reset_value=(
                self._reset_value
                if self._reset_value is not None
                else base_props.reset_value
            ),
        )

    _size: Elem[Optional[int]] = Elem("size", converter=to_int, default=None)
    _access: Elem[Optional[Access]] = Elem("access", converter=to_access, default=None)
    _reset_value: Elem[Optional[int]] = Elem(
        "resetValue", converter=to_int, default=None
    )


class DerivedMixin(DescriptorElement):
    """Common functionality for elements that contain a SVD 'derivedFrom' attribute."""

    # Name of the element that this element is derived from.
    derived_from: Attr[Optional[str]] = Attr("derivedFrom", default=None)

    @property
    def is_derived(self) -> bool:
        """Return True if the element is derived from another element."""
        return self.derived_from is not None


class Dimensions(NamedTuple):
    """Dimensions of a repeated SVD element."""

    # Number of times the element is repeated.
    length: int

    # Increment between each element.
    step: int

    # Labels substituted for "%s" in the name of each element.
    indices: List[str]

    def offsets(self, base_offset: int) -> List[int]:
        """Convert to a list of offsets starting at the given base offset."""
        return [base_offset + self.step * i for i in range(self.length)]


def parse_dim_index(spec: str, count: int) -> List[str]:
    """
    Parse a 'dimIndex' specification into exactly count index labels.

    Supported formats are comma separated lists ("A,B,C"), numeric ranges ("3-6") and
    single letter ranges ("A-D"). Ranges must cover at least count labels.

    :param spec: The dimIndex text.
    :param count: Number of labels to produce ('dim').
    :raises ValueError: If the specification is malformed or too short.
    :return: List of index labels.
    """
    text = spec.strip()

    if "," in text:
        labels = [label.strip() for label in text.split(",")]
        if len(labels) != count:
            raise ValueError(
                f"dimIndex '{spec}' has {len(labels)} entries, expected {count}"
            )
        return labels

    if (match := re.fullmatch(r"([0-9]+)\s*-\s*([0-9]+)", text)) is not None:
        start, end = int(match[1]), int(match[2])
        if end - start + 1 < count:
            raise ValueError(f"dimIndex range '{spec}' is shorter than {count}")
        return [str(start + i) for i in range(count)]

    if (match := re.fullmatch(r"([A-Za-z])\s*-\s*([A-Za-z])", text)) is not None:
        start, end = ord(match[1]), ord(match[2])
        if end - start + 1 < count:
            raise ValueError(f"dimIndex range '{spec}' is shorter than {count}")
        labels = [chr(start + i) for i in range(count)]
        if any(label not in string.ascii_letters for label in labels):
            raise ValueError(f"dimIndex range '{spec}' is not a letter range")
        return labels

    if count == 1 and text:
        return [text]

    raise ValueError(f"Unrecognized dimIndex format '{spec}'")


class DimElementGroupMixin(DescriptorElement):
    """Common functionality for elements that contain a SVD 'dimElementGroup'."""

    # Raw index specification, if given.
    dim_index: Elem[Optional[str]] = Elem("dimIndex", default=None)

    @property
    def dimensions(self) -> Optional[Dimensions]:
        """
        Get the dimensions of the element, if it is repeated.

        :raises SvdDefinitionError: If 'dim' is given without 'dimIncrement' or if the
                                    'dimIndex' is malformed.
        """
        if not self.has("dim"):
            return None

        if not self.has("dimIncrement"):
            raise SvdDefinitionError(
                [self],
                f"{self.TAG} '{self._name_for_errors}' has a dim element, "
                "with no dimIncrement element.",
            )

        length = self._dim if self._dim is not None and self._dim > 0 else 0
        step = self._dim_increment if self._dim_increment is not None else 0

        if self.dim_index is not None and length > 0:
            try:
                indices = parse_dim_index(self.dim_index, length)
            except ValueError as e:
                raise SvdDefinitionError(
                    [self], f"Invalid dimIndex of {self.TAG} '{self._name_for_errors}': {e}"
                ) from e
        else:
            indices = [str(i) for i in range(length)]

        return Dimensions(length=length, step=step, indices=indices)

    @property
    def _name_for_errors(self) -> str:
        return getattr(self, "name", None) or "<unnamed>"

    _dim: Elem[Optional[int]] = Elem("dim", converter=to_int, default=None)
    _dim_increment: Elem[Optional[int]] = Elem(
        "dimIncrement", converter=to_int, default=None
    )


class EnumeratedValueElement(DescriptorElement):
    """Value definition for a field."""

    TAG: str = "enumeratedValue"

    # Name of the enumerated value.
    name: Elem[str] = Elem("name", default="")

    # Description of the enumerated value.
    description: Elem[str] = Elem(
        "description", converter=cleanup_description, default=""
    )

    # Value of the enumerated value, None if missing or not a plain integer literal.
    value: Elem[Optional[int]] = Elem("value", converter=to_int, default=None)

    # Raw text of the value.
    value_text: Elem[Optional[str]] = Elem("value", default=None)

    def __repr__(self) -> str:
        return super()._repr(props={"name": self.name})


class EnumerationElement(DerivedMixin):
    """Container for enumerated values."""

    TAG: str = "enumeratedValues"

    # Name of the enumeration.
    name: Elem[Optional[str]] = Elem("name", default=None)

    # Enumerated values.
    enumerated_values: Children[EnumeratedValueElement] = Children(
        "enumeratedValue", EnumeratedValueElement
    )

    def __repr__(self) -> str:
        return super()._repr(props={"name": self.name, "derived_from": self.derived_from})


class BitRange(NamedTuple):
    """Bit range of a field."""

    # Bit offset of the field.
    offset: int

    # Bit width of the field.
    width: int


class FieldElement(DimElementGroupMixin, DerivedMixin):
    """SVD field element."""

    TAG: str = "field"

    # Name of the field.
    name: Elem[Optional[str]] = Elem("name", default=None)

    # Description of the field.
    description: Elem[str] = Elem(
        "description", converter=cleanup_description, default=""
    )

    # Access rights declared on the field.
    access: Elem[Optional[Access]] = Elem("access", converter=to_access, default=None)

    # Permitted values of the field. Only the first enumeratedValues element is used.
    enumeration: Child[EnumerationElement] = Child(
        "enumeratedValues", EnumerationElement
    )

    @property
    def bit_range(self) -> BitRange:
        """
        Bit range of the field, normalized from one of the three SVD encodings.
        The encodings are tried in the order bitOffset/bitWidth, bitRange, msb/lsb.
        Unparseable numbers count as zero.

        :raises SvdDefinitionError: If the field uses none of the encodings.
        :return: Tuple of the field's bit offset and bit width.
        """
        if self.has("bitOffset") and self.has("bitWidth"):
            return BitRange(offset=self._bit_offset or 0, width=self._bit_width or 0)

        if self._bit_range is not None:
            range_parts = self._bit_range.strip()[1:-1].split(":")
            msb = to_int(range_parts[0]) or 0
            lsb = (to_int(range_parts[1]) if len(range_parts) > 1 else None) or 0
            return BitRange(offset=lsb, width=msb - lsb + 1)

        if self.has("msb") and self.has("lsb"):
            msb = self._msb or 0
            lsb = self._lsb or 0
            return BitRange(offset=lsb, width=msb - lsb + 1)

        raise SvdDefinitionError(
            [self],
            f"Field '{self._name_for_errors}' must have either bitOffset and bitWidth "
            "elements, a bitRange element, or msb and lsb elements.",
        )

    # (internal) Least significant bit of the field, if specified in the bitRangeLsbMsbStyle style.
    _lsb: Elem[Optional[int]] = Elem("lsb", converter=to_int, default=None)

    # (internal) Most significant bit of the field, if specified in the bitRangeLsbMsbStyle style.
    _msb: Elem[Optional[int]] = Elem("msb", converter=to_int, default=None)

    # (internal) Bit offset of the field, if specified in the bitRangeOffsetWidthStyle style.
    _bit_offset: Elem[Optional[int]] = Elem("bitOffset", converter=to_int, default=None)

    # (internal) Bit width of the field, if specified in the bitRangeOffsetWidthStyle style.
    _bit_width: Elem[Optional[int]] = Elem("bitWidth", converter=to_int, default=None)

    # (internal) Bit range of the field, given in the form "[msb:lsb]", if specified in the
    # bitRangePattern style.
    _bit_range: Elem[Optional[str]] = Elem("bitRange", default=None)

    def __repr__(self) -> str:
        return super()._repr(props={"name": self.name})


class FieldsElement(DescriptorElement):
    """Container for SVD field elements."""

    TAG: str = "fields"

    # Field elements.
    fields: Children[FieldElement] = Children("field", FieldElement)


class RegisterElement(
    DimElementGroupMixin,
    RegisterPropertiesGroupMixin,
    DerivedMixin,
):
    """SVD register element."""

    TAG: str = "register"

    # Name of the register.
    name: Elem[Optional[str]] = Elem("name", default=None)

    # Description of the register.
    description: Elem[str] = Elem(
        "description", converter=cleanup_description, default=""
    )

    # Address offset of the register, relative to the parent element.
    offset: Elem[Optional[int]] = Elem("addressOffset", converter=to_int, default=None)

    # Reference that the register was derived from, once the 'derivedFrom' is resolved.
    resolved_from: Attr[Optional[str]] = Attr(RESOLVED_FROM_ATTR, default=None)

    @property
    def fields(self) -> List[FieldElement]:
        """Fields of the register."""
        if self._fields is None:
            return []
        return self._fields.fields

    # (internal) Field container of the register.
    _fields: Child[FieldsElement] = Child("fields", FieldsElement)

    def __repr__(self) -> str:
        return super()._repr(props={"name": self.name, "derived_from": self.derived_from})


class ClusterElement(
    DimElementGroupMixin,
    RegisterPropertiesGroupMixin,
    DerivedMixin,
):
    """SVD cluster element."""

    TAG: str = "cluster"

    # Name of the cluster.
    name: Elem[Optional[str]] = Elem("name", default=None)

    # Description of the cluster.
    description: Elem[str] = Elem(
        "description", converter=cleanup_description, default=""
    )

    # Address offset of the cluster, relative to the parent element.
    offset: Elem[Optional[int]] = Elem("addressOffset", converter=to_int, default=None)

    # Register elements in the cluster.
    registers: Children[RegisterElement] = Children("register", RegisterElement)

    # Cluster elements nested in the cluster.
    clusters: Children[ClusterElement] = Children("cluster", SELF_CLASS)

    def __repr__(self) -> str:
        return super()._repr(props={"name": self.name})


class RegistersElement(DescriptorElement):
    """Container for SVD register/cluster elements."""

    TAG: str = "registers"

    # Register elements in the container.
    registers: Children[RegisterElement] = Children("register", RegisterElement)

    # Cluster elements in the container.
    clusters: Children[ClusterElement] = Children("cluster", ClusterElement)


class AddressBlockElement(DescriptorElement):
    """Address range mapped to a peripheral."""

    TAG: str = "addressBlock"

    # Start address of the address block, relative to the peripheral base address.
    offset: Elem[Optional[int]] = Elem("offset", converter=to_int, default=None)

    # Number of address unit bits covered by the address block.
    size: Elem[Optional[int]] = Elem("size", converter=to_int, default=None)


class PeripheralElement(RegisterPropertiesGroupMixin, DerivedMixin):
    """SVD peripheral element."""

    TAG: str = "peripheral"

    # Name of the peripheral.
    name: Elem[Optional[str]] = Elem("name", default=None)

    # Description of the peripheral.
    description: Elem[str] = Elem(
        "description", converter=cleanup_description, default=""
    )

    # Base address of the peripheral, None if missing or unparseable.
    base_address: Elem[Optional[int]] = Elem(
        "baseAddress", converter=to_int, default=None
    )

    # Name of the group that the peripheral belongs to.
    group_name: Elem[Optional[str]] = Elem("groupName", default=None)

    # Address blocks of the peripheral.
    address_blocks: Children[AddressBlockElement] = Children(
        "addressBlock", AddressBlockElement
    )

    @property
    def registers(self) -> List[RegisterElement]:
        """Registers that are direct children of this peripheral."""
        if self._registers is None:
            return []
        return self._registers.registers

    @property
    def clusters(self) -> List[ClusterElement]:
        """Clusters that are direct children of this peripheral."""
        if self._registers is None:
            return []
        return self._registers.clusters

    # (internal) Register/cluster container.
    _registers: Child[RegistersElement] = Child("registers", RegistersElement)

    def __repr__(self) -> str:
        return super()._repr(props={"name": self.name, "derived_from": self.derived_from})


class PeripheralsElement(DescriptorElement):
    """Container for SVD peripheral elements."""

    TAG: str = "peripherals"

    # Peripheral elements in the container.
    peripherals: Children[PeripheralElement] = Children("peripheral", PeripheralElement)


class DeviceElement(RegisterPropertiesGroupMixin):
    """SVD device element."""

    TAG: str = "device"

    # Name of the device.
    name: Elem[Optional[str]] = Elem("name", default=None)

    # Description of the device.
    description: Elem[str] = Elem(
        "description", converter=cleanup_description, default=""
    )

    @property
    def register_properties(self) -> RegisterProperties:
        """Default register properties of the device."""
        return self.get_register_properties(
            DEFAULT_REGISTER_PROPERTIES, restrict_access=False
        )

    @property
    def peripherals(self) -> List[PeripheralElement]:
        """
        Peripheral elements in the device.

        :raises SvdDefinitionError: If the device has no peripherals element.
        """
        if self._peripherals is None:
            raise SvdDefinitionError([self], "The device has no peripherals element.")
        return self._peripherals.peripherals

    # (internal) Peripheral container.
    _peripherals: Child[PeripheralsElement] = Child("peripherals", PeripheralsElement)

    def __repr__(self) -> str:
        return super()._repr(props={"name": self.name})
