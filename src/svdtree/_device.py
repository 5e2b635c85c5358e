# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Various internal functionality used by the device module.
"""

from __future__ import annotations

from collections import defaultdict
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Union,
)

import svdtree

from ._bindings import ATTRIBUTES_KEY
from .bindings import (
    RESOLVED_FROM_ATTR,
    ClusterElement,
    FieldElement,
    PeripheralElement,
    RegisterElement,
)
from .errors import SvdDefinitionError

if TYPE_CHECKING:
    from .device import EnumerationMap

# Raw element mapping in the descriptor.
RawElement = Mapping[str, Any]


def merge_derived(base: RawElement, element: RawElement) -> Dict[str, Any]:
    """
    Merge a derived element with its base element.
    Children present on the derived element replace the same children of the base element;
    there is no deep merge.
    """
    return {**base, **element}


def resolve_derived_peripherals(
    fragments: Mapping[str, RawElement], transitive: bool = True
) -> Dict[str, RawElement]:
    """
    Replace every peripheral fragment that declares 'derivedFrom' with the merge of the fragment
    and its base fragment.

    :param fragments: Peripheral fragments, indexed by name.
    :param transitive: If True, fragments are merged in topological order so that chains of
                       derivations are fully resolved. If False, a single pass is made over the
                       fragments in their original order.
    :raises SvdDefinitionError: If the derivations contain a cycle.
    :return: Resolved fragments, indexed by name, in the original order.
    """
    resolved: Dict[str, RawElement] = dict(fragments)

    if not transitive:
        for name, fragment in fragments.items():
            base_name = PeripheralElement(fragment).derived_from
            if base_name is None:
                continue
            if base_name not in resolved:
                _log_missing_base(name, base_name)
                continue
            resolved[name] = merge_derived(resolved[base_name], fragment)
        return resolved

    for name in topo_sort_derived_peripherals(fragments):
        fragment = fragments[name]
        base_name = PeripheralElement(fragment).derived_from
        if base_name is None:
            continue
        if base_name not in fragments:
            _log_missing_base(name, base_name)
            continue
        resolved[name] = merge_derived(resolved[base_name], fragment)

    return resolved


def topo_sort_derived_peripherals(fragments: Mapping[str, RawElement]) -> List[str]:
    """
    Topologically sort the peripherals based on 'derivedFrom' attributes using Kahn's algorithm.
    The returned list has the property that the peripheral at index i does not derive from
    any of the peripherals at indices (i + 1)...
    Peripherals deriving from a nonexistent peripheral are treated as not derived.

    :param fragments: Peripheral fragments, indexed by name.
    :raises SvdDefinitionError: If the derivations contain a cycle.
    :return: Names of the peripherals, topologically sorted.
    """
    sorted_names: List[str] = []
    no_dep_names: List[str] = []
    dep_graph: Dict[str, List[str]] = defaultdict(list)

    for name, fragment in fragments.items():
        base_name = PeripheralElement(fragment).derived_from
        if base_name is not None and base_name in fragments and base_name != name:
            dep_graph[base_name].append(name)
        elif base_name == name:
            dep_graph[name].append(name)
        else:
            no_dep_names.append(name)

    # Process in reverse so that names without dependencies keep their original order
    no_dep_names.reverse()

    while no_dep_names:
        name = no_dep_names.pop()
        sorted_names.append(name)
        # Each peripheral has a maximum of one in-edge since they can only derive from one
        # peripheral. Therefore, once they are encountered here they have no remaining dependencies.
        no_dep_names.extend(reversed(dep_graph.pop(name, [])))

    if dep_graph:
        cyclic = sorted(set(n for names in dep_graph.values() for n in names))
        raise SvdDefinitionError(
            [PeripheralElement(fragments[n]) for n in cyclic],
            "Unable to determine order in which peripherals are derived. "
            "The 'derivedFrom' attributes of the peripherals form a cycle.",
        )

    return sorted_names


def _log_missing_base(name: str, base_name: str) -> None:
    svdtree.log.warning(
        f"Peripheral '{name}' is derived from '{base_name}', which does not exist. "
        "Using the peripheral as is."
    )


class ParseContext:
    """
    Qualified name registries used while building a device.
    A new context is created for every parse, so no state is shared between parses.
    """

    def __init__(self) -> None:
        # Enumeration maps, indexed by bare and scope qualified names.
        self._enumerations: Dict[str, EnumerationMap] = {}
        # Raw register elements, indexed by "<parent>.<register>".
        self._registers: Dict[str, RawElement] = {}

    def add_enumeration(
        self, name: str, scopes: Iterable[str], enumeration: EnumerationMap
    ) -> None:
        """
        Register an enumeration map under its bare name and under each successively more
        qualified name built from the given scopes, innermost scope first.
        An existing map registered under the same key is replaced.

        :param name: Name of the enumeration.
        :param scopes: Enclosing element names, e.g. field, register, peripheral.
        :param enumeration: The enumeration map.
        """
        qualified_name = name
        self._enumerations[qualified_name] = enumeration
        for scope in scopes:
            qualified_name = f"{scope}.{qualified_name}"
            self._enumerations[qualified_name] = enumeration

    def find_enumeration(self, name: str) -> Optional[EnumerationMap]:
        """:return: The enumeration map registered under the given name, if any."""
        return self._enumerations.get(name, None)

    def resolve_registers(
        self, elements: Iterable[RawElement], parent_name: str
    ) -> List[RawElement]:
        """
        Resolve the 'derivedFrom' attributes of the registers in a parent element.
        References are looked up among the registers of the same parent first, including
        registers defined later in the parent, and then among the qualified names of every
        register seen so far.

        :param elements: Raw register elements in the parent.
        :param parent_name: Name of the parent peripheral or cluster.
        :raises SvdDefinitionError: If a reference cannot be resolved.
        :return: Raw register elements with the derivations merged in.
        """
        registers = list(elements)
        local_registers: Dict[str, RawElement] = {}

        for raw in registers:
            name = RegisterElement(raw).name
            local_registers[str(name)] = raw
            self._registers[f"{parent_name}.{name}"] = raw

        for i, raw in enumerate(registers):
            element = RegisterElement(raw)
            derived_from = element.derived_from
            if derived_from is None:
                continue

            base = local_registers.get(derived_from, None)
            if base is None:
                base = self._registers.get(derived_from, None)
            if base is None:
                raise SvdDefinitionError(
                    [element],
                    f"Invalid 'derivedFrom' \"{derived_from}\" for register \"{element.name}\"",
                )

            combined = merge_derived(base, raw)
            attributes = dict(raw.get(ATTRIBUTES_KEY, None) or {})
            del attributes["derivedFrom"]
            attributes[RESOLVED_FROM_ATTR] = derived_from
            combined[ATTRIBUTES_KEY] = attributes

            local_registers[str(element.name)] = combined
            self._registers[f"{parent_name}.{element.name}"] = combined
            registers[i] = combined

        return registers


class ElementInstance(NamedTuple):
    """A concrete instance of a possibly repeated element."""

    name: str
    description: str
    offset: int


def expand_element(
    element: Union[FieldElement, RegisterElement, ClusterElement], base_offset: int
) -> List[ElementInstance]:
    """
    Expand an element into its instances.
    An element with dimensions yields one instance per index, with "%s" in the name and
    description replaced by the index label and the offset incremented by the dimension step.
    Other elements yield a single instance.

    :param element: Element to expand.
    :param base_offset: Offset of the element (bit offset for fields).
    :raises SvdDefinitionError: If the dimensions of the element are invalid.
    :return: The element instances, in index order.
    """
    name = element.name or ""
    description = element.description
    dimensions = element.dimensions

    if dimensions is None:
        return [ElementInstance(name, description, base_offset)]

    if dimensions.length == 0:
        svdtree.log.warning(
            f"{element!r} has an invalid dim value and produces no elements"
        )
        return []

    return [
        ElementInstance(
            name.replace("%s", index),
            description.replace("%s", index),
            offset,
        )
        for index, offset in zip(dimensions.indices, dimensions.offsets(base_offset))
    ]


def svd_element_repr(
    klass: type,
    name: str,
    /,
    *,
    address: Optional[int] = None,
    content: Optional[int] = None,
    content_max_width: int = 32,
    bool_props: Iterable[Any] = (),
    kv_props: Mapping[Any, Any] = MappingProxyType({}),
) -> str:
    """
    Common pretty print function for SVD elements.

    :param klass: Class of the element.
    :param name: Name of the element.
    :param address: Address of the element.
    :param content: Content of the element.
    :param content_max_width: Available width of the element, used to zero-pad the value.
    :param bool_props: Additional arguments to include in the pretty print.
    :param kv_props: Additional keyword arguments to include in the pretty print.

    :return: Pretty printed string representing the element.
    """

    address_str: str = f" @ 0x{address:08x}" if address is not None else ""
    value_str: str

    if content is not None:
        leading_zeros: str = "0" * max((content_max_width - content.bit_length()) // 4, 0)
        value_str = f" = 0x{leading_zeros}{content:x}"
    else:
        value_str = ""

    if bool_props or kv_props:
        bool_props_str: str = (
            f"{', '.join(f'{v!s}' for v in bool_props)}" if bool_props else ""
        )
        kv_props_str: str = (
            f"{', '.join(f'{k}: {v!s}' for k, v in kv_props.items())}"
            if kv_props
            else ""
        )
        separator = ", " if bool_props and kv_props else ""
        props_str = f" ({bool_props_str}{separator}{kv_props_str})"
    else:
        props_str = ""

    return f"[{name}{address_str}{value_str}{props_str} {{{klass.__name__}}}]"
