# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Functions for building descriptor mappings in tests.
"""

from typing import Any, Dict, Mapping, Optional, Sequence


def element(attrs: Optional[Mapping[str, str]] = None, **children: Any) -> Dict[str, Any]:
    """
    Build an element mapping. Lists are stored as is, mappings are wrapped in a list and other
    values are stored as a one-element list of strings. None values are left out.
    """
    raw: Dict[str, Any] = {}
    if attrs:
        raw["$"] = dict(attrs)
    for tag, value in children.items():
        if value is None:
            continue
        if isinstance(value, list):
            raw[tag] = value
        elif isinstance(value, Mapping):
            raw[tag] = [value]
        else:
            raw[tag] = [str(value)]
    return raw


def device(*peripherals: Mapping[str, Any], **props: Any) -> Dict[str, Any]:
    props.setdefault("name", "TESTDEV")
    return {"device": element(peripherals=element(peripheral=list(peripherals)), **props)}


def peripheral(
    name: str,
    base_address: Any = "0x40000000",
    registers: Sequence[Mapping[str, Any]] = (),
    clusters: Sequence[Mapping[str, Any]] = (),
    derived_from: Optional[str] = None,
    **props: Any,
) -> Dict[str, Any]:
    if registers or clusters:
        props["registers"] = element(register=list(registers), cluster=list(clusters))
    attrs = {"derivedFrom": derived_from} if derived_from else None
    return element(attrs, name=name, baseAddress=base_address, **props)


def cluster(
    name: str,
    offset: Any,
    registers: Sequence[Mapping[str, Any]] = (),
    clusters: Sequence[Mapping[str, Any]] = (),
    **props: Any,
) -> Dict[str, Any]:
    return element(
        name=name,
        addressOffset=offset,
        register=list(registers),
        cluster=list(clusters),
        **props,
    )


def register(
    name: str,
    offset: Any = None,
    fields: Sequence[Mapping[str, Any]] = (),
    derived_from: Optional[str] = None,
    **props: Any,
) -> Dict[str, Any]:
    if fields:
        props["fields"] = element(field=list(fields))
    attrs = {"derivedFrom": derived_from} if derived_from else None
    return element(attrs, name=name, addressOffset=offset, **props)


def field(name: str, **props: Any) -> Dict[str, Any]:
    return element(name=name, **props)


def enumeration(
    *values: Mapping[str, Any],
    name: Optional[str] = None,
    derived_from: Optional[str] = None,
) -> Dict[str, Any]:
    attrs = {"derivedFrom": derived_from} if derived_from else None
    return element(attrs, name=name, enumeratedValue=list(values))


def enum_value(name: str, value: Any, description: Optional[str] = None) -> Dict[str, Any]:
    return element(name=name, value=value, description=description)
