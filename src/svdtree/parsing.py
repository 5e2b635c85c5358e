# Copyright (c) 2022 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from time import perf_counter_ns
from typing import Any, Dict, List, Mapping, Union

import lxml.etree as ET

import svdtree

from ._bindings import ATTRIBUTES_KEY, TEXT_KEY
from .bindings import DeviceElement
from .bits import NumberFormat
from .device import Device
from .errors import SvdDefinitionError, SvdParseError


@dataclass(frozen=True)
class Options:
    """Options to configure the SVD parsing behavior."""

    # Merge derived peripherals in dependency order, so that a peripheral derived from another
    # derived peripheral sees the fully merged base. If set to False, each 'derivedFrom' is applied
    # in a single pass over the peripherals in document order.
    resolve_derived_chains: bool = True

    # Display format used by elements that do not set a format of their own.
    default_format: NumberFormat = NumberFormat.AUTO

    # Remove clusters without dimensions that contain no registers or clusters.
    drop_empty_clusters: bool = True

    # Keep enumerated values with the value 0. By default they are skipped along with values
    # that cannot be parsed.
    keep_zero_enumerated_values: bool = False


def parse(svd_path: Union[str, Path], options: Options = Options()) -> Device:
    """
    Parse a device described by a SVD file.

    :param svd_path: Path to the SVD file.
    :param options: Parsing options.

    :raises FileNotFoundError: If the SVD file does not exist.
    :raises SvdParseError: If an error occurred while parsing the SVD file.

    :return: Parsed `Device` representation of the SVD file.
    """

    t_parse_start = perf_counter_ns()

    svd_file = Path(svd_path)

    if not svd_file.is_file():
        raise FileNotFoundError(f"No such file: {svd_file.absolute()}")

    try:
        descriptor = read_descriptor(svd_file)
        device = parse_descriptor(descriptor, options=options)

    except Exception as e:
        raise SvdParseError(f"Error parsing SVD file {svd_file}") from e

    t_parse = (perf_counter_ns() - t_parse_start) / 1_000_000
    svdtree.log.debug(f"Parsed {svd_file} in {t_parse:.2f} ms")

    return device


def parse_descriptor(
    data: Mapping[str, Any], options: Options = Options()
) -> Device:
    """
    Build a device from a descriptor mapping.

    :param data: Descriptor mapping with the device element under the "device" key.
    :param options: Parsing options.

    :raises SvdDefinitionError: If the descriptor does not describe a valid device.

    :return: The device.
    """
    device_raw = data.get("device", None) if isinstance(data, Mapping) else None

    if not isinstance(device_raw, Mapping):
        raise SvdDefinitionError([], "The descriptor has no device element.")

    return Device(DeviceElement(device_raw), options=options)


def read_descriptor(svd_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a SVD file into the descriptor mapping form.

    Every child element is stored in a list under its tag, attributes are stored under
    the "$" key and the text of a leaf element is stored as a string. The text of a leaf
    element that has attributes is stored under the "_" key.

    :param svd_path: Path to the SVD file.
    :return: Mapping with the root element under its tag.
    """
    # Note: remove comments as otherwise these are present as nodes in the returned XML tree
    xml_parser = ET.XMLParser(remove_comments=True, remove_pis=True)

    with open(svd_path, "rb") as f:
        root = ET.parse(f, parser=xml_parser).getroot()

    return {ET.QName(root).localname: _element_to_descriptor(root)}


def _element_to_descriptor(element: ET._Element) -> Any:
    """Convert an XML element to its descriptor mapping representation."""
    attributes = {ET.QName(k).localname: v for k, v in element.attrib.items()}
    children: List[ET._Element] = [c for c in element if isinstance(c.tag, str)]

    if not children:
        text = (element.text or "").strip()
        if not attributes:
            return text
        return {ATTRIBUTES_KEY: attributes, TEXT_KEY: text}

    result: Dict[str, Any] = {}
    if attributes:
        result[ATTRIBUTES_KEY] = attributes

    for child in children:
        tag = ET.QName(child).localname
        result.setdefault(tag, []).append(_element_to_descriptor(child))

    return result
