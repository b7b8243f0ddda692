# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Construction of a Device from a SVD file.
"""

from __future__ import annotations

from collections import defaultdict
from pathlib import Path
from time import perf_counter_ns
from typing import (
    Any,
    Dict,
    Mapping,
    Optional,
    Set,
    Tuple,
    Union,
)

import lxml.etree as ET
from lxml import objectify

import regbind

from . import bindings
from ._bindings import ElementRegistry
from .bindings import (
    ClusterElement,
    DeviceElement,
    Dimensions,
    FieldElement,
    PeripheralElement,
    RegisterElement,
)
from .device import Cluster, Device, Field, Interrupt, Peripheral, Register, RegisterTree
from .dimension import parse_dim_index
from .errors import SvdParseError


def parse(svd_path: Union[str, Path]) -> Device:
    """
    Parse a device described by a SVD file.

    :param svd_path: Path to the SVD file.

    :raises FileNotFoundError: If the SVD file does not exist.
    :raises SvdParseError: If an error occurred while parsing the SVD file.

    :return: Parsed `Device` representation of the SVD file.
    """
    svd_file = Path(svd_path)

    if not svd_file.is_file():
        raise FileNotFoundError(f"No such file: {svd_file.absolute()}")

    with open(svd_file, "rb") as f:
        data = f.read()

    return _parse(data, str(svd_file))


def parse_bytes(data: bytes) -> Device:
    """
    Parse a device from the contents of a SVD file.

    :param data: Contents of the SVD file.
    :raises SvdParseError: If an error occurred while parsing the SVD document.
    :return: Parsed `Device` representation of the SVD document.
    """
    return _parse(data, "<bytes>")


def _parse(data: bytes, source: str) -> Device:
    t_parse_start = perf_counter_ns()

    try:
        # Comments would otherwise show up as children of the objectified elements
        xml_parser = objectify.makeparser(remove_comments=True)
        xml_parser.set_element_class_lookup(_class_lookup(bindings.REGISTRY))

        xml_device = objectify.fromstring(data, parser=xml_parser)
        device = _make_device(xml_device)

    except Exception as e:
        raise SvdParseError(f"Error parsing SVD file {source}") from e

    t_parse = (perf_counter_ns() - t_parse_start) / 1_000_000
    regbind.log.debug(f"Parsed {source} in {t_parse:.1f} ms")

    return device


def _make_device(element: DeviceElement) -> Device:
    device = Device(
        element.name,
        size=element.size,
        reset_value=element.reset_value,
        access=element.access,
    )

    for peripheral in element.peripherals:
        device.add_periph(_make_peripheral(peripheral))

    return device


def _make_dimensions(
    element: Union[PeripheralElement, ClusterElement, RegisterElement, FieldElement]
) -> Optional[Dimensions]:
    if element.dim is None:
        return None

    dim_index = element.dim_index
    return Dimensions(
        length=element.dim,
        step=element.dim_increment if element.dim_increment is not None else 0,
        index=parse_dim_index(dim_index) if dim_index is not None else None,
    )


def _make_peripheral(element: PeripheralElement) -> Peripheral:
    return Peripheral(
        name=element.name,
        base_address=element.base_address,
        derived_from=element.derived_from,
        dimensions=_make_dimensions(element),
        description=element.description,
        alternate_peripheral=element.alternate_peripheral,
        size=element.size,
        reset_value=element.reset_value,
        access=element.access,
        interrupts=[
            Interrupt(i.name, i.description or "", i.value) for i in element.interrupts
        ],
        registers=_make_tree(element.registers),
    )


def _make_tree(elements: Any) -> Dict[str, RegisterTree]:
    tree: Dict[str, RegisterTree] = {}

    for element in elements:
        node: RegisterTree
        if isinstance(element, ClusterElement):
            node = Cluster(
                name=element.name,
                address_offset=element.offset,
                description=element.description or "",
                dimensions=_make_dimensions(element),
                alternate_cluster=element.alternate_cluster,
                registers=_make_tree(element.registers),
            )
        else:
            node = _make_register(element)
        tree[node.name] = node

    return tree


def _make_register(element: RegisterElement) -> Register:
    return Register(
        name=element.name,
        address_offset=element.offset,
        description=element.description or "",
        dimensions=_make_dimensions(element),
        alternate_register=element.alternate_register,
        size=element.size,
        reset_value=element.reset_value,
        access=element.access,
        fields=[_make_field(f) for f in element.fields],
    )


def _make_field(element: FieldElement) -> Field:
    return Field(
        name=element.name,
        description=element.description or "",
        dimensions=_make_dimensions(element),
        bit_offset=element.bit_offset,
        bit_width=element.bit_width,
        lsb=element.lsb,
        msb=element.msb,
        bit_range_pattern=element.bit_range,
        access=element.access,
    )


def _class_lookup(registry: ElementRegistry) -> ET.ElementNamespaceClassLookup:
    """
    Build the lxml element class lookup for the registered SVD element classes.

    Tags that always map to the same class are resolved by the namespace lookup alone. Tags
    whose class depends on context, such as <name> inside a <peripheral> versus a <field>, are
    resolved from the tag of the parent element.
    """
    by_tag: Dict[str, Set[type]] = defaultdict(set)
    by_parent: Dict[Tuple[str, str], type] = {}

    for element_class in registry.classes:
        by_tag[element_class.TAG].add(element_class)

        for child in registry.children(element_class).values():
            by_tag[child.name].add(child.element_class)
            key = (element_class.TAG, child.name)
            if by_parent.setdefault(key, child.element_class) is not child.element_class:
                raise RuntimeError(f"Conflicting element classes for <{key[1]}> in <{key[0]}>")

    lookup = ET.ElementNamespaceClassLookup(_ParentTagLookup(by_parent))
    namespace = lookup.get_namespace(None)

    for tag, classes in by_tag.items():
        if len(classes) == 1:
            namespace[tag] = next(iter(classes))

    return lookup


class _ParentTagLookup(ET.PythonElementClassLookup):
    """Fallback lookup keyed on (parent tag, tag)."""

    def __init__(self, table: Mapping[Tuple[str, str], type]) -> None:
        self._table = table

    def lookup(self, _document: Any, element: ET._Element) -> Optional[type]:
        parent = element.getparent()
        if parent is None:
            return None
        return self._table.get((parent.tag, element.tag))
