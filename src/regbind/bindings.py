# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
lxml.objectify element classes for the subset of the CMSIS-SVD format (schema v1.3.9) that is
read when generating register bindings, together with the small value types shared with the
device model.

The element classes are read-only views of the XML tree: each attribute is a binding to a child
element or XML attribute with the SVD name, converted to a Python value.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Optional, Union

from ._bindings import (
    Attr,
    Elem,
    ElementRegistry,
    SvdElement,
    SvdEnum,
    child_elements,
    enum_element,
    int_elem,
    text_elem,
)
from .errors import SvdDefinitionError

# Element classes that the parser installs in the lxml class lookup.
REGISTRY = ElementRegistry()
svd_element = REGISTRY.register


@enum.unique
class Access(SvdEnum):
    """Access rights of a register or field ("accessType" in the schema)."""

    READ_ONLY = "read-only"
    WRITE_ONLY = "write-only"
    READ_WRITE = "read-write"
    # Reads are permitted, only the first write after reset takes effect.
    READ_WRITE_ONCE = "read-writeOnce"

    @property
    def readable(self) -> bool:
        return self is not Access.WRITE_ONLY

    @property
    def writable(self) -> bool:
        return self is not Access.READ_ONLY


AccessElement = enum_element(Access)


class BitRange(NamedTuple):
    """Position of a field within its register, in bits."""

    offset: int
    width: int


@dataclass
class Dimensions:
    """
    Array properties of a repeated element.

    :param length: Number of instances.
    :param step: Address increment between consecutive instances.
    :param index: Labels of the instances, one per instance, if the element gives them.
    """

    length: int
    step: int
    index: Optional[List[str]] = None

    def __post_init__(self) -> None:
        if self.index is not None and len(self.index) != self.length:
            raise SvdDefinitionError(
                [self],
                f"dimIndex has {len(self.index)} labels, but dim is {self.length}",
            )

    def label(self, n: int) -> str:
        return self.index[n] if self.index is not None else str(n)


@svd_element
class InterruptElement(SvdElement):
    TAG: str = "interrupt"

    name: Elem[str] = text_elem("name")
    description: Elem[Optional[str]] = text_elem("description", default=None)
    value: Elem[int] = int_elem("value")


class _Repeatable(SvdElement):
    """Elements that may carry a 'dimElementGroup'."""

    dim: Elem[Optional[int]] = int_elem("dim", default=None)
    dim_increment: Elem[Optional[int]] = int_elem("dimIncrement", default=None)
    # Either a comma separated list or a numeric/alphabetic range such as "0-3"
    dim_index: Elem[Optional[str]] = text_elem("dimIndex", default=None)


class _WithRegisterDefaults(SvdElement):
    """Elements that may carry a 'registerPropertiesGroup', inherited by nested registers."""

    size: Elem[Optional[int]] = int_elem("size", default=None)
    access: Elem[Optional[Access]] = Elem("access", AccessElement, default=None)
    reset_value: Elem[Optional[int]] = int_elem("resetValue", default=None)


@svd_element
class FieldElement(_Repeatable):
    """
    A bit field of a register.

    The position is given by exactly one of three alternatives: bitOffset with bitWidth,
    lsb with msb, or a bitRange string of the form "[msb:lsb]".
    """

    TAG: str = "field"

    name: Elem[str] = text_elem("name")
    description: Elem[Optional[str]] = text_elem("description", default=None)
    access: Elem[Optional[Access]] = Elem("access", AccessElement, default=None)
    bit_offset: Elem[Optional[int]] = int_elem("bitOffset", default=None)
    bit_width: Elem[Optional[int]] = int_elem("bitWidth", default=None)
    lsb: Elem[Optional[int]] = int_elem("lsb", default=None)
    msb: Elem[Optional[int]] = int_elem("msb", default=None)
    bit_range: Elem[Optional[str]] = text_elem("bitRange", default=None)


@svd_element
class FieldsElement(SvdElement):
    TAG: str = "fields"

    field: Elem[FieldElement] = Elem("field", FieldElement)


@svd_element
class RegisterElement(_Repeatable, _WithRegisterDefaults):
    TAG: str = "register"

    name: Elem[str] = text_elem("name")
    description: Elem[Optional[str]] = text_elem("description", default=None)
    alternate_register: Elem[Optional[str]] = text_elem("alternateRegister", default=None)
    offset: Elem[int] = int_elem("addressOffset")

    _fields: Elem[Optional[FieldsElement]] = Elem("fields", FieldsElement, default=None)

    @property
    def fields(self) -> Iterator[FieldElement]:
        return child_elements(self._fields, FieldElement.TAG)


@svd_element
class ClusterElement(_Repeatable):
    """A group of registers and nested clusters placed at an offset in the peripheral."""

    TAG: str = "cluster"

    name: Elem[str] = text_elem("name")
    description: Elem[Optional[str]] = text_elem("description", default=None)
    alternate_cluster: Elem[Optional[str]] = text_elem("alternateCluster", default=None)
    offset: Elem[int] = int_elem("addressOffset")

    @property
    def registers(self) -> Iterator[Union[RegisterElement, ClusterElement]]:
        """Direct register and cluster children, in document order."""
        return child_elements(self, RegisterElement.TAG, ClusterElement.TAG)


@svd_element
class RegistersElement(SvdElement):
    TAG: str = "registers"

    cluster: Elem[Optional[ClusterElement]] = Elem("cluster", ClusterElement, default=None)
    register: Elem[Optional[RegisterElement]] = Elem("register", RegisterElement, default=None)


@svd_element
class PeripheralElement(_Repeatable, _WithRegisterDefaults):
    TAG: str = "peripheral"

    # Peripheral whose registers and defaults are inherited, if any
    derived_from: Attr[Optional[str]] = Attr("derivedFrom", default=None)

    name: Elem[str] = text_elem("name")
    description: Elem[Optional[str]] = text_elem("description", default=None)
    alternate_peripheral: Elem[Optional[str]] = text_elem("alternatePeripheral", default=None)
    base_address: Elem[int] = int_elem("baseAddress")

    _registers: Elem[Optional[RegistersElement]] = Elem(
        "registers", RegistersElement, default=None
    )
    _interrupt: Elem[Optional[InterruptElement]] = Elem(
        "interrupt", InterruptElement, default=None
    )

    @property
    def interrupts(self) -> Iterator[InterruptElement]:
        return child_elements(self, InterruptElement.TAG)

    @property
    def registers(self) -> Iterator[Union[RegisterElement, ClusterElement]]:
        """Top level register and cluster children, in document order."""
        return child_elements(self._registers, RegisterElement.TAG, ClusterElement.TAG)


@svd_element
class PeripheralsElement(SvdElement):
    TAG: str = "peripherals"

    peripheral: Elem[Optional[PeripheralElement]] = Elem(
        "peripheral", PeripheralElement, default=None
    )


@svd_element
class DeviceElement(_WithRegisterDefaults):
    """Root of a SVD document. Its register properties are the defaults for the whole device."""

    TAG: str = "device"

    name: Elem[str] = text_elem("name")

    _peripherals: Elem[Optional[PeripheralsElement]] = Elem(
        "peripherals", PeripheralsElement, default=None
    )

    @property
    def peripherals(self) -> Iterator[PeripheralElement]:
        return child_elements(self._peripherals, PeripheralElement.TAG)
