# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
High level representation of a device described by a SVD file.

The representation is a plain tree of peripherals, clusters, registers and fields.
References between elements ('derivedFrom' and the 'alternate*' elements) are kept by name,
exactly as they appear in the SVD file, and are only resolved when the tree is processed.
The tree can be edited freely before it is handed to a generator, which treats it as
read-only input from then on.
"""

from __future__ import annotations

import dataclasses as dc
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Union,
)

from typing_extensions import TypeGuard

from ._bindings import to_int
from ._device import lookup_path, node_repr
from .bindings import Access, BitRange, Dimensions
from .errors import (
    InvariantViolation,
    MissingAttribute,
    MissingBitRange,
    PathNotFound,
    SvdDefinitionError,
    UnresolvedAlias,
)
from .path import RegPath

# Node in a register tree: either a register or a cluster of further nodes
RegisterTree = Union["Register", "Cluster"]

_BIT_RANGE_PATTERN = re.compile(r"\[\s*(\w+)\s*:\s*(\w+)\s*\]")


def is_register(node: RegisterTree) -> TypeGuard[Register]:
    """True if the tree node is a register."""
    return isinstance(node, Register)


def is_cluster(node: RegisterTree) -> TypeGuard[Cluster]:
    """True if the tree node is a cluster."""
    return isinstance(node, Cluster)


def unwrap_register(node: RegisterTree) -> Register:
    """
    :raises InvariantViolation: If the node is not a register.
    :return: The node as a register.
    """
    if not is_register(node):
        raise InvariantViolation(f"Expected a register, got {node!r}")
    return node


def unwrap_cluster(node: RegisterTree) -> Cluster:
    """
    :raises InvariantViolation: If the node is not a cluster.
    :return: The node as a cluster.
    """
    if not is_cluster(node):
        raise InvariantViolation(f"Expected a cluster, got {node!r}")
    return node


def _node_children(node: RegisterTree) -> Optional[MutableMapping[str, RegisterTree]]:
    return node.registers if is_cluster(node) else None


@dataclass(eq=False, repr=False)
class Field:
    """Bit-field of a register."""

    # Name of the field, possibly containing a %s placeholder if the field is an array.
    name: str

    # Description of the field.
    description: str = ""

    # Dimensions of the field. The increment is given in bits.
    dimensions: Optional[Dimensions] = None

    # Bit range in the bitRangeOffsetWidthStyle style.
    bit_offset: Optional[int] = None
    bit_width: Optional[int] = None

    # Bit range in the bitRangeLsbMsbStyle style.
    lsb: Optional[int] = None
    msb: Optional[int] = None

    # Bit range in the "[msb:lsb]" bitRangePattern style.
    bit_range_pattern: Optional[str] = None

    # Access rights of the field, inherited from the register if not set.
    access: Optional[Access] = None

    # Generate a multi-bit interface for the field even if it is a single bit wide.
    force_bits: bool = False

    @property
    def bit_range(self) -> BitRange:
        """
        Bit range of the field, normalized from whichever style the field was described in.

        :raises MissingBitRange: If none of the bit range styles are fully specified.
        :raises SvdDefinitionError: If the bit range is inverted.
        """
        if self.bit_offset is not None and self.bit_width is not None:
            return BitRange(offset=self.bit_offset, width=self.bit_width)

        if self.lsb is not None and self.msb is not None:
            return self._lsb_msb_range(self.lsb, self.msb)

        if self.bit_range_pattern is not None:
            match = _BIT_RANGE_PATTERN.fullmatch(self.bit_range_pattern.strip())
            if match is None:
                raise SvdDefinitionError(
                    [self], f"Invalid bit range '{self.bit_range_pattern}'"
                )
            return self._lsb_msb_range(to_int(match[2]), to_int(match[1]))

        raise MissingBitRange(self)

    def _lsb_msb_range(self, lsb: int, msb: int) -> BitRange:
        if msb < lsb:
            raise SvdDefinitionError([self], f"msb {msb} is less than lsb {lsb}")
        return BitRange(offset=lsb, width=msb - lsb + 1)

    def __repr__(self) -> str:
        return node_repr(self)


@dataclass(eq=False, repr=False)
class Register:
    """Description of a register."""

    # Name of the register, possibly containing a %s placeholder if the register is an array.
    name: str

    # Address offset relative to the enclosing cluster or peripheral.
    address_offset: int = 0

    # Description of the register.
    description: str = ""

    # Dimensions of the register, if it is an array.
    dimensions: Optional[Dimensions] = None

    # Name of a register in the same scope that describes the same memory location.
    alternate_register: Optional[str] = None

    # Register properties. Unset values are inherited from the peripheral and device.
    size: Optional[int] = None
    reset_value: Optional[int] = None
    access: Optional[Access] = None

    # Fields of the register, in declaration order.
    fields: List[Field] = dc.field(default_factory=list)

    def field(self, name: str) -> Field:
        """
        :param name: Field name.
        :raises PathNotFound: If the register has no such field.
        :return: The field with the given name.
        """
        for field in self.fields:
            if field.name == name:
                return field
        raise PathNotFound(name, self, "no field with that name")

    def add_field(self, field: Field) -> Field:
        """Append a field to the register."""
        self.fields.append(field)
        return field

    def new_field(self, name: str, **kwargs: Any) -> Field:
        """Create a field from the given attributes and append it to the register."""
        return self.add_field(Field(name=name, **kwargs))

    def remove_field(self, name: str) -> Field:
        """
        :raises PathNotFound: If the register has no such field.
        :return: The removed field.
        """
        field = self.field(name)
        self.fields.remove(field)
        return field

    def resolve_size(
        self, device: Device, peripheral: Peripheral, parent: Optional[Peripheral]
    ) -> int:
        """
        Bit width of the register, falling back to the peripheral, base peripheral and device.

        :raises MissingAttribute: If no level specifies a size.
        """
        size = self._inherited("size", device, peripheral, parent)
        if size is None:
            raise MissingAttribute("size", self, peripheral)
        return size

    def resolve_reset_value(
        self, device: Device, peripheral: Peripheral, parent: Optional[Peripheral]
    ) -> int:
        """
        Reset value of the register, falling back to the peripheral, base peripheral and device.

        :raises MissingAttribute: If no level specifies a reset value.
        """
        reset_value = self._inherited("reset_value", device, peripheral, parent)
        if reset_value is None:
            raise MissingAttribute("reset value", self, peripheral)
        return reset_value

    def resolve_access(
        self,
        device: Device,
        peripheral: Peripheral,
        parent: Optional[Peripheral],
        unify_fields: bool = False,
    ) -> Optional[Access]:
        """
        Access rights of the register, falling back to the peripheral, base peripheral and device.

        :param unify_fields: If no level specifies the access, use the access of the fields
                             provided that all of them have the same access.
        :return: The resolved access, or None if it is undefined.
        """
        access = self._inherited("access", device, peripheral, parent)
        if access is not None or not unify_fields:
            return access

        field_access = {field.access for field in self.fields}
        if len(field_access) == 1:
            return field_access.pop()
        return None

    def _inherited(
        self,
        attr: str,
        device: Device,
        peripheral: Peripheral,
        parent: Optional[Peripheral],
    ) -> Any:
        for level in (self, peripheral, parent, device):
            if level is not None and (value := getattr(level, attr)) is not None:
                return value
        return None

    def __repr__(self) -> str:
        return node_repr(self, self.address_offset)


class _TreeOwner:
    """Editing functionality shared by the elements that contain a register tree."""

    registers: Dict[str, RegisterTree]

    def reg(self, path: Union[str, RegPath]) -> Register:
        """
        :param path: Dotted path to the register, e.g. "CLUSTER.REGISTER".
        :raises PathNotFound: If there is no register at the path.
        :return: The register at the given path.
        """
        reg_path = RegPath(path)
        _, node = lookup_path(self.registers, reg_path, self, _node_children)
        if not is_register(node):
            raise PathNotFound(str(reg_path), self, "element is a cluster")
        return node

    def cluster(self, path: Union[str, RegPath]) -> Cluster:
        """
        :param path: Dotted path to the cluster.
        :raises PathNotFound: If there is no cluster at the path.
        :return: The cluster at the given path.
        """
        reg_path = RegPath(path)
        _, node = lookup_path(self.registers, reg_path, self, _node_children)
        if not is_cluster(node):
            raise PathNotFound(str(reg_path), self, "element is a register")
        return node

    def add_reg(self, node: RegisterTree) -> RegisterTree:
        """Add a register or cluster at the top level, replacing any element with the same name."""
        self.registers[node.name] = node
        return node

    def new_reg(self, name: str, **kwargs: Any) -> Register:
        """Create a register from the given attributes and add it at the top level."""
        register = Register(name=name, **kwargs)
        self.add_reg(register)
        return register

    def new_cluster(self, name: str, **kwargs: Any) -> Cluster:
        """Create a cluster from the given attributes and add it at the top level."""
        cluster = Cluster(name=name, **kwargs)
        self.add_reg(cluster)
        return cluster

    def remove_reg(self, path: Union[str, RegPath]) -> Register:
        """
        :param path: Dotted path to the register.
        :raises PathNotFound: If there is no register at the path.
        :return: The removed register.
        """
        reg_path = RegPath(path)
        container, node = lookup_path(self.registers, reg_path, self, _node_children)
        if not is_register(node):
            raise PathNotFound(str(reg_path), self, "element is a cluster")
        del container[reg_path.name]
        return node


@dataclass(eq=False, repr=False)
class Cluster(_TreeOwner):
    """Group of registers and clusters at a common address offset."""

    # Name of the cluster, possibly containing a %s placeholder if the cluster is an array.
    name: str

    # Address offset relative to the enclosing cluster or peripheral.
    address_offset: int = 0

    # Description of the cluster.
    description: str = ""

    # Dimensions of the cluster, if it is an array.
    dimensions: Optional[Dimensions] = None

    # Name of a cluster in the same scope that describes the same memory locations.
    alternate_cluster: Optional[str] = None

    # Child registers and clusters, indexed by name, in declaration order.
    registers: Dict[str, RegisterTree] = dc.field(default_factory=dict)

    def __repr__(self) -> str:
        return node_repr(self, self.address_offset)


@dataclass(frozen=True)
class Interrupt:
    """Interrupt associated with a peripheral."""

    name: str
    description: str
    value: int


@dataclass(eq=False, repr=False)
class Peripheral(_TreeOwner):
    """Representation of a specific device peripheral."""

    # Name of the peripheral, possibly containing a %s placeholder if it is an array.
    name: str

    # Lowest address reserved or used by the peripheral.
    base_address: int = 0

    # Name of the peripheral that this peripheral inherits registers and defaults from.
    derived_from: Optional[str] = None

    # Dimensions of the peripheral, if it is an array.
    dimensions: Optional[Dimensions] = None

    # Description of the peripheral.
    description: Optional[str] = None

    # Name of a peripheral that describes the same address block.
    alternate_peripheral: Optional[str] = None

    # Default register properties for registers in the peripheral.
    size: Optional[int] = None
    reset_value: Optional[int] = None
    access: Optional[Access] = None

    # Interrupts associated with the peripheral.
    interrupts: List[Interrupt] = dc.field(default_factory=list)

    # Top level registers and clusters, indexed by name, in declaration order.
    registers: Dict[str, RegisterTree] = dc.field(default_factory=dict)

    def derived_from_peripheral(self, device: Device) -> Optional[Peripheral]:
        """
        Get the peripheral that this peripheral is derived from.
        Only a single level of derivation is supported.

        :raises UnresolvedAlias: If the base peripheral does not exist, or is itself derived.
        :return: The base peripheral, or None if the peripheral is not derived.
        """
        if self.derived_from is None:
            return None

        parent = device.peripherals.get(self.derived_from)
        if parent is None:
            raise UnresolvedAlias(self.derived_from, "peripheral", self, "derivedFrom")

        if parent.derived_from is not None:
            raise UnresolvedAlias(
                parent.derived_from,
                "peripheral",
                self,
                f"derivedFrom chain through {parent.name} is not supported",
            )

        return parent

    def resolve_description(self, parent: Optional[Peripheral]) -> Optional[str]:
        """Description of the peripheral, inherited from the base peripheral if not set."""
        if self.description is not None:
            return self.description
        return parent.description if parent is not None else None

    def __repr__(self) -> str:
        return node_repr(self, self.base_address)


class Device(Mapping[str, Peripheral]):
    """Representation of a SVD device."""

    def __init__(
        self,
        name: str,
        *,
        size: Optional[int] = None,
        reset_value: Optional[int] = None,
        access: Optional[Access] = None,
        peripherals: Iterable[Peripheral] = (),
    ) -> None:
        """
        :param name: Name of the device.
        :param size: Default register size.
        :param reset_value: Default register reset value.
        :param access: Default register access.
        :param peripherals: Peripherals in the device, in declaration order.
        """
        self.name: str = name
        self.size: Optional[int] = size
        self.reset_value: Optional[int] = reset_value
        self.access: Optional[Access] = access
        self._peripherals: Dict[str, Peripheral] = {}

        for peripheral in peripherals:
            self.add_periph(peripheral)

    @property
    def peripherals(self) -> Mapping[str, Peripheral]:
        """Map of peripherals in the device, indexed by name, in declaration order."""
        return MappingProxyType(self._peripherals)

    def periph_names(self) -> Iterator[str]:
        """:return: Iterator over the names of peripherals in the device."""
        return iter(self._peripherals)

    def periph(self, name: str) -> Peripheral:
        """
        :raises PathNotFound: If the peripheral was not found.
        :return: Peripheral with the given name.
        """
        try:
            return self._peripherals[name]
        except KeyError:
            raise PathNotFound(name, self, "peripheral not found") from None

    def add_periph(self, peripheral: Peripheral) -> Peripheral:
        """Add a peripheral, replacing any peripheral with the same name."""
        self._peripherals[peripheral.name] = peripheral
        return peripheral

    def new_periph(self, name: str, **kwargs: Any) -> Peripheral:
        """Create a peripheral from the given attributes and add it to the device."""
        return self.add_periph(Peripheral(name=name, **kwargs))

    def remove_periph(self, name: str) -> Peripheral:
        """
        :raises PathNotFound: If the peripheral was not found.
        :return: The removed peripheral.
        """
        peripheral = self.periph(name)
        del self._peripherals[name]
        return peripheral

    def normalize(self) -> None:
        """
        Re-key the peripheral map by the current name of each peripheral.
        This is needed after peripherals have been renamed through the editing API.
        """
        self._peripherals = {p.name: p for p in self._peripherals.values()}

    def __getitem__(self, name: str) -> Peripheral:
        return self._peripherals[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._peripherals)

    def __len__(self) -> int:
        return len(self._peripherals)

    def __repr__(self) -> str:
        return node_repr(self, peripherals=len(self))
