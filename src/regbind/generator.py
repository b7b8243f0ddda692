# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Generation of register binding records from a device.

The Generator walks every register in the device, groups the register with all the locations
that describe the same memory, expands array dimensions, and produces one RegisterGroup per
concrete register instance. Output can be striped across a pool of independent generators, each
producing a disjoint part of the total output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    AbstractSet,
    Callable,
    Dict,
    Iterator,
    List,
    NamedTuple,
    Optional,
    Sequence,
    Set,
    Tuple,
)

import regbind

from .bindings import Access
from .device import Device, Field, Peripheral
from .dimension import dim_instance, dim_length
from .traverse import cluster_combinations, walk_peripheral
from .variant import Variant, VariantIndex, collect_variants, trace_variants

# Callback providing additional register traits.
# Called with the peripheral instance name, the register path segments and the register address.
RegisterTraitsCallback = Callable[[str, List[str], int], List[str]]

# Predicate deciding if a register is a core-level register.
# Called with the peripheral instance name and the register path segments.
CoreRegisterPredicate = Callable[[str, List[str]], bool]


@dataclass(frozen=True)
class Options:
    """Options to configure the generator."""

    # Names of peripherals that are skipped entirely.
    exclude_peripherals: AbstractSet[str] = frozenset()

    # 1-based number of the pool member that this generator produces output for.
    pool_number: int = 1

    # Number of pool members that the output is striped across.
    pool_size: int = 1

    # Infer the access of a register from its fields if the access is not given anywhere in the
    # register inheritance chain, provided that all the fields have the same access.
    unify_field_access: bool = False

    # Callback used to add custom traits to each register.
    register_traits: Optional[RegisterTraitsCallback] = None

    # Predicate splitting the register index into MCU-level and core-level registers.
    core_register: Optional[CoreRegisterPredicate] = None

    def __post_init__(self) -> None:
        if self.pool_size < 1:
            raise ValueError(f"Invalid pool size {self.pool_size}, must be at least 1")
        if not 1 <= self.pool_number <= self.pool_size:
            raise ValueError(
                f"Invalid pool number {self.pool_number}, must be in the range "
                f"[1, {self.pool_size}]"
            )
        # Accept any iterable of names, e.g. a list from a JSON override
        object.__setattr__(self, "exclude_peripherals", frozenset(self.exclude_peripherals))


@dataclass(frozen=True)
class FieldRecord:
    """Generated bit-field of a register instance."""

    name: str
    description: str
    offset: int
    width: int
    access: Optional[Access]
    traits: Tuple[str, ...]


@dataclass(frozen=True)
class RegisterRecord:
    """Generated register instance."""

    # Descriptions of the enclosing clusters and the register, outermost first.
    description: Tuple[str, ...]

    # Instance name of the peripheral containing the register.
    instance_name: str

    # Instance names of the enclosing clusters followed by the register instance name.
    path_segments: Tuple[str, ...]

    address: int
    size: int
    reset_value: int
    access: Optional[Access]
    traits: Tuple[str, ...]
    fields: Tuple[FieldRecord, ...]

    @property
    def name(self) -> str:
        """Flat name of the register, e.g. "CH_0_CTRL"."""
        return "_".join(self.path_segments)


@dataclass(frozen=True)
class RegisterGroup:
    """Register instances that describe the same memory, the first being the primary one."""

    records: Tuple[RegisterRecord, ...]


@dataclass(frozen=True)
class IndexEntry:
    """Entry in the register index."""

    peripheral_name: str
    path_segments: Tuple[str, ...]

    # True if the register is the primary member of its group.
    is_primary: bool

    # True if the register is a core-level register.
    is_core: bool = False


@dataclass(frozen=True)
class InterruptRecord:
    """Generated interrupt."""

    name: str
    description: str
    value: int


def register_access_traits(access: Optional[Access]) -> Tuple[str, ...]:
    """Register traits corresponding to an access type."""
    if access is None or (access.readable and access.writable):
        return ("RReg", "WReg")
    return ("RReg", "RoReg") if access.readable else ("WReg", "WoReg")


def field_access_traits(access: Optional[Access]) -> Tuple[str, ...]:
    """Field traits corresponding to an access type."""
    if access is None or (access.readable and access.writable):
        return ("RRRegField", "WWRegField")
    return ("RRRegField", "RoRRegField") if access.readable else ("WWRegField", "WoWRegField")


class _Instance(NamedTuple):
    # Position of the variant in its group
    position: int
    variant: Variant
    peripheral_name: str
    path_segments: Tuple[str, ...]
    address: int


class _Resolved(NamedTuple):
    description: Tuple[str, ...]
    size: int
    reset_value: int
    access: Optional[Access]


class Generator:
    """Register binding generator for a device."""

    def __init__(self, device: Device, options: Options = Options()) -> None:
        """
        Prepare a device for generation.
        The device is normalized and its aliases are traced, after which it must not be modified.

        :param device: Device to generate bindings for.
        :param options: Generator options.
        :raises UnresolvedAlias: If an alias in the device refers to an element that does not
                                 exist.
        """
        self._device = device
        self._options = options

        device.normalize()

        for name in sorted(options.exclude_peripherals - set(device.peripherals)):
            regbind.log.warning(f"Excluded peripheral {name} is not present in {device.name}")

        self._index: VariantIndex = trace_variants(device, options.exclude_peripherals)

    @property
    def device(self) -> Device:
        return self._device

    @property
    def options(self) -> Options:
        return self._options

    def register_groups(self) -> Iterator[RegisterGroup]:
        """
        Generate the register groups assigned to this pool member.

        Each register instance is generated exactly once, in the group of the first register
        that it is equivalent to.

        :raises MissingAttribute: If the size or reset value of a register can't be resolved.
        :raises UnresolvedAlias: If a 'derivedFrom' reference can't be resolved.
        :return: Iterator over register groups, in traversal order.
        """
        resolved: List[_Resolved] = []
        resolved_variants: Optional[List[Variant]] = None

        for stripe, variants, instances in self._unique_groups():
            # Resolution errors are raised by every pool member, not only the one owning the group
            if variants is not resolved_variants:
                resolved = [self._resolve(v) for v in variants]
                resolved_variants = variants

            if not instances or stripe != self._options.pool_number - 1:
                continue

            yield RegisterGroup(
                tuple(self._record(i, resolved[i.position]) for i in instances)
            )

    def register_index(self) -> Dict[str, Dict[Tuple[str, ...], bool]]:
        """
        Build the register index.
        The index is not striped, every pool member produces the complete index.

        :return: Map from peripheral instance names to maps from register path segments to
                 True if the register is the primary member of its group, in traversal order.
                 The primary member of a group is the first record of the corresponding
                 RegisterGroup.
        """
        index, _ = self._build_index()
        return index

    def index_entries(self) -> Iterator[IndexEntry]:
        """:return: Iterator over the register index as a flat list of entries."""
        core_register = self._options.core_register

        for peripheral_name, registers in self.register_index().items():
            for path_segments, is_primary in registers.items():
                is_core = core_register is not None and core_register(
                    peripheral_name, list(path_segments)
                )
                yield IndexEntry(peripheral_name, path_segments, is_primary, is_core)

    def peripheral_descriptions(self) -> Dict[str, Optional[str]]:
        """:return: Map from peripheral instance names in the index to their descriptions."""
        _, owners = self._build_index()

        descriptions = {}
        for instance_name, peripheral in owners.items():
            parent = peripheral.derived_from_peripheral(self._device)
            descriptions[instance_name] = peripheral.resolve_description(parent)

        return descriptions

    def interrupts(self) -> Iterator[InterruptRecord]:
        """
        Generate the interrupts of every peripheral in the device, including excluded ones.
        If several interrupts have the same name, only the first one is generated.
        """
        seen: Set[str] = set()

        for peripheral in self._device.peripherals.values():
            for interrupt in peripheral.interrupts:
                if interrupt.name in seen:
                    continue
                seen.add(interrupt.name)
                yield InterruptRecord(interrupt.name, interrupt.description, interrupt.value)

    def _included_peripherals(self) -> Iterator[Peripheral]:
        for name, peripheral in self._device.peripherals.items():
            if name not in self._options.exclude_peripherals:
                yield peripheral

    def _unique_groups(self) -> Iterator[Tuple[int, List[Variant], List[_Instance]]]:
        """
        Walk every register and expand it with its variants into groups of instances.
        Instances that were part of an earlier group are removed, which may leave a group empty.

        :return: Iterator over tuples of the stripe number of the group, the variants that the
                 group was expanded from, and the remaining instances in the group.
        """
        generated: Set[Tuple[str, Tuple[str, ...]]] = set()
        counter = 0

        for peripheral in self._included_peripherals():
            regbind.log.debug(f"Expanding registers of {peripheral.name}")

            parent = peripheral.derived_from_peripheral(self._device)

            for clusters, register in walk_peripheral(peripheral, parent):
                variants = collect_variants(
                    self._device, self._index, peripheral, parent, clusters, register
                )

                for group in self._instances(variants):
                    stripe = counter % self._options.pool_size
                    counter += 1

                    instances = []
                    for instance in group:
                        key = (instance.peripheral_name, instance.path_segments)
                        if key in generated:
                            continue
                        generated.add(key)
                        instances.append(instance)

                    yield stripe, variants, instances

    def _build_index(
        self,
    ) -> Tuple[Dict[str, Dict[Tuple[str, ...], bool]], Dict[str, Peripheral]]:
        index: Dict[str, Dict[Tuple[str, ...], bool]] = {}
        owners: Dict[str, Peripheral] = {}

        for _, _, instances in self._unique_groups():
            for n, instance in enumerate(instances):
                registers = index.setdefault(instance.peripheral_name, {})
                owners.setdefault(instance.peripheral_name, instance.variant.peripheral)
                registers[instance.path_segments] = n == 0

        return index, owners

    def _instances(self, variants: Sequence[Variant]) -> Iterator[List[_Instance]]:
        """
        Expand the peripheral, cluster and register dimensions of a set of variants.
        Peripheral instances are enumerated outermost and register instances innermost.
        Each yielded list contains the instances of the variants for one combination of indices.
        """
        peripheral_count = max(dim_length(v.peripheral.dimensions) for v in variants)
        register_count = max(dim_length(v.register.dimensions) for v in variants)

        for peripheral_n in range(peripheral_count):
            for combination in cluster_combinations(variants):
                for register_n in range(register_count):
                    group = []

                    for position, (variant, indices) in enumerate(zip(variants, combination)):
                        peripheral, clusters, register = variant
                        if (
                            indices is None
                            or peripheral_n >= dim_length(peripheral.dimensions)
                            or register_n >= dim_length(register.dimensions)
                        ):
                            continue

                        peripheral_name, address = dim_instance(
                            peripheral.name, peripheral.dimensions, peripheral_n
                        )
                        address += peripheral.base_address

                        path_segments = []
                        for cluster, cluster_n in zip(clusters, indices):
                            name, delta = dim_instance(cluster.name, cluster.dimensions, cluster_n)
                            path_segments.append(name)
                            address += cluster.address_offset + delta

                        name, delta = dim_instance(register.name, register.dimensions, register_n)
                        path_segments.append(name)
                        address += register.address_offset + delta

                        group.append(
                            _Instance(
                                position, variant, peripheral_name, tuple(path_segments), address
                            )
                        )

                    if group:
                        yield group

    def _resolve(self, variant: Variant) -> _Resolved:
        peripheral, clusters, register = variant
        parent = peripheral.derived_from_peripheral(self._device)

        description = tuple(
            d for d in (*(c.description for c in clusters), register.description) if d
        )

        return _Resolved(
            description=description,
            size=register.resolve_size(self._device, peripheral, parent),
            reset_value=register.resolve_reset_value(self._device, peripheral, parent),
            access=register.resolve_access(
                self._device,
                peripheral,
                parent,
                unify_fields=self._options.unify_field_access,
            ),
        )

    def _record(self, instance: _Instance, resolved: _Resolved) -> RegisterRecord:
        traits = list(register_access_traits(resolved.access))
        if self._options.register_traits is not None:
            traits.extend(
                self._options.register_traits(
                    instance.peripheral_name, list(instance.path_segments), instance.address
                )
            )

        fields: List[FieldRecord] = []
        for field in instance.variant.register.fields:
            fields.extend(_field_records(field, resolved.access))

        return RegisterRecord(
            description=resolved.description,
            instance_name=instance.peripheral_name,
            path_segments=instance.path_segments,
            address=instance.address,
            size=resolved.size,
            reset_value=resolved.reset_value,
            access=resolved.access,
            traits=tuple(traits),
            fields=tuple(fields),
        )


def _field_records(field: Field, register_access: Optional[Access]) -> Iterator[FieldRecord]:
    bit_range = field.bit_range
    access = field.access if field.access is not None else register_access

    traits = field_access_traits(access)
    if field.force_bits:
        traits = (*traits, "ForceBits")

    for n in range(dim_length(field.dimensions)):
        name, delta = dim_instance(field.name, field.dimensions, n)
        yield FieldRecord(
            name=name,
            description=field.description,
            offset=bit_range.offset + delta,
            width=bit_range.width,
            access=access,
            traits=traits,
        )
