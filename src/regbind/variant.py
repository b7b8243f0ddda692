# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Discovery of register tree locations that describe the same memory.

Aliases are declared in the SVD file through the 'alternateRegister', 'alternateCluster' and
'alternatePeripheral' elements. The aliases are first traced into a VariantIndex, which is then
used to collect every location that is equivalent to a given register.
"""

from __future__ import annotations

from typing import (
    AbstractSet,
    Dict,
    Iterable,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
    Union,
)

import regbind

from .device import (
    Cluster,
    Device,
    Peripheral,
    Register,
    RegisterTree,
    is_cluster,
    is_register,
    unwrap_cluster,
    unwrap_register,
)
from .errors import UnresolvedAlias
from .traverse import ClusterPath, offset_sum, walk_peripheral, walk_tree

# Elements that can be aliased
Aliasable = Union[Peripheral, Cluster, Register]


class Variant(NamedTuple):
    """Location of a register, given by its peripheral and the clusters enclosing it."""

    peripheral: Peripheral
    clusters: ClusterPath
    register: Register


class VariantIndex:
    """
    Map from tree elements to the names of their aliases.
    Elements are keyed by identity, and the names refer to elements in the same scope as
    the element itself.
    """

    def __init__(self) -> None:
        self._variants: Dict[Aliasable, List[str]] = {}

    def variants(self, element: Aliasable) -> Sequence[str]:
        """:return: Names of the aliases of the element, in the order they were traced."""
        return tuple(self._variants.get(element, ()))

    def add(self, element: Aliasable, name: str) -> None:
        """Record name as an alias of element. Duplicate names are ignored."""
        names = self._variants.setdefault(element, [])
        if name not in names:
            names.append(name)

    def link(
        self,
        element: Union[Peripheral, Cluster],
        target: Union[Peripheral, Cluster],
        scope: Mapping[str, Union[Peripheral, RegisterTree]],
    ) -> None:
        """
        Make two elements aliases of each other, merging their existing alias groups so that
        every member of the resulting group is an alias of every other member.

        :param element: Element declaring the alias.
        :param target: Element referenced by the declaration.
        :param scope: Map used to look up elements by alias name.
        """
        group = [target, *(scope[n] for n in self.variants(target))]
        new = [element, *(scope[n] for n in self.variants(element))]

        for a in new:
            for b in group:
                if a is b:
                    continue
                self.add(a, b.name)
                self.add(b, a.name)

    def __len__(self) -> int:
        return len(self._variants)


def trace_variants(
    device: Device, exclude_peripherals: AbstractSet[str] = frozenset()
) -> VariantIndex:
    """
    Trace the aliases declared in a device.

    Register aliases are recorded on the referenced register only. Cluster and peripheral
    aliases are symmetric and transitive.

    :param device: Device to trace.
    :param exclude_peripherals: Names of peripherals to skip.
    :raises UnresolvedAlias: If an alias refers to an element that does not exist.
    :return: Index of the traced aliases.
    """
    index = VariantIndex()

    for name, peripheral in device.peripherals.items():
        if name in exclude_peripherals:
            continue

        _trace_tree(index, peripheral.registers, peripheral)

        alternate = peripheral.alternate_peripheral
        if alternate is None:
            continue

        target = device.peripherals.get(alternate)
        if target is None:
            raise UnresolvedAlias(alternate, "peripheral", peripheral, "alternatePeripheral")

        if alternate in exclude_peripherals:
            regbind.log.warning(
                f"{peripheral.name} is an alternate of the excluded peripheral {alternate}, "
                "ignoring the alias"
            )
            continue

        index.link(peripheral, target, device.peripherals)

    regbind.log.debug(f"Traced aliases of {len(index)} elements in {device.name}")

    return index


def _trace_tree(
    index: VariantIndex, tree: Mapping[str, RegisterTree], owner: Union[Peripheral, Cluster]
) -> None:
    for node in tree.values():
        if is_register(node):
            if node.alternate_register is not None:
                target = tree.get(node.alternate_register)
                if target is None:
                    raise UnresolvedAlias(
                        node.alternate_register, "register", node, f"alternateRegister in {owner}"
                    )
                index.add(unwrap_register(target), node.name)

        elif is_cluster(node):
            _trace_tree(index, node.registers, node)

            if node.alternate_cluster is not None:
                target = tree.get(node.alternate_cluster)
                if target is None:
                    raise UnresolvedAlias(
                        node.alternate_cluster, "cluster", node, f"alternateCluster in {owner}"
                    )
                index.link(node, unwrap_cluster(target), tree)


def collect_variants(
    device: Device,
    index: VariantIndex,
    peripheral: Peripheral,
    parent: Optional[Peripheral],
    clusters: ClusterPath,
    register: Register,
) -> List[Variant]:
    """
    Collect every location that describes the same memory as the given register.

    :param device: Device containing the register.
    :param index: Aliases traced from the device.
    :param peripheral: Peripheral containing the register.
    :param parent: Peripheral that the peripheral is derived from, if any.
    :param clusters: Clusters enclosing the register, outermost first.
    :param register: The register.
    :return: List of equivalent locations. The given location is always the first element.
    """
    variants = [Variant(peripheral, clusters, register)]

    # Aliases of the register itself, in the same scope
    if clusters:
        scopes: Iterable[Mapping[str, RegisterTree]] = (clusters[-1].registers,)
    else:
        scopes = _peripheral_scopes(peripheral, parent)

    for o_register in _register_aliases(index, register, scopes):
        variants.append(Variant(peripheral, clusters, o_register))

    # Aliases of the enclosing clusters, innermost first
    for depth in reversed(range(len(clusters))):
        cluster = clusters[depth]
        offset = offset_sum(clusters[depth:], register)

        for name in index.variants(cluster):
            if depth > 0:
                node = _scope_get(name, "cluster", cluster, clusters[depth - 1].registers)
            else:
                scopes = _peripheral_scopes(peripheral, parent)
                node = _scope_get(name, "cluster", cluster, *scopes)

            for o_clusters, o_register in walk_tree(unwrap_cluster(node)):
                if offset_sum(o_clusters, o_register) == offset:
                    variants.append(
                        Variant(peripheral, clusters[:depth] + o_clusters, o_register)
                    )

    # Aliases of the peripheral, matched by offset and by absolute address
    offset = offset_sum(clusters, register)
    address = peripheral.base_address + offset

    for name in index.variants(peripheral):
        o_peripheral = device.periph(name)
        o_parent = o_peripheral.derived_from_peripheral(device)

        for o_clusters, o_register in walk_peripheral(o_peripheral, o_parent):
            o_offset = offset_sum(o_clusters, o_register)
            if o_offset == offset and o_peripheral.base_address + o_offset == address:
                variants.append(Variant(o_peripheral, o_clusters, o_register))

    return variants


def _peripheral_scopes(
    peripheral: Peripheral, parent: Optional[Peripheral]
) -> Iterable[Mapping[str, RegisterTree]]:
    if parent is None:
        return (peripheral.registers,)
    return (peripheral.registers, parent.registers)


def _scope_get(
    name: str, kind: str, source: Aliasable, *scopes: Mapping[str, RegisterTree]
) -> RegisterTree:
    for scope in scopes:
        if name in scope:
            return scope[name]
    raise UnresolvedAlias(name, kind, source)


def _register_aliases(
    index: VariantIndex, register: Register, scopes: Iterable[Mapping[str, RegisterTree]]
) -> List[Register]:
    """
    Registers sharing memory with the given one, following alternateRegister in both directions.
    An alias declared before its target still ends up in the same group as the target.
    """
    scopes = tuple(scopes)
    found = [register]

    for node in found:
        names = list(index.variants(node))
        if node.alternate_register is not None:
            names.append(node.alternate_register)

        for name in names:
            alias = unwrap_register(_scope_get(name, "register", node, *scopes))
            if all(alias is not f for f in found):
                found.append(alias)

    return found[1:]
