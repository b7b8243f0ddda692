# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Depth-first traversal of register trees.
"""

from __future__ import annotations

import math
from typing import (
    TYPE_CHECKING,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from .device import Cluster, Peripheral, Register, RegisterTree, is_cluster
from .dimension import dim_length

if TYPE_CHECKING:
    from .variant import Variant

# Path of clusters from the outermost to the innermost ancestor of a register.
ClusterPath = Tuple[Cluster, ...]


class RegisterWalker(Iterator[Tuple[ClusterPath, Register]]):
    """
    Iterator over the registers in one or more register trees.

    The trees are walked in the order given, depth-first in declaration order, and each register
    is yielded together with the clusters enclosing it. A register is identified by the names of
    its enclosing clusters and its own name. Once a register has been yielded, registers with the
    same identity in the remaining trees are skipped, so registers in the first trees shadow those
    in the later ones.

    The walker is lazy and can only be iterated once.
    """

    def __init__(self, *roots: Tuple[ClusterPath, Iterable[RegisterTree]]) -> None:
        """
        :param roots: Pairs of a cluster path prefix and the top level nodes of a tree.
        """
        self._stack: List[Tuple[ClusterPath, Iterator[RegisterTree]]] = [
            (prefix, iter(nodes)) for prefix, nodes in reversed(roots)
        ]
        self._current: Optional[Tuple[ClusterPath, Iterator[RegisterTree]]] = None
        self._visited: Set[Tuple[Tuple[str, ...], str]] = set()

    def __iter__(self) -> RegisterWalker:
        return self

    def __next__(self) -> Tuple[ClusterPath, Register]:
        while True:
            if self._current is None:
                if not self._stack:
                    raise StopIteration
                self._current = self._stack.pop()

            clusters, nodes = self._current

            for node in nodes:
                if is_cluster(node):
                    # Descend now and resume the rest of this level afterwards
                    self._stack.append(self._current)
                    self._current = ((*clusters, node), iter(node.registers.values()))
                    break

                key = (tuple(c.name for c in clusters), node.name)
                if key in self._visited:
                    continue

                self._visited.add(key)
                return clusters, node
            else:
                self._current = None


def walk_peripheral(
    peripheral: Peripheral, parent: Optional[Peripheral] = None
) -> RegisterWalker:
    """
    Walk the registers of a peripheral.
    Registers inherited from the parent peripheral are visited after the peripheral's own
    registers and are skipped where the peripheral redefines them.
    """
    roots = [((), peripheral.registers.values())]
    if parent is not None:
        roots.append(((), parent.registers.values()))
    return RegisterWalker(*roots)


def walk_tree(cluster: Cluster) -> RegisterWalker:
    """Walk the registers in a cluster. Yielded cluster paths start with the cluster itself."""
    return RegisterWalker(((cluster,), cluster.registers.values()))


def offset_sum(clusters: Sequence[Cluster], register: Register) -> int:
    """Address offset of a register relative to the start of its cluster path."""
    return sum(c.address_offset for c in clusters) + register.address_offset


def cluster_combinations(
    variants: Sequence[Variant],
) -> Iterator[List[Optional[Tuple[int, ...]]]]:
    """
    Enumerate the combinations of cluster array indices needed to generate every instance of
    a set of variants.

    The number of instances enumerated at each cluster depth is the largest dimension of any
    variant cluster at that depth. A single counter is decomposed into one index per depth,
    starting with the outermost depth as the least significant position.

    :param variants: Variants with possibly different cluster paths.
    :return: Iterator over lists with one entry per variant: the tuple of cluster indices of the
             variant, or None if the combination is out of bounds for that variant.
    """
    depth = max((len(v.clusters) for v in variants), default=0)
    strides = [
        max(
            (dim_length(v.clusters[d].dimensions) for v in variants if d < len(v.clusters)),
            default=1,
        )
        for d in range(depth)
    ]

    for counter in range(math.prod(strides)):
        combination: List[Optional[Tuple[int, ...]]] = []

        for variant in variants:
            indices: Optional[List[int]] = []
            k = counter

            for cluster, stride in zip(variant.clusters, strides):
                index = k % stride
                k //= stride
                if index >= dim_length(cluster.dimensions):
                    indices = None
                    break
                indices.append(index)

            combination.append(tuple(indices) if indices is not None else None)

        yield combination
