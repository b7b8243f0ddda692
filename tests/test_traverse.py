# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from regbind import (
    Cluster,
    Device,
    Dimensions,
    Register,
    Variant,
    cluster_combinations,
    walk_peripheral,
    walk_tree,
)


def names(walker):
    return [(tuple(c.name for c in clusters), r.name) for clusters, r in walker]


def test_walk_nested_clusters():
    device = Device("TESTMCU")
    peripheral = device.new_periph("DMA")
    peripheral.new_reg("CTRL")
    ch = peripheral.new_cluster("CH", address_offset=0x100)
    ch.new_reg("SRC")
    sub = ch.add_reg(Cluster("SUB", address_offset=0x10))
    sub.new_reg("CFG")
    ch.new_reg("DST", address_offset=4)

    assert sorted(names(walk_peripheral(peripheral))) == [
        ((), "CTRL"),
        (("CH",), "DST"),
        (("CH",), "SRC"),
        (("CH", "SUB"), "CFG"),
    ]


def test_walk_own_registers_shadow_inherited():
    device = Device("TESTMCU")
    parent = device.new_periph("A")
    parent_r1 = parent.new_reg("R1", address_offset=0x0)
    parent.new_reg("R2", address_offset=0x4)

    peripheral = device.new_periph("B", derived_from="A")
    own_r1 = peripheral.new_reg("R1", address_offset=0x8)

    visited = list(walk_peripheral(peripheral, parent))
    registers = [r for _, r in visited]

    assert [r.name for r in registers] == ["R1", "R2"]
    assert registers[0] is own_r1
    assert parent_r1 not in registers


def test_walk_shadowing_uses_cluster_path():
    device = Device("TESTMCU")
    parent = device.new_periph("A")
    parent.new_cluster("X").new_reg("R")
    parent.new_cluster("Y").new_reg("R")

    peripheral = device.new_periph("B", derived_from="A")
    own = peripheral.new_cluster("X").new_reg("R")

    visited = list(walk_peripheral(peripheral, parent))
    assert sorted(names(visited)) == [(("X",), "R"), (("Y",), "R")]
    assert own in [r for _, r in visited]


def test_walker_is_single_use():
    device = Device("TESTMCU")
    peripheral = device.new_periph("A")
    peripheral.new_reg("R")

    walker = walk_peripheral(peripheral)
    assert len(list(walker)) == 1
    assert list(walker) == []


def test_walk_tree_includes_root_cluster():
    cluster = Cluster("CH", address_offset=0x20)
    cluster.new_reg("CTRL")

    assert names(walk_tree(cluster)) == [(("CH",), "CTRL")]


def test_cluster_combinations_cross_product():
    outer = Cluster("OUT[%s]", dimensions=Dimensions(length=2, step=0x100))
    inner = Cluster("IN[%s]", dimensions=Dimensions(length=3, step=0x10))
    register = Register("R")
    variant = Variant(None, (outer, inner), register)

    combinations = list(cluster_combinations([variant]))

    assert [c[0] for c in combinations] == [
        (0, 0),
        (1, 0),
        (0, 1),
        (1, 1),
        (0, 2),
        (1, 2),
    ]


def test_cluster_combinations_truncate_per_variant():
    wide = Cluster("W[%s]", dimensions=Dimensions(length=4, step=0x10))
    narrow = Cluster("N[%s]", dimensions=Dimensions(length=2, step=0x10))
    register = Register("R")
    variants = [Variant(None, (wide,), register), Variant(None, (narrow,), register)]

    assert list(cluster_combinations(variants)) == [
        [(0,), (0,)],
        [(1,), (1,)],
        [(2,), None],
        [(3,), None],
    ]


def test_cluster_combinations_without_clusters():
    variant = Variant(None, (), Register("R"))
    assert list(cluster_combinations([variant])) == [[()]]
