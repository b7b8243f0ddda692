# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from regbind import Dimensions, dim_instance, expand, parse_dim_index


def test_expand_array():
    assert expand("FOO[%s]", Dimensions(length=3, step=4)) == [
        ("FOO_0", 0),
        ("FOO_1", 4),
        ("FOO_2", 8),
    ]


def test_expand_single_leaves_placeholder():
    assert expand("FOO[%s]", Dimensions(length=1, step=4)) == [("FOO[%s]", 0)]
    assert expand("FOO[%s]", None) == [("FOO[%s]", 0)]
    assert expand("FOO", None) == [("FOO", 0)]


def test_expand_bare_placeholder():
    assert expand("CH%s_CTRL", Dimensions(length=2, step=8)) == [
        ("CH0_CTRL", 0),
        ("CH1_CTRL", 8),
    ]


def test_expand_labels_do_not_change_stride():
    dimensions = Dimensions(length=3, step=0x10, index=["4", "7", "9"])
    assert expand("PIN%s", dimensions) == [("PIN4", 0), ("PIN7", 0x10), ("PIN9", 0x20)]


def test_dim_instance():
    dimensions = Dimensions(length=4, step=2, index=["A", "B", "C", "D"])
    assert dim_instance("EVT[%s]", dimensions, 2) == ("EVT_C", 4)
    assert dim_instance("EVT", None, 0) == ("EVT", 0)


def test_parse_dim_index():
    assert parse_dim_index("A,B,C") == ["A", "B", "C"]
    assert parse_dim_index("A, B ,C") == ["A", "B", "C"]
    assert parse_dim_index("0-3") == ["0", "1", "2", "3"]
    assert parse_dim_index("4-6") == ["4", "5", "6"]
    assert parse_dim_index("B-D") == ["B", "C", "D"]
    assert parse_dim_index("RX,TX") == ["RX", "TX"]
