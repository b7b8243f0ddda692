# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

import dataclasses

import pytest

from regbind import (
    Access,
    Device,
    Dimensions,
    Generator,
    IndexEntry,
    Interrupt,
    InterruptRecord,
    MissingAttribute,
    Options,
)
from regbind.generator import field_access_traits, register_access_traits

# Test suite for generator.py.
#
# Devices are built in code so that each test only contains the elements it is about.


def records(generator):
    return [r for g in generator.register_groups() for r in g.records]


def instances(generator):
    return [(r.instance_name, r.path_segments) for r in records(generator)]


def make_gpio_device():
    device = Device("TESTMCU", size=32, reset_value=0)

    gpioa = device.new_periph("GPIOA", base_address=0x4800_0000)
    gpioa.new_reg("MODER", address_offset=0x0, description="Mode register")

    alt = device.new_periph(
        "GPIOA_ALT", base_address=0x4800_0000, alternate_peripheral="GPIOA"
    )
    alt.new_reg("MODER", address_offset=0x0, description="Alternate mode register")

    return device


def make_array_device():
    device = Device("TESTMCU", size=32, reset_value=0)

    uart = device.new_periph(
        "UART[%s]",
        base_address=0x4000_0000,
        dimensions=Dimensions(length=2, step=0x1000),
    )
    ch = uart.new_cluster(
        "CH[%s]", address_offset=0x100, dimensions=Dimensions(length=2, step=0x10)
    )
    ch.new_reg("CFG[%s]", address_offset=0x8, dimensions=Dimensions(length=2, step=4))

    return device


def make_mixed_device():
    device = make_array_device()

    timer = device.new_periph("TIMER0", base_address=0x4001_0000)
    timer.new_reg("CTRL", address_offset=0x0)
    timer.new_reg("CTRL_ALT", address_offset=0x0, alternate_register="CTRL")
    cc = timer.new_cluster(
        "CC[%s]", address_offset=0x40, dimensions=Dimensions(length=4, step=0x8)
    )
    cc.new_reg("VAL", address_offset=0x0)
    cc.new_reg("MODE", address_offset=0x4)
    cc_alt = timer.new_cluster(
        "CCA[%s]",
        address_offset=0x40,
        dimensions=Dimensions(length=2, step=0x8),
        alternate_cluster="CC[%s]",
    )
    cc_alt.new_reg("VALUE", address_offset=0x0)

    device.new_periph("TIMER1", base_address=0x4001_1000, derived_from="TIMER0")

    gpio = device.new_periph("GPIO", base_address=0x5000_0000)
    gpio.new_reg("OUT", address_offset=0x4)
    gpio.new_reg("PIN_CNF[%s]", address_offset=0x100, dimensions=Dimensions(length=8, step=4))
    gpio_ns = device.new_periph(
        "GPIO_NS", base_address=0x5000_0000, alternate_peripheral="GPIO"
    )
    gpio_ns.new_reg("OUT", address_offset=0x4)

    return device


def test_alias_peripherals_deduplicated():
    generator = Generator(make_gpio_device())
    groups = list(generator.register_groups())

    assert len(groups) == 1
    assert [(r.instance_name, r.name) for r in groups[0].records] == [
        ("GPIOA", "MODER"),
        ("GPIOA_ALT", "MODER"),
    ]
    assert all(r.address == 0x4800_0000 for r in groups[0].records)
    assert groups[0].records[1].description == ("Alternate mode register",)


def test_alias_peripherals_index():
    generator = Generator(make_gpio_device())

    assert generator.register_index() == {
        "GPIOA": {("MODER",): True},
        "GPIOA_ALT": {("MODER",): False},
    }


def test_register_alias_grouped():
    device = Device("TESTMCU", size=32, reset_value=0)
    peripheral = device.new_periph("P", base_address=0x1000)
    peripheral.new_reg("MODE", address_offset=0x4)
    peripheral.new_reg("MODE_ALT", address_offset=0x4, alternate_register="MODE")

    groups = list(Generator(device).register_groups())

    assert [[r.name for r in g.records] for g in groups] == [["MODE", "MODE_ALT"]]


def test_register_alias_declared_before_target():
    device = Device("TESTMCU", size=32, reset_value=0)
    peripheral = device.new_periph("P", base_address=0x1000)
    peripheral.new_reg("MODE_ALT", address_offset=0x4, alternate_register="MODE")
    peripheral.new_reg("MODE", address_offset=0x4)

    generator = Generator(device)
    groups = list(generator.register_groups())

    assert [[r.name for r in g.records] for g in groups] == [["MODE_ALT", "MODE"]]
    assert generator.register_index() == {"P": {("MODE_ALT",): True, ("MODE",): False}}


def test_shifted_alias_peripheral_not_grouped():
    device = Device("TESTMCU", size=32, reset_value=0)
    device.new_periph("A", base_address=0x1000).new_reg("R", address_offset=0x4)
    alt = device.new_periph("B", base_address=0x1004, alternate_peripheral="A")
    alt.new_reg("S", address_offset=0x0)

    groups = list(Generator(device).register_groups())

    assert [[(r.instance_name, r.name) for r in g.records] for g in groups] == [
        [("A", "R")],
        [("B", "S")],
    ]


def test_cluster_alias_grouped():
    generator = Generator(make_mixed_device(), Options(exclude_peripherals={"TIMER1"}))
    groups = [
        [r.name for r in g.records]
        for g in generator.register_groups()
        if g.records[0].instance_name == "TIMER0"
    ]

    assert ["CC_0_VAL", "CCA_0_VALUE"] in groups
    assert ["CC_1_VAL", "CCA_1_VALUE"] in groups
    assert ["CC_2_VAL"] in groups
    assert ["CC_3_VAL"] in groups
    assert ["CC_0_MODE"] in groups


def test_array_expansion():
    generated = [(r.instance_name, r.path_segments, r.address) for r in records(
        Generator(make_array_device())
    )]

    assert generated == [
        ("UART_0", ("CH_0", "CFG_0"), 0x4000_0108),
        ("UART_0", ("CH_0", "CFG_1"), 0x4000_010C),
        ("UART_0", ("CH_1", "CFG_0"), 0x4000_0118),
        ("UART_0", ("CH_1", "CFG_1"), 0x4000_011C),
        ("UART_1", ("CH_0", "CFG_0"), 0x4000_1108),
        ("UART_1", ("CH_0", "CFG_1"), 0x4000_110C),
        ("UART_1", ("CH_1", "CFG_0"), 0x4000_1118),
        ("UART_1", ("CH_1", "CFG_1"), 0x4000_111C),
    ]


def test_derived_peripheral_shadowing():
    device = Device("TESTMCU", size=32, reset_value=0)
    a = device.new_periph("A", base_address=0x1000)
    a.new_reg("R1", address_offset=0x0)
    a.new_reg("R2", address_offset=0x4)
    b = device.new_periph("B", base_address=0x2000, derived_from="A")
    b.new_reg("R1", address_offset=0x10)

    generated = {
        (r.instance_name, r.name): r.address for r in records(Generator(device))
    }

    assert generated == {
        ("A", "R1"): 0x1000,
        ("A", "R2"): 0x1004,
        ("B", "R1"): 0x2010,
        ("B", "R2"): 0x2004,
    }


@pytest.mark.parametrize("pool_size", [1, 2, 3, 5])
@pytest.mark.parametrize("exclude", [frozenset(), frozenset({"GPIO_NS"}), frozenset({"TIMER0"})])
def test_striping_partitions_output(pool_size, exclude):
    full = instances(Generator(make_mixed_device(), Options(exclude_peripherals=exclude)))

    striped = []
    for pool_number in range(1, pool_size + 1):
        options = Options(
            exclude_peripherals=exclude, pool_number=pool_number, pool_size=pool_size
        )
        striped.extend(instances(Generator(make_mixed_device(), options)))

    assert len(striped) == len(set(striped))
    assert sorted(striped) == sorted(full)


def test_striping_spreads_groups():
    options = Options(pool_number=2, pool_size=2)
    generated = instances(Generator(make_array_device(), options))

    assert generated == [
        ("UART_0", ("CH_0", "CFG_1")),
        ("UART_0", ("CH_1", "CFG_1")),
        ("UART_1", ("CH_0", "CFG_1")),
        ("UART_1", ("CH_1", "CFG_1")),
    ]


def test_excluded_peripherals():
    device = make_mixed_device()
    device.new_periph("BROKEN", alternate_peripheral="MISSING")

    generator = Generator(device, Options(exclude_peripherals={"BROKEN", "TIMER1", "GPIO"}))
    peripherals = {name for name, _ in instances(generator)}

    assert peripherals == {"UART_0", "UART_1", "TIMER0", "GPIO_NS"}


def test_missing_size():
    device = Device("TESTMCU", reset_value=0)
    device.new_periph("P").new_reg("R")

    with pytest.raises(MissingAttribute):
        list(Generator(device).register_groups())


def test_missing_reset_value_in_every_pool():
    device = Device("TESTMCU", size=32)
    device.new_periph("P").new_reg("R")

    for pool_number in (1, 2):
        generator = Generator(device, Options(pool_number=pool_number, pool_size=2))
        with pytest.raises(MissingAttribute):
            list(generator.register_groups())


def test_register_and_field_traits():
    device = Device("TESTMCU", size=32, reset_value=0)
    peripheral = device.new_periph("P", base_address=0x1000)

    status = peripheral.new_reg("STATUS", access=Access.READ_ONLY, reset_value=0x10)
    status.new_field(
        "EN%s", bit_offset=0, bit_width=1, dimensions=Dimensions(length=2, step=8)
    )
    status.new_field("MODE", lsb=4, msb=5, access=Access.READ_WRITE, force_bits=True)

    peripheral.new_reg("TASK", address_offset=0x4, access=Access.WRITE_ONLY)
    peripheral.new_reg("DATA", address_offset=0x8)

    generated = {r.name: r for r in records(Generator(device))}

    status_record = generated["STATUS"]
    assert status_record.reset_value == 0x10
    assert status_record.traits == ("RReg", "RoReg")
    assert [(f.name, f.offset, f.width, f.traits) for f in status_record.fields] == [
        ("EN0", 0, 1, ("RRRegField", "RoRRegField")),
        ("EN1", 8, 1, ("RRRegField", "RoRRegField")),
        ("MODE", 4, 2, ("RRRegField", "WWRegField", "ForceBits")),
    ]

    assert generated["TASK"].traits == ("WReg", "WoReg")
    assert generated["DATA"].traits == ("RReg", "WReg")
    assert generated["DATA"].access is None


def test_register_traits_callback():
    calls = []

    def traits(peripheral_name, path_segments, address):
        calls.append((peripheral_name, path_segments, address))
        return ["BitBand"] if address >= 0x4000_0000 else []

    device = Device("TESTMCU", size=32, reset_value=0)
    device.new_periph("P", base_address=0x4000_0000).new_reg("R", address_offset=0x4)

    (record,) = records(Generator(device, Options(register_traits=traits)))

    assert record.traits == ("RReg", "WReg", "BitBand")
    assert calls == [("P", ["R"], 0x4000_0004)]


def test_unify_field_access():
    device = Device("TESTMCU", size=32, reset_value=0)
    register = device.new_periph("P").new_reg("R")
    register.new_field("A", bit_offset=0, bit_width=1, access=Access.READ_ONLY)
    register.new_field("B", bit_offset=1, bit_width=1, access=Access.READ_ONLY)

    (record,) = records(Generator(device))
    assert record.access is None

    (record,) = records(Generator(device, Options(unify_field_access=True)))
    assert record.access is Access.READ_ONLY
    assert record.traits == ("RReg", "RoReg")


def test_index_entries_core_registers():
    def core_register(peripheral_name, path_segments):
        return peripheral_name == "GPIOA"

    generator = Generator(make_gpio_device(), Options(core_register=core_register))

    assert list(generator.index_entries()) == [
        IndexEntry("GPIOA", ("MODER",), is_primary=True, is_core=True),
        IndexEntry("GPIOA_ALT", ("MODER",), is_primary=False, is_core=False),
    ]


def test_index_not_striped():
    full = Generator(make_mixed_device()).register_index()
    pooled = Generator(make_mixed_device(), Options(pool_number=2, pool_size=3)).register_index()

    assert pooled == full


def test_index_matches_register_groups():
    generator = Generator(make_mixed_device())

    expected = {}
    for group in generator.register_groups():
        for n, record in enumerate(group.records):
            expected.setdefault(record.instance_name, {})[record.path_segments] = n == 0

    assert generator.register_index() == expected


def test_peripheral_descriptions():
    device = make_mixed_device()
    device.periph("TIMER0").description = "Timer"

    descriptions = Generator(device).peripheral_descriptions()

    assert descriptions["TIMER0"] == "Timer"
    assert descriptions["TIMER1"] == "Timer"
    assert descriptions["UART_0"] is None


def test_interrupts_first_wins():
    device = Device("TESTMCU")
    device.new_periph(
        "UART0",
        interrupts=[Interrupt("UART0", "UART 0", 2), Interrupt("SHARED", "First", 5)],
    )
    device.new_periph("UART1", interrupts=[Interrupt("SHARED", "Second", 6)])
    device.new_periph("SPI0", interrupts=[Interrupt("SPI0", "SPI 0", 3)])

    generator = Generator(device, Options(exclude_peripherals={"SPI0"}))

    assert list(generator.interrupts()) == [
        InterruptRecord("UART0", "UART 0", 2),
        InterruptRecord("SHARED", "First", 5),
        InterruptRecord("SPI0", "SPI 0", 3),
    ]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"pool_size": 0},
        {"pool_number": 0},
        {"pool_number": 3, "pool_size": 2},
    ],
)
def test_invalid_pool_options(kwargs):
    with pytest.raises(ValueError):
        Options(**kwargs)


def test_options_replace():
    options = dataclasses.replace(Options(), exclude_peripherals=["A", "B"], pool_size=2)

    assert options.exclude_peripherals == frozenset({"A", "B"})
    assert options.pool_size == 2


@pytest.mark.parametrize(
    "access, register_traits, field_traits",
    [
        (None, ("RReg", "WReg"), ("RRRegField", "WWRegField")),
        (Access.READ_WRITE, ("RReg", "WReg"), ("RRRegField", "WWRegField")),
        (Access.READ_WRITE_ONCE, ("RReg", "WReg"), ("RRRegField", "WWRegField")),
        (Access.READ_ONLY, ("RReg", "RoReg"), ("RRRegField", "RoRRegField")),
        (Access.WRITE_ONLY, ("WReg", "WoReg"), ("WWRegField", "WoWRegField")),
    ],
)
def test_access_traits(access, register_traits, field_traits):
    assert register_access_traits(access) == register_traits
    assert field_access_traits(access) == field_traits
