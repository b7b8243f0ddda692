# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Rendering of generated records as Drone register binding macros.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, TextIO

from .generator import FieldRecord, IndexEntry, InterruptRecord, RegisterGroup

_INDENT = "    "


def _doc_lines(output: TextIO, text: str, level: int) -> None:
    for line in text.splitlines():
        output.write(f"{_INDENT * level}/// {line.strip()}\n")


def _hex(value: int) -> str:
    return f"0x{value >> 16:04X}_{value & 0xFFFF:04X}"


def write_registers(output: TextIO, groups: Iterable[RegisterGroup]) -> int:
    """
    Write register groups as reg! blocks, one block per group.

    :param output: Text stream to write to.
    :param groups: Register groups to write.
    :return: Number of blocks written.
    """
    count = 0

    for group in groups:
        output.write("reg! {\n")

        for record in group.records:
            for description in record.description:
                _doc_lines(output, description, 1)

            output.write(f"{_INDENT}pub {record.instance_name} {record.name} => {{\n")
            output.write(f"{_INDENT * 2}address => {_hex(record.address)};\n")
            output.write(f"{_INDENT * 2}size => {record.size};\n")
            output.write(f"{_INDENT * 2}reset => {_hex(record.reset_value)};\n")
            output.write(f"{_INDENT * 2}traits => {{ {' '.join(record.traits)} }};\n")
            output.write(f"{_INDENT * 2}fields => {{\n")
            for field in record.fields:
                _write_field(output, field)
            output.write(f"{_INDENT * 2}}};\n")
            output.write(f"{_INDENT}}};\n")

        output.write("}\n")
        count += 1

    return count


def _write_field(output: TextIO, field: FieldRecord) -> None:
    _doc_lines(output, field.description, 3)
    output.write(f"{_INDENT * 3}{field.name} => {{\n")
    output.write(f"{_INDENT * 4}offset => {field.offset};\n")
    output.write(f"{_INDENT * 4}width => {field.width};\n")
    output.write(f"{_INDENT * 4}traits => {{ {' '.join(field.traits)} }};\n")
    output.write(f"{_INDENT * 3}}};\n")


def write_index(
    output: TextIO,
    device_name: str,
    entries: Iterable[IndexEntry],
    descriptions: Mapping[str, Optional[str]],
    macro_name: str,
    core_macro_name: Optional[str] = None,
) -> None:
    """
    Write the register index as reg::tokens! blocks.

    Non-primary registers are written as hidden tokens. If a core-level macro name is given,
    core-level registers are hidden in the MCU-level block and a second block is written for
    the core-level registers.

    :param output: Text stream to write to.
    :param device_name: Name of the device, used in the macro documentation.
    :param entries: Register index entries.
    :param descriptions: Map from peripheral instance names to their descriptions.
    :param macro_name: Name of the MCU-level token macro.
    :param core_macro_name: Name of the core-level token macro, if any.
    """
    by_peripheral: Dict[str, List[IndexEntry]] = {}
    for entry in entries:
        by_peripheral.setdefault(entry.peripheral_name, []).append(entry)

    _write_tokens(
        output,
        by_peripheral,
        descriptions,
        f"Defines an index of {device_name} MCU-level register tokens.",
        macro_name,
        prev_macro=None,
        core=False,
    )

    if core_macro_name is not None:
        output.write("\n")
        _write_tokens(
            output,
            by_peripheral,
            descriptions,
            f"Defines an index of {device_name} core-level register tokens.",
            core_macro_name,
            prev_macro=macro_name,
            core=True,
        )


def _write_tokens(
    output: TextIO,
    by_peripheral: Mapping[str, List[IndexEntry]],
    descriptions: Mapping[str, Optional[str]],
    macro_doc: str,
    macro_name: str,
    prev_macro: Optional[str],
    core: bool,
) -> None:
    output.write("reg::tokens! {\n")
    output.write(f"{_INDENT}/// {macro_doc}\n")
    output.write(f"{_INDENT}pub macro {macro_name};\n")
    if prev_macro is not None:
        output.write(f"{_INDENT}use macro {prev_macro};\n")
    output.write(f"{_INDENT}super::inner;\n")
    output.write(f"{_INDENT}crate::reg;\n")

    for peripheral_name, entries in by_peripheral.items():
        description = descriptions.get(peripheral_name)
        if description:
            _doc_lines(output, description, 1)

        output.write(f"{_INDENT}pub mod {'!' if core else ''}{peripheral_name} {{\n")
        for entry in entries:
            hidden = not entry.is_primary or (not core and entry.is_core)
            name = "_".join(entry.path_segments)
            output.write(f"{_INDENT * 2}{'!' if hidden else ''}{name};\n")
        output.write(f"{_INDENT}}}\n")

    output.write("}\n")


def write_interrupts(output: TextIO, interrupts: Iterable[InterruptRecord]) -> None:
    """Write interrupts as thr::int! blocks."""
    for interrupt in interrupts:
        output.write("thr::int! {\n")
        _doc_lines(output, interrupt.description, 1)
        output.write(f"{_INDENT}pub trait {interrupt.name}: {interrupt.value};\n")
        output.write("}\n")
