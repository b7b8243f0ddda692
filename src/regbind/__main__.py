# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import dataclasses
import io
import json
import logging
import sys
from pathlib import Path
from textwrap import dedent
from typing import Optional

import regbind
from regbind import render


def cli(argv: Optional[list] = None) -> None:
    top = argparse.ArgumentParser(
        description=dedent(
            """\
            Generate Drone register bindings from System View Description (SVD) files.
            """
        ),
        allow_abbrev=False,
    )
    top.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help=(
            "Output verbose logs. Can be given multiple times to increase the verbosity. "
            "By default only errors are output."
        ),
    )

    sub = top.add_subparsers(title="subcommands")

    regs = sub.add_parser(
        "regs",
        help="Generate register bindings.",
        description=dedent(
            """\
            Generate one reg! block per register instance. The output can be split across
            several files by running the command once per pool number.
            """
        ),
        allow_abbrev=False,
    )
    regs.set_defaults(_command="regs")
    _add_common_arguments(regs)

    regs_pool = regs.add_argument_group("pool options")
    regs_pool.add_argument(
        "--pool-number",
        type=int,
        default=1,
        help="1-based number of the part of the output to generate.",
    )
    regs_pool.add_argument(
        "--pool-size",
        type=int,
        default=1,
        help="Number of parts that the output is split into.",
    )

    index = sub.add_parser(
        "index",
        help="Generate the register token index.",
        allow_abbrev=False,
    )
    index.set_defaults(_command="index")
    _add_common_arguments(index)
    index.add_argument(
        "--macro-name",
        default="unsafe_reg_tokens",
        help="Name of the generated token macro.",
    )
    index.add_argument(
        "--core-macro-name",
        help=(
            "Name of a second token macro for the core-level registers. Core-level registers "
            "are hidden in the first macro."
        ),
    )
    index.add_argument(
        "--core-peripheral",
        metavar="NAME",
        action="append",
        help=(
            "Treat the registers of the given peripheral as core-level registers. "
            "May be given multiple times. Requires --core-macro-name."
        ),
    )

    interrupts = sub.add_parser(
        "interrupts",
        help="Generate interrupt bindings.",
        allow_abbrev=False,
    )
    interrupts.set_defaults(_command="interrupts")
    _add_common_arguments(interrupts)

    args = top.parse_args(argv)

    log_level = {
        0: logging.ERROR,
        1: logging.WARNING,
        2: logging.INFO,
        3: logging.DEBUG,
    }.get(args.verbose, logging.DEBUG)
    regbind.log.setLevel(log_level)

    if not hasattr(args, "_command"):
        top.print_usage()
        sys.exit(2)

    options = regbind.Options(
        exclude_peripherals=frozenset(args.exclude or ()),
        pool_number=getattr(args, "pool_number", 1),
        pool_size=getattr(args, "pool_size", 1),
        unify_field_access=args.unify_field_access,
    )
    if args.options:
        options = dataclasses.replace(options, **args.options)

    if getattr(args, "core_peripheral", None):
        if args.core_macro_name is None:
            index.error("--core-peripheral requires --core-macro-name")
        core_peripherals = frozenset(args.core_peripheral)
        options = dataclasses.replace(
            options, core_register=lambda name, _path: name in core_peripherals
        )

    device = regbind.parse(args.svd_file)
    generator = regbind.Generator(device, options)

    # Generate everything before touching the output so that failures leave no partial output
    buffer = io.StringIO()

    if args._command == "regs":
        count = render.write_registers(buffer, generator.register_groups())
        regbind.log.info(
            f"Generated {count} register blocks for pool member "
            f"{options.pool_number}/{options.pool_size}"
        )
    elif args._command == "index":
        render.write_index(
            buffer,
            device.name,
            generator.index_entries(),
            generator.peripheral_descriptions(),
            args.macro_name,
            core_macro_name=args.core_macro_name,
        )
    elif args._command == "interrupts":
        render.write_interrupts(buffer, generator.interrupts())

    if args.output_file is None:
        sys.stdout.write(buffer.getvalue())
    else:
        args.output_file.write_text(buffer.getvalue(), encoding="utf-8")

    sys.exit(0)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    svd_args = parser.add_argument_group("SVD options")
    svd_args.add_argument(
        "-s",
        "--svd-file",
        required=True,
        type=Path,
        help="Path to the device SVD file.",
    )
    svd_args.add_argument(
        "-x",
        "--exclude",
        metavar="NAME",
        action="append",
        help="Exclude the given peripheral from the output. May be given multiple times.",
    )
    svd_args.add_argument(
        "--unify-field-access",
        action="store_true",
        help=(
            "Use the access of the register fields for registers that have no access, "
            "if all fields have the same access."
        ),
    )
    svd_args.add_argument(
        "--options",
        type=json.loads,
        help=(
            "JSON object used to override fields in the Options object to customize the "
            "generator behavior."
        ),
    )

    out_args = parser.add_argument_group("output options")
    out_args.add_argument(
        "-o",
        "--output-file",
        type=Path,
        help="File to write the output to. If not given, output is written to stdout.",
    )


# Entry point when running with python -m regbind
if __name__ == "__main__":
    cli()
