# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from .bindings import Access, BitRange, Dimensions
from .errors import (
    RegbindError,
    SvdParseError,
    SvdDefinitionError,
    MalformedInteger,
    MissingBitRange,
    UnresolvedAlias,
    MissingAttribute,
    PathNotFound,
    InvariantViolation,
)
from .parsing import parse, parse_bytes
from .path import RegPath
from .device import (
    Cluster,
    Device,
    Field,
    Interrupt,
    Peripheral,
    Register,
    RegisterTree,
    is_cluster,
    is_register,
    unwrap_cluster,
    unwrap_register,
)
from .dimension import expand, dim_instance, parse_dim_index
from .traverse import RegisterWalker, walk_peripheral, walk_tree, cluster_combinations
from .variant import Variant, VariantIndex, trace_variants, collect_variants
from .generator import (
    Options,
    Generator,
    FieldRecord,
    RegisterRecord,
    RegisterGroup,
    IndexEntry,
    InterruptRecord,
)
from . import render

import importlib.metadata
import logging

__version__ = importlib.metadata.version("regbind")


def _init_logger() -> logging.Logger:
    formatter = logging.Formatter("{message}", style="{")
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    logger = logging.getLogger("regbind")
    logger.setLevel(logging.ERROR)
    logger.addHandler(handler)

    return logger


# logging.Logger instance used for log output from regbind
log = _init_logger()

__all__ = [
    # from bindings
    "Access",
    "BitRange",
    "Dimensions",
    # from errors
    "RegbindError",
    "SvdParseError",
    "SvdDefinitionError",
    "MalformedInteger",
    "MissingBitRange",
    "UnresolvedAlias",
    "MissingAttribute",
    "PathNotFound",
    "InvariantViolation",
    # from parsing
    "parse",
    "parse_bytes",
    # from path
    "RegPath",
    # from device
    "Cluster",
    "Device",
    "Field",
    "Interrupt",
    "Peripheral",
    "Register",
    "RegisterTree",
    "is_cluster",
    "is_register",
    "unwrap_cluster",
    "unwrap_register",
    # from dimension
    "expand",
    "dim_instance",
    "parse_dim_index",
    # from traverse
    "RegisterWalker",
    "walk_peripheral",
    "walk_tree",
    "cluster_combinations",
    # from variant
    "Variant",
    "VariantIndex",
    "trace_variants",
    "collect_variants",
    # from generator
    "Options",
    "Generator",
    "FieldRecord",
    "RegisterRecord",
    "RegisterGroup",
    "IndexEntry",
    "InterruptRecord",
    # other
    "log",
    "render",
    "__version__",
]
