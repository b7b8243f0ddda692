# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Expansion of SVD array dimensions into concrete element instances.
"""

from __future__ import annotations

import re
import string
from typing import List, Optional, Tuple

from .bindings import Dimensions

_NUMERIC_RANGE = re.compile(r"([0-9]+)\s*-\s*([0-9]+)")
_LETTER_RANGE = re.compile(r"([A-Z])\s*-\s*([A-Z])")


def dim_length(dimensions: Optional[Dimensions]) -> int:
    """Number of instances of an element with the given dimensions."""
    if dimensions is None:
        return 1
    return max(dimensions.length, 1)


def dim_instance(
    name: str, dimensions: Optional[Dimensions], n: int
) -> Tuple[str, int]:
    """
    Get the name and address delta of the n-th instance of an array element.

    If the element is not an array, the name is returned as is, without substituting any
    placeholder, together with a delta of 0.
    Otherwise the label of the instance replaces "[%s]" with "_<label>", or a bare "%s" with
    "<label>", and the delta is the position of the instance times the dimension step.

    :param name: Name of the element, possibly containing a placeholder.
    :param dimensions: Dimensions of the element.
    :param n: Position of the instance.
    :return: Tuple of the instance name and the address delta of the instance.
    """
    if dimensions is None or dimensions.length <= 1:
        return name, 0

    label = dimensions.label(n)

    if "[%s]" in name:
        instance_name = name.replace("[%s]", f"_{label}")
    else:
        instance_name = name.replace("%s", label)

    return instance_name, n * dimensions.step


def expand(name: str, dimensions: Optional[Dimensions]) -> List[Tuple[str, int]]:
    """
    Expand an element into its concrete instances.

    :param name: Name of the element, possibly containing a placeholder.
    :param dimensions: Dimensions of the element.
    :return: List of (name, address delta) pairs, one per instance, in instance order.
    """
    return [dim_instance(name, dimensions, n) for n in range(dim_length(dimensions))]


def parse_dim_index(text: str) -> List[str]:
    """
    Parse the contents of a SVD dimIndex element into a list of labels.
    Supported forms are comma separated lists ("A,B,C") and inclusive ranges ("0-3", "A-D").
    """
    text = text.strip()

    if match := _NUMERIC_RANGE.fullmatch(text):
        start, end = int(match[1]), int(match[2])
        return [str(i) for i in range(start, end + 1)]

    if match := _LETTER_RANGE.fullmatch(text):
        letters = string.ascii_uppercase
        start, end = letters.index(match[1]), letters.index(match[2])
        return list(letters[start : end + 1])

    return [label.strip() for label in text.split(",")]
