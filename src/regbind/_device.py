# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Helpers shared by the classes of the device model.
"""

from __future__ import annotations

from typing import Any, Callable, MutableMapping, Optional, Tuple

from .errors import PathNotFound
from .path import RegPath


def node_repr(node: Any, address: Optional[int] = None, **props: Any) -> str:
    """
    Compact representation of a model object, such as "[CH<2> @ 0x00000100 {Cluster}]".

    Array elements show their length in angle brackets. Extra keyword arguments are listed in
    parentheses after the address.
    """
    text = node.name

    dimensions = getattr(node, "dimensions", None)
    if dimensions is not None:
        text += f"<{dimensions.length}>"
    if address is not None:
        text += f" @ 0x{address:08x}"
    if props:
        text += " (" + ", ".join(f"{k}: {v}" for k, v in props.items()) + ")"

    return f"[{text} {{{type(node).__name__}}}]"


def lookup_path(
    tree: MutableMapping[str, Any],
    path: RegPath,
    source: Any,
    children: Callable[[Any], Optional[MutableMapping[str, Any]]],
) -> Tuple[MutableMapping[str, Any], Any]:
    """
    Look up the element at a dotted path in a register tree.

    :param tree: Top level of the tree.
    :param path: Path to look up.
    :param source: Element that owns the tree, used in error messages.
    :param children: Function returning the subtree of a node, or None for leaf nodes.

    :raises PathNotFound: If any of the path components does not exist.
    :return: Tuple of the mapping containing the element and the element itself.
    """
    container = tree

    for i, part in enumerate(path):
        try:
            node = container[part]
        except KeyError:
            raise PathNotFound(str(path), source, f"no element named '{part}'") from None

        if i == len(path) - 1:
            return container, node

        subtree = children(node)
        if subtree is None:
            raise PathNotFound(str(path), source, f"'{part}' has no child elements")
        container = subtree

    raise PathNotFound(str(path), source)
