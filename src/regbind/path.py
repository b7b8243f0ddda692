# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Dotted paths naming elements of a register tree.
"""

from __future__ import annotations

from typing import Any, Sequence, Tuple, Union, overload


class RegPath(Sequence[str]):
    """
    Path to a register or cluster, relative to the peripheral or cluster containing it.

    "CH[%s].CFG" names the register CFG inside the cluster CH[%s]. Names are the declared names,
    so an array element is reached through its unexpanded name.
    """

    __slots__ = "_parts"

    def __init__(self, *parts: Union[str, Sequence[str]]) -> None:
        flat: list = []
        for part in parts:
            if isinstance(part, str):
                flat += part.split(".")
            else:
                flat += [s for p in part for s in p.split(".")]

        if not flat or "" in flat:
            raise ValueError(f"Invalid register path: {parts!r}")

        self._parts: Tuple[str, ...] = tuple(flat)

    @property
    def parts(self) -> Tuple[str, ...]:
        return self._parts

    @property
    def name(self) -> str:
        """Name of the last element on the path."""
        return self._parts[-1]

    @overload
    def __getitem__(self, item: int, /) -> str:
        ...

    @overload
    def __getitem__(self, item: slice, /) -> Tuple[str, ...]:
        ...

    def __getitem__(self, item: Union[int, slice], /) -> Union[str, Tuple[str, ...]]:
        return self._parts[item]

    def __len__(self) -> int:
        return len(self._parts)

    def __hash__(self) -> int:
        return hash(self._parts)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, RegPath):
            return self._parts == other._parts
        return NotImplemented

    def __str__(self) -> str:
        return ".".join(self._parts)

    def __repr__(self) -> str:
        return f"RegPath({str(self)!r})"
