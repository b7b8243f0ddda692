# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from typing import Any, Iterable, Optional


def _detail(explanation: Optional[str]) -> str:
    return f" ({explanation})" if explanation else ""


class RegbindError(Exception):
    """Common base of the regbind exceptions."""

    ...


class SvdParseError(RegbindError):
    """The SVD document could not be read into a device model."""

    ...


class SvdDefinitionError(RegbindError, ValueError):
    """An element of the SVD document is well-formed XML but describes something invalid."""

    def __init__(self, elements: Iterable[Any], explanation: str):
        listing = "".join(f"\n  * {e!r}" for e in elements)
        super().__init__(f"Invalid SVD element(s):{listing}\n{explanation}")


class MalformedInteger(RegbindError, ValueError):
    """Raised when a numeric literal can not be parsed as an unsigned 32-bit integer."""

    def __init__(self, literal: str, explanation: str = "") -> None:
        super().__init__(f"Malformed integer literal '{literal}'{_detail(explanation)}")
        self.literal = literal


class MissingBitRange(SvdDefinitionError):
    """Raised when a field specifies none of the supported bit range forms."""

    def __init__(self, field: Any) -> None:
        super().__init__(
            [field],
            "Field has no bit range. Expected bitOffset/bitWidth, lsb/msb or bitRange.",
        )


class UnresolvedAlias(RegbindError, LookupError):
    """
    Raised when a 'derivedFrom' or 'alternate*' reference does not point to an
    existing element.
    """

    def __init__(self, target: str, kind: str, source: Any, explanation: str = "") -> None:
        super().__init__(
            f"{kind} '{target}' referenced by {source!s} not found{_detail(explanation)}"
        )
        self.target = target
        self.kind = kind


class MissingAttribute(RegbindError, ValueError):
    """
    Raised when a register property could not be resolved through the register,
    peripheral, base peripheral and device levels.
    """

    def __init__(self, attribute: str, register: Any, peripheral: Any) -> None:
        super().__init__(
            f"Missing {attribute} for register {register!s} in {peripheral!s}"
        )
        self.attribute = attribute


class PathNotFound(RegbindError, LookupError):
    """No element exists at the given path, or it is of the wrong kind."""

    def __init__(self, path: str, source: Any, explanation: Optional[str] = None) -> None:
        super().__init__(f"No element '{path}' in {source!s}{_detail(explanation)}")
        self.path = path


class InvariantViolation(RegbindError, TypeError):
    """Raised when a register tree node is not of the kind the caller expected."""

    ...
