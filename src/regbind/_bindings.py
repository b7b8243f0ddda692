# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Building blocks for the lxml.objectify element classes in the bindings module.
"""

from __future__ import annotations

import enum
import inspect
from typing import (
    Any,
    Dict,
    Generic,
    Iterator,
    List,
    Literal,
    Mapping,
    Optional,
    Type,
    TypeVar,
    Union,
    overload,
)

from lxml import objectify
from typing_extensions import Self

from .errors import MalformedInteger

# Largest value representable by a register, address or field literal.
MAX_VALUE = 0xFFFF_FFFF

_RADIX_DIGITS = {
    16: frozenset("0123456789abcdefABCDEF"),
    10: frozenset("0123456789"),
    8: frozenset("01234567"),
}


class SvdEnum(enum.Enum):
    """Enumeration of SVD keywords, matched without regard to letter case."""

    @classmethod
    def _missing_(cls, value: object) -> Optional[Self]:
        if isinstance(value, str):
            folded = {m.value.casefold(): m for m in cls}
            return folded.get(value.casefold())
        return None


def to_int(number: str) -> int:
    """
    Convert a numeric literal to an unsigned 32-bit integer.

    The radix is given by the prefix: "0x"/"0X" for hexadecimal, a leading "0" followed by more
    digits for octal, and decimal otherwise. Surrounding whitespace is ignored, but signs and
    digit separators are not accepted.

    :param number: Literal as written in the SVD file.
    :raises MalformedInteger: If the digits are invalid for the radix or the value does not fit
                              in 32 bits.
    :return: Decoded integer.
    """
    text = number.strip()

    if text[:2] in ("0x", "0X"):
        radix, digits = 16, text[2:]
    elif text.startswith("0") and len(text) > 1:
        radix, digits = 8, text[1:]
    else:
        radix, digits = 10, text

    if not digits or not set(digits) <= _RADIX_DIGITS[radix]:
        raise MalformedInteger(number, f"invalid base {radix} digits")

    value = int(digits, base=radix)
    if value > MAX_VALUE:
        raise MalformedInteger(number, "value does not fit in 32 bits")

    return value


class SvdElement(objectify.ObjectifiedElement):
    """Common base of the element classes bound to SVD tags."""

    TAG: str

    def __repr__(self) -> str:
        # Shown in tracebacks of parse errors, so keep the source line and the ancestry
        name = self.findtext("name")
        return self.describe(name=name) if name else self.describe()

    def describe(self, **details: Any) -> str:
        where = self.tag if self.sourceline is None else f"{self.tag}:{self.sourceline}"
        text = f"[{where} {details}]" if details else f"[{where}]"

        parent = self.getparent()
        return text if parent is None else f"{text} in {parent!r}"


class SvdIntElement(objectify.IntElement):
    """Integer element decoded with `to_int` instead of the Python literal syntax."""

    def _init(self) -> None:
        self._setValueParser(to_int)


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


# Marks a binding without a fallback value.
NO_DEFAULT = _NoDefault()


E = TypeVar("E", bound=objectify.ObjectifiedElement)
T = TypeVar("T")


class _Binding(Generic[T]):
    """Descriptor reading one piece of data from the element it is accessed on."""

    def __init__(self, name: str, default: Union[T, _NoDefault]) -> None:
        self.name: str = name
        self.default: Union[T, _NoDefault] = default

    @overload
    def __get__(self, node: Literal[None], owner: Optional[Type] = None) -> Self:
        ...

    @overload
    def __get__(self, node: E, owner: Optional[Type] = None) -> T:
        ...

    def __get__(self, node: Optional[E], owner: Any = None) -> Union[T, Self]:
        if node is None:
            return self

        try:
            return self._fetch(node)
        except AttributeError:
            if self.default is NO_DEFAULT:
                raise
            return self.default  # type: ignore

    def _fetch(self, node: Any) -> T:
        raise NotImplementedError


class Elem(_Binding[T]):
    """Binding to the first child element with a given tag."""

    def __init__(
        self,
        name: str,
        element_class: Type[objectify.ObjectifiedElement],
        /,
        *,
        default: Union[T, _NoDefault] = NO_DEFAULT,
    ) -> None:
        """
        :param name: Tag of the child element.
        :param element_class: Class that lxml instantiates for the child element.
        :param default: Value used when the child is absent.
        """
        super().__init__(name, default)
        self.element_class: Type[objectify.ObjectifiedElement] = element_class

    def _fetch(self, node: Any) -> T:
        child = node.__getattr__(self.name)
        if issubclass(self.element_class, objectify.ObjectifiedDataElement):
            return child.pyval
        return child


class Attr(_Binding[T]):
    """Binding to a XML attribute of the element."""

    def __init__(self, name: str, /, *, default: Union[T, _NoDefault] = NO_DEFAULT) -> None:
        super().__init__(name, default)

    def _fetch(self, node: Any) -> T:
        value = node.get(self.name)
        if value is None:
            raise AttributeError(f"{node!r} has no attribute {self.name}")
        return value


S = TypeVar("S", bound=SvdElement)


class ElementRegistry:
    """Collects the element classes used to build the lxml class lookup for a SVD document."""

    def __init__(self) -> None:
        self._classes: List[Type[SvdElement]] = []
        self._children: Dict[Type[SvdElement], Dict[str, Elem]] = {}

    def register(self, element_class: Type[S], /) -> Type[S]:
        """Class decorator adding the class and its child element bindings to the registry."""
        self._children[element_class] = dict(
            inspect.getmembers(element_class, lambda m: isinstance(m, Elem))
        )
        self._classes.append(element_class)
        return element_class

    @property
    def classes(self) -> List[Type[SvdElement]]:
        return list(self._classes)

    def children(self, element_class: Type[SvdElement]) -> Mapping[str, Elem]:
        """Child element bindings declared on a registered class, keyed by attribute name."""
        try:
            return self._children[element_class]
        except KeyError as e:
            raise ValueError(f"{element_class} is not a registered SVD element") from e


def enum_element(enum_cls: Type[SvdEnum]) -> Type[SvdElement]:
    """Make a data element class whose value is a member of the given enumeration."""

    class _EnumElement(SvdElement, objectify.ObjectifiedDataElement):
        @property
        def pyval(self) -> SvdEnum:
            return enum_cls((self.text or "").strip())

        def __repr__(self) -> str:
            return self.describe(text=self.text)

    _EnumElement.__name__ = f"{enum_cls.__name__}Element"
    return _EnumElement


def child_elements(
    element: Optional[objectify.ObjectifiedElement], *tags: str
) -> Iterator[Any]:
    """Children of an element with one of the given tags, or nothing if there is no element."""
    if element is None:
        return iter(())
    return element.iterchildren(*tags)  # type: ignore


def text_elem(tag: str, **kwargs: Any) -> Elem:
    return Elem(tag, objectify.StringElement, **kwargs)


def int_elem(tag: str, **kwargs: Any) -> Elem:
    return Elem(tag, SvdIntElement, **kwargs)
