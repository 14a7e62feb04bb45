"""Parser for the resolution specification mini-language.

Grammar::

    resolutions   := resolution (',' ws* resolution)*
    resolution    := sizes | bidirectional
    bidirectional := '[' sizes ']'
    sizes         := size 'x' size | size
    size          := range | scalar
    range         := uint ':' uint (':' uint)?
    scalar        := uint

A lone ``size`` stands for square resolutions, ``WxH`` is the cross product of
both sides (width outer, height inner) and brackets add the swapped orientation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from ..models import ResolutionPair, ResolutionSet

logger = logging.getLogger(__name__)

_MAX_UINT = 2**32 - 1
_WHITESPACE = " \t\r\n"


class ResolutionSpecError(ValueError):
    """Raised for malformed resolution specifications."""

    def __init__(
        self,
        message: str,
        text: str = "",
        position: int = 0,
        expected: Sequence[str] = (),
    ) -> None:
        self.message = message
        self.text = text
        self.position = position
        self.expected = tuple(expected)
        super().__init__(str(self))

    def __str__(self) -> str:
        details = f"{self.message} at position {self.position}"
        if self.expected:
            details += f" (expected {' or '.join(self.expected)})"
        if self.text:
            details += f": {self.text!r}"
        return details


class ResolutionSetError(ValueError):
    """Raised when a parsed specification does not yield a usable set."""


def expand_range(start: int, end: int, step: int = 1) -> List[int]:
    """Return ``start, start + step, ...`` up to and including ``end``."""

    if step <= 0:
        raise ResolutionSpecError(f"Range step must be positive, got {step}")
    if start < 0 or end < 0:
        raise ResolutionSpecError(f"Range bounds must be non-negative, got {start}:{end}")
    return list(range(start, end + 1, step))


@dataclass(frozen=True, slots=True)
class Scalar:
    value: int

    def expand(self) -> List[int]:
        return [self.value]


@dataclass(frozen=True, slots=True)
class Range:
    start: int
    end: int
    step: int = 1

    def expand(self) -> List[int]:
        return expand_range(self.start, self.end, self.step)


Size = Scalar | Range


@dataclass(frozen=True, slots=True)
class Sizes:
    width: Size
    height: Optional[Size] = None

    def expand(self) -> List[ResolutionPair]:
        widths = self.width.expand()
        if self.height is None:
            return [ResolutionPair(size, size) for size in widths]
        heights = self.height.expand()
        return [ResolutionPair(width, height) for width in widths for height in heights]


@dataclass(frozen=True, slots=True)
class Bidirectional:
    sizes: Sizes

    def expand(self) -> List[ResolutionPair]:
        pairs: List[ResolutionPair] = []
        for pair in self.sizes.expand():
            pairs.append(pair)
            pairs.append(ResolutionPair(pair.height, pair.width))
        return pairs


@dataclass(frozen=True, slots=True)
class Resolutions:
    terms: tuple[Sizes | Bidirectional, ...]

    def expand(self) -> List[ResolutionPair]:
        return [pair for term in self.terms for pair in term.expand()]


class _SpecParser:
    __slots__ = ("text", "pos")

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse(self) -> Resolutions:
        terms = [self._resolution()]
        while self._peek() == ",":
            self.pos += 1
            while self._peek() is not None and self._peek() in _WHITESPACE:
                self.pos += 1
            terms.append(self._resolution())
        if self.pos != len(self.text):
            self._fail("Unexpected trailing input", ("','", "end of input"))
        return Resolutions(tuple(terms))

    def _resolution(self) -> Sizes | Bidirectional:
        if self._peek() == "[":
            self.pos += 1
            sizes = self._sizes()
            self._expect("]")
            return Bidirectional(sizes)
        if not self._at_digit():
            self._fail("Expected a resolution", ("digit", "'['"))
        return self._sizes()

    def _sizes(self) -> Sizes:
        width = self._size()
        if self._peek() == "x":
            self.pos += 1
            return Sizes(width, self._size())
        return Sizes(width)

    def _size(self) -> Size:
        start = self._uint()
        if self._peek() != ":":
            return Scalar(start)
        self.pos += 1
        end = self._uint()
        step = 1
        step_pos = self.pos
        if self._peek() == ":":
            self.pos += 1
            step_pos = self.pos
            step = self._uint()
        if step == 0:
            self.pos = step_pos
            self._fail("Range step must be positive", ("non-zero step",))
        return Range(start, end, step)

    def _uint(self) -> int:
        begin = self.pos
        while self._at_digit():
            self.pos += 1
        if begin == self.pos:
            self._fail("Expected an unsigned integer", ("digit",))
        value = int(self.text[begin : self.pos])
        if value > _MAX_UINT:
            self.pos = begin
            self._fail("Integer literal out of range", (f"value <= {_MAX_UINT}",))
        return value

    def _expect(self, token: str) -> None:
        if self._peek() != token:
            self._fail(f"Expected {token!r}", (repr(token),))
        self.pos += 1

    def _peek(self) -> Optional[str]:
        if self.pos < len(self.text):
            return self.text[self.pos]
        return None

    def _at_digit(self) -> bool:
        char = self._peek()
        return char is not None and "0" <= char <= "9"

    def _fail(self, message: str, expected: Sequence[str]) -> None:
        raise ResolutionSpecError(message, self.text, self.pos, expected)


def parse_spec(text: str) -> Resolutions:
    """Parse *text* into its syntax tree."""

    return _SpecParser(text).parse()


def parse_resolutions(text: str) -> List[ResolutionPair]:
    """Expand *text* into every pair it names, in grammar order (not normalized)."""

    return parse_spec(text).expand()


def normalize_resolutions(pairs: Iterable[ResolutionPair]) -> ResolutionSet:
    resolution_set = ResolutionSet(pairs)
    if not resolution_set:
        raise ResolutionSetError("Resolution specification produced no resolutions")
    invalid = [pair for pair in resolution_set if pair.width == 0 or pair.height == 0]
    if invalid:
        raise ResolutionSetError(
            "Resolutions must have non-zero dimensions: "
            + ", ".join(str(pair) for pair in invalid)
        )
    return resolution_set


def load_resolution_set(text: str) -> ResolutionSet:
    resolution_set = normalize_resolutions(parse_resolutions(text))
    logger.debug("Resolutions: %s", format_resolutions(resolution_set))
    return resolution_set


def format_resolutions(resolutions: Iterable[ResolutionPair]) -> str:
    """Render resolutions in a form :func:`load_resolution_set` accepts."""

    return ",".join(str(pair) for pair in resolutions)
