"""Map scanned codes to ticket classes.

A :class:`~pyticketgate.models.CodeDefinition` selects codes with one of
three selector forms:

- ``"A-B"``: inclusive numeric range, bounds compared as integers
- ``"P*"``: wildcard prefix
- anything else: exact match

Resolution walks the definitions in the order given and the first active
match wins. Overlapping selectors are not rejected here; use
:func:`find_overlaps` to report them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import lru_cache
from itertools import combinations

from .exceptions import ValidationError
from .models import CodeDefinition
from .util import is_numeric

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExactSelector:
    code: str

    def matches(self, code: str) -> bool:
        return code == self.code


@dataclass(frozen=True, slots=True)
class PrefixSelector:
    prefix: str

    def matches(self, code: str) -> bool:
        return code.startswith(self.prefix)


@dataclass(frozen=True, slots=True)
class RangeSelector:
    start: int
    end: int
    width: int

    def matches(self, code: str) -> bool:
        if not is_numeric(code):
            return False
        return self.start <= int(code) <= self.end


CodeSelector = ExactSelector | PrefixSelector | RangeSelector


@lru_cache(maxsize=512)
def parse_selector(selector: str) -> CodeSelector:
    """Parse a selector string.

    Raises:
        ValidationError: If a range selector has non-numeric or reversed bounds.
    """
    if not isinstance(selector, str) or not selector.strip():
        raise ValidationError("Selector must be a non-empty string.")
    raw = selector.strip()
    if "-" in raw:
        start_raw, _, end_raw = raw.partition("-")
        start_raw = start_raw.strip()
        end_raw = end_raw.strip()
        if not is_numeric(start_raw) or not is_numeric(end_raw):
            raise ValidationError(f"Range selector {raw!r} must have numeric bounds.")
        start, end = int(start_raw), int(end_raw)
        if start > end:
            raise ValidationError(f"Range selector {raw!r} has start after end.")
        return RangeSelector(start=start, end=end, width=max(len(start_raw), len(end_raw)))
    if "*" in raw:
        return PrefixSelector(prefix=raw[: raw.index("*")])
    return ExactSelector(code=raw)


def matches(definition: CodeDefinition, code: str) -> bool:
    return parse_selector(definition.selector).matches(code)


def resolve(code: str, definitions: Iterable[CodeDefinition]) -> CodeDefinition | None:
    """Return the first active definition matching ``code``, or None."""
    for definition in definitions:
        if not definition.active:
            continue
        try:
            selector = parse_selector(definition.selector)
        except ValidationError:
            _LOGGER.warning("Skipping definition %s with invalid selector", definition.id)
            continue
        if selector.matches(code):
            return definition
    return None


def selectors_overlap(first: CodeSelector, second: CodeSelector) -> bool:
    """Return True when some code can match both selectors."""
    if isinstance(first, ExactSelector):
        return second.matches(first.code)
    if isinstance(second, ExactSelector):
        return first.matches(second.code)
    if isinstance(first, PrefixSelector) and isinstance(second, PrefixSelector):
        return first.prefix.startswith(second.prefix) or second.prefix.startswith(first.prefix)
    if isinstance(first, RangeSelector) and isinstance(second, RangeSelector):
        return first.start <= second.end and second.start <= first.end
    prefix, span = (first, second) if isinstance(first, PrefixSelector) else (second, first)
    return _prefix_overlaps_range(prefix, span)


def _prefix_overlaps_range(prefix: PrefixSelector, span: RangeSelector) -> bool:
    if not prefix.prefix:
        return True
    if not is_numeric(prefix.prefix) or len(prefix.prefix) > span.width:
        return False
    # Codes carrying the prefix at the range's width form one contiguous block.
    padding = span.width - len(prefix.prefix)
    low = int(prefix.prefix + "0" * padding)
    high = int(prefix.prefix + "9" * padding)
    return low <= span.end and span.start <= high


def find_overlaps(
    definitions: Sequence[CodeDefinition],
) -> list[tuple[CodeDefinition, CodeDefinition]]:
    """Return pairs of active definitions whose selectors can match the same code."""
    parsed: list[tuple[CodeDefinition, CodeSelector]] = []
    for definition in definitions:
        if not definition.active:
            continue
        try:
            parsed.append((definition, parse_selector(definition.selector)))
        except ValidationError:
            continue
    overlaps = []
    for (first, first_selector), (second, second_selector) in combinations(parsed, 2):
        if selectors_overlap(first_selector, second_selector):
            overlaps.append((first, second))
    return overlaps
