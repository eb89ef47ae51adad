import pytest

from pyticketgate.exceptions import ValidationError
from pyticketgate.models import CodeDefinition
from pyticketgate.resolver import (
    ExactSelector,
    PrefixSelector,
    RangeSelector,
    find_overlaps,
    parse_selector,
    resolve,
)


def _definition(definition_id: str, selector: str, *, active: bool = True) -> CodeDefinition:
    return CodeDefinition(
        id=definition_id,
        name=definition_id.title(),
        selector=selector,
        duration_minutes=60,
        price=100,
        price_per_extra_minute=5,
        active=active,
    )


def test_parse_selector_forms() -> None:
    assert parse_selector("03041000") == ExactSelector(code="03041000")
    assert parse_selector("200*") == PrefixSelector(prefix="200")
    assert parse_selector("01000-01999") == RangeSelector(start=1000, end=1999, width=5)
    assert parse_selector(" 1000 - 1999 ") == RangeSelector(start=1000, end=1999, width=4)


@pytest.mark.parametrize("selector", ["", "abc-def", "2000-1000"])
def test_parse_selector_rejects_invalid(selector: str) -> None:
    with pytest.raises(ValidationError):
        parse_selector(selector)


def test_range_compares_as_integers() -> None:
    definitions = [_definition("range", "900-1100")]
    # "1000" < "900" lexicographically but lies inside the numeric range.
    assert resolve("1000", definitions) == definitions[0]
    assert resolve("0000950", definitions) == definitions[0]
    assert resolve("1101", definitions) is None


def test_wildcard_prefix_match() -> None:
    definitions = [_definition("kids", "0304*")]
    assert resolve("03041234", definitions) == definitions[0]
    assert resolve("03051234", definitions) is None


def test_exact_match_only() -> None:
    definitions = [_definition("single", "03041000")]
    assert resolve("03041000", definitions) == definitions[0]
    assert resolve("030410001", definitions) is None


def test_inactive_definitions_are_skipped() -> None:
    inactive = _definition("old", "0304*", active=False)
    active = _definition("new", "03041000")
    assert resolve("03041000", [inactive, active]) == active


def test_first_match_in_order_wins() -> None:
    broad = _definition("broad", "0304*")
    narrow = _definition("narrow", "03041000")
    assert resolve("03041000", [broad, narrow]) == broad
    assert resolve("03041000", [narrow, broad]) == narrow


def test_resolve_is_repeatable() -> None:
    definitions = [_definition("a", "1000-1999"), _definition("b", "2*")]
    first = resolve("2500", definitions)
    assert first == resolve("2500", definitions) == definitions[1]


def test_find_overlaps_reports_pairs() -> None:
    definitions = [
        _definition("range", "03040000-03049999"),
        _definition("prefix", "0304*"),
        _definition("exact", "05000000"),
        _definition("other", "06*"),
        _definition("inactive", "05*", active=False),
    ]
    overlaps = find_overlaps(definitions)
    assert [(first.id, second.id) for first, second in overlaps] == [("range", "prefix")]


def test_find_overlaps_prefix_outside_range() -> None:
    definitions = [_definition("range", "1000-1999"), _definition("prefix", "2*")]
    assert find_overlaps(definitions) == []


def test_find_overlaps_exact_inside_range() -> None:
    definitions = [_definition("range", "1000-1999"), _definition("exact", "1500")]
    assert len(find_overlaps(definitions)) == 1
