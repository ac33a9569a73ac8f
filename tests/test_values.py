"""
probkit value layer tests

Tests the scalar building blocks:
1. Interval construction and boundary tags
2. Containment and sub-intervals
3. Variant tags, accessors and casts
4. Variant ordering across tags
5. Boolean and typed scanning
6. Match operations
"""

from datetime import datetime

import pytest

from probkit.errors import BoolScanError, CastError
from probkit.interval import Bound, Interval, ScalarType
from probkit.variant import Operation, Var, scan_as, scan_bool


# ============================================================================
# 1. Interval construction
# ============================================================================

def test_two_values_are_ordered():
    itvl = Interval(1.0, 0.0, Bound.RIGHT_OPEN)
    assert itvl.low == 0.0
    assert itvl.high == 1.0
    assert itvl.left_closed
    assert not itvl.right_closed


def test_single_value_defaults_to_right_infinite():
    itvl = Interval(0.5)
    assert itvl.low == 0.5
    assert itvl.right_full
    assert not itvl.left_full
    assert itvl.contains(1e300)
    assert not itvl.contains(0.4)


def test_single_value_left_infinite():
    itvl = Interval(0.5, bounds=Bound.LEFT_INFINITE)
    assert itvl.left_full
    assert itvl.high == 0.5
    assert itvl.contains(-1e300)
    assert not itvl.contains(0.6)
    assert itvl.is_left_infinite and not itvl.is_right_infinite
    assert itvl.is_left_closed and itvl.is_right_closed


def test_full_interval_needs_type():
    with pytest.raises(TypeError):
        Interval()
    full = Interval(scalar_type=ScalarType.INT)
    assert full.is_full
    assert full.contains(-(2 ** 63))


def test_string_domain_has_no_maximum():
    assert ScalarType.STRING.domain_max is None
    itvl = Interval("m")
    assert itvl.contains("zebra")
    assert not itvl.contains("apple")


def test_empty_interval():
    assert Interval(1.0, 1.0, Bound.OPEN).is_empty
    assert not Interval.point(1.0).is_empty


# ============================================================================
# 2. Containment
# ============================================================================

def test_half_open_containment():
    itvl = Interval(0.0, 1.0, Bound.RIGHT_OPEN)
    assert 0.0 in itvl
    assert 0.999 in itvl
    assert 1.0 not in itvl


def test_open_sides():
    itvl = Interval(0, 10, Bound.OPEN)
    assert not itvl.contains(0)
    assert itvl.contains(5)
    assert not itvl.contains(10)


def test_sub_interval():
    inner = Interval(0.0, 1.0)
    outer = Interval(-1.0, 2.0)
    assert inner.is_sub_interval_of(outer)
    assert not outer.is_sub_interval_of(inner)


def test_sub_interval_at_shared_boundary():
    closed = Interval(0.0, 1.0)
    half_open = Interval(0.0, 1.0, Bound.RIGHT_OPEN)
    assert half_open.is_sub_interval_of(closed)
    assert not closed.is_sub_interval_of(half_open)


def test_sub_interval_of_infinite():
    assert Interval(3.0, 4.0).is_sub_interval_of(Interval(0.0))
    assert not Interval(0.0).is_sub_interval_of(Interval(3.0, 4.0))


def test_intervals_of_different_types_are_not_nested():
    assert not Interval(0, 1).is_sub_interval_of(Interval(-1.0, 2.0))


# ============================================================================
# 3. Variant tags
# ============================================================================

def test_tags():
    assert Var(True).tag == "bool"
    assert Var(3).tag == "int"
    assert Var(3, ScalarType.UINT).tag == "uint"
    assert Var("a", ScalarType.CHAR).tag == "char"
    assert Var(1.5).tag == "float"
    assert Var("text").tag == "string"
    assert Var(Interval(0.0, 1.0)).tag == "interval<float>"


def test_int_is_widened_for_float():
    v = Var(2, ScalarType.FLOAT)
    assert v.value == 2.0
    assert isinstance(v.value, float)


def test_invalid_payload_rejected():
    with pytest.raises(ValueError):
        Var(-1, ScalarType.UINT)
    with pytest.raises(ValueError):
        Var("ab", ScalarType.CHAR)


def test_accessors_and_cast_error():
    v = Var(7, ScalarType.UINT)
    assert v.as_uint() == 7
    with pytest.raises(CastError) as info:
        v.as_int()
    assert info.value.from_tag == "uint"
    assert info.value.to_tag == "int"
    assert isinstance(info.value, TypeError)


def test_interval_accessor():
    itvl = Interval(0.0, 1.0)
    assert Var(itvl).as_interval() == itvl
    with pytest.raises(CastError):
        Var(0.5).as_interval()
    assert Var(0.5).to_interval() == Interval.point(0.5)


def test_str_forms():
    assert str(Var(True)) == "true"
    assert str(Var(False)) == "false"
    assert str(Var(datetime(2020, 1, 2, 3, 4, 5))) == "2020-01-02 03:04:05"


# ============================================================================
# 4. Ordering
# ============================================================================

def test_same_tag_orders_by_payload():
    assert Var(1) < Var(2)
    assert Var("apple") < Var("banana")


def test_different_tags_order_by_tag_name():
    # "bool" < "float" < "int" < "string"
    assert Var(True) < Var(0.0)
    assert Var(99.0) < Var(-5)
    assert Var(10 ** 6) < Var("a")


def test_equality_requires_same_tag():
    assert Var(1) != Var(1, ScalarType.UINT)
    assert Var(1.0) != Var(1)
    assert len({Var(1), Var(1), Var(1, ScalarType.UINT)}) == 2


def make_one_value_per_tag() -> list[Var]:
    """One value of every tag, in ascending tag-name order."""
    return [
        Var(False),
        Var("z", ScalarType.CHAR),
        Var(datetime(1999, 12, 31)),
        Var(-2.5),
        Var(-7),
        Var(Interval(0.0, 1.0)),
        Var(Interval(3, 4)),
        Var(""),
        Var(0, ScalarType.UINT),
    ]


def test_total_order_across_all_tags():
    ordered = make_one_value_per_tag()
    assert [v.tag for v in ordered] == sorted(v.tag for v in ordered)
    assert sorted(reversed(ordered)) == ordered
    for i, a in enumerate(ordered):
        for j, b in enumerate(ordered):
            # exactly one of a < b, a == b, b < a
            assert [a < b, a == b, b < a].count(True) == 1
            assert (a < b) == (i < j)
            assert (a <= b) == (i <= j)
            for c in ordered:
                if a < b and b < c:
                    assert a < c


def test_total_order_within_interval_tag():
    narrow = Var(Interval(0.0, 1.0))
    wide = Var(Interval(0.0, 2.0))
    assert narrow < wide
    assert not wide < narrow
    assert narrow != wide


# ============================================================================
# 5. Scanning
# ============================================================================

@pytest.mark.parametrize("literal", ["true", "YES", "On", "t", "y", "1"])
def test_scan_true(literal):
    assert scan_bool(literal) is True


@pytest.mark.parametrize("literal", ["false", "No", "OFF", "f", "n", "0"])
def test_scan_false(literal):
    assert scan_bool(literal) is False


def test_scan_bool_rejects_unknown_literal():
    with pytest.raises(BoolScanError) as info:
        scan_bool("maybe")
    assert info.value.literal == "maybe"


def test_scan_as():
    assert scan_as(ScalarType.UINT, " 3 ") == Var(3, ScalarType.UINT)
    assert scan_as(ScalarType.FLOAT, "0.25") == Var(0.25)
    assert scan_as(ScalarType.BOOL, "yes") == Var(True)
    assert scan_as(ScalarType.CHAR, "x") == Var("x", ScalarType.CHAR)
    assert scan_as(ScalarType.STRING, "heavy") == Var("heavy")
    assert scan_as(ScalarType.DATE, "2021-06-01").value == datetime(2021, 6, 1)
    with pytest.raises(ValueError):
        scan_as(ScalarType.INT, "three")


# ============================================================================
# 6. Operations
# ============================================================================

def test_ordering_operations():
    assert Operation.LESS(Var(1), Var(2))
    assert Operation.LESS_EQUAL(Var(2), Var(2))
    assert Operation.GREATER(Var(3.0), Var(2.0))
    assert Operation.GREATER_EQUAL(Var(2.0), Var(2.0))
    assert not Operation.GREATER(Var(1), Var(2))


def test_ordering_operations_across_tags_never_match():
    assert not Operation.LESS(Var(1), Var(2.0))
    assert not Operation.GREATER_EQUAL(Var(5.0), Var(1))


def test_is_element_of():
    unit = Var(Interval(0.0, 1.0, Bound.RIGHT_OPEN))
    assert Operation.IS_ELEMENT_OF(Var(0.5), unit)
    assert not Operation.IS_ELEMENT_OF(Var(1.0), unit)
    assert Operation.IS_ELEMENT_OF(Var(Interval(0.2, 0.4)), unit)
    assert not Operation.IS_ELEMENT_OF(Var(Interval(0.5, 1.5)), unit)
    # scalar rhs means equality
    assert Operation.IS_ELEMENT_OF(Var(3), Var(3))
    assert not Operation.IS_ELEMENT_OF(Var(3), Var(4))


def test_placeholder_never_matches():
    assert not Operation.PLACEHOLDER(Var(1), Var(1))
    assert Operation.EQUALS.symbol == "="
    assert Operation.IS_ELEMENT_OF.symbol == "in"
