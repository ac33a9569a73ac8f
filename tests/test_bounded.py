"""
probkit bounded integer tests

Tests the bounded integer types:
1. Class declaration and the invalid sentinel
2. Resolvers (modulo, invalid, throw)
3. Arithmetic
4. Conversion between ranges (scale, circular scale)
5. Iteration
"""

import pytest

from probkit.bounded import (
    BoundedInt,
    ConvertCircularScale,
    IntType,
    ResolveInvalid,
    ResolveThrow,
)
from probkit.errors import OutOfRangeError


class Degrees(BoundedInt, low=0, high=359, converter=ConvertCircularScale):
    pass


class SignedDegrees(BoundedInt, low=-179, high=180, converter=ConvertCircularScale):
    pass


class Percent(BoundedInt, low=0, high=100):
    pass


class Permille(BoundedInt, low=0, high=1000):
    pass


class Dice(BoundedInt, low=1, high=6, resolver=ResolveInvalid):
    pass


class Strict(BoundedInt, low=1, high=3, resolver=ResolveThrow):
    pass


class Byte(BoundedInt, low=-128, high=100, int_type=IntType.INT8):
    pass


# ============================================================================
# 1. Declaration
# ============================================================================

def test_default_value_is_low():
    assert Degrees().value == 0
    assert Dice().value == 1


def test_invalid_sentinel():
    assert Degrees.INVALID == IntType.INT64.min
    # low already sits on the type minimum, so the sentinel moves to the maximum
    assert Byte.INVALID == 127
    assert not Degrees.invalid().is_valid()


def test_bad_declarations():
    with pytest.raises(ValueError):
        class Backwards(BoundedInt, low=5, high=1):
            pass
    with pytest.raises(ValueError):
        class TooWide(BoundedInt, low=0, high=300, int_type=IntType.UINT8):
            pass
    with pytest.raises(ValueError):
        class NoRoom(BoundedInt, low=0, high=255, int_type=IntType.UINT8):
            pass


# ============================================================================
# 2. Resolvers
# ============================================================================

def test_modulo_wraps():
    assert Degrees(360).value == 0
    assert Degrees(720).value == 0
    assert Degrees(-1).value == 359
    assert SignedDegrees(181).value == -179


def test_invalid_resolver():
    assert not Dice(7).is_valid()
    assert not Dice(0).is_valid()
    assert Dice(6).value == 6


def test_throw_resolver():
    with pytest.raises(OutOfRangeError) as info:
        Strict(4)
    assert (info.value.low, info.value.high, info.value.value) == (1, 3, 4)
    assert isinstance(info.value, ValueError)


# ============================================================================
# 3. Arithmetic
# ============================================================================

def test_addition_wraps():
    assert (Degrees(350) + 20).value == 10
    assert (Degrees(10) - 20).value == 350
    assert (Degrees(100) * 4).value == 40


def test_invalid_operands_stay_invalid():
    assert not (Dice.invalid() + 1).is_valid()
    assert not (Dice(2) + Dice.invalid()).is_valid()
    assert not (Dice(5) + 3).is_valid()


def test_throw_arithmetic():
    with pytest.raises(OutOfRangeError):
        Strict(3) + 1


def test_comparison_with_ints():
    assert Degrees(10) == 10
    assert Degrees(10) < Degrees(11)
    assert Degrees(10) < 20
    assert int(Degrees(42)) == 42


# ============================================================================
# 4. Conversion
# ============================================================================

def test_linear_scale():
    assert Permille(Percent(50)).value == 500
    assert Percent(Permille(1000)).value == 100


def test_circular_scale():
    assert SignedDegrees(Degrees(270)).value == -90
    assert SignedDegrees(Degrees(90)).value == 90
    assert Degrees(SignedDegrees(-90)).value == 270


def test_circular_scale_rejects_unsupported_ranges():
    with pytest.raises(OutOfRangeError):
        ConvertCircularScale.convert(5, 1, 10, 0, 359)


def test_invalid_converts_to_invalid():
    assert not Percent(Dice.invalid()).is_valid()


# ============================================================================
# 5. Iteration
# ============================================================================

def test_iterate_until_finish():
    assert [d.value for d in Dice.values(2, 5)] == [2, 3, 4]


def test_iterate_whole_range_under_invalid_resolver():
    assert [d.value for d in Dice.values()] == [1, 2, 3, 4, 5, 6]


def test_iterate_reverse():
    assert [d.value for d in Dice.values(reverse=True)] == [6, 5, 4, 3, 2, 1]


def test_modulo_iteration_stops_after_one_period():
    class Small(BoundedInt, low=0, high=3):
        pass

    assert [s.value for s in Small.values(2)] == [2, 3, 0, 1]


def test_throw_iteration_ends_at_range_edge():
    assert [s.value for s in Strict.values()] == [1, 2, 3]


def test_iterator_steps():
    it = Degrees.begin(358)
    it += 3
    assert it == 1
    it -= 2
    assert it == 359
    assert (Degrees.begin() + 10).deref() == Degrees(10)
    assert Dice.end().deref().is_valid() is False
