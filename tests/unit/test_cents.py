"""Tests for pm_common.cents: money helpers."""

import math

import pytest

from src.pm_common.cents import cents_to_display, floor_cents, percent


class TestCentsToDisplay:
    def test_basic(self) -> None:
        assert cents_to_display(6500) == "$65.00"

    def test_zero(self) -> None:
        assert cents_to_display(0) == "$0.00"

    def test_one_cent(self) -> None:
        assert cents_to_display(1) == "$0.01"

    def test_large(self) -> None:
        assert cents_to_display(150000) == "$1,500.00"

    def test_negative(self) -> None:
        assert cents_to_display(-1200) == "-$12.00"


class TestFloorCents:
    def test_floors(self) -> None:
        assert floor_cents(1180.97) == 1180

    def test_whole(self) -> None:
        assert floor_cents(1000.0) == 1000

    def test_below_one_cent(self) -> None:
        assert floor_cents(0.999) == 0

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_raises(self, value: float) -> None:
        with pytest.raises(ValueError, match="Cannot convert"):
            floor_cents(value)


class TestPercent:
    def test_rounds_to_two_decimals(self) -> None:
        assert percent(0.523809) == 52.38

    def test_even(self) -> None:
        assert percent(0.5) == 50.0
