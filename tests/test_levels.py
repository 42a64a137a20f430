"""Deterministic tests for level ladders and zone classification.

All tests use fixed prices. Same input = same output, always.
"""

import pytest

from levelzone.strategy.levels import (
    first_multiple_down,
    first_multiple_up,
    level_base,
    nearest_multiple,
    pips_to_price,
    price_to_pips,
    process_levels,
)
from levelzone.strategy.zones import (
    CLASSIFIERS,
    check_box,
    classify_crossing,
    get_classifier,
)


# ── Level ladder ─────────────────────────────────────────────────────────


class TestProcessLevels:
    def test_gold_ladder(self):
        """500 pips of 0.01 around 2003 → 5.0 spacing anchored at 2000."""
        levels = process_levels(2003.0, 500, 4, 0.01)
        assert levels.size == pytest.approx(5.0)
        assert levels.up == pytest.approx((2005.0, 2010.0, 2015.0, 2020.0))
        assert levels.dn == pytest.approx((2000.0, 1995.0, 1990.0, 1985.0))
        assert levels.top == pytest.approx(2005.0)
        assert levels.bot == pytest.approx(2000.0)

    def test_ordering_invariant(self):
        for price in (0.7, 13.0, 99.99, 1234.5, 2003.0):
            levels = process_levels(price, 10, 6, 1.0)
            assert all(a < b for a, b in zip(levels.up, levels.up[1:]))
            assert all(a > b for a, b in zip(levels.dn, levels.dn[1:]))
            assert levels.bot <= price < levels.top

    def test_floor_toward_negative_infinity(self):
        """Negative prices anchor below, not toward zero."""
        assert level_base(-3.2, 1.0) == -4.0
        levels = process_levels(-3.2, 1, 2, 1.0)
        assert levels.up == (-3.0, -2.0)
        assert levels.dn == (-4.0, -5.0)

    def test_exact_level_is_its_own_base(self):
        levels = process_levels(30.0, 10, 2, 1.0)
        assert levels.dn[0] == 30.0
        assert levels.up[0] == 40.0

    def test_pip_conversion(self):
        assert pips_to_price(150, 0.01) == pytest.approx(1.5)
        assert price_to_pips(1.5, 0.01) == pytest.approx(150)

    def test_fx_close_on_a_level(self):
        """A close sitting on a level anchors there, not a float-ulp above."""
        levels = process_levels(1.1, 1, 2, 0.0001)
        assert levels.dn == (1.1, 1.0999)
        assert levels.up == (1.1001, 1.1002)
        assert levels.bot <= 1.1 < levels.top


class TestMultiples:
    def test_first_multiple_strictly_above(self):
        assert first_multiple_up(2001.0, 5) == 2005
        assert first_multiple_up(2000.0, 5) == 2005

    def test_first_multiple_strictly_below(self):
        assert first_multiple_down(2001.0, 5) == 2000
        assert first_multiple_down(2000.0, 5) == 1995

    def test_nearest_multiple(self):
        assert nearest_multiple(2001.0, 5) == 2000
        assert nearest_multiple(2003.5, 5) == 2005
        assert nearest_multiple(2000.0, 5) == 2000

    def test_nearest_multiple_tie_goes_down(self):
        assert nearest_multiple(1997.5, 5) == 1995

    def test_fractional_step_yields_one_float_per_level(self):
        for k in range(150, 250):
            level = k * 0.005
            above = first_multiple_up(level - 0.001, 0.005)
            below = first_multiple_down(level + 0.001, 0.005)
            nearest = nearest_multiple(level + 0.0004, 0.005)
            assert above == below == nearest

    def test_fractional_step_strictness(self):
        assert first_multiple_up(1.005, 0.005) == 1.01
        assert first_multiple_down(1.005, 0.005) == 1.0
        assert level_base(1.1, 0.0001) == 1.1


# ── Crossing classifier ──────────────────────────────────────────────────


class TestClassifyCrossing:
    def test_up_cross_through_lower(self):
        assert classify_crossing(96.0, 103.0, 110.0, 100.0) == 100.0

    def test_down_cross_through_upper(self):
        assert classify_crossing(115.0, 105.0, 110.0, 100.0) == 110.0

    def test_full_span_up_resolves_to_upper(self):
        assert classify_crossing(95.0, 115.0, 110.0, 100.0) == 110.0

    def test_full_span_down_resolves_to_lower(self):
        assert classify_crossing(115.0, 95.0, 110.0, 100.0) == 100.0

    def test_inside_band_is_none(self):
        assert classify_crossing(103.0, 105.0, 110.0, 100.0) is None

    def test_touching_a_level_is_not_a_cross(self):
        assert classify_crossing(100.0, 105.0, 110.0, 100.0) is None

    def test_missing_levels(self):
        assert classify_crossing(96.0, 103.0, None, 100.0) is None


# ── Box classifier ───────────────────────────────────────────────────────


class TestCheckBox:
    def test_closed_in_box(self):
        facts = check_box(2000.0, 2000.1, 5, 0.5)
        assert facts.closed_in_box
        assert not facts.pierced_up and not facts.pierced_down
        assert facts.mid == 2000

    def test_pierce_up_uses_box_below(self):
        facts = check_box(1999.0, 2001.0, 5, 0.5)
        assert facts.pierced_up
        assert not facts.closed_in_box and not facts.pierced_down
        assert facts.mid == 2000
        assert facts.level_up == 2005
        assert facts.level_dn == 2000

    def test_pierce_down_uses_box_above(self):
        facts = check_box(2001.0, 1999.2, 5, 0.5)
        assert facts.pierced_down
        assert facts.mid == 2000

    def test_up_body_away_from_boxes(self):
        facts = check_box(2001.0, 2002.0, 5, 0.5)
        assert not (facts.closed_in_box or facts.pierced_up or facts.pierced_down)
        assert facts.mid is None

    def test_at_most_one_flag(self):
        prices = [1996.0, 1998.7, 1999.5, 2000.0, 2000.6, 2002.4, 2004.6, 2006.0]
        for o in prices:
            for c in prices:
                facts = check_box(o, c, 5, 0.5)
                flags = [facts.closed_in_box, facts.pierced_up, facts.pierced_down]
                assert sum(flags) <= 1
                assert (facts.mid is None) == (sum(flags) == 0)


class TestClassifierRegistry:
    def test_lookup(self):
        assert get_classifier("crossing") is classify_crossing
        assert get_classifier("box") is check_box
        assert set(CLASSIFIERS) == {"crossing", "box"}

    def test_unknown(self):
        with pytest.raises(KeyError, match="Unknown classifier"):
            get_classifier("fibonacci")
