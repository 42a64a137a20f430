"""Tests for the single-position lifecycle helpers."""

import pytest

from levelzone.engine.position import (
    REASON_EXIT,
    REASON_SL,
    REASON_TP1,
    REASON_TP2,
    check_box_exit,
    check_exit,
    check_milestones,
    close_position,
    derive_targets,
    exit_price_for,
    open_position,
    reason_from_event,
)
from levelzone.strategy.models import Bar


def _bar(o, h, l, c, time=None):
    return Bar(open=o, high=h, low=l, close=c, time=time)


def _long(entry=102.0, anchor=102.0, distances=(5.0, 5.0, 10.0)):
    return open_position("long", entry, anchor, distances, 3, _bar(105.0, 105.5, 101.5, 103.0, "t3"))


def _short(entry=98.0, anchor=98.0, distances=(5.0, 5.0, 10.0)):
    return open_position("short", entry, anchor, distances, 3, _bar(95.0, 98.5, 94.5, 96.0, "t3"))


class TestOpenPosition:
    def test_targets_measured_from_anchor(self):
        assert derive_targets("long", 100.0, 5, 5, 10) == (95.0, 105.0, 110.0)
        assert derive_targets("short", 100.0, 5, 5, 10) == (105.0, 95.0, 90.0)

    def test_entry_can_differ_from_anchor(self):
        position = _long(entry=104.0, anchor=100.5, distances=(1.5, 1.5, 3.0))
        assert position.entry == 104.0
        assert (position.sl, position.tp1, position.tp2) == (99.0, 102.0, 103.5)

    def test_snapshot_of_opening_bar(self):
        position = _long()
        assert position.opened_bar == 3
        assert position.opened_time == "t3"
        assert position.opened_at["low"] == 101.5
        assert not (position.tp1_reached or position.tp2_reached or position.touched)

    def test_rejects_unknown_side(self):
        with pytest.raises(ValueError, match="side"):
            open_position("flat", 100.0, 100.0, (1, 1, 2), 0, _bar(100, 101, 99, 100))

    def test_public_projection_hides_anchor(self):
        public = _long().to_public()
        assert "anchor" not in public
        assert public["side"] == "long"

    def test_close_copies_targets(self):
        position = _long()
        closed = close_position(position, REASON_TP2, 112.0, 5, _bar(107.5, 113.0, 107.0, 112.5, "t5"))
        assert (closed.entry, closed.sl, closed.tp1, closed.tp2) == (102.0, 97.0, 107.0, 112.0)
        assert closed.closed_bar == 5
        assert closed.closed_time == "t5"
        assert closed.to_dict()["reason"] == "TP2"


class TestMilestones:
    def test_tp1_then_tp2(self):
        position = _long()
        position, hits = check_milestones(position, _bar(103.0, 108.0, 102.0, 107.5), 103.0)
        assert hits == [("tp1_reached", 107.0)]
        assert position.tp1_reached and not position.tp2_reached

        position, hits = check_milestones(position, _bar(107.5, 113.0, 107.0, 112.5), 107.5)
        assert hits == [("tp2_reached", 112.0)]

    def test_milestone_reported_once(self):
        position = _long()
        position, _ = check_milestones(position, _bar(103.0, 108.0, 102.0, 107.5), 103.0)
        _, hits = check_milestones(position, _bar(106.0, 108.0, 105.0, 106.5), 106.0)
        assert hits == []

    def test_gap_beyond_target_is_ignored(self):
        """Previous close already past tp1 → not counted."""
        position = _long()
        position, hits = check_milestones(position, _bar(110.0, 111.0, 109.0, 110.5), 110.0)
        assert hits == []
        assert not position.tp1_reached

    def test_short_uses_low(self):
        position = _short()
        position, hits = check_milestones(position, _bar(96.0, 96.5, 92.5, 93.0), 96.0)
        assert hits == [("tp1_reached", 93.0)]

    def test_no_previous_close(self):
        position, hits = check_milestones(_long(), _bar(103.0, 120.0, 102.0, 115.0), None)
        assert hits == []
        assert not position.tp1_reached


class TestCheckExit:
    def test_no_exit(self):
        assert check_exit(_long(), _bar(103.0, 105.0, 100.0, 104.0)) is None

    def test_long_stop_loss(self):
        assert check_exit(_long(), _bar(100.0, 101.0, 96.0, 97.5)) == (REASON_SL, 97.0)

    def test_long_tp2(self):
        assert check_exit(_long(), _bar(110.0, 112.0, 109.0, 111.5)) == (REASON_TP2, 112.0)

    def test_stop_loss_wins_when_both_hit(self):
        wide = _bar(100.0, 115.0, 90.0, 105.0)
        assert check_exit(_long(), wide) == (REASON_SL, 97.0)
        assert check_exit(_short(), wide) == (REASON_SL, 103.0)

    def test_short_tp2(self):
        assert check_exit(_short(), _bar(90.0, 91.0, 87.5, 88.5)) == (REASON_TP2, 88.0)


class TestBoxExit:
    def _position(self):
        # long from 2002 with the action edge at 2000.5
        return _long(entry=2002.0, anchor=2000.5, distances=(1.5, 1.5, 3.0))

    def test_stop_loss_first(self):
        check = check_box_exit(self._position(), _bar(2001.0, 2004.0, 1998.0, 2001.0))
        assert [t for t, _ in check.hits] == ["sl_hit"]
        assert check.exit
        assert not check.rebox

    def test_stop_loss_close_beyond_reboxes(self):
        check = check_box_exit(self._position(), _bar(2001.0, 2001.5, 1997.5, 1998.0))
        assert check.exit and check.rebox

    def test_tp2_before_touch(self):
        check = check_box_exit(self._position(), _bar(2002.0, 2003.6, 2000.0, 2003.0))
        assert [t for t, _ in check.hits] == ["tp2_hit"]
        assert check.position.tp2_reached
        assert not check.position.touched

    def test_touch_is_not_an_exit(self):
        check = check_box_exit(self._position(), _bar(2001.5, 2001.8, 2000.4, 2001.0))
        assert [t for t, _ in check.hits] == ["touched"]
        assert check.position.touched
        assert not check.exit

    def test_tp1_after_earlier_touch(self):
        first = check_box_exit(self._position(), _bar(2001.5, 2001.8, 2000.4, 2001.0))
        check = check_box_exit(first.position, _bar(2001.0, 2002.3, 2000.9, 2002.1))
        assert [t for t, _ in check.hits] == ["tp1_hit"]
        assert check.exit
        assert check.position.tp1_reached


class TestCloseReason:
    def test_reason_from_event(self):
        assert reason_from_event("sl_hit") == REASON_SL
        assert reason_from_event("tp2_hit") == REASON_TP2
        assert reason_from_event("tp1_hit") == REASON_TP1

    def test_unknown_event_falls_back_to_exit(self):
        assert reason_from_event("touched") == REASON_EXIT
        assert reason_from_event(None) == REASON_EXIT

    def test_exit_price_per_reason(self):
        position = _long()
        bar = _bar(103.0, 104.0, 102.0, 103.5)
        assert exit_price_for(position, REASON_SL, bar) == 97.0
        assert exit_price_for(position, REASON_TP2, bar) == 112.0
        assert exit_price_for(position, REASON_TP1, bar) == 107.0

    def test_exit_fallback_uses_first_level_hit(self):
        position = _long()
        assert exit_price_for(position, REASON_EXIT, _bar(100.0, 101.0, 96.0, 98.0)) == 97.0
        assert exit_price_for(position, REASON_EXIT, _bar(110.0, 113.0, 109.0, 111.0)) == 112.0
        assert exit_price_for(position, REASON_EXIT, _bar(104.0, 108.0, 103.0, 107.5)) == 107.0
