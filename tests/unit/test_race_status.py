"""Tests for the derived race status."""

from datetime import date, datetime, timedelta, timezone

from turfdesk.race_status import (
    FINISHED,
    NOT_STARTED,
    RUNNING,
    race_duration,
    race_start,
    race_status,
)

DAY = date(2026, 3, 14)
START = datetime(2026, 3, 14, 14, 30, tzinfo=timezone.utc)


class TestRaceStatus:
    def test_before_start(self):
        assert race_status(DAY, "14:30", 1650, now=START - timedelta(minutes=1)) == NOT_STARTED

    def test_during_race(self):
        # 1650m at 16.5 m/s is 100s, plus 60s at the start
        assert race_status(DAY, "14:30", 1650, now=START + timedelta(seconds=159)) == RUNNING

    def test_after_race(self):
        assert race_status(DAY, "14:30", 1650, now=START + timedelta(seconds=160)) == FINISHED

    def test_duration(self):
        assert race_duration(1650) == timedelta(seconds=160)
        assert race_duration(0) == timedelta(seconds=60)

    def test_bad_time_means_midnight(self):
        assert race_start(DAY, "soon") == datetime(2026, 3, 14, tzinfo=timezone.utc)
        assert race_start(DAY, "25:00") == datetime(2026, 3, 14, tzinfo=timezone.utc)
