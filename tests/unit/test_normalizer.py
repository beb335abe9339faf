"""Unit tests for programme feed normalization."""

import pytest

from turfdesk.sync.normalizer import (
    DEFAULT_WEIGHT,
    PLACEHOLDER_NAME,
    normalize_detail,
    normalize_distance,
    normalize_finish_order,
    normalize_meetings,
    normalize_participants,
    normalize_race,
    normalize_time,
    parse_prize,
    parse_race_number,
    positive_int,
    to_float,
)


class TestParseRaceNumber:
    def test_prefixed_code(self):
        assert parse_race_number("C8") == 8
        assert parse_race_number("c 12") == 12

    def test_bare_digits(self):
        assert parse_race_number("8") == 8
        assert parse_race_number(3) == 3

    def test_invalid(self):
        assert parse_race_number("C") == 0
        assert parse_race_number("") == 0
        assert parse_race_number(None) == 0
        assert parse_race_number("C0") == 0
        assert parse_race_number(True) == 0


class TestFinishOrder:
    def test_objects_sorted_by_position(self):
        entries = [{"position": 1, "number": "4"}, {"position": 2, "number": 7}]
        assert normalize_finish_order(entries) == [4, 7]

    def test_out_of_order_positions(self):
        entries = [
            {"position": 3, "number": 9},
            {"position": 1, "number": 4},
            {"position": 2, "number": 7},
        ]
        assert normalize_finish_order(entries) == [4, 7, 9]

    def test_bare_numbers_keep_list_order(self):
        assert normalize_finish_order([3, "5", 1]) == [3, 5, 1]

    def test_bad_entries_dropped(self):
        entries = [4, "x", None, 0, -2, {"position": 3}, 2.5, True, 7]
        assert normalize_finish_order(entries) == [4, 7]

    def test_superscript_digits_dropped(self):
        assert normalize_finish_order([4, "\u00b2", 7]) == [4, 7]
        assert normalize_finish_order([{"position": 1, "number": "\u00b3"}, {"position": 2, "number": 5}]) == [5]

    def test_duplicates_dropped(self):
        assert normalize_finish_order([4, 7, 4]) == [4, 7]

    def test_missing_position_keeps_list_order(self):
        entries = [{"position": 2, "number": 7}, {"number": 4}]
        assert normalize_finish_order(entries) == [7, 4]

    def test_not_a_list(self):
        assert normalize_finish_order(None) == []
        assert normalize_finish_order("4-7-9") == []


class TestParsePrize:
    def test_space_thousands(self):
        purse = parse_prize("1 500 000 DH")
        assert purse.amount == 1500000
        assert purse.currency == "DH"

    def test_comma_decimal(self):
        purse = parse_prize("15000,50 EUR")
        assert purse.amount == 15000.5
        assert purse.currency == "EUR"

    def test_non_breaking_spaces(self):
        purse = parse_prize("60\u00a0000\u202fDh")
        assert purse.amount == 60000
        assert purse.currency == "Dh"

    def test_dot_thousands(self):
        assert parse_prize("1.500.000 DH").amount == 1500000

    def test_rounds_to_cents(self):
        assert parse_prize("1234,5678 DH").amount == 1234.57

    def test_missing_currency_uses_default(self):
        assert parse_prize("25000").currency == "DH"
        assert parse_prize("25000", default_currency="EUR").currency == "EUR"

    def test_numeric_prize(self):
        assert parse_prize(80000).amount == 80000

    def test_unusable(self):
        assert parse_prize("abc") is None
        assert parse_prize("") is None
        assert parse_prize(None) is None
        assert parse_prize("1,2,3 DH") is None
        assert parse_prize("-500 DH") is None


class TestParticipants:
    def test_sorted_with_defaults(self):
        runners = [
            {"number": 2, "horse": "Bab Al Bahr", "jockey": "A. Amrani", "weight": "57,5"},
            {"number": 1, "horse": None, "jockey": "", "weight": None},
        ]
        assert normalize_participants(runners) == [
            {"number": 1, "horse": PLACEHOLDER_NAME, "jockey": PLACEHOLDER_NAME, "weight": DEFAULT_WEIGHT},
            {"number": 2, "horse": "Bab Al Bahr", "jockey": "A. Amrani", "weight": 57.5},
        ]

    def test_invalid_numbers_and_repeats_dropped(self):
        runners = [{"number": "x"}, {"number": 0}, {"number": 3}, {"number": 3, "horse": "Dup"}, "junk"]
        result = normalize_participants(runners)
        assert [p["number"] for p in result] == [3]
        assert result[0]["horse"] == PLACEHOLDER_NAME

    def test_not_a_list(self):
        assert normalize_participants(None) == []


class TestScalars:
    def test_positive_int(self):
        assert positive_int("12") == 12
        assert positive_int(4.0) == 4
        assert positive_int(4.5) is None
        assert positive_int(False) is None
        assert positive_int("\u00b2") is None
        assert positive_int(" 7 ") == 7

    def test_to_float(self):
        assert to_float("57,5") == 57.5
        assert to_float("21.3°C") == 21.3
        assert to_float("hot") is None
        assert to_float(float("nan")) is None

    @pytest.mark.parametrize("value,expected", [
        ("14:30", "14:30"),
        ("9:05:00", "09:05"),
        ("14h30", "14:30"),
        ("25:00", "00:00"),
        (None, "00:00"),
    ])
    def test_normalize_time(self, value, expected):
        assert normalize_time(value) == expected

    def test_normalize_distance(self):
        assert normalize_distance("1 600m") == 1600
        assert normalize_distance(2000) == 2000
        assert normalize_distance(None) == 0


class TestNormalizeMeetings:
    def test_allow_list_and_alias_collapsing(self, sample_programme):
        meetings = normalize_meetings(sample_programme["meetings"])
        assert [m.venue for m in meetings] == ["Casablanca-Anfa", "Rabat"]
        assert meetings[0].feed_venue == "CASABLANCA"

    def test_races_normalized(self, sample_programme):
        casa = normalize_meetings(sample_programme["meetings"])[0]
        first = casa.races[0]
        assert first.race_number == 1
        assert first.code == "C1"
        assert first.external_id == 101
        assert first.distance == 1600
        assert first.finished is True
        assert first.arrival == [4, 7, 9]
        assert casa.races[2].finished is False

    def test_truthy_non_boolean_is_not_finished(self):
        race = normalize_race({"code": "C2", "finished": "true", "finish_order": [1]}, "Rabat")
        assert race.finished is False

    def test_default_name(self):
        race = normalize_race({"code": "C4"}, "Settat")
        assert race.name == "Course C4"

    def test_meeting_without_venue_dropped(self):
        assert normalize_meetings([{"races": [{"code": "C1"}]}]) == []

    def test_malformed_races_list_ignored(self):
        meetings = normalize_meetings([
            {"track": "Settat", "races": 5},
            {"track": "Rabat", "races": "C1"},
            {"track": "El Jadida", "races": [{"code": "C1"}]},
        ])
        assert [(m.venue, len(m.races)) for m in meetings] == [
            ("Settat", 0),
            ("Rabat", 0),
            ("El Jadida", 1),
        ]


class TestNormalizeDetail:
    def test_full_detail(self, sample_detail):
        detail = normalize_detail(sample_detail)
        assert detail.purse.amount == 1500000
        assert detail.purse.currency == "DH"
        assert [p["number"] for p in detail.participants] == [1, 2]
        assert detail.temperature == 21.5

    def test_empty_detail(self):
        detail = normalize_detail({})
        assert detail.purse is None
        assert detail.participants == []
        assert detail.temperature is None
