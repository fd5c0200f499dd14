import time

import pytest

from socialhub.timefmt import (
    date_number,
    format_custom_time,
    format_log_time,
    parse_time_tick,
    random_between,
    split_ints,
)


@pytest.fixture(autouse=True)
def utc(monkeypatch):
    monkeypatch.setenv("TZ", "UTC")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_epoch_formats_as_documented_pattern():
    assert format_custom_time(0) == "1970-01-01 00:00:00"


@pytest.mark.parametrize("stamp", [0, 86399, 1_000_000_000, 1_700_000_123])
def test_format_and_parse_round_trip(stamp):
    assert parse_time_tick(format_custom_time(stamp)) == stamp


def test_parse_empty_is_zero():
    assert parse_time_tick("") == 0


def test_parse_garbage_is_zero():
    assert parse_time_tick("not a time") == 0


def test_unrepresentable_timestamp_formats_empty():
    assert format_custom_time(10**20) == ""
    assert date_number(10**20) == 0


def test_date_number_of_epoch():
    assert date_number(0) == 19700101


@pytest.mark.parametrize("stamp", [1, 1_234_567_890, 1_700_000_000])
def test_date_number_matches_formatted_date(stamp):
    assert str(date_number(stamp)) == format_custom_time(stamp)[:10].replace("-", "")


def test_log_time_is_now():
    before = int(time.time())
    tick = parse_time_tick(format_log_time())
    after = int(time.time())
    assert before - 1 <= tick <= after + 1


def test_split_ints_with_spaces_and_tabs():
    assert split_ints("1|2 | 3\t|\t4") == [1, 2, 3, 4]


def test_split_ints_empty():
    assert split_ints("") == []


def test_split_ints_rejects_non_number():
    with pytest.raises(ValueError):
        split_ints("1|x")


def test_random_between_stays_in_range():
    values = {random_between(5, 2) for _ in range(200)}
    assert values <= {2, 3, 4, 5}


def test_random_between_single_value():
    assert random_between(7, 7) == 7


def test_random_between_empty_range():
    with pytest.raises(ValueError):
        random_between(1, 3)