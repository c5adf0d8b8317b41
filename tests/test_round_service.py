"""
轮次计算测试
"""

from datetime import datetime

from madurinn.core.utils import fnv1a_32
from madurinn.services.person_service import DEFAULT_PERSONS, get_person_for_round_id
from madurinn.services.round_service import (
    STATUS_CLOSED,
    STATUS_OPEN,
    STATUS_SCHEDULED,
    RoundOptions,
    get_current_round,
    next_ymd,
    random_round_id,
    round_window,
)

from conftest import AFTER_CLOSE, BEFORE_OPEN, OPEN, ROUND_ID

OPTIONS = dict(tz_name="Atlantic/Reykjavik", open_hour=12, close_hour=17, max_questions=20)


def test_fnv1a_known_values():
    assert fnv1a_32("") == 2128831035
    assert fnv1a_32("a") == 468965076


def test_person_assignment_is_deterministic():
    person = get_person_for_round_id(ROUND_ID)
    assert person is get_person_for_round_id(ROUND_ID)
    assert person is DEFAULT_PERSONS[fnv1a_32(ROUND_ID) % len(DEFAULT_PERSONS)]


def test_round_window_in_utc():
    opens_at, closes_at = round_window(ROUND_ID, RoundOptions(**OPTIONS))
    assert opens_at == datetime(2025, 3, 10, 12, 0)
    assert closes_at == datetime(2025, 3, 10, 17, 0)


def test_status_before_open_counts_down_to_open():
    info = get_current_round(datetime(2025, 3, 10, 11, 59), RoundOptions(**OPTIONS))
    assert info.id == ROUND_ID
    assert info.status == STATUS_SCHEDULED
    assert info.countdown_ms == 60_000


def test_window_bounds_in_utc():
    opens_at, closes_at = round_window("2024-05-01", RoundOptions(**OPTIONS))
    assert opens_at.isoformat() + "Z" == "2024-05-01T12:00:00Z"
    assert closes_at.isoformat() + "Z" == "2024-05-01T17:00:00Z"


def test_status_open_from_opening_hour():
    info = get_current_round(datetime(2025, 3, 10, 12, 0), RoundOptions(**OPTIONS))
    assert info.status == STATUS_OPEN
    assert info.countdown_ms == 5 * 3600 * 1000

    info = get_current_round(datetime(2025, 3, 10, 16, 59, 59), RoundOptions(**OPTIONS))
    assert info.status == STATUS_OPEN
    assert info.countdown_ms == 1000


def test_status_open_counts_down_to_close():
    info = get_current_round(OPEN, RoundOptions(**OPTIONS))
    assert info.status == STATUS_OPEN
    assert info.countdown_ms == 4 * 3600 * 1000
    assert info.max_questions == 20


def test_status_closed_counts_down_to_next_open():
    info = get_current_round(datetime(2025, 3, 10, 17, 0), RoundOptions(**OPTIONS))
    assert info.status == STATUS_CLOSED
    assert info.countdown_ms == 19 * 3600 * 1000


def test_force_open_wins():
    info = get_current_round(AFTER_CLOSE, RoundOptions(force_open=True, status_override="closed", **OPTIONS))
    assert info.status == STATUS_OPEN
    assert info.countdown_ms == 5 * 3600 * 1000


def test_status_override_replaces_clock():
    info = get_current_round(OPEN, RoundOptions(status_override="closed", **OPTIONS))
    assert info.status == STATUS_CLOSED
    info = get_current_round(BEFORE_OPEN, RoundOptions(status_override="open", **OPTIONS))
    assert info.status == STATUS_OPEN


def test_round_id_override():
    info = get_current_round(OPEN, RoundOptions(round_id_override="2031-07-04", **OPTIONS))
    assert info.id == "2031-07-04"
    assert info.opens_at == datetime(2031, 7, 4, 12, 0)
    assert info.person is get_person_for_round_id("2031-07-04")


def test_next_ymd_and_random_round_id():
    assert next_ymd("2024-12-31") == "2025-01-01"
    round_id = random_round_id()
    assert "2000-01-01" <= round_id <= "2099-12-31"
