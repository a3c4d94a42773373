from __future__ import annotations

import pytest

from tile_deck.core.utils import format_time_ago, format_timestamp, generate_id, minutes_to_ms

from conftest import START_MS, FakeClock


@pytest.mark.parametrize(
    "age_ms, expected",
    [
        (0, "0s ago"),
        (45_000, "45s ago"),
        (5 * 60_000, "5m ago"),
        (3 * 3_600_000, "3h ago"),
        (2 * 86_400_000, "2d ago"),
        (65 * 86_400_000, "2mo ago"),
        (-1_000, "just now"),
    ],
)
def test_format_time_ago(age_ms, expected):
    assert format_time_ago(START_MS - age_ms, START_MS) == expected


def test_format_time_ago_without_timestamp():
    assert format_time_ago(None, START_MS) == "never"


def test_format_timestamp_without_timestamp():
    assert format_timestamp(None) == "-"


def test_generate_id_uses_clock_and_prefix():
    clock = FakeClock()
    first = generate_id("log", clock)
    second = generate_id("log", clock)

    assert first.startswith(f"log-{START_MS}-")
    assert first != second


def test_generate_id_without_prefix():
    assert generate_id(clock=FakeClock()).startswith(f"{START_MS}-")


def test_minutes_to_ms():
    assert minutes_to_ms(60) == 3_600_000
