"""Tests for the demo command line."""
import argparse

import pytest

from main import parse_room


def test_parse_room_defaults_to_two_per_bench() -> None:
    room = parse_room("A-101:30")
    assert (room.room_number, room.total_benches, room.students_per_bench) == ("A-101", 30, 2)
    assert room.capacity == 60


def test_parse_room_with_bench_size() -> None:
    assert parse_room("Lab:10:3").capacity == 30


@pytest.mark.parametrize("value", ["A:0", "A:-5", "A:10:0", "A:10:7", "A", "A:x", "A:1:2:3"])
def test_parse_room_rejects_bad_rooms(value) -> None:
    with pytest.raises(argparse.ArgumentTypeError):
        parse_room(value)
