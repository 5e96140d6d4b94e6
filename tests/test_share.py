import pytest

from photonmgmt.share import (
    seconds_to_duration,
    string_contains,
    string_delete_all_slice,
    string_delete_slice,
    unique_slices,
)


def test_string_contains():
    assert string_contains(["a", "b"], "b") is True
    assert string_contains(["a", "b"], "c") is False
    assert string_contains([], "") is False


def test_string_delete_slice_removes_one():
    items = ["a", "b", "c"]
    result = string_delete_slice(items, "b")
    assert "b" not in result
    assert len(result) == len(items) - 1
    assert items == ["a", "b", "c"]


def test_string_delete_slice_removes_last_occurrence():
    assert string_delete_slice(["a", "b", "a"], "a") == ["a", "b"]


def test_string_delete_slice_missing():
    with pytest.raises(ValueError, match="slice not found"):
        string_delete_slice(["a"], "z")


def test_string_delete_all_slice():
    assert string_delete_all_slice(["a", "b", "c", "d"], ["b", "d"]) == ["a", "c"]


def test_string_delete_all_slice_last_missing_raises():
    with pytest.raises(ValueError, match="slice not found"):
        string_delete_all_slice(["a", "b"], ["a", "z"])


def test_string_delete_all_slice_empty_removals():
    assert string_delete_all_slice(["a"], []) == []


def test_unique_slices_invariants():
    first = ["x", " y ", "x", ""]
    second = ["z", "", "x", "z"]
    result = unique_slices(first, second)
    assert "" not in result
    assert all(entry == entry.strip() for entry in result)
    assert set(result) == {"x", "y", "z"}
    assert result.index("x") < result.index("y") < result.index("z")


@pytest.mark.parametrize("seconds", [0, 2, 30, 59])
def test_seconds_to_duration_seconds(seconds):
    assert seconds_to_duration(seconds) == f"{seconds} seconds"


def test_seconds_to_duration_singular_second():
    result = seconds_to_duration(1)
    assert result.startswith("1 ")
    assert result.endswith("second")


@pytest.mark.parametrize("minutes", [2, 10, 59])
def test_seconds_to_duration_whole_minutes(minutes):
    assert seconds_to_duration(minutes * 60) == f"{minutes} minutes"


def test_seconds_to_duration_rounds_half_up():
    assert seconds_to_duration(150) == seconds_to_duration(180)
    assert seconds_to_duration(149) == seconds_to_duration(120)


def test_seconds_to_duration_hours_without_days():
    result = seconds_to_duration(3600)
    assert "," not in result
    assert result.startswith("1 hour ")
    assert "day" not in seconds_to_duration(24 * 3600)
    assert seconds_to_duration(24 * 3600).startswith("24 hours")


def test_seconds_to_duration_days():
    assert seconds_to_duration(90061) == "1 day, 1 hour, 1 minute"
    assert "day" in seconds_to_duration(25 * 3600)


def test_seconds_to_duration_negative():
    with pytest.raises(ValueError):
        seconds_to_duration(-1)