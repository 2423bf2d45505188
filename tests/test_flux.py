from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from thinning.repositories.flux import (
    delete_predicate,
    flux_str,
    last_all_query,
    last_query,
    parse_resource_id,
    points_query,
    resource_id_from_series,
    selector_query,
    series_name,
    to_rfc3339,
    windowed_mean_query,
)

START = datetime(2002, 10, 31, 1, 50, tzinfo=timezone.utc)
STOP = datetime(2002, 10, 31, 2, 10, tzinfo=timezone.utc)


def test_to_rfc3339_converts_to_utc() -> None:
    local = datetime(2002, 10, 31, 3, 0, tzinfo=timezone(timedelta(hours=1)))
    assert to_rfc3339(local) == "2002-10-31T02:00:00Z"
    assert to_rfc3339(datetime(2002, 10, 31, 2, 0)) == "2002-10-31T02:00:00Z"


def test_flux_str_escapes() -> None:
    assert flux_str('a"b\\c') == '"a\\"b\\\\c"'


def test_series_naming_round_trip() -> None:
    assert series_name(17, "r") == "r17"
    assert resource_id_from_series("r17", "r") == 17
    assert resource_id_from_series("rtest", "r") == "test"
    assert resource_id_from_series("x17", "r") is None
    assert resource_id_from_series("r", "r") is None


def test_parse_resource_id() -> None:
    assert parse_resource_id("42") == 42
    assert parse_resource_id("-3") == -3
    assert parse_resource_id("pump-1") == "pump-1"


def test_points_query_is_open_on_both_ends() -> None:
    query = points_query(bucket="metrics", series="r1", start=START, stop=STOP)
    assert 'from(bucket: "metrics")' in query
    assert 'range(start: time(v: "2002-10-31T01:50:00Z"), stop: time(v: "2002-10-31T02:10:00Z"))' in query
    assert 'r["_measurement"] == "r1"' in query
    assert 'r["_field"] == "value"' in query
    assert 'r["_time"] > time(v: "2002-10-31T01:50:00Z")' in query


def test_last_query_is_unbounded() -> None:
    query = last_query(bucket="metrics", series="r1")
    assert 'range(start: time(v: "1970-01-01T00:00:00Z"), stop: time(v: "2262-01-01T00:00:00Z"))' in query
    assert "|> last()" in query


def test_windowed_mean_query() -> None:
    query = windowed_mean_query(
        bucket="metrics", series="r1", start=START, stop=STOP, every_seconds=3600
    )
    assert 'aggregateWindow(every: 3600s, fn: mean, createEmpty: false, timeSrc: "_start")' in query


def test_windowed_mean_rejects_zero_width() -> None:
    with pytest.raises(ValueError):
        windowed_mean_query(bucket="b", series="r1", start=START, stop=STOP, every_seconds=0)


@pytest.mark.parametrize("fn", ["max", "min"])
def test_selector_query_keeps_time(fn: str) -> None:
    query = selector_query(bucket="b", series="r1", fn=fn, start=START, stop=STOP)
    assert f"|> {fn}()" in query
    assert '"_time"' in query.split(f"|> {fn}()")[1]


def test_mean_query_drops_time() -> None:
    query = selector_query(bucket="b", series="r1", fn="mean", start=START, stop=STOP)
    assert "|> mean()" in query
    assert '"_time"' not in query.split("|> mean()")[1]


def test_selector_query_rejects_unknown_function() -> None:
    with pytest.raises(ValueError):
        selector_query(bucket="b", series="r1", fn="median", start=START, stop=STOP)


def test_last_all_query_matches_own_series() -> None:
    query = last_all_query(bucket="b", prefix="r")
    assert 'r["_measurement"] =~ /^r[A-Za-z0-9_-]+$/' in query
    assert 'exists r["seq"]' in query
    assert "|> last()" in query


def test_duplicate_timestamps_are_read_in_write_order() -> None:
    for query in [
        last_query(bucket="b", series="r1"),
        last_all_query(bucket="b", prefix="r"),
        points_query(bucket="b", series="r1", start=START, stop=STOP),
    ]:
        grouped = query.index('group(columns: ["_measurement"])')
        ordered = query.index('sort(columns: ["_time", "seq"])')
        assert grouped < ordered
    last = last_query(bucket="b", series="r1")
    assert last.index("sort(") < last.index("|> last()")


def test_delete_predicate() -> None:
    assert delete_predicate("r5") == '_measurement="r5"'
