import json
from datetime import datetime, timedelta, timezone

import pytest

from gotest_report.errors import DecodeError
from gotest_report.events import ZERO_TIME, Event, decode_event, parse_timestamp, read_events


def test_decode_full_event():
    line = json.dumps(
        {
            "Time": "2023-05-01T10:00:00.123456789Z",
            "Action": "pass",
            "Package": "github.com/k3s-io/k3s/tests/e2e",
            "Test": "TestSuite",
            "Output": "ok\n",
            "Elapsed": 1.5,
        }
    )
    event = decode_event(line)
    assert event.timestamp == datetime(2023, 5, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)
    assert event.action == "pass"
    assert event.package == "github.com/k3s-io/k3s/tests/e2e"
    assert event.test == "TestSuite"
    assert event.output == "ok\n"
    assert event.elapsed == 1.5


def test_missing_elapsed_defaults_to_zero():
    event = decode_event('{"Time": "2023-05-01T10:00:00Z", "Action": "output", "Test": "TestSuite"}')
    assert event.elapsed == 0.0


def test_empty_object_decodes_to_zero_values():
    assert decode_event("{}") == Event()
    assert decode_event("{}").timestamp == ZERO_TIME


def test_null_fields_are_treated_as_absent():
    event = decode_event('{"Action": "run", "Test": null, "Elapsed": null, "Time": null}')
    assert event.test == ""
    assert event.elapsed == 0.0
    assert event.timestamp == ZERO_TIME


def test_field_names_are_case_insensitive():
    event = decode_event('{"action": "fail", "test": "TestSuite", "elapsed": 3}')
    assert event.action == "fail"
    assert event.test == "TestSuite"
    assert event.elapsed == 3.0


def test_parse_timestamp_with_offset():
    parsed = parse_timestamp("2023-05-01T10:00:00.5+05:30")
    assert parsed.utcoffset() == timedelta(hours=5, minutes=30)
    assert parsed.microsecond == 500000


@pytest.mark.parametrize(
    "line",
    [
        "not json at all",
        "[1, 2, 3]",
        '"just a string"',
        "",
        '{"Elapsed": "5"}',
        '{"Elapsed": true}',
        '{"Time": "yesterday"}',
        '{"Time": 12}',
        '{"Test": 3}',
        '{"Elapsed": NaN}',
        '{"Elapsed": Infinity}',
        '{"Elapsed": 1' + '0' * 400 + '}',
        '{"Elapsed": 1' + '0' * 5000 + '}',
    ],
)
def test_malformed_lines_raise_decode_error(line):
    with pytest.raises(DecodeError):
        decode_event(line)


def test_read_events_keeps_order():
    lines = ['{"Action": "run"}\n', '{"Action": "output", "Test": "TestSuite"}\n', '{"Action": "pass"}\n']
    assert [event.action for event in read_events(lines)] == ["run", "output", "pass"]


def test_read_events_reports_line_number():
    with pytest.raises(DecodeError) as exc_info:
        read_events(['{"Action": "run"}', "oops"])
    assert exc_info.value.line_number == 2
    assert "line 2" in str(exc_info.value)


def test_null_line_decodes_to_zero_event():
    assert decode_event("null") == Event()
