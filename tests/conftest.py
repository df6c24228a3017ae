import json
from datetime import datetime, timedelta, timezone

import pytest

from gotest_report.events import Event


BASE_TIME = datetime(2023, 5, 1, 10, 0, 0, tzinfo=timezone.utc)
PACKAGE = "github.com/k3s-io/k3s/tests/e2e"


def _subtest_output(name: str, state: str, time: float = 1_000_000_000) -> str:
    payload = json.dumps({"State": state, "Name": name, "Type": "k3s test", "Time": time})
    return f"k3s test {payload}\n"


def _make_event(test: str = "", action: str = "output", output: str = "", elapsed: float = 0.0, seconds: float = 0) -> Event:
    return Event(
        timestamp=BASE_TIME + timedelta(seconds=seconds),
        action=action,
        package=PACKAGE,
        test=test,
        output=output,
        elapsed=elapsed,
    )


def _log_line(**fields) -> str:
    return json.dumps(fields)


@pytest.fixture
def subtest_output():
    return _subtest_output


@pytest.fixture
def make_event():
    return _make_event


@pytest.fixture
def log_line():
    return _log_line


@pytest.fixture
def scenario_lines() -> list[str]:
    return [
        _log_line(Time="2023-05-01T10:00:00Z", Action="run", Package=PACKAGE),
        _log_line(
            Time="2023-05-01T10:00:01.5Z",
            Action="output",
            Package=PACKAGE,
            Test="TestSuite",
            Output=_subtest_output("TestFoo", "passed"),
        ),
        _log_line(Time="2023-05-01T10:00:05Z", Action="pass", Package=PACKAGE, Elapsed=5),
    ]
