"""Fold an ordered go test -json event stream into a report summary.

The stream is interpreted with an implicit "current package" pointer: every
event that names a test moves the pointer to that test, and every event that
does not (package-level output and the terminal pass/fail/skip line) is
attributed to wherever the pointer currently is. This only works when the
events of one package arrive contiguously, with its package-level events after
its test events. The aggregator relies on that ordering and does not try to
repair streams that violate it.

Pass/fail/skip counters are kept for the whole run and never reset. Each
package summary stores a snapshot of those running totals taken when its
terminal event was seen, so a package reported second also counts the
subtests of the package reported first. Existing reports depend on these
numbers, so the behaviour is kept as is even though per-package counts were
probably intended.
"""
import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable

from gotest_report.constants import (
    NANOSECONDS_PER_MINUTE,
    OS_MARKER,
    SUBTEST_MARKER,
    TERMINAL_ACTIONS,
    Action,
    SubtestState,
)
from gotest_report.errors import IntegrityError
from gotest_report.events import Event


WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
SUBTEST_STATES = {state.value for state in SubtestState}


@dataclass(frozen=True)
class SubtestPayload:
    state: str
    name: str
    time: float


@dataclass(frozen=True)
class PackageSummary:
    name: str
    elapsed: float
    status: str
    failed_tests: int
    passed_tests: int
    skipped_tests: int


@dataclass(frozen=True)
class TestRecord:
    __test__ = False

    package_name: str
    name: str
    elapsed: float
    status: str


@dataclass(frozen=True)
class TestOverview:
    __test__ = False

    test: TestRecord
    test_cases: tuple[TestRecord, ...]


@dataclass(frozen=True)
class Summary:
    total_test_time: str
    test_date: str
    failed_tests: int
    passed_tests: int
    skipped_tests: int
    test_summary: tuple[TestOverview, ...]
    packages: dict[str, PackageSummary] = field(default_factory=dict)
    os_label: str = ""


def extract_subtest_payload(output: str) -> SubtestPayload | None:
    """Pull the trailing JSON outcome object out of a subtest output line.

    Returns None when the line carries no marker or no decodable object.
    Keys are matched case-insensitively.
    """
    if SUBTEST_MARKER not in output:
        return None
    start = output.find("{")
    end = output.rfind("}")
    if start == -1 or end < start:
        return None
    try:
        raw = json.loads(output[start : end + 1].strip())
    except ValueError:
        return None
    if not isinstance(raw, dict):
        return None

    fields = {str(key).lower(): value for key, value in raw.items()}
    state = fields.get("state")
    name = fields.get("name")
    time = fields.get("time", 0)
    if not isinstance(state, str):
        state = ""
    if not isinstance(name, str):
        name = ""
    if isinstance(time, bool) or not isinstance(time, (int, float)):
        time = 0
    try:
        time = float(time)
    except OverflowError:
        return None
    if not math.isfinite(time):
        return None
    return SubtestPayload(state=state, name=name, time=time)


def extract_os_label(output: str) -> str | None:
    if OS_MARKER not in output:
        return None
    parts = output.split("/")
    if len(parts) < 2:
        return None
    return parts[1].strip()


def format_total_time(duration: timedelta) -> str:
    seconds = duration.total_seconds()
    if seconds < 60:
        return f"{seconds:f} s"
    minutes = math.trunc(seconds / 60)
    remainder = math.trunc(seconds - minutes * 60)
    return f"{minutes}m:{remainder}s"


def format_test_date(timestamp: datetime) -> str:
    """Format like RFC 850 ("Monday, 02-Jan-06 15:04:05 MST") without locale lookups."""
    offset = timestamp.utcoffset()
    if not offset:
        zone = "UTC"
    else:
        total_minutes = int(offset.total_seconds() // 60)
        sign = "-" if total_minutes < 0 else "+"
        hours, minutes = divmod(abs(total_minutes), 60)
        zone = f"{sign}{hours:02d}{minutes:02d}"
    return (
        f"{WEEKDAYS[timestamp.weekday()]}, {timestamp.day:02d}-{MONTHS[timestamp.month - 1]}-"
        f"{timestamp.year % 100:02d} {timestamp.hour:02d}:{timestamp.minute:02d}:"
        f"{timestamp.second:02d} {zone}"
    )


class Aggregator:
    def __init__(self) -> None:
        self.current_package = ""
        self.failed_tests = 0
        self.passed_tests = 0
        self.skipped_tests = 0
        self.os_label = ""
        self.test_records: dict[tuple[str, str], TestRecord] = {}
        self.package_summaries: dict[str, PackageSummary] = {}
        self.seen_packages: dict[str, None] = {}
        self.last_status: dict[str, str] = {}

    def _count(self, state: str) -> None:
        if state == SubtestState.FAILED.value:
            self.failed_tests += 1
        elif state == SubtestState.PASSED.value:
            self.passed_tests += 1
        elif state == SubtestState.SKIPPED.value:
            self.skipped_tests += 1

    def _snapshot(self, name: str, elapsed: float, status: str) -> PackageSummary:
        return PackageSummary(
            name=name,
            elapsed=elapsed,
            status=status,
            failed_tests=self.failed_tests,
            passed_tests=self.passed_tests,
            skipped_tests=self.skipped_tests,
        )

    def _handle_test_event(self, event: Event) -> None:
        self.current_package = event.test
        self.seen_packages.setdefault(event.test, None)

        payload = extract_subtest_payload(event.output)
        if payload and payload.name and payload.state in SUBTEST_STATES:
            self.test_records[(event.test, payload.name)] = TestRecord(
                package_name=event.test,
                name=payload.name,
                elapsed=payload.time / NANOSECONDS_PER_MINUTE,
                status=payload.state,
            )
            self.last_status[event.test] = payload.state
            self._count(payload.state)

        os_label = extract_os_label(event.output)
        if os_label is not None:
            self.os_label = os_label

    def _handle_package_event(self, event: Event) -> None:
        package = self.current_package
        if event.action in TERMINAL_ACTIONS:
            self.package_summaries[package] = self._snapshot(package, event.elapsed / 60, event.action)
        elif event.action == Action.OUTPUT.value:
            stored = self.package_summaries.get(package)
            if stored is not None:
                self.package_summaries[package] = self._snapshot(package, stored.elapsed, stored.status)

    def feed(self, event: Event) -> None:
        if event.test:
            self._handle_test_event(event)
        else:
            self._handle_package_event(event)

    def _overview(self, package: str) -> TestOverview:
        cases = tuple(record for record in self.test_records.values() if record.package_name == package)
        if not cases:
            raise IntegrityError(f"test run failed: package {package!r} reported no subtest outcomes")
        # Header mirrors the package as a whole: summed time, latest subtest status.
        header = TestRecord(
            package_name=package,
            name=package,
            elapsed=sum(case.elapsed for case in cases),
            status=self.last_status[package],
        )
        return TestOverview(test=header, test_cases=cases)

    def summarize(self, first: Event, last: Event) -> Summary:
        return Summary(
            total_test_time=format_total_time(last.timestamp - first.timestamp),
            test_date=format_test_date(first.timestamp),
            failed_tests=self.failed_tests,
            passed_tests=self.passed_tests,
            skipped_tests=self.skipped_tests,
            test_summary=tuple(self._overview(package) for package in self.seen_packages),
            packages=dict(self.package_summaries),
            os_label=self.os_label,
        )


def aggregate(events: Iterable[Event]) -> Summary:
    """
    Build the report summary from an ordered event sequence.

    Args:
        events: decoded events in log order
    Returns:
        Summary: counters, timing and the package/test hierarchy
    Raises:
        IntegrityError: no events at all, or a test without subtest outcomes
    """
    events = list(events)
    if not events:
        raise IntegrityError("no test events to report on")

    aggregator = Aggregator()
    for event in events:
        aggregator.feed(event)
    return aggregator.summarize(events[0], events[-1])
