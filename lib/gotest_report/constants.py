from enum import Enum


class Action(str, Enum):
    RUN = "run"
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"
    OUTPUT = "output"


class SubtestState(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_ACTIONS = frozenset({Action.PASS.value, Action.FAIL.value, Action.SKIP.value})

SUBTEST_MARKER = "k3s test"
OS_MARKER = "OS"

NANOSECONDS_PER_MINUTE = 1000 * 1000 * 1000 * 60

REPORT_TEMPLATE = "report-template.html.j2"
FRAGMENTS_TEMPLATE = "fragments.html.j2"
REPORT_FILENAME = "k3s_{os_label}_results.html"
