from dataclasses import dataclass
from pathlib import Path

import jinja2
from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from gotest_report.aggregator import PackageSummary, Summary, TestOverview, TestRecord
from gotest_report.constants import (
    FRAGMENTS_TEMPLATE,
    REPORT_FILENAME,
    REPORT_TEMPLATE,
    Action,
    SubtestState,
)
from gotest_report.errors import IntegrityError, TemplateError


TEMPLATE_DIR = Path(__file__).parent / "templates"

SUCCESS_CLASS = "successBackgroundColor"
FAIL_CLASS = "failBackgroundColor"
SKIP_CLASS = "skipBackgroundColor"

PACKAGE_STYLES = {Action.PASS.value: SUCCESS_CLASS, Action.FAIL.value: FAIL_CLASS}
TEST_STYLES = {SubtestState.PASSED.value: SUCCESS_CLASS, SubtestState.FAILED.value: FAIL_CLASS}


@dataclass(frozen=True)
class SubtestRow:
    name: str
    elapsed: float
    status: str

    @property
    def style_class(self) -> str:
        return TEST_STYLES.get(self.status, SKIP_CLASS)

    @property
    def elapsed_label(self) -> str:
        return f"{self.elapsed:f}m"


@dataclass(frozen=True)
class TestFragment:
    __test__ = False

    name: str
    elapsed: float
    status: str
    children: tuple[SubtestRow, ...]

    @property
    def style_class(self) -> str:
        return TEST_STYLES.get(self.status, SKIP_CLASS)

    @property
    def elapsed_label(self) -> str:
        # Value is in minutes; existing reports label it with "s".
        return f"{self.elapsed:.2f}s"


@dataclass(frozen=True)
class PackageFragment:
    name: str
    elapsed: float
    status: str
    children: tuple[TestFragment, ...]

    @property
    def style_class(self) -> str:
        # Anything other than pass/fail (skip included) gets the skip colour.
        return PACKAGE_STYLES.get(self.status, SKIP_CLASS)

    @property
    def elapsed_label(self) -> str:
        return f"{self.elapsed:.2f}"


def _subtest_row(record: TestRecord) -> SubtestRow:
    return SubtestRow(name=record.name, elapsed=record.elapsed, status=record.status)


def build_test_fragment(overview: TestOverview) -> TestFragment:
    if not overview.test_cases:
        raise IntegrityError(f"test run failed: {overview.test.name!r} has no subtests")
    return TestFragment(
        name=overview.test.name,
        elapsed=overview.test.elapsed,
        status=overview.test.status,
        children=tuple(_subtest_row(case) for case in overview.test_cases),
    )


def build_package_fragment(package: PackageSummary, overviews: tuple[TestOverview, ...], os_label: str) -> PackageFragment:
    tests = tuple(
        build_test_fragment(overview)
        for overview in overviews
        if overview.test.package_name == package.name
    )
    return PackageFragment(
        name=f"{package.name}_{os_label}",
        elapsed=package.elapsed,
        status=package.status,
        children=tests,
    )


def build_fragments(summary: Summary) -> list[PackageFragment]:
    """One fragment per package summary, in the summary's package order."""
    return [
        build_package_fragment(package, summary.test_summary, summary.os_label)
        for package in summary.packages.values()
    ]


def create_environment(template_dir: Path = TEMPLATE_DIR) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "html.j2"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render(summary: Summary, env: Environment | None = None) -> str:
    """
    Render the whole HTML report for a summary.

    Args:
        summary (Summary): aggregated test run
        env (Environment): optional Jinja environment, defaults to the bundled templates
    Returns:
        str: the report document
    """
    env = env or create_environment()
    fragments = build_fragments(summary)
    try:
        package_card = env.get_template(FRAGMENTS_TEMPLATE).module.package_card
        html_elements = [package_card(fragment) for fragment in fragments]
        return env.get_template(REPORT_TEMPLATE).render(
            html_elements=html_elements,
            failed_tests=summary.failed_tests,
            passed_tests=summary.passed_tests,
            skipped_tests=summary.skipped_tests,
            total_test_time=summary.total_test_time,
            test_date=summary.test_date,
        )
    except jinja2.TemplateError as exc:
        raise TemplateError(f"error applying report templates: {exc}") from exc


def report_filename(os_label: str) -> str:
    return REPORT_FILENAME.format(os_label=os_label)


def write_report(document: str, os_label: str, directory: Path = Path(".")) -> Path:
    path = directory / report_filename(os_label)
    path.write_text(document, encoding="utf-8")
    return path
