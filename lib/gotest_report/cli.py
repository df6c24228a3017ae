import argparse
import sys
from pathlib import Path
from typing import Iterable, TextIO

from gotest_report.aggregator import aggregate
from gotest_report.errors import DecodeError, IntegrityError, TemplateError
from gotest_report.events import Event, read_events
from gotest_report.renderer import render, write_report


def load_events(path: Path | None, stdin: TextIO) -> list[Event]:
    if path is None:
        return read_events(stdin)
    with path.open(encoding="utf-8") as handle:
        return read_events(handle)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="go-test-html-report",
        description="Generate an HTML report from go test -json logs.",
    )
    parser.add_argument(
        "-f",
        "--file",
        default="",
        help="Path to the go test json log; reads standard input when omitted.",
    )
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    path = Path(args.file) if args.file else None

    try:
        events = load_events(path, sys.stdin)
    except (DecodeError, UnicodeDecodeError) as exc:
        print(f"error to unmarshall test logs: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"error opening file: {exc}", file=sys.stderr)
        return 1

    try:
        summary = aggregate(events)
        document = render(summary)
    except IntegrityError as exc:
        print(f"{exc}, exiting..", file=sys.stderr)
        return 1
    except TemplateError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    try:
        report_path = write_report(document, summary.os_label)
    except OSError as exc:
        print(f"error writing report file: {exc}", file=sys.stderr)
        return 1

    print(f"Report Generated: {report_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
