#!/usr/bin/env python3
"""CLI for JUnit Report Analyzer."""

import argparse
import json
import logging
import sys

import core


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(levelname)s: %(message)s'
    )


def _print_errors(results: list[dict]) -> int:
    failed = [r for r in results if r.get("error")]
    for r in failed:
        print(f"Error: {r['error']}", file=sys.stderr)
    return len(failed)


def _print_suites(suites: list, show_diagnostics: bool = False):
    """Print human-readable suite listing."""
    for suite in suites:
        print(f"\n{'='*60}")
        print(f"Suite: {suite.name or '(unnamed)'}")
        if suite.file:
            print(f"File: {suite.file}")
        if suite.timestamp:
            print(f"Timestamp: {suite.timestamp.isoformat()}")
        print(f"Duration: {suite.duration:.3f}s")
        print(f"Cases: {len(suite.cases)} ({suite.passed_count} passed, "
              f"{suite.failed_count} failed, {suite.skipped_count} skipped)")
        for case in suite.cases:
            status_icon = {'passed': '✅', 'failed': '❌', 'skipped': '⏭️'}[case.status.value]
            print(f"  {status_icon} {case.display_name[:70]}")
            if case.error_details:
                first_line = case.error_details.splitlines()[0] if case.error_details.strip() else ""
                print(f"      {first_line[:100]}")
            if show_diagnostics:
                for entry in case.diagnostics:
                    print(f"      ~ {entry}")
        if show_diagnostics:
            for entry in suite.diagnostics:
                print(f"  ~ {entry}")
    print(f"{'='*60}\n")


def _print_summary(summary: dict):
    print(f"Test Results:")
    print(f"  Suites:  {summary['suites']}")
    print(f"  Total:   {summary['total']}")
    print(f"  Passed:  {summary['passed']}")
    print(f"  Failed:  {summary['failed']}")
    print(f"  Skipped: {summary['skipped']}")
    print(f"  Pass Rate: {summary['pass_rate']:.1f}%")


def cmd_parse(args):
    """Parse report files and print the normalized suites."""
    results = core.parse_reports(
        args.reports,
        keep_long_stdio=True if args.keep_long_stdio else None,
        diagnostics=args.diagnostics,
        workers=args.workers,
    )
    errors = _print_errors(results)
    suites = [s for r in results for s in r["suites"]]

    if args.format == 'json':
        output = {
            "reports": [
                {"path": r["path"], "error": r.get("error"),
                 "suites": [core.suite_to_dict(s) for s in r["suites"]]}
                for r in results
            ],
            "summary": core.summarize(suites),
        }
        print(json.dumps(output, indent=2, default=str))
    else:
        _print_suites(suites, args.diagnostics)
        _print_summary(core.summarize(suites))

    return 1 if errors else 0


def cmd_persist(args):
    """Parse a report and store each suite as XML."""
    result = core.persist_report(args.report, args.output,
                                 keep_long_stdio=True if args.keep_long_stdio else None)
    if "error" in result:
        print(f"Error: {result['error']}", file=sys.stderr)
        return 1
    print(f"Wrote {len(result['written'])} suites:")
    for path in result["written"]:
        print(f"  - {path}")
    return 0


def cmd_show(args):
    """Load persisted suites and print them."""
    results = core.load_persisted(args.files)
    errors = _print_errors(results)
    suites = [s for r in results for s in r["suites"]]
    if args.format == 'json':
        print(json.dumps([core.suite_to_dict(s) for s in suites], indent=2, default=str))
    else:
        _print_suites(suites, show_diagnostics=True)
    return 1 if errors else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='JUnit Report Analyzer')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    sub = parser.add_subparsers(dest='command')

    p = sub.add_parser('parse', help='Parse JUnit XML report files')
    p.add_argument('reports', nargs='+', help='Report files')
    p.add_argument('--keep-long-stdio', action='store_true', help='Do not truncate console output')
    p.add_argument('--diagnostics', action='store_true', help='Show which fallback rules fired')
    p.add_argument('--workers', '-w', type=int, default=1, help='Parse files in parallel (default: 1)')
    p.add_argument('--format', '-f', choices=['text', 'json'], default='text')

    p = sub.add_parser('persist', help='Parse a report and store each suite as XML')
    p.add_argument('report', help='Report file')
    p.add_argument('--output', '-o', required=True, help='Directory for the stored suites')
    p.add_argument('--keep-long-stdio', action='store_true', help='Do not truncate console output')

    p = sub.add_parser('show', help='Print suites stored by persist')
    p.add_argument('files', nargs='+', help='Stored suite files')
    p.add_argument('--format', '-f', choices=['text', 'json'], default='text')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)

    cmds = {
        'parse': cmd_parse,
        'persist': cmd_persist,
        'show': cmd_show,
    }
    return cmds[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
