#!/usr/bin/env python3
"""
Core operations shared between MCP server and CLI.
Contains the business logic for parsing, summarizing and persisting reports.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from junit_report_parser.config import get_keep_long_stdio, get_stdio_limit, load_config
from junit_report_parser.dialects import load_dialect
from junit_report_parser.models import CaseRecord, SuiteRecord
from junit_report_parser.persistence import PersistenceError, read_suite, write_suite
from junit_report_parser.report_parser import MalformedReportError, ReportParser

logger = logging.getLogger(__name__)


def get_parser(keep_long_stdio: Optional[bool] = None, diagnostics: bool = False) -> ReportParser:
    """Build a ReportParser from the configuration; explicit arguments win."""
    config = load_config()
    if keep_long_stdio is None:
        keep_long_stdio = get_keep_long_stdio(config)
    return ReportParser(
        keep_long_stdio=keep_long_stdio,
        diagnostics=diagnostics,
        dialect=load_dialect(config.get('JUNIT_REPORT_DIALECTS')),
        stdio_limit=get_stdio_limit(config),
    )


def case_to_dict(case: CaseRecord) -> dict:
    return {
        "name": case.name,
        "class_name": case.class_name,
        "display_name": case.display_name,
        "status": case.status.value,
        "duration": case.duration,
        "error_details": case.error_details,
        "error_type": case.error_type,
        "stdout": case.stdout,
        "stderr": case.stderr,
        "diagnostics": list(case.diagnostics),
    }


def suite_to_dict(suite: SuiteRecord) -> dict:
    return {
        "name": suite.name,
        "file": suite.file,
        "timestamp": suite.timestamp.isoformat() if suite.timestamp else None,
        "duration": suite.duration,
        "tests": len(suite.cases),
        "passed": suite.passed_count,
        "failed": suite.failed_count,
        "skipped": suite.skipped_count,
        "stdout": suite.stdout,
        "stderr": suite.stderr,
        "cases": [case_to_dict(c) for c in suite.cases],
        "diagnostics": list(suite.diagnostics),
    }


def summarize(suites: list[SuiteRecord]) -> dict:
    """
    Aggregate counts over suites.

    Returns:
        dict with totals, pass rate (skipped excluded) and failed test names
    """
    results = {"suites": len(suites), "total": 0, "passed": 0, "failed": 0, "skipped": 0,
               "duration": 0.0, "pass_rate": 0.0, "failed_tests": []}
    for suite in suites:
        results["total"] += len(suite.cases)
        results["passed"] += suite.passed_count
        results["failed"] += suite.failed_count
        results["skipped"] += suite.skipped_count
        results["duration"] += suite.duration
        for case in suite.cases:
            if case.error_details is not None:
                results["failed_tests"].append({
                    "name": case.display_name,
                    "error_details": (case.error_details[:2000] + "...")
                    if len(case.error_details) > 2000 else case.error_details,
                })

    executed = results["total"] - results["skipped"]
    if executed > 0:
        results["pass_rate"] = (results["passed"] / executed) * 100
    return results


def parse_report(path: str, parser: ReportParser) -> dict:
    """
    Parse one report file.

    Returns:
        dict with the parsed suites, or an "error" key if the file could not be parsed
    """
    try:
        suites = parser.parse(path)
    except MalformedReportError as e:
        logger.error(f"Malformed report {e}")
        return {"path": path, "error": str(e), "suites": []}
    except OSError as e:
        logger.error(f"Cannot read report {path}: {e}")
        return {"path": path, "error": f"{path}: {e}", "suites": []}
    logger.info(f"Parsed {len(suites)} suites from {path}")
    return {"path": path, "suites": suites}


def parse_reports(
    paths: list[str],
    keep_long_stdio: Optional[bool] = None,
    diagnostics: bool = False,
    workers: int = 1,
) -> list[dict]:
    """
    Parse several report files, optionally in parallel.

    Args:
        paths: Report files
        keep_long_stdio: Keep console output whole (default from KEEP_LONG_STDIO)
        diagnostics: Record which fallback rules fired
        workers: Number of threads; results keep the order of ``paths``

    Returns:
        One parse_report result per path
    """
    parser = get_parser(keep_long_stdio, diagnostics)
    if workers <= 1 or len(paths) <= 1:
        return [parse_report(p, parser) for p in paths]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(lambda p: parse_report(p, parser), paths))


def _safe_file_name(name: str) -> str:
    return re.sub(r'[^A-Za-z0-9._-]+', '_', name).strip('._') or 'suite'


def persist_report(path: str, output_dir: str, keep_long_stdio: Optional[bool] = None) -> dict:
    """
    Parse a report and write each suite to its own XML file.

    Returns:
        dict with the written files, or an "error" key
    """
    result = parse_report(path, get_parser(keep_long_stdio))
    if "error" in result:
        return {"path": path, "error": result["error"], "written": []}

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    written = []
    for index, suite in enumerate(result["suites"]):
        target = out / f"{index:04d}-{_safe_file_name(suite.name)}.xml"
        write_suite(target, suite)
        written.append(str(target))
    logger.info(f"Persisted {len(written)} suites from {path} to {out}")
    return {"path": path, "written": written}


def load_persisted(paths: list[str]) -> list[dict]:
    """Read suites written by persist_report."""
    results = []
    for path in paths:
        try:
            results.append({"path": path, "suites": [read_suite(path)]})
        except (PersistenceError, OSError, ValueError) as e:
            logger.error(f"Cannot load persisted suite {path}: {e}")
            results.append({"path": path, "error": str(e), "suites": []})
    return results
