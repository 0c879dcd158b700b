"""Turns one test-suite element into a SuiteRecord."""

import logging
import math
from typing import Optional
from xml.etree.ElementTree import Element

from .case_extractor import (
    collect_output,
    element_duration,
    error_details,
    extract_case,
)
from .dialects import (
    DEFAULT_DIALECT,
    Dialect,
    apply_rules,
    attribute,
    children,
    first_child,
    note,
    timestamp_rules,
)
from .models import CaseRecord, SuiteRecord
from .text_capture import TextCapturePolicy

logger = logging.getLogger(__name__)

# Name given to the case synthesized for a suite that failed without cases,
# typically because the test class could not be loaded.
SYNTHETIC_CASE_NAME = "<init>"


def _name_attribute(element: Element, dialect: Dialect) -> Optional[str]:
    value = attribute(element, ("name",))
    if value is None or not value.strip():
        return None
    return value


def _first_case_class_name(element: Element, dialect: Dialect) -> Optional[str]:
    for case in children(element, dialect.case_tags):
        value = attribute(case, dialect.class_name_attributes)
        if value and value.strip():
            return value
    return None


SUITE_NAME_RULES = (
    ("name attribute", _name_attribute),
    ("first case class name", _first_case_class_name),
)


def _declared_count(element: Element, name: str) -> int:
    value = attribute(element, (name,))
    if value is None:
        return 0
    try:
        count = float(value.strip())
    except ValueError:
        return 0
    if not math.isfinite(count):
        return 0
    return max(int(count), 0)


def has_suite_level_failure(element: Element, dialect: Dialect = DEFAULT_DIALECT) -> bool:
    """True when the suite element itself carries a failure/error child."""
    return first_child(element, dialect.failure_tags) is not None


def _synthesize_case(
    element: Element,
    suite_name: str,
    dialect: Dialect,
    trail: Optional[list],
) -> Optional[CaseRecord]:
    """Build a stand-in case for a suite that reports failures but no cases."""
    failure = first_child(element, dialect.failure_tags)
    counts = {name: _declared_count(element, name) for name in dialect.failure_count_attributes}
    if failure is None and not any(counts.values()):
        return None

    details = error_details(failure) if failure is not None else ""
    if not details:
        declared = ", ".join(f"{count} {name}" for name, count in counts.items() if count)
        details = f"Suite {suite_name or '(unnamed)'} reported {declared or 'a failure'} without any test cases"
    note(trail, "cases", "synthesized from suite-level failure")
    return CaseRecord(
        name=SYNTHETIC_CASE_NAME,
        class_name=suite_name,
        error_details=details,
        error_type=failure.get("type") if failure is not None else None,
    )


def extract_suite(
    element: Element,
    policy: Optional[TextCapturePolicy] = None,
    dialect: Dialect = DEFAULT_DIALECT,
    diagnostics: bool = False,
    file: Optional[str] = None,
) -> SuiteRecord:
    """
    Build a SuiteRecord, with its cases, from a test-suite element.

    Args:
        element: The suite element
        policy: Console output capture policy
        dialect: Recognized tag and attribute names
        diagnostics: Record which fallback rules fired on the result
        file: Report path stored on the record

    Returns:
        A best-effort SuiteRecord; missing data never raises.
    """
    policy = policy or TextCapturePolicy()
    trail = [] if diagnostics else None

    name, label, fallback = apply_rules(SUITE_NAME_RULES, element, dialect)
    if fallback:
        note(trail, "name", label)
    name = name or ""

    timestamp, label, fallback = apply_rules(timestamp_rules(dialect), element)
    if fallback and attribute(element, dialect.timestamp_attributes) is not None:
        note(trail, "timestamp", label)

    case_elements = children(element, dialect.case_tags)
    cases = [extract_case(case, name, policy, dialect, diagnostics) for case in case_elements]
    if not cases:
        synthesized = _synthesize_case(element, name, dialect, trail)
        if synthesized is not None:
            cases.append(synthesized)

    logger.debug(f"Suite {name!r}: {len(cases)} cases")
    return SuiteRecord(
        name=name,
        timestamp=timestamp,
        duration=element_duration(element, dialect, trail),
        stdout=collect_output(element, dialect.stdout_tags, policy),
        stderr=collect_output(element, dialect.stderr_tags, policy),
        cases=tuple(cases),
        file=file,
        diagnostics=tuple(trail) if trail else (),
    )
