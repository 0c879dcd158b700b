"""Turns one test-case element into a CaseRecord."""

import logging
from typing import Optional
from xml.etree.ElementTree import Element

from .dialects import (
    DEFAULT_DIALECT,
    Dialect,
    apply_rules,
    attribute,
    children,
    duration_rules,
    element_text,
    first_child,
    local_name,
    note,
)
from .models import CaseRecord
from .text_capture import TextCapturePolicy

logger = logging.getLogger(__name__)


def _own_class_name(element: Element, suite_name: str, dialect: Dialect) -> Optional[str]:
    value = attribute(element, dialect.class_name_attributes)
    if value is None or not value.strip():
        return None
    return value


def _owning_suite_name(element: Element, suite_name: str, dialect: Dialect) -> Optional[str]:
    return suite_name


def _dotted_case_name(element: Element, suite_name: str, dialect: Dialect) -> Optional[str]:
    prefix, _, last = (attribute(element, ("name",)) or "").rpartition(".")
    if not prefix or not last:
        return None
    return prefix


# Order matters: a case's own qualifier beats the suite name, which beats
# a qualifier guessed from a dotted case name.
CLASS_NAME_RULES = (
    ("own class attribute", _own_class_name),
    ("suite name", _owning_suite_name),
    ("dotted case name", _dotted_case_name),
)


def _failure_body(failure: Element) -> Optional[str]:
    return element_text(failure).strip() or None


def _failure_message(failure: Element) -> Optional[str]:
    return failure.get("message")


ERROR_DETAIL_RULES = (
    ("failure body", _failure_body),
    ("message attribute", _failure_message),
)


def collect_output(element: Element, tags: tuple[str, ...], policy: TextCapturePolicy) -> Optional[str]:
    """Concatenate every matching output child, each bounded by the policy.

    Returns None when the element has no such child.
    """
    blocks = children(element, tags)
    if not blocks:
        return None
    return "".join(policy.bound(element_text(block)) for block in blocks)


def error_details(failure: Element, trail: Optional[list] = None) -> str:
    """Text of a failure/error element: body text, else its message attribute."""
    details, label, fallback = apply_rules(ERROR_DETAIL_RULES, failure)
    if fallback:
        note(trail, "error_details", label)
    return details or ""


def element_duration(element: Element, dialect: Dialect, trail: Optional[list] = None) -> float:
    seconds, label, fallback = apply_rules(duration_rules(dialect), element)
    if seconds is None:
        if attribute(element, dialect.duration_attributes) is not None:
            note(trail, "duration", None)
        return 0.0
    if fallback:
        note(trail, "duration", label)
    return seconds


def _is_skipped(element: Element, dialect: Dialect) -> bool:
    if children(element, dialect.skipped_tags):
        return True
    status = attribute(element, dialect.status_attributes)
    return status is not None and status.strip().lower() in dialect.skipped_statuses


def extract_case(
    element: Element,
    suite_name: str,
    policy: Optional[TextCapturePolicy] = None,
    dialect: Dialect = DEFAULT_DIALECT,
    diagnostics: bool = False,
) -> CaseRecord:
    """
    Build a CaseRecord from a test-case element.

    Args:
        element: The case element
        suite_name: Recovered name of the owning suite, used as class name fallback
        policy: Console output capture policy
        dialect: Recognized tag and attribute names
        diagnostics: Record which fallback rules fired on the result

    Returns:
        A best-effort CaseRecord; missing data never raises.
    """
    policy = policy or TextCapturePolicy()
    trail = [] if diagnostics else None

    name = attribute(element, ("name",))
    if name is None:
        note(trail, "name", None)
        name = ""

    class_name, label, fallback = apply_rules(CLASS_NAME_RULES, element, suite_name, dialect)
    if fallback:
        note(trail, "class_name", label)
    if label == "dotted case name":
        name = name.rpartition(".")[2]

    failure = first_child(element, dialect.failure_tags)
    details = None
    error_type = None
    if failure is not None:
        details = error_details(failure, trail)
        error_type = failure.get("type")
        logger.debug(f"Case {name!r} has <{local_name(failure.tag)}>")

    return CaseRecord(
        name=name,
        class_name=class_name or "",
        error_details=details,
        error_type=error_type,
        duration=element_duration(element, dialect, trail),
        skipped=_is_skipped(element, dialect),
        stdout=collect_output(element, dialect.stdout_tags, policy),
        stderr=collect_output(element, dialect.stderr_tags, policy),
        diagnostics=tuple(trail) if trail else (),
    )
