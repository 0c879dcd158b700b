"""
Dialect tables and field-recovery rules shared by the extractors.

Report producers disagree on tag names, attribute names and nesting. The
names the parser recognizes live in a ``Dialect``; a YAML file can append to
them without touching code. Each recovered field is computed by an ordered
chain of rules where the first usable value wins.
"""

import logging
import math
from dataclasses import dataclass, fields, replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional
from xml.etree.ElementTree import Element

import yaml

from .config import get_dialect_file

logger = logging.getLogger(__name__)


class RecoverableDialectQuirk(Exception):
    """A value is present but unusable; the next rule in the chain applies."""


@dataclass(frozen=True)
class Dialect:
    """Tag and attribute names recognized by the parser (all lower case)."""
    suite_tags: tuple[str, ...] = ("testsuite",)
    case_tags: tuple[str, ...] = ("testcase",)
    class_name_attributes: tuple[str, ...] = ("classname", "class")
    duration_attributes: tuple[str, ...] = ("time", "duration")
    timestamp_attributes: tuple[str, ...] = ("timestamp",)
    failure_tags: tuple[str, ...] = ("error", "failure")
    failure_count_attributes: tuple[str, ...] = ("failures", "errors")
    skipped_tags: tuple[str, ...] = ("skipped",)
    status_attributes: tuple[str, ...] = ("status", "result")
    skipped_statuses: tuple[str, ...] = ("skipped", "ignored", "notrun", "disabled")
    stdout_tags: tuple[str, ...] = ("system-out",)
    stderr_tags: tuple[str, ...] = ("system-err",)

    def extended(self, extra: dict) -> "Dialect":
        """Return a copy with the names from ``extra`` appended to each list."""
        known = {f.name for f in fields(self)}
        changes = {}
        for key, values in extra.items():
            if key not in known:
                logger.warning(f"Ignoring unknown dialect key: {key}")
                continue
            if isinstance(values, str):
                values = [values]
            if not isinstance(values, list):
                logger.warning(f"Ignoring dialect key {key}: expected a list, got {type(values).__name__}")
                continue
            current = list(getattr(self, key))
            for value in values:
                name = str(value).strip().lower()
                if name and name not in current:
                    current.append(name)
            changes[key] = tuple(current)
        return replace(self, **changes)


DEFAULT_DIALECT = Dialect()


def load_dialect(path: Optional[str] = None) -> Dialect:
    """Load the dialect tables, appending names from a YAML file if one is configured.

    Args:
        path: YAML file to read; defaults to JUNIT_REPORT_DIALECTS from the config

    Returns:
        The extended dialect, or the built-in one when no usable file exists
    """
    path = path or get_dialect_file()
    if not path:
        return DEFAULT_DIALECT

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load dialect file {path}: {e}, using defaults")
        return DEFAULT_DIALECT

    if not isinstance(data, dict):
        logger.warning(f"Dialect file {path} is not a mapping, using defaults")
        return DEFAULT_DIALECT
    return DEFAULT_DIALECT.extended(data)


# Element helpers

def local_name(tag: Any) -> str:
    """Lower-cased tag or attribute name without its XML namespace."""
    if not isinstance(tag, str):
        return ""
    if tag.startswith("{"):
        tag = tag.rsplit("}", 1)[-1]
    return tag.lower()


def attribute(element: Element, names: Iterable[str]) -> Optional[str]:
    """Value of the first attribute in ``names`` present on the element."""
    attrs = {local_name(k): v for k, v in element.attrib.items()}
    for name in names:
        if name in attrs:
            return attrs[name]
    return None


def children(element: Element, tags: Iterable[str]) -> list[Element]:
    tags = set(tags)
    return [child for child in element if local_name(child.tag) in tags]


def first_child(element: Element, tags: Iterable[str]) -> Optional[Element]:
    """First child matching the earliest tag in ``tags`` (priority order)."""
    for tag in tags:
        for child in element:
            if local_name(child.tag) == tag:
                return child
    return None


def element_text(element: Element) -> str:
    return "".join(element.itertext())


# Value parsers; they raise RecoverableDialectQuirk on unusable input

def parse_duration(value: str) -> float:
    try:
        seconds = float(value.strip().replace(",", ""))
    except ValueError:
        raise RecoverableDialectQuirk(f"unparsable duration {value!r}")
    if not math.isfinite(seconds) or seconds < 0:
        raise RecoverableDialectQuirk(f"out of range duration {value!r}")
    return seconds


def parse_timestamp(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1]
        tz = timezone.utc
    else:
        tz = None
    try:
        stamp = datetime.fromisoformat(text)
    except ValueError:
        raise RecoverableDialectQuirk(f"unparsable timestamp {value!r}")
    if tz is not None:
        stamp = stamp.replace(tzinfo=tz)
    return stamp


# Rule chains

Rule = tuple[str, Callable[..., Any]]


def apply_rules(rules: Iterable[Rule], *args) -> tuple[Any, Optional[str], bool]:
    """Run rules in priority order; the first non-empty result wins.

    Returns:
        (value, label of the winning rule, True when a fallback rule won).
        When no rule produces a value the result is (None, None, True).
    """
    for index, (label, rule) in enumerate(rules):
        try:
            value = rule(*args)
        except RecoverableDialectQuirk as quirk:
            logger.debug(f"{label}: {quirk}")
            continue
        if value is not None and value != "":
            return value, label, index > 0
    return None, None, True


def note(trail: Optional[list], field_name: str, label: Optional[str]) -> None:
    """Record a fallback in the diagnostic trail, if one is being kept."""
    message = f"{field_name}: {label or 'default'}"
    logger.debug(message)
    if trail is not None:
        trail.append(message)


def _attribute_rule(names: tuple[str, ...], convert: Callable[[str], Any]) -> Callable[[Element], Any]:
    def rule(element: Element) -> Any:
        value = attribute(element, names)
        if value is None or not value.strip():
            return None
        return convert(value)
    return rule


def duration_rules(dialect: Dialect) -> list[Rule]:
    return [(f"{name} attribute", _attribute_rule((name,), parse_duration))
            for name in dialect.duration_attributes]


def timestamp_rules(dialect: Dialect) -> list[Rule]:
    return [(f"{name} attribute", _attribute_rule((name,), parse_timestamp))
            for name in dialect.timestamp_attributes]
