"""
XML persistence for SuiteRecord and CaseRecord.

Records are written as elements keyed by field name:

    <suite-result>
      <name>...</name>
      <timestamp>2009-03-01T12:00:00</timestamp>
      <duration>0.25</duration>
      <stdout encoding="base64">...</stdout>
      <cases>
        <case><name>...</name><class-name>...</class-name>...</case>
      </cases>
    </suite-result>

A missing element stands for None and an empty one for "". Text XML cannot
carry verbatim (carriage returns, control characters) is base64 encoded.
"""

import base64
import logging
import re
from datetime import datetime
from os import PathLike
from typing import Callable, Optional, Union
from xml.etree import ElementTree as ET
from xml.etree.ElementTree import Element, SubElement

from .models import CaseRecord, SuiteRecord

logger = logging.getLogger(__name__)

SUITE_TAG = "suite-result"
CASE_TAG = "case"
BASE64 = "base64"

_NEEDS_ENCODING = re.compile("[\r\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


class PersistenceError(Exception):
    """Stored data cannot be read back as a suite."""


def _write_text(parent: Element, tag: str, value: Optional[str]) -> None:
    if value is None:
        return
    child = SubElement(parent, tag)
    if _NEEDS_ENCODING.search(value):
        child.set("encoding", BASE64)
        child.text = base64.b64encode(value.encode("utf-8", "surrogatepass")).decode("ascii")
    else:
        child.text = value


def _decode(child: Element) -> str:
    text = child.text or ""
    if child.get("encoding") == BASE64:
        return base64.b64decode(text).decode("utf-8", "surrogatepass")
    return text


def _read_text(parent: Element, tag: str) -> Optional[str]:
    child = parent.find(tag)
    return None if child is None else _decode(child)


def _read_value(parent: Element, tag: str, convert: Callable, default):
    text = _read_text(parent, tag)
    if text is None:
        return default
    try:
        return convert(text)
    except ValueError as e:
        raise PersistenceError(f"Invalid <{tag}> value {text!r}: {e}") from e


def _parse_bool(text: str) -> bool:
    if text not in ("true", "false"):
        raise ValueError("expected true or false")
    return text == "true"


def _write_diagnostics(parent: Element, diagnostics: tuple[str, ...]) -> None:
    if not diagnostics:
        return
    trail = SubElement(parent, "diagnostics")
    for entry in diagnostics:
        _write_text(trail, "entry", entry)


def _read_diagnostics(parent: Element) -> tuple[str, ...]:
    trail = parent.find("diagnostics")
    if trail is None:
        return ()
    return tuple(_decode(entry) for entry in trail.findall("entry"))


def _case_to_element(parent: Element, case: CaseRecord) -> None:
    el = SubElement(parent, CASE_TAG)
    _write_text(el, "name", case.name)
    _write_text(el, "class-name", case.class_name)
    _write_text(el, "error-details", case.error_details)
    _write_text(el, "error-type", case.error_type)
    _write_text(el, "duration", repr(case.duration))
    _write_text(el, "skipped", "true" if case.skipped else "false")
    _write_text(el, "stdout", case.stdout)
    _write_text(el, "stderr", case.stderr)
    _write_diagnostics(el, case.diagnostics)


def _case_from_element(el: Element) -> CaseRecord:
    return CaseRecord(
        name=_read_text(el, "name") or "",
        class_name=_read_text(el, "class-name") or "",
        error_details=_read_text(el, "error-details"),
        error_type=_read_text(el, "error-type"),
        duration=_read_value(el, "duration", float, 0.0),
        skipped=_read_value(el, "skipped", _parse_bool, False),
        stdout=_read_text(el, "stdout"),
        stderr=_read_text(el, "stderr"),
        diagnostics=_read_diagnostics(el),
    )


def suite_to_element(suite: SuiteRecord) -> Element:
    root = Element(SUITE_TAG)
    _write_text(root, "name", suite.name)
    _write_text(root, "file", suite.file)
    _write_text(root, "timestamp", suite.timestamp.isoformat() if suite.timestamp else None)
    _write_text(root, "duration", repr(suite.duration))
    _write_text(root, "stdout", suite.stdout)
    _write_text(root, "stderr", suite.stderr)
    cases = SubElement(root, "cases")
    for case in suite.cases:
        _case_to_element(cases, case)
    _write_diagnostics(root, suite.diagnostics)
    return root


def suite_from_element(root: Element) -> SuiteRecord:
    if root.tag != SUITE_TAG:
        raise PersistenceError(f"Expected <{SUITE_TAG}>, found <{root.tag}>")
    cases = root.find("cases")
    return SuiteRecord(
        name=_read_text(root, "name") or "",
        timestamp=_read_value(root, "timestamp", datetime.fromisoformat, None),
        duration=_read_value(root, "duration", float, 0.0),
        stdout=_read_text(root, "stdout"),
        stderr=_read_text(root, "stderr"),
        cases=tuple(_case_from_element(c) for c in cases.findall(CASE_TAG)) if cases is not None else (),
        file=_read_text(root, "file"),
        diagnostics=_read_diagnostics(root),
    )


def dump_suite(suite: SuiteRecord) -> bytes:
    """Serialize a suite to UTF-8 encoded XML."""
    return ET.tostring(suite_to_element(suite), encoding="utf-8", xml_declaration=True)


def load_suite(data: Union[bytes, str]) -> SuiteRecord:
    """Rebuild a suite from XML produced by dump_suite."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise PersistenceError(f"Stored suite is not well-formed: {e}") from e
    return suite_from_element(root)


def write_suite(path: Union[str, PathLike], suite: SuiteRecord) -> None:
    with open(path, 'wb') as f:
        f.write(dump_suite(suite))
    logger.debug(f"Wrote suite {suite.name!r} to {path}")


def read_suite(path: Union[str, PathLike]) -> SuiteRecord:
    with open(path, 'rb') as f:
        data = f.read()
    return load_suite(data)
